#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
vmgen/__main__.py
=================

Entry point for ``python -m vmgen`` and the ``vmgen`` console script.

Pipeline
--------

    instructions.yaml
        │
        ▼
    ┌──────────────┐
    │  Schema      │   PyYAML documents → InstructionRecord
    └────┬─────────┘
         │
         ▼
    ┌──────────────┐
    │  Emitter     │   one --gen-* mode per run
    └────┬─────────┘
         │
         ▼
    fragment on stdout ──► (**** include: ... ****) in a template
                               │
                               ▼  --pp-include
                           generated source file
"""

from __future__ import annotations

from vmgen.main import main

if __name__ == "__main__":
    raise SystemExit(main())
