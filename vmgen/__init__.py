"""vmgen — instruction-set source generator.

This package reads a stream of YAML instruction records and emits the
synchronized text fragments that define a stack VM's instruction set and
the compiler passes around it.

Submodules
----------
schema
    ``InstructionRecord`` and its parameter variants (``ValueParam``,
    ``TypedParam``), decoding from YAML documents, duplicate checking.

rules
    The destructuring rule table: type tag → inline constructor template.

codegen
    The record emitters (opcode dispatch, opcode type, interpreter cases,
    primitive table, AST node type, IR lowering) and ``generate()``.

include
    The ``(**** include: path ****)`` splicing preprocessor.

main
    CLI entry-point: one ``--gen-*`` / ``--pp-include`` mode per run.

Usage
-----
Command-line::

    python -m vmgen --gen-vm instructions.yaml > vm_cases.ml
    python -m vmgen --pp-include src/vm.cppo.ml > src/vm.ml

Programmatic::

    from vmgen.codegen import generate
    from vmgen.schema import load_records

    with open("instructions.yaml", encoding="utf-8") as f:
        text = generate("gen-vm", load_records(f))

"""

from __future__ import annotations

__version__: str = "0.1.0"
__all__: list[str] = [
    "__version__",
    "codegen",
    "config",
    "errors",
    "include",
    "rules",
    "schema",
]
