#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
vmgen/codegen.py
================

Emitters turning an instruction record stream into source fragments.

Each emitter is an independent pass over the same records and produces one
artifact.  The artifacts are spliced into hand-maintained templates, and
they reference each other only through names derived from ``inst``:

=================  ======================================  ===============
mode               artifact                                records
=================  ======================================  ===============
``gen-vm``         opcode dispatch arms of the VM step     all
``gen-insttype``   the ``instruction`` variant type        all
``gen-interps``    tree-walking interpreter cases          primitives
``gen-prims``      built-in primitive table entries        named primitives
``gen-attype``     AST node variants                       primitives
``gen-ir``         AST → opcode lowering cases             primitives
=================  ======================================  ===============

Naming
------
For a record with ``inst: Add`` the opcode is ``OpAdd`` and the AST node
is ``Add``.  Typed parameters without an inline destructuring rule are
converted with ``get_<tag>`` (see :mod:`vmgen.rules`).

Streaming
---------
``RecordEmitter.emit`` yields one chunk per emitted record (plus a
prologue/epilogue chunk where the artifact has one), so the driver can
write output as records are decoded.  Output depends only on the records
and the ``GeneratorConfig``; two runs over the same input are identical.
"""

from __future__ import annotations

import logging
from typing import (
    Callable,
    ClassVar,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
    Type,
)

from vmgen.config import DEFAULT_CONFIG, GeneratorConfig
from vmgen.emitter import CodeEmitter
from vmgen.errors import UsageError, VmgenErrorCodes
from vmgen.rules import DESTRUCTURING_RULES, Template, accessor_name, lookup_rule
from vmgen.schema import (
    DuplicatePolicy,
    InstructionRecord,
    TypedParam,
    ValueParam,
    check_duplicates,
)

_log = logging.getLogger(__name__)

__all__ = [
    "EMITTERS",
    "RecordEmitter",
    "OpcodeDispatchEmitter",
    "OpcodeTypeEmitter",
    "InterpreterCaseEmitter",
    "PrimitiveTableEmitter",
    "AstNodeTypeEmitter",
    "IrLoweringEmitter",
    "opcode_name",
    "ast_name",
    "get_emitter",
    "iter_generate",
    "generate",
]


# ═══════════════════════════════════════════════════════════════════════════
# NAMING
# ═══════════════════════════════════════════════════════════════════════════

def opcode_name(record: InstructionRecord) -> str:
    """VM opcode constructor for *record*."""
    return f"Op{record.require_inst()}"


def ast_name(record: InstructionRecord) -> str:
    """AST node constructor for *record*."""
    return record.require_inst()


# ═══════════════════════════════════════════════════════════════════════════
# BASE EMITTER
# ═══════════════════════════════════════════════════════════════════════════

EMITTERS: Dict[str, Type["RecordEmitter"]] = {}


def register(mode: str) -> Callable[[Type["RecordEmitter"]], Type["RecordEmitter"]]:
    """Class decorator adding an emitter to ``EMITTERS`` under *mode*."""

    def decorator(cls: Type["RecordEmitter"]) -> Type["RecordEmitter"]:
        cls.mode = mode
        EMITTERS[mode] = cls
        return cls

    return decorator


class RecordEmitter:
    """One generation pass over the record stream."""

    mode: ClassVar[str] = ""
    description: ClassVar[str] = ""
    # Record attributes that must be unique among the records emitted.
    unique_keys: ClassVar[Tuple[str, ...]] = ("inst",)

    def __init__(
        self,
        config: GeneratorConfig = DEFAULT_CONFIG,
        duplicates: DuplicatePolicy = DuplicatePolicy.WARN,
        rules: Mapping[str, Template] = DESTRUCTURING_RULES,
    ) -> None:
        self.config = config
        self.duplicates = duplicates
        self.rules = rules
        self.out = CodeEmitter(config.indent)

    def selects(self, record: InstructionRecord) -> bool:
        """Whether *record* contributes to this artifact."""
        return True

    def prologue(self) -> None:
        pass

    def epilogue(self) -> None:
        pass

    def emit_record(self, record: InstructionRecord) -> None:
        raise NotImplementedError

    def emit(self, records: Iterable[InstructionRecord]) -> Iterator[str]:
        """Yield the artifact chunk by chunk."""
        self.out.flush()
        self.prologue()
        head = self.out.flush()
        if head:
            yield head

        selected: Iterable[InstructionRecord] = (r for r in records if self.selects(r))
        for key in self.unique_keys:
            selected = check_duplicates(selected, key, self.duplicates)

        count = 0
        for record in selected:
            self.emit_record(record)
            count += 1
            yield self.out.flush()

        self.epilogue()
        tail = self.out.flush()
        if tail:
            yield tail
        _log.info("%s: emitted %d record(s)", self.mode, count)

    def _line_at(self, text: str, depth: int) -> None:
        """Emit *text* at *depth* levels from the left margin."""
        self.out.indent(depth)
        self.out.emit(text)
        self.out.dedent(depth)


def _is_interpreted(record: InstructionRecord) -> bool:
    return record.is_primitive and not record.no_interp


def _has_ircode(record: InstructionRecord) -> bool:
    return record.is_primitive and not record.no_ircode


# ═══════════════════════════════════════════════════════════════════════════
# OPCODE DISPATCH
# ═══════════════════════════════════════════════════════════════════════════

@register("gen-vm")
class OpcodeDispatchEmitter(RecordEmitter):
    """Dispatch arms of the VM's ``exec`` function, one per opcode.

    Stack parameters are popped by a single pattern: the most recently
    pushed (last declared) parameter comes first, then the rest of the
    stack.  Typed parameters with an inline rule are matched against their
    constructor; the others are bound to a temporary and converted after
    the match, in declared order.
    """

    description = "opcode dispatch arms for the VM"

    def destructure(
        self, record: InstructionRecord
    ) -> Tuple[List[str], List[Tuple[str, str, str]]]:
        """Split params into match patterns and deferred conversions.

        Returns the patterns in declared order, and ``(name, accessor,
        temporary)`` triples for typed params that need a conversion call.
        """
        patterns: List[str] = []
        deferred: List[Tuple[str, str, str]] = []
        for param in record.params:
            if isinstance(param, ValueParam):
                patterns.append(param.name)
            elif isinstance(param, TypedParam):
                rule = lookup_rule(param.tag, self.rules)
                if rule is not None:
                    patterns.append(rule(param.name))
                else:
                    tmp = f"_tmp{len(deferred)}"
                    patterns.append(tmp)
                    deferred.append(
                        (param.name, accessor_name(param.tag, self.config), tmp)
                    )
        return patterns, deferred

    def emit_record(self, record: InstructionRecord) -> None:
        cfg = self.config
        out = self.out
        opcode = opcode_name(record)
        patterns, deferred = self.destructure(record)

        if record.fields is not None:
            names = ", ".join(f.name for f in record.fields)
            self._line_at(f"| {opcode}({names}) ->", 1)
        else:
            self._line_at(f"| {opcode} ->", 1)

        out.indent(3)
        with out.block("begin"):
            if patterns:
                out.emit(f"match {cfg.stack} with")
                popped = " :: ".join(reversed(patterns))
                out.emit(f"| {popped} :: {cfg.stack} ->")
            out.indent(2)
            for name, accessor, tmp in deferred:
                out.emit(f"let {name} = {accessor} {tmp} in")
            if record.needs_reducef:
                out.emit(f"let reducef = {cfg.vm_reducef} {cfg.environment} in")
            if record.is_primitive:
                with out.block(f"let {cfg.result} ="):
                    out.emit_fragment(record.require("code"))
                out.emit(
                    f"in {cfg.vm_exec} ({cfg.result} :: {cfg.stack}) "
                    f"{cfg.environment} {cfg.code} {cfg.dump}"
                )
            else:
                with out.block("begin"):
                    out.emit_fragment(record.require("code"))
                out.emit("end")
            out.dedent(2)
            out.emit_blank()
            if patterns:
                out.emit(
                    f'| _ -> {cfg.bug_reporter} "invalid argument for {opcode}"'
                )
        out.emit("end")
        out.emit_blank()


# ═══════════════════════════════════════════════════════════════════════════
# OPCODE TYPE
# ═══════════════════════════════════════════════════════════════════════════

@register("gen-insttype")
class OpcodeTypeEmitter(RecordEmitter):
    """The ``instruction`` variant type, closed by a derived printer."""

    description = "variant declarations of the instruction type"

    def prologue(self) -> None:
        self.out.emit(f"and {self.config.instruction_type} =")

    def emit_record(self, record: InstructionRecord) -> None:
        opcode = opcode_name(record)
        if record.fields is not None:
            payload = " * ".join(f.type for f in record.fields)
            self._line_at(f"| {opcode} of {payload}", 1)
        else:
            self._line_at(f"| {opcode}", 1)

        if record.suppress_pp:
            self._line_at(
                f'[@printer (fun fmt _ -> Format.fprintf fmt "{opcode}(...)")]', 3
            )
        if record.custom_pp is not None:
            self._line_at(f"[@printer ({record.custom_pp.rstrip()})]", 3)

    def epilogue(self) -> None:
        self._line_at("[@@deriving show]", 1)


# ═══════════════════════════════════════════════════════════════════════════
# INTERPRETER CASES
# ═══════════════════════════════════════════════════════════════════════════

@register("gen-interps")
class InterpreterCaseEmitter(RecordEmitter):
    """Cases of the tree-walking interpreter for primitive AST nodes.

    Every parameter gets a synthetic sub-term ``_astN`` numbered in declared
    order.  Value parameters are interpreted directly; typed parameters go
    through their accessor after interpretation.
    """

    description = "interpreter cases for primitives"

    def selects(self, record: InstructionRecord) -> bool:
        return _is_interpreted(record)

    def emit_record(self, record: InstructionRecord) -> None:
        cfg = self.config
        out = self.out
        node = ast_name(record)

        subterms = [f"_ast{i}" for i in range(record.arity)]
        values: List[str] = []
        typed: List[str] = []
        for param, sub in zip(record.params, subterms):
            interpreted = f"{cfg.interpret} {cfg.environment} {sub}"
            if isinstance(param, ValueParam):
                values.append(f"let {param.name} = {interpreted} in")
            else:
                accessor = accessor_name(param.tag, cfg)
                typed.append(f"let {param.name} = {accessor} ({interpreted}) in")

        if subterms:
            self._line_at(f"| {node}({', '.join(subterms)}) ->", 1)
        else:
            self._line_at(f"| {node} ->", 1)

        out.indent(3)
        for line in values + typed:
            out.emit(line)
        if record.needs_reducef:
            out.emit(f"let reducef = {cfg.interp_reducef} in")
        out.indent()
        with out.block("begin"):
            out.emit_fragment(record.interp_body())
        out.emit("end")
        out.emit_blank()


# ═══════════════════════════════════════════════════════════════════════════
# PRIMITIVE TABLE
# ═══════════════════════════════════════════════════════════════════════════

@register("gen-prims")
class PrimitiveTableEmitter(RecordEmitter):
    """Entries of the built-in primitive table, in stream order.

    Each entry pairs the public name and its type signature with a curried
    wrapper building the primitive's AST node from its arguments.
    """

    description = "primitive table entries"
    unique_keys = ("inst", "name")

    def selects(self, record: InstructionRecord) -> bool:
        return record.is_primitive and bool(record.name)

    def wrapper(self, record: InstructionRecord) -> str:
        node = ast_name(record)
        args = [f"_v{i}" for i in range(1, record.arity + 1)]
        if not args:
            return f"lambda0 ({node})"
        return f"lambda{len(args)} (fun {' '.join(args)} -> {node}({', '.join(args)}))"

    def emit_record(self, record: InstructionRecord) -> None:
        out = self.out
        wrapper = self.wrapper(record)
        signature = record.require("type")

        out.indent(4)
        out.emit(f'("{record.name}",')
        out.indent()
        with out.block("begin"):
            out.emit_fragment(signature)
        out.emit("end,")
        out.emit(wrapper)
        out.dedent()
        out.emit(");")


# ═══════════════════════════════════════════════════════════════════════════
# AST NODE TYPE
# ═══════════════════════════════════════════════════════════════════════════

@register("gen-attype")
class AstNodeTypeEmitter(RecordEmitter):
    """AST variants for primitives with IR code."""

    description = "AST node variants for primitives"

    def selects(self, record: InstructionRecord) -> bool:
        return _has_ircode(record)

    def emit_record(self, record: InstructionRecord) -> None:
        node = ast_name(record)
        if record.params:
            payload = " * ".join([self.config.ast_type] * record.arity)
            self._line_at(f"| {node} of {payload}", 1)
        else:
            self._line_at(f"| {node}", 1)


# ═══════════════════════════════════════════════════════════════════════════
# IR LOWERING
# ═══════════════════════════════════════════════════════════════════════════

@register("gen-ir")
class IrLoweringEmitter(RecordEmitter):
    """Lowering cases from primitive AST nodes to their opcodes."""

    description = "AST to opcode lowering cases"

    def selects(self, record: InstructionRecord) -> bool:
        return _has_ircode(record)

    def emit_record(self, record: InstructionRecord) -> None:
        node = ast_name(record)
        opcode = opcode_name(record)
        subterms = [f"p{i}" for i in range(1, record.arity + 1)]

        if subterms:
            self._line_at(f"| {node}({', '.join(subterms)}) ->", 2)
        else:
            self._line_at(f"| {node} ->", 2)
        self._line_at(
            f"{self.config.transform_primitive} {self.config.environment} "
            f"[{'; '.join(subterms)}] {opcode}",
            4,
        )
        self.out.emit_blank()


# ═══════════════════════════════════════════════════════════════════════════
# ENTRY POINTS
# ═══════════════════════════════════════════════════════════════════════════

def get_emitter(
    mode: str,
    config: GeneratorConfig = DEFAULT_CONFIG,
    duplicates: DuplicatePolicy = DuplicatePolicy.WARN,
) -> RecordEmitter:
    """Instantiate the emitter registered for *mode*."""
    cls = EMITTERS.get(mode)
    if cls is None:
        raise UsageError(
            f"unknown generation mode '{mode}'",
            code=VmgenErrorCodes.NO_MODE,
        ).with_hint(f"choose one of: {', '.join(sorted(EMITTERS))}")
    return cls(config=config, duplicates=duplicates)


def iter_generate(
    mode: str,
    records: Iterable[InstructionRecord],
    config: GeneratorConfig = DEFAULT_CONFIG,
    duplicates: DuplicatePolicy = DuplicatePolicy.WARN,
) -> Iterator[str]:
    """Stream the artifact for *mode* chunk by chunk."""
    return get_emitter(mode, config, duplicates).emit(records)


def generate(
    mode: str,
    records: Iterable[InstructionRecord],
    config: Optional[GeneratorConfig] = None,
    duplicates: DuplicatePolicy = DuplicatePolicy.WARN,
) -> str:
    """Generate the complete artifact for *mode* as one string."""
    return "".join(
        iter_generate(mode, records, config or DEFAULT_CONFIG, duplicates)
    )
