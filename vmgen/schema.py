"""vmgen/schema.py — the instruction record schema.

Every emitter consumes the same stream of ``InstructionRecord`` values, one
per YAML document::

    ---
    name: "+"
    inst: Add
    is-primitive: true
    params: [a, {b: int}]
    type: |
      ~% tI --> tI --> tI
    code: |
      IntegerConstant(a + b)

Parameters come in two variants.  A bare identifier is a ``ValueParam``: the
evaluator interprets it before use.  A single-entry mapping is a
``TypedParam`` whose tag selects how the raw value is converted (see
:mod:`vmgen.rules`).  Declaration order is significant: it is the push order
at call sites, and the dispatch emitter pops in reverse.

Records are decoded lazily from the input so generated text can be written
while later documents are still unread.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import (
    Any,
    Dict,
    Iterable,
    Iterator,
    Mapping,
    Optional,
    TextIO,
    Tuple,
    Union,
)

import yaml

from vmgen.errors import (
    DuplicateRecordError,
    MissingFieldError,
    MissingInstError,
    RecordDecodeError,
    RecordError,
    SourceSpan,
    VmgenErrorCodes,
)

_log = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════
#  Parameters
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ValueParam:
    """Parameter evaluated recursively before the body sees it."""

    name: str


@dataclass(frozen=True)
class TypedParam:
    """Parameter converted from a raw value according to its type tag."""

    name: str
    tag: str


Param = Union[ValueParam, TypedParam]


@dataclass(frozen=True)
class Field:
    """Payload carried by the opcode itself, distinct from stack params."""

    name: str
    type: str


# Flags resolved to explicit booleans at decode time.
_FLAG_KEYS: Tuple[Tuple[str, str], ...] = (
    ("is-primitive", "is_primitive"),
    ("no-interp", "no_interp"),
    ("no-ircode", "no_ircode"),
    ("needs-reducef", "needs_reducef"),
    ("separated", "separated"),
    ("suppress-pp", "suppress_pp"),
)

# Opaque text payloads, copied verbatim into the output.
_TEXT_KEYS: Tuple[Tuple[str, str], ...] = (
    ("name", "name"),
    ("inst", "inst"),
    ("type", "type"),
    ("code", "code"),
    ("code-interp", "code_interp"),
    ("custom-pp", "custom_pp"),
)

_KNOWN_KEYS = frozenset(
    [k for k, _ in _FLAG_KEYS] + [k for k, _ in _TEXT_KEYS] + ["params", "fields"]
)


# ═══════════════════════════════════════════════════════════════════════
#  Record
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class InstructionRecord:
    """One instruction definition, decoded from one YAML document."""

    inst: Optional[str] = None
    name: Optional[str] = None
    params: Tuple[Param, ...] = ()
    fields: Optional[Tuple[Field, ...]] = None
    type: Optional[str] = None
    code: Optional[str] = None
    code_interp: Optional[str] = None
    custom_pp: Optional[str] = None
    is_primitive: bool = False
    no_interp: bool = False
    no_ircode: bool = False
    needs_reducef: bool = False
    separated: bool = False
    suppress_pp: bool = False
    span: SourceSpan = field(default_factory=SourceSpan, compare=False)

    # -- derived properties -------------------------------------------------

    @property
    def arity(self) -> int:
        return len(self.params)

    def require_inst(self) -> str:
        """Return ``inst`` or fail: every derived identifier starts here."""
        if not self.inst:
            raise MissingInstError(span=self.span)
        return self.inst

    def require(self, key: str) -> str:
        """Return the text payload stored under document key *key*."""
        attr = dict(_TEXT_KEYS)[key]
        value = getattr(self, attr)
        if value is None:
            raise MissingFieldError(key, inst=self.inst or "", span=self.span)
        return value

    def interp_body(self) -> str:
        """Body used by the tree-walking interpreter."""
        return self.require("code-interp" if self.separated else "code")

    # -- decoding -----------------------------------------------------------

    @classmethod
    def from_mapping(
        cls, doc: Any, span: Optional[SourceSpan] = None
    ) -> "InstructionRecord":
        """Decode one YAML document into a record."""
        span = span or SourceSpan()
        if not isinstance(doc, Mapping):
            raise RecordError(
                f"record must be a mapping, got {type(doc).__name__}",
                span=span,
            )

        kwargs: Dict[str, Any] = {"span": span}

        for key, attr in _TEXT_KEYS:
            value = doc.get(key)
            if value is not None and not isinstance(value, str):
                raise RecordError(
                    f"'{key}' must be text, got {type(value).__name__}: {value!r}",
                    span=span,
                ).with_hint("quote the value in the YAML document")
            kwargs[attr] = value

        for key, attr in _FLAG_KEYS:
            value = doc.get(key)
            if value is None:
                value = False
            elif not isinstance(value, bool):
                raise RecordError(
                    f"flag '{key}' must be a boolean, got {value!r}",
                    code=VmgenErrorCodes.INVALID_FLAG,
                    span=span,
                )
            kwargs[attr] = value

        kwargs["params"] = _decode_params(doc.get("params"), span)
        kwargs["fields"] = _decode_fields(doc.get("fields"), span)

        extra = sorted(str(k) for k in doc if k not in _KNOWN_KEYS)
        if extra:
            _log.debug("%s: ignoring unknown key(s) %s", span, ", ".join(extra))

        return cls(**kwargs)


def _single_entry(entry: Any, what: str, span: SourceSpan) -> Tuple[str, str]:
    """Unpack a ``{key: value}`` mapping with exactly one string entry."""
    if not isinstance(entry, Mapping) or len(entry) != 1:
        raise RecordError(
            f"{what} must be an identifier or a single-entry mapping, got {entry!r}",
            code=VmgenErrorCodes.INVALID_PARAMETER,
            span=span,
        )
    ((key, value),) = entry.items()
    if not isinstance(key, str) or not isinstance(value, str):
        raise RecordError(
            f"{what} entry must map text to text, got {entry!r}",
            code=VmgenErrorCodes.INVALID_PARAMETER,
            span=span,
        )
    return key, value


def _decode_params(raw: Any, span: SourceSpan) -> Tuple[Param, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise RecordError(
            f"'params' must be a list, got {type(raw).__name__}",
            code=VmgenErrorCodes.INVALID_PARAMETER,
            span=span,
        )
    params = []
    for entry in raw:
        if isinstance(entry, str):
            params.append(ValueParam(entry))
        else:
            name, tag = _single_entry(entry, "parameter", span)
            params.append(TypedParam(name, tag))
    return tuple(params)


def _decode_fields(raw: Any, span: SourceSpan) -> Optional[Tuple[Field, ...]]:
    if raw is None:
        return None
    if not isinstance(raw, list) or not raw:
        raise RecordError(
            "'fields' must be a non-empty list of single-entry mappings",
            code=VmgenErrorCodes.INVALID_FIELD,
            span=span,
        )
    fields = []
    for entry in raw:
        if isinstance(entry, Mapping) and len(entry) == 1:
            name, ftype = _single_entry(entry, "field", span)
            fields.append(Field(name, ftype))
        else:
            raise RecordError(
                f"field must be a single-entry mapping, got {entry!r}",
                code=VmgenErrorCodes.INVALID_FIELD,
                span=span,
            )
    return tuple(fields)


# ═══════════════════════════════════════════════════════════════════════
#  Stream loading
# ═══════════════════════════════════════════════════════════════════════

def load_records(
    stream: Union[str, TextIO], source: str = "<stdin>"
) -> Iterator[InstructionRecord]:
    """Lazily decode the YAML documents of *stream* into records.

    Empty documents are skipped.  A syntax error raises
    ``RecordDecodeError`` when the broken document is reached; records
    before it have already been yielded.
    """
    loader = yaml.SafeLoader(stream)
    index = 0
    try:
        while True:
            try:
                if not loader.check_node():
                    break
                node = loader.get_node()
                doc = loader.construct_document(node)
            except yaml.MarkedYAMLError as exc:
                mark = exc.problem_mark or exc.context_mark
                span = SourceSpan(
                    file=source,
                    line=mark.line + 1 if mark else 0,
                    column=mark.column + 1 if mark else 0,
                    document=index,
                )
                raise RecordDecodeError(
                    exc.problem or str(exc), span=span, cause=exc
                ) from exc
            except yaml.YAMLError as exc:
                raise RecordDecodeError(
                    str(exc), span=SourceSpan(file=source, document=index), cause=exc
                ) from exc

            span = SourceSpan(
                file=source,
                line=node.start_mark.line + 1 if node is not None else 0,
                document=index,
            )
            index += 1
            if doc is None:
                _log.debug("%s: skipping empty document", span)
                continue
            yield InstructionRecord.from_mapping(doc, span)
    finally:
        loader.dispose()


# ═══════════════════════════════════════════════════════════════════════
#  Duplicate identifiers
# ═══════════════════════════════════════════════════════════════════════

class DuplicatePolicy(enum.Enum):
    """What to do when two emitted records share ``inst`` (or ``name``)."""

    ALLOW = "allow"
    WARN = "warn"
    REJECT = "reject"


def check_duplicates(
    records: Iterable[InstructionRecord],
    key: str,
    policy: DuplicatePolicy = DuplicatePolicy.WARN,
) -> Iterator[InstructionRecord]:
    """Pass *records* through, enforcing *policy* on repeated *key* values.

    Records without a value for *key* are not tracked.  Under ``WARN`` and
    ``ALLOW`` every record is kept, in stream order.
    """
    seen: Dict[str, SourceSpan] = {}
    for record in records:
        value = getattr(record, key)
        if policy is not DuplicatePolicy.ALLOW and value:
            first = seen.get(value)
            if first is not None:
                if policy is DuplicatePolicy.REJECT:
                    raise DuplicateRecordError(key, value, first, span=record.span)
                _log.warning(
                    "%s: duplicate %s '%s' (first defined at %s)",
                    record.span, key, value, first,
                )
            else:
                seen[value] = record.span
        yield record


__all__ = [
    "ValueParam",
    "TypedParam",
    "Param",
    "Field",
    "InstructionRecord",
    "load_records",
    "DuplicatePolicy",
    "check_duplicates",
]
