# vmgen/errors.py
"""
vmgen Error Types

Structured errors for every phase of a generation run. Each exception
carries an ``ErrorMessage`` with a stable code, a severity and the source
span of the offending record or line, and renders GCC-style so build logs
point straight at the YAML document that broke.

Error Hierarchy:
────────────────
┌─────────────────────────────────────────────────────────────────────────────┐
│  VmgenError (base)                                                          │
│  ├── ConfigError           - Bad generator configuration                    │
│  ├── RecordError           - Record stream violates the schema              │
│  │   ├── RecordDecodeError - Structurally invalid YAML document             │
│  │   ├── MissingInstError  - Name derivation on a record without ``inst``   │
│  │   ├── MissingFieldError - Emitter needs a fragment the record lacks      │
│  │   └── DuplicateRecordError - Repeated ``inst``/``name`` (reject policy)  │
│  ├── IncludeError          - Include target cannot be read                  │
│  └── UsageError            - Invalid invocation (e.g. no mode selected)     │
└─────────────────────────────────────────────────────────────────────────────┘

Error Codes:
────────────
Codes follow the pattern VMG-NNNN:
  - 0100-0199: Configuration errors
  - 1000-1999: Record schema errors
  - 2000-2999: Include preprocessing errors
  - 3000-3999: Usage errors
  - 9000-9999: Internal errors
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto, unique
from typing import Any, List, Optional


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR SEVERITY AND CLASSIFICATION
# ═══════════════════════════════════════════════════════════════════════════════

@unique
class ErrorSeverity(Enum):
    """Severity levels for vmgen diagnostics."""

    FATAL = "fatal"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@unique
class ErrorPhase(Enum):
    """Phase of the run where the error occurred."""

    CONFIG = "config"        # Loading GeneratorConfig
    DECODE = "decode"        # YAML → InstructionRecord
    EMIT = "emit"            # Record → text
    INCLUDE = "include"      # Include splicing
    USAGE = "usage"          # Command line
    INTERNAL = "internal"


@unique
class ErrorCategory(Enum):
    """Fine-grained error categories."""

    INVALID_CONFIG = auto()
    MALFORMED_DOCUMENT = auto()
    INVALID_RECORD = auto()
    MISSING_KEY = auto()
    DUPLICATE_IDENTIFIER = auto()
    FILE_ACCESS = auto()
    INVALID_USAGE = auto()
    INTERNAL_ERROR = auto()


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR CODES
# ═══════════════════════════════════════════════════════════════════════════════

class ErrorCode:
    """
    Structured error code of the form ``VMG-NNNN``.
    """

    __slots__ = ("prefix", "number", "category", "phase", "default_severity")

    def __init__(
        self,
        prefix: str,
        number: int,
        category: ErrorCategory,
        phase: ErrorPhase,
        default_severity: ErrorSeverity = ErrorSeverity.ERROR,
    ) -> None:
        self.prefix = prefix
        self.number = number
        self.category = category
        self.phase = phase
        self.default_severity = default_severity

    @property
    def code(self) -> str:
        """Get the full error code string."""
        return f"{self.prefix}-{self.number:04d}"

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"ErrorCode({self.code!r}, {self.category.name})"

    def __hash__(self) -> int:
        return hash((self.prefix, self.number))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ErrorCode):
            return self.prefix == other.prefix and self.number == other.number
        if isinstance(other, str):
            return self.code == other
        return False


class VmgenErrorCodes:
    """Predefined vmgen error codes."""

    # ═══════════════════════════════════════════════════════════════════════════
    # CONFIGURATION (0100-0199)
    # ═══════════════════════════════════════════════════════════════════════════

    INVALID_CONFIG = ErrorCode(
        "VMG", 100, ErrorCategory.INVALID_CONFIG, ErrorPhase.CONFIG
    )
    UNKNOWN_CONFIG_KEY = ErrorCode(
        "VMG", 101, ErrorCategory.INVALID_CONFIG, ErrorPhase.CONFIG
    )

    # ═══════════════════════════════════════════════════════════════════════════
    # RECORD SCHEMA (1000-1999)
    # ═══════════════════════════════════════════════════════════════════════════

    MALFORMED_DOCUMENT = ErrorCode(
        "VMG", 1000, ErrorCategory.MALFORMED_DOCUMENT, ErrorPhase.DECODE
    )
    INVALID_RECORD = ErrorCode(
        "VMG", 1001, ErrorCategory.INVALID_RECORD, ErrorPhase.DECODE
    )
    INVALID_PARAMETER = ErrorCode(
        "VMG", 1002, ErrorCategory.INVALID_RECORD, ErrorPhase.DECODE
    )
    INVALID_FIELD = ErrorCode(
        "VMG", 1003, ErrorCategory.INVALID_RECORD, ErrorPhase.DECODE
    )
    INVALID_FLAG = ErrorCode(
        "VMG", 1004, ErrorCategory.INVALID_RECORD, ErrorPhase.DECODE
    )
    MISSING_INST = ErrorCode(
        "VMG", 1100, ErrorCategory.MISSING_KEY, ErrorPhase.EMIT
    )
    MISSING_FIELD = ErrorCode(
        "VMG", 1101, ErrorCategory.MISSING_KEY, ErrorPhase.EMIT
    )
    DUPLICATE_INST = ErrorCode(
        "VMG", 1200, ErrorCategory.DUPLICATE_IDENTIFIER, ErrorPhase.EMIT
    )
    DUPLICATE_NAME = ErrorCode(
        "VMG", 1201, ErrorCategory.DUPLICATE_IDENTIFIER, ErrorPhase.EMIT
    )

    # ═══════════════════════════════════════════════════════════════════════════
    # INCLUDE (2000-2999)
    # ═══════════════════════════════════════════════════════════════════════════

    INCLUDE_NOT_FOUND = ErrorCode(
        "VMG", 2000, ErrorCategory.FILE_ACCESS, ErrorPhase.INCLUDE
    )
    INCLUDE_UNREADABLE = ErrorCode(
        "VMG", 2001, ErrorCategory.FILE_ACCESS, ErrorPhase.INCLUDE
    )

    # ═══════════════════════════════════════════════════════════════════════════
    # USAGE (3000-3999)
    # ═══════════════════════════════════════════════════════════════════════════

    NO_MODE = ErrorCode(
        "VMG", 3000, ErrorCategory.INVALID_USAGE, ErrorPhase.USAGE,
        ErrorSeverity.FATAL,
    )
    BAD_ARGUMENTS = ErrorCode(
        "VMG", 3001, ErrorCategory.INVALID_USAGE, ErrorPhase.USAGE,
        ErrorSeverity.FATAL,
    )

    INTERNAL_ERROR = ErrorCode(
        "VMG", 9000, ErrorCategory.INTERNAL_ERROR, ErrorPhase.INTERNAL,
        ErrorSeverity.FATAL,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# SOURCE SPANS AND MESSAGES
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SourceSpan:
    """
    Location of a record or line in its input.

    ``document`` is the zero-based index of the YAML document in the record
    stream; it is ``-1`` for line-oriented inputs.
    """

    file: str = ""
    line: int = 0
    column: int = 0
    document: int = -1

    def __str__(self) -> str:
        parts = [self.file or "<input>"]
        if self.line > 0:
            parts.append(str(self.line))
            if self.column > 0:
                parts.append(str(self.column))
        text = ":".join(parts)
        if self.document >= 0:
            text += f" (document {self.document})"
        return text


@dataclass
class ErrorMessage:
    """
    A complete error message with all context.
    """

    code: ErrorCode
    message: str
    span: SourceSpan = field(default_factory=SourceSpan)
    severity: Optional[ErrorSeverity] = None  # None means use code's default
    hint: str = ""

    def __post_init__(self) -> None:
        if self.severity is None:
            self.severity = self.code.default_severity

    def to_gcc_format(self) -> str:
        """Format as a GCC-style error message."""
        severity = self.severity.value if self.severity else "error"
        main = f"{self.span}: {severity}: {self.message} [{self.code}]"
        if self.hint:
            return f"{main}\nhint: {self.hint}"
        return main

    def __str__(self) -> str:
        return self.to_gcc_format()


# ═══════════════════════════════════════════════════════════════════════════════
# EXCEPTION CLASSES
# ═══════════════════════════════════════════════════════════════════════════════

class VmgenError(Exception):
    """
    Base exception for all vmgen errors.

    Every error is fatal to the generation pass it was raised in.
    """

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        span: Optional[SourceSpan] = None,
        severity: Optional[ErrorSeverity] = None,
        cause: Optional[BaseException] = None,
        hint: str = "",
    ) -> None:
        super().__init__(message)
        self.error_message = ErrorMessage(
            code=code or VmgenErrorCodes.INTERNAL_ERROR,
            message=message,
            span=span or SourceSpan(),
            severity=severity,
            hint=hint,
        )
        self.cause = cause

    @property
    def code(self) -> ErrorCode:
        return self.error_message.code

    @property
    def span(self) -> SourceSpan:
        return self.error_message.span

    @property
    def severity(self) -> ErrorSeverity:
        return self.error_message.severity or ErrorSeverity.ERROR

    def with_hint(self, hint: str) -> "VmgenError":
        """Add a hint to this error."""
        self.error_message.hint = hint
        return self

    def to_gcc_format(self) -> str:
        """Format as a GCC-style error message."""
        return self.error_message.to_gcc_format()

    def __str__(self) -> str:
        return self.to_gcc_format()


# ───────────────────────────────────────────────────────────────────────────────
# CONFIGURATION ERRORS
# ───────────────────────────────────────────────────────────────────────────────

class ConfigError(VmgenError):
    """Invalid generator configuration."""

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        span: Optional[SourceSpan] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message=message,
            code=code or VmgenErrorCodes.INVALID_CONFIG,
            span=span,
            **kwargs,
        )


# ───────────────────────────────────────────────────────────────────────────────
# RECORD ERRORS
# ───────────────────────────────────────────────────────────────────────────────

class RecordError(VmgenError):
    """A record in the stream violates the instruction schema."""

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        span: Optional[SourceSpan] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message=message,
            code=code or VmgenErrorCodes.INVALID_RECORD,
            span=span,
            **kwargs,
        )


class RecordDecodeError(RecordError):
    """The input unit is not a well-formed YAML document."""

    def __init__(
        self,
        message: str,
        span: Optional[SourceSpan] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message=message,
            code=VmgenErrorCodes.MALFORMED_DOCUMENT,
            span=span,
            **kwargs,
        )


class MissingInstError(RecordError):
    """A name was derived from a record that has no ``inst``."""

    def __init__(
        self,
        span: Optional[SourceSpan] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message="record has no 'inst'; cannot derive an identifier",
            code=VmgenErrorCodes.MISSING_INST,
            span=span,
            **kwargs,
        )


class MissingFieldError(RecordError):
    """An emitter needs a key the record does not provide."""

    def __init__(
        self,
        key: str,
        inst: str = "",
        span: Optional[SourceSpan] = None,
        **kwargs: Any,
    ) -> None:
        msg = f"record is missing '{key}'"
        if inst:
            msg = f"record '{inst}' is missing '{key}'"
        super().__init__(
            message=msg,
            code=VmgenErrorCodes.MISSING_FIELD,
            span=span,
            **kwargs,
        )
        self.key = key
        self.inst = inst


class DuplicateRecordError(RecordError):
    """Two records share an identifier in the same namespace."""

    def __init__(
        self,
        key: str,
        value: str,
        first: SourceSpan,
        span: Optional[SourceSpan] = None,
        **kwargs: Any,
    ) -> None:
        code = (
            VmgenErrorCodes.DUPLICATE_NAME if key == "name"
            else VmgenErrorCodes.DUPLICATE_INST
        )
        super().__init__(
            message=f"duplicate {key} '{value}' (first defined at {first})",
            code=code,
            span=span,
            **kwargs,
        )
        self.key = key
        self.value = value
        self.first = first


# ───────────────────────────────────────────────────────────────────────────────
# INCLUDE ERRORS
# ───────────────────────────────────────────────────────────────────────────────

class IncludeError(VmgenError):
    """An include target could not be read."""

    def __init__(
        self,
        path: str,
        span: Optional[SourceSpan] = None,
        code: Optional[ErrorCode] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message=f"cannot include '{path}'",
            code=code or VmgenErrorCodes.INCLUDE_NOT_FOUND,
            span=span,
            **kwargs,
        )
        self.path = path


# ───────────────────────────────────────────────────────────────────────────────
# USAGE ERRORS
# ───────────────────────────────────────────────────────────────────────────────

class UsageError(VmgenError):
    """The command line does not describe a runnable generation pass."""

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message=message,
            code=code or VmgenErrorCodes.BAD_ARGUMENTS,
            **kwargs,
        )


__all__: List[str] = [
    "ErrorSeverity",
    "ErrorPhase",
    "ErrorCategory",
    "ErrorCode",
    "VmgenErrorCodes",
    "SourceSpan",
    "ErrorMessage",
    "VmgenError",
    "ConfigError",
    "RecordError",
    "RecordDecodeError",
    "MissingInstError",
    "MissingFieldError",
    "DuplicateRecordError",
    "IncludeError",
    "UsageError",
]
