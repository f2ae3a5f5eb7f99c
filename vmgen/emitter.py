"""vmgen/emitter.py — indentation-aware text buffer for the emitters."""

from __future__ import annotations

from io import StringIO
from typing import Any


class CodeEmitter:
    """Low-level text emission with indentation management.

    Emitters write one record's worth of lines, then ``flush()`` the buffer
    so the driver can stream it out before the next record is decoded.
    """

    def __init__(self, indent_str: str = "  ") -> None:
        self._buffer = StringIO()
        self._indent_str = indent_str
        self._indent_level = 0

    def emit(self, code: str) -> None:
        """Emit a line at the current indentation."""
        if code.strip():
            self._buffer.write(self._indent_str * self._indent_level)
            self._buffer.write(code)
        self._buffer.write("\n")

    def emit_blank(self, count: int = 1) -> None:
        """Emit blank lines."""
        for _ in range(count):
            self._buffer.write("\n")

    def emit_fragment(self, text: str) -> None:
        """Splice a user-supplied fragment, one output line per input line.

        Each line is written as is behind the indentation prefix, including
        lines that are empty or hold only whitespace.
        """
        prefix = self._indent_str * self._indent_level
        for line in text.splitlines():
            self._buffer.write(prefix + line + "\n")

    def indent(self, levels: int = 1) -> None:
        """Increase indentation level."""
        self._indent_level += levels

    def dedent(self, levels: int = 1) -> None:
        """Decrease indentation level."""
        self._indent_level = max(0, self._indent_level - levels)

    def block(self, header: str, levels: int = 1) -> "CodeEmitter._BlockContext":
        """Context manager for indented blocks."""
        return self._BlockContext(self, header, levels)

    class _BlockContext:
        """Context manager for code blocks."""

        def __init__(self, emitter: "CodeEmitter", header: str, levels: int) -> None:
            self._emitter = emitter
            self._header = header
            self._levels = levels

        def __enter__(self) -> "CodeEmitter":
            self._emitter.emit(self._header)
            self._emitter.indent(self._levels)
            return self._emitter

        def __exit__(self, *args: Any) -> None:
            self._emitter.dedent(self._levels)

    def flush(self) -> str:
        """Return the pending text and start a new chunk at level zero."""
        text = self._buffer.getvalue()
        self._buffer = StringIO()
        self._indent_level = 0
        return text
