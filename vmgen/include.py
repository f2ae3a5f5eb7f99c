"""
vmgen/include.py — splice external files into a source file.

A line carrying an include directive inside an OCaml comment::

    (**** include: vm_cases.ml ****)

is replaced by the contents of the named file; every other line is copied
unchanged.  A relative path names a file in the directory of the file
being preprocessed; its directory part is ignored.  Included files are copied verbatim: directives inside
them are not expanded.  The output starts with a banner marking it as
generated.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator, Optional, Tuple, Union

from parsimonious.exceptions import ParseError
from parsimonious.grammar import Grammar
from parsimonious.nodes import Node, NodeVisitor

from vmgen.errors import IncludeError, SourceSpan, VmgenErrorCodes

logger = logging.getLogger(__name__)


BANNER: Tuple[str, ...] = (
    "(***********************************************************)",
    "(*                                                         *)",
    "(*                                                         *)",
    "(*                                                         *)",
    "(*                   AUTO-GENERATED FILE                   *)",
    "(*                      DO NOT MODIFY                      *)",
    "(*                                                         *)",
    "(*                                                         *)",
    "(*                                                         *)",
    "(***********************************************************)",
)


# ═══════════════════════════════════════════════════════════════════
#  Directive grammar (Parsimonious PEG)
# ═══════════════════════════════════════════════════════════════════

DIRECTIVE_GRAMMAR = Grammar(r'''
    directive   = lead opener path closer tail

    lead        = ~r".*?(?=\(\*{4})"
    opener      = "(****"
    path        = ~r".*include *: *(.*?) *(?=\*{4}\))"
    closer      = "****)"
    tail        = ~r".*"
''')


class DirectiveVisitor(NodeVisitor):
    """Extract the include path from a parsed directive line."""

    grammar = DIRECTIVE_GRAMMAR

    def visit_directive(self, node: Node, visited_children: list) -> str:
        return visited_children[2]

    def visit_path(self, node: Node, visited_children: list) -> str:
        return node.match.group(1).strip()

    def generic_visit(self, node: Node, visited_children: list):
        return visited_children or node


_VISITOR = DirectiveVisitor()


def parse_directive(line: str) -> Optional[str]:
    """Return the include path of *line*, or ``None`` for ordinary lines."""
    text = line.rstrip("\r\n")
    if "include" not in text:
        return None
    try:
        path = _VISITOR.parse(text)
    except ParseError:
        return None
    return path or None


def resolve_include(path_text: str, base_dir: Union[str, Path]) -> Path:
    """Resolve a directive path against the including file's directory.

    Only the file name of a relative path is used: ``gen/cases.ml`` names
    ``cases.ml`` beside the including file.
    """
    path = Path(path_text)
    if path.is_absolute():
        return path
    return Path(base_dir) / path.name


def _read_include(path: Path, span: SourceSpan) -> str:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except FileNotFoundError as exc:
        raise IncludeError(
            str(path), span=span, code=VmgenErrorCodes.INCLUDE_NOT_FOUND, cause=exc
        ) from exc
    except OSError as exc:
        raise IncludeError(
            str(path), span=span, code=VmgenErrorCodes.INCLUDE_UNREADABLE, cause=exc
        ).with_hint(exc.strerror or str(exc)) from exc


def _terminated(line: str) -> str:
    return line if line.endswith("\n") else line + "\n"


# ═══════════════════════════════════════════════════════════════════
#  Preprocessing
# ═══════════════════════════════════════════════════════════════════

def preprocess_lines(
    lines: Iterable[str],
    base_dir: Union[str, Path],
    source: str = "",
) -> Iterator[str]:
    """Yield the banner, then *lines* with directives spliced in place.

    Every yielded line ends with a newline.
    """
    for line in BANNER:
        yield line + "\n"

    for lineno, line in enumerate(lines, start=1):
        target = parse_directive(line)
        if target is None:
            yield _terminated(line)
            continue

        path = resolve_include(target, base_dir)
        logger.debug("%s:%d: including %s", source or "<input>", lineno, path)
        content = _read_include(path, SourceSpan(file=source, line=lineno))
        for included in content.splitlines(keepends=True):
            yield _terminated(included)


def preprocess(path: Union[str, Path]) -> Iterator[str]:
    """Preprocess the file at *path*, streaming the output lines."""
    src = Path(path)
    logger.info("preprocessing %s", src)
    with open(src, "r", encoding="utf-8") as f:
        yield from preprocess_lines(f, src.parent, source=str(src))


def preprocess_text(text: str, base_dir: Union[str, Path], source: str = "") -> str:
    """Preprocess in-memory *text*; convenience for tests and tooling."""
    return "".join(
        preprocess_lines(text.splitlines(keepends=True), base_dir, source)
    )


__all__ = [
    "BANNER",
    "DIRECTIVE_GRAMMAR",
    "DirectiveVisitor",
    "parse_directive",
    "resolve_include",
    "preprocess_lines",
    "preprocess",
    "preprocess_text",
]
