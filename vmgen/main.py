#!/usr/bin/env python3
"""vmgen/main.py — CLI entry-point for the instruction-set generator.

Usage examples
--------------
    # VM dispatch arms from the instruction definitions
    python -m vmgen --gen-vm instructions.yaml > vminstrs.gen.ml

    # Several record files are read in order; no file means stdin
    cat prims.yaml insts.yaml | python -m vmgen --gen-insttype

    # Splice generated fragments into a template
    python -m vmgen --pp-include src/vm.cppo.ml > src/vm.ml

    # Show the inline destructuring rules
    python -m vmgen --list-rules

Exit codes
----------
    0   Success.
    1   Generation failed (bad record, missing include file, ...).
    2   Usage or infrastructure failure (no mode, unreadable input).

Generated text goes to standard output only; diagnostics go to stderr.
Output already written when a later record fails is not retracted.
"""

from __future__ import annotations

import argparse
import logging
import sys
import textwrap
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence, TextIO

from vmgen import __version__
from vmgen.codegen import EMITTERS, iter_generate
from vmgen.config import DEFAULT_CONFIG, GeneratorConfig, load_config
from vmgen.errors import UsageError, VmgenError, VmgenErrorCodes
from vmgen.include import preprocess
from vmgen.rules import inline_tags
from vmgen.schema import DuplicatePolicy, InstructionRecord, load_records

_log = logging.getLogger("vmgen")
_handler: Optional[logging.Handler] = None

# Exit codes ----------------------------------------------------------------

EXIT_OK: int = 0
EXIT_ERROR: int = 1
EXIT_INFRA: int = 2

# Modes that are not record emitters.
MODE_INCLUDE = "pp-include"
MODE_LIST_RULES = "list-rules"


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the ``vmgen`` logger.

    Parameters
    ----------
    verbosity:
        0 → WARNING, 1 → INFO, 2+ → DEBUG.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    global _handler
    root = logging.getLogger("vmgen")
    root.setLevel(level)
    # One handler per process, bound to the current stderr.
    if _handler is not None:
        root.removeHandler(_handler)
    _handler = logging.StreamHandler(sys.stderr)
    _handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root.addHandler(_handler)


def _read_records(paths: Sequence[str]) -> Iterator[InstructionRecord]:
    """Chain the records of every file in *paths* (stdin when empty)."""
    if not paths:
        yield from load_records(sys.stdin, source="<stdin>")
        return
    for raw in paths:
        p = Path(raw)
        with open(p, "r", encoding="utf-8") as f:
            _log.debug("reading records from %s", p)
            yield from load_records(f, source=str(p))


def _write(chunks: Iterable[str], stream: TextIO) -> None:
    for chunk in chunks:
        stream.write(chunk)
        stream.flush()


# ===========================================================================
# Mode implementations
# ===========================================================================

def run_emitter(
    mode: str,
    paths: Sequence[str],
    config: GeneratorConfig,
    duplicates: DuplicatePolicy,
    stream: TextIO,
) -> int:
    """Stream one record emitter's artifact to *stream*."""
    _write(iter_generate(mode, _read_records(paths), config, duplicates), stream)
    return EXIT_OK


def run_include(paths: Sequence[str], stream: TextIO) -> int:
    """Preprocess the single source file in *paths*."""
    if len(paths) != 1:
        raise UsageError(
            f"--pp-include takes exactly one source file, got {len(paths)}"
        )
    _write(preprocess(paths[0]), stream)
    return EXIT_OK


def run_list_rules(config: GeneratorConfig, stream: TextIO) -> int:
    """Print each inline destructuring rule and the accessor fallback."""
    for tag, pattern in inline_tags().items():
        stream.write(f"{tag:<12} {pattern}\n")
    stream.write(f"{'<other>':<12} {config.accessor_prefix}<tag> v\n")
    return EXIT_OK


# ===========================================================================
# Argument parser construction
# ===========================================================================

def _build_parser() -> argparse.ArgumentParser:
    """Construct the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="vmgen",
        description=(
            "Generate VM instruction-set source fragments from YAML\n"
            "instruction records, or splice fragments into a template."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              vmgen --gen-vm instructions.yaml > vminstrs.gen.ml
              vmgen --gen-prims primitives.yaml > primitives.gen.ml
              vmgen --pp-include src/vm.cppo.ml > src/vm.ml
        """),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v info, -vv debug).",
    )

    modes = parser.add_argument_group("modes (exactly one)")
    group = modes.add_mutually_exclusive_group()
    for mode in sorted(EMITTERS):
        group.add_argument(
            f"--{mode}",
            dest="mode",
            action="store_const",
            const=mode,
            help=f"Emit {EMITTERS[mode].description}.",
        )
    group.add_argument(
        f"--{MODE_INCLUDE}",
        dest="mode",
        action="store_const",
        const=MODE_INCLUDE,
        help="Splice include directives of FILE and mark it generated.",
    )
    group.add_argument(
        f"--{MODE_LIST_RULES}",
        dest="mode",
        action="store_const",
        const=MODE_LIST_RULES,
        help="List the inline destructuring rules.",
    )

    parser.add_argument(
        "files",
        nargs="*",
        metavar="FILE",
        help="Record files (default: stdin), or the source file for --pp-include.",
    )
    parser.add_argument(
        "-c", "--config",
        metavar="FILE",
        default=None,
        help="YAML file overriding target-language names.",
    )
    parser.add_argument(
        "--duplicates",
        choices=[p.value for p in DuplicatePolicy],
        default=DuplicatePolicy.WARN.value,
        help="Handling of repeated inst/name values (default: warn).",
    )
    return parser


# ===========================================================================
# Main entry point
# ===========================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the vmgen CLI.

    Parameters
    ----------
    argv:
        Command-line arguments.  ``None`` → ``sys.argv[1:]``.

    Returns
    -------
    int
        Exit code (see module docstring for semantics).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)

    try:
        if args.mode is None:
            raise UsageError(
                "no generation mode selected",
                code=VmgenErrorCodes.NO_MODE,
            ).with_hint(
                "pass one of: "
                + ", ".join(f"--{m}" for m in sorted(EMITTERS) + [MODE_INCLUDE])
            )

        if args.mode == MODE_INCLUDE:
            return run_include(args.files, sys.stdout)

        config = load_config(args.config) if args.config else DEFAULT_CONFIG
        if args.mode == MODE_LIST_RULES:
            return run_list_rules(config, sys.stdout)
        return run_emitter(
            args.mode,
            args.files,
            config,
            DuplicatePolicy(args.duplicates),
            sys.stdout,
        )
    except UsageError as exc:
        _log.error("%s", exc)
        parser.print_usage(sys.stderr)
        return EXIT_INFRA
    except VmgenError as exc:
        _log.error("%s", exc)
        return EXIT_ERROR
    except OSError as exc:
        _log.error("%s: %s", getattr(exc, "filename", None) or "input", exc.strerror or exc)
        return EXIT_INFRA
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return 130


__all__: List[str] = ["main", "run_emitter", "run_include", "run_list_rules"]


if __name__ == "__main__":
    raise SystemExit(main())
