#!/usr/bin/env python3
"""brili/main.py — command-line driver for the Bril interpreter.

Usage examples
--------------
    # Run a JSON program from stdin, passing two arguments to @main
    bril2json < fib.bril | python -m brili 10 true

    # Run the text form directly from a file, with a dynamic instruction count
    python -m brili --text --file fib.bril -p 10

    # Machine-readable error report
    python -m brili --format json < crash.json

Exit codes
----------
    0   The program ran to completion.
    1   Engine failure (internal error, host stack exhausted).
    2   The Bril program raised an error (lookup, arity, type, memory, leak).
    3   The program could not be read or parsed.

The module doubles as ``python -m brili`` via the companion
``brili/__main__.py`` which simply calls :func:`main`.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import textwrap
from typing import Optional, Sequence, TextIO

from brili import __version__
from brili.config import InterpreterConfig
from brili.errors import BriliError, InternalError, ProgramFormatError
from brili.interpreter import run_program
from brili.loader import dump_program, loads
from brili.program import Program
from brili.text import format_program, parse_program
from brili.values import unbounded_int_digits

_log = logging.getLogger("brili")

# Exit codes ----------------------------------------------------------------

EXIT_OK: int = 0
EXIT_INTERNAL: int = 1
EXIT_PROGRAM_ERROR: int = 2
EXIT_INPUT: int = 3

DEFAULT_RECURSION_LIMIT: int = 10_000

_handler: Optional[logging.Handler] = None


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the root ``brili`` logger.

    Parameters
    ----------
    verbosity:
        0 → WARNING, 1 → INFO, 2+ → DEBUG.
    """
    global _handler

    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root = logging.getLogger("brili")
    if _handler is not None:
        root.removeHandler(_handler)
    root.setLevel(level)
    root.addHandler(handler)
    _handler = handler


def _read_program(path: Optional[str], text_form: bool) -> Program:
    """Load the program from *path* (or stdin) in the requested form."""
    try:
        if path is None or path == "-":
            source = sys.stdin.read()
        else:
            with open(path, encoding="utf-8") as fh:
                source = fh.read()
    except UnicodeDecodeError as exc:
        raise ProgramFormatError(f"input is not valid UTF-8 ({exc.reason})") from exc
    _log.debug("read %d byte(s) of %s input", len(source), "text" if text_form else "JSON")
    return parse_program(source) if text_form else loads(source)


def _emit_error(exc: BriliError, fmt: str, stream: TextIO) -> None:
    """Write *exc* to *stream* as a text line or a JSON record."""
    if fmt == "json":
        stream.write(json.dumps(exc.to_dict()) + "\n")
    else:
        stream.write(str(exc) + "\n")


# ===========================================================================
# Argument parser
# ===========================================================================

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="brili",
        description=(
            "brili — reference interpreter for the Bril intermediate language.\n\n"
            "Reads a program (JSON by default) and runs its @main function\n"
            "with the given arguments."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              bril2json < prog.bril | brili 5
              brili --text --file prog.bril -p 5 true
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
    parser.add_argument(
        "-p", "--profile",
        action="store_true",
        help="Print the dynamic instruction count to stderr.",
    )
    parser.add_argument(
        "-f", "--file",
        default=None,
        metavar="PATH",
        help="Read the program from PATH instead of stdin.",
    )
    parser.add_argument(
        "--text",
        action="store_true",
        help="The program is in Bril text form rather than JSON.",
    )
    parser.add_argument(
        "--emit",
        choices=("json", "text"),
        default=None,
        help="Print the parsed program in the given form instead of running it.",
    )
    parser.add_argument(
        "--format",
        choices=("text", "json"),
        default="text",
        help="Error report format (default: text).",
    )

    g = parser.add_argument_group("runtime tuning")
    g.add_argument(
        "--recursion-limit",
        type=int,
        default=DEFAULT_RECURSION_LIMIT,
        metavar="N",
        help=f"Host recursion limit for deep Bril call chains (default: {DEFAULT_RECURSION_LIMIT}).",
    )
    g.add_argument(
        "--no-leak-check",
        action="store_true",
        help="Do not report memory still allocated when @main returns.",
    )
    g.add_argument(
        "--no-recycle",
        action="store_true",
        help="Never reuse heap block identifiers.",
    )

    parser.add_argument(
        "args",
        nargs="*",
        metavar="ARG",
        help="Arguments for @main (integers or true/false).",
    )
    return parser


# ===========================================================================
# Entry point
# ===========================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the brili CLI.

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

    config = InterpreterConfig(
        check_leaks=not args.no_leak_check,
        recycle_block_ids=not args.no_recycle,
        profile=args.profile,
        recursion_limit=args.recursion_limit,
    )
    if config.recursion_limit is not None and config.recursion_limit >= 100:
        sys.setrecursionlimit(max(sys.getrecursionlimit(), config.recursion_limit))

    with unbounded_int_digits():
        return _run(args, config)


def _run(args: argparse.Namespace, config: InterpreterConfig) -> int:
    """Load, then emit or execute, the program named by *args*."""
    try:
        program = _read_program(args.file, args.text)
    except OSError as exc:
        _log.error("cannot read program: %s", exc)
        return EXIT_INPUT
    except ProgramFormatError as exc:
        _log.error("malformed program: %s", exc)
        return EXIT_INPUT

    if args.emit == "json":
        sys.stdout.write(json.dumps(dump_program(program), indent=2) + "\n")
        return EXIT_OK
    if args.emit == "text":
        sys.stdout.write(format_program(program))
        return EXIT_OK

    try:
        result = run_program(program, args.args, stdout=sys.stdout, config=config)
    except BriliError as exc:
        sys.stdout.flush()
        _emit_error(exc, args.format, sys.stderr)
        return EXIT_PROGRAM_ERROR
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return 130
    except RecursionError:
        _log.error("host stack exhausted; try a larger --recursion-limit")
        return EXIT_INTERNAL
    except InternalError as exc:
        _log.error("%s", exc, exc_info=True)
        return EXIT_INTERNAL

    sys.stdout.flush()
    if config.profile:
        sys.stderr.write(f"total_dyn_inst: {result.instructions_executed}\n")
    return EXIT_OK


# ---------------------------------------------------------------------------
# Module execution support
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    raise SystemExit(main())
