#!/usr/bin/env python3
"""nullcheck/main.py - command-line entry point.

Usage examples
--------------
    # Check one resolved-tree dump, GCC-style output
    python -m nullcheck Widget.m.sexp

    # Several dumps, only classes matching a filter, JSON lines
    python -m nullcheck *.sexp --filter 'App*, !*Tests' --format json

    # Per-variable nullability trace
    python -m nullcheck Widget.m.sexp --debug -vv

Exit codes
----------
    0   No warnings (remarks do not count).
    1   One or more nullability warnings were reported.
    2   Infrastructure failure (unreadable or malformed dump, bad filter).

The module doubles as ``python -m nullcheck`` via the companion
``nullcheck/__main__.py`` which simply calls :func:`main`.
"""

from __future__ import annotations

import argparse
import logging
import sys
import textwrap
from pathlib import Path
from typing import Optional, Sequence, TextIO

from nullcheck import __version__
from nullcheck.config import OUTPUT_FORMATS, AnalysisConfig
from nullcheck.diagnostics import ViolationCollector
from nullcheck.driver import NullabilityAnalyzer
from nullcheck.errors import NullcheckError
from nullcheck.loader import load_file

_log = logging.getLogger("nullcheck")

# Exit codes ----------------------------------------------------------------

EXIT_OK: int = 0
EXIT_ERROR: int = 1
EXIT_INFRA: int = 2


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the ``nullcheck`` logger.

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

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root = logging.getLogger("nullcheck")
    root.setLevel(level)
    # Repeated main() calls in one process replace the previous handler.
    for old in list(root.handlers):
        if getattr(old, "_nullcheck_cli", False):
            root.removeHandler(old)
    handler._nullcheck_cli = True
    root.addHandler(handler)


def _open_output(dest: Optional[str]) -> TextIO:
    """*dest* ``None`` or ``"-"`` → ``sys.stdout``; otherwise open the path."""
    if dest is None or dest == "-":
        return sys.stdout
    p = Path(dest).expanduser().resolve()
    p.parent.mkdir(parents=True, exist_ok=True)
    return open(p, "w", encoding="utf-8")


def _emit(collector: ViolationCollector, fmt: str, stream: TextIO) -> None:
    if fmt == "json":
        text = collector.to_json_lines()
    elif fmt == "gcc":
        text = collector.to_gcc_format()
    else:
        text = "\n".join(
            [v.to_gcc_format() for v in collector] + [collector.summary()]
        )
    if text:
        stream.write(text + "\n")


# ===========================================================================
# Argument parser
# ===========================================================================

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nullcheck",
        description=(
            "Flow-sensitive nullability checker for Objective-C method bodies.\n\n"
            "Reads resolved syntax trees dumped as S-expressions and reports\n"
            "nullable values reaching non-null contracts."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              nullcheck Widget.m.sexp
              nullcheck *.sexp --filter 'App*, !*Tests' --format json
              nullcheck Widget.m.sexp --debug --infer-locals
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
        "dumps",
        nargs="+",
        metavar="DUMP",
        help="Resolved-tree dump file(s).",
    )
    parser.add_argument(
        "--filter",
        default="",
        metavar="PATTERNS",
        help="Comma-separated class-name globs; prefix with '!' to exclude.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Emit a 'Variable nullability' remark for every seeded variable.",
    )
    parser.add_argument(
        "--infer-locals",
        action="store_true",
        help="Let un-annotated locals take the nullability of their values.",
    )
    parser.add_argument(
        "--max-iterations",
        type=int,
        default=None,
        metavar="N",
        help="Bound for the --infer-locals fixpoint.",
    )
    parser.add_argument(
        "-f", "--format",
        choices=list(OUTPUT_FORMATS),
        default="gcc",
        help="Output format (default: gcc).",
    )
    parser.add_argument(
        "-o", "--output",
        default=None,
        metavar="FILE",
        help='Output file ("-" or omit for stdout).',
    )
    return parser


# ===========================================================================
# Main entry point
# ===========================================================================

def run(args: argparse.Namespace) -> int:
    """Load every dump, analyze it and emit the findings."""
    try:
        config = AnalysisConfig.from_args(args)
    except NullcheckError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA

    units = []
    for raw in args.dumps:
        _log.info("Loading dump file: %s", raw)
        try:
            units.append(load_file(raw))
        except NullcheckError as exc:
            _log.error("Failed to load %s: %s", raw, exc)
            return EXIT_INFRA

    collector = NullabilityAnalyzer(config).run_all(units)

    stream = _open_output(args.output)
    try:
        _emit(collector, config.output, stream)
    finally:
        if stream is not sys.stdout:
            stream.close()

    _log.info(
        "%d warning(s), %d remark(s)",
        collector.warning_count, collector.remark_count,
    )
    return EXIT_ERROR if collector.warning_count > 0 else EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the nullcheck CLI.

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
        return run(args)
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return 130
    except OSError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA


if __name__ == "__main__":
    raise SystemExit(main())
