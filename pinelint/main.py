#!/usr/bin/env python3
"""pinelint/main.py — CLI entry-point for pinelint.

Usage examples
--------------
    # Lint one or more scripts
    pinelint check strategy.pine indicator.pine

    # Machine-readable output, errors only
    pinelint check strategy.pine --format json --severity error

    # Use a custom constraint table and documentation catalog
    pinelint check strategy.pine --rules rules.json --catalog reference.json

    # Dump the AST and parse diagnostics
    pinelint parse strategy.pine --format json

    # Print the token stream
    pinelint tokens strategy.pine

    # Capabilities and registry state
    pinelint status

Exit codes
----------
    0   Success (no error-severity violations).
    1   One or more violations with severity ERROR were reported.
    2   Infrastructure failure (missing file, bad configuration, etc.).

The module doubles as ``python -m pinelint`` via ``pinelint/__main__.py``.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import textwrap
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, TextIO

from termcolor import colored

from pinelint.analyzer import ANALYZER_VERSION, Analyzer, parser_status
from pinelint.ast import to_dict
from pinelint.config import SEVERITY_FILTERS, AnalyzerConfig
from pinelint.errors import ConfigError, PineLintError
from pinelint.lexer import TokenType, tokenize
from pinelint.parser import parse_script
from pinelint.validators import ValidationViolation

_log = logging.getLogger("pinelint")

# Exit codes ----------------------------------------------------------------

EXIT_OK: int = 0
EXIT_ERROR: int = 1
EXIT_INFRA: int = 2


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the ``pinelint`` logger.

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
    root = logging.getLogger("pinelint")
    root.setLevel(level)
    for old in list(root.handlers):
        root.removeHandler(old)
    root.addHandler(handler)


def _resolve_path(raw: str, label: str = "file") -> Path:
    """Resolve *raw* to an absolute ``Path``, raising on missing files."""
    p = Path(raw).expanduser().resolve()
    if not p.exists():
        _log.error("%s not found: %s", label, p)
        raise SystemExit(EXIT_INFRA)
    return p


def _read_source(raw: str) -> str:
    return _resolve_path(raw, "source file").read_text(encoding="utf-8")


def _paint(text: str, color: Optional[str], use_color: bool) -> str:
    if not use_color or color is None:
        return text
    return colored(text, color)


def _emit_diagnostics(
    violations: List[ValidationViolation],
    fmt: str,
    stream: TextIO,
    filename: str = "<source>",
    use_color: bool = False,
) -> int:
    """Write *violations* to *stream* in the chosen format.

    Returns the count of ERROR-severity violations.
    """
    error_count = 0
    for v in violations:
        if v.is_error:
            error_count += 1

        if fmt == "json":
            record = v.to_dict()
            record["file"] = filename
            stream.write(json.dumps(record) + "\n")
        elif fmt == "gcc":
            stream.write(v.to_gcc_format(filename) + "\n")
        else:
            sev = _paint(v.severity.value, v.severity.color, use_color)
            stream.write(f"{filename}:{v.line}:{v.column}: {sev}: {v.message} [{v.rule}]\n")
            if v.suggested_fix:
                stream.write(f"    fix: {v.suggested_fix}\n")

    if fmt == "summary":
        stream.write(f"\n--- {len(violations)} violation(s), "
                     f"{error_count} error(s) ---\n")
    return error_count


def _load_config(args: argparse.Namespace) -> AnalyzerConfig:
    config = AnalyzerConfig.from_file(args.config) if args.config else AnalyzerConfig()
    config = config.merged(
        rules_path=args.rules,
        catalog_path=args.catalog,
        severity_filter=args.severity,
    )
    for warning in config.validate():
        _log.warning("config: %s", warning)
    return config


# ===========================================================================
# Sub-command implementations
# ===========================================================================

# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------

def cmd_check(args: argparse.Namespace) -> int:
    """Run the full validator battery over every input file."""
    try:
        config = _load_config(args)
        analyzer = Analyzer.from_config(config)
    except ConfigError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA

    asyncio.run(analyzer.startup())

    use_color = not args.no_color and args.format == "summary" and sys.stdout.isatty()
    errors = 0
    for raw in args.files:
        source = _read_source(raw)
        result = analyzer.analyze(source)
        if args.format == "json" and args.aggregate:
            payload: Dict[str, Any] = result.to_dict()
            payload["file"] = raw
            sys.stdout.write(json.dumps(payload, indent=2) + "\n")
            errors += result.error_count
        else:
            errors += _emit_diagnostics(
                result.violations, args.format, sys.stdout, raw, use_color,
            )
        for message in result.errors:
            _log.warning("%s: %s", raw, message)

    return EXIT_ERROR if errors else EXIT_OK


# ---------------------------------------------------------------------------
# parse (debugging aid)
# ---------------------------------------------------------------------------

def cmd_parse(args: argparse.Namespace) -> int:
    """Parse a script and print its AST plus parse diagnostics."""
    source = _read_source(args.source_file)
    result = parse_script(source)

    if args.format == "json":
        payload = {
            "ast": to_dict(result.ast),
            "errors": [e.to_dict() for e in result.errors],
            "warnings": [w.to_dict() for w in result.warnings],
            "metrics": result.metrics.to_dict(),
        }
        sys.stdout.write(json.dumps(payload, indent=2) + "\n")
    else:
        meta = result.ast.metadata
        sys.stdout.write(
            f"version={meta.version} script_type={meta.script_type} "
            f"statements={len(result.ast.statements)} "
            f"declarations={len(result.ast.declarations)} "
            f"nodes={result.metrics.node_count} depth={result.metrics.max_depth}\n"
        )

    for diag in (*result.errors, *result.warnings):
        sys.stderr.write(f"{args.source_file}:{diag}\n")
    return EXIT_ERROR if result.errors else EXIT_OK


# ---------------------------------------------------------------------------
# tokens
# ---------------------------------------------------------------------------

def cmd_tokens(args: argparse.Namespace) -> int:
    """Print one token per line: ``line:col TYPE 'value'``."""
    source = _read_source(args.source_file)
    bad = 0
    for tok in tokenize(source):
        if tok.type is TokenType.ERROR:
            bad += 1
        sys.stdout.write(f"{tok.line}:{tok.column}\t{tok.type.value:<11}\t{tok.value!r}\n")
    return EXIT_ERROR if bad else EXIT_OK


# ---------------------------------------------------------------------------
# status
# ---------------------------------------------------------------------------

def cmd_status(args: argparse.Namespace) -> int:
    """Print capabilities and, with ``--catalog``, the registry state."""
    try:
        config = AnalyzerConfig(catalog_path=args.catalog)
        analyzer = Analyzer.from_config(config)
    except ConfigError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA
    asyncio.run(analyzer.startup())
    sys.stdout.write(json.dumps(parser_status(analyzer), indent=2) + "\n")
    return EXIT_OK


# ===========================================================================
# Argument parser construction
# ===========================================================================

def _build_parser() -> argparse.ArgumentParser:
    """Construct the full CLI argument parser with subcommands."""

    parser = argparse.ArgumentParser(
        prog="pinelint",
        description="Static analysis for Pine Script sources.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              pinelint check strategy.pine
              pinelint check *.pine --format gcc --severity error
              pinelint parse strategy.pine --format json
        """),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {ANALYZER_VERSION}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v info, -vv debug).",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        metavar="<command>",
    )

    # --- check -------------------------------------------------------------
    p_check = subparsers.add_parser(
        "check",
        help="Run all validators over one or more scripts.",
    )
    p_check.add_argument("files", nargs="+", metavar="FILE", help="Pine Script source file(s).")
    p_check.add_argument(
        "--format",
        choices=["summary", "gcc", "json"],
        default="summary",
        help="Output format (default: summary).",
    )
    p_check.add_argument(
        "--aggregate",
        action="store_true",
        help="With --format json, print one full analysis object per file.",
    )
    p_check.add_argument("--rules", metavar="RULES.json", help="Constraint rule table.")
    p_check.add_argument("--catalog", metavar="CATALOG.json", help="Documentation catalog.")
    p_check.add_argument(
        "--severity",
        choices=list(SEVERITY_FILTERS),
        default=None,
        help="Only report violations of this severity (default: all).",
    )
    p_check.add_argument("--config", metavar="CFG.json", help="Analyzer configuration file.")
    p_check.add_argument("--no-color", action="store_true", help="Disable coloured output.")
    p_check.set_defaults(func=cmd_check)

    # --- parse -------------------------------------------------------------
    p_parse = subparsers.add_parser(
        "parse",
        help="Parse a script and dump its AST.",
    )
    p_parse.add_argument("source_file", metavar="FILE")
    p_parse.add_argument(
        "--format",
        choices=["json", "summary"],
        default="json",
        help="Output format (default: json).",
    )
    p_parse.set_defaults(func=cmd_parse)

    # --- tokens ------------------------------------------------------------
    p_tokens = subparsers.add_parser("tokens", help="Print the token stream.")
    p_tokens.add_argument("source_file", metavar="FILE")
    p_tokens.set_defaults(func=cmd_tokens)

    # --- status ------------------------------------------------------------
    p_status = subparsers.add_parser("status", help="Show capabilities and registry state.")
    p_status.add_argument("--catalog", metavar="CATALOG.json", help="Documentation catalog.")
    p_status.set_defaults(func=cmd_status)

    return parser


# ===========================================================================
# Main entry point
# ===========================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the pinelint CLI.

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

    if not hasattr(args, "func"):
        parser.print_help(sys.stderr)
        return EXIT_INFRA

    try:
        return args.func(args)
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return 130
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else EXIT_INFRA
    except PineLintError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA
    except Exception as exc:
        _log.error("Unhandled exception: %s", exc, exc_info=True)
        return EXIT_INFRA


if __name__ == "__main__":
    raise SystemExit(main())
