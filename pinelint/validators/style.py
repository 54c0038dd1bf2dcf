"""
pinelint/validators/style.py — Style guide and language-level checks.

Line-based checks (comment lines are always skipped):

  operator_spacing             ``a+b`` instead of ``a + b``
  plot_title                   ``plot(...)`` without ``title=``
  line_length                  line longer than the configured limit
  INVALID_LINE_CONTINUATION    ternary ``?`` at end of line, or a string
                               line ending in a backslash

Whole-source checks:

  version_declaration          no ``//@version=`` directive
  script_declaration           no ``indicator(`` / ``strategy(`` / ``library(``
  INVALID_OBJECT_NAME_BUILTIN  a built-in namespace used as a variable
"""

from __future__ import annotations

import logging
import re
import time

from pinelint.errors import ErrorCategory, Severity
from pinelint.lexer import TokenType, tokenize
from pinelint.validators.base import (
    ValidationContext,
    ValidationResult,
    ValidationViolation,
    guarded,
    is_comment_line,
    source_lines,
)

logger = logging.getLogger(__name__)

__all__ = [
    "BUILTIN_NAMESPACES",
    "validate_style",
    "validate_declarations",
    "validate_builtin_namespace",
    "validate_line_continuation",
    "quick_validate_style",
    "quick_validate_builtin_namespace",
    "quick_validate_line_continuation",
]

BUILTIN_NAMESPACES = frozenset({
    "position", "strategy", "ta", "math", "array", "color", "string", "map",
    "matrix", "request", "input", "plot", "plotshape", "plotbar",
    "plotcandle", "bgcolor", "fill", "line", "label", "box", "table",
    "polyline", "str", "alert", "barcolor", "runtime", "timeframe",
    "ticker", "hline", "indicator", "library", "method", "type", "export",
    "import", "time", "barstate", "session", "syminfo", "location",
    "shape", "size", "scale", "extend",
})

_OPERATOR_RE = re.compile(r"\w[+\-*/=]\w")
_PLOT_TITLE_RE = re.compile(r"\btitle\s*=")
_DECLARATION_RE = re.compile(r"\b(?:indicator|strategy|library)\s*\(")
_TERNARY_END_RE = re.compile(r"\?\s*(?://.*)?$")
_STRING_CONTINUATION_RE = re.compile(r"([\"'`]).*\\$")

_STYLE = ErrorCategory.STYLE.value
_SYNTAX = ErrorCategory.SYNTAX.value


def _in_string(line: str, position: int) -> bool:
    """True if *position* lies inside a quoted string on *line*."""
    quote = None
    i = 0
    while i < min(position, len(line)):
        ch = line[i]
        if quote is None:
            if ch in "\"'`":
                quote = ch
        elif ch == "\\":
            i += 1
        elif ch == quote:
            quote = None
        i += 1
    return quote is not None


def _in_comment(line: str, position: int) -> bool:
    start = 0
    while True:
        idx = line.find("//", start)
        if idx == -1 or idx >= position:
            return False
        if not _in_string(line, idx):
            return True
        start = idx + 2


# ═══════════════════════════════════════════════════════════════════════════════
# STYLE GUIDE
# ═══════════════════════════════════════════════════════════════════════════════

@guarded("style")
def validate_style(source: str, context: ValidationContext) -> ValidationResult:
    started = time.perf_counter()
    limit = context.config.max_line_length
    result = ValidationResult()

    for lineno, line in enumerate(source_lines(source), start=1):
        if is_comment_line(line):
            continue
        trimmed = line.strip()
        indent = len(line) - len(line.lstrip())

        match = _OPERATOR_RE.search(trimmed)
        if match:
            result.add(ValidationViolation(
                line=lineno,
                column=indent + match.start(),
                rule="operator_spacing",
                severity=Severity.SUGGESTION,
                category=_STYLE,
                message="Missing spaces around operators",
                suggested_fix='Add spaces around operators (e.g., "a + b" instead of "a+b")',
            ))

        plot_at = trimmed.find("plot(")
        if plot_at != -1 and not _PLOT_TITLE_RE.search(trimmed):
            result.add(ValidationViolation(
                line=lineno,
                column=indent + plot_at,
                rule="plot_title",
                severity=Severity.SUGGESTION,
                category=_STYLE,
                message="Consider adding a title to plot() for better readability",
                suggested_fix='Add title parameter: plot(value, title="My Plot")',
            ))

        if len(trimmed) > limit:
            result.add(ValidationViolation(
                line=lineno,
                column=limit,
                rule="line_length",
                severity=Severity.SUGGESTION,
                category=_STYLE,
                message=f"Line exceeds recommended length of {limit} characters",
                suggested_fix="Consider breaking long lines using line continuation",
            ))

    result.metrics = {"validationTimeMs": (time.perf_counter() - started) * 1000.0}
    return result


def quick_validate_style(source: str) -> ValidationResult:
    return validate_style(source)


# ═══════════════════════════════════════════════════════════════════════════════
# DECLARATIONS
# ═══════════════════════════════════════════════════════════════════════════════

@guarded("declarations")
def validate_declarations(source: str, context: ValidationContext) -> ValidationResult:
    result = ValidationResult()
    if "//@version=" not in source:
        result.add(ValidationViolation(
            line=1,
            column=0,
            rule="version_declaration",
            severity=Severity.ERROR,
            category=ErrorCategory.LANGUAGE.value,
            message="Missing PineScript version declaration (e.g., //@version=6)",
            suggested_fix="Add //@version=6 at the top of the script",
        ))

    declared = any(
        _DECLARATION_RE.search(line)
        for line in source_lines(source)
        if not is_comment_line(line)
    )
    if not declared:
        result.add(ValidationViolation(
            line=1,
            column=0,
            rule="script_declaration",
            severity=Severity.ERROR,
            category=ErrorCategory.LANGUAGE.value,
            message="Script must include either indicator() or strategy() declaration",
            suggested_fix='Add indicator("My Script") or strategy("My Strategy")',
        ))
    return result


# ═══════════════════════════════════════════════════════════════════════════════
# BUILT-IN NAMESPACE NAMES
# ═══════════════════════════════════════════════════════════════════════════════

@guarded("builtin namespace")
def validate_builtin_namespace(source: str, context: ValidationContext) -> ValidationResult:
    """Flag ``color = …`` style assignments outside argument lists.

    Named arguments such as ``plot(x, color = color.red)`` are parameters,
    not variables, and are never reported.
    """
    started = time.perf_counter()
    result = ValidationResult()
    tokens = tokenize(source)
    depth = 0

    for i, tok in enumerate(tokens[:-1]):
        if tok.type in (TokenType.LPAREN, TokenType.LBRACKET):
            depth += 1
            continue
        if tok.type in (TokenType.RPAREN, TokenType.RBRACKET):
            depth = max(0, depth - 1)
            continue
        if depth or not tok.is_name() or tok.value not in BUILTIN_NAMESPACES:
            continue
        nxt = tokens[i + 1]
        if nxt.type is not TokenType.ASSIGN or nxt.value != "=":
            continue
        if i > 0 and tokens[i - 1].type is TokenType.DOT:
            continue

        name = tok.value
        result.add(ValidationViolation(
            line=tok.line,
            column=tok.column,
            rule="INVALID_OBJECT_NAME_BUILTIN",
            severity=Severity.ERROR,
            category=ErrorCategory.NAMING.value,
            message=f"Invalid object name: {name}. Namespaces of built-ins cannot be used.",
            suggested_fix=(
                f"Use a different variable name instead of '{name}', such as "
                f"'my{name[0].upper()}{name[1:]}', '{name}State', or '{name}Value'"
            ),
            metadata={"conflictingNamespace": name},
        ))

    result.metrics = {"validationTimeMs": (time.perf_counter() - started) * 1000.0}
    return result


def quick_validate_builtin_namespace(source: str) -> ValidationResult:
    return validate_builtin_namespace(source)


# ═══════════════════════════════════════════════════════════════════════════════
# LINE CONTINUATION
# ═══════════════════════════════════════════════════════════════════════════════

@guarded("line continuation")
def validate_line_continuation(source: str, context: ValidationContext) -> ValidationResult:
    started = time.perf_counter()
    result = ValidationResult()

    for lineno, line in enumerate(source_lines(source), start=1):
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("//"):
            continue

        match = _TERNARY_END_RE.search(line)
        if match and not _in_string(line, match.start()) and not _in_comment(line, match.start()):
            result.add(ValidationViolation(
                line=lineno,
                column=match.start(),
                rule="INVALID_LINE_CONTINUATION",
                severity=Severity.ERROR,
                category=_SYNTAX,
                message=(
                    "Syntax error at input 'end of line without line continuation'. "
                    "ternary operators (?) must be properly formatted without line "
                    "breaks at the condition operator."
                ),
                suggested_fix=(
                    "Keep ternary operators on a single line or use proper line continuation"
                ),
                metadata={"issue": "ternary_line_break"},
            ))

        if _STRING_CONTINUATION_RE.search(line):
            result.add(ValidationViolation(
                line=lineno,
                column=line.rfind("\\"),
                rule="INVALID_LINE_CONTINUATION",
                severity=Severity.ERROR,
                category=_SYNTAX,
                message=(
                    "Invalid line continuation within string literal. "
                    "Line continuation is not allowed inside strings."
                ),
                suggested_fix=(
                    "Remove line continuation from string literal or use string concatenation"
                ),
                metadata={"issue": "string_literal_continuation"},
            ))

    result.metrics = {"validationTimeMs": (time.perf_counter() - started) * 1000.0}
    return result


def quick_validate_line_continuation(source: str) -> ValidationResult:
    return validate_line_continuation(source)
