"""pinelint/validators/naming.py — Variable naming convention.

Flags assignments whose target is not camelCase.  A name is left alone
when it is a built-in parameter that must be snake_case, when it is
the name of an argument inside a call (the parameter-name validator owns
those), or when the Documentation Registry lists it for the enclosing
call.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Dict, Optional, Tuple

from pinelint.arguments import find_call_sites
from pinelint.errors import ErrorCategory, Severity
from pinelint.lexer import tokenize
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
    "SNAKE_CASE_BUILTIN_PARAMS",
    "is_camel_case",
    "validate_naming",
    "quick_validate_naming",
]

RULE = "naming_convention"

SNAKE_CASE_BUILTIN_PARAMS = frozenset({
    "table_id", "text_color", "text_size", "text_halign", "text_valign",
    "text_wrap", "text_font_family", "text_formatting",
    "border_color", "border_width", "border_style",
    "oca_name", "alert_message", "show_last", "force_overlay",
    "max_bars_back", "max_lines_count", "max_labels_count", "max_boxes_count",
})

_NAMESPACE_NAMES = frozenset({"ta", "math", "array", "str"})
_CALL_CONTEXT_HINTS = ("table.", "strategy.", "plot(", "input.")

_ASSIGNMENT_RE = re.compile(r"(\w+)\s*=(?!=)")
_CAMEL_RE = re.compile(r"^[a-z][a-zA-Z0-9]*$")
_OPEN_CALL_RE = re.compile(r"\w+\s*\([^)]*$")
_ARG_START_RE = re.compile(r"[,(]\s*$")
_ENCLOSING_CALL_RE = re.compile(r"([A-Za-z_][\w.]*)\s*\([^()]*$")


def is_camel_case(name: str) -> bool:
    return bool(_CAMEL_RE.match(name))


def _named_argument_index(source: str) -> Dict[Tuple[int, int], str]:
    """(line, column) of every argument name → the call it belongs to."""
    index: Dict[Tuple[int, int], str] = {}
    for site in find_call_sites(tokenize(source)):
        for arg in site.arguments.named():
            index[(arg.name.line, arg.name.column)] = site.name
    return index


def _in_call_context(before: str) -> bool:
    if "(" in before and ")" not in before:
        if any(hint in before for hint in _CALL_CONTEXT_HINTS):
            return True
    stripped = before.strip()
    return bool(_OPEN_CALL_RE.search(stripped) or _ARG_START_RE.search(stripped))


def _enclosing_call(before: str, named_in: Optional[str]) -> Optional[str]:
    if named_in is not None:
        return named_in
    match = _ENCLOSING_CALL_RE.search(before)
    return match.group(1) if match else None


@guarded("naming")
def validate_naming(source: str, context: ValidationContext) -> ValidationResult:
    started = time.perf_counter()
    result = ValidationResult()
    named_args = _named_argument_index(source)
    use_registry = context.registry_ready()
    if context.registry is not None and not use_registry:
        logger.warning("documentation registry not loaded; naming check uses static tables")

    for lineno, line in enumerate(source_lines(source), start=1):
        if is_comment_line(line) or "=" not in line:
            continue
        match = _ASSIGNMENT_RE.search(line)
        if match is None:
            continue
        name = match.group(1)
        column = match.start(1)
        before = line[:column]

        if name in SNAKE_CASE_BUILTIN_PARAMS:
            continue
        named_in = named_args.get((lineno, column))
        if use_registry:
            function = _enclosing_call(before, named_in)
            if function and context.registry.is_valid_parameter(function, name):
                continue
        if named_in is not None or _in_call_context(before):
            continue
        if is_camel_case(name) or name in _NAMESPACE_NAMES:
            continue

        result.add(ValidationViolation(
            line=lineno,
            column=column,
            rule=RULE,
            severity=Severity.SUGGESTION,
            category=ErrorCategory.STYLE.value,
            message="Variable should use camelCase naming convention",
            suggested_fix=f"Consider renaming '{name}' to follow camelCase",
        ))

    result.metrics = {
        "registry": "loaded" if use_registry else "fallback",
        "validationTimeMs": (time.perf_counter() - started) * 1000.0,
    }
    return result


def quick_validate_naming(source: str, registry=None) -> ValidationResult:
    return validate_naming(source, ValidationContext(registry=registry))
