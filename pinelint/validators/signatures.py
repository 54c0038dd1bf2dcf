"""
pinelint/validators/signatures.py — Named-argument checks.

For every named argument of every call:

  1. a deprecated name listed in ``DEPRECATED_PARAMETERS`` for that
     function is reported as ``DEPRECATED_PARAMETER_NAME`` and nothing
     else is checked for that argument;
  2. otherwise a camelCase / PascalCase / ALL_CAPS / single-character
     name is reported as ``INVALID_PARAMETER_NAMING_CONVENTION`` unless
     it is a known-good parameter name, the Documentation Registry lists
     it for the function, or (registry unavailable) the static fallback
     table does.

Argument boundaries come from the shared token scanner, so strings,
nesting and multi-line calls are handled exactly as the parser sees
them.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional

from pinelint.arguments import CallSite, find_call_sites
from pinelint.errors import ErrorCategory, Severity
from pinelint.lexer import tokenize
from pinelint.validators.base import (
    ValidationContext,
    ValidationResult,
    ValidationViolation,
    guarded,
)

logger = logging.getLogger(__name__)

__all__ = [
    "DEPRECATED_PARAMETERS",
    "SINGLE_WORD_PARAMS",
    "SNAKE_CASE_PARAMS",
    "HIDDEN_PARAMS",
    "LEGACY_BUILTIN_PARAMS",
    "NamingIssue",
    "detect_naming_issue",
    "is_known_valid_parameter",
    "validate_function_signatures",
    "quick_validate_function_signatures",
]

DEPRECATED_RULE = "DEPRECATED_PARAMETER_NAME"
NAMING_RULE = "INVALID_PARAMETER_NAMING_CONVENTION"

_TEXT_STYLE_RENAMES = {
    "textColor": "text_color",
    "textSize": "text_size",
    "textHalign": "text_halign",
    "textValign": "text_valign",
}

DEPRECATED_PARAMETERS: Dict[str, Dict[str, str]] = {
    "table.cell": dict(_TEXT_STYLE_RENAMES),
    "box.new": dict(_TEXT_STYLE_RENAMES),
    "label.new": {
        "textColor": "text_color",
        "textSize": "text_size",
    },
}

SINGLE_WORD_PARAMS = frozenset({
    "defval", "title", "tooltip", "inline", "group", "confirm", "display",
    "active", "series", "color", "style", "offset", "precision", "format",
    "join", "linewidth", "trackprice", "histbase", "editable", "overlay",
    "bgcolor", "width", "height", "source", "length", "when", "comment",
    "id", "direction", "qty", "limit", "stop", "xloc", "yloc", "size",
    "columns", "rows", "position",
})

SNAKE_CASE_PARAMS = frozenset({
    "text_color", "text_size", "text_halign", "text_valign", "text_wrap",
    "text_font_family", "text_formatting", "table_id", "column", "row",
    "border_color", "border_width", "border_style", "oca_name",
    "alert_message", "show_last", "force_overlay", "max_bars_back",
    "max_lines_count", "max_labels_count", "max_boxes_count",
})

HIDDEN_PARAMS = frozenset({"minval", "maxval", "step", "options"})

# Used only when the registry is not loaded.
LEGACY_BUILTIN_PARAMS: Dict[str, FrozenSet[str]] = {
    "table.cell": frozenset({
        "table_id", "column", "row", "text", "text_color", "text_size",
        "text_halign", "text_valign", "text_wrap", "text_font_family",
    }),
    "strategy.entry": frozenset({
        "id", "direction", "qty", "limit", "stop", "oca_name", "oca_type",
        "comment", "alert_message", "disable_alert",
    }),
}

_CAMEL_RE = re.compile(r"^[a-z][a-zA-Z0-9]*[A-Z]")
_PASCAL_RE = re.compile(r"^[A-Z][a-zA-Z0-9]*")
_ALL_CAPS_RE = re.compile(r"^[A-Z][A-Z0-9_]*$")
_UPPER_RE = re.compile(r"([A-Z])")


@dataclass(frozen=True, slots=True)
class NamingIssue:
    detected: str
    expected: str
    suggestion: str


def _is_all_caps(name: str) -> bool:
    return len(name) > 1 and bool(_ALL_CAPS_RE.match(name))


def detect_naming_issue(name: str) -> Optional[NamingIssue]:
    if len(name) == 1:
        return NamingIssue("single character", "descriptive parameter name", f"{name}_value")
    if _CAMEL_RE.match(name):
        return NamingIssue(
            "camelCase", "snake_case or single word",
            _UPPER_RE.sub(r"_\1", name).lower(),
        )
    if _PASCAL_RE.match(name) and not _is_all_caps(name):
        return NamingIssue(
            "PascalCase", "snake_case or single word",
            name[0].lower() + _UPPER_RE.sub(r"_\1", name[1:]).lower(),
        )
    if _is_all_caps(name):
        return NamingIssue("ALL_CAPS", "snake_case or single word", name.lower())
    return None


def is_known_valid_parameter(name: str) -> bool:
    return name in SINGLE_WORD_PARAMS or name in SNAKE_CASE_PARAMS or name in HIDDEN_PARAMS


def _is_builtin_parameter(function: str, name: str, context: ValidationContext) -> bool:
    if context.registry_ready() and context.registry.is_valid_parameter(function, name):
        return True
    if name in SNAKE_CASE_PARAMS:
        return True
    legacy = LEGACY_BUILTIN_PARAMS.get(function)
    return name in legacy if legacy is not None else False


def _check_site(site: CallSite, context: ValidationContext, result: ValidationResult) -> None:
    function = site.name
    line = site.location.line
    column = site.location.column

    for arg in site.arguments.named():
        param = arg.name.value
        replacement = DEPRECATED_PARAMETERS.get(function, {}).get(param)
        if replacement is not None:
            result.add(ValidationViolation(
                line=line,
                column=column,
                rule=DEPRECATED_RULE,
                severity=Severity.ERROR,
                category=ErrorCategory.PARAMETER.value,
                message=(
                    f'The "{function}" function does not have an argument with '
                    f'the name "{param}". Use "{replacement}" instead.'
                ),
                suggested_fix=f'Replace "{param}" with "{replacement}"',
                metadata={
                    "functionName": function,
                    "parameterName": param,
                    "correctParameterName": replacement,
                },
            ))
            continue

        if is_known_valid_parameter(param) or _is_builtin_parameter(function, param, context):
            continue
        issue = detect_naming_issue(param)
        if issue is None:
            continue
        result.add(ValidationViolation(
            line=line,
            column=column,
            rule=NAMING_RULE,
            severity=Severity.ERROR,
            category=ErrorCategory.PARAMETER.value,
            message=(
                f'Parameter "{param}" in "{function}" uses {issue.detected} naming. '
                f"Pine Script function parameters should use {issue.expected}."
            ),
            suggested_fix=f'Consider using "{issue.suggestion}" instead of "{param}"',
            metadata={
                "functionName": function,
                "parameterName": param,
                "suggestedParameterName": issue.suggestion,
                "detected": issue.detected,
                "expected": issue.expected,
            },
        ))


@guarded(
    "parameter naming",
    message="Parameter naming validation failed: {error}",
    suggested_fix="Check source code syntax",
)
def validate_function_signatures(source: str, context: ValidationContext) -> ValidationResult:
    started = time.perf_counter()
    result = ValidationResult()
    if context.registry is not None and not context.registry.is_loaded():
        logger.warning("documentation registry not loaded; using fallback parameter tables")
    elif context.registry is None:
        logger.debug("no documentation registry; using fallback parameter tables")

    calls = 0
    for site in find_call_sites(tokenize(source)):
        if not site.arguments.named():
            continue
        calls += 1
        _check_site(site, context, result)

    result.metrics = {
        "functionsWithNamedArguments": calls,
        "registry": "loaded" if context.registry_ready() else "fallback",
        "validationTimeMs": (time.perf_counter() - started) * 1000.0,
    }
    return result


def quick_validate_function_signatures(source: str, registry=None) -> ValidationResult:
    return validate_function_signatures(source, ValidationContext(registry=registry))
