"""
pinelint/validators/constraints.py
══════════════════════════════════

Rule-table driven parameter constraints.

A rule table has the shape::

    {"functionValidationRules": {
        "fun_indicator": {"argumentConstraints": {
            "precision": {"validation_constraints": {
                "type": "integer", "min": 0, "max": 8,
                "errorCode": "INVALID_PRECISION",
                "errorMessage": "... got {value}. (INVALID_PRECISION)",
                "severity": "error", "category": "parameter_validation"}}}}}}

Supported constraints are ``maxLength`` (string values only), ``min``,
``max`` and ``type`` (``integer`` or ``number``).  Messages are templates
with ``{placeholder}`` substitution.

The focused quick validators below each carry their own small table;
``DEFAULT_RULES`` is their union and is what ``analyze()`` uses when the
caller supplies no rules.
"""

from __future__ import annotations

import copy
import json
import logging
import math
import re
import time
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from pinelint.errors import (
    ConfigError,
    ErrorCategory,
    PineErrorCodes,
    RulesNotLoadedError,
    Severity,
)
from pinelint.validators.base import (
    ValidationContext,
    ValidationResult,
    ValidationViolation,
    guarded,
)

logger = logging.getLogger(__name__)

__all__ = [
    "FUNCTION_RULE_KEYS",
    "SHORTTITLE_RULES",
    "PRECISION_RULES",
    "MAX_BARS_BACK_RULES",
    "MAX_LINES_COUNT_RULES",
    "MAX_LABELS_COUNT_RULES",
    "MAX_BOXES_COUNT_RULES",
    "DRAWING_OBJECT_COUNT_RULES",
    "DEFAULT_RULES",
    "format_message",
    "merge_rules",
    "read_validation_rules",
    "load_validation_rules",
    "reset_validation_rules",
    "validate_parameters",
    "validate_constraints",
    "quick_validate_shorttitle",
    "quick_validate_precision",
    "quick_validate_max_bars_back",
    "quick_validate_max_lines_count",
    "quick_validate_max_labels_count",
    "quick_validate_max_boxes_count",
    "quick_validate_drawing_object_counts",
]

FUNCTION_RULE_KEYS = {
    "indicator": "fun_indicator",
    "strategy": "fun_strategy",
}

_DECLARATION_KEYS = ("fun_indicator", "fun_strategy")
_PLACEHOLDER = re.compile(r"\{(\w+)\}")


# ═══════════════════════════════════════════════════════════════════════════════
# RULE TABLES
# ═══════════════════════════════════════════════════════════════════════════════

def _constraint(code: str, message: str, **limits: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = dict(limits)
    body.update({
        "errorCode": code,
        "errorMessage": message,
        "severity": Severity.ERROR.value,
        "category": ErrorCategory.PARAMETER.value,
    })
    return {"validation_constraints": body}


def _range_rule(param: str, low: int, high: int, code: str) -> Dict[str, Any]:
    message = (
        f"Parameter {param} must be between {low} and {high} (inclusive), "
        f"got {{value}}. ({code})"
    )
    return _constraint(code, message, type="integer", min=low, max=high)


def _declaration_table(params: Mapping[str, Dict[str, Any]]) -> Dict[str, Any]:
    """Apply the same argument constraints to both declaration built-ins."""
    return {
        "functionValidationRules": {
            key: {"argumentConstraints": copy.deepcopy(dict(params))}
            for key in _DECLARATION_KEYS
        }
    }


_SHORTTITLE = _constraint(
    "SHORT_TITLE_TOO_LONG",
    "The shorttitle is too long ({length} characters). "
    "It should be 10 characters or less.(SHORT_TITLE_TOO_LONG)",
    maxLength=10,
)

# Positional slot 1 is the shorttitle of both declarations.
SHORTTITLE_RULES = _declaration_table({"shorttitle": _SHORTTITLE, "_1": _SHORTTITLE})
PRECISION_RULES = _declaration_table({
    "precision": _range_rule("precision", 0, 8, "INVALID_PRECISION"),
})
MAX_BARS_BACK_RULES = _declaration_table({
    "max_bars_back": _range_rule("max_bars_back", 1, 5000, "INVALID_MAX_BARS_BACK"),
})
MAX_LINES_COUNT_RULES = _declaration_table({
    "max_lines_count": _range_rule("max_lines_count", 1, 500, "INVALID_MAX_LINES_COUNT"),
})
MAX_LABELS_COUNT_RULES = _declaration_table({
    "max_labels_count": _range_rule("max_labels_count", 1, 500, "INVALID_MAX_LABELS_COUNT"),
})
MAX_BOXES_COUNT_RULES = _declaration_table({
    "max_boxes_count": _range_rule("max_boxes_count", 1, 500, "INVALID_MAX_BOXES_COUNT"),
})


def merge_rules(*tables: Mapping[str, Any]) -> Dict[str, Any]:
    """Union of rule tables; later tables win on the same parameter."""
    merged: Dict[str, Any] = {"functionValidationRules": {}}
    functions = merged["functionValidationRules"]
    for table in tables:
        for key, body in table.get("functionValidationRules", {}).items():
            target = functions.setdefault(key, {"argumentConstraints": {}})
            target["argumentConstraints"].update(
                copy.deepcopy(body.get("argumentConstraints", {}))
            )
    return merged


DRAWING_OBJECT_COUNT_RULES = merge_rules(
    MAX_LINES_COUNT_RULES, MAX_LABELS_COUNT_RULES, MAX_BOXES_COUNT_RULES,
)

DEFAULT_RULES = merge_rules(
    SHORTTITLE_RULES,
    PRECISION_RULES,
    MAX_BARS_BACK_RULES,
    DRAWING_OBJECT_COUNT_RULES,
)


# ═══════════════════════════════════════════════════════════════════════════════
# RULE LOADING
# ═══════════════════════════════════════════════════════════════════════════════

_loaded_rules: Optional[Dict[str, Any]] = None


def read_validation_rules(rules: Union[Mapping[str, Any], str, Path]) -> Dict[str, Any]:
    """Return a private copy of a rule table given as a mapping or JSON path."""
    if isinstance(rules, (str, Path)):
        try:
            data = json.loads(Path(rules).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigError(f"cannot load validation rules from {rules}: {exc}") from exc
    else:
        data = rules
    if not isinstance(data, Mapping) or "functionValidationRules" not in data:
        raise ConfigError("validation rules must contain 'functionValidationRules'")
    return copy.deepcopy(dict(data))


def load_validation_rules(rules: Union[Mapping[str, Any], str, Path]) -> Dict[str, Any]:
    """Install the rule table used when ``validate_parameters`` gets none."""
    global _loaded_rules
    _loaded_rules = read_validation_rules(rules)
    logger.info(
        "loaded validation rules for %d functions",
        len(_loaded_rules["functionValidationRules"]),
    )
    return _loaded_rules


def reset_validation_rules() -> None:
    global _loaded_rules
    _loaded_rules = None


# ═══════════════════════════════════════════════════════════════════════════════
# CONSTRAINT CHECKS
# ═══════════════════════════════════════════════════════════════════════════════

def format_message(template: Optional[str], values: Mapping[str, Any]) -> str:
    """Substitute every known ``{name}``; unknown placeholders stay as written."""
    if not template:
        return "Validation error"

    def substitute(match: "re.Match[str]") -> str:
        key = match.group(1)
        if key in values and values[key] is not None:
            return str(values[key])
        return match.group(0)

    return _PLACEHOLDER.sub(substitute, template)


def _as_number(value: Any) -> float:
    if isinstance(value, (bool, int, float)):
        return float(value)
    if isinstance(value, str) and value.strip():
        try:
            return float(value)
        except ValueError:
            return math.nan
    return math.nan


def _display(number: float) -> Union[int, float]:
    return int(number) if number.is_integer() else number


def _check_parameter(
    call: Any,
    param: str,
    value: Any,
    constraints: Mapping[str, Any],
) -> List[ValidationViolation]:
    out: List[ValidationViolation] = []
    severity = Severity.parse(constraints.get("severity", Severity.ERROR.value))
    category = constraints.get("category", ErrorCategory.PARAMETER.value)
    code = constraints.get("errorCode")
    template = constraints.get("errorMessage")
    base_meta = {"functionName": call.full_name, "parameterName": param}

    def emit(rule: str, message: str, **meta: Any) -> None:
        out.append(ValidationViolation(
            line=call.location.line,
            column=call.location.column,
            rule=rule,
            severity=severity,
            category=category,
            message=message,
            metadata={**base_meta, **meta},
        ))

    max_length = constraints.get("maxLength")
    text = call.string_text(param)
    if max_length and text is not None and len(text) > max_length:
        emit(
            code or PineErrorCodes.STRING_TOO_LONG.code,
            format_message(template, {
                "length": len(text), "maxLength": max_length, "value": text,
            }),
            actualLength=len(text), maxLength=max_length, actualValue=text,
        )

    # Names and expressions are only known at run time.
    kind = constraints.get("type")
    if kind not in ("integer", "number") or not call.is_literal(param):
        return out

    number = _as_number(value)
    if math.isnan(number):
        emit(
            code or PineErrorCodes.INVALID_NUMBER.code,
            f"Parameter '{param}' must be a valid number, got: {value}",
            actualValue=value, expectedType=kind,
        )
        return out

    low, high = constraints.get("min"), constraints.get("max")
    shown = _display(number)
    values = {"value": shown, "min": low, "max": high}
    if low is not None and number < low:
        emit(
            code or PineErrorCodes.VALUE_TOO_LOW.code,
            format_message(template, values),
            actualValue=shown, minValue=low, maxValue=high,
        )
    if high is not None and number > high:
        emit(
            code or PineErrorCodes.VALUE_TOO_HIGH.code,
            format_message(template, values),
            actualValue=shown, minValue=low, maxValue=high,
        )
    if kind == "integer" and not number.is_integer():
        emit(
            code or PineErrorCodes.NOT_INTEGER.code,
            f"Parameter '{param}' must be an integer, got: {shown}",
            actualValue=shown,
        )
    return out


def _check_call(call: Any, rules: Mapping[str, Any]) -> List[ValidationViolation]:
    key = FUNCTION_RULE_KEYS.get(call.full_name)
    if key is None:
        return []
    function_rules = rules.get("functionValidationRules", {}).get(key) or {}
    constraints_by_param = function_rules.get("argumentConstraints")
    if not constraints_by_param:
        return []

    params = call.parameters
    aliased = call.full_name == "strategy" and "shorttitle" in params
    out: List[ValidationViolation] = []
    for name, value in params.items():
        if aliased and name == "_1" and params["shorttitle"] == value:
            continue
        spec = constraints_by_param.get(name)
        if spec and spec.get("validation_constraints"):
            out.extend(_check_parameter(call, name, value, spec["validation_constraints"]))
    return out


def check_calls(calls: Iterable[Any], rules: Mapping[str, Any]) -> List[ValidationViolation]:
    out: List[ValidationViolation] = []
    for call in calls:
        out.extend(_check_call(call, rules))
    return out


def _parse_error_violations(errors: Sequence[Any]) -> List[ValidationViolation]:
    return [
        ValidationViolation(
            line=err.location.line,
            column=err.location.column,
            rule=err.code,
            severity=err.severity,
            category=ErrorCategory.PARSE.value,
            message=err.message,
        )
        for err in errors
    ]


# ═══════════════════════════════════════════════════════════════════════════════
# ENTRY POINTS
# ═══════════════════════════════════════════════════════════════════════════════

def _run(source: str, context: ValidationContext, rules: Mapping[str, Any]) -> ValidationResult:
    started = time.perf_counter()
    calls = context.function_calls(source)
    result = ValidationResult(violations=check_calls(calls, rules))
    result.violations.extend(_parse_error_violations(context.parse_errors))
    result.metrics = {
        "validationTimeMs": (time.perf_counter() - started) * 1000.0,
        "functionsAnalyzed": len(calls),
    }
    return result


@guarded("parameter constraint")
def _validate_loaded(source: str, context: ValidationContext) -> ValidationResult:
    table = context.rules or _loaded_rules
    if not table:
        raise RulesNotLoadedError()
    return _run(source, context, table)


def validate_parameters(
    source: str,
    rules: Optional[Mapping[str, Any]] = None,
    context: Optional[ValidationContext] = None,
) -> ValidationResult:
    """Check every call against *rules*, the loaded rules, or fail closed."""
    ctx = context if context is not None else ValidationContext()
    if rules is not None:
        ctx = replace(ctx, rules=dict(rules))
    return _validate_loaded(source, ctx)


@guarded("constraints")
def validate_constraints(source: str, context: ValidationContext) -> ValidationResult:
    """Static-table entry: uses the context rules or ``DEFAULT_RULES``."""
    started = time.perf_counter()
    calls = context.function_calls(source)
    result = ValidationResult(violations=check_calls(calls, context.rules or DEFAULT_RULES))
    result.metrics = {
        "validationTimeMs": (time.perf_counter() - started) * 1000.0,
        "functionsAnalyzed": len(calls),
    }
    return result


def _quick(name: str, rules: Mapping[str, Any]):
    @guarded(name)
    def run(source: str, context: ValidationContext) -> ValidationResult:
        return _run(source, context, rules)

    return run


_quick_shorttitle = _quick("shorttitle", SHORTTITLE_RULES)
_quick_precision = _quick("precision", PRECISION_RULES)
_quick_max_bars_back = _quick("max_bars_back", MAX_BARS_BACK_RULES)
_quick_max_lines_count = _quick("max_lines_count", MAX_LINES_COUNT_RULES)
_quick_max_labels_count = _quick("max_labels_count", MAX_LABELS_COUNT_RULES)
_quick_max_boxes_count = _quick("max_boxes_count", MAX_BOXES_COUNT_RULES)
_quick_drawing_counts = _quick("drawing_object_counts", DRAWING_OBJECT_COUNT_RULES)


def quick_validate_shorttitle(source: str) -> ValidationResult:
    return _quick_shorttitle(source)


def quick_validate_precision(source: str) -> ValidationResult:
    return _quick_precision(source)


def quick_validate_max_bars_back(source: str) -> ValidationResult:
    return _quick_max_bars_back(source)


def quick_validate_max_lines_count(source: str) -> ValidationResult:
    return _quick_max_lines_count(source)


def quick_validate_max_labels_count(source: str) -> ValidationResult:
    return _quick_max_labels_count(source)


def quick_validate_max_boxes_count(source: str) -> ValidationResult:
    return _quick_max_boxes_count(source)


def quick_validate_drawing_object_counts(source: str) -> ValidationResult:
    """Lines, labels and boxes limits in one pass."""
    return _quick_drawing_counts(source)
