"""pinelint/validators/typecheck.py — Argument type compatibility.

Infers a coarse type for each argument from its lexical shape and
compares it with a small curated table of built-in signatures.  Types
are plain strings in the host language's notation (``int``,
``series float``, ``int/float`` …); two extra markers exist:

``function_result``  a call whose return type is not in the table
``expression``       an operator expression such as ``close * 2``

Both are accepted by every target so unknown shapes never produce a
false positive.

A target typed ``identifier`` (an enum-like constant such as
``alert.freq_once_per_bar``) accepts any argument.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from pinelint.arguments import argument_text, find_call_sites
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
    "ExpectedParam",
    "TypeComparison",
    "EXPECTED_SIGNATURES",
    "RETURN_TYPES",
    "infer_type",
    "compare_types",
    "expected_params",
    "validate_input_types",
    "quick_validate_input_types",
]

RULE = "INPUT_TYPE_MISMATCH"

PRICE_SERIES = frozenset({"close", "open", "high", "low", "volume", "time"})

RETURN_TYPES: Dict[str, str] = {
    "ta.sma": "series float",
    "ta.ema": "series float",
    "ta.rsi": "series float",
    "ta.macd": "series float",
    "math.max": "float",
    "math.min": "float",
    "math.abs": "float",
    "str.tostring": "string",
    "str.tonumber": "float",
}

_SKIPPED_NAMES = frozenset({"if", "while", "for"})
_INT_RE = re.compile(r"^-?\d+$")
_FLOAT_RE = re.compile(r"^-?\d*\.\d+$")
_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_.]*$")
_CALL_RE = re.compile(r"^([a-zA-Z_][a-zA-Z0-9_.]*)\s*\(")

_NUMERIC = frozenset({"int", "float"})


@dataclass(frozen=True, slots=True)
class ExpectedParam:
    name: str
    type: str
    required: bool = True


EXPECTED_SIGNATURES: Dict[str, Tuple[ExpectedParam, ...]] = {
    "ta.sma": (
        ExpectedParam("source", "series int/float"),
        ExpectedParam("length", "series int"),
    ),
    "ta.ema": (
        ExpectedParam("source", "series int/float"),
        ExpectedParam("length", "series int"),
    ),
    "math.max": (
        ExpectedParam("value1", "int/float"),
        ExpectedParam("value2", "int/float"),
    ),
    "str.contains": (
        ExpectedParam("source", "string"),
        ExpectedParam("substring", "string"),
    ),
    "alert": (
        ExpectedParam("message", "series string"),
        ExpectedParam("freq", "identifier", required=False),
    ),
}


@dataclass(frozen=True, slots=True)
class TypeComparison:
    is_valid: bool
    reason: str


def expected_params(function_name: str) -> Tuple[ExpectedParam, ...]:
    return EXPECTED_SIGNATURES.get(function_name, ())


def infer_type(text: Optional[str]) -> str:
    """Coarse type of an argument from its source text."""
    if not text:
        return "unknown"
    value = text.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return "string"
    if value in ("true", "false"):
        return "bool"
    if _INT_RE.match(value):
        return "int"
    if _FLOAT_RE.match(value):
        return "float"
    if value.startswith("#") or value.startswith("color."):
        return "color"
    if _NAME_RE.match(value):
        return "series float" if value in PRICE_SERIES else "series"
    match = _CALL_RE.match(value)
    if match:
        return RETURN_TYPES.get(match.group(1), "function_result")
    return "expression"


def _base(kind: str) -> str:
    return kind[len("series "):] if kind.startswith("series ") else kind


# TODO: add a simple-vs-series qualifier check (ta.macd lengths need
# "simple int"); it requires tracking qualifiers of user variables.
def compare_types(expected: str, actual: str) -> TypeComparison:
    if not expected or not actual:
        return TypeComparison(False, "missing_type_info")
    if expected == actual:
        return TypeComparison(True, "exact_match")
    if expected == "identifier":
        return TypeComparison(True, "identifier_accepts_any")
    if actual == "function_result":
        return TypeComparison(True, "function_result_unknown")
    if actual == "expression":
        return TypeComparison(True, "expression_unknown")

    if expected.startswith("series "):
        base = _base(expected)
        if actual == "series":
            return TypeComparison(True, "series_unknown_base")
        if actual.startswith("series "):
            actual_base = _base(actual)
            if base == "int/float" and actual_base in _NUMERIC:
                return TypeComparison(True, "series_numeric_compatible")
            if base == actual_base:
                return TypeComparison(True, "series_exact_match")
        elif actual == base or (base == "int/float" and actual in _NUMERIC):
            return TypeComparison(True, "series_accepts_simple")

    if expected == "int/float" and actual in _NUMERIC:
        return TypeComparison(True, "numeric_compatible")
    if expected == "string":
        return TypeComparison(False, "requires_string")
    if expected in ("int", "float", "int/float") and actual in ("string", "bool"):
        return TypeComparison(False, "requires_numeric")
    if expected == "bool":
        return TypeComparison(False, "requires_boolean")
    return TypeComparison(False, "incompatible_types")


@guarded("input type")
def validate_input_types(source: str, context: ValidationContext) -> ValidationResult:
    started = time.perf_counter()
    tokens = tokenize(source)
    result = ValidationResult()
    analyzed = 0
    checks = 0

    for site in find_call_sites(tokens):
        if site.name in _SKIPPED_NAMES:
            continue
        analyzed += 1
        expected = expected_params(site.name)
        if not expected:
            continue
        by_name = {param.name: param for param in expected}

        for arg in site.arguments.arguments:
            if arg.is_named:
                param = by_name.get(arg.name.value)
            elif arg.position < len(expected):
                param = expected[arg.position]
            else:
                param = None
            if param is None:
                continue
            checks += 1
            actual = infer_type(argument_text(source, tokens, arg))
            comparison = compare_types(param.type, actual)
            if comparison.is_valid:
                continue
            result.add(ValidationViolation(
                line=site.location.line,
                column=site.location.column,
                rule=RULE,
                severity=Severity.ERROR,
                category=ErrorCategory.TYPE.value,
                message=(
                    f"Parameter {arg.position + 1} of {site.name}() expects "
                    f"{param.type} but got {actual}. ({RULE})"
                ),
                metadata={
                    "functionName": site.name,
                    "parameterName": param.name,
                    "expectedType": param.type,
                    "actualType": actual,
                    "reason": comparison.reason,
                },
            ))

    result.metrics = {
        "functionsAnalyzed": analyzed,
        "typeChecksPerformed": checks,
        "validationTimeMs": (time.perf_counter() - started) * 1000.0,
    }
    return result


def quick_validate_input_types(source: str) -> ValidationResult:
    return validate_input_types(source)
