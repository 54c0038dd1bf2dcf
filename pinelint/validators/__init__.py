"""
pinelint.validators — The validator battery.

``VALIDATORS`` is the static table the analyzer runs, in order.  Each
row names a plain function ``(source, context) -> ValidationResult``.
"""

from __future__ import annotations

from typing import Dict, Tuple

from pinelint.validators.base import (
    ValidationContext,
    ValidationResult,
    ValidationViolation,
    ValidatorSpec,
    guarded,
)
from pinelint.validators.arity import (
    quick_validate_signature_conformance,
    validate_signature_conformance,
)
from pinelint.validators.compatibility import (
    quick_validate_syntax_compatibility,
    validate_syntax_compatibility,
)
from pinelint.validators.constraints import (
    DEFAULT_RULES,
    format_message,
    load_validation_rules,
    quick_validate_drawing_object_counts,
    quick_validate_max_bars_back,
    quick_validate_max_boxes_count,
    quick_validate_max_labels_count,
    quick_validate_max_lines_count,
    quick_validate_precision,
    quick_validate_shorttitle,
    reset_validation_rules,
    validate_constraints,
    validate_parameters,
)
from pinelint.validators.na_objects import (
    quick_validate_na_object_access,
    validate_na_object_access,
)
from pinelint.validators.naming import quick_validate_naming, validate_naming
from pinelint.validators.signatures import (
    quick_validate_function_signatures,
    validate_function_signatures,
)
from pinelint.validators.style import (
    quick_validate_builtin_namespace,
    quick_validate_line_continuation,
    quick_validate_style,
    validate_builtin_namespace,
    validate_declarations,
    validate_line_continuation,
    validate_style,
)
from pinelint.validators.typecheck import (
    quick_validate_input_types,
    validate_input_types,
)

VALIDATORS: Tuple[ValidatorSpec, ...] = (
    ValidatorSpec(
        "constraints",
        validate_constraints,
        frozenset({
            "SHORT_TITLE_TOO_LONG", "INVALID_PRECISION", "INVALID_MAX_BARS_BACK",
            "INVALID_MAX_LINES_COUNT", "INVALID_MAX_LABELS_COUNT",
            "INVALID_MAX_BOXES_COUNT",
        }),
        "Rule-table parameter constraints on declaration calls",
    ),
    ValidatorSpec(
        "input_types",
        validate_input_types,
        frozenset({"INPUT_TYPE_MISMATCH"}),
        "Argument types against curated built-in signatures",
    ),
    ValidatorSpec(
        "naming",
        validate_naming,
        frozenset({"naming_convention"}),
        "camelCase variable names",
    ),
    ValidatorSpec(
        "signatures",
        validate_function_signatures,
        frozenset({"DEPRECATED_PARAMETER_NAME", "INVALID_PARAMETER_NAMING_CONVENTION"}),
        "Deprecated and badly named call arguments",
    ),
    ValidatorSpec(
        "style",
        validate_style,
        frozenset({"operator_spacing", "plot_title", "line_length"}),
        "Style guide suggestions",
    ),
    ValidatorSpec(
        "declarations",
        validate_declarations,
        frozenset({"version_declaration", "script_declaration"}),
        "Version directive and script declaration",
    ),
    ValidatorSpec(
        "builtin_namespace",
        validate_builtin_namespace,
        frozenset({"INVALID_OBJECT_NAME_BUILTIN"}),
        "Built-in namespaces used as variable names",
    ),
    ValidatorSpec(
        "line_continuation",
        validate_line_continuation,
        frozenset({"INVALID_LINE_CONTINUATION"}),
        "Broken ternary and string line continuations",
    ),
    ValidatorSpec(
        "function_signature",
        validate_signature_conformance,
        frozenset({"FUNCTION_SIGNATURE_VALIDATION"}),
        "Parameter count and types against curated built-in signatures",
    ),
    ValidatorSpec(
        "syntax_compatibility",
        validate_syntax_compatibility,
        frozenset({"SYNTAX_COMPATIBILITY_VALIDATION"}),
        "Outdated version directive, deprecated and un-namespaced calls",
    ),
    ValidatorSpec(
        "na_objects",
        validate_na_object_access,
        frozenset({"na_object_access", "na_object_history_access"}),
        "Field access on user-defined objects that may be na",
    ),
)

_BY_NAME: Dict[str, ValidatorSpec] = {spec.name: spec for spec in VALIDATORS}


def validator_names() -> Tuple[str, ...]:
    return tuple(spec.name for spec in VALIDATORS)


def get_validator(name: str) -> ValidatorSpec:
    return _BY_NAME[name]


__all__ = [
    "VALIDATORS",
    "validator_names",
    "get_validator",
    "ValidationContext",
    "ValidationResult",
    "ValidationViolation",
    "ValidatorSpec",
    "guarded",
    "DEFAULT_RULES",
    "format_message",
    "load_validation_rules",
    "reset_validation_rules",
    "validate_parameters",
    "quick_validate_shorttitle",
    "quick_validate_precision",
    "quick_validate_max_bars_back",
    "quick_validate_max_lines_count",
    "quick_validate_max_labels_count",
    "quick_validate_max_boxes_count",
    "quick_validate_drawing_object_counts",
    "quick_validate_input_types",
    "quick_validate_naming",
    "quick_validate_function_signatures",
    "quick_validate_style",
    "quick_validate_builtin_namespace",
    "quick_validate_line_continuation",
    "quick_validate_signature_conformance",
    "quick_validate_syntax_compatibility",
    "quick_validate_na_object_access",
]
