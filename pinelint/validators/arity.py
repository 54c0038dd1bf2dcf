"""
pinelint/validators/arity.py — Calls checked against their expected signature.

For every call whose signature is in ``EXPECTED_SIGNATURES``:

  count   required parameters that were not supplied (positionally or by
          name) → ``missing_required_parameters``; more arguments than
          the signature lists → ``too_many_parameters``
  types   only when the count is fine, each mapped argument's inferred
          type is compared with the declared one → ``parameter_type_mismatch``

Everything is reported under ``FUNCTION_SIGNATURE_VALIDATION``.  Type
inference and comparison are shared with the input-type validator, so a
bad argument can be reported by both; disable either through
``enabled_validators`` to keep one.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from pinelint.arguments import Argument, CallSite, argument_text, find_call_sites
from pinelint.errors import PineErrorCodes, Severity
from pinelint.lexer import Token, tokenize
from pinelint.validators.base import (
    ValidationContext,
    ValidationResult,
    ValidationViolation,
    guarded,
)
from pinelint.validators.typecheck import (
    ExpectedParam,
    compare_types,
    expected_params,
    infer_type,
)

logger = logging.getLogger(__name__)

__all__ = [
    "CountCheck",
    "format_signature",
    "check_parameter_count",
    "validate_signature_conformance",
    "quick_validate_signature_conformance",
]

RULE = PineErrorCodes.FUNCTION_SIGNATURE_VALIDATION.code
_CATEGORY = PineErrorCodes.FUNCTION_SIGNATURE_VALIDATION.category.value


@dataclass(frozen=True, slots=True)
class CountCheck:
    is_valid: bool
    reason: str
    message: str = ""
    missing: Tuple[str, ...] = ()
    extra: int = 0


def format_signature(params: Sequence[ExpectedParam]) -> str:
    return ", ".join(f"{p.name}: {p.type}{'' if p.required else '?'}" for p in params)


def _param_for(arg: Argument, params: Sequence[ExpectedParam]) -> Optional[ExpectedParam]:
    if arg.is_named:
        return next((p for p in params if p.name == arg.name.value), None)
    return params[arg.position] if arg.position < len(params) else None


def check_parameter_count(
    name: str,
    params: Sequence[ExpectedParam],
    arguments: Sequence[Argument],
) -> CountCheck:
    if not params:
        return CountCheck(True, "no_signature")

    supplied = {p.name for p in (_param_for(arg, params) for arg in arguments) if p is not None}
    missing = tuple(p.name for p in params if p.required and p.name not in supplied)
    if missing:
        required = sum(1 for p in params if p.required)
        return CountCheck(
            False,
            "missing_required_parameters",
            f"Function {name} requires at least {required} parameters but got {len(arguments)}",
            missing=missing,
        )
    if len(arguments) > len(params):
        return CountCheck(
            False,
            "too_many_parameters",
            f"Function {name} accepts at most {len(params)} parameters but got {len(arguments)}",
            extra=len(arguments) - len(params),
        )
    return CountCheck(True, "valid_count")


def _check_site(
    source: str,
    tokens: Sequence[Token],
    site: CallSite,
    params: Sequence[ExpectedParam],
    result: ValidationResult,
) -> int:
    arguments = site.arguments.arguments
    texts = [argument_text(source, tokens, arg) for arg in arguments]
    base_meta = {
        "functionName": site.name,
        "expectedSignature": format_signature(params),
        "actualParameters": texts,
    }

    def emit(message: str, **meta) -> None:
        result.add(ValidationViolation(
            line=site.location.line,
            column=site.location.column,
            rule=RULE,
            severity=Severity.ERROR,
            category=_CATEGORY,
            message=f"{RULE}: {message}",
            metadata={**base_meta, **meta},
        ))

    count = check_parameter_count(site.name, params, arguments)
    if not count.is_valid:
        meta = {
            "reason": count.reason,
            "expectedParams": len(params),
            "actualParams": len(arguments),
        }
        if count.missing:
            meta["missingParams"] = list(count.missing)
        if count.extra:
            meta["extraParams"] = texts[len(params):]
        emit(count.message, **meta)
        return 0

    checks = 0
    for arg, text in zip(arguments, texts):
        param = _param_for(arg, params)
        if param is None:
            continue
        checks += 1
        actual = infer_type(text)
        if compare_types(param.type, actual).is_valid:
            continue
        emit(
            f"Parameter '{param.name}' expects type '{param.type}' but got '{actual}'",
            reason="parameter_type_mismatch",
            parameterName=param.name,
            parameterIndex=arg.position,
            expectedType=param.type,
            actualType=actual,
        )
    return checks


@guarded("function signature")
def validate_signature_conformance(source: str, context: ValidationContext) -> ValidationResult:
    started = time.perf_counter()
    tokens = tokenize(source)
    result = ValidationResult()
    analyzed = 0
    checks = 0

    for site in find_call_sites(tokens):
        analyzed += 1
        params = expected_params(site.name)
        if not params:
            continue
        checks += _check_site(source, tokens, site, params, result)

    logger.debug("signature conformance: %d calls, %d type checks", analyzed, checks)
    result.metrics = {
        "functionsAnalyzed": analyzed,
        "typeChecksPerformed": checks,
        "validationTimeMs": (time.perf_counter() - started) * 1000.0,
    }
    return result


def quick_validate_signature_conformance(source: str) -> ValidationResult:
    return validate_signature_conformance(source)
