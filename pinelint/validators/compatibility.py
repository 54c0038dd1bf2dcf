"""
pinelint/validators/compatibility.py — Pre-v6 syntax detection.

Three independent findings, all under ``SYNTAX_COMPATIBILITY_VALIDATION``:

  ┌───────────────────────┬──────────┬──────────────────────────────────┐
  │ category              │ severity │ trigger                          │
  ├───────────────────────┼──────────┼──────────────────────────────────┤
  │ version_compatibility │ warning  │ ``//@version=N`` with N < 6      │
  │ deprecated_function   │ error    │ bare ``sma(`` / ``security(`` …  │
  │ namespace_requirement │ error    │ bare ``abs(`` / ``max(`` …       │
  └───────────────────────┴──────────┴──────────────────────────────────┘

Calls are found on the token stream, so names inside comments and
strings never match, and ``ta.sma(`` or ``obj.max(`` are already
namespaced.  A bare name followed by ``=>`` is a user function
definition and is left alone.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from pinelint.arguments import CallSite, find_call_sites, next_significant
from pinelint.errors import ErrorCategory, PineErrorCodes, Severity
from pinelint.lexer import Token, TokenType, tokenize
from pinelint.validators.base import (
    ValidationContext,
    ValidationResult,
    ValidationViolation,
    guarded,
    source_lines,
)

logger = logging.getLogger(__name__)

__all__ = [
    "CURRENT_VERSION",
    "DEPRECATED_FUNCTIONS",
    "NAMESPACE_REQUIREMENTS",
    "VersionDirective",
    "LegacyCall",
    "analyze_version_directive",
    "find_deprecated_calls",
    "find_namespace_violations",
    "validate_syntax_compatibility",
    "quick_validate_syntax_compatibility",
]

RULE = PineErrorCodes.SYNTAX_COMPATIBILITY_VALIDATION.code
CURRENT_VERSION = 6

DEPRECATED_FUNCTIONS: Dict[str, str] = {
    "security": "request.security",
    "rsi": "ta.rsi",
    "sma": "ta.sma",
    "ema": "ta.ema",
    "crossover": "ta.crossover",
    "crossunder": "ta.crossunder",
    "highest": "ta.highest",
    "lowest": "ta.lowest",
    "tostring": "str.tostring",
}

NAMESPACE_REQUIREMENTS: Dict[str, str] = {
    name: f"math.{name}"
    for name in (
        "abs", "max", "min", "ceil", "floor", "round", "sqrt", "pow",
        "log", "exp", "sin", "cos", "tan",
    )
}

_VERSION_RE = re.compile(r"^//\s*@\s*version\s*=\s*(\d+)", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class VersionDirective:
    version: Optional[int] = None
    line: int = -1

    @property
    def present(self) -> bool:
        return self.version is not None

    @property
    def is_v6_compatible(self) -> bool:
        return self.version is None or self.version >= CURRENT_VERSION

    def to_dict(self) -> Dict[str, object]:
        return {
            "version": self.version,
            "line": self.line,
            "isV6Compatible": self.is_v6_compatible,
            "hasVersionDirective": self.present,
        }


@dataclass(frozen=True, slots=True)
class LegacyCall:
    """A bare call that needs a namespace in current scripts."""

    name: str
    replacement: str
    line: int
    column: int

    @property
    def namespace(self) -> str:
        return self.replacement.rpartition(".")[0]


def analyze_version_directive(source: str) -> VersionDirective:
    """First ``//@version=`` line; spaces around ``@`` and ``=`` are allowed."""
    for lineno, line in enumerate(source_lines(source), start=1):
        match = _VERSION_RE.match(line.strip())
        if match:
            return VersionDirective(int(match.group(1)), lineno)
    return VersionDirective()


def _is_definition(tokens: Sequence[Token], site: CallSite) -> bool:
    close = site.arguments.close_index
    if close is None:
        return False
    nxt = next_significant(tokens, close + 1, len(tokens))
    return nxt < len(tokens) and tokens[nxt].type is TokenType.ASSIGN and tokens[nxt].value == "=>"


def _bare_calls(tokens: Sequence[Token], table: Dict[str, str]) -> List[LegacyCall]:
    out: List[LegacyCall] = []
    for site in find_call_sites(tokens):
        if site.namespace is not None or site.name not in table:
            continue
        if _is_definition(tokens, site):
            continue
        out.append(LegacyCall(
            site.name,
            table[site.name],
            site.location.line,
            site.location.column,
        ))
    return out


def find_deprecated_calls(source: str, tokens: Optional[Sequence[Token]] = None) -> List[LegacyCall]:
    return _bare_calls(tokens if tokens is not None else tokenize(source), DEPRECATED_FUNCTIONS)


def find_namespace_violations(source: str, tokens: Optional[Sequence[Token]] = None) -> List[LegacyCall]:
    table = {k: v for k, v in NAMESPACE_REQUIREMENTS.items() if k not in DEPRECATED_FUNCTIONS}
    return _bare_calls(tokens if tokens is not None else tokenize(source), table)


@guarded("syntax compatibility")
def validate_syntax_compatibility(source: str, context: ValidationContext) -> ValidationResult:
    started = time.perf_counter()
    tokens = tokenize(source)
    result = ValidationResult()

    directive = analyze_version_directive(source)
    deprecated = find_deprecated_calls(source, tokens)
    namespaced = find_namespace_violations(source, tokens)

    if not directive.is_v6_compatible:
        result.add(ValidationViolation(
            line=directive.line,
            column=0,
            rule=RULE,
            severity=Severity.WARNING,
            category=ErrorCategory.VERSION.value,
            message=(
                f"Pine Script v{directive.version} is outdated. Consider upgrading to "
                f"v{CURRENT_VERSION} for better performance and features."
            ),
            suggested_fix=f"Change the directive to //@version={CURRENT_VERSION}",
            metadata={
                "upgradeRecommended": True,
                "currentVersion": directive.version,
                "recommendedVersion": CURRENT_VERSION,
            },
        ))

    for call in deprecated:
        result.add(ValidationViolation(
            line=call.line,
            column=call.column,
            rule=RULE,
            severity=Severity.ERROR,
            category=ErrorCategory.DEPRECATED.value,
            message=(
                f"Deprecated function {call.name}() should be replaced with "
                f"{call.replacement}()"
            ),
            suggested_fix=f"Replace {call.name}() with {call.replacement}()",
            metadata={
                "deprecatedFunction": call.name,
                "modernReplacement": call.replacement,
                "migrationRequired": True,
            },
        ))

    for call in namespaced:
        result.add(ValidationViolation(
            line=call.line,
            column=call.column,
            rule=RULE,
            severity=Severity.ERROR,
            category=ErrorCategory.NAMESPACE.value,
            message=(
                f"Function {call.name}() requires {call.namespace} namespace. "
                f"Use {call.replacement}() instead."
            ),
            suggested_fix=f"Replace {call.name}() with {call.replacement}()",
            metadata={
                "functionName": call.name,
                "requiredNamespace": call.namespace,
                "modernForm": call.replacement,
                "namespaceRequired": True,
            },
        ))

    logger.debug(
        "syntax compatibility: version %s, %d deprecated, %d un-namespaced",
        directive.version, len(deprecated), len(namespaced),
    )
    result.metrics = {
        "versionAnalysis": directive.to_dict(),
        "deprecatedFunctionsFound": len(deprecated),
        "namespaceViolationsFound": len(namespaced),
        "versionCompatible": directive.is_v6_compatible,
        "totalViolations": len(result.violations),
        "validationTimeMs": (time.perf_counter() - started) * 1000.0,
    }
    return result


def quick_validate_syntax_compatibility(source: str) -> ValidationResult:
    return validate_syntax_compatibility(source)
