"""
pinelint/validators/base.py
═══════════════════════════

Shared types for every validator.

  source ──► validator(source, context) ──► ValidationResult
                          │                      ├── violations
                          │                      ├── metrics
                          ▼                      └── failed / error
                  ValidationContext
                  ├── calls     (extracted once per analysis)
                  ├── registry  (optional DocumentationRegistry)
                  ├── rules     (optional constraint rule table)
                  └── config    (AnalyzerConfig)

Each validator is wrapped by :func:`guarded`, which turns any exception
into a single synthetic violation so one failing validator never hides
the others.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field
from typing import (
    Any,
    Callable,
    Dict,
    FrozenSet,
    List,
    Optional,
    Sequence,
    Tuple,
)

from pinelint.config import AnalyzerConfig
from pinelint.errors import (
    PineErrorCodes,
    PineLintError,
    Severity,
)

logger = logging.getLogger(__name__)

__all__ = [
    "ValidationViolation",
    "ValidationResult",
    "ValidationContext",
    "ValidatorFunc",
    "ValidatorSpec",
    "guarded",
    "source_lines",
    "is_comment_line",
]


@dataclass(frozen=True)
class ValidationViolation:
    """
    One reported diagnostic.

    Attributes
    ----------
    line          : 1-based line
    column        : 0-based column, like every ``SourceLocation``
    rule          : stable rule id (``SHORT_TITLE_TOO_LONG``, ``plot_title`` …)
    severity      : Severity
    category      : category string (see ``ErrorCategory``)
    message       : human-readable text
    suggested_fix : optional fix hint
    metadata      : machine-readable context for downstream tooling
    """

    line: int
    column: int
    rule: str
    severity: Severity
    category: str
    message: str
    suggested_fix: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def sort_key(self) -> Tuple[int, int, str]:
        return (self.line, self.column, self.rule)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "line": self.line,
            "column": self.column,
            "rule": self.rule,
            "severity": self.severity.value,
            "category": self.category,
            "message": self.message,
        }
        if self.suggested_fix is not None:
            out["suggested_fix"] = self.suggested_fix
        if self.metadata:
            out["metadata"] = dict(self.metadata)
        return out

    def to_gcc_format(self, filename: str = "<source>") -> str:
        """GCC-style line: file:line:col: severity: message [rule]."""
        return (
            f"{filename}:{self.line}:{self.column}: "
            f"{self.severity.value}: {self.message} [{self.rule}]"
        )

    def __str__(self) -> str:
        return self.to_gcc_format()


@dataclass
class ValidationResult:
    violations: List[ValidationViolation] = field(default_factory=list)
    metrics: Dict[str, Any] = field(default_factory=dict)
    failed: bool = False
    error: Optional[str] = None

    def add(self, violation: ValidationViolation) -> None:
        self.violations.append(violation)

    def count(self, severity: Severity) -> int:
        return sum(1 for v in self.violations if v.severity is severity)

    @property
    def has_errors(self) -> bool:
        return self.count(Severity.ERROR) > 0

    @property
    def has_warnings(self) -> bool:
        return self.count(Severity.WARNING) > 0

    @property
    def has_suggestions(self) -> bool:
        return self.count(Severity.SUGGESTION) > 0

    def rules(self) -> List[str]:
        return [v.rule for v in self.violations]

    def extend(self, other: "ValidationResult") -> None:
        self.violations.extend(other.violations)
        for key, value in other.metrics.items():
            self.metrics.setdefault(key, value)
        if other.failed:
            self.failed = True
            self.error = self.error or other.error

    def to_dict(self) -> Dict[str, Any]:
        return {
            "violations": [v.to_dict() for v in self.violations],
            "hasErrors": self.has_errors,
            "hasWarnings": self.has_warnings,
            "hasSuggestions": self.has_suggestions,
            "metrics": dict(self.metrics),
        }


@dataclass
class ValidationContext:
    """Per-analysis inputs shared by every validator.

    ``calls`` is filled lazily from the source the first time a
    call-list validator asks for it.
    """

    calls: Optional[Sequence[Any]] = None
    registry: Optional[Any] = None
    rules: Optional[Dict[str, Any]] = None
    config: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    parse_errors: Tuple[Any, ...] = ()

    def function_calls(self, source: str) -> Sequence[Any]:
        if self.calls is None:
            from pinelint.extractor import extract_function_parameters

            extraction = extract_function_parameters(
                source, max_nesting_depth=self.config.max_nesting_depth,
            )
            self.calls = extraction.function_calls
            self.parse_errors = extraction.errors
        return self.calls

    def registry_ready(self) -> bool:
        return self.registry is not None and self.registry.is_loaded()


ValidatorFunc = Callable[[str, Optional[ValidationContext]], ValidationResult]


@dataclass(frozen=True)
class ValidatorSpec:
    """One row of the static validator table."""

    name: str
    func: ValidatorFunc
    rule_ids: FrozenSet[str] = frozenset()
    description: str = ""

    def __call__(self, source: str, context: Optional[ValidationContext] = None) -> ValidationResult:
        return self.func(source, context)


def guarded(
    name: str,
    message: str = "{name} validation failed: {error}",
    suggested_fix: Optional[str] = None,
) -> Callable[[Callable[[str, ValidationContext], ValidationResult]], ValidatorFunc]:
    """Catch every exception raised by the wrapped validator.

    Package errors keep their own code and category; anything else
    becomes one ``VALIDATION_ERROR`` violation at line 1, column 0.
    """

    def decorate(func: Callable[[str, ValidationContext], ValidationResult]) -> ValidatorFunc:
        @functools.wraps(func)
        def wrapper(source: str, context: Optional[ValidationContext] = None) -> ValidationResult:
            ctx = context if context is not None else ValidationContext()
            try:
                return func(source or "", ctx)
            except PineLintError as exc:
                logger.error("%s validator failed: %s", name, exc)
                code = exc.code
                text = str(exc)
            except Exception as exc:
                logger.error("%s validator failed: %s", name, exc, exc_info=True)
                code = PineErrorCodes.VALIDATION_ERROR
                text = message.format(name=name, error=exc)
            violation = ValidationViolation(
                line=1,
                column=0,
                rule=code.code,
                severity=Severity.ERROR,
                category=code.category.value,
                message=text,
                suggested_fix=suggested_fix,
            )
            return ValidationResult(violations=[violation], failed=True, error=text)

        return wrapper

    return decorate


def source_lines(source: str) -> List[str]:
    return (source or "").split("\n")


def is_comment_line(line: str) -> bool:
    return line.strip().startswith("//")