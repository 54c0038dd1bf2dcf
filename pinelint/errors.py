"""
pinelint/errors.py — Error codes, parse errors and exception hierarchy.

This module is the single home for everything that can go wrong inside
pinelint, split into the three failure classes the analyzer knows about:

┌──────────────────────────────────────────────────────────────────────┐
│  Parse errors          recoverable, recorded by the parser           │
│     ParseError ──► ErrorCollector ──► ParseResult.errors/warnings    │
│                                                                      │
│  Validation violations  the product, see pinelint.validators.base    │
│                                                                      │
│  Infrastructure errors  raised internally, stopped at boundaries     │
│     PineLintError                                                    │
│       ├── RulesNotLoadedError                                        │
│       ├── ConfigError                                                │
│       └── RegistryError                                              │
│             ├── RegistryNotLoadedError                               │
│             └── RegistryLoadError                                    │
└──────────────────────────────────────────────────────────────────────┘

Parse steps never raise.  They return ``Ok(value)`` or ``Err(error)``
and the statement loop decides how to recover.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, unique
from typing import (
    Any,
    Dict,
    Generic,
    List,
    Optional,
    TypeVar,
    Union,
)

from pinelint.ast import SourceLocation, NO_LOCATION

__all__ = [
    "Severity",
    "ErrorCategory",
    "ErrorCode",
    "PineErrorCodes",
    "ParseError",
    "Ok",
    "Err",
    "Result",
    "ErrorCollector",
    "PineLintError",
    "RulesNotLoadedError",
    "ConfigError",
    "RegistryError",
    "RegistryNotLoadedError",
    "RegistryLoadError",
]


# ═══════════════════════════════════════════════════════════════════════════════
# SEVERITY AND CATEGORY
# ═══════════════════════════════════════════════════════════════════════════════

@unique
class Severity(Enum):
    """Severity of a violation or parse diagnostic."""

    ERROR = "error"
    WARNING = "warning"
    SUGGESTION = "suggestion"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @property
    def color(self) -> str:
        """termcolor colour name used by the CLI renderer."""
        return _SEVERITY_COLOR[self]

    @classmethod
    def parse(cls, text: str) -> "Severity":
        try:
            return cls(text.lower())
        except ValueError:
            raise ConfigError(f"unknown severity {text!r}") from None


_SEVERITY_RANK = {
    Severity.ERROR: 0,
    Severity.WARNING: 1,
    Severity.SUGGESTION: 2,
}

_SEVERITY_COLOR = {
    Severity.ERROR: "red",
    Severity.WARNING: "yellow",
    Severity.SUGGESTION: "cyan",
}


@unique
class ErrorCategory(Enum):
    """Coarse grouping used in violation ``category`` fields."""

    PARSE = "parse_error"
    PARAMETER = "parameter_validation"
    TYPE = "type_validation"
    STYLE = "style_guide"
    LANGUAGE = "language"
    NAMING = "naming_validation"
    SYNTAX = "syntax_validation"
    SIGNATURE = "function_signature"
    VERSION = "version_compatibility"
    DEPRECATED = "deprecated_function"
    NAMESPACE = "namespace_requirement"
    RUNTIME = "runtime_error"
    VALIDATION = "validation_error"


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR CODES
# ═══════════════════════════════════════════════════════════════════════════════

class ErrorCode:
    """A stable diagnostic identifier with its default severity and category."""

    __slots__ = ("code", "default_severity", "category", "description")

    def __init__(
        self,
        code: str,
        default_severity: Severity,
        category: ErrorCategory,
        description: str = "",
    ) -> None:
        self.code = code
        self.default_severity = default_severity
        self.category = category
        self.description = description

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"ErrorCode({self.code!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ErrorCode):
            return self.code == other.code
        if isinstance(other, str):
            return self.code == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.code)


class PineErrorCodes:
    """Registry of the codes pinelint itself emits.

    Rule-table driven codes (``SHORT_TITLE_TOO_LONG`` and friends) come
    from the rule tables and are listed here only when the engine falls
    back to them.
    """

    # ── parser ────────────────────────────────────────────────────────
    EXPECTED_TOKEN = ErrorCode(
        "EXPECTED_TOKEN", Severity.ERROR, ErrorCategory.PARSE,
        "A required token was missing",
    )
    EXPECTED_IDENTIFIER = ErrorCode(
        "EXPECTED_IDENTIFIER", Severity.ERROR, ErrorCategory.PARSE,
        "A dot was not followed by a member name",
    )
    NESTING_TOO_DEEP = ErrorCode(
        "NESTING_TOO_DEEP", Severity.ERROR, ErrorCategory.PARSE,
        "Call nesting exceeded the configured depth",
    )
    UNEXPECTED_EXPRESSION = ErrorCode(
        "UNEXPECTED_EXPRESSION", Severity.WARNING, ErrorCategory.PARSE,
        "A token could not be understood as an expression",
    )

    # ── constraint engine defaults ───────────────────────────────────
    STRING_TOO_LONG = ErrorCode(
        "STRING_TOO_LONG", Severity.ERROR, ErrorCategory.PARAMETER,
    )
    INVALID_NUMBER = ErrorCode(
        "INVALID_NUMBER", Severity.ERROR, ErrorCategory.PARAMETER,
    )
    VALUE_TOO_LOW = ErrorCode(
        "VALUE_TOO_LOW", Severity.ERROR, ErrorCategory.PARAMETER,
    )
    VALUE_TOO_HIGH = ErrorCode(
        "VALUE_TOO_HIGH", Severity.ERROR, ErrorCategory.PARAMETER,
    )
    NOT_INTEGER = ErrorCode(
        "NOT_INTEGER", Severity.ERROR, ErrorCategory.PARAMETER,
    )

    # ── source validators ────────────────────────────────────────────
    FUNCTION_SIGNATURE_VALIDATION = ErrorCode(
        "FUNCTION_SIGNATURE_VALIDATION", Severity.ERROR, ErrorCategory.SIGNATURE,
        "A call does not match the expected parameter list",
    )
    SYNTAX_COMPATIBILITY_VALIDATION = ErrorCode(
        "SYNTAX_COMPATIBILITY_VALIDATION", Severity.ERROR, ErrorCategory.DEPRECATED,
        "Pre-v6 syntax: old version directive, deprecated or un-namespaced call",
    )

    # ── infrastructure ───────────────────────────────────────────────
    RULES_NOT_LOADED = ErrorCode(
        "RULES_NOT_LOADED", Severity.ERROR, ErrorCategory.VALIDATION,
        "A rule-table validator ran without rules",
    )
    VALIDATION_ERROR = ErrorCode(
        "VALIDATION_ERROR", Severity.ERROR, ErrorCategory.VALIDATION,
        "A validator failed internally",
    )

    @classmethod
    def all_codes(cls) -> Dict[str, ErrorCode]:
        return {
            value.code: value
            for value in vars(cls).values()
            if isinstance(value, ErrorCode)
        }


# ═══════════════════════════════════════════════════════════════════════════════
# PARSE ERRORS AND RESULT TYPE
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True)
class ParseError:
    """One recoverable problem found by the parser."""

    code: str
    message: str
    location: SourceLocation = NO_LOCATION
    severity: Severity = Severity.ERROR

    @classmethod
    def from_code(
        cls,
        code: ErrorCode,
        message: str,
        location: SourceLocation,
    ) -> "ParseError":
        return cls(code.code, message, location, code.default_severity)

    @property
    def is_warning(self) -> bool:
        return self.severity is not Severity.ERROR

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "location": self.location.to_dict(),
            "severity": self.severity.value,
        }

    def __str__(self) -> str:
        return (
            f"{self.location.line}:{self.location.column}: "
            f"{self.severity.value}: {self.message} [{self.code}]"
        )


T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Err:
    error: ParseError

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[T], Err]


@dataclass
class ErrorCollector:
    """Accumulates parse diagnostics, keeping warnings apart from errors."""

    errors: List[ParseError] = field(default_factory=list)
    warnings: List[ParseError] = field(default_factory=list)
    recoveries: int = 0

    def add(self, error: ParseError) -> None:
        if error.is_warning:
            self.warnings.append(error)
        else:
            self.errors.append(error)

    def note_recovery(self) -> None:
        self.recoveries += 1

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def summary(self) -> Dict[str, Any]:
        by_code: Dict[str, int] = {}
        for err in self.errors:
            by_code[err.code] = by_code.get(err.code, 0) + 1
        return {
            "total_errors": len(self.errors),
            "total_warnings": len(self.warnings),
            "recoveries": self.recoveries,
            "codes": by_code,
        }

    def clear(self) -> None:
        self.errors.clear()
        self.warnings.clear()
        self.recoveries = 0


# ═══════════════════════════════════════════════════════════════════════════════
# EXCEPTION CLASSES
# ═══════════════════════════════════════════════════════════════════════════════

class PineLintError(Exception):
    """Base exception for pinelint infrastructure failures.

    These never cross ``analyze()`` or a quick validator; the boundary
    turns them into violations or error strings.
    """

    default_code: ErrorCode = PineErrorCodes.VALIDATION_ERROR

    def __init__(self, message: str, code: Optional[ErrorCode] = None) -> None:
        super().__init__(message)
        self.code = code or self.default_code


class RulesNotLoadedError(PineLintError):
    """A rule-table validator was invoked before any rules were loaded."""

    default_code = PineErrorCodes.RULES_NOT_LOADED

    def __init__(self, message: str = "Validation rules not loaded") -> None:
        super().__init__(message)


class ConfigError(PineLintError):
    """Invalid configuration file or value."""


class RegistryError(PineLintError):
    """Base class for Documentation Registry failures."""


class RegistryNotLoadedError(RegistryError):
    """The registry was queried before ``load()`` completed."""

    def __init__(self) -> None:
        super().__init__("Documentation not loaded. Call load() first.")


class RegistryLoadError(RegistryError):
    """The documentation catalog could not be read or decoded."""
