"""
pinelint — Static analysis for Pine Script
==========================================

Tokenizes, parses and validates Pine Script source text, reporting
problems as structured violations.

Core modules
------------
lexer
    Tokens with 1-based lines and 0-based columns.
parser
    Error-recovering recursive-descent parser producing a ``Program``.
extractor
    Flattens every call into a ``FunctionCallAnalysis``.
validators
    The static validator table and the quick entry points.
registry
    Documentation Registry client (built-in parameter names).
analyzer
    The ``analyze`` contract tying it all together.

Quick start
-----------
>>> from pinelint import analyze
>>> result = analyze('//@version=6\\nindicator("Test", shorttitle="WAY_TOO_LONG_NAME")')
>>> [v.rule for v in result.violations if v.is_error]
['SHORT_TITLE_TOO_LONG']
"""

from __future__ import annotations

from pinelint.analyzer import (
    ANALYZER_VERSION as __version__,
    AnalysisResult,
    Analyzer,
    analyze,
    parser_status,
)
from pinelint.config import AnalyzerConfig
from pinelint.errors import (
    ConfigError,
    ErrorCategory,
    ParseError,
    PineLintError,
    RegistryError,
    RegistryLoadError,
    RegistryNotLoadedError,
    RulesNotLoadedError,
    Severity,
)
from pinelint.extractor import (
    ExtractionResult,
    FunctionCallAnalysis,
    extract_function_parameters,
)
from pinelint.lexer import Token, TokenType, tokenize
from pinelint.parser import ParseResult, parse_script
from pinelint.registry import DocumentationRegistry, RegistryState
from pinelint.validators import (
    ValidationResult,
    ValidationViolation,
    load_validation_rules,
    validate_parameters,
)

__all__ = [
    "__version__",
    "AnalysisResult",
    "Analyzer",
    "AnalyzerConfig",
    "ConfigError",
    "DocumentationRegistry",
    "ErrorCategory",
    "ExtractionResult",
    "FunctionCallAnalysis",
    "ParseError",
    "ParseResult",
    "PineLintError",
    "RegistryError",
    "RegistryLoadError",
    "RegistryNotLoadedError",
    "RegistryState",
    "RulesNotLoadedError",
    "Severity",
    "Token",
    "TokenType",
    "ValidationResult",
    "ValidationViolation",
    "analyze",
    "extract_function_parameters",
    "load_validation_rules",
    "parse_script",
    "parser_status",
    "tokenize",
    "validate_parameters",
]
