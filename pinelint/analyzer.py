"""
pinelint/analyzer.py
════════════════════

The ``analyze`` contract.

    source ──► extract_function_parameters ──► call list + parse errors
                                                     │
                      ┌──────────────────────────────┘
                      ▼
              ValidationContext ──► VALIDATORS[enabled] ──► violations
                                                               │
                                 sort (line, column, rule) ◄───┘
                                            │
                                   severity filter (last)
                                            │
                                            ▼
                                      AnalysisResult

Nothing raised inside the package crosses :meth:`Analyzer.analyze`: a
validator failure is already a violation (see ``validators.base.guarded``)
and anything that escapes extraction is turned into a failed result.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pinelint.config import AnalyzerConfig
from pinelint.extractor import FunctionCallAnalysis, extract_function_parameters
from pinelint.registry import DocumentationRegistry
from pinelint.validators import VALIDATORS, ValidationContext, ValidationViolation, ValidatorSpec
from pinelint.validators.constraints import read_validation_rules

logger = logging.getLogger(__name__)

__all__ = [
    "ANALYZER_VERSION",
    "CAPABILITIES",
    "AnalysisResult",
    "Analyzer",
    "analyze",
    "parser_status",
]

ANALYZER_VERSION = "0.1.0"

CAPABILITIES: Tuple[str, ...] = (
    "pine_script_parsing",
    "ast_generation",
    "parameter_extraction",
    "function_call_analysis",
    "shorttitle_validation",
    "parameter_constraint_validation",
    "input_type_validation",
    "naming_validation",
    "parameter_naming_validation",
    "style_validation",
    "function_signature_validation",
    "syntax_compatibility_validation",
    "na_object_validation",
)


@dataclass
class AnalysisResult:
    success: bool
    violations: List[ValidationViolation] = field(default_factory=list)
    function_calls: Tuple[FunctionCallAnalysis, ...] = ()
    metrics: Dict[str, Any] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)
    validator_metrics: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @property
    def error_count(self) -> int:
        return sum(1 for v in self.violations if v.is_error)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "violations": [v.to_dict() for v in self.violations],
            "functionCalls": [c.to_dict() for c in self.function_calls],
            "metrics": dict(self.metrics),
            "errors": list(self.errors),
        }


class Analyzer:
    """Runs extraction once and then every enabled validator.

    The *registry* is optional; without one (or before it is loaded)
    the registry-aware validators use their static fallback tables.
    *rules* replaces the default constraint table; when omitted the
    table named by ``config.rules_path`` is read here, at construction.
    """

    def __init__(
        self,
        config: Optional[AnalyzerConfig] = None,
        registry: Optional[DocumentationRegistry] = None,
        rules: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.config = config or AnalyzerConfig()
        self.registry = registry
        if rules is None and self.config.rules_path:
            rules = read_validation_rules(self.config.rules_path)
        self.rules: Optional[Dict[str, Any]] = dict(rules) if rules is not None else None

    @classmethod
    def from_config(cls, config: AnalyzerConfig) -> "Analyzer":
        """Analyzer with an (unloaded) registry built from ``catalog_path``."""
        registry = DocumentationRegistry(config.catalog_path)
        return cls(config, registry)

    async def startup(self) -> bool:
        """Load the registry once.  Returns False when running degraded."""
        if self.registry is None:
            return False
        try:
            await self.registry.load()
        except Exception as exc:
            logger.warning("documentation registry unavailable, using fallback tables: %s", exc)
            return False
        return True

    def validators(self) -> Tuple[ValidatorSpec, ...]:
        return tuple(spec for spec in VALIDATORS if self.config.is_enabled(spec.name))

    def analyze(self, source: str, rules: Optional[Mapping[str, Any]] = None) -> AnalysisResult:
        started = time.perf_counter()
        source = source or ""
        table = dict(rules) if rules is not None else self.rules

        try:
            extraction = extract_function_parameters(
                source, max_nesting_depth=self.config.max_nesting_depth,
            )
        except Exception as exc:
            logger.error("analysis failed: %s", exc, exc_info=True)
            return AnalysisResult(
                success=False,
                metrics={
                    "totalTimeMs": (time.perf_counter() - started) * 1000.0,
                    "parseTimeMs": 0.0,
                    "functionsFound": 0,
                    "errorsFound": 1,
                },
                errors=[f"UNHANDLED_EXCEPTION: {exc}"],
            )

        context = ValidationContext(
            calls=extraction.function_calls,
            registry=self.registry,
            rules=table,
            config=self.config,
            parse_errors=extraction.errors,
        )

        violations: List[ValidationViolation] = []
        errors = [err.message for err in extraction.errors]
        per_validator: Dict[str, Dict[str, Any]] = {}
        failed = False
        for spec in self.validators():
            outcome = spec(source, context)
            violations.extend(outcome.violations)
            per_validator[spec.name] = outcome.metrics
            if outcome.failed:
                failed = True
                errors.append(f"{spec.name}: {outcome.error}")

        violations.sort(key=ValidationViolation.sort_key)
        wanted = self.config.selected_severity()
        if wanted is not None:
            violations = [v for v in violations if v.severity is wanted]

        return AnalysisResult(
            success=not failed and not extraction.errors,
            violations=violations,
            function_calls=extraction.function_calls,
            metrics={
                "totalTimeMs": (time.perf_counter() - started) * 1000.0,
                "parseTimeMs": extraction.parse.metrics.parse_time_ms,
                "functionsFound": len(extraction.function_calls),
                "errorsFound": len(violations),
            },
            errors=errors,
            validator_metrics=per_validator,
        )


_default_analyzer: Optional[Analyzer] = None


def _get_default() -> Analyzer:
    global _default_analyzer
    if _default_analyzer is None:
        _default_analyzer = Analyzer()
    return _default_analyzer


def analyze(source: str, rules: Optional[Mapping[str, Any]] = None) -> AnalysisResult:
    """Analyze *source* with the default, registry-less analyzer."""
    return _get_default().analyze(source, rules)


def parser_status(analyzer: Optional[Analyzer] = None) -> Dict[str, Any]:
    analyzer = analyzer or _get_default()
    registry = analyzer.registry
    return {
        "version": ANALYZER_VERSION,
        "capabilities": list(CAPABILITIES),
        "validators": [spec.name for spec in analyzer.validators()],
        "registry": registry.statistics() if registry is not None else {"state": "absent"},
    }
