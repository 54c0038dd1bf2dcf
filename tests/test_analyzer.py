# tests/test_analyzer.py
"""
End-to-end tests for ``Analyzer.analyze`` and the module-level entry
points.
"""

import asyncio
import json
import logging

import pytest

import pinelint.analyzer as analyzer_module
from pinelint import analyze, parser_status
from pinelint.analyzer import CAPABILITIES, Analyzer
from pinelint.config import AnalyzerConfig
from pinelint.errors import ConfigError
from pinelint.registry import DocumentationRegistry
from pinelint.validators import (
    VALIDATORS,
    ValidationContext,
    ValidatorSpec,
    guarded,
    validator_names,
)
from tests.conftest import (
    CATALOG,
    DEPRECATED_TABLE_CELL,
    END_TO_END,
    LEGACY_SCRIPT,
    LONG_SHORTTITLE,
    MINIMAL_INDICATOR,
    NESTED_CALLS,
    NA_OBJECT_SCRIPT,
    STRATEGY_SCRIPT,
    UNBALANCED_CALL,
)

TITLE_RULES = {"functionValidationRules": {"fun_indicator": {"argumentConstraints": {
    "title": {"validation_constraints": {"maxLength": 3, "errorCode": "TITLE_LONG"}},
}}}}


def _rules(result):
    return [v.rule for v in result.violations]


class TestAnalyze:

    def test_minimal_indicator(self):
        result = analyze(MINIMAL_INDICATOR)
        assert result.success
        assert result.errors == []
        assert _rules(result) == ["operator_spacing", "plot_title"]
        assert result.metrics["functionsFound"] == 2
        assert result.metrics["errorsFound"] == 2
        assert [c.full_name for c in result.function_calls] == ["indicator", "plot"]

    def test_long_shorttitle(self):
        result = analyze(LONG_SHORTTITLE)
        assert _rules(result) == ["SHORT_TITLE_TOO_LONG"]
        assert result.error_count == 1
        assert result.success

    def test_unspaced_subtraction_keeps_call(self):
        result = analyze('//@version=6\nindicator("T")\nx = ta.sma(close, length-1)\n')
        assert result.success
        assert result.errors == []
        assert [c.full_name for c in result.function_calls] == ["indicator", "ta.sma"]

    def test_unspaced_subtraction_does_not_hide_violations(self):
        result = analyze('//@version=6\nindicator("T", "12345678901", precision=a-1)\n')
        assert result.success
        assert "SHORT_TITLE_TOO_LONG" in _rules(result)

    def test_nested_calls_found(self):
        result = analyze(NESTED_CALLS)
        assert result.metrics["functionsFound"] == 4

    def test_violations_sorted(self):
        result = analyze(STRATEGY_SCRIPT + DEPRECATED_TABLE_CELL)
        keys = [v.sort_key() for v in result.violations]
        assert keys == sorted(keys)

    def test_empty_source(self):
        result = analyze("")
        assert result.success
        assert _rules(result) == ["script_declaration", "version_declaration"]
        assert result.metrics["functionsFound"] == 0

    def test_parse_error_fails_analysis(self):
        result = analyze(UNBALANCED_CALL)
        assert not result.success
        assert "Expected ')' after parameters" in result.errors

    def test_metrics_keys(self):
        metrics = analyze(MINIMAL_INDICATOR).metrics
        assert set(metrics) == {"totalTimeMs", "parseTimeMs", "functionsFound", "errorsFound"}
        assert metrics["totalTimeMs"] >= 0

    def test_to_dict_is_json_serialisable(self):
        payload = analyze(MINIMAL_INDICATOR).to_dict()
        assert set(payload) == {"success", "violations", "functionCalls", "metrics", "errors"}
        assert json.loads(json.dumps(payload))["functionCalls"][1]["name"] == "plot"


class TestRules:

    def test_rules_argument_replaces_defaults(self):
        result = analyze('//@version=6\nindicator(title="Long")\n', TITLE_RULES)
        assert _rules(result) == ["TITLE_LONG"]

    def test_default_rules_without_argument(self):
        assert analyze('//@version=6\nindicator(title="Long")\n').violations == []

    def test_rules_from_config_file(self, tmp_path):
        path = tmp_path / "rules.json"
        path.write_text(json.dumps(TITLE_RULES), encoding="utf-8")
        analyzer = Analyzer(AnalyzerConfig(rules_path=str(path)))
        result = analyzer.analyze('//@version=6\nindicator(title="Long")\n')
        assert _rules(result) == ["TITLE_LONG"]

    def test_missing_rules_file(self, tmp_path):
        with pytest.raises(ConfigError):
            Analyzer(AnalyzerConfig(rules_path=str(tmp_path / "absent.json")))


class TestConfig:

    def test_severity_filter_error(self):
        analyzer = Analyzer(AnalyzerConfig(severity_filter="error"))
        assert analyzer.analyze(MINIMAL_INDICATOR).violations == []
        assert _rules(analyzer.analyze(LONG_SHORTTITLE)) == ["SHORT_TITLE_TOO_LONG"]

    def test_severity_filter_is_exact(self):
        analyzer = Analyzer(AnalyzerConfig(severity_filter="suggestion"))
        result = analyzer.analyze(LONG_SHORTTITLE + "plot(close)\n")
        assert _rules(result) == ["plot_title"]

    def test_enabled_validators(self):
        analyzer = Analyzer(AnalyzerConfig(enabled_validators=("declarations",)))
        assert [spec.name for spec in analyzer.validators()] == ["declarations"]
        assert analyzer.analyze(MINIMAL_INDICATOR).violations == []

    def test_line_length_from_config(self):
        analyzer = Analyzer(AnalyzerConfig(max_line_length=10, enabled_validators=("style",)))
        result = analyzer.analyze("aaaa = 1 + 2 + 3\n")
        assert _rules(result) == ["line_length"]


class TestFailures:

    def test_extraction_exception_is_reported(self, monkeypatch):
        def boom(source, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(analyzer_module, "extract_function_parameters", boom)
        result = Analyzer().analyze(MINIMAL_INDICATOR)
        assert not result.success
        assert result.errors == ["UNHANDLED_EXCEPTION: boom"]
        assert result.violations == []
        assert result.metrics["errorsFound"] == 1

    def test_failed_validator(self, monkeypatch):
        @guarded("broken")
        def broken(source, context):
            raise ValueError("nope")

        monkeypatch.setattr(Analyzer, "validators", lambda self: (ValidatorSpec("broken", broken),))
        result = Analyzer().analyze(MINIMAL_INDICATOR)
        assert not result.success
        assert result.errors == ["broken: broken validation failed: nope"]
        assert _rules(result) == ["VALIDATION_ERROR"]


class TestRegistryStartup:

    def test_startup_loads_registry(self):
        analyzer = Analyzer(registry=DocumentationRegistry(catalog=CATALOG))
        assert asyncio.run(analyzer.startup()) is True
        assert analyzer.registry.is_loaded()

    def test_startup_without_registry(self):
        assert asyncio.run(Analyzer().startup()) is False

    def test_startup_degrades(self, tmp_path, caplog):
        analyzer = Analyzer.from_config(AnalyzerConfig(catalog_path=str(tmp_path / "x.json")))
        with caplog.at_level(logging.WARNING, logger="pinelint.analyzer"):
            assert asyncio.run(analyzer.startup()) is False
        assert "fallback tables" in caplog.text
        assert analyzer.analyze(MINIMAL_INDICATOR).success

    def test_registry_changes_parameter_checks(self):
        source = '//@version=6\nindicator("L")\nx = myLib.doThing(srcValue=close)\n'
        plain = Analyzer().analyze(source)
        assert "INVALID_PARAMETER_NAMING_CONVENTION" in _rules(plain)

        analyzer = Analyzer(registry=DocumentationRegistry(catalog=CATALOG))
        asyncio.run(analyzer.startup())
        assert "INVALID_PARAMETER_NAMING_CONVENTION" not in _rules(analyzer.analyze(source))


class TestParserStatus:

    def test_default(self):
        status = parser_status()
        assert status["capabilities"] == list(CAPABILITIES)
        assert status["validators"] == list(validator_names())
        assert status["registry"] == {"state": "absent"}
        assert status["version"]

    def test_with_registry(self):
        analyzer = Analyzer(registry=DocumentationRegistry(catalog=CATALOG))
        asyncio.run(analyzer.startup())
        registry = parser_status(analyzer)["registry"]
        assert registry["state"] == "loaded"
        assert registry["functionsLoaded"] == 2


class TestEndToEnd:

    def test_declaration_and_unnamed_plot(self):
        result = analyze(END_TO_END)
        assert result.success
        assert result.metrics["functionsFound"] == 2
        assert "SHORT_TITLE_TOO_LONG" not in _rules(result)
        plot_title = [v for v in result.violations if v.rule == "plot_title"]
        assert len(plot_title) == 1
        assert (plot_title[0].line, plot_title[0].column) == (2, 0)
        assert plot_title[0].severity.value == "suggestion"
        indicator = result.function_calls[0]
        assert indicator.parameters == {"_0": "Test", "_1": "T"}

    def test_legacy_script(self):
        result = analyze(LEGACY_SCRIPT)
        compat = [v for v in result.violations if v.rule == "SYNTAX_COMPATIBILITY_VALIDATION"]
        assert sorted(v.category for v in compat) == [
            "deprecated_function", "deprecated_function",
            "namespace_requirement", "version_compatibility",
        ]

    def test_na_object_script(self):
        rules = _rules(analyze(NA_OBJECT_SCRIPT))
        assert rules.count("na_object_access") == 1
        assert rules.count("na_object_history_access") == 1

    def test_columns_are_zero_based_across_validators(self):
        source = '//@version=6\nindicator("T", "12345678901")\nplot(close)\n'
        result = analyze(source)
        positions = {v.rule: (v.line, v.column) for v in result.violations}
        assert positions["SHORT_TITLE_TOO_LONG"] == (2, 0)
        assert positions["plot_title"] == (3, 0)
        parse = analyze("//@version=6\nf(a b)\n").violations
        assert [(v.line, v.column) for v in parse if v.rule == "EXPECTED_TOKEN"] == [(2, 4)]


IDEMPOTENCE_SOURCE = (
    STRATEGY_SCRIPT
    + DEPRECATED_TABLE_CELL
    + 'my_var = sma(close, 10)\nx = ta.sma(close, "14")\ncolor = 1\n'
    + 'y = cond ?\n    a : b\nvar Point p = na\nplot(p.x)\nalert(close)\n'
)


class TestIdempotence:

    @pytest.mark.parametrize("spec", VALIDATORS, ids=lambda spec: spec.name)
    def test_fresh_contexts(self, spec):
        first = spec(IDEMPOTENCE_SOURCE, ValidationContext())
        second = spec(IDEMPOTENCE_SOURCE, ValidationContext())
        assert [v.to_dict() for v in first.violations] == [v.to_dict() for v in second.violations]

    @pytest.mark.parametrize("spec", VALIDATORS, ids=lambda spec: spec.name)
    def test_shared_context(self, spec):
        context = ValidationContext()
        first = spec(IDEMPOTENCE_SOURCE, context)
        second = spec(IDEMPOTENCE_SOURCE, context)
        assert [v.to_dict() for v in first.violations] == [v.to_dict() for v in second.violations]

    def test_battery_reports_something(self):
        rules = set(_rules(analyze(IDEMPOTENCE_SOURCE)))
        assert {"naming_convention", "INPUT_TYPE_MISMATCH", "SYNTAX_COMPATIBILITY_VALIDATION",
                "INVALID_OBJECT_NAME_BUILTIN", "INVALID_LINE_CONTINUATION",
                "na_object_access", "DEPRECATED_PARAMETER_NAME",
                "FUNCTION_SIGNATURE_VALIDATION"} <= rules

    def test_analyze_twice(self):
        analyzer = Analyzer()
        first = analyzer.analyze(IDEMPOTENCE_SOURCE)
        second = analyzer.analyze(IDEMPOTENCE_SOURCE)
        assert [v.to_dict() for v in first.violations] == [v.to_dict() for v in second.violations]
