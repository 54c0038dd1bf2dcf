# tests/test_compatibility.py
"""
Tests for pre-v6 syntax detection: outdated version directives,
deprecated bare functions and math calls without their namespace.
"""

import pytest

from pinelint.validators import quick_validate_syntax_compatibility
from pinelint.validators.compatibility import (
    analyze_version_directive,
    find_deprecated_calls,
    find_namespace_violations,
)
from tests.conftest import LEGACY_SCRIPT, SMA_ASSIGNMENT


def _by_category(result):
    out = {}
    for v in result.violations:
        out.setdefault(v.category, []).append(v)
    return out


class TestVersionDirective:

    @pytest.mark.parametrize("source,version,line", [
        ("//@version=6\n", 6, 1),
        ("// @version = 5\n", 5, 1),
        ('indicator("x")\n//@version=4\n', 4, 2),
    ])
    def test_found(self, source, version, line):
        directive = analyze_version_directive(source)
        assert (directive.version, directive.line) == (version, line)
        assert directive.present

    def test_absent_is_compatible(self):
        directive = analyze_version_directive('indicator("x")\n')
        assert not directive.present
        assert directive.is_v6_compatible
        assert directive.to_dict() == {
            "version": None, "line": -1, "isV6Compatible": True, "hasVersionDirective": False,
        }

    def test_outdated_version_warns(self):
        result = quick_validate_syntax_compatibility('//@version=5\nindicator("x")\n')
        assert len(result.violations) == 1
        v = result.violations[0]
        assert v.rule == "SYNTAX_COMPATIBILITY_VALIDATION"
        assert v.severity.value == "warning"
        assert v.category == "version_compatibility"
        assert (v.line, v.column) == (1, 0)
        assert v.message == (
            "Pine Script v5 is outdated. Consider upgrading to v6 for better performance and features."
        )
        assert result.metrics["versionCompatible"] is False

    def test_current_version_clean(self):
        result = quick_validate_syntax_compatibility(SMA_ASSIGNMENT)
        assert result.violations == []
        assert result.metrics["versionAnalysis"]["version"] == 6


class TestDeprecatedFunctions:

    def test_bare_calls_found(self):
        calls = find_deprecated_calls("a = sma(close, 9)\nb = security(syminfo.tickerid, \"D\", close)\n")
        assert [(c.name, c.replacement, c.line, c.column) for c in calls] == [
            ("sma", "ta.sma", 1, 4),
            ("security", "request.security", 2, 4),
        ]
        assert calls[1].namespace == "request"

    def test_violation_text(self):
        v = quick_validate_syntax_compatibility("//@version=6\nr = rsi(close, 14)\n").violations[0]
        assert v.severity.value == "error"
        assert v.category == "deprecated_function"
        assert v.message == "Deprecated function rsi() should be replaced with ta.rsi()"
        assert v.metadata["modernReplacement"] == "ta.rsi"

    @pytest.mark.parametrize("source", [
        "x = ta.sma(close, 9)\n",
        "// x = sma(close, 9)\n",
        's = "sma(close, 9)"\n',
        "sma = 1\n",
        "x = request.security(syminfo.tickerid, \"D\", close)\n",
    ])
    def test_not_flagged(self, source):
        assert find_deprecated_calls(source) == []

    def test_user_definition_skipped(self):
        source = "sma(src, len) => src\nx = sma(close, 3)\n"
        assert [c.line for c in find_deprecated_calls(source)] == [2]


class TestNamespaceRequirements:

    def test_bare_math_call(self):
        v = quick_validate_syntax_compatibility("//@version=6\nd = abs(close - open)\n").violations[0]
        assert v.category == "namespace_requirement"
        assert v.message == "Function abs() requires math namespace. Use math.abs() instead."
        assert v.metadata["requiredNamespace"] == "math"
        assert (v.line, v.column) == (2, 4)

    @pytest.mark.parametrize("source", [
        "d = math.abs(close - open)\n",
        "m = myArray.max()\n",
        "maxValue = 3\n",
    ])
    def test_not_flagged(self, source):
        assert find_namespace_violations(source) == []

    def test_deprecated_name_counted_once(self):
        calls = find_namespace_violations("x = sma(close, 9)\ny = max(1, 2)\n")
        assert [c.name for c in calls] == ["max"]


class TestLegacyScript:

    def test_all_findings(self):
        result = quick_validate_syntax_compatibility(LEGACY_SCRIPT)
        grouped = _by_category(result)
        assert len(grouped["version_compatibility"]) == 1
        assert [v.metadata["deprecatedFunction"] for v in grouped["deprecated_function"]] == ["sma", "rsi"]
        assert [v.metadata["functionName"] for v in grouped["namespace_requirement"]] == ["abs"]
        assert result.metrics["deprecatedFunctionsFound"] == 2
        assert result.metrics["namespaceViolationsFound"] == 1
        assert result.metrics["totalViolations"] == 4

    def test_repeatable(self):
        first = quick_validate_syntax_compatibility(LEGACY_SCRIPT)
        second = quick_validate_syntax_compatibility(LEGACY_SCRIPT)
        assert [v.to_dict() for v in first.violations] == [v.to_dict() for v in second.violations]
