# tests/test_style.py
"""
Tests for the style, declaration, built-in namespace and line
continuation validators.
"""

from pinelint.config import AnalyzerConfig
from pinelint.validators import (
    ValidationContext,
    quick_validate_builtin_namespace,
    quick_validate_line_continuation,
    quick_validate_style,
)
from pinelint.validators.style import validate_declarations, validate_style
from tests.conftest import MINIMAL_INDICATOR, MISSING_DECLARATIONS, STRATEGY_SCRIPT


class TestOperatorSpacing:

    def test_missing_spaces(self):
        result = quick_validate_style("x=a+b\n")
        assert result.rules() == ["operator_spacing"]
        v = result.violations[0]
        assert (v.line, v.column) == (1, 0)
        assert v.severity.value == "suggestion"
        assert v.category == "style_guide"

    def test_column_includes_indentation(self):
        result = quick_validate_style("if c\n    y=1\n")
        assert result.violations[0].column == 4

    def test_spaced_operators_pass(self):
        assert quick_validate_style("x = a + b\n").violations == []

    def test_comment_lines_skipped(self):
        assert quick_validate_style("// x=a+b\n").violations == []


class TestPlotTitle:

    def test_plot_without_title(self):
        result = quick_validate_style("plot(close)\n")
        v = result.violations[0]
        assert v.rule == "plot_title"
        assert v.message == "Consider adding a title to plot() for better readability"
        assert v.column == 0

    def test_plot_with_title(self):
        assert quick_validate_style('plot(close, title = "Close")\n').violations == []

    def test_indented_plot(self):
        result = quick_validate_style("if c\n    plot(close)\n")
        assert (result.violations[0].line, result.violations[0].column) == (2, 4)

    def test_minimal_indicator(self):
        assert quick_validate_style(MINIMAL_INDICATOR).rules() == ["operator_spacing", "plot_title"]


class TestLineLength:

    def test_configured_limit(self):
        context = ValidationContext(config=AnalyzerConfig(max_line_length=20))
        result = validate_style("a = 1 + 2 + 3 + 4 + 5 + 6\n", context)
        assert result.rules() == ["line_length"]
        v = result.violations[0]
        assert v.column == 20
        assert v.message == "Line exceeds recommended length of 20 characters"

    def test_default_limit(self):
        assert quick_validate_style("a = 1 + 2\n").violations == []


class TestGuard:

    def test_internal_failure_becomes_violation(self):
        result = validate_style("x = 1\n", ValidationContext(config=None))
        assert result.failed
        assert result.rules() == ["VALIDATION_ERROR"]
        v = result.violations[0]
        assert (v.line, v.column) == (1, 0)
        assert v.message.startswith("style validation failed:")


class TestDeclarations:

    def test_both_missing(self):
        result = validate_declarations(MISSING_DECLARATIONS)
        assert result.rules() == ["version_declaration", "script_declaration"]
        assert all(v.is_error for v in result.violations)
        assert all((v.line, v.column) == (1, 0) for v in result.violations)

    def test_indicator_script(self):
        assert validate_declarations(MINIMAL_INDICATOR).violations == []

    def test_strategy_script(self):
        assert validate_declarations(STRATEGY_SCRIPT).violations == []

    def test_library_script(self):
        assert validate_declarations('//@version=6\nlibrary("Utils")\n').violations == []

    def test_commented_declaration_ignored(self):
        result = validate_declarations('//@version=6\n// indicator("x")\nx = 1\n')
        assert result.rules() == ["script_declaration"]


class TestBuiltinNamespace:

    def test_namespace_as_variable(self):
        result = quick_validate_builtin_namespace("color = color.red\n")
        assert result.rules() == ["INVALID_OBJECT_NAME_BUILTIN"]
        v = result.violations[0]
        assert v.message == "Invalid object name: color. Namespaces of built-ins cannot be used."
        assert v.suggested_fix == (
            "Use a different variable name instead of 'color', such as "
            "'myColor', 'colorState', or 'colorValue'"
        )
        assert v.category == "naming_validation"
        assert v.metadata == {"conflictingNamespace": "color"}

    def test_indented_assignment_column(self):
        result = quick_validate_builtin_namespace("if c\n    table = 1\n")
        assert (result.violations[0].line, result.violations[0].column) == (2, 4)

    def test_named_argument_not_flagged(self):
        assert quick_validate_builtin_namespace("plot(x, color = color.red)\n").violations == []

    def test_multiline_named_argument_not_flagged(self):
        source = "plot(x,\n     color = color.red)\n"
        assert quick_validate_builtin_namespace(source).violations == []

    def test_member_assignment_not_flagged(self):
        assert quick_validate_builtin_namespace("obj.position = 1\n").violations == []

    def test_reassignment_not_flagged(self):
        assert quick_validate_builtin_namespace("color := 1\n").violations == []

    def test_ordinary_names(self):
        assert quick_validate_builtin_namespace("myColor = 1\n").violations == []


class TestLineContinuation:

    def test_ternary_at_line_end(self):
        result = quick_validate_line_continuation("x = cond ?\n    a : b\n")
        v = result.violations[0]
        assert v.rule == "INVALID_LINE_CONTINUATION"
        assert (v.line, v.column) == (1, 9)
        assert v.metadata == {"issue": "ternary_line_break"}

    def test_ternary_with_trailing_comment(self):
        result = quick_validate_line_continuation("x = cond ? // why\n    a : b\n")
        assert len(result.violations) == 1

    def test_single_line_ternary(self):
        assert quick_validate_line_continuation("x = cond ? a : b\n").violations == []

    def test_question_mark_in_comment(self):
        assert quick_validate_line_continuation("x = 1 // really?\n").violations == []

    def test_string_backslash(self):
        result = quick_validate_line_continuation('s = "abc \\\n')
        v = result.violations[0]
        assert v.metadata == {"issue": "string_literal_continuation"}
        assert v.column == 9
        assert v.category == "syntax_validation"
