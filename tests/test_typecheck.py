# tests/test_typecheck.py
"""
Tests for argument type inference and the input-type validator.
"""

import pytest

from pinelint.validators import quick_validate_input_types
from pinelint.validators.typecheck import compare_types, expected_params, infer_type


class TestInferType:

    @pytest.mark.parametrize("text,expected", [
        ('"abc"', "string"),
        ("'abc'", "string"),
        ("true", "bool"),
        ("false", "bool"),
        ("14", "int"),
        ("-3", "int"),
        ("2.5", "float"),
        (".5", "float"),
        ("#ff0000", "color"),
        ("color.red", "color"),
        ("close", "series float"),
        ("volume", "series float"),
        ("myValue", "series"),
        ("ta.sma(close, 14)", "series float"),
        ("str.tostring(x)", "string"),
        ("myFunc(1)", "function_result"),
        ("close * 2", "expression"),
        ("", "unknown"),
        (None, "unknown"),
    ])
    def test_infer(self, text, expected):
        assert infer_type(text) == expected


class TestCompareTypes:

    @pytest.mark.parametrize("expected,actual,reason", [
        ("series int", "series int", "exact_match"),
        ("series int/float", "series float", "series_numeric_compatible"),
        ("series int/float", "series", "series_unknown_base"),
        ("series int", "int", "series_accepts_simple"),
        ("series int/float", "float", "series_accepts_simple"),
        ("int/float", "int", "numeric_compatible"),
        ("string", "function_result", "function_result_unknown"),
        ("bool", "expression", "expression_unknown"),
        ("identifier", "series", "identifier_accepts_any"),
        ("identifier", "string", "identifier_accepts_any"),
    ])
    def test_compatible(self, expected, actual, reason):
        comparison = compare_types(expected, actual)
        assert comparison.is_valid
        assert comparison.reason == reason

    @pytest.mark.parametrize("expected,actual,reason", [
        ("string", "series float", "requires_string"),
        ("int/float", "string", "requires_numeric"),
        ("bool", "int", "requires_boolean"),
        ("series int", "string", "incompatible_types"),
        ("int", "series", "incompatible_types"),
        ("", "int", "missing_type_info"),
    ])
    def test_incompatible(self, expected, actual, reason):
        comparison = compare_types(expected, actual)
        assert not comparison.is_valid
        assert comparison.reason == reason


class TestValidateInputTypes:

    def test_string_length_rejected(self):
        result = quick_validate_input_types('x = ta.sma(close, "14")')
        assert len(result.violations) == 1
        v = result.violations[0]
        assert v.rule == "INPUT_TYPE_MISMATCH"
        assert v.message == (
            "Parameter 2 of ta.sma() expects series int but got string. (INPUT_TYPE_MISMATCH)"
        )
        assert v.category == "type_validation"
        assert (v.line, v.column) == (1, 4)
        assert v.metadata["parameterName"] == "length"

    def test_valid_call(self):
        assert quick_validate_input_types("x = ta.sma(close, 14)").violations == []

    def test_user_variable_as_source(self):
        assert quick_validate_input_types("x = ta.ema(mySeries, 9)").violations == []

    def test_named_argument_mapped_by_name(self):
        result = quick_validate_input_types('x = ta.sma(length="5", source=close)')
        assert [v.metadata["parameterName"] for v in result.violations] == ["length"]

    def test_numeric_function_rejects_string(self):
        result = quick_validate_input_types('m = math.max(1, "a")')
        assert result.violations[0].metadata["reason"] == "requires_numeric"

    def test_string_function_rejects_series(self):
        result = quick_validate_input_types('b = str.contains(close, "x")')
        assert result.violations[0].metadata["expectedType"] == "string"

    def test_nested_call_argument_checked(self):
        result = quick_validate_input_types('plot(ta.sma(close, "14"))')
        assert len(result.violations) == 1

    def test_alert_frequency_constant(self):
        source = 'alert("Cross!", alert.freq_once_per_bar)'
        assert quick_validate_input_types(source).violations == []

    def test_alert_named_frequency(self):
        source = 'alert("Cross!", freq=alert.freq_all)'
        assert quick_validate_input_types(source).violations == []

    def test_alert_message_still_checked(self):
        result = quick_validate_input_types("alert(close, alert.freq_once_per_bar)")
        assert [v.metadata["parameterName"] for v in result.violations] == ["message"]

    def test_unknown_functions_ignored(self):
        result = quick_validate_input_types('myFunc("a", 1)')
        assert result.violations == []
        assert result.metrics["functionsAnalyzed"] == 1
        assert result.metrics["typeChecksPerformed"] == 0

    def test_extra_arguments_ignored(self):
        assert quick_validate_input_types("x = ta.sma(close, 14, 99)").violations == []

    def test_comments_and_strings_do_not_create_calls(self):
        source = '// ta.sma(close, "14")\ns = "ta.sma(close, \\"14\\")"\n'
        assert quick_validate_input_types(source).violations == []

    def test_metrics_count_checks(self):
        result = quick_validate_input_types("x = ta.sma(close, 14)")
        assert result.metrics["typeChecksPerformed"] == 2

    def test_expected_params_table(self):
        assert [p.name for p in expected_params("ta.sma")] == ["source", "length"]
        assert expected_params("unknown.fn") == ()
