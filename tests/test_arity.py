# tests/test_arity.py
"""
Tests for the call signature validator: parameter counts, named
argument mapping and per-argument types.
"""

import pytest

from pinelint.arguments import find_call_sites
from pinelint.lexer import tokenize
from pinelint.validators import quick_validate_signature_conformance
from pinelint.validators.arity import check_parameter_count, format_signature
from pinelint.validators.typecheck import expected_params


def _arguments(source):
    site = next(iter(find_call_sites(tokenize(source))))
    return site.arguments.arguments


class TestParameterCount:

    def test_valid(self):
        check = check_parameter_count("ta.sma", expected_params("ta.sma"), _arguments("ta.sma(close, 14)"))
        assert check.is_valid
        assert check.reason == "valid_count"

    def test_missing(self):
        check = check_parameter_count("ta.sma", expected_params("ta.sma"), _arguments("ta.sma(close)"))
        assert not check.is_valid
        assert check.reason == "missing_required_parameters"
        assert check.missing == ("length",)
        assert check.message == "Function ta.sma requires at least 2 parameters but got 1"

    def test_too_many(self):
        check = check_parameter_count("ta.sma", expected_params("ta.sma"), _arguments("ta.sma(close, 14, 1)"))
        assert check.reason == "too_many_parameters"
        assert check.extra == 1
        assert check.message == "Function ta.sma accepts at most 2 parameters but got 3"

    def test_named_arguments_fill_required(self):
        args = _arguments("ta.sma(length=14, source=close)")
        assert check_parameter_count("ta.sma", expected_params("ta.sma"), args).is_valid

    def test_optional_parameter_may_be_omitted(self):
        assert check_parameter_count("alert", expected_params("alert"), _arguments('alert("x")')).is_valid

    def test_unknown_signature(self):
        assert check_parameter_count("myFunc", (), _arguments("myFunc(1)")).reason == "no_signature"

    def test_format_signature(self):
        assert format_signature(expected_params("alert")) == "message: series string, freq: identifier?"


class TestValidateSignatureConformance:

    def test_well_formed_calls(self):
        source = 'x = ta.sma(close, 14)\ny = math.max(1, 2.5)\nalert("hi", alert.freq_once_per_bar)\n'
        result = quick_validate_signature_conformance(source)
        assert result.violations == []
        assert result.metrics["functionsAnalyzed"] == 3
        assert result.metrics["typeChecksPerformed"] == 6

    def test_missing_parameter_reported(self):
        result = quick_validate_signature_conformance("x = ta.sma(close)\n")
        assert len(result.violations) == 1
        v = result.violations[0]
        assert v.rule == "FUNCTION_SIGNATURE_VALIDATION"
        assert v.severity.value == "error"
        assert v.category == "function_signature"
        assert v.message == (
            "FUNCTION_SIGNATURE_VALIDATION: Function ta.sma requires at least 2 parameters but got 1"
        )
        assert (v.line, v.column) == (1, 4)
        assert v.metadata["reason"] == "missing_required_parameters"
        assert v.metadata["missingParams"] == ["length"]
        assert v.metadata["actualParameters"] == ["close"]
        assert v.metadata["expectedSignature"] == "source: series int/float, length: series int"

    def test_extra_parameters_listed(self):
        v = quick_validate_signature_conformance("x = ta.ema(close, 9, 3)\n").violations[0]
        assert v.metadata["reason"] == "too_many_parameters"
        assert v.metadata["extraParams"] == ["3"]

    def test_count_failure_skips_type_checks(self):
        result = quick_validate_signature_conformance('x = ta.sma("a")\n')
        assert [v.metadata["reason"] for v in result.violations] == ["missing_required_parameters"]
        assert result.metrics["typeChecksPerformed"] == 0

    def test_type_mismatch(self):
        result = quick_validate_signature_conformance('x = ta.sma(close, "14")\n')
        v = result.violations[0]
        assert v.message == (
            "FUNCTION_SIGNATURE_VALIDATION: Parameter 'length' expects type 'series int' but got 'string'"
        )
        assert v.metadata["parameterName"] == "length"
        assert v.metadata["parameterIndex"] == 1
        assert v.metadata["actualType"] == "string"

    def test_named_argument_type_uses_its_parameter(self):
        result = quick_validate_signature_conformance('b = str.contains(substring=1, source="abc")\n')
        assert [v.metadata["parameterName"] for v in result.violations] == ["substring"]

    @pytest.mark.parametrize("source", [
        "x = myFunc(1, 2, 3)\n",
        "x = ta.rsi(close)\n",
        '// ta.sma(close)\n',
        's = "ta.sma(close)"\n',
    ])
    def test_nothing_to_check(self, source):
        assert quick_validate_signature_conformance(source).violations == []
