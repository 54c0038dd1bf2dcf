# tests/test_lexer.py
"""
Tests for the tokenizer: source text → token list.
"""

import pytest

from pinelint.lexer import KEYWORDS, TokenType, tokenize


def _kinds(source):
    return [t.type for t in tokenize(source) if t.type is not TokenType.EOF]


def _values(source):
    return [t.value for t in tokenize(source) if t.type is not TokenType.EOF]


class TestTokenizeBasics:

    def test_empty_source_is_just_eof(self):
        tokens = tokenize("")
        assert len(tokens) == 1
        assert tokens[0].type is TokenType.EOF

    def test_none_is_treated_as_empty(self):
        assert tokenize(None)[-1].type is TokenType.EOF

    def test_always_ends_with_eof(self):
        assert tokenize("plot(close)")[-1].type is TokenType.EOF

    def test_simple_call(self):
        assert _kinds("plot(close)") == [
            TokenType.IDENTIFIER, TokenType.LPAREN,
            TokenType.IDENTIFIER, TokenType.RPAREN,
        ]

    def test_locations_are_line_one_based_column_zero_based(self):
        tokens = tokenize("a = 1\nb = 2")
        b = [t for t in tokens if t.value == "b"][0]
        assert b.line == 2
        assert b.column == 0
        assert b.location.offset == 6

    def test_unknown_character_becomes_error_token(self):
        tokens = tokenize("a @ b")
        assert [t.type for t in tokens][:3] == [
            TokenType.IDENTIFIER, TokenType.ERROR, TokenType.IDENTIFIER,
        ]
        assert tokens[1].value == "@"
        assert tokens[1].location.length == 1


class TestWords:

    def test_keywords(self):
        assert _kinds("indicator var if") == [TokenType.KEYWORD] * 3

    def test_booleans(self):
        assert _kinds("true false") == [TokenType.BOOLEAN, TokenType.BOOLEAN]

    def test_logical_words(self):
        assert _kinds("and or not") == [TokenType.LOGICAL] * 3

    def test_na_is_keyword(self):
        assert "na" in KEYWORDS
        assert _kinds("na") == [TokenType.KEYWORD]

    def test_identifier_with_underscore_and_digits(self):
        assert _values("my_var2") == ["my_var2"]
        assert _kinds("my_var2") == [TokenType.IDENTIFIER]


class TestLiterals:

    @pytest.mark.parametrize("text", ["14", "3.14", ".5", "1e10", "2.5E-3"])
    def test_numbers(self, text):
        assert _kinds(text) == [TokenType.NUMBER]
        assert _values(text) == [text]

    def test_negative_number_literal(self):
        assert _kinds("-1") == [TokenType.NUMBER]
        assert _values("-1") == ["-1"]

    def test_minus_with_space_is_operator(self):
        assert _kinds("a - 1") == [
            TokenType.IDENTIFIER, TokenType.ARITHMETIC, TokenType.NUMBER,
        ]

    @pytest.mark.parametrize("text", ["length-1", "bar_index-1", "10-5", "close[1]-2", "f(x)-3"])
    def test_unspaced_minus_after_operand_is_operator(self, text):
        assert _kinds(text)[-2:] == [TokenType.ARITHMETIC, TokenType.NUMBER]
        assert not _values(text)[-1].startswith("-")

    @pytest.mark.parametrize("text", ["f(-3)", "f(a, -3)", "x = -3", "a + -3", "a\n-3"])
    def test_minus_after_separator_or_operator_is_sign(self, text):
        assert "-3" in _values(text)

    def test_double_quoted_string(self):
        tokens = tokenize('"hello"')
        assert tokens[0].type is TokenType.STRING
        assert tokens[0].value == "hello"
        assert tokens[0].location.length == 7

    def test_single_quoted_string(self):
        assert _values("'hi'") == ["hi"]

    def test_escapes_are_decoded(self):
        assert _values(r'"a\nb\"c"') == ['a\nb"c']

    def test_unknown_escape_kept_literally(self):
        assert _values(r'"a\qb"') == ["aqb"]

    def test_unterminated_string_runs_to_end(self):
        tokens = tokenize('"abc')
        assert tokens[0].type is TokenType.STRING
        assert tokens[0].value == "abc"
        assert tokens[0].location.length == 4

    def test_string_keeps_commas_and_parens(self):
        assert _kinds('f("a, (b)")') == [
            TokenType.IDENTIFIER, TokenType.LPAREN, TokenType.STRING, TokenType.RPAREN,
        ]

    def test_multiline_string_advances_line(self):
        tokens = tokenize('"a\nb" x')
        x = [t for t in tokens if t.value == "x"][0]
        assert x.line == 2

    @pytest.mark.parametrize("text", ["#ff0000", "#FF0000CC"])
    def test_hex_colors(self, text):
        assert _kinds(text) == [TokenType.COLOR]

    def test_short_hash_is_error(self):
        assert _kinds("#fff")[0] is TokenType.ERROR


class TestOperators:

    @pytest.mark.parametrize("op", ["=", ":=", "=>", "+=", "-=", "*=", "/=", "%="])
    def test_assignment_operators(self, op):
        assert _kinds(f"a {op} b")[1] is TokenType.ASSIGN
        assert _values(f"a {op} b")[1] == op

    @pytest.mark.parametrize("op", ["==", "!=", "<", ">", "<=", ">="])
    def test_comparison_operators(self, op):
        assert _kinds(f"a {op} b")[1] is TokenType.COMPARISON

    def test_punctuation(self):
        assert _kinds("? : , . [ ]") == [
            TokenType.QUESTION, TokenType.COLON, TokenType.COMMA,
            TokenType.DOT, TokenType.LBRACKET, TokenType.RBRACKET,
        ]

    def test_namespaced_color_is_three_tokens(self):
        assert _kinds("color.red") == [
            TokenType.KEYWORD, TokenType.DOT, TokenType.IDENTIFIER,
        ]


class TestLayout:

    def test_comment_body_is_trimmed(self):
        tokens = tokenize("// hello world  ")
        assert tokens[0].type is TokenType.COMMENT
        assert tokens[0].value == "hello world"

    def test_version_directive_is_comment(self):
        tokens = tokenize("//@version=6")
        assert tokens[0].type is TokenType.COMMENT
        assert tokens[0].value == "@version=6"

    def test_indent_and_dedent(self):
        kinds = _kinds("if x\n    y\nz")
        assert TokenType.INDENT in kinds
        assert TokenType.DEDENT in kinds
        assert kinds.index(TokenType.INDENT) < kinds.index(TokenType.DEDENT)

    def test_tab_counts_as_four(self):
        tokens = tokenize("a\n\tb")
        indent = [t for t in tokens if t.type is TokenType.INDENT][0]
        assert indent.location.length == 4

    def test_blank_and_comment_lines_do_not_change_indent(self):
        kinds = _kinds("a\n\n    // note\nb")
        assert TokenType.INDENT not in kinds
        assert TokenType.DEDENT not in kinds

    def test_newline_tokens(self):
        assert _kinds("a\nb").count(TokenType.NEWLINE) == 1
