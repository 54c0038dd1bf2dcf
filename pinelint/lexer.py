"""pinelint/lexer.py — Single-pass tokenizer for trading scripts.

Design principles
-----------------
* ``tokenize`` is total: it never raises.  A character it does not
  understand becomes an ``ERROR`` token with its own location and
  scanning carries on, so the parser can always make progress.
* One forward scan, no backtracking beyond a two-character lookahead.
* Indentation at the start of a physical line produces ``INDENT`` /
  ``DEDENT`` tokens; blank and comment-only lines are layout-neutral.
* ``line`` is 1-based, ``column`` and ``offset`` are 0-based and stay
  correct through multi-line strings.

Public API
----------
``tokenize(source) -> List[Token]``
``Lexer(source).tokens()``
``KEYWORDS``
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from pinelint.ast import SourceLocation

logger = logging.getLogger(__name__)

__all__ = ["TokenType", "Token", "KEYWORDS", "Lexer", "tokenize"]


class TokenType(Enum):
    STRING = "STRING"
    NUMBER = "NUMBER"
    BOOLEAN = "BOOLEAN"
    COLOR = "COLOR"
    IDENTIFIER = "IDENTIFIER"
    KEYWORD = "KEYWORD"
    ASSIGN = "ASSIGN"
    ARITHMETIC = "ARITHMETIC"
    COMPARISON = "COMPARISON"
    LOGICAL = "LOGICAL"
    LPAREN = "LPAREN"
    RPAREN = "RPAREN"
    LBRACKET = "LBRACKET"
    RBRACKET = "RBRACKET"
    COMMA = "COMMA"
    DOT = "DOT"
    QUESTION = "QUESTION"
    COLON = "COLON"
    NEWLINE = "NEWLINE"
    INDENT = "INDENT"
    DEDENT = "DEDENT"
    COMMENT = "COMMENT"
    EOF = "EOF"
    ERROR = "ERROR"


#: Tokens that only carry layout and are transparent inside argument lists.
LAYOUT_TYPES = frozenset({
    TokenType.NEWLINE,
    TokenType.INDENT,
    TokenType.DEDENT,
    TokenType.COMMENT,
})

#: Tokens that may serve as a name (``strategy.long``, ``color = …``).
NAME_TYPES = frozenset({TokenType.IDENTIFIER, TokenType.KEYWORD})

#: Tokens after which a `-` is a binary operator rather than a sign.
OPERAND_END_TYPES = frozenset({
    TokenType.IDENTIFIER,
    TokenType.KEYWORD,
    TokenType.NUMBER,
    TokenType.STRING,
    TokenType.BOOLEAN,
    TokenType.COLOR,
    TokenType.RPAREN,
    TokenType.RBRACKET,
})


KEYWORDS = frozenset({
    # declarations
    "indicator", "strategy", "library", "var", "varip",
    # control flow
    "if", "else", "for", "while", "break", "continue", "switch",
    # built-in types
    "int", "float", "bool", "string", "color", "line", "label", "box",
    "table", "array", "matrix", "series", "simple",
    # constants
    "true", "false", "na",
    # operators
    "and", "or", "not",
    # modules
    "import", "export", "method",
})

_LOGICAL_WORDS = frozenset({"and", "or", "not"})
_BOOLEAN_WORDS = frozenset({"true", "false"})

_SINGLE_CHAR_TYPES = {
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    ",": TokenType.COMMA,
    ".": TokenType.DOT,
    "?": TokenType.QUESTION,
    ":": TokenType.COLON,
    "=": TokenType.ASSIGN,
    "+": TokenType.ARITHMETIC,
    "-": TokenType.ARITHMETIC,
    "*": TokenType.ARITHMETIC,
    "/": TokenType.ARITHMETIC,
    "%": TokenType.ARITHMETIC,
    "<": TokenType.COMPARISON,
    ">": TokenType.COMPARISON,
}

_TWO_CHAR_TYPES = {
    ":=": TokenType.ASSIGN,
    "=>": TokenType.ASSIGN,
    "+=": TokenType.ASSIGN,
    "-=": TokenType.ASSIGN,
    "*=": TokenType.ASSIGN,
    "/=": TokenType.ASSIGN,
    "%=": TokenType.ASSIGN,
    "==": TokenType.COMPARISON,
    "!=": TokenType.COMPARISON,
    "<=": TokenType.COMPARISON,
    ">=": TokenType.COMPARISON,
}

_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "\\": "\\",
    '"': '"',
    "'": "'",
}

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")
_TAB_WIDTH = 4


@dataclass(frozen=True, slots=True)
class Token:
    type: TokenType
    value: str
    location: SourceLocation

    @property
    def line(self) -> int:
        return self.location.line

    @property
    def column(self) -> int:
        return self.location.column

    def is_name(self) -> bool:
        return self.type in NAME_TYPES

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.location})"


class Lexer:
    """Hand-written scanner; one instance per source text."""

    def __init__(self, source: str) -> None:
        self.source = source
        self.pos = 0
        self.line = 1
        self.column = 0
        self._indent_stack: List[int] = [0]
        self._at_line_start = True
        self._last_type: Optional[TokenType] = None

    # ── public ───────────────────────────────────────────────────────

    def tokens(self) -> List[Token]:
        out: List[Token] = []
        while True:
            tok = self._next_token()
            if tok is None:
                break
            out.append(tok)
            if tok.type is not TokenType.COMMENT:
                self._last_type = tok.type
        out.append(self._make(TokenType.EOF, "", self.line, self.column, self.pos))
        logger.debug("tokenized %d chars into %d tokens", len(self.source), len(out))
        return out

    # ── character helpers ────────────────────────────────────────────

    def _at_end(self) -> bool:
        return self.pos >= len(self.source)

    def _peek(self, ahead: int = 0) -> str:
        idx = self.pos + ahead
        return self.source[idx] if idx < len(self.source) else "\0"

    def _advance(self) -> str:
        ch = self.source[self.pos]
        self.pos += 1
        if ch == "\n":
            self.line += 1
            self.column = 0
        else:
            self.column += 1
        return ch

    def _make(
        self,
        kind: TokenType,
        value: str,
        line: int,
        column: int,
        start: int,
    ) -> Token:
        return Token(kind, value, SourceLocation(line, column, start, self.pos - start))

    # ── scanning ─────────────────────────────────────────────────────

    def _next_token(self) -> Optional[Token]:
        while not self._at_end():
            if self._at_line_start:
                tok = self._indentation()
                if tok is not None:
                    return tok
                if self._at_end():
                    break
            ch = self._peek()
            if ch in " \t\r":
                self._advance()
                continue
            return self._scan(ch)
        return None

    def _scan(self, ch: str) -> Token:
        start, line, column = self.pos, self.line, self.column

        if ch == "\n":
            self._advance()
            self._at_line_start = True
            return self._make(TokenType.NEWLINE, "\n", line, column, start)

        if ch == "/" and self._peek(1) == "/":
            return self._comment(start, line, column)

        if ch in "\"'":
            return self._string(start, line, column)

        if ch.isdigit() or (ch == "." and self._peek(1).isdigit()):
            return self._number(start, line, column)

        if ch == "-" and self._peek(1).isdigit() and self._last_type not in OPERAND_END_TYPES:
            self._advance()
            return self._number(start, line, column)

        if ch == "#" and self._hex_run() in (6, 8):
            for _ in range(1 + self._hex_run()):
                self._advance()
            return self._make(TokenType.COLOR, self.source[start:self.pos], line, column, start)

        if ch.isalpha() or ch == "_":
            return self._word(start, line, column)

        pair = ch + self._peek(1)
        if pair in _TWO_CHAR_TYPES:
            self._advance()
            self._advance()
            return self._make(_TWO_CHAR_TYPES[pair], pair, line, column, start)

        self._advance()
        return self._make(_SINGLE_CHAR_TYPES.get(ch, TokenType.ERROR), ch, line, column, start)

    def _indentation(self) -> Optional[Token]:
        """Measure leading whitespace and emit INDENT/DEDENT if it changed."""
        start, line = self.pos, self.line
        width = 0
        while self._peek() in " \t":
            width += _TAB_WIDTH if self._peek() == "\t" else 1
            self._advance()
        self._at_line_start = False

        nxt = self._peek()
        if self._at_end() or nxt in "\r\n" or (nxt == "/" and self._peek(1) == "/"):
            return None

        top = self._indent_stack[-1]
        if width > top:
            self._indent_stack.append(width)
            return Token(TokenType.INDENT, " " * width, SourceLocation(line, 0, start, width))
        if width < top:
            while len(self._indent_stack) > 1 and self._indent_stack[-1] > width:
                self._indent_stack.pop()
            return Token(TokenType.DEDENT, " " * width, SourceLocation(line, 0, start, width))
        return None

    def _comment(self, start: int, line: int, column: int) -> Token:
        self._advance()
        self._advance()
        while not self._at_end() and self._peek() != "\n":
            self._advance()
        body = self.source[start + 2:self.pos].strip()
        return self._make(TokenType.COMMENT, body, line, column, start)

    def _string(self, start: int, line: int, column: int) -> Token:
        quote = self._advance()
        chars: List[str] = []
        while not self._at_end() and self._peek() != quote:
            ch = self._advance()
            if ch == "\\" and not self._at_end():
                esc = self._advance()
                chars.append(_ESCAPES.get(esc, esc))
            else:
                chars.append(ch)
        if not self._at_end():
            self._advance()
        return self._make(TokenType.STRING, "".join(chars), line, column, start)

    def _number(self, start: int, line: int, column: int) -> Token:
        seen_dot = False
        while self._peek().isdigit() or (self._peek() == "." and not seen_dot):
            if self._peek() == ".":
                seen_dot = True
            self._advance()
        if self._peek() in "eE" and (
            self._peek(1).isdigit()
            or (self._peek(1) in "+-" and self._peek(2).isdigit())
        ):
            self._advance()
            if self._peek() in "+-":
                self._advance()
            while self._peek().isdigit():
                self._advance()
        return self._make(TokenType.NUMBER, self.source[start:self.pos], line, column, start)

    def _word(self, start: int, line: int, column: int) -> Token:
        while self._peek().isalnum() or self._peek() == "_":
            self._advance()
        word = self.source[start:self.pos]
        if word in _BOOLEAN_WORDS:
            kind = TokenType.BOOLEAN
        elif word in _LOGICAL_WORDS:
            kind = TokenType.LOGICAL
        elif word in KEYWORDS:
            kind = TokenType.KEYWORD
        else:
            kind = TokenType.IDENTIFIER
        return self._make(kind, word, line, column, start)

    def _hex_run(self) -> int:
        n = 0
        while self._peek(1 + n) in _HEX_DIGITS:
            n += 1
        return n


def tokenize(source: str) -> List[Token]:
    """Turn *source* into a token list ending with ``EOF``."""
    return Lexer(source or "").tokens()
