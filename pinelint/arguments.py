"""pinelint/arguments.py — Token-backed argument-list scanning.

One routine decides where a call's argument list ends and where each
argument starts, and whether it is named.  The parser builds AST
parameters from it and the source-scanning validators (signature and
input-type checks) read raw argument text from it, so both agree on
nesting, quoting and multi-line edge cases.

Strings are single tokens, so commas and parentheses inside quotes never
confuse the scan.  Layout tokens (newlines, indentation, comments) are
transparent inside an argument list.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

from pinelint.ast import SourceLocation
from pinelint.lexer import LAYOUT_TYPES, Token, TokenType

__all__ = [
    "Argument",
    "ArgumentList",
    "CallSite",
    "scan_arguments",
    "find_call_sites",
    "argument_text",
    "next_significant",
]

_OPENERS = frozenset({TokenType.LPAREN, TokenType.LBRACKET})
_CLOSERS = frozenset({TokenType.RPAREN, TokenType.RBRACKET})


@dataclass(frozen=True, slots=True)
class Argument:
    """Token span of one argument value.

    ``start``/``end`` index the token list (``end`` exclusive) and already
    exclude the ``name =`` prefix of a named argument and surrounding
    layout tokens.  ``start == end`` means the value is missing.
    """

    position: int
    start: int
    end: int
    name: Optional[Token] = None

    @property
    def is_named(self) -> bool:
        return self.name is not None

    @property
    def is_empty(self) -> bool:
        return self.start >= self.end


@dataclass(frozen=True, slots=True)
class ArgumentList:
    open_index: int
    close_index: Optional[int]
    arguments: Tuple[Argument, ...]
    failure: Optional[Token] = None

    @property
    def balanced(self) -> bool:
        return self.close_index is not None

    def named(self) -> Tuple[Argument, ...]:
        return tuple(arg for arg in self.arguments if arg.is_named)


@dataclass(frozen=True, slots=True)
class CallSite:
    """A ``name(`` or ``ns.name(`` occurrence in a token stream."""

    name: str
    location: SourceLocation
    name_index: int
    arguments: ArgumentList

    @property
    def namespace(self) -> Optional[str]:
        head, dot, _ = self.name.rpartition(".")
        return head if dot else None

    @property
    def short_name(self) -> str:
        return self.name.rpartition(".")[2]


def next_significant(tokens: Sequence[Token], index: int, end: int) -> int:
    """First index in ``[index, end)`` that is not a layout token, else *end*."""
    while index < end and tokens[index].type in LAYOUT_TYPES:
        index += 1
    return index


def _last_significant(tokens: Sequence[Token], start: int, end: int) -> int:
    while end > start and tokens[end - 1].type in LAYOUT_TYPES:
        end -= 1
    return end


def _make_argument(
    tokens: Sequence[Token],
    start: int,
    end: int,
    position: int,
) -> Optional[Argument]:
    start = next_significant(tokens, start, end)
    end = _last_significant(tokens, start, end)
    if start >= end:
        return None
    head = tokens[start]
    after = next_significant(tokens, start + 1, end)
    if head.is_name() and after < end:
        op = tokens[after]
        if op.type is TokenType.ASSIGN and op.value == "=":
            value_start = next_significant(tokens, after + 1, end)
            return Argument(position, value_start, end, head)
    return Argument(position, start, end)


def scan_arguments(tokens: Sequence[Token], open_index: int) -> ArgumentList:
    """Split the argument list whose ``(`` sits at *open_index*.

    Stops at the matching ``)``.  If the input ends first, or a stray
    ``]`` closes nothing, the list is returned unbalanced with
    ``failure`` pointing at the token where scanning gave up; arguments
    completed before that point are still reported.
    """
    args: List[Argument] = []
    depth = 0
    seg_start = open_index + 1
    i = open_index + 1

    def close_segment(stop: int) -> None:
        arg = _make_argument(tokens, seg_start, stop, len(args))
        if arg is not None:
            args.append(arg)

    while i < len(tokens):
        tok = tokens[i]
        kind = tok.type
        if kind is TokenType.EOF:
            break
        if kind in _OPENERS:
            depth += 1
        elif kind in _CLOSERS:
            if depth == 0:
                if kind is TokenType.RPAREN:
                    close_segment(i)
                    return ArgumentList(open_index, i, tuple(args))
                return ArgumentList(open_index, None, tuple(args), tok)
            depth -= 1
        elif kind is TokenType.COMMA and depth == 0:
            close_segment(i)
            seg_start = i + 1
        i += 1

    failure = tokens[min(i, len(tokens) - 1)] if tokens else None
    return ArgumentList(open_index, None, tuple(args), failure)


def find_call_sites(tokens: Sequence[Token]) -> Iterator[CallSite]:
    """Yield every ``name(`` / ``a.b.name(`` in *tokens*, nested ones included."""
    for i, tok in enumerate(tokens):
        if tok.type is not TokenType.LPAREN or i == 0 or not tokens[i - 1].is_name():
            continue
        j = i - 1
        parts = [tokens[j].value]
        while j >= 2 and tokens[j - 1].type is TokenType.DOT and tokens[j - 2].is_name():
            j -= 2
            parts.insert(0, tokens[j].value)
        yield CallSite(
            name=".".join(parts),
            location=tokens[j].location,
            name_index=j,
            arguments=scan_arguments(tokens, i),
        )


def argument_text(source: str, tokens: Sequence[Token], arg: Argument) -> str:
    """Raw source text of an argument value (quotes included)."""
    if arg.is_empty:
        return ""
    first = tokens[arg.start].location
    last = tokens[arg.end - 1].location
    return source[first.offset:last.end_offset]
