"""
pinelint/parser.py — Recursive-descent parser for trading scripts.

Design principles
-----------------
* Only the constructs the validators need are modelled: function calls
  (plain and namespaced), assignments, and the argument values of calls
  (literals, names, dotted member chains, nested calls).  Any other
  statement is skipped token by token.
* Every parse step returns ``Ok(node)`` or ``Err(ParseError)``.  The
  statement loop records the error, synchronizes to the next newline or
  keyword and carries on; one malformed statement never aborts the
  parse.
* Argument lists are split by :func:`pinelint.arguments.scan_arguments`,
  the same scanner the source-level validators use.

Public API
----------
``parse_script(source, max_nesting_depth=200) -> ParseResult``
``detect_version(source) -> str``
``Parser(tokens).parse_program()``
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pinelint.arguments import next_significant, scan_arguments
from pinelint.ast import (
    DataType,
    Declaration,
    DeclarationType,
    Expression,
    FunctionCall,
    Identifier,
    IdentifierKind,
    Literal,
    MemberExpression,
    Parameter,
    Program,
    ProgramMetadata,
    SourceLocation,
    count_nodes,
    max_depth,
)
from pinelint.errors import (
    Err,
    ErrorCollector,
    Ok,
    ParseError,
    PineErrorCodes,
    Result,
)
from pinelint.lexer import Token, TokenType, tokenize

logger = logging.getLogger(__name__)

__all__ = [
    "ParseMetrics",
    "ParseResult",
    "Parser",
    "parse_script",
    "detect_version",
    "DEFAULT_VERSION",
    "SCRIPT_DECLARATIONS",
]

DEFAULT_VERSION = "v6"
SCRIPT_DECLARATIONS = frozenset({"indicator", "strategy", "library"})

_VERSION_RE = re.compile(r"^//@version\s*=\s*(\d+)", re.MULTILINE)

_VALUE_STARTS = frozenset({
    TokenType.STRING,
    TokenType.NUMBER,
    TokenType.BOOLEAN,
    TokenType.COLOR,
    TokenType.IDENTIFIER,
    TokenType.KEYWORD,
})

_EXPRESSION_OPENERS = frozenset({
    TokenType.ARITHMETIC,
    TokenType.LOGICAL,
    TokenType.LPAREN,
    TokenType.LBRACKET,
})

_CONTROL_WORDS = frozenset({"if", "else", "for", "while", "switch"})

_ASSIGNMENT_OPS = {
    "=": DeclarationType.ASSIGNMENT,
    ":=": DeclarationType.REASSIGNMENT,
    "+=": DeclarationType.REASSIGNMENT,
    "-=": DeclarationType.REASSIGNMENT,
    "*=": DeclarationType.REASSIGNMENT,
    "/=": DeclarationType.REASSIGNMENT,
    "%=": DeclarationType.REASSIGNMENT,
}


def detect_version(source: str) -> str:
    """``"v<N>"`` from the first ``//@version=N`` line, else the default."""
    match = _VERSION_RE.search(source or "")
    return f"v{match.group(1)}" if match else DEFAULT_VERSION


@dataclass(frozen=True, slots=True)
class ParseMetrics:
    parse_time_ms: float = 0.0
    node_count: int = 0
    max_depth: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "parseTimeMs": self.parse_time_ms,
            "nodeCount": self.node_count,
            "maxDepth": self.max_depth,
        }


@dataclass(frozen=True)
class ParseResult:
    ast: Program
    errors: Tuple[ParseError, ...] = ()
    warnings: Tuple[ParseError, ...] = ()
    metrics: ParseMetrics = field(default_factory=ParseMetrics)

    @property
    def success(self) -> bool:
        return not self.errors


class Parser:
    """Statement-level recursive-descent parser over a token list."""

    def __init__(self, tokens: Sequence[Token], *, max_nesting_depth: int = 200) -> None:
        self.tokens = list(tokens)
        if not self.tokens or self.tokens[-1].type is not TokenType.EOF:
            end = self.tokens[-1].location if self.tokens else SourceLocation(1, 0, 0, 0)
            self.tokens.append(Token(TokenType.EOF, "", end))
        self.pos = 0
        self.max_nesting_depth = max_nesting_depth
        self.diagnostics = ErrorCollector()
        self._trailing: List[FunctionCall] = []

    # ── token helpers ────────────────────────────────────────────────

    def _peek(self, ahead: int = 0) -> Token:
        idx = min(self.pos + ahead, len(self.tokens) - 1)
        return self.tokens[idx]

    def _at_end(self) -> bool:
        return self._peek().type is TokenType.EOF

    def _advance(self) -> Token:
        tok = self._peek()
        if not self._at_end():
            self.pos += 1
        return tok

    def _fail(self, code, message: str, index: int) -> Err:
        self.pos = min(index, len(self.tokens) - 1)
        return Err(ParseError.from_code(code, message, self.tokens[self.pos].location))

    def _warn(self, message: str, tok: Token) -> None:
        self.diagnostics.add(
            ParseError.from_code(PineErrorCodes.UNEXPECTED_EXPRESSION, message, tok.location)
        )

    def synchronize(self) -> None:
        """Skip past the failure point to the next newline or keyword."""
        self.diagnostics.note_recovery()
        self._advance()
        while not self._at_end():
            kind = self._peek().type
            if kind is TokenType.NEWLINE or kind is TokenType.KEYWORD:
                return
            self._advance()

    # ── program ──────────────────────────────────────────────────────

    def parse_program(self, source: str = "") -> Program:
        body: List[Any] = []
        statements: List[FunctionCall] = []
        declarations: List[Declaration] = []
        script_type: Optional[str] = None

        while not self._at_end():
            tok = self._peek()
            if not tok.is_name():
                self._advance()
                continue
            result = self._statement()
            if result is None:
                continue
            if isinstance(result, Err):
                self.diagnostics.add(result.error)
                self._trailing.clear()
                self.synchronize()
                continue

            node = result.value
            body.append(node)
            if isinstance(node, FunctionCall):
                statements.append(node)
                if node.namespace is None and node.name in SCRIPT_DECLARATIONS:
                    script_type = node.name
            else:
                declarations.append(node)
                if isinstance(node.value, FunctionCall):
                    statements.append(node.value)
            statements.extend(self._trailing)
            self._trailing.clear()

        return Program(
            body=tuple(body),
            statements=tuple(statements),
            declarations=tuple(declarations),
            metadata=ProgramMetadata(detect_version(source), script_type),
            location=SourceLocation(1, 0, 0, len(source)),
        )

    # ── statements ───────────────────────────────────────────────────

    def _statement(self) -> Optional[Result]:
        """Parse one statement starting at a name, or skip and return None."""
        head = self._peek()
        nxt = self._peek(1)

        if head.value in _CONTROL_WORDS:
            self._advance()
            return None

        if nxt.type is TokenType.ASSIGN and nxt.value in _ASSIGNMENT_OPS:
            return self._assignment()

        if nxt.type is TokenType.LPAREN or nxt.type is TokenType.DOT:
            start = self.pos
            chain = self._dotted_chain()
            if isinstance(chain, Err):
                return chain
            if self._peek().type is TokenType.LPAREN:
                self.pos = start
                return self._primary(len(self.tokens), depth=0)
            return None

        self._advance()
        logger.debug("skipping token %r at %s", head.value, head.location)
        return None

    def _assignment(self) -> Result:
        name_tok = self._advance()
        op = self._advance()
        value: Optional[Expression] = None
        data_type: Optional[DataType] = None

        if self._peek().type in _VALUE_STARTS:
            result = self._primary(len(self.tokens), depth=0)
            if isinstance(result, Err):
                return result
            value = result.value
            if isinstance(value, Literal):
                data_type = value.data_type

        return Ok(Declaration(
            name=name_tok.value,
            value=value,
            declaration_type=_ASSIGNMENT_OPS[op.value],
            data_type=data_type,
            location=name_tok.location,
        ))

    # ── expressions ──────────────────────────────────────────────────

    def _dotted_chain(self) -> Result:
        """Consume ``name(.name)*`` and return the Identifier/MemberExpression."""
        head = self._advance()
        kind = IdentifierKind.KEYWORD if head.type is TokenType.KEYWORD else IdentifierKind.VARIABLE
        expr: Any = Identifier(head.value, kind=kind, location=head.location)
        while self._peek().type is TokenType.DOT:
            self._advance()
            member = self._peek()
            if not member.is_name():
                return self._fail(
                    PineErrorCodes.EXPECTED_IDENTIFIER,
                    "Expected identifier after dot",
                    self.pos,
                )
            self._advance()
            expr = MemberExpression(
                object=expr,
                property=Identifier(member.value, location=member.location),
                location=head.location,
            )
        return Ok(expr)

    def _primary(self, end: int, depth: int) -> Result:
        """Parse one value expression starting at ``self.pos`` (bounded by *end*)."""
        tok = self._peek()
        kind = tok.type

        if kind is TokenType.STRING:
            self._advance()
            return Ok(Literal(tok.value, DataType.STRING, f'"{tok.value}"', tok.location))

        if kind is TokenType.NUMBER:
            self._advance()
            return Ok(Literal.of(_number_value(tok.value), tok.value, tok.location))

        if kind is TokenType.BOOLEAN:
            self._advance()
            return Ok(Literal(tok.value == "true", DataType.BOOLEAN, tok.value, tok.location))

        if kind is TokenType.COLOR:
            self._advance()
            return Ok(Literal(tok.value, DataType.COLOR, tok.value, tok.location))

        if tok.is_name():
            chain = self._dotted_chain()
            if isinstance(chain, Err):
                return chain
            expr = chain.value
            if self.pos < end and self._peek().type is TokenType.LPAREN:
                if isinstance(expr, MemberExpression):
                    namespace = _dotted(expr.object)
                    return self._call(expr.property.name, namespace, tok.location, depth)
                return self._call(expr.name, None, tok.location, depth)
            return Ok(expr)

        self._advance()
        if kind not in _EXPRESSION_OPENERS:
            self._warn(f"Unexpected token in expression: {tok.value}", tok)
        return Ok(Literal(tok.value, DataType.UNKNOWN, tok.value, tok.location))

    def _call(
        self,
        name: str,
        namespace: Optional[str],
        location: SourceLocation,
        depth: int,
    ) -> Result:
        """Parse an argument list; ``self.pos`` sits on the ``(``."""
        if depth >= self.max_nesting_depth:
            return self._fail(
                PineErrorCodes.NESTING_TOO_DEEP,
                f"Function calls nested deeper than {self.max_nesting_depth} levels",
                self.pos,
            )

        arglist = scan_arguments(self.tokens, self.pos)
        if not arglist.balanced:
            # Reported where scanning gave up; recovery restarts after the '('.
            failure = arglist.failure if arglist.failure is not None else self._peek()
            return Err(ParseError.from_code(
                PineErrorCodes.EXPECTED_TOKEN,
                "Expected ')' after parameters",
                failure.location,
            ))

        params: List[Parameter] = []
        for arg in arglist.arguments:
            if arg.is_empty:
                return self._fail(
                    PineErrorCodes.EXPECTED_TOKEN,
                    f"Expected value for parameter '{arg.name.value}'",
                    arg.start,
                )
            self.pos = arg.start
            result = self._primary(arg.end, depth + 1)
            if isinstance(result, Err):
                return result

            rest = next_significant(self.tokens, self.pos, arg.end)
            if rest < arg.end:
                juxtaposed = (
                    self.tokens[rest].type in _VALUE_STARTS
                    and self.tokens[arg.start].type in _VALUE_STARTS
                )
                if juxtaposed:
                    return self._fail(
                        PineErrorCodes.EXPECTED_TOKEN,
                        "Expected ',' between parameters",
                        rest,
                    )
                trailing = self._trailing_calls(rest, arg.end, depth + 1)
                if isinstance(trailing, Err):
                    return trailing

            first = arg.name if arg.name is not None else self.tokens[arg.start]
            params.append(Parameter(
                value=result.value,
                position=arg.position,
                name=arg.name.value if arg.name is not None else None,
                location=first.location,
            ))

        self.pos = arglist.close_index + 1
        return Ok(FunctionCall.create(name, tuple(params), location, namespace))

    def _trailing_calls(self, start: int, end: int, depth: int) -> Optional[Err]:
        """Collect calls inside an operator continuation such as ``a - f(b)``."""
        i = start
        while i < end:
            tok = self.tokens[i]
            if not tok.is_name():
                i += 1
                continue
            self.pos = i
            result = self._primary(end, depth)
            if isinstance(result, Err):
                return result
            if isinstance(result.value, FunctionCall):
                self._trailing.append(result.value)
            i = max(self.pos, i + 1)
        return None


def _number_value(text: str):
    try:
        return int(text)
    except ValueError:
        return float(text)


def _dotted(expr: Any) -> str:
    return expr.dotted() if isinstance(expr, MemberExpression) else expr.name


def parse_script(source: str, *, max_nesting_depth: int = 200) -> ParseResult:
    """Tokenize and parse *source*; never raises."""
    started = time.perf_counter()
    source = source or ""
    parser = Parser(tokenize(source), max_nesting_depth=max_nesting_depth)
    program = parser.parse_program(source)
    elapsed = (time.perf_counter() - started) * 1000.0

    metrics = ParseMetrics(
        parse_time_ms=elapsed,
        node_count=count_nodes(program),
        max_depth=max_depth(program),
    )
    diagnostics = parser.diagnostics
    logger.debug(
        "parsed %d statements, %d errors, %d warnings in %.3f ms",
        len(program.body), len(diagnostics.errors), len(diagnostics.warnings), elapsed,
    )
    return ParseResult(
        ast=program,
        errors=tuple(diagnostics.errors),
        warnings=tuple(diagnostics.warnings),
        metrics=metrics,
    )
