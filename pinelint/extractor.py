"""pinelint/extractor.py — Flatten parsed calls into validator input.

Walks a parsed ``Program`` and produces one ``FunctionCallAnalysis`` per
distinct ``(line, column, name)``.  Calls reachable through several
paths (a statement that is also the right-hand side of an assignment, a
call nested in another call's arguments) are reported once.

Parameter keys are ``_0``, ``_1`` … for positional arguments and the
argument name for named ones.  For the ``strategy`` declaration the
positional slot 1 is also exposed as ``shorttitle``.

Each analysis also records which keys were written as literals and the
quoted text of string literals, so checks such as ``maxLength`` never
fire on a variable name or on a quoted number coerced to ``14``.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterator, List, Optional, Set, Tuple

from pinelint.ast import (
    DataType,
    Declaration,
    FunctionCall,
    Identifier,
    Literal,
    MemberExpression,
    Program,
    SourceLocation,
    iter_calls,
)
from pinelint.errors import ParseError
from pinelint.parser import ParseResult, parse_script

logger = logging.getLogger(__name__)

__all__ = [
    "FunctionCallAnalysis",
    "ExtractionResult",
    "extract_function_parameters",
    "extract_calls",
    "coerce_value",
]

#: Declarations whose positional slot 1 doubles as ``shorttitle``.
_SHORTTITLE_ALIASED = frozenset({"strategy"})

_NUMERIC_TEXT = re.compile(r"^\d+(\.\d+)?$")

_LITERAL_TYPES = frozenset({
    DataType.STRING,
    DataType.NUMBER,
    DataType.BOOLEAN,
    DataType.COLOR,
})


@dataclass(frozen=True)
class FunctionCallAnalysis:
    name: str
    namespace: Optional[str] = None
    parameters: Dict[str, Any] = field(default_factory=dict)
    location: SourceLocation = field(default_factory=SourceLocation)
    is_builtin: bool = False
    #: Keys whose value was a literal; ``None`` when provenance is unknown.
    literal_keys: Optional[FrozenSet[str]] = None
    #: Source text of quoted string arguments, by key.
    string_texts: Dict[str, str] = field(default_factory=dict)

    def is_literal(self, key: str) -> bool:
        return self.literal_keys is None or key in self.literal_keys

    def string_text(self, key: str) -> Optional[str]:
        """Quoted text for *key*, or ``None`` if it was not a string literal."""
        if key in self.string_texts:
            return self.string_texts[key]
        if self.literal_keys is None:
            value = self.parameters.get(key)
            return value if isinstance(value, str) else None
        return None

    @property
    def full_name(self) -> str:
        return f"{self.namespace}.{self.name}" if self.namespace else self.name

    @property
    def line(self) -> int:
        return self.location.line

    @property
    def column(self) -> int:
        return self.location.column

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "namespace": self.namespace,
            "parameters": dict(self.parameters),
            "location": self.location.to_dict(),
            "isBuiltIn": self.is_builtin,
        }


@dataclass(frozen=True)
class ExtractionResult:
    function_calls: Tuple[FunctionCallAnalysis, ...]
    parse: ParseResult
    extract_time_ms: float = 0.0

    @property
    def errors(self) -> Tuple[ParseError, ...]:
        return self.parse.errors

    @property
    def warnings(self) -> Tuple[ParseError, ...]:
        return self.parse.warnings

    @property
    def metrics(self) -> Dict[str, Any]:
        return {
            "parseTimeMs": self.parse.metrics.parse_time_ms,
            "extractTimeMs": self.extract_time_ms,
            "functionsFound": len(self.function_calls),
            "nodeCount": self.parse.metrics.node_count,
            "maxDepth": self.parse.metrics.max_depth,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "functionCalls": [call.to_dict() for call in self.function_calls],
            "errors": [err.message for err in self.errors],
            "metrics": self.metrics,
        }


def coerce_value(node: Any) -> Any:
    """Render a parameter value as a plain Python value.

    Literals keep their native value, and a quoted number such as ``"14"``
    becomes ``14``.  Names become their text, member chains their dotted
    form and nested calls ``ns.name()``.
    """
    if isinstance(node, Literal):
        if node.data_type is DataType.STRING and _NUMERIC_TEXT.match(node.value):
            return float(node.value) if "." in node.value else int(node.value)
        return node.value
    if isinstance(node, Identifier):
        return node.name
    if isinstance(node, MemberExpression):
        return node.dotted()
    if isinstance(node, FunctionCall):
        return f"{node.full_name}()"
    return None


def _analysis(call: FunctionCall) -> FunctionCallAnalysis:
    params: Dict[str, Any] = {}
    literal_keys: Set[str] = set()
    texts: Dict[str, str] = {}
    for param in call.parameters:
        key = param.name if param.is_named else f"_{param.position}"
        params[key] = coerce_value(param.value)
        if isinstance(param.value, Literal) and param.value.data_type in _LITERAL_TYPES:
            literal_keys.add(key)
            if param.value.data_type is DataType.STRING:
                texts[key] = param.value.value

    if call.namespace is None and call.name in _SHORTTITLE_ALIASED:
        positional = [p for p in call.parameters if p.position == 1 and not p.is_named]
        if positional and "shorttitle" not in params:
            params["shorttitle"] = params["_1"]
            if "_1" in literal_keys:
                literal_keys.add("shorttitle")
            if "_1" in texts:
                texts["shorttitle"] = texts["_1"]

    return FunctionCallAnalysis(
        name=call.name,
        namespace=call.namespace,
        parameters=params,
        location=call.location,
        is_builtin=call.is_builtin,
        literal_keys=frozenset(literal_keys),
        string_texts=texts,
    )


def _walk(program: Program) -> Iterator[FunctionCall]:
    for stmt in program.statements:
        yield from iter_calls(stmt)
    for node in program.body:
        if isinstance(node, Declaration):
            yield from iter_calls(node.value)
        else:
            yield from iter_calls(node)


def extract_calls(program: Program) -> List[FunctionCallAnalysis]:
    seen: Set[Tuple[int, int, str]] = set()
    out: List[FunctionCallAnalysis] = []
    for call in _walk(program):
        key = (call.location.line, call.location.column, call.full_name)
        if key in seen:
            continue
        seen.add(key)
        out.append(_analysis(call))
    return out


def extract_function_parameters(
    source: str,
    *,
    max_nesting_depth: int = 200,
    parse: Optional[ParseResult] = None,
) -> ExtractionResult:
    """Parse *source* (unless *parse* is given) and flatten its calls."""
    if parse is None:
        parse = parse_script(source, max_nesting_depth=max_nesting_depth)
    started = time.perf_counter()
    calls = extract_calls(parse.ast)
    elapsed = (time.perf_counter() - started) * 1000.0
    logger.debug("extracted %d calls", len(calls))
    return ExtractionResult(tuple(calls), parse, elapsed)
