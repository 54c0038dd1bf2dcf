"""pinelint/ast.py – AST definitions for trading scripts.

The parser only models what the validators need: function calls, their
arguments, assignments and the handful of expression shapes that can
appear as an argument value.  Everything else in a script is skipped.

Design invariants
-----------------
* Every node is a frozen dataclass and carries a ``SourceLocation``.
* Children are stored in tuples so nesting stays immutable.
* ``FunctionCall.parameters`` keep source order; ``Parameter.position``
  is the zero-based index of the argument in the call, named or not.
* ``MemberExpression`` exists only while an argument value is being
  parsed; the extractor flattens it to a dotted string.

Module layout
-------------
§1  Source location
§2  Kinds
§3  Nodes
§4  Traversal helpers
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from enum import Enum
from typing import (
    Any,
    Dict,
    Iterator,
    Optional,
    Tuple,
    Union,
)

# ════════════════════════════════════════════════════════════════════════
# §1  Source location
# ════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SourceLocation:
    """A span of source text.

    ``line`` is 1-based, ``column`` and ``offset`` are 0-based, ``length``
    counts characters.
    """

    line: int = 0
    column: int = 0
    offset: int = 0
    length: int = 0

    @property
    def end_offset(self) -> int:
        return self.offset + self.length

    def to_dict(self) -> Dict[str, int]:
        return {
            "line": self.line,
            "column": self.column,
            "offset": self.offset,
            "length": self.length,
        }

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


#: Sentinel for synthesised nodes.
NO_LOCATION = SourceLocation()


# ════════════════════════════════════════════════════════════════════════
# §2  Kinds
# ════════════════════════════════════════════════════════════════════════


class NodeType(Enum):
    PROGRAM = "Program"
    FUNCTION_CALL = "FunctionCall"
    PARAMETER = "Parameter"
    LITERAL = "Literal"
    IDENTIFIER = "Identifier"
    DECLARATION = "Declaration"
    MEMBER_EXPRESSION = "MemberExpression"


class DataType(Enum):
    """Type of a ``Literal`` as written in source."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    COLOR = "color"
    UNKNOWN = "unknown"


class IdentifierKind(Enum):
    VARIABLE = "variable"
    KEYWORD = "keyword"


class DeclarationType(Enum):
    """How a name was bound: ``x = …`` or ``x := …``."""

    ASSIGNMENT = "assignment"
    REASSIGNMENT = "reassignment"


#: Calls treated as part of the host language's standard library.
BUILTIN_FUNCTIONS = frozenset({
    "indicator", "strategy", "library",
    "plot", "plotshape", "plotchar", "plotbar", "plotcandle",
    "hline", "fill", "bgcolor", "barcolor", "alert", "alertcondition",
})

BUILTIN_NAMESPACED_FUNCTIONS = frozenset({
    "ta.sma", "ta.ema", "ta.rsi", "ta.macd", "ta.stoch", "ta.crossover",
    "ta.crossunder", "ta.atr", "ta.highest", "ta.lowest",
    "math.abs", "math.max", "math.min", "math.round",
    "str.tostring", "str.tonumber", "str.length", "str.contains",
    "array.new", "array.push", "array.get",
    "matrix.new", "matrix.set", "matrix.get",
    "input.int", "input.float", "input.bool", "input.string", "input.source",
    "table.new", "table.cell", "label.new", "line.new", "box.new",
    "strategy.entry", "strategy.exit", "strategy.close",
})


def is_builtin_function(name: str, namespace: Optional[str] = None) -> bool:
    if namespace:
        return f"{namespace}.{name}" in BUILTIN_NAMESPACED_FUNCTIONS
    return name in BUILTIN_FUNCTIONS


# ════════════════════════════════════════════════════════════════════════
# §3  Nodes
# ════════════════════════════════════════════════════════════════════════

LiteralValue = Union[str, int, float, bool, None]


@dataclass(frozen=True, slots=True)
class Literal:
    value: LiteralValue
    data_type: DataType
    raw: str
    location: SourceLocation = NO_LOCATION
    node_type: NodeType = field(default=NodeType.LITERAL, init=False, repr=False)

    @classmethod
    def of(cls, value: LiteralValue, raw: str, location: SourceLocation) -> "Literal":
        """Build a literal, deriving ``data_type`` from the Python value."""
        if isinstance(value, bool):
            data_type = DataType.BOOLEAN
        elif isinstance(value, (int, float)):
            data_type = DataType.NUMBER
        elif isinstance(value, str):
            data_type = DataType.STRING
        else:
            data_type = DataType.UNKNOWN
        return cls(value, data_type, raw, location)


@dataclass(frozen=True, slots=True)
class Identifier:
    name: str
    namespace: Optional[str] = None
    kind: IdentifierKind = IdentifierKind.VARIABLE
    location: SourceLocation = NO_LOCATION
    node_type: NodeType = field(default=NodeType.IDENTIFIER, init=False, repr=False)


@dataclass(frozen=True, slots=True)
class MemberExpression:
    object: Union["MemberExpression", Identifier]
    property: Identifier
    location: SourceLocation = NO_LOCATION
    node_type: NodeType = field(default=NodeType.MEMBER_EXPRESSION, init=False, repr=False)

    def dotted(self) -> str:
        """``a.b.c`` for the chain rooted at this node."""
        head = self.object
        base = head.dotted() if isinstance(head, MemberExpression) else head.name
        return f"{base}.{self.property.name}"


Expression = Union[Literal, Identifier, MemberExpression, "FunctionCall"]


@dataclass(frozen=True, slots=True)
class Parameter:
    value: Expression
    position: int
    name: Optional[str] = None
    location: SourceLocation = NO_LOCATION
    node_type: NodeType = field(default=NodeType.PARAMETER, init=False, repr=False)

    @property
    def is_named(self) -> bool:
        return self.name is not None


@dataclass(frozen=True, slots=True)
class FunctionCall:
    name: str
    parameters: Tuple[Parameter, ...] = ()
    namespace: Optional[str] = None
    is_builtin: bool = False
    location: SourceLocation = NO_LOCATION
    node_type: NodeType = field(default=NodeType.FUNCTION_CALL, init=False, repr=False)

    @classmethod
    def create(
        cls,
        name: str,
        parameters: Tuple[Parameter, ...],
        location: SourceLocation,
        namespace: Optional[str] = None,
    ) -> "FunctionCall":
        return cls(
            name=name,
            parameters=parameters,
            namespace=namespace,
            is_builtin=is_builtin_function(name, namespace),
            location=location,
        )

    @property
    def full_name(self) -> str:
        return f"{self.namespace}.{self.name}" if self.namespace else self.name


@dataclass(frozen=True, slots=True)
class Declaration:
    name: str
    value: Optional[Expression] = None
    declaration_type: DeclarationType = DeclarationType.ASSIGNMENT
    data_type: Optional[DataType] = None
    location: SourceLocation = NO_LOCATION
    node_type: NodeType = field(default=NodeType.DECLARATION, init=False, repr=False)


@dataclass(frozen=True, slots=True)
class ProgramMetadata:
    version: str = "v6"
    script_type: Optional[str] = None


Statement = Union[FunctionCall, Declaration]


@dataclass(frozen=True, slots=True)
class Program:
    """Root node.

    ``body`` holds every recognised top-level statement in order;
    ``statements`` the function calls among them (including the calls
    unwrapped from assignment right-hand sides) and ``declarations`` the
    assignments.
    """

    body: Tuple[Statement, ...] = ()
    statements: Tuple[FunctionCall, ...] = ()
    declarations: Tuple[Declaration, ...] = ()
    metadata: ProgramMetadata = field(default_factory=ProgramMetadata)
    location: SourceLocation = NO_LOCATION
    node_type: NodeType = field(default=NodeType.PROGRAM, init=False, repr=False)


Node = Union[Program, FunctionCall, Parameter, Literal, Identifier, Declaration, MemberExpression]


# ════════════════════════════════════════════════════════════════════════
# §4  Traversal helpers
# ════════════════════════════════════════════════════════════════════════


def children(node: Node) -> Tuple[Node, ...]:
    """Direct children counted by the parser metrics."""
    if isinstance(node, Program):
        return tuple(node.declarations) + tuple(node.statements)
    if isinstance(node, FunctionCall):
        return tuple(node.parameters)
    if isinstance(node, (Parameter, Declaration)):
        return (node.value,) if node.value is not None else ()
    return ()


def count_nodes(node: Node) -> int:
    return 1 + sum(count_nodes(child) for child in children(node))


def max_depth(node: Node, depth: int = 0) -> int:
    deepest = depth
    for child in children(node):
        deepest = max(deepest, max_depth(child, depth + 1))
    return deepest


def iter_calls(node: Optional[Expression]) -> Iterator[FunctionCall]:
    """Yield *node* if it is a call, then every call nested in its arguments."""
    if not isinstance(node, FunctionCall):
        return
    yield node
    for param in node.parameters:
        yield from iter_calls(param.value)


def to_dict(node: Any) -> Any:
    """JSON-friendly rendering of any node, location or enum."""
    if isinstance(node, Enum):
        return node.value
    if isinstance(node, SourceLocation):
        return node.to_dict()
    if is_dataclass(node):
        out: Dict[str, Any] = {}
        node_type = getattr(node, "node_type", None)
        if node_type is not None:
            out["type"] = node_type.value
        for f in fields(node):
            if f.name == "node_type":
                continue
            out[f.name] = to_dict(getattr(node, f.name))
        if isinstance(node, Parameter):
            out["is_named"] = node.is_named
        return out
    if isinstance(node, (list, tuple)):
        return [to_dict(item) for item in node]
    return node
