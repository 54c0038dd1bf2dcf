"""
pinelint/validators/na_objects.py — Field access on ``na`` objects.

Two passes over the script:

  1. declarations   ``type Point`` blocks and their fields;
                    ``var Point p = na`` / ``Point p = na`` mark *p* as na;
                    ``p = Point.new(…)`` / ``p := Point.new(…)`` anywhere
                    marks it initialized
  2. accesses       ``p.x`` on an object still marked na → ``na_object_access``;
                    ``(p[1]).x`` on any tracked object → ``na_object_history_access``

The state is per script, not per statement: one construction anywhere
clears the object.  Accesses are matched on tokens, so comments and
strings never match.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from typing import Dict, List, Sequence

from pinelint.errors import ErrorCategory, Severity
from pinelint.lexer import Token, TokenType, tokenize
from pinelint.validators.base import (
    ValidationContext,
    ValidationResult,
    ValidationViolation,
    guarded,
    is_comment_line,
    source_lines,
)

logger = logging.getLogger(__name__)

__all__ = [
    "ObjectState",
    "collect_udt_types",
    "track_objects",
    "validate_na_object_access",
    "quick_validate_na_object_access",
]

ACCESS_RULE = "na_object_access"
HISTORY_RULE = "na_object_history_access"

_TYPE_RE = re.compile(r"^(?:export\s+)?type\s+([A-Z]\w*)\s*$")
_FIELD_RE = re.compile(r"^\s+(?:(?:float|int|bool|string|color|array|matrix|map)\S*\s+)?([a-zA-Z_]\w*)\s*(?:=.*)?$")
_NA_DECL_RE = re.compile(r"^(var\s+|varip\s+)?([A-Z]\w*)\s+([a-zA-Z_]\w*)\s*=\s*na\s*(?://.*)?$")
_CONSTRUCT_RE = re.compile(r"\b([a-zA-Z_]\w*)\s*:?=\s*([A-Z]\w*)\s*\.\s*new\s*\(")

_HISTORY_SHAPE = (
    TokenType.LPAREN, TokenType.IDENTIFIER, TokenType.LBRACKET, TokenType.NUMBER,
    TokenType.RBRACKET, TokenType.RPAREN, TokenType.DOT,
)


@dataclass
class ObjectState:
    udt_type: str
    declaration_line: int
    is_na: bool = True
    is_var: bool = False


def collect_udt_types(lines: Sequence[str]) -> Dict[str, List[str]]:
    """``type`` name → declared field names."""
    types: Dict[str, List[str]] = {}
    current = None
    for line in lines:
        match = _TYPE_RE.match(line.strip())
        if match:
            current = match.group(1)
            types[current] = []
            continue
        if current is None or not line.strip() or is_comment_line(line):
            continue
        field_match = _FIELD_RE.match(line)
        if field_match:
            types[current].append(field_match.group(1))
        else:
            current = None
    return types


def track_objects(lines: Sequence[str]) -> Dict[str, ObjectState]:
    objects: Dict[str, ObjectState] = {}
    for lineno, line in enumerate(lines, start=1):
        if is_comment_line(line):
            continue
        stripped = line.strip()
        declared = _NA_DECL_RE.match(stripped)
        if declared:
            objects[declared.group(3)] = ObjectState(
                declared.group(2), lineno, is_na=True, is_var=declared.group(1) is not None,
            )
            continue
        for match in _CONSTRUCT_RE.finditer(stripped):
            name, udt_type = match.groups()
            if name in objects:
                objects[name].is_na = False
            else:
                objects[name] = ObjectState(udt_type, lineno, is_na=False)
    return objects


def _is_history_access(tokens: Sequence[Token], i: int) -> bool:
    if i + len(_HISTORY_SHAPE) >= len(tokens):
        return False
    shape = tuple(tokens[i + k].type for k in range(len(_HISTORY_SHAPE)))
    return shape == _HISTORY_SHAPE and tokens[i + len(_HISTORY_SHAPE)].is_name()


@guarded("na object access")
def validate_na_object_access(source: str, context: ValidationContext) -> ValidationResult:
    started = time.perf_counter()
    lines = source_lines(source)
    types = collect_udt_types(lines)
    objects = track_objects(lines)
    result = ValidationResult()
    tokens = tokenize(source)

    for i, tok in enumerate(tokens):
        if _is_history_access(tokens, i):
            name = tokens[i + 1].value
            state = objects.get(name)
            if state is None:
                continue
            index = tokens[i + 3].value
            field_name = tokens[i + 7].value
            result.add(ValidationViolation(
                line=tok.line,
                column=tok.column,
                rule=HISTORY_RULE,
                severity=Severity.ERROR,
                category=ErrorCategory.RUNTIME.value,
                message=(
                    f"Cannot access field '{field_name}' of potentially undefined historical "
                    f"object '{name}[{index}]'. Add na validation check."
                ),
                suggested_fix=(
                    f"Add na check: not na({name}[{index}]) ? ({name}[{index}]).{field_name} : 0"
                ),
                metadata={
                    "objectName": name,
                    "fieldName": field_name,
                    "historicalIndex": int(index),
                    "udtType": state.udt_type,
                    "declarationLine": state.declaration_line,
                },
            ))
            continue

        if tok.type is not TokenType.IDENTIFIER or i + 2 >= len(tokens):
            continue
        if i > 0 and tokens[i - 1].type is TokenType.DOT:
            continue
        if tokens[i + 1].type is not TokenType.DOT or not tokens[i + 2].is_name():
            continue
        state = objects.get(tok.value)
        if state is None or not state.is_na:
            continue
        field_name = tokens[i + 2].value
        fields = types.get(state.udt_type)
        result.add(ValidationViolation(
            line=tok.line,
            column=tok.column,
            rule=ACCESS_RULE,
            severity=Severity.ERROR,
            category=ErrorCategory.RUNTIME.value,
            message=(
                f"Cannot access field '{field_name}' of undefined (na) object "
                f"'{tok.value}'. Initialize object before accessing fields."
            ),
            suggested_fix=(
                f"Initialize {tok.value} with {state.udt_type}.new() before accessing fields"
            ),
            metadata={
                "objectName": tok.value,
                "fieldName": field_name,
                "udtType": state.udt_type,
                "declarationLine": state.declaration_line,
                "fieldDeclared": fields is None or field_name in fields,
            },
        ))

    logger.debug("na objects: %d types, %d objects tracked", len(types), len(objects))
    result.metrics = {
        "udtTypesFound": len(types),
        "objectsTracked": len(objects),
        "violationsFound": len(result.violations),
        "validationTimeMs": (time.perf_counter() - started) * 1000.0,
    }
    return result


def quick_validate_na_object_access(source: str) -> ValidationResult:
    return validate_na_object_access(source)
