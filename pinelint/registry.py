"""
pinelint/registry.py — Documentation Registry client.

Read-only map of built-in function name → declared parameter names,
built once from a documentation catalog::

    {"functions": {
        "fun_table.cell": {
            "name": "table.cell",
            "description": "...",
            "syntax": "table.cell(table_id, column, row, text, ...) → void",
            "arguments": [{"name": "table_id", "type": "series table",
                           "description": "..."}, ...]}}}

A bare ``{id: definition}`` mapping is accepted as well.  Only ids that
start with ``fun_`` and declare ``arguments`` are indexed.

State machine
-------------

    UNLOADED ──load()──► LOADING ──ok──► LOADED
        ▲                   │
        │                   └──error──► FAILED ──load()──► LOADING
        └───────────reset()──────────────────────────────────┘

The host constructs one registry and hands it to the ``Analyzer``;
there is no module-level instance.  Concurrent ``load()`` callers share a
single in-flight task.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple, Union

from pinelint.errors import (
    RegistryError,
    RegistryLoadError,
    RegistryNotLoadedError,
)

logger = logging.getLogger(__name__)

__all__ = [
    "RegistryState",
    "FunctionArgument",
    "FunctionDefinition",
    "DocumentationRegistry",
    "DEFAULT_CATALOG_PATH",
]

DEFAULT_CATALOG_PATH = Path(__file__).parent / "data" / "language-reference.json"


class RegistryState(Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class FunctionArgument:
    name: str
    type: str = ""
    description: str = ""


@dataclass(frozen=True)
class FunctionDefinition:
    id: str
    name: str
    description: str = ""
    syntax: str = ""
    arguments: Tuple[FunctionArgument, ...] = ()
    examples: Tuple[str, ...] = field(default=())

    @property
    def parameter_names(self) -> FrozenSet[str]:
        return frozenset(arg.name for arg in self.arguments)

    @classmethod
    def from_entry(cls, function_id: str, entry: Mapping[str, Any]) -> "FunctionDefinition":
        arguments = tuple(
            FunctionArgument(
                name=str(arg["name"]),
                type=str(arg.get("type", "")),
                description=str(arg.get("description", "")),
            )
            for arg in entry.get("arguments", ())
            if isinstance(arg, Mapping) and arg.get("name")
        )
        examples = entry.get("examples") or ()
        if isinstance(examples, str):
            examples = (examples,)
        return cls(
            id=function_id,
            name=str(entry.get("name") or function_id[len("fun_"):]),
            description=str(entry.get("description", "")),
            syntax=str(entry.get("syntax", "")),
            arguments=arguments,
            examples=tuple(str(e) for e in examples),
        )


class DocumentationRegistry:
    """Lazily loaded, read-only catalog of built-in function parameters.

    Pass *catalog* to load from an in-memory mapping instead of *path*.
    """

    def __init__(
        self,
        path: Union[str, Path, None] = None,
        *,
        catalog: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.path = Path(path) if path is not None else DEFAULT_CATALOG_PATH
        self._catalog = catalog
        self._state = RegistryState.UNLOADED
        self._functions: Dict[str, FunctionDefinition] = {}
        self._parameters: Dict[str, FrozenSet[str]] = {}
        self._task: Optional[asyncio.Task] = None
        self._error: Optional[BaseException] = None

    # ── lifecycle ────────────────────────────────────────────────────

    @property
    def state(self) -> RegistryState:
        return self._state

    @property
    def last_error(self) -> Optional[BaseException]:
        return self._error

    def is_loaded(self) -> bool:
        return self._state is RegistryState.LOADED

    async def load(self) -> None:
        """Load the catalog once; concurrent callers await the same task."""
        if self._state is RegistryState.LOADED:
            return
        if self._task is None or self._task.done():
            self._state = RegistryState.LOADING
            self._task = asyncio.create_task(self._load())
        await self._task

    def load_sync(self) -> None:
        """Blocking ``load()`` for hosts without an event loop."""
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(self.load())
            return
        raise RegistryError("load_sync() called from a running event loop; await load() instead")

    def reset(self) -> None:
        self._state = RegistryState.UNLOADED
        self._functions = {}
        self._parameters = {}
        self._task = None
        self._error = None

    async def _load(self) -> None:
        try:
            data = await asyncio.to_thread(self._read_catalog)
            functions = self._index(data)
        except Exception as exc:
            self._state = RegistryState.FAILED
            self._error = exc
            logger.error("failed to load documentation catalog %s: %s", self.path, exc)
            if isinstance(exc, RegistryLoadError):
                raise
            raise RegistryLoadError(f"cannot load documentation catalog: {exc}") from exc

        self._functions = functions
        self._parameters = {name: d.parameter_names for name, d in functions.items()}
        self._error = None
        self._state = RegistryState.LOADED
        stats = self.statistics()
        logger.info(
            "documentation registry loaded: %d functions, %d parameters",
            stats["functionsLoaded"], stats["totalParameters"],
        )

    def _read_catalog(self) -> Any:
        if self._catalog is not None:
            return self._catalog
        with open(self.path, encoding="utf-8") as fh:
            return json.load(fh)

    @staticmethod
    def _index(data: Any) -> Dict[str, FunctionDefinition]:
        if not isinstance(data, Mapping):
            raise RegistryLoadError("documentation catalog must be a JSON object")
        entries = data.get("functions", data)
        if not isinstance(entries, Mapping):
            raise RegistryLoadError("'functions' must be an object")

        functions: Dict[str, FunctionDefinition] = {}
        for function_id, entry in entries.items():
            if not str(function_id).startswith("fun_") or not isinstance(entry, Mapping):
                continue
            if not entry.get("arguments"):
                continue
            definition = FunctionDefinition.from_entry(str(function_id), entry)
            functions[definition.name] = definition
        return functions

    # ── queries ──────────────────────────────────────────────────────

    def _require_loaded(self) -> None:
        if self._state is not RegistryState.LOADED:
            raise RegistryNotLoadedError()

    def is_valid_parameter(self, function_name: str, parameter_name: str) -> bool:
        self._require_loaded()
        params = self._parameters.get(function_name)
        return params is not None and parameter_name in params

    def get_function_parameters(self, function_name: str) -> FrozenSet[str]:
        self._require_loaded()
        return self._parameters.get(function_name, frozenset())

    def get_function(self, function_name: str) -> Optional[FunctionDefinition]:
        self._require_loaded()
        return self._functions.get(function_name)

    def get_function_names(self) -> List[str]:
        self._require_loaded()
        return sorted(self._functions)

    def statistics(self) -> Dict[str, Any]:
        return {
            "state": self._state.value,
            "isLoaded": self.is_loaded(),
            "functionsLoaded": len(self._parameters),
            "totalParameters": sum(len(p) for p in self._parameters.values()),
            "catalogPath": str(self.path) if self._catalog is None else None,
        }

    def __repr__(self) -> str:
        return f"<DocumentationRegistry {self._state.value} functions={len(self._functions)}>"
