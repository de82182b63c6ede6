"""Input schemas for tools.

Schemas come from pydantic and are memoized per type identity for the life
of the process. Tools with individual parameters get a generated model whose
fields mirror those parameters in declaration order.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, TypeAdapter, create_model

from .constants import REQUEST_TYPE_TEMPLATE
from .logging_config import create_logger
from .params import Aggregated, Params

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .params import ToolFnParam, ToolParams

logger = create_logger(__name__)


class EmptyObject(BaseModel):
    """Input of a tool that takes no arguments."""

    model_config = ConfigDict(extra="ignore")


class _SchemaCache:
    """Type-identity keyed schema store; the first writer wins."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._schemas: dict[int, tuple[Any, dict[str, Any]]] = {}
        self._hits = 0
        self._misses = 0

    def get_or_compute(self, tp: Any) -> dict[str, Any]:
        key = id(tp)
        with self._lock:
            entry = self._schemas.get(key)
            if entry is not None:
                self._hits += 1
                return entry[1]
            self._misses += 1

        # Compute outside the lock; a concurrent first use may compute twice
        # but only the first result is stored and returned to everyone.
        schema = schema_for_type(tp)
        with self._lock:
            # The type object is kept alive in the entry so its id stays unique.
            entry = self._schemas.setdefault(key, (tp, schema))
        logger.debug(f"Cached schema for {getattr(tp, '__name__', tp)!r}")
        return entry[1]

    def clear(self) -> None:
        with self._lock:
            self._schemas.clear()
            self._hits = 0
            self._misses = 0

    @property
    def stats(self) -> dict[str, Any]:
        with self._lock:
            total = self._hits + self._misses
            return {
                "hit_rate": self._hits / total if total > 0 else 0.0,
                "size": len(self._schemas),
                "hits": self._hits,
                "misses": self._misses,
            }


_schema_cache = _SchemaCache()


def schema_for_type(tp: Any) -> dict[str, Any]:
    """Compute the JSON schema of ``tp`` without caching."""
    if isinstance(tp, type) and issubclass(tp, BaseModel):
        if not tp.__pydantic_complete__:
            tp.model_rebuild()
        return tp.model_json_schema()
    return TypeAdapter(tp).json_schema()


def cached_schema_for_type(tp: Any) -> dict[str, Any]:
    """Memoized schema of ``tp``; identical objects are returned on every call."""
    return _schema_cache.get_or_compute(tp)


def schema_cache_stats() -> dict[str, Any]:
    return _schema_cache.stats


def clear_schema_cache() -> None:
    _schema_cache.clear()


def request_type_name(tool_ident: str) -> str:
    return REQUEST_TYPE_TEMPLATE.format(ident=tool_ident.upper())


def create_request_type(
    fields: Iterable[ToolFnParam], tool_ident: str, module: str | None = None
) -> type[BaseModel]:
    """Build the parameter model for a tool's individual parameters."""
    definitions: dict[str, Any] = {}
    for param in fields:
        default = param.default if param.has_default else ...
        definitions[param.name] = (param.field_type, default)
    return create_model(  # type: ignore[call-overload, no-any-return]
        request_type_name(tool_ident),
        __module__=module or __name__,
        **definitions,
    )


@dataclass(frozen=True)
class SchemaRef:
    """Reference to the memoized input schema of one tool."""

    target: Any
    request_type: type[BaseModel] | None = None
    payload: ToolFnParam | None = None

    def resolve(self) -> dict[str, Any]:
        target = self.payload.payload_type if self.payload is not None else self.target
        return cached_schema_for_type(target)


def emit_schema(params: ToolParams, tool_ident: str, module: str | None = None) -> SchemaRef:
    """Pick the schema source for a classified tool signature."""
    if isinstance(params, Aggregated):
        if params.param.namespace is not None:
            # Names a type defined later in the module
            return SchemaRef(params.param.annotation, payload=params.param)
        return SchemaRef(params.param.payload_type)
    if isinstance(params, Params):
        request_type = create_request_type(params.fields, tool_ident, module)
        return SchemaRef(request_type, request_type)
    return SchemaRef(EmptyObject)
