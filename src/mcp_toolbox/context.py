"""Tool call context and the extraction capability.

A dispatch wrapper receives one ``ToolCallContext`` and folds over it: each
extraction returns ``(value, remaining_context)`` and the next step works on
the remainder. Types take part either by defining a
``from_tool_call_context_part`` classmethod or through ``register_extractor``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Generic, TypeVar, get_args, get_origin

from fastmcp import Context as FastMCPContext
from mcp.shared.context import RequestContext
from mcp.types import CallToolRequestParams
from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ExtractionError, ParamDeserializationError

if TYPE_CHECKING:
    from collections.abc import Callable

T = TypeVar("T")


@dataclass(frozen=True)
class ToolCallContext:
    """Everything a tool call can draw its arguments from."""

    service: Any = None
    name: str = ""
    arguments: dict[str, Any] | None = None
    request_context: Any = None

    @classmethod
    def new(
        cls,
        service: Any,
        request: CallToolRequestParams,
        request_context: Any = None,
    ) -> ToolCallContext:
        return cls(
            service=service,
            name=request.name,
            arguments=request.arguments,
            request_context=request_context,
        )

    def with_arguments(self, arguments: dict[str, Any] | None) -> ToolCallContext:
        return replace(self, arguments=arguments)

    @classmethod
    def from_tool_call_context_part(
        cls, context: ToolCallContext
    ) -> tuple[ToolCallContext, ToolCallContext]:
        return context, context


class JsonObject(dict[str, Any]):
    """The raw arguments object of a tool call."""

    @classmethod
    def from_tool_call_context_part(
        cls, context: ToolCallContext
    ) -> tuple[JsonObject, ToolCallContext]:
        arguments = context.arguments
        if arguments is None:
            arguments = {}
        elif not isinstance(arguments, dict):
            raise ExtractionError(
                f"tool arguments must be a JSON object, got {type(arguments).__name__}"
            )
        return cls(arguments), context.with_arguments(None)


@dataclass
class Parameters(Generic[T]):
    """Wrapper for a tool whose whole arguments object is one typed value."""

    value: T

    @classmethod
    def from_tool_call_context_part(
        cls, context: ToolCallContext, payload_type: Any = Any
    ) -> tuple[Parameters[Any], ToolCallContext]:
        arguments, context = JsonObject.from_tool_call_context_part(context)
        return cls(parse_json_object(arguments, payload_type)), context


@lru_cache(maxsize=None)
def _cached_adapter(target: Any) -> TypeAdapter[Any]:
    return TypeAdapter(target)


def _type_adapter(target: Any) -> TypeAdapter[Any]:
    if isinstance(target, type) and issubclass(target, BaseModel):
        if not target.__pydantic_complete__:
            # Fields naming types defined after the tool resolve now
            target.model_rebuild()
    try:
        return _cached_adapter(target)
    except TypeError:
        # Unhashable annotations cannot key the cache
        return TypeAdapter(target)


def parse_json_object(arguments: dict[str, Any], target: Any) -> Any:
    """Deserialize an arguments object into ``target``.

    Raises:
        ParamDeserializationError: If the object does not fit the target type.
    """
    try:
        return _type_adapter(target).validate_python(arguments)
    except PydanticValidationError as e:
        raise ParamDeserializationError(
            f"failed to deserialize parameters: {e}",
            data=e.errors(include_url=False, include_context=False, include_input=False),
        ) from e


_EXTRACTORS: dict[type, Callable[[ToolCallContext], tuple[Any, ToolCallContext]]] = {}


def register_extractor(target: type, extractor: Any = None) -> Any:
    """Teach the dispatch wrappers to inject values of ``target``.

    ``extractor`` takes a ``ToolCallContext`` and returns
    ``(value, remaining_context)``. Usable as a decorator.
    """

    def decorator(fn: Any) -> Any:
        _EXTRACTORS[target] = fn
        return fn

    if extractor is not None:
        return decorator(extractor)
    return decorator


def _lookup_extractor(target: Any) -> Any:
    for base in getattr(target, "__mro__", (target,)):
        if base in _EXTRACTORS:
            return _EXTRACTORS[base]
    return None


def is_extractable(annotation: Any) -> bool:
    """True when parameters of this type are injected from the context."""
    origin = get_origin(annotation) or annotation
    if not isinstance(origin, type) or issubclass(origin, Parameters):
        return False
    if hasattr(origin, "from_tool_call_context_part"):
        return True
    return _lookup_extractor(origin) is not None


def extract(context: ToolCallContext, target: Any) -> tuple[Any, ToolCallContext]:
    """Extract one value of type ``target`` from ``context``.

    Raises:
        ExtractionError: If the context holds no such value.
    """
    origin = get_origin(target) or target
    hook = getattr(origin, "from_tool_call_context_part", None)
    if hook is not None:
        return hook(context, *get_args(target))
    extractor = _lookup_extractor(origin)
    if extractor is None:
        raise ExtractionError(f"cannot extract {target!r} from a tool call context")
    return extractor(context)


def extract_receiver(context: ToolCallContext, as_class: bool = False) -> tuple[Any, ToolCallContext]:
    """Extract the service instance (or its class) a method tool runs on."""
    service = context.service
    if service is None:
        raise ExtractionError("tool call context carries no service instance")
    if as_class and not isinstance(service, type):
        service = type(service)
    return service, context


@register_extractor(CallToolRequestParams)
def _extract_request(context: ToolCallContext) -> tuple[CallToolRequestParams, ToolCallContext]:
    return CallToolRequestParams(name=context.name, arguments=context.arguments), context


@register_extractor(FastMCPContext)
def _extract_fastmcp_context(context: ToolCallContext) -> tuple[Any, ToolCallContext]:
    if not isinstance(context.request_context, FastMCPContext):
        raise ExtractionError("tool call has no FastMCP context")
    return context.request_context, context


@register_extractor(RequestContext)
def _extract_request_context(context: ToolCallContext) -> tuple[Any, ToolCallContext]:
    request_context = context.request_context
    if isinstance(request_context, FastMCPContext):
        request_context = request_context.request_context
    if request_context is None:
        raise ExtractionError("tool call has no request context")
    return request_context, context
