"""The class-item pass: wire a class's tool methods into a router.

Which router a class gets depends on two questions:

- does it subclass ``ServerHandler`` (it implements the handler interface), and
- does it have free type parameters (``class Service(Generic[T])``)?

Generic classes get ``call_tool_inner``/``list_tools_inner`` methods that match
the requested name against each tool directly. Other classes get a ``ToolBox``
behind a class-level accessor named by the ``tool_box`` binding.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from mcp.types import CallToolRequestParams, CallToolResult, InitializeResult, ListToolsResult

from .constants import CALL_TOOL_INNER, LIST_TOOLS_INNER
from .context import ToolCallContext
from .descriptor import doc_description
from .dispatch import invoke_tool_call
from .exceptions import (
    DuplicateToolNameError,
    MalformedInputError,
    MissingDispatcherBindingError,
    ToolNotFoundError,
)
from .handler import ServerHandler, server_info
from .item import get_tool_item
from .logging_config import create_logger
from .toolbox import ToolBox, ToolRoute

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from .attributes import ToolImplItemAttrs
    from .item import ToolItem
    from .source import SourceLocation

logger = create_logger(__name__)


def collect_tool_items(cls: type) -> list[ToolItem]:
    """Tool methods defined in the class body itself, in declaration order."""
    items: list[ToolItem] = []
    for value in vars(cls).values():
        item = get_tool_item(value)
        if item is not None:
            items.append(item)
    return items


def is_generic(cls: type) -> bool:
    return bool(getattr(cls, "__parameters__", ()))


def is_handler_impl(cls: type) -> bool:
    return ServerHandler in cls.__mro__[1:]


def _check_unique(items: list[ToolItem], location: SourceLocation | None) -> None:
    seen: dict[str, ToolItem] = {}
    for item in items:
        other = seen.get(item.name)
        if other is not None:
            raise DuplicateToolNameError(
                f"tools {other.ident!r} and {item.ident!r} are both named {item.name!r}",
                tool_name=item.name,
                location=item.location or location,
            )
        seen[item.name] = item


def _check_free(cls: type, names: Iterable[str], location: SourceLocation | None) -> None:
    for name in names:
        if name in vars(cls):
            raise MalformedInputError(
                f"{cls.__name__} already defines {name!r}; pass default_build = false "
                "or remove the method",
                location=location,
            )


def _install(cls: type, name: str, value: Any) -> None:
    fn = getattr(value, "__func__", value)
    fn.__name__ = name
    fn.__qualname__ = f"{cls.__qualname__}.{name}"
    fn.__module__ = cls.__module__
    setattr(cls, name, value)


def _publish_companions(cls: type, items: list[ToolItem]) -> None:
    for item in items:
        for name, companion in item.companions().items():
            setattr(cls, name, staticmethod(companion))


def emit_router(items: list[ToolItem]) -> dict[str, Callable[..., Any]]:
    """``call_tool_inner`` and ``list_tools_inner`` over a fixed set of tools."""

    async def call_tool_inner(
        self: Any, request: CallToolRequestParams, context: Any = None
    ) -> CallToolResult:
        tcc = ToolCallContext.new(self, request, context)
        for item in items:
            if tcc.name == item.name:
                return await invoke_tool_call(item.call, tcc)
        logger.warning(f"Unknown tool requested: {tcc.name!r}")
        raise ToolNotFoundError(tcc.name)

    async def list_tools_inner(
        self: Any, request: Any = None, context: Any = None
    ) -> ListToolsResult:
        return ListToolsResult(tools=[item.attr() for item in items], nextCursor=None)

    return {CALL_TOOL_INNER: call_tool_inner, LIST_TOOLS_INNER: list_tools_inner}


def emit_forwarders() -> dict[str, Callable[..., Any]]:
    """Handler methods that forward to the ``*_inner`` router methods."""

    async def call_tool(
        self: Any, request: CallToolRequestParams, context: Any = None
    ) -> CallToolResult:
        return await getattr(self, CALL_TOOL_INNER)(request, context)  # type: ignore[no-any-return]

    async def list_tools(self: Any, request: Any = None, context: Any = None) -> ListToolsResult:
        return await getattr(self, LIST_TOOLS_INNER)(request, context)  # type: ignore[no-any-return]

    return {"call_tool": call_tool, "list_tools": list_tools}


def emit_get_info(description: str) -> Callable[[Any], InitializeResult]:
    def get_info(self: Any) -> InitializeResult:
        return server_info(description, enable_tools=True)

    return get_info


def emit_tool_box_accessor(
    items: list[ToolItem], location: SourceLocation | None
) -> classmethod[Any, Any, ToolBox]:
    box = ToolBox((ToolRoute.from_item(item) for item in items), location)

    def accessor(cls: type) -> ToolBox:
        return box

    return classmethod(accessor)


def tool_impl_item(cls: type, attrs: ToolImplItemAttrs, location: SourceLocation | None) -> type:
    """Run the class-item pass and return the class, extended in place.

    Raises:
        MissingDispatcherBindingError: A handler class has no ``tool_box`` binding,
            or the binding names nothing.
        DuplicateToolNameError: Two tools share a name.
        MalformedInputError: A generated method would replace one the class defines.
    """
    items = collect_tool_items(cls)
    _check_unique(items, location)

    if attrs.description is not None:
        description = attrs.description
    else:
        description = doc_description(vars(cls).get("__doc__"))

    binding = attrs.tool_box
    generic = is_generic(cls)
    methods: dict[str, Any] = {}

    if is_handler_impl(cls):
        if binding is None:
            raise MissingDispatcherBindingError(
                "tool_box attribute is required for a ServerHandler implementation",
                location=location,
            )
        if generic:
            if items:
                methods.update(emit_router(items))
            elif not hasattr(cls, CALL_TOOL_INNER):
                raise MissingDispatcherBindingError(
                    f"{cls.__name__} has no tools and inherits no {CALL_TOOL_INNER}",
                    location=location,
                )
            methods.update(emit_forwarders())
        else:
            if items:
                methods[binding] = emit_tool_box_accessor(items, location)
            elif not callable(getattr(cls, binding, None)):
                raise MissingDispatcherBindingError(
                    f"{cls.__name__} has no tools and inherits no tool box {binding!r}",
                    location=location,
                )
            methods.update(ToolBox.derive(binding))
    elif binding is not None:
        if generic:
            methods.update(emit_router(items))
            if attrs.default_build:
                methods.update(emit_forwarders())
        else:
            methods[binding] = emit_tool_box_accessor(items, location)
            if attrs.default_build:
                methods.update(ToolBox.derive(binding))
        if attrs.default_build:
            methods["get_info"] = emit_get_info(description)

    _check_free(cls, methods, location)
    _publish_companions(cls, items)
    for name, value in methods.items():
        _install(cls, name, value)
    if binding is not None and attrs.default_build and not is_handler_impl(cls):
        ServerHandler.register(cls)

    logger.debug(
        f"Built tool router for {cls.__qualname__}: {len(items)} tools, "
        f"binding={binding!r}, generic={generic}, default_build={attrs.default_build}"
    )
    return cls
