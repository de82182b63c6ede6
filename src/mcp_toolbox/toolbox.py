"""Tool box: a name-indexed set of tool routes for one class."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from mcp.types import CallToolRequestParams, CallToolResult, ListToolsResult

from .context import ToolCallContext
from .dispatch import invoke_tool_call
from .exceptions import DuplicateToolNameError, ToolNotFoundError
from .logging_config import create_logger

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

    from mcp.types import Tool

    from .item import ToolItem
    from .source import SourceLocation

logger = create_logger(__name__)


@dataclass(frozen=True)
class ToolRoute:
    """One routable tool: its descriptor accessor and its dispatch wrapper."""

    name: str
    attr: Callable[[], Tool]
    call: Callable[[ToolCallContext], Any]

    @classmethod
    def from_item(cls, item: ToolItem) -> ToolRoute:
        return cls(item.name, item.attr, item.call)


class ToolBox:
    """Ordered tool routes, looked up by tool name."""

    def __init__(
        self, routes: Iterable[ToolRoute] = (), location: SourceLocation | None = None
    ) -> None:
        self._routes: dict[str, ToolRoute] = {}
        self._location = location
        for route in routes:
            self.add(route)

    def add(self, route: ToolRoute) -> None:
        """Add a route; tool names must be unique within one box."""
        if route.name in self._routes:
            raise DuplicateToolNameError(
                f"duplicate tool name {route.name!r}",
                tool_name=route.name,
                location=self._location,
            )
        self._routes[route.name] = route

    @property
    def names(self) -> list[str]:
        return list(self._routes)

    def list(self) -> list[Tool]:
        """Descriptors of every tool, in the order they were added."""
        return [route.attr() for route in self._routes.values()]

    async def call(self, context: ToolCallContext) -> CallToolResult:
        """Route a tool call by name.

        Raises:
            ToolNotFoundError: If no tool has the requested name.
        """
        route = self._routes.get(context.name)
        if route is None:
            logger.warning(f"Unknown tool requested: {context.name!r}")
            raise ToolNotFoundError(context.name)
        return await invoke_tool_call(route.call, context)

    def __contains__(self, name: object) -> bool:
        return name in self._routes

    def __iter__(self) -> Iterator[ToolRoute]:
        return iter(self._routes.values())

    def __len__(self) -> int:
        return len(self._routes)

    def __repr__(self) -> str:
        return f"ToolBox({self.names!r})"

    @staticmethod
    def derive(binding: str) -> dict[str, Callable[..., Any]]:
        """Handler methods that delegate to the tool box accessor named ``binding``."""

        async def call_tool(
            self: Any, request: CallToolRequestParams, context: Any = None
        ) -> CallToolResult:
            box: ToolBox = getattr(type(self), binding)()
            return await box.call(ToolCallContext.new(self, request, context))

        async def list_tools(self: Any, request: Any = None, context: Any = None) -> ListToolsResult:
            box: ToolBox = getattr(type(self), binding)()
            return ListToolsResult(tools=box.list(), nextCursor=None)

        return {"call_tool": call_tool, "list_tools": list_tools}
