"""The ``tool`` decorator.

Functions (plain, async, static or class methods)::

    @tool
    def ping() -> str: ...

    @tool("name = 'add', description = 'adds two numbers'")
    def add(a: int, b: int) -> int: ...

    @tool(aggr=True, annotations={"read_only_hint": True})
    async def search(query: SearchQuery) -> list[Hit]: ...

Classes (blocks of tool methods)::

    @tool("tool_box")
    class Calculator:
        @tool
        def add(self, a: int, b: int) -> int: ...

Attribute text and keyword arguments may be combined; text is applied first.
"""

from __future__ import annotations

from typing import Any

from .aggregate import tool_impl_item
from .attributes import ToolImplItemAttrs, entries_from_arguments
from .item import tool_fn_item
from .source import location_of


def _apply(target: Any, texts: tuple[Any, ...], keywords: dict[str, Any]) -> Any:
    location = location_of(target)
    entries = entries_from_arguments(texts, keywords, location)
    if isinstance(target, type):
        attrs = ToolImplItemAttrs.parse(entries, location)
        return tool_impl_item(target, attrs, location)
    return tool_fn_item(target, entries)


def tool(*args: Any, **kwargs: Any) -> Any:
    """Mark a function as a tool, or a class as a block of tools.

    Raises:
        ToolDefinitionError: Any subclass, while the decorated object is
            being defined.
    """
    if len(args) == 1 and not kwargs and not isinstance(args[0], str):
        return _apply(args[0], (), {})

    def decorator(target: Any) -> Any:
        return _apply(target, args, kwargs)

    return decorator
