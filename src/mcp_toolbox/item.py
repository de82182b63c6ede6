"""The function-item pass: one decorated function in, one ``ToolItem`` out."""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .attributes import ToolFnItemAttrs
from .constants import TOOL_ATTR_SUFFIX, TOOL_CALL_SUFFIX
from .descriptor import build_annotations, doc_description, emit_tool_attr
from .dispatch import emit_tool_call
from .exceptions import MalformedInputError
from .logging_config import create_logger
from .params import classify_parameters
from .schema import emit_schema
from .source import location_of

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from mcp.types import Tool, ToolAnnotations

    from .attributes import AttrEntry
    from .context import ToolCallContext
    from .params import ClassifiedParams
    from .schema import SchemaRef
    from .source import SourceLocation

logger = create_logger(__name__)

TOOL_ITEM_ATTR = "__tool__"


def _companion_name(ident: str, suffix: str, public: bool) -> str:
    name = f"{ident}{suffix}"
    if public or name.startswith("_"):
        return name
    return f"_{name}"


@dataclass(frozen=True)
class ToolItem:
    """Everything generated for one tool function."""

    ident: str
    name: str
    description: str
    func: Callable[..., Any]
    params: ClassifiedParams
    schema: SchemaRef
    annotations: ToolAnnotations | None
    attr: Callable[[], Tool]
    call: Callable[[ToolCallContext], Any]
    attr_name: str
    call_name: str
    location: SourceLocation

    @property
    def is_async(self) -> bool:
        return inspect.iscoroutinefunction(self.func)

    @property
    def is_method(self) -> bool:
        return self.params.receiver is not None

    def companions(self) -> dict[str, Callable[..., Any]]:
        return {self.attr_name: self.attr, self.call_name: self.call}


def get_tool_item(obj: Any) -> ToolItem | None:
    """The ``ToolItem`` of a decorated function (or static/class method), if any."""
    func = getattr(obj, "__func__", obj)
    item = getattr(func, TOOL_ITEM_ATTR, None)
    return item if isinstance(item, ToolItem) else None


def _unwrap(obj: Any) -> tuple[Callable[..., Any], bool, bool]:
    if isinstance(obj, staticmethod):
        return obj.__func__, False, True
    if isinstance(obj, classmethod):
        return obj.__func__, True, False
    return obj, False, False


def tool_fn_item(obj: Any, entries: Iterable[AttrEntry]) -> Any:
    """Run parse, classify and emit for one function and return it unchanged.

    Module-level functions also get ``<name>_tool_attr`` and
    ``<name>_tool_call`` published into their module.
    """
    func, is_classmethod, is_staticmethod = _unwrap(obj)
    if not inspect.isfunction(func):
        raise MalformedInputError(
            f"expected function or class, got {type(obj).__name__}", location=location_of(obj)
        )
    location = location_of(func)
    attrs = ToolFnItemAttrs.parse(entries, location)
    classified = classify_parameters(
        func,
        attrs,
        location,
        is_classmethod=is_classmethod,
        is_staticmethod=is_staticmethod,
    )

    ident = func.__name__
    name = attrs.name if attrs.name is not None else ident
    if attrs.description is not None:
        description = attrs.description
    else:
        description = doc_description(func.__doc__)
    schema = emit_schema(classified.tool_params, ident, func.__module__)
    annotations = build_annotations(attrs.annotations, location)

    own_public = not ident.startswith("_")
    call_public = own_public if attrs.vis is None else attrs.vis == "public"
    attr_name = _companion_name(ident, TOOL_ATTR_SUFFIX, own_public)
    call_name = _companion_name(ident, TOOL_CALL_SUFFIX, call_public)

    item = ToolItem(
        ident=ident,
        name=name,
        description=description,
        func=func,
        params=classified,
        schema=schema,
        annotations=annotations,
        attr=emit_tool_attr(name, description, schema, annotations),
        call=emit_tool_call(func, classified, schema, call_name),
        attr_name=attr_name,
        call_name=call_name,
        location=location,
    )
    item.attr.__name__ = attr_name
    item.attr.__module__ = func.__module__

    setattr(func, TOOL_ITEM_ATTR, item)
    if func.__qualname__ == ident:
        func.__globals__.update(item.companions())
    logger.debug(
        f"Defined tool {name!r} from {func.__qualname__} "
        f"({type(classified.tool_params).__name__})"
    )
    return obj
