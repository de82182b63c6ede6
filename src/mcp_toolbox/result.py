"""Conversion of tool return values into ``CallToolResult`` envelopes."""

from __future__ import annotations

import json
from collections.abc import Mapping
from functools import singledispatch
from typing import Any

from mcp.types import (
    AudioContent,
    CallToolResult,
    EmbeddedResource,
    ImageContent,
    ResourceLink,
    TextContent,
)
from pydantic import BaseModel, TypeAdapter
from pydantic_core import PydanticSerializationError

from .logging_config import create_logger

logger = create_logger(__name__)

_ANY = TypeAdapter(Any)

CONTENT_TYPES = (TextContent, ImageContent, AudioContent, ResourceLink, EmbeddedResource)


def _text(text: str) -> TextContent:
    return TextContent(type="text", text=text)


def _json_result(value: Any) -> CallToolResult:
    try:
        jsonable = _ANY.dump_python(value, mode="json")
    except PydanticSerializationError as e:
        logger.warning(f"Tool returned a value that cannot be serialized: {e}")
        return error_result(e)
    structured = jsonable if isinstance(jsonable, dict) else None
    return CallToolResult(
        content=[_text(json.dumps(jsonable, ensure_ascii=False))],
        structuredContent=structured,
    )


@singledispatch
def into_call_tool_result(value: Any) -> CallToolResult:
    """Convert a tool's return value into a result envelope.

    Types can take part by defining an ``into_call_tool_result`` method, or by
    registering with ``into_call_tool_result.register``.
    """
    convert = getattr(value, "into_call_tool_result", None)
    if callable(convert):
        return convert()
    if isinstance(value, CONTENT_TYPES):
        return CallToolResult(content=[value])
    if isinstance(value, BaseException):
        return error_result(value)
    return _json_result(value)


@into_call_tool_result.register
def _(value: CallToolResult) -> CallToolResult:
    return value


@into_call_tool_result.register
def _(value: str) -> CallToolResult:
    return CallToolResult(content=[_text(value)])


@into_call_tool_result.register
def _(value: None) -> CallToolResult:
    return CallToolResult(content=[])


@into_call_tool_result.register
def _(value: BaseModel) -> CallToolResult:
    return CallToolResult(
        content=[_text(value.model_dump_json())],
        structuredContent=value.model_dump(mode="json"),
    )


@into_call_tool_result.register
def _(value: list) -> CallToolResult:  # type: ignore[type-arg]
    if value and all(isinstance(item, CONTENT_TYPES) for item in value):
        return CallToolResult(content=list(value))
    return _json_result(value)


@into_call_tool_result.register
def _(value: Mapping) -> CallToolResult:  # type: ignore[type-arg]
    return _json_result(dict(value))


def error_result(error: BaseException) -> CallToolResult:
    """Envelope for a failure the tool reported itself."""
    return CallToolResult(content=[_text(str(error))], isError=True)


__all__ = ["error_result", "into_call_tool_result"]
