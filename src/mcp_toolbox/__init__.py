"""Declarative MCP tools: typed functions in, descriptors, dispatch wrappers and routers out."""

from .attributes import ParamMarker
from .context import JsonObject, Parameters, ToolCallContext, extract, register_extractor
from .exceptions import (
    AttributeSyntaxError,
    DuplicateToolNameError,
    ExpectationViolation,
    ExtractionError,
    InvalidAnnotationLiteralError,
    MalformedInputError,
    MissingDispatcherBindingError,
    MissingIdentifierPatternError,
    MixedParameterKindsError,
    ParamDeserializationError,
    ToolCallError,
    ToolDefinitionError,
    ToolNotFoundError,
    UnknownAttributeError,
)
from .handler import ServerHandler, server_info
from .item import ToolItem, get_tool_item
from .macros import tool
from .result import error_result, into_call_tool_result
from .schema import EmptyObject, cached_schema_for_type
from .toolbox import ToolBox, ToolRoute

__version__ = "0.1.0"

__all__ = [
    "AttributeSyntaxError",
    "DuplicateToolNameError",
    "EmptyObject",
    "ExpectationViolation",
    "ExtractionError",
    "InvalidAnnotationLiteralError",
    "JsonObject",
    "MalformedInputError",
    "MissingDispatcherBindingError",
    "MissingIdentifierPatternError",
    "MixedParameterKindsError",
    "ParamDeserializationError",
    "ParamMarker",
    "Parameters",
    "ServerHandler",
    "ToolBox",
    "ToolCallContext",
    "ToolCallError",
    "ToolDefinitionError",
    "ToolItem",
    "ToolNotFoundError",
    "ToolRoute",
    "UnknownAttributeError",
    "cached_schema_for_type",
    "error_result",
    "extract",
    "get_tool_item",
    "into_call_tool_result",
    "register_extractor",
    "server_info",
    "tool",
]
