"""Exception hierarchy for tool definition and tool dispatch.

Definition-time errors abort the decorated declaration while its module is
imported; they carry the offending source location. Dispatch-time errors are
``McpError`` values with ``INVALID_PARAMS`` error data so MCP servers can
return them to the client as JSON-RPC errors.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from mcp.shared.exceptions import McpError
from mcp.types import INVALID_PARAMS, ErrorData

if TYPE_CHECKING:
    from .source import SourceLocation


class ToolDefinitionError(Exception):
    """Base exception for all errors raised while a tool is being defined."""

    error_code: str = ""

    def __init__(
        self,
        message: str,
        location: SourceLocation | None = None,
        error_code: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(message)
        self.message = message
        self.location = location
        self.error_code = error_code or self.error_code or self.__class__.__name__
        self.__dict__.update(kwargs)

    def __str__(self) -> str:
        if self.location is None:
            return self.message
        return f"{self.message} at {self.location}"

    def to_dict(self) -> dict[str, Any]:
        """Convert error to a serializable dict."""
        result: dict[str, Any] = {
            "error": True,
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "location": self.location.to_dict() if self.location else None,
        }
        result.update(
            {
                k: v
                for k, v in self.__dict__.items()
                if k not in ["message", "error_code", "location"]
            }
        )
        return result


class AttributeSyntaxError(ToolDefinitionError):
    """Raised when attribute text cannot be tokenized or parsed."""

    error_code = "ATTRIBUTE_SYNTAX"


class UnknownAttributeError(ToolDefinitionError):
    """Raised for a key the attribute grammar does not recognize."""

    error_code = "UNKNOWN_ATTRIBUTE"

    def __init__(self, message: str, key: str | None = None, **kwargs: Any):
        super().__init__(message, key=key, **kwargs)


class InvalidAnnotationLiteralError(ToolDefinitionError):
    """Raised when an annotation value is not a string or boolean literal."""

    error_code = "INVALID_ANNOTATION_LITERAL"

    def __init__(self, message: str, key: str | None = None, **kwargs: Any):
        super().__init__(message, key=key, **kwargs)


class MixedParameterKindsError(ToolDefinitionError):
    """Raised when aggregated and individual parameters are combined."""

    error_code = "MIXED_PARAMETER_KINDS"

    def __init__(self, message: str, parameter: str | None = None, **kwargs: Any):
        super().__init__(message, parameter=parameter, **kwargs)


class MissingIdentifierPatternError(ToolDefinitionError):
    """Raised when a structured parameter cannot be bound to a field name."""

    error_code = "MISSING_IDENTIFIER"

    def __init__(self, message: str, parameter: str | None = None, **kwargs: Any):
        super().__init__(message, parameter=parameter, **kwargs)


class MissingDispatcherBindingError(ToolDefinitionError):
    """Raised when a handler class is decorated without a ``tool_box`` binding."""

    error_code = "MISSING_TOOL_BOX"


class MalformedInputError(ToolDefinitionError):
    """Raised when the decorated object is neither a function nor a class."""

    error_code = "MALFORMED_INPUT"


class DuplicateToolNameError(ToolDefinitionError):
    """Raised when two tools of one router resolve to the same name."""

    error_code = "DUPLICATE_TOOL_NAME"

    def __init__(self, message: str, tool_name: str | None = None, **kwargs: Any):
        super().__init__(message, tool_name=tool_name, **kwargs)


class ExpectationViolation(ToolDefinitionError):
    """Raised when a tool's annotation table does not fit ``ToolAnnotations``."""

    error_code = "EXPECTATION_VIOLATION"


class ToolCallError(McpError):
    """Base exception for structured errors returned by dispatch wrappers."""

    error_code: str = "TOOL_CALL_ERROR"

    def __init__(self, message: str, data: Any | None = None):
        super().__init__(ErrorData(code=INVALID_PARAMS, message=message, data=data))
        self.message = message


class ExtractionError(ToolCallError):
    """Raised when a value cannot be extracted from the tool call context."""

    error_code = "EXTRACTION_ERROR"


class ParamDeserializationError(ExtractionError):
    """Raised when the arguments object does not fit the parameter model."""

    error_code = "PARAM_DESERIALIZATION_ERROR"


class ToolNotFoundError(ToolCallError):
    """Raised when a router has no tool with the requested name."""

    error_code = "TOOL_NOT_FOUND"

    def __init__(self, tool_name: str):
        super().__init__("tool not found", data={"name": tool_name})
        self.tool_name = tool_name


__all__ = [
    "ToolDefinitionError",
    "AttributeSyntaxError",
    "UnknownAttributeError",
    "InvalidAnnotationLiteralError",
    "MixedParameterKindsError",
    "MissingIdentifierPatternError",
    "MissingDispatcherBindingError",
    "MalformedInputError",
    "DuplicateToolNameError",
    "ExpectationViolation",
    "ToolCallError",
    "ExtractionError",
    "ParamDeserializationError",
    "ToolNotFoundError",
]
