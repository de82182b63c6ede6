"""Global constants for the tool decorators."""

from mcp.types import LATEST_PROTOCOL_VERSION

# Attribute keys and marker spellings
TOOL_IDENT = "tool"
AGGREGATED_IDENT = "aggr"
REQ_IDENT = "req"
PARAM_IDENT = "param"

DEFAULT_TOOL_BOX = "tool_box"
"""Binding name used when ``tool_box`` is given without a value."""

# Companion naming
TOOL_ATTR_SUFFIX = "_tool_attr"
TOOL_CALL_SUFFIX = "_tool_call"
REQUEST_TYPE_TEMPLATE = "__{ident}ToolCallParam"
"""Generated parameter model name; ``ident`` is the upper-cased function name."""

CALL_TOOL_INNER = "call_tool_inner"
LIST_TOOLS_INNER = "list_tools_inner"

# Default server info
DEFAULT_SERVER_NAME = "mcp-toolbox"
SERVER_NAME_ENV = "MCP_TOOLBOX_SERVER_NAME"
PROTOCOL_VERSION = LATEST_PROTOCOL_VERSION
