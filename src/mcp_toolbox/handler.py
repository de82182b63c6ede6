"""The server handler interface tool classes implement."""

from __future__ import annotations

import abc
import os
from typing import Any

from mcp.shared.exceptions import McpError
from mcp.types import (
    METHOD_NOT_FOUND,
    CallToolRequestParams,
    CallToolResult,
    ErrorData,
    Implementation,
    InitializeResult,
    ListToolsResult,
    ServerCapabilities,
    ToolsCapability,
)

from .constants import DEFAULT_SERVER_NAME, PROTOCOL_VERSION, SERVER_NAME_ENV

SERVER_VERSION = "0.1.0"


def server_info(
    instructions: str | None = None,
    *,
    enable_tools: bool = False,
    name: str | None = None,
    version: str | None = None,
) -> InitializeResult:
    """Build the info value a handler reports at initialization."""
    capabilities = ServerCapabilities()
    if enable_tools:
        capabilities = ServerCapabilities(tools=ToolsCapability(listChanged=False))
    return InitializeResult(
        protocolVersion=PROTOCOL_VERSION,
        capabilities=capabilities,
        serverInfo=Implementation(
            name=name or os.environ.get(SERVER_NAME_ENV, DEFAULT_SERVER_NAME),
            version=version or SERVER_VERSION,
        ),
        instructions=instructions or None,
    )


class ServerHandler(abc.ABC):  # noqa: B024
    """Base class for objects that serve tools.

    Subclassing marks a class as an implementation of this interface; the
    ``tool`` class decorator then fills in ``call_tool`` and ``list_tools``.
    Classes decorated with ``default_build`` are registered as virtual
    subclasses instead.
    """

    def get_info(self) -> InitializeResult:
        return server_info()

    async def call_tool(
        self, request: CallToolRequestParams, context: Any = None
    ) -> CallToolResult:
        raise McpError(ErrorData(code=METHOD_NOT_FOUND, message="tools/call"))

    async def list_tools(self, request: Any = None, context: Any = None) -> ListToolsResult:
        return ListToolsResult(tools=[])
