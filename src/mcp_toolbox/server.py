"""Serve a ``ServerHandler`` with FastMCP."""

from __future__ import annotations

from typing import Any

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.server.dependencies import get_context
from fastmcp.tools.tool import Tool as FastMCPTool
from fastmcp.tools.tool import ToolResult
from mcp.shared.exceptions import McpError
from mcp.types import CallToolRequestParams, Tool
from pydantic import PrivateAttr

from .handler import ServerHandler
from .logging_config import create_logger

logger = create_logger(__name__)


class HandlerTool(FastMCPTool):
    """A FastMCP tool whose calls are routed through ``handler.call_tool``."""

    _handler: Any = PrivateAttr(default=None)

    @classmethod
    def from_descriptor(cls, handler: ServerHandler, descriptor: Tool) -> HandlerTool:
        tool = cls(
            name=descriptor.name,
            description=descriptor.description,
            parameters=descriptor.inputSchema,
            annotations=descriptor.annotations,
        )
        tool._handler = handler
        return tool

    async def run(self, arguments: dict[str, Any]) -> ToolResult:
        try:
            context = get_context()
        except RuntimeError:
            context = None

        request = CallToolRequestParams(name=self.name, arguments=arguments)
        try:
            result = await self._handler.call_tool(request, context)
        except McpError as e:
            raise ToolError(e.error.message) from e

        if result.isError:
            text = " ".join(getattr(block, "text", "") for block in result.content)
            raise ToolError(text or f"tool {self.name!r} failed")
        return ToolResult(content=result.content, structured_content=result.structuredContent)


async def create_server(handler: ServerHandler) -> FastMCP:
    """Create a FastMCP server exposing every tool ``handler`` lists."""
    info = handler.get_info()
    mcp = FastMCP(info.serverInfo.name, instructions=info.instructions)

    listed = await handler.list_tools()
    for descriptor in listed.tools:
        mcp.add_tool(HandlerTool.from_descriptor(handler, descriptor))

    logger.info(f"Serving {len(listed.tools)} tools as {info.serverInfo.name!r}")
    return mcp
