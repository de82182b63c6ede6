"""Example calculator server built with ``@tool``."""

from __future__ import annotations

import asyncio
from typing import Annotated

from fastmcp.exceptions import ToolError
from pydantic import BaseModel, Field

from .logging_config import create_logger, setup_logging
from .macros import tool
from .server import create_server

logger = create_logger(__name__)


class SumRequest(BaseModel):
    a: int = Field(description="the left hand side number")
    b: int


@tool("tool_box")
class Calculator:
    """A simple calculator.

    Adds, subtracts, multiplies and divides integers.
    """

    @tool(description="Calculate the sum of two numbers", aggr=True)
    def sum(self, request: SumRequest) -> str:
        return str(request.a + request.b)

    @tool(annotations={"read_only_hint": True, "title": "Subtract"})
    def sub(
        self,
        a: Annotated[int, Field(description="the left hand side number")],
        b: Annotated[int, Field(description="the right hand side number")],
    ) -> str:
        """Calculate the difference of two numbers"""
        return str(a - b)

    @tool
    async def mul(self, a: int, b: int) -> dict[str, int]:
        """Multiply two numbers.

        The product is returned as structured content.
        """
        return {"product": a * b}

    @tool(name="div")
    def divide(self, a: int, b: int) -> str:
        """Divide two numbers, rounding towards negative infinity"""
        if b == 0:
            raise ToolError("division by zero")
        return str(a // b)


def main() -> None:
    """CLI entry point."""
    setup_logging()
    server = asyncio.run(create_server(Calculator()))
    server.run()


if __name__ == "__main__":
    main()
