"""Tests for dispatch wrappers and the function-item pass."""

from __future__ import annotations

import asyncio
import inspect
from typing import Annotated

import pytest
from fastmcp.exceptions import ToolError
from mcp.types import INVALID_PARAMS, CallToolRequestParams, CallToolResult
from pydantic import BaseModel, Field

from mcp_toolbox import tool
from mcp_toolbox.context import Parameters, ToolCallContext
from mcp_toolbox.dispatch import invoke_tool_call
from mcp_toolbox.exceptions import (
    ExpectationViolation,
    InvalidAnnotationLiteralError,
    MalformedInputError,
    MixedParameterKindsError,
    ParamDeserializationError,
)
from mcp_toolbox.item import get_tool_item
from mcp_toolbox.logging_config import get_tool_name
from mcp_toolbox.params import Aggregated, ParamKind
from mcp_toolbox.schema import EmptyObject


class SumRequest(BaseModel):
    a: int = Field(description="the left hand side number")
    b: int


@tool
def add(a: int, b: int) -> int:
    """adds two numbers"""
    return a + b


@tool("name = 'total', aggr")
async def sum_numbers(request: SumRequest) -> int:
    return request.a + request.b


@tool
def _hidden() -> str:
    return "hidden"


@tool(vis="priv")
def internal() -> str:
    return "internal"


@tool
def lookup(ctx: ToolCallContext, query: LookupQuery) -> str:
    return f"{ctx.name}: {query.text}"


@tool
def lookup_all(ctx: ToolCallContext, request: Parameters[LookupQuery]) -> str:
    return f"{ctx.name}: {request.value.text}"


@tool(description="Explicit description")
def documented() -> str:
    """Doc comment that the explicit description replaces."""
    return "documented"


# Declared after the tools that name it
class LookupQuery(BaseModel):
    text: str


def _context(name: str, arguments: dict | None = None, service: object = None) -> ToolCallContext:  # type: ignore[type-arg]
    return ToolCallContext(service=service, name=name, arguments=arguments)


def _text(result: CallToolResult) -> str:
    return result.content[0].text  # type: ignore[union-attr]


class TestModuleLevelTools:
    def test_function_returned_unchanged(self) -> None:
        assert add(1, 2) == 3
        assert asyncio.run(sum_numbers(SumRequest(a=1, b=2))) == 3

    def test_companions_published(self) -> None:
        assert callable(globals()["add_tool_attr"])
        assert callable(globals()["add_tool_call"])
        assert globals()["add_tool_call"] is get_tool_item(add).call  # type: ignore[union-attr]

    def test_private_companions(self) -> None:
        assert "_hidden_tool_attr" in globals()
        assert "_hidden_tool_call" in globals()
        assert "internal_tool_attr" in globals()
        assert "_internal_tool_call" in globals()
        assert "internal_tool_call" not in globals()

    def test_scenario_b_descriptor(self) -> None:
        descriptor = globals()["add_tool_attr"]()
        assert descriptor.name == "add"
        assert descriptor.description == "adds two numbers"
        assert list(descriptor.inputSchema["properties"]) == ["a", "b"]

        item = get_tool_item(add)
        assert item is not None
        assert item.schema.request_type is not None
        assert list(item.schema.request_type.model_fields) == ["a", "b"]

    def test_scenario_b_dispatch(self) -> None:
        call = globals()["add_tool_call"]
        assert not inspect.iscoroutinefunction(call)
        result = call(_context("add", {"a": 2, "b": 3}))
        assert _text(result) == "5"

    def test_aggregated_dispatch(self) -> None:
        item = get_tool_item(sum_numbers)
        assert item is not None
        assert item.name == "total"
        assert item.is_async
        assert inspect.iscoroutinefunction(item.call)
        assert item.attr().inputSchema == SumRequest.model_json_schema()

        result = asyncio.run(item.call(_context("total", {"a": 4, "b": 5})))
        assert _text(result) == "9"


class TestDispatch:
    def test_deserialization_failure(self) -> None:
        with pytest.raises(ParamDeserializationError) as exc_info:
            globals()["add_tool_call"](_context("add", {"a": 1}))
        assert exc_info.value.error.code == INVALID_PARAMS

    def test_positional_order_with_injected_values(self) -> None:
        @tool
        def greet(prefix: str, request: CallToolRequestParams, *, suffix: str = "!") -> str:
            return f"{prefix} {request.name}{suffix}"

        item = get_tool_item(greet)
        assert item is not None
        assert [p.name for p in item.params.trivial] == ["request"]
        result = item.call(_context("greet", {"prefix": "hello"}))
        assert _text(result) == "hello greet!"

    def test_parameters_wrapper_is_passed_through(self) -> None:
        @tool
        def wrapped(params: Parameters[SumRequest]) -> str:
            assert isinstance(params, Parameters)
            return str(params.value.a * params.value.b)

        item = get_tool_item(wrapped)
        assert item is not None
        assert _text(item.call(_context("wrapped", {"a": 3, "b": 4}))) == "12"

    def test_field_directives_validate(self) -> None:
        @tool
        def positive(n: Annotated[int, Field(gt=0)]) -> int:
            return n

        item = get_tool_item(positive)
        assert item is not None
        with pytest.raises(ParamDeserializationError):
            item.call(_context("positive", {"n": 0}))

    def test_tool_error_becomes_error_result(self) -> None:
        @tool
        def fail() -> str:
            raise ToolError("nope")

        item = get_tool_item(fail)
        assert item is not None
        result = item.call(_context("fail"))
        assert result.isError
        assert _text(result) == "nope"

    def test_other_exceptions_propagate(self) -> None:
        @tool
        def crash() -> str:
            raise RuntimeError("crash")

        item = get_tool_item(crash)
        assert item is not None
        with pytest.raises(RuntimeError):
            item.call(_context("crash"))

    def test_wrapper_metadata(self) -> None:
        item = get_tool_item(add)
        assert item is not None
        assert item.call.__name__ == "add_tool_call"
        assert item.call.__module__ == __name__
        assert item.attr.__name__ == "add_tool_attr"


class TestInvokeToolCall:
    def test_awaits_async_and_sync_wrappers(self) -> None:
        sync_item = get_tool_item(add)
        async_item = get_tool_item(sum_numbers)
        assert sync_item is not None
        assert async_item is not None

        async def run() -> tuple[CallToolResult, CallToolResult]:
            first = await invoke_tool_call(sync_item.call, _context("add", {"a": 1, "b": 1}))
            second = await invoke_tool_call(async_item.call, _context("total", {"a": 1, "b": 2}))
            return first, second

        first, second = asyncio.run(run())
        assert _text(first) == "2"
        assert _text(second) == "3"

    def test_tool_name_is_tracked(self) -> None:
        @tool
        def whoami() -> str:
            return get_tool_name() or "-"

        item = get_tool_item(whoami)
        assert item is not None
        result = asyncio.run(invoke_tool_call(item.call, _context("whoami")))
        assert _text(result) == "whoami"
        assert get_tool_name() is None


class TestFunctionItemErrors:
    def test_invalid_annotation_literal(self) -> None:
        with pytest.raises(InvalidAnnotationLiteralError):

            @tool("annotations = {read_only_hint: 1}")
            def f() -> None:
                pass

    def test_annotation_shape_mismatch(self) -> None:
        with pytest.raises(ExpectationViolation):

            @tool(annotations={"read_only_hint": "yes"})
            def f() -> None:
                pass

    def test_not_a_function(self) -> None:
        with pytest.raises(MalformedInputError, match="expected function or class"):
            tool(42)

    def test_no_partial_emission(self) -> None:
        def broken(a: int, request: Annotated[SumRequest, "aggr"]) -> int:
            return a

        with pytest.raises(MixedParameterKindsError):
            tool(broken)
        assert get_tool_item(broken) is None
        assert "broken_tool_attr" not in globals()


class TestNoParameters:
    def test_scenario_a_method(self) -> None:
        class Service:
            @tool
            def ping(self) -> str:
                """Replies pong."""
                return "pong"

        item = get_tool_item(Service.ping)
        assert item is not None
        assert item.is_method
        assert item.schema.target is EmptyObject
        assert item.attr().inputSchema == EmptyObject.model_json_schema()
        assert item.description == "Replies pong."
        assert _text(item.call(_context("ping", {}, service=Service()))) == "pong"


class TestLaterDeclaredTypes:
    def test_injected_parameter_stays_out_of_fields(self) -> None:
        item = get_tool_item(lookup)
        assert item is not None
        kinds = {p.name: p.kind for p in item.params.params}
        assert kinds == {"ctx": ParamKind.CONTEXT_INJECTED, "query": ParamKind.STRUCTURED_FIELD}
        assert list(item.attr().inputSchema["properties"]) == ["query"]

    def test_structured_dispatch(self) -> None:
        item = get_tool_item(lookup)
        assert item is not None
        result = item.call(_context("lookup", {"query": {"text": "hi"}}))
        assert _text(result) == "lookup: hi"

    def test_aggregated_payload(self) -> None:
        item = get_tool_item(lookup_all)
        assert item is not None
        assert isinstance(item.params.tool_params, Aggregated)
        assert item.params.tool_params.param.wants_wrapper
        assert item.attr().inputSchema == LookupQuery.model_json_schema()

        result = item.call(_context("lookup_all", {"text": "hi"}))
        assert _text(result) == "lookup_all: hi"
        assert item.params.tool_params.param.payload_type is LookupQuery


class TestDescriptions:
    def test_explicit_description_wins_over_doc_comment(self) -> None:
        item = get_tool_item(documented)
        assert item is not None
        assert item.description == "Explicit description"
        assert item.attr().description == "Explicit description"
