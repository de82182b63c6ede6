"""Dispatch wrappers: adapt a ``ToolCallContext`` into a call of the tool function.

A wrapper runs strictly in sequence: injected values (receiver first), then
the aggregated value or the structured fields, then the call itself, then the
conversion of the return value. The first failure ends the call.
"""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Any

from fastmcp.exceptions import ToolError

from .context import JsonObject, Parameters, extract, extract_receiver, parse_json_object
from .logging_config import create_logger, tool_name_ctx
from .params import Aggregated, Params
from .result import error_result, into_call_tool_result

if TYPE_CHECKING:
    from collections.abc import Callable

    from mcp.types import CallToolResult

    from .context import ToolCallContext
    from .params import ClassifiedParams
    from .schema import SchemaRef

logger = create_logger(__name__)


def _collect_arguments(
    classified: ClassifiedParams, schema: SchemaRef, context: ToolCallContext
) -> tuple[list[Any], dict[str, Any]]:
    values: dict[str, Any] = {}
    args: list[Any] = []

    if classified.receiver is not None:
        receiver, context = extract_receiver(context, classified.receiver_is_class)
        args.append(receiver)

    for param in classified.trivial:
        values[param.name], context = extract(context, param.annotation)

    tool_params = classified.tool_params
    if isinstance(tool_params, Aggregated):
        param = tool_params.param
        wrapped, context = extract(context, Parameters[param.payload_type])
        values[param.name] = wrapped if param.wants_wrapper else wrapped.value
    elif isinstance(tool_params, Params):
        arguments, context = extract(context, JsonObject)
        request = parse_json_object(arguments, schema.request_type)
        for param in tool_params.fields:
            values[param.name] = getattr(request, param.name)

    kwargs: dict[str, Any] = {}
    for param in classified.params:
        if param.keyword_only:
            kwargs[param.name] = values[param.name]
        else:
            args.append(values[param.name])
    return args, kwargs


def emit_tool_call(
    func: Callable[..., Any],
    classified: ClassifiedParams,
    schema: SchemaRef,
    wrapper_name: str,
) -> Callable[[ToolCallContext], Any]:
    """Build the dispatch wrapper for one tool function.

    The wrapper is a coroutine function when ``func`` is one.
    """
    if inspect.iscoroutinefunction(func):

        async def tool_call(context: ToolCallContext) -> CallToolResult:
            args, kwargs = _collect_arguments(classified, schema, context)
            try:
                result = await func(*args, **kwargs)
            except ToolError as e:
                return error_result(e)
            return into_call_tool_result(result)

    else:

        def tool_call(context: ToolCallContext) -> CallToolResult:  # type: ignore[misc]
            args, kwargs = _collect_arguments(classified, schema, context)
            try:
                result = func(*args, **kwargs)
            except ToolError as e:
                return error_result(e)
            return into_call_tool_result(result)

    tool_call.__name__ = wrapper_name
    owner, _, _ = func.__qualname__.rpartition(".")
    tool_call.__qualname__ = f"{owner}.{wrapper_name}" if owner else wrapper_name
    tool_call.__module__ = func.__module__
    tool_call.__doc__ = func.__doc__
    return tool_call


async def invoke_tool_call(
    call: Callable[[ToolCallContext], Any], context: ToolCallContext
) -> CallToolResult:
    """Run a dispatch wrapper, awaiting it when it is asynchronous."""
    token = tool_name_ctx.set(context.name)
    try:
        logger.debug(f"Dispatching tool call {context.name!r}")
        result = call(context)
        if inspect.isawaitable(result):
            result = await result
        return result  # type: ignore[no-any-return]
    finally:
        tool_name_ctx.reset(token)
