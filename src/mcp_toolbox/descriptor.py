"""Descriptor accessors: the ``mcp.types.Tool`` metadata of each tool."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from mcp.types import Tool, ToolAnnotations
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ExpectationViolation

if TYPE_CHECKING:
    from collections.abc import Callable

    from .schema import SchemaRef
    from .source import SourceLocation

_CAMEL_BOUNDARY = re.compile(r"_([a-z])")


def doc_description(doc: str | None) -> str:
    """Description derived from a docstring.

    Every line is trimmed and blank lines are dropped before the rest are
    joined with newlines.
    """
    if not doc:
        return ""
    lines = [line.strip() for line in doc.splitlines()]
    return "\n".join(line for line in lines if line).strip()


def _camel(key: str) -> str:
    return _CAMEL_BOUNDARY.sub(lambda m: m.group(1).upper(), key)


def build_annotations(
    table: dict[str, str | bool] | None, location: SourceLocation | None = None
) -> ToolAnnotations | None:
    """Fit a parsed annotation table into ``ToolAnnotations``.

    ``read_only_hint`` and ``readOnlyHint`` are the same key. Values are
    checked strictly, so ``readOnlyHint: 'yes'`` is rejected.

    Raises:
        ExpectationViolation: If the table does not fit.
    """
    if table is None:
        return None
    payload = {_camel(key): value for key, value in table.items()}
    try:
        return ToolAnnotations.model_validate(payload, strict=True)
    except PydanticValidationError as e:
        raise ExpectationViolation(
            f"Could not parse tool annotations: {e}", location=location
        ) from e


def emit_tool_attr(
    name: str,
    description: str,
    schema: SchemaRef,
    annotations: ToolAnnotations | None,
) -> Callable[[], Tool]:
    """Build the descriptor accessor for one tool."""

    def tool_attr() -> Tool:
        return Tool(
            name=name,
            description=description,
            inputSchema=schema.resolve(),
            annotations=annotations,
        )

    return tool_attr
