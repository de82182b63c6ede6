"""Source locations attached to definition-time errors."""

from __future__ import annotations

import inspect
from dataclasses import dataclass, replace
from typing import Any


@dataclass(frozen=True)
class SourceLocation:
    """Where a decorated declaration (or a token inside its attributes) lives."""

    path: str | None
    line: int | None
    column: int | None = None
    qualname: str | None = None

    def at_column(self, column: int) -> SourceLocation:
        """Return a copy pointing at ``column`` (1-based) of the attribute text."""
        return replace(self, column=column)

    def __str__(self) -> str:
        where = self.path or "<unknown>"
        if self.line is not None:
            where = f"{where}:{self.line}"
        if self.column is not None:
            where = f"{where} (attribute column {self.column})"
        if self.qualname:
            where = f"{where} in {self.qualname}"
        return where

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "line": self.line,
            "column": self.column,
            "qualname": self.qualname,
        }


def location_of(obj: Any) -> SourceLocation:
    """Best-effort location of a function or class.

    Functions carry their first line in the code object. Classes need the
    source file, which is missing for classes built in a REPL or by ``exec``.
    """
    target = getattr(obj, "__func__", obj)
    qualname = getattr(target, "__qualname__", None)
    code = getattr(target, "__code__", None)
    if code is not None:
        return SourceLocation(code.co_filename, code.co_firstlineno, qualname=qualname)

    try:
        path = inspect.getsourcefile(target)
    except TypeError:
        path = None
    try:
        _, line = inspect.getsourcelines(target)
    except (OSError, TypeError):
        line = None
    return SourceLocation(path, line, qualname=qualname)
