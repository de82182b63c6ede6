"""Attribute grammars for the ``tool`` decorator.

Attributes arrive either as text or as keyword arguments::

    @tool("name = 'sum', aggr, annotations = {title: 'Sum', read_only_hint: true}")
    @tool(name="sum", aggr=True, annotations={"title": "Sum"})

Both forms become a flat list of ``AttrEntry`` values which the function-item
and class-item grammars then validate. The text grammar is::

    attrs  := entry ("," entry)* [","]
    entry  := IDENT [("=" | ":") value]
    value  := STRING | NUMBER | BOOL | IDENT | "{" table "}"
    table  := [IDENT ":" value ("," IDENT ":" value)* [","]]

An entry without a value is a standalone marker such as ``aggr``.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, NamedTuple

from .constants import AGGREGATED_IDENT, DEFAULT_TOOL_BOX, PARAM_IDENT, REQ_IDENT
from .exceptions import (
    AttributeSyntaxError,
    InvalidAnnotationLiteralError,
    UnknownAttributeError,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from .source import SourceLocation

# Entry kinds
MARKER = "marker"
STRING = "string"
NUMBER = "number"
BOOL = "bool"
IDENT = "ident"
TABLE = "table"

_PUNCTUATION = {"=": "EQ", ":": "COLON", ",": "COMMA", "{": "LBRACE", "}": "RBRACE"}
_BOOLS = {"true": True, "True": True, "false": False, "False": False}
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0"}


class Token(NamedTuple):
    kind: str
    value: Any
    offset: int


@dataclass(frozen=True)
class AttrEntry:
    """One ``key[=value]`` item, from attribute text or a keyword argument."""

    key: str
    kind: str = MARKER
    value: Any = None
    offset: int | None = None

    @property
    def is_marker(self) -> bool:
        return self.kind == MARKER


class _Tokenizer:
    """Low-level tokenizer for attribute text."""

    __slots__ = ("_text", "_pos", "_length", "_location")

    def __init__(self, text: str, location: SourceLocation | None = None) -> None:
        self._text = text
        self._pos = 0
        self._length = len(text)
        self._location = location

    def _error(self, message: str, offset: int) -> AttributeSyntaxError:
        location = self._location.at_column(offset + 1) if self._location else None
        return AttributeSyntaxError(message, location=location, offset=offset)

    def _skip_whitespace(self) -> None:
        pos = self._pos
        text = self._text
        length = self._length
        while pos < length and text[pos] in " \t\n\r":
            pos += 1
        self._pos = pos

    def tokens(self) -> list[Token]:
        result: list[Token] = []
        while True:
            token = self.next_token()
            if token is None:
                return result
            result.append(token)

    def next_token(self) -> Token | None:
        """Return the next token or None at end of text."""
        self._skip_whitespace()
        if self._pos >= self._length:
            return None

        start = self._pos
        ch = self._text[start]

        if ch in _PUNCTUATION:
            self._pos += 1
            return Token(_PUNCTUATION[ch], ch, start)

        if ch in "\"'":
            return Token(STRING, self._read_quoted_string(ch), start)

        if ch.isdigit() or (ch in "+-." and self._peek_digit()):
            return Token(NUMBER, self._read_number(), start)

        if ch.isalpha() or ch == "_":
            word = self._read_ident()
            if word in _BOOLS:
                return Token(BOOL, _BOOLS[word], start)
            return Token(IDENT, word, start)

        raise self._error(f"unexpected character {ch!r}", start)

    def _peek_digit(self) -> bool:
        nxt = self._pos + 1
        return nxt < self._length and self._text[nxt].isdigit()

    def _read_quoted_string(self, quote: str) -> str:
        """Read a quoted string, handling escape sequences."""
        start = self._pos
        self._pos += 1  # skip opening quote
        result: list[str] = []
        while self._pos < self._length:
            ch = self._text[self._pos]
            if ch == "\\":
                self._pos += 1
                if self._pos < self._length:
                    escaped = self._text[self._pos]
                    result.append(_ESCAPES.get(escaped, escaped))
                    self._pos += 1
                continue
            if ch == quote:
                self._pos += 1
                return "".join(result)
            result.append(ch)
            self._pos += 1
        raise self._error("unterminated string literal", start)

    def _read_number(self) -> int | float:
        start = self._pos
        self._pos += 1
        while self._pos < self._length and (
            self._text[self._pos].isalnum() or self._text[self._pos] in "._"
        ):
            self._pos += 1
        raw = self._text[start : self._pos]
        try:
            return int(raw.replace("_", ""), 0)
        except ValueError:
            pass
        try:
            return float(raw.replace("_", ""))
        except ValueError:
            raise self._error(f"invalid number literal {raw!r}", start) from None

    def _read_ident(self) -> str:
        start = self._pos
        while self._pos < self._length and (
            self._text[self._pos].isalnum() or self._text[self._pos] == "_"
        ):
            self._pos += 1
        return self._text[start : self._pos]


class _Parser:
    """Recursive-descent parser over the token list."""

    def __init__(self, tokens: list[Token], text: str, tokenizer: _Tokenizer) -> None:
        self._tokens = tokens
        self._index = 0
        self._end = len(text)
        self._tokenizer = tokenizer

    def _peek(self) -> Token | None:
        if self._index < len(self._tokens):
            return self._tokens[self._index]
        return None

    def _advance(self) -> Token:
        token = self._peek()
        if token is None:
            raise self._tokenizer._error("unexpected end of attributes", self._end)
        self._index += 1
        return token

    def _expect(self, kind: str, what: str) -> Token:
        token = self._advance()
        if token.kind != kind:
            raise self._tokenizer._error(f"expected {what}, found {token.value!r}", token.offset)
        return token

    def entries(self, closing: str | None = None) -> list[AttrEntry]:
        """Parse ``entry ("," entry)*`` up to the end of text or ``closing``."""
        result: list[AttrEntry] = []
        while True:
            token = self._peek()
            if token is None or (closing is not None and token.kind == closing):
                return result
            result.append(self._entry(in_table=closing is not None))
            token = self._peek()
            if token is None or (closing is not None and token.kind == closing):
                return result
            self._expect("COMMA", "','")

    def _entry(self, in_table: bool) -> AttrEntry:
        key = self._expect(IDENT, "attribute name")
        token = self._peek()
        if token is None or token.kind in ("COMMA", "RBRACE"):
            if in_table:
                raise self._tokenizer._error(
                    f"expected ':' after annotation key {key.value!r}", key.offset
                )
            return AttrEntry(key.value, MARKER, None, key.offset)
        separator = self._advance()
        if separator.kind not in ("EQ", "COLON"):
            raise self._tokenizer._error(
                f"expected '=' or ':' after {key.value!r}, found {separator.value!r}",
                separator.offset,
            )
        value = self._advance()
        if value.kind == "LBRACE":
            table = tuple(self.entries(closing="RBRACE"))
            self._expect("RBRACE", "'}'")
            return AttrEntry(key.value, TABLE, table, key.offset)
        if value.kind not in (STRING, NUMBER, BOOL, IDENT):
            raise self._tokenizer._error(
                f"expected a value for {key.value!r}, found {value.value!r}", value.offset
            )
        return AttrEntry(key.value, value.kind, value.value, key.offset)


def parse_attribute_text(text: str, location: SourceLocation | None = None) -> list[AttrEntry]:
    """Parse attribute text into entries.

    Raises:
        AttributeSyntaxError: If the text is malformed.
    """
    tokenizer = _Tokenizer(text, location)
    parser = _Parser(tokenizer.tokens(), text, tokenizer)
    entries = parser.entries()
    leftover = parser._peek()
    if leftover is not None:
        raise tokenizer._error(f"unexpected {leftover.value!r}", leftover.offset)
    return entries


def _entry_from_value(key: str, value: Any) -> AttrEntry:
    if isinstance(value, bool):
        return AttrEntry(key, BOOL, value)
    if isinstance(value, str):
        return AttrEntry(key, STRING, value)
    if isinstance(value, (int, float)):
        return AttrEntry(key, NUMBER, value)
    if isinstance(value, dict):
        return AttrEntry(key, TABLE, tuple(_entry_from_value(k, v) for k, v in value.items()))
    return AttrEntry(key, type(value).__name__, value)


def entries_from_arguments(
    texts: Iterable[Any],
    keywords: Mapping[str, Any],
    location: SourceLocation | None = None,
) -> list[AttrEntry]:
    """Normalize decorator arguments (texts first, then keywords) into entries."""
    entries: list[AttrEntry] = []
    for text in texts:
        if not isinstance(text, str):
            raise AttributeSyntaxError(
                f"tool attributes must be text or keyword arguments, got {type(text).__name__}",
                location=location,
            )
        entries.extend(parse_attribute_text(text, location))
    entries.extend(_entry_from_value(key, value) for key, value in keywords.items())
    return entries


def _located(location: SourceLocation | None, entry: AttrEntry) -> SourceLocation | None:
    if location is not None and entry.offset is not None:
        return location.at_column(entry.offset + 1)
    return location


def _unknown(entry: AttrEntry, location: SourceLocation | None) -> UnknownAttributeError:
    return UnknownAttributeError(
        f"unknown attribute {entry.key!r}", key=entry.key, location=_located(location, entry)
    )


def _string_value(entry: AttrEntry, location: SourceLocation | None) -> str:
    if entry.kind != STRING:
        raise AttributeSyntaxError(
            f"{entry.key!r} expects a string literal", location=_located(location, entry)
        )
    return entry.value


def _annotation_table(
    entry: AttrEntry, location: SourceLocation | None
) -> dict[str, str | bool]:
    if entry.kind != TABLE:
        raise AttributeSyntaxError(
            "'annotations' expects a braced table of key: literal pairs",
            location=_located(location, entry),
        )
    table: dict[str, str | bool] = {}
    for item in entry.value:
        if item.kind not in (STRING, BOOL):
            raise InvalidAnnotationLiteralError(
                "annotations must be string or boolean literals",
                key=item.key,
                location=_located(location, item),
            )
        table[item.key] = item.value
    return table


@dataclass
class ToolFnItemAttrs:
    """Attributes of a decorated function or method."""

    name: str | None = None
    description: str | None = None
    vis: str | None = None
    aggr: bool = False
    annotations: dict[str, str | bool] | None = None

    @classmethod
    def parse(
        cls, entries: Iterable[AttrEntry], location: SourceLocation | None = None
    ) -> ToolFnItemAttrs:
        attrs = cls()
        for entry in entries:
            if entry.key == AGGREGATED_IDENT and entry.kind in (MARKER, BOOL):
                attrs.aggr = entry.value is not False
            elif entry.is_marker:
                raise _unknown(entry, location)
            elif entry.key == "name":
                attrs.name = _string_value(entry, location)
            elif entry.key == "description":
                attrs.description = _string_value(entry, location)
            elif entry.key == "vis":
                attrs.vis = _visibility(entry, location)
            elif entry.key == "annotations":
                attrs.annotations = _annotation_table(entry, location)
            else:
                raise _unknown(entry, location)
        return attrs


_VISIBILITY = {"pub": "public", "public": "public", "priv": "private", "private": "private"}


def _visibility(entry: AttrEntry, location: SourceLocation | None) -> str:
    if entry.kind in (IDENT, STRING) and entry.value in _VISIBILITY:
        return _VISIBILITY[entry.value]
    raise UnknownAttributeError(
        f"unknown visibility {entry.value!r}; use 'pub' or 'priv'",
        key=entry.key,
        location=_located(location, entry),
    )


@dataclass
class ToolImplItemAttrs:
    """Attributes of a decorated class (a block of tool methods)."""

    tool_box: str | None = None
    default_build: bool = True
    description: str | None = None

    @classmethod
    def parse(
        cls, entries: Iterable[AttrEntry], location: SourceLocation | None = None
    ) -> ToolImplItemAttrs:
        attrs = cls()
        for entry in entries:
            if entry.key == "tool_box":
                attrs.tool_box = _tool_box_binding(entry, location)
            elif entry.key == "default_build":
                if entry.is_marker:
                    attrs.default_build = True
                elif entry.kind == BOOL:
                    attrs.default_build = entry.value
                else:
                    raise _unknown(entry, location)
            elif entry.key == "description":
                # A bare marker names no text and leaves the doc comment in charge
                if not entry.is_marker:
                    attrs.description = _string_value(entry, location)
            else:
                raise _unknown(entry, location)
        return attrs


def _tool_box_binding(entry: AttrEntry, location: SourceLocation | None) -> str | None:
    if entry.is_marker or (entry.kind == BOOL and entry.value):
        return DEFAULT_TOOL_BOX
    if entry.kind == BOOL:
        return None
    if entry.kind in (IDENT, STRING) and str(entry.value).isidentifier():
        return entry.value
    raise AttributeSyntaxError(
        f"'tool_box' expects an identifier, got {entry.value!r}",
        location=_located(location, entry),
    )


class ParamMarker(enum.Enum):
    """Parameter markers accepted in ``Annotated`` metadata."""

    PARAM = PARAM_IDENT
    AGGREGATED = AGGREGATED_IDENT

    @classmethod
    def parse(cls, value: Any) -> ParamMarker | None:
        """Return the marker ``value`` spells, or None if it is not a marker."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        if value == PARAM_IDENT:
            return cls.PARAM
        if value in (AGGREGATED_IDENT, REQ_IDENT):
            return cls.AGGREGATED
        return None
