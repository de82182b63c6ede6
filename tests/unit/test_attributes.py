"""Tests for the attribute grammars."""

from __future__ import annotations

import pytest

from mcp_toolbox.attributes import (
    BOOL,
    IDENT,
    MARKER,
    NUMBER,
    STRING,
    TABLE,
    ParamMarker,
    ToolFnItemAttrs,
    ToolImplItemAttrs,
    entries_from_arguments,
    parse_attribute_text,
)
from mcp_toolbox.exceptions import (
    AttributeSyntaxError,
    InvalidAnnotationLiteralError,
    UnknownAttributeError,
)
from mcp_toolbox.source import SourceLocation


class TestParseAttributeText:
    def test_empty(self) -> None:
        assert parse_attribute_text("") == []
        assert parse_attribute_text("   ") == []

    def test_marker(self) -> None:
        entries = parse_attribute_text("aggr")
        assert len(entries) == 1
        assert entries[0].key == "aggr"
        assert entries[0].kind == MARKER
        assert entries[0].is_marker

    def test_both_separators(self) -> None:
        entries = parse_attribute_text("name = 'add', description: \"adds\"")
        assert [(e.key, e.kind, e.value) for e in entries] == [
            ("name", STRING, "add"),
            ("description", STRING, "adds"),
        ]

    def test_value_kinds(self) -> None:
        entries = parse_attribute_text("a = 1, b = 2.5, c = true, d = False, e = router")
        assert [(e.kind, e.value) for e in entries] == [
            (NUMBER, 1),
            (NUMBER, 2.5),
            (BOOL, True),
            (BOOL, False),
            (IDENT, "router"),
        ]

    def test_trailing_comma(self) -> None:
        entries = parse_attribute_text("aggr, name = 'x',")
        assert [e.key for e in entries] == ["aggr", "name"]

    def test_string_escapes(self) -> None:
        entries = parse_attribute_text(r"description = 'line one\nit\'s'")
        assert entries[0].value == "line one\nit's"

    def test_nested_table(self) -> None:
        entries = parse_attribute_text("annotations = {title: 'Sum', read_only_hint: true}")
        entry = entries[0]
        assert entry.kind == TABLE
        assert [(e.key, e.value) for e in entry.value] == [
            ("title", "Sum"),
            ("read_only_hint", True),
        ]

    def test_empty_table(self) -> None:
        entries = parse_attribute_text("annotations = {}")
        assert entries[0].kind == TABLE
        assert entries[0].value == ()

    def test_offsets(self) -> None:
        entries = parse_attribute_text("aggr, name = 'x'")
        assert entries[0].offset == 0
        assert entries[1].offset == 6

    def test_unterminated_string(self) -> None:
        with pytest.raises(AttributeSyntaxError, match="unterminated"):
            parse_attribute_text("name = 'oops")

    def test_missing_comma(self) -> None:
        with pytest.raises(AttributeSyntaxError):
            parse_attribute_text("name = 'a' aggr")

    def test_missing_value(self) -> None:
        with pytest.raises(AttributeSyntaxError, match="end of attributes"):
            parse_attribute_text("name =")

    def test_unexpected_character(self) -> None:
        with pytest.raises(AttributeSyntaxError, match="unexpected character"):
            parse_attribute_text("name = @")

    def test_table_key_needs_value(self) -> None:
        with pytest.raises(AttributeSyntaxError, match="after annotation key"):
            parse_attribute_text("annotations = {title}")

    def test_error_column(self) -> None:
        location = SourceLocation("tools.py", 10)
        with pytest.raises(AttributeSyntaxError) as exc_info:
            parse_attribute_text("name = @", location)
        assert exc_info.value.location is not None
        assert exc_info.value.location.column == 8
        assert "tools.py:10" in str(exc_info.value)


class TestEntriesFromArguments:
    def test_texts_then_keywords(self) -> None:
        entries = entries_from_arguments(["aggr"], {"name": "add"})
        assert [(e.key, e.kind) for e in entries] == [("aggr", MARKER), ("name", STRING)]

    def test_keyword_kinds(self) -> None:
        entries = entries_from_arguments(
            [], {"aggr": True, "n": 3, "annotations": {"title": "T"}}
        )
        assert [e.kind for e in entries] == [BOOL, NUMBER, TABLE]
        assert entries[2].value[0].key == "title"

    def test_rejects_non_text_positional(self) -> None:
        with pytest.raises(AttributeSyntaxError, match="text or keyword"):
            entries_from_arguments([42], {})


class TestToolFnItemAttrs:
    def test_defaults(self) -> None:
        attrs = ToolFnItemAttrs.parse([])
        assert attrs.name is None
        assert attrs.description is None
        assert attrs.vis is None
        assert attrs.aggr is False
        assert attrs.annotations is None

    def test_full(self) -> None:
        attrs = ToolFnItemAttrs.parse(
            parse_attribute_text(
                "name = 'sum', description = 'adds', vis = pub, aggr, "
                "annotations = {title: 'Sum', destructive_hint: false}"
            )
        )
        assert attrs.name == "sum"
        assert attrs.description == "adds"
        assert attrs.vis == "public"
        assert attrs.aggr is True
        assert attrs.annotations == {"title": "Sum", "destructive_hint": False}

    def test_aggr_keyword_false(self) -> None:
        attrs = ToolFnItemAttrs.parse(entries_from_arguments([], {"aggr": False}))
        assert attrs.aggr is False

    def test_unknown_key(self) -> None:
        location = SourceLocation("tools.py", 3)
        with pytest.raises(UnknownAttributeError) as exc_info:
            ToolFnItemAttrs.parse(parse_attribute_text("name = 'x', colour = 'red'"), location)
        assert exc_info.value.key == "colour"
        assert exc_info.value.location is not None
        assert exc_info.value.location.column == 13

    def test_unknown_marker(self) -> None:
        with pytest.raises(UnknownAttributeError):
            ToolFnItemAttrs.parse(parse_attribute_text("fast"))

    def test_name_must_be_string(self) -> None:
        with pytest.raises(AttributeSyntaxError, match="string literal"):
            ToolFnItemAttrs.parse(parse_attribute_text("name = 3"))

    def test_annotation_number_rejected(self) -> None:
        with pytest.raises(InvalidAnnotationLiteralError) as exc_info:
            ToolFnItemAttrs.parse(parse_attribute_text("annotations = {read_only_hint: 1}"))
        assert exc_info.value.key == "read_only_hint"

    def test_annotation_ident_rejected(self) -> None:
        with pytest.raises(InvalidAnnotationLiteralError):
            ToolFnItemAttrs.parse(parse_attribute_text("annotations = {title: Sum}"))

    def test_annotations_need_table(self) -> None:
        with pytest.raises(AttributeSyntaxError, match="braced table"):
            ToolFnItemAttrs.parse(parse_attribute_text("annotations = 'x'"))

    def test_visibility(self) -> None:
        assert ToolFnItemAttrs.parse(parse_attribute_text("vis = priv")).vis == "private"
        assert ToolFnItemAttrs.parse(parse_attribute_text("vis = 'public'")).vis == "public"
        with pytest.raises(UnknownAttributeError, match="visibility"):
            ToolFnItemAttrs.parse(parse_attribute_text("vis = crate"))


class TestToolImplItemAttrs:
    def test_defaults(self) -> None:
        attrs = ToolImplItemAttrs.parse([])
        assert attrs.tool_box is None
        assert attrs.default_build is True
        assert attrs.description is None

    def test_tool_box_marker(self) -> None:
        attrs = ToolImplItemAttrs.parse(parse_attribute_text("tool_box"))
        assert attrs.tool_box == "tool_box"

    def test_tool_box_binding(self) -> None:
        attrs = ToolImplItemAttrs.parse(parse_attribute_text("tool_box = router"))
        assert attrs.tool_box == "router"

    def test_tool_box_keyword(self) -> None:
        def binding(value: object) -> str | None:
            return ToolImplItemAttrs.parse(entries_from_arguments([], {"tool_box": value})).tool_box

        assert binding(True) == "tool_box"
        assert binding(False) is None
        assert binding("tb") == "tb"

    def test_tool_box_must_be_identifier(self) -> None:
        with pytest.raises(AttributeSyntaxError, match="identifier"):
            ToolImplItemAttrs.parse(parse_attribute_text("tool_box = 'not valid'"))

    def test_default_build(self) -> None:
        assert ToolImplItemAttrs.parse(parse_attribute_text("default_build")).default_build
        attrs = ToolImplItemAttrs.parse(parse_attribute_text("default_build = false"))
        assert attrs.default_build is False

    def test_description(self) -> None:
        attrs = ToolImplItemAttrs.parse(parse_attribute_text("description = 'A calculator'"))
        assert attrs.description == "A calculator"

    def test_bare_description_is_ignored(self) -> None:
        attrs = ToolImplItemAttrs.parse(parse_attribute_text("tool_box, description"))
        assert attrs.tool_box == "tool_box"
        assert attrs.description is None

    def test_unknown_key(self) -> None:
        with pytest.raises(UnknownAttributeError) as exc_info:
            ToolImplItemAttrs.parse(parse_attribute_text("tool_box, name = 'x'"))
        assert exc_info.value.key == "name"


class TestParamMarker:
    def test_spellings(self) -> None:
        assert ParamMarker.parse("aggr") is ParamMarker.AGGREGATED
        assert ParamMarker.parse("req") is ParamMarker.AGGREGATED
        assert ParamMarker.parse("param") is ParamMarker.PARAM
        assert ParamMarker.parse(ParamMarker.PARAM) is ParamMarker.PARAM

    def test_not_a_marker(self) -> None:
        assert ParamMarker.parse("other") is None
        assert ParamMarker.parse(3) is None
