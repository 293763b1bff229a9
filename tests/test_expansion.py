"""Tests for statement splitting, shorthand expansion and list/node resolution."""

import pytest

from turtle_triples import (
    BLANK,
    COLLECTION,
    MaskingTable,
    ParseError,
    RawStatement,
    expand_statement,
    resolve_anonymous_node,
    resolve_collection,
    resolve_structures,
    split_statements,
)


class TestSplitStatements:
    def test_splits_on_terminator(self, ctx):
        statements = split_statements("ex:a ex:b ex:c . ex:d ex:e ex:f , ex:g .", ctx)
        assert statements == [
            RawStatement("ex:a", "ex:b", "ex:c"),
            RawStatement("ex:d", "ex:e", "ex:f , ex:g"),
        ]

    def test_glued_terminator(self, ctx):
        assert split_statements("ex:a ex:b ex:c.", ctx) == [
            RawStatement("ex:a", "ex:b", "ex:c")
        ]

    def test_semicolon_before_terminator(self, ctx):
        statements = split_statements("ex:a ex:b ex:c ;. ex:d ex:e ex:f ; .", ctx)
        assert [s.subject for s in statements] == ["ex:a", "ex:d"]
        assert statements[0].clause == "ex:c"
        assert not ctx.warnings

    def test_unterminated_trailing_segment_warns(self, ctx):
        statements = split_statements("ex:a ex:b ex:c . ex:d ex:e ex:f", ctx)
        assert statements == [RawStatement("ex:a", "ex:b", "ex:c")]
        assert len(ctx.warnings) == 1
        assert "not terminated" in ctx.warnings[0]

    def test_unterminated_trailing_segment_strict(self, strict_ctx):
        with pytest.raises(ParseError, match="not terminated"):
            split_statements("ex:a ex:b ex:c . ex:d ex:e ex:f", strict_ctx)

    def test_short_statement_warns(self, ctx):
        assert split_statements("ex:a ex:b .", ctx) == []
        assert len(ctx.warnings) == 1

    def test_short_statement_strict(self, strict_ctx):
        with pytest.raises(ParseError, match="subject, a predicate and an object"):
            split_statements("ex:a ex:b .", strict_ctx)

    def test_lone_anonymous_node_is_not_malformed(self, ctx):
        assert split_statements("~!BLANK<0>!~ .", ctx) == []
        assert ctx.warnings == []

    def test_empty_text(self, ctx):
        assert split_statements("", ctx) == []
        assert ctx.warnings == []


class TestExpandStatement:
    def test_single_object(self, ctx):
        statement = RawStatement("ex:s", "ex:p", "ex:o")
        assert expand_statement(statement, ctx) == [("ex:s", "ex:p", "ex:o")]

    def test_expansion_order(self, ctx):
        statement = RawStatement(
            "ex:s", "ex:p", "ex:o1 , ex:o2 ; ex:q ex:o3 , ex:o4 ; ex:r ex:o5"
        )
        assert expand_statement(statement, ctx) == [
            ("ex:s", "ex:p", "ex:o1"),
            ("ex:s", "ex:p", "ex:o2"),
            ("ex:s", "ex:q", "ex:o3"),
            ("ex:s", "ex:q", "ex:o4"),
            ("ex:s", "ex:r", "ex:o5"),
        ]
        assert ctx.warnings == []

    def test_trailing_semicolon_is_terminator(self, ctx):
        statement = RawStatement("ex:s", "ex:p", "ex:o ;")
        assert expand_statement(statement, ctx) == [("ex:s", "ex:p", "ex:o")]
        assert ctx.warnings == []

    def test_repeated_semicolons_skipped(self, ctx):
        statement = RawStatement("ex:s", "ex:p", "ex:o ;; ex:q ex:x")
        assert expand_statement(statement, ctx) == [
            ("ex:s", "ex:p", "ex:o"),
            ("ex:s", "ex:q", "ex:x"),
        ]

    def test_type_shorthand(self, ctx):
        statement = RawStatement("ex:s", "a", "ex:T ; a ex:U")
        assert expand_statement(statement, ctx) == [
            ("ex:s", "rdf:type", "ex:T"),
            ("ex:s", "rdf:type", "ex:U"),
        ]

    def test_a_as_object_is_kept(self, ctx):
        statement = RawStatement("ex:s", "ex:p", "a")
        assert expand_statement(statement, ctx) == [("ex:s", "ex:p", "a")]

    def test_oversized_group_keeps_first_two_tokens(self, ctx):
        statement = RawStatement("ex:s", "ex:p", "ex:o ; ex:q ex:x ex:y")
        assert expand_statement(statement, ctx) == [
            ("ex:s", "ex:p", "ex:o"),
            ("ex:s", "ex:q", "ex:x"),
        ]
        assert len(ctx.warnings) == 1

    def test_undersized_group_dropped(self, ctx):
        statement = RawStatement("ex:s", "ex:p", "ex:o ; ex:q")
        assert expand_statement(statement, ctx) == [("ex:s", "ex:p", "ex:o")]
        assert len(ctx.warnings) == 1

    def test_oversized_group_strict(self, strict_ctx):
        statement = RawStatement("ex:s", "ex:p", "ex:o ; ex:q ex:x ex:y")
        with pytest.raises(ParseError, match="exactly one predicate"):
            expand_statement(statement, strict_ctx)

    def test_multi_token_object_keeps_first(self, ctx):
        statement = RawStatement("ex:s", "ex:p", "ex:o1 ex:o2")
        assert expand_statement(statement, ctx) == [("ex:s", "ex:p", "ex:o1")]
        assert "single term" in ctx.warnings[0]


class TestResolveAnonymousNode:
    def test_entries_become_triples(self, ctx):
        triples = resolve_anonymous_node(" ex:c ex:d ; a ex:T ; ", 2, ctx)
        assert triples == [
            ("blank_node_(id=2)", "ex:c", "ex:d"),
            ("blank_node_(id=2)", "rdf:type", "ex:T"),
        ]

    def test_object_list_inside_node(self, ctx):
        triples = resolve_anonymous_node(" ex:p ex:a , ex:b ", 0, ctx)
        assert triples == [
            ("blank_node_(id=0)", "ex:p", "ex:a"),
            ("blank_node_(id=0)", "ex:p", "ex:b"),
        ]

    def test_malformed_entry_dropped(self, ctx):
        triples = resolve_anonymous_node(" ex:p ex:a ex:b ; ex:q ex:c ", 0, ctx)
        assert triples == [("blank_node_(id=0)", "ex:q", "ex:c")]
        assert len(ctx.warnings) == 1

    def test_malformed_entry_strict(self, strict_ctx):
        with pytest.raises(ParseError):
            resolve_anonymous_node(" ex:p ex:a ex:b ", 0, strict_ctx)

    def test_empty_node(self, ctx):
        assert resolve_anonymous_node("", 0, ctx) == []
        assert ctx.warnings == []


class TestResolveCollection:
    def test_elements_numbered_from_one(self, ctx):
        triples, bodies = resolve_collection(" ex:c ex:d ", 0, ctx)
        assert triples == [
            ("collection_(id=0)", "element_(#1)", "ex:c"),
            ("collection_(id=0)", "element_(#2)", "ex:d"),
        ]
        assert bodies == []

    def test_nested_node_harvested_with_offset(self, ctx):
        triples, bodies = resolve_collection(
            " ex:c [ ex:p ex:q ] ex:d ", 4, ctx, first_node_index=1
        )
        assert triples == [
            ("collection_(id=4)", "element_(#1)", "ex:c"),
            ("collection_(id=4)", "element_(#2)", "~!BLANK<1>!~"),
            ("collection_(id=4)", "element_(#3)", "ex:d"),
        ]
        assert bodies == [" ex:p ex:q "]

    def test_empty_collection(self, ctx):
        assert resolve_collection(" ", 0, ctx) == ([], [])


class TestResolveStructures:
    def test_lists_before_nodes_and_nested_nodes_last(self, ctx):
        table = MaskingTable()
        table.extend(COLLECTION, [" [ ex:r ex:s ] "])
        table.extend(BLANK, [" ex:p ex:q "])
        triples = resolve_structures(table, ctx)
        assert triples == [
            ("collection_(id=0)", "element_(#1)", "~!BLANK<1>!~"),
            ("blank_node_(id=0)", "ex:p", "ex:q"),
            ("blank_node_(id=1)", "ex:r", "ex:s"),
        ]
        assert table.count(BLANK) == 2
