"""Shared fixtures for the turtle_triples test suite."""

import pytest

from turtle_triples import FlattenOptions, ParseContext


@pytest.fixture
def ctx():
    """A permissive parse context with no masking table."""
    return ParseContext(source="<test>", options=FlattenOptions())


@pytest.fixture
def strict_ctx():
    """A strict parse context that raises on malformed input."""
    return ParseContext(source="<test>", options=FlattenOptions(strict=True))


@pytest.fixture
def sample_document():
    """A small document touching every construct the flattener handles."""
    return (
        "@prefix ex: <http://ex.org/> .\n"
        "@prefix xsd: <http://www.w3.org/2001/XMLSchema#> .\n"
        "@base <http://base.org/> .\n"
        "# people\n"
        "ex:alice a ex:Person ;\n"
        "    ex:name \"Alice\" ;\n"
        "    ex:age \"42\"^^xsd:integer ;\n"
        "    ex:knows ex:bob , ex:carol ;\n"
        "    ex:address [ ex:city \"Paris\" ; ex:zip \"75001\" ] ;\n"
        "    ex:likes ( ex:tea [ ex:kind ex:green ] ) .\n"
        ":doc :mentions ex:alice .\n"
    )
