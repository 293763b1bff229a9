#!/usr/bin/env python3
"""Flatten Turtle-style documents into plain (subject, predicate, object) rows.

The extraction works by sequential text rewriting rather than a grammar
driven scanner: identifiers and literals are masked behind placeholder
tokens, bracketed lists and anonymous nodes are harvested by offset, and
the remaining flat text is split into statements whose ``;``/``,``
shorthand is expanded into independent triples.  Anonymous nodes and
ordered lists receive readable identifiers (``blank_node_(id=N)``,
``collection_(id=N)``) so the output stays easy to load into tables.

Output is either a delimited table or a re-serialized Turtle file.
"""

from __future__ import annotations

import argparse
import logging
import re
import sys
from bisect import bisect_left
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

__version__ = "0.1.0"

logger = logging.getLogger(__name__)

RDF_NS = "http://www.w3.org/1999/02/22-rdf-syntax-ns#"
RDF_TYPE_ABBREVIATION = "rdf:type"
FALLBACK_NAMESPACE = "http://www.example-domain.org#"

PREFIX_KEYWORD = "@prefix"
BASE_KEY = "base:"
TYPE_SHORTHAND = "a"

URL = "URL"
LITERAL1 = "LITERAL1"
LITERAL2 = "LITERAL2"
LITERAL3 = "LITERAL3"
BLANK = "BLANK"
COLLECTION = "COLLECTION"

LITERAL_KINDS = (LITERAL1, LITERAL2, LITERAL3)
STRUCTURAL_KINDS = (BLANK, COLLECTION)
PLACEHOLDER_KINDS = (URL, *LITERAL_KINDS, *STRUCTURAL_KINDS)

BRACKETS = {
    COLLECTION: ("(", ")"),
    BLANK: ("[", "]"),
}

PREFIX_MATCH_POLICIES = ("first", "longest")

Triple = tuple[str, str, str]

QUOTE_RUN_RE = re.compile(r'"{4,}')
ESCAPED_QUOTE_RE = re.compile(r"\\[\"']")
BASE_DIRECTIVE_RE = re.compile(r"@base\b")
SPARQL_PREFIX_RE = re.compile(
    r"^([ \t]*)PREFIX[ \t]+([^\s<]*:)[ \t]*(<[^>\n]*>)", re.IGNORECASE | re.MULTILINE
)
SPARQL_BASE_RE = re.compile(
    r"^([ \t]*)BASE[ \t]+(<[^>\n]*>)", re.IGNORECASE | re.MULTILINE
)
URL_RE = re.compile(r"<(.*?)>")
DATATYPE_GAP_RE = re.compile(r"\^\^\s+")
LITERAL_PATTERNS = (
    (LITERAL3, re.compile(r"(?P<quote>\"\"\"|''')(?P<body>.*?)(?P=quote)", re.DOTALL)),
    (LITERAL2, re.compile(r'"(?P<body>.*?)"', re.DOTALL)),
    (LITERAL1, re.compile(r"'(?P<body>.*?)'", re.DOTALL)),
)
COMMENT_RE = re.compile(r"#[^\n]*")
IRI_RUN_RE = re.compile(r"[A-Za-z][\w+.-]*://[^\s\"<>]*|\b(?:urn|mailto):[^\s\"<>]*")
WHITESPACE_RE = re.compile(r"\s+")
SEPARATOR_RE = re.compile(r"\s*([;,])\s*")
SEMICOLON_TERMINATOR_RE = re.compile(r";\s*\.(?=\s)")
GLUED_TERMINATOR_RE = re.compile(r"(?<=\S)\.(?=\s)")
STATEMENT_SEPARATOR = " . "
PLACEHOLDER_RE = re.compile(
    r"~!(?P<kind>URL|LITERAL[123]|BLANK|COLLECTION)<(?P<index>\d+)>!~"
)


class ParseError(ValueError):
    """Raised when the document cannot be turned into well-formed statements."""

    def __init__(self, source: str, message: str, fragment: str | None = None):
        """Initialize a parse error with the offending text fragment, if known."""
        detail = f"{source}: {message}"
        if fragment:
            detail += f" (near {fragment!r})"
        super().__init__(detail)
        self.source = source
        self.message = message
        self.fragment = fragment


class BracketError(ParseError):
    """Raised when ``(``/``)`` or ``[``/``]`` nesting is unbalanced."""


class PlaceholderError(RuntimeError):
    """Raised when a placeholder cannot be resolved to exactly one stored span."""


@dataclass(frozen=True)
class Placeholder:
    """Reference to a masked span: one kind and its per-kind index."""
    kind: str
    index: int

    @property
    def token(self) -> str:
        """Return the textual token that stands in for the span."""
        return f"~!{self.kind}<{self.index}>!~"


def iter_placeholders(text: str) -> Iterable[Placeholder]:
    """Yield every placeholder referenced in ``text`` from left to right."""
    for match in PLACEHOLDER_RE.finditer(text):
        yield Placeholder(match.group("kind"), int(match.group("index")))


@dataclass
class MaskingTable:
    """Per-kind registries of the spans hidden behind placeholder tokens."""
    spans: dict[str, list[str]] = field(
        default_factory=lambda: {kind: [] for kind in PLACEHOLDER_KINDS}
    )

    def add(self, kind: str, span: str) -> Placeholder:
        """Store one span and return the placeholder that now refers to it."""
        registry = self.spans[kind]
        registry.append(span)
        return Placeholder(kind, len(registry) - 1)

    def extend(self, kind: str, spans: Iterable[str]) -> None:
        """Store harvested spans whose indices continue the registry for ``kind``."""
        self.spans[kind].extend(spans)

    def count(self, kind: str) -> int:
        """Return how many spans of ``kind`` have been stored."""
        return len(self.spans[kind])

    def lookup(self, placeholder: Placeholder) -> str:
        """Return the stored span for ``placeholder`` or fail on a dangling index."""
        registry = self.spans[placeholder.kind]
        if not 0 <= placeholder.index < len(registry):
            raise PlaceholderError(
                f"placeholder {placeholder.token} has no stored span "
                f"({len(registry)} {placeholder.kind} spans registered)"
            )
        return registry[placeholder.index]


@dataclass(frozen=True)
class FlattenOptions:
    """Options controlling how strictly the document is flattened."""
    strict: bool = False
    prefix_match: str = "first"

    def __post_init__(self) -> None:
        """Validate the prefix-matching policy."""
        if self.prefix_match not in PREFIX_MATCH_POLICIES:
            raise ValueError(
                f"unsupported prefix match policy: {self.prefix_match} "
                f"(expected one of {', '.join(PREFIX_MATCH_POLICIES)})"
            )


@dataclass
class ParseContext:
    """Per-document diagnostics sink shared by the expansion stages."""
    source: str
    options: FlattenOptions
    table: MaskingTable | None = None
    warnings: list[str] = field(default_factory=list)

    def malformed(self, message: str, fragment: str | None = None) -> None:
        """Raise in strict mode, otherwise record a warning and let the caller recover."""
        if fragment is not None and self.table is not None:
            fragment = restore_masked(fragment.strip(), self.table)
        if self.options.strict:
            raise ParseError(self.source, message, fragment)
        warning = str(ParseError(self.source, message, fragment))
        logger.warning(warning)
        self.warnings.append(warning)


def normalize_directives(text: str) -> str:
    """Rewrite ``@base`` and SPARQL-style directives to ``@prefix`` statements."""
    text = SPARQL_PREFIX_RE.sub(r"\1@prefix \2 \3 .", text)
    text = SPARQL_BASE_RE.sub(r"\1@prefix : \2 .", text)
    return BASE_DIRECTIVE_RE.sub("@prefix :", text)


def mask_text(text: str) -> tuple[str, MaskingTable]:
    """Replace identifiers and quoted literals with placeholders.

    Identifiers in angle brackets are masked first so their content is never
    read as quote delimiters, then triple-, double- and single-quoted
    literals, each class only after the previous one is hidden.  Runs of four
    or more double quotes and backslash-escaped quotes are deleted up front.
    """
    table = MaskingTable()
    text = QUOTE_RUN_RE.sub("", text)
    text = ESCAPED_QUOTE_RE.sub("", text)
    text = normalize_directives(text)
    text = URL_RE.sub(lambda m: f" {table.add(URL, m.group(1)).token} ", text)
    text = DATATYPE_GAP_RE.sub("^^", text)
    for kind, pattern in LITERAL_PATTERNS:
        text = pattern.sub(
            lambda m, kind=kind: table.add(kind, m.group("body")).token, text
        )
    return text, table


def strip_comments(text: str, ctx: ParseContext | None = None) -> str:
    """Remove ``#`` comments; run only after masking hid ``#`` in identifiers.

    A quote inside a comment (``# Alice's data``) opens a literal that can
    run past the end of the comment line and hide the statements after it.
    With a context, a comment holding such a multi-line literal is reported.
    """
    def drop(match: re.Match[str]) -> str:
        if ctx is not None and ctx.table is not None:
            for placeholder in iter_placeholders(match.group(0)):
                if placeholder.kind in LITERAL_KINDS and "\n" in ctx.table.lookup(placeholder):
                    ctx.malformed(
                        "comment contains a quote that hides the lines after it",
                        match.group(0),
                    )
                    break
        return ""

    return COMMENT_RE.sub(drop, text)


def flatten_whitespace(text: str) -> str:
    """Collapse every whitespace run to a single space."""
    return WHITESPACE_RE.sub(" ", text).strip()


@dataclass(frozen=True)
class BracketSpan:
    """One matched bracket pair, as offsets into the scanned text."""
    start: int
    end: int
    index: int

    @property
    def length(self) -> int:
        """Return the length of the bracketed text, delimiters included."""
        return self.end - self.start


@dataclass
class Harvest:
    """Result of harvesting one bracket grammar from a text.

    ``spans`` and ``bodies`` are in harvest order (the order the closing
    brackets appear), so nested spans come before the spans enclosing them.
    Offsets always refer to the text that was scanned; the rewritten
    ``text`` is assembled only after the scan finished.
    """
    kind: str
    text: str
    spans: list[BracketSpan]
    bodies: list[str]


def _excerpt(text: str, offset: int, radius: int = 20) -> str:
    return text[max(0, offset - radius) : offset + radius].strip()


def harvest_brackets(
    text: str, kind: str, first_index: int = 0, source: str = "<string>"
) -> Harvest:
    """Extract every matched bracket pair of ``kind`` and replace it by a placeholder."""
    opener, closer = BRACKETS[kind]
    stack: list[int] = []
    pairs: list[tuple[int, int]] = []
    for offset, ch in enumerate(text):
        if ch == opener:
            stack.append(offset)
        elif ch == closer:
            if not stack:
                raise BracketError(
                    source, f"unmatched '{closer}'", _excerpt(text, offset)
                )
            pairs.append((stack.pop(), offset + 1))
    if stack:
        raise BracketError(source, f"unclosed '{opener}'", _excerpt(text, stack[-1]))

    spans = [
        BracketSpan(start, end, first_index + position)
        for position, (start, end) in enumerate(pairs)
    ]
    by_start = sorted(spans, key=lambda span: span.start)
    starts = [span.start for span in by_start]

    def splice(lo: int, hi: int) -> str:
        """Return ``text[lo:hi]`` with its outermost spans replaced by tokens."""
        pieces: list[str] = []
        cursor = lo
        for span in by_start[bisect_left(starts, lo) :]:
            if span.start >= hi:
                break
            if span.start < cursor:
                # Nested inside a span that was already replaced.
                continue
            pieces.append(text[cursor : span.start])
            pieces.append(f" {Placeholder(kind, span.index).token} ")
            cursor = span.end
        pieces.append(text[cursor:hi])
        return "".join(pieces)

    bodies = [splice(span.start + 1, span.end - 1) for span in spans]
    return Harvest(kind=kind, text=splice(0, len(text)), spans=spans, bodies=bodies)


@dataclass(frozen=True)
class RawStatement:
    """A statement split into subject, predicate and unexpanded object clause."""
    subject: str
    predicate: str
    clause: str


def node_identifier(index: int) -> str:
    """Return the readable identifier of anonymous node ``index``."""
    return f"blank_node_(id={index})"


def collection_identifier(index: int) -> str:
    """Return the readable identifier of ordered list ``index``."""
    return f"collection_(id={index})"


def element_predicate(position: int) -> str:
    """Return the predicate linking an ordered list to its 1-based ``position``."""
    return f"element_(#{position})"


def is_placeholder_of(token: str, kind: str) -> bool:
    """Return whether ``token`` is exactly one placeholder of ``kind``."""
    match = PLACEHOLDER_RE.fullmatch(token)
    return match is not None and match.group("kind") == kind


def tighten_separators(text: str) -> str:
    """Drop the whitespace around ``;`` and ``,`` so they can be split on directly."""
    return SEPARATOR_RE.sub(r"\1", text)


def expand_verb(token: str) -> str:
    """Rewrite the ``a`` shorthand to the RDF type predicate."""
    return RDF_TYPE_ABBREVIATION if token == TYPE_SHORTHAND else token


def split_statements(text: str, ctx: ParseContext) -> list[RawStatement]:
    """Split flattened, fully masked text into raw statements."""
    text = SEMICOLON_TERMINATOR_RE.sub(" . ", f" {text} ")
    text = GLUED_TERMINATOR_RE.sub(" .", text)
    segments = text.split(STATEMENT_SEPARATOR)
    trailing = segments.pop().strip()
    if trailing:
        ctx.malformed("statement is not terminated by '.'", trailing)

    statements: list[RawStatement] = []
    for segment in segments:
        parts = segment.strip().split(maxsplit=2)
        if not parts:
            continue
        if len(parts) < 3:
            if len(parts) == 1 and is_placeholder_of(parts[0], BLANK):
                # `[ ... ] .` only contributes the node's own triples.
                continue
            ctx.malformed(
                "statement needs a subject, a predicate and an object", segment
            )
            continue
        statements.append(RawStatement(*parts))
    return statements


def split_objects(items: str, ctx: ParseContext) -> list[str]:
    """Split a comma-separated object list into single object tokens."""
    objects: list[str] = []
    for item in items.split(","):
        tokens = item.split()
        if not tokens:
            continue
        if len(tokens) > 1:
            ctx.malformed("object is not a single term; only its first token is kept", item)
        objects.append(tokens[0])
    return objects


def expand_statement(statement: RawStatement, ctx: ParseContext) -> list[Triple]:
    """Expand ``;`` predicate lists and ``,`` object lists into separate triples."""
    subject = statement.subject
    clause = tighten_separators(statement.clause).rstrip(";")
    head, *groups = clause.split(";")

    triples: list[Triple] = [
        (subject, expand_verb(statement.predicate), obj)
        for obj in split_objects(head, ctx)
    ]
    if not triples:
        ctx.malformed("statement has no object", f"{subject} {statement.predicate}")

    for group in groups:
        tokens = group.split()
        if not tokens:
            continue
        if len(tokens) != 2:
            ctx.malformed(
                "predicate group must hold exactly one predicate and one object list",
                group,
            )
            if len(tokens) < 2:
                continue
        predicate = expand_verb(tokens[0])
        triples.extend((subject, predicate, obj) for obj in split_objects(tokens[1], ctx))
    return triples


def resolve_collection(
    body: str, index: int, ctx: ParseContext, first_node_index: int = 0
) -> tuple[list[Triple], list[str]]:
    """Turn one ordered-list body into element triples.

    Anonymous nodes inside the list are harvested first, numbered from
    ``first_node_index``; their bodies are returned so the caller can resolve
    them together with the other anonymous nodes.
    """
    nested = harvest_brackets(body, BLANK, first_index=first_node_index, source=ctx.source)
    collection = collection_identifier(index)
    triples = [
        (collection, element_predicate(position), item)
        for position, item in enumerate(nested.text.split(), start=1)
    ]
    return triples, nested.bodies


def resolve_anonymous_node(body: str, index: int, ctx: ParseContext) -> list[Triple]:
    """Turn one anonymous-node body into triples about ``blank_node_(id=index)``."""
    node = node_identifier(index)
    body = tighten_separators(flatten_whitespace(body)).rstrip(" ;.")
    triples: list[Triple] = []
    for entry in body.split(";"):
        tokens = entry.split()
        if not tokens:
            continue
        if len(tokens) != 2:
            ctx.malformed(
                "anonymous node entry must hold exactly one predicate and one object list",
                entry,
            )
            continue
        predicate = expand_verb(tokens[0])
        triples.extend((node, predicate, obj) for obj in split_objects(tokens[1], ctx))
    return triples


def resolve_structures(table: MaskingTable, ctx: ParseContext) -> list[Triple]:
    """Emit triples for every harvested ordered list, then every anonymous node."""
    triples: list[Triple] = []
    for index, body in enumerate(table.spans[COLLECTION]):
        collection_triples, nested_bodies = resolve_collection(
            body, index, ctx, first_node_index=table.count(BLANK)
        )
        triples.extend(collection_triples)
        table.extend(BLANK, nested_bodies)
    for index, body in enumerate(table.spans[BLANK]):
        triples.extend(resolve_anonymous_node(body, index, ctx))
    return triples


def restore_masked(component: str, table: MaskingTable, nested: bool = False) -> str:
    """Put masked URLs and literals back; literals are re-quoted with ``"``.

    URLs restored inside a literal keep their angle brackets so the literal
    text is unchanged.
    """
    def replace(match: re.Match[str]) -> str:
        """Return the stored span for one URL or literal placeholder."""
        kind = match.group("kind")
        if kind in STRUCTURAL_KINDS:
            return match.group(0)
        span = table.lookup(Placeholder(kind, int(match.group("index"))))
        if kind == URL:
            return f"<{span}>" if nested else span
        # A literal span may hold already masked URLs or literals.
        span = restore_masked(span, table, nested=True)
        return f'"{WHITESPACE_RE.sub(" ", span)}"'

    return PLACEHOLDER_RE.sub(replace, component)


def assign_identifier(component: str, table: MaskingTable) -> str:
    """Replace a component holding a list or node placeholder by its identifier."""
    for placeholder in iter_placeholders(component):
        if placeholder.kind not in STRUCTURAL_KINDS:
            continue
        table.lookup(placeholder)
        if placeholder.kind == BLANK:
            return node_identifier(placeholder.index)
        return collection_identifier(placeholder.index)
    return component


def resolve_placeholders(triples: list[Triple], table: MaskingTable) -> list[Triple]:
    """Run the literal/URL pass and then the identifier pass over every component."""
    restored = [
        (restore_masked(s, table), restore_masked(p, table), restore_masked(o, table))
        for s, p, o in triples
    ]
    return [
        (assign_identifier(s, table), assign_identifier(p, table), assign_identifier(o, table))
        for s, p, o in restored
    ]


def ensure_resolved(triples: list[Triple]) -> None:
    """Fail if any placeholder survived resolution."""
    for triple in triples:
        for component in triple:
            match = PLACEHOLDER_RE.search(component)
            if match is not None:
                raise PlaceholderError(
                    f"unresolved placeholder {match.group(0)} in triple {triple!r}"
                )


def split_iri_runs(text: str) -> list[tuple[str, bool]]:
    """Split ``text`` into pieces, flagging those that are full identifiers."""
    pieces: list[tuple[str, bool]] = []
    cursor = 0
    for match in IRI_RUN_RE.finditer(text):
        pieces.append((text[cursor : match.start()], False))
        pieces.append((match.group(0), True))
        cursor = match.end()
    pieces.append((text[cursor:], False))
    return pieces


class PrefixTable:
    """Ordered abbreviation bindings collected from ``@prefix`` statements."""

    def __init__(self, match: str = "first"):
        """Initialize the table with the RDF namespace pre-registered."""
        if match not in PREFIX_MATCH_POLICIES:
            raise ValueError(f"unsupported prefix match policy: {match}")
        self.match = match
        self.bindings: dict[str, str] = {"rdf:": RDF_NS}
        self.declared = 0

    def register(self, abbreviation: str, identifier: str) -> None:
        """Bind ``abbreviation``; the bare ``:`` is stored under ``base:``."""
        key = BASE_KEY if abbreviation == ":" else abbreviation
        self.bindings[key] = identifier
        self.declared += 1

    @property
    def base(self) -> str | None:
        """Return the base namespace, if one was declared."""
        return self.bindings.get(BASE_KEY)

    def abbreviations(self) -> list[str]:
        """Return the declared abbreviations in registration order, without ``base:``."""
        return [key for key in self.bindings if key != BASE_KEY]

    def expand(self, component: str) -> str:
        """Expand the abbreviation used in ``component`` to its full identifier.

        Full identifiers are returned unchanged, so expanding an already
        expanded component is a no-op.
        """
        if component.startswith(":"):
            if self.base is None:
                return component
            return self.base + component[1:]
        if not component.startswith('"') and looks_like_iri(component):
            return component
        if self.match == "longest":
            return self._expand_anchored(component)
        return self._expand_substring(component)

    def _expand_substring(self, component: str) -> str:
        """Replace every occurrence of the first abbreviation found outside identifiers."""
        pieces = split_iri_runs(component)
        for abbreviation in self.abbreviations():
            if any(abbreviation in piece for piece, is_iri in pieces if not is_iri):
                identifier = self.bindings[abbreviation]
                return "".join(
                    piece if is_iri else piece.replace(abbreviation, identifier)
                    for piece, is_iri in pieces
                )
        return component

    def _expand_anchored(self, component: str) -> str:
        """Expand only the longest abbreviation at the start of the term."""
        if component.startswith('"'):
            literal, sep, datatype = component.rpartition('"^^')
            if not sep:
                return component
            return f'{literal}"^^{self.expand(datatype)}'
        candidates = [
            abbreviation
            for abbreviation in self.abbreviations()
            if component.startswith(abbreviation)
        ]
        if not candidates:
            return component
        best = max(candidates, key=len)
        return self.bindings[best] + component[len(best) :]


def resolve_prefixes(
    triples: list[Triple], match: str = "first"
) -> tuple[list[Triple], PrefixTable]:
    """Collect prefix declarations, expand every component, drop the declarations."""
    prefixes = PrefixTable(match)
    for subject, predicate, obj in triples:
        if subject == PREFIX_KEYWORD:
            prefixes.register(predicate, obj)

    statements = [triple for triple in triples if triple[0] != PREFIX_KEYWORD]
    if prefixes.base is None and any(
        component.startswith(":") for triple in statements for component in triple
    ):
        logger.warning("base-relative names found but no @base/@prefix : declared")

    expanded = [
        (prefixes.expand(s), prefixes.expand(p), prefixes.expand(o))
        for s, p, o in statements
    ]
    return expanded, prefixes


@dataclass
class TripleDocument:
    """Final triples of one document together with the tables that produced them."""
    source: str
    triples: list[Triple]
    prefixes: PrefixTable
    masking: MaskingTable
    warnings: list[str] = field(default_factory=list)


def flatten_turtle(
    text: str, source: str = "<string>", options: FlattenOptions | None = None
) -> TripleDocument:
    """Parse Turtle-style text and return its flat triple store."""
    options = options or FlattenOptions()
    masked, table = mask_text(text)
    ctx = ParseContext(source=source, options=options, table=table)

    flat = flatten_whitespace(strip_comments(masked, ctx))
    collections = harvest_brackets(flat, COLLECTION, source=source)
    table.extend(COLLECTION, collections.bodies)
    nodes = harvest_brackets(collections.text, BLANK, source=source)
    table.extend(BLANK, nodes.bodies)
    logger.debug(
        "%s: masked %d URLs, %d literals; harvested %d lists, %d anonymous nodes",
        source,
        table.count(URL),
        sum(table.count(kind) for kind in LITERAL_KINDS),
        table.count(COLLECTION),
        table.count(BLANK),
    )

    triples: list[Triple] = []
    statements = split_statements(flatten_whitespace(nodes.text), ctx)
    for statement in statements:
        triples.extend(expand_statement(statement, ctx))
    triples.extend(resolve_structures(table, ctx))
    logger.debug(
        "%s: %d statements expanded to %d triples", source, len(statements), len(triples)
    )

    triples = resolve_placeholders(triples, table)
    triples, prefixes = resolve_prefixes(triples, options.prefix_match)
    ensure_resolved(triples)
    return TripleDocument(
        source=source,
        triples=triples,
        prefixes=prefixes,
        masking=table,
        warnings=ctx.warnings,
    )


TABULAR_HEADER = ("Subject", "Predicate", "Object")


def serialize_tabular(triples: list[Triple], delimiter: str = "\t") -> str:
    """Serialize triples as a header line plus one delimited row per triple."""
    lines = [delimiter.join(TABULAR_HEADER)]
    lines.extend(delimiter.join(triple) for triple in triples)
    return "\n".join(lines) + "\n"


def is_generated_identifier(value: str) -> bool:
    """Return whether ``value`` names a harvested anonymous node or ordered list."""
    return value.startswith(("blank_node_(", "collection_("))


def looks_like_iri(value: str) -> bool:
    """Return whether ``value`` is already a full identifier."""
    return "://" in value or value.startswith(("urn:", "mailto:"))


def format_term_turtle(value: str, namespace: str) -> str:
    """Format a subject or predicate, minting names under ``namespace`` when needed."""
    if is_generated_identifier(value) or not looks_like_iri(value):
        return f"<{namespace}{value}>"
    return f"<{value}>"


def format_object_turtle(value: str, namespace: str) -> str:
    """Format an object; literals keep their quotes and get a bracketed datatype."""
    if is_generated_identifier(value):
        return f"<{namespace}{value}>"
    if value.startswith('"'):
        literal, sep, datatype = value.rpartition('"^^')
        if sep:
            return f'{literal}"^^<{datatype}>'
        return value
    if looks_like_iri(value):
        return f"<{value}>"
    return f'"{value}"'


def serialize_turtle(
    triples: list[Triple],
    prefixes: PrefixTable | None = None,
    fallback_namespace: str = FALLBACK_NAMESPACE,
) -> str:
    """Serialize triples as one fully bracketed Turtle statement per line."""
    namespace = fallback_namespace
    if prefixes is not None and prefixes.base is not None:
        namespace = prefixes.base
    lines = [
        f"{format_term_turtle(s, namespace)} {format_term_turtle(p, namespace)} "
        f"{format_object_turtle(o, namespace)} ."
        for s, p, o in triples
    ]
    if not lines:
        return ""
    return "\n".join(lines) + "\n"


def compute_stats(document: TripleDocument) -> dict[str, int]:
    """Compute counts describing the flattened document."""
    triples = document.triples
    table = document.masking
    return {
        "triples": len(triples),
        "subjects_unique": len({s for s, _, _ in triples}),
        "predicates_unique": len({p for _, p, _ in triples}),
        "objects_unique": len({o for _, _, o in triples}),
        "prefixes_declared": document.prefixes.declared,
        "urls_masked": table.count(URL),
        "literals_masked": sum(table.count(kind) for kind in LITERAL_KINDS),
        "collections_harvested": table.count(COLLECTION),
        "anonymous_nodes_harvested": table.count(BLANK),
        "warnings": len(document.warnings),
    }


OUTPUT_FORMATS = ("tsv", "turtle")

EXTENSION_FORMATS = {
    ".ttl": "turtle",
    ".turtle": "turtle",
    ".tsv": "tsv",
    ".csv": "tsv",
    ".txt": "tsv",
}

STATS_ORDER = (
    "triples",
    "subjects_unique",
    "predicates_unique",
    "objects_unique",
    "prefixes_declared",
    "urls_masked",
    "literals_masked",
    "collections_harvested",
    "anonymous_nodes_harvested",
    "warnings",
)


def detect_format_from_path(path: str) -> str | None:
    """Infer the output shape from a file extension."""
    if path == "-":
        return None
    return EXTENSION_FORMATS.get(Path(path).suffix.lower())


def decode_delimiter(value: str) -> str:
    """Turn a CLI delimiter such as ``\\t`` into the character it names."""
    delimiter = value.replace("\\t", "\t")
    if not delimiter:
        raise ValueError("delimiter must not be empty")
    return delimiter


def read_input(path: str) -> str:
    """Read UTF-8 input text from a file or stdin."""
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def write_output(path: str, data: str) -> None:
    """Write output text to a file or stdout."""
    if path == "-":
        sys.stdout.write(data)
        return
    Path(path).write_text(data, encoding="utf-8")


def build_parser() -> argparse.ArgumentParser:
    """Create the command-line argument parser for ``turtle-triples``."""
    parser = argparse.ArgumentParser(
        prog="turtle-triples",
        description=(
            "Flatten a Turtle document into simple triples and write them as "
            "a delimited table or as fully bracketed Turtle."
        ),
    )
    parser.add_argument("input", help="Input file path, or '-' for stdin.")
    parser.add_argument(
        "output",
        nargs="?",
        default="-",
        help="Output file path, or '-' for stdout (default).",
    )
    parser.add_argument(
        "--to",
        dest="target_format",
        choices=OUTPUT_FORMATS,
        help="Output shape. If omitted, inferred from the output extension (default tsv).",
    )
    parser.add_argument(
        "--delimiter",
        default="\\t",
        help="Column delimiter for tabular output (default: tab).",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail on malformed statements instead of warning and recovering.",
    )
    parser.add_argument(
        "--prefix-match",
        choices=PREFIX_MATCH_POLICIES,
        default="first",
        help=(
            "How abbreviations are expanded: 'first' replaces the first declared "
            "prefix found anywhere in a term, 'longest' only the longest prefix "
            "at the start of a term."
        ),
    )
    parser.add_argument(
        "--namespace",
        default=FALLBACK_NAMESPACE,
        help="Namespace for generated names when the document declares no base.",
    )
    parser.add_argument(
        "--stats",
        action="store_true",
        help="Print extraction statistics to stderr.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log pipeline details to stderr.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def resolve_target(args: argparse.Namespace) -> str:
    """Resolve the output shape from CLI arguments."""
    if args.target_format:
        return args.target_format
    return detect_format_from_path(args.output) or "tsv"


def emit_stats(stats: dict[str, int]) -> None:
    """Print collected statistics to stderr."""
    print("stats:", file=sys.stderr)
    for key in STATS_ORDER:
        if key in stats:
            print(f"{key}: {stats[key]}", file=sys.stderr)
    for key in sorted(stats):
        if key not in STATS_ORDER:
            print(f"{key}: {stats[key]}", file=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    """Run the ``turtle-triples`` command-line interface."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    try:
        target = resolve_target(args)
        delimiter = decode_delimiter(args.delimiter)
        options = FlattenOptions(strict=args.strict, prefix_match=args.prefix_match)

        input_text = read_input(args.input)
        source_name = args.input if args.input != "-" else "<stdin>"
        document = flatten_turtle(input_text, source=source_name, options=options)

        if target == "turtle":
            output_text = serialize_turtle(
                document.triples, document.prefixes, fallback_namespace=args.namespace
            )
        else:
            output_text = serialize_tabular(document.triples, delimiter=delimiter)
        write_output(args.output, output_text)

        if args.stats:
            emit_stats(compute_stats(document))
        return 0
    except (ParseError, ValueError, OSError) as exc:
        parser.exit(status=1, message=f"Error: {exc}\n")


if __name__ == "__main__":
    raise SystemExit(main())
