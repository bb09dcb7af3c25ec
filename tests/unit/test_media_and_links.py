# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import pytest

from hoptrail.errors import LinkHeaderError, MediaTypeError
from hoptrail.fetch.diagnostics import DiagnosticKind, DiagnosticsSink
from hoptrail.http.links import find_link, next_page_link, parse_link_header
from hoptrail.http.media import ASCII, OCTET, UTF8, Encoding, parse_media_type, resolve_encoding


def test_parse_media_type_with_quoted_params():
    media = parse_media_type('Text/HTML; Charset="UTF-8"; q=0.5')
    assert media.type == "text"
    assert media.subtype == "html"
    assert media.essence == "text/html"
    assert media.charset == "UTF-8"
    assert media.params["q"] == "0.5"


def test_parse_media_type_tolerates_trailing_semicolon():
    assert parse_media_type("application/json;").essence == "application/json"


@pytest.mark.parametrize("value", ["", "json", "text/", "text/plain; charset", "text/plain; =x"])
def test_parse_media_type_rejects_malformed(value):
    with pytest.raises(MediaTypeError):
        parse_media_type(value)


@pytest.mark.parametrize(
    "value",
    [
        "application/json",
        "application/json; charset=iso-8859-1",
        "application/n-quads",
        "application/n-triples",
        "application/sparql-query",
        "application/x-prolog",
        "text/turtle",
    ],
)
def test_known_types_resolve_to_utf8(value):
    assert resolve_encoding(value) == UTF8


def test_images_resolve_to_octet():
    assert resolve_encoding("image/png") == OCTET
    assert resolve_encoding("image/jpeg").is_binary


def test_charset_parameter_aliases():
    assert resolve_encoding("text/plain; charset=US-ASCII") == ASCII
    assert resolve_encoding("text/html; charset=UTF-8") == UTF8


def test_unrecognized_charset_passes_through_lowercased():
    encoding = resolve_encoding("text/csv; charset=ISO-8859-1")
    assert encoding == Encoding.other("iso-8859-1")
    assert encoding.name == "iso-8859-1"
    assert encoding.is_other
    assert encoding not in (UTF8, ASCII)
    assert encoding.codec == "iso-8859-1"


def test_undeterminable_encoding_defaults_to_octet_with_warning():
    sink = DiagnosticsSink()
    encoding = resolve_encoding(parse_media_type("application/octet-stream"), sink, uri="http://example/x")
    assert encoding == OCTET
    assert encoding.codec is None
    assert sink.kinds() == [DiagnosticKind.UNKNOWN_ENCODING]
    assert "assuming octet" in sink.records[0].message


def test_parse_link_header_multiple_entries():
    entries = parse_link_header(
        '<https://api.example/items?page=2>; rel="next", <https://api.example/items?page=5>; rel=last; title="Last, page"'
    )
    assert [entry.target for entry in entries] == [
        "https://api.example/items?page=2",
        "https://api.example/items?page=5",
    ]
    assert entries[0].has_rel("next")
    assert entries[1].params["title"] == "Last, page"


def test_parse_link_header_resolves_relative_targets():
    entries = parse_link_header('</items?page=3>; rel="prev next"', base="https://api.example/items?page=2")
    assert entries[0].target == "https://api.example/items?page=3"
    assert entries[0].rels == ("prev", "next")
    assert find_link(entries, "NEXT") is entries[0]
    assert find_link(entries, "last") is None


def test_next_page_link_handles_missing_rel():
    assert next_page_link("<http://example/a>; rel=prev") is None
    assert next_page_link('<http://example/b>; rel="next"') == "http://example/b"


def test_parse_link_header_rejects_garbage():
    with pytest.raises(LinkHeaderError):
        parse_link_header("http://example/no-brackets; rel=next")
