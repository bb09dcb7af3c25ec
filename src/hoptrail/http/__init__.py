# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP transport, header and media-type exports."""

from .adapters import CannedResponse, StubTransport
from .client import Transport, create_default_transport
from .headers import (
    DEFAULT_REGISTRY,
    DEFAULT_SEPARABLE_HEADERS,
    SeparableHeaderRegistry,
    header_value,
    merge_headers,
    parse_header_line,
    pretty_header_key,
)
from .httpx_client import HttpxTransport
from .links import find_link, next_page_link, parse_link_header
from .media import ASCII, OCTET, UTF8, Encoding, parse_media_type, resolve_encoding
from .models import (
    Exchange,
    FetchOptions,
    FetchResult,
    HeaderMultimap,
    Headers,
    HopRecord,
    HttpRequest,
    LinkEntry,
    MediaType,
    PageResult,
    RawExchange,
)
from .status import default_port, status_label
from .stream import BodyStream
from .url import base_uri, resolve_uri

__all__ = [
    "ASCII",
    "BodyStream",
    "CannedResponse",
    "DEFAULT_REGISTRY",
    "DEFAULT_SEPARABLE_HEADERS",
    "Encoding",
    "Exchange",
    "FetchOptions",
    "FetchResult",
    "HeaderMultimap",
    "Headers",
    "HopRecord",
    "HttpRequest",
    "HttpxTransport",
    "LinkEntry",
    "MediaType",
    "OCTET",
    "PageResult",
    "RawExchange",
    "SeparableHeaderRegistry",
    "StubTransport",
    "Transport",
    "UTF8",
    "base_uri",
    "create_default_transport",
    "default_port",
    "find_link",
    "header_value",
    "merge_headers",
    "next_page_link",
    "parse_header_line",
    "parse_link_header",
    "parse_media_type",
    "pretty_header_key",
    "resolve_encoding",
    "resolve_uri",
    "status_label",
]
