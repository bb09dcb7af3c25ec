# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Page-by-page retrieval of a resource that advertises ``Link: <...>; rel="next"``."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from ..errors import LinkHeaderError, MediaTypeError, TransportFault
from ..http.links import next_page_link
from ..http.media import OCTET, Encoding, parse_media_type, resolve_encoding
from ..http.models import FetchOptions, FetchResult, HopRecord, MediaType, PageResult
from ..http.stream import BodyStream
from ..http.url import base_uri
from .diagnostics import DiagnosticKind, DiagnosticsSink
from .hashing import HashingStream, StreamHasher
from .orchestrator import OrchestrationOutcome, RedirectRetryOrchestrator
from .trail import MetadataTrail

logger = logging.getLogger(__name__)

PageConsumer = Callable[[Encoding | None, HashingStream], Any]


class PaginationFollower:
    """
    Runs the orchestrator once per page and hands each successful body to a consumer.

    Pages are strictly sequential: a page's consumer call (and any exception it raises)
    completes before the next page is requested. The body stream is closed on every exit
    path. All hops of all pages land in one trail.
    """

    def __init__(self, orchestrator: RedirectRetryOrchestrator, sink: DiagnosticsSink | None = None):
        self.orchestrator = orchestrator
        self.sink = sink if sink is not None else orchestrator.sink

    def follow(self, uri: str, consumer: PageConsumer, options: FetchOptions, *, paginate: bool = True) -> FetchResult:
        trail = MetadataTrail()
        hasher = StreamHasher(options.hash_algorithm)
        pages: list[PageResult] = []
        seen: set[str] = set()
        page_uri = uri

        while True:
            try:
                outcome = self.orchestrator.run(page_uri, options, trail)
                if not outcome.ok:
                    return FetchResult(trail=trail.records(), pages=pages, abort=outcome.abort, diagnostics=list(self.sink.records))
                page = self._consume_page(page_uri, outcome, consumer, hasher, trail)
            except TransportFault as fault:
                # Body reads can fail after the exchange was recorded.
                fault.trail = trail.records()
                raise
            pages.append(page)
            seen.update({base_uri(page_uri), base_uri(page.hop.uri)})

            if not paginate:
                break
            next_uri = self._next_page_uri(page_uri, page.hop, seen)
            if next_uri is None:
                break
            if options.max_pages is not None and len(pages) >= options.max_pages:
                self.sink.emit(
                    DiagnosticKind.PAGINATION_LIMIT,
                    f"Stopping pagination after {len(pages)} pages; next page {next_uri} not fetched.",
                    uri=page.hop.uri,
                    next=next_uri,
                )
                break
            logger.debug("Following next page %s", next_uri)
            page_uri = next_uri

        return FetchResult(trail=trail.records(), pages=pages, abort=None, diagnostics=list(self.sink.records))

    def _consume_page(
        self,
        page_uri: str,
        outcome: OrchestrationOutcome,
        consumer: PageConsumer,
        hasher: StreamHasher,
        trail: MetadataTrail,
    ) -> PageResult:
        stream = outcome.stream
        hop = outcome.hop
        if stream is None:
            raise RuntimeError("successful outcome without a body stream")
        try:
            media_type, encoding = self._resolve_encoding(hop, stream)
            hashing = hasher.wrap(stream)
            value = consumer(encoding, hashing)
            hop = hasher.augment(hop, hashing)
            trail.replace_last(hop)
        finally:
            stream.close()
        return PageResult(uri=page_uri, hop=hop, media_type=media_type, encoding=encoding, value=value)

    def _resolve_encoding(self, hop: HopRecord, stream: BodyStream) -> tuple[MediaType | None, Encoding | None]:
        content_type = hop.header("content-type")
        if not content_type:
            # Without a Content-Type the body is expected to be empty.
            if not stream.at_eof():
                self.sink.emit(
                    DiagnosticKind.EMPTY_BODY_EXPECTED,
                    "No `Content-Type' header but non-empty body.",
                    uri=hop.uri,
                    content_length=hop.header("content-length") or None,
                )
            return None, None
        try:
            media_type = parse_media_type(content_type)
        except MediaTypeError as exc:
            self.sink.emit(
                DiagnosticKind.UNKNOWN_ENCODING,
                f"{exc} (assuming octet).",
                uri=hop.uri,
                media_type=content_type,
            )
            return None, OCTET
        return media_type, resolve_encoding(media_type, self.sink, uri=hop.uri)

    def _next_page_uri(self, page_uri: str, hop: HopRecord, seen: set[str]) -> str | None:
        link = hop.header("link")
        if not link:
            return None
        try:
            target = next_page_link(link, base=hop.uri)
        except LinkHeaderError as exc:
            self.sink.emit(DiagnosticKind.MALFORMED_HEADER, str(exc), uri=hop.uri, header="link")
            return None
        if target is None:
            return None
        if base_uri(target) in seen:
            self.sink.emit(
                DiagnosticKind.PAGINATION_LOOP,
                f"Pagination loop: next page of {page_uri} points back to already fetched {target}.",
                uri=hop.uri,
                next=target,
            )
            return None
        return target


__all__ = ["PageConsumer", "PaginationFollower"]
