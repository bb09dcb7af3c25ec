# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Single request/response exchange."""

from __future__ import annotations

import logging
import time

from ..errors import ErrorCategory, HeaderParseError, TransportFault
from ..http.client import Transport
from ..http.headers import (
    DEFAULT_REGISTRY,
    SeparableHeaderRegistry,
    header_value,
    merge_headers,
    parse_header_line,
    pretty_header_key,
)
from ..http.models import Exchange, FetchOptions, HttpRequest
from ..http.status import status_label
from .diagnostics import DiagnosticKind, DiagnosticsSink

logger = logging.getLogger(__name__)


def build_request(uri: str, options: FetchOptions, *, method: str | None = None, with_body: bool = True) -> HttpRequest:
    """Translate FetchOptions into a concrete request for ``uri``."""
    headers = dict(options.headers or {})
    if options.user_agent and not header_value(headers, "user-agent"):
        headers["User-Agent"] = options.user_agent
    body = options.body if with_body else None
    if body is not None and options.content_type and not header_value(headers, "content-type"):
        headers["Content-Type"] = options.content_type
    return HttpRequest(
        url=uri,
        method=(method or options.method).upper(),
        headers=headers,
        body=body,
        timeout=options.timeout,
    )


class RequestExecutor:
    """Performs exactly one exchange through a Transport and merges its headers."""

    def __init__(
        self,
        transport: Transport,
        registry: SeparableHeaderRegistry | None = None,
        sink: DiagnosticsSink | None = None,
    ):
        self.transport = transport
        self.registry = registry or DEFAULT_REGISTRY
        self.sink = sink if sink is not None else DiagnosticsSink()

    def execute_request(self, request: HttpRequest) -> Exchange:
        logger.debug("[REQUEST] %s %s", request.method, request.url)
        started = time.perf_counter()
        raw = self.transport.send(request)
        walltime = time.perf_counter() - started

        if not 100 <= raw.status_code <= 599:
            raw.stream.close()
            raise TransportFault(
                f"Invalid HTTP status code {raw.status_code}",
                uri=request.url,
                category=ErrorCategory.PROTOCOL_ERROR,
            )

        try:
            headers = merge_headers(raw.raw_headers, self.registry, self.sink, uri=request.url)
        except HeaderParseError as exc:
            headers = self._merge_leniently(raw.raw_headers, request.url, exc)

        logger.debug("[RESPONSE] %d %s", raw.status_code, request.url)
        if logger.isEnabledFor(logging.DEBUG):
            for key, value in headers.items():
                logger.debug("< %s: %s", pretty_header_key(key), value)

        return Exchange(
            uri=request.url,
            request=request,
            status_code=raw.status_code,
            headers=headers,
            stream=raw.stream,
            http_version=raw.http_version,
            walltime=walltime,
            reason=raw.reason or status_label(raw.status_code),
        )

    def _merge_leniently(self, raw_headers, uri: str, first_error: HeaderParseError) -> dict[str, str]:  # noqa: ANN001
        """Drop unparsable header lines (reporting each) and merge the rest."""
        kept = []
        for item in raw_headers:
            if isinstance(item, (str, bytes)):
                try:
                    parse_header_line(item)
                except HeaderParseError as exc:
                    self.sink.emit(DiagnosticKind.MALFORMED_HEADER, str(exc), uri=uri)
                    continue
            kept.append(item)
        logger.debug("Recovered from malformed header block: %s", first_error)
        return merge_headers(kept, self.registry, self.sink, uri=uri)

    def execute(self, uri: str, options: FetchOptions) -> Exchange:
        """Build the request for ``uri`` from options and perform it."""
        return self.execute_request(build_request(uri, options))


__all__ = ["RequestExecutor", "build_request"]
