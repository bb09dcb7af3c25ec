# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""httpx-backed Transport implementation."""

from __future__ import annotations

import re
from collections.abc import Iterator

import httpx

from ..config import FetchSettings, load_fetch_settings
from ..errors import TransportFault
from .client import Transport
from .headers import header_value
from .models import HttpRequest, RawExchange
from .stream import BodyStream

_HTTP_VERSION_RE = re.compile(r"^HTTP/(\d+)(?:\.(\d+))?$", re.IGNORECASE)


def parse_http_version(value: str | None) -> tuple[int, int]:
    """``"HTTP/1.1" -> (1, 1)``, ``"HTTP/2" -> (2, 0)``; unknown values default to 1.1."""
    match = _HTTP_VERSION_RE.match(str(value or "").strip())
    if not match:
        return (1, 1)
    return (int(match.group(1)), int(match.group(2) or 0))


class HttpxTransport(Transport):
    """Synchronous httpx transport that performs single exchanges without following redirects."""

    def __init__(self, settings: FetchSettings | None = None, client: httpx.Client | None = None):
        self.settings = settings or load_fetch_settings()
        self._client = client or httpx.Client(
            follow_redirects=False,
            timeout=self.settings.timeout,
            verify=self.settings.verify_ssl,
        )

    def send(self, request: HttpRequest) -> RawExchange:
        headers = dict(request.headers or {})
        if not header_value(headers, "user-agent"):
            headers["User-Agent"] = self.settings.user_agent
        timeout = request.timeout if request.timeout is not None else self.settings.timeout

        try:
            http_request = self._client.build_request(
                request.method,
                request.url,
                headers=headers,
                content=request.body,
                timeout=timeout,
            )
            response = self._client.send(http_request, stream=True, follow_redirects=False)
        except (httpx.TransportError, httpx.InvalidURL) as exc:
            raise TransportFault.from_exception(exc, uri=request.url) from exc

        raw_headers = [
            (name.decode("latin-1"), value.decode("latin-1"))
            for name, value in response.headers.raw
        ]
        return RawExchange(
            status_code=response.status_code,
            raw_headers=raw_headers,
            stream=BodyStream(_iter_body(response, request.url), close_callback=response.close),
            http_version=parse_http_version(response.http_version),
            reason=response.reason_phrase,
            url=str(response.url),
        )

    def close(self) -> None:
        self._client.close()


def _iter_body(response: httpx.Response, url: str) -> Iterator[bytes]:
    try:
        yield from response.iter_bytes()
    except httpx.TransportError as exc:
        raise TransportFault.from_exception(exc, uri=url) from exc


__all__ = ["HttpxTransport", "parse_http_version"]
