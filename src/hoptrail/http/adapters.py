# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Programmable transports for tests and offline use."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass, field

from ..errors import ErrorCategory, TransportFault
from .client import Transport
from .models import HttpRequest, RawExchange, RawHeader
from .stream import BodyStream


@dataclass
class CannedResponse:
    """Template for one stubbed response; each send() builds a fresh body stream."""

    status_code: int = 200
    headers: list[RawHeader] = field(default_factory=list)
    body: bytes | str = b""
    http_version: tuple[int, int] = (1, 1)
    fault: TransportFault | None = None

    def build(self, request: HttpRequest, on_close) -> RawExchange:  # noqa: ANN001
        if self.fault is not None:
            # New instance per send; the orchestrator mutates uri and trail.
            raise TransportFault(
                str(self.fault),
                uri=self.fault.uri or request.url,
                category=self.fault.category,
                cause=self.fault.cause,
            )
        stream = BodyStream.from_bytes(self.body, close_callback=on_close)
        return RawExchange(
            status_code=self.status_code,
            raw_headers=list(self.headers),
            stream=stream,
            http_version=self.http_version,
            url=request.url,
        )


def redirect(location: str, status_code: int = 302, headers: Iterable[RawHeader] = ()) -> CannedResponse:
    return CannedResponse(status_code=status_code, headers=[("Location", location), *headers])


class StubTransport(Transport):
    """
    Deterministic, programmable Transport for tests.

    Each URL owns a queue of canned responses; the last response of a queue is repeated once
    the queue is drained. Every request and every body-stream close is recorded.
    """

    def __init__(self, responses: dict[str, CannedResponse | list[CannedResponse]] | None = None):
        self._responses: dict[str, deque[CannedResponse]] = {}
        self.requests: list[HttpRequest] = []
        self.closed_streams = 0
        self.opened_streams = 0
        self.closed = False
        for url, response in (responses or {}).items():
            self.add(url, response)

    def add(self, url: str, response: CannedResponse | list[CannedResponse]) -> None:
        items = response if isinstance(response, list) else [response]
        self._responses.setdefault(url, deque()).extend(items)

    def _on_close(self) -> None:
        self.closed_streams += 1

    def send(self, request: HttpRequest) -> RawExchange:
        self.requests.append(request)
        queue = self._responses.get(request.url)
        if not queue:
            raise TransportFault(
                f"No stubbed response configured for {request.url}",
                uri=request.url,
                category=ErrorCategory.CONNECTION_ERROR,
            )
        canned = queue.popleft() if len(queue) > 1 else queue[0]
        exchange = canned.build(request, self._on_close)
        self.opened_streams += 1
        return exchange

    def requested_urls(self) -> list[str]:
        return [request.url for request in self.requests]

    def close(self) -> None:
        self.closed = True


__all__ = ["CannedResponse", "StubTransport", "redirect"]
