# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Redirect/retry state machine.

One ``run()`` call drives a RequestExecutor until the chain reaches a terminal state:

- ``401`` aborts immediately; repeating the request cannot change the credentials.
- Other ``4xx``/``5xx`` statuses re-issue the identical request until ``number_of_retries``
  attempts have been made. The attempt counter belongs to the whole redirect chain and is
  not reset by redirects.
- ``3xx`` statuses close the body and follow ``Location``. The visited list (the initial
  URI excluded) bounds the chain: ``number_of_hops`` caps its length and
  ``number_of_repeats`` caps how often one URI may appear in it.
- ``2xx`` statuses succeed and hand the open body stream to the caller.

Every exchange appends one HopRecord to the trail before the transition is taken. Protocol
conditions are returned as soft failures; only TransportFault is raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from ..errors import AbortReason, TransportFault
from ..http.models import Exchange, FetchOptions, HopRecord, HttpRequest
from ..http.status import status_label, status_message
from ..http.stream import BodyStream
from ..http.url import resolve_uri, same_origin
from .diagnostics import DiagnosticKind, DiagnosticsSink
from .executor import RequestExecutor, build_request
from .hashing import DRAIN_CHUNK_SIZE
from .trail import MetadataTrail

logger = logging.getLogger(__name__)

ERROR_BODY_MAX_LINES = 100


class FetchState(str, Enum):
    REQUESTING = "REQUESTING"
    EVALUATING = "EVALUATING"
    REDIRECTING = "REDIRECTING"
    RETRYING = "RETRYING"
    SUCCEEDED = "SUCCEEDED"
    ABORTED_AUTH = "ABORTED_AUTH"
    ABORTED_RETRIES = "ABORTED_RETRIES"
    ABORTED_LOOP = "ABORTED_LOOP"
    ABORTED_UNEXPECTED = "ABORTED_UNEXPECTED"


@dataclass
class OrchestrationOutcome:
    """Terminal state of one redirect chain."""

    state: FetchState
    hop: HopRecord
    stream: BodyStream | None = None
    abort: AbortReason | None = None
    attempts: int = 1
    visited: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.state is FetchState.SUCCEEDED


def hop_from_exchange(exchange: Exchange) -> HopRecord:
    return HopRecord(
        uri=exchange.uri,
        status_code=exchange.status_code,
        headers=dict(exchange.headers),
        http_version=exchange.http_version,
        walltime=exchange.walltime,
        reason=exchange.reason or status_label(exchange.status_code),
        method=exchange.request.method,
    )


def redirect_method(method: str, status_code: int) -> str:
    """Method to use for the follow-up request of a redirect."""
    method = method.upper()
    if status_code == 303 and method != "HEAD":
        return "GET"
    if status_code in (301, 302) and method == "POST":
        return "GET"
    return method


def build_redirect_request(previous: HttpRequest, target: str, status_code: int) -> HttpRequest:
    """Derive the request for ``target`` from the request that was redirected."""
    method = redirect_method(previous.method, status_code)
    headers = dict(previous.headers or {})
    body = previous.body
    if method != previous.method:
        body = None
        headers = {key: value for key, value in headers.items() if key.lower() not in {"content-type", "content-length"}}
    if not same_origin(previous.url, target):
        headers = {key: value for key, value in headers.items() if key.lower() != "authorization"}
    return HttpRequest(url=target, method=method, headers=headers, body=body, timeout=previous.timeout)


class RedirectRetryOrchestrator:
    """Drives single exchanges through redirect-following, retry and loop-abort policy."""

    def __init__(self, executor: RequestExecutor, sink: DiagnosticsSink | None = None):
        self.executor = executor
        self.sink = sink if sink is not None else executor.sink

    def run(self, uri: str, options: FetchOptions, trail: MetadataTrail | None = None) -> OrchestrationOutcome:
        trail = trail if trail is not None else MetadataTrail()
        visited: list[str] = []
        attempts = 1
        request = build_request(uri, options)
        state = FetchState.REQUESTING

        while True:
            logger.debug("%s %s", state.value, request.url)
            try:
                exchange = self.executor.execute_request(request)
            except TransportFault as fault:
                if fault.uri is None:
                    fault.uri = request.url
                fault.trail = trail.records()
                raise
            hop = trail.append(hop_from_exchange(exchange))
            state = FetchState.EVALUATING
            status = exchange.status_code

            if status == 401:
                exchange.stream.close()
                self.sink.emit(DiagnosticKind.AUTH_REQUIRED, status_message(status), uri=hop.uri, status=status)
                return OrchestrationOutcome(
                    FetchState.ABORTED_AUTH, hop, abort=AbortReason.AUTH_REQUIRED, attempts=attempts, visited=tuple(visited)
                )

            if 400 <= status <= 599:
                if attempts >= options.number_of_retries:
                    self.sink.emit(DiagnosticKind.HTTP_ERROR, status_message(status), uri=hop.uri, status=status, attempts=attempts)
                    try:
                        self._drain_error_body(exchange)
                    except TransportFault as fault:
                        fault.trail = trail.records()
                        raise
                    return OrchestrationOutcome(
                        FetchState.ABORTED_RETRIES,
                        hop,
                        abort=AbortReason.RETRIES_EXHAUSTED,
                        attempts=attempts,
                        visited=tuple(visited),
                    )
                exchange.stream.close()
                attempts += 1
                state = FetchState.RETRYING
                logger.info(
                    "Retrying %s %s after status %d (attempt %d of %d)",
                    request.method,
                    request.url,
                    status,
                    attempts,
                    options.number_of_retries,
                )
                continue

            if 300 <= status <= 399:
                exchange.stream.close()
                location = hop.header("location")
                if not location:
                    self.sink.emit(
                        DiagnosticKind.MISSING_LOCATION,
                        f"Redirect status {status} ({status_label(status)}) without a Location header.",
                        uri=hop.uri,
                        status=status,
                    )
                    return OrchestrationOutcome(
                        FetchState.ABORTED_LOOP, hop, abort=AbortReason.MISSING_LOCATION, attempts=attempts, visited=tuple(visited)
                    )
                target = resolve_uri(location, exchange.uri)
                visited.append(target)
                if len(visited) >= options.number_of_hops:
                    self.sink.emit(
                        DiagnosticKind.REDIRECT_HOP_LIMIT,
                        f"Maximum number of redirects ({options.number_of_hops}) reached at {target}.",
                        uri=hop.uri,
                        target=target,
                        hops=len(visited),
                    )
                    return OrchestrationOutcome(
                        FetchState.ABORTED_LOOP, hop, abort=AbortReason.HOP_LIMIT, attempts=attempts, visited=tuple(visited)
                    )
                if visited.count(target) >= options.number_of_repeats:
                    self.sink.emit(
                        DiagnosticKind.REDIRECT_LOOP,
                        f"Redirect loop: {target} visited {visited.count(target)} times.",
                        uri=hop.uri,
                        target=target,
                        repeats=visited.count(target),
                    )
                    return OrchestrationOutcome(
                        FetchState.ABORTED_LOOP, hop, abort=AbortReason.REDIRECT_LOOP, attempts=attempts, visited=tuple(visited)
                    )
                request = build_redirect_request(request, target, status)
                state = FetchState.REDIRECTING
                continue

            if 200 <= status <= 299:
                return OrchestrationOutcome(
                    FetchState.SUCCEEDED, hop, stream=exchange.stream, attempts=attempts, visited=tuple(visited)
                )

            exchange.stream.close()
            self.sink.emit(
                DiagnosticKind.UNEXPECTED_STATUS,
                f"Unexpected final status {status} ({status_label(status)}).",
                uri=hop.uri,
                status=status,
            )
            return OrchestrationOutcome(
                FetchState.ABORTED_UNEXPECTED, hop, abort=AbortReason.UNEXPECTED_STATUS, attempts=attempts, visited=tuple(visited)
            )

    def _drain_error_body(self, exchange: Exchange) -> None:
        """Report the error body line by line, then discard the rest and close the stream."""
        stream = exchange.stream
        try:
            for index, line in enumerate(stream):
                if index >= ERROR_BODY_MAX_LINES:
                    while stream.read(DRAIN_CHUNK_SIZE):
                        pass
                    break
                text = line.decode("utf-8", errors="replace").rstrip("\r\n")
                self.sink.emit(DiagnosticKind.ERROR_BODY, text, uri=exchange.uri, line=index + 1)
        finally:
            stream.close()


__all__ = [
    "ERROR_BODY_MAX_LINES",
    "FetchState",
    "OrchestrationOutcome",
    "RedirectRetryOrchestrator",
    "build_redirect_request",
    "hop_from_exchange",
    "redirect_method",
]
