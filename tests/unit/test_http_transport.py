# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import httpx
import pytest

from hoptrail.config import FetchSettings
from hoptrail.errors import ErrorCategory, TransportFault
from hoptrail.fetch.consumers import read_text
from hoptrail.http.httpx_client import HttpxTransport, parse_http_version
from hoptrail.http.models import HttpRequest
from hoptrail.http.stream import BodyStream
from hoptrail.runtime import HopTrail


def _transport(handler, **settings) -> HttpxTransport:
    client = httpx.Client(transport=httpx.MockTransport(handler), follow_redirects=False)
    return HttpxTransport(FetchSettings(**settings), client=client)


def test_parse_http_version_variants():
    assert parse_http_version("HTTP/1.1") == (1, 1)
    assert parse_http_version("HTTP/1.0") == (1, 0)
    assert parse_http_version("HTTP/2") == (2, 0)
    assert parse_http_version("http/3") == (3, 0)
    assert parse_http_version("") == (1, 1)
    assert parse_http_version(None) == (1, 1)


def test_httpx_transport_returns_raw_exchange_without_following_redirects():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(302, headers=[("Location", "/next"), ("Vary", "a"), ("Vary", "b")])

    transport = _transport(handler, user_agent="Agent/1.0")
    raw = transport.send(HttpRequest(url="http://example/start"))
    try:
        assert raw.status_code == 302
        assert ("Vary", "a") in raw.raw_headers
        assert ("Vary", "b") in raw.raw_headers
        assert raw.http_version == (1, 1)
        assert raw.url == "http://example/start"
    finally:
        raw.stream.close()
    assert len(seen) == 1
    assert seen[0].headers["user-agent"] == "Agent/1.0"


def test_httpx_transport_keeps_explicit_user_agent_and_body():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.headers["user-agent"], request.content))
        return httpx.Response(200, content=b"ok")

    transport = _transport(handler)
    raw = transport.send(
        HttpRequest(url="http://example/post", method="POST", headers={"User-Agent": "Mine/2"}, body=b"payload")
    )
    with raw.stream as stream:
        assert stream.read() == b"ok"
    assert seen == [("POST", "Mine/2", b"payload")]


def test_httpx_transport_body_stream_is_lazy_and_closable():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"line1\nline2\n")

    raw = _transport(handler).send(HttpRequest(url="http://example/lines"))
    assert isinstance(raw.stream, BodyStream)
    assert raw.stream.readline() == b"line1\n"
    raw.stream.close()
    assert raw.stream.closed is True


def test_httpx_transport_maps_timeouts_to_transport_fault():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(TransportFault) as excinfo:
        _transport(handler).send(HttpRequest(url="http://example/slow"))
    fault = excinfo.value
    assert fault.category is ErrorCategory.TIMEOUT
    assert fault.uri == "http://example/slow"
    assert isinstance(fault.cause, httpx.ConnectTimeout)


def test_httpx_transport_maps_connect_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(TransportFault) as excinfo:
        _transport(handler).send(HttpRequest(url="http://example/down"))
    assert excinfo.value.category is ErrorCategory.CONNECTION_ERROR


def test_hoptrail_end_to_end_over_httpx_mock():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/old":
            return httpx.Response(301, headers={"Location": "/new"})
        if request.url.path == "/new":
            if request.url.params.get("page") == "2":
                return httpx.Response(200, headers={"Content-Type": "application/json"}, content=b"[2]")
            return httpx.Response(
                200,
                headers={"Content-Type": "application/json", "Link": '</new?page=2>; rel="next"'},
                content=b"[1]",
            )
        return httpx.Response(404, content=b"missing")

    with HopTrail(transport=_transport(handler)) as client:
        result = client.fetch("http://example/old", read_text)

    assert result.ok
    assert result.values == ["[1]", "[2]"]
    assert [(hop.uri, hop.status_code) for hop in result.trail] == [
        ("http://example/old", 301),
        ("http://example/new", 200),
        ("http://example/new?page=2", 200),
    ]
    assert result.trail[0].reason == "Moved Permanently"


def test_lowercase_user_agent_header_is_sent_once():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers.get_list("user-agent"))
        return httpx.Response(200, headers={"Content-Type": "application/json"}, content=b"{}")

    with HopTrail(transport=_transport(handler), settings=FetchSettings()) as client:
        result = client.fetch("http://example/ua", headers={"user-agent": "Own/1"})

    assert result.ok
    assert seen == [["Own/1"]]
