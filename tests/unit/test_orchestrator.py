# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import pytest

from hoptrail.errors import AbortReason, ErrorCategory, FaultKind, TransportFault
from hoptrail.fetch.diagnostics import DiagnosticKind, DiagnosticsSink
from hoptrail.fetch.executor import RequestExecutor
from hoptrail.fetch.orchestrator import (
    ERROR_BODY_MAX_LINES,
    FetchState,
    RedirectRetryOrchestrator,
    build_redirect_request,
    redirect_method,
)
from hoptrail.fetch.trail import MetadataTrail
from hoptrail.http.adapters import CannedResponse, StubTransport, redirect
from hoptrail.http.models import FetchOptions, HttpRequest, RawExchange
from hoptrail.http.stream import BodyStream
from hoptrail.runtime import run_fetch

JSON = [("Content-Type", "application/json")]


def _orchestrator(stub: StubTransport) -> RedirectRetryOrchestrator:
    sink = DiagnosticsSink()
    return RedirectRetryOrchestrator(RequestExecutor(stub, sink=sink), sink)


def test_single_hop_success_invokes_consumer_once():
    stub = StubTransport({"http://example/a": CannedResponse(200, JSON, b'{"ok": true}')})
    calls = []

    def consumer(encoding, stream):
        calls.append((encoding, stream.read()))
        return "done"

    result = run_fetch("http://example/a", consumer, FetchOptions(), transport=stub)
    assert result.ok is True
    assert len(result.trail) == 1
    assert result.trail[0].status_code == 200
    assert result.trail[0].uri == "http://example/a"
    assert len(calls) == 1
    encoding, body = calls[0]
    assert str(encoding) == "utf8"
    assert body == b'{"ok": true}'
    assert result.values == ["done"]
    assert stub.closed_streams == stub.opened_streams == 1


def test_redirect_chain_shorter_than_hop_limit_succeeds():
    stub = StubTransport(
        {
            "http://example/a": redirect("/b", 301),
            "http://example/b": redirect("http://example/c", 302),
            "http://example/c": redirect("d", 307),
            "http://example/d": CannedResponse(200, JSON, b"{}"),
        }
    )
    result = run_fetch("http://example/a", lambda e, s: None, FetchOptions(number_of_hops=5), transport=stub)
    assert result.ok
    assert [hop.status_code for hop in result.trail] == [301, 302, 307, 200]
    assert len(result.trail) == 3 + 1
    assert result.final_hop.uri == "http://example/d"
    assert stub.closed_streams == stub.opened_streams == 4


def test_hop_limit_aborts_before_exceeding_request():
    chain = {f"http://example/{i}": redirect(f"/{i + 1}") for i in range(10)}
    stub = StubTransport(chain)
    orchestrator = _orchestrator(stub)
    outcome = orchestrator.run("http://example/0", FetchOptions(number_of_hops=3))
    assert outcome.state is FetchState.ABORTED_LOOP
    assert outcome.abort is AbortReason.HOP_LIMIT
    assert outcome.abort.fault_kind is FaultKind.REDIRECT_LOOP
    assert stub.requested_urls() == ["http://example/0", "http://example/1", "http://example/2"]
    assert outcome.visited == ("http://example/1", "http://example/2", "http://example/3")
    assert orchestrator.sink.kinds() == [DiagnosticKind.REDIRECT_HOP_LIMIT]
    assert outcome.stream is None


def test_repeat_cycle_aborts_before_repeat_triggering_request():
    stub = StubTransport(
        {
            "http://example/a": redirect("http://example/b"),
            "http://example/b": redirect("http://example/a"),
        }
    )
    trail = MetadataTrail()
    orchestrator = _orchestrator(stub)
    outcome = orchestrator.run("http://example/a", FetchOptions(number_of_hops=10, number_of_repeats=2), trail)
    assert outcome.state is FetchState.ABORTED_LOOP
    assert outcome.abort is AbortReason.REDIRECT_LOOP
    # b would be requested a second time; the loop is detected first.
    assert stub.requested_urls() == ["http://example/a", "http://example/b", "http://example/a"]
    assert len(trail) == 3
    assert orchestrator.sink.kinds() == [DiagnosticKind.REDIRECT_LOOP]
    assert stub.closed_streams == 3


def test_server_error_retried_with_identical_request_until_limit():
    stub = StubTransport({"http://example/a": CannedResponse(500, [], b"boom\nsecond line\n")})
    options = FetchOptions(number_of_retries=3, method="POST", body=b"payload", content_type="text/plain")
    result = run_fetch("http://example/a", lambda e, s: pytest.fail("consumer must not run"), options, transport=stub)
    assert result.ok is False
    assert result.abort is AbortReason.RETRIES_EXHAUSTED
    assert result.abort.fault_kind is FaultKind.SERVER_OR_CLIENT_ERROR
    assert len(result.trail) == 3
    assert 500 <= result.final_hop.status_code <= 599
    assert result.pages == []
    assert {(r.url, r.method, r.body) for r in stub.requests} == {("http://example/a", "POST", b"payload")}
    assert all(r.headers["Content-Type"] == "text/plain" for r in stub.requests)
    kinds = [d.kind for d in result.diagnostics]
    assert kinds == [DiagnosticKind.HTTP_ERROR, DiagnosticKind.ERROR_BODY, DiagnosticKind.ERROR_BODY]
    assert result.diagnostics[0].message == "HTTP error code 500 (Internal Server Error)."
    assert result.diagnostics[1].message == "boom"
    assert stub.closed_streams == stub.opened_streams == 3


def test_default_retry_limit_means_single_attempt():
    stub = StubTransport({"http://example/a": CannedResponse(404)})
    result = run_fetch("http://example/a", lambda e, s: None, FetchOptions(), transport=stub)
    assert result.abort is AbortReason.RETRIES_EXHAUSTED
    assert len(result.trail) == 1


def test_retry_then_success():
    stub = StubTransport({"http://example/a": [CannedResponse(503), CannedResponse(200, JSON, b"{}")]})
    result = run_fetch("http://example/a", lambda e, s: s.read(), FetchOptions(number_of_retries=2), transport=stub)
    assert result.ok
    assert [hop.status_code for hop in result.trail] == [503, 200]


def test_unauthorized_is_never_retried():
    stub = StubTransport({"http://example/a": CannedResponse(401, [("WWW-Authenticate", "Basic")])})
    result = run_fetch("http://example/a", lambda e, s: None, FetchOptions(number_of_retries=5), transport=stub)
    assert result.abort is AbortReason.AUTH_REQUIRED
    assert len(result.trail) == 1
    assert len(stub.requests) == 1
    assert [d.kind for d in result.diagnostics] == [DiagnosticKind.AUTH_REQUIRED]
    assert stub.closed_streams == 1


def test_retry_budget_is_shared_across_redirects():
    stub = StubTransport(
        {
            "http://example/a": [CannedResponse(500), redirect("http://example/b")],
            "http://example/b": [CannedResponse(500), CannedResponse(200, JSON, b"{}")],
        }
    )
    result = run_fetch("http://example/a", lambda e, s: None, FetchOptions(number_of_retries=2), transport=stub)
    assert result.abort is AbortReason.RETRIES_EXHAUSTED
    assert [(hop.uri, hop.status_code) for hop in result.trail] == [
        ("http://example/a", 500),
        ("http://example/a", 302),
        ("http://example/b", 500),
    ]


def test_redirect_without_location_is_soft_failure():
    stub = StubTransport({"http://example/a": CannedResponse(304)})
    result = run_fetch("http://example/a", lambda e, s: None, FetchOptions(), transport=stub)
    assert result.abort is AbortReason.MISSING_LOCATION
    assert len(result.trail) == 1


def test_informational_final_status_is_soft_failure():
    stub = StubTransport({"http://example/a": CannedResponse(102)})
    result = run_fetch("http://example/a", lambda e, s: None, FetchOptions(), transport=stub)
    assert result.abort is AbortReason.UNEXPECTED_STATUS
    assert result.trail[0].status_code == 102


def test_see_other_switches_post_to_get():
    stub = StubTransport(
        {
            "http://example/form": redirect("/done", 303),
            "http://example/done": CannedResponse(200, JSON, b"{}"),
        }
    )
    options = FetchOptions(method="POST", body="a=1", content_type="application/x-www-form-urlencoded")
    result = run_fetch("http://example/form", lambda e, s: None, options, transport=stub)
    assert result.ok
    follow_up = stub.requests[1]
    assert follow_up.method == "GET"
    assert follow_up.body is None
    assert "Content-Type" not in follow_up.headers
    assert [hop.method for hop in result.trail] == ["POST", "GET"]


def test_redirect_method_rules():
    assert redirect_method("post", 303) == "GET"
    assert redirect_method("HEAD", 303) == "HEAD"
    assert redirect_method("POST", 301) == "GET"
    assert redirect_method("PUT", 302) == "PUT"
    assert redirect_method("POST", 307) == "POST"
    assert redirect_method("POST", 308) == "POST"


def test_cross_origin_redirect_drops_authorization():
    previous = HttpRequest(url="https://a.example/x", headers={"Authorization": "Bearer t", "Accept": "*/*"})
    same = build_redirect_request(previous, "https://a.example/y", 302)
    other = build_redirect_request(previous, "https://b.example/y", 302)
    assert same.headers["Authorization"] == "Bearer t"
    assert "Authorization" not in other.headers
    assert other.headers["Accept"] == "*/*"


def test_transport_fault_propagates_with_partial_trail():
    stub = StubTransport({"http://example/a": redirect("http://example/missing")})
    with pytest.raises(TransportFault) as excinfo:
        run_fetch("http://example/a", lambda e, s: None, FetchOptions(), transport=stub)
    fault = excinfo.value
    assert fault.uri == "http://example/missing"
    assert [hop.status_code for hop in fault.trail] == [302]


def test_every_hop_records_metadata():
    stub = StubTransport(
        {
            "http://example/a": CannedResponse(301, ["Location: /b", "Server: x"], http_version=(1, 0)),
            "http://example/b": CannedResponse(200, JSON, b"{}", http_version=(2, 0)),
        }
    )
    result = run_fetch("http://example/a", lambda e, s: None, FetchOptions(), transport=stub)
    first, second = result.trail
    assert first.headers == {"location": "/b", "server": "x"}
    assert first.http_version == (1, 0)
    assert first.reason == "Moved Permanently"
    assert first.walltime >= 0.0
    assert second.http_version == (2, 0)
    assert first.digest is None
    assert second.digest is not None


def test_error_body_reporting_is_capped_and_rest_discarded():
    body = b"".join(b"line %d\n" % i for i in range(ERROR_BODY_MAX_LINES + 50))
    stub = StubTransport({"http://example/a": CannedResponse(500, [], body)})
    result = run_fetch("http://example/a", lambda e, s: None, FetchOptions(), transport=stub)
    error_lines = [d for d in result.diagnostics if d.kind is DiagnosticKind.ERROR_BODY]
    assert len(error_lines) == ERROR_BODY_MAX_LINES
    assert error_lines[-1].message == f"line {ERROR_BODY_MAX_LINES - 1}"
    assert stub.closed_streams == 1


class BrokenErrorBodyTransport(StubTransport):
    def send(self, request):
        if request.url != "http://example/broken":
            return super().send(request)
        self.requests.append(request)

        def chunks():
            yield b"first line\n"
            raise TransportFault("connection reset", uri=request.url, category=ErrorCategory.CONNECTION_ERROR)

        return RawExchange(status_code=502, stream=BodyStream(chunks()), url=request.url)


def test_fault_while_draining_error_body_carries_trail():
    stub = BrokenErrorBodyTransport({"http://example/a": redirect("http://example/broken")})
    with pytest.raises(TransportFault) as excinfo:
        _orchestrator(stub).run("http://example/a", FetchOptions())
    assert [hop.status_code for hop in excinfo.value.trail] == [302, 502]


def test_canned_fault_is_raised_as_fresh_instance():
    template = TransportFault("refused", category=ErrorCategory.CONNECTION_ERROR)
    stub = StubTransport({"http://example/a": CannedResponse(fault=template)})
    raised = []
    for _ in range(2):
        with pytest.raises(TransportFault) as excinfo:
            run_fetch("http://example/a", lambda e, s: None, FetchOptions(), transport=stub)
        raised.append(excinfo.value)
    assert raised[0] is not raised[1]
    assert template.uri is None
    assert template.trail == ()
    assert raised[1].uri == "http://example/a"
    assert raised[1].category is ErrorCategory.CONNECTION_ERROR
