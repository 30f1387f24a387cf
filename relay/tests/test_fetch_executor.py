import time

import anyio
import httpx
import pytest

from relay.app.schemas.outbound import FetchFailure, FetchResponse, OutboundCall
from relay.app.services.fetch_executor import FetchExecutor
from relay.tests.helpers import RecordingHandler

pytestmark = pytest.mark.anyio


def executor_for(handler) -> FetchExecutor:
    return FetchExecutor(httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def call(**payload) -> OutboundCall:
    return OutboundCall.from_payload("https://api.example.com/data", payload)


async def test_response_is_captured_with_lowercased_headers():
    handler = RecordingHandler(
        lambda request: httpx.Response(
            201,
            headers={"Content-Type": "text/plain", "X-Trace": "abc"},
            text="created",
        )
    )

    outcome = await executor_for(handler).execute(
        call(method="post", headers={"Authorization": "Bearer t"})
    )

    assert isinstance(outcome, FetchResponse)
    assert outcome.status == 201
    assert outcome.ok is True
    assert outcome.headers["content-type"] == "text/plain"
    assert outcome.headers["x-trace"] == "abc"
    assert outcome.body_text == "created"

    sent = handler.requests[0]
    assert sent.method == "POST"
    assert sent.headers["authorization"] == "Bearer t"


async def test_error_statuses_are_responses_not_failures():
    outcome = await executor_for(
        lambda request: httpx.Response(404, text="nope")
    ).execute(call())

    assert isinstance(outcome, FetchResponse)
    assert outcome.status == 404
    assert outcome.ok is False


async def test_binary_bodies_are_read_as_text():
    outcome = await executor_for(
        lambda request: httpx.Response(
            200,
            headers={"content-type": "application/octet-stream"},
            content=b"\x00\x01abc",
        )
    ).execute(call())

    assert isinstance(outcome, FetchResponse)
    assert outcome.body_text.endswith("abc")


async def test_redirects_are_not_followed():
    handler = RecordingHandler(
        lambda request: httpx.Response(302, headers={"location": "http://127.0.0.1/"})
    )

    outcome = await executor_for(handler).execute(call())

    assert isinstance(outcome, FetchResponse)
    assert outcome.status == 302
    assert len(handler.requests) == 1


async def test_transport_error_becomes_failure():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    outcome = await executor_for(refuse).execute(call())

    assert isinstance(outcome, FetchFailure)
    assert "connection refused" in outcome.message


async def test_unsupported_scheme_becomes_failure():
    executor = FetchExecutor(httpx.AsyncClient())

    outcome = await executor.execute(
        OutboundCall.from_payload("ftp://files.example.com/a.txt", {})
    )

    assert isinstance(outcome, FetchFailure)


async def test_slow_target_is_aborted_at_timeout():
    async def stall(request):
        await anyio.sleep(5)
        return httpx.Response(200, text="too late")

    started = time.monotonic()
    outcome = await executor_for(stall).execute(call(timeout_ms=50))
    elapsed = time.monotonic() - started

    assert isinstance(outcome, FetchFailure)
    assert "aborted" in outcome.message
    assert elapsed < 2


async def test_timeout_scope_does_not_outlive_the_call():
    executor = executor_for(lambda request: httpx.Response(200, text="fast"))

    outcome = await executor.execute(call(timeout_ms=20))
    # A leaked scope would cancel this sleep once 20 ms have elapsed.
    await anyio.sleep(0.05)

    assert isinstance(outcome, FetchResponse)
