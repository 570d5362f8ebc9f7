import asyncio

import httpx
import pytest

from plantcare.errors import HttpStatusError, TransportError
from plantcare.retry import AttemptFailure, AttemptSuccess, log_attributes, retry_attempt, send_request


def test_retry_stops_after_budget(fake_sleep, delays):
    calls = []

    async def attempt():
        calls.append(1)
        return AttemptFailure(TransportError("down"))

    outcome = asyncio.run(retry_attempt(attempt, max_retries=3, initial_delay_ms=50, sleep=fake_sleep))

    assert isinstance(outcome, AttemptFailure)
    assert len(calls) == 4
    assert delays == [pytest.approx(0.05), pytest.approx(0.1), pytest.approx(0.2)]


def test_retry_zero_budget_calls_once(fake_sleep, delays):
    calls = []

    async def attempt():
        calls.append(1)
        return AttemptFailure(TransportError("down"))

    asyncio.run(retry_attempt(attempt, max_retries=0, sleep=fake_sleep))
    assert len(calls) == 1
    assert delays == []


def _send(handler, timeout=5.0):
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await send_request(client, "POST", "https://x.example/predict", timeout)
    return asyncio.run(go())


def test_send_request_success():
    outcome = _send(lambda request: httpx.Response(201, json={"ok": True}))
    assert isinstance(outcome, AttemptSuccess)
    assert outcome.response.status_code == 201


def test_send_request_status_error_keeps_body():
    outcome = _send(lambda request: httpx.Response(415, text="use multipart"))
    assert isinstance(outcome.error, HttpStatusError)
    assert outcome.error.status_code == 415
    assert str(outcome.error) == "Status 415: use multipart"


def test_send_request_status_error_without_body_uses_reason():
    outcome = _send(lambda request: httpx.Response(404))
    assert str(outcome.error) == "Status 404: Not Found"


def test_send_request_timeout():
    def slow(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    outcome = _send(slow, timeout=2.0)
    assert isinstance(outcome.error, TransportError)
    assert str(outcome.error) == "Timed out after 2.0s"


class StalledTransport(httpx.AsyncBaseTransport):
    """Transport that never answers within the caller's deadline."""

    async def handle_async_request(self, request):
        await asyncio.sleep(5)
        return httpx.Response(200)


def test_send_request_wall_clock_timeout():
    async def go():
        async with httpx.AsyncClient(transport=StalledTransport()) as client:
            loop = asyncio.get_running_loop()
            started = loop.time()
            outcome = await send_request(client, "POST", "https://x.example/predict", 0.05)
            return outcome, loop.time() - started

    outcome, elapsed = asyncio.run(go())
    assert isinstance(outcome, AttemptFailure)
    assert str(outcome.error) == "Timed out after 0.05s"
    assert elapsed < 2


def test_log_attributes_fields():
    assert log_attributes("multipart:file") == {"plantcare.attempt": "multipart:file"}
    attrs = log_attributes("json:image:raw", 503, TransportError("x"))
    assert attrs["http.response.status_code"] == 503
    assert attrs["error.type"] == "TransportError"
