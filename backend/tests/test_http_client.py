"""
Unit tests for the retrying transport: which statuses retry, backoff growth,
Retry-After handling and exhaustion.
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime

import httpx
import pytest

from shared.errors import TransientNetworkError
from shared.utils.http_client import RetryingHTTPClient, next_delay_ms, retry_after_ms

URL = "https://example.com/resource"


def _get() -> httpx.Request:
    return httpx.Request("GET", URL)


# ── Status handling ─────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_retries_on_429_with_retry_after(make_http, fake_backend, sleeps) -> None:
    backend = fake_backend(
        httpx.Response(429, headers={"Retry-After": "1"}),
        httpx.Response(200, json={"ok": True}),
    )
    http = make_http(backend, max_retries=3, backoff_ms=10)

    response = await http.send(_get)

    assert response.status_code == 200
    assert sleeps == [pytest.approx(1.0)]
    assert len(backend.requests) == 2


@pytest.mark.asyncio
async def test_retries_on_503_and_uses_backoff(make_http, fake_backend, sleeps) -> None:
    backend = fake_backend(
        httpx.Response(503),
        httpx.Response(503),
        httpx.Response(200),
    )
    http = make_http(backend, max_retries=3, backoff_ms=50)

    response = await http.send(_get)

    assert response.status_code == 200
    assert sleeps == [pytest.approx(0.05), pytest.approx(0.075)]
    assert len(backend.requests) == 3


@pytest.mark.asyncio
async def test_does_not_retry_on_400(make_http, fake_backend, sleeps) -> None:
    backend = fake_backend(httpx.Response(400))
    http = make_http(backend, max_retries=3)

    response = await http.send(_get)

    assert response.status_code == 400
    assert sleeps == []
    assert len(backend.requests) == 1


@pytest.mark.asyncio
async def test_does_not_retry_on_404(make_http, fake_backend, sleeps) -> None:
    backend = fake_backend(httpx.Response(404))
    http = make_http(backend)

    response = await http.send(_get)

    assert response.status_code == 404
    assert sleeps == []


@pytest.mark.asyncio
async def test_exhausted_status_returns_last_response(make_http, fake_backend, sleeps) -> None:
    backend = fake_backend(httpx.Response(500), httpx.Response(502), httpx.Response(504))
    http = make_http(backend, max_retries=3, backoff_ms=10)

    response = await http.send(_get)

    assert response.status_code == 504
    assert len(sleeps) == 2
    assert len(backend.requests) == 3


@pytest.mark.asyncio
async def test_retry_after_override_does_not_reset_backoff(make_http, fake_backend, sleeps) -> None:
    backend = fake_backend(
        httpx.Response(503),
        httpx.Response(429, headers={"Retry-After": "2"}),
        httpx.Response(503),
        httpx.Response(200),
    )
    http = make_http(backend, max_retries=5, backoff_ms=100)

    await http.send(_get)

    # 100ms, then the 2s hint, then 100 * 1.5 * 1.5 = 225ms
    assert sleeps == [pytest.approx(0.1), pytest.approx(2.0), pytest.approx(0.225)]


# ── Transport failures ──────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_retries_after_transport_error(make_http, fake_backend, sleeps) -> None:
    backend = fake_backend(httpx.ConnectError("refused"), httpx.Response(200))
    http = make_http(backend, backoff_ms=40)

    response = await http.send(_get)

    assert response.status_code == 200
    assert sleeps == [pytest.approx(0.04)]


@pytest.mark.asyncio
async def test_timeout_exhaustion_raises_transient(make_http, fake_backend, sleeps) -> None:
    backend = fake_backend(
        httpx.ReadTimeout("slow"),
        httpx.ReadTimeout("slow"),
        httpx.ReadTimeout("slow"),
    )
    http = make_http(backend, max_retries=3, backoff_ms=10)

    with pytest.raises(TransientNetworkError) as exc_info:
        await http.send(_get)

    assert isinstance(exc_info.value.__cause__, httpx.ReadTimeout)
    assert len(backend.requests) == 3
    assert sleeps == [pytest.approx(0.01), pytest.approx(0.015)]


@pytest.mark.asyncio
async def test_request_factory_called_per_attempt(make_http, fake_backend) -> None:
    backend = fake_backend(httpx.Response(500), httpx.Response(200))
    http = make_http(backend)
    calls = []

    def factory() -> httpx.Request:
        calls.append(1)
        return _get()

    await http.send(factory)

    assert len(calls) == 2
    assert backend.requests[0] is not backend.requests[1]


@pytest.mark.asyncio
async def test_max_retries_has_floor_of_one(make_http, fake_backend, sleeps) -> None:
    backend = fake_backend(httpx.Response(503))
    http = make_http(backend, max_retries=0)

    response = await http.send(_get)

    assert http.max_retries == 1
    assert response.status_code == 503
    assert sleeps == []


@pytest.mark.asyncio
async def test_cancellation_aborts_backoff_wait(fake_backend) -> None:
    backend = fake_backend(httpx.Response(503), httpx.Response(200))
    client = httpx.AsyncClient(transport=httpx.MockTransport(backend))
    http = RetryingHTTPClient(client, max_retries=3, backoff_ms=60_000)

    task = asyncio.create_task(http.send(_get))
    while not backend.requests:
        await asyncio.sleep(0)
    await asyncio.sleep(0.01)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert len(backend.requests) == 1
    await client.aclose()


# ── Helpers ─────────────────────────────────────────────────────────────

class TestBackoffHelpers:

    def test_next_delay_rounds_up(self) -> None:
        assert next_delay_ms(1000) == 1500
        assert next_delay_ms(1500) == 2250
        assert next_delay_ms(75) == 113

    def test_retry_after_seconds(self) -> None:
        response = httpx.Response(429, headers={"Retry-After": "3"})
        assert retry_after_ms(response) == 3000

    def test_retry_after_http_date(self) -> None:
        now = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
        header = format_datetime(now + timedelta(seconds=5), usegmt=True)
        response = httpx.Response(503, headers={"Retry-After": header})
        assert retry_after_ms(response, now=now) == 5000

    def test_retry_after_past_date_ignored(self) -> None:
        now = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
        header = format_datetime(now - timedelta(seconds=5), usegmt=True)
        response = httpx.Response(503, headers={"Retry-After": header})
        assert retry_after_ms(response, now=now) is None

    def test_retry_after_missing_or_garbage(self) -> None:
        assert retry_after_ms(httpx.Response(429)) is None
        assert retry_after_ms(httpx.Response(429, headers={"Retry-After": "soon"})) is None

    @pytest.mark.parametrize("value", ["inf", "-inf", "nan", "1e400"])
    def test_retry_after_non_finite_ignored(self, value: str) -> None:
        response = httpx.Response(429, headers={"Retry-After": value})
        assert retry_after_ms(response) is None


@pytest.mark.asyncio
async def test_non_finite_retry_after_falls_back_to_backoff(make_http, fake_backend, sleeps) -> None:
    backend = fake_backend(
        httpx.Response(429, headers={"Retry-After": "inf"}),
        httpx.Response(200),
    )
    http = make_http(backend, max_retries=3, backoff_ms=25)

    response = await http.send(_get)

    assert response.status_code == 200
    assert sleeps == [pytest.approx(0.025)]
