"""
Async HTTP client wrapper for backend requests.
Includes retry logic, exponential backoff, Retry-After handling and metrics.
"""
from __future__ import annotations

import asyncio
import math
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Awaitable, Callable, Optional

import httpx

from shared.config import get_settings
from shared.errors import TransientNetworkError
from shared.utils.logging import get_logger
from shared.utils.metrics import BACKEND_LATENCY, BACKEND_REQUESTS, BACKEND_RETRIES

logger = get_logger(__name__)

RequestFactory = Callable[[], httpx.Request]
Sleeper = Callable[[float], Awaitable[None]]

BACKOFF_MULTIPLIER = 1.5


def create_async_client(timeout_s: float | None = None) -> httpx.AsyncClient:
    """Build the shared httpx client used by both backends."""
    settings = get_settings()
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout_s or settings.request_timeout_s, connect=settings.connect_timeout_s),
        follow_redirects=True,
        limits=httpx.Limits(
            max_connections=settings.max_connections,
            max_keepalive_connections=settings.max_connections,
        ),
    )


def is_retryable_status(status_code: int) -> bool:
    """429 and every 5xx are worth another attempt."""
    return status_code == 429 or 500 <= status_code < 600


def next_delay_ms(current_ms: int) -> int:
    return int(math.ceil(current_ms * BACKOFF_MULTIPLIER))


def retry_after_ms(response: httpx.Response, now: Optional[datetime] = None) -> Optional[int]:
    """
    Read a Retry-After header as milliseconds.

    Accepts delta-seconds or an HTTP-date. Returns None when the header is
    absent, unparseable, non-finite, or names a moment already in the past.
    """
    raw = response.headers.get("Retry-After")
    if raw is None:
        return None
    raw = raw.strip()
    try:
        seconds = float(raw)
    except ValueError:
        seconds = None
    if seconds is not None:
        if not math.isfinite(seconds):
            return None
        try:
            return max(0, int(seconds * 1000))
        except OverflowError:
            return None
    try:
        when = parsedate_to_datetime(raw)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    ms = int((when - now).total_seconds() * 1000)
    return ms if ms > 0 else None


class RetryingHTTPClient:
    """
    Sends one logical request with retry on throttling, server errors and
    transport failures.

    The request factory is called again for every attempt so no request
    object is reused. Cancelling the awaiting task aborts the pending attempt
    and any backoff wait.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        backend: str = "http",
        max_retries: int = 5,
        backoff_ms: int = 1000,
        sleep: Optional[Sleeper] = None,
    ) -> None:
        self._client = client
        self._backend = backend
        self._max_retries = max(1, max_retries)
        self._backoff_ms = max(1, backoff_ms)
        self._sleep = sleep or asyncio.sleep

    @property
    def max_retries(self) -> int:
        return self._max_retries

    def for_backend(self, backend: str) -> "RetryingHTTPClient":
        """Same client and retry policy, labelled for another backend."""
        return RetryingHTTPClient(
            self._client,
            backend=backend,
            max_retries=self._max_retries,
            backoff_ms=self._backoff_ms,
            sleep=self._sleep,
        )

    async def send(self, request_factory: RequestFactory) -> httpx.Response:
        """
        Execute the request, retrying up to ``max_retries`` attempts in total.

        Returns:
            The first non-retryable response, or the last response once
            attempts are exhausted.

        Raises:
            TransientNetworkError: If the final attempt failed at the
                transport level.
        """
        delay_ms = self._backoff_ms

        for attempt in range(1, self._max_retries + 1):
            request = request_factory()
            start_time = time.perf_counter()
            try:
                response = await self._client.send(request)
            except httpx.TransportError as exc:
                BACKEND_LATENCY.labels(backend=self._backend).observe(time.perf_counter() - start_time)
                BACKEND_REQUESTS.labels(backend=self._backend, status="error").inc()
                if attempt >= self._max_retries:
                    logger.warning(
                        "backend_retries_exhausted",
                        backend=self._backend,
                        url=f"{request.url.host}{request.url.path}",
                        attempts=attempt,
                        error=str(exc) or type(exc).__name__,
                    )
                    raise TransientNetworkError(
                        f"{self._backend} request failed after {attempt} attempts: {exc!r}"
                    ) from exc
                logger.debug(
                    "backend_retry",
                    backend=self._backend,
                    attempt=attempt,
                    max_attempts=self._max_retries,
                    wait_ms=delay_ms,
                    error=str(exc) or type(exc).__name__,
                )
                BACKEND_RETRIES.labels(backend=self._backend, reason=type(exc).__name__).inc()
                await self._sleep(delay_ms / 1000)
                delay_ms = next_delay_ms(delay_ms)
                continue

            BACKEND_LATENCY.labels(backend=self._backend).observe(time.perf_counter() - start_time)
            BACKEND_REQUESTS.labels(backend=self._backend, status=str(response.status_code)).inc()

            if is_retryable_status(response.status_code) and attempt < self._max_retries:
                # The server's hint replaces this wait only; delay_ms keeps growing.
                wait_ms = retry_after_ms(response)
                if wait_ms is None:
                    wait_ms = delay_ms
                logger.debug(
                    "backend_retry",
                    backend=self._backend,
                    attempt=attempt,
                    max_attempts=self._max_retries,
                    wait_ms=wait_ms,
                    status=response.status_code,
                )
                BACKEND_RETRIES.labels(backend=self._backend, reason=str(response.status_code)).inc()
                await response.aclose()
                await self._sleep(wait_ms / 1000)
                delay_ms = next_delay_ms(delay_ms)
                continue

            return response

        raise RuntimeError("unreachable retry state")
