"""Shared fixtures: a scripted fake backend behind httpx.MockTransport."""
from __future__ import annotations

from collections import deque
from typing import Callable, Union

import httpx
import pytest

from shared.utils.http_client import RetryingHTTPClient

Scripted = Union[httpx.Response, Exception, Callable[[httpx.Request], httpx.Response]]


class FakeBackend:
    """Answers requests from a queue of responses, exceptions or callables."""

    def __init__(self, *items: Scripted) -> None:
        self._queue: deque[Scripted] = deque(items)
        self.requests: list[httpx.Request] = []

    def push(self, *items: Scripted) -> None:
        self._queue.extend(items)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self._queue:
            raise AssertionError(f"unexpected request: {request.method} {request.url}")
        item = self._queue.popleft()
        if isinstance(item, Exception):
            raise item
        if callable(item) and not isinstance(item, httpx.Response):
            return item(request)
        return item


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def make_http(sleeps: list[float]) -> Callable[..., RetryingHTTPClient]:
    """Build a RetryingHTTPClient over a FakeBackend that records backoff waits."""

    async def record_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    def factory(backend: FakeBackend, max_retries: int = 5, backoff_ms: int = 10) -> RetryingHTTPClient:
        client = httpx.AsyncClient(transport=httpx.MockTransport(backend))
        return RetryingHTTPClient(client, max_retries=max_retries, backoff_ms=backoff_ms, sleep=record_sleep)

    return factory


@pytest.fixture
def fake_backend() -> Callable[..., FakeBackend]:
    return FakeBackend
