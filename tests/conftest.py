from datetime import timedelta
from typing import Any, Callable

import httpx
import pytest

from storefront.services.cache import ResponseCache
from storefront.services.client import ApiClient
from storefront.services.deduplicator import RequestDeduplicator
from storefront.services.options import BASE_HEADERS, RequestOptions
from storefront.settings import Settings

BASE_URL = "https://api.test/api"


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Backoff sleep that records the requested delays and returns at once."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class Backend:
    """MockTransport handler that records every request it receives."""

    def __init__(self, handler: Callable[[httpx.Request], Any]):
        self._handler = handler
        self.requests: list[httpx.Request] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self._handler(request)
        if not isinstance(response, httpx.Response):
            response = await response
        return response

    @property
    def calls(self) -> int:
        return len(self.requests)


@pytest.fixture
def settings() -> Settings:
    return Settings(API_BASE_URL=BASE_URL)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def make_client(settings, clock, sleep):
    """Build an ApiClient over a fake backend with isolated cache and dedup state."""

    def _make(
        handler: Callable[[httpx.Request], Any],
        max_size: int = 100,
        **option_overrides: Any,
    ) -> tuple[ApiClient, Backend]:
        backend = Backend(handler)
        options = RequestOptions(
            timeout=1.0,
            max_attempts=3,
            cache_ttl=timedelta(seconds=300),
            headers=dict(BASE_HEADERS),
            base_delay=1.0,
            max_delay=5.0,
        ).merge(**option_overrides)
        client = ApiClient(
            base_url=BASE_URL,
            options=options,
            cache=ResponseCache(max_size=max_size, clock=clock),
            deduplicator=RequestDeduplicator(),
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(backend)),
            sleep=sleep,
            settings=settings,
        )
        return client, backend

    return _make
