"""Fixtures for external service tests."""

import httpx
import pytest

from movienight.config import Settings
from movienight.services.circuit_breaker import CircuitBreaker


class FakeClock:
    """Manually advanced replacement for time.time."""

    def __init__(self, start=1_700_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class Handler:
    """Mock transport handler: records requests, replies via a routing function."""

    def __init__(self, respond):
        self.respond = respond
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        return self.respond(request)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return Settings(
        tautulli_url="http://tautulli.test/",
        tautulli_api_key="t-key",
        tmdb_api_key="m-key",
        rating_cache_capacity=4,
    )


def make_breaker(name, clock, settings):
    return CircuitBreaker(
        name,
        open_seconds=settings.breaker_open_seconds,
        recent_seconds=settings.breaker_recent_seconds,
        clock=clock,
    )


def mock_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))
