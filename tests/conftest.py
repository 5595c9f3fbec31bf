"""Pytest configuration and fixtures."""

import json

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock

from bamboohr.sdk.client import BambooHRClient
from bamboohr.sdk.config import ClientConfig

API_KEY = "test-api-key-0123456789abcdef"
BASE_URL = "https://api.bamboohr.com/api/gateway.php/acme/v1"


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class SleepRecorder:
    """Stand-in for ``asyncio.sleep`` that records delays instead of waiting."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class ScriptedTransport:
    """Serves a fixed sequence of responses and records every request.

    Items may be ``httpx.Response`` objects, exceptions (raised), or
    callables taking the request. The last item repeats once exhausted.
    """

    def __init__(self, *script):
        self.script = list(script)
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        index = min(len(self.requests), len(self.script)) - 1
        item = self.script[index]
        if isinstance(item, Exception):
            raise item
        if callable(item):
            return item(request)
        return item

    @property
    def calls(self) -> int:
        return len(self.requests)

    def mock(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def json_response(payload, status_code: int = 200, **kwargs) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(payload).encode(), **kwargs)


@pytest.fixture
def client_config():
    """Configuration with small, fast timings."""
    return ClientConfig(
        api_key=API_KEY,
        subdomain="acme",
        cache_timeout_ms=1_000,
        max_retry_attempts=3,
        retry_base_delay_ms=100,
        retry_max_delay_ms=5_000,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def make_client(client_config, clock, sleeper):
    """Factory building a client wired to a ScriptedTransport."""

    def factory(*script, config=None):
        transport = ScriptedTransport(*script)
        client = BambooHRClient(
            config or client_config,
            transport=transport.mock(),
            sleep=sleeper,
            random=lambda: 0.5,
            clock=clock,
        )
        return client, transport

    return factory


@pytest.fixture
def mock_client(client_config):
    """Client double for handler tests."""
    client = MagicMock()
    client.config = client_config
    client.get = AsyncMock()
    client.post = AsyncMock()
    client.get_binary = AsyncMock()
    client.get_base_url = MagicMock(return_value=BASE_URL)
    return client
