"""
Shared pytest fixtures and fakes for the api_client and practice tests.

Async code under test is driven with ``asyncio.run`` inside ordinary test
functions; the fakes below record calls instead of sleeping or touching
the network.
"""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest
import requests

from src.api_client.network import StaticNetworkStatus


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class RecordingSleep:
    """Async sleep replacement that records requested durations."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class RecordingDelay:
    """Delay policy replacement that records the failed attempt numbers."""

    def __init__(self):
        self.attempts: list[int] = []

    async def __call__(self, attempt: int) -> None:
        self.attempts.append(attempt)


class FlakyOperation:
    """
    Coroutine function that fails ``failures`` times, then returns ``value``.

    Each failure raises a fresh ``RuntimeError`` tagged with its attempt
    number so tests can check which error was propagated.
    """

    def __init__(self, failures: int, value="ok"):
        self.failures = failures
        self.value = value
        self.calls = 0
        self.raised: list[Exception] = []

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            exc = RuntimeError(f"failure on attempt {self.calls}")
            self.raised.append(exc)
            raise exc
        return self.value


class FlippingNetwork:
    """Network gate that reports each value in ``states`` once, then the last."""

    def __init__(self, *states: bool):
        self.states = list(states)
        self.reads = 0

    @property
    def is_connected(self) -> bool:
        self.reads += 1
        if len(self.states) > 1:
            return self.states.pop(0)
        return self.states[0]


def chat_body(content: str | None) -> dict:
    """Minimal chat-completion response body carrying ``content``."""
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def make_response(status_code: int = 200, body=None) -> MagicMock:
    """Mock ``requests.Response`` with a status code and JSON body."""
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    if body is None:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        response.json.return_value = body
    return response


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def recording_delay():
    return RecordingDelay()


@pytest.fixture
def online():
    return StaticNetworkStatus(is_connected=True)


@pytest.fixture
def offline():
    return StaticNetworkStatus(is_connected=False)


@pytest.fixture
def mock_session():
    """``requests.Session`` double whose ``post`` is configured per test."""
    return MagicMock(spec=requests.Session)


@pytest.fixture
def book_info_content():
    return json.dumps({"title": "Thinking, Fast and Slow", "author": "Daniel Kahneman"})
