"""
Service error types, failure categorization, backoff policy, and the
bounded-retry executor.

The executor retries *every* failure identically until the attempt budget
is spent, then re-raises the last failure unchanged.  Categorization is
used only to label progress output; it never alters the retry decision.
Callers that must not retry a particular error should raise it outside the
wrapped operation.
"""

from __future__ import annotations

import asyncio
import random
from typing import Awaitable, Callable, TypeVar

import requests

from .config import (
    BASE_DELAY_SECONDS,
    ERROR_MESSAGE_PREVIEW_CHARS,
    JITTER_RANGE,
    OFFLINE_WAIT_SECONDS,
)
from .network import NetworkStatusProviding

T = TypeVar("T")

SleepHandler = Callable[[float], Awaitable[None]]
DelayPolicy = Callable[[int], Awaitable[None]]


# ---------------------------------------------------------------------------
# Service errors
# ---------------------------------------------------------------------------

class OpenAIServiceError(Exception):
    """Base class for failures raised by the OpenAI service layer."""


class NoResponseError(OpenAIServiceError):
    """The API answered but carried no usable message content."""


class InvalidResponseError(OpenAIServiceError):
    """Non-200 HTTP status, or a payload that failed validation."""

    def __init__(self, message: str = "Invalid response", status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class DecodingError(OpenAIServiceError):
    """Response body or embedded JSON could not be decoded."""


class NetworkError(OpenAIServiceError):
    """Transport-level failure (timeout, DNS, refused connection)."""


class NetworkUnavailableError(NetworkError):
    """The network gate reported the host offline; no call was attempted."""


# ---------------------------------------------------------------------------
# Error classification (reporting only)
# ---------------------------------------------------------------------------

class APIError:
    """
    Error category constants and classification logic for failed attempts.

    Categories label the progress line printed for each failed attempt.
    """

    TIMEOUT = "timeout"
    RATE_LIMIT = "rate_limit_exceeded"
    SERVICE_UNAVAILABLE = "service_unavailable"
    INVALID_RESPONSE = "invalid_response"
    API_ERROR = "api_error"
    NETWORK_OFFLINE = "network_offline"
    OTHER = "other"

    @staticmethod
    def categorize(error: BaseException) -> tuple[str, str]:
        """
        Classify an exception into an error category and message pair.

        Exception types are checked first (service errors, ``requests``
        transport errors); otherwise the stringified exception is scanned
        for known HTTP status codes and keywords.

        Args:
            error: Exception raised by the wrapped operation.

        Returns:
            Tuple of (category: str, message: str).
        """
        message = str(error) or type(error).__name__

        if isinstance(error, NetworkUnavailableError):
            return APIError.NETWORK_OFFLINE, message

        if isinstance(error, (requests.Timeout, asyncio.TimeoutError, TimeoutError)):
            return APIError.TIMEOUT, message

        if isinstance(error, InvalidResponseError) and error.status_code is not None:
            status = error.status_code
            if status == 429:
                return APIError.RATE_LIMIT, message
            if status in (502, 503, 504):
                return APIError.SERVICE_UNAVAILABLE, message
            if 400 <= status < 500:
                return APIError.API_ERROR, message

        if isinstance(error, (DecodingError, NoResponseError, InvalidResponseError)):
            return APIError.INVALID_RESPONSE, message

        err = message.lower()

        if "timeout" in err or "timed out" in err:
            return APIError.TIMEOUT, message

        if "rate limit" in err or "429" in err:
            return APIError.RATE_LIMIT, message

        if any(tok in err for tok in ("503", "502", "service unavailable", "unavailable")):
            return APIError.SERVICE_UNAVAILABLE, message

        if any(tok in err for tok in ("400", "401", "403", "api error")):
            return APIError.API_ERROR, message

        return APIError.OTHER, message


# ---------------------------------------------------------------------------
# Backoff helpers
# ---------------------------------------------------------------------------

def exponential_backoff(
    attempt: int,
    base_delay: float = BASE_DELAY_SECONDS,
    jitter: tuple[float, float] = JITTER_RANGE,
    rng: random.Random | None = None,
) -> float:
    """
    Return the wait time in seconds after a given failed attempt.

    Doubles per attempt with multiplicative jitter:
      - attempt 1 → base × [0.5, 1.5)
      - attempt 2 → 2·base × [0.5, 1.5)
      - attempt 3 → 4·base × [0.5, 1.5)

    Args:
        attempt: 1-based attempt number that just failed.
        base_delay: Delay before jitter for attempt 1.
        jitter: (low, high) multiplier range.
        rng: Optional ``random.Random`` for reproducible jitter.

    Returns:
        Seconds to wait before the next attempt.
    """
    rng = rng or random.Random()
    low, high = jitter
    return base_delay * (2 ** (attempt - 1)) * rng.uniform(low, high)


def make_backoff_delay(
    sleep_handler: SleepHandler = asyncio.sleep,
    base_delay: float = BASE_DELAY_SECONDS,
    jitter: tuple[float, float] = JITTER_RANGE,
    rng: random.Random | None = None,
) -> DelayPolicy:
    """
    Adapt an ``async sleep(seconds)`` handler into a per-attempt delay policy.

    Args:
        sleep_handler: Coroutine function that waits the given seconds.
                       Tests pass a no-op to skip real waiting.
        base_delay: Passed to :func:`exponential_backoff`.
        jitter: Passed to :func:`exponential_backoff`.
        rng: Passed to :func:`exponential_backoff`.

    Returns:
        Coroutine function of the failed attempt number.
    """
    async def delay(attempt: int) -> None:
        seconds = exponential_backoff(attempt, base_delay, jitter, rng)
        print(f"  Retrying in {seconds:.1f}s...")
        await sleep_handler(seconds)

    return delay


# ---------------------------------------------------------------------------
# Main retry wrapper
# ---------------------------------------------------------------------------

async def _observe(network_monitor: NetworkStatusProviding) -> bool:
    """Read the gate, first running its ``refresh()`` in a worker thread if it has one."""
    refresh = getattr(network_monitor, "refresh", None)
    if callable(refresh):
        await asyncio.to_thread(refresh)
    return network_monitor.is_connected


async def _ensure_connected(
    network_monitor: NetworkStatusProviding,
    offline_wait: float,
    sleep_handler: SleepHandler,
) -> None:
    """Wait once for connectivity to return; raise if it does not."""
    if await _observe(network_monitor):
        return

    print(f"  Network offline, waiting {offline_wait:.1f}s for connectivity...")
    await sleep_handler(offline_wait)

    if not await _observe(network_monitor):
        raise NetworkUnavailableError("No internet connection available")


async def execute_with_retry(
    max_attempts: int,
    operation: Callable[[], Awaitable[T]],
    delay: DelayPolicy,
    network_monitor: NetworkStatusProviding | None = None,
    offline_wait: float = OFFLINE_WAIT_SECONDS,
    sleep_handler: SleepHandler = asyncio.sleep,
) -> T:
    """
    Run ``operation`` until it succeeds or the attempt budget is spent.

    - At most ``max_attempts`` invocations are made.
    - ``delay(attempt)`` is awaited between attempts only, so a first-try
      success performs zero delays and full exhaustion performs exactly
      ``max_attempts - 1``.
    - On exhaustion the exception from the final attempt is re-raised as-is.
    - Cancellation (``asyncio.CancelledError``) is not caught: it aborts the
      in-flight attempt and no further attempts are made.

    When ``network_monitor`` is given it is consulted before each attempt,
    after running its ``refresh()`` method in a worker thread if it has one.
    If the host is offline the executor waits ``offline_wait`` seconds once
    and re-checks; if still offline it raises
    :class:`NetworkUnavailableError` without invoking the operation.

    Args:
        max_attempts: Total attempts allowed (initial call + retries), >= 1.
        operation: Zero-argument coroutine function to execute.
        delay: Coroutine function of the 1-based attempt that just failed.
        network_monitor: Optional connectivity gate.
        offline_wait: Seconds to wait for connectivity before failing fast.
        sleep_handler: Coroutine used for the offline wait.

    Returns:
        The value returned by the first successful attempt.

    Raises:
        ValueError: If ``max_attempts`` is less than 1.
        NetworkUnavailableError: If the gate reports the host offline.
        Exception: The final attempt's exception, unchanged.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    attempt = 1
    while True:
        if network_monitor is not None:
            await _ensure_connected(network_monitor, offline_wait, sleep_handler)

        try:
            return await operation()
        except Exception as exc:
            category, message = APIError.categorize(exc)
            print(
                f"  Attempt {attempt}/{max_attempts} failed "
                f"[{category}]: {message[:ERROR_MESSAGE_PREVIEW_CHARS]}"
            )
            if attempt >= max_attempts:
                print("  Max attempts reached.")
                raise

        await delay(attempt)
        attempt += 1
