"""
Unit tests for src/api_client/retry.py.

Covers the retry executor's attempt/delay accounting (first-try success,
eventual success, exhaustion, single-attempt budget), propagation of the
final error unchanged, cancellation, the network gate short-circuit, the
backoff policy, and failure categorization.
"""

from __future__ import annotations

import asyncio
import random
from unittest.mock import patch

import pytest
import requests

from src.api_client.network import NetworkMonitor
from src.api_client.retry import (
    APIError,
    DecodingError,
    InvalidResponseError,
    NetworkUnavailableError,
    execute_with_retry,
    exponential_backoff,
    make_backoff_delay,
)

from .conftest import FlakyOperation, FlippingNetwork, RecordingDelay, RecordingSleep


def _run(coro):
    return asyncio.run(coro)


# ---------------------------------------------------------------------------
# Class: execute_with_retry - attempt and delay accounting
# ---------------------------------------------------------------------------

class TestExecuteWithRetryAccounting:

    def test_success_on_first_try(self, recording_delay):
        op = FlakyOperation(failures=0, value=42)
        result = _run(execute_with_retry(3, op, recording_delay))
        assert result == 42
        assert op.calls == 1
        assert recording_delay.attempts == []

    def test_eventual_success_on_third_attempt(self, recording_delay):
        op = FlakyOperation(failures=2, value="ok")
        result = _run(execute_with_retry(3, op, recording_delay))
        assert result == "ok"
        assert op.calls == 3
        assert recording_delay.attempts == [1, 2]

    @pytest.mark.parametrize("max_attempts", [1, 2, 3, 5])
    def test_exhaustion_makes_n_attempts_and_n_minus_one_delays(
        self, recording_delay, max_attempts
    ):
        op = FlakyOperation(failures=max_attempts + 10)
        with pytest.raises(RuntimeError):
            _run(execute_with_retry(max_attempts, op, recording_delay))
        assert op.calls == max_attempts
        assert recording_delay.attempts == list(range(1, max_attempts))

    def test_exhaustion_raises_last_error_unchanged(self, recording_delay):
        op = FlakyOperation(failures=10)
        with pytest.raises(RuntimeError) as excinfo:
            _run(execute_with_retry(3, op, recording_delay))
        assert excinfo.value is op.raised[-1]
        assert str(excinfo.value) == "failure on attempt 3"

    def test_single_attempt_never_delays_on_failure(self, recording_delay):
        op = FlakyOperation(failures=1)
        with pytest.raises(RuntimeError):
            _run(execute_with_retry(1, op, recording_delay))
        assert op.calls == 1
        assert recording_delay.attempts == []

    def test_single_attempt_never_delays_on_success(self, recording_delay):
        op = FlakyOperation(failures=0)
        assert _run(execute_with_retry(1, op, recording_delay)) == "ok"
        assert recording_delay.attempts == []

    @pytest.mark.parametrize("max_attempts", [0, -1])
    def test_invalid_budget_rejected(self, recording_delay, max_attempts):
        op = FlakyOperation(failures=0)
        with pytest.raises(ValueError):
            _run(execute_with_retry(max_attempts, op, recording_delay))
        assert op.calls == 0

    def test_failure_type_does_not_change_retrying(self, recording_delay):
        """A 4xx error is retried exactly like any other failure."""
        calls = []

        async def op():
            calls.append(1)
            raise InvalidResponseError("HTTP 400", status_code=400)

        with pytest.raises(InvalidResponseError):
            _run(execute_with_retry(3, op, recording_delay))
        assert len(calls) == 3

    def test_concurrent_invocations_are_independent(self):
        async def scenario():
            delay_a, delay_b = RecordingDelay(), RecordingDelay()
            op_a = FlakyOperation(failures=1, value="a")
            op_b = FlakyOperation(failures=2, value="b")
            results = await asyncio.gather(
                execute_with_retry(3, op_a, delay_a),
                execute_with_retry(3, op_b, delay_b),
            )
            return results, delay_a.attempts, delay_b.attempts

        results, attempts_a, attempts_b = _run(scenario())
        assert results == ["a", "b"]
        assert attempts_a == [1]
        assert attempts_b == [1, 2]


# ---------------------------------------------------------------------------
# Class: cancellation
# ---------------------------------------------------------------------------

class TestExecuteWithRetryCancellation:

    def test_cancelled_error_is_not_retried(self, recording_delay):
        calls = []

        async def op():
            calls.append(1)
            raise asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            _run(execute_with_retry(3, op, recording_delay))
        assert len(calls) == 1
        assert recording_delay.attempts == []

    def test_cancelling_task_stops_further_attempts(self):
        calls = []

        async def slow_op():
            calls.append(1)
            await asyncio.sleep(10)

        async def no_delay(attempt):
            return None

        async def scenario():
            task = asyncio.create_task(execute_with_retry(3, slow_op, no_delay))
            await asyncio.sleep(0)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        _run(scenario())
        assert len(calls) == 1


# ---------------------------------------------------------------------------
# Class: network gate
# ---------------------------------------------------------------------------

class TestExecuteWithRetryNetworkGate:

    def test_online_gate_allows_call(self, online, recording_delay, recording_sleep):
        op = FlakyOperation(failures=0)
        result = _run(execute_with_retry(
            3, op, recording_delay, network_monitor=online, sleep_handler=recording_sleep,
        ))
        assert result == "ok"
        assert recording_sleep.calls == []

    def test_offline_fails_fast_without_calling_operation(
        self, offline, recording_delay, recording_sleep
    ):
        op = FlakyOperation(failures=0)
        with pytest.raises(NetworkUnavailableError):
            _run(execute_with_retry(
                3, op, recording_delay,
                network_monitor=offline, offline_wait=2.0, sleep_handler=recording_sleep,
            ))
        assert op.calls == 0
        assert recording_delay.attempts == []
        assert recording_sleep.calls == [2.0]

    def test_connectivity_returning_during_wait_proceeds(self, recording_delay):
        network = FlippingNetwork(False, True)
        sleep = RecordingSleep()
        op = FlakyOperation(failures=0)
        result = _run(execute_with_retry(
            3, op, recording_delay,
            network_monitor=network, offline_wait=1.5, sleep_handler=sleep,
        ))
        assert result == "ok"
        assert op.calls == 1
        assert sleep.calls == [1.5]

    def test_going_offline_between_attempts_short_circuits(self, recording_delay):
        network = FlippingNetwork(True, False, False)
        op = FlakyOperation(failures=5)
        with pytest.raises(NetworkUnavailableError):
            _run(execute_with_retry(
                3, op, recording_delay,
                network_monitor=network, sleep_handler=RecordingSleep(),
            ))
        assert op.calls == 1
        assert recording_delay.attempts == [1]

    def test_refreshable_gate_is_refreshed_before_each_attempt(self, recording_delay):
        class CountingMonitor:
            def __init__(self):
                self.refreshes = 0

            @property
            def is_connected(self) -> bool:
                return True

            def refresh(self) -> bool:
                self.refreshes += 1
                return True

        monitor = CountingMonitor()
        op = FlakyOperation(failures=2)
        result = _run(execute_with_retry(
            3, op, recording_delay, network_monitor=monitor, sleep_handler=RecordingSleep(),
        ))
        assert result == "ok"
        assert monitor.refreshes == 3

    def test_refresh_result_drives_the_gate(self, recording_delay):
        sleep = RecordingSleep()
        monitor = NetworkMonitor()
        op = FlakyOperation(failures=0)
        with patch("src.api_client.network.socket.create_connection", side_effect=OSError("down")):
            with pytest.raises(NetworkUnavailableError):
                _run(execute_with_retry(
                    3, op, recording_delay,
                    network_monitor=monitor, offline_wait=2.0, sleep_handler=sleep,
                ))
        assert op.calls == 0
        assert sleep.calls == [2.0]
        assert monitor.is_connected is False


# ---------------------------------------------------------------------------
# Class: backoff policy
# ---------------------------------------------------------------------------

class TestBackoff:

    def test_no_jitter_doubles_per_attempt(self):
        delays = [exponential_backoff(n, base_delay=3.0, jitter=(1.0, 1.0)) for n in (1, 2, 3, 4)]
        assert delays == [3.0, 6.0, 12.0, 24.0]

    def test_jitter_stays_within_range(self):
        rng = random.Random(7)
        for attempt in (1, 2, 3):
            value = exponential_backoff(attempt, base_delay=4.0, jitter=(0.5, 1.5), rng=rng)
            nominal = 4.0 * 2 ** (attempt - 1)
            assert 0.5 * nominal <= value <= 1.5 * nominal

    def test_seeded_rng_is_reproducible(self):
        a = exponential_backoff(2, rng=random.Random(3))
        b = exponential_backoff(2, rng=random.Random(3))
        assert a == b

    def test_make_backoff_delay_uses_sleep_handler(self, recording_sleep):
        delay = make_backoff_delay(recording_sleep, base_delay=2.0, jitter=(1.0, 1.0))
        _run(delay(1))
        _run(delay(3))
        assert recording_sleep.calls == [2.0, 8.0]

    def test_same_base_for_network_and_other_failures(self, recording_sleep):
        errors = iter([requests.ConnectionError("refused"), DecodingError("bad json")])

        async def op():
            error = next(errors, None)
            if error is not None:
                raise error
            return "ok"

        delay = make_backoff_delay(recording_sleep, jitter=(1.0, 1.0))
        assert _run(execute_with_retry(3, op, delay)) == "ok"
        assert recording_sleep.calls == [3.0, 6.0]


# ---------------------------------------------------------------------------
# Class: APIError.categorize
# ---------------------------------------------------------------------------

class TestCategorize:

    def test_requests_timeout(self):
        category, _ = APIError.categorize(requests.Timeout("read timed out"))
        assert category == APIError.TIMEOUT

    def test_rate_limit_status(self):
        category, _ = APIError.categorize(InvalidResponseError("HTTP 429", status_code=429))
        assert category == APIError.RATE_LIMIT

    def test_service_unavailable_status(self):
        category, _ = APIError.categorize(InvalidResponseError("HTTP 503", status_code=503))
        assert category == APIError.SERVICE_UNAVAILABLE

    def test_client_error_status(self):
        category, _ = APIError.categorize(InvalidResponseError("HTTP 401", status_code=401))
        assert category == APIError.API_ERROR

    def test_decoding_error(self):
        category, _ = APIError.categorize(DecodingError("bad json"))
        assert category == APIError.INVALID_RESPONSE

    def test_offline(self):
        category, _ = APIError.categorize(NetworkUnavailableError("offline"))
        assert category == APIError.NETWORK_OFFLINE

    def test_keyword_fallback(self):
        category, message = APIError.categorize(RuntimeError("Service Unavailable"))
        assert category == APIError.SERVICE_UNAVAILABLE
        assert message == "Service Unavailable"

    def test_unknown(self):
        category, message = APIError.categorize(KeyError())
        assert category == APIError.OTHER
        assert message == "KeyError"
