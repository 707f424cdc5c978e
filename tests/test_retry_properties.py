"""Property-based tests for retry logic with exponential backoff.

Feature: statesync
"""

from unittest.mock import patch

import pytest
import structlog
from hypothesis import given, settings, strategies as st

from statesync.utils.retry import backoff_delay, exponential_backoff_retry

log = structlog.stdlib.get_logger()


@given(
    st.integers(min_value=1, max_value=6),
    st.floats(min_value=0.01, max_value=2.0),
    st.floats(min_value=1.0, max_value=60.0),
)
@settings(max_examples=50, deadline=None)
def test_exponential_backoff_behavior(num_failures: int, base_delay: float, max_delay: float):
    """Property: Exponential backoff behavior.

    For any sequence of transient errors, each retry delay doubles the
    previous one until it is capped at max_delay.
    """
    log.info(
        "test_exponential_backoff_behavior",
        num_failures=num_failures,
        base_delay=base_delay,
    )

    call_count = 0

    @exponential_backoff_retry(
        max_retries=num_failures,
        base_delay=base_delay,
        max_delay=max_delay,
        exceptions=(ConnectionError,),
    )
    def flaky_fetch():
        nonlocal call_count
        call_count += 1
        if call_count <= num_failures:
            raise ConnectionError(f"Simulated failure {call_count}")
        return "success"

    with patch("statesync.utils.retry.time.sleep") as mock_sleep:
        result = flaky_fetch()

    assert result == "success", "Function should eventually succeed"
    assert call_count == num_failures + 1

    delays = [c.args[0] for c in mock_sleep.call_args_list]
    assert delays == [min(base_delay * (2**i), max_delay) for i in range(num_failures)]
    for previous, current in zip(delays, delays[1:]):
        assert current == max_delay or current == pytest.approx(previous * 2)


@given(st.integers(min_value=0, max_value=10))
@settings(max_examples=50, deadline=None)
def test_exponential_backoff_max_retries(max_retries: int):
    """The retry mechanism stops after max_retries retries and re-raises."""
    call_count = 0

    @exponential_backoff_retry(
        max_retries=max_retries,
        base_delay=0.01,
        max_delay=1.0,
        exceptions=(TimeoutError,),
    )
    def always_failing_function():
        nonlocal call_count
        call_count += 1
        raise TimeoutError("Always times out")

    with patch("statesync.utils.retry.time.sleep"):
        with pytest.raises(TimeoutError):
            always_failing_function()

    assert call_count == max_retries + 1, f"Expected {max_retries + 1} calls, got {call_count}"


def test_unlisted_exceptions_are_not_retried():
    call_count = 0

    @exponential_backoff_retry(max_retries=5, exceptions=(ConnectionError,))
    def rejected_upload():
        nonlocal call_count
        call_count += 1
        raise ValueError("400 Bad Request")

    with patch("statesync.utils.retry.time.sleep") as mock_sleep:
        with pytest.raises(ValueError):
            rejected_upload()

    assert call_count == 1
    mock_sleep.assert_not_called()


def test_decorator_preserves_function_metadata():
    @exponential_backoff_retry()
    def fetch_remote_state():
        """Fetch."""
        return 1

    assert fetch_remote_state.__name__ == "fetch_remote_state"
    assert fetch_remote_state.__doc__ == "Fetch."


@pytest.mark.parametrize(
    "attempt, expected",
    [(0, 1.0), (1, 2.0), (2, 4.0), (5, 30.0), (20, 30.0)],
)
def test_backoff_delay_is_capped(attempt: int, expected: float):
    assert backoff_delay(attempt, base_delay=1.0, max_delay=30.0) == expected


def test_retry_if_narrows_retried_errors():
    attempts = []

    @exponential_backoff_retry(
        max_retries=3,
        exceptions=(OSError,),
        retry_if=lambda e: "throttled" in str(e),
    )
    def upload_part(message: str):
        attempts.append(message)
        raise OSError(message)

    with patch("statesync.utils.retry.time.sleep") as mock_sleep:
        with pytest.raises(OSError, match="checksum rejected"):
            upload_part("checksum rejected")
        assert len(attempts) == 1
        mock_sleep.assert_not_called()

        with pytest.raises(OSError, match="throttled"):
            upload_part("throttled")

    assert len(attempts) == 1 + 4
    assert mock_sleep.call_count == 3
