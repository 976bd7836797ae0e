"""Tests for the fixed-delay retry policy."""

import pytest

from request_queue.core.errors import ConfigError
from request_queue.execution.retry import FixedDelayRetry


class TestFixedDelayRetry:
    """Tests for FixedDelayRetry."""

    def test_defaults(self):
        policy = FixedDelayRetry()
        assert policy.max_attempts == 50
        assert policy.wait_time == 1.0

    def test_should_retry_below_ceiling(self):
        policy = FixedDelayRetry(max_attempts=3)
        assert policy.should_retry(1) is True
        assert policy.should_retry(2) is True

    def test_should_retry_at_ceiling(self):
        policy = FixedDelayRetry(max_attempts=3)
        assert policy.should_retry(3) is False
        assert policy.should_retry(4) is False

    def test_single_attempt_never_retries(self):
        assert FixedDelayRetry(max_attempts=1).should_retry(1) is False

    def test_delay_is_constant(self):
        policy = FixedDelayRetry(wait_time=0.25)
        assert {policy.next_delay(n) for n in range(1, 20)} == {0.25}

    def test_zero_wait_allowed(self):
        assert FixedDelayRetry(wait_time=0).next_delay(1) == 0

    @pytest.mark.parametrize("kwargs", [{"max_attempts": 0}, {"wait_time": -0.1}])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ConfigError):
            FixedDelayRetry(**kwargs)

    def test_frozen(self):
        policy = FixedDelayRetry()
        with pytest.raises(AttributeError):
            policy.max_attempts = 2
