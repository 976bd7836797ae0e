"""Retry policy for the task queue: fixed delay, bounded attempts.

The queue retries transient failures locally. The delay between a
failure and the next eligible attempt is constant: no exponential
growth, no jitter.

Example:
    >>> from request_queue.execution.retry import FixedDelayRetry
    >>>
    >>> policy = FixedDelayRetry(max_attempts=3, wait_time=0.5)
    >>> policy.should_retry(1), policy.should_retry(3)
    (True, False)
    >>> policy.next_delay(2)
    0.5
"""

from __future__ import annotations

from dataclasses import dataclass

from ..core.errors import ConfigError


@dataclass(frozen=True)
class FixedDelayRetry:
    """Constant delay between attempts.

    Attributes:
        max_attempts: Total attempts per task, first one included
        wait_time: Seconds between a transient failure and the next attempt
    """

    max_attempts: int = 50
    wait_time: float = 1.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ConfigError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.wait_time < 0:
            raise ConfigError(f"wait_time must be >= 0, got {self.wait_time}")

    def should_retry(self, attempts: int) -> bool:
        """Whether a task that has made ``attempts`` attempts may try again."""
        return attempts < self.max_attempts

    def next_delay(self, attempts: int) -> float:
        """Return constant delay."""
        return self.wait_time
