"""
Polling Policy
==============

Interval and attempt ceiling for watching a remote run.

Usage:
    policy = PollPolicy.from_settings(settings)
    for delay in policy.delays():
        await sleep(delay)
        ...
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator


@dataclass(frozen=True)
class PollPolicy:
    """Bounded polling schedule.

    Args:
        interval: seconds to wait before the first status query
        max_attempts: number of status queries before giving up
        backoff: multiplier applied to the interval after each query (1.0 = constant)
    """

    interval: float = 0.7
    max_attempts: int = 90
    backoff: float = 1.0

    def __post_init__(self):
        if self.interval < 0:
            raise ValueError("interval must be >= 0")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.backoff < 1.0:
            raise ValueError("backoff must be >= 1.0")

    def delays(self) -> Iterator[float]:
        """Yield one delay per allowed status query."""
        delay = self.interval
        for _ in range(self.max_attempts):
            yield delay
            delay *= self.backoff

    @property
    def total_wait(self) -> float:
        """Upper bound on time spent sleeping."""
        return sum(self.delays())

    @classmethod
    def from_settings(cls, settings) -> "PollPolicy":
        return cls(
            interval=settings.poll_interval_ms / 1000.0,
            max_attempts=settings.poll_max_attempts,
            backoff=settings.poll_backoff,
        )
