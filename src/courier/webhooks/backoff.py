"""Backoff table for delivery retries."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

DEFAULT_RETRY_DELAYS: tuple[int, ...] = (5, 30, 120)


@dataclass(frozen=True)
class BackoffPolicy:
    """Fixed delay table indexed by the attempt that just failed.

    Attempt 1 failing waits delays[0], attempt 2 waits delays[1], and so on.
    Past the end of the table the last delay repeats.
    """

    delays: tuple[int, ...] = DEFAULT_RETRY_DELAYS

    def __post_init__(self) -> None:
        if not self.delays:
            raise ValueError("BackoffPolicy needs at least one delay")
        if any(d <= 0 for d in self.delays):
            raise ValueError("Backoff delays must be positive")

    @classmethod
    def from_delays(cls, delays: Sequence[int]) -> BackoffPolicy:
        return cls(delays=tuple(delays))

    @property
    def max_attempts(self) -> int:
        return 1 + len(self.delays)

    def delay_for(self, attempt_number: int) -> timedelta:
        """Wait after the given (1-indexed) attempt fails."""
        if attempt_number < 1:
            raise ValueError("attempt_number is 1-indexed")
        index = min(attempt_number, len(self.delays)) - 1
        return timedelta(seconds=self.delays[index])

    def next_retry_at(self, attempt_number: int, now: datetime) -> datetime:
        return now + self.delay_for(attempt_number)
