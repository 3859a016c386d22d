"""Jittered exponential backoff for notification retries."""
from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta

BACKOFF_BASE = 2
ABANDON_AFTER_SECONDS = 7 * 24 * 60 * 60
JITTER_MIN = 0.8
JITTER_MAX = 1.2


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    base: int = BACKOFF_BASE
    abandon_after_seconds: float = ABANDON_AFTER_SECONDS
    jitter_min: float = JITTER_MIN
    jitter_max: float = JITTER_MAX
    rng: random.Random = field(default_factory=random.Random, compare=False)

    def base_delay(self, retry_count: int) -> float:
        """Un-jittered delay in seconds for a notification on its ``retry_count``-th retry."""
        return float(self.base ** retry_count)

    def should_abandon(self, retry_count: int) -> bool:
        return self.base_delay(retry_count) >= self.abandon_after_seconds

    def jittered_delay(self, retry_count: int) -> float:
        # random() is in [0, 1), so the factor stays in [jitter_min, jitter_max)
        factor = self.jitter_min + (self.jitter_max - self.jitter_min) * self.rng.random()
        return self.base_delay(retry_count) * factor

    def next_retry_at(self, retry_count: int, now: datetime) -> datetime:
        return now + timedelta(seconds=self.jittered_delay(retry_count))
