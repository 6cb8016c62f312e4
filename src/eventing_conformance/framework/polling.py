"""Clock and backoff primitives for the bounded polling loops.

ReadinessGate and DeliveryVerifier take a Clock so tests can drive time
explicitly instead of sleeping.
"""

import asyncio
import time
from dataclasses import dataclass


class Clock:
    """Wall clock backed by the asyncio event loop."""

    def monotonic(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


@dataclass(frozen=True)
class Backoff:
    """Poll interval schedule.

    ``multiplier == 1`` gives a fixed interval; larger values grow the
    interval geometrically up to ``max_interval``.
    """

    initial: float = 0.5
    multiplier: float = 1.0
    max_interval: float = 5.0

    def __post_init__(self):
        if self.initial <= 0:
            raise ValueError(f"Backoff initial interval must be positive, got {self.initial}")
        if self.multiplier < 1:
            raise ValueError(f"Backoff multiplier must be >= 1, got {self.multiplier}")
        if self.max_interval < self.initial:
            raise ValueError(
                f"Backoff max_interval ({self.max_interval}) is below initial ({self.initial})"
            )

    @classmethod
    def fixed(cls, interval: float) -> "Backoff":
        return cls(initial=interval, multiplier=1.0, max_interval=interval)

    def interval(self, attempt: int) -> float:
        """Delay after the given 1-based attempt.

        Growth stops at ``max_interval``, so any attempt number is safe.
        """
        delay = self.initial
        if self.multiplier == 1:
            return delay
        for _ in range(attempt - 1):
            if delay >= self.max_interval:
                break
            delay *= self.multiplier
        return min(delay, self.max_interval)
