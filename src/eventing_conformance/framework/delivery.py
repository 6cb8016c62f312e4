"""Delivery verification by polling a subscriber's accumulated output.

Under at-least-once delivery a payload may legitimately be logged more than
once, so a single occurrence is enough to confirm delivery. Duplicates are
not reported.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from .polling import Backoff, Clock
from .resources import LogSource, ResourceRef

logger = logging.getLogger(__name__)

SNIPPET_CHARS = 400

Checker = Callable[[str], bool]


class CheckerContains:
    """Log checker matching when ``substring`` occurs anywhere in the output."""

    def __init__(self, substring: str):
        self.substring = substring

    def __call__(self, output: str) -> bool:
        return self.substring in output

    def __repr__(self) -> str:
        return f"CheckerContains({self.substring!r})"


@dataclass
class VerificationResult:
    """Outcome of one confirm() call."""

    matched: bool
    observed_after: float
    attempts: int
    last_output: str = ""

    @property
    def snippet(self) -> str:
        """Tail of the last output read, for diagnostics."""
        if len(self.last_output) <= SNIPPET_CHARS:
            return self.last_output
        return "..." + self.last_output[-SNIPPET_CHARS:]


class DeliveryVerifier:
    """Polls a LogSource until the expected payload shows up or the budget runs out.

    The budget is whichever of ``max_attempts`` reads or ``max_wait`` seconds
    is hit first. A read is always attempted at least once. Errors raised by
    the LogSource (e.g. SubscriberUnreachable) propagate unchanged: they are
    infrastructure failures, not missed deliveries.
    """

    def __init__(
        self,
        log_source: LogSource,
        clock: Optional[Clock] = None,
        backoff: Optional[Backoff] = None,
        max_attempts: int = 20,
        max_wait: float = 30.0,
    ):
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        if max_wait < 0:
            raise ValueError(f"max_wait must be >= 0, got {max_wait}")
        self._log_source = log_source
        self._clock = clock or Clock()
        self.backoff = backoff or Backoff()
        self.max_attempts = max_attempts
        self.max_wait = max_wait

    async def confirm(self, subscriber: ResourceRef, expected: str) -> VerificationResult:
        """Wait for ``expected`` to appear in the subscriber's output."""
        return await self.confirm_with(subscriber, CheckerContains(expected))

    async def confirm_with(self, subscriber: ResourceRef, checker: Checker) -> VerificationResult:
        start = self._clock.monotonic()
        output = ""
        attempt = 0

        while True:
            attempt += 1
            output = await self._log_source.read(subscriber)
            elapsed = self._clock.monotonic() - start

            if checker(output):
                logger.debug("%r matched %s on attempt %d", checker, subscriber, attempt)
                return VerificationResult(
                    matched=True,
                    observed_after=elapsed,
                    attempts=attempt,
                    last_output=output,
                )

            if attempt >= self.max_attempts:
                break

            delay = self.backoff.interval(attempt)
            if elapsed + delay > self.max_wait:
                break

            logger.debug(
                "%r not yet in %s (attempt %d/%d), retrying in %.2fs",
                checker,
                subscriber,
                attempt,
                self.max_attempts,
                delay,
            )
            await self._clock.sleep(delay)

        return VerificationResult(
            matched=False,
            observed_after=self._clock.monotonic() - start,
            attempts=attempt,
            last_output=output,
        )
