"""Readiness barrier for a scenario's resources."""

import asyncio
import logging
from typing import Iterable, Optional, Union

from .errors import ReadinessTimeout
from .polling import Clock
from .resources import ResourceRef, ResourceRefs, StatusSource

logger = logging.getLogger(__name__)


class ReadinessGate:
    """Blocks until every resource reports ready, or fails after a bounded wait.

    All-or-nothing: a scenario never proceeds with a subset of its resources
    ready.
    """

    def __init__(
        self,
        status_source: StatusSource,
        clock: Optional[Clock] = None,
        poll_interval: float = 0.5,
    ):
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval}")
        self._status_source = status_source
        self._clock = clock or Clock()
        self.poll_interval = poll_interval

    async def wait_all(
        self,
        refs: Union[ResourceRefs, Iterable[ResourceRef]],
        max_wait: float,
    ) -> float:
        """Wait for all resources to be ready.

        Args:
            refs: Resources to watch
            max_wait: Maximum seconds to wait

        Returns:
            Seconds waited until everything was ready

        Raises:
            ReadinessTimeout: With the resources still not ready once max_wait elapses
        """
        resources = list(refs.all() if isinstance(refs, ResourceRefs) else refs)
        start = self._clock.monotonic()
        polls = 0

        while True:
            polls += 1
            statuses = await asyncio.gather(
                *(self._status_source.status(ref) for ref in resources)
            )
            pending = {
                str(ref): status.reason
                for ref, status in zip(resources, statuses)
                if not status.ready
            }
            elapsed = self._clock.monotonic() - start

            if not pending:
                logger.debug("All %d resources ready after %.2fs", len(resources), elapsed)
                return elapsed

            logger.debug("Poll %d: waiting on %s", polls, ", ".join(sorted(pending)))

            remaining = max_wait - elapsed
            if remaining <= 0:
                raise ReadinessTimeout(pending.keys(), elapsed, pending)

            await self._clock.sleep(min(self.poll_interval, remaining))
