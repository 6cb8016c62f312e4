"""Matrix runner — coordinates channel x subscription-version conformance tests.

For every cell of the matrix the runner builds a fresh scenario and lets it
drive provisioning → readiness → publish → verify → teardown against the
injected collaborators. Cells are independent: they run as separate asyncio
tasks and one cell's failure never changes another cell's result.
"""

import asyncio
import logging
import time
import traceback
from typing import Callable, Iterable, List, Optional

from .config import RunOptions
from .delivery import DeliveryVerifier
from .errors import RunDeadlineExceeded
from .polling import Clock
from .readiness import ReadinessGate
from .resources import (
    ChannelDescriptor,
    EventPublisher,
    LogSource,
    Native,
    ResourceSet,
    StatusSource,
    SubscriptionVersion,
    SubscriptionVersionPolicy,
)
from ..scenarios.base import Scenario, ScenarioContext, ScenarioResult, ScenarioStatus
from ..scenarios.single_event import SingleEventScenario

logger = logging.getLogger(__name__)

ScenarioFactory = Callable[[], Scenario]


class TestMatrixRunner:
    """Runs one scenario per (channel, subscription version) cell.

    Args:
        resource_set: Creates and tears down scenario resources
        status_source: Reports resource readiness
        publisher: Publishes events to channels
        log_source: Reads subscriber output
        clock: Time source for the polling loops
        scenario_factory: Builds the scenario run in every cell
    """

    __test__ = False  # not a pytest test class

    def __init__(
        self,
        resource_set: ResourceSet,
        status_source: StatusSource,
        publisher: EventPublisher,
        log_source: LogSource,
        clock: Optional[Clock] = None,
        scenario_factory: ScenarioFactory = SingleEventScenario,
    ):
        self.resource_set = resource_set
        self.status_source = status_source
        self.publisher = publisher
        self.log_source = log_source
        self.clock = clock or Clock()
        self.scenario_factory = scenario_factory

    async def run(
        self,
        channels: Iterable[ChannelDescriptor],
        policy: Optional[SubscriptionVersionPolicy] = None,
        options: Optional[RunOptions] = None,
    ) -> List[ScenarioResult]:
        """Run the whole matrix.

        Returns:
            One ScenarioResult per cell, channels outer and subscription
            versions inner, in declaration order
        """
        policy = policy or Native()
        options = options or RunOptions()
        cells = [
            (channel, version)
            for channel in channels
            for version in options.subscription_versions
        ]
        logger.info(
            "Running %d cells (%s encoding, channel version %s, parallelism %d)",
            len(cells),
            options.encoding.value,
            policy,
            options.parallelism,
        )

        # The run deadline is event loop time, independent of the polling clock
        loop = asyncio.get_running_loop()
        semaphore = asyncio.Semaphore(options.parallelism)
        deadline = (
            loop.time() + options.run_deadline
            if options.run_deadline is not None
            else None
        )

        async def bounded(channel, version):
            async with semaphore:
                remaining = None
                if deadline is not None:
                    remaining = deadline - loop.time()
                return await self.run_cell(channel, version, policy, options, remaining)

        return list(await asyncio.gather(*(bounded(c, v) for c, v in cells)))

    async def run_cell(
        self,
        channel: ChannelDescriptor,
        subscription_version: SubscriptionVersion,
        policy: Optional[SubscriptionVersionPolicy] = None,
        options: Optional[RunOptions] = None,
        time_budget: Optional[float] = None,
    ) -> ScenarioResult:
        """Run a single cell.

        Args:
            channel: Channel implementation under test
            subscription_version: Subscription contract revision
            policy: Channel API version the subscription references
            options: Run options
            time_budget: Seconds left before the run deadline, None for unbounded

        Returns:
            ScenarioResult with pass/fail status, failing step and diagnostics
        """
        policy = policy or Native()
        options = options or RunOptions()
        scenario = self.scenario_factory()
        ctx = self._context(channel, subscription_version, policy, options)

        if not channel.supports(scenario.required_feature):
            logger.info("Skipping %s: no %s support", channel, scenario.required_feature.value)
            return ScenarioResult(
                status=ScenarioStatus.SKIP,
                duration_ms=0.0,
                channel=str(channel),
                subscription_version=subscription_version.value,
                error_message=f"{channel.kind} does not support {scenario.required_feature.value}",
            )

        start = time.perf_counter()
        try:
            if time_budget is None:
                result = await scenario.execute(ctx)
            elif time_budget <= 0:
                raise asyncio.TimeoutError()
            else:
                result = await asyncio.wait_for(scenario.execute(ctx), timeout=time_budget)
        except asyncio.TimeoutError:
            error = RunDeadlineExceeded(scenario.step.value, options.run_deadline or 0.0)
            result = scenario._result(
                ctx,
                ScenarioStatus.ERROR,
                (time.perf_counter() - start) * 1000,
                error_kind=error.kind,
                error_message=str(error),
            )
        except Exception as e:
            tb = traceback.format_exc()
            result = scenario._result(
                ctx,
                ScenarioStatus.ERROR,
                (time.perf_counter() - start) * 1000,
                error_kind=type(e).__name__,
                error_message=f"MatrixRunner error: {str(e)}\n{tb}",
            )

        if result.passed:
            logger.info("[%s] %s", result.cell, result)
        else:
            logger.error("[%s] %s", result.cell, result)
        return result

    def _context(self, channel, subscription_version, policy, options) -> ScenarioContext:
        return ScenarioContext(
            channel=channel,
            subscription_version=subscription_version,
            policy=policy,
            options=options,
            resource_set=self.resource_set,
            publisher=self.publisher,
            readiness_gate=ReadinessGate(
                self.status_source,
                clock=self.clock,
                poll_interval=options.poll_interval,
            ),
            verifier=DeliveryVerifier(
                self.log_source,
                clock=self.clock,
                backoff=options.backoff,
                max_attempts=options.delivery_max_attempts,
                max_wait=options.delivery_timeout,
            ),
        )
