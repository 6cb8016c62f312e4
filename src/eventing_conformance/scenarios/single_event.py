"""Single event delivery scenario.

Creates a channel, an event-logging subscriber and a subscription binding
them, waits for all three to be ready, publishes one event to the channel,
and checks the subscriber logged its payload.
"""

import logging

from ..framework.envelope import EventEnvelope
from ..framework.errors import DeliveryNotObserved
from ..framework.resources import Explicit, ScenarioNames
from .base import Scenario, ScenarioContext, ScenarioResult, ScenarioStep

logger = logging.getLogger(__name__)


class SingleEventScenario(Scenario):
    """Publish one event, expect the subscriber to log it."""

    @property
    def name(self) -> str:
        return "single_event"

    @property
    def description(self) -> str:
        return "Single event delivered from channel to subscriber"

    async def execute(self, ctx: ScenarioContext) -> ScenarioResult:
        async def run():
            self.step = ScenarioStep.NAMING
            names = ScenarioNames.for_scenario(
                ctx.options.test_name,
                ctx.options.encoding,
                ctx.channel,
                ctx.subscription_version,
            )
            logger.info(
                "Run test with channel %s, subscription %s",
                ctx.channel,
                ctx.subscription_version.value,
            )

            # If the caller asked for a different version, the subscription
            # references the channel at that version instead of its own
            ref_version = ctx.policy.resolve(ctx.channel)
            if isinstance(ctx.policy, Explicit) and ref_version != ctx.channel.api_version:
                logger.info(
                    "Changing API version from: %r to %r",
                    ctx.channel.api_version,
                    ref_version,
                )

            self.step = ScenarioStep.PROVISIONING
            refs = await ctx.resource_set.create(
                ctx.channel,
                names.channel,
                names.subscriber,
                names.subscription,
                ctx.subscription_version,
                ref_version,
            )
            try:
                self.step = ScenarioStep.READINESS
                waited = await ctx.readiness_gate.wait_all(refs, ctx.options.readiness_timeout)
                ctx.metrics["ready_after_s"] = round(waited, 3)

                self.step = ScenarioStep.PUBLISH
                envelope = EventEnvelope.new(names.sender, ctx.options.encoding)
                self.expected_payload = envelope.payload
                await ctx.publisher.publish(refs.channel, envelope)

                self.step = ScenarioStep.VERIFY
                self.verification = await ctx.verifier.confirm(refs.subscriber, envelope.payload)
                ctx.metrics["verify_attempts"] = self.verification.attempts
                if not self.verification.matched:
                    raise DeliveryNotObserved(
                        envelope.payload,
                        refs.subscriber.name,
                        self.verification.attempts,
                        self.verification.observed_after,
                        self.verification.snippet,
                    )
                ctx.metrics["delivered_after_s"] = round(self.verification.observed_after, 3)
                self.step = ScenarioStep.DONE
            finally:
                await _teardown(ctx, refs)

        return await self._timed_execute(ctx, run)


async def _teardown(ctx: ScenarioContext, refs) -> None:
    """Release the scenario's resources without masking the scenario outcome."""
    try:
        await ctx.resource_set.teardown(refs)
    except Exception:
        logger.warning("Teardown of %s failed", ", ".join(map(str, refs.all())), exc_info=True)
