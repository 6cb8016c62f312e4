"""Test scenarios."""

from .base import Scenario, ScenarioContext, ScenarioResult, ScenarioStatus, ScenarioStep
from .single_event import SingleEventScenario

__all__ = [
    "Scenario",
    "ScenarioContext",
    "ScenarioResult",
    "ScenarioStatus",
    "ScenarioStep",
    "SingleEventScenario",
]
