"""Shared test fixtures for the Shipping Agent test suite."""

from collections.abc import Callable, Generator
from typing import Any

import pytest

from shipping_agent.app.config import AgentSettings, config
from shipping_agent.app.main import Runtime, build_runtime
from shipping_agent.infrastructure.data_models import ActionCallRequest, Message, ModelDecision
from shipping_agent.services.shipment_store import InMemoryShipmentStore
from shipping_agent.services.tool_registry import ActionSchema


class ScriptedModel:
    """Model capability double that replays prepared decisions and records its inputs."""

    def __init__(self, *decisions: ModelDecision | Exception) -> None:
        self._decisions = list(decisions)
        self.calls: list[tuple[list[Message], list[ActionSchema]]] = []

    def queue(self, decision: ModelDecision | Exception) -> None:
        self._decisions.append(decision)

    def decide(self, turns: list[Message], schemas: list[ActionSchema]) -> ModelDecision:
        self.calls.append((list(turns), list(schemas)))
        if not self._decisions:
            return ModelDecision(text="Hello! How can I help with your shipment?")
        decision = self._decisions.pop(0)
        if isinstance(decision, Exception):
            raise decision
        return decision


def text_decision(text: str) -> ModelDecision:
    return ModelDecision(text=text, model_version="scripted")


def call_decision(*calls: tuple[str, dict[str, Any]]) -> ModelDecision:
    return ModelDecision(
        calls=tuple(ActionCallRequest(action_name=n, arguments=a) for n, a in calls),
        model_version="scripted",
    )


@pytest.fixture
def settings() -> AgentSettings:
    return AgentSettings(openai_api_key="test-key")


@pytest.fixture
def store() -> InMemoryShipmentStore:
    return InMemoryShipmentStore()


@pytest.fixture
def model() -> ScriptedModel:
    return ScriptedModel()


@pytest.fixture
def runtime(settings: AgentSettings, store: InMemoryShipmentStore, model: ScriptedModel) -> Runtime:
    return build_runtime(settings, store=store, model=model)


@pytest.fixture
def make_history() -> Callable[[int], list[dict[str, str]]]:
    """Factory for alternating user/assistant histories of a given length."""

    def _make(length: int) -> list[dict[str, str]]:
        return [
            {"role": "user" if i % 2 == 0 else "assistant", "content": f"turn {i}"}
            for i in range(length)
        ]

    return _make


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Clear the settings cache before and after each test."""
    config.reset()
    yield
    config.reset()
