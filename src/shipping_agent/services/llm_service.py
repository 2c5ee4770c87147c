import json
from typing import Any, Protocol

from shipping_agent.app.config import AgentSettings
from shipping_agent.app.errors import ModelInvocationError
from shipping_agent.infrastructure.data_models import (
    SYSTEM_ROLE,
    ActionCallRequest,
    Message,
    ModelDecision,
)
from shipping_agent.infrastructure.openai_gpt_manager import OpenAIChat
from shipping_agent.services.renderer_service import render_prompt
from shipping_agent.services.tool_registry import ActionSchema, openai_tools_from_schemas


class ModelCapability(Protocol):
    """Given the conversation and the action schemas, decide between text and action calls."""

    def decide(self, turns: list[Message], schemas: list[ActionSchema]) -> ModelDecision: ...


def _parse_arguments(name: str, raw: Any) -> dict[str, Any]:
    """
    Parse the JSON arguments of a tool call into a dict.

    Raises:
        ModelInvocationError: If the arguments are not a JSON object.
    """
    if isinstance(raw, dict):
        return raw
    try:
        parsed = json.loads(raw or "{}")
    except (TypeError, json.JSONDecodeError) as e:
        raise ModelInvocationError(f"Invalid JSON in arguments for {name}: {e}") from e
    if not isinstance(parsed, dict):
        raise ModelInvocationError(f"Arguments for {name} are not a JSON object")
    return parsed


def decision_from_response(llm_response: dict[str, Any]) -> ModelDecision:
    """Convert the raw response of OpenAIChat.generate into a ModelDecision."""
    calls = tuple(
        ActionCallRequest(
            action_name=call["name"],
            arguments=_parse_arguments(call["name"], call.get("arguments")),
            call_id=call.get("call_id"),
        )
        for call in llm_response.get("tool_calls") or []
    )
    return ModelDecision(
        text=llm_response.get("text") or "",
        calls=calls,
        model_version=llm_response.get("model_version"),
        usage=llm_response.get("usage") or {},
    )


class LLMService:
    """Model capability backed by the OpenAI Responses API."""

    def __init__(self, llm: OpenAIChat, system_prompt: str | None = None) -> None:
        self._llm = llm
        self._system_prompt = system_prompt if system_prompt is not None else render_prompt()

    def decide(self, turns: list[Message], schemas: list[ActionSchema]) -> ModelDecision:
        messages = [Message(role=SYSTEM_ROLE, content=self._system_prompt), *turns]
        llm_response = self._llm.generate(
            messages=messages,
            tools=openai_tools_from_schemas(schemas),
            tool_choice="auto",
        )
        return decision_from_response(llm_response)


def build_llm_service(settings: AgentSettings) -> LLMService:
    llm = OpenAIChat(
        model=settings.openai_model,
        api_key=settings.openai_api_key,
        timeout=settings.llm_timeout_seconds,
        max_attempts=settings.llm_max_attempts,
    )
    return LLMService(llm)
