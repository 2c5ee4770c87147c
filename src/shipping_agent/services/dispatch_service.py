import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from shipping_agent.app.errors import (
    HandlerExecutionError,
    ModelInvocationError,
    StoreReadError,
    UnresolvedActionError,
)
from shipping_agent.app.logging import log_decision
from shipping_agent.infrastructure.data_models import ActionCallRequest, ModelDecision
from shipping_agent.services.conversation_service import accumulate_history, build_turns
from shipping_agent.services.llm_service import ModelCapability
from shipping_agent.services.tool_registry import ActionHandler, ActionRegistry


class DispatchState(str, Enum):
    RECEIVED = "received"
    INVOKING = "invoking"
    REPLYING = "replying"
    DISPATCHING = "dispatching"
    COMPLETED = "completed"


def unsupported_action_reply(action_name: str) -> str:
    return f"Sorry, I can't perform the action '{action_name}'."


@dataclass
class TurnResult:
    reply: str
    history: list[dict[str, str]]
    action_name: str | None = None
    states: list[DispatchState] = field(default_factory=list)


class Dispatcher:
    """
    Turns one chat request into a single reply.

    The model is invoked exactly once. If it proposes action calls, only the first one is
    dispatched (single-dispatch policy); the rest are logged and dropped. No state is kept
    between requests.
    """

    def __init__(
        self,
        registry: ActionRegistry,
        model: ModelCapability,
        logger: logging.Logger | None = None,
    ) -> None:
        self._registry = registry
        self._model = model
        self._logger = logger or logging.getLogger("shipping-agent")

    def run_turn(self, history: Sequence[Mapping[str, Any]], message: str) -> TurnResult:
        """
        Run one traversal of RECEIVED -> INVOKING -> {REPLYING | DISPATCHING} -> COMPLETED.

        Raises:
            ModelInvocationError: If the model could not produce a decision.
            StoreReadError: If an action needed to list shipments and the store failed.
        """
        states = [DispatchState.RECEIVED]
        turns = build_turns(history, message)

        states.append(DispatchState.INVOKING)
        decision = self._model.decide(turns, self._registry.schemas())
        log_decision(decision, self._logger)

        action_name = None
        if decision.wants_action:
            states.append(DispatchState.DISPATCHING)
            reply, action_name = self._dispatch(decision)
        else:
            states.append(DispatchState.REPLYING)
            reply = decision.text

        states.append(DispatchState.COMPLETED)
        return TurnResult(
            reply=reply,
            history=accumulate_history(history, message, reply),
            action_name=action_name,
            states=states,
        )

    def _dispatch(self, decision: ModelDecision) -> tuple[str, str]:
        call = decision.calls[0]
        if len(decision.calls) > 1:
            dropped = ", ".join(c.action_name for c in decision.calls[1:])
            self._logger.warning(f"Model proposed {len(decision.calls)} calls; ignoring: {dropped}")

        handler = self._registry.resolve(call.action_name)
        if handler is None:
            self._logger.error(str(UnresolvedActionError(call.action_name)))
            return unsupported_action_reply(call.action_name), call.action_name

        self._logger.info(f"Dispatching action: {call.action_name}")
        return self._invoke(call, handler), call.action_name

    def _invoke(self, call: ActionCallRequest, handler: ActionHandler) -> str:
        try:
            return str(handler(dict(call.arguments)))
        except (StoreReadError, ModelInvocationError):
            raise
        except Exception as e:
            error = HandlerExecutionError(call.action_name, str(e))
            self._logger.exception(str(error))
            return str(error)
