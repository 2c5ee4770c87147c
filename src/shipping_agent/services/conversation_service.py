from collections.abc import Iterable, Mapping
from typing import Any

from shipping_agent.infrastructure.data_models import ASSISTANT_ROLE, USER_ROLE, Message


def normalize_turn(turn: Mapping[str, Any]) -> Message:
    """
    Convert one caller-supplied {role, content} mapping into a Message.

    Any role other than "user" is treated as "assistant" rather than rejected.
    """
    role = USER_ROLE if turn.get("role") == USER_ROLE else ASSISTANT_ROLE
    content = turn.get("content")
    return Message(role=role, content="" if content is None else str(content))


def build_turns(history: Iterable[Mapping[str, Any]], message: str) -> list[Message]:
    """Return the prior turns in order with the new message appended as the last user turn."""
    turns = [normalize_turn(turn) for turn in history]
    turns.append(Message(role=USER_ROLE, content=message))
    return turns


def accumulate_history(
    history: Iterable[Mapping[str, Any]], message: str, reply: str
) -> list[dict[str, str]]:
    """
    Return the history the caller should keep for its next request.

    The caller's list is not modified; the new user message and the reply are appended
    to a normalized copy.
    """
    extended = [normalize_turn(turn).to_dict() for turn in history]
    extended.append(Message(role=USER_ROLE, content=message).to_dict())
    extended.append(Message(role=ASSISTANT_ROLE, content=reply).to_dict())
    return extended
