import json
from typing import Any


def parse_body(event: dict[str, Any]) -> dict[str, Any]:
    """
    Decode the event body into a dict.

    API Gateway sends the body as a string, the FastAPI bridge sends bytes and tests may
    pass a pre-parsed dict. An empty body decodes to an empty dict.

    Raises:
        ValueError: If the body is not a JSON object.
    """
    body_raw = event.get("body")
    if body_raw is None or body_raw == b"" or body_raw == "":
        return {}
    if isinstance(body_raw, dict):
        return body_raw
    if isinstance(body_raw, bytes):
        body_raw = body_raw.decode("utf-8")
    try:
        body_json = json.loads(body_raw)
    except (TypeError, json.JSONDecodeError) as e:
        raise ValueError(f"Body is not valid JSON: {e}") from e
    if not isinstance(body_json, dict):
        raise ValueError("Body must be a JSON object")
    return body_json


def validate_chat_data(data: dict[str, Any]) -> bool:
    """Validate a chat request body."""
    # All chat requests should have a message
    message = data.get("message")
    if not isinstance(message, str) or not message.strip():
        raise ValueError("No message provided")

    # History is optional, but must be a list of {role, content} objects when present
    history = data.get("history")
    if history is None:
        return True
    if not isinstance(history, list):
        raise ValueError("History must be a list")
    for index, turn in enumerate(history):
        if not isinstance(turn, dict):
            raise ValueError(f"History item {index} must be an object with role and content")

    return True


def process_chat_data(event: dict[str, Any]) -> tuple[str, list[dict[str, Any]]]:
    """
    Extract and validate the chat message and history from the event.

    Returns:
        (message, history)

    Raises:
        ValueError: If the request is invalid.
    """
    data = parse_body(event)
    try:
        validate_chat_data(data)
    except ValueError as e:
        raise ValueError(f"Invalid data: {e}") from e
    return data["message"], list(data.get("history") or [])
