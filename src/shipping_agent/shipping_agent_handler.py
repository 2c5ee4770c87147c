from typing import Any

from shipping_agent.app.main import process


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """AWS Lambda entry point for the Shipping Agent."""
    try:
        return process(event)
    except Exception as e:
        raise Exception(f"Error in processing Shipping Agent: {e}") from e
