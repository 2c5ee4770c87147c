import json
import threading
from dataclasses import dataclass
from typing import Any

from shipping_agent.app.config import AgentSettings, get_settings
from shipping_agent.app.errors import ModelInvocationError, ModelTimeoutError, StoreReadError
from shipping_agent.app.process_event import process_chat_data
from shipping_agent.infrastructure.platform_manager import create_logger
from shipping_agent.services.dispatch_service import Dispatcher
from shipping_agent.services.llm_service import ModelCapability, build_llm_service
from shipping_agent.services.shipment_store import ShipmentStore, build_shipment_store
from shipping_agent.tools.shipping import build_registry

logger = create_logger(logger_name="shipping-agent", log_level="INFO")


@dataclass
class Runtime:
    """Objects that live for the whole process and are shared by every request."""

    store: ShipmentStore
    dispatcher: Dispatcher


def build_runtime(
    settings: AgentSettings,
    *,
    store: ShipmentStore | None = None,
    model: ModelCapability | None = None,
) -> Runtime:
    """
    Wire the store, the action registry and the model into a dispatcher.

    `store` and `model` can be supplied to replace the configured ones (tests, local runs).
    """
    create_logger(
        log_level=settings.log_level, logger_name="shipping-agent", logs_dir=settings.logs_dir
    )
    store = store if store is not None else build_shipment_store(settings)
    model = model if model is not None else build_llm_service(settings)
    registry = build_registry(store)
    logger.info(f"Registered actions: {[s.name for s in registry.schemas()]}")
    return Runtime(store=store, dispatcher=Dispatcher(registry, model, logger))


_runtime: Runtime | None = None
_runtime_lock = threading.Lock()


def get_runtime() -> Runtime:
    """Return the process-wide runtime, building it from the settings on first use."""
    global _runtime
    with _runtime_lock:
        if _runtime is None:
            logger.info("Starting Shipping Agent")
            _runtime = build_runtime(get_settings())
        return _runtime


def create_response(status_code: int, body: Any) -> dict[str, Any]:
    """
    Create a standard JSON HTTP response.

    Args:
        status_code (int): HTTP status code.
        body: Response body; anything that is not a string is JSON encoded.

    Returns:
        dict: Standardized response dictionary.
    """
    return {
        "statusCode": status_code,
        "body": body if isinstance(body, str) else json.dumps(body),
        "headers": {"Content-Type": "application/json"},
        "isBase64Encoded": False,
    }


def error_response(status_code: int, message: str) -> dict[str, Any]:
    return create_response(status_code, {"error": message})


def handle_chat(event: dict[str, Any], runtime: Runtime) -> dict[str, Any]:
    try:
        message, history = process_chat_data(event)
    except ValueError as e:
        logger.error(e)
        return error_response(400, str(e))

    logger.info(f"User sent: {message} (history: {len(history)} turns)")

    try:
        result = runtime.dispatcher.run_turn(history, message)
    except ModelTimeoutError as e:
        logger.error(f"LLM timeout: {e}")
        return error_response(504, f"AI model timeout: {e}")
    except ModelInvocationError as e:
        logger.error(f"LLM error: {e}")
        return error_response(500, f"AI model error: {e}")
    except StoreReadError as e:
        logger.error(f"Store error: {e}")
        return error_response(500, f"Shipment store error: {e}")

    if result.action_name:
        logger.info(f"Reply from action {result.action_name}: {result.reply}")
    return create_response(200, {"reply": result.reply, "history": result.history})


def handle_list_shipments(runtime: Runtime) -> dict[str, Any]:
    try:
        records = runtime.store.list(newest_first=True)
    except StoreReadError as e:
        logger.error(f"Store error: {e}")
        return error_response(500, f"Shipment store error: {e}")
    return create_response(200, [record.to_dict() for record in records])


def process(event: dict[str, Any], runtime: Runtime | None = None) -> dict[str, Any]:
    """Process the incoming HTTP Gateway event."""

    # Get the route key and split it into method and route
    route_key = event.get("routeKey", "")
    method, _, route = route_key.partition(" ")
    logger.info(f"Processing request: {method} {route}")

    if method == "GET" and route == "/healthz":
        return create_response(200, {"ok": True})

    if (method, route) not in (("POST", "/chat"), ("GET", "/shipments")):
        logger.error(f"Route and method not found: {route_key}")
        return error_response(404, "Route and method not found")

    try:
        if runtime is None:
            runtime = get_runtime()
        if route == "/chat":
            return handle_chat(event, runtime)
        return handle_list_shipments(runtime)
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return error_response(500, f"Internal server error: {e}")
