from __future__ import annotations

import re
from decimal import Decimal
from typing import Any

from shipping_agent.app.errors import StoreWriteError
from shipping_agent.infrastructure.data_models import Weight
from shipping_agent.services.renderer_service import (
    render_booking,
    render_quote,
    render_shipment_summary,
)
from shipping_agent.services.shipment_store import ShipmentStore
from shipping_agent.services.tool_registry import ActionRegistry
from shipping_agent.tools.schemas import BOOK_SHIPMENT, GET_QUOTE, GET_SHIPMENT_STATUS

# Pricing constants until a real distance/pricing provider exists
FIXED_DISTANCE_KM = Decimal(500)
UNIT_RATE = Decimal("0.1")  # $ per kg per km

# Longest leading digit run accepted as a weight
MAX_WEIGHT_DIGITS = 18

_LEADING_NUMBER = re.compile(r"^\s*([0-9]+)\s*(.*)$")


def parse_weight(weight: str) -> Weight:
    """
    Parse the leading integer of a free-form weight such as "500kg" or "12 tonnes".

    Parsing is lenient: anything that does not start with digits (after whitespace)
    has value 0 and is not an error. Signs and decimals are not part of the number,
    so "-5kg" is 0 and "2.5kg" is 2. Only ASCII digits count.

    Raises ValueError if the leading number has more than MAX_WEIGHT_DIGITS digits.
    """
    match = _LEADING_NUMBER.match(weight)
    if not match:
        return Weight(value=0, unit=weight.strip(), raw=weight)
    digits = match.group(1)
    if len(digits) > MAX_WEIGHT_DIGITS:
        raise ValueError(f"Weight is too large: more than {MAX_WEIGHT_DIGITS} digits")
    return Weight(value=int(digits), unit=match.group(2).strip(), raw=weight)


def calculate_price(weight: Weight) -> Decimal:
    return FIXED_DISTANCE_KM * weight.value * UNIT_RATE


def _string_args(args: dict[str, Any], *names: str) -> tuple[dict[str, str], list[str]]:
    """Return the named arguments as strings, plus the names that are missing or blank."""
    values: dict[str, str] = {}
    missing: list[str] = []
    for name in names:
        value = args.get(name)
        text = "" if value is None else str(value).strip()
        if not text:
            missing.append(name)
        values[name] = text
    return values, missing


def _missing_message(action_name: str, missing: list[str]) -> str:
    return f"Missing required argument(s) for {action_name}: {', '.join(missing)}"


def get_quote(args: dict[str, Any]) -> str:
    values, missing = _string_args(args, *GET_QUOTE.parameters)
    if missing:
        return _missing_message(GET_QUOTE.name, missing)

    try:
        weight = parse_weight(values["weight"])
    except ValueError as e:
        return f"Cannot quote this shipment: {e}"
    price = calculate_price(weight)
    return render_quote(price, values["origin"], values["destination"], values["weight"])


def get_shipment_status(store: ShipmentStore, args: dict[str, Any] | None = None) -> str:
    # A StoreReadError propagates: there is no sensible partial answer
    return render_shipment_summary(store.list(newest_first=True))


def book_shipment(store: ShipmentStore, args: dict[str, Any]) -> str:
    values, missing = _string_args(args, *BOOK_SHIPMENT.parameters)
    if missing:
        return _missing_message(BOOK_SHIPMENT.name, missing)

    try:
        record = store.create(
            origin=values["origin"],
            destination=values["destination"],
            weight=values["weight"],
            item=values["item"],
        )
    except StoreWriteError as e:
        return f"Failed to book shipment: {e}"
    return render_booking(record)


def build_registry(store: ShipmentStore) -> ActionRegistry:
    """Register the shipping actions against an explicit store handle."""
    registry = ActionRegistry()
    registry.register(GET_QUOTE, get_quote)
    registry.register(GET_SHIPMENT_STATUS, lambda args: get_shipment_status(store, args))
    registry.register(BOOK_SHIPMENT, lambda args: book_shipment(store, args))
    return registry
