import json
import os
from decimal import Decimal

from shipping_agent.infrastructure.data_models import ShipmentRecord

NO_SHIPMENTS_MESSAGE = "No shipments found."


def render_prompt() -> str:
    # Get the directory of this file and construct the path to prompts.md
    current_dir = os.path.dirname(os.path.abspath(__file__))
    prompts_path = os.path.join(current_dir, "..", "prompts", "prompts.md")
    with open(prompts_path, encoding="utf-8") as f:
        return f.read()


def format_price(price: Decimal) -> str:
    return f"${price:,.2f}"


def render_quote(price: Decimal, origin: str, destination: str, weight: str) -> str:
    return (
        f"Estimated Quote: {format_price(price)} for shipping {weight} "
        f"from {origin} to {destination}."
    )


def render_booking(record: ShipmentRecord) -> str:
    return f"Shipment booked successfully! Your shipment ID is {record.id}."


def render_shipment_summary(records: list[ShipmentRecord]) -> str:
    """
    Render the shipments as a JSON array of {id, route, status}.

    An empty list renders as the "no shipments" sentinel.
    """
    if not records:
        return NO_SHIPMENTS_MESSAGE
    summary = [{"id": r.id, "route": r.route, "status": r.status} for r in records]
    return json.dumps(summary, indent=2)
