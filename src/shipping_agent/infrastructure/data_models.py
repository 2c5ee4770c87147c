"""
Shared data models.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

USER_ROLE = "user"
ASSISTANT_ROLE = "assistant"
SYSTEM_ROLE = "system"

DEFAULT_SHIPMENT_STATUS = "Pending"


@dataclass(frozen=True)
class Message:
    role: str  # "system" | "user" | "assistant"
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class ActionCallRequest:
    """A single action the model asked us to run."""

    action_name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    call_id: str | None = None


@dataclass(frozen=True)
class ModelDecision:
    """
    The outcome of one model invocation: plain text, or one or more proposed action calls.

    The model may propose several calls; only the first one is ever dispatched.
    """

    text: str = ""
    calls: tuple[ActionCallRequest, ...] = ()
    model_version: str | None = None
    usage: dict[str, Any] = field(default_factory=dict)

    @property
    def wants_action(self) -> bool:
        return len(self.calls) > 0


@dataclass(frozen=True)
class Weight:
    value: int
    unit: str
    raw: str


@dataclass(frozen=True)
class ShipmentRecord:
    id: str
    origin: str
    destination: str
    weight: str
    item: str
    created_at: datetime
    status: str = DEFAULT_SHIPMENT_STATUS

    @property
    def route(self) -> str:
        return f"{self.origin} to {self.destination}"

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "origin": self.origin,
            "destination": self.destination,
            "weight": self.weight,
            "item": self.item,
            "status": self.status,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ShipmentRecord":
        return cls(
            id=str(data["id"]),
            origin=str(data["origin"]),
            destination=str(data["destination"]),
            weight=str(data["weight"]),
            item=str(data["item"]),
            status=str(data.get("status") or DEFAULT_SHIPMENT_STATUS),
            created_at=datetime.fromisoformat(str(data["created_at"])),
        )
