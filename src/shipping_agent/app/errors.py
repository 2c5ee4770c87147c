"""
Error kinds raised by the shipping agent.

Handler-local failures are turned into reply text by the handlers themselves. Everything
upstream of handler execution (model invocation, store reads for listing) propagates to
the HTTP boundary, which maps each kind to a status code.
"""


class ShippingAgentError(Exception):
    """Base class for shipping agent errors."""


class ModelInvocationError(ShippingAgentError):
    """The model could not be reached, refused the request or returned a malformed response."""


class ModelTimeoutError(ModelInvocationError):
    """The model did not answer within the configured deadline."""


class UnresolvedActionError(ShippingAgentError):
    """The model proposed an action name that is not registered."""

    def __init__(self, action_name: str) -> None:
        super().__init__(f"Unknown action requested by model: {action_name}")
        self.action_name = action_name


class HandlerExecutionError(ShippingAgentError):
    """An action handler failed while running."""

    def __init__(self, action_name: str, reason: str) -> None:
        super().__init__(f"The action '{action_name}' failed: {reason}")
        self.action_name = action_name
        self.reason = reason


class StoreError(ShippingAgentError):
    """The shipment record store failed."""


class StoreReadError(StoreError):
    """Shipments could not be listed."""


class StoreWriteError(StoreError):
    """A shipment could not be created or updated."""


class ShipmentNotFoundError(StoreWriteError):
    def __init__(self, shipment_id: str) -> None:
        super().__init__(f"Shipment not found: {shipment_id}")
        self.shipment_id = shipment_id
