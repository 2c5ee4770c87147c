from shipping_agent.services.tool_registry import ActionSchema

GET_QUOTE = ActionSchema(
    name="get_quote",
    description="Calculate the shipping price based on weight and route.",
    parameters=("origin", "destination", "weight"),
)

GET_SHIPMENT_STATUS = ActionSchema(
    name="get_shipment_status",
    description="Get the status of all current shipments.",
)

BOOK_SHIPMENT = ActionSchema(
    name="book_shipment",
    description=(
        "Book a new cargo shipment. Use this when the user confirms they want to ship "
        "an item from an origin to a destination."
    ),
    parameters=("origin", "destination", "weight", "item"),
)

LIST = {schema.name: schema for schema in (GET_QUOTE, GET_SHIPMENT_STATUS, BOOK_SHIPMENT)}
