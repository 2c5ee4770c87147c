from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

ActionHandler = Callable[[dict[str, Any]], str]


@dataclass(frozen=True)
class ActionSchema:
    """Describes an action to the model. All parameters are required strings."""

    name: str
    description: str
    parameters: tuple[str, ...] = ()

    def to_json_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {p: {"type": "string"} for p in self.parameters},
            "required": list(self.parameters),
            "additionalProperties": False,
        }


class ActionRegistry:
    """
    Fixed mapping from action name to its schema and handler.

    Populated once at start-up; lookups are a single dict access.
    """

    def __init__(self) -> None:
        self._schemas: dict[str, ActionSchema] = {}
        self._handlers: dict[str, ActionHandler] = {}

    def register(self, schema: ActionSchema, handler: ActionHandler) -> None:
        if schema.name in self._handlers:
            raise ValueError(f"Action already registered: {schema.name}")
        self._schemas[schema.name] = schema
        self._handlers[schema.name] = handler

    def resolve(self, name: str) -> ActionHandler | None:
        return self._handlers.get(name)

    def schemas(self) -> list[ActionSchema]:
        return list(self._schemas.values())

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)

    def openai_tools(self) -> list[dict[str, Any]]:
        """
        Build OpenAI Responses-API tool specs from the registered schemas.

        Example tool item:
          {
            "type": "function",
            "name": "get_quote",
            "description": "...",
            "parameters": { ... JSON Schema ... },
            "strict": True
          }
        """
        return openai_tools_from_schemas(self.schemas())


def openai_tools_from_schemas(schemas: list[ActionSchema]) -> list[dict[str, Any]]:
    return [
        {
            "type": "function",
            "name": schema.name,
            "description": schema.description,
            "parameters": schema.to_json_schema(),
            "strict": True,
        }
        for schema in schemas
    ]
