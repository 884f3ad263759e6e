"""Tool models: manifest definitions offered to the model and dispatch results."""

from dataclasses import dataclass, field
from typing import Any, Optional

from domain.models.message import Message


@dataclass
class ToolParameter:
    """Represents a parameter for a tool."""

    name: str
    type: str
    description: str
    required: bool = True
    enum: Optional[list[Any]] = None
    items: Optional[dict[str, Any]] = None
    minimum: Optional[int] = None
    maximum: Optional[int] = None

    def to_schema(self) -> dict[str, Any]:
        """Convert to a JSON Schema property."""
        prop: dict[str, Any] = {
            "type": self.type,
            "description": self.description,
        }
        if self.enum is not None:
            prop["enum"] = self.enum
        if self.items is not None:
            prop["items"] = self.items
        if self.minimum is not None:
            prop["minimum"] = self.minimum
        if self.maximum is not None:
            prop["maximum"] = self.maximum
        return prop


@dataclass
class ToolDefinition:
    """
    Provider-agnostic definition of a tool offered to the model.

    Each inference backend converts it to its own wire format.
    """

    name: str
    description: str
    parameters: list[ToolParameter] = field(default_factory=list)

    def parameters_schema(self) -> dict[str, Any]:
        """Build the JSON Schema object describing the tool arguments."""
        return {
            "type": "object",
            "properties": {param.name: param.to_schema() for param in self.parameters},
            "required": [param.name for param in self.parameters if param.required],
        }

    def to_openai_format(self) -> dict[str, Any]:
        """Convert to OpenAI function calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters_schema(),
            },
        }


@dataclass(frozen=True)
class ToolResult:
    """Outcome of dispatching one tool call.

    Attributes:
        message: Tool result message tagged with the originating call id
        final_answer: Set only when the call finalized the turn's answer
    """

    message: Message
    final_answer: Optional[str] = None

    @property
    def is_final(self) -> bool:
        return self.final_answer is not None
