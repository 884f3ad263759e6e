"""Message models for the chat-completion conversation.

A turn owns one MessageLog: the ordered sequence of messages sent to the
inference backend on every request of that turn. Messages are frozen and the
log only grows, so an index returned by append() keeps pointing at the same
message for the rest of the turn.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Iterator, Optional


class MessageRole(str, Enum):
    """Role of a message in the conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(frozen=True)
class ToolCall:
    """A complete tool call requested by the model.

    Attributes:
        id: Identifier used to tag the matching tool result
        name: Name of the tool to invoke
        arguments_json: Raw JSON argument text, exactly as streamed
        type: Call type, always "function" for chat-completion backends
    """

    id: str
    name: str
    arguments_json: str = ""
    type: str = "function"

    def to_dict(self) -> dict[str, Any]:
        """Convert to the chat-completion wire format."""
        return {
            "id": self.id,
            "type": self.type,
            "function": {
                "name": self.name,
                "arguments": self.arguments_json,
            },
        }


@dataclass(frozen=True)
class Message:
    """A single message of the conversation.

    Attributes:
        role: Role of the message sender
        content: Text content (None for a pure tool-call assistant message)
        tool_calls: Tool calls requested by an assistant message
        tool_call_id: Originating call id for a tool result message
    """

    role: MessageRole
    content: Optional[str] = None
    tool_calls: Optional[tuple[ToolCall, ...]] = None
    tool_call_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary format for the chat-completion API."""
        result: dict[str, Any] = {
            "role": self.role.value,
            "content": self.content or "",
        }
        if self.tool_calls:
            result["tool_calls"] = [tc.to_dict() for tc in self.tool_calls]
        if self.tool_call_id:
            result["tool_call_id"] = self.tool_call_id
        return result

    @classmethod
    def system(cls, content: str) -> "Message":
        """Create a system message."""
        return cls(role=MessageRole.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        """Create a user message."""
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def assistant(
        cls,
        content: Optional[str],
        tool_calls: Optional[Iterable[ToolCall]] = None,
    ) -> "Message":
        """Create an assistant message, optionally carrying tool calls."""
        calls = tuple(tool_calls) if tool_calls else None
        return cls(role=MessageRole.ASSISTANT, content=content, tool_calls=calls)

    @classmethod
    def tool_result(cls, tool_call_id: str, content: str) -> "Message":
        """Create a tool result message tagged with its originating call id."""
        return cls(role=MessageRole.TOOL, content=content, tool_call_id=tool_call_id)


class MessageLog:
    """Append-only message sequence owned by a single turn."""

    def __init__(self, messages: Optional[Iterable[Message]] = None) -> None:
        self._messages: list[Message] = []
        for message in messages or ():
            self.append(message)

    def append(self, message: Message) -> int:
        """Append a message and return its index in the log."""
        if not isinstance(message, Message):
            raise TypeError(f"MessageLog only accepts Message instances, got {type(message).__name__}")
        self._messages.append(message)
        return len(self._messages) - 1

    def snapshot(self) -> tuple[Message, ...]:
        """Return the current contents as an immutable tuple."""
        return tuple(self._messages)

    def to_wire(self) -> list[dict[str, Any]]:
        """Convert every message to its chat-completion wire format."""
        return [message.to_dict() for message in self._messages]

    def __getitem__(self, index: int) -> Message:
        return self._messages[index]

    def __iter__(self) -> Iterator[Message]:
        return iter(tuple(self._messages))

    def __len__(self) -> int:
        return len(self._messages)

    def __repr__(self) -> str:
        return f"MessageLog({len(self._messages)} messages)"
