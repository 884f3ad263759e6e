"""Events produced while decoding a streamed chat-completion response."""

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class TextDelta:
    """A fragment of assistant text content."""

    text: str


@dataclass(frozen=True)
class ToolCallDelta:
    """A fragment of a tool call, keyed by its stream index.

    Every field is optional: the id and name usually arrive once, while the
    arguments arrive as many partial JSON fragments.
    """

    index: Optional[int] = None
    id: Optional[str] = None
    type: Optional[str] = None
    name: Optional[str] = None
    arguments: Optional[str] = None


@dataclass(frozen=True)
class StreamDone:
    """The end-of-stream sentinel was received."""


StreamEvent = Union[TextDelta, ToolCallDelta, StreamDone]
