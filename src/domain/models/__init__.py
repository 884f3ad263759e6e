"""Domain models for the research agent."""

from domain.models.budget import AgentBudget
from domain.models.message import Message, MessageLog, MessageRole, ToolCall
from domain.models.search import SearchResponse, SearchResult
from domain.models.streaming import StreamDone, StreamEvent, TextDelta, ToolCallDelta
from domain.models.tool import ToolDefinition, ToolParameter, ToolResult

__all__ = [
    # Conversation
    "Message",
    "MessageLog",
    "MessageRole",
    "ToolCall",
    # Streaming
    "StreamDone",
    "StreamEvent",
    "TextDelta",
    "ToolCallDelta",
    # Tools
    "ToolDefinition",
    "ToolParameter",
    "ToolResult",
    # Search
    "SearchResponse",
    "SearchResult",
    # Budget
    "AgentBudget",
]
