"""Domain layer for the research agent.

Contains:
- models/: Value objects shared by the agent loop (messages, stream events,
  tool definitions and results, search results, iteration budget)
"""

from domain.models import (
    AgentBudget,
    Message,
    MessageLog,
    MessageRole,
    SearchResponse,
    SearchResult,
    StreamDone,
    StreamEvent,
    TextDelta,
    ToolCall,
    ToolCallDelta,
    ToolDefinition,
    ToolParameter,
    ToolResult,
)

__all__ = [
    "AgentBudget",
    "Message",
    "MessageLog",
    "MessageRole",
    "SearchResponse",
    "SearchResult",
    "StreamDone",
    "StreamEvent",
    "TextDelta",
    "ToolCall",
    "ToolCallDelta",
    "ToolDefinition",
    "ToolParameter",
    "ToolResult",
]
