"""Application services for the research agent."""

from application.services.search_client import SearchClient, SearchClientError
from application.services.tool_executor import (
    FinalizeAnswerArguments,
    FinalizeAnswerToolCall,
    ResolvedToolCall,
    SearchArguments,
    SearchToolCall,
    ToolExecutor,
    UnrecognizedToolCall,
)
from application.services.tool_manifest import EXA_SEARCH_TOOL_NAME, FINALIZE_ANSWER_TOOL_NAME, SEARCH_TOOL_NAMES, WEB_SEARCH_TOOL_NAME, build_tool_manifest

__all__ = [
    # Search
    "SearchClient",
    "SearchClientError",
    # Tool dispatch
    "ToolExecutor",
    "ResolvedToolCall",
    "SearchToolCall",
    "FinalizeAnswerToolCall",
    "UnrecognizedToolCall",
    "SearchArguments",
    "FinalizeAnswerArguments",
    # Manifest
    "build_tool_manifest",
    "SEARCH_TOOL_NAMES",
    "WEB_SEARCH_TOOL_NAME",
    "EXA_SEARCH_TOOL_NAME",
    "FINALIZE_ANSWER_TOOL_NAME",
]
