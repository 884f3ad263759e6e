"""Observability utilities and metrics."""

from .metrics import (agent_budget_extensions, agent_turn_duration, agent_turns_completed, agent_turns_started, llm_request_count, llm_request_time, llm_tool_calls,  # Turn metrics; LLM metrics
                      search_request_time, search_requests, tool_execution_errors, tool_execution_time, tool_executions)  # Tool metrics; Search metrics

__all__ = [
    # Turn metrics
    "agent_turns_started",
    "agent_turns_completed",
    "agent_turn_duration",
    "agent_budget_extensions",
    # LLM metrics
    "llm_request_count",
    "llm_request_time",
    "llm_tool_calls",
    # Tool metrics
    "tool_executions",
    "tool_execution_errors",
    "tool_execution_time",
    # Search metrics
    "search_requests",
    "search_request_time",
]
