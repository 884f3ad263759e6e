"""Infrastructure layer for the research agent.

Contains:
- adapters/: External service adapters (OpenAI-compatible backend, Exa search)
- agent_factory.py: Orchestrator wiring from settings
"""

from infrastructure.agent_factory import create_agent_orchestrator, create_search_client

__all__ = [
    "create_agent_orchestrator",
    "create_search_client",
]
