"""Application layer for the research agent.

Contains:
- agents/: The agent loop, stream decoding and the inference backend interface
- services/: Tool dispatch, tool manifest and the search client interface
- settings.py: Configuration
"""

from application.settings import Settings, app_settings, configure_logging

__all__ = [
    "Settings",
    "app_settings",
    "configure_logging",
]
