"""Builds a ready-to-use agent orchestrator from application settings."""

import logging
from typing import Optional

from application.agents import AgentConfig, AgentOrchestrator, AgentProgressSink, InferenceConfig
from application.services import SearchClient, ToolExecutor
from application.settings import Settings, app_settings
from infrastructure.adapters.exa_search_client import ExaSearchClient
from infrastructure.adapters.openai_inference_backend import OpenAiInferenceBackend

logger = logging.getLogger(__name__)


def create_search_client(settings: Settings) -> Optional[SearchClient]:
    """Create the Exa client, or None when no search API key is configured."""
    api_key = (settings.search_api_key or "").strip()
    if not api_key:
        logger.info("Web search is disabled (no search API key configured)")
        return None
    return ExaSearchClient(api_key=api_key, base_url=settings.search_base_url, timeout=settings.search_timeout)


def create_agent_orchestrator(
    settings: Optional[Settings] = None,
    progress_sink: Optional[AgentProgressSink] = None,
) -> AgentOrchestrator:
    """Wire backend, search client, tool executor and orchestrator.

    Args:
        settings: Settings to use; defaults to the app_settings singleton
        progress_sink: Optional receiver of progress snapshots

    Returns:
        A configured orchestrator for one conversation
    """
    settings = settings or app_settings

    backend = OpenAiInferenceBackend(
        InferenceConfig(
            base_url=settings.inference_base_url,
            api_key=settings.inference_api_key,
            models_timeout=settings.inference_models_timeout,
        )
    )
    tool_executor = ToolExecutor(
        search_client=create_search_client(settings),
        default_num_results=settings.search_default_num_results,
        max_num_results=settings.search_max_num_results,
        snippet_max_chars=settings.search_snippet_max_chars,
    )
    config = AgentConfig.from_settings(settings)

    logger.info(f"Configured AgentOrchestrator: model={config.model}, endpoint={backend.base_url}, search={'enabled' if tool_executor.search_available else 'disabled'}")
    return AgentOrchestrator(backend=backend, tool_executor=tool_executor, config=config, progress_sink=progress_sink)
