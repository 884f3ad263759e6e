"""Application settings configuration for the research agent."""

import logging
import sys
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Research agent settings: inference backend, search provider and loop limits."""

    # Debugging Configuration
    log_level: str = "INFO"

    # Inference Backend Configuration (OpenAI-compatible chat completions)
    inference_base_url: str = "https://api.openai.com/v1"
    inference_api_key: Optional[str] = None
    inference_model: str = "gpt-4o-mini"
    inference_temperature: float = 0.5
    inference_max_tokens: Optional[int] = 4096
    inference_models_timeout: float = 30.0  # Models listing only; streaming has no fixed timeout

    # Search Provider Configuration (Exa)
    # Web search is only offered to the model when an API key is set
    search_api_key: Optional[str] = None
    search_base_url: str = "https://api.exa.ai"
    search_timeout: float = 30.0
    search_default_num_results: int = 5
    search_max_num_results: int = 10
    search_snippet_max_chars: int = 400

    # Agent Loop Configuration
    agent_base_iteration_limit: int = 6
    agent_hard_iteration_limit: int = 12
    agent_progress_every_n_deltas: int = 4  # Publish partial output every N text deltas
    agent_system_prompt: str = ""

    class Config:
        env_file = ".env"
        env_prefix = "RESEARCH_AGENT_"
        case_sensitive = False
        extra = "ignore"


app_settings = Settings()


def configure_logging(log_level: str = "INFO") -> None:
    """
    Configure application-wide logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
