"""Infrastructure adapters for the research agent."""

from infrastructure.adapters.exa_search_client import ExaSearchClient
from infrastructure.adapters.openai_inference_backend import OpenAiInferenceBackend

__all__ = [
    "ExaSearchClient",
    "OpenAiInferenceBackend",
]
