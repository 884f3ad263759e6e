"""Inference backend abstraction for the research agent.

This module defines the interface the agent loop uses to talk to a
chat-completion service. A backend only moves bytes: it sends a request and
yields the raw response lines. Decoding those lines is the job of the
StreamProtocolParser, so the loop behaves the same whether the backend streams
server-sent events or falls back to a single JSON body.

Design Principles:
- Interface-based design for swappable backends
- Dataclasses for configuration and request structures
- Unified error handling across backends
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Optional

from domain.models import Message, ToolDefinition

logger = logging.getLogger(__name__)


# =============================================================================
# Unified Error Handling
# =============================================================================


class InferenceBackendError(Exception):
    """Base error class for all inference backend errors.

    Attributes:
        message: Human-readable error message
        error_code: Categorized error code for programmatic handling
        provider: The backend that raised the error
        status_code: HTTP status code when the error came from a response
        is_retryable: Whether the operation might succeed on retry
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        provider: str,
        status_code: Optional[int] = None,
        is_retryable: bool = False,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.provider = provider
        self.status_code = status_code
        self.is_retryable = is_retryable
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for presentation."""
        return {
            "message": self.message,
            "error_code": self.error_code,
            "provider": self.provider,
            "status_code": self.status_code,
            "is_retryable": self.is_retryable,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"InferenceBackendError({self.provider}:{self.error_code}: {self.message})"


# =============================================================================
# Request / Configuration
# =============================================================================


@dataclass
class ChatCompletionRequest:
    """A chat-completion request.

    Attributes:
        model: Model identifier
        messages: Full message log of the turn
        temperature: Sampling temperature
        max_tokens: Maximum tokens to generate (None = backend default)
        stream: Whether to request a streamed response
        tools: Tool manifest; None means no tools are offered
        tool_choice: Tool selection mode, only sent together with tools
    """

    model: str
    messages: list[Message]
    temperature: float = 0.5
    max_tokens: Optional[int] = None
    stream: bool = True
    tools: Optional[list[ToolDefinition]] = None
    tool_choice: Optional[str] = None

    @property
    def has_tools(self) -> bool:
        return bool(self.tools)

    def to_payload(self) -> dict[str, Any]:
        """Build the JSON request body."""
        body: dict[str, Any] = {
            "model": self.model,
            "messages": [message.to_dict() for message in self.messages],
            "temperature": self.temperature,
            "stream": self.stream,
        }

        if self.max_tokens:
            body["max_tokens"] = self.max_tokens

        if self.tools:
            body["tools"] = [tool.to_openai_format() for tool in self.tools]
            body["tool_choice"] = self.tool_choice or "auto"

        return body


@dataclass
class InferenceConfig:
    """Connection configuration for an inference backend.

    Attributes:
        base_url: Base URL of the chat-completion API
        api_key: API key; requests are sent without auth when blank
        models_timeout: Timeout in seconds for the models listing
    """

    base_url: str
    api_key: Optional[str] = None
    models_timeout: float = 30.0


# =============================================================================
# Backend Interface
# =============================================================================


class InferenceBackend(ABC):
    """Abstract base class for inference backends.

    Implementations:
    - OpenAiInferenceBackend: OpenAI-compatible chat-completion endpoints

    Usage:
        async with aclosing(backend.stream_chat(request)) as lines:
            async for line in lines:
                events = parser.feed(line)
    """

    def __init__(self, config: InferenceConfig) -> None:
        self._config = config

    @property
    def config(self) -> InferenceConfig:
        return self._config

    @abstractmethod
    def stream_chat(self, request: ChatCompletionRequest) -> AsyncGenerator[str, None]:
        """Send a chat-completion request and yield the raw response lines.

        Closing the generator early cancels the in-flight request.

        Args:
            request: The request to send

        Yields:
            Response body lines, without line terminators

        Raises:
            InferenceBackendError: If the request fails or returns a non-2xx status
        """
        pass

    @abstractmethod
    async def list_models(self) -> list[str]:
        """List the model identifiers offered by the backend, sorted.

        Raises:
            InferenceBackendError: If the request fails
        """
        pass

    async def close(self) -> None:
        """Clean up resources. Override in implementations if needed."""
        pass

    async def __aenter__(self) -> "InferenceBackend":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()
