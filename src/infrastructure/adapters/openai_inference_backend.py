"""OpenAI-compatible inference backend.

This module provides the httpx implementation of the InferenceBackend
interface for any endpoint speaking the OpenAI chat-completion protocol
(OpenAI, OpenRouter, LM Studio, vLLM, ...).

Features:
- Streaming chat completions, yielded as raw lines
- Models listing with a bounded timeout
- Optional bearer authentication (local servers usually need none)
- Base URL normalization
- OpenTelemetry tracing and metrics
"""

import json
import logging
import time
from typing import Any, AsyncGenerator, Optional

import httpx
from opentelemetry import trace

from application.agents.inference_backend import ChatCompletionRequest, InferenceBackend, InferenceBackendError, InferenceConfig
from observability import llm_request_count, llm_request_time

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def normalize_base_url(base_url: Optional[str]) -> Optional[str]:
    """Trim the base URL, add https:// when no scheme is given, drop trailing slashes.

    Returns:
        The normalized URL, or None when the input is blank
    """
    trimmed = (base_url or "").strip()
    if not trimmed:
        return None
    if "://" not in trimmed:
        trimmed = f"https://{trimmed}"
    return trimmed.rstrip("/")


def extract_error_message(error_text: str) -> str:
    """Extract ``error.message`` from a provider error body, else the trimmed body."""
    try:
        error_json = json.loads(error_text)
    except json.JSONDecodeError:
        return error_text.strip()[:200]
    if isinstance(error_json, dict):
        error = error_json.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
        if isinstance(error, str):
            return error
    return error_text.strip()[:200]


class OpenAiInferenceBackend(InferenceBackend):
    """OpenAI-compatible implementation of the inference backend interface.

    Usage:
        config = InferenceConfig(base_url="https://api.openai.com/v1", api_key="sk-xxx")  # pragma: allowlist secret
        backend = OpenAiInferenceBackend(config)
        async with aclosing(backend.stream_chat(request)) as lines:
            async for line in lines:
                ...
    """

    PROVIDER_NAME = "openai"

    def __init__(self, config: InferenceConfig, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        """Initialize the backend.

        Args:
            config: Connection configuration
            transport: Optional httpx transport (tests use httpx.MockTransport)

        Raises:
            InferenceBackendError: If the base URL is blank
        """
        super().__init__(config)
        base_url = normalize_base_url(config.base_url)
        if base_url is None:
            raise InferenceBackendError(
                message="Invalid inference API base URL",
                error_code="openai_config_error",
                provider=self.PROVIDER_NAME,
                is_retryable=False,
            )
        self._base_url = base_url
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def base_url(self) -> str:
        return self._base_url

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(transport=self._transport)
        return self._client

    def _get_headers(self, stream: bool = False) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if stream:
            headers["Accept"] = "text/event-stream"
        api_key = (self._config.api_key or "").strip()
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        return headers

    def _build_api_url(self, endpoint: str) -> str:
        return f"{self._base_url}/{endpoint}"

    async def stream_chat(self, request: ChatCompletionRequest) -> AsyncGenerator[str, None]:
        """Send a chat-completion request and yield the raw response lines.

        The request has no fixed timeout. Closing the generator closes the
        response, which cancels the in-flight request.

        Args:
            request: The request to send

        Yields:
            Response body lines

        Raises:
            InferenceBackendError: If the request fails or returns a non-2xx status
        """
        client = await self._get_client()
        model = request.model
        start_time = time.time()

        llm_request_count.add(1, {"model": model, "has_tools": str(request.has_tools), "provider": self.PROVIDER_NAME})

        with tracer.start_as_current_span("openai.stream_chat") as span:
            span.set_attribute("llm.model", model)
            span.set_attribute("llm.message_count", len(request.messages))
            span.set_attribute("llm.provider", self.PROVIDER_NAME)
            span.set_attribute("llm.has_tools", request.has_tools)

            url = self._build_api_url("chat/completions")
            logger.info(f"OpenAI stream request: model={model}, messages={len(request.messages)}, tools={len(request.tools) if request.tools else 0}")
            logger.debug(f"OpenAI request URL: {url}")

            line_count = 0
            try:
                async with client.stream("POST", url, json=request.to_payload(), headers=self._get_headers(stream=True), timeout=None) as response:
                    if not 200 <= response.status_code < 300:
                        error_content = await response.aread()
                        error_text = error_content.decode("utf-8", errors="replace")
                        logger.error(f"OpenAI HTTP error: {response.status_code} - {error_text[:500]}")
                        raise self._handle_http_error_from_status(response.status_code, error_text, model)

                    async for line in response.aiter_lines():
                        line_count += 1
                        yield line

            except InferenceBackendError:
                span.set_attribute("error", True)
                raise
            except httpx.ConnectError as e:
                span.set_attribute("error", True)
                logger.error(f"Cannot connect to inference backend at {self._base_url}: {e}")
                raise InferenceBackendError(
                    message=f"Cannot connect to inference backend at {self._base_url}",
                    error_code="openai_unavailable",
                    provider=self.PROVIDER_NAME,
                    is_retryable=True,
                    details={"url": self._base_url},
                )
            except httpx.TimeoutException as e:
                span.set_attribute("error", True)
                logger.error(f"Inference request timed out: {e}")
                raise InferenceBackendError(
                    message="Inference request timed out",
                    error_code="openai_timeout",
                    provider=self.PROVIDER_NAME,
                    is_retryable=True,
                )
            except httpx.HTTPError as e:
                span.set_attribute("error", True)
                logger.error(f"Inference stream error: {e}")
                raise InferenceBackendError(
                    message=f"Inference stream error: {e}",
                    error_code="openai_stream_error",
                    provider=self.PROVIDER_NAME,
                    is_retryable=True,
                )
            finally:
                duration_ms = (time.time() - start_time) * 1000
                llm_request_time.record(duration_ms, {"model": model, "provider": self.PROVIDER_NAME})
                span.set_attribute("llm.duration_ms", duration_ms)
                span.set_attribute("llm.line_count", line_count)
                logger.debug(f"OpenAI stream closed after {line_count} lines")

    async def list_models(self) -> list[str]:
        """List the model identifiers offered by the backend.

        Returns:
            Model ids, sorted

        Raises:
            InferenceBackendError: If the request fails
        """
        client = await self._get_client()
        url = self._build_api_url("models")

        with tracer.start_as_current_span("openai.list_models") as span:
            span.set_attribute("llm.provider", self.PROVIDER_NAME)
            try:
                response = await client.get(url, headers=self._get_headers(), timeout=self._config.models_timeout)
            except httpx.TimeoutException as e:
                span.set_attribute("error", True)
                logger.error(f"Models listing timed out after {self._config.models_timeout}s: {e}")
                raise InferenceBackendError(
                    message="Models listing timed out",
                    error_code="openai_timeout",
                    provider=self.PROVIDER_NAME,
                    is_retryable=True,
                )
            except httpx.HTTPError as e:
                span.set_attribute("error", True)
                logger.error(f"Models listing failed: {e}")
                raise InferenceBackendError(
                    message=f"Cannot reach inference backend at {self._base_url}",
                    error_code="openai_unavailable",
                    provider=self.PROVIDER_NAME,
                    is_retryable=True,
                    details={"url": self._base_url},
                )

            if not 200 <= response.status_code < 300:
                span.set_attribute("error", True)
                raise self._handle_http_error_from_status(response.status_code, response.text, model="")

            try:
                data = response.json()
            except ValueError:
                raise InferenceBackendError(
                    message="Invalid models response",
                    error_code="openai_invalid_response",
                    provider=self.PROVIDER_NAME,
                    status_code=response.status_code,
                )

            items: Any = data.get("data") if isinstance(data, dict) else None
            models = sorted(str(item["id"]) for item in items or [] if isinstance(item, dict) and item.get("id"))
            span.set_attribute("llm.model_count", len(models))
            logger.debug(f"Backend lists {len(models)} models")
            return models

    def _handle_http_error_from_status(self, status_code: int, error_text: str, model: str) -> InferenceBackendError:
        """Handle HTTP errors by status code.

        Args:
            status_code: HTTP status code
            error_text: Error response text
            model: Model name for error details

        Returns:
            Appropriate InferenceBackendError; its message always names the status code
        """
        error_detail = extract_error_message(error_text)

        if status_code == 401:
            return InferenceBackendError(
                message=f"Authentication failed (401): {error_detail or 'check your API key'}",
                error_code="openai_auth_error",
                provider=self.PROVIDER_NAME,
                status_code=status_code,
                is_retryable=False,
            )
        elif status_code == 403:
            return InferenceBackendError(
                message=f"Access denied (403): {error_detail or 'check your permissions'}",
                error_code="openai_forbidden",
                provider=self.PROVIDER_NAME,
                status_code=status_code,
                is_retryable=False,
            )
        elif status_code == 404:
            return InferenceBackendError(
                message=f"Model '{model}' or endpoint not found (404): {error_detail}",
                error_code="openai_model_not_found",
                provider=self.PROVIDER_NAME,
                status_code=status_code,
                is_retryable=False,
                details={"model": model},
            )
        elif status_code == 429:
            return InferenceBackendError(
                message=f"Rate limit exceeded (429): {error_detail or 'please try again later'}",
                error_code="openai_rate_limit",
                provider=self.PROVIDER_NAME,
                status_code=status_code,
                is_retryable=True,
            )
        elif status_code >= 500:
            return InferenceBackendError(
                message=f"Server error ({status_code}): {error_detail}",
                error_code="openai_server_error",
                provider=self.PROVIDER_NAME,
                status_code=status_code,
                is_retryable=True,
            )
        else:
            return InferenceBackendError(
                message=f"API error ({status_code}): {error_detail}",
                error_code="openai_api_error",
                provider=self.PROVIDER_NAME,
                status_code=status_code,
                is_retryable=False,
            )

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
