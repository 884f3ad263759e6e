"""Exa web search client."""

import logging
import time
from typing import Any, Optional

import httpx
from opentelemetry import trace

from application.services.search_client import SearchClient, SearchClientError
from domain.models import SearchResponse
from observability import search_request_time, search_requests

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

DEFAULT_EXA_BASE_URL = "https://api.exa.ai"


class ExaSearchClient(SearchClient):
    """Search client for the Exa search API.

    Sends ``POST /search`` with the ``x-api-key`` header and asks for
    highlights only (no full page text) to keep tool results small.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_EXA_BASE_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_key = api_key.strip()
        self._base_url = (base_url or DEFAULT_EXA_BASE_URL).strip().rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self._client

    async def search(self, query: str, num_results: int = 5, include_highlights: bool = True) -> SearchResponse:
        client = await self._get_client()
        body: dict[str, Any] = {
            "query": query,
            "type": "auto",
            "numResults": num_results,
            "contents": {
                "text": False,
                "highlights": include_highlights,
            },
        }
        headers = {"Content-Type": "application/json", "x-api-key": self._api_key}
        start_time = time.time()
        search_requests.add(1, {"provider": "exa"})

        with tracer.start_as_current_span("exa.search") as span:
            span.set_attribute("search.num_results", num_results)
            try:
                response = await client.post(f"{self._base_url}/search", json=body, headers=headers)
            except httpx.TimeoutException as e:
                span.set_attribute("error", True)
                logger.error(f"Exa search timed out: {e}")
                raise SearchClientError("search request timed out")
            except httpx.HTTPError as e:
                span.set_attribute("error", True)
                logger.error(f"Exa search request failed: {e}")
                raise SearchClientError(f"search request failed: {e}")
            finally:
                search_request_time.record((time.time() - start_time) * 1000, {"provider": "exa"})

            if not 200 <= response.status_code < 300:
                span.set_attribute("error", True)
                error_text = response.text.strip()[:200]
                logger.error(f"Exa HTTP error: {response.status_code} - {error_text}")
                raise SearchClientError(f"server error ({response.status_code}): {error_text}", status_code=response.status_code)

            try:
                data = response.json()
            except ValueError:
                raise SearchClientError("invalid search response", status_code=response.status_code)

            if not isinstance(data, dict):
                raise SearchClientError("invalid search response", status_code=response.status_code)

            result = SearchResponse.from_dict(data)
            span.set_attribute("search.result_count", len(result.results))
            logger.debug(f"Exa returned {len(result.results)} results")
            return result

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
