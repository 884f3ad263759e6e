"""Search provider abstraction used by the search tool."""

from abc import ABC, abstractmethod
from typing import Any, Optional

from domain.models import SearchResponse


class SearchClientError(Exception):
    """Raised when the search provider request fails."""

    def __init__(self, message: str, status_code: Optional[int] = None, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "status_code": self.status_code,
            "details": self.details,
        }


class SearchClient(ABC):
    """Abstract base class for web search providers."""

    @abstractmethod
    async def search(self, query: str, num_results: int = 5, include_highlights: bool = True) -> SearchResponse:
        """Run a search.

        Args:
            query: Search query text
            num_results: Maximum number of results to return
            include_highlights: Whether to request highlight excerpts

        Returns:
            Results in provider ranking order

        Raises:
            SearchClientError: If the request fails
        """
        pass

    async def close(self) -> None:
        """Clean up resources. Override in implementations if needed."""
        pass
