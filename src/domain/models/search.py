"""Search provider response models."""

from dataclasses import dataclass, field
from typing import Any, Optional


def _optional_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


@dataclass(frozen=True)
class SearchResult:
    """One hit returned by the search provider."""

    url: str
    title: Optional[str] = None
    author: Optional[str] = None
    published_date: Optional[str] = None
    text: Optional[str] = None
    summary: Optional[str] = None
    highlights: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SearchResult":
        """Create from the provider's JSON representation."""
        highlights = data.get("highlights") or []
        return cls(
            url=str(data.get("url") or ""),
            title=_optional_str(data.get("title")),
            author=_optional_str(data.get("author")),
            published_date=_optional_str(data.get("publishedDate")),
            text=_optional_str(data.get("text")),
            summary=_optional_str(data.get("summary")),
            highlights=[h for h in highlights if isinstance(h, str)] if isinstance(highlights, list) else [],
        )


@dataclass(frozen=True)
class SearchResponse:
    """Ordered search results for one query."""

    results: list[SearchResult] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SearchResponse":
        items = data.get("results") or []
        if not isinstance(items, list):
            return cls()
        return cls(results=[SearchResult.from_dict(item) for item in items if isinstance(item, dict)])
