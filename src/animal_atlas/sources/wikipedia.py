"""Wikipedia REST summaries and OpenSearch title lookup."""

from typing import Any
from urllib.parse import quote

from animal_atlas.sources.base import SourceAdapter
from animal_atlas.sources.errors import ErrorType, SourceError
from animal_atlas.sources.models import (
    WikipediaSearchResult,
    WikipediaSummary,
    WikipediaThumbnail,
)
from animal_atlas.utils.cache import cached

OPENSEARCH_URL = "https://en.wikipedia.org/w/api.php"


class WikipediaSource(SourceAdapter):
    name = "wikipedia"
    default_base_url = "https://en.wikipedia.org/api/rest_v1"
    probe_name = "Lion"

    @cached(ttl="animal_data")
    async def fetch_by_name(self, name: str) -> WikipediaSummary | None:
        """Page summary for name.

        Multi-word names without their own article fall back to the last word,
        which is usually the animal type ("European Peacock Butterfly" ->
        "Butterfly").
        """
        try:
            data = await self._get_json(f"page/summary/{quote(name.strip(), safe='')}")
        except SourceError as e:
            words = name.split()
            if e.error_type is not ErrorType.NOT_FOUND or len(words) < 2:
                raise
            data = await self._get_json(f"page/summary/{quote(words[-1], safe='')}")

        return _parse_summary(data, name)

    @cached(ttl="search", empty=list)
    async def search(self, query: str, limit: int = 10) -> list[WikipediaSearchResult]:
        """Page titles matching query.

        OpenSearch answers ``[query, [titles], [descriptions], [urls]]``.
        """
        data = await self._get_json(
            OPENSEARCH_URL,
            params={"action": "opensearch", "format": "json", "search": query, "limit": limit},
        )
        if not isinstance(data, list) or len(data) < 4:
            return []

        titles, descriptions, urls = (
            column if isinstance(column, list) else [] for column in data[1:4]
        )
        return [
            WikipediaSearchResult(
                title=title,
                description=descriptions[i] if i < len(descriptions) else "",
                url=urls[i] if i < len(urls) else "",
            )
            for i, title in enumerate(titles)
            if isinstance(title, str)
        ]


def _parse_summary(data: Any, name: str) -> WikipediaSummary | None:  # noqa: ANN401
    if not isinstance(data, dict) or not data.get("title"):
        return None

    thumbnail = data.get("thumbnail")
    desktop = (data.get("content_urls") or {}).get("desktop") or {}
    return WikipediaSummary(
        title=data["title"],
        extract=data.get("extract") or "",
        description=data.get("description") or "",
        thumbnail=(
            WikipediaThumbnail.model_validate(thumbnail)
            if isinstance(thumbnail, dict) and thumbnail.get("source")
            else None
        ),
        page_id=data.get("pageid"),
        url=desktop.get("page") or f"https://en.wikipedia.org/wiki/{quote(name.strip())}",
    )
