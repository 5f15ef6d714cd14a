"""Unsplash photo search."""

from typing import Any

from animal_atlas.sources.base import SourceAdapter
from animal_atlas.species.models import Image, ImageAttribution, ImageUrls
from animal_atlas.utils.cache import cached


class UnsplashSource(SourceAdapter):
    name = "unsplash"
    default_base_url = "https://api.unsplash.com"
    requires_key = True
    probe_name = "Lion"

    def auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Client-ID {self.api_key}"}

    @cached(ttl="images", empty=list)
    async def fetch_by_name(self, query: str, count: int = 6) -> list[Image]:
        """Landscape photos matching query.

        Args:
            query: Search text
            count: Maximum number of photos

        Returns:
            Normalized images, empty when nothing matched
        """
        data = await self._get_json(
            "search/photos",
            params={"query": query, "per_page": count, "orientation": "landscape"},
        )
        if not isinstance(data, dict):
            return []
        photos = [photo for photo in data.get("results") or [] if isinstance(photo, dict)]
        return [image for image in (_photo_to_image(p, query) for p in photos) if image][:count]


def _photo_to_image(photo: dict[str, Any], query: str) -> Image | None:
    urls = photo.get("urls") or {}
    if not urls.get("regular"):
        return None

    regular = urls["regular"]
    user = photo.get("user") or {}
    links = photo.get("links") or {}
    return Image(
        id=str(photo.get("id") or regular),
        urls=ImageUrls(
            raw=urls.get("raw") or regular,
            full=urls.get("full") or regular,
            regular=regular,
            small=urls.get("small") or regular,
            thumb=urls.get("thumb") or urls.get("small") or regular,
        ),
        alt_description=photo.get("alt_description") or photo.get("description") or query,
        attribution=ImageAttribution(
            name=user.get("name") or "Unsplash", username=user.get("username") or "unsplash"
        ),
        page_url=links.get("html"),
    )
