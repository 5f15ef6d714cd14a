"""Image resolution with per-source timeouts and query variants."""

import logging

from pydantic import TypeAdapter, ValidationError

from animal_atlas.config.models import CacheTtlConfig
from animal_atlas.sources.breeds import CatApiSource, DogApiSource
from animal_atlas.sources.inaturalist import INaturalistSource
from animal_atlas.sources.unsplash import UnsplashSource
from animal_atlas.sources.wikipedia import WikipediaSource
from animal_atlas.species.classifier import (
    AnimalType,
    build_image_queries,
    detect_animal_type,
    slugify,
)
from animal_atlas.species.models import Image
from animal_atlas.utils.cache import Cache
from animal_atlas.utils.concurrency import with_timeout

logger = logging.getLogger(__name__)

_images = TypeAdapter(list[Image])


class ImageResolver:
    """Find photos for an animal, most authoritative source first.

    Order: iNaturalist observation photos, Unsplash, the Wikipedia page
    thumbnail, then breed photos for dogs and cats. Every source call is raced
    against ``timeout`` seconds so one slow source cannot stall the rest. When
    every stage comes up empty the result is an empty list; no placeholder
    image is ever produced.
    """

    def __init__(
        self,
        cache: Cache,
        inaturalist: INaturalistSource,
        unsplash: UnsplashSource,
        wikipedia: WikipediaSource,
        dog_api: DogApiSource,
        cat_api: CatApiSource,
        ttl: CacheTtlConfig | None = None,
        timeout: float = 3.0,
    ):
        self.cache = cache
        self.inaturalist = inaturalist
        self.unsplash = unsplash
        self.wikipedia = wikipedia
        self.dog_api = dog_api
        self.cat_api = cat_api
        self.ttl = ttl or CacheTtlConfig()
        self.timeout = timeout

    @staticmethod
    def cache_key(name: str, count: int) -> str:
        return f"images_{name.strip().lower()}_{count}"

    async def resolve_images(
        self, name: str, scientific_name: str | None = None, count: int = 6
    ) -> list[Image]:
        """Up to count images for an animal.

        Args:
            name: Common name
            scientific_name: Scientific name, used for the most precise lookups
            count: Maximum number of images

        Returns:
            Images from the first stage that produced any, possibly empty
        """
        if not name or not name.strip():
            return []

        key = self.cache_key(name, count)
        hit = self.cache.get(key)
        if hit is not None:
            try:
                return _images.validate_python(hit)
            except ValidationError:
                self.cache.delete(key)

        queries = build_image_queries(name, scientific_name)
        stages = (
            self._from_inaturalist,
            self._from_unsplash,
            self._from_wikipedia,
            self._from_breeds,
        )
        for stage in stages:
            images = (await stage(name, scientific_name, queries, count))[:count]
            if images:
                logger.debug(
                    "Images resolved",
                    extra={"animal": name, "stage": stage.__name__.removeprefix("_from_")},
                )
                self.cache.set(key, _images.dump_python(images, mode="json"), self.ttl.images_ms)
                return images

        logger.debug("No images found", extra={"animal": name})
        return []

    async def _from_inaturalist(
        self, name: str, scientific_name: str | None, queries: list[str], count: int
    ) -> list[Image]:
        for taxon_name in (scientific_name, name):
            if not taxon_name:
                continue
            images = await with_timeout(
                self.inaturalist.fetch_photos(taxon_name, count), self.timeout, []
            )
            if images:
                return images
        return []

    async def _from_unsplash(
        self, name: str, scientific_name: str | None, queries: list[str], count: int
    ) -> list[Image]:
        if not self.unsplash.is_configured:
            return []
        for query in queries:
            images = await with_timeout(self.unsplash.fetch_by_name(query, count), self.timeout, [])
            if images:
                return images
        return []

    async def _from_wikipedia(
        self, name: str, scientific_name: str | None, queries: list[str], count: int
    ) -> list[Image]:
        summary = await with_timeout(self.wikipedia.fetch_by_name(name), self.timeout, None)
        if summary is None or summary.thumbnail is None:
            return []
        return [
            Image.from_url(
                summary.thumbnail.source,
                summary.title,
                "Wikipedia",
                f"wikipedia-{slugify(summary.title)}",
                page_url=summary.url or None,
            )
        ]

    async def _from_breeds(
        self, name: str, scientific_name: str | None, queries: list[str], count: int
    ) -> list[Image]:
        animal_type = detect_animal_type(name)
        if animal_type is AnimalType.DOG:
            source = self.dog_api
        elif animal_type is AnimalType.CAT:
            source = self.cat_api
        else:
            return []
        if not source.is_configured:
            return []
        return await with_timeout(source.fetch_images(count), self.timeout, [])
