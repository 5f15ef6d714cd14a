"""AtlasService: the single entry point used by the CLI and by embedding code."""

import datetime
import logging
from collections.abc import Callable

import httpx

from animal_atlas.config.models import AtlasConfig
from animal_atlas.enrichment.orchestrator import EnrichmentOrchestrator
from animal_atlas.resolvers.facts import FactsResolver
from animal_atlas.resolvers.images import ImageResolver
from animal_atlas.search.aggregator import SearchAggregator
from animal_atlas.search.suggestions import RecentSearches, autocomplete, did_you_mean
from animal_atlas.sources.base import SourceAdapter, SourceDiagnosis, SourceStatus
from animal_atlas.species.models import AnimalRecord, EnrichedAnimalRecord, Image
from animal_atlas.utils.cache import Cache, CacheStats
from animal_atlas.utils.cache.cache import ANIMAL_OF_DAY_KEY
from animal_atlas.utils.concurrency import all_settled

logger = logging.getLogger(__name__)


class AtlasService:
    """Facade over the resolvers, the orchestrator and the search aggregator."""

    def __init__(
        self,
        config: AtlasConfig,
        cache: Cache,
        http_client: httpx.AsyncClient,
        facts: FactsResolver,
        images: ImageResolver,
        orchestrator: EnrichmentOrchestrator,
        aggregator: SearchAggregator,
        recent_searches: RecentSearches,
        sources: list[SourceAdapter],
        today: Callable[[], datetime.date] = datetime.date.today,
    ):
        self.config = config
        self.cache = cache
        self.http_client = http_client
        self.facts = facts
        self.images = images
        self.orchestrator = orchestrator
        self.aggregator = aggregator
        self.recent_searches = recent_searches
        self.sources = sources
        self._today = today

    async def resolve_facts(self, name: str) -> list[AnimalRecord]:
        return await self.facts.resolve_facts(name)

    async def resolve_images(
        self, name: str, scientific_name: str | None = None, count: int = 6
    ) -> list[Image]:
        return await self.images.resolve_images(name, scientific_name, count)

    async def enrich(self, name: str, scientific_name: str = "") -> EnrichedAnimalRecord | None:
        return await self.orchestrator.enrich(name, scientific_name)

    async def search(self, query: str, limit: int = 20) -> list[AnimalRecord]:
        """Search every source and remember the query in the recent searches."""
        results = await self.aggregator.search(query, limit)
        if query and query.strip():
            self.recent_searches.add(query)
        return results

    async def get_random_record(self) -> AnimalRecord | None:
        return await self.aggregator.get_random_record()

    async def batch_fetch(self, names: list[str]) -> list[AnimalRecord]:
        return await self.aggregator.batch_fetch(names)

    async def get_animal(self, name: str) -> EnrichedAnimalRecord | None:
        """Facts plus enrichment for one animal.

        The facts lookup supplies the scientific name used by the enrichment
        and then overwrites the enriched record's taxonomy, locations and
        characteristics.

        Args:
            name: Common name

        Returns:
            The enriched record, or None when no facts source knows the animal
        """
        records = await self.facts.resolve_facts(name)
        if not records:
            return None

        facts = records[0]
        enriched = await self.orchestrator.enrich(facts.name, facts.scientific_name)
        if enriched is None:
            return None
        return enriched.with_facts(facts)

    async def get_animal_of_the_day(self) -> EnrichedAnimalRecord | None:
        """The same enriched animal for the whole day, a fresh pick the next.

        The pick is stored under a preserved key with a 24 hour TTL and the
        date it was made; a missing, expired or stale pointer triggers a new
        random pick.
        """
        today = self._today().isoformat()
        pointer = self.cache.get(ANIMAL_OF_DAY_KEY)
        if isinstance(pointer, dict) and pointer.get("date") == today and pointer.get("name"):
            logger.debug("Animal of the day from cache", extra={"animal": pointer["name"]})
            animal = await self.get_animal(pointer["name"])
            if animal is not None:
                return animal

        record = await self.aggregator.get_random_record()
        if record is None:
            logger.warning("Could not pick an animal of the day")
            return None

        self.cache.set(
            ANIMAL_OF_DAY_KEY,
            {"name": record.name, "scientific_name": record.scientific_name, "date": today},
            self.config.ttl.animal_of_day_ms,
        )
        logger.info("Picked animal of the day", extra={"animal": record.name, "date": today})
        enriched = await self.orchestrator.enrich(record.name, record.scientific_name)
        return enriched.with_facts(record) if enriched is not None else None

    def did_you_mean(self, term: str) -> str | None:
        """Closest popular or recently searched name to a likely typo."""
        candidates = [*self.config.content.popular_animals, *self.recent_searches.get()]
        return did_you_mean(term, candidates)

    def autocomplete(self, term: str, limit: int = 5) -> list[str]:
        sources = [self.recent_searches.get(), self.config.content.popular_animals]
        return autocomplete(term, sources, limit)

    def cache_stats(self) -> CacheStats:
        return self.cache.stats()

    def clear_cache(self, prefix: str | None = None) -> int:
        """Remove cache entries, all of them or only those under a key prefix.

        Preserved keys (preferences, recent searches, the animal of the day)
        are never removed.

        Returns:
            Number of entries removed
        """
        if prefix:
            return self.cache.evict_by_prefix(prefix)
        return self.cache.evict_all()

    async def diagnose_sources(self, name: str | None = None) -> list[SourceDiagnosis]:
        """Probe every source concurrently, bypassing the cache.

        Args:
            name: Name to look up; each source's own probe name when omitted

        Returns:
            One diagnosis per source, in registration order
        """
        settled = await all_settled({source.name: source.diagnose(name) for source in self.sources})
        diagnoses = []
        for source in self.sources:
            error = settled.errors.get(source.name)
            if error is None:
                diagnoses.append(settled.values[source.name])
            else:
                diagnoses.append(
                    SourceDiagnosis(
                        source=source.name,
                        status=SourceStatus.ERROR,
                        error_type="unknown",
                        detail=type(error).__name__,
                    )
                )
        return diagnoses

    async def aclose(self) -> None:
        await self.http_client.aclose()
