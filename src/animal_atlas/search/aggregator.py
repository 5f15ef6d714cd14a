"""Merge, deduplicate and rank search results from several sources."""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable, Iterable

from animal_atlas.config.models import ContentConfig
from animal_atlas.resolvers.facts import FactsResolver
from animal_atlas.sources.gbif import GbifSource
from animal_atlas.sources.inaturalist import INaturalistSource, taxon_to_record
from animal_atlas.sources.models import GbifSpecies, MarineTaxon
from animal_atlas.sources.worms import WormsSource
from animal_atlas.species.classifier import is_animal
from animal_atlas.species.models import AnimalRecord, Taxonomy
from animal_atlas.utils.concurrency import all_settled

logger = logging.getLogger(__name__)

CATEGORY_CLASSES = {
    "mammal": "mammalia",
    "bird": "aves",
    "reptile": "reptilia",
    "amphibian": "amphibia",
}

FISH_CLASSES = frozenset({"actinopterygii", "chondrichthyes", "elasmobranchii", "sarcopterygii"})

HABITAT_KEYWORDS = {
    "land": ("forest", "grassland", "desert", "mountain", "jungle", "savanna"),
    "ocean": ("ocean", "sea", "marine", "reef"),
    "freshwater": ("river", "lake", "stream", "pond", "wetland"),
    "air": ("flying", "aerial"),
}


def gbif_to_record(species: GbifSpecies) -> AnimalRecord:
    return AnimalRecord(
        name=species.vernacular_name or species.canonical_name or species.scientific_name,
        taxonomy=Taxonomy(
            kingdom=species.kingdom,
            phylum=species.phylum,
            class_=species.class_,
            order=species.order,
            family=species.family,
            genus=species.genus,
            scientific_name=species.canonical_name or species.scientific_name,
        ),
    )


def marine_to_record(taxon: MarineTaxon) -> AnimalRecord:
    return AnimalRecord(
        name=taxon.scientific_name,
        taxonomy=Taxonomy(
            kingdom=taxon.kingdom,
            phylum=taxon.phylum,
            class_=taxon.class_,
            order=taxon.order,
            family=taxon.family,
            genus=taxon.genus,
            scientific_name=taxon.scientific_name,
        ),
        characteristics={"habitat": ", ".join(taxon.habitats)} if taxon.habitats else {},
    )


def dedup_key(record: AnimalRecord) -> str:
    return record.name.strip().lower() or record.scientific_name.strip().lower()


def match_rank(record: AnimalRecord, query: str) -> int:
    """0 for an exact match on either name, 1 for a prefix, 2 for a substring, 3 otherwise."""
    wanted = query.strip().lower()
    names = [n for n in (record.name.strip().lower(), record.scientific_name.strip().lower()) if n]
    if wanted in names:
        return 0
    if any(n.startswith(wanted) for n in names):
        return 1
    if any(wanted in n for n in names):
        return 2
    return 3


def merge_results(batches: Iterable[Iterable[AnimalRecord]], query: str) -> list[AnimalRecord]:
    """Drop non-animals, deduplicate in batch order (first seen wins), then rank.

    The sort is stable, so records of equal rank keep their source order.
    """
    seen: set[str] = set()
    merged = []
    for batch in batches:
        for record in batch:
            key = dedup_key(record)
            if not key or key in seen or not is_animal(record):
                continue
            seen.add(key)
            merged.append(record)
    return sorted(merged, key=lambda record: match_rank(record, query))


def filter_by_category(records: list[AnimalRecord], category: str) -> list[AnimalRecord]:
    """Keep records whose class matches a category; "all" or blank keeps everything."""
    wanted = (category or "").strip().lower()
    if wanted in ("", "all"):
        return list(records)

    def matches(record: AnimalRecord) -> bool:
        class_name = record.taxonomy.class_.lower()
        if wanted == "fish":
            return class_name in FISH_CLASSES or "fish" in record.taxonomy.order.lower()
        if wanted in CATEGORY_CLASSES:
            return class_name == CATEGORY_CLASSES[wanted]
        return True

    return [record for record in records if matches(record)]


def filter_by_habitat(records: list[AnimalRecord], habitat: str) -> list[AnimalRecord]:
    """Keep records whose habitat characteristic mentions one of the habitat's keywords."""
    wanted = (habitat or "").strip().lower()
    keywords = HABITAT_KEYWORDS.get(wanted)
    if keywords is None:
        return list(records)
    return [
        record
        for record in records
        if any(k in record.characteristics.get("habitat", "").lower() for k in keywords)
    ]


class SearchAggregator:
    """Search several sources at once and return one ranked list."""

    def __init__(
        self,
        facts: FactsResolver,
        inaturalist: INaturalistSource,
        gbif: GbifSource,
        worms: WormsSource,
        content: ContentConfig | None = None,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.facts = facts
        self.inaturalist = inaturalist
        self.gbif = gbif
        self.worms = worms
        self.content = content or ContentConfig()
        self.rng = rng or random.Random()
        self._sleep = sleep

    async def search(self, query: str, limit: int = 20) -> list[AnimalRecord]:
        """Ranked, deduplicated animal records for a free-text query.

        Args:
            query: Common or scientific name fragment
            limit: Maximum number of results

        Returns:
            Records, exact matches first
        """
        if not query or not query.strip():
            return []
        query = query.strip()

        settled = await all_settled(
            {
                "facts": self.facts.resolve_facts(query),
                "inaturalist": self._inaturalist(query),
                "gbif": self._gbif(query),
                "worms": self._worms(query),
            }
        )
        for branch, error in settled.errors.items():
            logger.warning(
                "Search branch failed",
                extra={"branch": branch, "query": query, "error": type(error).__name__},
            )

        batches = [settled.get(branch, []) for branch in ("facts", "inaturalist", "gbif", "worms")]
        return merge_results(batches, query)[:limit]

    async def _inaturalist(self, query: str) -> list[AnimalRecord]:
        return [taxon_to_record(taxon) for taxon in await self.inaturalist.search_taxa(query)]

    async def _gbif(self, query: str) -> list[AnimalRecord]:
        return [gbif_to_record(species) for species in await self.gbif.suggest(query)]

    async def _worms(self, query: str) -> list[AnimalRecord]:
        taxa = await self.worms.search_vernacular(query)
        return [
            marine_to_record(taxon)
            for taxon in taxa
            if (taxon.kingdom or "").strip().lower() == "animalia"
        ]

    async def get_random_record(self) -> AnimalRecord | None:
        """A random animal from the curated list, retrying names the sources don't know.

        Returns:
            The first record that resolves and passes the classifier, or None
        """
        for _ in range(max(1, self.content.random_max_attempts)):
            name = self.rng.choice(self.content.random_animals)
            resolved = await self.facts.resolve_facts(name)
            records = [record for record in resolved if is_animal(record)]
            if records:
                return records[0]
            logger.debug("Random pick unresolved, retrying", extra={"animal": name})
        return None

    async def batch_fetch(self, names: list[str]) -> list[AnimalRecord]:
        """First facts record for each name, fetched one at a time.

        A fixed delay between calls keeps the facts sources under their rate
        limits. Names with no result are skipped.
        """
        results = []
        for index, name in enumerate(names):
            if index:
                await self._sleep(self.content.batch_delay_seconds)
            try:
                records = await self.facts.resolve_facts(name)
            except Exception as e:
                logger.warning(
                    "Batch lookup failed", extra={"animal": name, "error": type(e).__name__}
                )
                continue
            if records:
                results.append(records[0])
        return results

    def filter_by_category(self, records: list[AnimalRecord], category: str) -> list[AnimalRecord]:
        return filter_by_category(records, category)

    def filter_by_habitat(self, records: list[AnimalRecord], habitat: str) -> list[AnimalRecord]:
        return filter_by_habitat(records, habitat)
