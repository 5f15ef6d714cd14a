"""Facts resolution: the first source that knows the animal wins."""

import logging

from pydantic import TypeAdapter, ValidationError

from animal_atlas.config.models import CacheTtlConfig
from animal_atlas.sources.api_ninjas import ApiNinjasSource
from animal_atlas.sources.breeds import CatApiSource, DogApiSource
from animal_atlas.sources.inaturalist import INaturalistSource, taxon_to_record
from animal_atlas.species.classifier import is_animal
from animal_atlas.species.models import AnimalRecord
from animal_atlas.utils.cache import Cache

logger = logging.getLogger(__name__)

_records = TypeAdapter(list[AnimalRecord])


class FactsResolver:
    """Resolve an animal name to canonical records through a fixed source order.

    Stages run strictly one after another and stop at the first one yielding
    an accepted record: API Ninjas, The Dog API, The Cat API, iNaturalist.
    """

    def __init__(
        self,
        cache: Cache,
        api_ninjas: ApiNinjasSource,
        dog_api: DogApiSource,
        cat_api: CatApiSource,
        inaturalist: INaturalistSource,
        ttl: CacheTtlConfig | None = None,
    ):
        self.cache = cache
        self.api_ninjas = api_ninjas
        self.dog_api = dog_api
        self.cat_api = cat_api
        self.inaturalist = inaturalist
        self.ttl = ttl or CacheTtlConfig()

    @staticmethod
    def cache_key(name: str) -> str:
        return f"animal_data_{name.strip().lower()}"

    async def resolve_facts(self, name: str) -> list[AnimalRecord]:
        """Canonical records for name, or [] when no source knows it.

        A hit from any stage is cached for the facts TTL; a total miss is not
        cached so a later call can retry every source.

        Args:
            name: Common name, e.g. "Red Fox"

        Returns:
            Records that passed the not-a-plant classifier
        """
        if not name or not name.strip():
            return []

        key = self.cache_key(name)
        hit = self.cache.get(key)
        if hit is not None:
            try:
                return _records.validate_python(hit)
            except ValidationError:
                self.cache.delete(key)

        for stage, lookup in (
            ("api_ninjas", self._from_api_ninjas),
            ("the_dog_api", self._from_dog_api),
            ("the_cat_api", self._from_cat_api),
            ("inaturalist", self._from_inaturalist),
        ):
            records = await lookup(name)
            if records:
                logger.debug("Facts resolved", extra={"animal": name, "stage": stage})
                self.cache.set(key, _records.dump_python(records, mode="json"), self.ttl.facts_ms)
                return records

        logger.debug("No facts found", extra={"animal": name})
        return []

    async def _from_api_ninjas(self, name: str) -> list[AnimalRecord]:
        records = await self.api_ninjas.fetch_by_name(name)
        return [record for record in records if is_animal(record)]

    async def _from_dog_api(self, name: str) -> list[AnimalRecord]:
        if not self.dog_api.is_configured:
            return []
        return await self.dog_api.fetch_by_name(name)

    async def _from_cat_api(self, name: str) -> list[AnimalRecord]:
        if not self.cat_api.is_configured:
            return []
        return await self.cat_api.fetch_by_name(name)

    async def _from_inaturalist(self, name: str) -> list[AnimalRecord]:
        for taxon in await self.inaturalist.search_taxa(name):
            record = taxon_to_record(taxon)
            if is_animal(record):
                return [record]
        return []
