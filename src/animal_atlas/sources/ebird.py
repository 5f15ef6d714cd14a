"""eBird recent sightings.

Observation endpoints are keyed by eBird's own species codes ("amerob" for
American Robin), so names are first resolved through the eBird taxonomy.
"""

from typing import Any

from pydantic import ValidationError

from animal_atlas.sources.base import SourceAdapter
from animal_atlas.sources.models import BirdSighting, EBirdTaxon
from animal_atlas.utils.cache import cached


def _sightings(data: Any) -> list[BirdSighting]:  # noqa: ANN401
    if not isinstance(data, list):
        return []
    sightings = []
    for item in data:
        if not isinstance(item, dict):
            continue
        try:
            sightings.append(BirdSighting.model_validate(item))
        except ValidationError:
            continue
    return sightings


def observation_totals(sightings: list[BirdSighting]) -> dict[str, Any]:
    """Individuals counted per species and sightings per location.

    A sighting without a count counts as one bird.
    """
    species: dict[str, int] = {}
    locations: dict[str, int] = {}
    total = 0
    for sighting in sightings:
        count = sighting.how_many or 1
        species[sighting.common_name] = species.get(sighting.common_name, 0) + count
        locations[sighting.location_name] = locations.get(sighting.location_name, 0) + 1
        total += count
    return {"species": species, "locations": locations, "total_count": total}


class EBirdSource(SourceAdapter):
    name = "ebird"
    default_base_url = "https://api.ebird.org/v2"
    requires_key = True
    probe_name = "American Robin"

    def __init__(self, *args: Any, region: str = "US", back_days: int = 14, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.region = region
        self.back_days = back_days

    def auth_headers(self) -> dict[str, str]:
        return {"X-eBirdApiToken": self.api_key}

    async def _taxonomy(self) -> list[dict[str, Any]]:
        # Several megabytes; deliberately not cached, only lookups derived from it are
        data = await self._get_json("ref/taxonomy/ebird", params={"fmt": "json", "locale": "en"})
        if not isinstance(data, list):
            return []
        return [item for item in data if isinstance(item, dict) and item.get("speciesCode")]

    @cached(ttl="reference", empty=list)
    async def search_species(self, query: str, limit: int = 20) -> list[EBirdTaxon]:
        """Taxa whose common or scientific name contains query."""
        wanted = query.strip().lower()
        matches = [
            EBirdTaxon.model_validate(item)
            for item in await self._taxonomy()
            if wanted in (item.get("comName") or "").lower()
            or wanted in (item.get("sciName") or "").lower()
        ]
        return matches[:limit]

    @cached(ttl="reference", empty=str, cache_empty=1.0)
    async def resolve_species_code(self, name: str) -> str:
        """eBird species code for a common or scientific name, "" when none matches.

        An exact name match is preferred over the first substring match. Misses
        are cached too, so a non-bird name downloads the taxonomy once.
        """
        wanted = name.strip().lower()
        if not wanted:
            return ""

        first_partial = None
        for item in await self._taxonomy():
            common = (item.get("comName") or "").lower()
            scientific = (item.get("sciName") or "").lower()
            if wanted in (common, scientific):
                return item["speciesCode"]
            if first_partial is None and (wanted in common or wanted in scientific):
                first_partial = item["speciesCode"]
        return first_partial or ""

    @cached(ttl="bird_sightings", empty=list)
    async def fetch_recent_observations(
        self, species_code: str, region: str = "US", days: int = 14
    ) -> list[BirdSighting]:
        """Sightings of a species in a region over the last days (1-30)."""
        data = await self._get_json(
            f"data/obs/{region}/recent/{species_code}", params={"back": days}
        )
        return _sightings(data)

    @cached(ttl="bird_sightings", empty=list)
    async def fetch_notable_observations(
        self, region: str = "US", days: int = 14
    ) -> list[BirdSighting]:
        """Rare or unusual sightings reported in a region."""
        data = await self._get_json(f"data/obs/{region}/recent/notable", params={"back": days})
        return _sightings(data)

    async def fetch_by_name(self, name: str) -> list[BirdSighting]:
        """Recent sightings in the configured region for a bird name."""
        code = await self.resolve_species_code(name)
        if not code:
            return []
        return await self.fetch_recent_observations(code, self.region, self.back_days)

    async def _probe(self, name: str) -> list[BirdSighting]:
        code = await type(self).resolve_species_code.__wrapped__(self, name)
        if not code:
            return []
        return await type(self).fetch_recent_observations.__wrapped__(
            self, code, self.region, self.back_days
        )
