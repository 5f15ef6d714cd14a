"""WoRMS, the World Register of Marine Species.

WoRMS answers "nothing found" with an empty 204 body rather than a 404, and
wraps name matches in one list per requested name.
"""

from urllib.parse import quote

from pydantic import ValidationError

from animal_atlas.sources.base import SourceAdapter
from animal_atlas.sources.models import MarineDistribution, MarineTaxon, VernacularName
from animal_atlas.utils.cache import cached


class WormsSource(SourceAdapter):
    name = "worms"
    default_base_url = "https://www.marinespecies.org/rest"
    probe_name = "Orcinus orca"

    @cached(ttl="marine")
    async def fetch_by_name(self, scientific_name: str) -> MarineTaxon | None:
        """Exact-match taxon record for a scientific name, including non-marine taxa."""
        data = await self._get_json(
            "AphiaRecordsByMatchNames",
            params={"scientificnames[]": scientific_name, "marine_only": "false"},
        )
        if not isinstance(data, list) or not data or not isinstance(data[0], list) or not data[0]:
            return None
        return MarineTaxon.model_validate(data[0][0])

    @cached(ttl="marine", empty=list)
    async def search_vernacular(self, common_name: str) -> list[MarineTaxon]:
        """Accepted taxa whose vernacular names contain common_name, at most ten."""
        data = await self._get_json(
            f"AphiaRecordsByVernacular/{quote(common_name.strip(), safe='')}",
            params={"like": "true", "offset": 1},
        )
        if not isinstance(data, list):
            return []

        taxa = []
        for item in data:
            if not isinstance(item, dict) or item.get("status") != "accepted":
                continue
            try:
                taxa.append(MarineTaxon.model_validate(item))
            except ValidationError:
                continue
        return taxa[:10]

    @cached(ttl="marine", empty=list)
    async def fetch_distribution(self, aphia_id: int) -> list[MarineDistribution]:
        """Recorded localities for a taxon."""
        data = await self._get_json(f"AphiaDistributionsByAphiaID/{aphia_id}")
        if not isinstance(data, list):
            return []
        return [
            MarineDistribution.model_validate(item)
            for item in data
            if isinstance(item, dict) and item.get("locality")
        ]

    @cached(ttl="marine", empty=list)
    async def fetch_vernacular_names(self, aphia_id: int) -> list[VernacularName]:
        """Common names for a taxon in every language WoRMS records."""
        data = await self._get_json(f"AphiaVernacularsByAphiaID/{aphia_id}")
        if not isinstance(data, list):
            return []
        return [
            VernacularName.model_validate(item)
            for item in data
            if isinstance(item, dict) and item.get("vernacular")
        ]
