"""GBIF species matching and occurrence records.

Detail endpoints take GBIF's numeric usage key, so every scientific-name
operation first resolves the key through ``match_species``.
"""

from typing import Any

from animal_atlas.sources.base import SourceAdapter
from animal_atlas.sources.models import GbifSpecies, Occurrence
from animal_atlas.utils.cache import cached


def _to_species(item: dict[str, Any], key: Any) -> GbifSpecies:  # noqa: ANN401
    scientific_name = item.get("scientificName") or ""
    return GbifSpecies(
        key=key,
        scientific_name=scientific_name,
        canonical_name=item.get("canonicalName") or scientific_name,
        vernacular_name=item.get("vernacularName"),
        rank=item.get("rank"),
        status=item.get("status"),
        kingdom=item.get("kingdom") or "",
        phylum=item.get("phylum") or "",
        class_=item.get("class") or "",
        order=item.get("order") or "",
        family=item.get("family") or "",
        genus=item.get("genus") or "",
        species=item.get("species"),
    )


class GbifSource(SourceAdapter):
    """Global Biodiversity Information Facility. No key; retries transient failures."""

    name = "gbif"
    default_base_url = "https://api.gbif.org/v1"
    retryable = True

    @cached(ttl="animal_data")
    async def match_species(self, scientific_name: str) -> GbifSpecies | None:
        """Best backbone match for a scientific name, None when GBIF has no usage key."""
        data = await self._get_json("species/match", params={"name": scientific_name})
        if not isinstance(data, dict) or not data.get("usageKey"):
            return None
        return _to_species(data, data["usageKey"])

    fetch_by_name = match_species

    @cached(ttl="animal_data", empty=list)
    async def fetch_occurrences(self, scientific_name: str, limit: int = 300) -> list[Occurrence]:
        """Georeferenced occurrence records for a species.

        Args:
            scientific_name: Scientific name to resolve
            limit: Maximum number of records requested

        Returns:
            Occurrences with coordinates; records missing either coordinate are dropped
        """
        species = await self.match_species(scientific_name)
        if species is None:
            return []

        data = await self._get_json(
            "occurrence/search",
            params={"taxonKey": species.key, "hasCoordinate": "true", "limit": limit},
        )
        results = data.get("results") if isinstance(data, dict) else None

        occurrences = []
        for item in results or []:
            if not isinstance(item, dict) or item.get("key") is None:
                continue
            latitude, longitude = item.get("decimalLatitude"), item.get("decimalLongitude")
            if latitude is None or longitude is None:
                continue
            occurrences.append(
                Occurrence(
                    key=item["key"],
                    scientific_name=item.get("scientificName") or "",
                    latitude=latitude,
                    longitude=longitude,
                    country=item.get("country"),
                    state_province=item.get("stateProvince"),
                    locality=item.get("locality"),
                    event_date=item.get("eventDate"),
                    basis_of_record=item.get("basisOfRecord"),
                )
            )
        return occurrences

    @cached(ttl="search", empty=list)
    async def suggest(self, query: str, limit: int = 10) -> list[GbifSpecies]:
        """Name suggestions, matching common and scientific names."""
        data = await self._get_json("species/suggest", params={"q": query, "limit": limit})
        if not isinstance(data, list):
            return []
        return [
            _to_species(item, item["key"])
            for item in data
            if isinstance(item, dict) and item.get("key") is not None
        ]

    @cached(ttl="reference", empty=list)
    async def fetch_vernacular_names(self, species_key: int) -> list[str]:
        """English common names recorded for a usage key."""
        data = await self._get_json(f"species/{species_key}/vernacularNames")
        results = data.get("results") if isinstance(data, dict) else None
        names = []
        for item in results or []:
            if not isinstance(item, dict) or item.get("language") != "eng":
                continue
            name = item.get("vernacularName")
            if name and name not in names:
                names.append(name)
        return names

    @cached(ttl="animal_data", empty=dict)
    async def fetch_occurrences_by_country(self, scientific_name: str) -> dict[str, int]:
        """Occurrence counts keyed by ISO country code, from the country facet."""
        species = await self.match_species(scientific_name)
        if species is None:
            return {}

        data = await self._get_json(
            "occurrence/search",
            params={"taxonKey": species.key, "facet": "country", "limit": 0},
        )
        facets = data.get("facets") if isinstance(data, dict) else None
        country = next(
            (f for f in facets or [] if isinstance(f, dict) and f.get("field") == "COUNTRY"),
            None,
        )
        if country is None:
            return {}
        return {
            count["name"]: int(count.get("count") or 0)
            for count in country.get("counts") or []
            if isinstance(count, dict) and count.get("name")
        }
