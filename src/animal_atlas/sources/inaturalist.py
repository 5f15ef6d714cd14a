"""iNaturalist taxa, research-grade observations and observation photos."""

from typing import Any

from animal_atlas.sources.base import SourceAdapter
from animal_atlas.species.models import AnimalRecord, Image, ImageAttribution, ImageUrls, Taxonomy
from animal_atlas.utils.cache import cached

# Class names searched by taxon id instead of free text, which matches far
# more species than a text query for "aves" would
TAXON_IDS = {
    "actinopterygii": 47178,
    "mammalia": 40151,
    "aves": 3,
    "reptilia": 26036,
    "amphibia": 20978,
    "animalia": 1,
}

# iconic_taxon_name -> (kingdom, phylum, class)
ICONIC_TAXA = {
    "Mammalia": ("Animalia", "Chordata", "Mammalia"),
    "Aves": ("Animalia", "Chordata", "Aves"),
    "Reptilia": ("Animalia", "Chordata", "Reptilia"),
    "Amphibia": ("Animalia", "Chordata", "Amphibia"),
    "Actinopterygii": ("Animalia", "Chordata", "Actinopterygii"),
    "Insecta": ("Animalia", "Arthropoda", "Insecta"),
    "Arachnida": ("Animalia", "Arthropoda", "Arachnida"),
    "Mollusca": ("Animalia", "Mollusca", ""),
    "Animalia": ("Animalia", "", ""),
    "Plantae": ("Plantae", "", ""),
    "Fungi": ("Fungi", "", ""),
}


def taxon_to_record(taxon: dict[str, Any]) -> AnimalRecord:
    """Convert a raw iNaturalist taxon into the canonical record shape.

    The taxa endpoint only carries the iconic group, so the ranks below it
    stay empty; the classifier still rejects plants via the kingdom.
    """
    iconic = taxon.get("iconic_taxon_name") or ""
    kingdom, phylum, class_name = ICONIC_TAXA.get(iconic, ("", "", ""))
    scientific_name = taxon.get("name") or ""
    return AnimalRecord(
        name=taxon.get("preferred_common_name") or scientific_name,
        taxonomy=Taxonomy(
            kingdom=kingdom,
            phylum=phylum,
            class_=class_name,
            genus=scientific_name.split()[0] if " " in scientific_name else "",
            scientific_name=scientific_name,
        ),
    )


class INaturalistSource(SourceAdapter):
    """Community observations. No key required; animals only."""

    name = "inaturalist"
    default_base_url = "https://api.inaturalist.org/v1"
    probe_name = "Lion"

    async def _search_taxa(self, query: str, page: int, per_page: int) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"rank": "species", "per_page": per_page, "page": page}
        taxon_id = TAXON_IDS.get(query.strip().lower())
        if taxon_id is not None:
            params["taxon_id"] = taxon_id
        else:
            params.update({"q": query, "iconic_taxa": "Animalia"})

        data = await self._get_json("taxa", params=params)
        return _results(data)

    @cached(ttl="animal_data", empty=list)
    async def search_taxa(
        self, query: str, page: int = 1, per_page: int = 30
    ) -> list[dict[str, Any]]:
        """Species-rank animal taxa matching query.

        Args:
            query: Free text, or a class name such as "Aves" to list that class
            page: 1-based results page
            per_page: Page size

        Returns:
            Raw taxon objects
        """
        return await self._search_taxa(query, page, per_page)

    @cached(ttl="animal_data")
    async def fetch_by_name(self, name: str) -> dict[str, Any] | None:
        """First species taxon matching a common name."""
        taxa = await self._search_taxa(name, 1, 30)
        return taxa[0] if taxa else None

    @cached(ttl="animal_data", empty=list)
    async def fetch_observations(self, taxon_name: str, per_page: int = 30) -> list[dict[str, Any]]:
        """Research-grade observations with photos for a taxon."""
        data = await self._get_json(
            "observations",
            params={
                "taxon_name": taxon_name,
                "iconic_taxa": "Animalia",
                "quality_grade": "research",
                "photos": "true",
                "per_page": per_page,
            },
        )
        return _results(data)

    @cached(ttl="images", empty=list)
    async def fetch_photos(self, taxon_name: str, count: int = 10) -> list[Image]:
        """First photo of each observation, with size variants derived from its URL."""
        observations = await self.fetch_observations(taxon_name, count)
        return [image for image in map(observation_to_image, observations) if image][:count]


def observation_to_image(observation: dict[str, Any]) -> Image | None:
    """Build an Image from an observation's first photo, if it has one.

    Photo URLs point at the "square" rendition; the other sizes live at the
    same path with the size name swapped.
    """
    photos = observation.get("photos") or []
    if not photos or not isinstance(photos[0], dict) or not photos[0].get("url"):
        return None

    photo = photos[0]
    url = photo["url"]
    taxon = observation.get("taxon") or {}
    return Image(
        id=f"inat-{observation.get('id')}",
        urls=ImageUrls(
            raw=url.replace("square", "original"),
            full=url.replace("square", "large"),
            regular=url.replace("square", "medium"),
            small=url.replace("square", "small"),
            thumb=url,
        ),
        alt_description=taxon.get("preferred_common_name") or taxon.get("name"),
        attribution=ImageAttribution(
            name=photo.get("attribution") or "iNaturalist Community", username="inaturalist"
        ),
        page_url=f"https://www.inaturalist.org/observations/{observation.get('id')}",
    )


def _results(data: Any) -> list[dict[str, Any]]:  # noqa: ANN401
    if not isinstance(data, dict):
        return []
    return [item for item in data.get("results") or [] if isinstance(item, dict)]
