"""The Dog API and The Cat API: breed databases with breed photos.

Both services share one API shape, so one adapter class covers both and the
subclasses only differ in base URL and the taxonomy every breed maps onto.
"""

from typing import Any, ClassVar

from animal_atlas.sources.base import SourceAdapter
from animal_atlas.sources.models import Breed
from animal_atlas.species.models import AnimalRecord, Image, Taxonomy
from animal_atlas.utils.cache import cached


class BreedSource(SourceAdapter):
    """Breed search, exact breed lookup and random breed photos."""

    requires_key = True
    taxonomy: ClassVar[Taxonomy] = Taxonomy()
    display_name: ClassVar[str] = ""
    animal_label: ClassVar[str] = ""

    def auth_headers(self) -> dict[str, str]:
        return {"x-api-key": self.api_key}

    async def _search(self, query: str) -> list[Breed]:
        data = await self._get_json("breeds/search", params={"q": query})
        if not isinstance(data, list):
            return []
        return [Breed.model_validate(item) for item in data if isinstance(item, dict)]

    @cached(ttl="animal_data", empty=list)
    async def search_breeds(self, query: str) -> list[Breed]:
        """Breeds whose name fuzzily matches query."""
        return await self._search(query)

    @cached(ttl="animal_data", empty=list)
    async def fetch_by_name(self, name: str) -> list[AnimalRecord]:
        """A breed whose name equals name (case-insensitive), as an AnimalRecord.

        The upstream search is fuzzy ("Lion" finds "Rhodesian Ridgeback" via
        its "lion dog" alias), so only an exact name match is accepted.
        """
        wanted = name.strip().lower()
        breeds = await self._search(name)
        breed = next((b for b in breeds if b.name.strip().lower() == wanted), None)
        if breed is None:
            return []
        return [self.breed_to_record(breed)]

    def breed_to_record(self, breed: Breed) -> AnimalRecord:
        """Map a breed onto the fixed taxonomy of its species."""
        characteristics = {
            "lifespan": breed.life_span,
            "temperament": breed.temperament,
            "bred_for": breed.bred_for,
            "group": breed.breed_group,
            "description": breed.description,
        }
        return AnimalRecord(
            name=breed.name,
            taxonomy=self.taxonomy.model_copy(),
            locations=[breed.origin] if breed.origin else [],
            characteristics={k: v for k, v in characteristics.items() if v},
        )

    @cached(ttl="images", empty=list)
    async def fetch_images(self, count: int = 6) -> list[Image]:
        """Random breed photos converted to the normalized image shape."""
        data = await self._get_json("images/search", params={"limit": count})
        return _parse_images(data, self.animal_label, self.display_name)[:count]


def _parse_images(data: Any, label: str, source: str) -> list[Image]:  # noqa: ANN401
    if not isinstance(data, list):
        return []

    images = []
    for item in data:
        if not isinstance(item, dict) or not item.get("url"):
            continue
        breeds = item.get("breeds") or []
        alt = breeds[0].get("name") if breeds and isinstance(breeds[0], dict) else label
        images.append(Image.from_url(item["url"], alt, source, str(item.get("id", item["url"]))))
    return images


class DogApiSource(BreedSource):
    name = "the_dog_api"
    default_base_url = "https://api.thedogapi.com/v1"
    probe_name = "Beagle"
    display_name = "The Dog API"
    animal_label = "Dog"
    taxonomy = Taxonomy(
        kingdom="Animalia",
        phylum="Chordata",
        class_="Mammalia",
        order="Carnivora",
        family="Canidae",
        genus="Canis",
        scientific_name="Canis lupus familiaris",
    )


class CatApiSource(BreedSource):
    name = "the_cat_api"
    default_base_url = "https://api.thecatapi.com/v1"
    probe_name = "Siamese"
    display_name = "The Cat API"
    animal_label = "Cat"
    taxonomy = Taxonomy(
        kingdom="Animalia",
        phylum="Chordata",
        class_="Mammalia",
        order="Carnivora",
        family="Felidae",
        genus="Felis",
        scientific_name="Felis catus",
    )
