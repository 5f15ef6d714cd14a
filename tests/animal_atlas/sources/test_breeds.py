"""Tests for The Dog API and The Cat API adapters."""

import httpx
import pytest

from animal_atlas.sources.breeds import CatApiSource, DogApiSource

BEAGLE = {
    "id": 24,
    "name": "Beagle",
    "temperament": "Amiable, Even Tempered, Excitable",
    "life_span": "13 - 15 years",
    "bred_for": "Rabbit, hare hunting",
    "breed_group": "Hound",
    "origin": "",
}


class TestDogApiSource:
    """Test DogApiSource."""

    @pytest.mark.asyncio
    async def test_exact_match_only(self, cache, http_client_factory):
        """Should reject fuzzy matches whose name differs."""
        payload = [{"id": 146, "name": "Rhodesian Ridgeback"}]
        client, _ = http_client_factory(lambda request: httpx.Response(200, json=payload))
        source = DogApiSource(cache, client, api_key="k")

        assert await source.fetch_by_name("Lion") == []

    @pytest.mark.asyncio
    async def test_breed_to_record(self, cache, http_client_factory):
        """Should map a breed onto the canine taxonomy."""
        payload = [{"id": 23, "name": "Basset Hound"}, BEAGLE]
        client, transport = http_client_factory(lambda request: httpx.Response(200, json=payload))
        source = DogApiSource(cache, client, api_key="k")

        records = await source.fetch_by_name("beagle")

        assert len(records) == 1
        record = records[0]
        assert record.name == "Beagle"
        assert record.taxonomy.scientific_name == "Canis lupus familiaris"
        assert record.taxonomy.family == "Canidae"
        assert record.locations == []
        assert record.characteristics["group"] == "Hound"
        assert "description" not in record.characteristics
        assert transport.requests[0].headers["x-api-key"] == "k"

    @pytest.mark.asyncio
    async def test_fetch_images(self, cache, http_client_factory):
        """Should normalize breed photos, labelled by breed when known."""
        payload = [
            {"id": "abc", "url": "https://cdn2.thedogapi.com/abc.jpg", "breeds": [BEAGLE]},
            {"id": "def", "url": "https://cdn2.thedogapi.com/def.jpg", "breeds": []},
            {"id": "ghi"},
        ]
        client, transport = http_client_factory(lambda request: httpx.Response(200, json=payload))
        source = DogApiSource(cache, client, api_key="k")

        images = await source.fetch_images(count=2)

        assert [image.id for image in images] == ["abc", "def"]
        assert images[0].alt_description == "Beagle"
        assert images[1].alt_description == "Dog"
        assert images[0].attribution.name == "The Dog API"
        assert transport.requests[0].url.params["limit"] == "2"


class TestCatApiSource:
    """Test CatApiSource."""

    @pytest.mark.asyncio
    async def test_feline_taxonomy(self, cache, http_client_factory):
        """Should map cat breeds onto the feline taxonomy."""
        payload = [{"id": "siam", "name": "Siamese", "origin": "Thailand", "description": "Vocal"}]
        client, transport = http_client_factory(lambda request: httpx.Response(200, json=payload))
        source = CatApiSource(cache, client, api_key="k")

        records = await source.fetch_by_name("Siamese")

        assert records[0].taxonomy.scientific_name == "Felis catus"
        assert records[0].locations == ["Thailand"]
        assert records[0].characteristics == {"description": "Vocal"}
        assert transport.requests[0].url.host == "api.thecatapi.com"

    @pytest.mark.asyncio
    async def test_without_key(self, cache, http_client_factory):
        """Should do nothing when unconfigured."""
        client, transport = http_client_factory(lambda request: httpx.Response(200, json=[]))
        source = CatApiSource(cache, client)

        assert await source.fetch_images() == []
        assert await source.search_breeds("Siamese") == []
        assert transport.requests == []
