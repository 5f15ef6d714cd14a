"""Tests for the iNaturalist adapter."""

import httpx
import pytest

from animal_atlas.sources.inaturalist import (
    INaturalistSource,
    observation_to_image,
    taxon_to_record,
)

LION_TAXON = {
    "id": 41964,
    "name": "Panthera leo",
    "preferred_common_name": "Lion",
    "iconic_taxon_name": "Mammalia",
    "rank": "species",
}

OBSERVATION = {
    "id": 1234,
    "taxon": LION_TAXON,
    "photos": [
        {
            "url": "https://static.inaturalist.org/photos/1/square.jpg",
            "attribution": "(c) Jane Doe, some rights reserved (CC BY)",
        }
    ],
}


class TestTaxonToRecord:
    """Test taxon normalization."""

    def test_common_name_and_genus(self):
        """Should prefer the common name and derive the genus."""
        record = taxon_to_record(LION_TAXON)

        assert record.name == "Lion"
        assert record.taxonomy.class_ == "Mammalia"
        assert record.taxonomy.phylum == "Chordata"
        assert record.taxonomy.genus == "Panthera"
        assert record.scientific_name == "Panthera leo"

    def test_plant_kingdom(self):
        """Should carry the plant kingdom so the classifier can reject it."""
        record = taxon_to_record({"name": "Taraxacum officinale", "iconic_taxon_name": "Plantae"})

        assert record.name == "Taraxacum officinale"
        assert record.taxonomy.kingdom == "Plantae"


class TestObservationToImage:
    """Test photo normalization."""

    def test_size_variants(self):
        """Should derive every size from the square URL."""
        image = observation_to_image(OBSERVATION)

        assert image.id == "inat-1234"
        assert image.urls.raw.endswith("/original.jpg")
        assert image.urls.full.endswith("/large.jpg")
        assert image.urls.regular.endswith("/medium.jpg")
        assert image.urls.small.endswith("/small.jpg")
        assert image.urls.thumb.endswith("/square.jpg")
        assert image.alt_description == "Lion"
        assert image.attribution.username == "inaturalist"
        assert image.page_url == "https://www.inaturalist.org/observations/1234"

    def test_without_photos(self):
        """Should skip observations without photos."""
        assert observation_to_image({"id": 1, "photos": []}) is None


class TestINaturalistSource:
    """Test INaturalistSource."""

    @pytest.mark.asyncio
    async def test_search_taxa_free_text(self, cache, http_client_factory):
        """Should restrict free-text searches to animal species."""
        client, transport = http_client_factory(
            lambda request: httpx.Response(200, json={"results": [LION_TAXON]})
        )
        source = INaturalistSource(cache, client)

        taxa = await source.search_taxa("lion")

        assert taxa == [LION_TAXON]
        params = transport.requests[0].url.params
        assert params["q"] == "lion"
        assert params["iconic_taxa"] == "Animalia"
        assert params["rank"] == "species"

    @pytest.mark.asyncio
    async def test_search_taxa_by_class(self, cache, http_client_factory):
        """Should query class names by taxon id."""
        client, transport = http_client_factory(
            lambda request: httpx.Response(200, json={"results": []})
        )
        source = INaturalistSource(cache, client)

        await source.search_taxa("Aves")

        params = transport.requests[0].url.params
        assert params["taxon_id"] == "3"
        assert "q" not in params

    @pytest.mark.asyncio
    async def test_fetch_by_name(self, cache, http_client_factory):
        """Should return the first matching taxon or None."""
        client, _ = http_client_factory(
            lambda request: httpx.Response(200, json={"results": [LION_TAXON, {"id": 2}]})
        )
        assert await INaturalistSource(cache, client).fetch_by_name("Lion") == LION_TAXON

        client, _ = http_client_factory(lambda request: httpx.Response(200, json={"results": []}))
        assert await INaturalistSource(cache, client).fetch_by_name("Nothing") is None

    @pytest.mark.asyncio
    async def test_fetch_photos(self, cache, http_client_factory):
        """Should request research-grade observations and keep those with photos."""
        payload = {"results": [OBSERVATION, {"id": 99, "photos": []}]}
        client, transport = http_client_factory(lambda request: httpx.Response(200, json=payload))
        source = INaturalistSource(cache, client)

        images = await source.fetch_photos("Panthera leo", count=3)

        assert [image.id for image in images] == ["inat-1234"]
        params = transport.requests[0].url.params
        assert params["quality_grade"] == "research"
        assert params["taxon_name"] == "Panthera leo"
        assert params["per_page"] == "3"

    @pytest.mark.asyncio
    async def test_server_error_is_empty(self, cache, http_client_factory):
        """Should return empty results when iNaturalist fails."""
        client, _ = http_client_factory(lambda request: httpx.Response(500))
        source = INaturalistSource(cache, client)

        assert await source.search_taxa("lion") == []
        assert await source.fetch_photos("lion") == []
