"""Tests for the core animal record models."""

from animal_atlas.sources.models import WikipediaSummary
from animal_atlas.species.models import AnimalRecord, EnrichedAnimalRecord, Image, Taxonomy


class TestAnimalRecord:
    """Test AnimalRecord normalization."""

    def test_class_alias(self):
        """Should accept the upstream "class" key and dump it back by alias."""
        record = AnimalRecord.model_validate(
            {"name": "Lion", "taxonomy": {"class": "Mammalia", "genus": None}}
        )

        assert record.taxonomy.class_ == "Mammalia"
        assert record.taxonomy.genus == ""
        assert record.model_dump(by_alias=True)["taxonomy"]["class"] == "Mammalia"

    def test_characteristics_stringified(self):
        """Should coerce characteristic values to strings and drop None."""
        record = AnimalRecord(
            name="Lion", characteristics={"weight": 190, "speed": None, "diet": "Carnivore"}
        )
        assert record.characteristics == {"weight": "190", "diet": "Carnivore"}

    def test_blank_locations_dropped(self):
        """Should drop empty locations."""
        assert AnimalRecord(name="Lion", locations=["Africa", "", None]).locations == ["Africa"]


class TestImage:
    """Test Image construction."""

    def test_from_url(self):
        """Should use one URL for every size."""
        image = Image.from_url("https://x/y.jpg", "Lion", "The Dog API", "id-1")

        assert image.urls.thumb == image.urls.raw == "https://x/y.jpg"
        assert image.attribution.username == "thedogapi"


class TestEnrichedAnimalRecord:
    """Test EnrichedAnimalRecord."""

    def test_defaults(self):
        """Should default every enrichment to None except images."""
        record = EnrichedAnimalRecord(id="lion-1", name="Lion")

        assert record.images == []
        assert record.wikipedia is None
        assert record.bird_sightings is None

    def test_with_facts(self):
        """Should replace taxonomy, locations and characteristics only."""
        enriched = EnrichedAnimalRecord(
            id="lion-1",
            name="Lion",
            wikipedia=WikipediaSummary(title="Lion"),
        )
        facts = AnimalRecord(
            name="African Lion",
            taxonomy=Taxonomy(scientific_name="Panthera leo"),
            locations=["Africa"],
            characteristics={"diet": "Carnivore"},
        )

        merged = enriched.with_facts(facts)

        assert merged.name == "Lion"
        assert merged.scientific_name == "Panthera leo"
        assert merged.locations == ["Africa"]
        assert merged.wikipedia.title == "Lion"
        assert enriched.locations == []
