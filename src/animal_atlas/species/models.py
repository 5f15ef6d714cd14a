"""Core animal record models shared by resolvers, orchestrator and search."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from animal_atlas.sources.models import (
    BirdSighting,
    ConservationStatus,
    GbifSpecies,
    MarineDistribution,
    MarineTaxon,
    MigrationPoint,
    MigrationStudy,
    Occurrence,
    SoundRecording,
    VernacularName,
    WikipediaSummary,
)


class Taxonomy(BaseModel):
    """Linnaean classification. Every rank is optional and defaults to empty."""

    model_config = ConfigDict(populate_by_name=True)

    kingdom: str = ""
    phylum: str = ""
    class_: str = Field(default="", alias="class")
    order: str = ""
    family: str = ""
    genus: str = ""
    scientific_name: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:  # noqa: ANN401
        return "" if v is None else v


class AnimalRecord(BaseModel):
    """Canonical minimal animal shape every facts source is normalized into."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    taxonomy: Taxonomy = Field(default_factory=Taxonomy)
    locations: list[str] = Field(default_factory=list)
    characteristics: dict[str, str] = Field(default_factory=dict)

    @field_validator("characteristics", mode="before")
    @classmethod
    def stringify_characteristics(cls, v: Any) -> Any:  # noqa: ANN401
        """Sources report some characteristics as numbers; keep every value a string."""
        if isinstance(v, dict):
            return {str(k): str(val) for k, val in v.items() if val is not None}
        return v

    @field_validator("locations", mode="before")
    @classmethod
    def drop_blank_locations(cls, v: Any) -> Any:  # noqa: ANN401
        if isinstance(v, list):
            return [str(location) for location in v if location]
        return v

    @property
    def scientific_name(self) -> str:
        return self.taxonomy.scientific_name


class ImageUrls(BaseModel):
    raw: str
    full: str
    regular: str
    small: str
    thumb: str


class ImageAttribution(BaseModel):
    name: str
    username: str


class Image(BaseModel):
    """Normalized image with size variants and attribution."""

    id: str
    urls: ImageUrls
    alt_description: str | None = None
    attribution: ImageAttribution
    page_url: str | None = None

    @classmethod
    def from_url(
        cls,
        url: str,
        alt_description: str | None,
        source: str,
        image_id: str,
        page_url: str | None = None,
    ) -> "Image":
        """Build an image from a single URL, used for every size variant.

        Args:
            url: Image URL
            alt_description: Accessible description
            source: Human-readable source name, e.g. "Wikipedia"
            image_id: Identifier unique within the source
            page_url: Optional link back to the source page

        Returns:
            Normalized Image
        """
        return cls(
            id=image_id,
            urls=ImageUrls(raw=url, full=url, regular=url, small=url, thumb=url),
            alt_description=alt_description,
            attribution=ImageAttribution(
                name=source, username=source.lower().replace(" ", "")
            ),
            page_url=page_url,
        )


class EnrichedAnimalRecord(AnimalRecord):
    """An AnimalRecord plus every auxiliary lookup that succeeded.

    A field left as None means the lookup failed, found nothing, or was not
    applicable. ``images`` is always a list.
    """

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    id: str
    wikipedia: WikipediaSummary | None = None
    images: list[Image] = Field(default_factory=list)
    conservation_status: ConservationStatus | None = None
    gbif_species: GbifSpecies | None = None
    occurrences: list[Occurrence] | None = None
    sounds: list[SoundRecording] | None = None
    marine_taxon: MarineTaxon | None = None
    marine_distribution: list[MarineDistribution] | None = None
    marine_vernacular: list[VernacularName] | None = None
    migration_track: list[MigrationPoint] | None = None
    migration_study: MigrationStudy | None = None
    bird_sightings: list[BirdSighting] | None = None
    inat_taxon: dict[str, Any] | None = None
    inat_observations: list[dict[str, Any]] | None = None

    def with_facts(self, facts: AnimalRecord) -> "EnrichedAnimalRecord":
        """Copy of this record with the authoritative facts merged in.

        Args:
            facts: Record returned by the facts resolver

        Returns:
            New EnrichedAnimalRecord with taxonomy, locations and characteristics replaced
        """
        return self.model_copy(
            update={
                "taxonomy": facts.taxonomy.model_copy(),
                "locations": list(facts.locations),
                "characteristics": dict(facts.characteristics),
            }
        )
