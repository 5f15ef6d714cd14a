"""Normalized payload models returned by the source adapters."""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SourceModel(BaseModel):
    """Base for payload models: tolerant of unknown fields, populated by name or alias."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class WikipediaThumbnail(SourceModel):
    source: str
    width: int | None = None
    height: int | None = None


class WikipediaSummary(SourceModel):
    title: str
    extract: str = ""
    description: str = ""
    thumbnail: WikipediaThumbnail | None = None
    page_id: int | None = None
    url: str = ""


class WikipediaSearchResult(SourceModel):
    title: str
    description: str = ""
    url: str = ""


class ConservationStatus(SourceModel):
    """IUCN Red List assessment summary."""

    taxon_id: int | None = Field(default=None, alias="taxonid")
    scientific_name: str = ""
    category: str = ""
    population_trend: str | None = None
    main_common_name: str | None = None


class GbifSpecies(SourceModel):
    key: int
    scientific_name: str = ""
    canonical_name: str = ""
    vernacular_name: str | None = None
    rank: str | None = None
    status: str | None = None
    kingdom: str = ""
    phylum: str = ""
    class_: str = Field(default="", alias="class")
    order: str = ""
    family: str = ""
    genus: str = ""
    species: str | None = None


class Occurrence(SourceModel):
    key: int
    scientific_name: str = ""
    latitude: float
    longitude: float
    country: str | None = None
    state_province: str | None = None
    locality: str | None = None
    event_date: str | None = None
    basis_of_record: str | None = None


class SoundRecording(SourceModel):
    """A xeno-canto recording."""

    id: str
    genus: str = ""
    species: str = ""
    english_name: str = ""
    recordist: str = ""
    country: str = ""
    locality: str = ""
    latitude: float | None = None
    longitude: float | None = None
    type: str = ""
    file: str
    sonogram: str | None = None
    length: str = ""
    quality: str = ""
    date: str | None = None
    time: str | None = None

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def blank_coordinates(cls, v: object) -> object:
        """Recordings without a location report coordinates as empty strings."""
        return None if v in ("", None) else v


class MarineTaxon(SourceModel):
    """A WoRMS (World Register of Marine Species) record."""

    aphia_id: int = Field(alias="AphiaID")
    scientific_name: str = Field(default="", alias="scientificname")
    authority: str | None = None
    status: str | None = None
    rank: str | None = None
    kingdom: str | None = None
    phylum: str | None = None
    class_: str | None = Field(default=None, alias="class")
    order: str | None = None
    family: str | None = None
    genus: str | None = None
    is_marine: bool | None = Field(default=None, alias="isMarine")
    is_brackish: bool | None = Field(default=None, alias="isBrackish")
    is_freshwater: bool | None = Field(default=None, alias="isFreshwater")
    is_terrestrial: bool | None = Field(default=None, alias="isTerrestrial")
    is_extinct: bool | None = Field(default=None, alias="isExtinct")

    @property
    def habitats(self) -> list[str]:
        """Habitat types flagged on the record."""
        flags = [
            ("Marine", self.is_marine),
            ("Brackish", self.is_brackish),
            ("Freshwater", self.is_freshwater),
            ("Terrestrial", self.is_terrestrial),
        ]
        return [name for name, flag in flags if flag]


class MarineDistribution(SourceModel):
    locality: str
    higher_geography: str | None = Field(default=None, alias="higherGeography")
    occurrence_status: str | None = Field(default=None, alias="occurrenceStatus")
    establishment_means: str | None = Field(default=None, alias="establishmentMeans")


class VernacularName(SourceModel):
    vernacular: str
    language: str = Field(default="", alias="language_code")


class MigrationStudy(SourceModel):
    """A Movebank tracking study."""

    id: int
    name: str = ""
    main_location_lat: float | None = None
    main_location_long: float | None = None
    number_of_individuals: int | None = None
    taxon_ids: str | None = None

    @field_validator(
        "main_location_lat",
        "main_location_long",
        "number_of_individuals",
        "taxon_ids",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v: object) -> object:
        """CSV bodies report missing values as empty strings."""
        return None if v == "" else v


class MigrationPoint(SourceModel):
    timestamp: str
    latitude: float = Field(alias="location_lat")
    longitude: float = Field(alias="location_long")
    individual: str | None = Field(default=None, alias="individual_local_identifier")


class EBirdTaxon(SourceModel):
    species_code: str = Field(alias="speciesCode")
    common_name: str = Field(default="", alias="comName")
    scientific_name: str = Field(default="", alias="sciName")


class BirdSighting(SourceModel):
    """An eBird observation."""

    species_code: str = Field(alias="speciesCode")
    common_name: str = Field(default="", alias="comName")
    scientific_name: str = Field(default="", alias="sciName")
    location_name: str = Field(default="", alias="locName")
    observed_at: str = Field(default="", alias="obsDt")
    how_many: int | None = Field(default=None, alias="howMany")
    latitude: float = Field(alias="lat")
    longitude: float = Field(alias="lng")


class Breed(SourceModel):
    """A breed from The Dog API or The Cat API."""

    id: str
    name: str
    temperament: str | None = None
    origin: str | None = None
    life_span: str | None = None
    bred_for: str | None = None
    breed_group: str | None = None
    description: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: object) -> str:
        """The Dog API uses numeric ids, The Cat API string ids."""
        return str(v)
