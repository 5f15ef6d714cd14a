"""Configuration models for Animal Atlas."""

import logging
import re

from pydantic import BaseModel, Field, field_validator, model_validator

PLACEHOLDER_KEYS = {"", "your_key_here", "changeme"}

HOUR_MS = 60 * 60 * 1000
MINUTE_MS = 60 * 1000


class LoggingConfig(BaseModel):
    """Structlog-based logging configuration."""

    level: str = "INFO"
    json_logs: bool | None = None  # None = auto-detect based on environment
    include_caller: bool = False  # Include file:line info (useful for debugging)
    extra_fields: dict[str, str] = Field(default_factory=lambda: {"service": "animal-atlas"})

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate that the level is a known stdlib logging level."""
        if not isinstance(logging.getLevelName(v.upper()), int):
            raise ValueError(f"Unknown log level '{v}'")
        return v.upper()


class ApiKeysConfig(BaseModel):
    """API keys for the sources that require one.

    An empty key (or a template placeholder) means the source is not configured
    and its adapter returns empty results without making a call.
    """

    api_ninjas: str = ""
    unsplash: str = ""
    iucn: str = ""
    ebird: str = ""
    the_dog_api: str = ""
    the_cat_api: str = ""
    xeno_canto: str = ""

    @field_validator("*")
    @classmethod
    def strip_placeholders(cls, v: str) -> str:
        """Treat template placeholders as missing keys."""
        v = (v or "").strip()
        return "" if v.lower() in PLACEHOLDER_KEYS else v


class SourceUrlsConfig(BaseModel):
    """Base URL overrides per source. Empty means the adapter default."""

    api_ninjas: str = ""
    the_dog_api: str = ""
    the_cat_api: str = ""
    inaturalist: str = ""
    unsplash: str = ""
    wikipedia: str = ""
    gbif: str = ""
    iucn: str = ""
    xeno_canto: str = ""
    worms: str = ""
    movebank: str = ""
    ebird: str = ""

    @field_validator("*")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate URL overrides are absolute http(s) URLs."""
        if v and not re.match(r"^https?://", v):
            raise ValueError(f"Invalid source URL '{v}'. Must start with http:// or https://")
        return v.rstrip("/")


class CacheConfig(BaseModel):
    """Bounded expiring cache configuration."""

    backend: str = "memory"  # memory | file | redis
    path: str = "~/.cache/animal-atlas/cache.json"
    quota_bytes: int | None = None  # Simulated hard quota of the storage medium
    max_size_bytes: int = 5 * 1024 * 1024
    reclaim_bytes: int = 2 * 1024 * 1024
    quota_reclaim_bytes: int = 3 * 1024 * 1024
    redis_host: str = "127.0.0.1"
    redis_port: int = 6379
    redis_db: int = 0
    redis_namespace: str = "animal_atlas:"

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        """Validate the storage backend name."""
        v = v.lower()
        if v not in {"memory", "file", "redis"}:
            raise ValueError(f"Unknown cache backend '{v}'. Use memory, file or redis.")
        return v

    @field_validator("max_size_bytes", "reclaim_bytes", "quota_reclaim_bytes")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate byte sizes are positive."""
        if v <= 0:
            raise ValueError("Cache sizes must be positive")
        return v

    @model_validator(mode="after")
    def validate_reclaim(self) -> "CacheConfig":
        """Ensure eviction targets fit inside the size cap."""
        if self.reclaim_bytes > self.max_size_bytes:
            raise ValueError("reclaim_bytes cannot exceed max_size_bytes")
        return self


class CacheTtlConfig(BaseModel):
    """Time-to-live per kind of cached data, in milliseconds."""

    animal_data_ms: int = HOUR_MS
    facts_ms: int = 6 * HOUR_MS
    images_ms: int = HOUR_MS
    sounds_ms: int = HOUR_MS
    migration_ms: int = HOUR_MS
    bird_sightings_ms: int = 30 * MINUTE_MS
    marine_ms: int = HOUR_MS
    search_ms: int = 30 * MINUTE_MS
    reference_ms: int = 24 * HOUR_MS
    animal_of_day_ms: int = 24 * HOUR_MS


class HttpConfig(BaseModel):
    """Shared HTTP client settings."""

    timeout: float = 30.0
    image_source_timeout: float = 3.0
    observation_timeout: float = 2.5
    max_connections: int = 20
    max_keepalive_connections: int = 10
    user_agent: str = "AnimalAtlas/0.1 (+https://github.com/animal-atlas)"
    retry_max_attempts: int = 3
    retry_base_delay: float = 1.0
    retry_max_delay: float = 10.0


class EnrichmentConfig(BaseModel):
    """Bounds applied while assembling an enriched record."""

    image_count: int = 3
    sound_count: int = 5
    occurrence_limit: int = 300
    migration_point_limit: int = 500
    inat_observation_limit: int = 30
    ebird_region: str = "US"
    ebird_back_days: int = 14

    @field_validator("ebird_back_days")
    @classmethod
    def validate_back_days(cls, v: int) -> int:
        """eBird only serves 1-30 days of recent observations."""
        if not 1 <= v <= 30:
            raise ValueError("ebird_back_days must be between 1 and 30")
        return v


DEFAULT_RANDOM_ANIMALS = [
    # Mammals
    "Lion", "Tiger", "Elephant", "Giraffe", "Zebra",
    "Bear", "Panda", "Gorilla", "Chimpanzee", "Orangutan",
    "Kangaroo", "Koala", "Wolf", "Fox", "Deer",
    "Moose", "Bison", "Rhinoceros", "Hippopotamus",
    "Leopard", "Cheetah", "Jaguar", "Cougar",
    "Dolphin", "Whale", "Seal", "Otter", "Walrus",
    # Birds
    "Eagle", "Hawk", "Owl", "Falcon", "Vulture",
    "Penguin", "Flamingo", "Parrot", "Toucan", "Peacock",
    "Crow", "Raven", "Robin", "Sparrow", "Cardinal",
    "Ostrich", "Emu", "Pelican", "Heron", "Crane",
    "Duck", "Goose", "Swan", "Albatross",
    # Reptiles and amphibians
    "Crocodile", "Alligator", "Snake", "Python", "Cobra",
    "Lizard", "Iguana", "Chameleon", "Gecko",
    "Turtle", "Tortoise", "Frog", "Toad", "Salamander",
    # Fish and marine life
    "Shark", "Tuna", "Octopus", "Squid", "Jellyfish",
    "Starfish", "Seahorse", "Clownfish", "Swordfish",
    "Stingray", "Lobster", "Crab",
    # Insects and arachnids
    "Butterfly", "Dragonfly", "Bee", "Ant", "Beetle",
    "Spider", "Scorpion", "Ladybug",
]  # fmt: skip

DEFAULT_POPULAR_ANIMALS = [
    "Lion", "Tiger", "Elephant", "Giraffe", "Zebra",
    "Panda", "Koala", "Kangaroo", "Penguin", "Dolphin",
    "Whale", "Shark", "Eagle", "Owl", "Parrot",
    "Snake", "Crocodile", "Turtle", "Cheetah", "Leopard",
    "Wolf", "Fox", "Bear", "Monkey", "Gorilla",
    "Chimpanzee", "Hippopotamus", "Rhinoceros", "Seal", "Otter",
]  # fmt: skip


class ContentConfig(BaseModel):
    """Curated content lists and batch pacing."""

    random_animals: list[str] = Field(default_factory=lambda: list(DEFAULT_RANDOM_ANIMALS))
    popular_animals: list[str] = Field(default_factory=lambda: list(DEFAULT_POPULAR_ANIMALS))
    random_max_attempts: int = 5
    batch_delay_seconds: float = 1.0
    recent_searches_limit: int = 10

    @field_validator("random_animals")
    @classmethod
    def validate_random_animals(cls, v: list[str]) -> list[str]:
        """The random picker needs at least one name."""
        names = [name.strip() for name in v if name and name.strip()]
        if not names:
            raise ValueError("random_animals must contain at least one name")
        return names


class AtlasConfig(BaseModel):
    """Top-level Animal Atlas configuration."""

    config_version: str = "1.0.0"
    api_keys: ApiKeysConfig = Field(default_factory=ApiKeysConfig)
    sources: SourceUrlsConfig = Field(default_factory=SourceUrlsConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    ttl: CacheTtlConfig = Field(default_factory=CacheTtlConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    enrichment: EnrichmentConfig = Field(default_factory=EnrichmentConfig)
    content: ContentConfig = Field(default_factory=ContentConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
