"""Tests for configuration models."""

import pytest
from pydantic import ValidationError

from animal_atlas.config.models import (
    ApiKeysConfig,
    AtlasConfig,
    CacheConfig,
    ContentConfig,
    EnrichmentConfig,
    LoggingConfig,
    SourceUrlsConfig,
)


class TestAtlasConfigDefaults:
    """Test default values of the top-level configuration."""

    def test_defaults(self):
        """Should build a complete configuration with no input."""
        config = AtlasConfig()

        assert config.cache.backend == "memory"
        assert config.cache.max_size_bytes == 5 * 1024 * 1024
        assert config.cache.reclaim_bytes == 2 * 1024 * 1024
        assert config.ttl.animal_data_ms == 60 * 60 * 1000
        assert config.ttl.facts_ms == 6 * 60 * 60 * 1000
        assert config.ttl.bird_sightings_ms == 30 * 60 * 1000
        assert config.http.image_source_timeout == 3.0
        assert config.enrichment.ebird_back_days == 14
        assert "Lion" in config.content.random_animals
        assert config.logging.level == "INFO"

    def test_keys_default_to_unconfigured(self):
        """Should leave every API key empty by default."""
        keys = ApiKeysConfig()
        assert all(value == "" for value in keys.model_dump().values())


class TestApiKeysConfig:
    """Test API key normalization."""

    @pytest.mark.parametrize("placeholder", ["", "  ", "your_key_here", "CHANGEME"])
    def test_placeholders_become_empty(self, placeholder):
        """Should treat template placeholders as missing keys."""
        assert ApiKeysConfig(unsplash=placeholder).unsplash == ""

    def test_real_key_is_stripped(self):
        """Should strip surrounding whitespace from real keys."""
        assert ApiKeysConfig(iucn="  abc123 ").iucn == "abc123"


class TestSourceUrlsConfig:
    """Test base URL overrides."""

    def test_trailing_slash_removed(self):
        """Should normalize a trailing slash away."""
        assert SourceUrlsConfig(gbif="https://gbif.example/v1/").gbif == "https://gbif.example/v1"

    def test_rejects_relative_url(self):
        """Should reject URLs without an http(s) scheme."""
        with pytest.raises(ValidationError, match="Invalid source URL"):
            SourceUrlsConfig(worms="marinespecies.org/rest")


class TestCacheConfig:
    """Test cache configuration validation."""

    def test_backend_is_case_insensitive(self):
        """Should accept backend names in any case."""
        assert CacheConfig(backend="Redis").backend == "redis"

    def test_unknown_backend(self):
        """Should reject an unknown backend."""
        with pytest.raises(ValidationError, match="Unknown cache backend"):
            CacheConfig(backend="memcached")

    def test_reclaim_cannot_exceed_cap(self):
        """Should reject an eviction target larger than the cap."""
        with pytest.raises(ValidationError, match="reclaim_bytes"):
            CacheConfig(max_size_bytes=1000, reclaim_bytes=2000)

    def test_sizes_must_be_positive(self):
        """Should reject zero or negative sizes."""
        with pytest.raises(ValidationError):
            CacheConfig(max_size_bytes=0)


class TestEnrichmentConfig:
    """Test enrichment bounds."""

    @pytest.mark.parametrize("days", [0, 31])
    def test_back_days_bounds(self, days):
        """Should reject eBird look-back windows outside 1-30 days."""
        with pytest.raises(ValidationError, match="ebird_back_days"):
            EnrichmentConfig(ebird_back_days=days)


class TestContentConfig:
    """Test curated content lists."""

    def test_blank_names_dropped(self):
        """Should drop blank entries from the random list."""
        config = ContentConfig(random_animals=[" Lion ", "", "  ", "Tiger"])
        assert config.random_animals == ["Lion", "Tiger"]

    def test_random_list_cannot_be_empty(self):
        """Should require at least one random animal."""
        with pytest.raises(ValidationError, match="at least one name"):
            ContentConfig(random_animals=["", " "])


class TestLoggingConfig:
    """Test logging configuration validation."""

    def test_level_normalized(self):
        """Should upper-case valid log levels."""
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_unknown_level(self):
        """Should reject unknown log levels."""
        with pytest.raises(ValidationError, match="Unknown log level"):
            LoggingConfig(level="chatty")
