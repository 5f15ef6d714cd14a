"""Tests for the dependency injection container."""

import httpx
import pytest
from dependency_injector import providers

from animal_atlas.config.models import AtlasConfig, CacheConfig
from animal_atlas.core.container import Container, create_storage_backend
from animal_atlas.core.service import AtlasService
from animal_atlas.utils.cache import Cache, FileBackend, InMemoryBackend


class TestCreateStorageBackend:
    """Test backend selection."""

    def test_memory_default(self):
        backend = create_storage_backend(CacheConfig(quota_bytes=1024))

        assert isinstance(backend, InMemoryBackend)
        assert backend.quota_bytes == 1024

    def test_file(self, tmp_path):
        path = tmp_path / "cache.json"

        backend = create_storage_backend(CacheConfig(backend="file", path=str(path)))

        assert isinstance(backend, FileBackend)
        assert backend.path == path

    def test_redis(self, mocker):
        """Should build a Redis backend from the connection settings."""
        redis_backend = mocker.patch("animal_atlas.core.container.RedisBackend")

        backend = create_storage_backend(
            CacheConfig(backend="redis", redis_host="cache.local", redis_port=6380, redis_db=2)
        )

        assert backend is redis_backend.return_value
        redis_backend.assert_called_once_with(
            host="cache.local", port=6380, db=2, namespace="animal_atlas:"
        )


@pytest.fixture
def container(test_config):
    """Provide a container wired to an in-memory test configuration."""
    container = Container()
    container.config.override(providers.Object(test_config))
    yield container
    container.reset_singletons()


class TestContainer:
    """Test the container wiring."""

    def test_adapters_share_cache_and_client(self, container):
        """Should hand every adapter the same cache and HTTP client."""
        cache = container.cache()
        client = container.http_client()

        assert isinstance(cache, Cache)
        assert isinstance(client, httpx.AsyncClient)
        for adapter in container.sources():
            assert adapter.cache is cache
            assert adapter.client is client

    def test_singletons(self, container):
        """Should reuse one instance of each adapter across consumers."""
        assert container.facts_resolver().inaturalist is container.inaturalist()
        assert container.image_resolver().inaturalist is container.inaturalist()
        assert container.orchestrator().gbif is container.search_aggregator().gbif

    def test_keys_and_urls_wired(self, container):
        """Should read each adapter's key by source name."""
        assert container.api_ninjas().api_key == "ninjas-key"
        assert container.dog_api().api_key == "dog-key"
        assert container.gbif().api_key == ""
        assert container.gbif().base_url == "https://api.gbif.org/v1"

    def test_ebird_region(self, container):
        ebird = container.ebird()

        assert ebird.region == "US"
        assert ebird.back_days == 14

    def test_source_order(self, container):
        assert [source.name for source in container.sources()] == [
            "api_ninjas",
            "the_dog_api",
            "the_cat_api",
            "inaturalist",
            "unsplash",
            "wikipedia",
            "gbif",
            "iucn",
            "xeno_canto",
            "worms",
            "movebank",
            "ebird",
        ]

    def test_atlas_service(self, container, test_config):
        service = container.atlas_service()

        assert isinstance(service, AtlasService)
        assert service.config is test_config
        assert service.cache is container.cache()
        assert len(service.sources) == 12


class TestConfigPath:
    """Test loading configuration from a file path."""

    def test_config_from_yaml(self, tmp_path, monkeypatch):
        """Should load the file named by config_path."""
        monkeypatch.delenv("ANIMAL_ATLAS_UNSPLASH_KEY", raising=False)
        config_file = tmp_path / "atlas.yaml"
        config_file.write_text(
            "api_keys:\n"
            "  unsplash: yaml-key\n"
            "sources:\n"
            "  gbif: https://gbif.test/v1/\n"
            "cache:\n"
            "  backend: file\n"
            f"  path: {tmp_path / 'cache.json'}\n"
        )
        container = Container()
        container.config_path.override(str(config_file))

        config = container.config()

        assert isinstance(config, AtlasConfig)
        assert container.unsplash().api_key == "yaml-key"
        assert container.gbif().base_url == "https://gbif.test/v1"
        assert isinstance(container.storage_backend(), FileBackend)
        container.reset_singletons()
