"""Dependency injection container for Animal Atlas."""

from typing import Any

from dependency_injector import containers, providers

from animal_atlas.config.manager import ConfigManager
from animal_atlas.config.models import AtlasConfig, CacheConfig
from animal_atlas.core.service import AtlasService
from animal_atlas.enrichment.orchestrator import EnrichmentOrchestrator
from animal_atlas.resolvers.facts import FactsResolver
from animal_atlas.resolvers.images import ImageResolver
from animal_atlas.search.aggregator import SearchAggregator
from animal_atlas.search.suggestions import RecentSearches
from animal_atlas.sources.api_ninjas import ApiNinjasSource
from animal_atlas.sources.base import SourceAdapter
from animal_atlas.sources.breeds import CatApiSource, DogApiSource
from animal_atlas.sources.ebird import EBirdSource
from animal_atlas.sources.gbif import GbifSource
from animal_atlas.sources.http import RetryPolicy, create_http_client
from animal_atlas.sources.inaturalist import INaturalistSource
from animal_atlas.sources.iucn import IucnSource
from animal_atlas.sources.movebank import MovebankSource
from animal_atlas.sources.unsplash import UnsplashSource
from animal_atlas.sources.wikipedia import WikipediaSource
from animal_atlas.sources.worms import WormsSource
from animal_atlas.sources.xenocanto import XenoCantoSource
from animal_atlas.utils.cache import Cache, FileBackend, InMemoryBackend, RedisBackend
from animal_atlas.utils.cache.backends import StorageBackend


def create_storage_backend(config: CacheConfig) -> StorageBackend:
    """Create the storage backend named by ``cache.backend``."""
    if config.backend == "file":
        return FileBackend(config.path, quota_bytes=config.quota_bytes)
    if config.backend == "redis":
        return RedisBackend(
            host=config.redis_host,
            port=config.redis_port,
            db=config.redis_db,
            namespace=config.redis_namespace,
        )
    return InMemoryBackend(quota_bytes=config.quota_bytes)


def load_config(manager: ConfigManager) -> AtlasConfig:
    return manager.load()


def source_provider(
    adapter: type[SourceAdapter],
    config: providers.Provider,
    cache: providers.Provider,
    client: providers.Provider,
    **kwargs: Any,
) -> providers.Singleton:
    """Singleton provider for an adapter, reading its key and base URL by source name.

    Sources without a key setting get an empty key, which is what a keyless
    source expects.
    """
    return providers.Singleton(
        adapter,
        cache=cache,
        client=client,
        api_key=providers.Factory(lambda c: getattr(c.api_keys, adapter.name, ""), c=config),
        base_url=providers.Factory(lambda c: getattr(c.sources, adapter.name, ""), c=config),
        ttl=providers.Factory(lambda c: c.ttl, c=config),
        retry_policy=providers.Factory(lambda c: RetryPolicy.from_config(c.http), c=config),
        **kwargs,
    )


class Container(containers.DeclarativeContainer):
    """Application dependency injection container.

    Everything is a singleton: one config, one storage namespace, one cache,
    one HTTP client and one instance of each adapter shared by the resolvers,
    the orchestrator and the search aggregator.
    """

    # Configuration - path overridable from the CLI
    config_path = providers.Object(None)
    config_manager = providers.Singleton(ConfigManager, config_path=config_path)
    config = providers.Singleton(load_config, manager=config_manager)

    # Storage and cache
    storage_backend = providers.Singleton(
        create_storage_backend,
        config=providers.Factory(lambda c: c.cache, c=config),
    )
    cache = providers.Singleton(
        Cache,
        backend=storage_backend,
        max_size_bytes=providers.Factory(lambda c: c.cache.max_size_bytes, c=config),
        reclaim_bytes=providers.Factory(lambda c: c.cache.reclaim_bytes, c=config),
        quota_reclaim_bytes=providers.Factory(lambda c: c.cache.quota_reclaim_bytes, c=config),
    )

    # Shared HTTP client
    http_client = providers.Singleton(
        create_http_client,
        config=providers.Factory(lambda c: c.http, c=config),
    )

    # Source adapters
    api_ninjas = source_provider(ApiNinjasSource, config, cache, http_client)
    dog_api = source_provider(DogApiSource, config, cache, http_client)
    cat_api = source_provider(CatApiSource, config, cache, http_client)
    inaturalist = source_provider(INaturalistSource, config, cache, http_client)
    unsplash = source_provider(UnsplashSource, config, cache, http_client)
    wikipedia = source_provider(WikipediaSource, config, cache, http_client)
    gbif = source_provider(GbifSource, config, cache, http_client)
    iucn = source_provider(IucnSource, config, cache, http_client)
    xeno_canto = source_provider(XenoCantoSource, config, cache, http_client)
    worms = source_provider(WormsSource, config, cache, http_client)
    movebank = source_provider(MovebankSource, config, cache, http_client)
    ebird = source_provider(
        EBirdSource,
        config,
        cache,
        http_client,
        region=providers.Factory(lambda c: c.enrichment.ebird_region, c=config),
        back_days=providers.Factory(lambda c: c.enrichment.ebird_back_days, c=config),
    )

    sources = providers.List(
        api_ninjas,
        dog_api,
        cat_api,
        inaturalist,
        unsplash,
        wikipedia,
        gbif,
        iucn,
        xeno_canto,
        worms,
        movebank,
        ebird,
    )

    # Resolvers
    facts_resolver = providers.Singleton(
        FactsResolver,
        cache=cache,
        api_ninjas=api_ninjas,
        dog_api=dog_api,
        cat_api=cat_api,
        inaturalist=inaturalist,
        ttl=providers.Factory(lambda c: c.ttl, c=config),
    )
    image_resolver = providers.Singleton(
        ImageResolver,
        cache=cache,
        inaturalist=inaturalist,
        unsplash=unsplash,
        wikipedia=wikipedia,
        dog_api=dog_api,
        cat_api=cat_api,
        ttl=providers.Factory(lambda c: c.ttl, c=config),
        timeout=providers.Factory(lambda c: c.http.image_source_timeout, c=config),
    )

    # Enrichment and search
    orchestrator = providers.Singleton(
        EnrichmentOrchestrator,
        wikipedia=wikipedia,
        images=image_resolver,
        iucn=iucn,
        gbif=gbif,
        xeno_canto=xeno_canto,
        worms=worms,
        inaturalist=inaturalist,
        movebank=movebank,
        ebird=ebird,
        config=providers.Factory(lambda c: c.enrichment, c=config),
        observation_timeout=providers.Factory(lambda c: c.http.observation_timeout, c=config),
    )
    search_aggregator = providers.Singleton(
        SearchAggregator,
        facts=facts_resolver,
        inaturalist=inaturalist,
        gbif=gbif,
        worms=worms,
        content=providers.Factory(lambda c: c.content, c=config),
    )
    recent_searches = providers.Singleton(
        RecentSearches,
        cache=cache,
        limit=providers.Factory(lambda c: c.content.recent_searches_limit, c=config),
    )

    # Facade
    atlas_service = providers.Singleton(
        AtlasService,
        config=config,
        cache=cache,
        http_client=http_client,
        facts=facts_resolver,
        images=image_resolver,
        orchestrator=orchestrator,
        aggregator=search_aggregator,
        recent_searches=recent_searches,
        sources=sources,
    )
