from collections.abc import Callable

import httpx
import pytest

from animal_atlas.config.models import AtlasConfig, CacheTtlConfig
from animal_atlas.sources.http import RetryPolicy
from animal_atlas.utils.cache import Cache, InMemoryBackend

START_MS = 1_700_000_000_000


class FakeClock:
    """Millisecond clock that only moves when a test advances it."""

    def __init__(self, now_ms: float = START_MS):
        self.now_ms = now_ms

    def __call__(self) -> float:
        return self.now_ms

    def advance(self, ms: float) -> None:
        self.now_ms += ms


@pytest.fixture
def clock() -> FakeClock:
    """Provide a frozen clock for cache expiry tests."""
    return FakeClock()


@pytest.fixture
def backend() -> InMemoryBackend:
    """Provide an unlimited in-memory storage backend."""
    return InMemoryBackend()


@pytest.fixture
def cache(backend: InMemoryBackend, clock: FakeClock) -> Cache:
    """Provide a real Cache over in-memory storage with a controllable clock.

    Adapters and resolvers get a working cache rather than a mock, so tests
    exercise the same envelope and TTL handling as production.
    """
    return Cache(backend, clock=clock)


@pytest.fixture
def ttl() -> CacheTtlConfig:
    return CacheTtlConfig()


@pytest.fixture
def no_delay_retry() -> RetryPolicy:
    """Provide a retry policy that never sleeps between attempts."""
    return RetryPolicy(base_delay=0)


@pytest.fixture
def test_config() -> AtlasConfig:
    """Provide a default AtlasConfig with every keyed source configured."""
    return AtlasConfig.model_validate(
        {
            "api_keys": {
                "api_ninjas": "ninjas-key",
                "unsplash": "unsplash-key",
                "iucn": "iucn-token",
                "ebird": "ebird-key",
                "the_dog_api": "dog-key",
                "the_cat_api": "cat-key",
                "xeno_canto": "xc-key",
            }
        }
    )


class RecordingTransport(httpx.MockTransport):
    """MockTransport that remembers every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.requests: list[httpx.Request] = []

        def recording_handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(recording_handler)


@pytest.fixture
def http_client_factory() -> Callable[..., tuple[httpx.AsyncClient, RecordingTransport]]:
    """Build an AsyncClient whose requests are answered by a handler function.

    The handler receives each httpx.Request and returns an httpx.Response;
    the returned transport exposes the requests that were made.
    """

    def factory(
        handler: Callable[[httpx.Request], httpx.Response],
    ) -> tuple[httpx.AsyncClient, RecordingTransport]:
        transport = RecordingTransport(handler)
        return httpx.AsyncClient(transport=transport), transport

    return factory

