"""Tests for the @cached adapter decorator."""

from unittest.mock import AsyncMock

import httpx
import pytest

from animal_atlas.sources.base import SourceAdapter
from animal_atlas.sources.errors import ErrorType, SourceError
from animal_atlas.sources.models import GbifSpecies
from animal_atlas.utils.cache import cached
from animal_atlas.utils.cache.decorator import is_empty


class FakeSource(SourceAdapter):
    """Adapter whose operations delegate to an AsyncMock."""

    name = "fake"

    def __init__(self, *args, backend_call: AsyncMock, **kwargs):
        super().__init__(*args, **kwargs)
        self.backend_call = backend_call

    @cached(ttl="animal_data", empty=list)
    async def fetch_by_name(self, name: str, limit: int = 5) -> list[str]:
        return await self.backend_call(name, limit)

    @cached(ttl="marine")
    async def fetch_species(self, name: str) -> GbifSpecies | None:
        return await self.backend_call(name)

    @cached(ttl="sounds", empty=list, cache_empty=0.5)
    async def fetch_sounds(self, name: str) -> list[str]:
        return await self.backend_call(name)


class KeyedFakeSource(FakeSource):
    name = "keyed"
    requires_key = True


@pytest.fixture
def backend_call():
    return AsyncMock()


@pytest.fixture
def source(cache, backend_call):
    return FakeSource(cache, httpx.AsyncClient(), backend_call=backend_call)


class TestIsEmpty:
    """Test the empty-result predicate."""

    @pytest.mark.parametrize("value", [None, [], {}, (), ""])
    def test_empty_values(self, value):
        """Should treat None and empty containers as empty."""
        assert is_empty(value) is True

    @pytest.mark.parametrize("value", [0, False, [0], {"a": 1}, "x"])
    def test_non_empty_values(self, value):
        """Should treat falsy scalars and non-empty containers as results."""
        assert is_empty(value) is False


class TestCachedDecorator:
    """Test @cached behavior."""

    @pytest.mark.asyncio
    async def test_caches_non_empty_result(self, source, backend_call, cache):
        """Should call the source once and serve the second call from cache."""
        backend_call.return_value = ["lion"]

        assert await source.fetch_by_name("Lion") == ["lion"]
        assert await source.fetch_by_name("Lion") == ["lion"]

        backend_call.assert_awaited_once_with("Lion", 5)
        assert cache.get("fake_fetch_by_name_lion_5") == ["lion"]

    @pytest.mark.asyncio
    async def test_key_is_normalized(self, source, backend_call):
        """Should share one entry across case and whitespace variants."""
        backend_call.return_value = ["lion"]

        await source.fetch_by_name("Lion")
        await source.fetch_by_name("  LION ")
        await source.fetch_by_name(name="lion", limit=5)

        assert backend_call.await_count == 1

    @pytest.mark.asyncio
    async def test_different_arguments_use_different_keys(self, source, backend_call):
        """Should key on every bound argument."""
        backend_call.return_value = ["lion"]

        await source.fetch_by_name("Lion", 5)
        await source.fetch_by_name("Lion", 10)

        assert backend_call.await_count == 2

    @pytest.mark.asyncio
    async def test_empty_result_not_cached(self, source, backend_call):
        """Should not cache empty results by default."""
        backend_call.return_value = []

        assert await source.fetch_by_name("Nothing") == []
        assert await source.fetch_by_name("Nothing") == []
        assert backend_call.await_count == 2

    @pytest.mark.asyncio
    async def test_empty_result_cached_when_requested(self, source, backend_call, cache, clock):
        """Should cache empty results for the configured fraction of the TTL."""
        backend_call.return_value = []

        await source.fetch_sounds("Quiet")
        await source.fetch_sounds("Quiet")
        assert backend_call.await_count == 1

        clock.advance(source.ttl.sounds_ms * 0.5 + 1)
        await source.fetch_sounds("Quiet")
        assert backend_call.await_count == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error_type", [ErrorType.NETWORK, ErrorType.NOT_FOUND, ErrorType.SERVER_ERROR]
    )
    async def test_source_error_returns_empty(self, source, backend_call, error_type):
        """Should convert classified failures into the empty value."""
        backend_call.side_effect = SourceError("boom", error_type, source="fake")

        assert await source.fetch_by_name("Lion") == []
        assert await source.fetch_species("Lion") is None

    @pytest.mark.asyncio
    async def test_failure_not_cached(self, source, backend_call):
        """Should retry the source after a failure."""
        backend_call.side_effect = [SourceError("down", ErrorType.NETWORK), ["lion"]]

        assert await source.fetch_by_name("Lion") == []
        assert await source.fetch_by_name("Lion") == ["lion"]

    @pytest.mark.asyncio
    async def test_programmer_errors_propagate(self, source, backend_call):
        """Should not swallow exceptions outside the source error taxonomy."""
        backend_call.side_effect = KeyError("bug")

        with pytest.raises(KeyError):
            await source.fetch_by_name("Lion")

    @pytest.mark.asyncio
    async def test_model_round_trip(self, source, backend_call):
        """Should revalidate cached payloads into the annotated model."""
        backend_call.return_value = GbifSpecies(key=5219404, scientific_name="Panthera leo")

        await source.fetch_species("Lion")
        cached_result = await source.fetch_species("Lion")

        assert isinstance(cached_result, GbifSpecies)
        assert cached_result.key == 5219404
        assert backend_call.await_count == 1

    @pytest.mark.asyncio
    async def test_stale_shape_is_discarded(self, source, backend_call, cache):
        """Should drop cache entries that no longer validate and refetch."""
        cache.set("fake_fetch_species_lion", {"unexpected": True}, 60_000)
        backend_call.return_value = GbifSpecies(key=1)

        result = await source.fetch_species("Lion")

        assert result.key == 1
        backend_call.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unconfigured_source_skips_call(self, cache, backend_call):
        """Should return the empty value without calling an unconfigured source."""
        source = KeyedFakeSource(cache, httpx.AsyncClient(), backend_call=backend_call)

        assert await source.fetch_by_name("Lion") == []
        backend_call.assert_not_awaited()
