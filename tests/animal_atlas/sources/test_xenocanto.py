"""Tests for the xeno-canto adapter."""

import httpx
import pytest

from animal_atlas.sources.models import SoundRecording
from animal_atlas.sources.xenocanto import (
    XenoCantoSource,
    best_quality,
    build_queries,
    filter_by_type,
    normalize_url,
    sound_types,
    to_recording,
)


def recording(recording_id, quality="A", sound_type="song"):
    return {
        "id": recording_id,
        "gen": "Turdus",
        "sp": "merula",
        "en": "Eurasian Blackbird",
        "rec": "Recordist",
        "cnt": "France",
        "loc": "Paris",
        "lat": "48.85",
        "lon": "2.35",
        "type": sound_type,
        "file": f"//xeno-canto.org/{recording_id}/download",
        "sono": {"small": f"//xeno-canto.org/sounds/{recording_id}-small.png"},
        "length": "0:42",
        "q": quality,
    }


def make_recording(recording_id, quality="", sound_type=""):
    return SoundRecording(id=recording_id, file="f", quality=quality, type=sound_type)


class TestHelpers:
    """Test query building and normalization."""

    def test_build_queries_binomial(self):
        """Should try genus+species, then genus alone."""
        assert build_queries("Turdus merula") == ["gen:Turdus+sp:merula", "gen:Turdus"]

    def test_build_queries_single_word(self):
        """Should try the word verbatim, then as a genus."""
        assert build_queries(" Turdus ") == ["Turdus", "gen:Turdus"]

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("//xeno-canto.org/1/download", "https://xeno-canto.org/1/download"),
            ("https://xeno-canto.org/1", "https://xeno-canto.org/1"),
            (None, ""),
        ],
    )
    def test_normalize_url(self, url, expected):
        """Should expand protocol-relative URLs."""
        assert normalize_url(url) == expected

    def test_to_recording(self):
        """Should normalize URLs and coordinates."""
        result = to_recording(recording("123"))

        assert result.file == "https://xeno-canto.org/123/download"
        assert result.sonogram == "https://xeno-canto.org/sounds/123-small.png"
        assert result.latitude == 48.85
        assert result.longitude == 2.35

    def test_to_recording_defaults(self):
        """Should fill the download URL and blank coordinates."""
        result = to_recording({"id": 9, "lat": "", "lng": ""})

        assert result.file == "https://xeno-canto.org/9/download"
        assert result.latitude is None
        assert result.longitude is None
        assert to_recording({"gen": "Turdus"}) is None

    def test_sound_types_and_filter(self):
        """Should list distinct types and filter by them."""
        recordings = [
            make_recording("1", sound_type="song"),
            make_recording("2", sound_type="call, alarm call"),
        ]

        assert sound_types(recordings) == ["alarm call", "call", "song"]
        assert [r.id for r in filter_by_type(recordings, "CALL")] == ["2"]

    def test_best_quality(self):
        """Should pick the highest-rated recording, first one on ties."""
        recordings = [make_recording("1", "C"), make_recording("2", "A"), make_recording("3", "A")]

        assert best_quality(recordings).id == "2"
        assert best_quality([]) is None


class TestXenoCantoSource:
    """Test XenoCantoSource.fetch_by_name."""

    @pytest.mark.asyncio
    async def test_stops_when_enough_collected(self, cache, http_client_factory):
        """Should stop trying query forms once the limit is reached."""
        payload = {"recordings": [recording("1"), recording("2"), recording("3")]}
        client, transport = http_client_factory(lambda request: httpx.Response(200, json=payload))
        source = XenoCantoSource(cache, client, api_key="xc")

        recordings = await source.fetch_by_name("Turdus merula", limit=2)

        assert [r.id for r in recordings] == ["1", "2"]
        assert len(transport.requests) == 1
        params = transport.requests[0].url.params
        assert params["query"] == "gen:Turdus+sp:merula"
        assert params["key"] == "xc"
        assert params["per_page"] == "4"

    @pytest.mark.asyncio
    async def test_falls_through_rejected_forms(self, cache, http_client_factory):
        """Should move on when a query form is rejected or finds nothing."""

        def handler(request):
            if "sp:" in request.url.params["query"]:
                return httpx.Response(400)
            return httpx.Response(200, json={"recordings": [recording("7"), recording("7")]})

        client, transport = http_client_factory(handler)
        source = XenoCantoSource(cache, client, api_key="xc")

        recordings = await source.fetch_by_name("Turdus merula", limit=5)

        assert [r.id for r in recordings] == ["7"]
        assert len(transport.requests) == 2

    @pytest.mark.asyncio
    async def test_no_results_cached_briefly(self, cache, http_client_factory):
        """Should cache a genuine "no recordings" answer."""
        client, transport = http_client_factory(
            lambda request: httpx.Response(200, json={"error": "No results", "recordings": []})
        )
        source = XenoCantoSource(cache, client, api_key="xc")

        assert await source.fetch_by_name("Unicornis") == []
        assert await source.fetch_by_name("Unicornis") == []
        assert len(transport.requests) == 2

    @pytest.mark.asyncio
    async def test_outage_not_cached(self, cache, http_client_factory):
        """Should not remember a transient outage as an empty answer."""
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) <= 2:
                return httpx.Response(503)
            return httpx.Response(200, json={"recordings": [recording("1")]})

        client, _ = http_client_factory(handler)
        source = XenoCantoSource(cache, client, api_key="xc")

        assert await source.fetch_by_name("Turdus merula") == []
        assert [r.id for r in await source.fetch_by_name("Turdus merula")] == ["1"]

    @pytest.mark.asyncio
    async def test_without_key(self, cache, http_client_factory):
        """Should skip the call without a key."""
        client, transport = http_client_factory(lambda request: httpx.Response(200, json={}))
        assert await XenoCantoSource(cache, client).fetch_by_name("Turdus merula") == []
        assert transport.requests == []
