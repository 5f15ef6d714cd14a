"""xeno-canto animal sound recordings (API v3)."""

import logging
from typing import Any

from animal_atlas.sources.base import SourceAdapter
from animal_atlas.sources.errors import ErrorType, SourceError
from animal_atlas.sources.models import SoundRecording
from animal_atlas.utils.cache import cached

logger = logging.getLogger(__name__)

# Error values xeno-canto returns in a 200 body when a query matches nothing
NO_RESULT_ERRORS = frozenset({"client_error", "not_found", "No results"})

# Statuses meaning "this query form is not understood", not "the service is down"
QUERY_REJECTED = frozenset({ErrorType.NOT_FOUND, ErrorType.VALIDATION})

QUALITY_ORDER = {"A": 4, "B": 3, "C": 2, "D": 1, "E": 0}


def build_queries(query: str) -> list[str]:
    """Query forms to try, most specific first.

    A binomial becomes ``gen:Genus+sp:species`` and then ``gen:Genus``; a
    single word is tried verbatim and then as a genus.
    """
    parts = query.split()
    if len(parts) >= 2:
        return [f"gen:{parts[0]}+sp:{' '.join(parts[1:])}", f"gen:{parts[0]}"]
    return [query.strip(), f"gen:{query.strip()}"]


def normalize_url(url: str | None) -> str:
    """Expand protocol-relative ``//host/path`` URLs to https."""
    if not url:
        return ""
    if url.startswith("//"):
        return f"https:{url}"
    return url


def to_recording(item: dict[str, Any]) -> SoundRecording | None:
    """Normalize one raw recording; None when it has no id."""
    recording_id = str(item.get("id") or "")
    if not recording_id:
        return None

    sono = item.get("sono") if isinstance(item.get("sono"), dict) else {}
    sonogram = normalize_url(sono.get("med") or sono.get("small")) or None
    return SoundRecording(
        id=recording_id,
        genus=item.get("gen") or "",
        species=item.get("sp") or "",
        english_name=item.get("en") or "",
        recordist=item.get("rec") or "",
        country=item.get("cnt") or "",
        locality=item.get("loc") or "",
        latitude=item.get("lat"),
        longitude=item.get("lon", item.get("lng")),
        type=item.get("type") or "",
        file=normalize_url(item.get("file")) or f"https://xeno-canto.org/{recording_id}/download",
        sonogram=sonogram,
        length=item.get("length") or "",
        quality=item.get("q") or "",
        date=item.get("date"),
        time=item.get("time"),
    )


class XenoCantoSource(SourceAdapter):
    """Sound recordings, mostly birds. v3 requires a key passed as a query parameter."""

    name = "xeno_canto"
    default_base_url = "https://xeno-canto.org/api/3"
    requires_key = True
    probe_name = "Turdus merula"

    def auth_params(self) -> dict[str, str]:
        return {"key": self.api_key}

    @cached(ttl="sounds", empty=list, cache_empty=0.5)
    async def fetch_by_name(self, query: str, limit: int = 10) -> list[SoundRecording]:
        """Recordings for a scientific or common name.

        Query forms are tried in turn until enough recordings are collected.
        A form the service rejects or has no results for moves on to the next;
        transient failures are re-raised only when no form produced anything,
        so an outage is never cached as "no recordings".

        Args:
            query: Scientific name ("Turdus merula") or a single name
            limit: Maximum number of recordings

        Returns:
            Recordings deduplicated by id, at most limit
        """
        collected: dict[str, SoundRecording] = {}
        transient: SourceError | None = None

        for search in build_queries(query):
            try:
                data = await self._get_json(
                    "recordings",
                    params={"query": search, "page": 1, "per_page": min(limit * 2, 100)},
                )
            except SourceError as e:
                if e.error_type not in QUERY_REJECTED:
                    transient = e
                continue

            if not isinstance(data, dict):
                continue
            if data.get("error"):
                if data["error"] not in NO_RESULT_ERRORS:
                    logger.debug(
                        "Unexpected xeno-canto error",
                        extra={"query": search, "error": data["error"]},
                    )
                continue

            for item in data.get("recordings") or []:
                recording = to_recording(item) if isinstance(item, dict) else None
                if recording is not None and recording.id not in collected:
                    collected[recording.id] = recording
            if len(collected) >= limit:
                break

        if not collected and transient is not None:
            raise transient
        return list(collected.values())[:limit]


def sound_types(recordings: list[SoundRecording]) -> list[str]:
    """Distinct sound types ("call", "song", ...) across recordings, sorted."""
    types = set()
    for recording in recordings:
        types.update(part.strip() for part in recording.type.split(",") if part.strip())
    return sorted(types)


def filter_by_type(recordings: list[SoundRecording], sound_type: str) -> list[SoundRecording]:
    wanted = sound_type.lower()
    return [recording for recording in recordings if wanted in recording.type.lower()]


def best_quality(recordings: list[SoundRecording]) -> SoundRecording | None:
    """Highest-rated recording (A best, E worst); the first one wins ties."""
    best = None
    for recording in recordings:
        if best is None or QUALITY_ORDER.get(recording.quality, 0) > QUALITY_ORDER.get(
            best.quality, 0
        ):
            best = recording
    return best
