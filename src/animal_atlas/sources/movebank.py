"""Movebank public animal tracking data.

The direct-read service ignores the Accept header for some entity types and
answers CSV, so bodies are decoded as JSON when possible and as CSV otherwise.
"""

import csv
import io
import json
import math
from typing import Any

from pydantic import ValidationError

from animal_atlas.sources.base import SourceAdapter
from animal_atlas.sources.models import MigrationPoint, MigrationStudy
from animal_atlas.utils.cache import cached

GPS_SENSOR_TYPE_ID = 653
EARTH_RADIUS_KM = 6371.0


def parse_rows(text: str) -> list[dict[str, Any]]:
    """Decode a Movebank body into row dicts, whichever format it came in."""
    if not text.strip():
        return []
    try:
        data = json.loads(text)
    except ValueError:
        return [dict(row) for row in csv.DictReader(io.StringIO(text))]
    if not isinstance(data, list):
        return []
    return [row for row in data if isinstance(row, dict)]


class MovebankSource(SourceAdapter):
    name = "movebank"
    default_base_url = "https://www.movebank.org/movebank/service/direct-read"
    probe_name = "Ciconia ciconia"

    async def _rows(self, params: dict[str, Any]) -> list[dict[str, Any]]:
        text = await self._get_text("", params=params)
        return parse_rows(text)

    @cached(ttl="migration", empty=list)
    async def search_studies(self, term: str) -> list[MigrationStudy]:
        """Studies with publicly visible data matching a taxon or study name."""
        rows = await self._rows(
            {"entity_type": "study", "i_can_see_data": "true", "search_term": term}
        )
        studies = []
        for row in rows:
            try:
                studies.append(MigrationStudy.model_validate(row))
            except ValidationError:
                continue
        return studies

    fetch_by_name = search_studies

    @cached(ttl="migration", empty=list)
    async def fetch_individuals(self, study_id: int) -> list[str]:
        """Local identifiers of the tagged animals in a study."""
        rows = await self._rows({"entity_type": "individual", "study_id": study_id})
        identifiers = []
        for row in rows:
            identifier = row.get("individual_local_identifier") or row.get("local_identifier")
            if identifier:
                identifiers.append(str(identifier))
        return identifiers

    @cached(ttl="migration", empty=list)
    async def fetch_locations(
        self, study_id: int, individual: str | None = None, limit: int = 1000
    ) -> list[MigrationPoint]:
        """GPS fixes for a study, optionally narrowed to one individual.

        Args:
            study_id: Movebank study id
            individual: Local identifier of one tagged animal
            limit: Maximum number of points kept, in upstream order

        Returns:
            Points with both coordinates present
        """
        rows = await self._rows(
            {
                "entity_type": "event",
                "study_id": study_id,
                "sensor_type_id": GPS_SENSOR_TYPE_ID,
                "individual_local_identifier": individual,
            }
        )
        points = []
        for row in rows:
            if row.get("location_lat") in (None, "") or row.get("location_long") in (None, ""):
                continue
            try:
                points.append(MigrationPoint.model_validate(row))
            except ValidationError:
                continue
            if len(points) >= limit:
                break
        return points


def _haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def migration_distance_km(points: list[MigrationPoint]) -> int:
    """Length of a track in whole kilometres, summed point to point."""
    total = 0.0
    for prev, curr in zip(points, points[1:]):
        total += _haversine_km(prev.latitude, prev.longitude, curr.latitude, curr.longitude)
    return round(total)


def migration_bounds(points: list[MigrationPoint]) -> dict[str, float] | None:
    """Bounding box of a track, None for an empty track."""
    if not points:
        return None
    latitudes = [p.latitude for p in points]
    longitudes = [p.longitude for p in points]
    return {
        "min_lat": min(latitudes),
        "max_lat": max(latitudes),
        "min_lng": min(longitudes),
        "max_lng": max(longitudes),
    }
