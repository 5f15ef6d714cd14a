"""API Ninjas animals endpoint, the primary facts source."""

import logging
from typing import Any

from pydantic import ValidationError

from animal_atlas.sources.base import SourceAdapter
from animal_atlas.species.models import AnimalRecord
from animal_atlas.utils.cache import cached

logger = logging.getLogger(__name__)


class ApiNinjasSource(SourceAdapter):
    """Taxonomy, locations and characteristics by common name.

    The free tier rate-limits aggressively, so requests retry with backoff.
    """

    name = "api_ninjas"
    default_base_url = "https://api.api-ninjas.com/v1"
    requires_key = True
    retryable = True
    probe_name = "Lion"

    def auth_headers(self) -> dict[str, str]:
        return {"X-Api-Key": self.api_key}

    @cached(ttl="animal_data", empty=list)
    async def fetch_by_name(self, name: str) -> list[AnimalRecord]:
        """Animals whose name matches, as returned by the upstream search.

        Args:
            name: Common name to search

        Returns:
            Parsed records; malformed entries are skipped
        """
        data = await self._get_json("animals", params={"name": name})
        return _parse_records(data)


def _parse_records(data: Any) -> list[AnimalRecord]:  # noqa: ANN401
    if not isinstance(data, list):
        return []

    records = []
    for item in data:
        if not isinstance(item, dict) or not item.get("name"):
            continue
        try:
            records.append(AnimalRecord.model_validate(item))
        except ValidationError as e:
            logger.debug("Skipping malformed animal record", extra={"error": str(e)})
    return records
