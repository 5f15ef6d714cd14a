"""IUCN Red List conservation assessments."""

from typing import Any
from urllib.parse import quote

from animal_atlas.sources.base import SourceAdapter
from animal_atlas.sources.models import ConservationStatus
from animal_atlas.utils.cache import cached


def _result_list(data: Any) -> list[dict[str, Any]]:  # noqa: ANN401
    if not isinstance(data, dict):
        return []
    return [item for item in data.get("result") or [] if isinstance(item, dict)]


class IucnSource(SourceAdapter):
    """Red List category and threats by scientific name. The token goes in the query string."""

    name = "iucn"
    default_base_url = "https://apiv3.iucnredlist.org/api/v3"
    requires_key = True

    def auth_params(self) -> dict[str, str]:
        return {"token": self.api_key}

    @cached(ttl="animal_data")
    async def fetch_by_name(self, scientific_name: str) -> ConservationStatus | None:
        """Current assessment for a species, None when it has not been assessed."""
        data = await self._get_json(f"species/{quote(scientific_name.strip(), safe='')}")
        results = _result_list(data)
        if not results:
            return None
        return ConservationStatus.model_validate(results[0])

    @cached(ttl="reference", empty=list)
    async def fetch_threats(self, scientific_name: str) -> list[str]:
        """Threat titles recorded against the species' assessment."""
        status = await self.fetch_by_name(scientific_name)
        if status is None or status.taxon_id is None:
            return []

        data = await self._get_json(f"threats/species/id/{status.taxon_id}")
        threats = []
        for item in _result_list(data):
            title = item.get("title") or item.get("code")
            if title:
                threats.append(str(title))
        return threats
