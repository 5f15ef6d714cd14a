"""Two-wave fan-out that assembles an EnrichedAnimalRecord.

The first wave only needs the animal's names. The second wave depends on
first-wave identifiers (GBIF usage key, WoRMS AphiaID) or on name
heuristics, so it starts once the first wave has settled.
"""

import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from animal_atlas.config.models import EnrichmentConfig
from animal_atlas.resolvers.images import ImageResolver
from animal_atlas.sources.ebird import EBirdSource
from animal_atlas.sources.gbif import GbifSource
from animal_atlas.sources.inaturalist import INaturalistSource
from animal_atlas.sources.iucn import IucnSource
from animal_atlas.sources.models import MigrationPoint, MigrationStudy
from animal_atlas.sources.movebank import MovebankSource
from animal_atlas.sources.wikipedia import WikipediaSource
from animal_atlas.sources.worms import WormsSource
from animal_atlas.sources.xenocanto import XenoCantoSource
from animal_atlas.species.classifier import is_likely_bird, is_migratory, slugify
from animal_atlas.species.models import EnrichedAnimalRecord, Taxonomy
from animal_atlas.utils.concurrency import SettledResults, all_settled, with_timeout

logger = logging.getLogger(__name__)


def _epoch_ms() -> int:
    return int(time.time() * 1000)


def _present(value: Any) -> Any:  # noqa: ANN401
    """Map "nothing found" to None so an empty branch leaves its field unset."""
    if value is None:
        return None
    if isinstance(value, list | dict) and not value:
        return None
    return value


class EnrichmentOrchestrator:
    """Fan a name out to every auxiliary source and merge what comes back."""

    def __init__(
        self,
        wikipedia: WikipediaSource,
        images: ImageResolver,
        iucn: IucnSource,
        gbif: GbifSource,
        xeno_canto: XenoCantoSource,
        worms: WormsSource,
        inaturalist: INaturalistSource,
        movebank: MovebankSource,
        ebird: EBirdSource,
        config: EnrichmentConfig | None = None,
        observation_timeout: float | None = None,
        clock: Callable[[], int] = _epoch_ms,
    ):
        self.wikipedia = wikipedia
        self.images = images
        self.iucn = iucn
        self.gbif = gbif
        self.xeno_canto = xeno_canto
        self.worms = worms
        self.inaturalist = inaturalist
        self.movebank = movebank
        self.ebird = ebird
        self.config = config or EnrichmentConfig()
        self.observation_timeout = observation_timeout
        self._clock = clock

    async def enrich(self, name: str, scientific_name: str = "") -> EnrichedAnimalRecord | None:
        """Build an enriched record from every source that answers.

        Failed, empty and inapplicable lookups leave their field None; the
        record is still returned. Lookups keyed by scientific name are skipped
        when none is known.

        Args:
            name: Common name
            scientific_name: Scientific name, may be empty

        Returns:
            The enriched record, or None for a blank name
        """
        if not name or not name.strip():
            return None

        name = name.strip()
        scientific_name = (scientific_name or "").strip()

        first = await all_settled(self._first_wave(name, scientific_name))
        gbif_species = _present(first.get("gbif_species"))
        marine_taxon = _present(first.get("marine_taxon"))

        second = await all_settled(
            self._second_wave(name, scientific_name, gbif_species is not None, marine_taxon)
        )
        study, track = second.get("migration") or (None, None)

        record = EnrichedAnimalRecord(
            id=f"{slugify(name)}-{self._clock()}",
            name=name,
            taxonomy=Taxonomy(scientific_name=scientific_name),
            wikipedia=_present(first.get("wikipedia")),
            images=first.get("images") or [],
            conservation_status=_present(first.get("conservation_status")),
            gbif_species=gbif_species,
            sounds=_present(first.get("sounds")),
            marine_taxon=marine_taxon,
            inat_taxon=_present(first.get("inat_taxon")),
            occurrences=_present(second.get("occurrences")),
            marine_distribution=_present(second.get("marine_distribution")),
            marine_vernacular=_present(second.get("marine_vernacular")),
            migration_study=study,
            migration_track=_present(track),
            bird_sightings=_present(second.get("bird_sightings")),
            inat_observations=_present(second.get("inat_observations")),
        )
        self._log_summary(record, first, second)
        return record

    def _first_wave(self, name: str, scientific_name: str) -> dict[str, Awaitable[Any]]:
        branches: dict[str, Awaitable[Any]] = {
            "wikipedia": self.wikipedia.fetch_by_name(name),
            "images": self.images.resolve_images(
                name, scientific_name or None, self.config.image_count
            ),
        }
        if scientific_name:
            branches["conservation_status"] = self.iucn.fetch_by_name(scientific_name)
            branches["gbif_species"] = self.gbif.match_species(scientific_name)
        if is_likely_bird(name):
            branches["sounds"] = self.xeno_canto.fetch_by_name(
                scientific_name or name, self.config.sound_count
            )
        if scientific_name:
            branches["marine_taxon"] = self.worms.fetch_by_name(scientific_name)
        branches["inat_taxon"] = self.inaturalist.fetch_by_name(name)
        return branches

    def _second_wave(
        self, name: str, scientific_name: str, has_gbif: bool, marine_taxon: Any  # noqa: ANN401
    ) -> dict[str, Awaitable[Any]]:
        branches: dict[str, Awaitable[Any]] = {}
        if has_gbif:
            branches["occurrences"] = self.gbif.fetch_occurrences(
                scientific_name, self.config.occurrence_limit
            )
        if marine_taxon is not None:
            branches["marine_distribution"] = self.worms.fetch_distribution(marine_taxon.aphia_id)
            branches["marine_vernacular"] = self.worms.fetch_vernacular_names(marine_taxon.aphia_id)
        if is_migratory(name):
            branches["migration"] = self.fetch_migration(name, scientific_name)
        branches["bird_sightings"] = self.ebird.fetch_by_name(name)
        branches["inat_observations"] = self._inat_observations(scientific_name or name)
        return branches

    async def _inat_observations(self, taxon_name: str) -> list[dict[str, Any]]:
        request = self.inaturalist.fetch_observations(
            taxon_name, self.config.inat_observation_limit
        )
        if self.observation_timeout is None:
            return await request
        return await with_timeout(request, self.observation_timeout, [])

    async def fetch_migration(
        self, name: str, scientific_name: str = ""
    ) -> tuple[MigrationStudy | None, list[MigrationPoint]]:
        """Track of the first tagged individual in the first matching study.

        Returns:
            (study, points); (None, []) when no study matches
        """
        studies = await self.movebank.search_studies(scientific_name or name)
        if not studies:
            return None, []

        study = studies[0]
        individuals = await self.movebank.fetch_individuals(study.id)
        points = await self.movebank.fetch_locations(
            study.id,
            individuals[0] if individuals else None,
            self.config.migration_point_limit,
        )
        return study, points

    async def refresh_migration(self, record: EnrichedAnimalRecord) -> EnrichedAnimalRecord:
        """Lazily fill in migration data on an existing record, in place.

        Args:
            record: Record produced by ``enrich``

        Returns:
            The same record, with migration fields replaced when a track was found
        """
        study, points = await self.fetch_migration(record.name, record.scientific_name)
        if study is not None:
            record.migration_study = study
            record.migration_track = points or None
        return record

    def _log_summary(
        self, record: EnrichedAnimalRecord, first: SettledResults, second: SettledResults
    ) -> None:
        populated = [
            field
            for field in (
                "wikipedia",
                "conservation_status",
                "gbif_species",
                "occurrences",
                "sounds",
                "marine_taxon",
                "migration_track",
                "bird_sightings",
                "inat_taxon",
                "inat_observations",
            )
            if getattr(record, field) is not None
        ]
        logger.info(
            "Enriched animal",
            extra={
                "animal": record.name,
                "images": len(record.images),
                "populated": populated,
                "failed_branches": sorted([*first.errors, *second.errors]),
            },
        )
