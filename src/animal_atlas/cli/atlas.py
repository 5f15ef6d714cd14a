"""Diagnostics CLI for Animal Atlas.

Every command prints JSON on stdout; logs go to stderr. An empty result prints
"No data available" and still exits 0, since "nothing found" is a normal
outcome for a lookup.
"""

import asyncio
import json
import sys
from collections.abc import Awaitable, Callable
from typing import Any

import click
from pydantic import BaseModel

from animal_atlas.core.container import Container
from animal_atlas.core.service import AtlasService
from animal_atlas.utils.cache.decorator import is_empty
from animal_atlas.utils.structlog_configurator import configure_structlog

NO_DATA = "No data available"


def to_jsonable(value: Any) -> Any:  # noqa: ANN401
    """Convert models (and lists or dicts of them) into JSON-ready structures."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, list | tuple):
        return [to_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {key: to_jsonable(item) for key, item in value.items()}
    return value


def emit(result: Any) -> None:  # noqa: ANN401
    """Print a command result, or the no-data message for an empty one."""
    if is_empty(result):
        click.echo(NO_DATA)
        return
    click.echo(json.dumps(to_jsonable(result), indent=2, ensure_ascii=False))


async def _run_async(
    container: Container, action: Callable[[AtlasService], Awaitable[Any]]
) -> Any:  # noqa: ANN401
    """Configure logging, run one service action and close the HTTP client."""
    configure_structlog(container.config())
    service = container.atlas_service()
    try:
        return await action(service)
    finally:
        await service.aclose()


def run(obj: dict[str, Any], action: Callable[[AtlasService], Awaitable[Any]]) -> None:
    """Run an action against the service and print its result."""
    emit(asyncio.run(_run_async(obj["container"], action)))


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    help="Path to animal_atlas.yaml (default: $ANIMAL_ATLAS_CONFIG or ~/.config/animal-atlas)",
)
@click.pass_context
def cli(ctx: click.Context, config_path: str | None) -> None:
    """Animal Atlas: look up, enrich and search animals across public APIs.

    Examples:
      # Facts for one animal
      animal-atlas facts Lion

      # Everything known about an animal
      animal-atlas enrich "Snowy Owl" --scientific-name "Bubo scandiacus"

      # Which sources are reachable and configured
      animal-atlas check-sources
    """
    ctx.ensure_object(dict)
    container = ctx.obj.setdefault("container", Container())
    if config_path:
        container.config_path.override(config_path)

    try:
        container.config()
    except (ValueError, OSError) as e:
        message = f"✗ Could not load configuration: {e}"
        click.echo(click.style(message, fg="red", bold=True), err=True)
        sys.exit(1)


@cli.command()
@click.argument("name")
@click.pass_obj
def facts(obj: dict[str, Any], name: str) -> None:
    """Facts (taxonomy, locations, characteristics) for NAME."""

    async def action(service: AtlasService) -> Any:  # noqa: ANN401
        return await service.resolve_facts(name)

    run(obj, action)


@cli.command()
@click.argument("name")
@click.option("--scientific-name", default=None, help="Scientific name, tried first")
@click.option("--count", default=6, show_default=True, type=click.IntRange(min=1))
@click.pass_obj
def images(obj: dict[str, Any], name: str, scientific_name: str | None, count: int) -> None:
    """Up to COUNT images of NAME from the first image source that has any."""

    async def action(service: AtlasService) -> Any:  # noqa: ANN401
        return await service.resolve_images(name, scientific_name, count)

    run(obj, action)


@cli.command()
@click.argument("name")
@click.option("--scientific-name", default="", help="Scientific name for taxon lookups")
@click.pass_obj
def enrich(obj: dict[str, Any], name: str, scientific_name: str) -> None:
    """Enriched record for NAME, combining every auxiliary source."""

    async def action(service: AtlasService) -> Any:  # noqa: ANN401
        return await service.enrich(name, scientific_name)

    run(obj, action)


@cli.command()
@click.argument("query")
@click.option("--limit", default=20, show_default=True, type=click.IntRange(min=1))
@click.pass_obj
def search(obj: dict[str, Any], query: str, limit: int) -> None:
    """Search every source for QUERY, deduplicated and ranked."""

    async def action(service: AtlasService) -> Any:  # noqa: ANN401
        return await service.search(query, limit)

    run(obj, action)


@cli.command("random")
@click.pass_obj
def random_animal(obj: dict[str, Any]) -> None:
    """Facts for a random animal from the curated list."""

    async def action(service: AtlasService) -> Any:  # noqa: ANN401
        return await service.get_random_record()

    run(obj, action)


@cli.command()
@click.pass_obj
def daily(obj: dict[str, Any]) -> None:
    """The enriched animal of the day."""

    async def action(service: AtlasService) -> Any:  # noqa: ANN401
        return await service.get_animal_of_the_day()

    run(obj, action)


@cli.command()
@click.argument("term")
@click.option("--limit", default=5, show_default=True, type=click.IntRange(min=1))
@click.pass_obj
def suggest(obj: dict[str, Any], term: str, limit: int) -> None:
    """Spelling correction and completions for TERM."""

    async def action(service: AtlasService) -> Any:  # noqa: ANN401
        return {
            "did_you_mean": service.did_you_mean(term),
            "completions": service.autocomplete(term, limit),
        }

    run(obj, action)


@cli.command("cache-stats")
@click.pass_obj
def cache_stats(obj: dict[str, Any]) -> None:
    """Entry count, size and oldest/largest entries of the cache."""

    async def action(service: AtlasService) -> Any:  # noqa: ANN401
        return service.cache_stats()

    run(obj, action)


@cli.command("clear-cache")
@click.option("--prefix", default=None, help="Only remove keys starting with this prefix")
@click.pass_obj
def clear_cache(obj: dict[str, Any], prefix: str | None) -> None:
    """Remove cached entries. Preferences and recent searches are kept."""

    async def action(service: AtlasService) -> Any:  # noqa: ANN401
        return {"removed": service.clear_cache(prefix)}

    run(obj, action)


@cli.command("check-sources")
@click.option("--name", default=None, help="Animal to look up (default: a per-source probe)")
@click.pass_obj
def check_sources(obj: dict[str, Any], name: str | None) -> None:
    """Probe every source directly, bypassing the cache."""

    async def action(service: AtlasService) -> Any:  # noqa: ANN401
        return await service.diagnose_sources(name)

    run(obj, action)


def main() -> None:
    """Entry point for the Animal Atlas CLI."""
    cli(obj={})
