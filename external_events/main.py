import json
import logging
import sys
from datetime import timedelta

import click
import structlog

from external_events.config import Settings
from external_events.exceptions import ConfigurationError, IngestError
from external_events.pipeline import IngestionPipeline
from external_events.storage import CacheStore

logger = structlog.get_logger(__name__)


def configure_logging(level: str) -> None:
    """Sets up structlog with a level filter, logging to stderr."""
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise click.BadParameter(f"Unknown log level: {level}", param_hint="--log-level")

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def _build_store(settings: Settings, cache_file: str, with_refresher: bool) -> CacheStore:
    refresher = IngestionPipeline.from_settings(settings).run if with_refresher else None
    return CacheStore(
        cache_file,
        refresher=refresher,
        max_age=timedelta(hours=settings.max_age_hours),
    )


@click.group()
@click.option("--cache-file", help="Path of the JSON cache file")
@click.option("--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)")
@click.pass_context
def cli(ctx: click.Context, cache_file: str | None, log_level: str | None) -> None:
    """External events ingestion for EventHub."""
    try:
        settings = Settings.from_env()
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    configure_logging(log_level or settings.log_level)
    ctx.obj = {
        "settings": settings,
        "cache_file": cache_file or settings.cache_file,
    }


@cli.command()
@click.option("--force", is_flag=True, help="Refresh even if the cache is fresh")
@click.pass_obj
def refresh(obj: dict, force: bool) -> None:
    """Refresh the cache if it is stale (or always, with --force)."""
    store = _build_store(obj["settings"], obj["cache_file"], with_refresher=True)

    if force:
        try:
            events = store.force_refresh()
        except IngestError as e:
            logger.error("force_refresh_failed", **e.to_dict())
            raise click.ClickException(e.message) from e
        except Exception as e:
            logger.error("force_refresh_failed", error=str(e))
            raise click.ClickException(str(e)) from e
    else:
        events = store.refresh_if_needed()

    if store.last_fallback is not None:
        click.echo(
            f"Refresh failed; serving {len(events)} previously cached events",
            err=True,
        )
    click.echo(f"{len(events)} external events in {store.path}")


@cli.command()
@click.option("--limit", type=int, default=None, help="Show at most N events")
@click.option("--json", "as_json", is_flag=True, help="Print events as JSON")
@click.pass_obj
def show(obj: dict, limit: int | None, as_json: bool) -> None:
    """Print the cached events without refreshing."""
    store = _build_store(obj["settings"], obj["cache_file"], with_refresher=False)
    events = store.read()
    if limit is not None:
        events = events[:limit]

    if as_json:
        click.echo(
            json.dumps([e.to_dict() for e in events], indent=2, ensure_ascii=False)
        )
        return

    for event in events:
        start = event.start_date or "?"
        click.echo(f"{start:<25} {event.title} [{event.category}]")


@cli.command()
@click.pass_obj
def status(obj: dict) -> None:
    """Report cache age, staleness and size."""
    store = _build_store(obj["settings"], obj["cache_file"], with_refresher=False)
    updated = store.last_updated()
    age = store.age()

    click.echo(f"Cache file:   {store.path}")
    click.echo(f"Last updated: {updated.isoformat() if updated else 'never'}")
    if age is not None:
        click.echo(f"Age (hours):  {age.total_seconds() / 3600:.1f}")
    click.echo(f"Stale:        {'yes' if store.is_stale() else 'no'}")
    click.echo(f"Events:       {len(store.read())}")


if __name__ == "__main__":
    cli()
