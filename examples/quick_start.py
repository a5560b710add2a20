#!/usr/bin/env python3
"""Quick start example for the external events pipeline.

Serves the cached external events the way a request handler would: the
cache file is refreshed at most once a day, and repeated calls within a few
minutes are answered from memory.

Set ALLEVENTS_API_KEY to include AllEvents results as well.
"""

from datetime import timedelta

from external_events.config import Settings
from external_events.pipeline import IngestionPipeline
from external_events.session_cache import SessionCache
from external_events.storage import CacheStore


def main() -> None:
    """Load the external events twice and print the first few."""
    settings = Settings.from_env()
    store = CacheStore(
        "example_external_events.json",
        refresher=IngestionPipeline.from_settings(settings).run,
        max_age=timedelta(hours=settings.max_age_hours),
    )
    events = SessionCache(store.refresh_if_needed, ttl=timedelta(minutes=5))

    first = events.get()
    if store.last_fallback is not None:
        print(f"Refresh failed, serving {store.last_fallback.served} cached events")
    print(f"Loaded {len(first)} external events")

    # Served from memory, the cache file is not read again
    for event in events.get()[:5]:
        print(f"  {event.start_date}  {event.title}  ({event.location.city})")


if __name__ == "__main__":
    main()
