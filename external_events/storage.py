import contextlib
import json
import os
import tempfile
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import structlog
from jsonschema import ValidationError, validate

from external_events.exceptions import (
    CacheCorruption,
    ConfigurationError,
    StaleDataFallback,
)
from external_events.models import CacheRecordDict, Event
from external_events.utils.date_and_time import Clock, utc_now

logger = structlog.get_logger(__name__)

DEFAULT_MAX_AGE = timedelta(hours=24)

CACHE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["events"],
    "properties": {
        "events": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["id", "title"],
                "properties": {
                    "id": {"type": "string"},
                    "title": {"type": "string"},
                    "startDate": {"type": ["string", "null"]},
                    "endDate": {"type": ["string", "null"]},
                    "price": {"type": "number", "minimum": 0},
                    "location": {
                        "type": ["object", "null"],
                        "properties": {
                            "coordinates": {
                                "type": ["object", "null"],
                                "properties": {
                                    "lat": {"type": "number"},
                                    "lng": {"type": "number"},
                                },
                            },
                        },
                    },
                    "tags": {"type": ["array", "null"], "items": {"type": "string"}},
                },
            },
        },
        "lastUpdated": {"type": "string"},
        "count": {"type": "integer", "minimum": 0},
    },
}


def _as_aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo else dt.replace(tzinfo=UTC)


class CacheStore:
    """File-backed snapshot of the merged external events.

    The file holds ``{"events": [...], "lastUpdated": ..., "count": N}`` and
    is replaced as a whole on every successful refresh. A refresh runs when
    the snapshot is older than ``max_age``; if it fails, the previous
    snapshot keeps being served.

    The file is written without locking. Refreshes from several processes
    must be serialised by the caller.
    """

    def __init__(
        self,
        path: str | Path,
        refresher: Callable[[], list[Event]] | None = None,
        clock: Clock = utc_now,
        max_age: timedelta = DEFAULT_MAX_AGE,
    ):
        """Initializes the CacheStore.

        Args:
            path: Location of the JSON cache file.
            refresher: Callable producing a fresh merged batch, typically
                ``IngestionPipeline.run``. Without one the store is read-only.
            clock: Time source for timestamps and staleness.
            max_age: Age after which the snapshot is stale.
        """
        self.path = Path(path)
        self.refresher = refresher
        self.clock = clock
        self.max_age = max_age
        self.last_fallback: StaleDataFallback | None = None

    def _load_record(self) -> dict[str, Any] | None:
        """Loads and validates the cache file, or None if unusable."""
        if not self.path.exists():
            logger.debug("cache_missing", path=str(self.path))
            return None

        try:
            with open(self.path, encoding="utf-8") as f:
                record = json.load(f)
            validate(instance=record, schema=CACHE_SCHEMA)
        except (OSError, ValueError, ValidationError) as e:
            corruption = CacheCorruption(f"Unusable cache file: {e}", path=str(self.path))
            logger.error("cache_corrupt", **corruption.to_dict())
            return None

        return record

    def read(self) -> list[Event]:
        """Returns the cached events; ``[]`` if the file is missing or invalid."""
        record = self._load_record()
        if record is None:
            return []

        try:
            events = [Event.from_dict(e) for e in record["events"]]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            corruption = CacheCorruption(f"Invalid cached event: {e}", path=str(self.path))
            logger.error("cache_corrupt", **corruption.to_dict())
            return []

        logger.debug("cache_loaded", path=str(self.path), count=len(events))
        return events

    def write(self, events: list[Event]) -> None:
        """Atomically replaces the cache file with *events*."""
        record = CacheRecordDict(
            events=[e.to_dict() for e in events],
            lastUpdated=_as_aware(self.clock()).isoformat(),
            count=len(events),
        )

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(record, f, indent=2, ensure_ascii=False)
                f.write("\n")
            os.replace(tmp_name, self.path)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp_name)
            raise

        logger.info(
            "cache_written",
            path=str(self.path),
            count=record["count"],
            last_updated=record["lastUpdated"],
        )

    def last_updated(self) -> datetime | None:
        """Timestamp of the current snapshot, or None if there is none."""
        record = self._load_record()
        if record is None or not record.get("lastUpdated"):
            return None
        try:
            return _as_aware(datetime.fromisoformat(record["lastUpdated"]))
        except ValueError:
            logger.warning("cache_timestamp_invalid", value=record["lastUpdated"])
            return None

    def age(self) -> timedelta | None:
        updated = self.last_updated()
        if updated is None:
            return None
        return _as_aware(self.clock()) - updated

    def is_stale(self) -> bool:
        """True if the snapshot is absent, undated or older than ``max_age``."""
        age = self.age()
        if age is None:
            logger.info("cache_stale", path=str(self.path), reason="no_snapshot")
            return True

        stale = age > self.max_age
        logger.info(
            "cache_stale" if stale else "cache_fresh",
            path=str(self.path),
            age_hours=round(age.total_seconds() / 3600, 1),
        )
        return stale

    def refresh_if_needed(self) -> list[Event]:
        """Refreshes a stale snapshot; otherwise serves the cached one.

        Never raises: when the refresh fails, the last good snapshot (possibly
        empty) is returned and the failure is recorded in ``last_fallback``.
        """
        try:
            if not self.is_stale():
                return self.read()
            return self.force_refresh()
        except Exception as e:
            events = self.read()
            fallback = StaleDataFallback(
                "Refresh failed, serving previously cached events",
                path=str(self.path),
                served=len(events),
                cause=e,
            )
            self.last_fallback = fallback
            logger.warning("stale_data_fallback", **fallback.to_dict())
            return events

    def force_refresh(self) -> list[Event]:
        """Runs the refresher and writes its result, ignoring the cache age.

        Raises:
            ConfigurationError: If the store has no refresher.
            Exception: Whatever the refresher raises.
        """
        if self.refresher is None:
            raise ConfigurationError(
                "CacheStore has no refresher configured", parameter="refresher"
            )

        events = self.refresher()
        self.write(events)
        self.last_fallback = None
        return events
