"""Tests for the file-backed event cache."""

import json
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from external_events.exceptions import ConfigurationError, StaleDataFallback, TransportError
from external_events.merger import Merger
from external_events.pipeline import IngestionPipeline
from external_events.sources.allevents_source import AllEventsSource
from external_events.sources.varna_source import VarnaSource
from external_events.storage import CacheStore


def _write_snapshot(path, events, last_updated) -> None:
    record = {
        "events": [e.to_dict() for e in events],
        "lastUpdated": last_updated.isoformat(),
        "count": len(events),
    }
    path.write_text(json.dumps(record, ensure_ascii=False), encoding="utf-8")


@pytest.fixture
def three_events(make_event):
    return [
        make_event(title="Концерт", start_date="2025-04-01"),
        make_event(title="Изложба", start_date="2025-04-02"),
        make_event(title="Маратон", start_date="2025-04-03"),
    ]


def test_missing_file_reads_empty(temp_cache_file, clock) -> None:
    store = CacheStore(temp_cache_file, clock=clock)
    assert store.read() == []
    assert store.last_updated() is None
    assert store.is_stale()


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        "[]",
        '{"events": "nope"}',
        '{"events": [{"title": "no id"}]}',
        '{"events": [{"id": "x", "title": "t", "price": -1}]}',
        '{"events": [{"id": "x", "title": "t", "location": "Varna"}]}',
        '{"events": [{"id": "x", "title": "t", "location": ["Varna"]}]}',
        '{"events": [{"id": "x", "title": "t", "location": {"coordinates": "43,27"}}]}',
    ],
    ids=[
        "invalid_json",
        "not_an_object",
        "events_not_a_list",
        "missing_id",
        "negative_price",
        "location_string",
        "location_list",
        "coordinates_string",
    ],
)
def test_corrupt_file_reads_empty(temp_cache_file, clock, content) -> None:
    temp_cache_file.write_text(content, encoding="utf-8")
    assert CacheStore(temp_cache_file, clock=clock).read() == []


def test_write_then_read(temp_cache_file, clock, three_events) -> None:
    store = CacheStore(temp_cache_file, clock=clock)
    store.write(three_events)

    assert store.read() == three_events
    assert store.last_updated() == clock()

    record = json.loads(temp_cache_file.read_text(encoding="utf-8"))
    assert record["count"] == 3
    assert record["lastUpdated"] == clock().isoformat()
    assert record["events"][0]["title"] == "Концерт"
    assert "startDate" in record["events"][0]


def test_write_is_readable_unicode(temp_cache_file, clock, three_events) -> None:
    """Cyrillic is stored as-is, not escaped."""
    CacheStore(temp_cache_file, clock=clock).write(three_events)
    assert "Концерт" in temp_cache_file.read_text(encoding="utf-8")


def test_write_leaves_no_temp_files(temp_cache_file, clock, three_events) -> None:
    CacheStore(temp_cache_file, clock=clock).write(three_events)
    assert [p.name for p in temp_cache_file.parent.iterdir()] == [temp_cache_file.name]


def test_staleness_threshold(temp_cache_file, clock, three_events) -> None:
    store = CacheStore(temp_cache_file, clock=clock)
    store.write(three_events)

    clock.advance(hours=24)
    assert not store.is_stale()

    clock.advance(seconds=1)
    assert store.is_stale()


def test_fresh_cache_is_served_without_refresh(temp_cache_file, clock, three_events) -> None:
    _write_snapshot(temp_cache_file, three_events, clock() - timedelta(hours=1))
    refresher = MagicMock()

    events = CacheStore(temp_cache_file, refresher=refresher, clock=clock).refresh_if_needed()

    assert events == three_events
    refresher.assert_not_called()


def test_stale_cache_is_refreshed(temp_cache_file, clock, three_events, make_event) -> None:
    _write_snapshot(temp_cache_file, three_events, clock() - timedelta(hours=25))
    fresh = [make_event(title="Ново събитие", start_date="2025-05-01")]
    refresher = MagicMock(return_value=fresh)
    store = CacheStore(temp_cache_file, refresher=refresher, clock=clock)

    assert store.refresh_if_needed() == fresh
    assert store.read() == fresh
    assert store.last_updated() == clock()
    assert store.last_fallback is None
    refresher.assert_called_once()


def test_failed_refresh_serves_stale_snapshot(temp_cache_file, clock, three_events) -> None:
    _write_snapshot(temp_cache_file, three_events, clock() - timedelta(hours=25))
    error = TransportError("HTTP 503", url="https://visit.varna.bg/bg/event.html")
    refresher = MagicMock(side_effect=error)
    store = CacheStore(temp_cache_file, refresher=refresher, clock=clock)

    events = store.refresh_if_needed()

    assert events == three_events
    assert isinstance(store.last_fallback, StaleDataFallback)
    assert store.last_fallback.served == 3
    assert store.last_fallback.cause is error
    # The stale snapshot is left untouched
    assert store.last_updated() == clock() - timedelta(hours=25)


def test_failed_refresh_without_snapshot(temp_cache_file, clock) -> None:
    store = CacheStore(
        temp_cache_file, refresher=MagicMock(side_effect=RuntimeError("boom")), clock=clock
    )
    assert store.refresh_if_needed() == []
    assert store.last_fallback.served == 0


def test_force_refresh_ignores_age(temp_cache_file, clock, three_events, make_event) -> None:
    _write_snapshot(temp_cache_file, three_events, clock())
    fresh = [make_event(title="Ново събитие")]
    store = CacheStore(temp_cache_file, refresher=MagicMock(return_value=fresh), clock=clock)

    assert store.force_refresh() == fresh
    assert store.read() == fresh


def test_force_refresh_propagates_errors(temp_cache_file, clock) -> None:
    store = CacheStore(
        temp_cache_file, refresher=MagicMock(side_effect=RuntimeError("boom")), clock=clock
    )
    with pytest.raises(RuntimeError):
        store.force_refresh()
    assert not temp_cache_file.exists()


def test_force_refresh_requires_refresher(temp_cache_file, clock) -> None:
    with pytest.raises(ConfigurationError):
        CacheStore(temp_cache_file, clock=clock).force_refresh()


def test_custom_max_age(temp_cache_file, clock, three_events) -> None:
    _write_snapshot(temp_cache_file, three_events, clock() - timedelta(hours=2))
    store = CacheStore(temp_cache_file, clock=clock, max_age=timedelta(hours=1))
    assert store.is_stale()


def test_undated_snapshot_is_stale(temp_cache_file, clock, three_events) -> None:
    record = {"events": [e.to_dict() for e in three_events]}
    temp_cache_file.write_text(json.dumps(record), encoding="utf-8")
    store = CacheStore(temp_cache_file, clock=clock)

    assert store.is_stale()
    assert len(store.read()) == 3


def test_malformed_fresh_snapshot_does_not_raise(temp_cache_file, clock) -> None:
    """A fresh file with a bad event shape reads as empty, also when refreshing."""
    record = {
        "events": [{"id": "a", "title": "t", "location": "Varna"}],
        "lastUpdated": clock().isoformat(),
        "count": 1,
    }
    temp_cache_file.write_text(json.dumps(record), encoding="utf-8")
    store = CacheStore(temp_cache_file, refresher=MagicMock(return_value=[]), clock=clock)

    assert store.read() == []
    assert store.refresh_if_needed() == []


def test_fresh_cache_makes_no_network_calls(temp_cache_file, clock, three_events) -> None:
    """With the real pipeline wired in, a fresh cache touches neither source."""
    _write_snapshot(temp_cache_file, three_events, clock() - timedelta(hours=23))
    fetcher = MagicMock()
    session = MagicMock()
    pipeline = IngestionPipeline(
        crawl_source=VarnaSource(fetcher=fetcher, clock=clock, sleep=MagicMock()),
        api_source=AllEventsSource(api_key="secret", session=session, clock=clock),
        merger=Merger(clock=clock),
    )
    store = CacheStore(temp_cache_file, refresher=pipeline.run, clock=clock)

    assert store.refresh_if_needed() == three_events
    assert fetcher.fetch.call_count == 0
    assert session.get.call_count == 0
