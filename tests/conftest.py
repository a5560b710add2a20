"""Shared pytest fixtures for the external events tests."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from external_events.models import Event, Location

# Noon UTC keeps the local calendar date stable across test machine timezones.
FIXED_NOW = datetime(2025, 3, 10, 12, 0, tzinfo=UTC)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    """A clock frozen at 2025-03-10 12:00 UTC."""
    return FakeClock()


@pytest.fixture
def temp_cache_file(tmp_path: Path) -> Path:
    """Provides a temporary cache file path."""
    return tmp_path / "externalEventsStore.json"


@pytest.fixture
def make_event() -> Callable[..., Event]:
    """Builds a minimal canonical Event."""

    def _make(
        title: str = "Test Event",
        start_date: str | None = "2025-04-01",
        end_date: str | None = None,
        event_id: str | None = None,
        **kwargs,
    ) -> Event:
        return Event(
            id=event_id or f"test_{title.lower().replace(' ', '')}_{start_date}",
            title=title,
            start_date=start_date,
            end_date=end_date,
            location=kwargs.pop("location", Location(city="Варна", country="България")),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_block() -> Callable[..., str]:
    """Builds one visit.varna.bg listing block (``list-element`` + ``<hr>``)."""

    def _make(
        title: str = "Концерт на открито",
        dates: str = "15.04.2025",
        text: str = "Летен театър, ул. Приморска 1. Вход: 10 лв.",
        image: str | None = '<img src="/images/lazy.gif" data-src="/uploads/events/concert.jpg">',
        link: str | None = '<a href="/bg/event/koncert-na-otkrito.html">прочети повече</a>',
    ) -> str:
        return (
            '<div class="grid-x grid-padding-x list-element">\n'
            f'  <div class="cell large-3">{image or ""}</div>\n'
            '  <div class="cell large-9">\n'
            f"    <h2>{title}</h2>\n"
            f'    <div class="date">{dates}</div>\n'
            f'    <div class="text">{text}</div>\n'
            f"    {link or ''}\n"
            "  </div>\n"
            "</div>\n"
            "<hr>\n"
        )

    return _make


@pytest.fixture
def make_page() -> Callable[..., str]:
    """Wraps listing blocks in a page, padded past the empty-page threshold."""

    def _make(blocks: list[str], pagination: str = "") -> str:
        padding = "<!-- " + "x" * 1200 + " -->"
        return (
            "<html><head><title>Събития | Открий Варна</title></head><body>\n"
            "<h2>Събития</h2>\n"
            + "".join(blocks)
            + pagination
            + padding
            + "\n</body></html>"
        )

    return _make


@pytest.fixture
def clock_at() -> Callable[[datetime], FakeClock]:
    """Builds a clock frozen at an arbitrary instant."""
    return FakeClock
