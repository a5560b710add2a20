"""Date-based filters shared by the listing parser, API client and merger.

Two overlapping checks exist:

``is_too_old``
    The start date lies more than one year before today. Guards against
    misparsed dates on the listing site.

``is_past_event``
    The start date is before today's local midnight and the end date is
    either missing or also before it.

They can disagree (a long-running exhibition that opened two years ago
but closes next month is "too old" yet not "past"), so callers evaluate
them through ``apply_filters`` with an explicit order. The first filter
that rejects an event decides the logged reason.
"""

from collections.abc import Callable, Iterable, Sequence
from datetime import date

import structlog

from external_events.models import Event
from external_events.utils.date_and_time import one_year_before, to_calendar_date

logger = structlog.get_logger(__name__)

EventPredicate = Callable[[Event, date], bool]


def has_no_start_date(event: Event, today: date) -> bool:
    """True when the event has no parseable start date."""
    return to_calendar_date(event.start_date) is None


def is_too_old(event: Event, today: date) -> bool:
    """True when the start date is more than one year before *today*."""
    start = to_calendar_date(event.start_date)
    if start is None:
        return False
    return start < one_year_before(today)


def is_past_event(event: Event, today: date) -> bool:
    """True when the event is over.

    An event is over when its start date is strictly before *today* and it
    either has no end date or its end date is also strictly before *today*.
    Events without a parseable start date are not considered past here;
    ``has_no_start_date`` handles them.
    """
    start = to_calendar_date(event.start_date)
    if start is None or start >= today:
        return False
    end = to_calendar_date(event.end_date)
    if end is None:
        return True
    return end < today


# Evaluation order for crawled listings.
LISTING_FILTERS: tuple[tuple[str, EventPredicate], ...] = (
    ("no_start_date", has_no_start_date),
    ("too_old", is_too_old),
    ("past", is_past_event),
)

# Evaluation order for API events and the final merge.
PAST_EVENT_FILTERS: tuple[tuple[str, EventPredicate], ...] = (
    ("no_start_date", has_no_start_date),
    ("past", is_past_event),
)


def apply_filters(
    events: Iterable[Event],
    today: date,
    filters: Sequence[tuple[str, EventPredicate]] = PAST_EVENT_FILTERS,
) -> list[Event]:
    """Drops every event rejected by one of *filters*, in order.

    Args:
        events: Events to filter.
        today: The local calendar date treated as "today".
        filters: Ordered ``(reason, predicate)`` pairs. A predicate returning
            True rejects the event.

    Returns:
        The surviving events, in their original order.
    """
    kept: list[Event] = []
    for event in events:
        reason = next((name for name, rejects in filters if rejects(event, today)), None)
        if reason is None:
            kept.append(event)
            continue
        logger.debug(
            "event_filtered",
            reason=reason,
            title=event.title,
            start_date=event.start_date,
            end_date=event.end_date,
        )
    return kept
