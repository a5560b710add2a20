from collections.abc import Sequence

import structlog

from external_events.event_filter import PAST_EVENT_FILTERS, apply_filters
from external_events.models import Event
from external_events.utils.date_and_time import Clock, local_today, utc_now

logger = structlog.get_logger(__name__)


class Merger:
    """Combines the per-source event lists into one batch.

    Sources are concatenated in the order given (the pipeline passes the
    crawled listings first, then the API), so on a duplicate the crawled
    copy's fields survive.
    """

    def __init__(self, clock: Clock = utc_now) -> None:
        self.clock = clock

    def merge(self, sources: Sequence[list[Event]]) -> list[Event]:
        """Concatenates, deduplicates and drops past events.

        Args:
            sources: Event lists in merge order.

        Returns:
            Events unique by ``(title, start_date)`` and by ``id``, none of
            which is over.
        """
        combined = [event for events in sources for event in events]
        unique = self.deduplicate(combined)
        self.ensure_unique_ids(unique)

        upcoming = apply_filters(unique, local_today(self.clock), PAST_EVENT_FILTERS)
        logger.info(
            "events_merged",
            combined=len(combined),
            unique=len(unique),
            upcoming=len(upcoming),
        )
        return upcoming

    @staticmethod
    def deduplicate(events: list[Event]) -> list[Event]:
        """Keeps the first event for every ``(title, start_date)`` pair."""
        seen: set[tuple[str, str | None]] = set()
        unique: list[Event] = []
        for event in events:
            key = (event.title, event.start_date)
            if key in seen:
                continue
            seen.add(key)
            unique.append(event)
        return unique

    @staticmethod
    def ensure_unique_ids(events: list[Event]) -> None:
        """Suffixes colliding ids (``_2``, ``_3``, ...) in place.

        Distinct events can share a slug id when their titles only differ
        beyond the slug length. The first occurrence keeps the bare id.
        """
        taken = {event.id for event in events}
        counts: dict[str, int] = {}
        for event in events:
            seen_times = counts.get(event.id, 0)
            counts[event.id] = seen_times + 1
            if not seen_times:
                continue

            suffix = seen_times + 1
            candidate = f"{event.id}_{suffix}"
            while candidate in taken:
                suffix += 1
                candidate = f"{event.id}_{suffix}"

            logger.debug("event_id_collision", id=event.id, new_id=candidate)
            taken.add(candidate)
            counts[event.id] = suffix
            event.id = candidate
