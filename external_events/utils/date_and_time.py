import re
from collections.abc import Callable, Sequence
from datetime import UTC, date, datetime, time, timedelta

import structlog

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]
DateStrategy = Callable[[str], datetime | None]


def utc_now() -> datetime:
    """Default clock: the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def local_today(clock: Clock = utc_now) -> date:
    """Returns today's date in the local timezone according to *clock*."""
    return clock().astimezone().date()


def _iso_strategy(text: str) -> datetime | None:
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None


def _unix_timestamp_strategy(text: str) -> datetime | None:
    if not re.fullmatch(r"\d{9,11}(\.\d+)?", text):
        return None
    try:
        return datetime.fromtimestamp(float(text), UTC)
    except (OverflowError, OSError, ValueError):
        return None


def strptime_strategy(fmt: str) -> DateStrategy:
    """Builds a strategy that parses a single ``strptime`` format."""

    def strategy(text: str) -> datetime | None:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            return None

    strategy.__name__ = f"strptime[{fmt}]"
    return strategy


# Bulgarian listing format, e.g. "05.03.2025"
LISTING_DATE_STRATEGIES: tuple[DateStrategy, ...] = (strptime_strategy("%d.%m.%Y"),)

# Order matters: the first strategy that yields a datetime wins.
DEFAULT_DATE_STRATEGIES: tuple[DateStrategy, ...] = (
    _unix_timestamp_strategy,
    _iso_strategy,
    strptime_strategy("%d.%m.%Y %H:%M"),
    strptime_strategy("%d.%m.%Y"),
    strptime_strategy("%d/%m/%Y %H:%M"),
    strptime_strategy("%d/%m/%Y"),
    strptime_strategy("%a, %d %b %Y %H:%M:%S"),
    strptime_strategy("%d %B %Y"),
)


def parse_flexible_date(
    value: str | int | float | None,
    strategies: Sequence[DateStrategy] = DEFAULT_DATE_STRATEGIES,
) -> datetime | None:
    """Parses a date from one of several representations.

    Both the listing crawler and the API client go through this function so
    that their date handling cannot drift apart.

    Args:
        value: Raw value. Numbers are treated as unix timestamps.
        strategies: Ordered parse strategies, tried until one succeeds.

    Returns:
        The parsed datetime, or None if no strategy matched.
    """
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    if not text:
        return None

    for strategy in strategies:
        parsed = strategy(text)
        if parsed is not None:
            return parsed

    logger.debug("date_unparseable", value=text[:50])
    return None


def _is_calendar_day(text: str, parsed: datetime) -> bool:
    """True when *text* names a day without a time of day."""
    return (
        parsed.tzinfo is None
        and parsed.time() == time.min
        and ":" not in text
    )


def normalize_date(
    value: str | int | float | None,
    strategies: Sequence[DateStrategy] = DEFAULT_DATE_STRATEGIES,
    date_only: bool = False,
) -> str | None:
    """Parses *value* and returns it as an ISO 8601 string.

    Values that carry no time of day, such as "2025-01-01" or "01.01.2025",
    come back as YYYY-MM-DD so that every source yields the same string for
    the same calendar day.

    Args:
        value: Raw date value.
        strategies: Ordered parse strategies.
        date_only: Always emit YYYY-MM-DD, dropping any time of day.

    Returns:
        ISO 8601 string, or None if the value could not be parsed.
    """
    parsed = parse_flexible_date(value, strategies)
    if parsed is None:
        return None
    if date_only or _is_calendar_day(str(value), parsed):
        return parsed.date().isoformat()
    return parsed.isoformat()


def to_calendar_date(value: str | None) -> date | None:
    """Returns the local calendar date of an ISO-ish string.

    Aware values are converted to the local timezone first, so that they
    compare correctly with ``local_today``.
    """
    parsed = parse_flexible_date(value)
    if parsed is None:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone()
    return parsed.date()


def one_year_before(day: date) -> date:
    try:
        return day.replace(year=day.year - 1)
    except ValueError:
        # 29 February
        return day - timedelta(days=365)


def duration_minutes(start: str | None, end: str | None) -> int | None:
    """Calculates the duration between two ISO dates in whole minutes.

    Returns:
        The duration, or None when either side is missing, unparseable, or
        the end is not strictly after the start.
    """
    start_dt = parse_flexible_date(start)
    end_dt = parse_flexible_date(end)
    if start_dt is None or end_dt is None:
        return None

    # Mixing aware and naive datetimes cannot be subtracted
    if (start_dt.tzinfo is None) != (end_dt.tzinfo is None):
        start_dt = start_dt.replace(tzinfo=None)
        end_dt = end_dt.replace(tzinfo=None)

    if end_dt <= start_dt:
        return None
    return int((end_dt - start_dt).total_seconds() // 60)
