"""Optional AllEvents API source.

The API is only queried when an API key is configured. It can never block
the merge: every failure is logged and the source contributes no events.
"""

from typing import Any

import requests
import structlog

from external_events.categories import categorize
from external_events.event_filter import PAST_EVENT_FILTERS, apply_filters
from external_events.exceptions import IngestError, ParseError, TransportError
from external_events.models import Coordinates, Event, Location
from external_events.sources.base_source import BaseSource
from external_events.utils.date_and_time import (
    Clock,
    duration_minutes,
    local_today,
    normalize_date,
    utc_now,
)
from external_events.utils.identity import stable_event_id
from external_events.utils.prices import parse_price

logger = structlog.get_logger(__name__)

API_URL = "https://allevents.in/api/v2/events"
COUNTRY_CODE = "bg"
COUNTRY = "България"
PAGE_SIZE = 30
DEFAULT_TIMEOUT = 30.0
ID_PREFIX = "ext"
UNTITLED = "Без заглавие"


def _venue(item: dict[str, Any]) -> dict[str, Any] | None:
    venue = item.get("venue")
    return venue if isinstance(venue, dict) and venue else None


def _coordinates(venue: dict[str, Any] | None) -> Coordinates | None:
    if not venue:
        return None
    lat, lng = venue.get("latitude"), venue.get("longitude")
    try:
        return Coordinates(lat=float(lat), lng=float(lng))
    except (TypeError, ValueError):
        return None


def infer_is_online(item: dict[str, Any]) -> bool:
    """No venue, or "online" in the venue name or description."""
    venue = _venue(item)
    if venue is None:
        return True
    venue_name = str(venue.get("name") or "").lower()
    description = str(item.get("description") or "").lower()
    return "online" in venue_name or "online" in description


class AllEventsSource(BaseSource):
    """Client for the AllEvents events API."""

    name = "allevents"

    def __init__(
        self,
        api_key: str | None,
        session: requests.Session | None = None,
        api_url: str = API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        clock: Clock = utc_now,
    ):
        self.api_key = api_key
        self.session = session or requests.Session()
        self.api_url = api_url
        self.timeout = timeout
        self.clock = clock

    def fetch_events(self) -> list[Event]:
        """Fetches upcoming events, or ``[]`` if unconfigured or failing."""
        if not self.api_key:
            logger.info("source_disabled", source=self.name, reason="no_api_key")
            return []

        try:
            items = self._request_items()
            events = self._normalize_all(items)
        except IngestError as e:
            logger.error("source_failed", source=self.name, **e.to_dict())
            return []

        valid = apply_filters(events, local_today(self.clock), PAST_EVENT_FILTERS)
        logger.info("events_found", source=self.name, count=len(valid), total=len(events))
        return valid

    def _request_items(self) -> list[Any]:
        """Performs the API call and returns the raw ``events`` list.

        Raises:
            TransportError: On network failure or a non-2xx status.
            ParseError: If the body is not JSON or has no events list.
        """
        params = {
            "country": COUNTRY_CODE,
            "page": 1,
            "max": PAGE_SIZE,
            "date": "Future",
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

        try:
            response = self.session.get(
                self.api_url, params=params, headers=headers, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise TransportError(
                f"AllEvents API request failed: {e}", url=self.api_url
            ) from e

        if not 200 <= response.status_code < 300:
            raise TransportError(
                f"AllEvents API failed: HTTP {response.status_code}",
                url=self.api_url,
                status_code=response.status_code,
                error_data={"body": response.text[:200]},
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ParseError(
                "AllEvents API returned invalid JSON",
                source=self.name,
                snippet=response.text,
            ) from e

        if not isinstance(payload, dict):
            raise ParseError(
                "AllEvents API response is not an object",
                source=self.name,
                snippet=str(payload),
            )

        events = payload.get("events")
        if events is None:
            logger.info("api_no_events", source=self.name)
            return []
        if not isinstance(events, list):
            raise ParseError(
                "AllEvents API 'events' is not a list",
                source=self.name,
                field="events",
                snippet=str(events),
            )
        return events

    def _normalize_all(self, items: list[Any]) -> list[Event]:
        events: list[Event] = []
        for item in items:
            if not isinstance(item, dict):
                raise ParseError(
                    "AllEvents API event is not an object",
                    source=self.name,
                    snippet=str(item),
                )
            try:
                events.append(self.normalize(item))
            except (AttributeError, TypeError, ValueError) as e:
                raise ParseError(
                    f"Unexpected AllEvents event shape: {e}",
                    source=self.name,
                    snippet=str(item),
                ) from e
        return events

    def normalize(self, item: dict[str, Any]) -> Event:
        """Maps one vendor event onto the canonical Event."""
        venue = _venue(item) or {}
        title = str(item.get("eventname") or item.get("title") or UNTITLED).strip()
        description = str(item.get("description") or "")

        start_date = normalize_date(item.get("start_time"))
        end_date = normalize_date(item.get("end_time"))

        vendor_id = item.get("event_id") or item.get("id")
        event_id = (
            f"{ID_PREFIX}_{vendor_id}"
            if vendor_id not in (None, "")
            else stable_event_id(ID_PREFIX, title, start_date)
        )

        return Event(
            id=event_id,
            title=title,
            description=description,
            category=categorize(str(item.get("category") or "")),
            location=Location(
                address=venue.get("address") or item.get("address"),
                city=venue.get("city") or item.get("city"),
                country=COUNTRY,
                coordinates=_coordinates(venue),
            ),
            start_date=start_date,
            end_date=end_date,
            duration_minutes=duration_minutes(start_date, end_date),
            image_url=item.get("thumb_url") or item.get("banner_url") or item.get("image_url"),
            website_url=item.get("url") or item.get("event_url"),
            price=parse_price(item.get("price")),
            is_online=infer_is_online(item),
            is_external=True,
            created_at=normalize_date(item.get("created")) or self.clock().isoformat(),
        )
