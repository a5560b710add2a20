import re
import time
from collections.abc import Callable

import structlog

from external_events.exceptions import IngestError
from external_events.fetcher import PageFetcher
from external_events.models import Event
from external_events.sources.varna_parser import absolutize_url, is_decorative_image

logger = structlog.get_logger(__name__)

MAX_DETAIL_FETCHES = 5
DETAIL_DELAY = 0.2

# Priority order: dedicated event image, main image, any image file.
DETAIL_IMAGE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(
        r"<img[^>]+class=\"[^\"]*event[^\"]*\"[^>]+src=[\"']([^\"']+)[\"']",
        re.IGNORECASE,
    ),
    re.compile(
        r"<img[^>]+class=\"[^\"]*main[^\"]*\"[^>]+src=[\"']([^\"']+)[\"']",
        re.IGNORECASE,
    ),
    re.compile(r"<img[^>]+src=[\"']([^\"']+\.(?:jpg|jpeg|png|webp))[\"']", re.IGNORECASE),
)


def find_detail_image(html: str) -> str | None:
    """Returns the best image URL on an event detail page, if any."""
    for pattern in DETAIL_IMAGE_PATTERNS:
        match = pattern.search(html)
        if not match:
            continue
        url = absolutize_url(match.group(1))
        if not is_decorative_image(url):
            return url
    return None


class DetailImageEnricher:
    """Backfills missing images from the events' own detail pages.

    Only a handful of detail pages are visited per crawl. A missing image is
    an acceptable result, so every failure is logged and ignored.
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        limit: int = MAX_DETAIL_FETCHES,
        delay: float = DETAIL_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.fetcher = fetcher
        self.limit = limit
        self.delay = delay
        self.sleep = sleep

    def enrich(self, events: list[Event]) -> list[Event]:
        """Sets ``image_url`` in place for up to ``limit`` eligible events.

        Args:
            events: Parsed events, in listing order.

        Returns:
            The same list, for chaining.
        """
        candidates = [e for e in events if not e.image_url and e.website_url][
            : self.limit
        ]

        for index, event in enumerate(candidates):
            if index:
                self.sleep(self.delay)
            try:
                html = self.fetcher.fetch(event.website_url)
                image_url = find_detail_image(html)
            except IngestError as e:
                logger.warning("detail_image_failed", title=event.title, **e.to_dict())
                continue
            except Exception as e:
                logger.warning(
                    "detail_image_failed", title=event.title, error=str(e)
                )
                continue

            if image_url:
                event.image_url = image_url
                logger.info("detail_image_found", title=event.title, image_url=image_url)

        return events
