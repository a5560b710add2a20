import time
from collections.abc import Callable

import structlog

from external_events.exceptions import TransportError
from external_events.fetcher import PageFetcher
from external_events.models import Event
from external_events.pagination import discover_total_pages
from external_events.sources.base_source import BaseSource
from external_events.sources.detail_images import DetailImageEnricher
from external_events.sources.varna_parser import VarnaListingParser
from external_events.utils.date_and_time import Clock, utc_now

logger = structlog.get_logger(__name__)

BASE_URL = "https://visit.varna.bg/bg"
PAGE_DELAY = 0.3
# Stop after this many failed or empty pages in a row
MAX_CONSECUTIVE_FAILURES = 2
# Anything shorter is an error page or the end of the listing
MIN_PAGE_LENGTH = 1000


class VarnaSource(BaseSource):
    """Crawls the visit.varna.bg event listing, page by page."""

    name = "varna"

    def __init__(
        self,
        fetcher: PageFetcher | None = None,
        parser: VarnaListingParser | None = None,
        enricher: DetailImageEnricher | None = None,
        base_url: str = BASE_URL,
        page_delay: float = PAGE_DELAY,
        clock: Clock = utc_now,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initializes the VarnaSource.

        Args:
            fetcher: Page fetcher; a default cloudscraper-backed one if omitted.
            parser: Listing parser; one using *clock* if omitted.
            enricher: Detail image enricher sharing the fetcher if omitted.
            base_url: Root of the Bulgarian site section.
            page_delay: Seconds to wait before each page after the first.
            clock: Time source for the past-event filters.
            sleep: Sleep function, replaceable in tests.
        """
        self.fetcher = fetcher or PageFetcher()
        self.parser = parser or VarnaListingParser(clock=clock)
        self.enricher = enricher or DetailImageEnricher(self.fetcher, sleep=sleep)
        self.base_url = base_url.rstrip("/")
        self.page_delay = page_delay
        self.sleep = sleep

    @property
    def first_page_url(self) -> str:
        return f"{self.base_url}/event.html"

    def page_url(self, page: int) -> str:
        return f"{self.base_url}/events/{page}.html"

    def fetch_events(self) -> list[Event]:
        """Crawls all listing pages and returns their events.

        The first page must load; it drives page discovery. Later pages are
        best effort: failures and empty pages count towards an abandon
        threshold, and events already collected are kept.

        Returns:
            Parsed events from every page visited, with images backfilled
            where possible.

        Raises:
            TransportError: If the first listing page cannot be fetched.
        """
        logger.info("scraping_source", source=self.name, url=self.first_page_url)

        first_html = self.fetcher.fetch(self.first_page_url)
        total_pages = discover_total_pages(first_html)

        events = self.parser.parse(first_html)
        logger.info("page_parsed", page=1, total=total_pages, count=len(events))

        events.extend(self._crawl_remaining(total_pages))
        logger.info("crawl_completed", source=self.name, count=len(events))

        return self.enricher.enrich(events)

    def _crawl_remaining(self, total_pages: int) -> list[Event]:
        """Fetches pages 2..total_pages with bounded abandonment."""
        collected: list[Event] = []
        consecutive_failures = 0

        for page in range(2, total_pages + 1):
            self.sleep(self.page_delay)
            url = self.page_url(page)

            try:
                html = self.fetcher.fetch(url)
            except TransportError as e:
                consecutive_failures += 1
                logger.warning(
                    "page_fetch_failed",
                    page=page,
                    consecutive_failures=consecutive_failures,
                    **e.to_dict(),
                )
                if consecutive_failures >= MAX_CONSECUTIVE_FAILURES:
                    logger.info("crawl_abandoned", page=page, reason="errors")
                    break
                continue

            if len(html) < MIN_PAGE_LENGTH:
                logger.info("crawl_stopped", page=page, reason="short_page")
                break

            page_events = self.parser.parse(html)
            logger.info("page_parsed", page=page, total=total_pages, count=len(page_events))

            if page_events:
                consecutive_failures = 0
                collected.extend(page_events)
                continue

            consecutive_failures += 1
            if consecutive_failures >= MAX_CONSECUTIVE_FAILURES:
                logger.info("crawl_abandoned", page=page, reason="empty_pages")
                break

        return collected
