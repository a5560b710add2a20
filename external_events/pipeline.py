import structlog

from external_events.config import Settings
from external_events.fetcher import PageFetcher
from external_events.merger import Merger
from external_events.models import Event
from external_events.sources.allevents_source import AllEventsSource
from external_events.sources.base_source import BaseSource
from external_events.sources.varna_source import VarnaSource
from external_events.utils.date_and_time import Clock, utc_now

logger = structlog.get_logger(__name__)


class IngestionPipeline:
    """One full refresh: crawl, query the API, merge.

    The crawl source is required: if it raises (typically because the first
    listing page is unreachable) the whole run fails, so that the cache
    keeps its last good snapshot instead of being replaced by a partial one.
    The API source handles its own failures and never raises.
    """

    def __init__(
        self,
        crawl_source: BaseSource,
        api_source: BaseSource,
        merger: Merger | None = None,
    ):
        self.crawl_source = crawl_source
        self.api_source = api_source
        self.merger = merger or Merger()

    @classmethod
    def from_settings(cls, settings: Settings, clock: Clock = utc_now) -> "IngestionPipeline":
        """Builds the production pipeline from configuration."""
        fetcher = PageFetcher(timeout=settings.request_timeout)
        return cls(
            crawl_source=VarnaSource(
                fetcher=fetcher, page_delay=settings.page_delay, clock=clock
            ),
            api_source=AllEventsSource(
                api_key=settings.allevents_api_key,
                timeout=settings.request_timeout,
                clock=clock,
            ),
            merger=Merger(clock=clock),
        )

    def run(self) -> list[Event]:
        """Fetches both sources and returns the merged batch."""
        logger.info("refresh_started")

        crawled = self.crawl_source.fetch_events()
        logger.info("source_loaded", source=self.crawl_source.name, count=len(crawled))

        from_api = self.api_source.fetch_events()
        logger.info("source_loaded", source=self.api_source.name, count=len(from_api))

        merged = self.merger.merge([crawled, from_api])
        logger.info("refresh_completed", count=len(merged))
        return merged
