import cloudscraper
import structlog
from requests.exceptions import RequestException

from external_events.exceptions import TransportError

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT = 30.0


class PageFetcher:
    """Fetches raw HTML pages from the listing site.

    One GET per call, no retries: the crawl loop decides what to do with a
    failed page.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, session=None):
        """
        Initialize the PageFetcher with cloudscraper to get past bot checks.

        :param timeout: Request timeout in seconds.
        :param session: Optional requests-compatible session (mainly for tests).
        """
        self.session = session or cloudscraper.create_scraper()
        self.timeout = timeout

        # Prefer the Bulgarian version of the site
        self.session.headers.update({"Accept-Language": "bg-BG,bg;q=0.9,en;q=0.5"})

    def fetch(self, url: str) -> str:
        """
        Perform a single GET request and return the body as text.

        :param url: Target URL.
        :return: The HTML text.
        :raises TransportError: On network failure or a non-2xx status.
        """
        logger.info("fetching_url", url=url)
        try:
            response = self.session.get(url, timeout=self.timeout)
        except RequestException as e:
            logger.warning("fetch_failed", url=url, error=str(e))
            raise TransportError(f"Failed to fetch {url}: {e}", url=url) from e

        status = response.status_code
        if not 200 <= status < 300:
            logger.warning("fetch_bad_status", url=url, status_code=status)
            raise TransportError(
                f"Failed to fetch {url}: HTTP {status}", url=url, status_code=status
            )

        return response.text
