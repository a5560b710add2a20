"""Heuristic extraction of events from visit.varna.bg listing pages.

The site offers no structured feed and its markup is inconsistent between
pages, so extraction is done with regular expressions over the raw HTML.
Each heuristic lives in its own small function below; ``VarnaListingParser``
only wires them together.

Listing structure as observed on the site::

    <div class="grid-x grid-padding-x list-element">
      <div class="large-3"><img src="..." data-src="..."></div>
      <div class="large-9"><h2>Title</h2> ... </div>
    </div>
    <hr>
"""

import re
from urllib.parse import urljoin

import structlog

from external_events.categories import categorize
from external_events.event_filter import LISTING_FILTERS, apply_filters
from external_events.models import Event, Location
from external_events.utils.date_and_time import (
    LISTING_DATE_STRATEGIES,
    Clock,
    duration_minutes,
    local_today,
    normalize_date,
    utc_now,
)
from external_events.utils.identity import stable_event_id
from external_events.utils.prices import parse_price
from external_events.utils.text import html_to_text

logger = structlog.get_logger(__name__)

SITE_ROOT = "https://visit.varna.bg/"
ID_PREFIX = "varna"
CITY = "Варна"
COUNTRY = "България"

MIN_TITLE_LENGTH = 5
MIN_FRAGMENT_LENGTH = 10
MIN_LOCATION_LENGTH = 5
LOCATION_FALLBACK_LENGTH = 100

NAVIGATION_CAPTIONS: tuple[str, ...] = ("Събития", "Меню", "Открий Варна")
READ_MORE_MARKER = "прочети повече"

VENUE_KEYWORDS: tuple[str, ...] = (
    "музей",
    "галерия",
    "театър",
    "опера",
    "хотел",
    "ул.",
    "улица",
    "зала",
    "център",
    "museum",
    "gallery",
    "theatre",
    "theater",
    "hotel",
    "street",
    "hall",
    "center",
    "centre",
)

DECORATIVE_IMAGE_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (r"logo", r"icon", r"placeholder", r"spacer", r"pixel", r"1x1", r"blank")
)

_LIST_ELEMENT = re.compile(
    r"<div[^>]*class=\"[^\"]*list-element[^\"]*\"[^>]*>([\s\S]*?)</div>\s*<hr>",
    re.IGNORECASE,
)
_HEADING_START = re.compile(r"(?=<h2[^>]*>)", re.IGNORECASE)
_LAZY_IMAGE = re.compile(r"<img[^>]+data-src=[\"']([^\"']+)[\"']", re.IGNORECASE)
_EAGER_IMAGE = re.compile(r"<img[^>]+src=[\"']([^\"']+)[\"']", re.IGNORECASE)
_TITLE = re.compile(r"<h2[^>]*>([^<]+)</h2>", re.IGNORECASE)
_DATE = re.compile(r"(\d{1,2}\.\d{1,2}\.\d{4})")
_DIV = re.compile(r"<div[^>]*>[\s\S]*?</div>", re.IGNORECASE)
_DETAIL_LINK = re.compile(r"href=\"([^\"]*event[^\"]*\.html[^\"]*)\"", re.IGNORECASE)
_CLAUSE_SPLIT = re.compile(r"[.,;]")
_PRICE_HINT = re.compile(
    r"(?:вход|цена|билет\w*|entry|tickets?|price)\s*[:\-–]?\s*([^;\n]{0,40})",
    re.IGNORECASE,
)


def absolutize_url(url: str) -> str:
    """Resolves a site-relative URL against the site root."""
    if url.startswith("http"):
        return url
    return urljoin(SITE_ROOT, url)


def split_list_elements(html: str) -> list[str]:
    """Splits a page on ``list-element`` containers followed by ``<hr>``."""
    return _LIST_ELEMENT.findall(html)


def split_by_headings(html: str) -> list[str]:
    """Fallback split: one block per ``<h2>``, cut at the next ``<hr``."""
    blocks: list[str] = []
    for section in _HEADING_START.split(html)[1:]:
        hr_index = section.find("<hr")
        blocks.append(section[:hr_index] if hr_index > 0 else section)
    return blocks


def split_blocks(html: str) -> list[str]:
    """Returns the listing blocks of a page, using the fallback if needed."""
    blocks = split_list_elements(html)
    if blocks:
        return blocks
    logger.info("list_elements_missing", fallback="h2_sections")
    return split_by_headings(html)


def extract_image_url(block: str) -> str | None:
    """Prefers the lazy-load ``data-src`` over the eager ``src``."""
    match = _LAZY_IMAGE.search(block) or _EAGER_IMAGE.search(block)
    if not match:
        return None
    return absolutize_url(match.group(1))


def is_decorative_image(url: str) -> bool:
    return any(p.search(url) for p in DECORATIVE_IMAGE_PATTERNS)


def extract_title(block: str) -> str | None:
    match = _TITLE.search(block)
    if not match:
        return None
    return html_to_text(match.group(1)) or None


def is_navigation_title(title: str) -> bool:
    """Titles that belong to menus, page numbers and other chrome."""
    if any(caption in title for caption in NAVIGATION_CAPTIONS):
        return True
    if title.isdigit():
        return True
    return len(title) < MIN_TITLE_LENGTH


def extract_dates(text: str) -> tuple[str | None, str | None]:
    """Finds ``DD.MM.YYYY`` dates and maps them to (start, end).

    A single date is used for both start and end. Impossible dates such as
    31.02.2025 are skipped.
    """
    dates = [
        d
        for d in (
            normalize_date(raw, LISTING_DATE_STRATEGIES, date_only=True)
            for raw in _DATE.findall(text)
        )
        if d
    ]
    if not dates:
        return None, None
    start = dates[0]
    end = dates[1] if len(dates) >= 2 else start
    return start, end


def extract_text_fragments(block: str) -> list[str]:
    """Plain text of each ``<div>`` that looks like content."""
    fragments: list[str] = []
    for div in _DIV.findall(block):
        content = html_to_text(div)
        if len(content) > MIN_FRAGMENT_LENGTH and READ_MORE_MARKER not in content:
            fragments.append(content)
    return fragments


def extract_location(fragments: list[str]) -> str | None:
    """Leading clause of the first fragment mentioning a venue keyword."""
    for content in fragments:
        lowered = content.lower()
        if not any(keyword in lowered for keyword in VENUE_KEYWORDS):
            continue
        location = _CLAUSE_SPLIT.split(content)[0].strip()
        if len(location) < MIN_LOCATION_LENGTH:
            location = content[:LOCATION_FALLBACK_LENGTH].strip()
        return location
    return None


def extract_detail_link(block: str) -> str | None:
    match = _DETAIL_LINK.search(block)
    if not match:
        return None
    return absolutize_url(match.group(1))


def extract_price(fragments: list[str]) -> float:
    """Price from an entry/ticket mention, 0 when none is given."""
    for content in fragments:
        match = _PRICE_HINT.search(content)
        if match:
            return parse_price(match.group(1))
    return 0.0


class VarnaListingParser:
    """Parses one visit.varna.bg listing page into canonical events."""

    def __init__(self, clock: Clock = utc_now) -> None:
        self.clock = clock

    def parse(self, html: str) -> list[Event]:
        """Extracts events from a listing page.

        Args:
            html: Raw HTML of one listing page.

        Returns:
            Well-formed events that survive the listing filters, in page
            order.
        """
        blocks = split_blocks(html or "")
        events = [e for e in (self.parse_block(b) for b in blocks) if e is not None]

        valid = apply_filters(events, local_today(self.clock), LISTING_FILTERS)
        logger.info(
            "listing_parsed", blocks=len(blocks), parsed=len(events), kept=len(valid)
        )
        return valid

    def parse_block(self, block: str) -> Event | None:
        """Builds an Event from one listing block, or None if it is not one."""
        # Image first: it sits in the cell before the heading
        image_url = extract_image_url(block)

        title = extract_title(block)
        if not title or is_navigation_title(title):
            return None

        if image_url and is_decorative_image(image_url):
            logger.debug("decorative_image_skipped", title=title, image_url=image_url)
            image_url = None

        start_date, end_date = extract_dates(html_to_text(block))
        fragments = extract_text_fragments(block)

        return Event(
            id=stable_event_id(ID_PREFIX, title, start_date),
            title=title,
            description=" ".join(fragments) or title,
            category=categorize(title, " ".join(fragments)),
            location=Location(
                address=extract_location(fragments),
                city=CITY,
                country=COUNTRY,
                coordinates=None,
            ),
            start_date=start_date,
            end_date=end_date,
            duration_minutes=duration_minutes(start_date, end_date),
            image_url=image_url,
            website_url=extract_detail_link(block),
            price=extract_price(fragments),
            is_online=False,
            is_external=True,
            created_at=self.clock().isoformat(),
        )
