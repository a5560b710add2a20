"""Page-count discovery for the listing site.

The pagination markup differs between page variants, so several cheap
regex heuristics run independently over the raw HTML and the largest page
number any of them finds wins. Each heuristic is a separate function so it
can be swapped for a structural parser on its own.
"""

import re

import structlog

logger = structlog.get_logger(__name__)

# Integers inside list markup at or above this are assumed to be unrelated
# (years, counters, prices).
MAX_LIST_PAGE_NUMBER = 100

_PAGE_URL = re.compile(r"events/(\d+)\.html")
_LIST_MARKUP = re.compile(r"<ul[^>]*>[\s\S]*?</ul>", re.IGNORECASE)
_LIST_NUMBER = re.compile(r">(\d+)<")
_PAGE_CAPTION = re.compile(r"You're on page (\d+)", re.IGNORECASE)
_PAGE_HREF = re.compile(
    r"href=[\"']([^\"']*events[^\"']*/(\d+)\.html[^\"']*)[\"']", re.IGNORECASE
)


def pages_from_urls(html: str) -> list[int]:
    """Page numbers from ``events/<N>.html`` fragments anywhere in the text."""
    return [int(m.group(1)) for m in _PAGE_URL.finditer(html)]


def pages_from_list_markup(html: str) -> list[int]:
    """Small integers rendered as text inside ``<ul>`` blocks."""
    pages: list[int] = []
    for section in _LIST_MARKUP.findall(html):
        for number in _LIST_NUMBER.findall(section):
            value = int(number)
            if value < MAX_LIST_PAGE_NUMBER:
                pages.append(value)
    return pages


def pages_from_caption(html: str) -> list[int]:
    """The "You're on page N" caption."""
    match = _PAGE_CAPTION.search(html)
    return [int(match.group(1))] if match else []


def pages_from_hrefs(html: str) -> list[int]:
    """Numbered pagination links in ``href`` attributes."""
    return [int(m.group(2)) for m in _PAGE_HREF.finditer(html)]


HEURISTICS = (
    pages_from_urls,
    pages_from_list_markup,
    pages_from_caption,
    pages_from_hrefs,
)


def discover_total_pages(html: str) -> int:
    """Estimates how many listing pages exist from the first page's HTML.

    Args:
        html: HTML of the first listing page.

    Returns:
        The largest page number found by any heuristic, at least 1.
    """
    max_page = 1
    for heuristic in HEURISTICS:
        found = heuristic(html or "")
        if found:
            max_page = max(max_page, *found)

    logger.info("pages_discovered", total=max_page)
    return max_page
