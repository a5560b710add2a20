import re

from bs4 import BeautifulSoup

_WHITESPACE = re.compile(r"\s+")


def html_to_text(fragment: str) -> str:
    """Strips tags from an HTML fragment and collapses whitespace.

    Entities such as ``&nbsp;`` and ``&quot;`` are decoded by BeautifulSoup.
    The listing site also emits a broken ``&nd...`` ellipsis, which is
    repaired here.
    """
    if not fragment:
        return ""
    text = BeautifulSoup(fragment, "html.parser").get_text(" ")
    text = text.replace("\xa0", " ").replace("&nd...", "...")
    return _WHITESPACE.sub(" ", text).strip()
