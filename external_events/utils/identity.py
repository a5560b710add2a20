"""Deterministic identifiers for external events.

End users can favourite external events, so the same physical event must
keep the same id across repeated crawls.
"""

import re

_SLUG_DROP = re.compile(r"[^a-z0-9а-я]")

SLUG_LENGTH = 30


def slugify_title(title: str, length: int = SLUG_LENGTH) -> str:
    """Lowercases *title* and keeps only Latin/Cyrillic letters and digits."""
    return _SLUG_DROP.sub("", title.lower())[:length]


def stable_event_id(prefix: str, title: str, start_date: str | None) -> str:
    """Builds ``<prefix>_<title slug>_<YYYYMMDD>``.

    Args:
        prefix: Source prefix, e.g. "varna".
        title: Event title.
        start_date: ISO start date; only the date part is used.

    Returns:
        The id. Without a start date the date fragment is omitted.
    """
    slug = slugify_title(title)
    if not start_date:
        return f"{prefix}_{slug}"
    date_fragment = start_date[:10].replace("-", "")
    return f"{prefix}_{slug}_{date_fragment}"
