import math
import re

# Markers meaning "no charge" in vendor and listing text
FREE_MARKERS: tuple[str, ...] = ("free", "безплат", "свободен вход")

_NUMBER_PATTERN = re.compile(r"(\d+(?:[.,]\d+)?)")


def parse_price(value: str | int | float | None) -> float:
    """Parses a free-text or numeric price into a non-negative number.

    Free-text markers and the literal "0" map to 0. Otherwise the first
    numeric token is used, accepting a comma as decimal separator. Anything
    unrecognised is treated as free.

    Args:
        value: Raw price, e.g. ``"15 лв."``, ``"Free entry"`` or ``12.5``.

    Returns:
        The price as a float, never negative.
    """
    if value is None or isinstance(value, bool):
        return 0.0

    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) and number > 0 else 0.0

    text = str(value).strip().lower()
    if not text or text == "0":
        return 0.0
    if any(marker in text for marker in FREE_MARKERS):
        return 0.0

    match = _NUMBER_PATTERN.search(text)
    if not match:
        return 0.0
    return float(match.group(1).replace(",", "."))
