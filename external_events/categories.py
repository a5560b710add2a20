"""Keyword-bucket categorisation into the fixed EventHub category set."""

CATEGORY_KIDS = "Деца"
CATEGORY_CULTURE = "Култура"
CATEGORY_SPORT = "Спорт"
CATEGORY_WORKSHOPS = "Работилници"
CATEGORY_SEASONAL = "Сезонни"
CATEGORY_CHARITY = "Благотворителни"

CATEGORIES: tuple[str, ...] = (
    CATEGORY_KIDS,
    CATEGORY_CULTURE,
    CATEGORY_SPORT,
    CATEGORY_WORKSHOPS,
    CATEGORY_SEASONAL,
    CATEGORY_CHARITY,
)

DEFAULT_CATEGORY = CATEGORY_CULTURE

# Checked in order; the first bucket with a matching keyword wins.
KEYWORD_BUCKETS: tuple[tuple[str, tuple[str, ...]], ...] = (
    (
        CATEGORY_CULTURE,
        (
            "изложба",
            "галерия",
            "арт",
            "музика",
            "концерт",
            "фестивал",
            "опера",
            "театър",
            "спектакъл",
            "music",
            "concert",
            "theatre",
            "theater",
            "exhibition",
        ),
    ),
    (CATEGORY_SPORT, ("спорт", "маратон", "турнир", "sport", "marathon", "tournament")),
    (
        CATEGORY_WORKSHOPS,
        ("работилница", "курс", "обучение", "workshop", "course", "training"),
    ),
    (CATEGORY_KIDS, ("деца", "детски", "семейно", "family", "kids", "children")),
    (CATEGORY_CHARITY, ("благотворител", "charity", "fundraiser")),
    (
        CATEGORY_SEASONAL,
        ("коледа", "коледен", "великден", "хелоуин", "christmas", "easter", "halloween"),
    ),
)


def categorize(*texts: str | None) -> str:
    """Assigns a category by keyword matching over the given texts.

    Args:
        texts: Title, description, vendor category, ... Empty values are
            ignored.

    Returns:
        One of ``CATEGORIES``; ``DEFAULT_CATEGORY`` when nothing matches.
    """
    haystack = " ".join(t for t in texts if t).lower()
    if not haystack:
        return DEFAULT_CATEGORY

    for category, keywords in KEYWORD_BUCKETS:
        if any(keyword in haystack for keyword in keywords):
            return category
    return DEFAULT_CATEGORY
