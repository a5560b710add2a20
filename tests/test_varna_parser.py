"""Tests for the visit.varna.bg listing parser."""

from external_events.categories import CATEGORY_CULTURE
from external_events.sources.varna_parser import (
    VarnaListingParser,
    absolutize_url,
    extract_dates,
    extract_location,
    extract_price,
    is_navigation_title,
    split_blocks,
    split_by_headings,
)


def test_parses_well_formed_block(clock, make_block, make_page) -> None:
    """All fields of a complete listing block are extracted."""
    parser = VarnaListingParser(clock=clock)
    events = parser.parse(make_page([make_block()]))

    assert len(events) == 1
    event = events[0]
    assert event.id == "varna_концертнаоткрито_20250415"
    assert event.title == "Концерт на открито"
    assert event.start_date == "2025-04-15"
    assert event.end_date == "2025-04-15"
    assert event.duration_minutes is None
    assert event.image_url == "https://visit.varna.bg/uploads/events/concert.jpg"
    assert event.website_url == "https://visit.varna.bg/bg/event/koncert-na-otkrito.html"
    assert event.location.address == "Летен театър"
    assert event.location.city == "Варна"
    assert event.location.country == "България"
    assert event.location.coordinates is None
    assert event.price == 10.0
    assert event.category == CATEGORY_CULTURE
    assert event.is_external is True
    assert event.is_online is False
    assert event.created_at == clock().isoformat()
    assert "Летен театър" in event.description


def test_old_events_are_dropped(clock, make_block, make_page) -> None:
    """Two upcoming blocks and one from two years ago give two events."""
    html = make_page(
        [
            make_block(title="Концерт на открито", dates="15.04.2025"),
            make_block(title="Пролетна изложба", dates="20.05.2025"),
            make_block(title="Стар фестивал на виното", dates="10.02.2023"),
        ]
    )
    events = VarnaListingParser(clock=clock).parse(html)
    assert [e.title for e in events] == ["Концерт на открито", "Пролетна изложба"]


def test_ids_are_stable_across_parses(clock, make_block, make_page) -> None:
    html = make_page([make_block(), make_block(title="Пролетна изложба")])
    parser = VarnaListingParser(clock=clock)

    first = [e.id for e in parser.parse(html)]
    second = [e.id for e in parser.parse(html)]
    assert first == second


def test_date_range_sets_end_and_duration(clock, make_block, make_page) -> None:
    html = make_page([make_block(dates="15.04.2025 - 20.04.2025")])
    event = VarnaListingParser(clock=clock).parse(html)[0]

    assert event.start_date == "2025-04-15"
    assert event.end_date == "2025-04-20"
    assert event.duration_minutes == 5 * 24 * 60


def test_block_without_date_is_dropped(clock, make_block, make_page) -> None:
    html = make_page([make_block(dates="Очаквайте скоро")])
    assert VarnaListingParser(clock=clock).parse(html) == []


def test_ongoing_exhibition_started_long_ago_is_dropped(
    clock, make_block, make_page
) -> None:
    """The one-year guard runs before the past check for listings."""
    html = make_page([make_block(title="Постоянна изложба", dates="01.01.2023 - 30.04.2025")])
    assert VarnaListingParser(clock=clock).parse(html) == []


def test_navigation_blocks_are_skipped(clock, make_block, make_page) -> None:
    html = make_page(
        [
            make_block(title="Събития"),
            make_block(title="12"),
            make_block(title="Меню"),
            make_block(title="Йога"),
            make_block(title="Джаз вечер в парка"),
        ]
    )
    events = VarnaListingParser(clock=clock).parse(html)
    assert [e.title for e in events] == ["Джаз вечер в парка"]


def test_is_navigation_title() -> None:
    assert is_navigation_title("Открий Варна")
    assert is_navigation_title("3")
    assert is_navigation_title("Йога")
    assert not is_navigation_title("Йога на плажа")


def test_decorative_image_is_discarded(clock, make_block, make_page) -> None:
    """A logo is not an event image, but the event is still kept."""
    html = make_page([make_block(image='<img src="/images/logo-varna.png">')])
    event = VarnaListingParser(clock=clock).parse(html)[0]
    assert event.image_url is None


def test_eager_src_used_without_data_src(clock, make_block, make_page) -> None:
    html = make_page([make_block(image='<img src="https://cdn.example.org/poster.jpg">')])
    event = VarnaListingParser(clock=clock).parse(html)[0]
    assert event.image_url == "https://cdn.example.org/poster.jpg"


def test_missing_link_and_image(clock, make_block, make_page) -> None:
    html = make_page([make_block(image=None, link=None)])
    event = VarnaListingParser(clock=clock).parse(html)[0]
    assert event.image_url is None
    assert event.website_url is None


def test_heading_fallback_keeps_titles(clock) -> None:
    """Pages without list-element containers are split on headings."""
    html = (
        "<html><body>"
        "<h2>Концерт в парка</h2><div>15.04.2025</div><div>Морска градина, вход свободен</div><hr>"
        "<h2>Изложба на картини</h2><div>20.04.2025</div><div>Градска художествена галерия</div><hr>"
        "</body></html>"
    )
    blocks = split_by_headings(html)
    assert len(blocks) == 2
    assert blocks[0].startswith("<h2>Концерт в парка</h2>")
    assert "<hr" not in blocks[0]

    events = VarnaListingParser(clock=clock).parse(html)
    assert [e.title for e in events] == ["Концерт в парка", "Изложба на картини"]
    assert events[1].location.address == "Градска художествена галерия"


def test_split_blocks_prefers_list_elements(make_block, make_page) -> None:
    html = make_page([make_block(), make_block(title="Пролетна изложба")])
    blocks = split_blocks(html)
    assert len(blocks) == 2
    assert "Пролетна изложба" in blocks[1]


def test_empty_page(clock) -> None:
    assert VarnaListingParser(clock=clock).parse("") == []


class TestExtractDates:
    def test_single_date(self) -> None:
        assert extract_dates("Дата: 05.03.2025") == ("2025-03-05", "2025-03-05")

    def test_impossible_date_is_skipped(self) -> None:
        assert extract_dates("31.02.2025 - 20.04.2025") == ("2025-04-20", "2025-04-20")

    def test_no_date(self) -> None:
        assert extract_dates("без дата") == (None, None)


class TestExtractLocation:
    def test_first_clause_of_venue_fragment(self) -> None:
        fragments = ["Нещо интересно за всички", "Фестивален и конгресен център, Варна"]
        assert extract_location(fragments) == "Фестивален и конгресен център"

    def test_first_matching_fragment_wins(self) -> None:
        fragments = ["Зала 1 на театъра", "Градска галерия"]
        assert extract_location(fragments) == "Зала 1 на театъра"

    def test_short_clause_falls_back_to_fragment_start(self) -> None:
        assert extract_location(["ул. Преслав 12, Варна"]) == "ул. Преслав 12, Варна"

    def test_no_venue_keyword(self) -> None:
        assert extract_location(["Нещо интересно за всички"]) is None


class TestExtractPrice:
    def test_ticket_price(self) -> None:
        assert extract_price(["Билети: 25 лв; за деца 10 лв"]) == 25.0

    def test_free_entry(self) -> None:
        assert extract_price(["Вход свободен"]) == 0.0

    def test_street_numbers_are_not_prices(self) -> None:
        assert extract_price(["Летен театър, ул. Приморска 1"]) == 0.0


def test_absolutize_url() -> None:
    assert absolutize_url("/bg/event/x.html") == "https://visit.varna.bg/bg/event/x.html"
    assert absolutize_url("https://other.example/x.jpg") == "https://other.example/x.jpg"
