"""Unit tests for Eventbrite page extraction."""
from datetime import datetime, timezone

import pytest

from scraper.page_extractor import (
    has_next_page,
    normalize_event_date,
    parse_event_detail,
    parse_listing_cards,
    parse_price,
)

BASE_URL = "https://www.eventbrite.sg/d/singapore/events--next-month/?page=1&cur=SGD"
NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def search_page(cards: str, next_button: bool = False) -> str:
    footer = ''
    if next_button:
        footer = (
            '<footer><ul><li data-testid="page-next-wrapper">'
            '<button>Next</button></li></ul></footer>'
        )
    return f"""
    <html>
        <body>
            <div class="search-results-panel-content">
                <div>
                    <section>
                        <ul class="SearchResultPanelContentEventCardList-module__eventList___1YEh_">
                            {cards}
                        </ul>
                    </section>
                    {footer}
                </div>
            </div>
        </body>
    </html>
    """


def card(title: str, href: str, price: str = None, category: str = 'music', paid_status: str = 'paid') -> str:
    price_html = ''
    if price is not None:
        price_html = (
            '<div class="Stack_root__1ksk7">'
            f'<div class="DiscoverHorizontalEventCard-module__priceWrapper___3rOUY"><p>{price}</p></div>'
            '</div>'
        )
    attrs = ''
    if category:
        attrs += f' data-event-category="{category}"'
    if paid_status:
        attrs += f' data-event-paid-status="{paid_status}"'
    return f"""
    <li>
        <section class="event-card-details">
            <a href="{href}"{attrs}>
                {title}
            </a>
            {price_html}
        </section>
    </li>
    """


DETAIL_PAGE = """
<html>
    <body>
        <div data-testid="organizerBrief">
            <strong class="organizer-listing-info-variant-b__name-link">Sentosa Events</strong>
        </div>
        <time class="start-date" datetime="2099-03-01T19:00:00+08:00">Sat, 1 Mar</time>
        <div class="location-info">
            <p>Marina Bay Sands</p>
            <p>10 Bayfront Avenue, Singapore 018956</p>
            <button class="map-button-toggle">Show map</button>
        </div>
    </body>
</html>
"""


class TestParseListingCards:
    """Test cases for search results extraction."""

    def test_parses_cards(self):
        """Test extraction of all card fields."""
        html = search_page(
            card('A', 'https://www.eventbrite.sg/e/a-123', price='$10.00')
            + card('B', 'https://www.eventbrite.sg/e/b-456', price='From $1,250.00',
                   category='business', paid_status='paid')
        )

        listings = parse_listing_cards(html, BASE_URL)

        assert len(listings) == 2
        assert listings[0].title == 'A'
        assert listings[0].url == 'https://www.eventbrite.sg/e/a-123'
        assert listings[0].category == 'music'
        assert listings[0].type == 'paid'
        assert listings[0].price == 10
        assert listings[1].title == 'B'
        assert listings[1].category == 'business'
        assert listings[1].price == 1250

    def test_missing_price_element_gives_none(self):
        """Test that cards without a price label have no price."""
        html = search_page(card('Free Talk', '/e/free-talk-1', paid_status='free'))

        listings = parse_listing_cards(html, BASE_URL)

        assert len(listings) == 1
        assert listings[0].price is None
        assert listings[0].type == 'free'

    def test_price_without_number_gives_none(self):
        """Test that a price label without digits has no price."""
        html = search_page(card('Free Talk', '/e/free-talk-1', price='Free'))

        assert parse_listing_cards(html, BASE_URL)[0].price is None

    def test_relative_href_resolved(self):
        """Test that relative links are made absolute."""
        html = search_page(card('Relative', '/e/relative-789'))

        listings = parse_listing_cards(html, BASE_URL)

        assert listings[0].url == 'https://www.eventbrite.sg/e/relative-789'

    def test_missing_attributes_give_none(self):
        """Test that absent data attributes map to None."""
        html = search_page(card('Plain', '/e/plain-1', category=None, paid_status=None))

        listing = parse_listing_cards(html, BASE_URL)[0]

        assert listing.category is None
        assert listing.type is None

    def test_empty_anchor_text_gives_empty_title(self):
        """Test that an anchor without text yields an empty title."""
        html = search_page(card('', '/e/untitled-1'))

        assert parse_listing_cards(html, BASE_URL)[0].title == ''

    def test_skips_incomplete_cards(self):
        """Test that cards without details section or anchor are skipped."""
        cards = (
            '<li><div>Advertisement</div></li>'
            '<li><section class="event-card-details"><p>No link</p></section></li>'
            + card('Valid', '/e/valid-1')
        )

        listings = parse_listing_cards(search_page(cards), BASE_URL)

        assert [listing.title for listing in listings] == ['Valid']

    def test_no_card_list(self):
        """Test that a page without the card list yields no listings."""
        html = '<html><body><div class="search-results-panel-content"></div></body></html>'

        assert parse_listing_cards(html, BASE_URL) == []

    def test_ignores_other_lists(self):
        """Test that lists with a different layout class are ignored."""
        html = search_page(card('A', '/e/a-1')).replace(
            'SearchResultPanelContentEventCardList', 'RelatedSearches'
        )

        assert parse_listing_cards(html, BASE_URL) == []


class TestHasNextPage:
    """Test cases for next page detection."""

    def test_next_button_present(self):
        assert has_next_page(search_page(card('A', '/e/a-1'), next_button=True)) is True

    def test_next_button_absent(self):
        assert has_next_page(search_page(card('A', '/e/a-1'))) is False


class TestParsePrice:
    """Test cases for price label parsing."""

    @pytest.mark.parametrize('text, expected', [
        ('$10.00', 10.0),
        ('$10.00...', 10.0),
        ('From $25.00.', 25.0),
        ('$1,250.00', 1250.0),
        ('1,250.00', 1250.0),
        ('From SGD 35.50', 35.5),
        ('Free', None),
        ('', None),
        ('.', None),
    ])
    def test_parse_price(self, text, expected):
        assert parse_price(text) == expected


class TestParseEventDetail:
    """Test cases for event page extraction."""

    def test_parses_detail(self):
        """Test extraction of organizer, location and date."""
        detail = parse_event_detail(DETAIL_PAGE, now=NOW)

        assert detail is not None
        assert detail.organizer == 'Sentosa Events'
        assert detail.location == 'Marina Bay Sands 10 Bayfront Avenue, Singapore 018956'
        assert detail.date == '01-03-2099'

    def test_map_toggle_removed_from_location(self):
        """Test that the map toggle text is not part of the location."""
        detail = parse_event_detail(DETAIL_PAGE, now=NOW)

        assert 'Show map' not in detail.location

    def test_past_event_is_absent(self):
        """Test that events dated before now are dropped."""
        html = DETAIL_PAGE.replace('2099-03-01T19:00:00+08:00', '2024-12-31T19:00:00+08:00')

        assert parse_event_detail(html, now=NOW) is None

    def test_expired_event_is_absent(self):
        """Test that the expired affordance drops the event."""
        html = DETAIL_PAGE.replace(
            '<body>',
            '<body><button data-testid="view-event-details-button">View details</button>'
        )

        assert parse_event_detail(html, now=NOW) is None

    def test_unparseable_date_keeps_listing(self):
        """Test that a bad date is cleared but the detail is kept."""
        html = DETAIL_PAGE.replace('2099-03-01T19:00:00+08:00', 'sometime soon')

        detail = parse_event_detail(html, now=NOW)

        assert detail is not None
        assert detail.date is None
        assert detail.organizer == 'Sentosa Events'

    def test_missing_fields(self):
        """Test that a page without detail elements yields empty fields."""
        detail = parse_event_detail('<html><body></body></html>', now=NOW)

        assert detail is not None
        assert detail.organizer is None
        assert detail.location is None
        assert detail.date is None


class TestNormalizeEventDate:
    """Test cases for date normalization."""

    def test_future_date(self):
        assert normalize_event_date('2025-03-15T10:00:00Z', NOW) == ('15-03-2025', False)

    def test_past_date(self):
        assert normalize_event_date('2024-06-01T10:00:00Z', NOW) == (None, True)

    def test_date_only(self):
        assert normalize_event_date('2025-02-01', NOW) == ('01-02-2025', False)

    def test_naive_now(self):
        assert normalize_event_date('2025-02-01T10:00:00+08:00', datetime(2025, 1, 1)) == ('01-02-2025', False)

    def test_invalid_date(self):
        assert normalize_event_date('not a date', NOW) == (None, False)
