"""HTML extraction for Eventbrite search result and event pages."""
import logging
import re
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from dateutil import parser as date_parser

from processor.models import ListingDetail, ListingSummary

logger = logging.getLogger(__name__)

RESULT_LISTS_SELECTOR = 'div.search-results-panel-content div section ul'
CARD_LIST_CLASS_PREFIX = 'SearchResultPanelContentEventCardList'
CARD_DETAILS_SELECTOR = 'section.event-card-details'
NEXT_PAGE_SELECTOR = (
    'div.search-results-panel-content div footer ul '
    'li[data-testid="page-next-wrapper"] > button'
)
EXPIRED_EVENT_SELECTOR = 'button[data-testid="view-event-details-button"]'
ORGANIZER_SELECTOR = (
    'div[data-testid="organizerBrief"] strong[class^="organizer-listing-info"]'
)
START_DATE_SELECTOR = 'time.start-date'
LOCATION_SELECTOR = 'div.location-info'
MAP_TOGGLE_SELECTOR = '.map-button-toggle'

DISPLAY_DATE_FORMAT = '%d-%m-%Y'

PRICE_PATTERN = re.compile(r'\d[\d,]*(?:\.\d+)?')


def parse_listing_cards(html: str, base_url: str) -> List[ListingSummary]:
    """
    Extract event cards from a search results page.

    Cards without a details section or an anchor are skipped.

    Args:
        html: Page markup
        base_url: URL the page was loaded from, used to resolve hrefs

    Returns:
        List of ListingSummary objects in page order
    """
    soup = BeautifulSoup(html, 'html.parser')

    card_list = None
    for ul in soup.select(RESULT_LISTS_SELECTOR):
        if ' '.join(ul.get('class', [])).startswith(CARD_LIST_CLASS_PREFIX):
            card_list = ul
            break

    if card_list is None:
        logger.debug(f"No event card list found on {base_url}")
        return []

    listings = []
    for item in card_list.find_all('li'):
        details = item.select_one(CARD_DETAILS_SELECTOR)
        if details is None:
            continue

        anchor = details.find('a')
        if anchor is None:
            continue

        listings.append(
            ListingSummary(
                title=anchor.get_text().strip(),
                url=urljoin(base_url, anchor.get('href', '')),
                category=anchor.get('data-event-category') or None,
                type=anchor.get('data-event-paid-status') or None,
                price=_card_price(details)
            )
        )

    return listings


def _card_price(details) -> Optional[float]:
    for div in details.find_all('div'):
        if any('priceWrapper' in cls for cls in div.get('class', [])):
            return parse_price(div.get_text())
    return None


def parse_price(text: str) -> Optional[float]:
    """
    Parse the first number out of a price label.

    Args:
        text: Price label (e.g. "From $1,250.00")

    Returns:
        Price as float or None if the label has no number
    """
    match = PRICE_PATTERN.search(text or '')
    if not match:
        return None
    return float(match.group(0).replace(',', ''))


def has_next_page(html: str) -> bool:
    """Return True if the search results page shows a next page button."""
    soup = BeautifulSoup(html, 'html.parser')
    return soup.select_one(NEXT_PAGE_SELECTOR) is not None


def parse_event_detail(html: str, now: Optional[datetime] = None) -> Optional[ListingDetail]:
    """
    Extract organizer, location and date from an event page.

    Args:
        html: Event page markup
        now: Reference time for the past event check (default: current time)

    Returns:
        ListingDetail or None if the event is already over
    """
    soup = BeautifulSoup(html, 'html.parser')

    # The details button only appears once an event has ended
    if soup.select_one(EXPIRED_EVENT_SELECTOR) is not None:
        logger.info("Event page marked as expired")
        return None

    organizer_elem = soup.select_one(ORGANIZER_SELECTOR)
    organizer = organizer_elem.get_text().strip() if organizer_elem else ''

    date_elem = soup.select_one(START_DATE_SELECTOR)
    raw_date = date_elem.get('datetime') if date_elem else None

    location = None
    location_elem = soup.select_one(LOCATION_SELECTOR)
    if location_elem is not None:
        for toggle in location_elem.select(MAP_TOGGLE_SELECTOR):
            toggle.decompose()
        location = ' '.join(location_elem.stripped_strings) or None

    date = None
    if raw_date:
        date, is_past = normalize_event_date(raw_date, now)
        if is_past:
            logger.info(f"Event date {raw_date} is in the past")
            return None

    return ListingDetail(
        organizer=organizer or None,
        location=location,
        date=date
    )


def normalize_event_date(raw_date: str, now: Optional[datetime] = None) -> Tuple[Optional[str], bool]:
    """
    Normalize an ISO date string to the display format.

    Args:
        raw_date: ISO 8601 date or datetime string
        now: Reference time (default: current time)

    Returns:
        Tuple of (dd-mm-yyyy string or None if unparseable, is_past)
    """
    try:
        parsed = date_parser.isoparse(raw_date.strip())
    except (ValueError, OverflowError):
        logger.warning(f"Unparseable event date: {raw_date}")
        return None, False

    if now is None:
        now = datetime.now(timezone.utc) if parsed.tzinfo else datetime.now()
    elif parsed.tzinfo and now.tzinfo is None:
        now = now.astimezone()
    elif parsed.tzinfo is None and now.tzinfo:
        parsed = parsed.astimezone()

    if parsed < now:
        return None, True

    return parsed.strftime(DISPLAY_DATE_FORMAT), False
