"""Eventbrite scraper driving a Playwright browser."""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional, Tuple

from playwright.async_api import Browser, Page, Response, async_playwright
from playwright.async_api import Error as PlaywrightError

from processor.exceptions import ExtractionError, NavigationError, NotFoundError
from processor.models import EnrichedListing, ListingDetail, ListingSummary, Period
from scraper.page_extractor import has_next_page, parse_event_detail, parse_listing_cards

logger = logging.getLogger(__name__)


class EventbriteScraper:
    """Scraper for upcoming events on Eventbrite Singapore."""

    SEARCH_URL = "https://www.eventbrite.sg/d/singapore/events--{period}/?page={page}&cur=SGD"

    def __init__(
        self,
        concurrency: int = 5,
        navigation_timeout_ms: int = 60000,
        max_pages: int = 100,
        headless: bool = True,
        slow_mo: Optional[float] = None
    ):
        """
        Initialize the scraper.

        Args:
            concurrency: Maximum number of event pages fetched at once (default: 5)
            navigation_timeout_ms: Timeout for each page load (default: 60000)
            max_pages: Upper bound on search result pages per period (default: 100)
            headless: Run the browser without a window (default: True)
            slow_mo: Delay in milliseconds added to each browser operation
        """
        self.concurrency = concurrency
        self.navigation_timeout_ms = navigation_timeout_ms
        self.max_pages = max_pages
        self.headless = headless
        self.slow_mo = slow_mo

    def search_url(self, period: Period, page_number: int) -> str:
        return self.SEARCH_URL.format(period=Period(period).value, page=page_number)

    async def scrape(self, period: Period = Period.NEXT_MONTH) -> List[EnrichedListing]:
        """
        Scrape upcoming events for a period with their details.

        Launches one browser for the whole run and closes it afterwards.

        Args:
            period: Search period to scrape (default: next month)

        Returns:
            List of EnrichedListing objects for events still to come
        """
        logger.info(f"Start scraping upcoming {Period(period).value} events")

        async with async_playwright() as playwright:
            browser = await playwright.chromium.launch(
                headless=self.headless,
                slow_mo=self.slow_mo
            )
            try:
                listings = await self.fetch_listings(browser, period)
                logger.info(f"Found {len(listings)} listings in search results")
                return await self.fetch_details(browser, listings)
            finally:
                await browser.close()

    async def fetch_listings(self, browser: Browser, period: Period) -> List[ListingSummary]:
        """
        Collect listings from every search results page of a period.

        Args:
            browser: Browser shared by the run
            period: Search period

        Returns:
            List of ListingSummary objects, page 1 first
        """
        listings = []
        async for page_listings in self.iter_search_pages(browser, period):
            listings.extend(page_listings)
        return listings

    async def iter_search_pages(
        self,
        browser: Browser,
        period: Period
    ) -> AsyncIterator[List[ListingSummary]]:
        """
        Walk search results pages in order, yielding each page's listings.

        Stops when the next page button disappears, when max_pages is
        reached, or after the first page that fails to load or parse.
        """
        page_number = 1

        while True:
            if page_number > self.max_pages:
                logger.warning(
                    f"Stopping pagination after {self.max_pages} pages",
                    extra={'period': Period(period).value}
                )
                return

            url = self.search_url(period, page_number)
            logger.info(f"Scraping {url}")

            try:
                listings, next_available = await self._fetch_search_page(browser, url)
            except (NavigationError, ExtractionError) as e:
                logger.error(
                    f"Failed to scrape search results: {e}",
                    extra={'url': url, 'page': page_number, 'error_type': type(e).__name__}
                )
                return
            except Exception as e:
                logger.error(
                    f"Unexpected error scraping search results: {e}",
                    extra={'url': url, 'page': page_number, 'error_type': type(e).__name__},
                    exc_info=True
                )
                return

            logger.info(f"Scraped {len(listings)} listings from {url}")
            yield listings

            if not next_available:
                logger.info("End of search results")
                return

            logger.info("Next page is available")
            page_number += 1

    async def fetch_details(
        self,
        browser: Browser,
        listings: List[ListingSummary]
    ) -> List[EnrichedListing]:
        """
        Enrich listings with their event page details.

        Listings whose page is missing, expired, past or fails to load are
        dropped. At most `concurrency` pages are open at any time.

        Args:
            browser: Browser shared by the run
            listings: Listings from the search results

        Returns:
            List of EnrichedListing objects
        """
        logger.info(f"Scraping event details for {len(listings)} listings")
        semaphore = asyncio.Semaphore(self.concurrency)

        async def enrich(summary: ListingSummary) -> Optional[EnrichedListing]:
            async with semaphore:
                try:
                    detail = await self.fetch_detail(browser, summary.url)
                except NotFoundError as e:
                    logger.info(str(e), extra={'url': summary.url})
                    return None
                except (NavigationError, ExtractionError) as e:
                    logger.error(
                        f"Failed to scrape event details: {e}",
                        extra={'url': summary.url, 'error_type': type(e).__name__}
                    )
                    return None

            if detail is None:
                return None
            return EnrichedListing.merge(summary, detail)

        results = await asyncio.gather(
            *(enrich(summary) for summary in listings),
            return_exceptions=True
        )

        enriched = []
        for summary, result in zip(listings, results):
            if isinstance(result, BaseException):
                logger.error(
                    f"Unexpected error enriching listing: {result!r}",
                    extra={'url': summary.url, 'error_type': type(result).__name__}
                )
            elif result is not None:
                enriched.append(result)

        logger.info(f"Scraped details for {len(enriched)} of {len(listings)} listings")
        return enriched

    async def fetch_detail(self, browser: Browser, url: str) -> Optional[ListingDetail]:
        """
        Load and parse one event page.

        Args:
            browser: Browser shared by the run
            url: Event page URL

        Returns:
            ListingDetail or None if the event is over

        Raises:
            NavigationError: If the page fails to load
            NotFoundError: If the page responds with 404
            ExtractionError: If the page content cannot be read
        """
        logger.info(f"Scraping {url}")
        async with self._open_page(browser) as page:
            response = await self._goto(page, url)
            if response is not None and response.status == 404:
                raise NotFoundError(f"{url} not found")
            html = await self._content(page, url)

        try:
            detail = parse_event_detail(html)
        except (AttributeError, TypeError, ValueError) as e:
            raise ExtractionError(f"Failed to parse event page {url}: {e}") from e

        logger.info(f"Scraped {url}")
        return detail

    async def _fetch_search_page(self, browser: Browser, url: str) -> Tuple[List[ListingSummary], bool]:
        async with self._open_page(browser) as page:
            await self._goto(page, url)
            html = await self._content(page, url)
            page_url = page.url or url

        try:
            return parse_listing_cards(html, page_url), has_next_page(html)
        except (AttributeError, TypeError, ValueError) as e:
            raise ExtractionError(f"Failed to parse search results {url}: {e}") from e

    @asynccontextmanager
    async def _open_page(self, browser: Browser) -> AsyncIterator[Page]:
        """Open a page in a fresh browser context, closing it on exit."""
        try:
            context = await browser.new_context()
        except PlaywrightError as e:
            raise NavigationError(f"Failed to open browser context: {e}") from e

        try:
            try:
                page = await context.new_page()
            except PlaywrightError as e:
                raise NavigationError(f"Failed to open page: {e}") from e
            yield page
        finally:
            try:
                await context.close()
            except PlaywrightError as e:
                logger.warning(f"Failed to close page: {e}")

    async def _goto(self, page: Page, url: str) -> Optional[Response]:
        try:
            return await page.goto(
                url,
                wait_until='networkidle',
                timeout=self.navigation_timeout_ms
            )
        except PlaywrightError as e:
            raise NavigationError(f"Failed to load {url}: {e}") from e

    async def _content(self, page: Page, url: str) -> str:
        try:
            return await page.content()
        except PlaywrightError as e:
            raise ExtractionError(f"Failed to read content of {url}: {e}") from e
