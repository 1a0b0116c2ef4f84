"""Statistics and Markdown report for a batch of enriched listings."""
import logging
from collections import Counter
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from processor.models import EnrichedListing

logger = logging.getLogger(__name__)


class StatisticsEngine:
    """Derives distributions from a result batch and renders the report."""

    HOME_REGION = 'Singapore'
    CURRENCY = 'SGD'
    TOP_N = 3

    def __init__(self, batch_id: str, listings: List[EnrichedListing]):
        """
        Initialize the engine for one batch.

        Args:
            batch_id: Millisecond epoch timestamp the batch was created at
            listings: Enriched listings of the batch
        """
        self.batch_id = batch_id
        self.listings = list(listings)

    @classmethod
    def from_store(cls, store, batch_id: str) -> 'StatisticsEngine':
        """
        Load a stored batch.

        Raises:
            NotFoundError: If the batch does not exist
            ParseError: If the stored batch is unreadable
        """
        return cls(batch_id, store.load(batch_id))

    @property
    def total(self) -> int:
        return len(self.listings)

    def generated_at(self) -> str:
        """Render the batch timestamp as local date and time."""
        timestamp = int(self.batch_id) / 1000
        return datetime.fromtimestamp(timestamp).strftime('%Y-%m-%d %H:%M:%S')

    def locations(self) -> List[str]:
        """
        Distinct locations in order of first appearance.

        Locations within the home region collapse to the region name.
        """
        seen = {}
        for listing in self.listings:
            location = self.canonical_location(listing.location)
            if location:
                seen.setdefault(location, None)
        return list(seen)

    @classmethod
    def canonical_location(cls, location: Optional[str]) -> Optional[str]:
        if location and cls.HOME_REGION.lower() in location.lower():
            return cls.HOME_REGION
        return location

    def type_counts(self) -> Dict[str, int]:
        return Counter(listing.type for listing in self.listings if listing.type)

    def category_counts(self) -> Dict[str, int]:
        return Counter(listing.category for listing in self.listings if listing.category)

    def organizer_counts(self) -> Dict[str, int]:
        return Counter(listing.organizer for listing in self.listings if listing.organizer)

    def month_year_counts(self) -> Dict[str, int]:
        """
        Count listings per month.

        Returns:
            Mapping of YYYY-MM to number of listings, in order of first appearance
        """
        counts = Counter()
        for listing in self.listings:
            month_year = self._month_year(listing.date)
            if month_year:
                counts[month_year] += 1
        return counts

    def percentage(self, count: int) -> str:
        """Share of the total listing count, formatted to two decimals."""
        if self.total == 0:
            return '0.00'
        return f"{count / self.total * 100:.2f}"

    def build_report(self) -> str:
        """
        Render the Markdown summary report.

        Returns:
            Report text
        """
        type_counts = self.type_counts()
        month_counts = self.month_year_counts()
        categories = self._sorted_by_count(self.category_counts())
        organizers = self._sorted_by_count(self.organizer_counts())

        sorted_months = sorted(month_counts)
        if sorted_months:
            time_range = f"{sorted_months[0]} to {sorted_months[-1]}"
        else:
            time_range = 'N/A'

        priced = sorted(
            (listing for listing in self.listings if listing.price is not None),
            key=lambda listing: listing.price,
            reverse=True
        )

        paid = type_counts.get('paid', 0)
        free = type_counts.get('free', 0)

        sections = [
            '# 📊 General Overview',
            (
                f"> Source of report was generated on **{self.generated_at()}**, "
                'which mean any changes happened after this date time will not be '
                'reflected in this report.'
            ),
            '\n'.join([
                f"- Total Upcoming Events: {self.total}",
                f"- Locations (full address will be shown if not in {self.HOME_REGION}): "
                f"{', '.join(self.locations())}",
                f"- Types: {', '.join(type_counts)}",
                f"- Time Range: {time_range}",
            ]),
            '# 🧩 Category Distribution',
            f"Top {self.TOP_N} categories:",
            self._count_lines(categories[:self.TOP_N]),
            f"Bottom {self.TOP_N} categories:",
            self._count_lines(categories[-self.TOP_N:]),
            '# 💵 Price Analysis',
            'Total:',
            '\n'.join([
                f"- Paid event: {paid} ({self.percentage(paid)}%)",
                f"- Free event: {free} ({self.percentage(free)}%)",
            ]),
            f"Top {self.TOP_N} expensive event:",
            '\n'.join(
                f"- {listing.title} ({_format_price(listing.price)} {self.CURRENCY})"
                for listing in priced[:self.TOP_N]
            ),
            '# 📅 Date Distribution',
            self._count_lines(self._sorted_by_count(month_counts)),
            '# 👥 Organizer Distribution:',
            f"Top {self.TOP_N} Organizers:",
            self._count_lines(organizers[:self.TOP_N]),
        ]
        return '\n\n'.join(sections) + '\n'

    def _count_lines(self, items: List[Tuple[str, int]]) -> str:
        return '\n'.join(
            f"- {key} ({count} times/{self.percentage(count)}%)"
            for key, count in items
        )

    @staticmethod
    def _sorted_by_count(counts: Dict[str, int]) -> List[Tuple[str, int]]:
        # Stable: ties keep first-appearance order
        return sorted(counts.items(), key=lambda item: item[1], reverse=True)

    @staticmethod
    def _month_year(date: Optional[str]) -> Optional[str]:
        if not date:
            return None
        parts = date.split('-')
        if len(parts) != 3:
            logger.warning(f"Unexpected date format: {date}")
            return None
        _, month, year = parts
        return f"{year}-{month}"


def _format_price(price: float) -> str:
    if float(price).is_integer():
        return str(int(price))
    return str(price)
