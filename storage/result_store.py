"""Local filesystem storage for scraped result batches."""
import csv
import json
import logging
import time
from pathlib import Path
from typing import List, Optional, Union

from processor.exceptions import NotFoundError, ParseError
from processor.models import EnrichedListing

logger = logging.getLogger(__name__)


class ResultStore:
    """Store for result batches under results/<batch_id>/."""

    RESULT_FILENAME = 'results'
    REPORT_FILENAME = 'report.md'

    def __init__(self, root: Union[str, Path] = 'results'):
        """
        Initialize the store.

        Args:
            root: Directory holding one subdirectory per batch (default: results)
        """
        self.root = Path(root)

    @staticmethod
    def new_batch_id(now: Optional[float] = None) -> str:
        """
        Create a batch id from a run start time.

        Args:
            now: Unix timestamp in seconds (default: current time)

        Returns:
            Millisecond epoch timestamp as a decimal string
        """
        if now is None:
            now = time.time()
        return str(int(now * 1000))

    def batch_dir(self, batch_id: str) -> Path:
        return self.root / batch_id

    def save(self, batch_id: str, listings: List[EnrichedListing]) -> Path:
        """
        Write a batch as JSON and CSV.

        Args:
            batch_id: Batch identifier
            listings: Enriched listings of the run

        Returns:
            Path of the batch directory

        Raises:
            OSError: If the directory or files cannot be written
        """
        batch_dir = self._ensure_batch_dir(batch_id)
        logger.info("Saving result", extra={'batch_id': batch_id, 'count': len(listings)})

        rows = [listing.to_dict() for listing in listings]
        self._write_json(batch_dir / f"{self.RESULT_FILENAME}.json", rows)
        self._write_csv(batch_dir / f"{self.RESULT_FILENAME}.csv", rows)

        logger.info("Saved result", extra={'batch_id': batch_id})
        return batch_dir

    def save_report(self, batch_id: str, text: str) -> Path:
        """
        Write the Markdown report of a batch.

        Args:
            batch_id: Batch identifier
            text: Report content

        Returns:
            Path of the report file
        """
        batch_dir = self._ensure_batch_dir(batch_id)
        logger.info("Saving report", extra={'batch_id': batch_id})

        report_path = batch_dir / self.REPORT_FILENAME
        report_path.write_text(text, encoding='utf-8')

        logger.info("Saved report", extra={'batch_id': batch_id})
        return report_path

    def load(self, batch_id: str) -> List[EnrichedListing]:
        """
        Read a batch back from its JSON file.

        Args:
            batch_id: Batch identifier

        Returns:
            List of EnrichedListing objects in stored order

        Raises:
            NotFoundError: If the batch or its JSON file does not exist
            ParseError: If the file is not a valid list of listings
        """
        json_path = self.batch_dir(batch_id) / f"{self.RESULT_FILENAME}.json"
        if not json_path.is_file():
            raise NotFoundError(f"No results found for batch {batch_id}")

        try:
            data = json.loads(json_path.read_text(encoding='utf-8'))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ParseError(f"Invalid JSON in {json_path}: {e}") from e

        if not isinstance(data, list):
            raise ParseError(f"Expected a list of listings in {json_path}")

        listings = []
        for index, item in enumerate(data):
            try:
                listings.append(self._item_to_listing(item))
            except (KeyError, TypeError, ValueError) as e:
                raise ParseError(f"Invalid listing at index {index} in {json_path}: {e}") from e

        logger.info(f"Loaded {len(listings)} listings", extra={'batch_id': batch_id})
        return listings

    def _ensure_batch_dir(self, batch_id: str) -> Path:
        batch_dir = self.batch_dir(batch_id)
        if not batch_dir.exists():
            logger.info("Creating result directory", extra={'batch_id': batch_id})
            batch_dir.mkdir(parents=True, exist_ok=True)
        return batch_dir

    def _write_json(self, path: Path, rows: List[dict]) -> None:
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(rows, f, indent=2, ensure_ascii=False)

    def _write_csv(self, path: Path, rows: List[dict]) -> None:
        with open(path, 'w', encoding='utf-8', newline='') as f:
            writer = csv.DictWriter(f, fieldnames=EnrichedListing.field_names())
            writer.writeheader()
            writer.writerows(rows)

    def _item_to_listing(self, item: dict) -> EnrichedListing:
        """
        Convert a stored JSON object to an EnrichedListing.

        Args:
            item: Object read from results.json

        Returns:
            EnrichedListing object
        """
        if not isinstance(item, dict):
            raise TypeError(f"expected object, got {type(item).__name__}")

        price = item.get('price')
        return EnrichedListing(
            title=item['title'],
            url=item['url'],
            category=item.get('category'),
            type=item.get('type'),
            price=float(price) if price is not None else None,
            organizer=item.get('organizer'),
            location=item.get('location'),
            date=item.get('date')
        )
