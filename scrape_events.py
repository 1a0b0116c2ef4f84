"""Entry point for the Eventbrite upcoming events scraper."""
import asyncio
import json
import logging
import os
import time
from typing import Any, Dict, Optional

from processor.exceptions import NotFoundError, ParseError
from processor.models import Period
from processor.statistics_engine import StatisticsEngine
from scraper.eventbrite import EventbriteScraper
from storage.result_store import ResultStore

# Period scraped on every run
PERIOD = Period.NEXT_MONTH

# Attributes present on every LogRecord, everything else came from `extra`
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord('', logging.INFO, '', 0, '', None, None))
) | {'message', 'asctime'}


class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith('_'):
                log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def load_config() -> Dict[str, Any]:
    """Read run configuration from environment variables."""
    is_dev = os.environ.get('ENVIRONMENT', 'production') == 'development'
    return {
        'log_level': os.environ.get('LOG_LEVEL', 'INFO'),
        'results_dir': os.environ.get('RESULTS_DIR', 'results'),
        'max_pages': int(os.environ.get('MAX_PAGES', '100')),
        'concurrency': int(os.environ.get('CONCURRENCY', '5')),
        'navigation_timeout_ms': int(os.environ.get('NAVIGATION_TIMEOUT_MS', '60000')),
        'headless': not is_dev,
        'slow_mo': 250 if is_dev else None,
    }


def generate_report(store: ResultStore, batch_id: str) -> Optional[str]:
    """
    Build and save the statistics report for a stored batch.

    Args:
        store: Result store holding the batch
        batch_id: Batch identifier

    Returns:
        Report text, or None if the batch could not be loaded
    """
    logger = logging.getLogger(__name__)

    try:
        engine = StatisticsEngine.from_store(store, batch_id)
    except (NotFoundError, ParseError) as e:
        logger.error(
            f"Skipping report for batch {batch_id}: {e}",
            extra={'batch_id': batch_id, 'error_type': type(e).__name__}
        )
        return None

    report = engine.build_report()
    store.save_report(batch_id, report)
    return report


async def run(
    config: Dict[str, Any],
    period: Period = PERIOD,
    scraper: Optional[EventbriteScraper] = None,
    store: Optional[ResultStore] = None
) -> str:
    """
    Scrape one period, save the batch and write its report.

    Args:
        config: Configuration from load_config()
        period: Search period to scrape
        scraper: Scraper to use (default: built from config)
        store: Result store to use (default: built from config)

    Returns:
        Batch identifier of the saved run

    Raises:
        OSError: If the batch cannot be written
    """
    logger = logging.getLogger(__name__)

    batch_id = ResultStore.new_batch_id()
    if scraper is None:
        scraper = EventbriteScraper(
            concurrency=config['concurrency'],
            navigation_timeout_ms=config['navigation_timeout_ms'],
            max_pages=config['max_pages'],
            headless=config['headless'],
            slow_mo=config['slow_mo']
        )
    if store is None:
        store = ResultStore(config['results_dir'])

    listings = await scraper.scrape(period)
    store.save(batch_id, listings)
    logger.info(
        f"Scraped {Period(period).value} events",
        extra={'batch_id': batch_id, 'count': len(listings)}
    )

    generate_report(store, batch_id)
    return batch_id


def main() -> int:
    """Run the scraper once. Always exits with status 0."""
    config = load_config()
    setup_logging(config['log_level'])
    logger = logging.getLogger(__name__)

    start_time = time.time()
    logger.info("Scraper run started", extra={'period': PERIOD.value})

    try:
        batch_id = asyncio.run(run(config))
    except Exception as e:
        logger.error(
            f"Scraper run failed: {e}",
            extra={
                'duration_seconds': round(time.time() - start_time, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return 0

    logger.info(
        "Scraper run completed",
        extra={
            'batch_id': batch_id,
            'duration_seconds': round(time.time() - start_time, 2)
        }
    )
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
