"""Errors raised by the scraping pipeline and result store."""


class ScraperError(Exception):
    """Base class for pipeline errors."""


class NavigationError(ScraperError):
    """Page load failed or timed out."""


class ExtractionError(ScraperError):
    """Loaded page could not be read into records."""


class NotFoundError(ScraperError):
    """Requested page or stored batch does not exist."""


class ParseError(ScraperError):
    """Stored batch content is not valid."""
