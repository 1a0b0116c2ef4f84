"""Data models for scraped event listings."""
from dataclasses import asdict, dataclass, fields
from enum import Enum
from typing import List, Optional


class Period(str, Enum):
    """Search period tags understood by the search results page."""
    TOMORROW = 'tomorrow'
    THIS_WEEKEND = 'this-weekend'
    THIS_WEEK = 'this-week'
    NEXT_WEEK = 'next-week'
    THIS_MONTH = 'this-month'
    NEXT_MONTH = 'next-month'


@dataclass(frozen=True)
class ListingSummary:
    """Event card scraped from a search results page."""
    title: str
    url: str
    category: Optional[str]
    type: Optional[str]
    price: Optional[float]


@dataclass(frozen=True)
class ListingDetail:
    """Fields scraped from an event's own page."""
    organizer: Optional[str]
    location: Optional[str]
    date: Optional[str]


@dataclass(frozen=True)
class EnrichedListing:
    """Search result merged with its detail page."""
    title: str
    url: str
    category: Optional[str]
    type: Optional[str]
    price: Optional[float]
    organizer: Optional[str]
    location: Optional[str]
    date: Optional[str]

    @classmethod
    def merge(cls, summary: ListingSummary, detail: ListingDetail) -> 'EnrichedListing':
        return cls(**asdict(summary), **asdict(detail))

    @classmethod
    def field_names(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    def to_dict(self) -> dict:
        return asdict(self)
