"""Data models for schedule reconciliation."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List


@dataclass
class RawListing:
    """Screening row as scraped from the listing page."""
    title: str
    date: str
    time: str
    url: str


@dataclass
class SeriesEntry:
    """One row of the series index side-table."""
    series_tag: str
    series_name: str
    series_url: str = ''


@dataclass
class RuntimeEntry:
    """One row of the runtimes side-table."""
    title: str
    runtime_text: str


@dataclass(frozen=True)
class Event:
    """Merged screening ready to be written to the calendar."""
    title: str
    start: datetime
    end: datetime
    series_tag: str
    description: str
    location: str
    source_url: str
    recorded_at: datetime

    @property
    def date(self) -> str:
        return self.start.strftime('%Y-%m-%d')

    @property
    def time(self) -> str:
        return self.start.strftime('%H:%M')


@dataclass
class ReconcileResult:
    """Result of a calendar reconciliation pass."""
    created: int
    failed: int
    deleted: int = 0
    delete_failed: int = 0
    unchanged: int = 0
    errors: List[str] = field(default_factory=list)


@dataclass
class RunSummary:
    """Counts reported at the end of a run."""
    processed: int = 0
    kept: int = 0
    created: int = 0
    failed: int = 0
    deleted: int = 0

    def as_dict(self) -> dict:
        return {
            'processed': self.processed,
            'kept': self.kept,
            'created': self.created,
            'failed': self.failed,
            'deleted': self.deleted,
        }
