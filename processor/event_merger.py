"""Event merger joining scraped listings with side-table data."""
import logging
import re
from datetime import datetime, timedelta
from typing import List, Optional
from zoneinfo import ZoneInfo

from processor.models import Event, RawListing
from processor.normalizer import format_title, is_excluded, normalize_title
from processor.side_tables import SideTableIndex

logger = logging.getLogger(__name__)

RUNTIME_PATTERN = re.compile(r'^(\d+)\s*minutes$', re.IGNORECASE)
DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')
TIME_PATTERN = re.compile(r'^\d{2}:\d{2}$')

# Trailers and changeover on top of the film runtime
RUNTIME_PAD = timedelta(minutes=15)
DEFAULT_DURATION = timedelta(hours=2)


def compute_end(start: datetime, runtime_text: Optional[str]) -> datetime:
    """
    Compute when a screening stops occupying the venue.

    Args:
        start: Screening start
        runtime_text: Free runtime text such as '100 minutes', or None

    Returns:
        start + runtime + 15 minutes when the runtime reads '<N> minutes',
        otherwise start + 2 hours
    """
    if runtime_text:
        match = RUNTIME_PATTERN.match(runtime_text.strip())
        if match:
            return start + timedelta(minutes=int(match.group(1))) + RUNTIME_PAD
    return start + DEFAULT_DURATION


def build_description(
    runtime_text: Optional[str],
    series_name: Optional[str],
    source_url: Optional[str]
) -> str:
    """Join the runtime, series and URL lines, leaving out absent parts."""
    parts = []
    if runtime_text:
        parts.append(f"Runtime: {runtime_text}")
    if series_name:
        parts.append(f"Film Series: {format_title(series_name)}")
    if source_url:
        parts.append(f"URL: {source_url}")
    return '\n'.join(parts)


class EventMerger:
    """Builds calendar events from listings and side-table lookups."""

    def __init__(self, time_zone: str, location: str):
        """
        Args:
            time_zone: IANA name of the venue time zone
            location: Venue address written on every event
        """
        self.time_zone = ZoneInfo(time_zone)
        self.location = location

    def merge(
        self,
        listings: List[RawListing],
        index: SideTableIndex,
        now: datetime
    ) -> List[Event]:
        """
        Merge listings with series and runtime data.

        Args:
            listings: Raw scraped listings
            index: Side-table lookups for this run
            now: Run instant, recorded on every event

        Returns:
            Candidate events in listing order
        """
        events = []
        excluded = 0

        for listing in listings:
            if is_excluded(listing.title or ''):
                excluded += 1
                continue
            event = self._merge_single_listing(listing, index, now)
            if event:
                events.append(event)

        logger.info(
            f"Merged {len(events)} events out of {len(listings)} listings "
            f"({excluded} excluded)"
        )
        return events

    def _merge_single_listing(
        self,
        listing: RawListing,
        index: SideTableIndex,
        now: datetime
    ) -> Optional[Event]:
        if not self._validate_required_fields(listing):
            return None

        date_str = listing.date.strip()
        time_str = listing.time.strip()
        start = self._parse_start(listing.title, date_str, time_str)
        if start is None:
            return None

        series_tag = index.series_by_title.get(normalize_title(listing.title), '')
        series_name = index.series_names.get(series_tag) if series_tag else None
        if series_tag and series_name is None:
            logger.warning(
                f"Series tag '{series_tag}' for '{listing.title}' is not in the series index, ignoring it"
            )
            series_tag = ''

        runtime_text = self._lookup_runtime(listing.title, index)
        url = (listing.url or '').strip()

        return Event(
            title=format_title(listing.title.strip()),
            start=start,
            end=compute_end(start, runtime_text),
            series_tag=series_tag,
            description=build_description(runtime_text, series_name, url),
            location=self.location,
            source_url=url,
            recorded_at=now
        )

    def _validate_required_fields(self, listing: RawListing) -> bool:
        if not listing.title or not listing.title.strip():
            logger.warning("Listing missing required field: title")
            return False

        if not listing.date or not listing.date.strip():
            logger.warning(f"Listing '{listing.title}' missing required field: date")
            return False

        if not listing.time or not listing.time.strip():
            logger.warning(f"Listing '{listing.title}' missing required field: time")
            return False

        return True

    def _parse_start(self, title: str, date_str: str, time_str: str) -> Optional[datetime]:
        if not DATE_PATTERN.match(date_str):
            logger.error(f"Invalid date format for '{title}': {date_str}")
            return None

        if not TIME_PATTERN.match(time_str):
            logger.error(f"Invalid time format for '{title}': {time_str}")
            return None

        try:
            start = datetime.strptime(f"{date_str} {time_str}", '%Y-%m-%d %H:%M')
        except ValueError as e:
            logger.error(f"Invalid date or time for '{title}': {date_str} {time_str} ({e})")
            return None

        return start.replace(tzinfo=self.time_zone)

    def _lookup_runtime(self, title: str, index: SideTableIndex) -> Optional[str]:
        runtime = index.runtimes.get(title)
        if runtime is None:
            runtime = index.runtimes.get(title.strip())
        return runtime
