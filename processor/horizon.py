"""Drop events that are already in the past."""
import logging
from datetime import datetime
from typing import List
from zoneinfo import ZoneInfo

from processor.models import Event

logger = logging.getLogger(__name__)


def filter_future(events: List[Event], now: datetime, time_zone: str) -> List[Event]:
    """
    Keep events dated today or later in the venue time zone.

    The time of day is ignored, so a screening earlier today is still kept.

    Args:
        events: Events to filter
        now: Run instant, captured once per run (naive values are taken as venue time)
        time_zone: IANA name of the venue time zone

    Returns:
        Events whose date is on or after today
    """
    zone = ZoneInfo(time_zone)
    today = now.astimezone(zone).date() if now.tzinfo else now.date()

    kept = [event for event in events if event.start.astimezone(zone).date() >= today]

    logger.info(f"Kept {len(kept)} events on or after {today.isoformat()}, dropped {len(events) - len(kept)} past events")
    return kept
