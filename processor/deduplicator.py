"""Collapse candidate events to a unique set."""
import logging
from typing import List

from processor.models import Event

logger = logging.getLogger(__name__)


def event_key(event: Event) -> str:
    """Composite key of display title, date and start time."""
    return f"{event.title}|{event.date}|{event.time}"


def dedupe(events: List[Event]) -> List[Event]:
    """
    Keep the first event for every key, preserving input order.

    Args:
        events: Candidate events

    Returns:
        Unique events
    """
    seen = set()
    unique = []

    for event in events:
        key = event_key(event)
        if key in seen:
            continue
        seen.add(key)
        unique.append(event)

    collisions = len(events) - len(unique)
    if collisions:
        logger.warning(
            f"Dropped {collisions} duplicate events sharing title, date and time "
            f"({len(unique)} unique of {len(events)})"
        )

    return unique
