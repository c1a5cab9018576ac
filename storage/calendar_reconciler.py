"""Calendar reconciliation: the sync owns every future event on the calendar."""
import logging
from datetime import datetime, time
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo

from processor.models import Event, ReconcileResult
from storage.google_calendar import parse_event_time

logger = logging.getLogger(__name__)

# Substrings of auth failures and what to check when one shows up
AUTH_ERROR_HINTS = {
    'invalid_grant': (
        'The credentials were rejected. Regenerate the service account key '
        'and check that the system clock is correct.'
    ),
    'unauthorized_client': (
        'The client is not allowed to use the calendar scope. Check the '
        'OAuth consent or domain-wide delegation settings.'
    ),
    'invalid_client': (
        'The client credentials are malformed or revoked. Check '
        'GOOGLE_APPLICATION_CREDENTIALS.'
    ),
    'invalid credentials': 'The access token is invalid. Refresh or regenerate the credentials.',
    'login required': 'The request was not authenticated. Check that credentials are loaded.',
    'insufficientpermissions': (
        'The credentials lack the calendar scope '
        'https://www.googleapis.com/auth/calendar.'
    ),
    'forbidden': (
        'Share the calendar with the service account email with '
        '"Make changes to events" permission.'
    ),
}


def auth_hints(message: str) -> List[str]:
    """Return troubleshooting hints for an error message that looks like an auth failure."""
    lowered = message.lower()
    return [hint for marker, hint in AUTH_ERROR_HINTS.items() if marker in lowered]


def horizon_start(now: datetime, time_zone: str) -> datetime:
    """Midnight of the run day in the venue time zone."""
    zone = ZoneInfo(time_zone)
    local_now = now.astimezone(zone) if now.tzinfo else now.replace(tzinfo=zone)
    return datetime.combine(local_now.date(), time.min, tzinfo=zone)


def event_to_body(event: Event, time_zone: str) -> dict:
    """
    Convert an Event to a calendar event resource.

    Start and end are written as local wall time next to the IANA zone name,
    never as UTC offsets.
    """
    zone = ZoneInfo(time_zone)
    start = event.start.astimezone(zone).replace(tzinfo=None)
    end = event.end.astimezone(zone).replace(tzinfo=None)
    return {
        'summary': event.title,
        'start': {'dateTime': start.isoformat(), 'timeZone': time_zone},
        'end': {'dateTime': end.isoformat(), 'timeZone': time_zone},
        'location': event.location,
        'description': event.description,
    }


class CalendarReconciler:
    """Replaces every future calendar event with the kept event set."""

    def __init__(self, client, calendar_id: str, time_zone: str):
        """
        Args:
            client: Calendar client with list_future_events, delete and insert
            calendar_id: Target calendar
            time_zone: IANA name of the venue time zone
        """
        self.client = client
        self.calendar_id = calendar_id
        self.time_zone = time_zone

    def reconcile(self, events: List[Event], now: datetime) -> ReconcileResult:
        """
        Delete all future calendar events, then insert events.

        Listing failures propagate before anything is changed. Individual
        delete and insert failures are logged and counted.

        Args:
            events: Kept, unique events
            now: Run instant shared with the horizon filter

        Returns:
            ReconcileResult with created and failed counts
        """
        since = horizon_start(now, self.time_zone)
        logger.info(f"Starting reconciliation of {len(events)} events from {since.isoformat()}")

        existing = self.client.list_future_events(self.calendar_id, since)
        errors: List[str] = []

        deleted, delete_failed = self._delete_events(existing, errors)
        created, failed = self._insert_events(events, errors)

        logger.info(
            f"Reconciliation complete: {deleted} deleted, {delete_failed} delete failures, "
            f"{created} created, {failed} insert failures"
        )
        return ReconcileResult(
            created=created,
            failed=failed,
            deleted=deleted,
            delete_failed=delete_failed,
            errors=errors
        )

    def _delete_events(self, existing: List[dict], errors: List[str]) -> Tuple[int, int]:
        if not existing:
            logger.info("No upcoming events to delete")
            return 0, 0

        logger.info(f"Found {len(existing)} upcoming events. Deleting them...")
        deleted = 0
        failed = 0

        for item in existing:
            summary = item.get('summary', '')
            try:
                self.client.delete(self.calendar_id, item['id'])
                deleted += 1
                logger.debug(f"Deleted event: {summary}")
            except Exception as e:
                failed += 1
                self._record_failure(f"Failed to delete event '{summary}': {e}", e, errors)
                continue

        return deleted, failed

    def _insert_events(self, events: List[Event], errors: List[str]) -> Tuple[int, int]:
        created = 0
        failed = 0

        for event in events:
            try:
                self.client.insert(self.calendar_id, event_to_body(event, self.time_zone))
                created += 1
                logger.debug(f"Event created: {event.title}")
            except Exception as e:
                failed += 1
                self._record_failure(
                    f"Failed to create event '{event.title}' on {event.date} {event.time}: {e}",
                    e,
                    errors
                )
                continue

        return created, failed

    def _record_failure(self, message: str, error: Exception, errors: List[str]) -> None:
        logger.error(message)
        errors.append(message)
        # Hints match the error text only, never the event title
        for hint in auth_hints(str(error)):
            logger.warning(f"Authentication troubleshooting: {hint}")


Fingerprint = Tuple[str, datetime, datetime, str, str]


def _event_fingerprint(event: Event) -> Fingerprint:
    return (event.title, event.start, event.end, event.location or '', event.description or '')


class DiffCalendarReconciler(CalendarReconciler):
    """
    Reconciler that leaves matching calendar events in place.

    Future calendar events that do not exactly match a kept event (and
    surplus copies of those that do) are deleted; kept events without a
    match are inserted. Afterwards the future calendar holds exactly the
    kept set, as with the replacing reconciler.
    """

    def reconcile(self, events: List[Event], now: datetime) -> ReconcileResult:
        since = horizon_start(now, self.time_zone)
        logger.info(f"Starting diff reconciliation of {len(events)} events from {since.isoformat()}")

        existing = self.client.list_future_events(self.calendar_id, since)
        wanted = {_event_fingerprint(event) for event in events}

        matched = set()
        to_delete = []
        for item in existing:
            fingerprint = self._existing_fingerprint(item, since)
            if fingerprint in wanted and fingerprint not in matched:
                matched.add(fingerprint)
            else:
                to_delete.append(item)

        to_insert = [event for event in events if _event_fingerprint(event) not in matched]

        logger.info(
            f"Sync plan: {len(to_insert)} to add, {len(to_delete)} to delete, "
            f"{len(matched)} unchanged"
        )

        errors: List[str] = []
        deleted, delete_failed = self._delete_events(to_delete, errors)
        created, failed = self._insert_events(to_insert, errors)

        logger.info(
            f"Diff reconciliation complete: {created} added, {deleted} deleted, "
            f"{len(matched)} unchanged, {failed + delete_failed} failures"
        )
        return ReconcileResult(
            created=created,
            failed=failed,
            deleted=deleted,
            delete_failed=delete_failed,
            unchanged=len(matched),
            errors=errors
        )

    def _existing_fingerprint(self, item: dict, since: datetime) -> Optional[Fingerprint]:
        start = parse_event_time(item, 'start', since.tzinfo)
        end = parse_event_time(item, 'end', since.tzinfo)
        if start is None or end is None:
            return None
        return (
            item.get('summary', ''),
            start,
            end,
            item.get('location', '') or '',
            item.get('description', '') or ''
        )
