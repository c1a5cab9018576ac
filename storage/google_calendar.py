"""Google API clients for the calendar and the side-table spreadsheet."""
import logging
from datetime import datetime, timezone, tzinfo
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from google.oauth2 import service_account
from googleapiclient.discovery import build

logger = logging.getLogger(__name__)

CALENDAR_SCOPES = ['https://www.googleapis.com/auth/calendar']
SHEETS_SCOPES = ['https://www.googleapis.com/auth/spreadsheets']


def build_google_service(
    api: str,
    version: str,
    credentials_file: str,
    scopes: List[str]
):
    """
    Build an authenticated Google API service from a service-account file.

    Args:
        api: API name, e.g. 'calendar' or 'sheets'
        version: API version, e.g. 'v3'
        credentials_file: Path to the service-account JSON key
        scopes: OAuth scopes to request

    Returns:
        googleapiclient Resource
    """
    credentials = service_account.Credentials.from_service_account_file(
        credentials_file,
        scopes=scopes
    )
    service = build(api, version, credentials=credentials, cache_discovery=False)
    logger.info(f"Initialized Google {api} {version} service")
    return service


def parse_event_time(
    event: dict,
    field: str = 'start',
    default_zone: Optional[tzinfo] = None
) -> Optional[datetime]:
    """
    Read the start or end of a calendar event resource as an aware datetime.

    Naive values take the event's timeZone, then default_zone, then UTC.
    All-day values are taken at midnight. Returns None when the value is missing
    or malformed.
    """
    value_fields = event.get(field, {})
    try:
        if value_fields.get('dateTime'):
            value = datetime.fromisoformat(value_fields['dateTime'].replace('Z', '+00:00'))
        elif value_fields.get('date'):
            value = datetime.fromisoformat(value_fields['date'])
        else:
            return None
        zone = ZoneInfo(value_fields['timeZone']) if value_fields.get('timeZone') else default_zone
    except (ValueError, ZoneInfoNotFoundError):
        return None

    if value.tzinfo is None:
        value = value.replace(tzinfo=zone or timezone.utc)
    return value


def _starts_at_or_after(event: dict, since: datetime) -> bool:
    start = parse_event_time(event, 'start', since.tzinfo)
    # Unreadable starts are listed so the sync still owns them
    return start is None or start >= since


class GoogleCalendarClient:
    """Thin wrapper over the Calendar v3 events resource."""

    PAGE_SIZE = 2500

    def __init__(self, service):
        """
        Args:
            service: Authenticated Calendar v3 service
        """
        self.service = service

    def list_future_events(self, calendar_id: str, since: datetime) -> List[dict]:
        """
        List every event starting at or after since, following pagination.

        Args:
            calendar_id: Target calendar
            since: Timezone-aware lower bound

        Returns:
            Calendar event resources
        """
        events = []
        page_token: Optional[str] = None

        while True:
            response = self.service.events().list(
                calendarId=calendar_id,
                timeMin=since.isoformat(),
                singleEvents=True,
                orderBy='startTime',
                maxResults=self.PAGE_SIZE,
                pageToken=page_token
            ).execute()
            events.extend(response.get('items', []))
            page_token = response.get('nextPageToken')
            if not page_token:
                break

        # timeMin matches on end time, so drop events that started earlier
        future = [event for event in events if _starts_at_or_after(event, since)]
        logger.info(f"Listed {len(future)} events starting on or after {since.isoformat()}")
        return future

    def delete(self, calendar_id: str, event_id: str) -> None:
        self.service.events().delete(calendarId=calendar_id, eventId=event_id).execute()

    def insert(self, calendar_id: str, body: dict) -> dict:
        return self.service.events().insert(calendarId=calendar_id, body=body).execute()
