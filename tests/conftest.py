"""Shared fixtures."""
import itertools
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from processor.models import Event
from storage.google_calendar import parse_event_time

TIME_ZONE = 'America/Los_Angeles'
LOCATION = 'The Beacon Cinema, 4405 Rainier Ave S, Seattle, WA 98118, USA'


class FakeCalendarClient:
    """In-memory stand-in for GoogleCalendarClient."""

    def __init__(self, events=None):
        self.events = {}
        self.list_error = None
        self.delete_errors = {}
        self.insert_errors = {}
        self.deleted = []
        self.inserted = []
        self.calls = []
        self._ids = itertools.count(1)
        for event in events or []:
            self._store(dict(event))

    def _store(self, body):
        body.setdefault('id', f"evt{next(self._ids)}")
        self.events[body['id']] = body
        return body

    def list_future_events(self, calendar_id, since):
        if self.list_error:
            raise self.list_error
        future = []
        for body in self.events.values():
            start = parse_event_time(body, 'start', since.tzinfo)
            if start is None or start >= since:
                future.append(dict(body))
        return future

    def delete(self, calendar_id, event_id):
        self.calls.append(('delete', event_id))
        if event_id in self.delete_errors:
            raise self.delete_errors[event_id]
        del self.events[event_id]
        self.deleted.append(event_id)

    def insert(self, calendar_id, body):
        self.calls.append(('insert', body['summary']))
        if body['summary'] in self.insert_errors:
            raise self.insert_errors[body['summary']]
        stored = self._store(dict(body))
        self.inserted.append(stored)
        return stored


def calendar_body(summary, start, hours=2, time_zone=TIME_ZONE, **extra):
    """Build a calendar event resource starting at a naive local time."""
    body = {
        'summary': summary,
        'start': {'dateTime': start.isoformat(), 'timeZone': time_zone},
        'end': {'dateTime': (start + timedelta(hours=hours)).isoformat(), 'timeZone': time_zone},
    }
    body.update(extra)
    return body


def make_event(title, start, minutes=120, description='', series_tag='', url=''):
    """Build a kept Event starting at an aware start time."""
    return Event(
        title=title,
        start=start,
        end=start + timedelta(minutes=minutes),
        series_tag=series_tag,
        description=description,
        location=LOCATION,
        source_url=url,
        recorded_at=datetime(2026, 10, 19, 9, 0, tzinfo=ZoneInfo(TIME_ZONE))
    )


@pytest.fixture
def now():
    """Run instant in the venue time zone."""
    return datetime(2026, 10, 19, 9, 0, tzinfo=ZoneInfo(TIME_ZONE))


@pytest.fixture
def fake_calendar():
    """Empty in-memory calendar."""
    return FakeCalendarClient()
