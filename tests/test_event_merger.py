"""Unit tests for EventMerger."""
import logging
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from processor.event_merger import EventMerger, build_description, compute_end
from processor.models import RawListing
from processor.side_tables import SideTableIndex

TIME_ZONE = 'America/Los_Angeles'
LOCATION = 'The Beacon Cinema, 4405 Rainier Ave S, Seattle, WA 98118, USA'
NOW = datetime(2026, 10, 19, 9, 30, tzinfo=ZoneInfo(TIME_ZONE))


@pytest.fixture
def merger():
    """Create an EventMerger for the venue time zone."""
    return EventMerger(time_zone=TIME_ZONE, location=LOCATION)


@pytest.fixture
def index():
    """Side-table lookups with one series and two runtimes."""
    return SideTableIndex(
        series_names={'SQ': 'SCREAM QUEENS'},
        series_by_title={'alien': 'SQ', 'the thing': 'SQ'},
        runtimes={'Alien': '117 minutes', 'The Thing': 'about two hours'}
    )


class TestComputeEnd:
    """Test cases for compute_end."""

    def test_runtime_minutes_plus_padding(self):
        """Test that a parsable runtime adds fifteen minutes."""
        start = datetime(2025, 5, 1, 19, 0)
        assert compute_end(start, '90 minutes') == datetime(2025, 5, 1, 20, 45)

    def test_runtime_case_and_spacing(self):
        """Test case-insensitive match and optional whitespace."""
        start = datetime(2026, 10, 20, 19, 0)
        assert compute_end(start, '90Minutes') == start + timedelta(minutes=105)
        assert compute_end(start, '90   MINUTES') == start + timedelta(minutes=105)

    @pytest.mark.parametrize('runtime', [None, '', '1h 40m', '100 min', 'approx. 100 minutes'])
    def test_unparsable_runtime_defaults_to_two_hours(self, runtime):
        """Test the default duration."""
        start = datetime(2026, 10, 20, 19, 0)
        assert compute_end(start, runtime) == start + timedelta(hours=2)


class TestBuildDescription:
    """Test cases for build_description."""

    def test_all_parts(self):
        """Test the line order of a full description."""
        description = build_description('117 minutes', 'SCREAM QUEENS', 'https://thebeacon.film/alien')
        assert description == (
            'Runtime: 117 minutes\n'
            'Film Series: Scream Queens\n'
            'URL: https://thebeacon.film/alien'
        )

    def test_missing_parts_are_skipped(self):
        """Test that absent parts leave no blank lines."""
        assert build_description(None, None, 'https://x') == 'URL: https://x'
        assert build_description('90 minutes', None, '') == 'Runtime: 90 minutes'
        assert build_description(None, None, None) == ''


class TestEventMerger:
    """Test cases for EventMerger.merge."""

    def test_merge_full_listing(self, merger, index):
        """Test that series, runtime and URL are joined onto the event."""
        listings = [RawListing(title='ALIEN', date='2026-10-20', time='19:00', url='https://thebeacon.film/alien')]

        events = merger.merge(listings, index, NOW)

        assert len(events) == 1
        event = events[0]
        assert event.title == 'Alien'
        assert event.start == datetime(2026, 10, 20, 19, 0, tzinfo=ZoneInfo(TIME_ZONE))
        assert event.series_tag == 'SQ'
        assert event.location == LOCATION
        assert event.source_url == 'https://thebeacon.film/alien'
        assert event.recorded_at == NOW
        # Runtime lookup is exact, so 'ALIEN' has no runtime
        assert event.end == event.start + timedelta(hours=2)
        assert event.description == 'Film Series: Scream Queens\nURL: https://thebeacon.film/alien'

    def test_runtime_lookup_uses_title_as_written(self, merger, index):
        """Test that a runtime is found for the exact title."""
        listings = [RawListing(title='Alien', date='2026-10-20', time='19:00', url='')]

        event = merger.merge(listings, index, NOW)[0]

        assert event.end == event.start + timedelta(minutes=132)
        assert event.description.startswith('Runtime: 117 minutes')

    def test_unparsable_runtime_still_described(self, merger, index):
        """Test that free-text runtimes appear in the description with default duration."""
        listings = [RawListing(title='"The Thing"', date='2026-10-21', time='21:30', url='')]

        event = merger.merge(listings, index, NOW)[0]

        assert event.title == 'The Thing'
        assert event.series_tag == 'SQ'
        assert event.end == event.start + timedelta(hours=2)

    def test_excluded_titles_are_dropped(self, merger, index):
        """Test that the deny-list removes rental placeholders."""
        listings = [
            RawListing(title='Rent the Beacon', date='2026-10-20', time='12:00', url=''),
            RawListing(title='Alien', date='2026-10-20', time='19:00', url=''),
        ]

        events = merger.merge(listings, index, NOW)

        assert [event.title for event in events] == ['Alien']

    @pytest.mark.parametrize('listing', [
        RawListing(title='', date='2026-10-20', time='19:00', url=''),
        RawListing(title='Alien', date='', time='19:00', url=''),
        RawListing(title='Alien', date='2026-10-20', time='  ', url=''),
    ])
    def test_missing_fields_are_dropped(self, merger, index, listing, caplog):
        """Test that listings missing required fields are dropped with a warning."""
        with caplog.at_level(logging.WARNING):
            events = merger.merge([listing], index, NOW)

        assert events == []
        assert any('missing required field' in record.message for record in caplog.records)

    @pytest.mark.parametrize('date, time', [
        ('10/20/2026', '19:00'),
        ('2026-13-01', '19:00'),
        ('2026-10-20', '7:00 PM'),
        ('2026-10-20', '25:00'),
    ])
    def test_invalid_date_or_time_dropped(self, merger, index, date, time, caplog):
        """Test that malformed dates and times are dropped with an error."""
        listings = [RawListing(title='Alien', date=date, time=time, url='')]

        with caplog.at_level(logging.ERROR):
            events = merger.merge(listings, index, NOW)

        assert events == []
        assert any(record.levelno == logging.ERROR for record in caplog.records)

    def test_unknown_series_tag_is_cleared(self, merger, caplog):
        """Test that a tag missing from the series index is not kept."""
        index = SideTableIndex(series_by_title={'alien': 'XX'})
        listings = [RawListing(title='Alien', date='2026-10-20', time='19:00', url='')]

        with caplog.at_level(logging.WARNING):
            event = merger.merge(listings, index, NOW)[0]

        assert event.series_tag == ''
        assert 'Film Series' not in event.description
        assert any("'XX'" in record.message for record in caplog.records)

    def test_listing_order_preserved(self, merger, index):
        """Test that events come out in listing order."""
        listings = [
            RawListing(title='B Movie', date='2026-10-22', time='19:00', url=''),
            RawListing(title='A Movie', date='2026-10-20', time='19:00', url=''),
        ]

        events = merger.merge(listings, index, NOW)

        assert [event.title for event in events] == ['B Movie', 'A Movie']
