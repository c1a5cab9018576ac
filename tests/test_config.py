"""Unit tests for configuration loading."""
import pytest

from config import DEFAULT_LOCATION, DEFAULT_TIME_ZONE, Config, ConfigError


def test_defaults():
    """Test that only CALENDAR_ID is required."""
    config = Config.from_env({'CALENDAR_ID': 'beacon@group.calendar.google.com'})

    assert config.calendar_id == 'beacon@group.calendar.google.com'
    assert config.time_zone == DEFAULT_TIME_ZONE
    assert config.location == DEFAULT_LOCATION
    assert config.row_store == 'csv'
    assert config.reconcile_mode == 'replace'
    assert config.max_retries == 2
    assert config.timeout_seconds == 30
    assert config.allow_empty_replace is False
    assert config.write_schedule is True
    assert config.event_limit == 0


def test_overrides():
    """Test reading every kind of value."""
    config = Config.from_env({
        'CALENDAR_ID': 'cal',
        'TIME_ZONE': 'America/New_York',
        'VENUE_LOCATION': 'Somewhere',
        'MAX_RETRIES': '4',
        'RETRY_BACKOFF_SECONDS': '0.5',
        'ROW_STORE': 'DynamoDB',
        'TABLE_NAME': 'side-tables',
        'REFRESH_RUNTIMES': 'yes',
        'RECONCILE_MODE': 'diff',
        'ALLOW_EMPTY_REPLACE': 'true',
        'EVENT_LIMIT': '5',
        'WRITE_SCHEDULE': 'off',
    })

    assert config.time_zone == 'America/New_York'
    assert config.location == 'Somewhere'
    assert config.max_retries == 4
    assert config.retry_backoff_seconds == 0.5
    assert config.row_store == 'dynamodb'
    assert config.table_name == 'side-tables'
    assert config.refresh_runtimes is True
    assert config.reconcile_mode == 'diff'
    assert config.allow_empty_replace is True
    assert config.event_limit == 5
    assert config.write_schedule is False


@pytest.mark.parametrize('environ, match', [
    ({}, 'CALENDAR_ID'),
    ({'CALENDAR_ID': '   '}, 'CALENDAR_ID'),
    ({'CALENDAR_ID': 'cal', 'TIME_ZONE': 'Pacific/Atlantis'}, 'TIME_ZONE'),
    ({'CALENDAR_ID': 'cal', 'MAX_RETRIES': 'two'}, 'MAX_RETRIES'),
    ({'CALENDAR_ID': 'cal', 'MAX_RETRIES': '-1'}, 'MAX_RETRIES'),
    ({'CALENDAR_ID': 'cal', 'TIMEOUT_SECONDS': '0'}, 'TIMEOUT_SECONDS'),
    ({'CALENDAR_ID': 'cal', 'RETRY_BACKOFF_SECONDS': '-2'}, 'RETRY_BACKOFF_SECONDS'),
    ({'CALENDAR_ID': 'cal', 'ROW_STORE': 'postgres'}, 'ROW_STORE'),
    ({'CALENDAR_ID': 'cal', 'ROW_STORE': 'sheets'}, 'SPREADSHEET_ID'),
    ({'CALENDAR_ID': 'cal', 'RECONCILE_MODE': 'merge'}, 'RECONCILE_MODE'),
    ({'CALENDAR_ID': 'cal', 'REFRESH_SERIES': 'maybe'}, 'REFRESH_SERIES'),
])
def test_invalid_values(environ, match):
    """Test that bad settings raise ConfigError naming the variable."""
    with pytest.raises(ConfigError, match=match):
        Config.from_env(environ)


def test_sheets_store_with_spreadsheet():
    """Test selecting the Sheets row store."""
    config = Config.from_env({'CALENDAR_ID': 'cal', 'ROW_STORE': 'sheets', 'SPREADSHEET_ID': 'sheet'})

    assert config.row_store == 'sheets'
    assert config.spreadsheet_id == 'sheet'
