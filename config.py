"""Run configuration read from environment variables."""
import os
from dataclasses import dataclass
from typing import Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_LISTING_URL = 'https://thebeacon.film/calendar'
DEFAULT_TIME_ZONE = 'America/Los_Angeles'
DEFAULT_LOCATION = 'The Beacon Cinema, 4405 Rainier Ave S, Seattle, WA 98118, USA'

ROW_STORES = ('csv', 'dynamodb', 'sheets')
RECONCILE_MODES = ('replace', 'diff')

_TRUE_VALUES = {'1', 'true', 'yes', 'y', 'on'}
_FALSE_VALUES = {'0', 'false', 'no', 'n', 'off', ''}


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid."""


def _bool(environ: Mapping[str, str], name: str, default: bool) -> bool:
    value = environ.get(name)
    if value is None:
        return default
    value = value.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got '{value}'")


def _int(environ: Mapping[str, str], name: str, default: int, minimum: int = 0) -> int:
    value = environ.get(name)
    if value is None or not value.strip():
        return default
    try:
        number = int(value)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got '{value}'") from e
    if number < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {number}")
    return number


def _float(environ: Mapping[str, str], name: str, default: float) -> float:
    value = environ.get(name)
    if value is None or not value.strip():
        return default
    try:
        number = float(value)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got '{value}'") from e
    if number < 0:
        raise ConfigError(f"{name} must not be negative, got {number}")
    return number


def _choice(environ: Mapping[str, str], name: str, default: str, choices) -> str:
    value = environ.get(name, default).strip().lower()
    if value not in choices:
        raise ConfigError(f"{name} must be one of {', '.join(choices)}, got '{value}'")
    return value


@dataclass(frozen=True)
class Config:
    """Settings resolved once at the start of a run."""
    calendar_id: str
    listing_url: str = DEFAULT_LISTING_URL
    time_zone: str = DEFAULT_TIME_ZONE
    location: str = DEFAULT_LOCATION
    log_level: str = 'INFO'
    timeout_seconds: int = 30
    max_retries: int = 2
    retry_backoff_seconds: float = 1.0
    row_store: str = 'csv'
    data_dir: str = 'files'
    table_name: str = 'beacon-side-tables'
    spreadsheet_id: Optional[str] = None
    credentials_file: Optional[str] = None
    refresh_series: bool = False
    refresh_runtimes: bool = False
    replace_existing_side_table: bool = False
    reconcile_mode: str = 'replace'
    allow_empty_replace: bool = False
    event_limit: int = 0
    write_schedule: bool = True

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'Config':
        """
        Read the configuration from environment variables.

        Args:
            environ: Mapping to read instead of os.environ

        Returns:
            Config instance

        Raises:
            ConfigError: If a value is missing or invalid
        """
        environ = os.environ if environ is None else environ

        calendar_id = environ.get('CALENDAR_ID', '').strip()
        if not calendar_id:
            raise ConfigError('CALENDAR_ID is required')

        time_zone = environ.get('TIME_ZONE', DEFAULT_TIME_ZONE).strip()
        try:
            ZoneInfo(time_zone)
        except (ValueError, ZoneInfoNotFoundError) as e:
            raise ConfigError(f"TIME_ZONE '{time_zone}' is not a known IANA time zone") from e

        row_store = _choice(environ, 'ROW_STORE', 'csv', ROW_STORES)
        spreadsheet_id = environ.get('SPREADSHEET_ID') or None
        if row_store == 'sheets' and not spreadsheet_id:
            raise ConfigError('SPREADSHEET_ID is required when ROW_STORE is sheets')

        return cls(
            calendar_id=calendar_id,
            listing_url=environ.get('LISTING_URL', DEFAULT_LISTING_URL),
            time_zone=time_zone,
            location=environ.get('VENUE_LOCATION', DEFAULT_LOCATION),
            log_level=environ.get('LOG_LEVEL', 'INFO'),
            timeout_seconds=_int(environ, 'TIMEOUT_SECONDS', 30, minimum=1),
            max_retries=_int(environ, 'MAX_RETRIES', 2),
            retry_backoff_seconds=_float(environ, 'RETRY_BACKOFF_SECONDS', 1.0),
            row_store=row_store,
            data_dir=environ.get('DATA_DIR', 'files'),
            table_name=environ.get('TABLE_NAME', 'beacon-side-tables'),
            spreadsheet_id=spreadsheet_id,
            credentials_file=environ.get('GOOGLE_APPLICATION_CREDENTIALS') or None,
            refresh_series=_bool(environ, 'REFRESH_SERIES', False),
            refresh_runtimes=_bool(environ, 'REFRESH_RUNTIMES', False),
            replace_existing_side_table=_bool(environ, 'REPLACE_EXISTING_SIDE_TABLE', False),
            reconcile_mode=_choice(environ, 'RECONCILE_MODE', 'replace', RECONCILE_MODES),
            allow_empty_replace=_bool(environ, 'ALLOW_EMPTY_REPLACE', False),
            event_limit=_int(environ, 'EVENT_LIMIT', 0),
            write_schedule=_bool(environ, 'WRITE_SCHEDULE', True)
        )
