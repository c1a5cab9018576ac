"""AWS Lambda handler for the Beacon Cinema calendar sync."""
import json
import logging
import os
import time
from datetime import datetime
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

import requests

from config import Config, ConfigError
from processor.deduplicator import dedupe
from processor.event_merger import EventMerger
from processor.horizon import filter_future
from processor.models import Event, RunSummary
from processor.side_tables import SideTableIndex, series_entries_from_rows
from scraper.beacon_calendar import BeaconCalendarScraper, ListingFetchError
from scraper.navigation import NavigationRetrier
from scraper.runtime_finder import RuntimeFinder
from scraper.series_scraper import SeriesScraper
from storage.calendar_reconciler import CalendarReconciler, DiffCalendarReconciler
from storage.dynamodb_row_store import DynamoDBRowStore
from storage.google_calendar import (
    CALENDAR_SCOPES,
    SHEETS_SCOPES,
    GoogleCalendarClient,
    build_google_service,
)
from storage.row_store import (
    RUNTIMES_TABLE,
    SCHEDULE_HEADER,
    SCHEDULE_TABLE,
    SERIES_INDEX_TABLE,
    SERIES_TABLE,
    CsvRowStore,
    RowStore,
    RowStoreError,
)
from storage.sheets_row_store import SheetsRowStore

_RESERVED_RECORD_KEYS = set(vars(logging.makeLogRecord({}))) | {'message', 'asctime'}


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON, including fields passed via extra."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_KEYS and not key.startswith('_'):
                log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # Create new handler with JSON formatter
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    # Set log level
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def build_row_store(config: Config) -> RowStore:
    """Create the side-table store selected by ROW_STORE."""
    if config.row_store == 'dynamodb':
        return DynamoDBRowStore(table_name=config.table_name)
    if config.row_store == 'sheets':
        if not config.credentials_file:
            raise ConfigError('GOOGLE_APPLICATION_CREDENTIALS is required when ROW_STORE is sheets')
        service = build_google_service('sheets', 'v4', config.credentials_file, SHEETS_SCOPES)
        return SheetsRowStore(service, config.spreadsheet_id)
    return CsvRowStore(config.data_dir)


def build_calendar_client(config: Config) -> GoogleCalendarClient:
    """Create the authenticated calendar client."""
    if not config.credentials_file:
        raise ConfigError('GOOGLE_APPLICATION_CREDENTIALS is required')
    service = build_google_service('calendar', 'v3', config.credentials_file, CALENDAR_SCOPES)
    return GoogleCalendarClient(service)


def build_reconciler(config: Config, client) -> CalendarReconciler:
    """Create the reconciler selected by RECONCILE_MODE."""
    reconciler_class = DiffCalendarReconciler if config.reconcile_mode == 'diff' else CalendarReconciler
    return reconciler_class(client, config.calendar_id, config.time_zone)


def schedule_rows(events: List[Event]) -> List[List[str]]:
    """Rows of the schedule snapshot table, header first."""
    rows = [list(SCHEDULE_HEADER)]
    for event in events:
        rows.append([
            event.title,
            event.date,
            event.time,
            event.source_url,
            event.series_tag,
            event.recorded_at.isoformat()
        ])
    return rows


def _response(
    status_code: int,
    message: str,
    summary: RunSummary,
    start_time: float,
    **extra: Any
) -> Dict[str, Any]:
    """Log the run summary and build the Lambda response."""
    logger = logging.getLogger(__name__)
    duration = round(time.time() - start_time, 2)
    statistics = dict(summary.as_dict(), duration_seconds=duration)

    level = logging.INFO if status_code == 200 and not summary.failed else logging.WARNING
    logger.log(
        level,
        f"Summary - Processed: {summary.processed}, Kept: {summary.kept}, "
        f"Created: {summary.created}, Failed: {summary.failed}",
        extra={'statistics': statistics}
    )

    body = {'message': message, 'statistics': statistics}
    body.update(extra)
    return {'statusCode': status_code, 'body': json.dumps(body, default=str)}


def _failure(
    message: str,
    error: Exception,
    stage: str,
    summary: RunSummary,
    start_time: float,
    **extra: Any
) -> Dict[str, Any]:
    logger = logging.getLogger(__name__)
    logger.error(
        f"{message}: {str(error)}",
        extra={'error_type': type(error).__name__, 'stage': stage},
        exc_info=True
    )
    return _response(
        500,
        message,
        summary,
        start_time,
        error=str(error),
        error_type=type(error).__name__,
        stage=stage,
        **extra
    )


def _read_side_tables(
    config: Config,
    store: RowStore,
    listings,
    retrier: NavigationRetrier,
    series_rows: Optional[List[List[str]]]
) -> SideTableIndex:
    series_index_rows = store.read_rows(SERIES_INDEX_TABLE)
    if series_rows is None:
        series_rows = store.read_rows(SERIES_TABLE)

    if config.refresh_runtimes:
        runtime_rows = RuntimeFinder(store, retrier).update_runtimes(
            listings,
            replace_existing=config.replace_existing_side_table
        )
    else:
        runtime_rows = store.read_rows(RUNTIMES_TABLE)

    return SideTableIndex.from_rows(series_index_rows, series_rows, runtime_rows)


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function for the calendar sync.

    Runs fetch, side-table indexing, merge, dedupe, horizon filter and
    reconciliation in order. A failure before reconciliation aborts the run
    without touching the calendar.

    Args:
        event: EventBridge event payload
        context: Lambda context object

    Returns:
        Response dict with statusCode and summary statistics
    """
    # Initialize logging
    setup_logging(os.environ.get('LOG_LEVEL', 'INFO'))
    logger = logging.getLogger(__name__)

    start_time = time.time()
    summary = RunSummary()

    try:
        try:
            config = Config.from_env()
        except ConfigError as e:
            return _failure('Invalid configuration', e, 'config', summary, start_time)

        # One instant for the whole run
        now = datetime.now(ZoneInfo(config.time_zone))
        logger.info(
            "Lambda execution started",
            extra={
                'calendar_id': config.calendar_id,
                'listing_url': config.listing_url,
                'row_store': config.row_store,
                'reconcile_mode': config.reconcile_mode,
                'run_at': now.isoformat()
            }
        )

        # Instantiate components
        retrier = NavigationRetrier(
            max_retries=config.max_retries,
            timeout=config.timeout_seconds,
            backoff=config.retry_backoff_seconds
        )
        scraper = BeaconCalendarScraper(retrier=retrier)
        merger = EventMerger(time_zone=config.time_zone, location=config.location)
        store = build_row_store(config)
        reconciler = build_reconciler(config, build_calendar_client(config))

        series_rows = None
        if config.refresh_series:
            try:
                logger.info("Refreshing series table")
                entries = series_entries_from_rows(store.read_rows(SERIES_INDEX_TABLE))
                series_rows = SeriesScraper(store, retrier).update_series(entries, now)
            except RowStoreError as e:
                return _failure('Failed to refresh series table', e, 'side_tables', summary, start_time)

        # Fetch listings; nothing downstream runs without them
        try:
            logger.info("Fetching listings from calendar page")
            listings = scraper.fetch_listings(config.listing_url)
            summary.processed = len(listings)
        except (ListingFetchError, requests.RequestException) as e:
            return _failure(
                'Failed to fetch listings',
                e,
                'fetch',
                summary,
                start_time,
                note='Calendar was not modified'
            )

        try:
            logger.info("Reading side-tables")
            index = _read_side_tables(config, store, listings, retrier, series_rows)
        except RowStoreError as e:
            return _failure(
                'Failed to read side-tables',
                e,
                'side_tables',
                summary,
                start_time,
                note='Calendar was not modified'
            )

        logger.info("Merging and validating events")
        events = dedupe(merger.merge(listings, index, now))
        kept = filter_future(events, now, config.time_zone)
        summary.kept = len(kept)

        if config.write_schedule:
            try:
                store.write_rows(SCHEDULE_TABLE, schedule_rows(events))
            except RowStoreError as e:
                logger.error(f"Failed to write schedule snapshot: {e}")

        if not kept and not config.allow_empty_replace:
            logger.warning("No valid events to create. Leaving existing calendar events in place.")
            return _response(
                200,
                'No events to sync, calendar left unchanged',
                summary,
                start_time
            )

        if config.event_limit and len(kept) > config.event_limit:
            logger.info(f"Limiting sync to the first {config.event_limit} of {len(kept)} events")
            kept = kept[:config.event_limit]

        try:
            logger.info("Reconciling calendar")
            result = reconciler.reconcile(kept, now)
        except Exception as e:
            return _failure(
                'Failed to reconcile calendar',
                e,
                'reconcile',
                summary,
                start_time,
                note='Existing calendar events could not be listed, calendar was not modified'
            )

        summary.created = result.created
        summary.failed = result.failed
        summary.deleted = result.deleted

        failures = result.failed + result.delete_failed
        logger.info(
            "Lambda execution completed",
            extra={
                'events_created': result.created,
                'events_deleted': result.deleted,
                'events_unchanged': result.unchanged,
                'insert_failures': result.failed,
                'delete_failures': result.delete_failed
            }
        )
        return _response(
            200,
            'Sync completed successfully' if not failures else 'Sync completed with errors',
            summary,
            start_time,
            delete_failed=result.delete_failed,
            unchanged=result.unchanged,
            errors=result.errors
        )

    except Exception as e:
        return _failure('Sync failed', e, 'run', summary, start_time)
