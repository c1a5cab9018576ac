"""Row storage for side-tables."""
import csv
import logging
import os
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Sequence

logger = logging.getLogger(__name__)

# Table names and headers used by the sync
SERIES_INDEX_TABLE = 'seriesIndex'
SERIES_TABLE = 'series'
RUNTIMES_TABLE = 'runtimes'
SCHEDULE_TABLE = 'schedule'

SERIES_INDEX_HEADER = ['seriesName', 'seriesURL', 'seriesTag']
SERIES_HEADER = ['Title', 'SeriesTag', 'DateRecorded']
RUNTIMES_HEADER = ['Title', 'Runtime']
SCHEDULE_HEADER = ['Title', 'Date', 'Time', 'URL', 'SeriesTag', 'DateRecorded']


class RowStoreError(Exception):
    """Raised when a side-table cannot be read or written."""


class RowStore(ABC):
    """Storage of header-first string tables."""

    @abstractmethod
    def read_rows(self, table: str) -> List[List[str]]:
        """
        Read every row of a table, header first.

        Returns:
            List of rows, empty when the table does not exist yet

        Raises:
            RowStoreError: If the table exists but cannot be read
        """

    @abstractmethod
    def write_rows(self, table: str, rows: Sequence[Sequence[str]]) -> None:
        """
        Replace the content of a table with rows (header first).

        Raises:
            RowStoreError: If the table cannot be written
        """


def records_from_rows(
    rows: Sequence[Sequence[str]],
    required: Iterable[str] = ()
) -> List[Dict[str, str]]:
    """
    Convert header-first rows into dicts keyed by header name.

    Columns are located by header name rather than position, so tables may
    be reordered. Short rows are padded with empty strings and blank rows
    are skipped.

    Args:
        rows: Table rows, header first
        required: Header names that must be present (case-insensitive)

    Returns:
        One dict per data row, keyed by the required names as given and by
        every header cell as written

    Raises:
        RowStoreError: If a required column is missing from the header
    """
    if not rows:
        return []

    header = [str(cell).strip() for cell in rows[0]]
    positions = {name.lower(): index for index, name in reversed(list(enumerate(header)))}

    missing = [name for name in required if name.lower() not in positions]
    if missing:
        raise RowStoreError(
            f"Missing required column(s) {', '.join(missing)} in header {header}"
        )

    columns = {name: index for index, name in enumerate(header) if name}
    for name in required:
        columns[name] = positions[name.lower()]

    records = []
    for row in rows[1:]:
        cells = [str(cell) for cell in row]
        if not any(cell.strip() for cell in cells):
            continue
        cells += [''] * (len(header) - len(cells))
        records.append({name: cells[index] for name, index in columns.items()})

    return records


class CsvRowStore(RowStore):
    """Row store backed by one CSV file per table in a directory."""

    def __init__(self, directory: str):
        """
        Args:
            directory: Directory holding <table>.csv files
        """
        self.directory = directory

    def _path(self, table: str) -> str:
        return os.path.join(self.directory, f"{table}.csv")

    def read_rows(self, table: str) -> List[List[str]]:
        path = self._path(table)
        if not os.path.exists(path):
            logger.warning(f"Table file {path} does not exist, treating as empty")
            return []

        try:
            with open(path, newline='', encoding='utf-8') as handle:
                return [row for row in csv.reader(handle)]
        except (OSError, csv.Error, UnicodeDecodeError) as e:
            raise RowStoreError(f"Unable to read {path}: {e}") from e

    def write_rows(self, table: str, rows: Sequence[Sequence[str]]) -> None:
        path = self._path(table)
        try:
            os.makedirs(self.directory, exist_ok=True)
            with open(path, 'w', newline='', encoding='utf-8') as handle:
                csv.writer(handle).writerows(rows)
        except (OSError, csv.Error) as e:
            raise RowStoreError(f"Unable to write {path}: {e}") from e

        logger.info(f"Wrote {max(len(rows) - 1, 0)} rows to {path}")
