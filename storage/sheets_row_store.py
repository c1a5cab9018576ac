"""Google Sheets-backed row store, one tab per side-table."""
import logging
from typing import List, Sequence

from googleapiclient.errors import HttpError

from storage.row_store import RowStore, RowStoreError

logger = logging.getLogger(__name__)


class SheetsRowStore(RowStore):
    """Row store reading and writing whole tabs of a spreadsheet."""

    def __init__(self, service, spreadsheet_id: str):
        """
        Args:
            service: Authenticated Sheets v4 service
            spreadsheet_id: Spreadsheet holding the side-table tabs
        """
        self.service = service
        self.spreadsheet_id = spreadsheet_id

    def read_rows(self, table: str) -> List[List[str]]:
        try:
            result = self.service.spreadsheets().values().get(
                spreadsheetId=self.spreadsheet_id,
                range=table
            ).execute()
        except HttpError as e:
            logger.error(f"Error reading sheet '{table}': {e}")
            raise RowStoreError(f"Unable to read sheet {table}: {e}") from e

        rows = [[str(cell) for cell in row] for row in result.get('values', [])]
        logger.info(f"Retrieved {len(rows)} rows from sheet '{table}'")
        return rows

    def write_rows(self, table: str, rows: Sequence[Sequence[str]]) -> None:
        values = [[str(cell) for cell in row] for row in rows]
        try:
            self.service.spreadsheets().values().clear(
                spreadsheetId=self.spreadsheet_id,
                range=table
            ).execute()
            self.service.spreadsheets().values().update(
                spreadsheetId=self.spreadsheet_id,
                range=f"{table}!A1",
                valueInputOption='RAW',
                body={'values': values}
            ).execute()
        except HttpError as e:
            logger.error(f"Error writing to sheet '{table}': {e}")
            raise RowStoreError(f"Unable to write sheet {table}: {e}") from e

        logger.info(f"Wrote {len(values)} rows to sheet '{table}'")
