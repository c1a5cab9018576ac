"""Unit tests for the Google Sheets row store."""
from unittest.mock import MagicMock, Mock

import pytest
from googleapiclient.errors import HttpError

from storage.row_store import RowStoreError
from storage.sheets_row_store import SheetsRowStore


@pytest.fixture
def service():
    """Sheets service mock."""
    return MagicMock()


def http_error(status=403, reason='Forbidden'):
    """Build an HttpError as raised by the client library."""
    return HttpError(Mock(status=status, reason=reason), b'{"error": {"message": "denied"}}')


class TestSheetsRowStore:
    """Test cases for SheetsRowStore."""

    def test_read_rows(self, service):
        """Test reading a tab."""
        values = service.spreadsheets.return_value.values.return_value
        values.get.return_value.execute.return_value = {
            'values': [['Title', 'Runtime'], ['Alien', '117 minutes'], ['Them!']]
        }

        rows = SheetsRowStore(service, 'sheet-id').read_rows('runtimes')

        assert rows == [['Title', 'Runtime'], ['Alien', '117 minutes'], ['Them!']]
        values.get.assert_called_once_with(spreadsheetId='sheet-id', range='runtimes')

    def test_read_empty_tab(self, service):
        """Test that an empty tab has no rows."""
        values = service.spreadsheets.return_value.values.return_value
        values.get.return_value.execute.return_value = {}

        assert SheetsRowStore(service, 'sheet-id').read_rows('series') == []

    def test_write_rows_clears_then_updates(self, service):
        """Test that the tab is cleared before values are written."""
        values = service.spreadsheets.return_value.values.return_value
        rows = [['Title', 'SeriesTag'], ['Alien', 'SQ']]

        SheetsRowStore(service, 'sheet-id').write_rows('series', rows)

        values.clear.assert_called_once_with(spreadsheetId='sheet-id', range='series')
        values.update.assert_called_once_with(
            spreadsheetId='sheet-id',
            range='series!A1',
            valueInputOption='RAW',
            body={'values': rows}
        )

    def test_read_error(self, service):
        """Test that API errors surface as RowStoreError."""
        values = service.spreadsheets.return_value.values.return_value
        values.get.return_value.execute.side_effect = http_error()

        with pytest.raises(RowStoreError):
            SheetsRowStore(service, 'sheet-id').read_rows('runtimes')

    def test_write_error(self, service):
        """Test that a failed clear stops the write."""
        values = service.spreadsheets.return_value.values.return_value
        values.clear.return_value.execute.side_effect = http_error(404, 'Not Found')

        with pytest.raises(RowStoreError):
            SheetsRowStore(service, 'sheet-id').write_rows('runtimes', [['Title', 'Runtime']])

        values.update.assert_not_called()
