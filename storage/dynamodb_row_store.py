"""DynamoDB-backed row store for side-tables."""
import logging
from typing import List, Sequence

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from storage.row_store import RowStore, RowStoreError

logger = logging.getLogger(__name__)


class DynamoDBRowStore(RowStore):
    """
    Row store keeping every side-table in one DynamoDB table.

    Items are keyed by the side-table name (partition key 'side_table') and
    the row position (sort key 'row_index'); the cells of a row are stored
    as a list under 'cells'. Row 0 is the header.
    """

    BATCH_SIZE = 25  # DynamoDB batch operation limit

    def __init__(self, table_name: str):
        """
        Initialize DynamoDB resource and table reference.

        Args:
            table_name: Name of the DynamoDB table
        """
        self.table_name = table_name
        self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized DynamoDBRowStore for table: {table_name}")

    def _query_items(self, side_table: str, **kwargs) -> List[dict]:
        response = self.table.query(
            KeyConditionExpression=Key('side_table').eq(side_table),
            **kwargs
        )
        items = response.get('Items', [])

        # Handle pagination
        while 'LastEvaluatedKey' in response:
            response = self.table.query(
                KeyConditionExpression=Key('side_table').eq(side_table),
                ExclusiveStartKey=response['LastEvaluatedKey'],
                **kwargs
            )
            items.extend(response.get('Items', []))

        return items

    def read_rows(self, table: str) -> List[List[str]]:
        """
        Read all rows of a side-table in row order.

        Args:
            table: Side-table name

        Returns:
            Rows, header first; empty when the side-table has no items
        """
        try:
            items = self._query_items(table)
        except ClientError as e:
            logger.error(f"Error querying side-table {table}: {e}")
            raise RowStoreError(f"Unable to read side-table {table}: {e}") from e

        items.sort(key=lambda item: int(item['row_index']))
        rows = [[str(cell) for cell in item.get('cells', [])] for item in items]
        logger.info(f"Retrieved {len(rows)} rows of side-table {table} from DynamoDB")
        return rows

    def write_rows(self, table: str, rows: Sequence[Sequence[str]]) -> None:
        """
        Replace a side-table with rows.

        Existing items are deleted before the new rows are written, in
        batches of 25 items.

        Args:
            table: Side-table name
            rows: Rows to store, header first
        """
        try:
            existing = self._query_items(table, ProjectionExpression='side_table, row_index')
            self._batch_delete(table, [int(item['row_index']) for item in existing])
            self._batch_put(table, rows)
        except ClientError as e:
            logger.error(f"Error writing side-table {table}: {e}")
            raise RowStoreError(f"Unable to write side-table {table}: {e}") from e

        logger.info(f"Wrote {len(rows)} rows to side-table {table}")

    def _batch_delete(self, table: str, row_indexes: List[int]) -> None:
        for i in range(0, len(row_indexes), self.BATCH_SIZE):
            batch = row_indexes[i:i + self.BATCH_SIZE]
            with self.table.batch_writer() as writer:
                for row_index in batch:
                    writer.delete_item(Key={'side_table': table, 'row_index': row_index})

    def _batch_put(self, table: str, rows: Sequence[Sequence[str]]) -> None:
        for i in range(0, len(rows), self.BATCH_SIZE):
            batch = rows[i:i + self.BATCH_SIZE]
            with self.table.batch_writer() as writer:
                for offset, row in enumerate(batch):
                    writer.put_item(Item={
                        'side_table': table,
                        'row_index': i + offset,
                        'cells': [str(cell) for cell in row]
                    })
