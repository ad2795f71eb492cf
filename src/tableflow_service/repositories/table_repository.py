"""DynamoDB repository for the ``tables`` collection."""

import logging

from botocore.exceptions import ClientError

from tableflow_service.models.table_models import Table, TableStatusEnum
from tableflow_service.repositories.base_repository import DynamoDBRepository

logger = logging.getLogger(__name__)


class TableRepository(DynamoDBRepository):
    """Repository for dining table CRUD operations.

    Manages table records in DynamoDB with table_id as partition key.
    """

    def get_table(self, table_id: str) -> Table | None:
        """Retrieve a table by ID.

        Args:
            table_id: Table identifier

        Returns:
            Table if found, None otherwise
        """
        try:
            response = self.table.get_item(Key={"table_id": table_id})

            if "Item" not in response:
                return None

            return Table.from_dynamodb_item(response["Item"])

        except ClientError as e:
            logger.error(f"Failed to get table: {e}")  # pragma: no cover
            return None

    def save_table(self, table: Table) -> bool:
        """Save or replace a table record.

        Args:
            table: Table to save

        Returns:
            bool: True if save succeeded, False otherwise
        """
        try:
            self.table.put_item(Item=table.to_dynamodb_item())
            return True

        except ClientError as e:
            logger.error(f"Failed to save table: {e}")  # pragma: no cover
            return False

    def list_tables(self) -> list[Table]:
        """List all tables ordered by table number.

        Returns:
            list: List of Table objects (empty list if none found)
        """
        try:
            tables = [Table.from_dynamodb_item(item) for item in self._scan_all()]
            return sorted(tables, key=lambda t: t.number)

        except ClientError as e:
            logger.error(f"Failed to list tables: {e}")  # pragma: no cover
            return []

    def update_status(
        self,
        table_id: str,
        status: TableStatusEnum,
        current_order_id: str | None = None,
        clear_current_order: bool = False,
    ) -> bool:
        """Update the occupancy status of an existing table.

        Args:
            table_id: Table identifier
            status: New occupancy status
            current_order_id: Order to record as the table's current order
            clear_current_order: Remove the current order reference

        Returns:
            bool: True if update succeeded, False otherwise (including a
            missing table)
        """
        update_expression = "SET #status = :status"
        values: dict[str, str] = {":status": status.value}

        if current_order_id is not None:
            update_expression += ", current_order_id = :order_id"
            values[":order_id"] = current_order_id
        elif clear_current_order:
            update_expression += " REMOVE current_order_id"

        try:
            self.table.update_item(
                Key={"table_id": table_id},
                UpdateExpression=update_expression,
                ConditionExpression="attribute_exists(table_id)",
                ExpressionAttributeNames={"#status": "status"},
                ExpressionAttributeValues=values,
            )
            return True

        except ClientError as e:
            logger.error(f"Failed to update table status: {e}")  # pragma: no cover
            return False

    def delete_table(self, table_id: str) -> bool:
        """Delete a table. Orders referencing it are left untouched.

        Args:
            table_id: Table identifier

        Returns:
            bool: True if delete succeeded, False otherwise
        """
        try:
            self.table.delete_item(Key={"table_id": table_id})
            return True

        except ClientError as e:
            logger.error(f"Failed to delete table: {e}")  # pragma: no cover
            return False

    def save_many(self, tables: list[Table]) -> bool:
        """Write several tables in one batch.

        Args:
            tables: Tables to write

        Returns:
            bool: True if the batch was written, False otherwise
        """
        try:
            with self.table.batch_writer() as batch:
                for table in tables:
                    batch.put_item(Item=table.to_dynamodb_item())
            return True

        except ClientError as e:
            logger.error(f"Failed to batch write tables: {e}")  # pragma: no cover
            return False
