"""Table state register: occupancy of every dining table."""

import logging
import uuid

from tableflow_service.models.table_models import Table, TableStatusEnum
from tableflow_service.observability import traced
from tableflow_service.observability.metrics import record_table_status_change
from tableflow_service.realtime.change_feed import (
    ChangeEvent,
    ChangeFeed,
    ChangeOperation,
    Collection,
)
from tableflow_service.repositories.table_repository import TableRepository
from tableflow_service.services.exceptions import NotFoundError, StoreWriteError

logger = logging.getLogger(__name__)


class TableStateService:
    """Service owning table records and their occupancy status.

    Occupancy changes come from three places: ``occupy`` when an order is
    created, ``free`` when an order is paid, and ``set_status`` for a
    staff override. None of them check the table's orders; a table can be
    marked available while an order is still open on it.
    """

    def __init__(
        self,
        table_repository: TableRepository,
        change_feed: ChangeFeed | None = None,
    ) -> None:
        """Initialize the TableStateService.

        Args:
            table_repository: Repository for table records
            change_feed: Feed notified after every successful write
        """
        self.table_repository = table_repository
        self.change_feed = change_feed

    async def list_tables(self) -> list[Table]:
        """Return all tables ordered by number."""
        return self.table_repository.list_tables()

    async def get_table(self, table_id: str) -> Table:
        """Return a table.

        Raises:
            NotFoundError: If the table does not exist
        """
        table = self.table_repository.get_table(table_id)
        if table is None:
            raise NotFoundError(Collection.TABLES.value, table_id)
        return table

    async def create_table(
        self,
        number: int,
        capacity: int,
        status: TableStatusEnum = TableStatusEnum.AVAILABLE,
    ) -> Table:
        """Create a new table.

        Args:
            number: Human-facing table number
            capacity: Seating capacity
            status: Initial occupancy status

        Returns:
            The stored Table
        """
        table = Table(
            table_id=f"tbl_{uuid.uuid4().hex[:12]}",
            number=number,
            capacity=capacity,
            status=status,
        )
        if not self.table_repository.save_table(table):
            raise StoreWriteError(Collection.TABLES.value, table.table_id, "create")

        logger.info(f"Created table {table.number} ({table.table_id})")
        self._publish(table.table_id)
        return table

    async def update_table(
        self,
        table_id: str,
        number: int | None = None,
        capacity: int | None = None,
    ) -> Table:
        """Edit a table's number or capacity; status is left alone."""
        table = await self.get_table(table_id)
        changes: dict[str, int] = {}
        if number is not None:
            changes["number"] = number
        if capacity is not None:
            changes["capacity"] = capacity

        updated = Table.model_validate({**table.model_dump(), **changes})
        if not self.table_repository.save_table(updated):
            raise StoreWriteError(Collection.TABLES.value, table_id, "update")

        self._publish(table_id)
        return updated

    @traced("tables.set_status")
    async def set_status(self, table_id: str, status: TableStatusEnum) -> Table:
        """Staff override of a table's occupancy status.

        Any status is accepted regardless of the orders open on the table.

        Raises:
            NotFoundError: If the table does not exist
            StoreWriteError: If the store rejects the update
        """
        table = await self.get_table(table_id)
        if not self.table_repository.update_status(table_id, status):
            raise StoreWriteError(Collection.TABLES.value, table_id, "update status of")

        logger.info(f"Table {table.number} manually set to {status.value}")
        record_table_status_change(status.value, "manual")
        self._publish(table_id)
        return table.model_copy(update={"status": status})

    async def occupy(self, table_id: str, order_id: str) -> None:
        """Mark a table occupied by a newly created order.

        Applies whatever the table's prior status was.

        Raises:
            StoreWriteError: If the store rejects the update (including a
                table that no longer exists)
        """
        if not self.table_repository.update_status(
            table_id, TableStatusEnum.OCCUPIED, current_order_id=order_id
        ):
            raise StoreWriteError(Collection.TABLES.value, table_id, "occupy")

        record_table_status_change(TableStatusEnum.OCCUPIED.value, "order_created")
        self._publish(table_id)

    async def free(self, table_id: str) -> None:
        """Mark a table available after its order was paid.

        Raises:
            NotFoundError: If the table was deleted while the order was open
            StoreWriteError: If the store rejects the update
        """
        await self.get_table(table_id)
        if not self.table_repository.update_status(
            table_id, TableStatusEnum.AVAILABLE, clear_current_order=True
        ):
            raise StoreWriteError(Collection.TABLES.value, table_id, "free")

        record_table_status_change(TableStatusEnum.AVAILABLE.value, "order_paid")
        self._publish(table_id)

    async def delete_table(self, table_id: str) -> None:
        """Delete a table.

        Orders that reference the table keep their table_id and their
        embedded table snapshot.
        """
        if not self.table_repository.delete_table(table_id):
            raise StoreWriteError(Collection.TABLES.value, table_id, "delete")

        logger.info(f"Deleted table {table_id}")
        self._publish(table_id, ChangeOperation.DELETE)

    def _publish(self, table_id: str, operation: ChangeOperation = ChangeOperation.WRITE) -> None:
        if self.change_feed is not None:
            self.change_feed.publish(ChangeEvent(Collection.TABLES, table_id, operation))
