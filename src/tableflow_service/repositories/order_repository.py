"""DynamoDB repository for the ``orders`` collection.

Two global secondary indexes back the derived order queries:

- ``record_type-created_at-index``: every order in one partition, sorted by
  creation time (recent orders, today's orders)
- ``status-created_at-index``: orders partitioned by status, sorted by
  creation time (kitchen queue, billing queue)
"""

import heapq
import logging
from datetime import datetime

from botocore.exceptions import ClientError

from tableflow_service.models.order_models import ORDER_RECORD_TYPE, Order, OrderStatusEnum
from tableflow_service.repositories.base_repository import DynamoDBRepository

logger = logging.getLogger(__name__)

RECORD_TYPE_INDEX = "record_type-created_at-index"
STATUS_INDEX = "status-created_at-index"


class OrderRepository(DynamoDBRepository):
    """Repository for order CRUD operations and derived queries.

    Manages order records in DynamoDB with order_id as partition key.
    """

    def get_order(self, order_id: str) -> Order | None:
        """Retrieve an order by ID.

        Args:
            order_id: Order identifier

        Returns:
            Order if found, None otherwise
        """
        try:
            response = self.table.get_item(Key={"order_id": order_id})

            if "Item" not in response:
                return None

            return Order.from_dynamodb_item(response["Item"])

        except ClientError as e:
            logger.error(f"Failed to get order: {e}")  # pragma: no cover
            return None

    def save_order(self, order: Order) -> bool:
        """Save a full order document.

        Args:
            order: Order to save

        Returns:
            bool: True if save succeeded, False otherwise
        """
        try:
            self.table.put_item(Item=order.to_dynamodb_item())
            return True

        except ClientError as e:
            logger.error(f"Failed to save order: {e}")  # pragma: no cover
            return False

    def update_status(self, order_id: str, status: OrderStatusEnum, updated_at: datetime) -> bool:
        """Update the status of an existing order.

        Args:
            order_id: Order identifier
            status: New status
            updated_at: Timestamp of the change

        Returns:
            bool: True if update succeeded, False otherwise
        """
        try:
            self.table.update_item(
                Key={"order_id": order_id},
                UpdateExpression="SET #status = :status, updated_at = :updated_at",
                ConditionExpression="attribute_exists(order_id)",
                ExpressionAttributeNames={"#status": "status"},
                ExpressionAttributeValues={
                    ":status": status.value,
                    ":updated_at": updated_at.isoformat(),
                },
            )
            return True

        except ClientError as e:
            logger.error(f"Failed to update order status: {e}")  # pragma: no cover
            return False

    def mark_paid(self, order_id: str, updated_at: datetime) -> Order | None:
        """Flip an unpaid order to paid and completed.

        The write is conditional on the order still being unpaid, so of two
        concurrent payments only one succeeds.

        Args:
            order_id: Order identifier
            updated_at: Timestamp of the payment

        Returns:
            The updated Order, or None if the order was already paid, is
            missing, or the write failed
        """
        try:
            response = self.table.update_item(
                Key={"order_id": order_id},
                UpdateExpression="SET is_paid = :paid, #status = :status, updated_at = :updated_at",
                ConditionExpression="attribute_exists(order_id) AND is_paid = :unpaid",
                ExpressionAttributeNames={"#status": "status"},
                ExpressionAttributeValues={
                    ":paid": True,
                    ":unpaid": False,
                    ":status": OrderStatusEnum.COMPLETED.value,
                    ":updated_at": updated_at.isoformat(),
                },
                ReturnValues="ALL_NEW",
            )
            return Order.from_dynamodb_item(response["Attributes"])

        except ClientError as e:
            logger.error(f"Failed to mark order paid: {e}")  # pragma: no cover
            return None

    def delete_order(self, order_id: str) -> bool:
        """Delete an order.

        Args:
            order_id: Order identifier

        Returns:
            bool: True if delete succeeded, False otherwise
        """
        try:
            self.table.delete_item(Key={"order_id": order_id})
            return True

        except ClientError as e:
            logger.error(f"Failed to delete order: {e}")  # pragma: no cover
            return False

    def list_recent_orders(self, limit: int = 50) -> list[Order]:
        """List the most recently created orders, newest first.

        Args:
            limit: Maximum number of orders to return

        Returns:
            list: List of Order objects (empty list if none found)
        """
        try:
            items = self._query_all(
                IndexName=RECORD_TYPE_INDEX,
                KeyConditionExpression="record_type = :rt",
                ExpressionAttributeValues={":rt": ORDER_RECORD_TYPE},
                ScanIndexForward=False,  # Most recent first
                Limit=limit,
            )
            return [Order.from_dynamodb_item(item) for item in items]

        except ClientError as e:
            logger.error(f"Failed to list recent orders: {e}")  # pragma: no cover
            return []

    def list_orders_since(self, since: datetime) -> list[Order]:
        """List orders created at or after a point in time, newest first.

        Args:
            since: Inclusive lower bound on created_at

        Returns:
            list: List of Order objects (empty list if none found)
        """
        try:
            items = self._query_all(
                IndexName=RECORD_TYPE_INDEX,
                KeyConditionExpression="record_type = :rt AND created_at >= :since",
                ExpressionAttributeValues={
                    ":rt": ORDER_RECORD_TYPE,
                    ":since": since.isoformat(),
                },
                ScanIndexForward=False,
            )
            return [Order.from_dynamodb_item(item) for item in items]

        except ClientError as e:
            logger.error(f"Failed to list orders since {since.isoformat()}: {e}")  # pragma: no cover
            return []

    def list_orders_by_status(
        self, statuses: list[OrderStatusEnum], newest_first: bool = False
    ) -> list[Order]:
        """List orders in any of the given statuses, sorted by creation time.

        Each status is one partition of the status index; the per-status
        results are already sorted and are merged.

        Args:
            statuses: Statuses to include
            newest_first: Sort newest first instead of oldest first

        Returns:
            list: List of Order objects (empty list if none found)
        """
        try:
            per_status: list[list[Order]] = []
            for status in statuses:
                items = self._query_all(
                    IndexName=STATUS_INDEX,
                    KeyConditionExpression="#status = :status",
                    ExpressionAttributeNames={"#status": "status"},
                    ExpressionAttributeValues={":status": status.value},
                    ScanIndexForward=not newest_first,
                )
                per_status.append([Order.from_dynamodb_item(item) for item in items])

            return list(
                heapq.merge(*per_status, key=lambda o: o.created_at, reverse=newest_first)
            )

        except ClientError as e:
            logger.error(f"Failed to list orders by status: {e}")  # pragma: no cover
            return []
