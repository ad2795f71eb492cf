"""Order lifecycle manager.

Owns the order status state machine and the table changes paired with it:

    pending -> in-preparation -> served -> completed     (advance)
    pending | in-preparation | served -> cancelled       (cancel)
    any status except cancelled -> completed + paid      (mark paid)

Creating an order occupies its table; paying it frees the table.
Cancelling leaves the table as it is.
"""

import logging
import uuid
from dataclasses import dataclass

from tableflow_service.models.order_models import (
    BILLABLE_STATUSES,
    KITCHEN_STATUSES,
    MenuItemSnapshot,
    Order,
    OrderItem,
    OrderStatusEnum,
    TableSnapshot,
    calculate_totals,
    is_terminal,
    next_status,
)
from tableflow_service.models.table_models import TableStatusEnum
from tableflow_service.observability import traced
from tableflow_service.observability.metrics import record_order_created, record_status_transition
from tableflow_service.realtime.change_feed import (
    ChangeEvent,
    ChangeFeed,
    ChangeOperation,
    Collection,
)
from tableflow_service.repositories.menu_repositories import MenuItemRepository
from tableflow_service.repositories.order_repository import OrderRepository
from tableflow_service.services.clock import Clock
from tableflow_service.services.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    OrderValidationError,
    StoreWriteError,
)
from tableflow_service.services.table_state_service import TableStateService

logger = logging.getLogger(__name__)

RECENT_ORDERS_LIMIT = 50


@dataclass
class CartLine:
    """One line of a cart submitted for a new order.

    Attributes:
        menu_item_id: Menu item being ordered
        quantity: Number of portions, at least 1
        notes: Optional preparation note
    """

    menu_item_id: str
    quantity: int
    notes: str | None = None


class OrderLifecycleService:
    """Service applying order creation, status transitions, payment and deletion."""

    def __init__(
        self,
        order_repository: OrderRepository,
        menu_item_repository: MenuItemRepository,
        table_service: TableStateService,
        clock: Clock,
        change_feed: ChangeFeed | None = None,
        payment_requires_billable: bool = False,
    ) -> None:
        """Initialize the OrderLifecycleService.

        Args:
            order_repository: Repository for order records
            menu_item_repository: Repository used to snapshot ordered items
            table_service: Table state register, for occupy/free
            clock: Source of the current time
            change_feed: Feed notified after every successful write
            payment_requires_billable: Only accept payment for served or
                completed orders
        """
        self.order_repository = order_repository
        self.menu_item_repository = menu_item_repository
        self.table_service = table_service
        self.clock = clock
        self.change_feed = change_feed
        self.payment_requires_billable = payment_requires_billable

    @traced("orders.create")
    async def create_order(self, table_id: str | None, lines: list[CartLine]) -> Order:
        """Create an order from a cart and occupy its table.

        Menu items and the table are copied into the order as snapshots;
        prices are fixed from this point on.

        Args:
            table_id: Table the order is placed at
            lines: Cart lines, at least one

        Returns:
            The stored Order, status pending and unpaid

        Raises:
            OrderValidationError: Missing table, empty cart, bad quantity,
                unknown or unavailable menu item
            StoreWriteError: If the order or table write fails
        """
        if not table_id:
            raise OrderValidationError("No table selected")
        if not lines:
            raise OrderValidationError("Cart is empty", {"table_id": table_id})

        try:
            table = await self.table_service.get_table(table_id)
        except NotFoundError as e:
            raise OrderValidationError(
                f"Table '{table_id}' does not exist", {"table_id": table_id}
            ) from e

        order_items = [self._build_order_item(index, line) for index, line in enumerate(lines)]
        subtotal, tax, total = calculate_totals(order_items)
        now = self.clock.now()

        order = Order(
            order_id=f"ord_{uuid.uuid4().hex[:12]}",
            table_id=table_id,
            table=TableSnapshot.capture(table),
            items=order_items,
            status=OrderStatusEnum.PENDING,
            subtotal=subtotal,
            tax=tax,
            total=total,
            created_at=now,
            updated_at=now,
            is_paid=False,
        )

        if not self.order_repository.save_order(order):
            raise StoreWriteError(Collection.ORDERS.value, order.order_id, "create")

        self._publish(order.order_id)
        await self.table_service.occupy(table_id, order.order_id)

        logger.info(
            f"Created order {order.order_id} for table {table.number}: "
            f"{len(order_items)} lines, total {order.total}"
        )
        record_order_created(table.number, order.total)
        return order

    def _build_order_item(self, index: int, line: CartLine) -> OrderItem:
        if line.quantity < 1:
            raise OrderValidationError(
                "Quantity must be at least 1",
                {"menu_item_id": line.menu_item_id, "quantity": line.quantity},
            )

        menu_item = self.menu_item_repository.get_item(line.menu_item_id)
        if menu_item is None:
            raise OrderValidationError(
                f"Menu item '{line.menu_item_id}' does not exist",
                {"menu_item_id": line.menu_item_id},
            )
        if not menu_item.is_available:
            raise OrderValidationError(
                f"Menu item '{menu_item.name}' is not available",
                {"menu_item_id": line.menu_item_id},
            )

        return OrderItem(
            line_id=f"line_{index + 1}",
            menu_item_id=menu_item.item_id,
            menu_item=MenuItemSnapshot.capture(menu_item),
            quantity=line.quantity,
            price=menu_item.price,
            notes=line.notes or None,
        )

    async def get_order(self, order_id: str) -> Order:
        """Return an order.

        Raises:
            NotFoundError: If the order does not exist
        """
        order = self.order_repository.get_order(order_id)
        if order is None:
            raise NotFoundError(Collection.ORDERS.value, order_id)
        return order

    @traced("orders.advance")
    async def advance_order(self, order_id: str) -> Order:
        """Move an order one step along the preparation path.

        A terminal order is returned unchanged.
        """
        order = await self.get_order(order_id)
        target = next_status(order.status)
        if target is None:
            logger.info(f"Order {order_id} is {order.status.value}; nothing to advance")
            return order
        return await self._apply_status(order, target)

    @traced("orders.update_status")
    async def update_status(self, order_id: str, status: OrderStatusEnum) -> Order:
        """Apply an explicit status change.

        Only the next step of the preparation path or a cancellation is
        accepted. Requesting the current status is a no-op.

        Raises:
            InvalidTransitionError: For any other target status
        """
        order = await self.get_order(order_id)
        if status == order.status:
            return order
        if status == OrderStatusEnum.CANCELLED:
            return await self.cancel_order(order_id)
        if status != next_status(order.status):
            raise InvalidTransitionError(order_id, order.status.value, status.value)
        return await self._apply_status(order, status)

    @traced("orders.cancel")
    async def cancel_order(self, order_id: str) -> Order:
        """Cancel a non-terminal order. The table's status is not changed.

        Raises:
            InvalidTransitionError: If the order is completed or cancelled
        """
        order = await self.get_order(order_id)
        if is_terminal(order.status):
            raise InvalidTransitionError(
                order_id, order.status.value, OrderStatusEnum.CANCELLED.value
            )
        return await self._apply_status(order, OrderStatusEnum.CANCELLED)

    def check_payable(self, order: Order) -> None:
        """Raise if an order cannot be paid.

        Cancelled orders are never payable. Unless payment_requires_billable
        is set, every other status is.
        """
        if order.status == OrderStatusEnum.CANCELLED or (
            self.payment_requires_billable
            and not order.is_paid
            and order.status not in BILLABLE_STATUSES
        ):
            raise InvalidTransitionError(order.order_id, order.status.value, "paid")

    @traced("orders.mark_paid")
    async def mark_paid(self, order_id: str) -> Order:
        """Flip an order to paid and completed, then free its table.

        The paid flag flips once. Paying an already-paid order returns it
        unchanged; the table is only written again if freeing it failed
        after the earlier payment and it still points at this order.

        Raises:
            NotFoundError: If the order does not exist
            InvalidTransitionError: If the order is not payable
            StoreWriteError: If the payment write fails
        """
        order = await self.get_order(order_id)
        if order.is_paid:
            logger.info(f"Order {order_id} is already paid")
            await self._release_stale_table(order)
            return order
        self.check_payable(order)

        paid = self.order_repository.mark_paid(order_id, self.clock.now())
        if paid is None:
            # Lost a race with a concurrent payment, or the write failed
            current = self.order_repository.get_order(order_id)
            if current is not None and current.is_paid:
                logger.info(f"Order {order_id} was paid concurrently")
                return current
            raise StoreWriteError(Collection.ORDERS.value, order_id, "mark paid")

        self._publish(order_id)
        record_status_transition(order.status.value, OrderStatusEnum.COMPLETED.value)

        try:
            await self.table_service.free(paid.table_id)
        except NotFoundError:
            logger.warning(
                f"Order {order_id} paid but its table {paid.table_id} no longer exists"
            )

        logger.info(f"Order {order_id} paid, total {paid.total}")
        return paid

    @traced("orders.delete")
    async def delete_order(self, order_id: str) -> None:
        """Delete a completed order. Tables are not touched.

        Raises:
            InvalidTransitionError: If the order is not completed
        """
        order = await self.get_order(order_id)
        if order.status != OrderStatusEnum.COMPLETED:
            raise InvalidTransitionError(order_id, order.status.value, "deleted")

        if not self.order_repository.delete_order(order_id):
            raise StoreWriteError(Collection.ORDERS.value, order_id, "delete")

        logger.info(f"Deleted order {order_id}")
        self._publish(order_id, ChangeOperation.DELETE)

    async def list_recent_orders(self) -> list[Order]:
        """All orders, newest first, capped at 50."""
        return self.order_repository.list_recent_orders(limit=RECENT_ORDERS_LIMIT)

    async def list_kitchen_queue(self) -> list[Order]:
        """Pending and in-preparation orders, oldest first."""
        return self.order_repository.list_orders_by_status(list(KITCHEN_STATUSES))

    async def list_billing_queue(self) -> list[Order]:
        """Served orders waiting for their bill, newest first."""
        return self.order_repository.list_orders_by_status(
            [OrderStatusEnum.SERVED], newest_first=True
        )

    async def list_billable_orders(self) -> list[Order]:
        """Served and completed orders, newest first."""
        return self.order_repository.list_orders_by_status(
            [OrderStatusEnum.SERVED, OrderStatusEnum.COMPLETED], newest_first=True
        )

    async def list_todays_orders(self) -> list[Order]:
        """Orders created since local midnight, newest first."""
        return self.order_repository.list_orders_since(self.clock.local_midnight())

    async def _release_stale_table(self, order: Order) -> None:
        try:
            table = await self.table_service.get_table(order.table_id)
        except NotFoundError:
            return
        if table.status == TableStatusEnum.OCCUPIED and table.current_order_id == order.order_id:
            logger.warning(f"Table {table.table_id} still held by paid order {order.order_id}, freeing it")
            await self.table_service.free(table.table_id)

    async def _apply_status(self, order: Order, status: OrderStatusEnum) -> Order:
        now = self.clock.now()
        if not self.order_repository.update_status(order.order_id, status, now):
            raise StoreWriteError(Collection.ORDERS.value, order.order_id, "update status of")

        logger.info(f"Order {order.order_id}: {order.status.value} -> {status.value}")
        record_status_transition(order.status.value, status.value)
        self._publish(order.order_id)
        return order.model_copy(update={"status": status, "updated_at": now})

    def _publish(self, order_id: str, operation: ChangeOperation = ChangeOperation.WRITE) -> None:
        if self.change_feed is not None:
            self.change_feed.publish(ChangeEvent(Collection.ORDERS, order_id, operation))
