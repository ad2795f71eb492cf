"""Order models and the order status state machine.

Orders embed frozen snapshots of the table and of every menu item at the
moment the order was created. Those snapshots are never re-resolved from the
live ``tables`` / ``menu_items`` collections, so later menu edits do not
rewrite order history.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from tableflow_service.models.menu_models import MenuItem
from tableflow_service.models.table_models import Table

TAX_RATE = Decimal("0.08")
CENT = Decimal("0.01")

# Partition value of the record_type GSI; every order carries it.
ORDER_RECORD_TYPE = "order"


class OrderStatusEnum(str, Enum):
    """Enumeration of order status values."""

    PENDING = "pending"
    IN_PREPARATION = "in-preparation"
    SERVED = "served"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({OrderStatusEnum.COMPLETED, OrderStatusEnum.CANCELLED})
BILLABLE_STATUSES = frozenset({OrderStatusEnum.SERVED, OrderStatusEnum.COMPLETED})
KITCHEN_STATUSES = (OrderStatusEnum.PENDING, OrderStatusEnum.IN_PREPARATION)

_NEXT_STATUS: dict[OrderStatusEnum, OrderStatusEnum] = {
    OrderStatusEnum.PENDING: OrderStatusEnum.IN_PREPARATION,
    OrderStatusEnum.IN_PREPARATION: OrderStatusEnum.SERVED,
    OrderStatusEnum.SERVED: OrderStatusEnum.COMPLETED,
}


def next_status(status: OrderStatusEnum) -> OrderStatusEnum | None:
    """Return the status an order advances to, or None if it is terminal."""
    return _NEXT_STATUS.get(status)


def is_terminal(status: OrderStatusEnum) -> bool:
    return status in TERMINAL_STATUSES


def calculate_totals(lines: list["OrderItem"]) -> tuple[Decimal, Decimal, Decimal]:
    """Compute subtotal, tax and total for a list of order lines.

    Tax is 8% of the subtotal rounded half-up to cents, and the total is
    exactly subtotal plus tax.

    Args:
        lines: Order lines with their unit price snapshots

    Returns:
        Tuple of (subtotal, tax, total)
    """
    subtotal = sum((line.price * line.quantity for line in lines), Decimal("0"))
    subtotal = subtotal.quantize(CENT, rounding=ROUND_HALF_UP)
    tax = (subtotal * TAX_RATE).quantize(CENT, rounding=ROUND_HALF_UP)
    return subtotal, tax, subtotal + tax


class TableSnapshot(BaseModel):
    """Copy of the table record taken when the order was created."""

    model_config = ConfigDict(frozen=True)

    table_id: str
    number: int
    capacity: int

    @classmethod
    def capture(cls, table: Table) -> "TableSnapshot":
        return cls(table_id=table.table_id, number=table.number, capacity=table.capacity)


class MenuItemSnapshot(BaseModel):
    """Copy of the menu item taken when the order was created."""

    model_config = ConfigDict(frozen=True, json_encoders={Decimal: str})

    item_id: str
    name: str
    price: Decimal
    category_id: str

    @classmethod
    def capture(cls, menu_item: MenuItem) -> "MenuItemSnapshot":
        return cls(
            item_id=menu_item.item_id,
            name=menu_item.name,
            price=menu_item.price,
            category_id=menu_item.category_id,
        )


class OrderItem(BaseModel):
    """One line of an order."""

    model_config = ConfigDict(frozen=True, json_encoders={Decimal: str})

    line_id: str = Field(..., description="Line identifier, unique within the order")
    menu_item_id: str = Field(..., description="Menu item this line was ordered from")
    menu_item: MenuItemSnapshot = Field(..., description="Menu item as it was at order time")
    quantity: int = Field(..., description="Number of portions", ge=1)
    price: Decimal = Field(..., description="Unit price fixed at order time", ge=0)
    notes: str | None = Field(None, description="Free-text preparation note")

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    def to_dynamodb_item(self) -> dict[str, Any]:
        return {
            "line_id": self.line_id,
            "menu_item_id": self.menu_item_id,
            "menu_item": self.menu_item.model_dump(),
            "quantity": self.quantity,
            "price": self.price,
            # DynamoDB has no undefined; absent notes are stored as null
            "notes": self.notes,
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "OrderItem":
        snapshot = item["menu_item"]
        return cls(
            line_id=item["line_id"],
            menu_item_id=item["menu_item_id"],
            menu_item=MenuItemSnapshot(
                item_id=snapshot["item_id"],
                name=snapshot["name"],
                price=Decimal(str(snapshot["price"])),
                category_id=snapshot["category_id"],
            ),
            quantity=int(item["quantity"]),
            price=Decimal(str(item["price"])),
            notes=item.get("notes"),
        )


class Order(BaseModel):
    """A staff-submitted cart against one table.

    Stored in DynamoDB with order_id as partition key. The item list is
    never edited after creation; only ``status``, ``is_paid`` and
    ``updated_at`` change.
    """

    model_config = ConfigDict(json_encoders={Decimal: str})

    order_id: str = Field(..., description="Unique order identifier")
    table_id: str = Field(..., description="Table the order was placed at")
    table: TableSnapshot = Field(..., description="Table as it was at order time")
    items: list[OrderItem] = Field(..., description="Order lines", min_length=1)
    status: OrderStatusEnum = Field(default=OrderStatusEnum.PENDING, description="Current status")
    subtotal: Decimal = Field(..., description="Sum of line totals", ge=0)
    tax: Decimal = Field(..., description="Tax on the subtotal", ge=0)
    total: Decimal = Field(..., description="Subtotal plus tax", ge=0)
    created_at: datetime = Field(..., description="Order creation timestamp")
    updated_at: datetime = Field(..., description="Last status change timestamp")
    is_paid: bool = Field(default=False, description="Whether the bill has been settled")

    @property
    def is_billable(self) -> bool:
        return self.status in BILLABLE_STATUSES

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        return {
            "order_id": self.order_id,
            "record_type": ORDER_RECORD_TYPE,
            "table_id": self.table_id,
            "table": self.table.model_dump(),
            "items": [line.to_dynamodb_item() for line in self.items],
            "status": self.status.value,
            "subtotal": self.subtotal,
            "tax": self.tax,
            "total": self.total,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "is_paid": self.is_paid,
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "Order":
        """Create Order from DynamoDB item.

        Args:
            item: DynamoDB item dictionary

        Returns:
            Order: Parsed model instance
        """
        table = item["table"]
        return cls(
            order_id=item["order_id"],
            table_id=item["table_id"],
            table=TableSnapshot(
                table_id=table["table_id"],
                number=int(table["number"]),
                capacity=int(table["capacity"]),
            ),
            items=[OrderItem.from_dynamodb_item(line) for line in item["items"]],
            status=OrderStatusEnum(item["status"]),
            subtotal=Decimal(str(item["subtotal"])),
            tax=Decimal(str(item["tax"])),
            total=Decimal(str(item["total"])),
            created_at=datetime.fromisoformat(item["created_at"]),
            updated_at=datetime.fromisoformat(item["updated_at"]),
            is_paid=item.get("is_paid", False),
        )
