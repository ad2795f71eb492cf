"""Shared pytest fixtures and configuration for all tests."""

import os
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from decimal import Decimal

# Keep main.py and lambda_handler.py from building the real app at import time
os.environ.setdefault("ENVIRONMENT", "test")

import pytest  # noqa: E402

from tableflow_service.models.menu_models import MenuCategory, MenuItem  # noqa: E402
from tableflow_service.models.order_models import (  # noqa: E402
    MenuItemSnapshot,
    Order,
    OrderItem,
    OrderStatusEnum,
    TableSnapshot,
    calculate_totals,
)
from tableflow_service.models.table_models import Table, TableStatusEnum  # noqa: E402
from tableflow_service.services.clock import Clock  # noqa: E402

FIXED_NOW = datetime(2024, 3, 15, 19, 30, tzinfo=UTC)


class FixedClock(Clock):
    """Clock pinned to a settable instant."""

    def __init__(self, now: datetime = FIXED_NOW, timezone: str = "UTC") -> None:
        super().__init__(timezone)
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock() -> FixedClock:
    """Fixture providing a clock pinned to 2024-03-15 19:30 UTC."""
    return FixedClock()


@pytest.fixture
def table_5() -> Table:
    """Fixture providing table number 5, currently free."""
    return Table(table_id="tbl_5", number=5, capacity=4)


@pytest.fixture
def menu_items() -> dict[str, MenuItem]:
    """Fixture providing a small menu keyed by item id."""
    items = [
        MenuItem(item_id="itm_pasta", name="Pasta", price=Decimal("10.00"), category_id="cat_mains"),
        MenuItem(item_id="itm_salad", name="Salad", price=Decimal("5.00"), category_id="cat_starters"),
        MenuItem(
            item_id="itm_soup",
            name="Soup of the Day",
            price=Decimal("6.99"),
            category_id="cat_starters",
            is_available=False,
        ),
    ]
    return {item.item_id: item for item in items}


@pytest.fixture
def categories() -> list[MenuCategory]:
    """Fixture providing three categories in display order."""
    return [
        MenuCategory(category_id="cat_starters", name="Starters", display_order=1),
        MenuCategory(category_id="cat_mains", name="Mains", display_order=2),
        MenuCategory(category_id="cat_desserts", name="Desserts", display_order=3),
    ]


@pytest.fixture
def make_order() -> Callable[..., Order]:
    """Fixture providing a factory for orders on table 5.

    Lines are (name, unit price, quantity) tuples; totals are computed the
    same way order creation computes them.
    """

    def factory(
        order_id: str = "ord_1",
        status: OrderStatusEnum = OrderStatusEnum.PENDING,
        is_paid: bool = False,
        lines: list[tuple[str, str, int]] | None = None,
        created_at: datetime = FIXED_NOW,
        table_id: str = "tbl_5",
        table_number: int = 5,
    ) -> Order:
        lines = lines or [("Pasta", "10.00", 2), ("Salad", "5.00", 1)]
        items = [
            OrderItem(
                line_id=f"line_{index + 1}",
                menu_item_id=f"itm_{name.lower()}",
                menu_item=MenuItemSnapshot(
                    item_id=f"itm_{name.lower()}",
                    name=name,
                    price=Decimal(price),
                    category_id="cat_mains",
                ),
                quantity=quantity,
                price=Decimal(price),
            )
            for index, (name, price, quantity) in enumerate(lines)
        ]
        subtotal, tax, total = calculate_totals(items)
        return Order(
            order_id=order_id,
            table_id=table_id,
            table=TableSnapshot(table_id=table_id, number=table_number, capacity=4),
            items=items,
            status=status,
            subtotal=subtotal,
            tax=tax,
            total=total,
            created_at=created_at,
            updated_at=created_at,
            is_paid=is_paid,
        )

    return factory


@pytest.fixture
def occupied_table_5(table_5: Table) -> Table:
    """Fixture providing table 5 occupied by order ord_1."""
    return table_5.model_copy(
        update={"status": TableStatusEnum.OCCUPIED, "current_order_id": "ord_1"}
    )
