"""Dashboard aggregations and elapsed-time formatting.

Everything here is a pure reduction over orders and tables that were already
loaded. "Now" is always passed in from a Clock.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from tableflow_service.models.order_models import Order, OrderStatusEnum, is_terminal
from tableflow_service.models.table_models import Table, TableStatusEnum
from tableflow_service.models.view_models import DashboardStats
from tableflow_service.services.clock import Clock
from tableflow_service.services.order_lifecycle_service import OrderLifecycleService
from tableflow_service.services.table_state_service import TableStateService


class KitchenUrgency(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"


def _elapsed_minutes(created_at: datetime, now: datetime) -> int:
    return int((now - created_at).total_seconds() // 60)


def format_elapsed(created_at: datetime, now: datetime) -> str:
    """Format how long ago an order was placed, e.g. "5m ago" or "2h ago"."""
    minutes = _elapsed_minutes(created_at, now)
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes}m ago"
    return f"{minutes // 60}h ago"


def kitchen_urgency(created_at: datetime, now: datetime) -> KitchenUrgency:
    """Classify how long a kitchen ticket has been waiting."""
    minutes = _elapsed_minutes(created_at, now)
    if minutes > 30:
        return KitchenUrgency.CRITICAL
    if minutes > 15:
        return KitchenUrgency.WARNING
    return KitchenUrgency.NORMAL


def compute_dashboard_stats(tables: list[Table], orders: list[Order]) -> DashboardStats:
    """Reduce tables and today's orders to the dashboard headline numbers.

    Args:
        tables: All tables
        orders: Orders created today

    Returns:
        DashboardStats; every status appears in orders_by_status, with 0
        when no order has it
    """
    orders_by_status = {status.value: 0 for status in OrderStatusEnum}
    for order in orders:
        orders_by_status[order.status.value] += 1

    return DashboardStats(
        active_tables=sum(1 for t in tables if t.status == TableStatusEnum.OCCUPIED),
        total_tables=len(tables),
        active_orders=sum(1 for o in orders if not is_terminal(o.status)),
        daily_revenue=sum((o.total for o in orders if o.is_paid), Decimal("0")),
        orders_by_status=orders_by_status,
    )


class DashboardService:
    """Loads the inputs for the dashboard and reduces them."""

    def __init__(
        self,
        order_service: OrderLifecycleService,
        table_service: TableStateService,
        clock: Clock,
    ) -> None:
        self.order_service = order_service
        self.table_service = table_service
        self.clock = clock

    async def get_stats(self) -> DashboardStats:
        tables = await self.table_service.list_tables()
        orders = await self.order_service.list_todays_orders()
        return compute_dashboard_stats(tables, orders)

    def describe_age(self, order: Order) -> str:
        return format_elapsed(order.created_at, self.clock.now())

    def urgency(self, order: Order) -> KitchenUrgency:
        return kitchen_urgency(order.created_at, self.clock.now())
