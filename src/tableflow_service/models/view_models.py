"""Read-side projections: billing summary, invoice and dashboard stats.

None of these are stored; they are derived from already-loaded orders and
tables on every request.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from tableflow_service.models.order_models import Order


class RestaurantInfo(BaseModel):
    """Restaurant details printed on invoices."""

    name: str = Field(default="TableFlow Restaurant")
    address: str = Field(default="123 Restaurant Street")
    phone: str | None = Field(None)


class BillingSummary(BaseModel):
    """Billable orders split into the unpaid queue and the collected history."""

    model_config = ConfigDict(json_encoders={Decimal: str})

    pending_payment: list[Order] = Field(default_factory=list)
    collected: list[Order] = Field(default_factory=list)
    unpaid_count: int = 0
    unpaid_amount: Decimal = Decimal("0")
    paid_count: int = 0
    paid_amount: Decimal = Decimal("0")


class InvoiceLine(BaseModel):
    model_config = ConfigDict(json_encoders={Decimal: str})

    name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    notes: str | None = None


class Invoice(BaseModel):
    """Printable rendering of one order. Carries no state of its own."""

    model_config = ConfigDict(json_encoders={Decimal: str})

    restaurant: RestaurantInfo
    order_id: str
    table_number: int
    created_at: datetime
    lines: list[InvoiceLine]
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    is_paid: bool


class DashboardStats(BaseModel):
    """Headline numbers for the manager dashboard."""

    model_config = ConfigDict(json_encoders={Decimal: str})

    active_tables: int
    total_tables: int
    active_orders: int
    daily_revenue: Decimal
    orders_by_status: dict[str, int]
