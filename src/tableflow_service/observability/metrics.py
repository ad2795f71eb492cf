"""Custom metrics for the TableFlow service."""

from decimal import Decimal

from opentelemetry import metrics

meter = metrics.get_meter("tableflow-svc")

orders_created_counter = meter.create_counter(
    name="orders_created_total",
    description="Total number of orders created",
    unit="1",
)

order_transition_counter = meter.create_counter(
    name="order_status_transitions_total",
    description="Total number of order status changes by target status",
    unit="1",
)

payments_counter = meter.create_counter(
    name="order_payments_total",
    description="Total number of settled bills",
    unit="1",
)

collected_amount_counter = meter.create_counter(
    name="order_payments_amount",
    description="Total amount collected from settled bills",
    unit="USD",
)

order_total_histogram = meter.create_histogram(
    name="order_total_amount",
    description="Bill total of created orders",
    unit="USD",
)

table_status_counter = meter.create_counter(
    name="table_status_changes_total",
    description="Total number of table occupancy changes by status and cause",
    unit="1",
)

live_subscribers = meter.create_up_down_counter(
    name="live_query_subscribers",
    description="Current number of open live query connections",
    unit="1",
)


def record_order_created(table_number: int, total: Decimal) -> None:
    """Record a newly created order.

    Args:
        table_number: Human-facing number of the table
        total: Bill total of the order
    """
    orders_created_counter.add(1, {"table_number": table_number})
    order_total_histogram.record(float(total))


def record_status_transition(from_status: str, to_status: str) -> None:
    order_transition_counter.add(1, {"from_status": from_status, "to_status": to_status})


def record_payment(processor: str, total: Decimal) -> None:
    """Record a settled bill.

    Args:
        processor: Name of the payment processor that handled it
        total: Amount collected
    """
    payments_counter.add(1, {"processor": processor})
    collected_amount_counter.add(float(total), {"processor": processor})


def record_table_status_change(status: str, cause: str) -> None:
    table_status_counter.add(1, {"status": status, "cause": cause})


def record_live_subscriber_change(change: int) -> None:
    live_subscribers.add(change)
