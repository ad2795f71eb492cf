"""Billing resolver: payment queue, collected totals, payment and invoices."""

import logging
from decimal import Decimal

from tableflow_service.models.order_models import Order
from tableflow_service.models.view_models import (
    BillingSummary,
    Invoice,
    InvoiceLine,
    RestaurantInfo,
)
from tableflow_service.observability import traced
from tableflow_service.observability.metrics import record_payment
from tableflow_service.payments.base_processor import PaymentProcessor
from tableflow_service.services.exceptions import PaymentDeclinedError
from tableflow_service.services.order_lifecycle_service import OrderLifecycleService

logger = logging.getLogger(__name__)


def summarize_billing(orders: list[Order]) -> BillingSummary:
    """Split billable orders into unpaid and paid, with their totals.

    Orders that are not served or completed are ignored.

    Args:
        orders: Orders to summarize, in display order

    Returns:
        BillingSummary with both queues and their aggregates
    """
    billable = [o for o in orders if o.is_billable]
    unpaid = [o for o in billable if not o.is_paid]
    paid = [o for o in billable if o.is_paid]

    return BillingSummary(
        pending_payment=unpaid,
        collected=paid,
        unpaid_count=len(unpaid),
        unpaid_amount=sum((o.total for o in unpaid), Decimal("0")),
        paid_count=len(paid),
        paid_amount=sum((o.total for o in paid), Decimal("0")),
    )


class BillingService:
    """Service for settling bills and rendering invoices.

    Payment is the only write path here: it runs the payment processor and
    then the lifecycle's mark-paid transition, which also frees the table.
    There are no partial payments, split bills or refunds.
    """

    def __init__(
        self,
        order_service: OrderLifecycleService,
        payment_processor: PaymentProcessor,
        restaurant: RestaurantInfo | None = None,
    ) -> None:
        """Initialize the BillingService.

        Args:
            order_service: Order lifecycle manager
            payment_processor: Processor that settles the bill
            restaurant: Details printed on invoices
        """
        self.order_service = order_service
        self.payment_processor = payment_processor
        self.restaurant = restaurant or RestaurantInfo()

    async def get_summary(self) -> BillingSummary:
        """Summarize every served or completed order."""
        orders = await self.order_service.list_billable_orders()
        return summarize_billing(orders)

    @traced("billing.pay")
    async def pay(self, order_id: str) -> Order:
        """Settle an order's bill.

        An already-paid order is not charged again; it is handed back to
        the lifecycle service, which frees a table left occupied by it.

        Args:
            order_id: Order to pay

        Returns:
            The paid, completed Order

        Raises:
            NotFoundError: If the order does not exist
            InvalidTransitionError: If the order cannot be paid
            PaymentDeclinedError: If the processor does not settle it
            StoreWriteError: If recording the payment fails
        """
        order = await self.order_service.get_order(order_id)
        if order.is_paid:
            return await self.order_service.mark_paid(order_id)
        self.order_service.check_payable(order)

        if not await self.payment_processor.process_payment(order):
            logger.error(
                f"Payment for order {order_id} declined by {self.payment_processor.processor_name}"
            )
            raise PaymentDeclinedError(order_id, self.payment_processor.processor_name)

        paid = await self.order_service.mark_paid(order_id)
        record_payment(self.payment_processor.processor_name, paid.total)
        return paid

    def build_invoice(self, order: Order) -> Invoice:
        """Render the printable invoice of an order."""
        return Invoice(
            restaurant=self.restaurant,
            order_id=order.order_id,
            table_number=order.table.number,
            created_at=order.created_at,
            lines=[
                InvoiceLine(
                    name=line.menu_item.name,
                    quantity=line.quantity,
                    unit_price=line.price,
                    line_total=line.line_total,
                    notes=line.notes,
                )
                for line in order.items
            ],
            subtotal=order.subtotal,
            tax=order.tax,
            total=order.total,
            is_paid=order.is_paid,
        )

    async def get_invoice(self, order_id: str) -> Invoice:
        order = await self.order_service.get_order(order_id)
        return self.build_invoice(order)
