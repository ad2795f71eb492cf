"""Simulated payment processor.

There is no gateway behind it: it waits a fixed processing delay and
reports success, mimicking what floor staff see at the card terminal.
"""

import asyncio
import logging

from tableflow_service.models.order_models import Order
from tableflow_service.payments.base_processor import PaymentProcessor

logger = logging.getLogger(__name__)


class SimulatedPaymentProcessor(PaymentProcessor):
    """Processor that always succeeds after an artificial delay."""

    def __init__(self, delay_seconds: float = 1.5) -> None:
        """Initialize the simulated processor.

        Args:
            delay_seconds: Artificial processing latency
        """
        super().__init__("simulated")
        self.delay_seconds = delay_seconds

    async def process_payment(self, order: Order) -> bool:
        logger.info(f"Processing simulated payment of {order.total} for order {order.order_id}")
        await asyncio.sleep(self.delay_seconds)
        return True
