"""Base class for payment processors.

A processor only answers whether a bill was settled. Following the
repository pattern, an expected failure is a False return value rather than
an exception; the billing layer decides what to do with it.
"""

from abc import ABC, abstractmethod

from tableflow_service.models.order_models import Order


class PaymentProcessor(ABC):
    """Abstract base class for payment processors."""

    def __init__(self, processor_name: str) -> None:
        """Initialize the payment processor.

        Args:
            processor_name: Name reported in logs and metrics
        """
        self.processor_name = processor_name

    @abstractmethod
    async def process_payment(self, order: Order) -> bool:
        """Settle the full bill of an order.

        Args:
            order: The order being paid; its ``total`` is the amount due

        Returns:
            bool: True if the payment went through, False otherwise
        """
        pass
