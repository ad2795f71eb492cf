"""Exceptions raised by the service layer.

Repositories report expected store failures with simple return values
(None/False); services turn those into the exceptions below so the API
layer can map them to HTTP responses.
"""

from typing import Any


class TableFlowError(Exception):
    """Base exception for all service-layer errors."""

    def __init__(self, message: str, error_code: str, details: dict[str, Any] | None = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


class OrderValidationError(TableFlowError):
    """Raised when an order submission is rejected at the write boundary."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, "ORDER_VALIDATION_FAILED", details)


class NotFoundError(TableFlowError):
    """Raised when a referenced record does not exist."""

    def __init__(self, collection: str, record_id: str):
        self.collection = collection
        self.record_id = record_id
        super().__init__(
            f"{collection} record '{record_id}' not found",
            "NOT_FOUND",
            {"collection": collection, "id": record_id},
        )


class InvalidTransitionError(TableFlowError):
    """Raised when an order cannot move from its current status."""

    def __init__(self, order_id: str, current: str, requested: str):
        self.order_id = order_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Order {order_id} cannot move from '{current}' to '{requested}'",
            "INVALID_TRANSITION",
            {"order_id": order_id, "current": current, "requested": requested},
        )


class StoreWriteError(TableFlowError):
    """Raised when the entity store rejects or fails a write."""

    def __init__(self, collection: str, record_id: str, operation: str):
        super().__init__(
            f"Failed to {operation} {collection} record '{record_id}'",
            "STORE_WRITE_FAILED",
            {"collection": collection, "id": record_id, "operation": operation},
        )


class PaymentDeclinedError(TableFlowError):
    """Raised when the payment processor does not settle a bill."""

    def __init__(self, order_id: str, processor: str):
        super().__init__(
            f"Payment for order {order_id} was declined by {processor}",
            "PAYMENT_DECLINED",
            {"order_id": order_id, "processor": processor},
        )


class CatalogValidationError(TableFlowError):
    """Raised when a menu or category change is rejected before any write."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, "CATALOG_VALIDATION_FAILED", details)
