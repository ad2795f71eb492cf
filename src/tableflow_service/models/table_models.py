"""Dining table models."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class TableStatusEnum(str, Enum):
    """Enumeration of table occupancy values."""

    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"


class Table(BaseModel):
    """A physical seating unit.

    Stored in DynamoDB with table_id as partition key. ``number`` is the
    human-facing identifier printed on the table.
    """

    table_id: str = Field(..., description="Unique table identifier")
    number: int = Field(..., description="Human-facing table number", ge=1)
    capacity: int = Field(..., description="Seating capacity", ge=1)
    status: TableStatusEnum = Field(
        default=TableStatusEnum.AVAILABLE, description="Current occupancy status"
    )
    current_order_id: str | None = Field(None, description="Order most recently opened here")

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        item: dict[str, Any] = {
            "table_id": self.table_id,
            "number": self.number,
            "capacity": self.capacity,
            "status": self.status.value,
        }

        if self.current_order_id is not None:
            item["current_order_id"] = self.current_order_id

        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "Table":
        """Create Table from DynamoDB item.

        Args:
            item: DynamoDB item dictionary

        Returns:
            Table: Parsed model instance
        """
        return cls(
            table_id=item["table_id"],
            number=int(item["number"]),
            capacity=int(item["capacity"]),
            status=TableStatusEnum(item["status"]),
            current_order_id=item.get("current_order_id"),
        )
