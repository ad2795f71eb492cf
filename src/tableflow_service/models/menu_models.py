"""Menu data models.

These models represent menu items and categories as stored in the
``menu_items`` and ``menu_categories`` collections. Menu edits mutate the
stored records in place; orders never reference them live but keep a
``MenuItemSnapshot`` taken when the order was created.
"""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MenuItem(BaseModel):
    """Menu item model."""

    model_config = ConfigDict(json_encoders={Decimal: str})

    item_id: str = Field(..., description="Unique identifier for the menu item")
    name: str = Field(..., description="Item name", min_length=1)
    description: str = Field(default="", description="Item description")
    price: Decimal = Field(..., description="Item price", ge=0)
    category_id: str = Field(..., description="Category this item belongs to")
    is_available: bool = Field(default=True, description="Whether item can be ordered right now")
    image_url: str | None = Field(None, description="URL to item image")

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        item: dict[str, Any] = {
            "item_id": self.item_id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "category_id": self.category_id,
            "is_available": self.is_available,
        }

        if self.image_url is not None:
            item["image_url"] = self.image_url

        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "MenuItem":
        """Create MenuItem from DynamoDB item.

        Args:
            item: DynamoDB item dictionary

        Returns:
            MenuItem: Parsed model instance
        """
        return cls(
            item_id=item["item_id"],
            name=item["name"],
            description=item.get("description", ""),
            price=Decimal(str(item["price"])),
            category_id=item["category_id"],
            is_available=item.get("is_available", True),
            image_url=item.get("image_url"),
        )


class MenuCategory(BaseModel):
    """Menu category model. ``display_order`` determines the sort."""

    category_id: str = Field(..., description="Unique identifier for the category")
    name: str = Field(..., description="Category name", min_length=1)
    display_order: int = Field(default=0, description="Display order of category")
    is_visible: bool = Field(default=True, description="Whether the category is shown to staff")

    def to_dynamodb_item(self) -> dict[str, Any]:
        return {
            "category_id": self.category_id,
            "name": self.name,
            "display_order": self.display_order,
            "is_visible": self.is_visible,
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "MenuCategory":
        return cls(
            category_id=item["category_id"],
            name=item["name"],
            display_order=int(item.get("display_order", 0)),
            is_visible=item.get("is_visible", True),
        )
