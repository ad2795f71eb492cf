"""DynamoDB repositories for the ``menu_items`` and ``menu_categories`` collections."""

import logging

from botocore.exceptions import ClientError

from tableflow_service.models.menu_models import MenuCategory, MenuItem
from tableflow_service.repositories.base_repository import DynamoDBRepository

logger = logging.getLogger(__name__)


class MenuItemRepository(DynamoDBRepository):
    """Repository for menu item CRUD operations.

    Manages menu item records in DynamoDB with item_id as partition key.
    """

    def get_item(self, item_id: str) -> MenuItem | None:
        """Retrieve a menu item by ID.

        Args:
            item_id: Menu item identifier

        Returns:
            MenuItem if found, None otherwise
        """
        try:
            response = self.table.get_item(Key={"item_id": item_id})

            if "Item" not in response:
                return None

            return MenuItem.from_dynamodb_item(response["Item"])

        except ClientError as e:
            logger.error(f"Failed to get menu item: {e}")  # pragma: no cover
            return None

    def save_item(self, item: MenuItem) -> bool:
        """Save or replace a menu item.

        Args:
            item: MenuItem to save

        Returns:
            bool: True if save succeeded, False otherwise
        """
        try:
            self.table.put_item(Item=item.to_dynamodb_item())
            return True

        except ClientError as e:
            logger.error(f"Failed to save menu item: {e}")  # pragma: no cover
            return False

    def list_items(self) -> list[MenuItem]:
        """List all menu items sorted by name.

        Returns:
            list: List of MenuItem objects (empty list if none found)
        """
        try:
            items = [MenuItem.from_dynamodb_item(item) for item in self._scan_all()]
            return sorted(items, key=lambda i: i.name.lower())

        except ClientError as e:
            logger.error(f"Failed to list menu items: {e}")  # pragma: no cover
            return []

    def set_availability(self, item_id: str, is_available: bool) -> bool:
        """Set the availability flag of an existing menu item.

        Args:
            item_id: Menu item identifier
            is_available: New availability flag

        Returns:
            bool: True if update succeeded, False otherwise
        """
        try:
            self.table.update_item(
                Key={"item_id": item_id},
                UpdateExpression="SET is_available = :available",
                ConditionExpression="attribute_exists(item_id)",
                ExpressionAttributeValues={":available": is_available},
            )
            return True

        except ClientError as e:
            logger.error(f"Failed to update menu item availability: {e}")  # pragma: no cover
            return False

    def delete_item(self, item_id: str) -> bool:
        """Delete a menu item.

        Args:
            item_id: Menu item identifier

        Returns:
            bool: True if delete succeeded, False otherwise
        """
        try:
            self.table.delete_item(Key={"item_id": item_id})
            return True

        except ClientError as e:
            logger.error(f"Failed to delete menu item: {e}")  # pragma: no cover
            return False

    def save_many(self, items: list[MenuItem]) -> bool:
        """Write several menu items in one batch."""
        try:
            with self.table.batch_writer() as batch:
                for item in items:
                    batch.put_item(Item=item.to_dynamodb_item())
            return True

        except ClientError as e:
            logger.error(f"Failed to batch write menu items: {e}")  # pragma: no cover
            return False


class MenuCategoryRepository(DynamoDBRepository):
    """Repository for menu category CRUD operations.

    Manages category records in DynamoDB with category_id as partition key.
    """

    def get_category(self, category_id: str) -> MenuCategory | None:
        """Retrieve a category by ID.

        Args:
            category_id: Category identifier

        Returns:
            MenuCategory if found, None otherwise
        """
        try:
            response = self.table.get_item(Key={"category_id": category_id})

            if "Item" not in response:
                return None

            return MenuCategory.from_dynamodb_item(response["Item"])

        except ClientError as e:
            logger.error(f"Failed to get menu category: {e}")  # pragma: no cover
            return None

    def save_category(self, category: MenuCategory) -> bool:
        """Save or replace a category.

        Args:
            category: MenuCategory to save

        Returns:
            bool: True if save succeeded, False otherwise
        """
        try:
            self.table.put_item(Item=category.to_dynamodb_item())
            return True

        except ClientError as e:
            logger.error(f"Failed to save menu category: {e}")  # pragma: no cover
            return False

    def list_categories(self) -> list[MenuCategory]:
        """List all categories ordered by display order.

        Returns:
            list: List of MenuCategory objects (empty list if none found)
        """
        try:
            categories = [MenuCategory.from_dynamodb_item(item) for item in self._scan_all()]
            return sorted(categories, key=lambda c: c.display_order)

        except ClientError as e:
            logger.error(f"Failed to list menu categories: {e}")  # pragma: no cover
            return []

    def update_display_orders(self, display_orders: dict[str, int]) -> bool:
        """Rewrite the display order of several categories atomically.

        All updates go through one DynamoDB transaction, so either every
        category moves or none does.

        Args:
            display_orders: Mapping of category_id to its new display order

        Returns:
            bool: True if the transaction committed, False otherwise
        """
        if not display_orders:
            return True

        transact_items = [
            {
                "Update": {
                    "TableName": self.table_name,
                    "Key": {"category_id": {"S": category_id}},
                    "UpdateExpression": "SET display_order = :order",
                    "ConditionExpression": "attribute_exists(category_id)",
                    "ExpressionAttributeValues": {":order": {"N": str(order)}},
                }
            }
            for category_id, order in display_orders.items()
        ]

        try:
            self.dynamodb.meta.client.transact_write_items(TransactItems=transact_items)
            return True

        except ClientError as e:
            logger.error(f"Failed to reorder menu categories: {e}")  # pragma: no cover
            return False

    def delete_category(self, category_id: str) -> bool:
        """Delete a category. Menu items referencing it are left untouched.

        Args:
            category_id: Category identifier

        Returns:
            bool: True if delete succeeded, False otherwise
        """
        try:
            self.table.delete_item(Key={"category_id": category_id})
            return True

        except ClientError as e:
            logger.error(f"Failed to delete menu category: {e}")  # pragma: no cover
            return False

    def save_many(self, categories: list[MenuCategory]) -> bool:
        """Write several categories in one batch."""
        try:
            with self.table.batch_writer() as batch:
                for category in categories:
                    batch.put_item(Item=category.to_dynamodb_item())
            return True

        except ClientError as e:
            logger.error(f"Failed to batch write menu categories: {e}")  # pragma: no cover
            return False
