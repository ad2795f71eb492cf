"""Menu catalog service: items, availability and categories."""

import logging
import uuid
from decimal import Decimal
from enum import Enum
from typing import Any

from tableflow_service.models.menu_models import MenuCategory, MenuItem
from tableflow_service.realtime.change_feed import (
    ChangeEvent,
    ChangeFeed,
    ChangeOperation,
    Collection,
)
from tableflow_service.repositories.menu_repositories import (
    MenuCategoryRepository,
    MenuItemRepository,
)
from tableflow_service.services.exceptions import (
    CatalogValidationError,
    NotFoundError,
    StoreWriteError,
)

logger = logging.getLogger(__name__)


class MoveDirection(str, Enum):
    UP = "up"
    DOWN = "down"


class MenuService:
    """Service for menu item and category management.

    Edits mutate records in place. Orders already placed are unaffected
    because they carry their own snapshot of each item.
    """

    def __init__(
        self,
        item_repository: MenuItemRepository,
        category_repository: MenuCategoryRepository,
        change_feed: ChangeFeed | None = None,
    ) -> None:
        """Initialize the MenuService.

        Args:
            item_repository: Repository for menu items
            category_repository: Repository for menu categories
            change_feed: Feed notified after every successful write
        """
        self.item_repository = item_repository
        self.category_repository = category_repository
        self.change_feed = change_feed

    # --- Menu items ---

    async def list_menu_items(self) -> list[MenuItem]:
        return self.item_repository.list_items()

    async def get_menu_item(self, item_id: str) -> MenuItem:
        """Return a menu item.

        Raises:
            NotFoundError: If the item does not exist
        """
        item = self.item_repository.get_item(item_id)
        if item is None:
            raise NotFoundError(Collection.MENU_ITEMS.value, item_id)
        return item

    async def add_menu_item(
        self,
        name: str,
        price: Decimal,
        category_id: str,
        description: str = "",
        is_available: bool = True,
        image_url: str | None = None,
    ) -> MenuItem:
        """Create a menu item."""
        item = MenuItem(
            item_id=f"itm_{uuid.uuid4().hex[:12]}",
            name=name,
            description=description,
            price=price,
            category_id=category_id,
            is_available=is_available,
            image_url=image_url,
        )
        if not self.item_repository.save_item(item):
            raise StoreWriteError(Collection.MENU_ITEMS.value, item.item_id, "create")

        logger.info(f"Added menu item {item.name} ({item.item_id})")
        self._publish(Collection.MENU_ITEMS, item.item_id)
        return item

    async def update_menu_item(self, item_id: str, changes: dict[str, Any]) -> MenuItem:
        """Apply field changes to a menu item.

        Args:
            item_id: Menu item to edit
            changes: Field values to overwrite; item_id cannot change

        Returns:
            The updated MenuItem
        """
        item = await self.get_menu_item(item_id)
        changes = {k: v for k, v in changes.items() if k != "item_id"}
        updated = MenuItem.model_validate({**item.model_dump(), **changes})

        if not self.item_repository.save_item(updated):
            raise StoreWriteError(Collection.MENU_ITEMS.value, item_id, "update")

        self._publish(Collection.MENU_ITEMS, item_id)
        return updated

    async def toggle_availability(self, item_id: str) -> MenuItem:
        """Flip whether a menu item can currently be ordered."""
        item = await self.get_menu_item(item_id)
        available = not item.is_available

        if not self.item_repository.set_availability(item_id, available):
            raise StoreWriteError(Collection.MENU_ITEMS.value, item_id, "toggle")

        logger.info(f"Menu item {item.name} is now {'available' if available else 'unavailable'}")
        self._publish(Collection.MENU_ITEMS, item_id)
        return item.model_copy(update={"is_available": available})

    async def delete_menu_item(self, item_id: str) -> None:
        if not self.item_repository.delete_item(item_id):
            raise StoreWriteError(Collection.MENU_ITEMS.value, item_id, "delete")
        self._publish(Collection.MENU_ITEMS, item_id, ChangeOperation.DELETE)

    # --- Categories ---

    async def list_categories(self) -> list[MenuCategory]:
        """Return all categories in display order."""
        return self.category_repository.list_categories()

    async def get_category(self, category_id: str) -> MenuCategory:
        category = self.category_repository.get_category(category_id)
        if category is None:
            raise NotFoundError(Collection.MENU_CATEGORIES.value, category_id)
        return category

    async def add_category(self, name: str, is_visible: bool = True) -> MenuCategory:
        """Create a category at the end of the display order."""
        existing = self.category_repository.list_categories()
        category = MenuCategory(
            category_id=f"cat_{uuid.uuid4().hex[:12]}",
            name=name,
            display_order=len(existing) + 1,
            is_visible=is_visible,
        )
        if not self.category_repository.save_category(category):
            raise StoreWriteError(Collection.MENU_CATEGORIES.value, category.category_id, "create")

        self._publish(Collection.MENU_CATEGORIES, category.category_id)
        return category

    async def update_category(self, category_id: str, name: str) -> MenuCategory:
        category = await self.get_category(category_id)
        updated = category.model_copy(update={"name": name})
        if not self.category_repository.save_category(updated):
            raise StoreWriteError(Collection.MENU_CATEGORIES.value, category_id, "update")

        self._publish(Collection.MENU_CATEGORIES, category_id)
        return updated

    async def toggle_visibility(self, category_id: str) -> MenuCategory:
        category = await self.get_category(category_id)
        updated = category.model_copy(update={"is_visible": not category.is_visible})
        if not self.category_repository.save_category(updated):
            raise StoreWriteError(Collection.MENU_CATEGORIES.value, category_id, "update")

        self._publish(Collection.MENU_CATEGORIES, category_id)
        return updated

    async def delete_category(self, category_id: str) -> None:
        if not self.category_repository.delete_category(category_id):
            raise StoreWriteError(Collection.MENU_CATEGORIES.value, category_id, "delete")
        self._publish(Collection.MENU_CATEGORIES, category_id, ChangeOperation.DELETE)

    async def reorder_categories(self, ordered_ids: list[str]) -> list[MenuCategory]:
        """Set the display order of categories to the given sequence.

        The first id gets display order 1, the second 2, and so on. All
        changes are written in one transaction.

        Raises:
            CatalogValidationError: If an id appears more than once
            NotFoundError: If an id does not name an existing category
        """
        duplicates = sorted({c for c in ordered_ids if ordered_ids.count(c) > 1})
        if duplicates:
            raise CatalogValidationError(
                "Category ids must not repeat", {"duplicate_ids": duplicates}
            )

        categories = {c.category_id: c for c in self.category_repository.list_categories()}
        for category_id in ordered_ids:
            if category_id not in categories:
                raise NotFoundError(Collection.MENU_CATEGORIES.value, category_id)

        display_orders = {category_id: index + 1 for index, category_id in enumerate(ordered_ids)}
        if not self.category_repository.update_display_orders(display_orders):
            raise StoreWriteError(Collection.MENU_CATEGORIES.value, ",".join(ordered_ids), "reorder")

        for category_id in ordered_ids:
            self._publish(Collection.MENU_CATEGORIES, category_id)

        return [
            categories[category_id].model_copy(update={"display_order": order})
            for category_id, order in display_orders.items()
        ]

    async def move_category(self, category_id: str, direction: MoveDirection) -> list[MenuCategory]:
        """Swap a category with its neighbour in display order.

        Moving the first category up or the last one down changes nothing.
        """
        categories = self.category_repository.list_categories()
        ids = [c.category_id for c in categories]
        if category_id not in ids:
            raise NotFoundError(Collection.MENU_CATEGORIES.value, category_id)

        index = ids.index(category_id)
        neighbour = index - 1 if direction == MoveDirection.UP else index + 1
        if neighbour < 0 or neighbour >= len(ids):
            return categories

        ids[index], ids[neighbour] = ids[neighbour], ids[index]
        return await self.reorder_categories(ids)

    def _publish(
        self,
        collection: Collection,
        record_id: str,
        operation: ChangeOperation = ChangeOperation.WRITE,
    ) -> None:
        if self.change_feed is not None:
            self.change_feed.publish(ChangeEvent(collection, record_id, operation))
