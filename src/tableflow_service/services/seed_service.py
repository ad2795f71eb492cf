"""Demo data for a fresh installation."""

import logging
from decimal import Decimal

from tableflow_service.models.menu_models import MenuCategory, MenuItem
from tableflow_service.models.table_models import Table
from tableflow_service.realtime.change_feed import ChangeEvent, ChangeFeed, Collection
from tableflow_service.repositories.menu_repositories import (
    MenuCategoryRepository,
    MenuItemRepository,
)
from tableflow_service.repositories.table_repository import TableRepository
from tableflow_service.services.exceptions import StoreWriteError

logger = logging.getLogger(__name__)

DEMO_CATEGORIES = [
    MenuCategory(category_id="cat_appetizers", name="Appetizers", display_order=1),
    MenuCategory(category_id="cat_mains", name="Main Courses", display_order=2),
    MenuCategory(category_id="cat_desserts", name="Desserts", display_order=3),
    MenuCategory(category_id="cat_beverages", name="Beverages", display_order=4),
    MenuCategory(category_id="cat_specials", name="Specials", display_order=5, is_visible=False),
]

# (item_id, name, description, price, category_id, is_available)
_DEMO_ITEM_ROWS = [
    ("itm_bruschetta", "Bruschetta", "Grilled bread with tomatoes, garlic, and basil", "8.99", "cat_appetizers", True),
    ("itm_calamari", "Calamari Fritti", "Crispy fried calamari with marinara sauce", "12.99", "cat_appetizers", True),
    ("itm_soup", "Soup of the Day", "Ask your server for today's selection", "6.99", "cat_appetizers", False),
    ("itm_salmon", "Grilled Salmon", "Atlantic salmon with lemon herb butter", "24.99", "cat_mains", True),
    ("itm_ribeye", "Ribeye Steak", "12oz prime cut with garlic mashed potatoes", "34.99", "cat_mains", True),
    ("itm_risotto", "Mushroom Risotto", "Creamy arborio rice with wild mushrooms", "16.99", "cat_mains", True),
    ("itm_tiramisu", "Tiramisu", "Classic Italian coffee-flavored dessert", "8.99", "cat_desserts", True),
    ("itm_lava_cake", "Chocolate Lava Cake", "Warm chocolate cake with molten center", "9.99", "cat_desserts", True),
    ("itm_espresso", "Espresso", "Double shot of Italian espresso", "3.99", "cat_beverages", True),
    ("itm_lemonade", "Fresh Lemonade", "House-made with fresh lemons", "4.99", "cat_beverages", True),
]

DEMO_MENU_ITEMS = [
    MenuItem(
        item_id=item_id,
        name=name,
        description=description,
        price=Decimal(price),
        category_id=category_id,
        is_available=is_available,
    )
    for item_id, name, description, price, category_id, is_available in _DEMO_ITEM_ROWS
]

DEMO_TABLES = [
    Table(table_id=f"tbl_{number}", number=number, capacity=capacity)
    for number, capacity in [(1, 2), (2, 4), (3, 4), (4, 6), (5, 2), (6, 8), (7, 4), (8, 2)]
]


class SeedService:
    """Writes the demo menu and floor plan in batches."""

    def __init__(
        self,
        table_repository: TableRepository,
        item_repository: MenuItemRepository,
        category_repository: MenuCategoryRepository,
        change_feed: ChangeFeed | None = None,
    ) -> None:
        self.table_repository = table_repository
        self.item_repository = item_repository
        self.category_repository = category_repository
        self.change_feed = change_feed

    async def seed(self) -> dict[str, int]:
        """Write the demo records, replacing any with the same ids.

        Returns:
            Number of records written per collection

        Raises:
            StoreWriteError: If any batch fails
        """
        batches = [
            (Collection.MENU_CATEGORIES, self.category_repository, DEMO_CATEGORIES),
            (Collection.MENU_ITEMS, self.item_repository, DEMO_MENU_ITEMS),
            (Collection.TABLES, self.table_repository, DEMO_TABLES),
        ]

        counts: dict[str, int] = {}
        for collection, repository, records in batches:
            if not repository.save_many(records):
                raise StoreWriteError(collection.value, "*", "seed")
            counts[collection.value] = len(records)
            if self.change_feed is not None:
                self.change_feed.publish(ChangeEvent(collection, "*"))

        logger.info(f"Demo data seeded: {counts}")
        return counts
