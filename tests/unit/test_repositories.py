"""Unit tests for the DynamoDB repositories."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from tableflow_service.models.menu_models import MenuCategory, MenuItem
from tableflow_service.models.order_models import Order, OrderStatusEnum
from tableflow_service.models.table_models import Table, TableStatusEnum
from tableflow_service.repositories.menu_repositories import (
    MenuCategoryRepository,
    MenuItemRepository,
)
from tableflow_service.repositories.order_repository import (
    RECORD_TYPE_INDEX,
    STATUS_INDEX,
    OrderRepository,
)
from tableflow_service.repositories.table_repository import TableRepository

NOW = datetime(2024, 3, 15, 19, 30, tzinfo=UTC)


def client_error(operation: str, code: str = "InternalServerError") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "boom"}}, operation)


@pytest.fixture
def mock_dynamodb() -> MagicMock:
    """Create a mock DynamoDB resource."""
    return MagicMock()


@pytest.mark.unit
class TestTableRepository:
    """Test suite for TableRepository."""

    @pytest.fixture
    def repository(self, mock_dynamodb: MagicMock) -> TableRepository:
        """Create a TableRepository with mocked DynamoDB."""
        return TableRepository(dynamodb_resource=mock_dynamodb, table_name="test-tables")

    def test_repository_initialization(self, mock_dynamodb: MagicMock) -> None:
        """Test that repository binds its DynamoDB table."""
        repo = TableRepository(dynamodb_resource=mock_dynamodb, table_name="test-table")
        assert repo.table_name == "test-table"
        mock_dynamodb.Table.assert_called_once_with("test-table")

    def test_get_table_success(self, repository: TableRepository, mock_dynamodb: MagicMock) -> None:
        mock_dynamodb.Table.return_value.get_item.return_value = {
            "Item": {"table_id": "tbl_5", "number": Decimal("5"), "capacity": Decimal("4"), "status": "available"}
        }

        table = repository.get_table("tbl_5")

        assert table == Table(table_id="tbl_5", number=5, capacity=4)

    def test_get_table_not_found(self, repository: TableRepository, mock_dynamodb: MagicMock) -> None:
        mock_dynamodb.Table.return_value.get_item.return_value = {}

        assert repository.get_table("missing") is None

    def test_get_table_client_error(self, repository: TableRepository, mock_dynamodb: MagicMock) -> None:
        """Test that DynamoDB errors return None."""
        mock_dynamodb.Table.return_value.get_item.side_effect = client_error("GetItem")

        assert repository.get_table("tbl_5") is None

    def test_save_table(self, repository: TableRepository, mock_dynamodb: MagicMock, table_5: Table) -> None:
        assert repository.save_table(table_5) is True
        mock_dynamodb.Table.return_value.put_item.assert_called_once_with(Item=table_5.to_dynamodb_item())

    def test_save_table_client_error(
        self, repository: TableRepository, mock_dynamodb: MagicMock, table_5: Table
    ) -> None:
        mock_dynamodb.Table.return_value.put_item.side_effect = client_error("PutItem")

        assert repository.save_table(table_5) is False

    def test_list_tables_sorted_by_number_across_pages(
        self, repository: TableRepository, mock_dynamodb: MagicMock
    ) -> None:
        """Test that all scan pages are read and sorted by table number."""
        mock_dynamodb.Table.return_value.scan.side_effect = [
            {
                "Items": [{"table_id": "tbl_10", "number": 10, "capacity": 2, "status": "available"}],
                "LastEvaluatedKey": {"table_id": "tbl_10"},
            },
            {"Items": [{"table_id": "tbl_2", "number": 2, "capacity": 4, "status": "occupied"}]},
        ]

        tables = repository.list_tables()

        assert [t.number for t in tables] == [2, 10]
        second_call = mock_dynamodb.Table.return_value.scan.call_args_list[1]
        assert second_call.kwargs == {"ExclusiveStartKey": {"table_id": "tbl_10"}}

    def test_list_tables_client_error(self, repository: TableRepository, mock_dynamodb: MagicMock) -> None:
        mock_dynamodb.Table.return_value.scan.side_effect = client_error("Scan")

        assert repository.list_tables() == []

    def test_update_status_records_current_order(
        self, repository: TableRepository, mock_dynamodb: MagicMock
    ) -> None:
        """Test that occupying a table sets the status and current order."""
        assert repository.update_status("tbl_5", TableStatusEnum.OCCUPIED, current_order_id="ord_1")

        kwargs = mock_dynamodb.Table.return_value.update_item.call_args.kwargs
        assert kwargs["Key"] == {"table_id": "tbl_5"}
        assert kwargs["UpdateExpression"] == "SET #status = :status, current_order_id = :order_id"
        assert kwargs["ConditionExpression"] == "attribute_exists(table_id)"
        assert kwargs["ExpressionAttributeValues"] == {":status": "occupied", ":order_id": "ord_1"}

    def test_update_status_clears_current_order(
        self, repository: TableRepository, mock_dynamodb: MagicMock
    ) -> None:
        assert repository.update_status("tbl_5", TableStatusEnum.AVAILABLE, clear_current_order=True)

        kwargs = mock_dynamodb.Table.return_value.update_item.call_args.kwargs
        assert kwargs["UpdateExpression"] == "SET #status = :status REMOVE current_order_id"
        assert kwargs["ExpressionAttributeValues"] == {":status": "available"}

    def test_update_status_missing_table(self, repository: TableRepository, mock_dynamodb: MagicMock) -> None:
        """Test that a failed condition on a missing table returns False."""
        mock_dynamodb.Table.return_value.update_item.side_effect = client_error(
            "UpdateItem", "ConditionalCheckFailedException"
        )

        assert repository.update_status("gone", TableStatusEnum.RESERVED) is False

    def test_delete_table(self, repository: TableRepository, mock_dynamodb: MagicMock) -> None:
        assert repository.delete_table("tbl_5") is True
        mock_dynamodb.Table.return_value.delete_item.assert_called_once_with(Key={"table_id": "tbl_5"})

    def test_save_many_uses_batch_writer(
        self, repository: TableRepository, mock_dynamodb: MagicMock, table_5: Table
    ) -> None:
        batch = mock_dynamodb.Table.return_value.batch_writer.return_value.__enter__.return_value

        assert repository.save_many([table_5]) is True
        batch.put_item.assert_called_once_with(Item=table_5.to_dynamodb_item())


@pytest.mark.unit
class TestMenuItemRepository:
    """Test suite for MenuItemRepository."""

    @pytest.fixture
    def repository(self, mock_dynamodb: MagicMock) -> MenuItemRepository:
        return MenuItemRepository(dynamodb_resource=mock_dynamodb, table_name="test-menu-items")

    def test_get_item_success(self, repository: MenuItemRepository, mock_dynamodb: MagicMock) -> None:
        mock_dynamodb.Table.return_value.get_item.return_value = {
            "Item": {
                "item_id": "itm_1",
                "name": "Bruschetta",
                "price": Decimal("8.99"),
                "category_id": "cat_1",
                "is_available": True,
            }
        }

        item = repository.get_item("itm_1")

        assert item is not None
        assert item.name == "Bruschetta"
        assert item.price == Decimal("8.99")

    def test_list_items_sorted_by_name(self, repository: MenuItemRepository, mock_dynamodb: MagicMock) -> None:
        mock_dynamodb.Table.return_value.scan.return_value = {
            "Items": [
                {"item_id": "itm_2", "name": "Tiramisu", "price": 8, "category_id": "cat_3"},
                {"item_id": "itm_1", "name": "Espresso", "price": 4, "category_id": "cat_4"},
            ]
        }

        items = repository.list_items()

        assert [i.name for i in items] == ["Espresso", "Tiramisu"]

    def test_set_availability(self, repository: MenuItemRepository, mock_dynamodb: MagicMock) -> None:
        assert repository.set_availability("itm_1", False) is True

        kwargs = mock_dynamodb.Table.return_value.update_item.call_args.kwargs
        assert kwargs["Key"] == {"item_id": "itm_1"}
        assert kwargs["ConditionExpression"] == "attribute_exists(item_id)"

    def test_set_availability_client_error(
        self, repository: MenuItemRepository, mock_dynamodb: MagicMock
    ) -> None:
        mock_dynamodb.Table.return_value.update_item.side_effect = client_error("UpdateItem")

        assert repository.set_availability("itm_1", True) is False

    def test_save_item_client_error(self, repository: MenuItemRepository, mock_dynamodb: MagicMock) -> None:
        mock_dynamodb.Table.return_value.put_item.side_effect = client_error("PutItem")
        item = MenuItem(item_id="itm_1", name="Tea", price=Decimal("2"), category_id="cat_1")

        assert repository.save_item(item) is False


@pytest.mark.unit
class TestMenuCategoryRepository:
    """Test suite for MenuCategoryRepository."""

    @pytest.fixture
    def repository(self, mock_dynamodb: MagicMock) -> MenuCategoryRepository:
        return MenuCategoryRepository(dynamodb_resource=mock_dynamodb, table_name="test-categories")

    def test_list_categories_sorted_by_display_order(
        self, repository: MenuCategoryRepository, mock_dynamodb: MagicMock
    ) -> None:
        mock_dynamodb.Table.return_value.scan.return_value = {
            "Items": [
                {"category_id": "cat_2", "name": "Mains", "display_order": 2, "is_visible": True},
                {"category_id": "cat_1", "name": "Starters", "display_order": 1, "is_visible": True},
            ]
        }

        categories = repository.list_categories()

        assert [c.category_id for c in categories] == ["cat_1", "cat_2"]

    def test_update_display_orders_is_one_transaction(
        self, repository: MenuCategoryRepository, mock_dynamodb: MagicMock
    ) -> None:
        """Test that every display order change goes into a single transaction."""
        assert repository.update_display_orders({"cat_2": 1, "cat_1": 2}) is True

        transact = mock_dynamodb.meta.client.transact_write_items
        transact.assert_called_once()
        items = transact.call_args.kwargs["TransactItems"]
        assert len(items) == 2
        assert items[0]["Update"]["TableName"] == "test-categories"
        assert items[0]["Update"]["Key"] == {"category_id": {"S": "cat_2"}}
        assert items[0]["Update"]["ExpressionAttributeValues"] == {":order": {"N": "1"}}
        assert items[1]["Update"]["Key"] == {"category_id": {"S": "cat_1"}}

    def test_update_display_orders_empty(
        self, repository: MenuCategoryRepository, mock_dynamodb: MagicMock
    ) -> None:
        assert repository.update_display_orders({}) is True
        mock_dynamodb.meta.client.transact_write_items.assert_not_called()

    def test_update_display_orders_cancelled(
        self, repository: MenuCategoryRepository, mock_dynamodb: MagicMock
    ) -> None:
        """Test that a cancelled transaction returns False."""
        mock_dynamodb.meta.client.transact_write_items.side_effect = client_error(
            "TransactWriteItems", "TransactionCanceledException"
        )

        assert repository.update_display_orders({"cat_1": 1}) is False

    def test_save_category(self, repository: MenuCategoryRepository, mock_dynamodb: MagicMock) -> None:
        category = MenuCategory(category_id="cat_1", name="Starters", display_order=1)

        assert repository.save_category(category) is True
        mock_dynamodb.Table.return_value.put_item.assert_called_once_with(
            Item=category.to_dynamodb_item()
        )


@pytest.mark.unit
class TestOrderRepository:
    """Test suite for OrderRepository."""

    @pytest.fixture
    def repository(self, mock_dynamodb: MagicMock) -> OrderRepository:
        return OrderRepository(dynamodb_resource=mock_dynamodb, table_name="test-orders")

    def test_get_order_success(
        self,
        repository: OrderRepository,
        mock_dynamodb: MagicMock,
        make_order: Callable[..., Order],
    ) -> None:
        order = make_order()
        mock_dynamodb.Table.return_value.get_item.return_value = {"Item": order.to_dynamodb_item()}

        assert repository.get_order("ord_1") == order

    def test_get_order_client_error(self, repository: OrderRepository, mock_dynamodb: MagicMock) -> None:
        mock_dynamodb.Table.return_value.get_item.side_effect = client_error("GetItem")

        assert repository.get_order("ord_1") is None

    def test_save_order(
        self,
        repository: OrderRepository,
        mock_dynamodb: MagicMock,
        make_order: Callable[..., Order],
    ) -> None:
        order = make_order()

        assert repository.save_order(order) is True
        item = mock_dynamodb.Table.return_value.put_item.call_args.kwargs["Item"]
        assert item["record_type"] == "order"

    def test_update_status(self, repository: OrderRepository, mock_dynamodb: MagicMock) -> None:
        assert repository.update_status("ord_1", OrderStatusEnum.SERVED, NOW) is True

        kwargs = mock_dynamodb.Table.return_value.update_item.call_args.kwargs
        assert kwargs["ExpressionAttributeNames"] == {"#status": "status"}
        assert kwargs["ExpressionAttributeValues"] == {
            ":status": "served",
            ":updated_at": NOW.isoformat(),
        }

    def test_mark_paid_conditional_on_unpaid(
        self,
        repository: OrderRepository,
        mock_dynamodb: MagicMock,
        make_order: Callable[..., Order],
    ) -> None:
        """Test that the paid flag is flipped with a condition and the new order returned."""
        paid = make_order(status=OrderStatusEnum.COMPLETED, is_paid=True)
        mock_dynamodb.Table.return_value.update_item.return_value = {
            "Attributes": paid.to_dynamodb_item()
        }

        result = repository.mark_paid("ord_1", NOW)

        assert result == paid
        kwargs = mock_dynamodb.Table.return_value.update_item.call_args.kwargs
        assert kwargs["ConditionExpression"] == "attribute_exists(order_id) AND is_paid = :unpaid"
        assert kwargs["ExpressionAttributeValues"][":unpaid"] is False
        assert kwargs["ExpressionAttributeValues"][":status"] == "completed"
        assert kwargs["ReturnValues"] == "ALL_NEW"

    def test_mark_paid_already_paid(self, repository: OrderRepository, mock_dynamodb: MagicMock) -> None:
        """Test that losing the condition returns None."""
        mock_dynamodb.Table.return_value.update_item.side_effect = client_error(
            "UpdateItem", "ConditionalCheckFailedException"
        )

        assert repository.mark_paid("ord_1", NOW) is None

    def test_list_recent_orders_queries_record_type_index(
        self,
        repository: OrderRepository,
        mock_dynamodb: MagicMock,
        make_order: Callable[..., Order],
    ) -> None:
        mock_dynamodb.Table.return_value.query.return_value = {
            "Items": [make_order("ord_2").to_dynamodb_item(), make_order("ord_1").to_dynamodb_item()]
        }

        orders = repository.list_recent_orders(limit=50)

        assert [o.order_id for o in orders] == ["ord_2", "ord_1"]
        kwargs = mock_dynamodb.Table.return_value.query.call_args.kwargs
        assert kwargs["IndexName"] == RECORD_TYPE_INDEX
        assert kwargs["ScanIndexForward"] is False
        assert kwargs["Limit"] == 50

    def test_list_recent_orders_stops_at_limit(
        self,
        repository: OrderRepository,
        mock_dynamodb: MagicMock,
        make_order: Callable[..., Order],
    ) -> None:
        """Test that pagination stops once the limit is reached."""
        mock_dynamodb.Table.return_value.query.return_value = {
            "Items": [make_order(f"ord_{i}").to_dynamodb_item() for i in range(3)],
            "LastEvaluatedKey": {"order_id": "ord_2"},
        }

        orders = repository.list_recent_orders(limit=2)

        assert len(orders) == 2
        mock_dynamodb.Table.return_value.query.assert_called_once()

    def test_list_orders_since(self, repository: OrderRepository, mock_dynamodb: MagicMock) -> None:
        mock_dynamodb.Table.return_value.query.return_value = {"Items": []}
        midnight = datetime(2024, 3, 15, tzinfo=UTC)

        assert repository.list_orders_since(midnight) == []

        kwargs = mock_dynamodb.Table.return_value.query.call_args.kwargs
        assert kwargs["KeyConditionExpression"] == "record_type = :rt AND created_at >= :since"
        assert kwargs["ExpressionAttributeValues"][":since"] == "2024-03-15T00:00:00+00:00"

    def test_list_orders_by_status_merges_oldest_first(
        self,
        repository: OrderRepository,
        mock_dynamodb: MagicMock,
        make_order: Callable[..., Order],
    ) -> None:
        """Test that per-status results are merged by creation time."""
        pending = [
            make_order("ord_a", created_at=NOW),
            make_order("ord_c", created_at=NOW + timedelta(minutes=20)),
        ]
        preparing = [
            make_order("ord_b", OrderStatusEnum.IN_PREPARATION, created_at=NOW + timedelta(minutes=10))
        ]
        mock_dynamodb.Table.return_value.query.side_effect = [
            {"Items": [o.to_dynamodb_item() for o in pending]},
            {"Items": [o.to_dynamodb_item() for o in preparing]},
        ]

        orders = repository.list_orders_by_status(
            [OrderStatusEnum.PENDING, OrderStatusEnum.IN_PREPARATION]
        )

        assert [o.order_id for o in orders] == ["ord_a", "ord_b", "ord_c"]
        first_call = mock_dynamodb.Table.return_value.query.call_args_list[0]
        assert first_call.kwargs["IndexName"] == STATUS_INDEX
        assert first_call.kwargs["ScanIndexForward"] is True

    def test_list_orders_by_status_newest_first(
        self,
        repository: OrderRepository,
        mock_dynamodb: MagicMock,
        make_order: Callable[..., Order],
    ) -> None:
        served = [make_order("ord_new", OrderStatusEnum.SERVED, created_at=NOW + timedelta(hours=1))]
        completed = [make_order("ord_old", OrderStatusEnum.COMPLETED, created_at=NOW)]
        mock_dynamodb.Table.return_value.query.side_effect = [
            {"Items": [o.to_dynamodb_item() for o in served]},
            {"Items": [o.to_dynamodb_item() for o in completed]},
        ]

        orders = repository.list_orders_by_status(
            [OrderStatusEnum.SERVED, OrderStatusEnum.COMPLETED], newest_first=True
        )

        assert [o.order_id for o in orders] == ["ord_new", "ord_old"]

    def test_list_orders_by_status_client_error(
        self, repository: OrderRepository, mock_dynamodb: MagicMock
    ) -> None:
        mock_dynamodb.Table.return_value.query.side_effect = client_error("Query")

        assert repository.list_orders_by_status([OrderStatusEnum.SERVED]) == []
