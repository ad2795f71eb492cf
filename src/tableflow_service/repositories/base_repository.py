"""Shared plumbing for the DynamoDB-backed collection repositories."""

import logging
from typing import Any

from mypy_boto3_dynamodb.service_resource import DynamoDBServiceResource, Table

logger = logging.getLogger(__name__)


class DynamoDBRepository:
    """Base class holding the table handle and paginated read helpers.

    Subclasses follow the simple return value pattern: reads return None or
    an empty list and writes return False when DynamoDB raises ClientError.
    """

    def __init__(self, dynamodb_resource: DynamoDBServiceResource, table_name: str) -> None:
        """Initialize repository.

        Args:
            dynamodb_resource: Boto3 DynamoDB resource
            table_name: Name of the DynamoDB table
        """
        self.dynamodb = dynamodb_resource
        self.table_name = table_name
        self.table: Table = dynamodb_resource.Table(table_name)

    def _scan_all(self) -> list[dict[str, Any]]:
        """Scan the whole table, following LastEvaluatedKey pages."""
        items: list[dict[str, Any]] = []
        kwargs: dict[str, Any] = {}
        while True:
            response = self.table.scan(**kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    def _query_all(self, **query_kwargs: Any) -> list[dict[str, Any]]:
        """Run a query and collect every page of results.

        A ``Limit`` argument stops pagination once that many items are
        collected.
        """
        limit = query_kwargs.get("Limit")
        items: list[dict[str, Any]] = []
        while True:
            response = self.table.query(**query_kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key or (limit is not None and len(items) >= limit):
                return items[:limit] if limit is not None else items
            query_kwargs["ExclusiveStartKey"] = last_key
