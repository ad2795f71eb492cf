"""Shared dependency factory for the Lambda handler.

This module provides cached dependency initialization to optimize Lambda cold starts.
Dependencies are created once and reused across invocations within the same Lambda container.
"""

import logging
import os
from typing import Any

import boto3
from fastapi import FastAPI

from tableflow_service.handlers.api_handler import create_app
from tableflow_service.models.view_models import RestaurantInfo
from tableflow_service.observability import configure_logging
from tableflow_service.payments.simulated_processor import SimulatedPaymentProcessor
from tableflow_service.realtime.change_feed import ChangeFeed
from tableflow_service.realtime.live_queries import build_live_queries
from tableflow_service.repositories.menu_repositories import (
    MenuCategoryRepository,
    MenuItemRepository,
)
from tableflow_service.repositories.order_repository import OrderRepository
from tableflow_service.repositories.table_repository import TableRepository
from tableflow_service.services.billing_service import BillingService
from tableflow_service.services.clock import Clock
from tableflow_service.services.dashboard_service import DashboardService
from tableflow_service.services.identity_service_client import IdentityServiceClient
from tableflow_service.services.menu_service import MenuService
from tableflow_service.services.order_lifecycle_service import OrderLifecycleService
from tableflow_service.services.table_state_service import TableStateService

logger = logging.getLogger(__name__)

# Module-level caches for Lambda container reuse
_dynamodb_resource: Any | None = None
_change_feed: ChangeFeed | None = None
_table_service: TableStateService | None = None
_order_service: OrderLifecycleService | None = None
_menu_service: MenuService | None = None
_fastapi_app: FastAPI | None = None


def get_dynamodb_resource() -> Any:
    """Create or retrieve cached DynamoDB resource.

    Returns:
        Boto3 DynamoDB resource configured for environment
    """
    global _dynamodb_resource

    if _dynamodb_resource is not None:
        return _dynamodb_resource

    endpoint_url = os.getenv("DYNAMODB_ENDPOINT")
    region = os.getenv("AWS_REGION", "us-east-1")

    if endpoint_url:
        logger.info(f"Using local DynamoDB at {endpoint_url}")
        _dynamodb_resource = boto3.resource(
            "dynamodb",
            endpoint_url=endpoint_url,
            region_name=region,
            aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
            aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
        )
    else:
        logger.info(f"Using AWS DynamoDB in region {region}")
        _dynamodb_resource = boto3.resource("dynamodb", region_name=region)

    return _dynamodb_resource


def get_change_feed() -> ChangeFeed:
    """Create or retrieve the container's change feed.

    A Lambda container serves no WebSocket subscribers, but services still
    publish to a feed.
    """
    global _change_feed

    if _change_feed is None:
        _change_feed = ChangeFeed()
    return _change_feed


def get_table_service() -> TableStateService:
    """Create or retrieve cached table state service."""
    global _table_service

    if _table_service is not None:
        return _table_service

    table_name = os.getenv("DYNAMODB_TABLES_TABLE", "tableflow-tables")
    _table_service = TableStateService(
        table_repository=TableRepository(
            dynamodb_resource=get_dynamodb_resource(), table_name=table_name
        ),
        change_feed=get_change_feed(),
    )

    logger.info("Table service initialized")
    return _table_service


def get_order_service() -> OrderLifecycleService:
    """Create or retrieve cached order lifecycle service.

    Returns:
        Configured OrderLifecycleService instance
    """
    global _order_service

    if _order_service is not None:
        return _order_service

    dynamodb_resource = get_dynamodb_resource()
    orders_table = os.getenv("DYNAMODB_ORDERS_TABLE", "tableflow-orders")
    items_table = os.getenv("DYNAMODB_MENU_ITEMS_TABLE", "tableflow-menu-items")

    _order_service = OrderLifecycleService(
        order_repository=OrderRepository(dynamodb_resource=dynamodb_resource, table_name=orders_table),
        menu_item_repository=MenuItemRepository(
            dynamodb_resource=dynamodb_resource, table_name=items_table
        ),
        table_service=get_table_service(),
        clock=Clock(os.getenv("RESTAURANT_TIMEZONE", "UTC")),
        change_feed=get_change_feed(),
        payment_requires_billable=os.getenv("PAYMENT_REQUIRES_BILLABLE", "false").lower() == "true",
    )

    logger.info("Order service initialized")
    return _order_service


def get_menu_service() -> MenuService:
    """Create or retrieve cached menu service."""
    global _menu_service

    if _menu_service is not None:
        return _menu_service

    dynamodb_resource = get_dynamodb_resource()
    items_table = os.getenv("DYNAMODB_MENU_ITEMS_TABLE", "tableflow-menu-items")
    categories_table = os.getenv("DYNAMODB_MENU_CATEGORIES_TABLE", "tableflow-menu-categories")

    _menu_service = MenuService(
        item_repository=MenuItemRepository(dynamodb_resource=dynamodb_resource, table_name=items_table),
        category_repository=MenuCategoryRepository(
            dynamodb_resource=dynamodb_resource, table_name=categories_table
        ),
        change_feed=get_change_feed(),
    )

    logger.info("Menu service initialized")
    return _menu_service


def get_fastapi_app() -> FastAPI:
    """Create or retrieve cached FastAPI application.

    Returns:
        Configured FastAPI application instance

    Raises:
        ValueError: If the identity service is not configured
    """
    global _fastapi_app

    if _fastapi_app is not None:
        return _fastapi_app

    identity_url = os.getenv("IDENTITY_SERVICE_BASE_URL")
    identity_api_key = os.getenv("IDENTITY_SERVICE_API_KEY")

    if not identity_url or not identity_api_key:
        raise ValueError(
            "IDENTITY_SERVICE_BASE_URL and IDENTITY_SERVICE_API_KEY must be set in environment"
        )

    order_service = get_order_service()
    table_service = get_table_service()
    menu_service = get_menu_service()

    billing_service = BillingService(
        order_service=order_service,
        payment_processor=SimulatedPaymentProcessor(
            delay_seconds=float(os.getenv("PAYMENT_DELAY_SECONDS", "1.5"))
        ),
        restaurant=RestaurantInfo(
            name=os.getenv("RESTAURANT_NAME", "TableFlow Restaurant"),
            address=os.getenv("RESTAURANT_ADDRESS", "123 Restaurant Street"),
            phone=os.getenv("RESTAURANT_PHONE") or None,
        ),
    )

    api_keys_str = os.getenv("ADMIN_API_KEY", "")
    api_keys = [key.strip() for key in api_keys_str.split(",") if key.strip()]

    if not api_keys:
        logger.warning("No ADMIN_API_KEY configured - using development key")
        api_keys = ["dummy-key-for-development"]

    _fastapi_app = create_app(
        order_service=order_service,
        table_service=table_service,
        billing_service=billing_service,
        menu_service=menu_service,
        dashboard_service=DashboardService(
            order_service=order_service, table_service=table_service, clock=order_service.clock
        ),
        identity_client=IdentityServiceClient(base_url=identity_url, api_key=identity_api_key),
        change_feed=get_change_feed(),
        live_queries=build_live_queries(order_service, table_service, menu_service),
        api_keys=api_keys,
    )

    logger.info("FastAPI application initialized")
    return _fastapi_app


def initialize_lambda_environment() -> None:
    """Initialize Lambda environment with logging.

    Should be called once during Lambda cold start.
    """
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))

    logger.info("Lambda environment initialized")
