"""Main application entry point for the TableFlow front-of-house service.

This module provides the FastAPI application factory and configuration
for running the service locally or in production.
"""

import logging
import os
from typing import Any

import boto3
from fastapi import FastAPI

from tableflow_service.handlers.api_handler import create_app
from tableflow_service.models.view_models import RestaurantInfo
from tableflow_service.observability import configure_logging, setup_observability
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
from tableflow_service.services.seed_service import SeedService
from tableflow_service.services.table_state_service import TableStateService

logger = logging.getLogger(__name__)


def get_dynamodb_resource() -> Any:
    """Create DynamoDB resource with appropriate configuration.

    Returns:
        Boto3 DynamoDB resource configured for environment
    """
    endpoint_url = os.getenv("DYNAMODB_ENDPOINT")
    region = os.getenv("AWS_REGION", "us-east-1")

    if endpoint_url:
        logger.info(f"Using local DynamoDB at {endpoint_url}")
        return boto3.resource(
            "dynamodb",
            endpoint_url=endpoint_url,
            region_name=region,
            aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
            aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
        )

    logger.info(f"Using AWS DynamoDB in region {region}")
    # boto3 falls back to the default credential chain (IAM role, env vars, etc.)
    return boto3.resource("dynamodb", region_name=region)


def get_restaurant_info() -> RestaurantInfo:
    """Read the restaurant details printed on invoices."""
    defaults = RestaurantInfo()
    return RestaurantInfo(
        name=os.getenv("RESTAURANT_NAME", defaults.name),
        address=os.getenv("RESTAURANT_ADDRESS", defaults.address),
        phone=os.getenv("RESTAURANT_PHONE") or None,
    )


def get_api_keys() -> list[str]:
    """Parse the comma-separated ADMIN_API_KEY setting."""
    api_keys_str = os.getenv("ADMIN_API_KEY", "")
    api_keys = [key.strip() for key in api_keys_str.split(",") if key.strip()]

    if not api_keys:
        logger.warning("No ADMIN_API_KEY configured - using development key")
        api_keys = ["dummy-key-for-development"]

    return api_keys


def create_application() -> FastAPI:
    """Create and configure the FastAPI application with all dependencies.

    This factory function:
    1. Configures logging
    2. Creates the DynamoDB resource and repositories
    3. Creates the change feed and services
    4. Creates the FastAPI app and its live queries
    5. Sets up observability

    Returns:
        Configured FastAPI application instance

    Raises:
        ValueError: If the identity service is not configured
    """
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))

    logger.info("Initializing TableFlow service...")

    dynamodb_resource = get_dynamodb_resource()

    tables_table = os.getenv("DYNAMODB_TABLES_TABLE", "tableflow-tables")
    orders_table = os.getenv("DYNAMODB_ORDERS_TABLE", "tableflow-orders")
    items_table = os.getenv("DYNAMODB_MENU_ITEMS_TABLE", "tableflow-menu-items")
    categories_table = os.getenv("DYNAMODB_MENU_CATEGORIES_TABLE", "tableflow-menu-categories")

    table_repository = TableRepository(dynamodb_resource=dynamodb_resource, table_name=tables_table)
    order_repository = OrderRepository(dynamodb_resource=dynamodb_resource, table_name=orders_table)
    item_repository = MenuItemRepository(dynamodb_resource=dynamodb_resource, table_name=items_table)
    category_repository = MenuCategoryRepository(
        dynamodb_resource=dynamodb_resource, table_name=categories_table
    )

    logger.info(
        f"Repositories configured - tables: {tables_table}, orders: {orders_table}, "
        f"menu items: {items_table}, categories: {categories_table}"
    )

    identity_url = os.getenv("IDENTITY_SERVICE_BASE_URL")
    identity_api_key = os.getenv("IDENTITY_SERVICE_API_KEY")

    if not identity_url or not identity_api_key:
        raise ValueError(
            "IDENTITY_SERVICE_BASE_URL and IDENTITY_SERVICE_API_KEY must be set in environment"
        )

    identity_client = IdentityServiceClient(base_url=identity_url, api_key=identity_api_key)

    logger.info(f"Identity service client configured - URL: {identity_url}")

    change_feed = ChangeFeed()
    clock = Clock(os.getenv("RESTAURANT_TIMEZONE", "UTC"))

    table_service = TableStateService(table_repository=table_repository, change_feed=change_feed)
    order_service = OrderLifecycleService(
        order_repository=order_repository,
        menu_item_repository=item_repository,
        table_service=table_service,
        clock=clock,
        change_feed=change_feed,
        payment_requires_billable=os.getenv("PAYMENT_REQUIRES_BILLABLE", "false").lower() == "true",
    )
    billing_service = BillingService(
        order_service=order_service,
        payment_processor=SimulatedPaymentProcessor(
            delay_seconds=float(os.getenv("PAYMENT_DELAY_SECONDS", "1.5"))
        ),
        restaurant=get_restaurant_info(),
    )
    menu_service = MenuService(
        item_repository=item_repository,
        category_repository=category_repository,
        change_feed=change_feed,
    )
    dashboard_service = DashboardService(
        order_service=order_service, table_service=table_service, clock=clock
    )

    seed_service = None
    if os.getenv("ENABLE_DEMO_SEED", "false").lower() == "true":
        seed_service = SeedService(
            table_repository=table_repository,
            item_repository=item_repository,
            category_repository=category_repository,
            change_feed=change_feed,
        )

    logger.info("Services initialized")

    app = create_app(
        order_service=order_service,
        table_service=table_service,
        billing_service=billing_service,
        menu_service=menu_service,
        dashboard_service=dashboard_service,
        identity_client=identity_client,
        change_feed=change_feed,
        live_queries=build_live_queries(order_service, table_service, menu_service),
        api_keys=get_api_keys(),
        seed_service=seed_service,
    )

    setup_observability(app, enable_exporters=bool(os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")))

    logger.info("TableFlow service initialized successfully")

    return app


# Create the FastAPI application instance (only when not in test mode)
# This prevents the app from being created during test collection
if os.getenv("ENVIRONMENT") != "test":  # noqa: SIM108
    app = create_application()
else:
    # Create a placeholder app for test imports
    app = FastAPI()


if __name__ == "__main__":
    """Run the application with uvicorn when executed directly."""
    import uvicorn

    port = int(os.getenv("PORT", "8001"))
    host = os.getenv("HOST", "0.0.0.0")

    logger.info(f"Starting development server on {host}:{port}")
    logger.info(f"API documentation available at http://{host}:{port}/docs")

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=True,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
