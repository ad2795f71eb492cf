"""FastAPI application for the front-of-house API."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from decimal import Decimal

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request, Response, WebSocket
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from tableflow_service.auth.navigation import View, allowed_views, landing_view
from tableflow_service.auth.staff_auth import (
    APIKeyValidator,
    StaffContext,
    authorize_view,
    check_api_key,
    resolve_staff,
)
from tableflow_service.models.menu_models import MenuCategory, MenuItem
from tableflow_service.models.order_models import Order, OrderStatusEnum
from tableflow_service.models.table_models import Table, TableStatusEnum
from tableflow_service.models.view_models import BillingSummary, DashboardStats, Invoice
from tableflow_service.observability.metrics import record_live_subscriber_change
from tableflow_service.realtime.change_feed import ChangeFeed
from tableflow_service.realtime.live_queries import LiveQuery, stream_snapshots
from tableflow_service.services.billing_service import BillingService
from tableflow_service.services.dashboard_service import DashboardService, KitchenUrgency
from tableflow_service.services.exceptions import (
    CatalogValidationError,
    InvalidTransitionError,
    NotFoundError,
    OrderValidationError,
    PaymentDeclinedError,
    StoreWriteError,
    TableFlowError,
)
from tableflow_service.services.identity_service_client import IdentityServiceClient
from tableflow_service.services.menu_service import MenuService, MoveDirection
from tableflow_service.services.order_lifecycle_service import CartLine, OrderLifecycleService
from tableflow_service.services.seed_service import SeedService
from tableflow_service.services.table_state_service import TableStateService

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES: dict[type[TableFlowError], int] = {
    OrderValidationError: 422,
    CatalogValidationError: 422,
    NotFoundError: 404,
    InvalidTransitionError: 409,
    PaymentDeclinedError: 402,
    StoreWriteError: 503,
}


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str


class NavigationResponse(BaseModel):
    """Views the caller may open and where they land after signing in."""

    staff_id: str
    role: str
    views: list[View]
    landing_view: View


class CartLineRequest(BaseModel):
    menu_item_id: str
    quantity: int
    notes: str | None = None


class CreateOrderRequest(BaseModel):
    """Request model for submitting a cart."""

    table_id: str | None = None
    items: list[CartLineRequest] = Field(default_factory=list)


class StatusUpdateRequest(BaseModel):
    status: OrderStatusEnum


class KitchenTicket(BaseModel):
    """An order on the kitchen board with its waiting time."""

    order: Order
    age: str
    urgency: KitchenUrgency


class RecentOrderCard(BaseModel):
    order: Order
    age: str


class CreateTableRequest(BaseModel):
    number: int = Field(..., ge=1)
    capacity: int = Field(..., ge=1)
    status: TableStatusEnum = TableStatusEnum.AVAILABLE


class UpdateTableRequest(BaseModel):
    number: int | None = Field(None, ge=1)
    capacity: int | None = Field(None, ge=1)


class TableStatusRequest(BaseModel):
    status: TableStatusEnum


class CreateMenuItemRequest(BaseModel):
    name: str = Field(..., min_length=1)
    price: Decimal = Field(..., ge=0)
    category_id: str
    description: str = ""
    is_available: bool = True
    image_url: str | None = None


class UpdateMenuItemRequest(BaseModel):
    """Partial menu item edit; only fields present in the body change."""

    name: str | None = Field(None, min_length=1)
    price: Decimal | None = Field(None, ge=0)
    category_id: str | None = None
    description: str | None = None
    is_available: bool | None = None
    image_url: str | None = None


class CreateCategoryRequest(BaseModel):
    name: str = Field(..., min_length=1)
    is_visible: bool = True


class UpdateCategoryRequest(BaseModel):
    name: str = Field(..., min_length=1)


class ReorderCategoriesRequest(BaseModel):
    category_ids: list[str]


class MoveCategoryRequest(BaseModel):
    direction: MoveDirection


def create_app(
    order_service: OrderLifecycleService,
    table_service: TableStateService,
    billing_service: BillingService,
    menu_service: MenuService,
    dashboard_service: DashboardService,
    identity_client: IdentityServiceClient,
    change_feed: ChangeFeed,
    live_queries: dict[str, LiveQuery],
    api_keys: list[str],
    seed_service: SeedService | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        order_service: Order lifecycle manager
        table_service: Table state register
        billing_service: Billing resolver
        menu_service: Menu catalog
        dashboard_service: Dashboard aggregations
        identity_client: Resolves staff ids to roles
        change_feed: Feed backing the WebSocket live queries
        live_queries: Subscribable queries keyed by name
        api_keys: List of valid API keys for authentication
        seed_service: Optional demo data loader

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="TableFlow Front-of-House API",
        description="Orders, tables, menu and billing for restaurant floor staff",
        version="1.0.0",
    )

    # Store services in app state for access in route handlers
    app.state.order_service = order_service
    app.state.table_service = table_service
    app.state.billing_service = billing_service
    app.state.menu_service = menu_service
    app.state.dashboard_service = dashboard_service
    app.state.identity_client = identity_client
    app.state.change_feed = change_feed
    app.state.live_queries = live_queries
    app.state.seed_service = seed_service
    app.state.api_key_validator = APIKeyValidator(api_keys=api_keys)

    @app.exception_handler(TableFlowError)
    async def handle_service_error(request: Request, exc: TableFlowError) -> JSONResponse:
        status_code = ERROR_STATUS_CODES.get(type(exc), 500)
        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        else:
            logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")
        return JSONResponse(status_code=status_code, content=exc.to_dict())

    async def authenticate(
        x_api_key: str | None = Header(None),
        x_staff_id: str | None = Header(None),
    ) -> StaffContext:
        """Dependency validating the API key and resolving the caller's role."""
        check_api_key(x_api_key, app.state.api_key_validator)
        return await resolve_staff(x_staff_id, app.state.identity_client)

    def require_view(*views: View) -> Callable[..., Awaitable[StaffContext]]:
        """Dependency factory gating a route on the navigation policy."""

        async def dependency(context: StaffContext = Depends(authenticate)) -> StaffContext:
            return authorize_view(context, *views)

        return dependency

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Health check endpoint.

        Returns:
            Health status indicating service is running
        """
        return HealthResponse(status="healthy")

    @app.get("/navigation", response_model=NavigationResponse, tags=["Navigation"])
    async def get_navigation(context: StaffContext = Depends(authenticate)) -> NavigationResponse:
        """Return the views the caller's role may open, in menu order."""
        views = allowed_views(context.role)
        return NavigationResponse(
            staff_id=context.staff_id,
            role=context.role.value,
            views=[view for view in View if view in views],
            landing_view=landing_view(context.role),
        )

    # --- Orders ---

    @app.get("/orders", response_model=list[Order], tags=["Orders"])
    async def list_recent_orders(
        _context: StaffContext = Depends(require_view(View.ORDERS, View.DASHBOARD)),
    ) -> list[Order]:
        """Return the 50 most recent orders, newest first."""
        orders: list[Order] = await app.state.order_service.list_recent_orders()
        return orders

    @app.post("/orders", response_model=Order, status_code=201, tags=["Orders"])
    async def create_order(
        request: CreateOrderRequest,
        context: StaffContext = Depends(require_view(View.ORDERS)),
    ) -> Order:
        """Submit a cart as a new order and occupy its table."""
        logger.info(f"Staff {context.staff_id} submitting order for table {request.table_id}")
        order: Order = await app.state.order_service.create_order(
            request.table_id,
            [CartLine(line.menu_item_id, line.quantity, line.notes) for line in request.items],
        )
        return order

    @app.get("/orders/kitchen", response_model=list[KitchenTicket], tags=["Orders"])
    async def get_kitchen_queue(
        _context: StaffContext = Depends(require_view(View.KITCHEN)),
    ) -> list[KitchenTicket]:
        """Return pending and in-preparation orders, oldest first."""
        orders = await app.state.order_service.list_kitchen_queue()
        dashboard = app.state.dashboard_service
        return [
            KitchenTicket(order=o, age=dashboard.describe_age(o), urgency=dashboard.urgency(o))
            for o in orders
        ]

    @app.get("/orders/billing", response_model=list[Order], tags=["Orders"])
    async def get_billing_queue(
        _context: StaffContext = Depends(require_view(View.BILLING)),
    ) -> list[Order]:
        orders: list[Order] = await app.state.order_service.list_billing_queue()
        return orders

    @app.get("/orders/today", response_model=list[Order], tags=["Orders"])
    async def get_todays_orders(
        _context: StaffContext = Depends(require_view(View.DASHBOARD, View.ANALYTICS)),
    ) -> list[Order]:
        orders: list[Order] = await app.state.order_service.list_todays_orders()
        return orders

    @app.get("/orders/{order_id}", response_model=Order, tags=["Orders"])
    async def get_order(
        order_id: str,
        _context: StaffContext = Depends(require_view(View.ORDERS, View.KITCHEN, View.BILLING)),
    ) -> Order:
        order: Order = await app.state.order_service.get_order(order_id)
        return order

    @app.delete("/orders/{order_id}", status_code=204, tags=["Orders"])
    async def delete_order(
        order_id: str,
        _context: StaffContext = Depends(require_view(View.ORDERS)),
    ) -> Response:
        """Delete a completed order."""
        await app.state.order_service.delete_order(order_id)
        return Response(status_code=204)

    @app.post("/orders/{order_id}/advance", response_model=Order, tags=["Orders"])
    async def advance_order(
        order_id: str,
        _context: StaffContext = Depends(require_view(View.ORDERS, View.KITCHEN)),
    ) -> Order:
        """Move an order one step along pending, in-preparation, served, completed."""
        order: Order = await app.state.order_service.advance_order(order_id)
        return order

    @app.put("/orders/{order_id}/status", response_model=Order, tags=["Orders"])
    async def update_order_status(
        order_id: str,
        request: StatusUpdateRequest,
        _context: StaffContext = Depends(require_view(View.ORDERS, View.KITCHEN)),
    ) -> Order:
        order: Order = await app.state.order_service.update_status(order_id, request.status)
        return order

    @app.post("/orders/{order_id}/cancel", response_model=Order, tags=["Orders"])
    async def cancel_order(
        order_id: str,
        _context: StaffContext = Depends(require_view(View.ORDERS, View.KITCHEN)),
    ) -> Order:
        order: Order = await app.state.order_service.cancel_order(order_id)
        return order

    # --- Tables ---

    @app.get("/tables", response_model=list[Table], tags=["Tables"])
    async def list_tables(
        _context: StaffContext = Depends(require_view(View.TABLES, View.ORDERS)),
    ) -> list[Table]:
        tables: list[Table] = await app.state.table_service.list_tables()
        return tables

    @app.post("/tables", response_model=Table, status_code=201, tags=["Tables"])
    async def create_table(
        request: CreateTableRequest,
        _context: StaffContext = Depends(require_view(View.SETTINGS)),
    ) -> Table:
        table: Table = await app.state.table_service.create_table(
            request.number, request.capacity, request.status
        )
        return table

    @app.get("/tables/{table_id}", response_model=Table, tags=["Tables"])
    async def get_table(
        table_id: str,
        _context: StaffContext = Depends(require_view(View.TABLES, View.ORDERS)),
    ) -> Table:
        table: Table = await app.state.table_service.get_table(table_id)
        return table

    @app.put("/tables/{table_id}", response_model=Table, tags=["Tables"])
    async def update_table(
        table_id: str,
        request: UpdateTableRequest,
        _context: StaffContext = Depends(require_view(View.SETTINGS)),
    ) -> Table:
        table: Table = await app.state.table_service.update_table(
            table_id, number=request.number, capacity=request.capacity
        )
        return table

    @app.delete("/tables/{table_id}", status_code=204, tags=["Tables"])
    async def delete_table(
        table_id: str,
        _context: StaffContext = Depends(require_view(View.SETTINGS)),
    ) -> Response:
        await app.state.table_service.delete_table(table_id)
        return Response(status_code=204)

    @app.put("/tables/{table_id}/status", response_model=Table, tags=["Tables"])
    async def set_table_status(
        table_id: str,
        request: TableStatusRequest,
        context: StaffContext = Depends(require_view(View.TABLES)),
    ) -> Table:
        """Staff override of a table's occupancy status."""
        logger.info(f"Staff {context.staff_id} setting table {table_id} to {request.status.value}")
        table: Table = await app.state.table_service.set_status(table_id, request.status)
        return table

    # --- Menu items ---

    @app.get("/menu/items", response_model=list[MenuItem], tags=["Menu"])
    async def list_menu_items(
        _context: StaffContext = Depends(require_view(View.MENU, View.ORDERS)),
    ) -> list[MenuItem]:
        items: list[MenuItem] = await app.state.menu_service.list_menu_items()
        return items

    @app.post("/menu/items", response_model=MenuItem, status_code=201, tags=["Menu"])
    async def add_menu_item(
        request: CreateMenuItemRequest,
        _context: StaffContext = Depends(require_view(View.SETTINGS)),
    ) -> MenuItem:
        item: MenuItem = await app.state.menu_service.add_menu_item(
            name=request.name,
            price=request.price,
            category_id=request.category_id,
            description=request.description,
            is_available=request.is_available,
            image_url=request.image_url,
        )
        return item

    @app.get("/menu/items/{item_id}", response_model=MenuItem, tags=["Menu"])
    async def get_menu_item(
        item_id: str,
        _context: StaffContext = Depends(require_view(View.MENU, View.ORDERS)),
    ) -> MenuItem:
        item: MenuItem = await app.state.menu_service.get_menu_item(item_id)
        return item

    @app.put("/menu/items/{item_id}", response_model=MenuItem, tags=["Menu"])
    async def update_menu_item(
        item_id: str,
        request: UpdateMenuItemRequest,
        _context: StaffContext = Depends(require_view(View.SETTINGS)),
    ) -> MenuItem:
        item: MenuItem = await app.state.menu_service.update_menu_item(
            item_id, request.model_dump(exclude_unset=True)
        )
        return item

    @app.delete("/menu/items/{item_id}", status_code=204, tags=["Menu"])
    async def delete_menu_item(
        item_id: str,
        _context: StaffContext = Depends(require_view(View.SETTINGS)),
    ) -> Response:
        await app.state.menu_service.delete_menu_item(item_id)
        return Response(status_code=204)

    @app.post("/menu/items/{item_id}/availability", response_model=MenuItem, tags=["Menu"])
    async def toggle_availability(
        item_id: str,
        _context: StaffContext = Depends(require_view(View.MENU)),
    ) -> MenuItem:
        """Flip whether a menu item can be ordered."""
        item: MenuItem = await app.state.menu_service.toggle_availability(item_id)
        return item

    # --- Menu categories ---

    @app.get("/menu/categories", response_model=list[MenuCategory], tags=["Menu"])
    async def list_categories(
        _context: StaffContext = Depends(require_view(View.MENU, View.ORDERS)),
    ) -> list[MenuCategory]:
        categories: list[MenuCategory] = await app.state.menu_service.list_categories()
        return categories

    @app.post("/menu/categories", response_model=MenuCategory, status_code=201, tags=["Menu"])
    async def add_category(
        request: CreateCategoryRequest,
        _context: StaffContext = Depends(require_view(View.SETTINGS)),
    ) -> MenuCategory:
        category: MenuCategory = await app.state.menu_service.add_category(
            request.name, is_visible=request.is_visible
        )
        return category

    @app.put("/menu/categories/reorder", response_model=list[MenuCategory], tags=["Menu"])
    async def reorder_categories(
        request: ReorderCategoriesRequest,
        _context: StaffContext = Depends(require_view(View.SETTINGS)),
    ) -> list[MenuCategory]:
        """Rewrite the display order of the given categories in one transaction."""
        categories: list[MenuCategory] = await app.state.menu_service.reorder_categories(
            request.category_ids
        )
        return categories

    @app.put("/menu/categories/{category_id}", response_model=MenuCategory, tags=["Menu"])
    async def update_category(
        category_id: str,
        request: UpdateCategoryRequest,
        _context: StaffContext = Depends(require_view(View.SETTINGS)),
    ) -> MenuCategory:
        category: MenuCategory = await app.state.menu_service.update_category(
            category_id, request.name
        )
        return category

    @app.delete("/menu/categories/{category_id}", status_code=204, tags=["Menu"])
    async def delete_category(
        category_id: str,
        _context: StaffContext = Depends(require_view(View.SETTINGS)),
    ) -> Response:
        await app.state.menu_service.delete_category(category_id)
        return Response(status_code=204)

    @app.post(
        "/menu/categories/{category_id}/visibility",
        response_model=MenuCategory,
        tags=["Menu"],
    )
    async def toggle_visibility(
        category_id: str,
        _context: StaffContext = Depends(require_view(View.SETTINGS)),
    ) -> MenuCategory:
        category: MenuCategory = await app.state.menu_service.toggle_visibility(category_id)
        return category

    @app.post(
        "/menu/categories/{category_id}/move",
        response_model=list[MenuCategory],
        tags=["Menu"],
    )
    async def move_category(
        category_id: str,
        request: MoveCategoryRequest,
        _context: StaffContext = Depends(require_view(View.SETTINGS)),
    ) -> list[MenuCategory]:
        categories: list[MenuCategory] = await app.state.menu_service.move_category(
            category_id, request.direction
        )
        return categories

    # --- Billing ---

    @app.get("/billing/summary", response_model=BillingSummary, tags=["Billing"])
    async def get_billing_summary(
        _context: StaffContext = Depends(require_view(View.BILLING)),
    ) -> BillingSummary:
        """Return the pending-payment queue and the collected history."""
        summary: BillingSummary = await app.state.billing_service.get_summary()
        return summary

    @app.post("/billing/{order_id}/pay", response_model=Order, tags=["Billing"])
    async def pay_order(
        order_id: str,
        context: StaffContext = Depends(require_view(View.BILLING)),
    ) -> Order:
        """Settle an order's bill and free its table."""
        logger.info(f"Staff {context.staff_id} collecting payment for order {order_id}")
        order: Order = await app.state.billing_service.pay(order_id)
        return order

    @app.get("/billing/{order_id}/invoice", response_model=Invoice, tags=["Billing"])
    async def get_invoice(
        order_id: str,
        _context: StaffContext = Depends(require_view(View.BILLING)),
    ) -> Invoice:
        invoice: Invoice = await app.state.billing_service.get_invoice(order_id)
        return invoice

    # --- Dashboard ---

    @app.get("/dashboard/stats", response_model=DashboardStats, tags=["Dashboard"])
    async def get_dashboard_stats(
        _context: StaffContext = Depends(require_view(View.DASHBOARD)),
    ) -> DashboardStats:
        stats: DashboardStats = await app.state.dashboard_service.get_stats()
        return stats

    @app.get(
        "/dashboard/recent-orders",
        response_model=list[RecentOrderCard],
        tags=["Dashboard"],
    )
    async def get_recent_order_cards(
        limit: int = Query(5, ge=1, le=50),
        _context: StaffContext = Depends(require_view(View.DASHBOARD)),
    ) -> list[RecentOrderCard]:
        """Return the newest orders with how long ago each was placed."""
        orders = await app.state.order_service.list_recent_orders()
        dashboard = app.state.dashboard_service
        return [RecentOrderCard(order=o, age=dashboard.describe_age(o)) for o in orders[:limit]]

    # --- Admin ---

    @app.post("/admin/seed", response_model=dict[str, int], tags=["Admin"])
    async def seed_demo_data(
        context: StaffContext = Depends(require_view(View.SETTINGS)),
    ) -> dict[str, int]:
        """Load the demo menu and floor plan."""
        if app.state.seed_service is None:
            raise HTTPException(status_code=404, detail="Seeding is not enabled")

        logger.info(f"Staff {context.staff_id} seeding demo data")
        counts: dict[str, int] = await app.state.seed_service.seed()
        return counts

    # --- Live queries ---

    @app.websocket("/ws/{query_name}")
    async def live_query_feed(
        websocket: WebSocket,
        query_name: str,
        api_key: str | None = None,
        staff_id: str | None = None,
    ) -> None:
        """Stream a live query: the current result, then a new one on every change.

        Browsers cannot set headers on WebSocket requests, so the API key and
        staff id travel as query parameters.
        """
        query = app.state.live_queries.get(query_name)
        if query is None:
            await websocket.close(code=4404)
            return

        try:
            check_api_key(api_key, app.state.api_key_validator)
            context = await resolve_staff(staff_id, app.state.identity_client)
            authorize_view(context, *query.views)
        except HTTPException as e:
            await websocket.close(code=4000 + e.status_code)
            return

        await websocket.accept()
        record_live_subscriber_change(1)
        logger.info(f"Staff {context.staff_id} subscribed to {query.name}")

        async def send_snapshots() -> None:
            async for records in stream_snapshots(query, app.state.change_feed):
                await websocket.send_json({"query": query.name, "records": records})

        async def wait_for_disconnect() -> None:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    return

        sender = asyncio.create_task(send_snapshots())
        receiver = asyncio.create_task(wait_for_disconnect())
        try:
            done, _pending = await asyncio.wait(
                {sender, receiver}, return_when=asyncio.FIRST_COMPLETED
            )
            if sender in done and not sender.cancelled() and sender.exception() is not None:
                logger.error(f"Live query {query.name} failed: {sender.exception()}")
        finally:
            for task in (sender, receiver):
                task.cancel()
            record_live_subscriber_change(-1)
            logger.info(f"Staff {context.staff_id} unsubscribed from {query.name}")
            await asyncio.gather(sender, receiver, return_exceptions=True)

    return app
