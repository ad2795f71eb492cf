"""Named live queries served over the WebSocket feed.

A live query is a read over one collection. A subscriber first receives the
current result, then a fresh result every time the collection changes.
Changes that pile up while a result is being computed are coalesced into a
single re-evaluation.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from tableflow_service.auth.navigation import View
from tableflow_service.realtime.change_feed import ChangeFeed, Collection
from tableflow_service.services.menu_service import MenuService
from tableflow_service.services.order_lifecycle_service import OrderLifecycleService
from tableflow_service.services.table_state_service import TableStateService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LiveQuery:
    """A subscribable read.

    Attributes:
        name: Identifier used in the WebSocket path
        collection: Collection whose changes trigger re-evaluation
        loader: Coroutine function returning the current result
        views: Views whose roles may subscribe
    """

    name: str
    collection: Collection
    loader: Callable[[], Awaitable[Sequence[BaseModel]]]
    views: tuple[View, ...]

    async def snapshot(self) -> list[dict[str, Any]]:
        records = await self.loader()
        return [record.model_dump(mode="json") for record in records]


def build_live_queries(
    order_service: OrderLifecycleService,
    table_service: TableStateService,
    menu_service: MenuService,
) -> dict[str, LiveQuery]:
    """Build the registry of live queries keyed by name."""
    queries = [
        LiveQuery(
            "recent_orders",
            Collection.ORDERS,
            order_service.list_recent_orders,
            (View.ORDERS, View.DASHBOARD),
        ),
        LiveQuery("kitchen_queue", Collection.ORDERS, order_service.list_kitchen_queue, (View.KITCHEN,)),
        LiveQuery("billing_queue", Collection.ORDERS, order_service.list_billing_queue, (View.BILLING,)),
        LiveQuery(
            "todays_orders",
            Collection.ORDERS,
            order_service.list_todays_orders,
            (View.DASHBOARD, View.ANALYTICS),
        ),
        LiveQuery("tables", Collection.TABLES, table_service.list_tables, (View.TABLES, View.ORDERS)),
        LiveQuery("menu_items", Collection.MENU_ITEMS, menu_service.list_menu_items, (View.MENU, View.ORDERS)),
        LiveQuery(
            "menu_categories",
            Collection.MENU_CATEGORIES,
            menu_service.list_categories,
            (View.MENU, View.ORDERS),
        ),
    ]
    return {query.name: query for query in queries}


async def stream_snapshots(query: LiveQuery, feed: ChangeFeed) -> AsyncIterator[list[dict[str, Any]]]:
    """Yield the query's result now and after every change to its collection.

    The subscription is registered before the first read so no change is
    missed, and is closed when the consumer stops iterating.
    """
    subscription = feed.subscribe(query.collection)
    try:
        yield await query.snapshot()
        while True:
            await subscription.next_event()
            while not subscription.queue.empty():
                subscription.queue.get_nowait()
            logger.debug(f"Re-evaluating live query {query.name}")
            yield await query.snapshot()
    except asyncio.CancelledError:
        logger.debug(f"Live query {query.name} cancelled")
        raise
    finally:
        subscription.close()
