"""In-process change feed for live collection subscriptions.

Every successful write in the service layer publishes a ChangeEvent.
Subscribers register interest in one or more collections and receive the
events through their own asyncio queue. Events carry no payload beyond the
record id: a subscriber re-runs its query to get the new state.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class Collection(str, Enum):
    """The four logical collections of the entity store."""

    MENU_ITEMS = "menu_items"
    MENU_CATEGORIES = "menu_categories"
    TABLES = "tables"
    ORDERS = "orders"


class ChangeOperation(str, Enum):
    WRITE = "write"
    DELETE = "delete"


@dataclass(frozen=True)
class ChangeEvent:
    """Notification that one record of a collection changed."""

    collection: Collection
    record_id: str
    operation: ChangeOperation = ChangeOperation.WRITE


class Subscription:
    """A subscriber's view of the feed, limited to some collections."""

    def __init__(
        self, feed: "ChangeFeed", collections: frozenset[Collection], max_queue_size: int
    ) -> None:
        self.feed = feed
        self.collections = collections
        self.queue: asyncio.Queue[ChangeEvent] = asyncio.Queue(maxsize=max_queue_size)
        self.closed = False

    def offer(self, event: ChangeEvent) -> None:
        """Queue an event without blocking the publisher.

        When the queue is full the oldest event is dropped; the subscriber
        still learns that the collection changed.
        """
        if event.collection not in self.collections:
            return
        if self.queue.full():
            self.queue.get_nowait()
        self.queue.put_nowait(event)

    async def next_event(self) -> ChangeEvent:
        return await self.queue.get()

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.feed.unsubscribe(self)

    async def __aiter__(self) -> AsyncIterator[ChangeEvent]:
        while not self.closed:
            yield await self.next_event()


class ChangeFeed:
    """Fan-out of change events to all live subscribers."""

    def __init__(self, max_queue_size: int = 100) -> None:
        """Initialize the feed.

        Args:
            max_queue_size: Per-subscriber queue bound
        """
        self.max_queue_size = max_queue_size
        self._subscriptions: set[Subscription] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, *collections: Collection) -> Subscription:
        """Register a new subscriber for the given collections."""
        subscription = Subscription(self, frozenset(collections), self.max_queue_size)
        self._subscriptions.add(subscription)
        logger.debug(f"Subscriber added for {[c.value for c in collections]}")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        self._subscriptions.discard(subscription)

    def publish(self, event: ChangeEvent) -> None:
        """Deliver an event to every subscriber interested in its collection."""
        logger.debug(
            f"Change on {event.collection.value}/{event.record_id}: {event.operation.value}"
        )
        for subscription in list(self._subscriptions):
            subscription.offer(event)
