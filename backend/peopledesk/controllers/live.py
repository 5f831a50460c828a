"""
Live-updating views.

A LiveView subscribes to the collections it depends on, loads once, and loads
again in full for every change event it receives. Change payloads are never
merged into the current value. Results that come back after close(), after
a filter change, or after a newer load has been issued are dropped.
"""

import inspect
from typing import Any, Awaitable, Callable, Generic, List, Optional, Sequence, Tuple, TypeVar

from peopledesk.access.scoped import ScopedStore
from peopledesk.controllers.boundary import guard
from peopledesk.controllers.notifier import Notifier
from peopledesk.core.logging_config import get_logger
from peopledesk.realtime.events import ChangeEvent, EventMask
from peopledesk.realtime.subscriptions import Subscription, SubscriptionManager
from peopledesk.store.query import Collection, QuerySpec, Row

T = TypeVar("T")

Source = Tuple[Collection, EventMask]
UpdateCallback = Callable[[Any], Any]

logger = get_logger(__name__)


class LiveView(Generic[T]):

    def __init__(
        self,
        subscriptions: SubscriptionManager,
        loader: Callable[[], Awaitable[T]],
        sources: Sequence[Source],
        notifier: Notifier,
        on_update: Optional[UpdateCallback] = None,
        error_message: str = "Error loading data",
    ):
        self._manager = subscriptions
        self._loader = loader
        self._sources = list(sources)
        self._notifier = notifier
        self._on_update = on_update
        self._error_message = error_message
        self._subscriptions: List[Subscription] = []
        self._generation = 0
        self._issued = 0
        self._applied = 0
        self._closed = False
        self._started = False
        self.value: Optional[T] = None
        self.loads = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def subscriptions(self) -> List[Subscription]:
        return list(self._subscriptions)

    async def start(self) -> Optional[T]:
        """
        Subscribe first, then load, so no change between the two is missed.

        If any subscription cannot be opened, those already opened are
        cancelled, an error notice is raised and the view stays unstarted.
        """
        if self._started:
            return self.value
        self._started = True
        async with guard(self._notifier, self._error_message) as g:
            for collection, mask in self._sources:
                subscription = await self._manager.subscribe(collection, mask, on_change=self._on_change)
                self._subscriptions.append(subscription)
        if g.failed:
            for subscription in self._subscriptions:
                subscription.cancel()
            self._subscriptions.clear()
            self._started = False
            return None
        await self.refresh()
        return self.value

    async def _on_change(self, event: ChangeEvent) -> None:
        if self._closed:
            return
        logger.debug(f"{event.event_type.value} on {event.collection}; reloading")
        await self.refresh()

    async def refresh(self) -> bool:
        """Load and apply. Returns False when the result was discarded or the load failed."""
        if self._closed:
            return False
        generation = self._generation
        self._issued += 1
        ticket = self._issued
        self.loads += 1

        async with guard(self._notifier, self._error_message) as g:
            value = await self._loader()
        if g.failed:
            return False

        if self._closed or generation != self._generation or ticket < self._applied:
            logger.debug("Discarding stale load result")
            return False
        self._applied = ticket
        self.value = value
        if self._on_update is not None:
            result = self._on_update(value)
            if inspect.isawaitable(result):
                await result
        return True

    def invalidate(self) -> None:
        """Drop any load already in flight."""
        self._generation += 1

    async def settled(self) -> None:
        """Wait until every change delivered so far has been handled."""
        for subscription in list(self._subscriptions):
            await subscription.join()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._generation += 1
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions.clear()

    async def __aenter__(self) -> "LiveView[T]":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()


class LiveList(LiveView[List[Row]]):
    """A filtered list of one collection, kept current by re-running its scoped query.

    extra_sources names further collections whose changes also trigger a reload,
    for lists whose transform reads them.
    """

    def __init__(
        self,
        scoped: ScopedStore,
        subscriptions: SubscriptionManager,
        collection: Collection,
        query: Optional[QuerySpec] = None,
        notifier: Optional[Notifier] = None,
        mask: EventMask = EventMask.ALL_CHANGES,
        on_rows: Optional[UpdateCallback] = None,
        transform: Optional[Callable[[List[Row]], Awaitable[List[Row]]]] = None,
        error_message: Optional[str] = None,
        extra_sources: Sequence[Source] = (),
    ):
        self.collection = Collection(collection)
        self._scoped = scoped
        self._query = query or QuerySpec()
        self._transform = transform
        super().__init__(
            subscriptions,
            self._load,
            [(self.collection, mask), *extra_sources],
            notifier or Notifier(),
            on_update=on_rows,
            error_message=error_message or f"Error fetching {self.collection.value.replace('_', ' ')}",
        )

    @property
    def query(self) -> QuerySpec:
        return self._query

    @property
    def rows(self) -> List[Row]:
        return list(self.value or [])

    async def _load(self) -> List[Row]:
        rows = await self._scoped.query(self.collection, self._query)
        if self._transform is not None:
            rows = await self._transform(rows)
        return rows

    async def set_query(self, query: QuerySpec) -> bool:
        """Switch filters; anything loaded for the old filters is discarded."""
        self._query = query
        self.invalidate()
        return await self.refresh()
