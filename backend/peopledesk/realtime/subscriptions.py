"""
Change subscriptions.

A Subscription turns feed callbacks into typed events on an asyncio.Queue. The
owning controller consumes the queue (directly, or through the pump task the
manager starts for an on_change callback) and re-runs its query per event.
Every subscription must be cancelled when its owner is torn down; active()
exists so tests and the app shutdown path can check for leaks.
"""

import asyncio
import inspect
import itertools
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from peopledesk.realtime.events import ChangeEvent, EventMask
from peopledesk.realtime.feed import ChangeFeed, FeedListener
from peopledesk.store.query import Collection

logger = logging.getLogger(__name__)

ChangeHandler = Callable[[ChangeEvent], Union[Awaitable[Any], Any]]

_ids = itertools.count(1)


class Subscription:
    """
    One logical subscription to one collection.

    Single consumer: either iterate with `async for`, or call get() and then
    done() once the event has been handled.
    """

    def __init__(self, manager: "SubscriptionManager", collection: str, mask: EventMask):
        self.id = next(_ids)
        self.collection = collection
        self.mask = mask
        self.cancelled = False
        self.delivered = 0
        self._manager = manager
        self._queue: asyncio.Queue = asyncio.Queue()
        self._listener: Optional[FeedListener] = None
        self._pump: Optional[asyncio.Task] = None
        self._unacked = False

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "active"
        return f"<Subscription {self.id} {self.collection} {self.mask.value} {state}>"

    def _deliver(self, event: ChangeEvent) -> None:
        if self.cancelled or not self.mask.matches(event.event_type):
            return
        self.delivered += 1
        self._queue.put_nowait(event)

    async def get(self) -> Optional[ChangeEvent]:
        """Next event, or None once the subscription is cancelled."""
        if self.cancelled and self._queue.empty():
            return None
        event = await self._queue.get()
        if event is None:
            self._queue.task_done()
        return event

    def done(self) -> None:
        """Mark the event returned by the last get() as processed."""
        self._queue.task_done()

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> ChangeEvent:
        # The previous event counts as processed once the loop body asks for the next one
        if self._unacked:
            self._unacked = False
            self.done()
        event = await self.get()
        if event is None:
            raise StopAsyncIteration
        self._unacked = True
        return event

    async def join(self) -> None:
        """Wait until every delivered event has been processed."""
        if self.cancelled:
            if self._pump is not None and not self._pump.done():
                await asyncio.gather(self._pump, return_exceptions=True)
            return
        await self._queue.join()

    def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        if self._listener is not None:
            self._listener.close()
        # Undelivered events are dropped
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            self._queue.task_done()
        self._queue.put_nowait(None)
        if self._pump is not None and self._pump is not asyncio.current_task():
            self._pump.cancel()
        self._manager._forget(self)
        logger.debug(f"Cancelled subscription {self.id} on {self.collection}")

    async def _run_pump(self, on_change: ChangeHandler) -> None:
        async for event in self:
            try:
                result = on_change(event)
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(f"Change handler for {self.collection} failed")


class SubscriptionManager:
    """Opens and tracks subscriptions against one change feed."""

    def __init__(self, feed: ChangeFeed):
        self._feed = feed
        self._active: Dict[int, Subscription] = {}

    @property
    def feed(self) -> ChangeFeed:
        return self._feed

    async def subscribe(
        self,
        collection: Union[Collection, str],
        mask: EventMask = EventMask.ALL_CHANGES,
        on_change: Optional[ChangeHandler] = None,
    ) -> Subscription:
        name = Collection(collection).value
        subscription = Subscription(self, name, mask)
        subscription._listener = await self._feed.listen(name, subscription._deliver)
        self._active[subscription.id] = subscription
        if on_change is not None:
            subscription._pump = asyncio.create_task(
                subscription._run_pump(on_change),
                name=f"subscription-{subscription.id}-{name}",
            )
        logger.debug(f"Opened subscription {subscription.id} on {name} ({mask.value})")
        return subscription

    def active(self, collection: Optional[Union[Collection, str]] = None) -> List[Subscription]:
        subs = list(self._active.values())
        if collection is None:
            return subs
        name = Collection(collection).value
        return [s for s in subs if s.collection == name]

    def cancel_all(self) -> int:
        subs = list(self._active.values())
        for subscription in subs:
            subscription.cancel()
        if subs:
            logger.info(f"Cancelled {len(subs)} open subscriptions")
        return len(subs)

    def _forget(self, subscription: Subscription) -> None:
        self._active.pop(subscription.id, None)
