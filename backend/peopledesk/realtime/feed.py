"""
Change feed backends.

The feed is the server side of realtime: stores publish a ChangeEvent after each
committed mutation and every process-local listener of that collection is
called with it. Redis pub/sub fans events out across instances; the in-memory
backend serves single-process deployments and tests.
"""

import asyncio
import json
import logging
from typing import Callable, Dict, List, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from peopledesk.core.config import settings
from peopledesk.core.exceptions import StoreError
from peopledesk.realtime.events import ChangeEvent

logger = logging.getLogger(__name__)

ListenerCallback = Callable[[ChangeEvent], None]


class FeedListener:
    """Registration handle returned by ChangeFeed.listen(). close() is idempotent."""

    def __init__(self, feed: "ChangeFeed", collection: str, callback: ListenerCallback):
        self._feed = feed
        self.collection = collection
        self.callback = callback
        self.closed = False

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._feed._remove(self)


class ChangeFeed:
    """Base class for change feed backends."""

    def __init__(self):
        self._listeners: Dict[str, List[FeedListener]] = {}

    async def listen(self, collection: str, callback: ListenerCallback) -> FeedListener:
        listener = FeedListener(self, collection, callback)
        self._listeners.setdefault(collection, []).append(listener)
        try:
            await self._on_listen(collection)
        except Exception:
            listener.close()
            raise
        return listener

    async def publish(self, event: ChangeEvent) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        for listeners in list(self._listeners.values()):
            for listener in list(listeners):
                listener.close()

    def listener_count(self, collection: Optional[str] = None) -> int:
        if collection is not None:
            return len(self._listeners.get(collection, []))
        return sum(len(v) for v in self._listeners.values())

    async def _on_listen(self, collection: str) -> None:
        """Hook for backends that must set up a remote subscription."""

    def _remove(self, listener: FeedListener) -> None:
        listeners = self._listeners.get(listener.collection)
        if listeners and listener in listeners:
            listeners.remove(listener)
            if not listeners:
                del self._listeners[listener.collection]

    def _dispatch(self, event: ChangeEvent) -> None:
        for listener in list(self._listeners.get(event.collection, [])):
            if listener.closed:
                continue
            try:
                listener.callback(event)
            except Exception:
                # Remaining listeners still receive the event
                logger.exception(f"Change listener for {event.collection} failed")


class InMemoryChangeFeed(ChangeFeed):
    """
    Process-local feed. Delivery is synchronous with publish().
    Not suitable for multi-instance deployments.
    """

    async def publish(self, event: ChangeEvent) -> None:
        self._dispatch(event)


class RedisChangeFeed(ChangeFeed):
    """
    Redis pub/sub feed, one channel per collection.

    Publishing processes also receive their own events through the subscription,
    so local listeners see every change exactly as remote ones do.
    """

    def __init__(self, url: str, channel_prefix: Optional[str] = None):
        super().__init__()
        self._url = url
        self._prefix = channel_prefix or settings.REALTIME_CHANNEL_PREFIX
        self._redis = None
        self._pubsub = None
        self._reader: Optional[asyncio.Task] = None
        self._subscribed: set[str] = set()
        self._pending: set[asyncio.Task] = set()
        self._connect_lock = asyncio.Lock()

    def channel_for(self, collection: str) -> str:
        return f"{self._prefix}:{collection}"

    async def _ensure_connected(self) -> None:
        if self._redis is not None:
            return
        async with self._connect_lock:
            if self._redis is not None:
                return
            client = redis.from_url(
                self._url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5.0,
            )
            try:
                await client.ping()
            except RedisError as exc:
                await client.aclose()
                raise StoreError(f"Change feed unavailable: {exc}", reason="feed_unavailable") from exc
            self._redis = client
            self._pubsub = client.pubsub()
            logger.info("Redis change feed connected")

    async def publish(self, event: ChangeEvent) -> None:
        await self._ensure_connected()
        try:
            await self._redis.publish(self.channel_for(event.collection), json.dumps(event.to_payload()))
        except RedisError as exc:
            raise StoreError(f"Failed to publish change event: {exc}", reason="feed_unavailable") from exc

    async def _on_listen(self, collection: str) -> None:
        await self._ensure_connected()
        if collection not in self._subscribed:
            try:
                await self._pubsub.subscribe(self.channel_for(collection))
            except RedisError as exc:
                raise StoreError(f"Failed to subscribe to {collection}: {exc}", reason="feed_unavailable") from exc
            self._subscribed.add(collection)
        if self._reader is None or self._reader.done():
            self._reader = asyncio.create_task(self._read_loop())

    def _remove(self, listener: FeedListener) -> None:
        super()._remove(listener)
        collection = listener.collection
        if collection in self._listeners or collection not in self._subscribed:
            return
        self._subscribed.discard(collection)
        try:
            task = asyncio.get_running_loop().create_task(self._unsubscribe(collection))
        except RuntimeError:
            # No loop left to run it; close() drops the pubsub connection
            return
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _unsubscribe(self, collection: str) -> None:
        if self._pubsub is None or collection in self._listeners:
            return
        try:
            await self._pubsub.unsubscribe(self.channel_for(collection))
            logger.debug(f"Unsubscribed from {collection}")
        except RedisError as exc:
            logger.warning(f"Failed to unsubscribe from {collection}: {exc}")

    async def _read_loop(self) -> None:
        try:
            async for message in self._pubsub.listen():
                if message.get("type") != "message":
                    continue
                self._handle_message(message)
        except asyncio.CancelledError:
            raise
        except RedisError as exc:
            logger.error(f"Redis change feed reader stopped: {exc}")

    def _handle_message(self, message: dict) -> None:
        try:
            event = ChangeEvent.from_payload(json.loads(message["data"]))
        except (KeyError, ValueError, TypeError) as exc:
            logger.warning(f"Dropping malformed change event on {message.get('channel')}: {exc}")
            return
        self._dispatch(event)

    async def close(self) -> None:
        await super().close()
        for task in list(self._pending):
            task.cancel()
        if self._reader is not None:
            self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass
            self._reader = None
        if self._pubsub is not None:
            await self._pubsub.aclose()
            self._pubsub = None
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
        self._subscribed.clear()


def get_change_feed(redis_url: Optional[str] = None) -> ChangeFeed:
    """Pick the feed backend: Redis when a URL is configured, in-memory otherwise."""
    url = redis_url if redis_url is not None else settings.REDIS_URL
    if url:
        logger.info("Using Redis change feed")
        return RedisChangeFeed(url)
    logger.info("Using in-memory change feed")
    return InMemoryChangeFeed()
