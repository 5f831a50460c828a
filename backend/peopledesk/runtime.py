"""
Process-wide wiring: engine, store, change feed, subscriptions, auth and blobs.

The FastAPI lifespan builds one Runtime and closes it on shutdown. Nothing
here knows about the current user; identity-bound objects are built per
request or per connection with scoped().
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from peopledesk.access.policy import RowLevelAccessFilter
from peopledesk.access.scoped import ScopedStore
from peopledesk.auth.provider import LocalAuthProvider
from peopledesk.auth.revocation import TokenRevocationList, get_revocation_list
from peopledesk.core.config import settings
from peopledesk.db.session import create_engine_for_url, create_session_factory, init_db
from peopledesk.realtime.feed import ChangeFeed, get_change_feed
from peopledesk.realtime.subscriptions import SubscriptionManager
from peopledesk.schemas.identity import Identity
from peopledesk.storage.blob import BlobStorage, LocalBlobStorage
from peopledesk.store.base import EntityStore
from peopledesk.store.sql import SQLAlchemyEntityStore

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    feed: ChangeFeed
    store: EntityStore
    subscriptions: SubscriptionManager
    auth: LocalAuthProvider
    blobs: BlobStorage
    revocations: TokenRevocationList = field(default_factory=TokenRevocationList)
    policy: RowLevelAccessFilter = field(default_factory=RowLevelAccessFilter)

    @classmethod
    async def create(
        cls,
        database_url: Optional[str] = None,
        redis_url: Optional[str] = None,
        storage_path: Optional[str] = None,
        create_schema: Optional[bool] = None,
        feed: Optional[ChangeFeed] = None,
    ) -> "Runtime":
        engine = create_engine_for_url(database_url or settings.DATABASE_URL)
        if create_schema is None:
            create_schema = settings.ENVIRONMENT.lower() != "production"
        if create_schema:
            await init_db(engine)
            logger.info("Database schema ensured")

        session_factory = create_session_factory(engine)
        feed = feed or get_change_feed(redis_url)
        revocations = get_revocation_list(redis_url)
        return cls(
            engine=engine,
            session_factory=session_factory,
            feed=feed,
            store=SQLAlchemyEntityStore(session_factory, feed),
            subscriptions=SubscriptionManager(feed),
            auth=LocalAuthProvider(session_factory, revocations),
            blobs=LocalBlobStorage(root=storage_path),
            revocations=revocations,
        )

    def scoped(self, identity: Optional[Identity]) -> ScopedStore:
        return ScopedStore(self.store, identity, self.policy)

    def new_auth_provider(self) -> LocalAuthProvider:
        """A provider with its own session state, sharing this runtime's revocations."""
        return LocalAuthProvider(self.session_factory, self.revocations)

    async def close(self) -> None:
        steps = [
            ("subscriptions", self.subscriptions.cancel_all),
            ("change feed", self.feed.close),
            ("token revocations", self.revocations.close),
            ("database", self.engine.dispose),
        ]
        for name, step in steps:
            try:
                result = step()
                if asyncio.iscoroutine(result):
                    await result
                logger.info(f"Closed {name}")
            except Exception as e:
                logger.error(f"Error closing {name}: {e}")
