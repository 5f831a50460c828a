"""
Session to identity resolution.

The resolver is consulted once at startup and on every session change. It is
the only component that reads the Employee row behind a session; everything
else receives the resulting Identity explicitly.
"""

import logging
from typing import Callable, List, Optional

from peopledesk.auth.provider import AuthProvider, AuthSession, Registration, SessionEvent
from peopledesk.core.exceptions import StoreError
from peopledesk.schemas.identity import Identity
from peopledesk.store.base import EntityStore
from peopledesk.store.query import Collection, QuerySpec

logger = logging.getLogger(__name__)

IdentityListener = Callable[[Optional[Identity]], None]


async def lookup_identity(store: EntityStore, auth_id: str) -> Optional[Identity]:
    """Identity of the employee provisioned for auth_id, or None when there is none."""
    rows = await store.query(Collection.EMPLOYEES, QuerySpec().where(auth_id=auth_id).limited(1))
    if not rows:
        logger.info(f"Auth account {auth_id} has no employee record")
        return None
    return Identity.from_row(rows[0])


class SessionRoleResolver:
    """
    Tracks the identity for one client session.

    Sign-in lookups are tagged with a generation number; a lookup that finishes
    after a newer session event is discarded, so a late answer can never
    resurrect an identity after sign-out.
    """

    def __init__(self, auth: AuthProvider, store: EntityStore):
        self._auth = auth
        self._store = store
        self._identity: Optional[Identity] = None
        self._loading = True
        self._generation = 0
        self._registration: Optional[Registration] = None
        self._listeners: List[Registration] = []

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def is_admin(self) -> bool:
        return self._identity is not None and self._identity.is_admin

    def on_identity_change(self, callback: IdentityListener) -> Registration:
        registration = Registration(self._listeners, callback)
        self._listeners.append(registration)
        return registration

    async def start(self) -> Optional[Identity]:
        if self._registration is None:
            self._registration = self._auth.on_session_change(self._on_session_change)
        try:
            return await self.resolve_identity()
        finally:
            self._loading = False

    async def resolve_identity(self) -> Optional[Identity]:
        generation = self._next_generation()
        session = await self._auth.get_session()
        identity = await self._lookup(session)
        if generation != self._generation:
            logger.debug("Discarding stale identity resolution")
            return self._identity
        self._set_identity(identity)
        return identity

    async def sign_in(self, email: str, password: str) -> Optional[Identity]:
        """Sign in through the provider; the SIGNED_IN event resolves the identity."""
        await self._auth.sign_in(email, password)
        return self._identity

    async def sign_out(self) -> None:
        self._next_generation()
        self._set_identity(None)
        await self._auth.sign_out()

    def close(self) -> None:
        if self._registration is not None:
            self._registration.cancel()
            self._registration = None
        for registration in list(self._listeners):
            registration.cancel()

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    async def _lookup(self, session: Optional[AuthSession]) -> Optional[Identity]:
        if session is None:
            return None
        try:
            return await lookup_identity(self._store, session.user.id)
        except StoreError as exc:
            # Fail closed
            logger.error(f"Identity lookup for {session.user.id} failed: {exc.message}")
            return None

    async def _on_session_change(self, event: SessionEvent, session: Optional[AuthSession]) -> None:
        if event is SessionEvent.SIGNED_OUT or session is None:
            # Cleared before any await
            self._next_generation()
            self._set_identity(None)
            return
        generation = self._next_generation()
        identity = await self._lookup(session)
        if generation != self._generation:
            logger.debug(f"Discarding stale {event.value} lookup for {session.user.id}")
            return
        self._set_identity(identity)
        self._loading = False

    def _set_identity(self, identity: Optional[Identity]) -> None:
        if identity == self._identity:
            return
        self._identity = identity
        logger.info(f"Identity changed to {identity.id if identity else None}")
        for registration in list(self._listeners):
            try:
                registration.callback(identity)
            except Exception:
                logger.exception("Identity change listener failed")
