"""
Authentication provider boundary and the local implementation.

The provider owns credentials and sessions only. Mapping a session to an
application identity is the resolver's job (see auth.resolver).
"""

import inspect
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Union

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from peopledesk.auth.revocation import TokenRevocationList
from peopledesk.core.config import settings
from peopledesk.core.exceptions import AuthError, StoreError
from peopledesk.core.security import (
    create_access_token,
    decode_access_token,
    get_password_hash,
    validate_password_policy,
    verify_password,
)
from peopledesk.models.auth_account import AuthAccount

logger = logging.getLogger(__name__)


class SessionEvent(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: str


@dataclass(frozen=True)
class AuthSession:
    user: AuthUser
    access_token: str
    expires_at: datetime

    @property
    def expires_in(self) -> int:
        return max(0, int((self.expires_at - datetime.now(timezone.utc)).total_seconds()))


SessionCallback = Callable[[SessionEvent, Optional[AuthSession]], Union[Awaitable[Any], Any]]


class Registration:
    """Cancelable callback registration. cancel() is idempotent."""

    def __init__(self, registry: List["Registration"], callback: Callable[..., Any]):
        self._registry = registry
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        if self in self._registry:
            self._registry.remove(self)


class AuthProvider(ABC):

    def __init__(self):
        self._registrations: List[Registration] = []

    def on_session_change(self, callback: SessionCallback) -> Registration:
        registration = Registration(self._registrations, callback)
        self._registrations.append(registration)
        return registration

    async def _emit(self, event: SessionEvent, session: Optional[AuthSession]) -> None:
        for registration in list(self._registrations):
            if registration.cancelled:
                continue
            try:
                result = registration.callback(event, session)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Session change callback failed for {event.value}")

    @abstractmethod
    async def get_session(self) -> Optional[AuthSession]:
        ...

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> AuthSession:
        """Raises AuthError on bad credentials."""

    @abstractmethod
    async def sign_out(self) -> None:
        ...


class LocalAuthProvider(AuthProvider):
    """
    Password accounts stored in auth_accounts, sessions as signed JWTs.

    One provider instance tracks one client session; the HTTP surface uses
    session_from_token() per request instead, which leaves that state alone.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        revocations: Optional[TokenRevocationList] = None,
    ):
        super().__init__()
        self._session_factory = session_factory
        self._revocations = revocations or TokenRevocationList()
        self._session: Optional[AuthSession] = None

    def _issue(self, account: AuthAccount) -> AuthSession:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        token = create_access_token(account.id, expires_delta=expires_delta, email=account.email)
        return AuthSession(
            user=AuthUser(id=account.id, email=account.email),
            access_token=token,
            expires_at=datetime.now(timezone.utc) + expires_delta,
        )

    async def _account_by_email(self, db: AsyncSession, email: str) -> Optional[AuthAccount]:
        result = await db.execute(select(AuthAccount).where(AuthAccount.email == email.strip().lower()))
        return result.scalar_one_or_none()

    async def get_session(self) -> Optional[AuthSession]:
        if self._session is not None and self._session.expires_at <= datetime.now(timezone.utc):
            logger.info(f"Session for {self._session.user.email} expired")
            self._session = None
        return self._session

    async def sign_up(self, email: str, password: str) -> AuthUser:
        """Create a password account. Does not sign in."""
        validate_password_policy(password)
        account = AuthAccount(email=email.strip().lower(), password_hash=get_password_hash(password))
        try:
            async with self._session_factory() as db:
                db.add(account)
                await db.commit()
        except IntegrityError as exc:
            raise AuthError(f"An account for {email} already exists") from exc
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to create account: {exc}") from exc
        logger.info(f"Created auth account {account.id} for {account.email}")
        return AuthUser(id=account.id, email=account.email)

    async def sign_in(self, email: str, password: str) -> AuthSession:
        try:
            async with self._session_factory() as db:
                account = await self._account_by_email(db, email)
                if account is None or not verify_password(password, account.password_hash):
                    logger.warning(f"Failed sign-in for {email}")
                    raise AuthError("Invalid email or password")
                account.last_sign_in_at = datetime.now(timezone.utc)
                await db.commit()
                session = self._issue(account)
        except SQLAlchemyError as exc:
            raise StoreError(f"Sign-in lookup failed: {exc}") from exc
        self._session = session
        logger.info(f"Signed in {session.user.email}")
        await self._emit(SessionEvent.SIGNED_IN, session)
        return session

    async def sign_out(self) -> None:
        previous, self._session = self._session, None
        if previous is None:
            return
        await self._revocations.revoke(previous.access_token, previous.expires_at)
        logger.info(f"Signed out {previous.user.email}")
        await self._emit(SessionEvent.SIGNED_OUT, None)

    async def session_from_token(self, token: str) -> AuthSession:
        """Validate a bearer token and rebuild its session. Raises AuthError."""
        if await self._revocations.is_revoked(token):
            raise AuthError("Session has been signed out")
        payload = decode_access_token(token)
        try:
            async with self._session_factory() as db:
                account = await db.get(AuthAccount, payload["sub"])
        except SQLAlchemyError as exc:
            raise StoreError(f"Session lookup failed: {exc}") from exc
        if account is None:
            raise AuthError("Could not validate credentials")
        return AuthSession(
            user=AuthUser(id=account.id, email=account.email),
            access_token=token,
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )

    async def restore(self, token: str) -> AuthSession:
        """Adopt a previously issued token as the current session (session restore)."""
        session = await self.session_from_token(token)
        self._session = session
        await self._emit(SessionEvent.TOKEN_REFRESHED, session)
        return session

    async def revoke(self, session: AuthSession) -> None:
        """End a session identified only by its token (stateless sign-out)."""
        await self._revocations.revoke(session.access_token, session.expires_at)
        logger.info(f"Revoked session for {session.user.email}")
