"""
Revoked access tokens.

Sign-out on the HTTP surface records the token here until it would have
expired anyway. Entries are keyed by a SHA-256 digest rather than the token
itself. With REDIS_URL configured revocations are shared by every instance
and survive restarts; otherwise they are process-local.
"""

import hashlib
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from peopledesk.core.config import settings

logger = logging.getLogger(__name__)

CLEANUP_INTERVAL = timedelta(minutes=5)


def _digest(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class TokenRevocationList:
    """In-process revocations."""

    def __init__(self):
        self._revoked: Dict[str, datetime] = {}
        self._last_cleanup = datetime.now(timezone.utc)

    def __len__(self) -> int:
        return len(self._revoked)

    async def revoke(self, token: str, expires_at: datetime) -> None:
        self._remember(token, expires_at)

    async def is_revoked(self, token: str) -> bool:
        return self._recall(token)

    async def close(self) -> None:
        self._revoked.clear()

    def _remember(self, token: str, expires_at: datetime) -> None:
        self._cleanup()
        self._revoked[_digest(token)] = expires_at
        logger.debug("Access token revoked")

    def _recall(self, token: str) -> bool:
        self._cleanup()
        expires_at = self._revoked.get(_digest(token))
        return expires_at is not None and expires_at > datetime.now(timezone.utc)

    def _cleanup(self) -> None:
        now = datetime.now(timezone.utc)
        if now - self._last_cleanup < CLEANUP_INTERVAL:
            return
        expired = [key for key, expiry in self._revoked.items() if expiry <= now]
        for key in expired:
            del self._revoked[key]
        if expired:
            logger.debug(f"Dropped {len(expired)} expired revocations")
        self._last_cleanup = now


class RedisTokenRevocationList(TokenRevocationList):
    """
    Revocations stored as Redis keys that expire with the token.

    When Redis cannot be reached the entry is kept in process memory instead,
    and lookups consult both.
    """

    def __init__(self, url: str, key_prefix: Optional[str] = None):
        super().__init__()
        self._url = url
        self._prefix = key_prefix or settings.REVOCATION_KEY_PREFIX
        self._redis = None

    def key_for(self, token: str) -> str:
        return f"{self._prefix}:{_digest(token)}"

    def _client(self):
        if self._redis is None:
            self._redis = redis.from_url(
                self._url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
        return self._redis

    async def revoke(self, token: str, expires_at: datetime) -> None:
        ttl = int((expires_at - datetime.now(timezone.utc)).total_seconds())
        if ttl <= 0:
            return
        try:
            await self._client().setex(self.key_for(token), ttl, "1")
            logger.debug(f"Access token revoked in Redis until {expires_at.isoformat()}")
            return
        except RedisError as e:
            logger.warning(f"Redis revocation failed, falling back to memory: {e}")
        self._remember(token, expires_at)

    async def is_revoked(self, token: str) -> bool:
        if self._recall(token):
            return True
        try:
            return bool(await self._client().exists(self.key_for(token)))
        except RedisError as e:
            logger.warning(f"Redis revocation check failed, using memory only: {e}")
            return False

    async def close(self) -> None:
        await super().close()
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


def get_revocation_list(redis_url: Optional[str] = None) -> TokenRevocationList:
    """Redis-backed revocations when a URL is configured, in-memory otherwise."""
    url = redis_url if redis_url is not None else settings.REDIS_URL
    if url:
        logger.info("Token revocations stored in Redis")
        return RedisTokenRevocationList(url)
    logger.info("REDIS_URL not configured, token revocations are process-local")
    return TokenRevocationList()
