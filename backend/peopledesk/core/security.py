import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import bcrypt
from jose import jwt, JWTError

from peopledesk.core.config import settings
from peopledesk.core.exceptions import AuthError


def create_access_token(subject: str | Any, expires_delta: Optional[timedelta] = None, **claims: Any) -> str:
    """
    Create a JWT access token.

    Args:
        subject: The subject of the token (the external auth id)
        expires_delta: Optional expiration time delta
        claims: Additional claims to embed (e.g. email)

    Returns:
        Encoded JWT token
    """
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    # jti keeps tokens issued in the same second distinct
    to_encode = {**claims, "exp": expire, "sub": str(subject), "jti": secrets.token_urlsafe(16)}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Decode and verify a JWT access token.

    Raises:
        AuthError: If the token is malformed, expired, or carries no subject
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as exc:
        raise AuthError("Could not validate credentials") from exc
    if not payload.get("sub"):
        raise AuthError("Could not validate credentials")
    return payload


def _prepare_password(password: str) -> bytes:
    """
    Prepare password for bcrypt by encoding and truncating to 72 bytes (bcrypt limit).
    """
    return password.encode('utf-8')[:72]


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a hashed password.
    """
    return bcrypt.checkpw(
        _prepare_password(plain_password),
        hashed_password.encode('utf-8')
    )


def get_password_hash(password: str) -> str:
    """
    Hash a password using bcrypt.
    """
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(_prepare_password(password), salt)
    return hashed.decode('utf-8')


def validate_password_policy(password: str) -> None:
    """Enforce the password policy configured in settings."""
    if len(password) < settings.MIN_PASSWORD_LENGTH:
        raise AuthError(f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters long.")
