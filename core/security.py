"""
Security utilities: bearer header parsing, the token verifier contract,
a JWT-backed verifier, and redaction helpers for logs.
"""

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol, runtime_checkable

from jose import JWTError, jwt

from core.config import Settings, get_settings
from core.errors import AuthenticationError

BEARER_SCHEME = "Bearer"


@runtime_checkable
class TokenVerifier(Protocol):
    """Anything with verify(token) -> identity. Raise to reject the token."""

    def verify(self, token: str) -> str | Awaitable[str]: ...


# A plain function works as well as a TokenVerifier object
AuthCallback = Callable[[str], Any] | TokenVerifier


def split_authorization(header: str | None) -> tuple[str, str]:
    """
    Split an Authorization header on the first space into (scheme, credentials).
    A missing header yields ("", "") rather than an error.
    """
    scheme, _, credentials = (header or "").partition(" ")
    return scheme, credentials


def parse_bearer(header: str | None) -> str | None:
    """Return the bearer token, or None when the scheme is not exactly 'Bearer' or the token is empty."""
    scheme, token = split_authorization(header)
    if scheme != BEARER_SCHEME or not token:
        return None
    return token


def create_access_token(
    subject: str | int,
    expires_delta: timedelta | None = None,
    settings: Settings | None = None,
) -> str:
    """Signed JWT with 'sub' set to the subject. Pair with JWTVerifier."""
    settings = settings or get_settings()
    if not settings.JWT_SECRET_KEY:
        raise ValueError("JWT_SECRET_KEY is not configured")
    now = datetime.now(UTC)
    expire = now + (expires_delta or timedelta(minutes=settings.JWT_ACCESS_EXPIRE_MINUTES))
    payload = {"sub": str(subject), "exp": expire, "iat": now}
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


class JWTVerifier:
    """
    TokenVerifier for HMAC-signed JWTs. The identity is the token's 'sub' claim.

    Usage::

        controller = Controller(auth_callback=JWTVerifier(secret_key="..."))
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256") -> None:
        if not secret_key:
            raise ValueError("secret_key is required")
        self._secret_key = secret_key
        self._algorithm = algorithm

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "JWTVerifier":
        settings = settings or get_settings()
        if not settings.JWT_SECRET_KEY:
            raise ValueError("JWT_SECRET_KEY is not configured")
        return cls(settings.JWT_SECRET_KEY, settings.JWT_ALGORITHM)

    def verify(self, token: str) -> str:
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except JWTError as exc:
            raise AuthenticationError(f"Invalid token: {exc}") from exc
        subject = payload.get("sub")
        if not subject:
            raise AuthenticationError("Token has no subject")
        return str(subject)


def is_safe_for_log(value: str, max_length: int = 200) -> str:
    """Redact or truncate sensitive data before logging."""
    if not value or len(value) > max_length:
        return "(redacted)" if value else ""
    return value[:max_length]


def redact_token(token: str) -> str:
    """Keep only a short prefix of a credential for log correlation."""
    if not token:
        return ""
    return f"{token[:4]}***" if len(token) > 8 else "***"
