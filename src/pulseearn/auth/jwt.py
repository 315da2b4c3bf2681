"""
RS256 JWTs for API sessions.

Access tokens identify the user only; role and profile data are always read
from the database so a role change takes effect on the next request. Refresh
tokens add a ``jti`` that matches a row in ``refresh_tokens``.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from functools import lru_cache
from pathlib import Path
from typing import Any

import jwt

from pulseearn.config import get_settings


@lru_cache(maxsize=1)
def _keys() -> tuple[str, str]:
    settings = get_settings()
    return Path(settings.jwt_private_key_path).read_text(), Path(settings.jwt_public_key_path).read_text()


def reset_keys() -> None:
    """Forget the cached key pair so the next call rereads the configured paths."""
    _keys.cache_clear()


def _sign(user_id: int, email: str, token_type: str, lifetime: timedelta, **extra: Any) -> str:
    settings = get_settings()
    issued_at = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "email": email,
        "type": token_type,
        "iss": settings.jwt_issuer,
        "iat": issued_at,
        "exp": issued_at + lifetime,
        **extra,
    }
    return jwt.encode(claims, _keys()[0], algorithm=settings.jwt_algorithm)


def create_access_token(user_id: int, email: str) -> str:
    return _sign(user_id, email, "access", timedelta(minutes=get_settings().jwt_access_token_expire_minutes))


def create_refresh_token(user_id: int, email: str, *, token_id: str) -> str:
    """Refresh token whose ``jti`` is ``token_id``."""
    lifetime = timedelta(days=get_settings().jwt_refresh_token_expire_days)
    return _sign(user_id, email, "refresh", lifetime, jti=token_id)


def verify_token(token: str, expected_type: str = "access") -> dict[str, Any]:
    """
    Decode a token and check its issuer, expiry and type.

    Raises:
        jwt.InvalidTokenError: With "Token has expired" for expired tokens.
    """
    settings = get_settings()
    try:
        claims: dict[str, Any] = jwt.decode(
            token,
            _keys()[1],
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None
    if claims.get("type") != expected_type:
        msg = f"Expected a {expected_type} token"
        raise jwt.InvalidTokenError(msg)
    return claims
