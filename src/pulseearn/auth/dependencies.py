"""FastAPI dependencies resolving the caller from a bearer access token."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from pulseearn.auth.jwt import verify_token
from pulseearn.auth.roles import ROLE_LEVELS, has_role
from pulseearn.auth.service import get_user_by_id
from pulseearn.database import get_session
from pulseearn.db.models import Profile, User
from pulseearn.profiles.service import get_profile

_bearer = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User:
    """401 for a bad or expired token or a deleted account, 403 for a banned one."""
    try:
        claims = verify_token(credentials.credentials, expected_type="access")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    user = await get_user_by_id(db, int(claims["sub"]))
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    if user.is_banned:
        raise HTTPException(status_code=403, detail="Account is banned")
    return user


async def get_current_profile(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> Profile:
    profile = await get_profile(db, user.id)
    if profile is None:
        raise HTTPException(
            status_code=404,
            detail="User profile not found. Please ensure your account is fully set up.",
        )
    return profile


def require_role(minimum: str) -> Callable[..., Awaitable[Profile]]:
    """
    Dependency factory: the caller's profile, or 403 when its role is below ``minimum``.

    The role is read from the profile row on every request, never from the token.
    """
    if minimum not in ROLE_LEVELS:
        msg = f"Unknown role: {minimum}"
        raise ValueError(msg)

    async def _require(profile: Profile = Depends(get_current_profile)) -> Profile:
        if not has_role(profile.role, minimum):
            raise HTTPException(status_code=403, detail=f"Requires {minimum} role")
        return profile

    return _require
