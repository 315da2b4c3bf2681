"""Authentication router: all /api/v1/auth/* endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from pulseearn.auth.dependencies import get_current_user
from pulseearn.auth.password import PasswordStrengthError
from pulseearn.auth.schemas import (
    LoginRequest,
    LogoutRequest,
    RefreshRequest,
    RegisterRequest,
    SessionResponse,
    TokenResponse,
    UserResponse,
)
from pulseearn.auth.service import (
    AccountLockedError,
    ClientMeta,
    InvalidCredentialsError,
    IssuedTokens,
    RefreshTokenError,
    authenticate_user,
    issue_tokens,
    register_user,
    revoke_token,
    rotate_tokens,
)
from pulseearn.config import get_settings
from pulseearn.database import get_session
from pulseearn.db.models import User
from pulseearn.errors import ConflictError
from pulseearn.profiles.schemas import ProfileResponse
from pulseearn.profiles.service import get_profile
from pulseearn.redis_client import get_redis

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


def _meta(request: Request) -> ClientMeta:
    return ClientMeta(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


async def _token_response(db: AsyncSession, issued: IssuedTokens) -> TokenResponse:
    profile = await get_profile(db, issued.user.id)
    return TokenResponse(
        access_token=issued.access_token,
        refresh_token=issued.refresh_token,
        token_type="bearer",
        expires_in=get_settings().jwt_access_token_expire_minutes * 60,
        user=UserResponse.model_validate(issued.user),
        profile=ProfileResponse.model_validate(profile) if profile is not None else None,
    )


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(
    body: RegisterRequest,
    request: Request,
    db: AsyncSession = Depends(get_session),
) -> TokenResponse:
    """Register with email + password; the profile and referral bonus are created with the user."""
    try:
        user, _ = await register_user(
            db,
            email=body.email,
            password=body.password,
            name=body.name,
            country=body.country,
            referral_code=body.referral_code,
        )
    except PasswordStrengthError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e

    issued = await issue_tokens(db, user, _meta(request))
    response = await _token_response(db, issued)
    await db.commit()
    return response


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_session),
    redis: Redis = Depends(get_redis),  # type: ignore[assignment]
) -> TokenResponse:
    try:
        user = await authenticate_user(db, redis, body.email, body.password)
    except InvalidCredentialsError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    except AccountLockedError as e:
        raise HTTPException(status_code=429, detail=str(e)) from e
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e

    issued = await issue_tokens(db, user, _meta(request))
    response = await _token_response(db, issued)
    await db.commit()
    logger.info("user_logged_in", user_id=user.id)
    return response


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    body: RefreshRequest,
    request: Request,
    db: AsyncSession = Depends(get_session),
) -> TokenResponse:
    """Rotate the refresh token. Reusing a rotated token revokes every session of its user."""
    try:
        issued = await rotate_tokens(db, body.refresh_token, _meta(request))
    except RefreshTokenError as e:
        # Keep the reuse revocation
        await db.commit()
        raise HTTPException(status_code=401, detail=str(e)) from e
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e

    response = await _token_response(db, issued)
    await db.commit()
    return response


@router.post("/logout")
async def logout(
    body: LogoutRequest,
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    """Revoke a refresh token. Always succeeds so clients can clear local state."""
    if await revoke_token(db, body.refresh_token):
        await db.commit()
    else:
        logger.info("logout_token_not_revoked")
    return {"status": "logged_out"}


@router.get("/session", response_model=SessionResponse)
async def session(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> SessionResponse:
    profile = await get_profile(db, user.id)
    return SessionResponse(
        user=UserResponse.model_validate(user),
        profile=ProfileResponse.model_validate(profile) if profile is not None else None,
    )
