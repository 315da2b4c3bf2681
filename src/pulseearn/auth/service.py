"""
Authentication business logic.

Accounts are created together with their profile (and any referral bonus) in
one transaction. Sessions are pairs of JWTs; only a SHA-256 of each refresh
token is stored, and every refresh rotates it. Presenting a refresh token that
was already rotated away or revoked ends every session of its user.
"""

from __future__ import annotations

import hashlib
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import jwt as pyjwt
import structlog
from sqlalchemy import func, select, update

from pulseearn.auth.jwt import create_access_token, create_refresh_token, verify_token
from pulseearn.auth.password import (
    check_needs_rehash,
    hash_password,
    validate_password_strength,
    verify_password,
)
from pulseearn.config import get_settings
from pulseearn.db.models import Profile, RefreshToken, User
from pulseearn.errors import ConflictError
from pulseearn.profiles.service import create_profile
from pulseearn.referrals.service import apply_signup_referral

if TYPE_CHECKING:
    from redis.asyncio import Redis
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

INVALID_CREDENTIALS = "Invalid email or password"


class InvalidCredentialsError(ValueError):
    """Unknown email or wrong password."""


class AccountLockedError(PermissionError):
    """Too many failed logins inside the lockout window."""


class RefreshTokenError(ValueError):
    """A refresh token that cannot be exchanged for a new session."""


@dataclass(frozen=True)
class ClientMeta:
    ip_address: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True)
class IssuedTokens:
    user: User
    access_token: str
    refresh_token: str


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    return (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Case-insensitive lookup."""
    stmt = select(User).where(func.lower(User.email) == email.strip().lower())
    return (await db.execute(stmt)).scalar_one_or_none()


async def register_user(
    db: AsyncSession,
    email: str,
    password: str,
    name: str | None = None,
    country: str | None = None,
    referral_code: str | None = None,
) -> tuple[User, Profile]:
    """
    Create the account, its profile and the signup referral bonus.

    Raises:
        PasswordStrengthError: If the password fails the policy.
        ConflictError: If the email is already registered.
    """
    validate_password_strength(password)
    if await get_user_by_email(db, email) is not None:
        msg = "Email already registered"
        raise ConflictError(msg)

    now = datetime.now(timezone.utc)
    user = User(
        email=email.strip().lower(),
        password_hash=hash_password(password),
        created_at=now,
        last_login=now,
        login_count=1,
    )
    db.add(user)
    await db.flush()

    profile = await create_profile(
        db,
        user_id=user.id,
        email=user.email,
        name=name,
        country=country,
        referred_by_code=referral_code,
    )
    await apply_signup_referral(db, profile)
    await db.refresh(profile)
    logger.info("user_registered", user_id=user.id, referred=bool(referral_code))
    return user, profile


class LoginAttempts:
    """Failed-login counter per user, kept in Redis for the lockout window."""

    def __init__(self, redis: Redis) -> None:
        settings = get_settings()
        self.redis = redis
        self.threshold = settings.account_lockout_threshold
        self.window_seconds = settings.account_lockout_duration_minutes * 60

    @staticmethod
    def _key(user_id: int) -> str:
        return f"pulseearn:login_failures:{user_id}"

    async def is_locked(self, user_id: int) -> bool:
        failures = await self.redis.get(self._key(user_id))
        return failures is not None and int(failures) >= self.threshold

    async def record_failure(self, user_id: int) -> int:
        key = self._key(user_id)
        failures = int(await self.redis.incr(key))
        if failures == 1:
            await self.redis.expire(key, self.window_seconds)
        return failures

    async def reset(self, user_id: int) -> None:
        await self.redis.delete(self._key(user_id))


async def authenticate_user(db: AsyncSession, redis: Redis, email: str, password: str) -> User:
    """
    Check email + password and record the login.

    Raises:
        InvalidCredentialsError: Unknown email or wrong password.
        AccountLockedError: The account hit the failed-login threshold.
        PermissionError: The account is banned.
    """
    user = await get_user_by_email(db, email)
    if user is None:
        raise InvalidCredentialsError(INVALID_CREDENTIALS)

    attempts = LoginAttempts(redis)
    if await attempts.is_locked(user.id):
        msg = "Account temporarily locked. Try again later."
        raise AccountLockedError(msg)
    if user.is_banned:
        msg = "Account is banned"
        raise PermissionError(msg)

    if not verify_password(password, user.password_hash or ""):
        failures = await attempts.record_failure(user.id)
        logger.info("login_failed", user_id=user.id, failures=failures)
        raise InvalidCredentialsError(INVALID_CREDENTIALS)
    await attempts.reset(user.id)

    user.last_login = datetime.now(timezone.utc)
    user.login_count = (user.login_count or 0) + 1
    if user.password_hash and check_needs_rehash(user.password_hash):
        user.password_hash = hash_password(password)
    await db.flush()
    return user


# ---------------------------------------------------------------------------
# Sessions (refresh token rotation)
# ---------------------------------------------------------------------------


async def issue_tokens(
    db: AsyncSession,
    user: User,
    meta: ClientMeta | None = None,
    replaces: RefreshToken | None = None,
) -> IssuedTokens:
    """Mint an access/refresh pair and store the refresh token's hash.

    ``replaces`` is revoked and linked to the new token. The caller commits.
    """
    meta = meta or ClientMeta()
    now = datetime.now(timezone.utc)
    token_id = str(uuid.uuid4())
    refresh_token = create_refresh_token(user.id, user.email, token_id=token_id)

    if replaces is not None:
        replaces.is_revoked = True
        replaces.revoked_at = now
        replaces.replaced_by = token_id
    db.add(
        RefreshToken(
            id=token_id,
            user_id=user.id,
            token_hash=hash_token(refresh_token),
            issued_at=now,
            expires_at=now + timedelta(days=get_settings().jwt_refresh_token_expire_days),
            ip_address=meta.ip_address,
            user_agent=meta.user_agent,
        )
    )
    await db.flush()
    return IssuedTokens(user, create_access_token(user.id, user.email), refresh_token)


async def _stored_token(db: AsyncSession, raw_token: str) -> RefreshToken | None:
    try:
        payload = verify_token(raw_token, expected_type="refresh")
    except pyjwt.InvalidTokenError as e:
        raise RefreshTokenError(str(e)) from e
    token_id = payload.get("jti")
    if not token_id:
        msg = "Invalid refresh token"
        raise RefreshTokenError(msg)
    stored = await db.get(RefreshToken, token_id)
    if stored is None or stored.token_hash != hash_token(raw_token):
        return None
    return stored


async def rotate_tokens(db: AsyncSession, raw_token: str, meta: ClientMeta | None = None) -> IssuedTokens:
    """
    Exchange a refresh token for a new pair.

    Raises:
        RefreshTokenError: Invalid, unknown or reused token. On reuse every
            session of the user is revoked first (the caller commits).
        PermissionError: The account is banned.
    """
    stored = await _stored_token(db, raw_token)
    if stored is None:
        msg = "Refresh token not found"
        raise RefreshTokenError(msg)
    if stored.is_revoked:
        revoked = await revoke_all_tokens(db, stored.user_id)
        logger.warning("refresh_token_reuse", user_id=stored.user_id, sessions_revoked=revoked)
        msg = "Refresh token has been revoked"
        raise RefreshTokenError(msg)

    user = await get_user_by_id(db, stored.user_id)
    if user is None:
        msg = "User not found"
        raise RefreshTokenError(msg)
    if user.is_banned:
        msg = "Account is banned"
        raise PermissionError(msg)
    return await issue_tokens(db, user, meta, replaces=stored)


async def revoke_token(db: AsyncSession, raw_token: str) -> bool:
    """Revoke one session. Unknown or malformed tokens are ignored; returns whether one was revoked."""
    try:
        stored = await _stored_token(db, raw_token)
    except RefreshTokenError:
        return False
    if stored is None or stored.is_revoked:
        return False
    stored.is_revoked = True
    stored.revoked_at = datetime.now(timezone.utc)
    await db.flush()
    return True


async def revoke_all_tokens(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        update(RefreshToken)
        .where(RefreshToken.user_id == user_id, RefreshToken.is_revoked.is_(False))
        .values(is_revoked=True, revoked_at=datetime.now(timezone.utc))
    )
    await db.flush()
    return result.rowcount or 0
