"""Profile business logic."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import select

from pulseearn.auth.referral_codes import generate_unique_referral_code, normalize_referral_code
from pulseearn.db.models import Profile, UserDailyRewards
from pulseearn.errors import NotFoundError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

_UNSET: Any = object()


def display_name_for(name: str | None, email: str) -> str:
    """Profile name fallback: given name, then the email local part, then "User"."""
    if name and name.strip():
        return name.strip()
    local_part = email.split("@", 1)[0].strip()
    return local_part or "User"


async def get_profile(db: AsyncSession, user_id: int) -> Profile | None:
    result = await db.execute(select(Profile).where(Profile.id == user_id))
    return result.scalar_one_or_none()


async def require_profile(db: AsyncSession, user_id: int) -> Profile:
    """Fetch a profile or raise NotFoundError."""
    profile = await get_profile(db, user_id)
    if profile is None:
        msg = "User profile not found. Please ensure your account is fully set up."
        raise NotFoundError(msg)
    return profile


async def get_profile_by_referral_code(db: AsyncSession, code: str) -> Profile | None:
    normalized = normalize_referral_code(code)
    if normalized is None:
        return None
    result = await db.execute(select(Profile).where(Profile.referral_code == normalized))
    return result.scalar_one_or_none()


async def create_profile(
    db: AsyncSession,
    user_id: int,
    email: str,
    name: str | None = None,
    country: str | None = None,
    referred_by_code: str | None = None,
) -> Profile:
    """
    Provision the profile and daily-reward row for a freshly created user.

    The referral code is stored as given (normalised); resolving it to a
    referrer and awarding bonuses is the referral service's job.
    """
    now = datetime.now(timezone.utc)
    profile = Profile(
        id=user_id,
        email=email,
        name=display_name_for(name, email),
        country=country or None,
        points=0,
        badges=[],
        role="user",
        referral_code=await generate_unique_referral_code(db),
        referred_by_code=normalize_referral_code(referred_by_code),
        created_at=now,
        updated_at=now,
    )
    db.add(profile)
    await db.flush()
    db.add(UserDailyRewards(user_id=user_id, updated_at=now))
    await db.flush()
    logger.info("profile_created", user_id=user_id, referral_code=profile.referral_code)
    return profile


async def update_profile(
    db: AsyncSession,
    profile: Profile,
    name: str | None = _UNSET,
    country: str | None = _UNSET,
    avatar_url: str | None = _UNSET,
    payout_method: dict[str, Any] | None = _UNSET,
) -> Profile:
    """
    Self-service profile edit. Only the fields passed are changed.

    Raises:
        ValueError: If the name is blank.
    """
    if name is not _UNSET:
        if name is None or not name.strip():
            msg = "Name cannot be empty"
            raise ValueError(msg)
        profile.name = name.strip()
    if country is not _UNSET:
        profile.country = country or None
    if avatar_url is not _UNSET:
        profile.avatar_url = avatar_url or None
    if payout_method is not _UNSET:
        profile.payout_method = payout_method
    profile.updated_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("profile_updated", user_id=profile.id)
    return profile


async def award_badge(db: AsyncSession, profile: Profile, badge: str) -> bool:
    """Append a badge if the profile does not hold it yet. Returns True when added."""
    badges = list(profile.badges or [])
    if badge in badges:
        return False
    profile.badges = [*badges, badge]
    await db.flush()
    logger.info("badge_awarded", user_id=profile.id, badge=badge)
    return True
