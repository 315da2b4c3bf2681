"""Referral bonuses at signup and per-user referral statistics."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import func, select

from pulseearn.ambassador.service import record_referral
from pulseearn.config import get_settings
from pulseearn.db.models import Profile, RewardHistory
from pulseearn.profiles.badge_service import check_and_award_badges
from pulseearn.profiles.service import get_profile_by_referral_code
from pulseearn.rewards.ledger import grant_points

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


async def apply_signup_referral(db: AsyncSession, new_profile: Profile) -> Profile | None:
    """
    Link a new profile to its referrer and pay both sign-up bonuses.

    Unknown codes and self-referrals are kept on the profile but pay nothing.
    Returns the referrer, or None when no bonus was paid.
    """
    code = new_profile.referred_by_code
    if not code:
        return None

    referrer = await get_profile_by_referral_code(db, code)
    if referrer is None or referrer.id == new_profile.id:
        logger.info("referral_code_unmatched", user_id=new_profile.id, code=code)
        return None

    settings = get_settings()
    new_profile.referred_by = referrer.id
    await grant_points(
        db,
        new_profile.id,
        settings.referral_bonus_new_user,
        "referral_signup",
        {"referrer_id": referrer.id},
    )
    await grant_points(
        db,
        referrer.id,
        settings.referral_bonus_referrer,
        "referral_bonus",
        {"referred_user_id": new_profile.id},
    )
    await record_referral(db, referrer.id)
    await check_and_award_badges(db, referrer.id)
    logger.info("referral_applied", user_id=new_profile.id, referrer_id=referrer.id)
    return referrer


async def get_referral_stats(db: AsyncSession, user_id: int) -> dict[str, Any]:
    """Referral counts and bonus points for one referrer.

    A referral is active once the referred user has earned any points of
    their own beyond the sign-up bonus.
    """
    settings = get_settings()
    total = (
        await db.execute(select(func.count()).select_from(Profile).where(Profile.referred_by == user_id))
    ).scalar_one()
    active = (
        await db.execute(
            select(func.count())
            .select_from(Profile)
            .where(Profile.referred_by == user_id)
            .where(Profile.points > settings.referral_bonus_new_user)
        )
    ).scalar_one()
    earned = (
        await db.execute(
            select(func.coalesce(func.sum(RewardHistory.points_earned), 0))
            .where(RewardHistory.user_id == user_id)
            .where(RewardHistory.reward_type == "referral_bonus")
        )
    ).scalar_one()
    return {
        "total_referrals": int(total),
        "active_referrals": int(active),
        "total_points_earned": int(earned),
        "conversion_rate": round(active / total * 100, 2) if total else 0.0,
    }
