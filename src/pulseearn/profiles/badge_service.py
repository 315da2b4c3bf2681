"""Badge catalog, per-user progress and awarding."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from pulseearn.db.models import Badge, Poll, PollVote, Profile, RewardHistory, UserBadge, UserDailyRewards
from pulseearn.errors import ConflictError, NotFoundError
from pulseearn.profiles.badges import BADGE_CATALOG, CRITERIA_TYPES, criteria_progress
from pulseearn.profiles.service import award_badge, require_profile

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

_BADGE_FIELDS = ("name", "description", "icon", "criteria_type", "threshold", "criteria", "sort_order", "is_active")


async def seed_badges(db: AsyncSession) -> int:
    """Insert catalog badges whose slug is missing. Existing rows are left as edited."""
    existing = set((await db.execute(select(Badge.slug))).scalars().all())
    inserted = 0
    for data in BADGE_CATALOG:
        if data["slug"] not in existing:
            db.add(Badge(is_active=True, **{"criteria": {}, **data}))
            inserted += 1
    if inserted:
        await db.flush()
        logger.info("badges_seeded", count=inserted)
    return inserted


async def list_badges(db: AsyncSession, active_only: bool = True) -> list[Badge]:
    stmt = select(Badge).order_by(Badge.sort_order, Badge.id)
    if active_only:
        stmt = stmt.where(Badge.is_active == True)  # noqa: E712
    result = await db.execute(stmt)
    return list(result.scalars().all())


def _check_criteria_type(criteria_type: str) -> None:
    if criteria_type not in CRITERIA_TYPES:
        msg = f"Unknown badge criteria: {criteria_type}"
        raise ValueError(msg)


async def create_badge(db: AsyncSession, slug: str, **fields: Any) -> Badge:
    """
    Add a badge to the catalog.

    Raises:
        ValueError: Unknown criteria type.
        ConflictError: The slug is taken.
    """
    _check_criteria_type(fields["criteria_type"])
    badge = Badge(slug=slug, **{k: v for k, v in fields.items() if k in _BADGE_FIELDS})
    try:
        async with db.begin_nested():
            db.add(badge)
    except IntegrityError as e:
        msg = "Badge slug already exists"
        raise ConflictError(msg) from e
    logger.info("badge_created", slug=slug)
    return badge


async def update_badge(db: AsyncSession, badge_id: int, **changes: Any) -> Badge:
    badge = await db.get(Badge, badge_id)
    if badge is None:
        msg = "Badge not found"
        raise NotFoundError(msg)
    if "criteria_type" in changes:
        _check_criteria_type(changes["criteria_type"])
    for key, value in changes.items():
        if key in _BADGE_FIELDS:
            setattr(badge, key, value)
    badge.updated_at = datetime.now(timezone.utc)
    await db.flush()
    return badge


async def _count(db: AsyncSession, stmt: Any) -> int:
    return int((await db.execute(stmt)).scalar_one() or 0)


async def get_user_statistics(db: AsyncSession, profile: Profile) -> dict[str, int]:
    """The statistic behind every criteria type, for one profile."""
    history = (
        await db.execute(
            select(RewardHistory.reward_type, RewardHistory.reward_data)
            .where(RewardHistory.user_id == profile.id)
            .where(RewardHistory.reward_type.in_(("trivia", "spin")))
        )
    ).all()
    trivia = [data or {} for kind, data in history if kind == "trivia"]
    spins = [data or {} for kind, data in history if kind == "spin"]
    daily = await db.get(UserDailyRewards, profile.id)

    return {
        "poll_votes": await _count(
            db, select(func.count()).select_from(PollVote).where(PollVote.user_id == profile.id)
        ),
        "polls_created": await _count(
            db, select(func.count()).select_from(Poll).where(Poll.created_by == profile.id)
        ),
        "trivia_completed": len(trivia),
        "trivia_perfect": sum(1 for d in trivia if d.get("game_id") is not None and d.get("score") == 100),
        "total_points": int(profile.points or 0),
        "spin_streak": int(daily.spin_streak or 0) if daily else 0,
        "total_spins": int(daily.total_spins or 0) if daily else 0,
        "spin_jackpot": sum(1 for d in spins if d.get("result") == "jackpot"),
        "ads_watched": int(daily.total_ads_watched or 0) if daily else 0,
        "referrals": await _count(
            db, select(func.count()).select_from(Profile).where(Profile.referred_by == profile.id)
        ),
    }


async def get_badge_progress(db: AsyncSession, user_id: int) -> list[dict[str, Any]]:
    """Every active badge with the user's progress towards it, in catalog order."""
    profile = await require_profile(db, user_id)
    badges = await list_badges(db)
    earned = dict(
        (
            await db.execute(select(UserBadge.badge_id, UserBadge.earned_at).where(UserBadge.user_id == user_id))
        ).all()
    )
    stats = await get_user_statistics(db, profile)

    progress = []
    for badge in badges:
        current, target = criteria_progress(
            badge.criteria_type, badge.threshold, badge.criteria, stats, profile.created_at
        )
        earned_at = earned.get(badge.id)
        progress.append(
            {
                "badge": badge,
                "earned": earned_at is not None,
                "progress": target if earned_at is not None else current,
                "max_progress": target,
                "earned_at": earned_at,
            }
        )
    return progress


async def check_and_award_badges(db: AsyncSession, user_id: int) -> list[str]:
    """Award every badge whose criteria the user now meets. Returns the new slugs.

    A concurrent award of the same badge hits the unique constraint and is skipped.
    """
    awarded: list[str] = []
    for entry in await get_badge_progress(db, user_id):
        if entry["earned"] or entry["progress"] < entry["max_progress"]:
            continue
        badge = entry["badge"]
        try:
            async with db.begin_nested():
                db.add(UserBadge(user_id=user_id, badge_id=badge.id, earned_at=datetime.now(timezone.utc)))
        except IntegrityError:
            continue
        await award_badge(db, await require_profile(db, user_id), badge.slug)
        awarded.append(badge.slug)
    return awarded
