"""Point grants and spends: every change to a profile's points goes through here."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import select, update

from pulseearn.db.models import Profile, RewardHistory

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

REWARD_TYPES = (
    "spin",
    "trivia",
    "watch",
    "poll_vote",
    "referral_signup",
    "referral_bonus",
    "redemption",
    "redemption_refund",
)


class InsufficientPointsError(ValueError):
    """The profile cannot cover a points spend."""

    def __init__(self, balance: int, cost: int) -> None:
        super().__init__(f"Insufficient points. You have {balance} points, but this item costs {cost} points.")
        self.balance = balance
        self.cost = cost


async def grant_points(
    db: AsyncSession,
    user_id: int,
    points: int,
    reward_type: str,
    reward_data: dict[str, Any] | None = None,
) -> RewardHistory:
    """Add points to a profile and append the matching history row.

    Zero-point outcomes are still recorded so the history shows every claim.
    The increment is a single UPDATE so concurrent grants never lose points.
    """
    if points < 0:
        msg = "Point grants cannot be negative"
        raise ValueError(msg)
    if reward_type not in REWARD_TYPES:
        msg = f"Unknown reward type: {reward_type}"
        raise ValueError(msg)

    now = datetime.now(timezone.utc)
    if points:
        await db.execute(
            update(Profile)
            .where(Profile.id == user_id)
            .values(points=Profile.points + points, updated_at=now)
        )
    entry = RewardHistory(
        user_id=user_id,
        reward_type=reward_type,
        points_earned=points,
        reward_data=reward_data or {},
        created_at=now,
    )
    db.add(entry)
    await db.flush()
    logger.info("points_granted", user_id=user_id, points=points, reward_type=reward_type)
    return entry


async def spend_points(
    db: AsyncSession,
    user_id: int,
    points: int,
    reward_type: str,
    reward_data: dict[str, Any] | None = None,
) -> RewardHistory:
    """Deduct points and record the spend as a negative history row.

    The balance check and the deduction are one conditional UPDATE, so two
    concurrent spends can never take a profile below zero.

    Raises:
        InsufficientPointsError: The profile holds fewer than ``points``.
    """
    if points <= 0:
        msg = "Point spends must be positive"
        raise ValueError(msg)
    if reward_type not in REWARD_TYPES:
        msg = f"Unknown reward type: {reward_type}"
        raise ValueError(msg)

    now = datetime.now(timezone.utc)
    result = await db.execute(
        update(Profile)
        .where(Profile.id == user_id, Profile.points >= points)
        .values(points=Profile.points - points, updated_at=now)
    )
    if not result.rowcount:
        balance = (await db.execute(select(Profile.points).where(Profile.id == user_id))).scalar_one_or_none()
        raise InsufficientPointsError(int(balance or 0), points)

    entry = RewardHistory(
        user_id=user_id,
        reward_type=reward_type,
        points_earned=-points,
        reward_data=reward_data or {},
        created_at=now,
    )
    db.add(entry)
    await db.flush()
    logger.info("points_spent", user_id=user_id, points=points, reward_type=reward_type)
    return entry
