"""Leaderboard reads. Ranks are derived from points on every call."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select

from pulseearn.db.models import Profile
from pulseearn.errors import NotFoundError
from pulseearn.leaderboard.ranking import leaderboard_stats, rank_entries

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

STATS_SAMPLE_SIZE = 1000


def _entry(profile: Profile) -> dict[str, Any]:
    return {
        "user_id": profile.id,
        "name": profile.name,
        "country": profile.country,
        "points": profile.points or 0,
        "badges": list(profile.badges or []),
        "avatar_url": profile.avatar_url,
    }


async def _snapshot(db: AsyncSession, limit: int, country: str | None = None) -> list[dict[str, Any]]:
    stmt = (
        select(Profile)
        .order_by(Profile.points.desc(), Profile.created_at.asc(), Profile.id.asc())
        .limit(limit)
    )
    if country:
        stmt = stmt.where(Profile.country == country)
    result = await db.execute(stmt)
    return [_entry(p) for p in result.scalars().all()]


async def get_leaderboard(db: AsyncSession, limit: int = 50, country: str | None = None) -> list[dict[str, Any]]:
    """Top profiles by points, globally or for one country."""
    return rank_entries(await _snapshot(db, limit, country))


async def get_user_rank(db: AsyncSession, user_id: int) -> dict[str, Any]:
    """Global and in-country rank: 1 + the number of profiles with strictly more points."""
    profile = (await db.execute(select(Profile).where(Profile.id == user_id))).scalar_one_or_none()
    if profile is None:
        msg = "User profile not found"
        raise NotFoundError(msg)

    points = profile.points or 0
    ahead = (
        await db.execute(select(func.count()).select_from(Profile).where(Profile.points > points))
    ).scalar_one()
    country_rank = None
    if profile.country:
        country_ahead = (
            await db.execute(
                select(func.count())
                .select_from(Profile)
                .where(Profile.country == profile.country)
                .where(Profile.points > points)
            )
        ).scalar_one()
        country_rank = int(country_ahead) + 1
    return {
        "user_id": profile.id,
        "points": points,
        "rank": int(ahead) + 1,
        "country": profile.country,
        "country_rank": country_rank,
    }


async def get_stats(db: AsyncSession) -> dict[str, Any]:
    """Summary over the top profiles (at most 1000)."""
    return leaderboard_stats(await _snapshot(db, STATS_SAMPLE_SIZE), top_n=10)
