"""Leaderboard endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from pulseearn.auth.dependencies import get_current_user
from pulseearn.database import get_session
from pulseearn.db.models import User
from pulseearn.errors import NotFoundError
from pulseearn.leaderboard.service import get_leaderboard, get_stats, get_user_rank

router = APIRouter(prefix="/api/v1/leaderboard", tags=["Leaderboard"])


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: int
    name: str
    country: str | None = None
    points: int
    badges: list[str] = []
    avatar_url: str | None = None


class UserRankResponse(BaseModel):
    user_id: int
    points: int
    rank: int
    country: str | None = None
    country_rank: int | None = None


class CountryCount(BaseModel):
    country: str
    user_count: int


class LeaderboardStatsResponse(BaseModel):
    total_users: int
    average_points: int
    top_countries: list[CountryCount]


@router.get("", response_model=list[LeaderboardEntry])
async def leaderboard(
    limit: int = Query(50, ge=1, le=500),
    country: str | None = Query(None),
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[LeaderboardEntry]:
    return [LeaderboardEntry(**e) for e in await get_leaderboard(db, limit, country)]


@router.get("/me", response_model=UserRankResponse)
async def my_rank(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserRankResponse:
    try:
        return UserRankResponse(**await get_user_rank(db, user.id))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@router.get("/stats", response_model=LeaderboardStatsResponse)
async def stats(
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> LeaderboardStatsResponse:
    return LeaderboardStatsResponse(**await get_stats(db))
