"""Admin-editable platform settings stored as one JSON document per category."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import select

from pulseearn.config import get_settings
from pulseearn.db.models import AppSettings

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

CATEGORIES = ("general", "integrations", "points", "marketing")
PUBLIC_CATEGORIES = frozenset({"general", "integrations", "marketing"})

# Never served by the public read endpoint
_SECRET_KEYS = frozenset({"stripeSecretKey", "stripeWebhookSecret", "paystackSecretKey"})


def _check_category(category: str) -> None:
    if category not in CATEGORIES:
        msg = f"Unknown settings category: {category}"
        raise ValueError(msg)


async def get_category(db: AsyncSession, category: str) -> dict[str, Any] | None:
    """Return the stored document for a category, or None if never saved."""
    _check_category(category)
    result = await db.execute(select(AppSettings).where(AppSettings.category == category))
    row = result.scalar_one_or_none()
    return dict(row.settings) if row is not None else None


def public_view(category: str, document: dict[str, Any] | None) -> dict[str, Any] | None:
    """Strip secrets from a settings document before it leaves the API."""
    if document is None:
        return None
    if category != "integrations":
        return document
    return {k: v for k, v in document.items() if k not in _SECRET_KEYS}


async def update_category(
    db: AsyncSession,
    category: str,
    document: dict[str, Any],
    updated_by: int | None = None,
) -> AppSettings:
    """Replace a category document (upsert)."""
    _check_category(category)
    result = await db.execute(select(AppSettings).where(AppSettings.category == category))
    row = result.scalar_one_or_none()
    now = datetime.now(timezone.utc)
    if row is None:
        row = AppSettings(category=category, settings=document, updated_by=updated_by, updated_at=now)
        db.add(row)
    else:
        row.settings = document
        row.updated_by = updated_by
        row.updated_at = now
    await db.flush()
    logger.info("app_settings_updated", category=category, updated_by=updated_by)
    return row


# ---------------------------------------------------------------------------
# Points configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PointsConfig:
    """Reward point values after merging the "points" category over env defaults."""

    streak_increment: float
    max_streak_multiplier: float
    ad_watch_points: int
    trivia_easy_points: int
    trivia_medium_points: int
    trivia_hard_points: int
    poll_vote_points: int

    def trivia_points(self, difficulty: str) -> int:
        return {
            "easy": self.trivia_easy_points,
            "medium": self.trivia_medium_points,
            "hard": self.trivia_hard_points,
        }.get(difficulty, self.trivia_easy_points)


def points_config_from(document: dict[str, Any] | None) -> PointsConfig:
    """Build a PointsConfig from a stored document; missing keys use settings."""
    settings = get_settings()
    doc = document or {}
    return PointsConfig(
        streak_increment=float(doc.get("streakIncrement", settings.spin_streak_increment)),
        max_streak_multiplier=float(doc.get("maxStreakMultiplier", settings.max_streak_multiplier)),
        ad_watch_points=int(doc.get("adWatchPoints", settings.ad_watch_points)),
        trivia_easy_points=int(doc.get("triviaEasyPoints", settings.trivia_easy_points)),
        trivia_medium_points=int(doc.get("triviaMediumPoints", settings.trivia_medium_points)),
        trivia_hard_points=int(doc.get("triviaHardPoints", settings.trivia_hard_points)),
        poll_vote_points=int(doc.get("pollVotePoints", settings.poll_vote_points)),
    )


async def get_points_config(db: AsyncSession) -> PointsConfig:
    return points_config_from(await get_category(db, "points"))
