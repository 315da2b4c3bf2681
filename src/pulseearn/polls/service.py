"""Poll reads, user-created polls and voting."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError

from pulseearn.app_settings.service import get_points_config
from pulseearn.db.models import Poll, PollVote
from pulseearn.errors import ConflictError, NotFoundError
from pulseearn.polls.generator import MAX_OPTIONS, MIN_OPTIONS
from pulseearn.polls.slugs import slugify
from pulseearn.profiles.badge_service import check_and_award_badges
from pulseearn.rewards.ledger import grant_points

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


def _aware(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


async def list_polls(
    db: AsyncSession,
    poll_type: str | None = None,
    country: str | None = None,
    limit: int = 10,
    offset: int = 0,
    include_expired: bool = False,
    now: datetime | None = None,
) -> list[Poll]:
    """Active polls, newest first. Polls outside their start/expiry window are skipped."""
    now = now or datetime.now(timezone.utc)
    stmt = (
        select(Poll)
        .where(Poll.is_active == True)  # noqa: E712
        .order_by(Poll.created_at.desc(), Poll.id.desc())
        .offset(offset)
        .limit(limit)
    )
    if poll_type:
        stmt = stmt.where(Poll.type == poll_type)
    if country:
        stmt = stmt.where(Poll.country == country)
    if not include_expired:
        stmt = stmt.where(or_(Poll.start_date.is_(None), Poll.start_date <= now))
        stmt = stmt.where(or_(Poll.active_until.is_(None), Poll.active_until > now))
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_poll_by_slug(db: AsyncSession, slug: str) -> Poll:
    result = await db.execute(select(Poll).where(Poll.slug == slug).where(Poll.is_active == True))  # noqa: E712
    poll = result.scalar_one_or_none()
    if poll is None:
        msg = "Poll not found"
        raise NotFoundError(msg)
    return poll


async def get_user_votes(db: AsyncSession, user_id: int, poll_ids: list[int]) -> dict[int, int]:
    """Map of poll id to the option the user picked."""
    if not poll_ids:
        return {}
    result = await db.execute(
        select(PollVote.poll_id, PollVote.vote_option)
        .where(PollVote.user_id == user_id)
        .where(PollVote.poll_id.in_(poll_ids))
    )
    return {poll_id: option for poll_id, option in result.all()}


async def unique_slug(db: AsyncSession, title: str) -> str:
    """Slug for a title, suffixed -1, -2, ... until no poll uses it."""
    base = slugify(title) or "poll"
    slug, counter = base, 1
    while (await db.execute(select(func.count()).select_from(Poll).where(Poll.slug == slug))).scalar_one():
        slug = f"{base}-{counter}"
        counter += 1
    return slug


async def create_poll(
    db: AsyncSession,
    user_id: int,
    title: str,
    options: list[str],
    description: str | None = None,
    poll_type: str = "global",
    country: str | None = None,
    category: str = "General",
    start_date: datetime | None = None,
    active_until: datetime | None = None,
) -> Poll:
    """
    Publish a poll authored by a user. Every option starts at zero votes.

    Raises:
        ValueError: Blank title, wrong option count, a country poll without a
            country, or a window that ends before it starts.
    """
    title = title.strip()
    if not title:
        msg = "Poll title is required"
        raise ValueError(msg)
    texts = [o.strip() for o in options if o.strip()]
    if not MIN_OPTIONS <= len(texts) <= MAX_OPTIONS:
        msg = f"Poll needs {MIN_OPTIONS}-{MAX_OPTIONS} options"
        raise ValueError(msg)
    if poll_type == "country" and not country:
        msg = "Country polls need a country"
        raise ValueError(msg)
    if start_date is not None and active_until is not None and active_until <= start_date:
        msg = "Poll must end after it starts"
        raise ValueError(msg)

    now = datetime.now(timezone.utc)
    poll = Poll(
        title=title,
        description=description or None,
        options=[{"text": text, "votes": 0} for text in texts],
        type=poll_type,
        country=country if poll_type == "country" else None,
        slug=await unique_slug(db, title),
        category=category or "General",
        created_by=user_id,
        is_active=True,
        total_votes=0,
        start_date=start_date,
        active_until=active_until,
        created_at=now,
        updated_at=now,
    )
    db.add(poll)
    await db.flush()
    await check_and_award_badges(db, user_id)
    logger.info("poll_created", user_id=user_id, poll_id=poll.id, slug=poll.slug)
    return poll


async def vote_on_poll(
    db: AsyncSession,
    user_id: int,
    poll_id: int,
    option_index: int,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Record a vote and award the voting points.

    Raises:
        NotFoundError: If the poll does not exist or is inactive.
        ValueError: If the poll is outside its window or the option is out of range.
        ConflictError: If the user already voted on this poll.
    """
    now = now or datetime.now(timezone.utc)
    poll = (
        await db.execute(select(Poll).where(Poll.id == poll_id).where(Poll.is_active == True))  # noqa: E712
    ).scalar_one_or_none()
    if poll is None:
        msg = "Poll not found or inactive"
        raise NotFoundError(msg)

    active_until = _aware(poll.active_until)
    start_date = _aware(poll.start_date)
    if active_until is not None and active_until < now:
        msg = "Poll has expired"
        raise ValueError(msg)
    if start_date is not None and start_date > now:
        msg = "Poll has not started yet"
        raise ValueError(msg)

    options = [dict(o) for o in poll.options or []]
    if not 0 <= option_index < len(options):
        msg = "Invalid vote option"
        raise ValueError(msg)

    try:
        async with db.begin_nested():
            db.add(PollVote(poll_id=poll.id, user_id=user_id, vote_option=option_index, created_at=now))
    except IntegrityError as e:
        msg = "You have already voted on this poll"
        raise ConflictError(msg) from e

    options[option_index]["votes"] = int(options[option_index].get("votes") or 0) + 1
    poll.options = options
    poll.total_votes = (poll.total_votes or 0) + 1
    poll.updated_at = now

    config = await get_points_config(db)
    await grant_points(
        db,
        user_id,
        config.poll_vote_points,
        "poll_vote",
        {"poll_id": poll.id, "vote_option": option_index},
    )
    await check_and_award_badges(db, user_id)
    logger.info("poll_vote_recorded", user_id=user_id, poll_id=poll.id, option=option_index)
    return {
        "success": True,
        "message": f"Vote recorded successfully! You earned {config.poll_vote_points} points.",
        "points_earned": config.poll_vote_points,
        "poll": poll,
    }
