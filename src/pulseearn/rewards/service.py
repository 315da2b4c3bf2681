"""
Daily reward engine: spin, daily trivia question and ad watch.

Each claim is a conditional UPDATE on the user's daily-rewards row that only
matches when the category has not been claimed on the current UTC day, so two
concurrent claims cannot both succeed.
"""

from __future__ import annotations

import secrets
from datetime import date, datetime, time, timedelta, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import or_, select, update

from pulseearn.app_settings.service import get_points_config
from pulseearn.db.models import Profile, RewardHistory, TriviaQuestion, UserDailyRewards
from pulseearn.errors import NotFoundError
from pulseearn.profiles.badge_service import check_and_award_badges
from pulseearn.profiles.service import require_profile
from pulseearn.rewards.day_utils import is_available, next_midnight_utc, seconds_until_reset, today_utc, utc_now
from pulseearn.rewards.ledger import REWARD_TYPES, grant_points
from pulseearn.rewards.spin import next_streak, outcome_for_roll, roll, streak_bonus, streak_multiplier
from pulseearn.trivia.scoring import is_correct

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


class RewardUnavailableError(ValueError):
    """The daily reward was already claimed today, or nothing can be served."""


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------


async def get_or_create_daily_rewards(db: AsyncSession, user_id: int) -> UserDailyRewards:
    """Fetch the user's daily-rewards row, creating it for older profiles that lack one."""
    result = await db.execute(select(UserDailyRewards).where(UserDailyRewards.user_id == user_id))
    row = result.scalar_one_or_none()
    if row is not None:
        return row
    await require_profile(db, user_id)
    row = UserDailyRewards(user_id=user_id, updated_at=utc_now())
    db.add(row)
    await db.flush()
    logger.info("daily_rewards_row_created", user_id=user_id)
    return row


async def get_daily_reward_status(
    db: AsyncSession,
    user_id: int,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Per-category availability for the current UTC day plus streaks and totals."""
    now = now or utc_now()
    row = await get_or_create_daily_rewards(db, user_id)
    return {
        "can_spin": is_available(row.last_spin_date, now),
        "can_play_trivia": is_available(row.last_trivia_date, now),
        "can_watch_ad": is_available(row.last_watch_date, now),
        "last_spin_date": row.last_spin_date,
        "last_trivia_date": row.last_trivia_date,
        "last_watch_date": row.last_watch_date,
        "spin_streak": row.spin_streak or 0,
        "trivia_streak": row.trivia_streak or 0,
        "total_spins": row.total_spins or 0,
        "total_trivia_completed": row.total_trivia_completed or 0,
        "total_ads_watched": row.total_ads_watched or 0,
        "next_reset_at": next_midnight_utc(now),
        "seconds_until_reset": seconds_until_reset(now),
    }


async def _claim(
    db: AsyncSession,
    user_id: int,
    date_column: Any,
    values: dict[str, Any],
    today: date,
    message: str,
) -> None:
    """Stamp a category as claimed today, or raise if it already was."""
    result = await db.execute(
        update(UserDailyRewards)
        .where(UserDailyRewards.user_id == user_id)
        .where(or_(date_column.is_(None), date_column < today))
        .values(updated_at=utc_now(), **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise RewardUnavailableError(message)


# ---------------------------------------------------------------------------
# Spin
# ---------------------------------------------------------------------------


async def perform_spin(
    db: AsyncSession,
    user_id: int,
    now: datetime | None = None,
    roll_value: float | None = None,
) -> dict[str, Any]:
    """
    Spin the wheel once for today.

    Raises:
        RewardUnavailableError: If the user already spun today.
    """
    now = now or utc_now()
    today = today_utc(now)
    row = await get_or_create_daily_rewards(db, user_id)
    if not is_available(row.last_spin_date, now):
        msg = "Cannot spin today. Already spun today."
        raise RewardUnavailableError(msg)

    config = await get_points_config(db)
    outcome = outcome_for_roll(roll() if roll_value is None else roll_value)
    streak = next_streak(row.spin_streak or 0, outcome.success)
    multiplier = streak_multiplier(streak, config.streak_increment, config.max_streak_multiplier)
    bonus = streak_bonus(outcome.points, multiplier) if outcome.success else 0
    total = outcome.points + bonus

    await _claim(
        db,
        user_id,
        UserDailyRewards.last_spin_date,
        {
            "last_spin_date": today,
            "spin_streak": streak,
            "total_spins": (row.total_spins or 0) + 1,
        },
        today,
        "Cannot spin today. Already spun today.",
    )
    await grant_points(
        db,
        user_id,
        total,
        "spin",
        {
            "result": outcome.result,
            "base_points": outcome.points,
            "streak_bonus": bonus,
            "streak_multiplier": multiplier,
        },
    )
    await db.refresh(row)
    await check_and_award_badges(db, user_id)
    logger.info("spin_performed", user_id=user_id, result=outcome.result, points=total, streak=streak)
    return {
        "success": outcome.success,
        "result": outcome.result,
        "points": total,
        "base_points": outcome.points,
        "streak_bonus": bonus,
        "new_streak": streak,
        "message": outcome.message,
    }


# ---------------------------------------------------------------------------
# Daily trivia
# ---------------------------------------------------------------------------


async def _active_questions(db: AsyncSession, country: str | None) -> list[TriviaQuestion]:
    stmt = select(TriviaQuestion).where(TriviaQuestion.is_active == True)  # noqa: E712
    stmt = stmt.where(TriviaQuestion.country == country) if country else stmt.where(TriviaQuestion.country.is_(None))
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_daily_trivia_question(
    db: AsyncSession,
    user_id: int,
    country: str | None = None,
    now: datetime | None = None,
) -> TriviaQuestion:
    """
    Pick one random question, preferring the user's country over global ones.

    Serving a question does not consume the daily allowance.

    Raises:
        RewardUnavailableError: If trivia was already played today or no question exists.
    """
    row = await get_or_create_daily_rewards(db, user_id)
    if not is_available(row.last_trivia_date, now):
        msg = "Cannot play trivia today. Already completed today."
        raise RewardUnavailableError(msg)

    questions = await _active_questions(db, country) if country else []
    if not questions:
        questions = await _active_questions(db, None)
    if not questions:
        msg = "No trivia questions available"
        raise RewardUnavailableError(msg)
    return secrets.choice(questions)


async def submit_trivia_answer(
    db: AsyncSession,
    user_id: int,
    question_id: int,
    selected_answer: int,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Score the daily trivia answer. The server's correctness judgement is final.

    Raises:
        NotFoundError: If the question does not exist.
        RewardUnavailableError: If trivia was already played today.
    """
    now = now or utc_now()
    today = today_utc(now)
    question = (
        await db.execute(select(TriviaQuestion).where(TriviaQuestion.id == question_id))
    ).scalar_one_or_none()
    if question is None:
        msg = "Question not found"
        raise NotFoundError(msg)

    row = await get_or_create_daily_rewards(db, user_id)
    if not is_available(row.last_trivia_date, now):
        msg = "Cannot play trivia today. Already completed today."
        raise RewardUnavailableError(msg)

    config = await get_points_config(db)
    correct = is_correct(selected_answer, question.correct_answer)
    base = config.trivia_points(question.difficulty) if correct else 0
    streak = next_streak(row.trivia_streak or 0, correct)
    multiplier = streak_multiplier(streak, config.streak_increment, config.max_streak_multiplier)
    bonus = streak_bonus(base, multiplier)
    total = base + bonus

    await _claim(
        db,
        user_id,
        UserDailyRewards.last_trivia_date,
        {
            "last_trivia_date": today,
            "trivia_streak": streak,
            "total_trivia_completed": (row.total_trivia_completed or 0) + 1,
        },
        today,
        "Cannot play trivia today. Already completed today.",
    )
    await grant_points(
        db,
        user_id,
        total,
        "trivia",
        {
            "question_id": question.id,
            "selected_answer": selected_answer,
            "correct_answer": question.correct_answer,
            "is_correct": correct,
            "difficulty": question.difficulty,
            "base_points": base,
            "streak_bonus": bonus,
            "streak_multiplier": multiplier,
        },
    )
    await db.refresh(row)
    await check_and_award_badges(db, user_id)
    logger.info("daily_trivia_answered", user_id=user_id, correct=correct, points=total, streak=streak)
    return {
        "correct": correct,
        "correct_answer": question.correct_answer,
        "points_earned": total,
        "streak_bonus": bonus,
        "new_streak": streak,
    }


# ---------------------------------------------------------------------------
# Ad watch
# ---------------------------------------------------------------------------


async def record_ad_watch(db: AsyncSession, user_id: int, now: datetime | None = None) -> dict[str, Any]:
    """
    Grant the once-a-day rewarded video bonus.

    Raises:
        RewardUnavailableError: If an ad was already watched today.
    """
    now = now or utc_now()
    today = today_utc(now)
    row = await get_or_create_daily_rewards(db, user_id)
    if not is_available(row.last_watch_date, now):
        msg = "Cannot watch ad today. Already watched today."
        raise RewardUnavailableError(msg)

    config = await get_points_config(db)
    await _claim(
        db,
        user_id,
        UserDailyRewards.last_watch_date,
        {"last_watch_date": today, "total_ads_watched": (row.total_ads_watched or 0) + 1},
        today,
        "Cannot watch ad today. Already watched today.",
    )
    await grant_points(db, user_id, config.ad_watch_points, "watch", {"ad_type": "rewarded_video"})
    await db.refresh(row)
    await check_and_award_badges(db, user_id)
    logger.info("ad_watch_recorded", user_id=user_id, points=config.ad_watch_points)
    return {
        "success": True,
        "points_earned": config.ad_watch_points,
        "message": f"You earned {config.ad_watch_points} points for watching the ad!",
    }


# ---------------------------------------------------------------------------
# History and admin
# ---------------------------------------------------------------------------


async def get_reward_history(
    db: AsyncSession,
    user_id: int,
    limit: int = 50,
    reward_type: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[RewardHistory]:
    """History rows newest first. ``end_date`` is inclusive."""
    if reward_type and reward_type not in REWARD_TYPES:
        msg = f"Unknown reward type: {reward_type}"
        raise ValueError(msg)
    stmt = (
        select(RewardHistory)
        .where(RewardHistory.user_id == user_id)
        .order_by(RewardHistory.created_at.desc(), RewardHistory.id.desc())
        .limit(limit)
    )
    if reward_type:
        stmt = stmt.where(RewardHistory.reward_type == reward_type)
    if start_date:
        stmt = stmt.where(RewardHistory.created_at >= datetime.combine(start_date, time.min, tzinfo=timezone.utc))
    if end_date:
        end = datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=timezone.utc)
        stmt = stmt.where(RewardHistory.created_at < end)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def reset_daily_rewards(db: AsyncSession, user_id: int) -> UserDailyRewards:
    """Clear a user's claim dates so every reward is available again today."""
    row = await get_or_create_daily_rewards(db, user_id)
    row.last_spin_date = None
    row.last_trivia_date = None
    row.last_watch_date = None
    row.updated_at = utc_now()
    await db.flush()
    logger.info("daily_rewards_reset", user_id=user_id)
    return row


async def get_points(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(select(Profile.points).where(Profile.id == user_id))
    return int(result.scalar_one_or_none() or 0)
