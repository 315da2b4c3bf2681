"""
Trivia games: catalogue, ordered questions and authoritative scoring.

A game's points are awarded once per user. Replays are scored but earn nothing.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import select

from pulseearn.db.models import RewardHistory, TriviaGame, TriviaQuestion
from pulseearn.errors import NotFoundError
from pulseearn.profiles.badge_service import check_and_award_badges
from pulseearn.rewards.ledger import grant_points
from pulseearn.trivia.scoring import DIFFICULTY_ORDER, count_correct, points_for_score, score_percent, sort_difficulties

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


async def list_games(
    db: AsyncSession,
    category: str | None = None,
    difficulty: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> list[TriviaGame]:
    """Active games sorted by category, then easy/medium/hard."""
    stmt = select(TriviaGame).where(TriviaGame.is_active == True)  # noqa: E712
    if category and category != "all":
        stmt = stmt.where(TriviaGame.category == category)
    if difficulty and difficulty != "all":
        stmt = stmt.where(TriviaGame.difficulty == difficulty)
    result = await db.execute(stmt.order_by(TriviaGame.id))
    games = list(result.scalars().all())
    rank = {d: i for i, d in enumerate(DIFFICULTY_ORDER)}
    games.sort(key=lambda g: (g.category, rank.get(g.difficulty, len(rank)), g.id))
    return games[offset:offset + limit]


async def get_game(db: AsyncSession, game_id: int) -> TriviaGame:
    result = await db.execute(select(TriviaGame).where(TriviaGame.id == game_id))
    game = result.scalar_one_or_none()
    if game is None or not game.is_active:
        msg = "Game not found"
        raise NotFoundError(msg)
    return game


async def get_game_questions(db: AsyncSession, game: TriviaGame) -> list[TriviaQuestion]:
    """The game's questions in the order of its question id list."""
    ids = [int(i) for i in game.question_ids or []]
    if not ids:
        return []
    result = await db.execute(select(TriviaQuestion).where(TriviaQuestion.id.in_(ids)))
    by_id = {q.id: q for q in result.scalars().all()}
    return [by_id[i] for i in ids if i in by_id]


async def _game_history(db: AsyncSession, user_id: int) -> list[RewardHistory]:
    result = await db.execute(
        select(RewardHistory)
        .where(RewardHistory.user_id == user_id)
        .where(RewardHistory.reward_type == "trivia")
    )
    return [r for r in result.scalars().all() if (r.reward_data or {}).get("game_id") is not None]


async def played_game_ids(db: AsyncSession, user_id: int) -> set[int]:
    """Games the user has already earned points for."""
    return {
        int(r.reward_data["game_id"])
        for r in await _game_history(db, user_id)
        if r.points_earned > 0
    }


async def submit_game(
    db: AsyncSession,
    user_id: int,
    game_id: int,
    answers: list[int],
) -> dict[str, Any]:
    """
    Score a finished game from the raw answers.

    Unanswered questions are -1 and count as wrong.

    Raises:
        NotFoundError: If the game does not exist.
    """
    game = await get_game(db, game_id)
    questions = await get_game_questions(db, game)
    total = len(questions) or game.number_of_questions
    correct = count_correct(answers, [q.correct_answer for q in questions])
    score = score_percent(correct, total)

    if game.id in await played_game_ids(db, user_id):
        logger.info("trivia_game_replayed", user_id=user_id, game_id=game.id, score=score)
        return {
            "success": True,
            "score": score,
            "correct_answers": correct,
            "total_questions": total,
            "points_earned": 0,
            "message": f"You scored {score}%. You've already earned points for this game!",
        }

    points = points_for_score(score, game.points_reward)
    await grant_points(
        db,
        user_id,
        points,
        "trivia",
        {
            "game_id": game.id,
            "score": score,
            "correct_answers": correct,
            "total_questions": total,
        },
    )
    await check_and_award_badges(db, user_id)
    logger.info("trivia_game_submitted", user_id=user_id, game_id=game.id, score=score, points=points)
    return {
        "success": True,
        "score": score,
        "correct_answers": correct,
        "total_questions": total,
        "points_earned": points,
        "message": f"You scored {score}% and earned {points} points!",
    }


async def get_categories(db: AsyncSession) -> list[str]:
    result = await db.execute(
        select(TriviaGame.category).where(TriviaGame.is_active == True).distinct()  # noqa: E712
    )
    return sorted(c for c in result.scalars().all() if c)


async def get_difficulties(db: AsyncSession) -> list[str]:
    result = await db.execute(
        select(TriviaGame.difficulty).where(TriviaGame.is_active == True).distinct()  # noqa: E712
    )
    return sort_difficulties([d for d in result.scalars().all() if d])


async def get_user_stats(db: AsyncSession, user_id: int) -> dict[str, int]:
    """Games played for points and the best score across all submissions."""
    history = await _game_history(db, user_id)
    scores = [int(r.reward_data.get("score") or 0) for r in history]
    return {
        "total_games_played": sum(1 for r in history if r.points_earned > 0),
        "best_score": max(scores, default=0),
    }
