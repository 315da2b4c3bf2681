"""Trivia game endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from pulseearn.auth.dependencies import get_current_profile
from pulseearn.database import get_session
from pulseearn.db.models import Profile
from pulseearn.errors import NotFoundError
from pulseearn.trivia.schemas import (
    GameQuestionResponse,
    GameSubmitRequest,
    GameSubmitResponse,
    TriviaGameResponse,
    TriviaGameSummary,
    TriviaStatsResponse,
)
from pulseearn.trivia.service import (
    get_categories,
    get_difficulties,
    get_game,
    get_game_questions,
    get_user_stats,
    list_games,
    played_game_ids,
    submit_game,
)

router = APIRouter(prefix="/api/v1/trivia", tags=["Trivia"])


@router.get("/games", response_model=list[TriviaGameSummary])
async def games(
    category: str | None = Query(None),
    difficulty: str | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> list[TriviaGameSummary]:
    rows = await list_games(db, category, difficulty, limit, offset)
    played = await played_game_ids(db, profile.id)
    return [
        TriviaGameSummary(
            id=g.id,
            title=g.title,
            description=g.description,
            category=g.category,
            difficulty=g.difficulty,
            question_count=g.number_of_questions,
            points_reward=g.points_reward,
            estimated_time_minutes=g.estimated_time_minutes,
            has_played=g.id in played,
        )
        for g in rows
    ]


@router.get("/categories", response_model=list[str])
async def categories(db: AsyncSession = Depends(get_session)) -> list[str]:
    return await get_categories(db)


@router.get("/difficulties", response_model=list[str])
async def difficulties(db: AsyncSession = Depends(get_session)) -> list[str]:
    return await get_difficulties(db)


@router.get("/me/stats", response_model=TriviaStatsResponse)
async def my_stats(
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> TriviaStatsResponse:
    return TriviaStatsResponse(**await get_user_stats(db, profile.id))


@router.get("/games/{game_id}", response_model=TriviaGameResponse)
async def game_detail(
    game_id: int,
    _profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> TriviaGameResponse:
    try:
        game = await get_game(db, game_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return TriviaGameResponse.model_validate(game)


@router.get("/games/{game_id}/questions", response_model=list[GameQuestionResponse])
async def game_questions(
    game_id: int,
    _profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> list[GameQuestionResponse]:
    try:
        game = await get_game(db, game_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return [GameQuestionResponse.model_validate(q) for q in await get_game_questions(db, game)]


@router.post("/games/{game_id}/submit", response_model=GameSubmitResponse)
async def submit(
    game_id: int,
    body: GameSubmitRequest,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> GameSubmitResponse:
    """Score a finished game. The correct answers are revealed once the game is over."""
    try:
        result = await submit_game(db, profile.id, game_id, body.answers)
        game = await get_game(db, game_id)
        questions = await get_game_questions(db, game)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await db.commit()
    return GameSubmitResponse(**result, correct_answer_indexes=[q.correct_answer for q in questions])
