"""Request/response schemas for trivia game endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field


class TriviaGameSummary(BaseModel):
    id: int
    title: str
    description: str | None = None
    category: str
    difficulty: str
    question_count: int
    points_reward: int
    estimated_time_minutes: int
    has_played: bool = False


class TriviaGameResponse(BaseModel):
    id: int
    title: str
    description: str | None = None
    category: str
    difficulty: str
    number_of_questions: int
    points_reward: int
    estimated_time_minutes: int

    model_config = {"from_attributes": True}


class GameQuestionResponse(BaseModel):
    """A question as served during a game, with its answer for immediate feedback."""

    id: int
    question: str
    options: list[str]
    correct_answer: int
    difficulty: str
    category: str | None = None

    model_config = {"from_attributes": True}


class GameSubmitRequest(BaseModel):
    answers: list[int] = Field(..., max_length=200)


class GameSubmitResponse(BaseModel):
    success: bool
    score: int
    correct_answers: int
    total_questions: int
    points_earned: int
    message: str
    correct_answer_indexes: list[int]


class TriviaStatsResponse(BaseModel):
    total_games_played: int
    best_score: int
