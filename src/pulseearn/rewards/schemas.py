"""Request/response schemas for daily reward and reward store endpoints."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field


class RewardStatusResponse(BaseModel):
    can_spin: bool
    can_play_trivia: bool
    can_watch_ad: bool
    last_spin_date: date | None = None
    last_trivia_date: date | None = None
    last_watch_date: date | None = None
    spin_streak: int = 0
    trivia_streak: int = 0
    total_spins: int = 0
    total_trivia_completed: int = 0
    total_ads_watched: int = 0
    next_reset_at: datetime
    seconds_until_reset: int


class SpinResponse(BaseModel):
    success: bool
    result: str
    points: int
    base_points: int
    streak_bonus: int
    new_streak: int
    message: str
    total_points: int


class DailyTriviaQuestionResponse(BaseModel):
    """A daily question as served to the player; the answer is withheld."""

    id: int
    question: str
    options: list[str]
    difficulty: str
    category: str | None = None
    country: str | None = None

    model_config = {"from_attributes": True}


class TriviaAnswerRequest(BaseModel):
    question_id: int
    selected_answer: int = Field(..., ge=-1)


class TriviaAnswerResponse(BaseModel):
    correct: bool
    correct_answer: int
    points_earned: int
    streak_bonus: int
    new_streak: int
    total_points: int


class AdWatchResponse(BaseModel):
    success: bool
    points_earned: int
    message: str
    total_points: int


class RewardHistoryEntry(BaseModel):
    id: int
    reward_type: str
    points_earned: int
    reward_data: dict[str, Any] = {}
    created_at: datetime

    model_config = {"from_attributes": True}


class RewardHistoryResponse(BaseModel):
    entries: list[RewardHistoryEntry]
    total: int


# ── Reward store ──


class StoreItemResponse(BaseModel):
    id: int
    name: str
    description: str | None = None
    item_type: str
    points_cost: int
    value: str | None = None
    currency: str = "USD"
    image_url: str | None = None
    fulfillment_instructions: str | None = None
    stock_quantity: int | None = None
    is_active: bool = True

    model_config = {"from_attributes": True}


class StoreItemCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    item_type: str
    points_cost: int = Field(..., gt=0)
    value: str | None = Field(None, max_length=64)
    currency: str = Field("USD", min_length=3, max_length=3)
    image_url: str | None = None
    fulfillment_instructions: str | None = None
    stock_quantity: int | None = Field(None, ge=0)
    is_active: bool = True


class StoreItemUpdateRequest(BaseModel):
    """Partial edit. Omitted fields are left unchanged."""

    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    item_type: str | None = None
    points_cost: int | None = Field(None, gt=0)
    value: str | None = Field(None, max_length=64)
    image_url: str | None = None
    fulfillment_instructions: str | None = None
    stock_quantity: int | None = Field(None, ge=0)
    is_active: bool | None = None


class RedeemRequest(BaseModel):
    fulfillment_details: dict[str, Any] = Field(default_factory=dict)


class RedemptionResponse(BaseModel):
    id: int
    item_id: int | None = None
    item_name: str
    points_cost: int
    status: str
    fulfillment_details: dict[str, Any] = {}
    redeemed_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class RedeemResponse(BaseModel):
    success: bool
    message: str
    new_points_balance: int
    redemption: RedemptionResponse


class RedemptionStatusRequest(BaseModel):
    status: str = Field(..., pattern="^(fulfilled|cancelled)$")
    fulfillment_details: dict[str, Any] | None = None
