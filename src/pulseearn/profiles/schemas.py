"""Request/response schemas for profile endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class ProfileResponse(BaseModel):
    """The caller's own profile."""

    id: int
    email: str
    name: str
    country: str | None = None
    points: int = 0
    badges: list[str] = []
    role: str = "user"
    referral_code: str
    referred_by_code: str | None = None
    avatar_url: str | None = None
    payout_method: dict[str, Any] | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class PublicProfileResponse(BaseModel):
    """Projection of a profile readable by any authenticated caller."""

    id: int
    name: str
    country: str | None = None
    points: int = 0
    badges: list[str] = []
    avatar_url: str | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class ProfileUpdateRequest(BaseModel):
    """Self-service profile edit. Omitted fields are left unchanged."""

    name: str | None = Field(None, max_length=128)
    country: str | None = Field(None, max_length=64)
    avatar_url: str | None = Field(None, max_length=2048)
    payout_method: dict[str, Any] | None = None


class ReferralStatsResponse(BaseModel):
    referral_code: str
    total_referrals: int
    active_referrals: int
    total_points_earned: int
    conversion_rate: float


class BadgeResponse(BaseModel):
    id: int
    slug: str
    name: str
    description: str
    icon: str | None = None
    criteria_type: str
    threshold: int
    criteria: dict[str, Any] = {}
    sort_order: int = 0
    is_active: bool = True

    model_config = {"from_attributes": True}


class BadgeProgressResponse(BaseModel):
    badge: BadgeResponse
    earned: bool
    progress: int
    max_progress: int
    earned_at: datetime | None = None


class BadgeCheckResponse(BaseModel):
    awarded: list[str]
    badges: list[str]


class BadgeCreateRequest(BaseModel):
    slug: str = Field(..., min_length=1, max_length=64, pattern="^[a-z0-9_]+$")
    name: str = Field(..., min_length=1, max_length=128)
    description: str = ""
    icon: str | None = Field(None, max_length=64)
    criteria_type: str
    threshold: int = Field(1, ge=1)
    criteria: dict[str, Any] = Field(default_factory=dict)
    sort_order: int = 0
    is_active: bool = True


class BadgeUpdateRequest(BaseModel):
    """Partial edit. Omitted fields are left unchanged; the slug is fixed."""

    name: str | None = Field(None, min_length=1, max_length=128)
    description: str | None = None
    icon: str | None = Field(None, max_length=64)
    criteria_type: str | None = None
    threshold: int | None = Field(None, ge=1)
    criteria: dict[str, Any] | None = None
    sort_order: int | None = None
    is_active: bool | None = None
