"""Request/response schemas for ambassador endpoints."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class AmbassadorResponse(BaseModel):
    user_id: int
    country: str
    commission_rate: Decimal
    total_referrals: int
    total_earnings: Decimal
    total_payouts: Decimal
    is_active: bool
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class AmbassadorStatsResponse(BaseModel):
    """Derived stats. Platinum ambassadors have no next tier."""

    total_referrals: int
    total_earnings: Decimal
    total_payouts: Decimal
    pending_payouts: Decimal
    monthly_earnings: Decimal
    payable_balance: Decimal
    commission_rate: Decimal
    conversion_rate: float
    country_rank: int
    tier_name: str
    next_tier_name: str | None = None
    referrals_to_next_tier: int | None = None


class CountryMetricResponse(BaseModel):
    country: str
    metric_date: date
    active_users: int
    new_users: int
    polls_created: int
    votes_cast: int
    ad_revenue: Decimal

    model_config = {"from_attributes": True}


class TopCountryEntry(BaseModel):
    country: str
    value: float


class AmbassadorDashboardResponse(BaseModel):
    ambassador: AmbassadorResponse
    stats: AmbassadorStatsResponse
    recent_metrics: list[CountryMetricResponse]
    top_countries: list[TopCountryEntry]


class TierResponse(BaseModel):
    name: str
    min_referrals: int
    max_referrals: int | None = None
    commission_rate: Decimal


class MarketingMaterialResponse(BaseModel):
    id: int
    name: str
    description: str | None = None
    file_url: str
    file_type: str
    material_type: str
    is_active: bool
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


class AppointAmbassadorRequest(BaseModel):
    user_id: int
    country: str = Field(..., min_length=2, max_length=64)


class CommissionRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)


class CommissionResponse(BaseModel):
    user_id: int
    amount: Decimal
    commission_rate: Decimal
    commission: Decimal
    total_earnings: Decimal


class MaterialCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    file_url: str = Field(..., min_length=1)
    file_type: str = "other"
    material_type: str = Field(..., min_length=1, max_length=32)
