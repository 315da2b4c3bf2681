"""Request/response schemas for payout endpoints."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, Field


class PayoutMethodResponse(BaseModel):
    id: int
    name: str
    min_amount: Decimal
    fee_percent: Decimal
    fee_fixed: Decimal
    is_active: bool

    model_config = {"from_attributes": True}


class BalanceResponse(BaseModel):
    total_earnings: Decimal
    total_payouts: Decimal
    pending_payouts: Decimal
    payable_balance: Decimal
    minimum_payout: Decimal


class PayoutCreateRequest(BaseModel):
    amount: Decimal = Field(..., max_digits=12, decimal_places=2)
    payout_method: str = Field(..., min_length=1, max_length=64)
    payout_details: dict[str, Any] | None = None


class PayoutResponse(BaseModel):
    id: int
    user_id: int
    amount: Decimal
    payout_method: str
    payout_details: dict[str, Any] = {}
    status: str
    requested_at: datetime | None = None
    processed_at: datetime | None = None
    admin_notes: str | None = None
    transaction_id: str | None = None

    model_config = {"from_attributes": True}


class PayoutListResponse(BaseModel):
    requests: list[PayoutResponse]
    total_count: int
    page: int
    page_size: int


class PayoutStatusUpdate(BaseModel):
    status: Literal["approved", "rejected", "paid"]
    admin_notes: str | None = None
    transaction_id: str | None = Field(None, max_length=128)
