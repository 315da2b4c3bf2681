"""Request/response schemas for payment endpoints."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field


class PaymentIntentRequest(BaseModel):
    amount: Decimal | None = Field(None, gt=0)
    user_id: int | None = Field(None, alias="userId")
    transaction_id: str | None = Field(None, alias="transactionId")
    promoted_poll_id: str | None = Field(None, alias="promotedPollId")

    model_config = {"populate_by_name": True}


class PaymentIntentResponse(BaseModel):
    client_secret: str | None = Field(serialization_alias="clientSecret")
    payment_intent_id: str = Field(serialization_alias="paymentIntentId")
