"""Stripe payment intents for poll promotion purchases."""

from __future__ import annotations

import asyncio
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any

import stripe
import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from pulseearn.config import get_settings
from pulseearn.db.models import Transaction
from pulseearn.errors import NotFoundError
from pulseearn.profiles.service import get_profile

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


class PaymentError(RuntimeError):
    """The payment provider rejected the request or is not configured."""


def to_cents(amount: Decimal | float) -> int:
    cents = (Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(cents)


async def _latest_customer_id(db: AsyncSession, user_id: int) -> str | None:
    result = await db.execute(
        select(Transaction.stripe_customer_id)
        .where(Transaction.user_id == user_id)
        .where(Transaction.stripe_customer_id.is_not(None))
        .order_by(Transaction.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def create_payment_intent(
    db: AsyncSession,
    user_id: int,
    amount: Decimal,
    transaction_id: str,
    promoted_poll_id: str | None = None,
    email: str | None = None,
) -> dict[str, Any]:
    """
    Create a Stripe PaymentIntent for ``amount`` (in currency units).

    The customer is reused from the user's latest transaction when one exists.
    Returns ``{"client_secret", "payment_intent_id"}``.

    Raises:
        NotFoundError: If the user has no profile.
        PaymentError: If Stripe is not configured or rejects a call.
    """
    profile = await get_profile(db, user_id)
    if profile is None:
        msg = "User profile not found"
        raise NotFoundError(msg)

    settings = get_settings()
    if not settings.stripe_secret_key:
        msg = "Stripe is not configured"
        raise PaymentError(msg)
    api_key = settings.stripe_secret_key

    customer_id = await _latest_customer_id(db, user_id)
    try:
        if customer_id is None:
            customer = await asyncio.to_thread(
                stripe.Customer.create,
                api_key=api_key,
                email=email,
                name=profile.name,
                metadata={"user_id": str(user_id)},
            )
            customer_id = customer.id
            logger.info("stripe_customer_created", user_id=user_id, customer_id=customer_id)

        intent = await asyncio.to_thread(
            stripe.PaymentIntent.create,
            api_key=api_key,
            amount=to_cents(amount),
            currency=settings.payment_currency,
            customer=customer_id,
            automatic_payment_methods={"enabled": True},
            metadata={
                "user_id": str(user_id),
                "transaction_id": transaction_id,
                "promoted_poll_id": promoted_poll_id or "",
            },
        )
    except stripe.StripeError as e:
        logger.exception("stripe_request_failed", user_id=user_id, transaction_id=transaction_id)
        msg = e.user_message or str(e)
        raise PaymentError(msg) from e

    await _record_intent(db, transaction_id, intent.id, customer_id, intent.client_secret)
    logger.info("payment_intent_created", user_id=user_id, transaction_id=transaction_id, intent_id=intent.id)
    return {"client_secret": intent.client_secret, "payment_intent_id": intent.id}


async def _record_intent(
    db: AsyncSession,
    transaction_id: str,
    intent_id: str,
    customer_id: str,
    client_secret: str | None,
) -> None:
    """Attach Stripe identifiers to the transaction row. Failures are logged only."""
    try:
        async with db.begin_nested():
            row = await db.get(Transaction, transaction_id)
            if row is None:
                logger.warning("transaction_not_found", transaction_id=transaction_id)
                return
            row.stripe_payment_intent_id = intent_id
            row.stripe_customer_id = customer_id
            row.details = {**(row.details or {}), "client_secret": client_secret}
    except SQLAlchemyError:
        logger.exception("transaction_update_failed", transaction_id=transaction_id)
