"""
Payout request business logic.

Balance checks run against freshly computed ambassador totals on every request,
so a pre-check that passed on the client can still be rejected here.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import func, select

from pulseearn.ambassador.service import get_ambassador_details, pending_payout_total
from pulseearn.ambassador.stats import payable_balance
from pulseearn.config import get_settings
from pulseearn.db.models import PayoutMethod, PayoutRequest, Profile
from pulseearn.errors import NotFoundError
from pulseearn.payouts.validation import (
    PayoutValidationError,
    to_money,
    validate_payout_amount,
    validate_payout_details,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

DEFAULT_METHODS = [
    {"name": "PayPal", "min_amount": Decimal("10.00"), "fee_percent": Decimal("2.90"), "fee_fixed": Decimal("0.30")},
    {"name": "Bank Transfer", "min_amount": Decimal("50.00"), "fee_percent": Decimal("0.00"), "fee_fixed": Decimal("0.00")},
    {"name": "Manual", "min_amount": Decimal("100.00"), "fee_percent": Decimal("0.00"), "fee_fixed": Decimal("0.00")},
]

# Current status -> statuses an admin may move it to
TRANSITIONS: dict[str, tuple[str, ...]] = {
    "pending": ("approved", "rejected", "paid"),
    "approved": ("paid", "rejected"),
    "rejected": (),
    "paid": (),
}

_ZERO = Decimal("0.00")


# ---------------------------------------------------------------------------
# Methods
# ---------------------------------------------------------------------------


async def seed_payout_methods(db: AsyncSession) -> int:
    """Insert the default payout methods that are missing. Returns the number inserted."""
    existing = set((await db.execute(select(PayoutMethod.name))).scalars().all())
    inserted = 0
    for method in DEFAULT_METHODS:
        if method["name"] not in existing:
            db.add(PayoutMethod(is_active=True, **method))
            inserted += 1
    if inserted:
        await db.flush()
        logger.info("payout_methods_seeded", count=inserted)
    return inserted


async def list_payout_methods(db: AsyncSession, active_only: bool = True) -> list[PayoutMethod]:
    stmt = select(PayoutMethod).order_by(PayoutMethod.name)
    if active_only:
        stmt = stmt.where(PayoutMethod.is_active == True)  # noqa: E712
    result = await db.execute(stmt)
    return list(result.scalars().all())


def effective_minimum(method: PayoutMethod) -> Decimal:
    """The larger of the platform minimum and the method's own minimum."""
    platform = to_money(get_settings().payout_minimum_amount)
    return max(platform, to_money(method.min_amount or _ZERO))


def estimate_fee(method: PayoutMethod, amount: Decimal) -> Decimal:
    fee = amount * Decimal(method.fee_percent or _ZERO) / Decimal(100) + Decimal(method.fee_fixed or _ZERO)
    return to_money(fee)


# ---------------------------------------------------------------------------
# Balance
# ---------------------------------------------------------------------------


async def get_balance(db: AsyncSession, user_id: int) -> dict[str, Decimal]:
    """
    Payable balance and its components for an active ambassador.

    Raises:
        PermissionError: If the user is not an active ambassador.
    """
    details = await get_ambassador_details(db, user_id)
    if details is None:
        msg = "You must be an active ambassador to request payouts"
        raise PermissionError(msg)
    total_earnings = to_money(details.total_earnings or _ZERO)
    total_payouts = to_money(details.total_payouts or _ZERO)
    pending = await pending_payout_total(db, user_id)
    return {
        "total_earnings": total_earnings,
        "total_payouts": total_payouts,
        "pending_payouts": pending,
        "payable_balance": payable_balance(total_earnings, total_payouts, pending),
        "minimum_payout": to_money(get_settings().payout_minimum_amount),
    }


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


def _merge_details(profile: Profile, method: str, details: dict[str, Any] | None) -> dict[str, Any]:
    """Request details win over the details saved on the profile for the same method."""
    saved: dict[str, Any] = {}
    if profile.payout_method and profile.payout_method.get("method") == method:
        saved = dict(profile.payout_method.get("details") or {})
    return {**saved, **(details or {})}


async def request_payout(
    db: AsyncSession,
    profile: Profile,
    amount: Decimal,
    method_name: str,
    details: dict[str, Any] | None = None,
) -> PayoutRequest:
    """
    Create a pending payout request.

    Raises:
        PermissionError: If the user is not an active ambassador.
        PayoutValidationError: If the method, amount or details are invalid.
    """
    balance = await get_balance(db, profile.id)

    methods = {m.name: m for m in await list_payout_methods(db)}
    method = methods.get(method_name)
    if method is None:
        raise PayoutValidationError("invalid_method", "Invalid payout method")

    amount = validate_payout_amount(amount, balance["payable_balance"], effective_minimum(method))
    merged = _merge_details(profile, method_name, details)
    validate_payout_details(method_name, merged)

    fee = estimate_fee(method, amount)
    payout = PayoutRequest(
        user_id=profile.id,
        amount=amount,
        payout_method=method_name,
        payout_details={
            **merged,
            "fee": str(fee),
            "net_amount": str(amount - fee),
            "user_name": profile.name,
            "user_email": profile.email,
            "user_country": profile.country,
        },
        status="pending",
        requested_at=datetime.now(timezone.utc),
    )
    db.add(payout)
    await db.flush()
    logger.info("payout_requested", user_id=profile.id, amount=str(amount), method=method_name)
    return payout


async def list_payout_requests(
    db: AsyncSession,
    user_id: int | None = None,
    status: str | None = None,
    page: int = 1,
    page_size: int = 10,
) -> tuple[list[PayoutRequest], int]:
    """Payout requests newest first, with the total count before paging."""
    filters = []
    if user_id is not None:
        filters.append(PayoutRequest.user_id == user_id)
    if status:
        filters.append(PayoutRequest.status == status)

    total = (
        await db.execute(select(func.count()).select_from(PayoutRequest).where(*filters))
    ).scalar_one()
    result = await db.execute(
        select(PayoutRequest)
        .where(*filters)
        .order_by(PayoutRequest.requested_at.desc(), PayoutRequest.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(result.scalars().all()), int(total)


async def update_payout_status(
    db: AsyncSession,
    payout_id: int,
    status: str,
    admin_id: int,
    admin_notes: str | None = None,
    transaction_id: str | None = None,
) -> PayoutRequest:
    """
    Move a payout request along its lifecycle.

    ``paid`` adds the amount to the ambassador's total payouts; ``rejected``
    releases it back into the payable balance.

    Raises:
        NotFoundError: If the request does not exist.
        ValueError: If the transition is not allowed.
    """
    payout = (
        await db.execute(select(PayoutRequest).where(PayoutRequest.id == payout_id))
    ).scalar_one_or_none()
    if payout is None:
        msg = "Payout request not found"
        raise NotFoundError(msg)
    if status not in TRANSITIONS:
        msg = f"Unknown payout status: {status}"
        raise ValueError(msg)
    if status not in TRANSITIONS[payout.status]:
        msg = f"Cannot change payout status from {payout.status} to {status}"
        raise ValueError(msg)

    now = datetime.now(timezone.utc)
    payout.status = status
    if admin_notes is not None:
        payout.admin_notes = admin_notes
    if status in ("paid", "rejected"):
        payout.processed_at = now
        payout.processed_by = admin_id
    if status == "paid":
        payout.transaction_id = transaction_id
        details = await get_ambassador_details(db, payout.user_id)
        if details is not None:
            details.total_payouts = to_money(details.total_payouts or _ZERO) + to_money(payout.amount)
            details.updated_at = now
    await db.flush()
    logger.info("payout_status_changed", payout_id=payout_id, status=status, admin_id=admin_id)
    return payout
