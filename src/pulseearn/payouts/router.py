"""Payout endpoints for ambassadors, plus the admin status update."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from pulseearn.auth.dependencies import require_role
from pulseearn.database import get_session
from pulseearn.db.models import Profile
from pulseearn.errors import NotFoundError
from pulseearn.payouts.schemas import (
    BalanceResponse,
    PayoutCreateRequest,
    PayoutListResponse,
    PayoutMethodResponse,
    PayoutResponse,
    PayoutStatusUpdate,
)
from pulseearn.payouts.service import (
    get_balance,
    list_payout_methods,
    list_payout_requests,
    request_payout,
    update_payout_status,
)
from pulseearn.payouts.validation import PayoutValidationError

router = APIRouter(prefix="/api/v1/payouts", tags=["Payouts"])

_ambassador = require_role("ambassador")
_admin = require_role("admin")


@router.get("/methods", response_model=list[PayoutMethodResponse])
async def methods(
    _profile: Profile = Depends(_ambassador),
    db: AsyncSession = Depends(get_session),
) -> list[PayoutMethodResponse]:
    return [PayoutMethodResponse.model_validate(m) for m in await list_payout_methods(db)]


@router.get("/balance", response_model=BalanceResponse)
async def balance(
    profile: Profile = Depends(_ambassador),
    db: AsyncSession = Depends(get_session),
) -> BalanceResponse:
    try:
        data = await get_balance(db, profile.id)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    return BalanceResponse(**data)


@router.post("", response_model=PayoutResponse, status_code=201)
async def create_payout(
    body: PayoutCreateRequest,
    profile: Profile = Depends(_ambassador),
    db: AsyncSession = Depends(get_session),
) -> PayoutResponse:
    """Request a payout. Amount is checked against the minimum first, then the balance."""
    try:
        payout = await request_payout(
            db,
            profile,
            amount=body.amount,
            method_name=body.payout_method,
            details=body.payout_details,
        )
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    except PayoutValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return PayoutResponse.model_validate(payout)


@router.get("", response_model=PayoutListResponse)
async def my_payouts(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    status: str | None = Query(None),
    profile: Profile = Depends(_ambassador),
    db: AsyncSession = Depends(get_session),
) -> PayoutListResponse:
    rows, total = await list_payout_requests(db, user_id=profile.id, status=status, page=page, page_size=page_size)
    return PayoutListResponse(
        requests=[PayoutResponse.model_validate(r) for r in rows],
        total_count=total,
        page=page,
        page_size=page_size,
    )


# ── Admin endpoints ──


@router.get("/admin", response_model=PayoutListResponse)
async def admin_list(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    status: str | None = Query(None),
    user_id: int | None = Query(None),
    _admin_profile: Profile = Depends(_admin),
    db: AsyncSession = Depends(get_session),
) -> PayoutListResponse:
    rows, total = await list_payout_requests(db, user_id=user_id, status=status, page=page, page_size=page_size)
    return PayoutListResponse(
        requests=[PayoutResponse.model_validate(r) for r in rows],
        total_count=total,
        page=page,
        page_size=page_size,
    )


@router.patch("/admin/{payout_id}", response_model=PayoutResponse)
async def admin_update(
    payout_id: int,
    body: PayoutStatusUpdate,
    admin_profile: Profile = Depends(_admin),
    db: AsyncSession = Depends(get_session),
) -> PayoutResponse:
    try:
        payout = await update_payout_status(
            db,
            payout_id,
            status=body.status,
            admin_id=admin_profile.id,
            admin_notes=body.admin_notes,
            transaction_id=body.transaction_id,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return PayoutResponse.model_validate(payout)
