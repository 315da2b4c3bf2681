"""Payment endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from pulseearn.auth.dependencies import get_current_profile
from pulseearn.auth.roles import has_role
from pulseearn.auth.service import get_user_by_id
from pulseearn.database import get_session
from pulseearn.db.models import Profile
from pulseearn.errors import NotFoundError
from pulseearn.payments.schemas import PaymentIntentRequest, PaymentIntentResponse
from pulseearn.payments.service import PaymentError, create_payment_intent

router = APIRouter(prefix="/api/v1/payments", tags=["Payments"])


@router.post("/intent", response_model=PaymentIntentResponse)
async def payment_intent(
    body: PaymentIntentRequest,
    caller: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> PaymentIntentResponse:
    if body.amount is None or body.user_id is None or not body.transaction_id:
        raise HTTPException(status_code=400, detail="Missing required parameters")
    if body.user_id != caller.id and not has_role(caller.role, "admin"):
        raise HTTPException(status_code=403, detail="Cannot create payments for another user")

    user = await get_user_by_id(db, body.user_id)
    try:
        result = await create_payment_intent(
            db,
            body.user_id,
            body.amount,
            body.transaction_id,
            promoted_poll_id=body.promoted_poll_id,
            email=user.email if user is not None else None,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except PaymentError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e
    await db.commit()
    return PaymentIntentResponse(**result)
