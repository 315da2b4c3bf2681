"""Daily reward endpoints (status, spin, daily trivia, ad watch, history) and the reward store."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from pulseearn.auth.dependencies import get_current_profile, require_role
from pulseearn.database import get_session
from pulseearn.db.models import Profile
from pulseearn.errors import ConflictError, NotFoundError
from pulseearn.rewards.ledger import InsufficientPointsError
from pulseearn.rewards.schemas import (
    AdWatchResponse,
    DailyTriviaQuestionResponse,
    RedeemRequest,
    RedeemResponse,
    RedemptionResponse,
    RedemptionStatusRequest,
    RewardHistoryEntry,
    RewardHistoryResponse,
    RewardStatusResponse,
    SpinResponse,
    StoreItemCreateRequest,
    StoreItemResponse,
    StoreItemUpdateRequest,
    TriviaAnswerRequest,
    TriviaAnswerResponse,
)
from pulseearn.rewards.service import (
    RewardUnavailableError,
    get_daily_reward_status,
    get_daily_trivia_question,
    get_points,
    get_reward_history,
    perform_spin,
    record_ad_watch,
    reset_daily_rewards,
    submit_trivia_answer,
)
from pulseearn.rewards.store import (
    create_store_item,
    list_redemptions,
    list_store_items,
    redeem_item,
    update_redemption_status,
    update_store_item,
)

router = APIRouter(prefix="/api/v1/rewards", tags=["Rewards"])


@router.get("/status", response_model=RewardStatusResponse)
async def status(
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> RewardStatusResponse:
    data = await get_daily_reward_status(db, profile.id)
    await db.commit()
    return RewardStatusResponse(**data)


@router.post("/spin", response_model=SpinResponse)
async def spin(
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> SpinResponse:
    try:
        result = await perform_spin(db, profile.id)
    except RewardUnavailableError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    total = await get_points(db, profile.id)
    await db.commit()
    return SpinResponse(**result, total_points=total)


@router.get("/trivia/daily", response_model=DailyTriviaQuestionResponse)
async def daily_trivia(
    country: str | None = Query(None),
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> DailyTriviaQuestionResponse:
    """One question for today, from the caller's country (or the query override) when available."""
    try:
        question = await get_daily_trivia_question(db, profile.id, country or profile.country)
    except RewardUnavailableError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    await db.commit()
    return DailyTriviaQuestionResponse.model_validate(question)


@router.post("/trivia/daily", response_model=TriviaAnswerResponse)
async def answer_daily_trivia(
    body: TriviaAnswerRequest,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> TriviaAnswerResponse:
    try:
        result = await submit_trivia_answer(db, profile.id, body.question_id, body.selected_answer)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except RewardUnavailableError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    total = await get_points(db, profile.id)
    await db.commit()
    return TriviaAnswerResponse(**result, total_points=total)


@router.post("/ad-watch", response_model=AdWatchResponse)
async def ad_watch(
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> AdWatchResponse:
    try:
        result = await record_ad_watch(db, profile.id)
    except RewardUnavailableError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    total = await get_points(db, profile.id)
    await db.commit()
    return AdWatchResponse(**result, total_points=total)


@router.get("/history", response_model=RewardHistoryResponse)
async def history(
    limit: int = Query(50, ge=1, le=500),
    reward_type: str | None = Query(None),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> RewardHistoryResponse:
    try:
        rows = await get_reward_history(db, profile.id, limit, reward_type, start_date, end_date)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return RewardHistoryResponse(
        entries=[RewardHistoryEntry.model_validate(r) for r in rows],
        total=len(rows),
    )


# ── Admin endpoints ──


@router.post("/reset/{user_id}", response_model=RewardStatusResponse)
async def admin_reset(
    user_id: int,
    _admin: Profile = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_session),
) -> RewardStatusResponse:
    try:
        await reset_daily_rewards(db, user_id)
        data = await get_daily_reward_status(db, user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await db.commit()
    return RewardStatusResponse(**data)


# ── Reward store ──


@router.get("/store", response_model=list[StoreItemResponse])
async def store_items(
    limit: int = Query(50, ge=1, le=200),
    item_type: str | None = Query(None),
    min_points: int | None = Query(None, ge=0),
    max_points: int | None = Query(None, ge=0),
    in_stock: bool = Query(False),
    _profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> list[StoreItemResponse]:
    items = await list_store_items(db, limit, item_type, min_points, max_points, in_stock)
    return [StoreItemResponse.model_validate(i) for i in items]


@router.post("/store/{item_id}/redeem", response_model=RedeemResponse, status_code=201)
async def redeem(
    item_id: int,
    body: RedeemRequest | None = None,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> RedeemResponse:
    details = body.fulfillment_details if body is not None else None
    try:
        result = await redeem_item(db, profile.id, item_id, details)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except InsufficientPointsError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    balance = await get_points(db, profile.id)
    await db.commit()
    return RedeemResponse(
        success=result["success"],
        message=result["message"],
        new_points_balance=balance,
        redemption=RedemptionResponse.model_validate(result["redemption"]),
    )


@router.get("/redemptions", response_model=list[RedemptionResponse])
async def my_redemptions(
    status_filter: str | None = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> list[RedemptionResponse]:
    try:
        rows = await list_redemptions(db, profile.id, status_filter, limit)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return [RedemptionResponse.model_validate(r) for r in rows]


@router.post("/store", response_model=StoreItemResponse, status_code=201)
async def admin_create_item(
    body: StoreItemCreateRequest,
    _admin: Profile = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_session),
) -> StoreItemResponse:
    try:
        item = await create_store_item(db, **body.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return StoreItemResponse.model_validate(item)


@router.patch("/store/{item_id}", response_model=StoreItemResponse)
async def admin_update_item(
    item_id: int,
    body: StoreItemUpdateRequest,
    _admin: Profile = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_session),
) -> StoreItemResponse:
    try:
        item = await update_store_item(db, item_id, **body.model_dump(exclude_unset=True))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return StoreItemResponse.model_validate(item)


@router.get("/admin/redemptions", response_model=list[RedemptionResponse])
async def admin_redemptions(
    status_filter: str | None = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    _admin: Profile = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_session),
) -> list[RedemptionResponse]:
    try:
        rows = await list_redemptions(db, None, status_filter, limit)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return [RedemptionResponse.model_validate(r) for r in rows]


@router.patch("/redemptions/{redemption_id}", response_model=RedemptionResponse)
async def admin_update_redemption(
    redemption_id: int,
    body: RedemptionStatusRequest,
    admin: Profile = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_session),
) -> RedemptionResponse:
    try:
        redemption = await update_redemption_status(
            db, redemption_id, body.status, admin.id, body.fulfillment_details
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    await db.commit()
    return RedemptionResponse.model_validate(redemption)
