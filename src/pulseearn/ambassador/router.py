"""Ambassador program endpoints. Everything here requires the ambassador role or higher."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from pulseearn.ambassador.schemas import (
    AmbassadorDashboardResponse,
    AmbassadorResponse,
    AmbassadorStatsResponse,
    AppointAmbassadorRequest,
    CommissionRequest,
    CommissionResponse,
    CountryMetricResponse,
    MarketingMaterialResponse,
    MaterialCreateRequest,
    TierResponse,
    TopCountryEntry,
)
from pulseearn.ambassador.service import (
    appoint_ambassador,
    create_material,
    get_ambassador_stats,
    get_country_metrics,
    get_dashboard,
    get_top_countries,
    list_ambassadors,
    list_materials,
    process_commission,
    require_ambassador,
)
from pulseearn.ambassador.tiers import TIERS
from pulseearn.auth.dependencies import require_role
from pulseearn.database import get_session
from pulseearn.db.models import Profile
from pulseearn.errors import ConflictError, NotFoundError

router = APIRouter(prefix="/api/v1/ambassador", tags=["Ambassador"])

_ambassador = require_role("ambassador")
_admin = require_role("admin")


@router.get("/me", response_model=AmbassadorResponse)
async def get_me(
    profile: Profile = Depends(_ambassador),
    db: AsyncSession = Depends(get_session),
) -> AmbassadorResponse:
    try:
        details = await require_ambassador(db, profile.id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return AmbassadorResponse.model_validate(details)


@router.get("/me/stats", response_model=AmbassadorStatsResponse)
async def get_my_stats(
    profile: Profile = Depends(_ambassador),
    db: AsyncSession = Depends(get_session),
) -> AmbassadorStatsResponse:
    try:
        stats = await get_ambassador_stats(db, profile.id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return AmbassadorStatsResponse(**stats)


@router.get("/me/dashboard", response_model=AmbassadorDashboardResponse)
async def get_my_dashboard(
    profile: Profile = Depends(_ambassador),
    db: AsyncSession = Depends(get_session),
) -> AmbassadorDashboardResponse:
    try:
        dashboard = await get_dashboard(db, profile.id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return AmbassadorDashboardResponse(
        ambassador=AmbassadorResponse.model_validate(dashboard["ambassador"]),
        stats=AmbassadorStatsResponse(**dashboard["stats"]),
        recent_metrics=[CountryMetricResponse.model_validate(m) for m in dashboard["recent_metrics"]],
        top_countries=[TopCountryEntry(**c) for c in dashboard["top_countries"]],
    )


@router.get("/tiers", response_model=list[TierResponse])
async def get_tiers(_profile: Profile = Depends(_ambassador)) -> list[TierResponse]:
    """The fixed tier table with each tier's referral range."""
    tiers = []
    for i, tier in enumerate(TIERS):
        upper = TIERS[i + 1]["min_referrals"] - 1 if i + 1 < len(TIERS) else None
        tiers.append(TierResponse(
            name=tier["name"],
            min_referrals=tier["min_referrals"],
            max_referrals=upper,
            commission_rate=tier["commission_rate"],
        ))
    return tiers


@router.get("/countries/{country}/metrics", response_model=list[CountryMetricResponse])
async def country_metrics(
    country: str,
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    limit: int = Query(30, ge=1, le=365),
    _profile: Profile = Depends(_ambassador),
    db: AsyncSession = Depends(get_session),
) -> list[CountryMetricResponse]:
    metrics = await get_country_metrics(db, country, start_date, end_date, limit)
    return [CountryMetricResponse.model_validate(m) for m in metrics]


@router.get("/top-countries", response_model=list[TopCountryEntry])
async def top_countries(
    metric: str = Query("ad_revenue"),
    limit: int = Query(10, ge=1, le=100),
    _profile: Profile = Depends(_ambassador),
    db: AsyncSession = Depends(get_session),
) -> list[TopCountryEntry]:
    try:
        rows = await get_top_countries(db, metric, limit)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return [TopCountryEntry(**row) for row in rows]


@router.get("/materials", response_model=list[MarketingMaterialResponse])
async def materials(
    material_type: str | None = Query(None),
    _profile: Profile = Depends(_ambassador),
    db: AsyncSession = Depends(get_session),
) -> list[MarketingMaterialResponse]:
    return [MarketingMaterialResponse.model_validate(m) for m in await list_materials(db, material_type)]


# ── Admin endpoints ──


@router.get("/admin/ambassadors", response_model=list[AmbassadorResponse])
async def admin_list_ambassadors(
    country: str | None = Query(None),
    active_only: bool = Query(True),
    limit: int = Query(50, ge=1, le=500),
    _admin_profile: Profile = Depends(_admin),
    db: AsyncSession = Depends(get_session),
) -> list[AmbassadorResponse]:
    rows = await list_ambassadors(db, country=country, active_only=active_only, limit=limit)
    return [AmbassadorResponse.model_validate(a) for a in rows]


@router.post("/admin/ambassadors", response_model=AmbassadorResponse, status_code=201)
async def admin_appoint(
    body: AppointAmbassadorRequest,
    _admin_profile: Profile = Depends(_admin),
    db: AsyncSession = Depends(get_session),
) -> AmbassadorResponse:
    try:
        details = await appoint_ambassador(db, body.user_id, body.country)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    await db.commit()
    return AmbassadorResponse.model_validate(details)


@router.post("/admin/ambassadors/{user_id}/commission", response_model=CommissionResponse)
async def admin_commission(
    user_id: int,
    body: CommissionRequest,
    _admin_profile: Profile = Depends(_admin),
    db: AsyncSession = Depends(get_session),
) -> CommissionResponse:
    try:
        commission = await process_commission(db, user_id, body.amount)
        details = await require_ambassador(db, user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return CommissionResponse(
        user_id=user_id,
        amount=body.amount,
        commission_rate=details.commission_rate,
        commission=commission,
        total_earnings=details.total_earnings,
    )


@router.post("/admin/materials", response_model=MarketingMaterialResponse, status_code=201)
async def admin_create_material(
    body: MaterialCreateRequest,
    _admin_profile: Profile = Depends(_admin),
    db: AsyncSession = Depends(get_session),
) -> MarketingMaterialResponse:
    try:
        material = await create_material(
            db,
            name=body.name,
            file_url=body.file_url,
            material_type=body.material_type,
            file_type=body.file_type,
            description=body.description,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return MarketingMaterialResponse.model_validate(material)
