"""Profile endpoints and the badge catalog."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from pulseearn.auth.dependencies import get_current_profile, get_current_user, require_role
from pulseearn.database import get_session
from pulseearn.db.models import Profile, User
from pulseearn.errors import ConflictError, NotFoundError
from pulseearn.profiles.badge_service import (
    check_and_award_badges,
    create_badge,
    get_badge_progress,
    list_badges,
    update_badge,
)
from pulseearn.profiles.schemas import (
    BadgeCheckResponse,
    BadgeCreateRequest,
    BadgeProgressResponse,
    BadgeResponse,
    BadgeUpdateRequest,
    ProfileResponse,
    ProfileUpdateRequest,
    PublicProfileResponse,
    ReferralStatsResponse,
)
from pulseearn.profiles.service import require_profile, update_profile
from pulseearn.referrals.service import get_referral_stats

router = APIRouter(prefix="/api/v1/profiles", tags=["Profiles"])


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(profile: Profile = Depends(get_current_profile)) -> ProfileResponse:
    return ProfileResponse.model_validate(profile)


@router.patch("/me", response_model=ProfileResponse)
async def update_my_profile(
    body: ProfileUpdateRequest,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> ProfileResponse:
    """Replace the given fields; the full updated profile is returned."""
    changes = body.model_dump(exclude_unset=True)
    try:
        updated = await update_profile(db, profile, **changes)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return ProfileResponse.model_validate(updated)


@router.get("/me/referrals", response_model=ReferralStatsResponse)
async def get_my_referrals(
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> ReferralStatsResponse:
    stats = await get_referral_stats(db, profile.id)
    return ReferralStatsResponse(referral_code=profile.referral_code, **stats)


@router.get("/me/badges", response_model=list[BadgeProgressResponse])
async def get_my_badges(
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> list[BadgeProgressResponse]:
    """Every active badge with the caller's progress towards it."""
    return [
        BadgeProgressResponse(**{**entry, "badge": BadgeResponse.model_validate(entry["badge"])})
        for entry in await get_badge_progress(db, profile.id)
    ]


@router.post("/me/badges/check", response_model=BadgeCheckResponse)
async def check_my_badges(
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> BadgeCheckResponse:
    awarded = await check_and_award_badges(db, profile.id)
    await db.commit()
    return BadgeCheckResponse(awarded=awarded, badges=list(profile.badges or []))


@router.get("/badges", response_model=list[BadgeResponse])
async def get_badges(
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[BadgeResponse]:
    return [BadgeResponse.model_validate(b) for b in await list_badges(db)]


@router.post("/badges", response_model=BadgeResponse, status_code=201)
async def admin_create_badge(
    body: BadgeCreateRequest,
    _admin: Profile = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_session),
) -> BadgeResponse:
    try:
        badge = await create_badge(db, **body.model_dump())
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return BadgeResponse.model_validate(badge)


@router.patch("/badges/{badge_id}", response_model=BadgeResponse)
async def admin_update_badge(
    badge_id: int,
    body: BadgeUpdateRequest,
    _admin: Profile = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_session),
) -> BadgeResponse:
    try:
        badge = await update_badge(db, badge_id, **body.model_dump(exclude_unset=True))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return BadgeResponse.model_validate(badge)


@router.get("/{profile_id}", response_model=PublicProfileResponse)
async def get_public_profile(
    profile_id: int,
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> PublicProfileResponse:
    try:
        profile = await require_profile(db, profile_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return PublicProfileResponse.model_validate(profile)
