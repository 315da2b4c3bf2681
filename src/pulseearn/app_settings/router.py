"""Platform settings endpoints. Reads are public except the points category."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from pulseearn.app_settings.schemas import SettingsResponse, SettingsUpdateRequest, SettingsUpdateResponse
from pulseearn.app_settings.service import PUBLIC_CATEGORIES, get_category, public_view, update_category
from pulseearn.auth.dependencies import require_role
from pulseearn.database import get_session
from pulseearn.db.models import Profile

router = APIRouter(prefix="/api/v1/settings", tags=["Settings"])


@router.get("/{category}", response_model=SettingsResponse)
async def read_settings(
    category: str,
    db: AsyncSession = Depends(get_session),
) -> SettingsResponse:
    if category not in PUBLIC_CATEGORIES:
        raise HTTPException(status_code=404, detail="Settings category not found")
    document = await get_category(db, category)
    return SettingsResponse(category=category, settings=public_view(category, document))


# ── Admin endpoints ──


@router.put("/{category}", response_model=SettingsUpdateResponse)
async def write_settings(
    category: str,
    body: SettingsUpdateRequest,
    admin: Profile = Depends(require_role("admin")),
    db: AsyncSession = Depends(get_session),
) -> SettingsUpdateResponse:
    try:
        row = await update_category(db, category, body.settings, updated_by=admin.id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await db.commit()
    return SettingsUpdateResponse.model_validate(row)
