"""Request/response schemas for platform settings endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class SettingsResponse(BaseModel):
    category: str
    settings: dict[str, Any] | None = None


class SettingsUpdateRequest(BaseModel):
    settings: dict[str, Any]


class SettingsUpdateResponse(BaseModel):
    category: str
    settings: dict[str, Any]
    updated_by: int | None = None
    updated_at: datetime

    model_config = {"from_attributes": True}
