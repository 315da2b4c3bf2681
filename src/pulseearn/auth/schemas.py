"""Request/response schemas for authentication endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from pulseearn.profiles.schemas import ProfileResponse


class _Credentials(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.strip().lower()


class RegisterRequest(_Credentials):
    """Signup. ``name`` defaults to the email local part; ``referral_code`` is optional."""

    name: str | None = Field(None, max_length=128)
    country: str | None = Field(None, max_length=64)
    referral_code: str | None = Field(None, max_length=32)


class LoginRequest(_Credentials):
    pass


class RefreshRequest(BaseModel):
    refresh_token: str


class LogoutRequest(RefreshRequest):
    pass


class UserResponse(BaseModel):
    """The account behind a session; the profile carries everything else."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    created_at: datetime | None = None
    last_login: datetime | None = None
    login_count: int = 0


class SessionResponse(BaseModel):
    user: UserResponse
    profile: ProfileResponse | None = None


class TokenResponse(SessionResponse):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
