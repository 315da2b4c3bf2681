"""Request/response schemas for poll endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class PollOption(BaseModel):
    text: str
    votes: int = 0


class PollResponse(BaseModel):
    id: int
    title: str
    description: str | None = None
    options: list[PollOption]
    type: str
    country: str | None = None
    slug: str
    category: str
    total_votes: int
    start_date: datetime | None = None
    active_until: datetime | None = None
    created_at: datetime
    has_voted: bool = False
    user_vote: int | None = None

    model_config = {"from_attributes": True}


class PollListResponse(BaseModel):
    polls: list[PollResponse]
    limit: int
    offset: int


class VoteRequest(BaseModel):
    option_index: int = Field(..., ge=0)


class VoteResponse(BaseModel):
    success: bool
    message: str
    points_earned: int
    total_points: int
    poll: PollResponse


class GeneratePollsRequest(BaseModel):
    admin_id: int | None = Field(None, alias="adminId")
    num_polls: int = Field(1, alias="numPolls", ge=1, le=20)
    categories: list[str] = Field(default_factory=list)
    topic: str = ""
    country: str | None = None

    model_config = {"populate_by_name": True}


class GeneratePollsResponse(BaseModel):
    success: bool
    created_polls: list[PollResponse] = Field(serialization_alias="createdPolls")
    errors: list[dict[str, Any]]
    total_created: int = Field(serialization_alias="totalCreated")
    total_errors: int = Field(serialization_alias="totalErrors")


class PollCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    description: str | None = None
    options: list[str] = Field(..., min_length=2, max_length=6)
    type: str = Field("global", pattern="^(global|country)$")
    country: str | None = Field(None, max_length=64)
    category: str = Field("General", max_length=64)
    start_date: datetime | None = None
    active_until: datetime | None = None


# ── Comments and reports ──


class CommentResponse(BaseModel):
    id: int
    poll_id: int
    user_id: int
    parent_comment_id: int | None = None
    comment_text: str
    author_name: str | None = None
    author_avatar_url: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entry(cls, entry: dict[str, Any]) -> CommentResponse:
        comment = entry["comment"]
        return cls(
            id=comment.id,
            poll_id=comment.poll_id,
            user_id=comment.user_id,
            parent_comment_id=comment.parent_comment_id,
            comment_text=comment.comment_text,
            author_name=entry.get("author_name"),
            author_avatar_url=entry.get("author_avatar_url"),
            created_at=comment.created_at,
            updated_at=comment.updated_at,
        )


class CommentThreadResponse(CommentResponse):
    replies: list[CommentResponse] = []


class CommentCreateRequest(BaseModel):
    comment_text: str = Field(..., min_length=1, max_length=2000)
    parent_comment_id: int | None = None


class CommentUpdateRequest(BaseModel):
    comment_text: str = Field(..., min_length=1, max_length=2000)


class ReportCreateRequest(BaseModel):
    content_type: str = Field(..., pattern="^(poll|comment)$")
    content_id: int
    reason: str = Field(..., min_length=1, max_length=1000)


class ReportResponse(BaseModel):
    id: int
    reporter_id: int
    content_type: str
    content_id: int
    reason: str
    status: str
    reviewed_by: int | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ReportStatusRequest(BaseModel):
    status: str = Field(..., pattern="^(reviewed|resolved|rejected)$")
