"""Poll endpoints: listing, user polls, voting, comments, reports and admin AI generation."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from openai import AsyncOpenAI
from sqlalchemy.ext.asyncio import AsyncSession

from pulseearn.auth.dependencies import get_current_profile, require_role
from pulseearn.database import get_session
from pulseearn.db.models import Poll, Profile
from pulseearn.errors import ConflictError, NotFoundError
from pulseearn.polls.comments import (
    create_comment,
    delete_comment,
    list_comments,
    list_reports,
    report_content,
    update_comment,
    update_report_status,
)
from pulseearn.polls.generator import PollGenerationError, generate_polls, get_openai_client
from pulseearn.polls.schemas import (
    CommentCreateRequest,
    CommentResponse,
    CommentThreadResponse,
    CommentUpdateRequest,
    GeneratePollsRequest,
    GeneratePollsResponse,
    PollCreateRequest,
    PollListResponse,
    PollResponse,
    ReportCreateRequest,
    ReportResponse,
    ReportStatusRequest,
    VoteRequest,
    VoteResponse,
)
from pulseearn.polls.service import create_poll, get_poll_by_slug, get_user_votes, list_polls, vote_on_poll
from pulseearn.rewards.service import get_points

router = APIRouter(prefix="/api/v1/polls", tags=["Polls"])


def _to_response(poll: Poll, votes: dict[int, int]) -> PollResponse:
    response = PollResponse.model_validate(poll)
    if poll.id in votes:
        response.has_voted = True
        response.user_vote = votes[poll.id]
    return response


@router.get("", response_model=PollListResponse)
async def get_polls(
    poll_type: str | None = Query(None, alias="type", pattern="^(global|country)$"),
    country: str | None = Query(None),
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> PollListResponse:
    polls = await list_polls(db, poll_type, country, limit, offset)
    votes = await get_user_votes(db, profile.id, [p.id for p in polls])
    return PollListResponse(
        polls=[_to_response(p, votes) for p in polls],
        limit=limit,
        offset=offset,
    )


@router.post("", response_model=PollResponse, status_code=201)
async def create(
    body: PollCreateRequest,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> PollResponse:
    try:
        poll = await create_poll(
            db,
            profile.id,
            body.title,
            body.options,
            description=body.description,
            poll_type=body.type,
            country=body.country,
            category=body.category,
            start_date=body.start_date,
            active_until=body.active_until,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return PollResponse.model_validate(poll)


# ── Reports (must precede /{slug}) ──


@router.post("/reports", response_model=ReportResponse, status_code=201)
async def report(
    body: ReportCreateRequest,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> ReportResponse:
    try:
        created = await report_content(db, profile.id, body.content_type, body.content_id, body.reason)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return ReportResponse.model_validate(created)


@router.get("/reports", response_model=list[ReportResponse])
async def get_reports(
    status_filter: str | None = Query(None, alias="status"),
    content_type: str | None = Query(None, pattern="^(poll|comment)$"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    moderator: Profile = Depends(require_role("moderator")),
    db: AsyncSession = Depends(get_session),
) -> list[ReportResponse]:
    try:
        reports = await list_reports(db, status_filter, content_type, limit, offset)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return [ReportResponse.model_validate(r) for r in reports]


@router.patch("/reports/{report_id}", response_model=ReportResponse)
async def set_report_status(
    report_id: int,
    body: ReportStatusRequest,
    moderator: Profile = Depends(require_role("moderator")),
    db: AsyncSession = Depends(get_session),
) -> ReportResponse:
    try:
        updated = await update_report_status(db, report_id, body.status, moderator.id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    await db.commit()
    return ReportResponse.model_validate(updated)


@router.get("/{slug}", response_model=PollResponse)
async def get_poll(
    slug: str,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> PollResponse:
    try:
        poll = await get_poll_by_slug(db, slug)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return _to_response(poll, await get_user_votes(db, profile.id, [poll.id]))


@router.post("/{poll_id}/vote", response_model=VoteResponse)
async def vote(
    poll_id: int,
    body: VoteRequest,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> VoteResponse:
    try:
        result = await vote_on_poll(db, profile.id, poll_id, body.option_index)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    total = await get_points(db, profile.id)
    await db.commit()
    poll = result.pop("poll")
    return VoteResponse(
        **result,
        total_points=total,
        poll=_to_response(poll, {poll.id: body.option_index}),
    )


# ── Comments ──


@router.get("/{poll_id}/comments", response_model=list[CommentThreadResponse])
async def get_comments(
    poll_id: int,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> list[CommentThreadResponse]:
    try:
        threads = await list_comments(db, poll_id, limit, offset)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return [
        CommentThreadResponse(
            **CommentResponse.from_entry(t).model_dump(),
            replies=[CommentResponse.from_entry(r) for r in t["replies"]],
        )
        for t in threads
    ]


@router.post("/{poll_id}/comments", response_model=CommentResponse, status_code=201)
async def add_comment(
    poll_id: int,
    body: CommentCreateRequest,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> CommentResponse:
    try:
        comment = await create_comment(db, profile.id, poll_id, body.comment_text, body.parent_comment_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return CommentResponse.from_entry(
        {"comment": comment, "author_name": profile.name, "author_avatar_url": profile.avatar_url}
    )


@router.patch("/comments/{comment_id}", response_model=CommentResponse)
async def edit_comment(
    comment_id: int,
    body: CommentUpdateRequest,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> CommentResponse:
    try:
        comment = await update_comment(db, profile, comment_id, body.comment_text)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return CommentResponse.from_entry({"comment": comment})


@router.delete("/comments/{comment_id}", status_code=204)
async def remove_comment(
    comment_id: int,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> Response:
    try:
        await delete_comment(db, profile, comment_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    await db.commit()
    return Response(status_code=204)


# ── Admin endpoints ──


@router.post("/generate", response_model=GeneratePollsResponse)
async def generate(
    body: GeneratePollsRequest,
    admin: Profile = Depends(require_role("admin")),
    client: AsyncOpenAI | None = Depends(get_openai_client),
    db: AsyncSession = Depends(get_session),
) -> GeneratePollsResponse:
    """Generate polls with the configured model. ``adminId`` must name the calling admin."""
    if body.admin_id is None:
        raise HTTPException(status_code=400, detail="Admin ID is required")
    if body.admin_id != admin.id:
        raise HTTPException(status_code=403, detail="Unauthorized: Only admins can generate polls")
    try:
        result = await generate_polls(
            db,
            client,
            body.admin_id,
            num_polls=body.num_polls,
            categories=body.categories,
            topic=body.topic,
            country=body.country,
        )
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    except PollGenerationError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e
    await db.commit()
    return GeneratePollsResponse(
        success=result["success"],
        created_polls=[PollResponse.model_validate(p) for p in result["created_polls"]],
        errors=result["errors"],
        total_created=result["total_created"],
        total_errors=result["total_errors"],
    )
