"""
Poll comments and content reports.

Comments form two-level threads: a reply to a reply is attached to the thread's
top-level comment. Authors edit and delete their own comments; moderators and
above can edit or delete any. Deletion is soft. Reports against a poll or a
comment wait in a queue that moderators work through.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import select

from pulseearn.auth.roles import has_role
from pulseearn.db.models import ContentReport, Poll, PollComment, Profile
from pulseearn.errors import ConflictError, NotFoundError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

CONTENT_TYPES = ("poll", "comment")

# Current status -> statuses a moderator may move it to
REPORT_TRANSITIONS: dict[str, tuple[str, ...]] = {
    "pending": ("reviewed", "resolved", "rejected"),
    "reviewed": ("resolved", "rejected"),
    "resolved": (),
    "rejected": (),
}


async def _active_poll(db: AsyncSession, poll_id: int) -> Poll:
    poll = (
        await db.execute(select(Poll).where(Poll.id == poll_id).where(Poll.is_active == True))  # noqa: E712
    ).scalar_one_or_none()
    if poll is None:
        msg = "Poll not found"
        raise NotFoundError(msg)
    return poll


async def _active_comment(db: AsyncSession, comment_id: int) -> PollComment:
    comment = await db.get(PollComment, comment_id)
    if comment is None or not comment.is_active:
        msg = "Comment not found"
        raise NotFoundError(msg)
    return comment


def _with_author(comment: PollComment, author: Profile | None) -> dict[str, Any]:
    return {
        "comment": comment,
        "author_name": author.name if author else None,
        "author_avatar_url": author.avatar_url if author else None,
    }


async def list_comments(db: AsyncSession, poll_id: int, limit: int = 50, offset: int = 0) -> list[dict[str, Any]]:
    """Top-level comments newest first, each with its replies oldest first."""
    await _active_poll(db, poll_id)
    top_level = (
        await db.execute(
            select(PollComment, Profile)
            .outerjoin(Profile, Profile.id == PollComment.user_id)
            .where(PollComment.poll_id == poll_id)
            .where(PollComment.parent_comment_id.is_(None))
            .where(PollComment.is_active == True)  # noqa: E712
            .order_by(PollComment.created_at.desc(), PollComment.id.desc())
            .offset(offset)
            .limit(limit)
        )
    ).all()
    parent_ids = [comment.id for comment, _ in top_level]

    replies: dict[int, list[dict[str, Any]]] = {pid: [] for pid in parent_ids}
    if parent_ids:
        rows = await db.execute(
            select(PollComment, Profile)
            .outerjoin(Profile, Profile.id == PollComment.user_id)
            .where(PollComment.parent_comment_id.in_(parent_ids))
            .where(PollComment.is_active == True)  # noqa: E712
            .order_by(PollComment.created_at, PollComment.id)
        )
        for reply, author in rows.all():
            replies[reply.parent_comment_id].append(_with_author(reply, author))

    return [
        {**_with_author(comment, author), "replies": replies[comment.id]}
        for comment, author in top_level
    ]


async def create_comment(
    db: AsyncSession,
    user_id: int,
    poll_id: int,
    text: str,
    parent_comment_id: int | None = None,
) -> PollComment:
    """
    Comment on a poll, or reply to a comment on the same poll.

    Raises:
        NotFoundError: The poll or the parent comment does not exist.
        ValueError: Blank text, or a parent from another poll.
    """
    text = text.strip()
    if not text:
        msg = "Comment cannot be empty"
        raise ValueError(msg)
    await _active_poll(db, poll_id)

    if parent_comment_id is not None:
        parent = await _active_comment(db, parent_comment_id)
        if parent.poll_id != poll_id:
            msg = "Parent comment belongs to another poll"
            raise ValueError(msg)
        parent_comment_id = parent.parent_comment_id or parent.id

    now = datetime.now(timezone.utc)
    comment = PollComment(
        poll_id=poll_id,
        user_id=user_id,
        parent_comment_id=parent_comment_id,
        comment_text=text,
        created_at=now,
        updated_at=now,
    )
    db.add(comment)
    await db.flush()
    logger.info("poll_comment_created", user_id=user_id, poll_id=poll_id, comment_id=comment.id)
    return comment


def _check_can_modify(comment: PollComment, actor: Profile, action: str) -> None:
    if comment.user_id != actor.id and not has_role(actor.role, "moderator"):
        msg = f"You are not authorized to {action} this comment"
        raise PermissionError(msg)


async def update_comment(db: AsyncSession, actor: Profile, comment_id: int, text: str) -> PollComment:
    """
    Replace a comment's text.

    Raises:
        NotFoundError: Unknown or deleted comment.
        PermissionError: Neither the author nor a moderator.
        ValueError: Blank text.
    """
    comment = await _active_comment(db, comment_id)
    _check_can_modify(comment, actor, "update")
    text = text.strip()
    if not text:
        msg = "Comment cannot be empty"
        raise ValueError(msg)
    comment.comment_text = text
    comment.updated_at = datetime.now(timezone.utc)
    await db.flush()
    return comment


async def delete_comment(db: AsyncSession, actor: Profile, comment_id: int) -> None:
    comment = await _active_comment(db, comment_id)
    _check_can_modify(comment, actor, "delete")
    comment.is_active = False
    comment.updated_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("poll_comment_deleted", comment_id=comment_id, actor_id=actor.id)


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


async def report_content(
    db: AsyncSession,
    reporter_id: int,
    content_type: str,
    content_id: int,
    reason: str,
) -> ContentReport:
    """
    File a report against a poll or a comment.

    Raises:
        ValueError: Unknown content type or blank reason.
        NotFoundError: The reported content does not exist.
        ConflictError: The reporter already has an open report on it.
    """
    if content_type not in CONTENT_TYPES:
        msg = f"Unknown content type: {content_type}"
        raise ValueError(msg)
    reason = reason.strip()
    if not reason:
        msg = "A reason is required"
        raise ValueError(msg)

    model = Poll if content_type == "poll" else PollComment
    if await db.get(model, content_id) is None:
        msg = f"{content_type.capitalize()} not found"
        raise NotFoundError(msg)

    open_report = (
        await db.execute(
            select(ContentReport.id)
            .where(ContentReport.reporter_id == reporter_id)
            .where(ContentReport.content_type == content_type)
            .where(ContentReport.content_id == content_id)
            .where(ContentReport.status.in_(("pending", "reviewed")))
        )
    ).first()
    if open_report is not None:
        msg = "You have already reported this content"
        raise ConflictError(msg)

    now = datetime.now(timezone.utc)
    report = ContentReport(
        reporter_id=reporter_id,
        content_type=content_type,
        content_id=content_id,
        reason=reason,
        status="pending",
        created_at=now,
        updated_at=now,
    )
    db.add(report)
    await db.flush()
    logger.info("content_reported", reporter_id=reporter_id, content_type=content_type, content_id=content_id)
    return report


async def list_reports(
    db: AsyncSession,
    status: str | None = None,
    content_type: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[ContentReport]:
    if status is not None and status not in REPORT_TRANSITIONS:
        msg = f"Unknown report status: {status}"
        raise ValueError(msg)
    stmt = (
        select(ContentReport)
        .order_by(ContentReport.created_at.desc(), ContentReport.id.desc())
        .offset(offset)
        .limit(limit)
    )
    if status:
        stmt = stmt.where(ContentReport.status == status)
    if content_type:
        stmt = stmt.where(ContentReport.content_type == content_type)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def update_report_status(db: AsyncSession, report_id: int, status: str, moderator_id: int) -> ContentReport:
    report = await db.get(ContentReport, report_id)
    if report is None:
        msg = "Report not found"
        raise NotFoundError(msg)
    if status not in REPORT_TRANSITIONS:
        msg = f"Unknown report status: {status}"
        raise ValueError(msg)
    if status not in REPORT_TRANSITIONS[report.status]:
        msg = f"Cannot change report status from {report.status} to {status}"
        raise ValueError(msg)
    report.status = status
    report.reviewed_by = moderator_id
    report.updated_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("content_report_updated", report_id=report_id, status=status, moderator_id=moderator_id)
    return report
