"""
AI-assisted poll generation.

The caller's admin role is re-read from the database for every run. Each
generated poll is inserted in its own savepoint so one bad poll does not
discard the rest.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from openai import AsyncOpenAI, OpenAIError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from pulseearn.config import get_settings
from pulseearn.db.models import Poll, Profile
from pulseearn.polls.slugs import slugify

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

SYSTEM_PROMPT = (
    "You are a helpful assistant that generates engaging poll questions. "
    "Your responses should be in valid JSON format only, with no additional text."
)

MIN_OPTIONS = 2
MAX_OPTIONS = 6


class PollGenerationError(RuntimeError):
    """Poll generation could not run or the model output was unusable."""


def get_openai_client() -> AsyncOpenAI | None:
    """Build the OpenAI client, or None when no API key is configured (FastAPI dependency)."""
    settings = get_settings()
    if not settings.openai_api_key:
        return None
    return AsyncOpenAI(api_key=settings.openai_api_key)


def build_prompt(num_polls: int, topic: str = "", categories: list[str] | None = None) -> str:
    prompt = f"Generate {num_polls} engaging and neutral poll questions"
    if topic:
        prompt += f" about {topic}"
    if categories:
        prompt += f" in the following categories: {', '.join(categories)}"
    prompt += (
        ". Each poll should have a title, 2-6 options, and a category.\n\n"
        "The polls should be:\n"
        "1. Neutral and unbiased\n"
        "2. Engaging and thought-provoking\n"
        "3. Appropriate for a general audience\n"
        "4. Not politically divisive or controversial\n"
        "5. Clear and concise\n\n"
        'Return a JSON object of the form {"polls": [{"title": "Poll question here?", '
        '"options": ["Option 1", "Option 2"], "category": "Category Name"}]}.\n'
        "Make sure each poll has a different category if multiple categories were provided."
    )
    return prompt


def parse_polls(content: str) -> list[dict[str, Any]]:
    """Accept either a bare list or an object with a "polls" list."""
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError as e:
        msg = "Failed to parse OpenAI response"
        raise PollGenerationError(msg) from e
    polls = parsed.get("polls", parsed) if isinstance(parsed, dict) else parsed
    if not isinstance(polls, list):
        msg = "Failed to parse OpenAI response"
        raise PollGenerationError(msg)
    return polls


async def verify_admin(db: AsyncSession, admin_id: int) -> None:
    """Raise PermissionError unless ``admin_id`` currently holds the admin role."""
    role = (await db.execute(select(Profile.role).where(Profile.id == admin_id))).scalar_one_or_none()
    if role != "admin":
        msg = "Unauthorized: Only admins can generate polls"
        raise PermissionError(msg)


def _poll_error(poll_data: Any, message: str) -> dict[str, Any]:
    return {"poll": poll_data, "error": message}


async def generate_polls(
    db: AsyncSession,
    client: AsyncOpenAI | None,
    admin_id: int,
    num_polls: int = 1,
    categories: list[str] | None = None,
    topic: str = "",
    country: str | None = None,
) -> dict[str, Any]:
    """
    Ask the model for polls and insert them.

    Raises:
        PermissionError: If ``admin_id`` is not an admin.
        PollGenerationError: If no API key is configured, the call fails or the output is unparseable.
    """
    await verify_admin(db, admin_id)
    if client is None:
        msg = "OpenAI API key not configured"
        raise PollGenerationError(msg)

    settings = get_settings()
    try:
        completion = await client.chat.completions.create(
            model=settings.openai_model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(num_polls, topic, categories)},
            ],
            response_format={"type": "json_object"},
            temperature=settings.openai_temperature,
        )
    except OpenAIError as e:
        logger.exception("poll_generation_failed", admin_id=admin_id)
        msg = f"OpenAI request failed: {e}"
        raise PollGenerationError(msg) from e

    polls_data = parse_polls(completion.choices[0].message.content or "")

    created: list[Poll] = []
    errors: list[dict[str, Any]] = []
    now = datetime.now(timezone.utc)
    for poll_data in polls_data:
        if not isinstance(poll_data, dict) or not str(poll_data.get("title") or "").strip():
            errors.append(_poll_error(poll_data, "Poll is missing a title"))
            continue
        options = [str(o) for o in poll_data.get("options") or [] if str(o).strip()]
        if not MIN_OPTIONS <= len(options) <= MAX_OPTIONS:
            errors.append(_poll_error(poll_data, f"Poll needs {MIN_OPTIONS}-{MAX_OPTIONS} options"))
            continue

        title = str(poll_data["title"]).strip()
        poll = Poll(
            title=title,
            description=poll_data.get("description") or None,
            options=[{"text": text, "votes": 0} for text in options],
            type="country" if country else "global",
            country=country,
            slug=slugify(title),
            category=poll_data.get("category") or "General",
            created_by=admin_id,
            is_active=True,
            total_votes=0,
            created_at=now,
            updated_at=now,
        )
        try:
            async with db.begin_nested():
                db.add(poll)
        except IntegrityError as e:
            errors.append(_poll_error(poll_data, str(e.orig)))
            continue
        created.append(poll)

    logger.info("polls_generated", admin_id=admin_id, created=len(created), errors=len(errors))
    return {
        "success": True,
        "created_polls": created,
        "errors": errors,
        "total_created": len(created),
        "total_errors": len(errors),
    }
