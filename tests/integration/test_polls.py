"""Poll listing, voting and admin generation tests."""

import json
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi import FastAPI
from httpx import AsyncClient
from openai import APIConnectionError
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pulseearn.db.models import Poll
from pulseearn.polls.generator import get_openai_client
from tests.conftest import auth_headers, register


async def _add_poll(
    db: AsyncSession,
    title: str = "What is your favorite season?",
    slug: str | None = None,
    poll_type: str = "global",
    country: str | None = None,
    start_date: datetime | None = None,
    active_until: datetime | None = None,
    created_at: datetime | None = None,
) -> Poll:
    poll = Poll(
        title=title,
        options=[{"text": t, "votes": 0} for t in ("Spring", "Summer", "Autumn", "Winter")],
        type=poll_type,
        country=country,
        slug=slug or title.lower().replace(" ", "-").strip("?"),
        category="Lifestyle",
        start_date=start_date,
        active_until=active_until,
        created_at=created_at or datetime.now(timezone.utc),
    )
    db.add(poll)
    await db.commit()
    return poll


def _fake_openai(content: str) -> SimpleNamespace:
    completion = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=AsyncMock(return_value=completion))))


class TestListing:
    async def test_newest_first(self, authed_client: AsyncClient, db_session: AsyncSession):
        now = datetime.now(timezone.utc)
        await _add_poll(db_session, title="Older poll", created_at=now - timedelta(hours=2))
        await _add_poll(db_session, title="Newer poll", created_at=now)

        response = await authed_client.get("/api/v1/polls")
        assert response.status_code == 200
        data = response.json()
        assert [p["title"] for p in data["polls"]] == ["Newer poll", "Older poll"]
        assert data["polls"][0]["has_voted"] is False

    async def test_window_filtering(self, authed_client: AsyncClient, db_session: AsyncSession):
        now = datetime.now(timezone.utc)
        await _add_poll(db_session, title="Expired", active_until=now - timedelta(days=1))
        await _add_poll(db_session, title="Scheduled", start_date=now + timedelta(days=1))
        await _add_poll(db_session, title="Running", active_until=now + timedelta(days=1))

        response = await authed_client.get("/api/v1/polls")
        assert [p["title"] for p in response.json()["polls"]] == ["Running"]

    async def test_type_and_country_filters(self, authed_client: AsyncClient, db_session: AsyncSession):
        await _add_poll(db_session, title="Global poll")
        await _add_poll(db_session, title="Kenya poll", poll_type="country", country="KE")

        response = await authed_client.get("/api/v1/polls", params={"type": "country", "country": "KE"})
        assert [p["title"] for p in response.json()["polls"]] == ["Kenya poll"]

        bad = await authed_client.get("/api/v1/polls", params={"type": "regional"})
        assert bad.status_code == 422

    async def test_get_by_slug(self, authed_client: AsyncClient, db_session: AsyncSession):
        await _add_poll(db_session, title="Tea or coffee", slug="tea-or-coffee")
        response = await authed_client.get("/api/v1/polls/tea-or-coffee")
        assert response.status_code == 200
        assert response.json()["title"] == "Tea or coffee"

        missing = await authed_client.get("/api/v1/polls/no-such-poll")
        assert missing.status_code == 404


class TestVoting:
    async def test_vote_updates_counts_and_points(self, authed_client: AsyncClient, db_session: AsyncSession):
        poll = await _add_poll(db_session)
        response = await authed_client.post(f"/api/v1/polls/{poll.id}/vote", json={"option_index": 2})
        assert response.status_code == 200
        data = response.json()
        assert data["points_earned"] == 50
        assert data["total_points"] == 50
        assert data["message"] == "Vote recorded successfully! You earned 50 points."
        assert data["poll"]["total_votes"] == 1
        assert data["poll"]["options"][2]["votes"] == 1
        assert data["poll"]["user_vote"] == 2

        listing = await authed_client.get("/api/v1/polls")
        listed = listing.json()["polls"][0]
        assert listed["has_voted"] is True
        assert listed["user_vote"] == 2

        profile = await authed_client.get("/api/v1/profiles/me")
        assert profile.json()["badges"] == ["first_vote"]

    async def test_double_vote_conflicts(self, authed_client: AsyncClient, db_session: AsyncSession):
        poll = await _add_poll(db_session)
        await authed_client.post(f"/api/v1/polls/{poll.id}/vote", json={"option_index": 0})

        again = await authed_client.post(f"/api/v1/polls/{poll.id}/vote", json={"option_index": 1})
        assert again.status_code == 409
        assert again.json()["detail"] == "You have already voted on this poll"

        profile = await authed_client.get("/api/v1/profiles/me")
        assert profile.json()["points"] == 50

    async def test_votes_from_two_users(self, client: AsyncClient, db_session: AsyncSession):
        poll = await _add_poll(db_session)
        for email, option in [("a@example.com", 0), ("b@example.com", 0)]:
            tokens = await register(client, email=email)
            response = await client.post(
                f"/api/v1/polls/{poll.id}/vote",
                json={"option_index": option},
                headers=auth_headers(tokens),
            )
            assert response.status_code == 200
        assert response.json()["poll"]["options"][0]["votes"] == 2
        assert response.json()["poll"]["total_votes"] == 2

    async def test_invalid_option(self, authed_client: AsyncClient, db_session: AsyncSession):
        poll = await _add_poll(db_session)
        response = await authed_client.post(f"/api/v1/polls/{poll.id}/vote", json={"option_index": 4})
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid vote option"

    async def test_expired_poll(self, authed_client: AsyncClient, db_session: AsyncSession):
        poll = await _add_poll(db_session, active_until=datetime.now(timezone.utc) - timedelta(minutes=1))
        response = await authed_client.post(f"/api/v1/polls/{poll.id}/vote", json={"option_index": 0})
        assert response.status_code == 400
        assert response.json()["detail"] == "Poll has expired"

    async def test_not_started_poll(self, authed_client: AsyncClient, db_session: AsyncSession):
        poll = await _add_poll(db_session, start_date=datetime.now(timezone.utc) + timedelta(hours=1))
        response = await authed_client.post(f"/api/v1/polls/{poll.id}/vote", json={"option_index": 0})
        assert response.status_code == 400
        assert response.json()["detail"] == "Poll has not started yet"

    async def test_unknown_poll(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/polls/9999/vote", json={"option_index": 0})
        assert response.status_code == 404


class TestGenerate:
    @pytest.fixture
    def use_openai(self, app: FastAPI):
        def _install(client: object) -> None:
            app.dependency_overrides[get_openai_client] = lambda: client

        yield _install
        app.dependency_overrides.clear()

    async def test_generate_creates_polls(
        self, client: AsyncClient, admin_tokens: dict, db_session: AsyncSession, use_openai
    ):
        content = json.dumps({
            "polls": [
                {"title": "Best way to spend a weekend?", "options": ["Hiking", "Reading"], "category": "Lifestyle"},
                {"title": "Only one option?", "options": ["Yes"], "category": "Broken"},
            ]
        })
        fake = _fake_openai(content)
        use_openai(fake)

        response = await client.post(
            "/api/v1/polls/generate",
            json={"adminId": admin_tokens["user"]["id"], "numPolls": 2, "topic": "weekends"},
            headers=auth_headers(admin_tokens),
        )
        assert response.status_code == 200
        data = response.json()
        assert data["totalCreated"] == 1
        assert data["totalErrors"] == 1
        assert data["createdPolls"][0]["slug"] == "best-way-to-spend-a-weekend"
        assert data["createdPolls"][0]["type"] == "global"
        assert "2-6 options" in data["errors"][0]["error"]

        kwargs = fake.chat.completions.create.await_args.kwargs
        assert "about weekends" in kwargs["messages"][1]["content"]

        count = (await db_session.execute(select(func.count()).select_from(Poll))).scalar_one()
        assert count == 1

    async def test_duplicate_slug_reported_per_poll(self, client: AsyncClient, admin_tokens: dict, use_openai):
        poll = {"title": "Cats or dogs?", "options": ["Cats", "Dogs"], "category": "Pets"}
        use_openai(_fake_openai(json.dumps({"polls": [poll, poll]})))

        response = await client.post(
            "/api/v1/polls/generate",
            json={"adminId": admin_tokens["user"]["id"], "numPolls": 2},
            headers=auth_headers(admin_tokens),
        )
        data = response.json()
        assert data["totalCreated"] == 1
        assert data["totalErrors"] == 1

    async def test_country_polls(self, client: AsyncClient, admin_tokens: dict, use_openai):
        poll = {"title": "Favorite local dish?", "options": ["Ugali", "Pilau"], "category": "Food"}
        use_openai(_fake_openai(json.dumps([poll])))

        response = await client.post(
            "/api/v1/polls/generate",
            json={"adminId": admin_tokens["user"]["id"], "country": "KE"},
            headers=auth_headers(admin_tokens),
        )
        created = response.json()["createdPolls"][0]
        assert created["type"] == "country"
        assert created["country"] == "KE"

    async def test_non_admin_forbidden(self, client: AsyncClient, user_tokens: dict, use_openai):
        use_openai(_fake_openai("{}"))
        response = await client.post(
            "/api/v1/polls/generate",
            json={"adminId": user_tokens["user"]["id"]},
            headers=auth_headers(user_tokens),
        )
        assert response.status_code == 403

    async def test_admin_id_required(self, client: AsyncClient, admin_tokens: dict, use_openai):
        use_openai(_fake_openai("{}"))
        response = await client.post("/api/v1/polls/generate", json={}, headers=auth_headers(admin_tokens))
        assert response.status_code == 400
        assert response.json()["detail"] == "Admin ID is required"

    async def test_admin_id_must_match_caller(self, client: AsyncClient, admin_tokens: dict, use_openai):
        use_openai(_fake_openai("{}"))
        response = await client.post(
            "/api/v1/polls/generate",
            json={"adminId": admin_tokens["user"]["id"] + 100},
            headers=auth_headers(admin_tokens),
        )
        assert response.status_code == 403

    async def test_missing_api_key(self, client: AsyncClient, admin_tokens: dict, use_openai):
        use_openai(None)
        response = await client.post(
            "/api/v1/polls/generate",
            json={"adminId": admin_tokens["user"]["id"]},
            headers=auth_headers(admin_tokens),
        )
        assert response.status_code == 500
        assert response.json()["detail"] == "OpenAI API key not configured"

    async def test_unparseable_output(self, client: AsyncClient, admin_tokens: dict, use_openai):
        use_openai(_fake_openai("not json"))
        response = await client.post(
            "/api/v1/polls/generate",
            json={"adminId": admin_tokens["user"]["id"]},
            headers=auth_headers(admin_tokens),
        )
        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to parse OpenAI response"

    async def test_upstream_failure(self, client: AsyncClient, admin_tokens: dict, use_openai):
        fake = _fake_openai("{}")
        fake.chat.completions.create.side_effect = APIConnectionError(
            request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        )
        use_openai(fake)
        response = await client.post(
            "/api/v1/polls/generate",
            json={"adminId": admin_tokens["user"]["id"]},
            headers=auth_headers(admin_tokens),
        )
        assert response.status_code == 500
        assert response.json()["detail"].startswith("OpenAI request failed")
