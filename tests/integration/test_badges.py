"""Badge catalog, progress and awarding tests."""

from httpx import AsyncClient
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from pulseearn.db.models import Poll, Profile
from tests.conftest import auth_headers

BADGES = "/api/v1/profiles/badges"
MY_BADGES = "/api/v1/profiles/me/badges"


async def _add_poll(db: AsyncSession) -> Poll:
    poll = Poll(
        title="Tea or coffee?",
        options=[{"text": "Tea", "votes": 0}, {"text": "Coffee", "votes": 0}],
        type="global",
        slug="tea-or-coffee",
        category="Lifestyle",
    )
    db.add(poll)
    await db.commit()
    return poll


def _entry(progress: list[dict], slug: str) -> dict:
    return next(e for e in progress if e["badge"]["slug"] == slug)


class TestCatalog:
    async def test_seeded_catalog(self, authed_client: AsyncClient):
        response = await authed_client.get(BADGES)
        assert response.status_code == 200
        slugs = [b["slug"] for b in response.json()]
        assert len(slugs) == 12
        assert slugs[:3] == ["first_vote", "poll_enthusiast", "poll_creator"]
        assert slugs[-1] == "early_adopter"

    async def test_requires_auth(self, client: AsyncClient):
        response = await client.get(BADGES)
        assert response.status_code in (401, 403)


class TestProgress:
    async def test_fresh_user_has_nothing(self, authed_client: AsyncClient):
        response = await authed_client.get(MY_BADGES)
        assert response.status_code == 200
        progress = response.json()
        assert len(progress) == 12
        assert not any(e["earned"] for e in progress)
        assert _entry(progress, "point_collector")["max_progress"] == 1000

    async def test_vote_earns_first_vote(self, authed_client: AsyncClient, db_session: AsyncSession):
        poll = await _add_poll(db_session)
        vote = await authed_client.post(f"/api/v1/polls/{poll.id}/vote", json={"option_index": 1})
        assert vote.status_code == 200

        progress = (await authed_client.get(MY_BADGES)).json()
        first = _entry(progress, "first_vote")
        assert first["earned"] is True
        assert first["earned_at"] is not None
        enthusiast = _entry(progress, "poll_enthusiast")
        assert enthusiast["earned"] is False
        assert (enthusiast["progress"], enthusiast["max_progress"]) == (1, 25)

        me = await authed_client.get("/api/v1/profiles/me")
        assert me.json()["badges"] == ["first_vote"]


class TestCheck:
    async def test_awards_newly_met_badges_once(
        self, authed_client: AsyncClient, user_tokens: dict, db_session: AsyncSession
    ):
        await db_session.execute(update(Profile).where(Profile.id == user_tokens["user"]["id"]).values(points=1200))
        await db_session.commit()

        first = await authed_client.post(f"{MY_BADGES}/check")
        assert first.status_code == 200
        assert first.json()["awarded"] == ["point_collector"]
        assert first.json()["badges"] == ["point_collector"]

        second = await authed_client.post(f"{MY_BADGES}/check")
        assert second.json()["awarded"] == []
        assert second.json()["badges"] == ["point_collector"]

        entry = _entry((await authed_client.get(MY_BADGES)).json(), "point_collector")
        assert entry["earned"] is True
        assert entry["progress"] == 1000


class TestAdmin:
    async def test_create_badge_and_award_it(
        self, client: AsyncClient, admin_tokens: dict, user_tokens: dict, db_session: AsyncSession
    ):
        created = await client.post(
            BADGES,
            json={
                "slug": "big_saver",
                "name": "Big Saver",
                "description": "Hold 50 points",
                "criteria_type": "total_points",
                "threshold": 50,
                "sort_order": 20,
            },
            headers=auth_headers(admin_tokens),
        )
        assert created.status_code == 201, created.text
        assert created.json()["slug"] == "big_saver"

        await db_session.execute(update(Profile).where(Profile.id == user_tokens["user"]["id"]).values(points=60))
        await db_session.commit()
        check = await client.post(f"{MY_BADGES}/check", headers=auth_headers(user_tokens))
        assert check.json()["awarded"] == ["big_saver"]

    async def test_duplicate_slug_conflicts(self, client: AsyncClient, admin_tokens: dict):
        response = await client.post(
            BADGES,
            json={"slug": "first_vote", "name": "Again", "criteria_type": "poll_votes"},
            headers=auth_headers(admin_tokens),
        )
        assert response.status_code == 409
        assert response.json()["detail"] == "Badge slug already exists"

    async def test_unknown_criteria_rejected(self, client: AsyncClient, admin_tokens: dict):
        response = await client.post(
            BADGES,
            json={"slug": "karma_king", "name": "Karma King", "criteria_type": "karma"},
            headers=auth_headers(admin_tokens),
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Unknown badge criteria: karma"

    async def test_deactivate_hides_badge(self, client: AsyncClient, admin_tokens: dict):
        headers = auth_headers(admin_tokens)
        badges = (await client.get(BADGES, headers=headers)).json()
        jackpot = next(b for b in badges if b["slug"] == "jackpot")

        response = await client.patch(
            f"{BADGES}/{jackpot['id']}", json={"is_active": False, "threshold": 2}, headers=headers
        )
        assert response.status_code == 200
        assert response.json()["threshold"] == 2

        slugs = [b["slug"] for b in (await client.get(BADGES, headers=headers)).json()]
        assert "jackpot" not in slugs
        assert len(slugs) == 11

        missing = await client.patch(f"{BADGES}/999999", json={"name": "Ghost"}, headers=headers)
        assert missing.status_code == 404

    async def test_regular_user_forbidden(self, authed_client: AsyncClient):
        response = await authed_client.post(
            BADGES, json={"slug": "mine", "name": "Mine", "criteria_type": "poll_votes"}
        )
        assert response.status_code == 403
