"""Leaderboard endpoint tests."""

from httpx import AsyncClient
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from pulseearn.db.models import Profile
from tests.conftest import auth_headers, register


async def _set_points(db: AsyncSession, user_id: int, points: int) -> None:
    await db.execute(update(Profile).where(Profile.id == user_id).values(points=points))
    await db.commit()


async def _populate(client: AsyncClient, db: AsyncSession) -> dict[str, dict]:
    users = {}
    for email, country, points in [
        ("alice@example.com", "US", 500),
        ("bob@example.com", "KE", 900),
        ("carol@example.com", "US", 500),
        ("dave@example.com", "NG", 100),
    ]:
        tokens = await register(client, email=email, country=country)
        await _set_points(db, tokens["user"]["id"], points)
        users[email.split("@")[0]] = tokens
    return users


class TestLeaderboard:
    async def test_global_order_with_signup_tiebreak(self, client: AsyncClient, db_session: AsyncSession):
        users = await _populate(client, db_session)
        response = await client.get("/api/v1/leaderboard", headers=auth_headers(users["alice"]))
        assert response.status_code == 200
        entries = response.json()
        assert [(e["rank"], e["name"], e["points"]) for e in entries] == [
            (1, "bob", 900),
            (2, "alice", 500),
            (3, "carol", 500),
            (4, "dave", 100),
        ]

    async def test_country_filter_and_limit(self, client: AsyncClient, db_session: AsyncSession):
        users = await _populate(client, db_session)
        response = await client.get(
            "/api/v1/leaderboard",
            params={"country": "US", "limit": 1},
            headers=auth_headers(users["dave"]),
        )
        entries = response.json()
        assert len(entries) == 1
        assert entries[0]["name"] == "alice"
        assert entries[0]["rank"] == 1

    async def test_my_rank_counts_strictly_ahead(self, client: AsyncClient, db_session: AsyncSession):
        users = await _populate(client, db_session)
        response = await client.get("/api/v1/leaderboard/me", headers=auth_headers(users["carol"]))
        data = response.json()
        assert data["rank"] == 2
        assert data["country_rank"] == 1
        assert data["points"] == 500

    async def test_stats(self, client: AsyncClient, db_session: AsyncSession):
        users = await _populate(client, db_session)
        response = await client.get("/api/v1/leaderboard/stats", headers=auth_headers(users["bob"]))
        data = response.json()
        assert data["total_users"] == 4
        assert data["average_points"] == 500
        assert data["top_countries"][0] == {"country": "US", "user_count": 2}

    async def test_requires_auth(self, client: AsyncClient):
        response = await client.get("/api/v1/leaderboard")
        assert response.status_code in (401, 403)
