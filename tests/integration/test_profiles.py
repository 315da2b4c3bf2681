"""Profile and referral endpoint tests."""

from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pulseearn.db.models import RewardHistory
from tests.conftest import auth_headers, register


class TestProfile:
    async def test_get_my_profile(self, authed_client: AsyncClient, user_tokens: dict):
        response = await authed_client.get("/api/v1/profiles/me")
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == user_tokens["user"]["id"]
        assert data["badges"] == []

    async def test_patch_updates_only_given_fields(self, authed_client: AsyncClient):
        response = await authed_client.patch("/api/v1/profiles/me", json={"country": "NG"})
        assert response.status_code == 200
        data = response.json()
        assert data["country"] == "NG"
        assert data["name"] == "Test User"

    async def test_patch_trims_name(self, authed_client: AsyncClient):
        response = await authed_client.patch("/api/v1/profiles/me", json={"name": "  Renamed  "})
        assert response.json()["name"] == "Renamed"

    async def test_blank_name_rejected(self, authed_client: AsyncClient):
        response = await authed_client.patch("/api/v1/profiles/me", json={"name": "   "})
        assert response.status_code == 400
        assert response.json()["detail"] == "Name cannot be empty"

    async def test_public_profile_hides_private_fields(self, client: AsyncClient, user_tokens: dict):
        other = await register(client, email="other@example.com")
        response = await client.get(
            f"/api/v1/profiles/{user_tokens['user']['id']}",
            headers=auth_headers(other),
        )
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Test User"
        assert "email" not in data
        assert "referral_code" not in data

    async def test_public_profile_not_found(self, authed_client: AsyncClient):
        response = await authed_client.get("/api/v1/profiles/999999")
        assert response.status_code == 404


class TestReferrals:
    async def test_referral_bonus_paid_to_both(self, client: AsyncClient, db_session: AsyncSession):
        referrer = await register(client, email="referrer@example.com")
        code = referrer["profile"]["referral_code"]

        referred = await register(client, email="friend@example.com", referral_code=code)
        assert referred["profile"]["points"] == 100
        assert referred["profile"]["referred_by_code"] == code

        me = await client.get("/api/v1/profiles/me", headers=auth_headers(referrer))
        assert me.json()["points"] == 150

        rows = (
            await db_session.execute(
                select(RewardHistory.reward_type).where(RewardHistory.user_id == referrer["user"]["id"])
            )
        ).scalars().all()
        assert rows == ["referral_bonus"]

    async def test_unknown_code_pays_nothing(self, client: AsyncClient):
        data = await register(client, email="lonely@example.com", referral_code="ZZZZZZZZ")
        assert data["profile"]["points"] == 0
        assert data["profile"]["referred_by_code"] == "ZZZZZZZZ"

    async def test_referral_stats(self, client: AsyncClient):
        referrer = await register(client, email="referrer@example.com")
        code = referrer["profile"]["referral_code"]
        await register(client, email="a@example.com", referral_code=code)
        await register(client, email="b@example.com", referral_code=code)

        response = await client.get("/api/v1/profiles/me/referrals", headers=auth_headers(referrer))
        assert response.status_code == 200
        data = response.json()
        assert data["referral_code"] == code
        assert data["total_referrals"] == 2
        assert data["active_referrals"] == 0
        assert data["total_points_earned"] == 300
        assert data["conversion_rate"] == 0.0

    async def test_referral_becomes_active_after_earning(self, client: AsyncClient):
        referrer = await register(client, email="referrer@example.com")
        friend = await register(
            client, email="friend@example.com", referral_code=referrer["profile"]["referral_code"]
        )
        watched = await client.post("/api/v1/rewards/ad-watch", headers=auth_headers(friend))
        assert watched.status_code == 200

        response = await client.get("/api/v1/profiles/me/referrals", headers=auth_headers(referrer))
        data = response.json()
        assert data["active_referrals"] == 1
        assert data["conversion_rate"] == 100.0
