"""Reward store tests: catalogue, redemption, fulfilment and refunds."""

from httpx import AsyncClient
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from pulseearn.db.models import Profile, RewardStoreItem
from tests.conftest import auth_headers, register

STORE = "/api/v1/rewards/store"


async def _add_item(
    db: AsyncSession,
    name: str = "Coffee Gift Card",
    points_cost: int = 500,
    item_type: str = "gift_card",
    stock_quantity: int | None = 10,
    is_active: bool = True,
) -> RewardStoreItem:
    item = RewardStoreItem(
        name=name,
        description=f"{name} delivered by email",
        item_type=item_type,
        points_cost=points_cost,
        value="5.00",
        stock_quantity=stock_quantity,
        is_active=is_active,
    )
    db.add(item)
    await db.commit()
    return item


async def _give_points(db: AsyncSession, user_id: int, points: int) -> None:
    await db.execute(update(Profile).where(Profile.id == user_id).values(points=points))
    await db.commit()


async def _stock(client: AsyncClient, item_id: int) -> int | None:
    items = (await client.get(STORE)).json()
    return next(i["stock_quantity"] for i in items if i["id"] == item_id)


class TestCatalogue:
    async def test_active_items_cheapest_first(self, authed_client: AsyncClient, db_session: AsyncSession):
        await _add_item(db_session, name="Headphones", points_cost=5000, item_type="physical_item")
        await _add_item(db_session, name="Coffee Gift Card", points_cost=500)
        await _add_item(db_session, name="Retired Item", points_cost=100, is_active=False)

        response = await authed_client.get(STORE)
        assert response.status_code == 200
        assert [i["name"] for i in response.json()] == ["Coffee Gift Card", "Headphones"]

    async def test_filters(self, authed_client: AsyncClient, db_session: AsyncSession):
        await _add_item(db_session, name="Coffee Gift Card", points_cost=500)
        await _add_item(db_session, name="Music Subscription", points_cost=1500, item_type="subscription_code")
        await _add_item(db_session, name="Sold Out Card", points_cost=800, stock_quantity=0)
        await _add_item(db_session, name="Unlimited Card", points_cost=2500, stock_quantity=None)

        by_type = await authed_client.get(STORE, params={"item_type": "subscription_code"})
        assert [i["name"] for i in by_type.json()] == ["Music Subscription"]

        in_range = await authed_client.get(STORE, params={"min_points": 600, "max_points": 2000})
        assert [i["name"] for i in in_range.json()] == ["Sold Out Card", "Music Subscription"]

        in_stock = await authed_client.get(STORE, params={"in_stock": True})
        assert [i["name"] for i in in_stock.json()] == ["Coffee Gift Card", "Music Subscription", "Unlimited Card"]

    async def test_requires_auth(self, client: AsyncClient):
        response = await client.get(STORE)
        assert response.status_code in (401, 403)


class TestRedeem:
    async def test_deducts_points_and_stock(
        self, authed_client: AsyncClient, user_tokens: dict, db_session: AsyncSession
    ):
        user_id = user_tokens["user"]["id"]
        item = await _add_item(db_session, points_cost=500, stock_quantity=3)
        await _give_points(db_session, user_id, 800)

        response = await authed_client.post(
            f"{STORE}/{item.id}/redeem", json={"fulfillment_details": {"email": "me@example.com"}}
        )
        assert response.status_code == 201, response.text
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Successfully redeemed Coffee Gift Card for 500 points!"
        assert data["new_points_balance"] == 300
        assert data["redemption"]["status"] == "pending_fulfillment"
        assert data["redemption"]["item_name"] == "Coffee Gift Card"
        assert data["redemption"]["fulfillment_details"] == {"email": "me@example.com"}

        assert (await authed_client.get("/api/v1/profiles/me")).json()["points"] == 300
        assert await _stock(authed_client, item.id) == 2

        history = await authed_client.get("/api/v1/rewards/history", params={"reward_type": "redemption"})
        entries = history.json()["entries"]
        assert len(entries) == 1
        assert entries[0]["points_earned"] == -500
        assert entries[0]["reward_data"]["item_id"] == item.id

    async def test_unlimited_stock_stays_unlimited(
        self, authed_client: AsyncClient, user_tokens: dict, db_session: AsyncSession
    ):
        item = await _add_item(db_session, points_cost=100, stock_quantity=None)
        await _give_points(db_session, user_tokens["user"]["id"], 100)

        response = await authed_client.post(f"{STORE}/{item.id}/redeem")
        assert response.status_code == 201
        assert response.json()["new_points_balance"] == 0
        assert await _stock(authed_client, item.id) is None

    async def test_insufficient_points(self, authed_client: AsyncClient, user_tokens: dict, db_session: AsyncSession):
        item = await _add_item(db_session, points_cost=500, stock_quantity=3)
        await _give_points(db_session, user_tokens["user"]["id"], 120)

        response = await authed_client.post(f"{STORE}/{item.id}/redeem")
        assert response.status_code == 400
        assert response.json()["detail"] == (
            "Insufficient points. You have 120 points, but this item costs 500 points."
        )
        assert (await authed_client.get("/api/v1/profiles/me")).json()["points"] == 120
        assert await _stock(authed_client, item.id) == 3
        assert (await authed_client.get("/api/v1/rewards/redemptions")).json() == []

    async def test_out_of_stock(self, authed_client: AsyncClient, user_tokens: dict, db_session: AsyncSession):
        item = await _add_item(db_session, points_cost=100, stock_quantity=0)
        await _give_points(db_session, user_tokens["user"]["id"], 1000)

        response = await authed_client.post(f"{STORE}/{item.id}/redeem")
        assert response.status_code == 409
        assert response.json()["detail"] == "This item is out of stock"
        assert (await authed_client.get("/api/v1/profiles/me")).json()["points"] == 1000

    async def test_last_unit_sells_once(self, client: AsyncClient, db_session: AsyncSession):
        item = await _add_item(db_session, points_cost=100, stock_quantity=1)
        first = await register(client, email="first@example.com")
        second = await register(client, email="second@example.com")
        await _give_points(db_session, first["user"]["id"], 100)
        await _give_points(db_session, second["user"]["id"], 100)

        ok = await client.post(f"{STORE}/{item.id}/redeem", headers=auth_headers(first))
        late = await client.post(f"{STORE}/{item.id}/redeem", headers=auth_headers(second))
        assert ok.status_code == 201
        assert late.status_code == 409

    async def test_inactive_item_not_found(
        self, authed_client: AsyncClient, user_tokens: dict, db_session: AsyncSession
    ):
        item = await _add_item(db_session, points_cost=100, is_active=False)
        await _give_points(db_session, user_tokens["user"]["id"], 1000)

        response = await authed_client.post(f"{STORE}/{item.id}/redeem")
        assert response.status_code == 404
        assert response.json()["detail"] == "Item not found or no longer available"

        missing = await authed_client.post(f"{STORE}/999999/redeem")
        assert missing.status_code == 404

    async def test_my_redemptions(self, authed_client: AsyncClient, user_tokens: dict, db_session: AsyncSession):
        cheap = await _add_item(db_session, name="Sticker Pack", points_cost=50)
        dear = await _add_item(db_session, name="Coffee Gift Card", points_cost=200)
        await _give_points(db_session, user_tokens["user"]["id"], 1000)

        await authed_client.post(f"{STORE}/{cheap.id}/redeem")
        await authed_client.post(f"{STORE}/{dear.id}/redeem")

        response = await authed_client.get("/api/v1/rewards/redemptions")
        assert response.status_code == 200
        assert [r["item_name"] for r in response.json()] == ["Coffee Gift Card", "Sticker Pack"]

        pending = await authed_client.get("/api/v1/rewards/redemptions", params={"status": "pending_fulfillment"})
        assert len(pending.json()) == 2
        fulfilled = await authed_client.get("/api/v1/rewards/redemptions", params={"status": "fulfilled"})
        assert fulfilled.json() == []
        bogus = await authed_client.get("/api/v1/rewards/redemptions", params={"status": "shipped"})
        assert bogus.status_code == 400


class TestAdmin:
    async def test_create_and_update_item(self, client: AsyncClient, admin_tokens: dict):
        headers = auth_headers(admin_tokens)
        created = await client.post(
            STORE,
            json={
                "name": "Streaming Code",
                "item_type": "subscription_code",
                "points_cost": 1200,
                "value": "10.00",
                "stock_quantity": 5,
            },
            headers=headers,
        )
        assert created.status_code == 201, created.text
        item = created.json()
        assert item["currency"] == "USD"
        assert item["is_active"] is True

        updated = await client.patch(
            f"{STORE}/{item['id']}", json={"points_cost": 900, "is_active": False}, headers=headers
        )
        assert updated.status_code == 200
        assert updated.json()["points_cost"] == 900
        assert updated.json()["is_active"] is False
        assert updated.json()["stock_quantity"] == 5

        listed = await client.get(STORE, headers=headers)
        assert listed.json() == []

    async def test_unknown_item_type(self, client: AsyncClient, admin_tokens: dict):
        response = await client.post(
            STORE,
            json={"name": "Mystery", "item_type": "lottery_ticket", "points_cost": 10},
            headers=auth_headers(admin_tokens),
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Unknown item type: lottery_ticket"

    async def test_regular_user_forbidden(self, authed_client: AsyncClient, db_session: AsyncSession):
        item = await _add_item(db_session)
        create = await authed_client.post(
            STORE, json={"name": "Free Stuff", "item_type": "gift_card", "points_cost": 1}
        )
        patch = await authed_client.patch(f"{STORE}/{item.id}", json={"points_cost": 1})
        queue = await authed_client.get("/api/v1/rewards/admin/redemptions")
        assert create.status_code == 403
        assert patch.status_code == 403
        assert queue.status_code == 403


class TestFulfilment:
    async def _redeem(self, client: AsyncClient, db: AsyncSession, tokens: dict, stock: int = 2) -> tuple[int, int]:
        item = await _add_item(db, points_cost=300, stock_quantity=stock)
        await _give_points(db, tokens["user"]["id"], 1000)
        response = await client.post(f"{STORE}/{item.id}/redeem", headers=auth_headers(tokens))
        assert response.status_code == 201
        return item.id, response.json()["redemption"]["id"]

    async def test_fulfil(self, client: AsyncClient, user_tokens: dict, admin_tokens: dict, db_session: AsyncSession):
        _, redemption_id = await self._redeem(client, db_session, user_tokens)
        headers = auth_headers(admin_tokens)

        queue = await client.get(
            "/api/v1/rewards/admin/redemptions", params={"status": "pending_fulfillment"}, headers=headers
        )
        assert [r["id"] for r in queue.json()] == [redemption_id]

        response = await client.patch(
            f"/api/v1/rewards/redemptions/{redemption_id}",
            json={"status": "fulfilled", "fulfillment_details": {"code": "ABCD-1234"}},
            headers=headers,
        )
        assert response.status_code == 200, response.text
        assert response.json()["status"] == "fulfilled"
        assert response.json()["fulfillment_details"]["code"] == "ABCD-1234"

        me = await client.get("/api/v1/profiles/me", headers=auth_headers(user_tokens))
        assert me.json()["points"] == 700

    async def test_cancel_refunds_and_restocks(
        self, client: AsyncClient, user_tokens: dict, admin_tokens: dict, db_session: AsyncSession
    ):
        item_id, redemption_id = await self._redeem(client, db_session, user_tokens, stock=2)
        user = auth_headers(user_tokens)
        items = (await client.get(STORE, headers=user)).json()
        assert next(i for i in items if i["id"] == item_id)["stock_quantity"] == 1

        response = await client.patch(
            f"/api/v1/rewards/redemptions/{redemption_id}",
            json={"status": "cancelled"},
            headers=auth_headers(admin_tokens),
        )
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

        assert (await client.get("/api/v1/profiles/me", headers=user)).json()["points"] == 1000
        items = (await client.get(STORE, headers=user)).json()
        assert next(i for i in items if i["id"] == item_id)["stock_quantity"] == 2
        refunds = await client.get(
            "/api/v1/rewards/history", params={"reward_type": "redemption_refund"}, headers=user
        )
        assert [e["points_earned"] for e in refunds.json()["entries"]] == [300]

    async def test_terminal_status_is_final(
        self, client: AsyncClient, user_tokens: dict, admin_tokens: dict, db_session: AsyncSession
    ):
        _, redemption_id = await self._redeem(client, db_session, user_tokens)
        headers = auth_headers(admin_tokens)
        url = f"/api/v1/rewards/redemptions/{redemption_id}"

        assert (await client.patch(url, json={"status": "fulfilled"}, headers=headers)).status_code == 200
        again = await client.patch(url, json={"status": "cancelled"}, headers=headers)
        assert again.status_code == 409
        assert again.json()["detail"] == "Cannot change redemption status from fulfilled to cancelled"

        me = await client.get("/api/v1/profiles/me", headers=auth_headers(user_tokens))
        assert me.json()["points"] == 700

    async def test_unknown_redemption(self, client: AsyncClient, admin_tokens: dict):
        response = await client.patch(
            "/api/v1/rewards/redemptions/424242", json={"status": "fulfilled"}, headers=auth_headers(admin_tokens)
        )
        assert response.status_code == 404
