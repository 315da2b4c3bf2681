"""
Reward store: catalogue items bought with points, and their redemptions.

A redemption takes one unit of stock and the item's points in the same
transaction. Both are conditional UPDATEs, so neither an empty shelf nor an
empty balance can be oversold by concurrent requests. Cancelling a pending
redemption refunds the points and returns the unit to stock.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import or_, select, update

from pulseearn.db.models import RedeemedItem, RewardStoreItem
from pulseearn.errors import ConflictError, NotFoundError
from pulseearn.rewards.ledger import grant_points, spend_points

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

ITEM_TYPES = ("gift_card", "subscription_code", "paypal_payout", "bank_transfer", "physical_item")

# Current status -> statuses an admin may move it to
REDEMPTION_TRANSITIONS: dict[str, tuple[str, ...]] = {
    "pending_fulfillment": ("fulfilled", "cancelled"),
    "fulfilled": (),
    "cancelled": (),
}

_ITEM_FIELDS = (
    "name",
    "description",
    "item_type",
    "points_cost",
    "value",
    "currency",
    "image_url",
    "fulfillment_instructions",
    "stock_quantity",
    "is_active",
)


def _check_item_type(item_type: str) -> None:
    if item_type not in ITEM_TYPES:
        msg = f"Unknown item type: {item_type}"
        raise ValueError(msg)


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------


async def list_store_items(
    db: AsyncSession,
    limit: int = 50,
    item_type: str | None = None,
    min_points: int | None = None,
    max_points: int | None = None,
    in_stock: bool = False,
) -> list[RewardStoreItem]:
    """Active items, cheapest first."""
    stmt = (
        select(RewardStoreItem)
        .where(RewardStoreItem.is_active == True)  # noqa: E712
        .order_by(RewardStoreItem.points_cost, RewardStoreItem.id)
        .limit(limit)
    )
    if item_type:
        stmt = stmt.where(RewardStoreItem.item_type == item_type)
    if min_points is not None:
        stmt = stmt.where(RewardStoreItem.points_cost >= min_points)
    if max_points is not None:
        stmt = stmt.where(RewardStoreItem.points_cost <= max_points)
    if in_stock:
        stmt = stmt.where(
            or_(RewardStoreItem.stock_quantity.is_(None), RewardStoreItem.stock_quantity > 0)
        )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_store_item(db: AsyncSession, item_id: int, active_only: bool = True) -> RewardStoreItem:
    stmt = select(RewardStoreItem).where(RewardStoreItem.id == item_id)
    if active_only:
        stmt = stmt.where(RewardStoreItem.is_active == True)  # noqa: E712
    item = (await db.execute(stmt)).scalar_one_or_none()
    if item is None:
        msg = "Item not found or no longer available"
        raise NotFoundError(msg)
    return item


async def create_store_item(db: AsyncSession, **fields: Any) -> RewardStoreItem:
    _check_item_type(fields["item_type"])
    item = RewardStoreItem(**{k: v for k, v in fields.items() if k in _ITEM_FIELDS})
    db.add(item)
    await db.flush()
    logger.info("store_item_created", item_id=item.id, points_cost=item.points_cost)
    return item


async def update_store_item(db: AsyncSession, item_id: int, **changes: Any) -> RewardStoreItem:
    """Apply the given fields; inactive items can be edited and re-activated."""
    item = await get_store_item(db, item_id, active_only=False)
    if "item_type" in changes:
        _check_item_type(changes["item_type"])
    for key, value in changes.items():
        if key in _ITEM_FIELDS:
            setattr(item, key, value)
    item.updated_at = datetime.now(timezone.utc)
    await db.flush()
    return item


# ---------------------------------------------------------------------------
# Redemptions
# ---------------------------------------------------------------------------


async def _take_stock(db: AsyncSession, item: RewardStoreItem) -> None:
    result = await db.execute(
        update(RewardStoreItem)
        .where(RewardStoreItem.id == item.id)
        .where(or_(RewardStoreItem.stock_quantity.is_(None), RewardStoreItem.stock_quantity > 0))
        .values(
            stock_quantity=RewardStoreItem.stock_quantity - 1,
            updated_at=datetime.now(timezone.utc),
        )
    )
    if not result.rowcount:
        msg = "This item is out of stock"
        raise ConflictError(msg)


async def redeem_item(
    db: AsyncSession,
    user_id: int,
    item_id: int,
    fulfillment_details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Buy one unit of an item with points.

    Raises:
        NotFoundError: The item does not exist or is inactive.
        ConflictError: The item is out of stock.
        InsufficientPointsError: The profile cannot cover the cost.
    """
    item = await get_store_item(db, item_id)
    await _take_stock(db, item)
    await spend_points(
        db,
        user_id,
        item.points_cost,
        "redemption",
        {"item_id": item.id, "item_name": item.name, "currency": item.currency},
    )

    now = datetime.now(timezone.utc)
    redemption = RedeemedItem(
        user_id=user_id,
        item_id=item.id,
        item_name=item.name,
        points_cost=item.points_cost,
        status="pending_fulfillment",
        fulfillment_details=fulfillment_details or {},
        redeemed_at=now,
        updated_at=now,
    )
    db.add(redemption)
    await db.flush()
    logger.info("store_item_redeemed", user_id=user_id, item_id=item.id, points=item.points_cost)
    return {
        "success": True,
        "message": f"Successfully redeemed {item.name} for {item.points_cost} points!",
        "redemption": redemption,
    }


async def list_redemptions(
    db: AsyncSession,
    user_id: int | None = None,
    status: str | None = None,
    limit: int = 50,
) -> list[RedeemedItem]:
    """Redemptions newest first; all users when ``user_id`` is None."""
    if status is not None and status not in REDEMPTION_TRANSITIONS:
        msg = f"Unknown redemption status: {status}"
        raise ValueError(msg)
    stmt = select(RedeemedItem).order_by(RedeemedItem.redeemed_at.desc(), RedeemedItem.id.desc()).limit(limit)
    if user_id is not None:
        stmt = stmt.where(RedeemedItem.user_id == user_id)
    if status:
        stmt = stmt.where(RedeemedItem.status == status)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def update_redemption_status(
    db: AsyncSession,
    redemption_id: int,
    status: str,
    admin_id: int,
    fulfillment_details: dict[str, Any] | None = None,
) -> RedeemedItem:
    """
    Fulfil or cancel a pending redemption.

    Raises:
        NotFoundError: If the redemption does not exist.
        ValueError: If the transition is not allowed.
    """
    redemption = await db.get(RedeemedItem, redemption_id)
    if redemption is None:
        msg = "Redemption not found"
        raise NotFoundError(msg)
    if status not in REDEMPTION_TRANSITIONS:
        msg = f"Unknown redemption status: {status}"
        raise ValueError(msg)
    if status not in REDEMPTION_TRANSITIONS[redemption.status]:
        msg = f"Cannot change redemption status from {redemption.status} to {status}"
        raise ValueError(msg)

    redemption.status = status
    if fulfillment_details is not None:
        redemption.fulfillment_details = {**(redemption.fulfillment_details or {}), **fulfillment_details}
    redemption.updated_at = datetime.now(timezone.utc)

    if status == "cancelled":
        await grant_points(
            db,
            redemption.user_id,
            redemption.points_cost,
            "redemption_refund",
            {"redemption_id": redemption.id, "item_id": redemption.item_id},
        )
        if redemption.item_id is not None:
            await db.execute(
                update(RewardStoreItem)
                .where(RewardStoreItem.id == redemption.item_id)
                .where(RewardStoreItem.stock_quantity.is_not(None))
                .values(stock_quantity=RewardStoreItem.stock_quantity + 1)
            )
    await db.flush()
    logger.info("redemption_status_changed", redemption_id=redemption_id, status=status, admin_id=admin_id)
    return redemption
