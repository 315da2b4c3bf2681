"""
Ambassador program business logic.

Details rows, referral bookkeeping, commission processing, country metrics and
the stats/dashboard read models. Stats are recomputed on every call.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import func, select

from pulseearn.ambassador.stats import build_stats
from pulseearn.ambassador.tiers import commission_amount, commission_rate_for
from pulseearn.auth.roles import has_role
from pulseearn.db.models import (
    AmbassadorDetails,
    CountryMetric,
    MarketingMaterial,
    PayoutRequest,
    Profile,
)
from pulseearn.errors import ConflictError, NotFoundError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

TOP_COUNTRY_METRICS = ("ad_revenue", "active_users", "new_users", "votes_cast")
PENDING_PAYOUT_STATUSES = ("pending", "approved")
MATERIAL_FILE_TYPES = ("image", "video", "application", "other")

_ZERO = Decimal("0.00")


# ---------------------------------------------------------------------------
# Details
# ---------------------------------------------------------------------------


async def get_ambassador_details(db: AsyncSession, user_id: int) -> AmbassadorDetails | None:
    """Active ambassador details for a user, or None."""
    result = await db.execute(
        select(AmbassadorDetails)
        .where(AmbassadorDetails.user_id == user_id)
        .where(AmbassadorDetails.is_active == True)  # noqa: E712
    )
    return result.scalar_one_or_none()


async def require_ambassador(db: AsyncSession, user_id: int) -> AmbassadorDetails:
    details = await get_ambassador_details(db, user_id)
    if details is None:
        msg = "Ambassador not found"
        raise NotFoundError(msg)
    return details


async def list_ambassadors(
    db: AsyncSession,
    country: str | None = None,
    active_only: bool = True,
    limit: int = 50,
) -> list[AmbassadorDetails]:
    """All ambassadors ordered by total earnings, highest first."""
    stmt = select(AmbassadorDetails).order_by(AmbassadorDetails.total_earnings.desc()).limit(limit)
    if country:
        stmt = stmt.where(AmbassadorDetails.country == country)
    if active_only:
        stmt = stmt.where(AmbassadorDetails.is_active == True)  # noqa: E712
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def appoint_ambassador(db: AsyncSession, user_id: int, country: str) -> AmbassadorDetails:
    """
    Enrol a profile in the ambassador program.

    Referrals made before the appointment count toward the starting tier.
    The profile's role is raised to ambassador unless it is already higher.

    Raises:
        NotFoundError: If the profile does not exist.
        ConflictError: If the user is already an active ambassador.
    """
    profile = (await db.execute(select(Profile).where(Profile.id == user_id))).scalar_one_or_none()
    if profile is None:
        msg = "User profile not found"
        raise NotFoundError(msg)

    existing = (
        await db.execute(select(AmbassadorDetails).where(AmbassadorDetails.user_id == user_id))
    ).scalar_one_or_none()
    if existing is not None and existing.is_active:
        msg = "User is already an ambassador"
        raise ConflictError(msg)

    referrals = (
        await db.execute(select(func.count()).select_from(Profile).where(Profile.referred_by == user_id))
    ).scalar_one()
    now = datetime.now(timezone.utc)
    if existing is None:
        existing = AmbassadorDetails(
            user_id=user_id,
            total_earnings=_ZERO,
            total_payouts=_ZERO,
            created_at=now,
        )
        db.add(existing)
    existing.country = country
    existing.total_referrals = int(referrals)
    existing.commission_rate = commission_rate_for(country, int(referrals))
    existing.is_active = True
    existing.updated_at = now

    if not has_role(profile.role, "ambassador"):
        profile.role = "ambassador"
        profile.updated_at = now
    await db.flush()
    logger.info("ambassador_appointed", user_id=user_id, country=country, referrals=referrals)
    return existing


async def record_referral(db: AsyncSession, referrer_id: int) -> AmbassadorDetails | None:
    """Count a new referral for an active ambassador and re-derive their rate.

    Returns None when the referrer is not an active ambassador.
    """
    details = await get_ambassador_details(db, referrer_id)
    if details is None:
        return None
    previous_rate = details.commission_rate
    details.total_referrals = (details.total_referrals or 0) + 1
    details.commission_rate = commission_rate_for(details.country, details.total_referrals)
    details.updated_at = datetime.now(timezone.utc)
    await db.flush()
    if details.commission_rate != previous_rate:
        logger.info(
            "ambassador_tier_changed",
            user_id=referrer_id,
            referrals=details.total_referrals,
            commission_rate=str(details.commission_rate),
        )
    return details


async def process_commission(db: AsyncSession, user_id: int, amount: Decimal) -> Decimal:
    """
    Credit commission on a revenue amount at the ambassador's current rate.

    Returns the commission added to total earnings.
    """
    if amount <= 0:
        msg = "Amount must be greater than zero"
        raise ValueError(msg)
    details = await require_ambassador(db, user_id)
    commission = commission_amount(amount, Decimal(details.commission_rate))
    details.total_earnings = Decimal(details.total_earnings or _ZERO) + commission
    details.updated_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("commission_processed", user_id=user_id, amount=str(amount), commission=str(commission))
    return commission


# ---------------------------------------------------------------------------
# Balances and stats
# ---------------------------------------------------------------------------


async def pending_payout_total(db: AsyncSession, user_id: int) -> Decimal:
    """Sum of payout requests still awaiting payment."""
    result = await db.execute(
        select(func.coalesce(func.sum(PayoutRequest.amount), 0))
        .where(PayoutRequest.user_id == user_id)
        .where(PayoutRequest.status.in_(PENDING_PAYOUT_STATUSES))
    )
    return Decimal(str(result.scalar_one())).quantize(Decimal("0.01"))


async def get_ambassador_stats(
    db: AsyncSession,
    user_id: int,
    today: date | None = None,
) -> dict[str, Any]:
    """Build AmbassadorStats for an active ambassador."""
    details = await require_ambassador(db, user_id)
    today = today or datetime.now(timezone.utc).date()
    month_start = today.replace(day=1)

    month_revenue = (
        await db.execute(
            select(func.coalesce(func.sum(CountryMetric.ad_revenue), 0))
            .where(CountryMetric.country == details.country)
            .where(CountryMetric.metric_date >= month_start)
            .where(CountryMetric.metric_date <= today)
        )
    ).scalar_one()
    peers = (
        await db.execute(
            select(AmbassadorDetails.total_earnings)
            .where(AmbassadorDetails.country == details.country)
            .where(AmbassadorDetails.is_active == True)  # noqa: E712
        )
    ).scalars().all()

    return build_stats(
        total_referrals=details.total_referrals or 0,
        total_earnings=Decimal(details.total_earnings or _ZERO),
        total_payouts=Decimal(details.total_payouts or _ZERO),
        pending_payouts=await pending_payout_total(db, user_id),
        commission_rate=Decimal(details.commission_rate),
        month_ad_revenue=Decimal(str(month_revenue)),
        peer_earnings=[Decimal(e or _ZERO) for e in peers],
    )


# ---------------------------------------------------------------------------
# Country metrics
# ---------------------------------------------------------------------------


async def get_country_metrics(
    db: AsyncSession,
    country: str,
    start_date: date | None = None,
    end_date: date | None = None,
    limit: int = 30,
) -> list[CountryMetric]:
    """Daily metrics for one country, newest first."""
    stmt = (
        select(CountryMetric)
        .where(CountryMetric.country == country)
        .order_by(CountryMetric.metric_date.desc())
        .limit(limit)
    )
    if start_date:
        stmt = stmt.where(CountryMetric.metric_date >= start_date)
    if end_date:
        stmt = stmt.where(CountryMetric.metric_date <= end_date)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_top_countries(
    db: AsyncSession,
    metric: str = "ad_revenue",
    limit: int = 10,
) -> list[dict[str, Any]]:
    """Countries ranked by one metric on the most recent day that has data."""
    if metric not in TOP_COUNTRY_METRICS:
        msg = f"Unknown metric: {metric}"
        raise ValueError(msg)
    latest = (await db.execute(select(func.max(CountryMetric.metric_date)))).scalar_one()
    if latest is None:
        return []
    column = getattr(CountryMetric, metric)
    result = await db.execute(
        select(CountryMetric.country, column)
        .where(CountryMetric.metric_date == latest)
        .order_by(column.desc(), CountryMetric.country)
        .limit(limit)
    )
    return [{"country": country, "value": value} for country, value in result.all()]


async def get_dashboard(db: AsyncSession, user_id: int) -> dict[str, Any]:
    """Ambassador details, stats, the last week of country metrics and the top five countries."""
    details = await require_ambassador(db, user_id)
    return {
        "ambassador": details,
        "stats": await get_ambassador_stats(db, user_id),
        "recent_metrics": await get_country_metrics(db, details.country, limit=7),
        "top_countries": await get_top_countries(db, "ad_revenue", 5),
    }


# ---------------------------------------------------------------------------
# Marketing materials
# ---------------------------------------------------------------------------


async def list_materials(db: AsyncSession, material_type: str | None = None) -> list[MarketingMaterial]:
    stmt = (
        select(MarketingMaterial)
        .where(MarketingMaterial.is_active == True)  # noqa: E712
        .order_by(MarketingMaterial.created_at.desc())
    )
    if material_type:
        stmt = stmt.where(MarketingMaterial.material_type == material_type)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def create_material(
    db: AsyncSession,
    name: str,
    file_url: str,
    material_type: str,
    file_type: str = "other",
    description: str | None = None,
) -> MarketingMaterial:
    if file_type not in MATERIAL_FILE_TYPES:
        msg = f"file_type must be one of {', '.join(MATERIAL_FILE_TYPES)}"
        raise ValueError(msg)
    material = MarketingMaterial(
        name=name,
        description=description,
        file_url=file_url,
        file_type=file_type,
        material_type=material_type,
        is_active=True,
        created_at=datetime.now(timezone.utc),
    )
    db.add(material)
    await db.flush()
    logger.info("marketing_material_created", material_id=material.id, material_type=material_type)
    return material
