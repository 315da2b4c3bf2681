"""Ambassador tiers and commission rates.

Tiers partition the referral count: Bronze [0, 25), Silver [25, 100),
Gold [100, 250), Platinum [250, inf). Commission rates are percentages; a few
countries carry their own schedule.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

TIERS: list[dict] = [
    {"name": "Bronze", "min_referrals": 0, "commission_rate": Decimal("10.00")},
    {"name": "Silver", "min_referrals": 25, "commission_rate": Decimal("15.00")},
    {"name": "Gold", "min_referrals": 100, "commission_rate": Decimal("20.00")},
    {"name": "Platinum", "min_referrals": 250, "commission_rate": Decimal("25.00")},
]

# Country code -> rate per tier, in TIERS order
COUNTRY_RATES: dict[str, list[Decimal]] = {
    "US": [Decimal("12.00"), Decimal("17.00"), Decimal("22.00"), Decimal("27.00")],
    "CA": [Decimal("11.00"), Decimal("16.00"), Decimal("21.00"), Decimal("26.00")],
    "GB": [Decimal("11.00"), Decimal("16.00"), Decimal("21.00"), Decimal("26.00")],
}

DEFAULT_COMMISSION_RATE = Decimal("10.00")


def tier_index(total_referrals: int) -> int:
    """Index into TIERS of the tier that contains ``total_referrals``."""
    if total_referrals < 0:
        msg = "Referral count cannot be negative"
        raise ValueError(msg)
    index = 0
    for i, tier in enumerate(TIERS):
        if total_referrals >= tier["min_referrals"]:
            index = i
    return index


def compute_tier(total_referrals: int) -> dict:
    """Tier name, next tier name and referrals still needed to reach it.

    Platinum has no next tier: ``next_tier_name`` and ``referrals_to_next_tier``
    are None.
    """
    index = tier_index(total_referrals)
    current = TIERS[index]
    if index + 1 < len(TIERS):
        upcoming = TIERS[index + 1]
        next_name: str | None = upcoming["name"]
        to_next: int | None = upcoming["min_referrals"] - total_referrals
    else:
        next_name = None
        to_next = None
    return {
        "tier_name": current["name"],
        "next_tier_name": next_name,
        "referrals_to_next_tier": to_next,
        "min_referrals": current["min_referrals"],
    }


def commission_rate_for(country: str | None, total_referrals: int) -> Decimal:
    """Commission percentage for an ambassador's country and referral count."""
    index = tier_index(total_referrals)
    overrides = COUNTRY_RATES.get((country or "").upper())
    if overrides is not None:
        return overrides[index]
    return TIERS[index]["commission_rate"]


def commission_amount(amount: Decimal, rate: Decimal) -> Decimal:
    """``amount * rate / 100`` rounded to cents."""
    return (amount * rate / Decimal(100)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
