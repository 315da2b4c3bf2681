"""Derived ambassador statistics, computed fresh from a snapshot on every call."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from pulseearn.ambassador.tiers import commission_amount, compute_tier

_ZERO = Decimal("0.00")


def payable_balance(total_earnings: Decimal, total_payouts: Decimal, pending_payouts: Decimal) -> Decimal:
    """Earned-but-unpaid commission, never below zero."""
    return max(_ZERO, total_earnings - total_payouts - pending_payouts)


def conversion_rate(total_referrals: int) -> float:
    """Referral progress as a percentage of a 100-referral target, capped at 100."""
    return float(min(total_referrals, 100))


def country_rank(own_earnings: Decimal, peer_earnings: list[Decimal]) -> int:
    """1-based rank among active ambassadors of one country by total earnings.

    Ties share the better rank. ``peer_earnings`` may include the ambassador.
    """
    return 1 + sum(1 for e in peer_earnings if e > own_earnings)


def build_stats(
    *,
    total_referrals: int,
    total_earnings: Decimal,
    total_payouts: Decimal,
    pending_payouts: Decimal,
    commission_rate: Decimal,
    month_ad_revenue: Decimal,
    peer_earnings: list[Decimal],
) -> dict[str, Any]:
    """Assemble the AmbassadorStats read model."""
    tier = compute_tier(total_referrals)
    return {
        "total_referrals": total_referrals,
        "total_earnings": total_earnings,
        "total_payouts": total_payouts,
        "pending_payouts": pending_payouts,
        "monthly_earnings": commission_amount(month_ad_revenue, commission_rate),
        "payable_balance": payable_balance(total_earnings, total_payouts, pending_payouts),
        "commission_rate": commission_rate,
        "conversion_rate": conversion_rate(total_referrals),
        "country_rank": country_rank(total_earnings, peer_earnings),
        "tier_name": tier["tier_name"],
        "next_tier_name": tier["next_tier_name"],
        "referrals_to_next_tier": tier["referrals_to_next_tier"],
    }
