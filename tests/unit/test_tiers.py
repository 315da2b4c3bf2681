"""Ambassador tier partition and commission rates."""

from decimal import Decimal

import pytest

from pulseearn.ambassador.tiers import commission_amount, commission_rate_for, compute_tier, tier_index


class TestComputeTier:
    @pytest.mark.parametrize(
        ("referrals", "tier", "next_tier", "to_next"),
        [
            (0, "Bronze", "Silver", 25),
            (24, "Bronze", "Silver", 1),
            (25, "Silver", "Gold", 75),
            (99, "Silver", "Gold", 1),
            (100, "Gold", "Platinum", 150),
            (249, "Gold", "Platinum", 1),
        ],
    )
    def test_boundaries(self, referrals, tier, next_tier, to_next):
        result = compute_tier(referrals)
        assert result["tier_name"] == tier
        assert result["next_tier_name"] == next_tier
        assert result["referrals_to_next_tier"] == to_next

    def test_platinum_has_no_next_tier(self):
        for referrals in (250, 1000):
            result = compute_tier(referrals)
            assert result["tier_name"] == "Platinum"
            assert result["next_tier_name"] is None
            assert result["referrals_to_next_tier"] is None

    def test_negative_count_rejected(self):
        with pytest.raises(ValueError):
            tier_index(-1)

    def test_each_count_maps_to_exactly_one_tier(self):
        names = [compute_tier(n)["tier_name"] for n in range(0, 300)]
        assert names.count("Bronze") == 25
        assert names.count("Silver") == 75
        assert names.count("Gold") == 150
        assert names.count("Platinum") == 50


class TestCommissionRates:
    def test_default_schedule(self):
        assert commission_rate_for("DE", 0) == Decimal("10.00")
        assert commission_rate_for("DE", 25) == Decimal("15.00")
        assert commission_rate_for("DE", 100) == Decimal("20.00")
        assert commission_rate_for("DE", 250) == Decimal("25.00")

    def test_country_overrides(self):
        assert commission_rate_for("US", 0) == Decimal("12.00")
        assert commission_rate_for("us", 250) == Decimal("27.00")
        assert commission_rate_for("GB", 25) == Decimal("16.00")
        assert commission_rate_for("CA", 100) == Decimal("21.00")

    def test_missing_country_uses_default(self):
        assert commission_rate_for(None, 0) == Decimal("10.00")

    def test_24_to_25_referrals_raises_rate(self):
        assert commission_rate_for("FR", 25) > commission_rate_for("FR", 24)

    def test_commission_amount_rounds_to_cents(self):
        assert commission_amount(Decimal("100.00"), Decimal("12.00")) == Decimal("12.00")
        assert commission_amount(Decimal("33.33"), Decimal("15.00")) == Decimal("5.00")
        assert commission_amount(Decimal("0.05"), Decimal("10.00")) == Decimal("0.01")
