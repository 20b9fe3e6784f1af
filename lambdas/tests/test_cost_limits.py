"""Tests for threshold classification."""

from decimal import Decimal

import pytest

from cost_control.cost_limits import CostLimits, classify, tier_rank, usage_percentage
from cost_control.models import StatusTier

LIMIT = Decimal("50.00")


class TestClassify:
    """Tests for classify."""

    @pytest.mark.parametrize(
        "total,expected",
        [
            ("0", StatusTier.NORMAL),
            ("34.99", StatusTier.NORMAL),
            ("35.00", StatusTier.WARNING),
            ("40.00", StatusTier.WARNING),
            ("44.99", StatusTier.WARNING),
            ("45.00", StatusTier.CRITICAL),
            ("49.99", StatusTier.CRITICAL),
            ("50.00", StatusTier.EXCEEDED),
            ("55.00", StatusTier.EXCEEDED),
        ],
    )
    def test_tier_boundaries(self, total, expected):
        """Lower bound of each tier is inclusive."""
        assert classify(Decimal(total), LIMIT) == expected

    def test_monotone_in_total(self):
        """Increasing spend never moves the tier backward."""
        previous = StatusTier.NORMAL
        for cents in range(0, 7000, 7):
            tier = classify(Decimal(cents) / 100, LIMIT)
            assert tier_rank(tier) >= tier_rank(previous)
            previous = tier
        assert previous == StatusTier.EXCEEDED

    def test_exact_decimal_thresholds(self):
        """Thresholds use exact arithmetic for awkward limits."""
        limit = Decimal("0.30")
        assert classify(Decimal("0.21"), limit) == StatusTier.WARNING
        assert classify(Decimal("0.27"), limit) == StatusTier.CRITICAL

    def test_custom_limits(self):
        """Thresholds can be overridden."""
        limits = CostLimits(WARNING_THRESHOLD=Decimal("0.5"))
        assert classify(Decimal("25"), LIMIT, limits) == StatusTier.WARNING


class TestUsagePercentage:
    """Tests for usage_percentage."""

    def test_percentage(self):
        """Percentage is rounded to cents."""
        assert usage_percentage(Decimal("40"), LIMIT) == Decimal("80.00")

    def test_capped_at_hundred(self):
        """Display percentage never exceeds 100."""
        assert usage_percentage(Decimal("75"), LIMIT) == Decimal("100.00")
