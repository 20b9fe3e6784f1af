"""Budget threshold configuration and tier classification."""

from dataclasses import dataclass
from decimal import Decimal

from .models import StatusTier

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class CostLimits:
    """Alert thresholds as fractions of the daily limit.

    Each tier starts at its threshold (inclusive). Limits reset when the
    daily window rolls over.
    """

    # Warning tier starts at 70% of the daily limit
    WARNING_THRESHOLD: Decimal = Decimal("0.70")

    # Critical tier starts at 90% of the daily limit
    CRITICAL_THRESHOLD: Decimal = Decimal("0.90")

    # Exceeded at 100%
    EXCEEDED_THRESHOLD: Decimal = Decimal("1")

    # Days of closed daily totals kept for the usage chart
    HISTORY_RETENTION_DAYS: int = 90


TIER_ORDER = (
    StatusTier.NORMAL,
    StatusTier.WARNING,
    StatusTier.CRITICAL,
    StatusTier.EXCEEDED,
)


def classify(daily_total: Decimal, daily_limit: Decimal, limits: CostLimits | None = None) -> StatusTier:
    """Classify daily spend against the limit.

    Computed on every read; the ledger changes independently of callers.

    Args:
        daily_total: Spend in the current daily window
        daily_limit: Configured daily limit, greater than zero

    Returns:
        StatusTier for the spend ratio
    """
    limits = limits or CostLimits()
    # Compare total against limit * threshold to avoid division rounding
    if daily_total >= daily_limit * limits.EXCEEDED_THRESHOLD:
        return StatusTier.EXCEEDED
    if daily_total >= daily_limit * limits.CRITICAL_THRESHOLD:
        return StatusTier.CRITICAL
    if daily_total >= daily_limit * limits.WARNING_THRESHOLD:
        return StatusTier.WARNING
    return StatusTier.NORMAL


def tier_rank(tier: StatusTier) -> int:
    """Get the ordinal of a tier, NORMAL being 0."""
    return TIER_ORDER.index(tier)


def usage_percentage(daily_total: Decimal, daily_limit: Decimal) -> Decimal:
    """Get spend as a percentage of the limit, capped at 100 for display."""
    percentage = daily_total / daily_limit * HUNDRED
    return min(HUNDRED, percentage).quantize(Decimal("0.01"))
