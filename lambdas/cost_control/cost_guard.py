"""Cost protection guard for paid AI operations."""

from collections.abc import Callable
from datetime import datetime
from decimal import Decimal

from aws_lambda_powertools import Logger, Metrics
from aws_lambda_powertools.metrics import MetricUnit

from .exceptions import validate_amount
from .ledger import BudgetLedger
from .models import AdmissionDecision, AdmissionReason, BudgetPolicy, StatusTier

logger = Logger(child=True)
metrics = Metrics(namespace="BudgetGuard")


class CostGuard:
    """Approves or denies an operation before it incurs cost.

    The check is advisory: it reserves nothing, so two callers that pass
    the check concurrently can together exceed the limit by at most the
    cost of the operations in flight.
    """

    def __init__(self, ledger: BudgetLedger, policy: Callable[[], BudgetPolicy]):
        """Initialize guard.

        Args:
            ledger: Ledger to read daily usage from
            policy: Returns the current budget policy
        """
        self.ledger = ledger
        self.policy = policy

    def can_afford(
        self,
        estimated_cost: Decimal | int | str,
        now: datetime | None = None,
    ) -> AdmissionDecision:
        """Check if an operation of the given cost fits today's budget.

        Never mutates the ledger.

        Args:
            estimated_cost: Expected cost of the operation
            now: Check timestamp. Defaults to the ledger clock.

        Returns:
            AdmissionDecision; allowed is False when the cost exceeds remaining

        Raises:
            InvalidAmountError: If estimated_cost is negative
        """
        cost = validate_amount(estimated_cost)
        daily = self.ledger.usage(self.policy().daily_limit, now).daily

        if cost > daily.remaining:
            logger.warning(
                "Daily budget limit reached",
                extra={
                    "daily_total": str(daily.total),
                    "limit": str(daily.limit),
                    "estimated_cost": str(cost),
                },
            )
            metrics.add_metric(name="AdmissionDenied", unit=MetricUnit.Count, value=1)
            return AdmissionDecision(
                allowed=False,
                remaining=daily.remaining,
                estimated_cost=cost,
                reason=AdmissionReason.DAILY_LIMIT,
            )

        # Log warning if approaching limit
        if daily.tier != StatusTier.NORMAL:
            logger.warning(
                "Approaching daily budget limit",
                extra={
                    "daily_total": str(daily.total),
                    "limit": str(daily.limit),
                    "percentage": str(daily.percentage),
                    "tier": daily.tier.value,
                },
            )

        return AdmissionDecision(allowed=True, remaining=daily.remaining, estimated_cost=cost)


def get_limit_message(reason: AdmissionReason | str | None) -> str:
    """Get the user-facing message for a denied operation.

    Args:
        reason: The denial reason

    Returns:
        An actionable message for the user
    """
    if reason == AdmissionReason.DAILY_LIMIT:
        return (
            "Daily budget reached. "
            "Please try again tomorrow or increase your limit in settings."
        )

    return "This feature is temporarily unavailable. Please try again later."
