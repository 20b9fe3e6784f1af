"""Budget service - business logic behind the settings API."""

from typing import Any

from aws_lambda_powertools import Logger

from budget.models import DailyLimitRequest, EstimateRequest
from cost_control.context import CostControlContext
from cost_control.cost_estimator import estimate_cost

logger = Logger()


class BudgetService:
    """Read and change budget settings for display in a settings screen."""

    def __init__(self, context: CostControlContext) -> None:
        """Initialize budget service.

        Args:
            context: Cost-control context owning ledger and policy
        """
        self.context = context

    def refresh(self) -> None:
        """Reload limit and usage written by other processes."""
        self.context.load()

    def get_status(self) -> dict[str, Any]:
        """Get current usage, limit and tier.

        Returns:
            Usage report as JSON-compatible dict
        """
        return self.context.status().model_dump(mode="json")

    def update_limit(self, request: DailyLimitRequest) -> dict[str, Any]:
        """Change the daily limit.

        Returns:
            Updated usage report
        """
        self.context.set_daily_limit(request.daily_limit)
        return self.get_status()

    def reset(self) -> dict[str, Any]:
        """Reset today's and this month's usage on user request.

        Returns:
            Usage report after reset
        """
        persisted = self.context.reset_all()
        logger.info("Usage reset by user", extra={"persisted": persisted})
        return self.get_status()

    def get_history(self, days: int) -> dict[str, Any]:
        """Get per-day spend for the last ``days`` days."""
        points = self.context.history(days)
        return {"history": [point.model_dump(mode="json") for point in points]}

    def estimate(self, request: EstimateRequest) -> dict[str, Any]:
        """Estimate an operation's cost and check it against the budget.

        Returns:
            Dict with estimated_cost and the admission decision
        """
        cost = estimate_cost(
            request.service,
            request.operation,
            text_length=request.text_length,
            input_length=request.input_length,
            output_length=request.output_length,
        )
        decision = self.context.can_afford(cost)
        return {
            "estimated_cost": str(cost),
            "decision": decision.model_dump(mode="json"),
        }
