"""Insight service - cached AI summary of completed practice sessions."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Protocol

from aws_lambda_powertools import Logger

from cost_control.config import DEFAULT_INSIGHT_MAX_AGE_SECONDS
from cost_control.context import CostControlContext, OutcomeStatus, PaidResult
from cost_control.cost_estimator import TEXT_GENERATION, estimate_cost
from cost_control.result_cache import compute_fingerprint

logger = Logger(child=True)

INSIGHT_CACHE_KEY = "global-insight"
EXPECTED_OUTPUT_LENGTH = 500

DEFAULT_INSIGHTS = {
    "en": "Complete a few practice sessions to unlock your personalized insight.",
    "id": "Selesaikan beberapa sesi latihan untuk membuka insight pribadi Anda.",
}
FALLBACK_INSIGHTS = {
    "en": "Keep practicing! Every session builds your confidence.",
    "id": "Terus berlatih! Setiap sesi membangun kepercayaan diri Anda.",
}


@dataclass
class GeneratedInsight:
    """Text produced by the generator and its billed cost."""

    text: str
    cost: Decimal


class InsightGenerator(Protocol):
    """Protocol for the paid text-generation client."""

    def generate_insight(self, records: list[dict[str, Any]], language: str) -> GeneratedInsight:
        """Summarize completed sessions into one insight."""
        ...


@dataclass
class InsightResult:
    """Insight text and how it was obtained."""

    text: str
    status: OutcomeStatus | None
    message: str | None = None


def records_fingerprint(records: list[dict[str, Any]], language: str) -> str:
    """Fingerprint the inputs of an insight.

    Only the number of completed records and the latest completion time are
    used; edits that change neither do not trigger regeneration.
    """
    latest = max((str(r.get("completed_at", "")) for r in records), default="")
    return compute_fingerprint(len(records), latest, language)


class InsightService:
    """Serves the dashboard insight, regenerating only when needed."""

    def __init__(
        self,
        context: CostControlContext,
        generator: InsightGenerator,
        max_age: timedelta | None = None,
    ) -> None:
        """Initialize insight service.

        Args:
            context: Cost-control context
            generator: Paid text-generation client
            max_age: Oldest insight to reuse. Defaults to 24 hours.
        """
        self.context = context
        self.generator = generator
        self.max_age = max_age or timedelta(seconds=DEFAULT_INSIGHT_MAX_AGE_SECONDS)

    def get_insight(
        self,
        records: list[dict[str, Any]],
        language: str = "en",
        now: datetime | None = None,
    ) -> InsightResult:
        """Get the insight for a set of completed records.

        Args:
            records: Completed session records
            language: Output language code
            now: Request timestamp

        Returns:
            InsightResult; text is never empty
        """
        completed = [r for r in records if r.get("completed_at")]
        if not completed:
            return InsightResult(text=DEFAULT_INSIGHTS.get(language, DEFAULT_INSIGHTS["en"]), status=None)

        estimated = estimate_cost(
            TEXT_GENERATION,
            "generate",
            input_length=sum(len(str(r)) for r in completed),
            output_length=EXPECTED_OUTPUT_LENGTH,
        )

        def generate() -> PaidResult:
            insight = self.generator.generate_insight(completed, language)
            return PaidResult(artifact=insight.text, actual_cost=insight.cost)

        outcome = self.context.run_paid_operation(
            TEXT_GENERATION,
            estimated,
            generate,
            cache_key=INSIGHT_CACHE_KEY,
            fingerprint=records_fingerprint(completed, language),
            max_age=self.max_age,
            now=now,
        )

        if outcome.artifact:
            return InsightResult(text=outcome.artifact, status=outcome.status, message=outcome.message)

        logger.info("Serving fallback insight", extra={"status": outcome.status.value})
        return InsightResult(
            text=FALLBACK_INSIGHTS.get(language, FALLBACK_INSIGHTS["en"]),
            status=outcome.status,
            message=outcome.message,
        )
