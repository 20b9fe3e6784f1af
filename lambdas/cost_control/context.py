"""Process-wide owner of the ledger, guard, cache and budget policy."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any

from aws_lambda_powertools import Logger
from pydantic import ValidationError as PydanticValidationError

from .config import DEFAULT_DAILY_LIMIT, Config
from .cost_guard import CostGuard, get_limit_message
from .cost_limits import CostLimits, tier_rank
from .exceptions import InvalidAmountError, PersistenceError, ValidationError
from .ledger import BudgetLedger
from .models import AdmissionDecision, BudgetPolicy, HistoryPoint, StatusTier, UsageReport
from .result_cache import MissReason, ResultCache
from .store import KeyValueStore, PersistenceWorker
from .windows import WindowResolver

logger = Logger(child=True)

POLICY_KEY = "policy"


@dataclass
class PaidResult:
    """What a paid operation produced and what it actually cost."""

    artifact: Any
    actual_cost: Decimal


class OutcomeStatus(str, Enum):
    """How a cost-incurring request was served."""

    CACHED = "cached"
    GENERATED = "generated"
    DENIED = "denied"
    FALLBACK = "fallback"
    FAILED = "failed"


@dataclass
class OperationOutcome:
    """Result of ``run_paid_operation``.

    ``artifact`` is set for cached, generated and fallback outcomes. A denied
    outcome also carries the last known artifact when one exists.
    """

    status: OutcomeStatus
    artifact: Any = None
    decision: AdmissionDecision | None = None
    message: str | None = None
    miss_reason: MissReason | None = None
    persisted: bool = True


@dataclass
class TierAlert:
    """Daily spend moved into a higher status tier."""

    previous: StatusTier
    current: StatusTier
    daily_total: Decimal
    daily_limit: Decimal


class CostControlContext:
    """Single owner of cost-control state for one process.

    Create one at startup and pass it to every feature that spends money.
    """

    def __init__(
        self,
        store: KeyValueStore,
        daily_limit: Decimal = DEFAULT_DAILY_LIMIT,
        resolver: WindowResolver | None = None,
        clock: Callable[[], datetime] | None = None,
        persist_timeout: float = 2.0,
        limits: CostLimits | None = None,
    ) -> None:
        """Initialize context.

        Args:
            store: Durable store shared by ledger, cache and policy
            daily_limit: Initial daily limit until a saved policy is loaded
            resolver: Window resolver
            clock: Source of "now"
            persist_timeout: Seconds to wait for each save
            limits: Threshold configuration
        """
        self.store = store
        self._policy = self._validated_policy(daily_limit)
        self.ledger = BudgetLedger(
            store,
            resolver=resolver,
            clock=clock,
            persist_timeout=persist_timeout,
            limits=limits,
        )
        self.guard = CostGuard(self.ledger, lambda: self._policy)
        self.cache = ResultCache(store, clock=self.ledger.clock, persist_timeout=persist_timeout)
        self._policy_persistence = PersistenceWorker(store, persist_timeout)
        self._policy_dirty = False
        self._listeners: list[Callable[[TierAlert], None]] = []

    @classmethod
    def from_config(cls, config: Config, store: KeyValueStore) -> "CostControlContext":
        """Build a context from environment configuration."""
        return cls(
            store,
            daily_limit=config.daily_limit,
            resolver=WindowResolver(config.timezone),
            persist_timeout=config.persist_timeout,
        )

    @staticmethod
    def _validated_policy(daily_limit: Decimal | int | str) -> BudgetPolicy:
        try:
            return BudgetPolicy(daily_limit=daily_limit)
        except PydanticValidationError:
            raise ValidationError(
                f"Daily limit must be a number greater than zero, got {daily_limit!r}",
                field="daily_limit",
            ) from None

    @property
    def policy(self) -> BudgetPolicy:
        return self._policy

    def load(self) -> None:
        """Restore policy and ledger from the store.

        Safe to call on every request; state written by other processes
        replaces the in-memory copy unless local changes are still unsaved.
        """
        if self._policy_dirty:
            self._save_policy(self._policy)
        if not self._policy_dirty:
            try:
                raw = self._policy_persistence.load(POLICY_KEY)
            except PersistenceError as e:
                logger.warning("Budget policy unavailable, keeping current limit", extra={"error": e.message})
                raw = None
            if raw:
                try:
                    self._policy = BudgetPolicy.model_validate_json(raw)
                except PydanticValidationError as e:
                    logger.error("Ignoring corrupt budget policy", extra={"error": str(e)})
        self.ledger.load()
        logger.info("Cost control loaded", extra={"daily_limit": str(self._policy.daily_limit)})

    def _save_policy(self, policy: BudgetPolicy) -> bool:
        persisted = self._policy_persistence.save(POLICY_KEY, policy.model_dump_json().encode("utf-8"))
        self._policy_dirty = not persisted
        return persisted

    def set_daily_limit(self, daily_limit: Decimal | int | str) -> BudgetPolicy:
        """Change the daily limit. Only future admission checks are affected.

        Raises:
            ValidationError: If the limit is not a number greater than zero
        """
        policy = self._validated_policy(daily_limit)
        self._policy = policy
        persisted = self._save_policy(policy)
        logger.info(
            "Daily limit updated",
            extra={"daily_limit": str(policy.daily_limit), "persisted": persisted},
        )
        return policy

    def add_listener(self, listener: Callable[[TierAlert], None]) -> None:
        """Register a callback for tier increases."""
        self._listeners.append(listener)

    def status(self, now: datetime | None = None) -> UsageReport:
        """Get usage and tier for display."""
        return self.ledger.usage(self._policy.daily_limit, now)

    def history(self, days: int = 7, now: datetime | None = None) -> list[HistoryPoint]:
        """Get per-day spend for the last ``days`` days."""
        return self.ledger.history(self._policy.daily_limit, days, now)

    def can_afford(self, estimated_cost: Decimal | int | str, now: datetime | None = None) -> AdmissionDecision:
        return self.guard.can_afford(estimated_cost, now)

    def record_cost(self, service: str, amount: Decimal | int | str, now: datetime | None = None) -> bool:
        """Charge a realized cost and emit a tier alert if the tier went up.

        Returns:
            True if the charge was durably saved
        """
        limit = self._policy.daily_limit
        before = self.ledger.usage(limit, now).daily.tier
        persisted = self.ledger.record_cost(service, amount, now)
        daily = self.ledger.usage(limit, now).daily

        if tier_rank(daily.tier) > tier_rank(before):
            alert = TierAlert(
                previous=before,
                current=daily.tier,
                daily_total=daily.total,
                daily_limit=limit,
            )
            logger.warning(
                "Budget tier increased",
                extra={
                    "previous": before.value,
                    "current": daily.tier.value,
                    "daily_total": str(daily.total),
                    "limit": str(limit),
                },
            )
            for listener in self._listeners:
                try:
                    listener(alert)
                except Exception:
                    # Alerts are best effort; the charge is already applied
                    logger.exception("Tier alert listener failed", extra={"current": daily.tier.value})

        return persisted

    def reset_all(self, now: datetime | None = None) -> bool:
        """Zero today's and this month's spend on explicit user request."""
        return self.ledger.reset_all(now)

    def run_paid_operation(
        self,
        service: str,
        estimated_cost: Decimal | int | str,
        operation: Callable[[], PaidResult],
        cache_key: str | None = None,
        fingerprint: str | None = None,
        max_age: timedelta | float | None = None,
        now: datetime | None = None,
    ) -> OperationOutcome:
        """Serve a cost-incurring request.

        Order: cache lookup, admission check, paid call, cost recording,
        cache store. When the paid call fails the last known artifact is
        served instead.

        Args:
            service: Paid service the operation is charged to
            estimated_cost: Expected cost for the admission check
            operation: Performs the paid call
            cache_key: Cache entry to consult and update, if any
            fingerprint: Fingerprint of the current inputs; required with cache_key
            max_age: Oldest usable entry; required with cache_key
            now: Timestamp for every step. Defaults to the clock at each step.

        Returns:
            OperationOutcome describing how the request was served
        """
        miss_reason = None
        if cache_key is not None:
            if fingerprint is None or max_age is None:
                raise ValidationError("fingerprint and max_age are required with cache_key")
            lookup = self.cache.get(cache_key, fingerprint, max_age, now)
            if lookup.hit:
                return OperationOutcome(OutcomeStatus.CACHED, artifact=lookup.artifact)
            miss_reason = lookup.reason

        decision = self.guard.can_afford(estimated_cost, now)
        if not decision.allowed:
            return OperationOutcome(
                OutcomeStatus.DENIED,
                artifact=self._last_known(cache_key),
                decision=decision,
                message=get_limit_message(decision.reason),
                miss_reason=miss_reason,
            )

        try:
            result = operation()
        except Exception as e:
            # Paid clients are opaque; any failure falls back to the last artifact
            logger.warning(
                "Paid operation failed",
                extra={"service": service, "error": str(e), "cache_key": cache_key},
            )
            last_known = self._last_known(cache_key)
            if last_known is not None:
                return OperationOutcome(
                    OutcomeStatus.FALLBACK,
                    artifact=last_known,
                    decision=decision,
                    miss_reason=miss_reason,
                )
            return OperationOutcome(
                OutcomeStatus.FAILED,
                decision=decision,
                message="The operation could not be completed. Please try again later.",
                miss_reason=miss_reason,
            )

        try:
            persisted = self.record_cost(service, result.actual_cost, now)
        except InvalidAmountError as e:
            # The money is spent; charge the admitted estimate instead
            logger.error(
                "Paid operation reported an invalid cost, charging the estimate",
                extra={"service": service, "error": e.message, "estimated_cost": str(decision.estimated_cost)},
            )
            persisted = self.record_cost(service, decision.estimated_cost, now)
        if cache_key is not None:
            self.cache.put(cache_key, result.artifact, fingerprint, now)

        return OperationOutcome(
            OutcomeStatus.GENERATED,
            artifact=result.artifact,
            decision=decision,
            miss_reason=miss_reason,
            persisted=persisted,
        )

    def _last_known(self, cache_key: str | None) -> Any:
        if cache_key is None:
            return None
        entry = self.cache.peek(cache_key)
        return entry.artifact if entry is not None else None

    def close(self) -> None:
        """Release persistence workers. Call at process exit."""
        self.ledger.close()
        self.cache.close()
        self._policy_persistence.shutdown()
