"""Budget ledger: accumulated spend per service in daily and monthly windows."""

import threading
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from decimal import Decimal

from aws_lambda_powertools import Logger, Metrics
from aws_lambda_powertools.metrics import MetricUnit
from pydantic import ValidationError as PydanticValidationError

from .cost_limits import CostLimits, classify, usage_percentage
from .exceptions import PersistenceError, ValidationError, validate_amount
from .models import (
    ZERO,
    DailyUsage,
    HistoryPoint,
    LedgerSnapshot,
    MonthlyUsage,
    UsageReport,
)
from .store import KeyValueStore, PersistenceWorker
from .windows import WindowResolver, utc_now

logger = Logger(child=True)
metrics = Metrics(namespace="BudgetGuard")

LEDGER_KEY = "ledger"


class BudgetLedger:
    """Tracks spend in memory and persists every change.

    ``record_cost`` and ``reset_all`` run inside a single critical section
    that covers the rollover check, the state swap and the save. The state
    itself is an immutable snapshot replaced wholesale, so reads never see a
    partially applied charge.
    """

    def __init__(
        self,
        store: KeyValueStore,
        resolver: WindowResolver | None = None,
        clock: Callable[[], datetime] | None = None,
        persist_timeout: float = 2.0,
        limits: CostLimits | None = None,
        key: str = LEDGER_KEY,
    ) -> None:
        """Initialize an empty ledger.

        Args:
            store: Durable store for snapshots
            resolver: Window resolver. Defaults to UTC days.
            clock: Source of "now" when callers omit it
            persist_timeout: Seconds to wait for each save
            limits: Threshold and retention configuration
            key: Store key of the snapshot
        """
        self.store = store
        self.resolver = resolver or WindowResolver()
        self.clock = clock or utc_now
        self.limits = limits or CostLimits()
        self.key = key
        self._persistence = PersistenceWorker(store, persist_timeout)
        self._lock = threading.Lock()
        self._state = self._empty(self.clock())
        self._dirty = False

    @property
    def dirty(self) -> bool:
        """True when the in-memory state has not been durably saved."""
        return self._dirty

    def _empty(self, now: datetime, history: dict[str, Decimal] | None = None) -> LedgerSnapshot:
        return LedgerSnapshot(
            daily_window=self.resolver.current_daily_window(now),
            monthly_window=self.resolver.current_monthly_window(now),
            daily_history=dict(history or {}),
        )

    def load(self) -> LedgerSnapshot:
        """Restore state from the store.

        A missing snapshot means all zero in the current windows. A snapshot
        that fails validation is logged and treated as missing. Unsaved
        in-memory changes are saved first; if that save or the load itself
        fails, the in-memory state is kept.

        Returns:
            The current snapshot
        """
        with self._lock:
            if self._dirty and not self._persist_locked():
                logger.warning("Unsaved ledger changes pending, keeping in-memory state")
                return self._state
            try:
                raw = self._persistence.load(self.key)
            except PersistenceError as e:
                logger.warning("Ledger snapshot unavailable, keeping in-memory state", extra={"error": e.message})
                return self._state
            if raw is None:
                logger.info("No ledger snapshot found, starting empty")
                self._state = self._empty(self.clock())
            else:
                try:
                    self._state = LedgerSnapshot.model_validate_json(raw)
                except PydanticValidationError as e:
                    logger.error("Discarding corrupt ledger snapshot", extra={"error": str(e)})
                    self._state = self._empty(self.clock())
            self._dirty = False
            return self._state

    def _rolled(self, state: LedgerSnapshot, now: datetime) -> LedgerSnapshot:
        """Return ``state`` as of ``now``, with stale windows reset."""
        daily = self.resolver.current_daily_window(now)
        monthly = self.resolver.current_monthly_window(now)
        updates: dict = {}

        if state.daily_window != daily:
            history = dict(state.daily_history)
            if state.daily_total > 0:
                history[state.daily_window.window_id] = state.daily_total
            cutoff = (
                self.resolver.localize(now).date()
                - timedelta(days=self.limits.HISTORY_RETENTION_DAYS)
            ).isoformat()
            updates.update(
                daily_total=ZERO,
                daily_by_service={},
                daily_window=daily,
                daily_history={day: total for day, total in history.items() if day >= cutoff},
            )

        if state.monthly_window != monthly:
            updates.update(
                monthly_total=ZERO,
                monthly_by_service={},
                monthly_window=monthly,
            )

        if not updates:
            return state
        return state.model_copy(update=updates)

    def _persist_locked(self) -> bool:
        persisted = self._persistence.save(self.key, self._state.model_dump_json().encode("utf-8"))
        self._dirty = not persisted
        return persisted

    def record_cost(
        self,
        service: str,
        amount: Decimal | int | str,
        now: datetime | None = None,
    ) -> bool:
        """Charge a realized cost to a service.

        Must only be called after the paid operation actually ran.

        Args:
            service: Paid service name (e.g. "speech-synthesis")
            amount: Non-negative cost
            now: Timestamp of the charge. Defaults to the ledger clock.

        Returns:
            True if the new state was durably saved. False means the charge
            is applied in memory and will be saved on the next mutation.

        Raises:
            InvalidAmountError: If amount is negative or not a finite number
            ValidationError: If service is empty
        """
        value = validate_amount(amount)
        if not service:
            raise ValidationError("Service name is required", field="service")
        now = now or self.clock()

        with self._lock:
            state = self._rolled(self._state, now)
            changed = state is not self._state

            if value > 0:
                daily_by_service = dict(state.daily_by_service)
                daily_by_service[service] = daily_by_service.get(service, ZERO) + value
                monthly_by_service = dict(state.monthly_by_service)
                monthly_by_service[service] = monthly_by_service.get(service, ZERO) + value
                state = state.model_copy(
                    update={
                        "daily_total": state.daily_total + value,
                        "daily_by_service": daily_by_service,
                        "monthly_total": state.monthly_total + value,
                        "monthly_by_service": monthly_by_service,
                    }
                )
                changed = True

            if not changed and not self._dirty:
                return True

            self._state = state.model_copy(update={"updated_at": datetime.now(UTC).isoformat()})
            persisted = self._persist_locked()
            daily_total = self._state.daily_total

        logger.info(
            "Cost recorded",
            extra={
                "service": service,
                "amount": str(value),
                "daily_total": str(daily_total),
                "persisted": persisted,
            },
        )
        metrics.add_metric(name="CostRecorded", unit=MetricUnit.Count, value=1)
        return persisted

    def reset_all(self, now: datetime | None = None) -> bool:
        """Zero both windows immediately. Only for an explicit user reset.

        Past daily history is kept.

        Returns:
            True if the reset state was durably saved
        """
        now = now or self.clock()
        with self._lock:
            self._state = self._empty(now, history=self._rolled(self._state, now).daily_history)
            persisted = self._persist_locked()
        logger.info("Ledger reset", extra={"persisted": persisted})
        return persisted

    def flush(self) -> bool:
        """Retry saving a dirty snapshot.

        Returns:
            True if nothing was pending or the save completed
        """
        with self._lock:
            if not self._dirty:
                return True
            return self._persist_locked()

    def snapshot(self, now: datetime | None = None) -> LedgerSnapshot:
        """Get the state as of ``now`` without persisting any rollover."""
        return self._rolled(self._state, now or self.clock())

    def usage(self, daily_limit: Decimal, now: datetime | None = None) -> UsageReport:
        """Read current usage.

        Behaves as if stale windows were rolled over; the rollover itself is
        persisted lazily by the next write.

        Args:
            daily_limit: Current policy limit
            now: Read timestamp. Defaults to the ledger clock.
        """
        state = self.snapshot(now)
        return UsageReport(
            daily=DailyUsage(
                window=state.daily_window.window_id,
                total=state.daily_total,
                by_service=dict(state.daily_by_service),
                limit=daily_limit,
                remaining=max(ZERO, daily_limit - state.daily_total),
                percentage=usage_percentage(state.daily_total, daily_limit),
                tier=classify(state.daily_total, daily_limit, self.limits),
            ),
            monthly=MonthlyUsage(
                window=state.monthly_window.window_id,
                total=state.monthly_total,
                by_service=dict(state.monthly_by_service),
            ),
            dirty=self._dirty,
        )

    def history(self, daily_limit: Decimal, days: int = 7, now: datetime | None = None) -> list[HistoryPoint]:
        """Get per-day totals for the last ``days`` days, oldest first.

        Args:
            daily_limit: Limit used to compute each day's percentage
            days: Number of days including today
            now: Read timestamp
        """
        now = now or self.clock()
        state = self.snapshot(now)
        points = []
        for window in self.resolver.recent_daily_windows(days, now):
            if window == state.daily_window:
                total = state.daily_total
            else:
                total = state.daily_history.get(window.window_id, ZERO)
            points.append(
                HistoryPoint(
                    date=window.window_id,
                    usage=total,
                    percentage=(total / daily_limit * 100).quantize(Decimal("0.01")),
                )
            )
        return points

    def close(self) -> None:
        """Release the persistence worker."""
        self._persistence.shutdown()
