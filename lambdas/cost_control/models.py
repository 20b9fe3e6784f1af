"""Pydantic models for budget accounting state."""

from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

ZERO = Decimal("0")


class WindowKind(str, Enum):
    """Calendar period a usage window spans."""

    DAILY = "daily"
    MONTHLY = "monthly"


class StatusTier(str, Enum):
    """Budget consumption tier used for alerting."""

    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"
    EXCEEDED = "exceeded"


class AdmissionReason(str, Enum):
    """Why an admission check was denied."""

    DAILY_LIMIT = "daily_limit"


class UsageWindow(BaseModel):
    """Identifier of a calendar day (YYYY-MM-DD) or month (YYYY-MM)."""

    model_config = ConfigDict(frozen=True)

    kind: WindowKind
    window_id: str = Field(..., min_length=7, max_length=10)

    def __str__(self) -> str:
        return self.window_id


class BudgetPolicy(BaseModel):
    """User-configured spending policy."""

    daily_limit: Decimal = Field(..., gt=0, allow_inf_nan=False)


class LedgerSnapshot(BaseModel):
    """Accumulated spend for the current daily and monthly windows.

    This is also the persisted format. Totals always equal the sum of their
    per-service maps; a snapshot that violates this is rejected on load.
    """

    daily_total: Decimal = Field(default=ZERO, ge=0)
    daily_by_service: dict[str, Decimal] = Field(default_factory=dict)
    daily_window: UsageWindow
    monthly_total: Decimal = Field(default=ZERO, ge=0)
    monthly_by_service: dict[str, Decimal] = Field(default_factory=dict)
    monthly_window: UsageWindow
    daily_history: dict[str, Decimal] = Field(default_factory=dict)
    updated_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())

    @model_validator(mode="after")
    def check_totals(self) -> "LedgerSnapshot":
        """Validate that aggregate totals match their per-service maps."""
        if self.daily_total != sum(self.daily_by_service.values(), ZERO):
            raise ValueError("daily_total does not match daily_by_service")
        if self.monthly_total != sum(self.monthly_by_service.values(), ZERO):
            raise ValueError("monthly_total does not match monthly_by_service")
        return self


class AdmissionDecision(BaseModel):
    """Result of a pre-spend budget check. Denial is a normal outcome."""

    allowed: bool
    remaining: Decimal
    estimated_cost: Decimal = ZERO
    reason: AdmissionReason | None = None


class DailyUsage(BaseModel):
    """Daily window usage as seen at read time."""

    window: str
    total: Decimal
    by_service: dict[str, Decimal]
    limit: Decimal
    remaining: Decimal
    percentage: Decimal
    tier: StatusTier


class MonthlyUsage(BaseModel):
    """Monthly window usage as seen at read time."""

    window: str
    total: Decimal
    by_service: dict[str, Decimal]


class UsageReport(BaseModel):
    """Read-only view of the ledger."""

    daily: DailyUsage
    monthly: MonthlyUsage
    dirty: bool = False


class HistoryPoint(BaseModel):
    """Total spend for one past or current day."""

    date: str
    usage: Decimal
    percentage: Decimal


class CacheEntry(BaseModel):
    """A generated artifact with the fingerprint of the inputs behind it."""

    model_config = ConfigDict(frozen=True)

    artifact: Any
    fingerprint: str
    created_at: datetime
