"""Cost control for metered AI operations."""

from .config import Config
from .context import CostControlContext, OperationOutcome, OutcomeStatus, PaidResult, TierAlert
from .cost_guard import CostGuard, get_limit_message
from .cost_limits import CostLimits, classify
from .exceptions import (
    ConfigurationError,
    CostControlError,
    InvalidAmountError,
    PersistenceError,
    ValidationError,
)
from .ledger import BudgetLedger
from .models import (
    AdmissionDecision,
    AdmissionReason,
    BudgetPolicy,
    CacheEntry,
    LedgerSnapshot,
    StatusTier,
    UsageReport,
    UsageWindow,
)
from .result_cache import CacheHit, CacheMiss, MissReason, ResultCache, compute_fingerprint
from .store import DynamoDBStore, InMemoryStore, KeyValueStore
from .windows import WindowResolver

__all__ = [
    # Config
    "Config",
    # Context
    "CostControlContext",
    "OperationOutcome",
    "OutcomeStatus",
    "PaidResult",
    "TierAlert",
    # Components
    "BudgetLedger",
    "CostGuard",
    "CostLimits",
    "ResultCache",
    "WindowResolver",
    "classify",
    "compute_fingerprint",
    "get_limit_message",
    # Storage
    "DynamoDBStore",
    "InMemoryStore",
    "KeyValueStore",
    # Exceptions
    "ConfigurationError",
    "CostControlError",
    "InvalidAmountError",
    "PersistenceError",
    "ValidationError",
    # Models
    "AdmissionDecision",
    "AdmissionReason",
    "BudgetPolicy",
    "CacheEntry",
    "CacheHit",
    "CacheMiss",
    "LedgerSnapshot",
    "MissReason",
    "StatusTier",
    "UsageReport",
    "UsageWindow",
]
