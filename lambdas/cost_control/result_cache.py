"""Cache of generated artifacts that avoids paid regeneration.

An entry is reusable while it is younger than ``max_age`` and was produced
from inputs with the same fingerprint as the current ones. Either check
failing forces regeneration.
"""

import hashlib
import json
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

from aws_lambda_powertools import Logger, Metrics
from aws_lambda_powertools.metrics import MetricUnit
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticSerializationError

from .exceptions import PersistenceError
from .models import CacheEntry
from .store import KeyValueStore, PersistenceWorker
from .windows import utc_now

logger = Logger(child=True)
metrics = Metrics(namespace="BudgetGuard")


class MissReason(str, Enum):
    """Why a cache lookup could not be served."""

    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    FINGERPRINT_CHANGED = "fingerprint_changed"


@dataclass(frozen=True)
class CacheHit:
    """Usable cached artifact."""

    entry: CacheEntry
    hit: bool = True

    @property
    def artifact(self) -> Any:
        return self.entry.artifact


@dataclass(frozen=True)
class CacheMiss:
    """Regeneration is required."""

    reason: MissReason
    hit: bool = False


def compute_fingerprint(*parts: Any) -> str:
    """Build a stable fingerprint from the inputs behind an artifact.

    Args:
        parts: JSON-compatible values, e.g. a record count and the latest
            completion time

    Returns:
        Hex SHA-256 digest
    """
    encoded = json.dumps(parts, sort_keys=True, default=str, separators=(",", ":"))
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class ResultCache:
    """Per-key store of the most recent generated artifact.

    Entries are loaded lazily from the store on first access and replaced
    whole on every ``put``.
    """

    def __init__(
        self,
        store: KeyValueStore,
        clock: Callable[[], datetime] | None = None,
        persist_timeout: float = 2.0,
        namespace: str = "cache",
    ) -> None:
        """Initialize cache.

        Args:
            store: Durable store for entries
            clock: Source of "now" when callers omit it
            persist_timeout: Seconds to wait for each save
            namespace: Prefix of store keys
        """
        self.store = store
        self.clock = clock or utc_now
        self.namespace = namespace
        self._persistence = PersistenceWorker(store, persist_timeout)
        self._entries: dict[str, CacheEntry | None] = {}
        self._lock = threading.Lock()

    def _store_key(self, key: str) -> str:
        return f"{self.namespace}#{key}"

    def _entry(self, key: str) -> CacheEntry | None:
        with self._lock:
            if key not in self._entries:
                try:
                    self._entries[key] = self._load(key)
                except PersistenceError as e:
                    # Not remembered, so the next lookup retries the store
                    logger.warning("Cache entry unavailable", extra={"key": key, "error": e.message})
                    return None
            return self._entries[key]

    def _load(self, key: str) -> CacheEntry | None:
        raw = self._persistence.load(self._store_key(key))
        # Empty payload marks an invalidated entry
        if not raw:
            return None
        try:
            return CacheEntry.model_validate_json(raw)
        except PydanticValidationError as e:
            logger.error("Discarding corrupt cache entry", extra={"key": key, "error": str(e)})
            return None

    def get(
        self,
        key: str,
        fingerprint: str,
        max_age: timedelta | float,
        now: datetime | None = None,
    ) -> CacheHit | CacheMiss:
        """Look up a usable artifact.

        Args:
            key: Cache key
            fingerprint: Fingerprint of the current inputs
            max_age: Oldest acceptable entry, as timedelta or seconds
            now: Lookup timestamp. Defaults to the cache clock.

        Returns:
            CacheHit with the artifact, or CacheMiss with the reason
        """
        if not isinstance(max_age, timedelta):
            max_age = timedelta(seconds=max_age)
        now = _as_utc(now or self.clock())

        entry = self._entry(key)
        if entry is None:
            result: CacheHit | CacheMiss = CacheMiss(MissReason.NOT_FOUND)
        elif now - _as_utc(entry.created_at) > max_age:
            result = CacheMiss(MissReason.EXPIRED)
        elif entry.fingerprint != fingerprint:
            result = CacheMiss(MissReason.FINGERPRINT_CHANGED)
        else:
            result = CacheHit(entry)

        if result.hit:
            metrics.add_metric(name="CacheHit", unit=MetricUnit.Count, value=1)
        else:
            logger.debug("Cache miss", extra={"key": key, "reason": result.reason.value})
            metrics.add_metric(name="CacheMiss", unit=MetricUnit.Count, value=1)
        return result

    def put(
        self,
        key: str,
        artifact: Any,
        fingerprint: str,
        now: datetime | None = None,
    ) -> bool:
        """Replace the entry for ``key``.

        The in-memory entry is replaced even when the save fails.

        Returns:
            True if the entry was durably saved
        """
        entry = CacheEntry(
            artifact=artifact,
            fingerprint=fingerprint,
            created_at=_as_utc(now or self.clock()),
        )
        with self._lock:
            self._entries[key] = entry
            try:
                payload = entry.model_dump_json().encode("utf-8")
            except PydanticSerializationError as e:
                logger.warning(
                    "Cache entry is not serializable, keeping it in memory only",
                    extra={"key": key, "error": str(e)},
                )
                return False
            persisted = self._persistence.save(self._store_key(key), payload)

        logger.info("Cache entry stored", extra={"key": key, "persisted": persisted})
        return persisted

    def peek(self, key: str) -> CacheEntry | None:
        """Get the last stored entry regardless of age or fingerprint."""
        return self._entry(key)

    def invalidate(self, key: str) -> bool:
        """Drop the entry for ``key``.

        Returns:
            True if the removal was durably saved
        """
        with self._lock:
            self._entries[key] = None
            return self._persistence.save(self._store_key(key), b"")

    def close(self) -> None:
        """Release the persistence worker."""
        self._persistence.shutdown()
