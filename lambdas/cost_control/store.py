"""Durable key-value storage for ledger snapshots and cache entries."""

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Protocol

from aws_lambda_powertools import Logger
from botocore.exceptions import BotoCoreError, ClientError

from .db import DynamoDBClient
from .exceptions import PersistenceError

logger = Logger(child=True)

STATE_SK = "STATE"


class KeyValueStore(Protocol):
    """Protocol for the persistent store behind the ledger and cache."""

    def load(self, key: str) -> bytes | None:
        """Return the last saved bytes for ``key``, or None if absent. Raises PersistenceError on failure."""
        ...

    def save(self, key: str, data: bytes) -> None:
        """Durably save ``data`` under ``key``. Raises PersistenceError on failure."""
        ...


class InMemoryStore:
    """Process-local store, used in tests and when no table is configured."""

    def __init__(self) -> None:
        self._items: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def load(self, key: str) -> bytes | None:
        with self._lock:
            return self._items.get(key)

    def save(self, key: str, data: bytes) -> None:
        with self._lock:
            self._items[key] = bytes(data)

    def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)


class DynamoDBStore:
    """Key-value store on a single DynamoDB table.

    Each key is one item: ``PK=BUDGET#<key>``, ``SK=STATE`` with the payload
    stored as a binary attribute.
    """

    def __init__(self, db: DynamoDBClient) -> None:
        """Initialize store.

        Args:
            db: DynamoDB client for the budget table
        """
        self.db = db

    @staticmethod
    def _pk(key: str) -> str:
        return f"BUDGET#{key}"

    def load(self, key: str) -> bytes | None:
        try:
            item = self.db.get_item(self._pk(key), STATE_SK)
        except (BotoCoreError, ClientError) as e:
            raise PersistenceError(key, str(e)) from e
        if item is None or "payload" not in item:
            return None
        payload = item["payload"]
        # boto3 wraps binary attributes in a Binary object
        return bytes(getattr(payload, "value", payload))

    def save(self, key: str, data: bytes) -> None:
        try:
            self.db.put_item(self._pk(key), STATE_SK, {"payload": bytes(data)})
        except (BotoCoreError, ClientError) as e:
            raise PersistenceError(key, str(e)) from e

    def delete(self, key: str) -> None:
        self.db.delete_item(self._pk(key), STATE_SK)


class PersistenceWorker:
    """Runs store saves with a bounded wait.

    Saves execute one at a time in submission order, so a slow save that
    completes after its timeout can never overwrite a newer one.
    """

    def __init__(self, store: KeyValueStore, timeout: float = 2.0) -> None:
        """Initialize worker.

        Args:
            store: Destination store
            timeout: Seconds to wait for each save before giving up
        """
        self.store = store
        self.timeout = timeout
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="budget-persist")

    def save(self, key: str, data: bytes) -> bool:
        """Save and wait up to ``timeout`` seconds.

        Returns:
            True if the save completed, False if it failed or timed out
        """
        future = self._executor.submit(self.store.save, key, data)
        try:
            future.result(timeout=self.timeout)
        except TimeoutError:
            logger.warning(
                "Persistence timed out",
                extra={"key": key, "timeout_seconds": self.timeout},
            )
            return False
        except (PersistenceError, OSError) as e:
            logger.warning("Persistence failed", extra={"key": key, "error": str(e)})
            return False
        return True

    def load(self, key: str) -> bytes | None:
        """Load and wait up to ``timeout`` seconds.

        Loads queue behind pending saves, so they observe every earlier save.

        Raises:
            PersistenceError: If the load failed or timed out
        """
        future = self._executor.submit(self.store.load, key)
        try:
            return future.result(timeout=self.timeout)
        except TimeoutError:
            logger.warning(
                "Load timed out",
                extra={"key": key, "timeout_seconds": self.timeout},
            )
            raise PersistenceError(key, f"load timed out after {self.timeout}s") from None
        except OSError as e:
            raise PersistenceError(key, str(e)) from e

    def shutdown(self) -> None:
        """Stop accepting saves; queued saves still run."""
        self._executor.shutdown(wait=False)
