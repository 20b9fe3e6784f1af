"""Shared fixtures for Budget Guard tests."""

import os
import threading

import boto3
import pytest
from moto import mock_aws

from cost_control.config import get_config
from cost_control.exceptions import PersistenceError
from cost_control.store import InMemoryStore

os.environ.setdefault("POWERTOOLS_TRACE_DISABLED", "1")
os.environ.setdefault("POWERTOOLS_SERVICE_NAME", "budget-guard")
os.environ.setdefault("POWERTOOLS_METRICS_NAMESPACE", "BudgetGuard")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")

TEST_TABLE = "test-table"


class FlakyStore(InMemoryStore):
    """Store whose next ``failures`` saves raise PersistenceError."""

    def __init__(self, failures: int = 1) -> None:
        super().__init__()
        self.failures = failures
        self.save_calls = 0

    def save(self, key: str, data: bytes) -> None:
        self.save_calls += 1
        if self.failures > 0:
            self.failures -= 1
            raise PersistenceError(key, "simulated outage")
        super().save(key, data)


class BlockingStore(InMemoryStore):
    """Store whose saves wait until ``release`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.release = threading.Event()

    def save(self, key: str, data: bytes) -> None:
        self.release.wait(timeout=5)
        super().save(key, data)


class HangingLoadStore(InMemoryStore):
    """Store whose loads wait until ``release`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.release = threading.Event()
        self.load_calls = 0

    def load(self, key: str) -> bytes | None:
        self.load_calls += 1
        self.release.wait(timeout=5)
        return super().load(key)


@pytest.fixture
def aws_credentials():
    """Mocked AWS credentials for moto."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"


@pytest.fixture
def env_setup(monkeypatch):
    """Set the environment variables the config reads."""
    monkeypatch.setenv("TABLE_NAME", TEST_TABLE)
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.setenv("POWERTOOLS_LOG_LEVEL", "DEBUG")
    if hasattr(get_config, "_config"):
        delattr(get_config, "_config")
    yield
    if hasattr(get_config, "_config"):
        delattr(get_config, "_config")


@pytest.fixture
def dynamodb_table(aws_credentials, env_setup):
    """Create a mocked single-table DynamoDB table."""
    with mock_aws():
        dynamodb = boto3.resource("dynamodb", region_name="us-east-1")
        table = dynamodb.create_table(
            TableName=TEST_TABLE,
            KeySchema=[
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "PK", "AttributeType": "S"},
                {"AttributeName": "SK", "AttributeType": "S"},
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        yield table


@pytest.fixture
def store():
    """In-memory key-value store."""
    return InMemoryStore()
