"""Tests for configuration and exceptions."""

import os
from decimal import Decimal

import pytest

from cost_control.config import Config, get_config
from cost_control.exceptions import (
    ConfigurationError,
    CostControlError,
    InvalidAmountError,
    PersistenceError,
    ValidationError,
    validate_amount,
)


class TestExceptions:
    """Tests for custom exceptions."""

    def test_cost_control_error(self):
        """Test base exception."""
        error = CostControlError("test message")
        assert str(error) == "test message"
        assert error.message == "test message"

    def test_invalid_amount_error(self):
        """Test InvalidAmountError."""
        error = InvalidAmountError(Decimal("-1"))
        assert "-1" in str(error)
        assert error.amount == Decimal("-1")
        assert isinstance(error, CostControlError)

    def test_persistence_error(self):
        """Test PersistenceError."""
        error = PersistenceError("ledger", "timeout")
        assert "ledger" in str(error)
        assert "timeout" in str(error)
        assert error.key == "ledger"

    def test_validation_error(self):
        """Test ValidationError."""
        error = ValidationError("Invalid value", field="daily_limit")
        assert "Invalid value" in str(error)
        assert error.field == "daily_limit"

    def test_configuration_error(self):
        """Test ConfigurationError."""
        error = ConfigurationError("Missing config", config_key="TABLE_NAME")
        assert "Missing config" in str(error)
        assert error.config_key == "TABLE_NAME"


class TestValidateAmount:
    """Tests for validate_amount."""

    def test_accepts_decimal_int_str(self):
        """Exact numeric inputs are converted to Decimal."""
        assert validate_amount(Decimal("1.25")) == Decimal("1.25")
        assert validate_amount(3) == Decimal("3")
        assert validate_amount("0.0003") == Decimal("0.0003")

    def test_accepts_zero(self):
        """Zero is a legal amount."""
        assert validate_amount(0) == Decimal("0")

    @pytest.mark.parametrize("amount", [-1, "-0.5", 1.5, True, None, "NaN", "-Infinity"])
    def test_rejects(self, amount):
        """Negative, float, bool and non-finite values are rejected."""
        with pytest.raises(InvalidAmountError):
            validate_amount(amount)


class TestConfig:
    """Tests for configuration module."""

    def test_config_from_env(self, env_setup):
        """Test loading config from environment."""
        config = Config.from_env()
        assert config.table_name == "test-table"
        assert config.environment == "test"
        assert config.log_level == "DEBUG"
        assert config.daily_limit == Decimal("50.00")
        assert config.timezone == "UTC"
        assert config.persist_timeout == 2.0
        assert config.insight_max_age == 86400

    def test_config_overrides(self, env_setup, monkeypatch):
        """Budget settings are read from the environment."""
        monkeypatch.setenv("DAILY_LIMIT", "12.50")
        monkeypatch.setenv("BUDGET_TIMEZONE", "Asia/Jakarta")
        monkeypatch.setenv("PERSIST_TIMEOUT_SECONDS", "0.5")
        monkeypatch.setenv("INSIGHT_MAX_AGE_SECONDS", "3600")

        config = Config.from_env()

        assert config.daily_limit == Decimal("12.50")
        assert config.timezone == "Asia/Jakarta"
        assert config.persist_timeout == 0.5
        assert config.insight_max_age == 3600

    def test_config_is_production(self, env_setup, monkeypatch):
        """Test is_production property."""
        monkeypatch.setenv("ENVIRONMENT", "prod")
        assert Config.from_env().is_production is True

    def test_config_missing_table_name(self, env_setup, monkeypatch):
        """Test error when TABLE_NAME is missing."""
        monkeypatch.delenv("TABLE_NAME")
        with pytest.raises(ConfigurationError) as exc_info:
            Config.from_env()
        assert "TABLE_NAME" in str(exc_info.value)

    @pytest.mark.parametrize("value", ["0", "-1", "lots", "NaN"])
    def test_invalid_daily_limit(self, env_setup, monkeypatch, value):
        """DAILY_LIMIT must be a positive amount."""
        monkeypatch.setenv("DAILY_LIMIT", value)
        with pytest.raises(ConfigurationError) as exc_info:
            Config.from_env()
        assert exc_info.value.config_key == "DAILY_LIMIT"

    @pytest.mark.parametrize("value", ["soon", "0", "NaN"])
    def test_invalid_timeout(self, env_setup, monkeypatch, value):
        """PERSIST_TIMEOUT_SECONDS must be a positive number."""
        monkeypatch.setenv("PERSIST_TIMEOUT_SECONDS", value)
        with pytest.raises(ConfigurationError) as exc_info:
            Config.from_env()
        assert exc_info.value.config_key == "PERSIST_TIMEOUT_SECONDS"

    def test_invalid_max_age(self, env_setup, monkeypatch):
        """INSIGHT_MAX_AGE_SECONDS must be a whole number of seconds."""
        monkeypatch.setenv("INSIGHT_MAX_AGE_SECONDS", "1.5")
        with pytest.raises(ConfigurationError) as exc_info:
            Config.from_env()
        assert exc_info.value.config_key == "INSIGHT_MAX_AGE_SECONDS"

    def test_get_config_cached(self, env_setup):
        """get_config returns the same instance."""
        assert get_config() is get_config()
        assert os.environ["TABLE_NAME"] == get_config().table_name
