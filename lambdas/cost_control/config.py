"""Environment configuration for Budget Guard."""
import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from .exceptions import ConfigurationError

DEFAULT_DAILY_LIMIT = Decimal("50.00")
DEFAULT_PERSIST_TIMEOUT_SECONDS = 2.0
DEFAULT_INSIGHT_MAX_AGE_SECONDS = 24 * 60 * 60


@dataclass
class Config:
    """Application configuration loaded from environment variables."""

    table_name: str
    environment: str
    log_level: str
    daily_limit: Decimal = DEFAULT_DAILY_LIMIT
    timezone: str = "UTC"
    persist_timeout: float = DEFAULT_PERSIST_TIMEOUT_SECONDS
    insight_max_age: int = DEFAULT_INSIGHT_MAX_AGE_SECONDS

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables.

        Returns:
            Config instance with values from environment

        Raises:
            ConfigurationError: If required variables are missing or invalid
        """
        table_name = os.environ.get("TABLE_NAME")
        if not table_name:
            raise ConfigurationError(
                "TABLE_NAME environment variable is required",
                config_key="TABLE_NAME",
            )

        raw_limit = os.environ.get("DAILY_LIMIT", str(DEFAULT_DAILY_LIMIT))
        try:
            daily_limit = Decimal(raw_limit)
        except InvalidOperation:
            raise ConfigurationError(
                f"DAILY_LIMIT must be a decimal amount, got {raw_limit!r}",
                config_key="DAILY_LIMIT",
            ) from None
        if not daily_limit.is_finite() or daily_limit <= 0:
            raise ConfigurationError(
                "DAILY_LIMIT must be greater than zero",
                config_key="DAILY_LIMIT",
            )

        return cls(
            table_name=table_name,
            environment=os.environ.get("ENVIRONMENT", "dev"),
            log_level=os.environ.get("POWERTOOLS_LOG_LEVEL", "INFO"),
            daily_limit=daily_limit,
            timezone=os.environ.get("BUDGET_TIMEZONE", "UTC"),
            persist_timeout=_positive_number(
                "PERSIST_TIMEOUT_SECONDS", DEFAULT_PERSIST_TIMEOUT_SECONDS, float
            ),
            insight_max_age=_positive_number(
                "INSIGHT_MAX_AGE_SECONDS", DEFAULT_INSIGHT_MAX_AGE_SECONDS, int
            ),
        )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "prod"


def _positive_number(key: str, default: float | int, cast: type) -> float | int:
    """Read a positive number from the environment.

    Args:
        key: Environment variable name
        default: Value when the variable is unset
        cast: Numeric type to convert to (float or int)

    Raises:
        ConfigurationError: If the value is not a number greater than zero
    """
    raw = os.environ.get(key)
    if raw is None:
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be a number, got {raw!r}", config_key=key) from None
    if not value > 0:
        raise ConfigurationError(f"{key} must be greater than zero", config_key=key)
    return value


def get_config() -> Config:
    """Get cached configuration instance.

    Returns:
        Config instance (cached after first call)
    """
    if not hasattr(get_config, "_config"):
        get_config._config = Config.from_env()
    return get_config._config
