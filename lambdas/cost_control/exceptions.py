"""Custom exceptions for Budget Guard."""

from decimal import Decimal


class CostControlError(Exception):
    """Base exception for all cost-control errors."""

    def __init__(self, message: str = "An error occurred") -> None:
        """Initialize exception with message.

        Args:
            message: Error message
        """
        self.message = message
        super().__init__(self.message)


class InvalidAmountError(CostControlError):
    """A cost amount was negative or not a finite number."""

    def __init__(self, amount: object) -> None:
        """Initialize invalid amount error.

        Args:
            amount: The rejected amount
        """
        self.amount = amount
        super().__init__(f"Cost amount must be a non-negative number, got {amount!r}")


class PersistenceError(CostControlError):
    """A durable save did not complete."""

    def __init__(self, key: str, reason: str | None = None) -> None:
        """Initialize persistence error.

        Args:
            key: Store key that failed to save
            reason: Optional description of the underlying failure
        """
        self.key = key
        self.reason = reason
        message = f"Failed to persist '{key}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ValidationError(CostControlError):
    """Request validation failed."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize validation error.

        Args:
            message: Validation error message
            field: Optional field name that failed validation
        """
        self.field = field
        super().__init__(message)


class ConfigurationError(CostControlError):
    """Configuration or environment error."""

    def __init__(self, message: str, config_key: str | None = None) -> None:
        """Initialize configuration error.

        Args:
            message: Error message
            config_key: Optional configuration key that caused the error
        """
        self.config_key = config_key
        super().__init__(message)


def validate_amount(amount: Decimal | int | str) -> Decimal:
    """Coerce a cost amount to Decimal and reject invalid values.

    Floats are rejected so binary rounding never leaks into the ledger.

    Raises:
        InvalidAmountError: If the amount is negative, NaN, infinite or not numeric
    """
    if isinstance(amount, (float, bool)):
        raise InvalidAmountError(amount)
    try:
        value = Decimal(amount)
    except (ArithmeticError, TypeError, ValueError):
        raise InvalidAmountError(amount) from None
    if not value.is_finite() or value < 0:
        raise InvalidAmountError(amount)
    return value
