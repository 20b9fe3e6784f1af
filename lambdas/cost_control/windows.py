"""Calendar window resolution for usage accounting.

Costs accumulate in a daily and a monthly window. A window is identified by
its calendar date (``YYYY-MM-DD``) or month (``YYYY-MM``) in the resolver's
time zone. Nothing here holds state or performs I/O.
"""

from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .exceptions import ConfigurationError
from .models import UsageWindow, WindowKind


def utc_now() -> datetime:
    """Get the current time as an aware UTC datetime."""
    return datetime.now(UTC)


class WindowResolver:
    """Maps timestamps to daily and monthly window identifiers."""

    def __init__(self, timezone: str = "UTC") -> None:
        """Initialize resolver for a time zone.

        Args:
            timezone: IANA zone name that defines where days begin

        Raises:
            ConfigurationError: If the zone name is unknown
        """
        try:
            self.zone = ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ConfigurationError(
                f"Unknown time zone '{timezone}'", config_key="BUDGET_TIMEZONE"
            ) from None

    def localize(self, now: datetime) -> datetime:
        """Convert a timestamp into the resolver's zone. Naive values are UTC."""
        if now.tzinfo is None:
            now = now.replace(tzinfo=UTC)
        return now.astimezone(self.zone)

    def current_daily_window(self, now: datetime) -> UsageWindow:
        """Get the daily window containing ``now``."""
        return UsageWindow(kind=WindowKind.DAILY, window_id=self.localize(now).strftime("%Y-%m-%d"))

    def current_monthly_window(self, now: datetime) -> UsageWindow:
        """Get the monthly window containing ``now``."""
        return UsageWindow(kind=WindowKind.MONTHLY, window_id=self.localize(now).strftime("%Y-%m"))

    def current_window(self, kind: WindowKind, now: datetime) -> UsageWindow:
        """Get the current window of the given kind."""
        if kind == WindowKind.DAILY:
            return self.current_daily_window(now)
        return self.current_monthly_window(now)

    def has_rolled_over(self, stored: UsageWindow, now: datetime) -> bool:
        """Check whether ``stored`` is no longer the current window of its kind."""
        return stored != self.current_window(stored.kind, now)

    def recent_daily_windows(self, days: int, now: datetime) -> list[UsageWindow]:
        """Get the last ``days`` daily windows, oldest first, ending with today."""
        today = self.localize(now).date()
        return [
            UsageWindow(
                kind=WindowKind.DAILY,
                window_id=(today - timedelta(days=offset)).isoformat(),
            )
            for offset in range(days - 1, -1, -1)
        ]
