"""Tests for window resolution."""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from cost_control.exceptions import ConfigurationError
from cost_control.models import UsageWindow, WindowKind
from cost_control.windows import WindowResolver, utc_now


class TestWindowResolver:
    """Tests for WindowResolver."""

    def test_daily_window_id(self):
        """Daily window is the calendar date."""
        resolver = WindowResolver()
        window = resolver.current_daily_window(datetime(2024, 5, 1, 23, 59, tzinfo=UTC))
        assert window.window_id == "2024-05-01"
        assert window.kind == WindowKind.DAILY

    def test_monthly_window_id(self):
        """Monthly window is the calendar month."""
        resolver = WindowResolver()
        window = resolver.current_monthly_window(datetime(2024, 5, 31, tzinfo=UTC))
        assert window.window_id == "2024-05"
        assert window.kind == WindowKind.MONTHLY

    def test_naive_timestamps_are_utc(self):
        """Naive datetimes are read as UTC."""
        resolver = WindowResolver()
        naive = datetime(2024, 5, 1, 23, 30)
        aware = datetime(2024, 5, 1, 23, 30, tzinfo=UTC)
        assert resolver.current_daily_window(naive) == resolver.current_daily_window(aware)

    def test_time_zone_shifts_day_boundary(self):
        """Day boundaries follow the configured zone."""
        resolver = WindowResolver("Asia/Jakarta")  # UTC+7
        window = resolver.current_daily_window(datetime(2024, 5, 1, 18, 0, tzinfo=UTC))
        assert window.window_id == "2024-05-02"

    def test_aware_offset_is_converted(self):
        """Aware timestamps in other offsets are converted first."""
        resolver = WindowResolver()
        plus_two = timezone(timedelta(hours=2))
        window = resolver.current_daily_window(datetime(2024, 6, 1, 1, 0, tzinfo=plus_two))
        assert window.window_id == "2024-05-31"

    def test_unknown_zone_raises(self):
        """Unknown zone names are a configuration error."""
        with pytest.raises(ConfigurationError) as exc_info:
            WindowResolver("Mars/Olympus_Mons")
        assert exc_info.value.config_key == "BUDGET_TIMEZONE"

    def test_has_rolled_over(self):
        """Rollover is detected only when the identifier changes."""
        resolver = WindowResolver()
        stored = UsageWindow(kind=WindowKind.DAILY, window_id="2024-05-01")
        assert resolver.has_rolled_over(stored, datetime(2024, 5, 1, 23, 59, tzinfo=UTC)) is False
        assert resolver.has_rolled_over(stored, datetime(2024, 5, 2, 0, 0, tzinfo=UTC)) is True

    def test_monthly_rollover_independent_of_day(self):
        """Monthly window holds across days of the same month."""
        resolver = WindowResolver()
        stored = UsageWindow(kind=WindowKind.MONTHLY, window_id="2024-05")
        assert resolver.has_rolled_over(stored, datetime(2024, 5, 31, tzinfo=UTC)) is False
        assert resolver.has_rolled_over(stored, datetime(2024, 6, 1, tzinfo=UTC)) is True

    def test_recent_daily_windows(self):
        """Recent windows are oldest first and end today."""
        resolver = WindowResolver()
        windows = resolver.recent_daily_windows(3, datetime(2024, 3, 1, tzinfo=UTC))
        assert [w.window_id for w in windows] == ["2024-02-28", "2024-02-29", "2024-03-01"]

    def test_utc_now_is_aware(self):
        """utc_now returns an aware datetime."""
        assert utc_now().tzinfo is not None


class TestUsageWindow:
    """Tests for UsageWindow model."""

    def test_equal_by_identifier(self):
        """Windows with the same identifier are equal."""
        a = UsageWindow(kind=WindowKind.DAILY, window_id="2024-05-01")
        b = UsageWindow(kind=WindowKind.DAILY, window_id="2024-05-01")
        assert a == b
        assert hash(a) == hash(b)

    def test_immutable(self):
        """Windows cannot be modified."""
        window = UsageWindow(kind=WindowKind.DAILY, window_id="2024-05-01")
        with pytest.raises(ValueError):
            window.window_id = "2024-05-02"
