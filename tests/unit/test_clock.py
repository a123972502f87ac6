"""Tests for the injectable clocks."""

from datetime import date, datetime, timedelta, timezone

from billing_kernel.domain.clock import DeterministicClock, SystemClock


class TestDeterministicClock:
    def test_default_time(self):
        clock = DeterministicClock()
        assert clock.now() == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        assert clock.today() == date(2024, 1, 1)

    def test_repeated_calls_stable(self):
        clock = DeterministicClock()
        assert clock.now() == clock.now()

    def test_on(self):
        assert DeterministicClock.on(date(2024, 3, 20)).today() == date(2024, 3, 20)

    def test_advance_days(self):
        clock = DeterministicClock.on(date(2024, 2, 28))
        clock.advance_days(2)
        assert clock.today() == date(2024, 3, 1)

    def test_set_time_resets_advance(self):
        clock = DeterministicClock()
        clock.advance(3600)
        clock.set_time(datetime(2025, 6, 30, 9, 0, tzinfo=timezone.utc))
        assert clock.now() == datetime(2025, 6, 30, 9, 0, tzinfo=timezone.utc)

    def test_today_uses_clock_timezone(self):
        ist = timezone(timedelta(hours=5, minutes=30))
        clock = DeterministicClock(datetime(2024, 3, 31, 23, 0, tzinfo=ist))
        assert clock.today() == date(2024, 3, 31)
        assert clock.now_utc().date() == date(2024, 3, 31)


class TestSystemClock:
    def test_timezone_aware(self):
        clock = SystemClock()
        assert clock.now().tzinfo is not None
        assert clock.now_utc().utcoffset() == timedelta(0)
