from datetime import UTC, datetime, timedelta

from storefront.adapters.clock import FixedClock, SystemClock


def test_system_clock():
    clock = SystemClock()
    now = clock.now_utc()
    assert now.tzinfo is not None
    # Sanity check: is it close to real now?
    diff = abs((datetime.now(UTC) - now).total_seconds())
    assert diff < 1.0


def test_fixed_clock_advance():
    start = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)
    clock = FixedClock(start)

    assert clock.hours_from_now(24) == start + timedelta(hours=24)
    assert clock.is_past_or_now(start)

    clock.advance(minutes=30)
    assert clock.now_utc() == start + timedelta(minutes=30)
    assert not clock.is_past_or_now(start + timedelta(hours=1))
