from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

from portal.core.clock import Clock, FixedClock, SystemClock, ensure_utc


def test_ensure_utc_tags_naive_values() -> None:
    assert ensure_utc(datetime(2024, 1, 1, 12, 0)) == datetime(
        2024, 1, 1, 12, 0, tzinfo=UTC
    )


def test_ensure_utc_converts_offsets() -> None:
    ist = timezone(timedelta(hours=5, minutes=30))
    converted = ensure_utc(datetime(2024, 1, 1, 17, 30, tzinfo=ist))
    assert converted == datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
    assert converted.tzinfo is UTC


def test_fixed_clock_moves_only_when_told() -> None:
    clock = FixedClock(datetime(2024, 1, 1, tzinfo=UTC))
    assert clock.now() == clock.now()
    assert clock.advance(minutes=90) == datetime(2024, 1, 1, 1, 30, tzinfo=UTC)
    clock.set(datetime(2030, 6, 1))
    assert clock.now() == datetime(2030, 6, 1, tzinfo=UTC)


def test_system_clock_is_aware() -> None:
    assert SystemClock().now().tzinfo is not None


def test_both_clocks_satisfy_protocol() -> None:
    assert isinstance(SystemClock(), Clock)
    assert isinstance(FixedClock(datetime(2024, 1, 1)), Clock)
