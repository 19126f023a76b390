"""Unit tests for quota windows."""

import dataclasses

import pytest

from weather_gateway.services.quota import DAY_SECONDS, HOUR_SECONDS, QuotaWindow

# 2025-10-09T10:00:00Z
TEN_AM = 1_760_004_000.0


def test_daily_bucket_key_is_the_utc_date() -> None:
    window = QuotaWindow.daily(20, "owm")

    assert window.current_bucket_key(TEN_AM) == "owm:daily:2025-10-09T00:00:00Z"


def test_hourly_bucket_key_is_truncated_to_the_hour() -> None:
    window = QuotaWindow.hourly(5, "owm")

    assert window.current_bucket_key(TEN_AM + 59 * 60) == "owm:hourly:2025-10-09T10:00:00Z"
    assert window.current_bucket_key(TEN_AM + 3600) == "owm:hourly:2025-10-09T11:00:00Z"


def test_bucket_key_is_stable_across_instances() -> None:
    first = QuotaWindow.hourly(5, "owm")
    second = QuotaWindow.hourly(5, "owm")

    assert first.current_bucket_key(TEN_AM + 17) == second.current_bucket_key(TEN_AM + 1234)


def test_hourly_and_daily_keys_never_collide_at_midnight() -> None:
    midnight = TEN_AM - 10 * 3600

    hourly = QuotaWindow.hourly(5, "owm").current_bucket_key(midnight)
    daily = QuotaWindow.daily(20, "owm").current_bucket_key(midnight)

    assert hourly != daily


def test_window_bounds_and_reset() -> None:
    window = QuotaWindow.hourly(5, "owm")

    start, reset_at = window.window_bounds(TEN_AM + 600)

    assert start == int(TEN_AM)
    assert reset_at == int(TEN_AM) + HOUR_SECONDS
    assert window.seconds_until_reset(TEN_AM + 600) == 3000


def test_factories_set_durations() -> None:
    assert QuotaWindow.hourly(1, "k").window_seconds == HOUR_SECONDS
    assert QuotaWindow.daily(1, "k").window_seconds == DAY_SECONDS


def test_window_is_immutable() -> None:
    window = QuotaWindow.hourly(5, "owm")

    with pytest.raises(dataclasses.FrozenInstanceError):
        window.limit = 10  # type: ignore[misc]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"name": "w", "limit": 0, "window_seconds": 60, "counter_key": "k"},
        {"name": "w", "limit": 1, "window_seconds": 0, "counter_key": "k"},
        {"name": "w", "limit": 1, "window_seconds": 60, "counter_key": ""},
    ],
)
def test_invalid_constructor_args(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        QuotaWindow(**kwargs)
