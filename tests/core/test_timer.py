from __future__ import annotations

from datetime import datetime

import pendulum

from assessengine.core.timer import (
    deadline,
    elapsed_seconds,
    format_clock,
    remaining,
    time_spent_seconds,
)

STARTED = pendulum.datetime(2025, 3, 3, 9, 0, 0, tz="UTC")


def test_remaining_counts_down_from_the_start_time():
    assert remaining(30, STARTED, STARTED) == 1800
    assert remaining(30, STARTED, STARTED.add(seconds=10, microseconds=500_000)) == 1789
    assert remaining(30, STARTED, STARTED.add(minutes=29, seconds=59)) == 1


def test_remaining_is_zero_after_the_deadline():
    assert remaining(30, STARTED, STARTED.add(minutes=31)) == 0
    assert remaining(30, STARTED, deadline(30, STARTED)) == 0


def test_clock_behind_the_start_never_grants_extra_time():
    assert elapsed_seconds(STARTED, STARTED.subtract(minutes=5)) == 0.0
    assert remaining(30, STARTED, STARTED.subtract(minutes=5)) == 1800


def test_remaining_is_non_increasing_and_non_negative():
    values = [remaining(10, STARTED, STARTED.add(seconds=offset)) for offset in range(0, 700, 37)]

    assert values == sorted(values, reverse=True)
    assert min(values) == 0


def test_naive_datetimes_are_treated_as_utc():
    naive_start = datetime(2025, 3, 3, 9, 0, 0)

    assert remaining(30, naive_start, STARTED.add(minutes=10)) == 1200


def test_other_time_zones_are_compared_as_instants():
    johannesburg_now = STARTED.add(minutes=5).in_timezone("Africa/Johannesburg")

    assert remaining(30, STARTED, johannesburg_now) == 1500


def test_time_spent_is_capped_at_the_duration():
    assert time_spent_seconds(30, STARTED, STARTED.add(minutes=12, seconds=3)) == 723
    assert time_spent_seconds(30, STARTED, STARTED.add(hours=2)) == 1800


def test_format_clock():
    assert format_clock(65) == "1:05"
    assert format_clock(0) == "0:00"
    assert format_clock(-3) == "0:00"
