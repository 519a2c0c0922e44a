"""Remaining-time reconciliation from the server-recorded start time."""

from __future__ import annotations

import math
from datetime import datetime

import pendulum


def as_utc(value: datetime) -> pendulum.DateTime:
    """Return ``value`` as an aware pendulum datetime; naive values are UTC."""
    if value.tzinfo is None:
        return pendulum.instance(value, tz="UTC")
    return pendulum.instance(value)


def elapsed_seconds(started_at: datetime, now: datetime) -> float:
    """Seconds since ``started_at``; a clock behind the start never counts negative."""
    delta = (as_utc(now) - as_utc(started_at)).total_seconds()
    return max(0.0, delta)


def remaining(duration_minutes: float, started_at: datetime, now: datetime) -> int:
    """Whole seconds left in an attempt, never negative.

    Derived only from the authoritative ``started_at`` so reloading the page
    or resetting a local countdown cannot extend the attempt.
    """
    left = duration_minutes * 60 - elapsed_seconds(started_at, now)
    return max(0, math.floor(left))


def deadline(duration_minutes: float, started_at: datetime) -> pendulum.DateTime:
    return as_utc(started_at).add(seconds=int(duration_minutes * 60))


def time_spent_seconds(duration_minutes: float, started_at: datetime, now: datetime) -> int:
    """Time spent, capped at the allotted duration."""
    spent = math.floor(elapsed_seconds(started_at, now))
    return min(spent, int(duration_minutes * 60))


def format_clock(seconds: int) -> str:
    """Render seconds as ``M:SS`` for countdown displays."""
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes}:{secs:02d}"


__all__ = [
    "as_utc",
    "deadline",
    "elapsed_seconds",
    "format_clock",
    "remaining",
    "time_spent_seconds",
]
