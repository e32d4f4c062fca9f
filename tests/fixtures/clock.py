"""Controllable clock for auditing tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta


class FixedClock:
    """Returns a fixed time until advanced; counts how often it is read."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 15, 12, 0, 0, tzinfo=UTC)
        self.calls = 0

    def __call__(self) -> datetime:
        self.calls += 1
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def naive(value: datetime) -> datetime:
    """Drop tzinfo, matching what SQLite returns for stored datetimes."""
    return value.replace(tzinfo=None)
