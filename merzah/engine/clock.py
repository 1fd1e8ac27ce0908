"""
merzah.engine.clock — Injected Clocks & UTC Helpers
====================================================

Rotation never reads the system clock directly.  The scheduler asks a
:class:`Clock` for ``now()`` and passes the value down, so tests can drive
the engine with a :class:`FixedClock`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol
from zoneinfo import ZoneInfo


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(UTC)


@dataclass
class FixedClock:
    """A clock that only moves when told to."""

    current: datetime

    def now(self) -> datetime:
        return ensure_utc(self.current)

    def advance(self, delta: timedelta) -> datetime:
        self.current = self.current + delta
        return self.now()


def ensure_utc(value: datetime) -> datetime:
    """Normalize *value* to an aware UTC datetime.

    Naive values are taken to already be UTC; SQLite hands back naive
    datetimes even for ``DateTime(timezone=True)`` columns.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_local(value: datetime, tz_name: str | None) -> datetime:
    """Express *value* in the IANA zone *tz_name* (UTC when empty)."""
    return ensure_utc(value).astimezone(ZoneInfo(tz_name or "UTC"))
