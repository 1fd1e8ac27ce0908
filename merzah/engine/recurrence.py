"""
merzah.engine.recurrence — Recurrence Calculator
=================================================

Pure date arithmetic for recurring events:

- :func:`next_date` — the occurrence after *current* for a pattern.
- :func:`recurrence_end_date` — series end from a duration selection.
- :func:`parse_pattern` / :func:`parse_duration` — strict input parsing.

Month-based patterns use :class:`dateutil.relativedelta.relativedelta`, which
clamps the day-of-month to the target month (Jan 31 + 1 month → Feb 28/29).
All arithmetic is wall-clock arithmetic in the datetime's own tzinfo; callers
that want "18:00 local every week" pass a datetime in the event's zone.
"""

from __future__ import annotations

import enum
from datetime import datetime, timedelta

from dateutil.relativedelta import relativedelta

from merzah.database.models import RecurrencePattern
from merzah.errors import ValidationError

__all__ = [
    "DEFAULT_DURATION",
    "RecurrenceDuration",
    "next_date",
    "parse_duration",
    "parse_pattern",
    "recurrence_end_date",
]


# ---------------------------------------------------------------------------
# Fixed-step patterns
# ---------------------------------------------------------------------------
_STEPS: dict[RecurrencePattern, relativedelta] = {
    RecurrencePattern.DAILY: relativedelta(days=1),
    RecurrencePattern.WEEKLY: relativedelta(weeks=1),
    RecurrencePattern.BIWEEKLY: relativedelta(weeks=2),
    RecurrencePattern.MONTHLY: relativedelta(months=1),
    RecurrencePattern.QUARTERLY: relativedelta(months=3),
    RecurrencePattern.YEARLY: relativedelta(months=12),
}


def _days_to_next_weekday(weekday: int) -> int:
    # Mon..Thu → tomorrow; Fri/Sat/Sun → Monday
    return 7 - weekday if weekday >= 4 else 1


def _days_to_next_weekend_day(weekday: int) -> int:
    # Mon..Fri → Saturday; Sat → Sunday; Sun → next Saturday
    if weekday <= 4:
        return 5 - weekday
    return 1 if weekday == 5 else 6


def _coerce(pattern: RecurrencePattern | str | None) -> RecurrencePattern | None:
    if pattern is None:
        return None
    try:
        return RecurrencePattern(str(pattern).strip().lower())
    except ValueError:
        return None


def next_date(
    current: datetime, pattern: RecurrencePattern | str | None,
) -> datetime:
    """Return the occurrence that follows *current* under *pattern*.

    Unknown or missing patterns return *current* unchanged.  That is a
    fallback, not a valid state: rotation never calls this for a
    non-recurring event, and treats a non-advancing result as an error.
    """
    resolved = _coerce(pattern)
    if resolved is None:
        return current

    if resolved is RecurrencePattern.WEEKDAYS:
        return current + timedelta(days=_days_to_next_weekday(current.weekday()))
    if resolved is RecurrencePattern.WEEKENDS:
        return current + timedelta(days=_days_to_next_weekend_day(current.weekday()))

    return current + _STEPS[resolved]


def parse_pattern(value: RecurrencePattern | str) -> RecurrencePattern:
    """Strictly parse a pattern name.

    Raises
    ------
    ValidationError
        If *value* is not one of :class:`RecurrencePattern`.
    """
    resolved = _coerce(value)
    if resolved is None:
        allowed = ", ".join(p.value for p in RecurrencePattern)
        raise ValidationError(
            f"Unknown recurrence pattern {value!r}. Must be one of: {allowed}"
        )
    return resolved


# ---------------------------------------------------------------------------
# Series duration
# ---------------------------------------------------------------------------
class RecurrenceDuration(enum.StrEnum):
    """How long a new series keeps rotating."""
    ONE_MONTH = "1_month"
    THREE_MONTHS = "3_months"
    SIX_MONTHS = "6_months"
    ONE_YEAR = "1_year"
    FOREVER = "forever"


DEFAULT_DURATION = RecurrenceDuration.THREE_MONTHS

# Fixed day counts, not calendar months: 3 months is always 90 days.
_DURATION_DAYS: dict[RecurrenceDuration, int | None] = {
    RecurrenceDuration.ONE_MONTH: 30,
    RecurrenceDuration.THREE_MONTHS: 90,
    RecurrenceDuration.SIX_MONTHS: 180,
    RecurrenceDuration.ONE_YEAR: 365,
    RecurrenceDuration.FOREVER: None,
}


def parse_duration(value: RecurrenceDuration | str | None) -> RecurrenceDuration:
    """Parse a duration selection; ``None`` selects :data:`DEFAULT_DURATION`.

    Raises
    ------
    ValidationError
        If *value* is given but is not one of :class:`RecurrenceDuration`.
    """
    if value is None:
        return DEFAULT_DURATION
    try:
        return RecurrenceDuration(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(d.value for d in RecurrenceDuration)
        raise ValidationError(
            f"Unknown recurrence duration {value!r}. Must be one of: {allowed}"
        ) from None


def recurrence_end_date(
    start: datetime, duration: RecurrenceDuration | str | None,
) -> datetime | None:
    """Series end for a series starting at *start*; ``None`` means unbounded."""
    days = _DURATION_DAYS[parse_duration(duration)]
    if days is None:
        return None
    return start + timedelta(days=days)
