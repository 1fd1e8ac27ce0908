"""
merzah.engine.eligibility — Rotation Eligibility Filter
========================================================

Decides, without touching the database, whether an event row should be
rotated at *now*.  Works on anything exposing ``is_recurring``, ``date``
and ``recurrence_end_date`` (ORM rows or plain snapshots).

Rotation is driven by elapsed wall-clock time: events have no stored end
time, so an occurrence counts as passed once its start is ``<= now``.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Protocol

from merzah.engine.clock import ensure_utc


class RotatableEvent(Protocol):
    is_recurring: bool
    date: datetime
    recurrence_end_date: datetime | None


class Eligibility(enum.StrEnum):
    ROTATE = "rotate"
    SERIES_ENDED = "series_ended"
    NOT_DUE = "not_due"


def classify(event: RotatableEvent, now: datetime) -> Eligibility:
    """Partition an event into rotate / series ended / not due.

    ``SERIES_ENDED`` means the occurrence has passed but the series end
    boundary has been reached too; the row stays at its last occurrence.
    """
    now = ensure_utc(now)
    if not event.is_recurring or ensure_utc(event.date) > now:
        return Eligibility.NOT_DUE
    end = event.recurrence_end_date
    if end is not None and now >= ensure_utc(end):
        return Eligibility.SERIES_ENDED
    return Eligibility.ROTATE


def is_eligible(event: RotatableEvent, now: datetime) -> bool:
    """True iff recurring, already started, and still inside its end window."""
    return classify(event, now) is Eligibility.ROTATE
