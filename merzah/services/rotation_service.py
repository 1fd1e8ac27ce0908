"""
merzah.services.rotation_service — Event Rotation Engine
=========================================================

Advances recurring events to their next occurrence, in place.

One run (:func:`run_rotation`):

  1. Load candidates: ``is_recurring AND date <= now``
     (served by ``ix_events_recurring_date``).
  2. Partition each candidate with the eligibility filter into
     rotate / series ended.
  3. Catch up: apply ``next_date`` in strict forward order, in the
     event's own timezone and at its stored wall-clock time, until the
     occurrence is after *now*, bounded by ``max_iterations``.  Catch-up
     stops at the last occurrence inside ``recurrence_end_date``.
  4. Persist with a conditional UPDATE keyed by id *and* the date/pattern
     that were read, one transaction per event.  RSVP rows reference the
     event id and are never touched.
  5. Collect everything into a :class:`RotationReport`.

A run is idempotent for a fixed *now*: rotated events now sit after *now*
and drop out of the candidate query, so re-running after a crash or a
partial failure only picks up what is left.  Two overlapping runs cannot
double-advance an event because the second UPDATE no longer matches.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import datetime, time
from zoneinfo import ZoneInfoNotFoundError

from sqlalchemy import Engine, select, update
from sqlalchemy.exc import SQLAlchemyError

from merzah.constants import ROTATION_MAX_ITERATIONS
from merzah.database.engine import get_session
from merzah.database.models import Event
from merzah.engine.clock import ensure_utc, to_local
from merzah.engine.eligibility import Eligibility, classify
from merzah.engine.recurrence import next_date
from merzah.errors import (
    InvalidEventData,
    PersistenceConflict,
    PersistenceFailure,
    RotationError,
    RotationOverflow,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Report types
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Rotation:
    """One event moved forward.  Consumed by notification dispatch."""

    event_id: int
    mosque_id: int
    title: str
    previous_date: datetime
    next_date: datetime
    steps: int
    # next_date is the last occurrence before recurrence_end_date
    series_ended: bool = False


@dataclass(frozen=True, slots=True)
class RotationFailure:
    event_id: int
    kind: str
    message: str


@dataclass
class RotationReport:
    """Outcome of one run.  Partial success is the normal case."""

    now: datetime
    rotated: list[int] = field(default_factory=list)
    series_ended: list[int] = field(default_factory=list)
    conflicts: list[int] = field(default_factory=list)
    failed: list[RotationFailure] = field(default_factory=list)
    rotations: list[Rotation] = field(default_factory=list)
    cancelled: bool = False

    def to_dict(self) -> dict:
        return {
            "now": self.now.isoformat(),
            "rotated": list(self.rotated),
            "series_ended": list(self.series_ended),
            "conflicts": list(self.conflicts),
            "failed": [asdict(f) for f in self.failed],
            "rotations": [
                {
                    **asdict(r),
                    "previous_date": r.previous_date.isoformat(),
                    "next_date": r.next_date.isoformat(),
                }
                for r in self.rotations
            ],
            "cancelled": self.cancelled,
        }


# ---------------------------------------------------------------------------
# Candidate snapshot
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class _Candidate:
    id: int
    mosque_id: int
    title: str
    timezone: str
    is_recurring: bool
    recurrence_pattern: str | None
    recurrence_end_date: datetime | None
    stored_date: datetime  # exactly as read, used in the UPDATE guard
    local_time: time | None = None

    @property
    def date(self) -> datetime:
        return ensure_utc(self.stored_date)


def _load_candidates(engine: Engine, now: datetime) -> list[_Candidate]:
    with get_session(engine) as session:
        rows = session.execute(
            select(
                Event.id,
                Event.mosque_id,
                Event.title,
                Event.timezone,
                Event.is_recurring,
                Event.recurrence_pattern,
                Event.recurrence_end_date,
                Event.date,
                Event.local_time,
            )
            .where(Event.is_recurring.is_(True), Event.date <= now)
            .order_by(Event.date, Event.id)
        ).all()

    return [
        _Candidate(
            id=row.id,
            mosque_id=row.mosque_id,
            title=row.title,
            timezone=row.timezone,
            is_recurring=row.is_recurring,
            recurrence_pattern=row.recurrence_pattern,
            recurrence_end_date=row.recurrence_end_date,
            stored_date=row.date,
            local_time=row.local_time,
        )
        for row in rows
    ]


# ---------------------------------------------------------------------------
# Per-event steps
# ---------------------------------------------------------------------------
def _at_series_time(value: datetime, wall: time | None) -> datetime:
    """Pin *value* to the series' wall-clock start, if one is stored."""
    if wall is None:
        return value
    return value.replace(
        hour=wall.hour, minute=wall.minute, second=wall.second,
        microsecond=wall.microsecond, fold=0,
    )


def _catch_up(
    candidate: _Candidate, now: datetime, max_iterations: int,
) -> tuple[datetime, int, bool]:
    """Advance past *now* without crossing the series end.

    Returns ``(occurrence in UTC, steps, ended)``.  ``ended`` is True when
    the following occurrence would fall after ``recurrence_end_date``; the
    occurrence returned is then the last one inside the series.
    """
    try:
        current = to_local(candidate.date, candidate.timezone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise InvalidEventData(
            candidate.id, f"Unknown timezone {candidate.timezone!r}"
        ) from exc

    end = candidate.recurrence_end_date
    end = ensure_utc(end) if end is not None else None
    steps = 0
    while ensure_utc(current) <= now:
        if steps >= max_iterations:
            raise RotationOverflow(
                candidate.id,
                f"Still at {current.isoformat()} after {steps} steps "
                f"(cap {max_iterations})",
            )
        following = _at_series_time(
            next_date(current, candidate.recurrence_pattern), candidate.local_time,
        )
        if following <= current:
            raise RotationOverflow(
                candidate.id,
                f"Pattern {candidate.recurrence_pattern!r} does not advance",
            )
        if end is not None and ensure_utc(following) > end:
            return ensure_utc(current), steps, True
        current = following
        steps += 1
    return ensure_utc(current), steps, False


def _persist(candidate: _Candidate, new_date: datetime, engine: Engine) -> None:
    """Conditional UPDATE of ``date`` only, in its own transaction."""
    try:
        with get_session(engine) as session:
            result = session.execute(
                update(Event)
                .where(
                    Event.id == candidate.id,
                    Event.date == candidate.stored_date,
                    Event.is_recurring.is_(True),
                    Event.recurrence_pattern == candidate.recurrence_pattern,
                )
                .values(date=new_date)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise PersistenceConflict(
                    candidate.id, "Event changed since it was read; skipped"
                )
    except SQLAlchemyError as exc:
        raise PersistenceFailure(candidate.id, f"Update failed: {exc}") from exc


def _rotate_one(
    engine: Engine, candidate: _Candidate, now: datetime, max_iterations: int,
) -> Rotation | None:
    """Rotate one event.  ``None`` means the stored occurrence is already
    the last one inside the series, so the row is left as is."""
    new_date, steps, ended = _catch_up(candidate, now, max_iterations)
    if steps == 0:
        return None

    _persist(candidate, new_date, engine)
    return Rotation(
        event_id=candidate.id,
        mosque_id=candidate.mosque_id,
        title=candidate.title,
        previous_date=candidate.date,
        next_date=new_date,
        steps=steps,
        series_ended=ended,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def run_rotation(
    engine: Engine,
    now: datetime,
    *,
    max_iterations: int = ROTATION_MAX_ITERATIONS,
    should_stop: Callable[[], bool] | None = None,
) -> RotationReport:
    """Rotate every due recurring event and report what happened.

    Parameters
    ----------
    engine:
        SQLAlchemy engine.
    now:
        The instant to rotate against (from an injected clock).
    max_iterations:
        Catch-up cap per event; exceeding it is a per-event failure.
    should_stop:
        Polled between events.  When it returns True the run ends early
        with ``cancelled=True``; an event is never left half-updated.

    Only a failure of the candidate query propagates.  Per-event errors
    are logged and collected in the report.
    """
    now = ensure_utc(now)
    report = RotationReport(now=now)
    candidates = _load_candidates(engine, now)
    logger.debug("Rotation: %d candidate(s) at %s", len(candidates), now.isoformat())

    for candidate in candidates:
        if should_stop is not None and should_stop():
            report.cancelled = True
            logger.info("Rotation cancelled before event %d", candidate.id)
            break

        verdict = classify(candidate, now)
        if verdict is Eligibility.NOT_DUE:
            continue
        if verdict is Eligibility.SERIES_ENDED:
            report.series_ended.append(candidate.id)
            logger.info("Event %d: recurrence series ended, left as is", candidate.id)
            continue

        try:
            rotation = _rotate_one(engine, candidate, now, max_iterations)
        except PersistenceConflict:
            report.conflicts.append(candidate.id)
            logger.warning(
                "Event %d was already advanced by a concurrent run; skipped",
                candidate.id,
            )
        except PersistenceFailure as exc:
            report.failed.append(RotationFailure(candidate.id, exc.kind, str(exc)))
            logger.exception("Failed to persist rotation for event %d", candidate.id)
        except RotationError as exc:
            report.failed.append(RotationFailure(candidate.id, exc.kind, str(exc)))
            logger.error("Failed to rotate event %d: %s", candidate.id, exc)
        else:
            if rotation is None:
                report.series_ended.append(candidate.id)
                logger.info(
                    "Event %d: already at the last occurrence of its series, left as is",
                    candidate.id,
                )
                continue
            report.rotated.append(rotation.event_id)
            report.rotations.append(rotation)
            logger.info(
                "Rotated event %d: %s → %s (%d step%s)",
                rotation.event_id,
                rotation.previous_date.isoformat(),
                rotation.next_date.isoformat(),
                rotation.steps,
                "" if rotation.steps == 1 else "s",
            )
            if rotation.series_ended:
                report.series_ended.append(rotation.event_id)
                logger.info(
                    "Event %d: reached the last occurrence of its series",
                    rotation.event_id,
                )

    logger.info(
        "Rotation complete — %d rotated, %d series ended, %d conflicts, %d failed",
        len(report.rotated), len(report.series_ended),
        len(report.conflicts), len(report.failed),
    )
    return report
