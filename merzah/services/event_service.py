"""
merzah.services.event_service — Recurring Event Lifecycle
==========================================================

Creation, edits, stop/delete and RSVPs for event series.

Semantics:

- **Create** — a recurring event takes a pattern and a duration selection
  (``1_month``, ``3_months`` (default), ``6_months``, ``1_year``,
  ``forever``).  ``recurrence_end_date`` is computed once, here, and never
  moved by rotation.
- **Edit** — always "this and future occurrences": the row's template
  fields are overwritten and the next rotation uses them.  There are no
  per-occurrence exceptions.
- **Stop recurring** — the row stays as a one-time event at its last date.
- **Delete series** — the row goes, and its RSVP rows with it.

Every mutation writes an audit_log row in the same transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, time
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import Engine, delete, func, select
from sqlalchemy.orm import Session

from merzah.constants import (
    DESCRIPTION_LENGTH,
    EDITABLE_EVENT_FIELDS,
    REQUIRED_EVENT_FIELDS,
    SPEAKER_LENGTH,
    TITLE_LENGTH,
)
from merzah.database.engine import get_session
from merzah.database.models import (
    AuditActionType,
    Event,
    EventAttendance,
    EventCategory,
    MosqueFavorite,
)
from merzah.engine.clock import ensure_utc, to_local
from merzah.engine.recurrence import (
    RecurrenceDuration,
    parse_duration,
    parse_pattern,
    recurrence_end_date,
)
from merzah.errors import EventNotFound, ValidationError
from merzah.services.audit_service import log_action, row_to_dict
from merzah.services.mosque_service import get_or_create_user, require_mosque

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EventTemplate:
    """The editable fields that every occurrence of a series shares."""

    mosque_id: int
    title: str
    description: str
    category: EventCategory | str
    date: datetime
    speaker: str | None = None
    timezone: str | None = None


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------
def _check_length(field_name: str, value: str | None, bounds: tuple[int, int]) -> str:
    low, high = bounds
    value = (value or "").strip()
    if not low <= len(value) <= high:
        raise ValidationError(f"{field_name}: length must be between {low} and {high}")
    return value


def _parse_category(value: EventCategory | str) -> EventCategory:
    try:
        return EventCategory(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(c.value for c in EventCategory)
        raise ValidationError(
            f"Unknown category {value!r}. Must be one of: {allowed}"
        ) from None


def _parse_timezone(value: str) -> str:
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(f"Unknown timezone {value!r}") from None
    return value


def _normalize_start(value: datetime, tz_name: str) -> datetime:
    """Naive input is wall time in the event's zone; stored value is UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=ZoneInfo(tz_name))
    return ensure_utc(value)


def _wall_time(value: datetime, tz_name: str) -> time:
    """The start as read on a clock in the event's zone."""
    if value.tzinfo is None:
        return value.time()
    return to_local(value, tz_name).time()


def _require_event(session: Session, event_id: int) -> Event:
    event = session.get(Event, event_id)
    if event is None:
        raise EventNotFound(event_id)
    return event


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------
def create_event(
    engine: Engine,
    *,
    mosque_id: int,
    title: str,
    description: str,
    category: EventCategory | str,
    date: datetime,
    speaker: str | None = None,
    timezone: str | None = None,
    recurrence_pattern: str | None = None,
    recurrence_duration: RecurrenceDuration | str | None = None,
    actor_id: int | None = None,
    default_timezone: str = "UTC",
) -> Event:
    """Create a one-time event, or a series when a pattern is given.

    Raises
    ------
    ValidationError
        Bad field, unknown pattern/duration, or a duration without a pattern.
    MosqueNotFound
        If *mosque_id* does not exist.
    """
    title = _check_length("title", title, TITLE_LENGTH)
    description = _check_length("description", description, DESCRIPTION_LENGTH)
    if speaker is not None:
        speaker = _check_length("speaker", speaker, SPEAKER_LENGTH)
    category = _parse_category(category)
    tz_name = _parse_timezone(timezone or default_timezone)
    start = _normalize_start(date, tz_name)

    pattern = None
    end_date = None
    if recurrence_pattern is not None:
        pattern = parse_pattern(recurrence_pattern)
        end_date = recurrence_end_date(start, parse_duration(recurrence_duration))
    elif recurrence_duration is not None:
        raise ValidationError("recurrence_duration requires a recurrence_pattern")

    with get_session(engine) as session:
        require_mosque(session, mosque_id)
        event = Event(
            mosque_id=mosque_id,
            created_by=actor_id,
            title=title,
            description=description,
            category=category.value,
            speaker=speaker,
            timezone=tz_name,
            date=start,
            local_time=_wall_time(date, tz_name),
            is_recurring=pattern is not None,
            recurrence_pattern=pattern.value if pattern else None,
            recurrence_end_date=end_date,
        )
        session.add(event)
        session.flush()
        log_action(
            session,
            actor_id=actor_id,
            action_type=AuditActionType.CREATE,
            target_table="events",
            target_id=event.id,
            before=None,
            after=row_to_dict(event),
        )

    logger.info(
        "Created event %d at mosque %d (pattern=%s, ends=%s)",
        event.id, mosque_id, event.recurrence_pattern,
        end_date.isoformat() if end_date else None,
    )
    return event


def create_recurring_event(
    engine: Engine,
    template: EventTemplate,
    pattern: str,
    duration: RecurrenceDuration | str | None = None,
    *,
    actor_id: int | None = None,
    default_timezone: str = "UTC",
) -> int:
    """Create a series from *template*; returns the new event id."""
    if pattern is None:
        raise ValidationError("A recurring event needs a recurrence pattern")
    event = create_event(
        engine,
        mosque_id=template.mosque_id,
        title=template.title,
        description=template.description,
        category=template.category,
        date=template.date,
        speaker=template.speaker,
        timezone=template.timezone,
        recurrence_pattern=pattern,
        recurrence_duration=duration,
        actor_id=actor_id,
        default_timezone=default_timezone,
    )
    return event.id


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------
def get_event(engine: Engine, event_id: int) -> Event:
    with get_session(engine) as session:
        return _require_event(session, event_id)


# ---------------------------------------------------------------------------
# Edit: this and future occurrences
# ---------------------------------------------------------------------------
def _apply_edit(session: Session, event: Event, fields: dict[str, Any]) -> None:
    if "title" in fields:
        event.title = _check_length("title", fields["title"], TITLE_LENGTH)
    if "description" in fields:
        event.description = _check_length(
            "description", fields["description"], DESCRIPTION_LENGTH,
        )
    if "speaker" in fields:
        speaker = fields["speaker"]
        event.speaker = (
            _check_length("speaker", speaker, SPEAKER_LENGTH) if speaker is not None else None
        )
    if "category" in fields:
        event.category = _parse_category(fields["category"]).value
    if "timezone" in fields:
        event.timezone = _parse_timezone(fields["timezone"])
    if "mosque_id" in fields:
        require_mosque(session, fields["mosque_id"])
        event.mosque_id = fields["mosque_id"]
    if "date" in fields:
        event.date = _normalize_start(fields["date"], event.timezone)
        event.local_time = _wall_time(fields["date"], event.timezone)
    elif "timezone" in fields:
        event.local_time = _wall_time(ensure_utc(event.date), event.timezone)

    was_recurring = event.is_recurring
    if "recurrence_pattern" in fields:
        raw = fields["recurrence_pattern"]
        if raw is None:
            event.is_recurring = False
        else:
            event.recurrence_pattern = parse_pattern(raw).value
            event.is_recurring = True

    if "recurrence_duration" in fields:
        if not event.is_recurring:
            raise ValidationError("recurrence_duration requires a recurrence_pattern")
        event.recurrence_end_date = recurrence_end_date(
            ensure_utc(event.date), parse_duration(fields["recurrence_duration"]),
        )
    elif event.is_recurring and not was_recurring:
        # Newly recurring: default duration counted from the current date
        event.recurrence_end_date = recurrence_end_date(ensure_utc(event.date), None)

    if not event.is_recurring:
        event.recurrence_pattern = None
        event.recurrence_end_date = None


def edit_event(
    engine: Engine,
    event_id: int,
    fields: dict[str, Any],
    *,
    actor_id: int | None = None,
) -> Event:
    """Overwrite template fields; the change applies to this and every
    future occurrence, including a pattern change on the next rotation.

    Raises
    ------
    ValidationError
        Unknown field names or invalid values.  Nothing is persisted.
    EventNotFound
        If *event_id* does not exist.
    """
    unknown = set(fields) - EDITABLE_EVENT_FIELDS
    if unknown:
        raise ValidationError(f"Fields not editable: {', '.join(sorted(unknown))}")
    if not fields:
        raise ValidationError("No fields to update")
    cleared = sorted(k for k in REQUIRED_EVENT_FIELDS if k in fields and fields[k] is None)
    if cleared:
        raise ValidationError(f"Fields cannot be null: {', '.join(cleared)}")

    with get_session(engine) as session:
        event = _require_event(session, event_id)
        before = row_to_dict(event)
        _apply_edit(session, event, fields)
        session.flush()
        log_action(
            session,
            actor_id=actor_id,
            action_type=AuditActionType.UPDATE,
            target_table="events",
            target_id=event.id,
            before=before,
            after=row_to_dict(event),
        )

    logger.info("Edited event %d (%s)", event_id, ", ".join(sorted(fields)))
    return event


# ---------------------------------------------------------------------------
# Stop / delete
# ---------------------------------------------------------------------------
def stop_recurring(engine: Engine, event_id: int, *, actor_id: int | None = None) -> Event:
    """Turn a series into a one-time event at its current date."""
    with get_session(engine) as session:
        event = _require_event(session, event_id)
        before = row_to_dict(event)
        event.is_recurring = False
        event.recurrence_pattern = None
        event.recurrence_end_date = None
        session.flush()
        log_action(
            session,
            actor_id=actor_id,
            action_type=AuditActionType.STOP_RECURRING,
            target_table="events",
            target_id=event.id,
            before=before,
            after=row_to_dict(event),
        )

    logger.info("Stopped recurrence for event %d", event_id)
    return event


def delete_series(engine: Engine, event_id: int, *, actor_id: int | None = None) -> int:
    """Delete the event row and cascade its RSVPs.

    Returns the number of RSVP rows removed with it.
    """
    with get_session(engine) as session:
        event = _require_event(session, event_id)
        log_action(
            session,
            actor_id=actor_id,
            action_type=AuditActionType.DELETE,
            target_table="events",
            target_id=event.id,
            before=row_to_dict(event),
            after=None,
        )
        removed = session.execute(
            delete(EventAttendance).where(EventAttendance.event_id == event_id)
        ).rowcount
        session.delete(event)

    logger.info("Deleted event %d and %d RSVP(s)", event_id, removed)
    return removed


# ---------------------------------------------------------------------------
# RSVP: attached to the series, so it survives every rotation
# ---------------------------------------------------------------------------
def rsvp(
    engine: Engine, user_id: int, event_id: int, display_name: str | None = None,
) -> bool:
    """Mark *user_id* as attending.  Returns False if already attending."""
    with get_session(engine) as session:
        _require_event(session, event_id)
        get_or_create_user(session, user_id, display_name)
        if session.get(EventAttendance, (user_id, event_id)) is not None:
            return False
        session.add(EventAttendance(user_id=user_id, event_id=event_id))
    return True


def cancel_rsvp(engine: Engine, user_id: int, event_id: int) -> bool:
    """Remove an RSVP.  Returns False if there was none."""
    with get_session(engine) as session:
        result = session.execute(
            delete(EventAttendance).where(
                EventAttendance.user_id == user_id,
                EventAttendance.event_id == event_id,
            )
        )
        return result.rowcount > 0


def list_attendees(engine: Engine, event_id: int) -> list[int]:
    with get_session(engine) as session:
        _require_event(session, event_id)
        return list(session.scalars(
            select(EventAttendance.user_id)
            .where(EventAttendance.event_id == event_id)
            .order_by(EventAttendance.user_id)
        ).all())


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------
def event_to_dict(event: Event) -> dict:
    return {
        "id": event.id,
        "mosque_id": event.mosque_id,
        "title": event.title,
        "description": event.description,
        "category": event.category,
        "speaker": event.speaker,
        "date": ensure_utc(event.date).isoformat(),
        "timezone": event.timezone,
        "is_recurring": event.is_recurring,
        "recurrence_pattern": event.recurrence_pattern,
        "recurrence_end_date": (
            ensure_utc(event.recurrence_end_date).isoformat()
            if event.recurrence_end_date else None
        ),
    }


def _with_rsvp(
    session: Session, events: list[Event], viewer_id: int | None,
) -> list[dict]:
    ids = [e.id for e in events]
    if not ids:
        return []
    counts = dict(session.execute(
        select(EventAttendance.event_id, func.count())
        .where(EventAttendance.event_id.in_(ids))
        .group_by(EventAttendance.event_id)
    ).all())
    attending: set[int] = set()
    if viewer_id is not None:
        attending = set(session.scalars(
            select(EventAttendance.event_id).where(
                EventAttendance.user_id == viewer_id,
                EventAttendance.event_id.in_(ids),
            )
        ).all())
    return [
        {
            "event": event_to_dict(e),
            "rsvp_count": counts.get(e.id, 0),
            "rsvp": e.id in attending,
        }
        for e in events
    ]


def list_mosque_events(
    engine: Engine, mosque_id: int, viewer_id: int | None = None,
) -> list[dict]:
    """Events hosted by a mosque, each with its RSVP count and the viewer's flag."""
    with get_session(engine) as session:
        require_mosque(session, mosque_id)
        events = list(session.scalars(
            select(Event).where(Event.mosque_id == mosque_id).order_by(Event.date)
        ).all())
        return _with_rsvp(session, events, viewer_id)


def favorite_mosques_feed(engine: Engine, user_id: int) -> list[dict]:
    """Events of every mosque the user favorited, soonest first."""
    with get_session(engine) as session:
        events = list(session.scalars(
            select(Event)
            .join(MosqueFavorite, MosqueFavorite.mosque_id == Event.mosque_id)
            .where(MosqueFavorite.user_id == user_id)
            .order_by(Event.date, Event.id)
        ).all())
        return _with_rsvp(session, events, user_id)
