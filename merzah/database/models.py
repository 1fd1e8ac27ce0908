"""
merzah.database.models — SQLAlchemy 2.0 Data Models
====================================================

Tables:
- users             — Platform members (id is the JWT ``sub``)
- mosques           — Mosques that host events
- events            — One row per event series; ``date`` is the live occurrence
- event_attendance  — RSVP edge (user → event series)
- mosque_favorites  — Favorite edge (user → mosque), drives the personal feed
- audit_log         — Append-only trail of event/mosque mutations

All ``DateTime`` columns are timezone-aware and written in UTC.
"""

from __future__ import annotations

import enum
from datetime import datetime, time

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Merzah ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class EventCategory(enum.StrEnum):
    HALAQAH = "halaqah"
    FUNDRAISER = "fundraiser"
    YOUTH = "youth"
    LECTURE = "lecture"
    COMMUNITY = "community"
    WORKSHOP = "workshop"
    SEMINAR = "seminar"
    CONFERENCE = "conference"
    SPORTS = "sports"
    SOCIAL = "social"
    VOLUNTEER = "volunteer"
    IFTAR = "iftar"
    TARAWEEH = "taraweeh"
    EID = "eid"


class RecurrencePattern(enum.StrEnum):
    """How a recurring event advances from one occurrence to the next."""
    DAILY = "daily"
    WEEKDAYS = "weekdays"
    WEEKENDS = "weekends"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class UserRole(enum.StrEnum):
    REGULAR = "regular"
    APP_ADMIN = "app_admin"


class AuditActionType(enum.StrEnum):
    """Categories of mutations recorded in audit_log."""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    STOP_RECURRING = "STOP_RECURRING"
    DELETE = "DELETE"
    ROTATE_TRIGGER = "ROTATE_TRIGGER"


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UserRole.REGULAR.value
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    attending: Mapped[list[EventAttendance]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )
    favorites: Mapped[list[MosqueFavorite]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} name={self.display_name!r} role={self.role}>"


# ---------------------------------------------------------------------------
# Mosques
# ---------------------------------------------------------------------------
class Mosque(Base):
    __tablename__ = "mosques"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    street: Mapped[str | None] = mapped_column(String(200), default=None)
    city: Mapped[str | None] = mapped_column(String(100), default=None)
    latitude: Mapped[float | None] = mapped_column(Float, default=None)
    longitude: Mapped[float | None] = mapped_column(Float, default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    events: Mapped[list[Event]] = relationship(
        back_populates="mosque", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_mosques_name", "name"),
        Index("ix_mosques_city", "city"),
    )

    def __repr__(self) -> str:
        return f"<Mosque id={self.id} name={self.name!r}>"


# ---------------------------------------------------------------------------
# Events: template fields + the live occurrence pointer
# ---------------------------------------------------------------------------
class Event(Base):
    """One event series.

    The row is both the editable template (title, pattern, ...) and the
    pointer to the current occurrence (``date``).  Rotation only ever moves
    ``date``; the id never changes, so RSVP rows follow the series.
    """
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    mosque_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("mosques.id", ondelete="CASCADE"), nullable=False
    )
    created_by: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    # Template
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    speaker: Mapped[str | None] = mapped_column(String(100), default=None)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="UTC")

    # Live occurrence
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    # Wall-clock start in ``timezone``; rotation re-applies it after each step
    local_time: Mapped[time | None] = mapped_column(Time, default=None)

    # Recurrence
    is_recurring: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    recurrence_pattern: Mapped[str | None] = mapped_column(String(20), default=None)
    recurrence_end_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    mosque: Mapped[Mosque] = relationship(back_populates="events")
    attendees: Mapped[list[EventAttendance]] = relationship(
        back_populates="event", cascade="all, delete-orphan"
    )

    __table_args__ = (
        # Serves the rotation candidate query (is_recurring, date <= now)
        Index("ix_events_recurring_date", "is_recurring", "date"),
        Index("ix_events_mosque_date", "mosque_id", "date"),
    )

    def __repr__(self) -> str:
        return (
            f"<Event id={self.id} title={self.title!r} date={self.date} "
            f"pattern={self.recurrence_pattern}>"
        )


# ---------------------------------------------------------------------------
# EventAttendance: RSVP edge, attached to the series not an occurrence
# ---------------------------------------------------------------------------
class EventAttendance(Base):
    __tablename__ = "event_attendance"

    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    event_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("events.id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    user: Mapped[User] = relationship(back_populates="attending")
    event: Mapped[Event] = relationship(back_populates="attendees")

    __table_args__ = (
        Index("ix_event_attendance_event", "event_id"),
    )

    def __repr__(self) -> str:
        return f"<EventAttendance user={self.user_id} event={self.event_id}>"


# ---------------------------------------------------------------------------
# MosqueFavorite: favorite edge
# ---------------------------------------------------------------------------
class MosqueFavorite(Base):
    __tablename__ = "mosque_favorites"

    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    mosque_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("mosques.id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    user: Mapped[User] = relationship(back_populates="favorites")

    def __repr__(self) -> str:
        return f"<MosqueFavorite user={self.user_id} mosque={self.mosque_id}>"


# ---------------------------------------------------------------------------
# AuditLog: append-only trail
# ---------------------------------------------------------------------------
class AuditLog(Base):
    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    actor_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    action_type: Mapped[str] = mapped_column(String(30), nullable=False)
    target_table: Mapped[str] = mapped_column(String(50), nullable=False)
    target_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    before_snapshot: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    after_snapshot: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_audit_log_timestamp", "timestamp"),
        Index("ix_audit_log_target", "target_table", "target_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<AuditLog id={self.id} action={self.action_type} "
            f"target={self.target_table}:{self.target_id}>"
        )
