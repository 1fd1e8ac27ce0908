"""
merzah.errors — Error Taxonomy
===============================

Lifecycle errors (``ValidationError``, ``EventNotFound``,
``MosqueNotFound``) are raised to callers and mapped to HTTP status codes by
the API layer.

Rotation errors (``RotationOverflow``, ``InvalidEventData``, ``PersistenceConflict``,
``PersistenceFailure``) are raised per event inside a rotation run and
collected into the :class:`~merzah.services.rotation_service.RotationReport`;
they never abort the batch.
"""

from __future__ import annotations


class MerzahError(Exception):
    """Base class for every error raised by Merzah services."""


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------
class ValidationError(MerzahError, ValueError):
    """Invalid input (pattern, duration, field value).  Nothing was persisted."""


class EventNotFound(MerzahError, LookupError):
    def __init__(self, event_id: int) -> None:
        super().__init__(f"Event not found: {event_id}")
        self.event_id = event_id


class MosqueNotFound(MerzahError, LookupError):
    def __init__(self, mosque_id: int) -> None:
        super().__init__(f"Mosque not found: {mosque_id}")
        self.mosque_id = mosque_id


# ---------------------------------------------------------------------------
# Rotation (per event)
# ---------------------------------------------------------------------------
class RotationError(MerzahError):
    """Base for per-event rotation outcomes that are not a plain rotation."""

    kind = "error"

    def __init__(self, event_id: int, message: str) -> None:
        super().__init__(message)
        self.event_id = event_id


class RotationOverflow(RotationError):
    """Catch-up exceeded the iteration cap (or the pattern never advances)."""

    kind = "overflow"


class PersistenceConflict(RotationError):
    """The conditional update matched no row: another run already moved it."""

    kind = "conflict"


class PersistenceFailure(RotationError):
    """The database rejected the update.  The next scheduled run retries it."""

    kind = "persistence"


class InvalidEventData(RotationError):
    """The stored row cannot be rotated as is (e.g. an unknown timezone)."""

    kind = "invalid"
