"""
merzah.constants — Shared Constants
====================================

Single source of truth for allow-lists and limits shared by the services
and the API layer.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Rotation job
# ---------------------------------------------------------------------------
DEFAULT_ROTATION_INTERVAL_MINUTES = 60

# Upper bound on catch-up steps for one event in one run.  A daily event
# that missed ~27 years of runs still fits; anything beyond is bad data.
ROTATION_MAX_ITERATIONS = 10_000


# ---------------------------------------------------------------------------
# Event field validation (lengths in characters, inclusive)
# ---------------------------------------------------------------------------
TITLE_LENGTH = (2, 100)
DESCRIPTION_LENGTH = (10, 1000)
SPEAKER_LENGTH = (2, 100)


# ---------------------------------------------------------------------------
# Edit allow-list: template fields an edit may overwrite
# ---------------------------------------------------------------------------
EDITABLE_EVENT_FIELDS: set[str] = {
    "title",
    "description",
    "category",
    "speaker",
    "date",
    "timezone",
    "mosque_id",
    "recurrence_pattern",
    "recurrence_duration",
}

# Editable fields that may not be cleared with a null
REQUIRED_EVENT_FIELDS: set[str] = {
    "title",
    "description",
    "category",
    "date",
    "timezone",
    "mosque_id",
}
