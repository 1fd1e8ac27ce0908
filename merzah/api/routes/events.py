"""
merzah.api.routes.events — Event lifecycle & RSVP endpoints
============================================================

Edits always apply to "this and future occurrences".  Deleting removes the
whole series; stopping keeps the row as a one-time event.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from merzah.api.deps import CurrentUser, get_config, get_engine
from merzah.config import MerzahConfig
from merzah.services import event_service

router = APIRouter(prefix="/events", tags=["events"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class EventCreate(BaseModel):
    mosque_id: int
    title: str
    description: str
    category: str
    date: datetime
    speaker: str | None = None
    timezone: str | None = None
    recurrence_pattern: str | None = None
    recurrence_duration: str | None = None  # 1_month | 3_months | 6_months | 1_year | forever


class EventUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    category: str | None = None
    speaker: str | None = None
    date: datetime | None = None
    timezone: str | None = None
    mosque_id: int | None = None
    recurrence_pattern: str | None = None  # explicit null stops recurrence
    recurrence_duration: str | None = None


# ---------------------------------------------------------------------------
# Create / read
# ---------------------------------------------------------------------------
@router.post("", status_code=201)
def create_event(
    body: EventCreate,
    user: CurrentUser,
    engine=Depends(get_engine),
    cfg: MerzahConfig = Depends(get_config),
):
    event = event_service.create_event(
        engine,
        mosque_id=body.mosque_id,
        title=body.title,
        description=body.description,
        category=body.category,
        date=body.date,
        speaker=body.speaker,
        timezone=body.timezone,
        recurrence_pattern=body.recurrence_pattern,
        recurrence_duration=body.recurrence_duration,
        actor_id=user["user_id"],
        default_timezone=cfg.default_timezone,
    )
    return event_service.event_to_dict(event)


@router.get("/feed")
def favorites_feed(user: CurrentUser, engine=Depends(get_engine)):
    """Events from the caller's favorite mosques, with their RSVP flags."""
    return {"events": event_service.favorite_mosques_feed(engine, user["user_id"])}


@router.get("/{event_id}")
def get_event(event_id: int, user: CurrentUser, engine=Depends(get_engine)):
    return event_service.event_to_dict(event_service.get_event(engine, event_id))


# ---------------------------------------------------------------------------
# Edit / stop / delete
# ---------------------------------------------------------------------------
@router.patch("/{event_id}")
def update_event(
    event_id: int,
    body: EventUpdate,
    user: CurrentUser,
    engine=Depends(get_engine),
):
    fields = body.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(400, "No fields to update")
    event = event_service.edit_event(
        engine, event_id, fields, actor_id=user["user_id"],
    )
    return event_service.event_to_dict(event)


@router.post("/{event_id}/stop-recurring")
def stop_recurring(event_id: int, user: CurrentUser, engine=Depends(get_engine)):
    event = event_service.stop_recurring(engine, event_id, actor_id=user["user_id"])
    return event_service.event_to_dict(event)


@router.delete("/{event_id}")
def delete_series(event_id: int, user: CurrentUser, engine=Depends(get_engine)):
    removed = event_service.delete_series(engine, event_id, actor_id=user["user_id"])
    return {"deleted": event_id, "rsvps_removed": removed}


# ---------------------------------------------------------------------------
# RSVP
# ---------------------------------------------------------------------------
@router.post("/{event_id}/rsvp")
def rsvp(event_id: int, user: CurrentUser, engine=Depends(get_engine)):
    created = event_service.rsvp(
        engine, user["user_id"], event_id, display_name=user.get("username"),
    )
    return {"event_id": event_id, "attending": True, "created": created}


@router.delete("/{event_id}/rsvp")
def cancel_rsvp(event_id: int, user: CurrentUser, engine=Depends(get_engine)):
    removed = event_service.cancel_rsvp(engine, user["user_id"], event_id)
    return {"event_id": event_id, "attending": False, "removed": removed}


@router.get("/{event_id}/attendees")
def list_attendees(event_id: int, user: CurrentUser, engine=Depends(get_engine)):
    user_ids = event_service.list_attendees(engine, event_id)
    return {"event_id": event_id, "count": len(user_ids), "user_ids": [str(u) for u in user_ids]}
