"""
merzah.api.routes.mosques — Mosques, favorites and hosted events
=================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from merzah.api.deps import CurrentAdmin, CurrentUser, get_engine
from merzah.services import event_service, mosque_service

router = APIRouter(prefix="/mosques", tags=["mosques"])


class MosqueCreate(BaseModel):
    name: str
    street: str | None = None
    city: str | None = None
    latitude: float | None = None
    longitude: float | None = None


@router.post("", status_code=201)
def create_mosque(body: MosqueCreate, admin: CurrentAdmin, engine=Depends(get_engine)):
    mosque = mosque_service.create_mosque(
        engine,
        name=body.name,
        street=body.street,
        city=body.city,
        latitude=body.latitude,
        longitude=body.longitude,
        actor_id=admin["user_id"],
    )
    return mosque_service.mosque_to_dict(mosque)


@router.get("/favorites")
def list_favorites(user: CurrentUser, engine=Depends(get_engine)):
    mosques = mosque_service.list_favorites(engine, user["user_id"])
    return {"mosques": [mosque_service.mosque_to_dict(m) for m in mosques]}


@router.get("/{mosque_id}")
def get_mosque(mosque_id: int, user: CurrentUser, engine=Depends(get_engine)):
    return mosque_service.mosque_to_dict(mosque_service.get_mosque(engine, mosque_id))


@router.post("/{mosque_id}/favorite")
def add_favorite(mosque_id: int, user: CurrentUser, engine=Depends(get_engine)):
    created = mosque_service.add_favorite(engine, user["user_id"], mosque_id)
    return {"mosque_id": mosque_id, "favorite": True, "created": created}


@router.delete("/{mosque_id}/favorite")
def remove_favorite(mosque_id: int, user: CurrentUser, engine=Depends(get_engine)):
    removed = mosque_service.remove_favorite(engine, user["user_id"], mosque_id)
    return {"mosque_id": mosque_id, "favorite": False, "removed": removed}


@router.get("/{mosque_id}/events")
def list_mosque_events(mosque_id: int, user: CurrentUser, engine=Depends(get_engine)):
    """Hosted events with RSVP counts and the caller's own RSVP flag."""
    events = event_service.list_mosque_events(engine, mosque_id, viewer_id=user["user_id"])
    return {"mosque_id": mosque_id, "events": events}
