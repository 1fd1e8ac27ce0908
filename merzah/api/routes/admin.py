"""
merzah.api.routes.admin — Admin endpoints (JWT‑protected)
==========================================================

Manual rotation trigger and the audit trail.  Overlapping a manual run with
the scheduled one is safe: the conditional update lets only one of them move
a given event.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from merzah.api.deps import CurrentAdmin, get_config, get_engine
from merzah.config import MerzahConfig
from merzah.database.engine import get_session
from merzah.database.models import AuditActionType
from merzah.engine.clock import SystemClock
from merzah.services.audit_service import list_audit_entries, log_action
from merzah.services.rotation_service import run_rotation

router = APIRouter(prefix="/admin", tags=["admin"])


class RotationTrigger(BaseModel):
    now: datetime | None = None  # defaults to the current time


@router.post("/rotation/run")
def trigger_rotation(
    admin: CurrentAdmin,
    body: RotationTrigger | None = None,
    engine=Depends(get_engine),
    cfg: MerzahConfig = Depends(get_config),
):
    now = body.now if body and body.now else SystemClock().now()
    report = run_rotation(engine, now, max_iterations=cfg.rotation_max_iterations)
    summary = report.to_dict()

    with get_session(engine) as session:
        log_action(
            session,
            actor_id=admin["user_id"],
            action_type=AuditActionType.ROTATE_TRIGGER,
            target_table="events",
            target_id=None,
            before=None,
            after={
                "now": summary["now"],
                "rotated": summary["rotated"],
                "series_ended": summary["series_ended"],
                "failed": [f["event_id"] for f in summary["failed"]],
            },
        )
    return summary


@router.get("/audit")
def get_audit_log(
    admin: CurrentAdmin,
    engine=Depends(get_engine),
    target_table: str | None = None,
    target_id: str | None = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    entries = list_audit_entries(
        engine,
        target_table=target_table,
        target_id=target_id,
        limit=limit,
        offset=offset,
    )
    return {"entries": entries, "limit": limit, "offset": offset}
