"""
merzah.services.audit_service — Audit Trail Helpers
====================================================

Every lifecycle mutation follows the pattern:
  1. Begin transaction
  2. Read "before" snapshot
  3. Apply change
  4. Write audit_log with before/after JSON
  5. Commit

The helpers here only add rows to the caller's session; the caller owns
the transaction.
"""

from __future__ import annotations

import logging
from datetime import datetime, time
from typing import Any

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from merzah.database.models import AuditLog

logger = logging.getLogger(__name__)


def row_to_dict(obj: Any) -> dict | None:
    """Convert a SQLAlchemy model instance to a JSON-serializable dict."""
    if obj is None:
        return None
    result = {}
    for col in obj.__table__.columns:
        val = getattr(obj, col.key, None)
        if isinstance(val, (datetime, time)):
            val = val.isoformat()
        result[col.name] = val
    return result


def log_action(
    session: Session,
    *,
    actor_id: int | None,
    action_type: str,
    target_table: str,
    target_id: Any,
    before: dict | None,
    after: dict | None,
) -> None:
    """Insert a row into audit_log within the current transaction."""
    session.add(AuditLog(
        actor_id=actor_id,
        action_type=str(action_type),
        target_table=target_table,
        target_id=str(target_id) if target_id is not None else None,
        before_snapshot=before,
        after_snapshot=after,
    ))


def list_audit_entries(
    engine: Engine,
    *,
    target_table: str | None = None,
    target_id: Any = None,
    limit: int = 50,
    offset: int = 0,
) -> list[dict]:
    """Newest-first audit rows, optionally filtered to one target."""
    stmt = select(AuditLog).order_by(AuditLog.id.desc())
    if target_table:
        stmt = stmt.where(AuditLog.target_table == target_table)
    if target_id is not None:
        stmt = stmt.where(AuditLog.target_id == str(target_id))

    with Session(engine) as session:
        rows = session.scalars(stmt.offset(offset).limit(limit)).all()
        return [
            {
                "id": r.id,
                "actor_id": str(r.actor_id) if r.actor_id is not None else None,
                "action_type": r.action_type,
                "target_table": r.target_table,
                "target_id": r.target_id,
                "before": r.before_snapshot,
                "after": r.after_snapshot,
                "timestamp": r.timestamp.isoformat() if r.timestamp else None,
            }
            for r in rows
        ]
