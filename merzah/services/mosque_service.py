"""
merzah.services.mosque_service — Mosques & Favorites
=====================================================

Mosques host events.  A favorite edge (user → mosque) decides which
mosques' events appear in a member's personal feed.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, delete, select
from sqlalchemy.orm import Session

from merzah.database.engine import get_session
from merzah.database.models import AuditActionType, Mosque, MosqueFavorite, User
from merzah.errors import MosqueNotFound, ValidationError
from merzah.services.audit_service import log_action, row_to_dict

logger = logging.getLogger(__name__)


def get_or_create_user(session: Session, user_id: int, display_name: str | None = None) -> User:
    """Fetch or insert a User row.  Identities are created on first use."""
    user = session.get(User, user_id)
    if user is None:
        user = User(id=user_id, display_name=display_name or f"member-{user_id}")
        session.add(user)
        session.flush()
    elif display_name:
        user.display_name = display_name
    return user


def require_mosque(session: Session, mosque_id: int) -> Mosque:
    mosque = session.get(Mosque, mosque_id)
    if mosque is None:
        raise MosqueNotFound(mosque_id)
    return mosque


# ---------------------------------------------------------------------------
# Mosques
# ---------------------------------------------------------------------------
def create_mosque(
    engine: Engine,
    *,
    name: str,
    street: str | None = None,
    city: str | None = None,
    latitude: float | None = None,
    longitude: float | None = None,
    actor_id: int | None = None,
) -> Mosque:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Mosque name must not be empty")

    with get_session(engine) as session:
        mosque = Mosque(
            name=name, street=street, city=city,
            latitude=latitude, longitude=longitude,
        )
        session.add(mosque)
        session.flush()
        log_action(
            session,
            actor_id=actor_id,
            action_type=AuditActionType.CREATE,
            target_table="mosques",
            target_id=mosque.id,
            before=None,
            after=row_to_dict(mosque),
        )
    logger.info("Created mosque %d (%s)", mosque.id, mosque.name)
    return mosque


def get_mosque(engine: Engine, mosque_id: int) -> Mosque:
    with get_session(engine) as session:
        return require_mosque(session, mosque_id)


# ---------------------------------------------------------------------------
# Favorites
# ---------------------------------------------------------------------------
def add_favorite(engine: Engine, user_id: int, mosque_id: int) -> bool:
    """Favorite a mosque.  Returns False if it was already a favorite."""
    with get_session(engine) as session:
        require_mosque(session, mosque_id)
        get_or_create_user(session, user_id)
        if session.get(MosqueFavorite, (user_id, mosque_id)) is not None:
            return False
        session.add(MosqueFavorite(user_id=user_id, mosque_id=mosque_id))
    return True


def remove_favorite(engine: Engine, user_id: int, mosque_id: int) -> bool:
    """Un-favorite a mosque.  Returns False if it was not a favorite."""
    with get_session(engine) as session:
        result = session.execute(
            delete(MosqueFavorite).where(
                MosqueFavorite.user_id == user_id,
                MosqueFavorite.mosque_id == mosque_id,
            )
        )
        return result.rowcount > 0


def list_favorites(engine: Engine, user_id: int) -> list[Mosque]:
    with get_session(engine) as session:
        return list(session.scalars(
            select(Mosque)
            .join(MosqueFavorite, MosqueFavorite.mosque_id == Mosque.id)
            .where(MosqueFavorite.user_id == user_id)
            .order_by(Mosque.name)
        ).all())


def mosque_to_dict(mosque: Mosque) -> dict:
    return {
        "id": mosque.id,
        "name": mosque.name,
        "street": mosque.street,
        "city": mosque.city,
        "latitude": mosque.latitude,
        "longitude": mosque.longitude,
    }
