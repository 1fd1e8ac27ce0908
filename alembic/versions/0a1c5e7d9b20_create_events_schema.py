"""Create users, mosques, events, RSVP/favorite edges and audit_log

Revision ID: 0a1c5e7d9b20
Revises:
Create Date: 2026-01-05 10:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0a1c5e7d9b20"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """Create the full schema, including the rotation candidate index."""
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("display_name", sa.String(100), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="regular"),
        *_timestamps(),
    )

    op.create_table(
        "mosques",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("street", sa.String(200)),
        sa.Column("city", sa.String(100)),
        sa.Column("latitude", sa.Float()),
        sa.Column("longitude", sa.Float()),
        *_timestamps(),
    )
    op.create_index("ix_mosques_name", "mosques", ["name"])
    op.create_index("ix_mosques_city", "mosques", ["city"])

    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "mosque_id", sa.Integer(),
            sa.ForeignKey("mosques.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("created_by", sa.BigInteger()),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", sa.String(20), nullable=False),
        sa.Column("speaker", sa.String(100)),
        sa.Column("timezone", sa.String(64), nullable=False, server_default="UTC"),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("local_time", sa.Time()),
        sa.Column("is_recurring", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("recurrence_pattern", sa.String(20)),
        sa.Column("recurrence_end_date", sa.DateTime(timezone=True)),
        *_timestamps(),
    )
    op.create_index("ix_events_recurring_date", "events", ["is_recurring", "date"])
    op.create_index("ix_events_mosque_date", "events", ["mosque_id", "date"])

    op.create_table(
        "event_attendance",
        sa.Column(
            "user_id", sa.BigInteger(),
            sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column(
            "event_id", sa.Integer(),
            sa.ForeignKey("events.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_event_attendance_event", "event_attendance", ["event_id"])

    op.create_table(
        "mosque_favorites",
        sa.Column(
            "user_id", sa.BigInteger(),
            sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column(
            "mosque_id", sa.Integer(),
            sa.ForeignKey("mosques.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("actor_id", sa.BigInteger()),
        sa.Column("action_type", sa.String(30), nullable=False),
        sa.Column("target_table", sa.String(50), nullable=False),
        sa.Column("target_id", sa.String(50)),
        sa.Column("before_snapshot", postgresql.JSONB()),
        sa.Column("after_snapshot", postgresql.JSONB()),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_audit_log_timestamp", "audit_log", ["timestamp"])
    op.create_index("ix_audit_log_target", "audit_log", ["target_table", "target_id"])


def downgrade() -> None:
    op.drop_table("audit_log")
    op.drop_table("mosque_favorites")
    op.drop_table("event_attendance")
    op.drop_index("ix_events_mosque_date", table_name="events")
    op.drop_index("ix_events_recurring_date", table_name="events")
    op.drop_table("events")
    op.drop_index("ix_mosques_city", table_name="mosques")
    op.drop_index("ix_mosques_name", table_name="mosques")
    op.drop_table("mosques")
    op.drop_table("users")
