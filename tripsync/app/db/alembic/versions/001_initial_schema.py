"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19

Creates:
- trip
- destination (unique trip_id, day, position)
- sync_audit_entry
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all tables."""
    # trip table
    op.create_table(
        "trip",
        sa.Column("trip_id", sa.Uuid(), primary_key=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("budget_min", sa.Numeric(12, 2), nullable=True),
        sa.Column("budget_max", sa.Numeric(12, 2), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # destination table
    op.create_table(
        "destination",
        sa.Column("destination_id", sa.Uuid(), primary_key=True),
        sa.Column("trip_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("day", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("category", sa.Text(), server_default="attraction", nullable=False),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("place_ref", sa.Text(), nullable=True),
        sa.Column("rating", sa.Float(), nullable=True),
        sa.Column("estimated_cost", sa.Numeric(12, 2), nullable=True),
        sa.Column("visit_minutes", sa.Integer(), nullable=True),
        sa.Column("photos", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["trip_id"], ["trip.trip_id"], ondelete="CASCADE"),
        sa.UniqueConstraint("trip_id", "day", "position", name="uq_destination_trip_day_position"),
    )
    op.create_index("idx_destination_trip_day", "destination", ["trip_id", "day"])

    # sync_audit_entry table
    op.create_table(
        "sync_audit_entry",
        sa.Column("entry_id", sa.Uuid(), primary_key=True),
        sa.Column("trip_id", sa.Uuid(), nullable=False),
        sa.Column("kind", sa.Text(), nullable=False),
        sa.Column("outcome", sa.Text(), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["trip_id"], ["trip.trip_id"], ondelete="CASCADE"),
    )
    op.create_index("idx_sync_audit_trip", "sync_audit_entry", ["trip_id", "created_at"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("sync_audit_entry")
    op.drop_table("destination")
    op.drop_table("trip")
