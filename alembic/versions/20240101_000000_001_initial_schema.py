"""Initial schema: providers, availability windows, slots, reservations, ratings.

Revision ID: 001
Revises:
Create Date: 2024-01-01 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create scheduling tables."""

    # Providers (keyed by principal id)
    op.create_table(
        "providers",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("display_name", sa.String(200), nullable=True),
        sa.Column("rating_total", sa.Numeric(12, 4), nullable=False, server_default="0"),
        sa.Column("rating_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_providers"),
    )

    # Availability windows (one per provider and date)
    op.create_table(
        "availability_windows",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("provider_id", sa.String(64), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("max_bookings_per_slot", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_availability_windows"),
        sa.ForeignKeyConstraint(
            ["provider_id"],
            ["providers.id"],
            name="fk_availability_windows_provider_id_providers",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint(
            "provider_id", "date", name="uq_availability_windows_provider_date"
        ),
        sa.CheckConstraint(
            "max_bookings_per_slot > 0",
            name="ck_availability_windows_max_bookings_positive",
        ),
    )
    op.create_index(
        "ix_availability_windows_provider_id",
        "availability_windows",
        ["provider_id"],
    )

    # Slots
    op.create_table(
        "slots",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("window_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_slots"),
        sa.ForeignKeyConstraint(
            ["window_id"],
            ["availability_windows.id"],
            name="fk_slots_window_id_availability_windows",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("window_id", "start_time", name="uq_slots_window_start"),
        sa.CheckConstraint("start_time < end_time", name="ck_slots_start_before_end"),
    )
    op.create_index("ix_slots_window_id", "slots", ["window_id"])

    # Reservations
    op.create_table(
        "reservations",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("provider_id", sa.String(64), nullable=False),
        sa.Column("requester_id", sa.String(64), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time", sa.Time(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="booked"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_reservations"),
        sa.ForeignKeyConstraint(
            ["provider_id"],
            ["providers.id"],
            name="fk_reservations_provider_id_providers",
            ondelete="CASCADE",
        ),
    )
    op.create_index(
        "ix_reservations_provider_date_time",
        "reservations",
        ["provider_id", "date", "time"],
    )
    op.create_index("ix_reservations_requester_id", "reservations", ["requester_id"])

    # Rating entries (append only)
    op.create_table(
        "rating_entries",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("provider_id", sa.String(64), nullable=False),
        sa.Column("requester_id", sa.String(64), nullable=True),
        sa.Column("score", sa.Numeric(12, 4), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_rating_entries"),
        sa.ForeignKeyConstraint(
            ["provider_id"],
            ["providers.id"],
            name="fk_rating_entries_provider_id_providers",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_rating_entries_provider_id", "rating_entries", ["provider_id"])


def downgrade() -> None:
    """Drop scheduling tables."""
    op.drop_table("rating_entries")
    op.drop_table("reservations")
    op.drop_table("slots")
    op.drop_table("availability_windows")
    op.drop_table("providers")
