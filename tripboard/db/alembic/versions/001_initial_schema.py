"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19

Creates:
- place (collaborator rows, read-only here)
- itinerary, itinerary_day, itinerary_item
- accommodation, flight
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
    ]


def upgrade() -> None:
    """Create all tables."""
    # place table
    op.create_table(
        "place",
        sa.Column("place_id", sa.Uuid(), primary_key=True),
        sa.Column("project_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("category", sa.Text(), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
    )
    op.create_index("idx_place_project", "place", ["project_id"])

    # itinerary table
    op.create_table(
        "itinerary",
        sa.Column("itinerary_id", sa.Uuid(), primary_key=True),
        sa.Column("project_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("project_id", name="uq_itinerary_project"),
    )

    # itinerary_day table
    op.create_table(
        "itinerary_day",
        sa.Column("day_id", sa.Uuid(), primary_key=True),
        sa.Column("itinerary_id", sa.Uuid(), nullable=False),
        sa.Column("day_number", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.ForeignKeyConstraint(["itinerary_id"], ["itinerary.itinerary_id"], ondelete="CASCADE"),
        sa.UniqueConstraint("itinerary_id", "day_number", name="uq_day_itinerary_number"),
    )
    op.create_index("idx_day_itinerary_date", "itinerary_day", ["itinerary_id", "date"])

    # accommodation table
    op.create_table(
        "accommodation",
        sa.Column("accommodation_id", sa.Uuid(), primary_key=True),
        sa.Column("itinerary_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("check_in", sa.DateTime(), nullable=False),
        sa.Column("check_out", sa.DateTime(), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["itinerary_id"], ["itinerary.itinerary_id"], ondelete="CASCADE"),
    )
    op.create_index(
        "idx_accommodation_itinerary", "accommodation", ["itinerary_id", "check_in"]
    )

    # itinerary_item table
    op.create_table(
        "itinerary_item",
        sa.Column("item_id", sa.Uuid(), primary_key=True),
        sa.Column("day_id", sa.Uuid(), nullable=False),
        sa.Column("item_type", sa.Text(), nullable=False, server_default="place"),
        sa.Column("place_id", sa.Uuid(), nullable=True),
        sa.Column("accommodation_id", sa.Uuid(), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.Text(), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["day_id"], ["itinerary_day.day_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["place_id"], ["place.place_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["accommodation_id"], ["accommodation.accommodation_id"], ondelete="CASCADE"
        ),
    )
    op.create_index("idx_item_day_order", "itinerary_item", ["day_id", "order"])
    op.create_index("idx_item_accommodation", "itinerary_item", ["accommodation_id"])

    # flight table
    op.create_table(
        "flight",
        sa.Column("flight_id", sa.Uuid(), primary_key=True),
        sa.Column("itinerary_id", sa.Uuid(), nullable=False),
        sa.Column("departure_city", sa.Text(), nullable=False),
        sa.Column("arrival_city", sa.Text(), nullable=False),
        sa.Column("airline", sa.Text(), nullable=True),
        sa.Column("flight_number", sa.Text(), nullable=True),
        sa.Column("departure_at", sa.DateTime(), nullable=False),
        sa.Column("arrival_at", sa.DateTime(), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.ForeignKeyConstraint(["itinerary_id"], ["itinerary.itinerary_id"], ondelete="CASCADE"),
    )
    op.create_index("idx_flight_itinerary", "flight", ["itinerary_id", "departure_at"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("flight")
    op.drop_table("itinerary_item")
    op.drop_table("accommodation")
    op.drop_table("itinerary_day")
    op.drop_table("itinerary")
    op.drop_table("place")
