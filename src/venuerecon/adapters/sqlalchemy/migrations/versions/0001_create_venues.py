"""Create the venues table.

Revision ID: 0001
Revises:
Create Date: 2026-10-16
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

from venuerecon.adapters.sqlalchemy.mappings import TagListType, UTCDateTime

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "venues",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("address", sa.String(), nullable=True),
        sa.Column("city", sa.String(), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("is_bar", sa.Boolean(), nullable=True),
        sa.Column("image_url", sa.String(), nullable=True),
        sa.Column("tags", TagListType(), nullable=True),
        sa.Column(
            "osm_type",
            sa.Enum("node", "way", "relation", name="osmelementkind", native_enum=False),
            nullable=True,
        ),
        sa.Column("osm_id", sa.BigInteger(), nullable=True),
        sa.Column("osm_url", sa.String(), nullable=True),
        sa.Column("osm_tags_raw", sa.JSON(), nullable=True),
        sa.Column("address_details", sa.JSON(), nullable=True),
        sa.Column("contact", sa.JSON(), nullable=True),
        sa.Column("osm_venue_type", sa.String(), nullable=True),
        sa.Column("opening_hours", sa.String(), nullable=True),
        sa.Column("capacity", sa.Integer(), nullable=True),
        sa.Column("live_music", sa.Boolean(), nullable=True),
        sa.Column("website", sa.String(), nullable=True),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("facebook", sa.String(), nullable=True),
        sa.Column("instagram", sa.String(), nullable=True),
        sa.Column("source", sa.String(), nullable=True),
        sa.Column("osm_last_sync_at", UTCDateTime(), nullable=True),
        sa.Column(
            "created_at", UTCDateTime(), server_default=sa.func.now(), nullable=False
        ),
        sa.Column(
            "updated_at", UTCDateTime(), server_default=sa.func.now(), nullable=False
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_venues")),
        sa.UniqueConstraint("osm_type", "osm_id", name=op.f("uq_venues_osm_type_osm_id")),
    )
    op.create_index("ix_venues_name_lower", "venues", [sa.text("lower(name)")])
    op.create_index("ix_venues_city_lower", "venues", [sa.text("lower(city)")])


def downgrade() -> None:
    op.drop_index("ix_venues_city_lower", table_name="venues")
    op.drop_index("ix_venues_name_lower", table_name="venues")
    op.drop_table("venues")
