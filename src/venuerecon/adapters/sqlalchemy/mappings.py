"""SQLAlchemy Core metadata for the venue store."""

from __future__ import annotations

import json
import uuid
from datetime import UTC, datetime
from typing import Any, cast

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    Float,
    Index,
    Integer,
    String,
    Table,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    func,
    orm,
)

from venuerecon.domain.model import OsmElementKind

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class TagListType(TypeDecorator[tuple[str, ...]]):
    """Ordered tag list stored as a JSON array."""

    impl = String
    cache_ok = True

    def process_bind_param(self, value: tuple[str, ...] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(list(value), ensure_ascii=False)

    def process_result_value(self, value: str | None, dialect: Dialect) -> tuple[str, ...]:
        _ = dialect
        if value is None:
            return ()
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return ()
        items = cast(list[Any], loaded)
        return tuple(item for item in items if isinstance(item, str))


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_N_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

venue_table = Table(
    "venues",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("name", String, nullable=False),
    Column("address", String, nullable=True),
    Column("city", String, nullable=True),
    Column("latitude", Float, nullable=True),
    Column("longitude", Float, nullable=True),
    Column("is_bar", Boolean, nullable=True),
    Column("image_url", String, nullable=True),
    Column("tags", TagListType, nullable=True),
    Column(
        "osm_type",
        Enum(
            OsmElementKind,
            native_enum=False,
            values_callable=lambda kinds: [kind.value for kind in kinds],
        ),
        nullable=True,
    ),
    Column("osm_id", BigInteger, nullable=True),
    Column("osm_url", String, nullable=True),
    Column("osm_tags_raw", JSON, nullable=True),
    Column("address_details", JSON, nullable=True),
    Column("contact", JSON, nullable=True),
    Column("osm_venue_type", String, nullable=True),
    Column("opening_hours", String, nullable=True),
    Column("capacity", Integer, nullable=True),
    Column("live_music", Boolean, nullable=True),
    Column("website", String, nullable=True),
    Column("phone", String, nullable=True),
    Column("facebook", String, nullable=True),
    Column("instagram", String, nullable=True),
    Column("source", String, nullable=True),
    Column("osm_last_sync_at", UTCDateTime, nullable=True),
    Column("created_at", UTCDateTime, nullable=False, server_default=func.now()),
    Column(
        "updated_at",
        UTCDateTime,
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    ),
    UniqueConstraint("osm_type", "osm_id"),
)
Index("ix_venues_name_lower", func.lower(venue_table.c.name))
Index("ix_venues_city_lower", func.lower(venue_table.c.city))

# Columns a payload may write; timestamps are maintained by the database.
_MANAGED_COLUMNS = frozenset({"created_at", "updated_at"})
WRITABLE_COLUMNS: frozenset[str] = frozenset(
    column.name for column in venue_table.columns if column.name not in _MANAGED_COLUMNS
)
