"""Render venue rows as PostgreSQL statements for manual review and replay.

Statements are compiled from the columns of
:data:`~venuerecon.adapters.sqlalchemy.venue_table` with inline literals, so
an exported file carries the same column encodings as the store itself.
"""

from __future__ import annotations

import json
import math
import uuid
from logging import getLogger
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError
from sqlalchemy import JSON, Column, MetaData, String, Table, TypeDecorator, func, insert, update
from sqlalchemy.dialects import postgresql
from sqlalchemy.types import SchemaType

from venuerecon.adapters.reports import payload_from_record
from venuerecon.adapters.sqlalchemy import WRITABLE_COLUMNS, venue_table

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from sqlalchemy import Dialect
    from sqlalchemy.sql.dml import UpdateBase

    from venuerecon.domain.model import VenuePayload

log = getLogger(__name__)

DEFAULT_SCHEMA = "public"
_IDENTITY_COLUMNS = ("osm_type", "osm_id")

# Named paramstyle keeps literal percent signs undoubled.
_DIALECT = postgresql.dialect(paramstyle="named")


class JsonText(TypeDecorator[Any]):
    """JSON value rendered as a text literal; PostgreSQL casts it to the ``jsonb`` column."""

    impl = String
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def _literal_type(column: Column[Any]) -> Any:
    if isinstance(column.type, JSON):
        return JsonText()
    if isinstance(column.type, SchemaType):
        return column.type.copy()
    return column.type


def export_table(schema: str | None = DEFAULT_SCHEMA) -> Table:
    """``venue_table`` columns without client-side defaults, for literal rendering."""

    columns = [Column(column.name, _literal_type(column)) for column in venue_table.columns]
    return Table(venue_table.name, MetaData(schema=schema), *columns)


def strip_empty(value: Mapping[str, Any]) -> dict[str, Any]:
    """Drop ``None``, NaN, empty sequences and mappings that end up empty, recursively."""

    cleaned: dict[str, Any] = {}
    for key, item in value.items():
        if item is None:
            continue
        if isinstance(item, float) and not math.isfinite(item):
            continue
        if isinstance(item, (list, tuple)) and not item:
            continue
        if isinstance(item, dict):
            nested = strip_empty(item)
            if not nested:
                continue
            cleaned[key] = nested
            continue
        cleaned[key] = item
    return cleaned


def clean_record(record: Mapping[str, Any]) -> VenuePayload:
    """Typed payload of an export record's store columns, with empty values dropped."""

    return payload_from_record(strip_empty(record))


def _values(payload: VenuePayload) -> dict[str, Any]:
    return {
        key: value
        for key, value in strip_empty(payload.to_dict()).items()
        if key in WRITABLE_COLUMNS
    }


def _render(statement: UpdateBase) -> str:
    compiled = statement.compile(dialect=_DIALECT, compile_kwargs={"literal_binds": True})
    return f"{compiled};"


def build_insert_sql(
    venue_id: uuid.UUID, payload: VenuePayload, *, schema: str | None = DEFAULT_SCHEMA
) -> str:
    table = export_table(schema)
    return _render(insert(table).values(id=venue_id, **_values(payload)))


def build_upsert_sql(
    venue_id: uuid.UUID, payload: VenuePayload, *, schema: str | None = DEFAULT_SCHEMA
) -> str:
    """Insert, or update the row holding the same OSM identity when one exists."""

    values = _values(payload)
    table = export_table(schema)
    stmt = postgresql.insert(table).values(id=venue_id, **values)
    if not all(values.get(column) for column in _IDENTITY_COLUMNS):
        return _render(stmt)
    assignments = {
        key: stmt.excluded[key] for key in values if key not in _IDENTITY_COLUMNS
    }
    if not assignments:
        return _render(stmt.on_conflict_do_nothing(index_elements=list(_IDENTITY_COLUMNS)))
    return _render(
        stmt.on_conflict_do_update(index_elements=list(_IDENTITY_COLUMNS), set_=assignments)
    )


def build_update_sql(
    venue_id: uuid.UUID | str, patch: VenuePayload, *, schema: str | None = DEFAULT_SCHEMA
) -> str:
    table = export_table(schema)
    stmt = (
        update(table)
        .where(table.c.id == uuid.UUID(str(venue_id)))
        .values(**_values(patch), updated_at=func.now())
    )
    return _render(stmt)


def prepare_inserts(
    records: Iterable[Mapping[str, Any]],
    *,
    schema: str | None = DEFAULT_SCHEMA,
    id_factory: Callable[[], uuid.UUID] = uuid.uuid4,
) -> list[str]:
    """INSERT statements for export records, restricted to known store columns.

    Records that are empty after cleaning are skipped silently; records the
    store would reject (no name, unparseable values) are skipped with a warning.
    """

    statements: list[str] = []
    for index, record in enumerate(records):
        try:
            payload = clean_record(record)
        except ValidationError as exc:
            log.warning("Skipping export record %d: %s", index, exc)
            continue
        if payload.is_empty():
            continue
        if not payload.name:
            log.warning("Skipping export record %d without a name", index)
            continue
        statements.append(build_insert_sql(id_factory(), payload, schema=schema))
    return statements
