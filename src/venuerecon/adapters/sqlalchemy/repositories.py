"""Venue store backed by SQLAlchemy sessions."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, insert, select, update
from sqlalchemy.exc import SQLAlchemyError

from venuerecon.domain.errors import StoreError
from venuerecon.domain.model import VenueRecord

from .mappings import WRITABLE_COLUMNS, venue_table

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy import Select
    from sqlalchemy.engine import RowMapping
    from sqlalchemy.orm import Session, sessionmaker

    from venuerecon.domain.model import OsmIdentity, VenuePayload

log = getLogger(__name__)

_RECORD_COLUMNS = [column for column in venue_table.columns if column.name in WRITABLE_COLUMNS]


def _to_record(row: RowMapping) -> VenueRecord:
    values: dict[str, Any] = dict(row)
    values["tags"] = tuple(values.get("tags") or ())
    return VenueRecord(**values)


def _to_values(payload: VenuePayload) -> dict[str, Any]:
    values = {key: value for key, value in payload.to_dict().items() if key in WRITABLE_COLUMNS}
    if "tags" in values:
        values["tags"] = tuple(values["tags"])
    return values


class SqlAlchemyVenueStore:
    """:class:`~venuerecon.domain.ports.VenueStore` over the ``venues`` table.

    Each write runs in its own short transaction, so a failed row never rolls
    back earlier decisions of the same run.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def find_by_exact_name(self, name: str) -> list[VenueRecord]:
        stmt = select(*_RECORD_COLUMNS).where(
            func.lower(venue_table.c.name) == func.lower(name.strip())
        )
        return self._fetch(stmt, "find_by_exact_name")

    def find_by_city(self, city: str) -> list[VenueRecord]:
        stmt = select(*_RECORD_COLUMNS).where(
            func.lower(venue_table.c.city) == func.lower(city.strip())
        )
        return self._fetch(stmt, "find_by_city")

    def find_by_external_identity(self, identity: OsmIdentity) -> VenueRecord | None:
        stmt = (
            select(*_RECORD_COLUMNS)
            .where(venue_table.c.osm_type == identity.kind)
            .where(venue_table.c.osm_id == identity.id)
            .limit(1)
        )
        rows = self._fetch(stmt, "find_by_external_identity")
        return rows[0] if rows else None

    def find_missing_external_identity(self, city: str | None = None) -> list[VenueRecord]:
        stmt = select(*_RECORD_COLUMNS).where(
            (venue_table.c.osm_type.is_(None)) | (venue_table.c.osm_id.is_(None))
        )
        if city:
            stmt = stmt.where(func.lower(venue_table.c.city) == func.lower(city.strip()))
        return self._fetch(stmt.order_by(venue_table.c.name), "find_missing_external_identity")

    def list_all(self) -> list[VenueRecord]:
        return self._fetch(select(*_RECORD_COLUMNS).order_by(venue_table.c.name), "list_all")

    def insert(self, venue_id: UUID, payload: VenuePayload) -> None:
        values = _to_values(payload)
        if not values.get("name"):
            raise StoreError("Cannot insert a venue without a name")
        self._write(insert(venue_table).values(id=venue_id, **values), "insert", venue_id)

    def update(self, venue_id: UUID, payload: VenuePayload) -> None:
        values = _to_values(payload)
        if not values:
            log.debug("Skipping empty update for %s", venue_id)
            return
        stmt = update(venue_table).where(venue_table.c.id == venue_id).values(**values)
        self._write(stmt, "update", venue_id)

    def _fetch(self, stmt: Select[Any], operation: str) -> list[VenueRecord]:
        try:
            with self._session_factory() as session:
                return [_to_record(row) for row in session.execute(stmt).mappings()]
        except SQLAlchemyError as exc:
            raise StoreError(f"{operation} failed: {exc}") from exc

    def _write(self, stmt: Any, operation: str, venue_id: UUID) -> None:
        try:
            with self._session_factory() as session, session.begin():
                session.execute(stmt)
        except SQLAlchemyError as exc:
            raise StoreError(f"{operation} of {venue_id} failed: {exc}") from exc
