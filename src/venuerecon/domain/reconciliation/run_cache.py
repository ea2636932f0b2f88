"""Read-through view of store rows that also reflects this run's writes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from venuerecon.domain.normalization import normalize_city

if TYPE_CHECKING:
    from uuid import UUID

    from venuerecon.domain.model import OsmIdentity, VenueRecord
    from venuerecon.domain.ports import VenueStore


def _name_key(name: str | None) -> str:
    return (name or "").strip().casefold()


class RunCache:
    """Per-run row cache layered over a :class:`VenueStore`.

    Rows written during the run are kept in an overlay that takes precedence over
    what the store returns, so later records see earlier decisions even when the
    writes themselves were skipped by a dry run.
    """

    def __init__(self, store: VenueStore) -> None:
        self._store = store
        self._by_city: dict[str, dict[UUID, VenueRecord]] = {}
        self._written: dict[UUID, VenueRecord] = {}

    def by_name(self, name: str) -> list[VenueRecord]:
        rows = {row.id: row for row in self._store.find_by_exact_name(name)}
        key = _name_key(name)
        for row in self._written.values():
            if _name_key(row.name) == key:
                rows[row.id] = row
            else:
                rows.pop(row.id, None)
        return list(rows.values())

    def by_city(self, city: str) -> list[VenueRecord]:
        key = normalize_city(city)
        if key not in self._by_city:
            self._by_city[key] = {row.id: row for row in self._store.find_by_city(city)}
        rows = self._by_city[key]
        for row in self._written.values():
            if normalize_city(row.city) == key:
                rows[row.id] = row
            else:
                rows.pop(row.id, None)
        return list(rows.values())

    def by_identity(self, identity: OsmIdentity) -> VenueRecord | None:
        for row in self._written.values():
            if row.osm_identity == identity:
                return row
        row = self._store.find_by_external_identity(identity)
        if row is None:
            return None
        written = self._written.get(row.id)
        if written is not None and written.osm_identity != identity:
            return None
        return written or row

    def remember(self, row: VenueRecord) -> None:
        self._written[row.id] = row
