"""Persistence port for the venue store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from uuid import UUID

    from venuerecon.domain.model import OsmIdentity, VenuePayload, VenueRecord


class VenueStore(Protocol):
    """Read and single-row write access to persisted venues.

    Implementations raise :class:`venuerecon.domain.errors.StoreError` on failure.
    """

    def find_by_exact_name(self, name: str) -> list[VenueRecord]:
        """Rows whose name equals ``name`` ignoring case."""
        ...

    def find_by_city(self, city: str) -> list[VenueRecord]:
        """Rows whose city equals ``city`` ignoring case."""
        ...

    def find_by_external_identity(self, identity: OsmIdentity) -> VenueRecord | None: ...

    def find_missing_external_identity(self, city: str | None = None) -> list[VenueRecord]:
        """Rows without an OSM identity, optionally restricted to one city."""
        ...

    def insert(self, venue_id: UUID, payload: VenuePayload) -> None: ...

    def update(self, venue_id: UUID, payload: VenuePayload) -> None: ...


__all__ = ["VenueStore"]
