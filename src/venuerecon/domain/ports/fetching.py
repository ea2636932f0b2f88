"""Ports for looking up venues and boundaries in external services."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from venuerecon.domain.model import (
        AreaCandidate,
        GeocodeCandidate,
        IngestIssue,
        InputRecord,
        OsmIdentity,
        OsmVenueCandidate,
    )


@dataclass(frozen=True, slots=True)
class GeocodeLookup:
    candidate: GeocodeCandidate | None
    from_cache: bool = False


@dataclass(frozen=True, slots=True)
class OsmIngestEntry:
    """One amenity element, either usable or set aside for review."""

    identity: OsmIdentity
    name: str | None
    candidate: OsmVenueCandidate | None = None
    issue: IngestIssue | None = None
    details: str | None = None


@dataclass(frozen=True, slots=True)
class AmenityLookup:
    entries: list[OsmIngestEntry] = field(default_factory=list)
    from_cache: bool = False


@dataclass(frozen=True, slots=True)
class PlaceQuery:
    """Free-text or structured search against an alternate geocoder."""

    q: str | None = None
    street: str | None = None
    city: str | None = None
    postalcode: str | None = None
    countrycodes: str | None = None


@dataclass(frozen=True, slots=True)
class Place:
    identity: OsmIdentity | None
    latitude: float | None
    longitude: float | None
    display_name: str | None = None
    category: str | None = None
    type: str | None = None
    address: dict[str, str] = field(default_factory=dict)
    extratags: dict[str, str] = field(default_factory=dict)
    namedetails: dict[str, str] = field(default_factory=dict)


class Geocoder(Protocol):
    async def geocode(self, record: InputRecord) -> GeocodeLookup: ...


class BoundarySource(Protocol):
    async def search_boundaries(
        self,
        city: str,
        *,
        admin_level: int,
        country: str | None = None,
    ) -> list[AreaCandidate]: ...


class AmenitySource(Protocol):
    async def fetch_amenity(self, area_id: int, amenity: str) -> AmenityLookup: ...


class PlaceSearch(Protocol):
    async def search(self, query: PlaceQuery) -> list[Place]: ...


__all__ = [
    "AmenityLookup",
    "AmenitySource",
    "BoundarySource",
    "GeocodeLookup",
    "Geocoder",
    "OsmIngestEntry",
    "Place",
    "PlaceQuery",
    "PlaceSearch",
]
