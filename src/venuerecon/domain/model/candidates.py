"""Normalized records produced from input files and external sources."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .identity import OsmIdentity

OVERPASS_AREA_OFFSET = 3_600_000_000


@dataclass(frozen=True, slots=True)
class InputRecord:
    """One venue row read from an operator-supplied file."""

    name: str
    address: str
    city: str
    postcode: str | None = None


@dataclass(frozen=True, slots=True)
class GeocodeCandidate:
    """Best geocoder match for an input record."""

    label: str
    score: float
    latitude: float
    longitude: float
    city: str | None = None
    postcode: str | None = None
    citycode: str | None = None


@dataclass(frozen=True, slots=True)
class OsmAddress:
    housenumber: str | None = None
    street: str | None = None
    postcode: str | None = None
    city: str | None = None
    full: str | None = None

    def formatted(self, fallback_city: str) -> str:
        """Render as ``"12 Rue X, 44000 Nantes"``, preferring ``addr:full``."""

        if self.full:
            return self.full
        street_line = " ".join(part for part in (self.housenumber, self.street) if part)
        city_line = " ".join(part for part in (self.postcode, self.city or fallback_city) if part)
        return ", ".join(line for line in (street_line, city_line) if line) or fallback_city

    def as_dict(self) -> dict[str, str]:
        values = {
            "housenumber": self.housenumber,
            "street": self.street,
            "postcode": self.postcode,
            "city": self.city,
            "full": self.full,
        }
        return {key: value for key, value in values.items() if value}


@dataclass(frozen=True, slots=True)
class OsmContact:
    website: str | None = None
    phone: str | None = None
    instagram: str | None = None
    facebook: str | None = None

    def as_dict(self) -> dict[str, str]:
        values = {
            "website": self.website,
            "phone": self.phone,
            "instagram": self.instagram,
            "facebook": self.facebook,
        }
        return {key: value for key, value in values.items() if value}


@dataclass(frozen=True, slots=True)
class OsmVenueCandidate:
    """Amenity element normalized for matching against the store."""

    identity: OsmIdentity
    name: str
    latitude: float
    longitude: float
    city: str
    address_line: str
    venue_type: str | None = None
    address: OsmAddress = field(default_factory=OsmAddress)
    contact: OsmContact = field(default_factory=OsmContact)
    tags: Mapping[str, str] = field(default_factory=dict)
    opening_hours: str | None = None
    capacity: int | None = None
    live_music: bool | None = None


@dataclass(frozen=True, slots=True)
class AreaCandidate:
    """Administrative boundary relation returned by a boundary search."""

    relation_id: int
    name: str
    admin_level: int | None = None
    population: int | None = None
    tags: Mapping[str, str] = field(default_factory=dict)

    @property
    def area_id(self) -> int:
        return self.relation_id + OVERPASS_AREA_OFFSET
