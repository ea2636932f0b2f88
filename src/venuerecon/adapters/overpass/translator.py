"""Translate Overpass elements into venue candidates and area candidates."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from venuerecon.domain.model import (
    AreaCandidate,
    IngestIssue,
    OsmAddress,
    OsmContact,
    OsmElementKind,
    OsmIdentity,
    OsmVenueCandidate,
)
from venuerecon.domain.normalization import fold_text, round_coordinate
from venuerecon.domain.ports import OsmIngestEntry

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .schema import OverpassElement

UNKNOWN_VENUE_TYPE = "unknown"
_DIGITS = re.compile(r"\d+")


def element_name(tags: Mapping[str, str]) -> str | None:
    for key in ("name", "operator", "brand"):
        value = (tags.get(key) or "").strip()
        if value:
            return value
    return None


def parse_population(value: str | None) -> int | None:
    if not value:
        return None
    digits = "".join(_DIGITS.findall(value))
    return int(digits) if digits else None


def parse_capacity(value: str | None) -> int | None:
    if not value:
        return None
    match = _DIGITS.search(value)
    if match is None:
        return None
    capacity = int(match.group())
    return capacity if capacity > 0 else None


def parse_live_music(value: str | None) -> bool | None:
    match (value or "").strip().lower():
        case "yes":
            return True
        case "no":
            return False
        case _:
            return None


def _strip_trailing_slashes(value: str | None) -> str | None:
    if not value:
        return None
    return value.rstrip("/\\") or None


def build_address(tags: Mapping[str, str]) -> OsmAddress:
    return OsmAddress(
        housenumber=tags.get("addr:housenumber"),
        street=tags.get("addr:street"),
        postcode=tags.get("addr:postcode"),
        city=tags.get("addr:city"),
        full=tags.get("addr:full"),
    )


def build_contact(tags: Mapping[str, str]) -> OsmContact:
    return OsmContact(
        website=_strip_trailing_slashes(tags.get("website") or tags.get("contact:website")),
        phone=tags.get("phone") or tags.get("contact:phone"),
        instagram=_strip_trailing_slashes(tags.get("contact:instagram") or tags.get("instagram")),
        facebook=_strip_trailing_slashes(tags.get("contact:facebook") or tags.get("facebook")),
    )


def to_ingest_entry(element: OverpassElement, *, default_city: str) -> OsmIngestEntry:
    """Normalize one amenity element; elements without a name or a position are flagged."""

    identity = OsmIdentity(OsmElementKind(element.type), element.id)
    tags = element.tags
    name = element_name(tags)
    if name is None:
        return OsmIngestEntry(
            identity=identity,
            name=None,
            issue=IngestIssue.MISSING_NAME,
            details="no name, operator or brand tag",
        )
    coordinates = element.coordinates
    if coordinates is None:
        return OsmIngestEntry(
            identity=identity,
            name=name,
            issue=IngestIssue.MISSING_COORDINATES,
            details=f"{element.type} without position or center",
        )

    latitude, longitude = coordinates
    address = build_address(tags)
    venue_type = tags.get("amenity") or UNKNOWN_VENUE_TYPE
    city = address.city or default_city
    candidate = OsmVenueCandidate(
        identity=identity,
        name=name,
        latitude=round_coordinate(latitude),
        longitude=round_coordinate(longitude),
        city=city,
        address_line=address.formatted(city),
        venue_type=venue_type,
        address=address,
        contact=build_contact(tags),
        tags={**tags, "derived_type": venue_type, "normalized_name": fold_text(name)},
        opening_hours=tags.get("opening_hours"),
        capacity=parse_capacity(tags.get("capacity")),
        live_music=parse_live_music(tags.get("live_music")),
    )
    return OsmIngestEntry(identity=identity, name=name, candidate=candidate)


def to_area_candidate(element: OverpassElement) -> AreaCandidate | None:
    if element.type is not OsmElementKind.RELATION:
        return None
    name = element.tags.get("name")
    if not name:
        return None
    level = element.tags.get("admin_level")
    return AreaCandidate(
        relation_id=element.id,
        name=name,
        admin_level=int(level) if level and level.isdigit() else None,
        population=parse_population(element.tags.get("population")),
        tags=dict(element.tags),
    )
