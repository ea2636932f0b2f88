"""Translate Nominatim results into places."""

from __future__ import annotations

from typing import TYPE_CHECKING

from venuerecon.domain.model import OsmElementKind, OsmIdentity
from venuerecon.domain.ports import Place

if TYPE_CHECKING:
    from .schema import NominatimResult

# jsonv2 spells the element kind out; older formats use the initial.
_KIND_ALIASES = {
    "node": OsmElementKind.NODE,
    "n": OsmElementKind.NODE,
    "way": OsmElementKind.WAY,
    "w": OsmElementKind.WAY,
    "relation": OsmElementKind.RELATION,
    "r": OsmElementKind.RELATION,
}


def to_identity(result: NominatimResult) -> OsmIdentity | None:
    kind = _KIND_ALIASES.get((result.osm_type or "").lower())
    if kind is None or result.osm_id is None:
        return None
    return OsmIdentity(kind, result.osm_id)


def to_place(result: NominatimResult) -> Place:
    return Place(
        identity=to_identity(result),
        latitude=result.lat,
        longitude=result.lon,
        display_name=result.display_name,
        category=result.category,
        type=result.type,
        address=dict(result.address),
        extratags=dict(result.extratags or {}),
        namedetails=dict(result.namedetails or {}),
    )
