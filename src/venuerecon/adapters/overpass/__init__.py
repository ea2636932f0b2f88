"""Overpass (OpenStreetMap) adapter."""

from __future__ import annotations

from .client import OverpassClient
from .queries import amenity_query, boundary_query
from .schema import OverpassElement, OverpassResponse
from .translator import to_area_candidate, to_ingest_entry

__all__ = [
    "OverpassClient",
    "OverpassElement",
    "OverpassResponse",
    "amenity_query",
    "boundary_query",
    "to_area_candidate",
    "to_ingest_entry",
]
