"""Domain ports (interfaces) for adapters."""

from __future__ import annotations

from .fetching import (
    AmenityLookup,
    AmenitySource,
    BoundarySource,
    GeocodeLookup,
    Geocoder,
    OsmIngestEntry,
    Place,
    PlaceQuery,
    PlaceSearch,
)
from .persistence import VenueStore

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
    "VenueStore",
]
