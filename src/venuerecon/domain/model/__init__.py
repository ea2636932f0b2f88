"""Venue domain model."""

from __future__ import annotations

from .candidates import (
    OVERPASS_AREA_OFFSET,
    AreaCandidate,
    GeocodeCandidate,
    InputRecord,
    OsmAddress,
    OsmContact,
    OsmVenueCandidate,
)
from .enums import (
    AmbiguityReason,
    DecisionReason,
    GeocodeReason,
    GeocodeStatus,
    IngestIssue,
    OsmElementKind,
    UpsertAction,
)
from .identity import OsmIdentity
from .venue import VENUE_COLUMNS, JsonObject, VenuePayload, VenueRecord

__all__ = [
    "OVERPASS_AREA_OFFSET",
    "VENUE_COLUMNS",
    "AmbiguityReason",
    "AreaCandidate",
    "DecisionReason",
    "GeocodeCandidate",
    "GeocodeReason",
    "GeocodeStatus",
    "IngestIssue",
    "InputRecord",
    "JsonObject",
    "OsmAddress",
    "OsmContact",
    "OsmElementKind",
    "OsmIdentity",
    "OsmVenueCandidate",
    "VenuePayload",
    "VenueRecord",
]
