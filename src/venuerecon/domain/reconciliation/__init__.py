"""Upsert decision engine for geocoded rows and OSM candidates.

Both flows read store rows through a :class:`RunCache`, decide one terminal
action per record and append it to a :class:`ReconcileReport`. Failures are
recorded per record and never abort the batch.
"""

from __future__ import annotations

from .contracts import (
    ConflictRecord,
    DuplicateRecord,
    ReconcileCounters,
    ReconcileReport,
    UpsertDecision,
)
from .geocoded import GeocodedReconciler, build_geocoded_payload, reconcile_geocoded
from .osm import OsmReconciler, reconcile_osm
from .run_cache import RunCache

__all__ = [
    "ConflictRecord",
    "DuplicateRecord",
    "GeocodedReconciler",
    "OsmReconciler",
    "ReconcileCounters",
    "ReconcileReport",
    "RunCache",
    "UpsertDecision",
    "build_geocoded_payload",
    "reconcile_geocoded",
    "reconcile_osm",
]
