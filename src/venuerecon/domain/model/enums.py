"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class OsmElementKind(StrEnum):
    NODE = "node"
    WAY = "way"
    RELATION = "relation"


class UpsertAction(StrEnum):
    INSERT = "insert"
    UPDATE = "update"
    CONFLICT = "conflict"
    DUPLICATE = "duplicate"
    ERROR = "error"


class DecisionReason(StrEnum):
    """Closed set of reasons attached to an upsert decision."""

    NEW_VENUE = "new_venue"
    ADDRESS_MATCH = "address_match"
    OSM_IDENTITY_MATCH = "osm_identity_match"
    NAME_MATCH_ADDRESS_MATCH = "name_match_address_match"
    ADDRESS_NAME_SIMILARITY = "address_name_similarity"
    ADDRESS_MISMATCH = "address_mismatch"
    MULTIPLE_MATCHES = "multiple_matches"
    EXCEPTION = "exception"


class GeocodeStatus(StrEnum):
    OK = "ok"
    AMBIGUOUS = "ambiguous"
    ERROR = "error"


class GeocodeReason(StrEnum):
    MISSING_FIELDS = "missing_fields"
    NO_RESULT = "no_result"
    LOW_SCORE = "low_score"
    EXCEPTION = "exception"


class IngestIssue(StrEnum):
    MISSING_NAME = "missing_name"
    MISSING_COORDINATES = "missing_coordinates"


class AmbiguityReason(StrEnum):
    """Why a batch pairing was left for manual review."""

    MULTIPLE_STORE = "multiple_store"
    MULTIPLE_CANDIDATES = "multiple_candidates"
    MULTIPLE_BOTH = "multiple_both"
    DISTANCE_THRESHOLD = "distance_threshold"
    MULTIPLE_CLOSE_SCORES = "multiple_close_scores"
    STORE_MULTIPLE_MATCHES = "store_multiple_matches"
