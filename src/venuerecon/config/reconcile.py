"""Matching thresholds shared by the reconciliation and homogenization jobs."""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_NAME_EDIT_DISTANCE = 2
DEFAULT_ADDRESS_EDIT_DISTANCE = 4
DEFAULT_PROXIMITY_METERS = 200.0
DEFAULT_HOMOGENIZE_DISTANCE_METERS = 500.0
DEFAULT_PAIRING_SCORE = 0.82
DEFAULT_CLOSE_SCORE_DELTA = 0.03
DEFAULT_PLACEHOLDER_IMAGE_URL = "https://placehold.co/600x400?text=Venue"


@dataclass(frozen=True, slots=True)
class SimilarityThresholds:
    """Edit-distance limits for the name and address similarity predicates.

    ``address_edit_distance`` decides when a geocoded candidate may overwrite a
    stored row with the same name. Lowering it makes updates stricter and turns
    near-identical addresses into conflicts.
    """

    name_edit_distance: int = DEFAULT_NAME_EDIT_DISTANCE
    address_edit_distance: int = DEFAULT_ADDRESS_EDIT_DISTANCE


@dataclass(frozen=True, slots=True)
class ReconcileConfig:
    thresholds: SimilarityThresholds = field(default_factory=SimilarityThresholds)
    proximity_meters: float = DEFAULT_PROXIMITY_METERS
    placeholder_image_url: str = DEFAULT_PLACEHOLDER_IMAGE_URL


@dataclass(frozen=True, slots=True)
class BatchMatchConfig:
    pairing_score: float = DEFAULT_PAIRING_SCORE
    close_score_delta: float = DEFAULT_CLOSE_SCORE_DELTA
    distance_threshold_meters: float = DEFAULT_HOMOGENIZE_DISTANCE_METERS
