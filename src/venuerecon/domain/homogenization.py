"""Offline matching of external venue candidates against store rows lacking an OSM identity.

The job never writes to the store. It proposes non-destructive patches: a field
is only ever filled in when the stored value is empty.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from venuerecon.config.reconcile import BatchMatchConfig

from .model import AmbiguityReason, VenuePayload
from .normalization import haversine_distance, normalize_city, normalize_name
from .osm_ingest import OSM_SOURCE

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from .model import VenueRecord

log = logging.getLogger(__name__)

# Filled from the candidate when the stored value is empty.
FILLABLE_FIELDS: tuple[str, ...] = (
    "osm_type",
    "osm_id",
    "osm_url",
    "osm_tags_raw",
    "address_details",
    "contact",
    "osm_venue_type",
    "opening_hours",
    "capacity",
    "live_music",
    "website",
    "phone",
    "facebook",
    "instagram",
)


@dataclass(frozen=True, slots=True)
class HomogenizeMatch:
    store_row: VenueRecord
    candidate: VenuePayload
    patch: VenuePayload
    normalized_name: str
    distance_m: float | None = None


@dataclass(frozen=True, slots=True)
class AmbiguousBucket:
    normalized_name: str
    reason: AmbiguityReason
    store_rows: tuple[VenueRecord, ...]
    candidates: tuple[VenuePayload, ...]
    distance_m: float | None = None


@dataclass(slots=True)
class HomogenizeReport:
    store_total: int = 0
    candidate_total: int = 0
    matched: list[HomogenizeMatch] = field(default_factory=list)
    ambiguous: list[AmbiguousBucket] = field(default_factory=list)
    solo_candidates: list[VenuePayload] = field(default_factory=list)
    solo_store: list[VenueRecord] = field(default_factory=list)

    @property
    def patches(self) -> list[HomogenizeMatch]:
        return [match for match in self.matched if not match.patch.is_empty()]


def is_empty_value(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return not value
    return False


def _is_missing_coordinate(value: float | None) -> bool:
    return value is None or value == 0 or math.isnan(value)


def _distance(row: VenueRecord, candidate: VenuePayload) -> float | None:
    """Distance in meters when both sides carry usable coordinates."""

    lat1, lon1 = row.latitude, row.longitude
    lat2, lon2 = candidate.latitude, candidate.longitude
    if lat1 is None or lon1 is None or lat2 is None or lon2 is None:
        return None
    if any(_is_missing_coordinate(value) for value in (lat1, lon1, lat2, lon2)):
        return None
    return haversine_distance(lat1, lon1, lat2, lon2)


def _address_is_placeholder(row: VenueRecord) -> bool:
    if is_empty_value(row.address):
        return True
    return normalize_city(row.address) == normalize_city(row.city) != ""


def build_patch(
    row: VenueRecord,
    candidate: VenuePayload,
    *,
    synced_at: datetime | None = None,
) -> VenuePayload:
    """Fields of ``candidate`` that may fill empty fields of ``row``."""

    values: dict[str, Any] = {}
    for name in FILLABLE_FIELDS:
        proposed = getattr(candidate, name)
        if is_empty_value(getattr(row, name)) and not is_empty_value(proposed):
            values[name] = proposed

    if _address_is_placeholder(row) and not is_empty_value(candidate.address):
        if normalize_city(candidate.address) != normalize_city(row.city):
            values["address"] = candidate.address

    if _is_missing_coordinate(row.latitude) and not _is_missing_coordinate(candidate.latitude):
        values["latitude"] = candidate.latitude
    if _is_missing_coordinate(row.longitude) and not _is_missing_coordinate(candidate.longitude):
        values["longitude"] = candidate.longitude

    if is_empty_value(row.source):
        values["source"] = candidate.source or OSM_SOURCE

    if values:
        values["osm_last_sync_at"] = synced_at or datetime.now(UTC)
    return VenuePayload(**values)


def _group[T](
    items: Iterable[T], name_of: Callable[[T], str | None]
) -> tuple[dict[str, list[T]], list[T]]:
    buckets: dict[str, list[T]] = {}
    unnamed: list[T] = []
    for item in items:
        key = normalize_name(name_of(item)).normalized
        if not key:
            unnamed.append(item)
            continue
        buckets.setdefault(key, []).append(item)
    return buckets, unnamed


def _multiplicity_reason(store_count: int, candidate_count: int) -> AmbiguityReason:
    if store_count > 1 and candidate_count > 1:
        return AmbiguityReason.MULTIPLE_BOTH
    if store_count > 1:
        return AmbiguityReason.MULTIPLE_STORE
    return AmbiguityReason.MULTIPLE_CANDIDATES


def homogenize(
    store_rows: Sequence[VenueRecord],
    candidates: Sequence[VenuePayload],
    *,
    config: BatchMatchConfig | None = None,
    synced_at: datetime | None = None,
) -> HomogenizeReport:
    cfg = config or BatchMatchConfig()
    stamp = synced_at or datetime.now(UTC)
    store_buckets, unnamed_store = _group(store_rows, lambda row: row.name)
    candidate_buckets, unnamed_candidates = _group(candidates, lambda item: item.name)

    report = HomogenizeReport(store_total=len(store_rows), candidate_total=len(candidates))
    report.solo_store.extend(unnamed_store)
    report.solo_candidates.extend(unnamed_candidates)

    for key in dict.fromkeys([*store_buckets, *candidate_buckets]):
        rows = store_buckets.get(key, [])
        found = candidate_buckets.get(key, [])
        if not found:
            report.solo_store.extend(rows)
            continue
        if not rows:
            report.solo_candidates.extend(found)
            continue
        if len(rows) > 1 or len(found) > 1:
            report.ambiguous.append(
                AmbiguousBucket(
                    normalized_name=key,
                    reason=_multiplicity_reason(len(rows), len(found)),
                    store_rows=tuple(rows),
                    candidates=tuple(found),
                )
            )
            continue

        row, candidate = rows[0], found[0]
        distance = _distance(row, candidate)
        if distance is not None and distance > cfg.distance_threshold_meters:
            report.ambiguous.append(
                AmbiguousBucket(
                    normalized_name=key,
                    reason=AmbiguityReason.DISTANCE_THRESHOLD,
                    store_rows=(row,),
                    candidates=(candidate,),
                    distance_m=distance,
                )
            )
            continue

        report.matched.append(
            HomogenizeMatch(
                store_row=row,
                candidate=candidate,
                patch=build_patch(row, candidate, synced_at=stamp),
                normalized_name=key,
                distance_m=distance,
            )
        )

    report.solo_store.sort(key=lambda row: row.name.casefold())
    report.solo_candidates.sort(key=lambda item: (item.name or "").casefold())
    log.info(
        "Homogenized %d store rows against %d candidates: matched=%d, ambiguous=%d, "
        "solo_store=%d, solo_candidates=%d",
        report.store_total,
        report.candidate_total,
        len(report.matched),
        len(report.ambiguous),
        len(report.solo_store),
        len(report.solo_candidates),
    )
    return report
