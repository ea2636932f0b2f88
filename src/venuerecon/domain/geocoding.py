"""Validate input rows and geocode them concurrently."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from venuerecon.config.geocoder import DEFAULT_MIN_SCORE

from .errors import RecordValidationError
from .model import GeocodeCandidate, GeocodeReason, GeocodeStatus, InputRecord

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from .ports import Geocoder

log = logging.getLogger(__name__)

MANDATORY_FIELDS = ("name", "address", "city")


@dataclass(frozen=True, slots=True)
class RawInputRow:
    """Input row after header aliasing, before validation."""

    name: str = ""
    address: str = ""
    city: str = ""
    postcode: str = ""

    @classmethod
    def from_mapping(cls, values: Mapping[str, str | None]) -> RawInputRow:
        return cls(
            name=(values.get("name") or "").strip(),
            address=(values.get("address") or "").strip(),
            city=(values.get("city") or "").strip(),
            postcode=(values.get("postcode") or "").strip(),
        )


@dataclass(frozen=True, slots=True)
class GeocodeResult:
    row: RawInputRow
    status: GeocodeStatus
    reason: GeocodeReason | None = None
    record: InputRecord | None = None
    candidate: GeocodeCandidate | None = None
    from_cache: bool = False
    detail: str | None = None

    @property
    def is_ok(self) -> bool:
        return self.status is GeocodeStatus.OK


@dataclass(slots=True)
class GeocodeStats:
    total: int = 0
    ok: int = 0
    ambiguous: int = 0
    errors: int = 0
    api_calls: int = 0
    from_cache: int = 0


@dataclass(slots=True)
class GeocodeBatch:
    results: list[GeocodeResult] = field(default_factory=list)
    stats: GeocodeStats = field(default_factory=GeocodeStats)

    @property
    def ok(self) -> list[GeocodeResult]:
        return [result for result in self.results if result.is_ok]

    @property
    def flagged(self) -> list[GeocodeResult]:
        return [result for result in self.results if not result.is_ok]


def validate_input(row: RawInputRow) -> InputRecord:
    missing = [name for name in MANDATORY_FIELDS if not getattr(row, name)]
    if missing:
        raise RecordValidationError(missing)
    return InputRecord(
        name=row.name,
        address=row.address,
        city=row.city,
        postcode=row.postcode or None,
    )


def classify(
    row: RawInputRow,
    record: InputRecord,
    candidate: GeocodeCandidate | None,
    *,
    min_score: float,
    from_cache: bool,
) -> GeocodeResult:
    if candidate is None:
        status, reason = GeocodeStatus.AMBIGUOUS, GeocodeReason.NO_RESULT
    elif candidate.score < min_score:
        status, reason = GeocodeStatus.AMBIGUOUS, GeocodeReason.LOW_SCORE
    else:
        status, reason = GeocodeStatus.OK, None
    return GeocodeResult(
        row=row,
        status=status,
        reason=reason,
        record=record,
        candidate=candidate,
        from_cache=from_cache,
    )


async def _geocode_one(
    row: RawInputRow,
    geocoder: Geocoder,
    *,
    min_score: float,
) -> GeocodeResult:
    try:
        record = validate_input(row)
    except RecordValidationError as exc:
        return GeocodeResult(
            row=row,
            status=GeocodeStatus.ERROR,
            reason=GeocodeReason.MISSING_FIELDS,
            detail=str(exc),
        )

    try:
        lookup = await geocoder.geocode(record)
    except Exception as exc:  # noqa: BLE001
        log.warning("Geocoding failed for %s (%s): %s", record.name, record.city, exc)
        return GeocodeResult(
            row=row,
            status=GeocodeStatus.ERROR,
            reason=GeocodeReason.EXCEPTION,
            record=record,
            detail=str(exc),
        )
    return classify(
        row,
        record,
        lookup.candidate,
        min_score=min_score,
        from_cache=lookup.from_cache,
    )


async def geocode_records(
    rows: Sequence[RawInputRow],
    geocoder: Geocoder,
    *,
    min_score: float = DEFAULT_MIN_SCORE,
) -> GeocodeBatch:
    """Geocode every row, keeping input order in the results.

    All rows are launched at once; the geocoder's own limiter bounds how many
    requests are in flight.
    """

    results = await asyncio.gather(
        *(_geocode_one(row, geocoder, min_score=min_score) for row in rows)
    )
    batch = GeocodeBatch(results=list(results))
    stats = batch.stats
    stats.total = len(results)
    for result in results:
        if result.status is GeocodeStatus.OK:
            stats.ok += 1
        elif result.status is GeocodeStatus.AMBIGUOUS:
            stats.ambiguous += 1
        else:
            stats.errors += 1
        if result.record is None or result.reason is GeocodeReason.EXCEPTION:
            continue
        if result.from_cache:
            stats.from_cache += 1
        else:
            stats.api_calls += 1
    log.info(
        "Geocoded %d rows: ok=%d, ambiguous=%d, errors=%d, api_calls=%d, from_cache=%d",
        stats.total,
        stats.ok,
        stats.ambiguous,
        stats.errors,
        stats.api_calls,
        stats.from_cache,
    )
    return batch
