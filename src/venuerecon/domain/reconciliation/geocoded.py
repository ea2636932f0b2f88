"""Upsert decisions for geocoded input rows."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING
from uuid import uuid4

from venuerecon.config.reconcile import ReconcileConfig
from venuerecon.domain.model import DecisionReason, UpsertAction, VenuePayload, VenueRecord
from venuerecon.domain.normalization import (
    AddressContext,
    is_similar_address,
    is_similar_name,
    normalize_address,
    round_coordinate,
)

from .contracts import ConflictRecord, DuplicateRecord, ReconcileReport, UpsertDecision
from .run_cache import RunCache

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from uuid import UUID

    from venuerecon.domain.geocoding import GeocodeResult
    from venuerecon.domain.model import GeocodeCandidate, InputRecord
    from venuerecon.domain.ports import VenueStore

log = logging.getLogger(__name__)


def build_geocoded_payload(record: InputRecord, candidate: GeocodeCandidate) -> VenuePayload:
    return VenuePayload(
        name=record.name,
        address=candidate.label or f"{record.address}, {record.city}",
        city=candidate.city or record.city,
        latitude=round_coordinate(candidate.latitude),
        longitude=round_coordinate(candidate.longitude),
        is_bar=True,
    )


def _stored_postcode(row: VenueRecord) -> str | None:
    if not row.address_details:
        return None
    postcode = row.address_details.get("postcode")
    return str(postcode) if postcode else None


class GeocodedReconciler:
    """Decide insert/update/conflict/duplicate for geocoded rows, in input order."""

    def __init__(
        self,
        store: VenueStore,
        *,
        dry_run: bool = False,
        config: ReconcileConfig | None = None,
        id_factory: Callable[[], UUID] = uuid4,
    ) -> None:
        self._store = store
        self._cache = RunCache(store)
        self._dry_run = dry_run
        self._config = config or ReconcileConfig()
        self._id_factory = id_factory
        self.report = ReconcileReport(dry_run=dry_run)

    def run(self, results: Sequence[GeocodeResult]) -> ReconcileReport:
        for result in results:
            if not result.is_ok or result.record is None or result.candidate is None:
                continue
            self.process(result.record, result.candidate)
        return self.report

    def process(self, record: InputRecord, candidate: GeocodeCandidate) -> UpsertDecision:
        payload: VenuePayload | None = None
        try:
            payload = build_geocoded_payload(record, candidate)
            decision = self._decide(record, candidate, payload)
        except Exception as exc:  # noqa: BLE001
            log.warning("Upsert failed for %s: %s", record.name, exc)
            decision = UpsertDecision(
                action=UpsertAction.ERROR,
                reason=DecisionReason.EXCEPTION,
                name=record.name,
                address=payload.address if payload else record.address,
                city=payload.city if payload else record.city,
                latitude=payload.latitude if payload else candidate.latitude,
                longitude=payload.longitude if payload else candidate.longitude,
                detail=str(exc),
            )
        return self.report.record(decision)

    def _decide(
        self,
        record: InputRecord,
        candidate: GeocodeCandidate,
        payload: VenuePayload,
    ) -> UpsertDecision:
        matches = self._cache.by_name(record.name)
        if not matches:
            duplicate = self._find_duplicate(payload)
            if duplicate is not None:
                return self._duplicate(payload, duplicate)
            return self._insert(payload)

        thresholds = self._config.thresholds
        candidate_address = candidate.label or record.address
        for existing in matches:
            context = AddressContext(
                existing_city=existing.city,
                candidate_city=candidate.city or record.city,
                existing_postcode=_stored_postcode(existing),
                candidate_postcode=candidate.postcode or record.postcode,
                candidate_label=candidate.label,
            )
            if is_similar_address(
                existing.address,
                candidate_address,
                context,
                max_distance=thresholds.address_edit_distance,
            ):
                return self._update(existing, payload)
        return self._conflict(matches[0], payload)

    def _find_duplicate(self, payload: VenuePayload) -> VenueRecord | None:
        target = normalize_address(payload.address)
        if not target or not payload.city:
            return None
        max_distance = self._config.thresholds.name_edit_distance
        for row in self._cache.by_city(payload.city):
            if normalize_address(row.address) != target:
                continue
            if is_similar_name(row.name, payload.name, max_distance=max_distance):
                return row
        return None

    def _insert(self, payload: VenuePayload) -> UpsertDecision:
        venue_id = self._id_factory()
        full_payload = replace(
            payload, image_url=payload.image_url or self._config.placeholder_image_url
        )
        if not self._dry_run:
            self._store.insert(venue_id, full_payload)
        self._cache.remember(VenueRecord.from_payload(venue_id, full_payload))
        return self._decision(UpsertAction.INSERT, DecisionReason.NEW_VENUE, payload, venue_id)

    def _update(self, existing: VenueRecord, payload: VenuePayload) -> UpsertDecision:
        changes = payload.without("name")
        if not self._dry_run:
            self._store.update(existing.id, changes)
        self._cache.remember(existing.apply(changes))
        return self._decision(
            UpsertAction.UPDATE, DecisionReason.ADDRESS_MATCH, payload, existing.id
        )

    def _conflict(self, existing: VenueRecord, payload: VenuePayload) -> UpsertDecision:
        log.info(
            "Address conflict for %s: stored %r, geocoded %r",
            payload.name,
            existing.address,
            payload.address,
        )
        self.report.conflicts.append(
            ConflictRecord(
                name=payload.name or existing.name,
                existing_address=existing.address,
                existing_city=existing.city,
                new_address=payload.address,
                new_city=payload.city,
                reason=DecisionReason.ADDRESS_MISMATCH,
            )
        )
        return self._decision(
            UpsertAction.CONFLICT, DecisionReason.ADDRESS_MISMATCH, payload, existing.id
        )

    def _duplicate(self, payload: VenuePayload, duplicate: VenueRecord) -> UpsertDecision:
        self.report.duplicates.append(
            DuplicateRecord(
                name=payload.name or "",
                duplicate_name=duplicate.name,
                address=payload.address,
                city=payload.city,
                duplicate_id=duplicate.id,
                reason=DecisionReason.ADDRESS_NAME_SIMILARITY,
            )
        )
        return self._decision(
            UpsertAction.DUPLICATE,
            DecisionReason.ADDRESS_NAME_SIMILARITY,
            payload,
            duplicate.id,
        )

    @staticmethod
    def _decision(
        action: UpsertAction,
        reason: DecisionReason,
        payload: VenuePayload,
        venue_id: UUID | None,
    ) -> UpsertDecision:
        return UpsertDecision(
            action=action,
            reason=reason,
            name=payload.name or "",
            address=payload.address,
            city=payload.city,
            latitude=payload.latitude,
            longitude=payload.longitude,
            venue_id=venue_id,
        )


def reconcile_geocoded(
    results: Sequence[GeocodeResult],
    store: VenueStore,
    *,
    dry_run: bool = False,
    config: ReconcileConfig | None = None,
    id_factory: Callable[[], UUID] = uuid4,
) -> ReconcileReport:
    reconciler = GeocodedReconciler(store, dry_run=dry_run, config=config, id_factory=id_factory)
    report = reconciler.run(results)
    counters = report.counters
    log.info(
        "Upsert finished (dry_run=%s): processed=%d, inserted=%d, updated=%d, "
        "conflicts=%d, duplicates=%d, errors=%d",
        dry_run,
        counters.processed,
        counters.inserted,
        counters.updated,
        counters.conflicts,
        counters.duplicates,
        counters.errors,
    )
    return report
