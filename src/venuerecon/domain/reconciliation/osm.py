"""Upsert decisions for OpenStreetMap amenity candidates."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import uuid4

from venuerecon.config.reconcile import ReconcileConfig
from venuerecon.domain.model import DecisionReason, UpsertAction, VenuePayload, VenueRecord
from venuerecon.domain.normalization import AddressContext, haversine_distance, is_similar_address
from venuerecon.domain.osm_ingest import build_osm_payload

from .contracts import ConflictRecord, ReconcileReport, UpsertDecision
from .run_cache import RunCache

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from uuid import UUID

    from venuerecon.domain.model import OsmVenueCandidate
    from venuerecon.domain.ports import VenueStore

log = logging.getLogger(__name__)

# Columns an identity match never rewrites.
_IDENTITY_PROTECTED = ("name", "osm_type", "osm_id")


class OsmReconciler:
    """Match OSM candidates to store rows by identity first, then by name."""

    def __init__(
        self,
        store: VenueStore,
        *,
        dry_run: bool = False,
        config: ReconcileConfig | None = None,
        id_factory: Callable[[], UUID] = uuid4,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._cache = RunCache(store)
        self._dry_run = dry_run
        self._config = config or ReconcileConfig()
        self._id_factory = id_factory
        self._clock = clock or (lambda: datetime.now(UTC))
        self.report = ReconcileReport(dry_run=dry_run)

    def run(self, candidates: Sequence[OsmVenueCandidate]) -> ReconcileReport:
        for candidate in candidates:
            self.process(candidate)
        return self.report

    def process(self, candidate: OsmVenueCandidate) -> UpsertDecision:
        payload: VenuePayload | None = None
        try:
            payload = build_osm_payload(candidate, synced_at=self._clock())
            decision = self._decide(candidate, payload)
        except Exception as exc:  # noqa: BLE001
            log.warning("Upsert failed for %s (%s): %s", candidate.name, candidate.identity, exc)
            if payload is None:
                payload = VenuePayload(
                    name=candidate.name,
                    address=candidate.address_line,
                    city=candidate.city,
                    latitude=candidate.latitude,
                    longitude=candidate.longitude,
                )
            decision = self._decision(
                UpsertAction.ERROR, DecisionReason.EXCEPTION, payload, None, detail=str(exc)
            )
        return self.report.record(decision)

    def _decide(self, candidate: OsmVenueCandidate, payload: VenuePayload) -> UpsertDecision:
        existing = self._cache.by_identity(candidate.identity)
        if existing is not None:
            changes = self._guard_tags(existing, payload.without(*_IDENTITY_PROTECTED))
            return self._update(existing, changes, payload, DecisionReason.OSM_IDENTITY_MATCH)

        named = self._cache.by_name(candidate.name)
        if not named:
            return self._insert(payload)

        survivors = [row for row in named if self._is_same_place(row, candidate)]
        if len(survivors) == 1:
            target = survivors[0]
            changes = self._guard_tags(target, payload.without("name"))
            return self._update(target, changes, payload, DecisionReason.NAME_MATCH_ADDRESS_MATCH)
        reason = (
            DecisionReason.MULTIPLE_MATCHES if survivors else DecisionReason.ADDRESS_MISMATCH
        )
        return self._conflict(survivors[0] if survivors else named[0], payload, reason)

    def _is_same_place(self, row: VenueRecord, candidate: OsmVenueCandidate) -> bool:
        identity = row.osm_identity
        if identity is not None and identity != candidate.identity:
            # Already bound to another element.
            return False
        postcode = row.address_details.get("postcode") if row.address_details else None
        context = AddressContext(
            existing_city=row.city,
            candidate_city=candidate.city,
            existing_postcode=str(postcode) if postcode else None,
            candidate_postcode=candidate.address.postcode,
        )
        if not is_similar_address(
            row.address,
            candidate.address_line,
            context,
            max_distance=self._config.thresholds.address_edit_distance,
        ):
            return False
        if not row.latitude or not row.longitude:
            return False
        distance = haversine_distance(
            row.latitude, row.longitude, candidate.latitude, candidate.longitude
        )
        return distance <= self._config.proximity_meters

    @staticmethod
    def _guard_tags(existing: VenueRecord, changes: VenuePayload) -> VenuePayload:
        """Tag lists are only filled in, never replaced."""

        if existing.tags:
            return changes.without("tags")
        return changes

    def _insert(self, payload: VenuePayload) -> UpsertDecision:
        venue_id = self._id_factory()
        full_payload = replace(
            payload, image_url=payload.image_url or self._config.placeholder_image_url
        )
        if not self._dry_run:
            self._store.insert(venue_id, full_payload)
        self._cache.remember(VenueRecord.from_payload(venue_id, full_payload))
        return self._decision(UpsertAction.INSERT, DecisionReason.NEW_VENUE, payload, venue_id)

    def _update(
        self,
        existing: VenueRecord,
        changes: VenuePayload,
        payload: VenuePayload,
        reason: DecisionReason,
    ) -> UpsertDecision:
        if not self._dry_run:
            self._store.update(existing.id, changes)
        self._cache.remember(existing.apply(changes))
        return self._decision(UpsertAction.UPDATE, reason, payload, existing.id)

    def _conflict(
        self,
        existing: VenueRecord,
        payload: VenuePayload,
        reason: DecisionReason,
    ) -> UpsertDecision:
        self.report.conflicts.append(
            ConflictRecord(
                name=payload.name or existing.name,
                existing_address=existing.address,
                existing_city=existing.city,
                new_address=payload.address,
                new_city=payload.city,
                reason=reason,
            )
        )
        return self._decision(UpsertAction.CONFLICT, reason, payload, existing.id)

    @staticmethod
    def _decision(
        action: UpsertAction,
        reason: DecisionReason,
        payload: VenuePayload,
        venue_id: UUID | None,
        *,
        detail: str | None = None,
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
            detail=detail,
        )


def reconcile_osm(
    candidates: Sequence[OsmVenueCandidate],
    store: VenueStore,
    *,
    dry_run: bool = False,
    config: ReconcileConfig | None = None,
    id_factory: Callable[[], UUID] = uuid4,
    clock: Callable[[], datetime] | None = None,
) -> ReconcileReport:
    reconciler = OsmReconciler(
        store, dry_run=dry_run, config=config, id_factory=id_factory, clock=clock
    )
    report = reconciler.run(candidates)
    counters = report.counters
    log.info(
        "OSM upsert finished (dry_run=%s): processed=%d, inserted=%d, updated=%d, "
        "conflicts=%d, errors=%d",
        dry_run,
        counters.processed,
        counters.inserted,
        counters.updated,
        counters.conflicts,
        counters.errors,
    )
    return report
