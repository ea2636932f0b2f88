from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest

from tests.support.venues import FakeVenueStore, make_osm_candidate, make_record, sequential_ids
from venuerecon.domain.model import DecisionReason, OsmElementKind, UpsertAction
from venuerecon.domain.osm_ingest import build_osm_payload
from venuerecon.domain.reconciliation import reconcile_osm

if TYPE_CHECKING:
    from venuerecon.domain.model import OsmVenueCandidate, VenuePayload

SYNCED = datetime(2025, 3, 1, 12, tzinfo=UTC)


def _clock() -> datetime:
    return SYNCED


def test_unknown_venue_is_inserted_with_osm_identity() -> None:
    store = FakeVenueStore()

    report = reconcile_osm(
        [make_osm_candidate("Le Chat Noir", osm_id=11)],
        store,
        id_factory=sequential_ids(),
        clock=_clock,
    )

    [decision] = report.decisions
    assert decision.action is UpsertAction.INSERT
    [(_, payload)] = store.inserted
    assert (payload.osm_type, payload.osm_id) == (OsmElementKind.NODE, 11)
    assert payload.osm_last_sync_at == SYNCED
    assert payload.image_url is not None


def test_identity_match_updates_without_touching_name_or_identity() -> None:
    existing = make_record(
        "Chat Noir (ancien nom)",
        osm_type=OsmElementKind.NODE,
        osm_id=11,
        tags=("concert",),
    )
    store = FakeVenueStore([existing])

    report = reconcile_osm([make_osm_candidate("Le Chat Noir", osm_id=11)], store, clock=_clock)

    [decision] = report.decisions
    assert decision.action is UpsertAction.UPDATE
    assert decision.reason is DecisionReason.OSM_IDENTITY_MATCH
    [(_, changes)] = store.updated
    assert changes.name is None
    assert changes.osm_id is None
    assert changes.tags is None
    assert store.rows[existing.id].name == "Chat Noir (ancien nom)"
    assert store.rows[existing.id].tags == ("concert",)


def test_name_match_near_same_address_binds_identity() -> None:
    existing = make_record("Le Chat Noir", address="12 rue de la Paix", city="Nantes")
    store = FakeVenueStore([existing])

    report = reconcile_osm([make_osm_candidate("Le Chat Noir", osm_id=11)], store, clock=_clock)

    [decision] = report.decisions
    assert decision.action is UpsertAction.UPDATE
    assert decision.reason is DecisionReason.NAME_MATCH_ADDRESS_MATCH
    assert store.rows[existing.id].osm_identity is not None
    assert store.rows[existing.id].tags == ("bar",)


def test_name_match_too_far_away_is_a_conflict() -> None:
    existing = make_record(
        "Le Chat Noir", address="12 rue de la Paix", latitude=47.25, longitude=-1.50
    )
    store = FakeVenueStore([existing])

    report = reconcile_osm([make_osm_candidate("Le Chat Noir")], store, clock=_clock)

    [decision] = report.decisions
    assert decision.action is UpsertAction.CONFLICT
    assert decision.reason is DecisionReason.ADDRESS_MISMATCH
    assert store.writes == 0


def test_name_match_without_coordinates_is_a_conflict() -> None:
    existing = make_record("Le Chat Noir", latitude=None, longitude=None)
    store = FakeVenueStore([existing])

    report = reconcile_osm([make_osm_candidate("Le Chat Noir")], store, clock=_clock)

    assert report.decisions[0].action is UpsertAction.CONFLICT


def test_row_bound_to_another_element_is_not_rebound() -> None:
    existing = make_record("Le Chat Noir", osm_type=OsmElementKind.WAY, osm_id=999)
    store = FakeVenueStore([existing])

    report = reconcile_osm(
        [make_osm_candidate("Le Chat Noir", osm_id=11)], store, clock=_clock
    )

    assert report.decisions[0].action is UpsertAction.CONFLICT
    assert store.rows[existing.id].osm_id == 999


def test_several_matching_rows_are_a_conflict() -> None:
    rows = [make_record("Le Chat Noir"), make_record("le chat noir")]
    store = FakeVenueStore(rows)

    report = reconcile_osm([make_osm_candidate("Le Chat Noir")], store, clock=_clock)

    assert report.decisions[0].reason is DecisionReason.MULTIPLE_MATCHES
    assert store.writes == 0


def test_rerun_reuses_identity_instead_of_inserting() -> None:
    store = FakeVenueStore()
    candidates = [
        make_osm_candidate("Le Chat Noir", osm_id=1),
        make_osm_candidate("Cork", osm_id=2),
    ]

    reconcile_osm(candidates, store, clock=_clock)
    second = reconcile_osm(candidates, store, clock=_clock)

    assert len(store.rows) == 2
    assert {decision.reason for decision in second.decisions} == {
        DecisionReason.OSM_IDENTITY_MATCH
    }


def test_dry_run_matches_real_run_decisions() -> None:
    candidates = [
        make_osm_candidate("Le Chat Noir", osm_id=1),
        make_osm_candidate("Le Chat Noir", osm_id=1),
    ]

    dry_store = FakeVenueStore()
    dry = reconcile_osm(
        candidates, dry_store, dry_run=True, id_factory=sequential_ids(), clock=_clock
    )
    real = reconcile_osm(candidates, FakeVenueStore(), id_factory=sequential_ids(), clock=_clock)

    assert dry_store.writes == 0
    assert [(d.action, d.reason, d.venue_id) for d in dry.decisions] == [
        (d.action, d.reason, d.venue_id) for d in real.decisions
    ]


def test_payload_failure_is_recorded_and_batch_continues(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    def failing_payload(
        candidate: OsmVenueCandidate, *, synced_at: datetime | None = None
    ) -> VenuePayload:
        if candidate.name == "Broken":
            raise ValueError("bad tags")
        return build_osm_payload(candidate, synced_at=synced_at)

    monkeypatch.setattr("venuerecon.domain.reconciliation.osm.build_osm_payload", failing_payload)
    store = FakeVenueStore()

    report = reconcile_osm(
        [make_osm_candidate("Broken", osm_id=1), make_osm_candidate("Le Chat Noir", osm_id=2)],
        store,
        clock=_clock,
    )

    broken, chat_noir = report.decisions
    assert broken.action is UpsertAction.ERROR
    assert broken.reason is DecisionReason.EXCEPTION
    assert broken.name == "Broken"
    assert broken.detail == "bad tags"
    assert chat_noir.action is UpsertAction.INSERT
    assert report.counters.errors == 1
    assert len(store.inserted) == 1
