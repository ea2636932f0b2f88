from __future__ import annotations

from venuerecon.config.reconcile import BatchMatchConfig
from venuerecon.domain.model import AmbiguityReason
from venuerecon.domain.name_matching import match_names


def test_match_names_pairs_unique_matches() -> None:
    report = match_names(["Le Lieu Unique", "Stereolux"], ["Lieu Unique", "Le Stéréolux"])

    pairs = {(pair.source_name, pair.store_name) for pair in report.matches}
    assert pairs == {("Le Lieu Unique", "Lieu Unique"), ("Stereolux", "Le Stéréolux")}
    assert report.ambiguous == []
    assert report.solo_source == []
    assert report.solo_store == []


def test_match_names_reports_solo_entries() -> None:
    report = match_names(["Pannonica"], ["Le Ferrailleur"])

    assert report.matches == []
    assert report.solo_source == ["Pannonica"]
    assert report.solo_store == ["Le Ferrailleur"]


def test_match_names_flags_close_scores() -> None:
    report = match_names(["Chat Noir"], ["Le Chat Noir", "Chat Noir"])

    assert report.matches == []
    [entry] = report.ambiguous
    assert entry.source_name == "Chat Noir"
    assert entry.reason is AmbiguityReason.MULTIPLE_CLOSE_SCORES
    assert {candidate.name for candidate in entry.candidates} == {"Le Chat Noir", "Chat Noir"}


def test_match_names_flags_store_names_claimed_twice() -> None:
    report = match_names(["Lieu Unique", "Le Lieu Unique"], ["Lieu Unique Nantes"])

    assert report.matches == []
    assert {entry.reason for entry in report.ambiguous} == {
        AmbiguityReason.STORE_MULTIPLE_MATCHES
    }


def test_match_names_respects_pairing_score() -> None:
    strict = BatchMatchConfig(pairing_score=0.99)

    report = match_names(["Lieu Unique"], ["Lieu Unique Bis"], strict)

    assert report.matches == []
    assert report.solo_source == ["Lieu Unique"]
