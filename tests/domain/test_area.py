from __future__ import annotations

import asyncio

from venuerecon.domain.area import ScopeOverride, resolve_admin_area, select_area
from venuerecon.domain.model import OVERPASS_AREA_OFFSET, AreaCandidate


class FakeBoundarySource:
    def __init__(self, candidates: list[AreaCandidate]) -> None:
        self.candidates = candidates
        self.calls: list[tuple[str, int, str | None]] = []

    async def search_boundaries(
        self,
        city: str,
        *,
        admin_level: int,
        country: str | None = None,
    ) -> list[AreaCandidate]:
        self.calls.append((city, admin_level, country))
        return self.candidates


def test_area_id_adds_relation_offset() -> None:
    candidate = AreaCandidate(relation_id=59874, name="Nantes")

    assert candidate.area_id == 59874 + OVERPASS_AREA_OFFSET


def test_select_area_without_candidates() -> None:
    resolution = select_area("Nantes", [])

    assert not resolution.found
    assert resolution.area_id is None


def test_select_area_prefers_exact_name_over_population() -> None:
    exact = AreaCandidate(relation_id=1, name="Nantes", population=320_000)
    larger = AreaCandidate(relation_id=2, name="Nantes Métropole", population=680_000)

    resolution = select_area("nantes", [larger, exact])

    assert resolution.selected == exact
    assert resolution.alternates == ()
    assert not resolution.ambiguous


def test_select_area_picks_most_populated_and_keeps_alternates() -> None:
    small = AreaCandidate(relation_id=1, name="Saint-Denis", population=1_000)
    large = AreaCandidate(relation_id=2, name="Saint-Denis", population=110_000)

    resolution = select_area("Saint-Denis", [small, large])

    assert resolution.selected == large
    assert resolution.alternates == (small,)
    assert not resolution.ambiguous


def test_select_area_clear_population_winner_is_not_ambiguous() -> None:
    city = AreaCandidate(relation_id=7444, name="Paris", population=2_000_000)
    hamlet = AreaCandidate(relation_id=9, name="Paris", population=500)

    resolution = select_area("Paris", [city, hamlet])

    assert resolution.selected == city
    assert resolution.alternates == (hamlet,)
    assert not resolution.ambiguous


def test_resolve_admin_area_without_override_selects_most_populated_paris() -> None:
    hamlet = AreaCandidate(relation_id=9, name="Paris", population=500)
    city = AreaCandidate(relation_id=7444, name="Paris", population=2_000_000)
    source = FakeBoundarySource([hamlet, city])

    resolution = asyncio.run(resolve_admin_area(source, "Paris", overrides={}))

    assert source.calls == [("Paris", 8, None)]
    assert resolution.selected == city
    assert not resolution.ambiguous


def test_select_area_is_ambiguous_on_population_tie() -> None:
    first = AreaCandidate(relation_id=1, name="Sainte-Marie")
    second = AreaCandidate(relation_id=2, name="Sainte-Marie")

    resolution = select_area("Sainte-Marie", [first, second])

    assert resolution.found
    assert resolution.ambiguous
    assert len(resolution.candidates) == 2


def test_resolve_admin_area_applies_scope_override() -> None:
    grand_paris = AreaCandidate(relation_id=7, name="Métropole du Grand Paris", admin_level=7)
    source = FakeBoundarySource([grand_paris])

    resolution = asyncio.run(resolve_admin_area(source, "Paris", country="FR"))

    assert source.calls == [("Métropole du Grand Paris", 7, "FR")]
    assert resolution.city == "Paris"
    assert resolution.selected == grand_paris
    assert resolution.override is not None


def test_resolve_admin_area_uses_given_level_without_override() -> None:
    source = FakeBoundarySource([AreaCandidate(relation_id=3, name="Nantes")])
    overrides = {"lyon": ScopeOverride("Métropole de Lyon", 7, "metropole")}

    resolution = asyncio.run(
        resolve_admin_area(source, "Nantes", admin_level=8, overrides=overrides)
    )

    assert source.calls == [("Nantes", 8, None)]
    assert resolution.override is None
    assert resolution.area_id == 3 + OVERPASS_AREA_OFFSET


def test_resolve_admin_area_reports_missing_area() -> None:
    resolution = asyncio.run(resolve_admin_area(FakeBoundarySource([]), "Atlantis"))

    assert not resolution.found
