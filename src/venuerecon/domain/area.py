"""Resolve a city name to the administrative boundary that scopes amenity searches."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING

from venuerecon.config.overpass import DEFAULT_ADMIN_LEVEL

from .normalization import normalize_city

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from .model import AreaCandidate
    from .ports import BoundarySource

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ScopeOverride:
    """Boundary searched instead of the city's own when the city is looked up."""

    boundary_name: str
    admin_level: int
    reason: str


SCOPE_OVERRIDES: Mapping[str, ScopeOverride] = MappingProxyType(
    {
        "paris": ScopeOverride(
            boundary_name="Métropole du Grand Paris",
            admin_level=7,
            reason="Grand Paris perimeter instead of the historical city",
        ),
    }
)


@dataclass(frozen=True, slots=True)
class AreaResolution:
    city: str
    selected: AreaCandidate | None
    alternates: tuple[AreaCandidate, ...] = ()
    ambiguous: bool = False
    override: ScopeOverride | None = None
    candidates: tuple[AreaCandidate, ...] = ()

    @property
    def found(self) -> bool:
        return self.selected is not None

    @property
    def area_id(self) -> int | None:
        return self.selected.area_id if self.selected is not None else None


def select_area(city: str, candidates: Sequence[AreaCandidate]) -> AreaResolution:
    """Pick the winning boundary among ``candidates`` for ``city``.

    Exact (case-insensitive) name matches take precedence over the rest. The most
    populated member of the remaining pool wins, a missing population counting as
    zero. Every other pool member is reported as an alternate; the result is
    ambiguous only when population cannot separate the winner from the runner-up.
    """

    if not candidates:
        return AreaResolution(city=city, selected=None)

    target = city.casefold()
    exact = [candidate for candidate in candidates if candidate.name.casefold() == target]
    pool = exact or list(candidates)
    ranked = sorted(pool, key=lambda candidate: candidate.population or 0, reverse=True)
    winner = ranked[0]
    ambiguous = len(ranked) > 1 and (ranked[0].population or 0) <= (ranked[1].population or 0)
    return AreaResolution(
        city=city,
        selected=winner,
        alternates=tuple(ranked[1:]),
        ambiguous=ambiguous,
        candidates=tuple(ranked),
    )


async def resolve_admin_area(
    source: BoundarySource,
    city: str,
    *,
    country: str | None = None,
    admin_level: int = DEFAULT_ADMIN_LEVEL,
    overrides: Mapping[str, ScopeOverride] = SCOPE_OVERRIDES,
) -> AreaResolution:
    override = overrides.get(normalize_city(city))
    search_name = override.boundary_name if override else city
    search_level = override.admin_level if override else admin_level
    if override is not None:
        log.info("Scope override for %s: %s", city, override.reason)

    candidates = await source.search_boundaries(
        search_name, admin_level=search_level, country=country
    )
    resolution = select_area(search_name, candidates)
    if not resolution.found:
        log.warning("No administrative boundary found for %s (level %s)", city, search_level)
    elif resolution.ambiguous:
        log.warning(
            "Ambiguous boundary for %s: picked relation %s among %d candidates",
            city,
            resolution.selected.relation_id if resolution.selected else None,
            len(resolution.candidates),
        )
    return AreaResolution(
        city=city,
        selected=resolution.selected,
        alternates=resolution.alternates,
        ambiguous=resolution.ambiguous,
        override=override,
        candidates=resolution.candidates,
    )
