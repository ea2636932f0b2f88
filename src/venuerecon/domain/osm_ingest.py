"""Collect amenity venues for a city from the boundary/amenity service."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from venuerecon.config.overpass import DEFAULT_ADMIN_LEVEL

from .area import AreaResolution, resolve_admin_area
from .model import OsmElementKind, VenuePayload

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .model import OsmIdentity, OsmVenueCandidate
    from .ports import AmenitySource, BoundarySource, OsmIngestEntry

log = logging.getLogger(__name__)

AMENITY_TYPES: tuple[str, ...] = (
    "bar",
    "pub",
    "nightclub",
    "theatre",
    "arts_centre",
    "casino",
    "community_centre",
    "concert_hall",
    "events_venue",
)
OSM_SOURCE = "osm_seed"


@dataclass(slots=True)
class OsmFetchStats:
    total: int = 0
    kept: int = 0
    ambiguous: int = 0
    duplicates: int = 0
    api_calls: int = 0
    from_cache: int = 0


@dataclass(slots=True)
class OsmFetchReport:
    city: str
    area: AreaResolution
    entries: list[OsmIngestEntry] = field(default_factory=list)
    stats: OsmFetchStats = field(default_factory=OsmFetchStats)

    @property
    def area_found(self) -> bool:
        return self.area.found

    @property
    def venues(self) -> list[OsmVenueCandidate]:
        return [entry.candidate for entry in self.entries if entry.candidate is not None]

    @property
    def flagged(self) -> list[OsmIngestEntry]:
        return [entry for entry in self.entries if entry.candidate is None]


def deduplicate_entries(entries: Sequence[OsmIngestEntry]) -> tuple[list[OsmIngestEntry], int]:
    """Keep the first entry per OSM identity; return the kept list and the drop count."""

    seen: set[OsmIdentity] = set()
    kept: list[OsmIngestEntry] = []
    for entry in entries:
        if entry.identity in seen:
            continue
        seen.add(entry.identity)
        kept.append(entry)
    return kept, len(entries) - len(kept)


async def fetch_osm_venues(
    boundaries: BoundarySource,
    amenities: AmenitySource,
    city: str,
    *,
    country: str | None = None,
    admin_level: int = DEFAULT_ADMIN_LEVEL,
    amenity_types: Sequence[str] = AMENITY_TYPES,
) -> OsmFetchReport:
    """Resolve the city's boundary, then query every amenity type inside it.

    A city without any boundary candidate yields an empty report; callers check
    :attr:`OsmFetchReport.area_found` instead of catching an exception.
    """

    area = await resolve_admin_area(boundaries, city, country=country, admin_level=admin_level)
    report = OsmFetchReport(city=city, area=area)
    if area.area_id is None:
        return report

    lookups = await asyncio.gather(
        *(amenities.fetch_amenity(area.area_id, amenity) for amenity in amenity_types)
    )
    collected: list[OsmIngestEntry] = []
    for amenity, lookup in zip(amenity_types, lookups, strict=True):
        log.debug(
            "Amenity %s: %d elements (cached=%s)", amenity, len(lookup.entries), lookup.from_cache
        )
        collected.extend(lookup.entries)
        if lookup.from_cache:
            report.stats.from_cache += 1
        else:
            report.stats.api_calls += 1

    report.entries, report.stats.duplicates = deduplicate_entries(collected)
    report.stats.total = len(report.entries)
    report.stats.kept = len(report.venues)
    report.stats.ambiguous = report.stats.total - report.stats.kept
    log.info(
        "OSM fetch for %s: area=%s, kept=%d, ambiguous=%d, duplicates=%d",
        city,
        area.area_id,
        report.stats.kept,
        report.stats.ambiguous,
        report.stats.duplicates,
    )
    return report


def build_osm_payload(
    candidate: OsmVenueCandidate,
    *,
    synced_at: datetime | None = None,
) -> VenuePayload:
    """Full store payload carrying every OSM-derived field of ``candidate``."""

    contact = candidate.contact
    return VenuePayload(
        name=candidate.name,
        address=candidate.address_line,
        city=candidate.city,
        latitude=candidate.latitude,
        longitude=candidate.longitude,
        tags=(candidate.venue_type,) if candidate.venue_type else None,
        osm_type=OsmElementKind(candidate.identity.kind),
        osm_id=candidate.identity.id,
        osm_url=candidate.identity.url,
        osm_tags_raw=dict(candidate.tags) or None,
        address_details=candidate.address.as_dict() or None,
        contact=contact.as_dict() or None,
        osm_venue_type=candidate.venue_type,
        opening_hours=candidate.opening_hours,
        capacity=candidate.capacity,
        live_music=candidate.live_music,
        website=contact.website,
        phone=contact.phone,
        facebook=contact.facebook,
        instagram=contact.instagram,
        source=OSM_SOURCE,
        osm_last_sync_at=synced_at or datetime.now(UTC),
    )
