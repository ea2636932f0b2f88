"""Look up venues that no amenity export covered through an alternate geocoder."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from .errors import FetchError
from .model import VenuePayload
from .normalization import normalize_address, normalize_city, normalize_name
from .osm_ingest import AMENITY_TYPES
from .ports import PlaceQuery

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .ports import Place, PlaceSearch

log = logging.getLogger(__name__)

RESOLVE_SOURCE = "osm_resolve"
DEFAULT_NAME_THRESHOLD = 100
DEFAULT_ADDRESS_THRESHOLD = 60
CITY_BONUS = 30
POSTCODE_BONUS = 20
ROAD_BONUS = 20

_RELEVANT_TOKENS = ("bar", "pub", "nightclub", "theatre", "casino")
_STREET_LINE = re.compile(r"^\s*(\d+[A-Za-z]?)\s+(.+)$")


@dataclass(frozen=True, slots=True)
class MissingVenue:
    name: str
    city: str
    address: str | None = None
    postcode: str | None = None


@dataclass(frozen=True, slots=True)
class ResolvedVenue:
    venue: MissingVenue
    place: Place
    payload: VenuePayload
    score: int
    found_name: str


@dataclass(frozen=True, slots=True)
class UnresolvedVenue:
    venue: MissingVenue
    reason: str


@dataclass(slots=True)
class ResolutionReport:
    total: int = 0
    found_by_name: list[ResolvedVenue] = field(default_factory=list)
    found_by_address: list[ResolvedVenue] = field(default_factory=list)
    not_found: list[UnresolvedVenue] = field(default_factory=list)

    @property
    def resolved(self) -> list[ResolvedVenue]:
        return [*self.found_by_name, *self.found_by_address]


def place_name(place: Place) -> str:
    named = place.namedetails.get("name")
    if named:
        return named
    return (place.display_name or "").split(",")[0].strip()


def _place_city(place: Place) -> str | None:
    address = place.address
    return (
        address.get("city")
        or address.get("town")
        or address.get("village")
        or address.get("municipality")
    )


def _place_road(place: Place) -> str | None:
    address = place.address
    return address.get("road") or address.get("pedestrian") or address.get("path")


def is_city_match(place: Place, city: str) -> bool:
    candidate_city = _place_city(place)
    return bool(candidate_city) and normalize_city(candidate_city) == normalize_city(city)


def is_relevant_category(place: Place) -> bool:
    amenity = (place.extratags.get("amenity") or place.type or "").lower()
    if not amenity or amenity in AMENITY_TYPES:
        return True
    return any(token in amenity for token in _RELEVANT_TOKENS)


def score_name(expected: str, place: Place) -> int:
    """100 for an exact normalized match, 70 for containment, else token overlap in %."""

    wanted = normalize_name(expected)
    found = normalize_name(place_name(place))
    if not wanted.normalized or not found.normalized:
        return 0
    if wanted.normalized == found.normalized:
        return 100
    if wanted.normalized in found.normalized or found.normalized in wanted.normalized:
        return 70
    left, right = set(wanted.tokens), set(found.tokens)
    return min(100, round(len(left & right) / max(len(left), len(right)) * 100))


def score_address(venue: MissingVenue, place: Place) -> int:
    score = 0
    postcode = place.address.get("postcode")
    if venue.postcode and postcode and venue.postcode == postcode:
        score += POSTCODE_BONUS
    road = _place_road(place)
    if venue.address and road:
        expected = normalize_address(venue.address)
        house = place.address.get("house_number") or ""
        found = normalize_address(f"{house} {road}")
        if expected in found or found in expected:
            score += ROAD_BONUS
    return score


def _located(places: Sequence[Place], venue: MissingVenue) -> list[Place]:
    return [
        place
        for place in places
        if place.latitude is not None
        and place.longitude is not None
        and is_city_match(place, venue.city)
    ]


def select_by_name(
    places: Sequence[Place], venue: MissingVenue, threshold: int
) -> tuple[Place, int] | None:
    scored: list[tuple[Place, int]] = []
    for place in _located(places, venue):
        if not is_relevant_category(place):
            continue
        postcode_bonus = (
            POSTCODE_BONUS
            if venue.postcode and place.address.get("postcode") == venue.postcode
            else 0
        )
        score = score_name(venue.name, place) + CITY_BONUS + postcode_bonus
        scored.append((place, score + score_address(venue, place)))
    if not scored:
        return None
    best = max(scored, key=lambda item: item[1])
    return best if best[1] >= threshold else None


def select_by_address(
    places: Sequence[Place], venue: MissingVenue, threshold: int
) -> tuple[Place, int] | None:
    scored = [
        (place, score_address(venue, place) + score_name(venue.name, place))
        for place in _located(places, venue)
    ]
    if not scored:
        return None
    best = max(scored, key=lambda item: item[1])
    return best if best[1] >= threshold else None


def split_street(address: str | None) -> tuple[str | None, str | None]:
    """Split ``"12 rue X"`` into house number and street."""

    if not address:
        return None, None
    match = _STREET_LINE.match(address.strip())
    if match is None:
        return None, None
    return match.group(1), match.group(2)


def _strip_trailing_slashes(value: str | None) -> str | None:
    return value.rstrip("/\\") if value else None


def build_place_payload(
    venue: MissingVenue,
    place: Place,
    *,
    synced_at: datetime | None = None,
) -> VenuePayload:
    extratags = place.extratags
    address = place.address
    website = _strip_trailing_slashes(extratags.get("website") or extratags.get("contact:website"))
    phone = extratags.get("phone") or extratags.get("contact:phone")
    facebook = _strip_trailing_slashes(
        extratags.get("facebook") or extratags.get("contact:facebook")
    )
    instagram = _strip_trailing_slashes(
        extratags.get("instagram") or extratags.get("contact:instagram")
    )
    contact = {
        key: value
        for key, value in {
            "website": website,
            "phone": phone,
            "facebook": facebook,
            "instagram": instagram,
        }.items()
        if value
    }
    details = {
        key: value
        for key, value in {
            "housenumber": address.get("house_number"),
            "street": _place_road(place),
            "postcode": address.get("postcode"),
            "city": _place_city(place),
            "full": place.display_name,
        }.items()
        if value
    }
    raw_tags = {
        key: value
        for key, value in {
            "extratags": extratags,
            "address": address,
            "namedetails": place.namedetails,
        }.items()
        if value
    }
    capacity = extratags.get("capacity")
    live_music = extratags.get("live_music")
    identity = place.identity
    return VenuePayload(
        name=place_name(place) or venue.name,
        address=place.display_name or venue.address or venue.city,
        city=_place_city(place) or venue.city,
        latitude=place.latitude,
        longitude=place.longitude,
        osm_type=identity.kind if identity else None,
        osm_id=identity.id if identity else None,
        osm_url=identity.url if identity else None,
        osm_tags_raw=raw_tags or None,
        address_details=details or None,
        contact=contact or None,
        osm_venue_type=extratags.get("amenity") or place.type,
        opening_hours=extratags.get("opening_hours"),
        capacity=int(capacity) if capacity and capacity.isdigit() else None,
        live_music={"yes": True, "no": False}.get(live_music or ""),
        website=website,
        phone=phone,
        facebook=facebook,
        instagram=instagram,
        source=RESOLVE_SOURCE,
        osm_last_sync_at=synced_at or datetime.now(UTC),
    )


async def resolve_missing(
    venues: Sequence[MissingVenue],
    search: PlaceSearch,
    *,
    country: str,
    name_threshold: int = DEFAULT_NAME_THRESHOLD,
    address_threshold: int = DEFAULT_ADDRESS_THRESHOLD,
    synced_at: datetime | None = None,
) -> ResolutionReport:
    """Try a free-text name search first, then a structured address search."""

    stamp = synced_at or datetime.now(UTC)
    countrycodes = country.lower()
    report = ResolutionReport(total=len(venues))
    for venue in venues:
        try:
            by_name = select_by_name(
                await search.search(
                    PlaceQuery(q=f"{venue.name} {venue.city} {country}", countrycodes=countrycodes)
                ),
                venue,
                name_threshold,
            )
            if by_name is not None:
                place, score = by_name
                report.found_by_name.append(
                    ResolvedVenue(
                        venue=venue,
                        place=place,
                        payload=build_place_payload(venue, place, synced_at=stamp),
                        score=score,
                        found_name=place_name(place),
                    )
                )
                continue

            if venue.address:
                housenumber, street = split_street(venue.address)
                query = PlaceQuery(
                    q=None if street else f"{venue.address} {venue.city}",
                    street=" ".join(part for part in (housenumber, street) if part) or None,
                    city=venue.city,
                    postalcode=venue.postcode,
                    countrycodes=countrycodes,
                )
                by_address = select_by_address(
                    await search.search(query), venue, address_threshold
                )
                if by_address is not None:
                    place, score = by_address
                    report.found_by_address.append(
                        ResolvedVenue(
                            venue=venue,
                            place=place,
                            payload=build_place_payload(venue, place, synced_at=stamp),
                            score=score,
                            found_name=place_name(place),
                        )
                    )
                    continue
        except FetchError as exc:
            log.warning("Lookup failed for %s (%s): %s", venue.name, venue.city, exc)
            report.not_found.append(UnresolvedVenue(venue=venue, reason="lookup_failed"))
            continue

        report.not_found.append(UnresolvedVenue(venue=venue, reason="no_match"))

    log.info(
        "Resolved %d venues: by_name=%d, by_address=%d, not_found=%d",
        report.total,
        len(report.found_by_name),
        len(report.found_by_address),
        len(report.not_found),
    )
    return report
