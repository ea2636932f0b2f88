"""Translate BAN features into geocode candidates."""

from __future__ import annotations

from typing import TYPE_CHECKING

from venuerecon.domain.model import GeocodeCandidate

if TYPE_CHECKING:
    from .schema import BanFeature


def to_candidate(feature: BanFeature) -> GeocodeCandidate:
    longitude, latitude = feature.geometry.coordinates
    properties = feature.properties
    return GeocodeCandidate(
        label=properties.label,
        score=properties.score,
        latitude=latitude,
        longitude=longitude,
        city=properties.city,
        postcode=properties.postcode,
        citycode=properties.citycode,
    )
