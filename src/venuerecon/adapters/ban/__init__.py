"""BAN geocoder adapter."""

from __future__ import annotations

from .client import BanGeocoder
from .schema import BanFeature, BanFeatureCollection
from .translator import to_candidate

__all__ = ["BanFeature", "BanFeatureCollection", "BanGeocoder", "to_candidate"]
