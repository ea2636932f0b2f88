"""Nominatim alternate geocoder adapter."""

from __future__ import annotations

from .client import NominatimClient
from .schema import NominatimResult
from .translator import to_place

__all__ = ["NominatimClient", "NominatimResult", "to_place"]
