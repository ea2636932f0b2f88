"""OpenStreetMap element identity."""

from __future__ import annotations

from dataclasses import dataclass

from .enums import OsmElementKind

OSM_BASE_URL = "https://www.openstreetmap.org"


@dataclass(frozen=True, slots=True)
class OsmIdentity:
    """Natural key of an OSM element: unique per (kind, id)."""

    kind: OsmElementKind
    id: int

    @property
    def url(self) -> str:
        return f"{OSM_BASE_URL}/{self.kind}/{self.id}"

    def __str__(self) -> str:
        return f"{self.kind}/{self.id}"
