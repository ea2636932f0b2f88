"""Overpass API response schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from venuerecon.domain.model import OsmElementKind


class OverpassCenter(BaseModel):
    lat: float
    lon: float


class OverpassElement(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: OsmElementKind
    id: int
    lat: float | None = None
    lon: float | None = None
    center: OverpassCenter | None = None
    tags: dict[str, str] = Field(default_factory=dict)

    @property
    def coordinates(self) -> tuple[float, float] | None:
        """Node position, or the computed center of a way or relation."""

        if self.type is OsmElementKind.NODE:
            if self.lat is None or self.lon is None:
                return None
            return self.lat, self.lon
        if self.center is None:
            return None
        return self.center.lat, self.center.lon


class OverpassResponse(BaseModel):
    """Query result; error bodies carry a ``remark`` and no ``elements``."""

    model_config = ConfigDict(extra="allow")

    elements: list[OverpassElement]
