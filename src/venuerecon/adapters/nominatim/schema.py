"""Nominatim ``jsonv2`` search result schema."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class NominatimResult(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    place_id: int | None = None
    osm_type: str | None = None
    osm_id: int | None = None
    lat: float | None = None
    lon: float | None = None
    display_name: str | None = None
    category: str | None = Field(default=None, alias="class")
    type: str | None = None
    address: dict[str, str] = Field(default_factory=dict)
    extratags: dict[str, str] | None = None
    namedetails: dict[str, str] | None = None


NominatimResults = TypeAdapter(list[NominatimResult])
