"""Store-side venue rows and partial write payloads."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import TYPE_CHECKING, Any

from .identity import OsmIdentity

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from .enums import OsmElementKind

type JsonObject = dict[str, Any]


@dataclass(frozen=True, slots=True, kw_only=True)
class VenuePayload:
    """Partial set of venue columns for an insert or update.

    ``None`` means "unknown" and is never sent to the store.
    """

    name: str | None = None
    address: str | None = None
    city: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    is_bar: bool | None = None
    image_url: str | None = None
    tags: tuple[str, ...] | None = None
    osm_type: OsmElementKind | None = None
    osm_id: int | None = None
    osm_url: str | None = None
    osm_tags_raw: JsonObject | None = None
    address_details: JsonObject | None = None
    contact: JsonObject | None = None
    osm_venue_type: str | None = None
    opening_hours: str | None = None
    capacity: int | None = None
    live_music: bool | None = None
    website: str | None = None
    phone: str | None = None
    facebook: str | None = None
    instagram: str | None = None
    source: str | None = None
    osm_last_sync_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            field.name: getattr(self, field.name)
            for field in fields(self)
            if getattr(self, field.name) is not None
        }

    def is_empty(self) -> bool:
        return not self.to_dict()

    def without(self, *names: str) -> VenuePayload:
        return replace(self, **dict.fromkeys(names))


VENUE_COLUMNS: tuple[str, ...] = tuple(field.name for field in fields(VenuePayload))


@dataclass(frozen=True, slots=True, kw_only=True)
class VenueRecord:
    """A persisted venue row."""

    id: UUID
    name: str
    address: str | None = None
    city: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    is_bar: bool | None = None
    image_url: str | None = None
    tags: tuple[str, ...] = ()
    osm_type: OsmElementKind | None = None
    osm_id: int | None = None
    osm_url: str | None = None
    osm_tags_raw: JsonObject | None = None
    address_details: JsonObject | None = None
    contact: JsonObject | None = None
    osm_venue_type: str | None = None
    opening_hours: str | None = None
    capacity: int | None = None
    live_music: bool | None = None
    website: str | None = None
    phone: str | None = None
    facebook: str | None = None
    instagram: str | None = None
    source: str | None = None
    osm_last_sync_at: datetime | None = None

    @classmethod
    def from_payload(cls, venue_id: UUID, payload: VenuePayload) -> VenueRecord:
        values = payload.to_dict()
        values.setdefault("name", "")
        return cls(id=venue_id, **values)

    @property
    def osm_identity(self) -> OsmIdentity | None:
        if self.osm_type is None or self.osm_id is None:
            return None
        return OsmIdentity(kind=self.osm_type, id=self.osm_id)

    def apply(self, payload: VenuePayload) -> VenueRecord:
        """Return a copy with every known payload value written over this row."""

        return replace(self, **payload.to_dict())
