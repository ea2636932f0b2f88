"""BAN (Base Adresse Nationale) search response schemas."""

from __future__ import annotations

import logging
from typing import ClassVar

from pydantic import BaseModel, ConfigDict

log = logging.getLogger(__name__)


class BanBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow")
    _logged_extra_keys: ClassVar[set[str]] = set()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        new_keys = set(extras).difference(self._logged_extra_keys)
        if not new_keys:
            return
        self._logged_extra_keys.update(new_keys)
        log.debug(
            "BAN %s: unmodeled keys: %s",
            type(self).__name__,
            ", ".join(sorted(new_keys)),
        )


class BanGeometry(BanBaseModel):
    type: str = "Point"
    coordinates: tuple[float, float]  # lon, lat


class BanFeatureProperties(BanBaseModel):
    label: str
    score: float
    id: str | None = None
    type: str | None = None
    name: str | None = None
    housenumber: str | None = None
    street: str | None = None
    postcode: str | None = None
    citycode: str | None = None
    city: str | None = None
    context: str | None = None
    importance: float | None = None


class BanFeature(BanBaseModel):
    type: str = "Feature"
    geometry: BanGeometry
    properties: BanFeatureProperties


class BanFeatureCollection(BanBaseModel):
    type: str = "FeatureCollection"
    features: list[BanFeature]
