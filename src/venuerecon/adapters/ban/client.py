"""BAN geocoding client."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import ValidationError

from venuerecon.adapters.http_resilience import ResilientClient, fetch_json
from venuerecon.adapters.lookup_cache import geocode_cache_key
from venuerecon.domain.errors import InvalidResponseError
from venuerecon.domain.ports import GeocodeLookup

from .schema import BanFeature, BanFeatureCollection
from .translator import to_candidate

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from venuerecon.adapters.lookup_cache import LookupCache
    from venuerecon.config.geocoder import GeocoderConfig
    from venuerecon.config.http_resilience import ResilienceConfig
    from venuerecon.domain.model import InputRecord

log = getLogger(__name__)

SEARCH_PATH = "/search/"


class BanGeocoder:
    """Cache-first geocoder over the BAN ``/search/`` endpoint.

    Every successful lookup is cached, including lookups with no feature, so a
    rerun never repeats a request. Concurrent lookups of the same key share a
    single request. Use as an async context manager; the HTTP client and its
    concurrency limit are shared across all lookups.
    """

    def __init__(
        self,
        *,
        config: GeocoderConfig,
        cache: LookupCache | None = None,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._cache = cache
        self._client_factory = client_factory or ResilientClient
        self._client: ResilientClient | None = None
        self._in_flight: dict[str, asyncio.Task[BanFeature | None]] = {}

    async def __aenter__(self) -> BanGeocoder:
        self._client = self._client_factory(self._config.resilience)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def geocode(self, record: InputRecord) -> GeocodeLookup:
        key = geocode_cache_key(record.address, record.city, record.postcode)
        if self._cache is not None and key in self._cache:
            feature = _parse_feature(self._cache.get(key))
            return GeocodeLookup(
                candidate=to_candidate(feature) if feature else None, from_cache=True
            )

        if self._client is None:
            raise RuntimeError("BanGeocoder must be used as an async context manager")

        pending = self._in_flight.get(key)
        if pending is not None:
            feature = await asyncio.shield(pending)
            return GeocodeLookup(
                candidate=to_candidate(feature) if feature else None, from_cache=True
            )

        task = asyncio.create_task(self._search(key, record, self._client))
        self._in_flight[key] = task
        try:
            feature = await task
        finally:
            self._in_flight.pop(key, None)
        return GeocodeLookup(candidate=to_candidate(feature) if feature else None)

    async def _search(
        self, key: str, record: InputRecord, client: ResilientClient
    ) -> BanFeature | None:
        params = {"q": f"{record.address} {record.city}".strip(), "limit": "1"}
        if record.postcode:
            params["postcode"] = record.postcode
        payload = await fetch_json(client, "GET", SEARCH_PATH, params=params)
        try:
            collection = BanFeatureCollection.model_validate(payload)
        except ValidationError as exc:
            raise InvalidResponseError(
                f"ban: unexpected search payload: {exc.error_count()} errors", source="ban"
            ) from exc

        feature = collection.features[0] if collection.features else None
        if self._cache is not None:
            await self._cache.put(
                key, feature.model_dump(mode="json", by_alias=True) if feature else None
            )
        log.debug("BAN %r -> %s", params["q"], feature.properties.label if feature else None)
        return feature


def _parse_feature(value: object) -> BanFeature | None:
    if value is None:
        return None
    try:
        return BanFeature.model_validate(value)
    except ValidationError:
        log.warning("Ignoring malformed cached BAN feature")
        return None
