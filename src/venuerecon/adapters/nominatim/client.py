"""Nominatim search client."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import ValidationError

from venuerecon.adapters.http_resilience import ResilientClient, fetch_json
from venuerecon.adapters.lookup_cache import params_cache_key
from venuerecon.domain.errors import InvalidResponseError

from .schema import NominatimResult, NominatimResults
from .translator import to_place

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from venuerecon.adapters.lookup_cache import LookupCache
    from venuerecon.config.http_resilience import ResilienceConfig
    from venuerecon.config.nominatim import NominatimConfig
    from venuerecon.domain.ports import Place, PlaceQuery

log = getLogger(__name__)


class NominatimClient:
    """Cache-first search against a Nominatim instance, keyed by the full parameter set."""

    def __init__(
        self,
        *,
        config: NominatimConfig,
        cache: LookupCache | None = None,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._cache = cache
        self._client_factory = client_factory or ResilientClient
        self._client: ResilientClient | None = None

    async def __aenter__(self) -> NominatimClient:
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

    def build_params(self, query: PlaceQuery) -> dict[str, str]:
        params = {
            "q": query.q,
            "street": query.street,
            "city": query.city,
            "postalcode": query.postalcode,
            "countrycodes": query.countrycodes,
        }
        built = {key: value for key, value in params.items() if value}
        built.update(
            {
                "format": "jsonv2",
                "addressdetails": "1",
                "extratags": "1",
                "namedetails": "1",
                "limit": str(self._config.result_limit),
            }
        )
        return built

    async def search(self, query: PlaceQuery) -> list[Place]:
        params = self.build_params(query)
        key = params_cache_key(dict(params))
        if self._cache is not None and key in self._cache:
            return [to_place(result) for result in _validate(self._cache.get(key))]

        if self._client is None:
            raise RuntimeError("NominatimClient must be used as an async context manager")
        payload = await fetch_json(self._client, "GET", self._config.endpoint, params=params)
        results = _validate(payload)
        if self._cache is not None:
            await self._cache.put(key, payload)
        log.debug(
            "Nominatim %s -> %d results", params.get("q") or params.get("street"), len(results)
        )
        return [to_place(result) for result in results]


def _validate(payload: object) -> list[NominatimResult]:
    try:
        return NominatimResults.validate_python(payload)
    except ValidationError as exc:
        raise InvalidResponseError(
            f"nominatim: unexpected payload: {exc.error_count()} errors", source="nominatim"
        ) from exc
