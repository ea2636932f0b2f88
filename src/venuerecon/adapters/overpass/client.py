"""Overpass API client: boundary search and amenity export."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import ValidationError

from venuerecon.adapters.http_resilience import ResilientClient, fetch_json
from venuerecon.domain.errors import InvalidResponseError
from venuerecon.domain.ports import AmenityLookup

from .queries import amenity_query, boundary_query
from .schema import OverpassResponse
from .translator import to_area_candidate, to_ingest_entry

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from venuerecon.adapters.lookup_cache import LookupCache
    from venuerecon.config.http_resilience import ResilienceConfig
    from venuerecon.config.overpass import OverpassConfig
    from venuerecon.domain.model import AreaCandidate

log = getLogger(__name__)


class OverpassClient:
    """Posts Overpass QL queries; responses are cached by query text.

    ``default_city`` fills the city of elements that carry no ``addr:city`` tag.
    """

    def __init__(
        self,
        *,
        config: OverpassConfig,
        default_city: str = "",
        cache: LookupCache | None = None,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._default_city = default_city
        self._cache = cache
        self._client_factory = client_factory or ResilientClient
        self._client: ResilientClient | None = None

    async def __aenter__(self) -> OverpassClient:
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

    async def search_boundaries(
        self,
        city: str,
        *,
        admin_level: int,
        country: str | None = None,
    ) -> list[AreaCandidate]:
        query = boundary_query(city, admin_level=admin_level, country=country)
        response, _ = await self._run(query)
        candidates = [
            candidate
            for candidate in (to_area_candidate(element) for element in response.elements)
            if candidate is not None
        ]
        log.debug(
            "Boundary search %r (level %d): %d candidates", city, admin_level, len(candidates)
        )
        return candidates

    async def fetch_amenity(self, area_id: int, amenity: str) -> AmenityLookup:
        response, from_cache = await self._run(amenity_query(area_id, amenity))
        entries = [
            to_ingest_entry(element, default_city=self._default_city)
            for element in response.elements
        ]
        return AmenityLookup(entries=entries, from_cache=from_cache)

    async def _run(self, query: str) -> tuple[OverpassResponse, bool]:
        if self._cache is not None and query in self._cache:
            return _validate(self._cache.get(query)), True

        if self._client is None:
            raise RuntimeError("OverpassClient must be used as an async context manager")
        payload = await fetch_json(
            self._client,
            "POST",
            self._config.endpoint,
            content=query.encode("utf-8"),
            headers={"Content-Type": "text/plain; charset=utf-8"},
        )
        response = _validate(payload)
        if self._cache is not None:
            await self._cache.put(query, payload)
        return response, False


def _validate(payload: object) -> OverpassResponse:
    if not isinstance(payload, dict):
        raise InvalidResponseError("overpass: response is not a JSON object", source="overpass")
    try:
        return OverpassResponse.model_validate(payload)
    except ValidationError as exc:
        raise InvalidResponseError(
            f"overpass: unexpected payload: {exc.error_count()} errors", source="overpass"
        ) from exc
