from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import pytest

from tests.support.venues import json_response, make_client_factory, recording_handler
from venuerecon.adapters.lookup_cache import LookupCache
from venuerecon.adapters.nominatim import NominatimClient
from venuerecon.domain.errors import InvalidResponseError
from venuerecon.domain.model import OsmElementKind, OsmIdentity
from venuerecon.domain.ports import Place, PlaceQuery

if TYPE_CHECKING:
    from pathlib import Path

    from tests.support.venues import Handler
    from venuerecon.config.nominatim import NominatimConfig

RESULT: dict[str, Any] = {
    "place_id": 1234,
    "osm_type": "node",
    "osm_id": 77,
    "lat": "47.2184",
    "lon": "-1.5536",
    "display_name": "Le Chat Noir, 12, Rue de la Paix, Nantes, 44000, France",
    "class": "amenity",
    "type": "bar",
    "address": {"house_number": "12", "road": "Rue de la Paix", "city": "Nantes"},
    "extratags": {"website": "https://chatnoir.fr"},
    "namedetails": {"name": "Le Chat Noir"},
}

QUERY = PlaceQuery(q="Le Chat Noir Nantes FR", countrycodes="fr")


def _search(
    config: NominatimConfig,
    handler: Handler,
    cache: LookupCache | None = None,
    query: PlaceQuery = QUERY,
) -> list[Place]:
    async def run() -> list[Place]:
        async with NominatimClient(
            config=config, cache=cache, client_factory=make_client_factory(handler)
        ) as client:
            return await client.search(query)

    return asyncio.run(run())


def test_build_params_drops_empty_fields(nominatim_config: NominatimConfig) -> None:
    client = NominatimClient(config=nominatim_config)

    params = client.build_params(PlaceQuery(street="12 rue X", city="Nantes", postalcode=""))

    assert params == {
        "street": "12 rue X",
        "city": "Nantes",
        "format": "jsonv2",
        "addressdetails": "1",
        "extratags": "1",
        "namedetails": "1",
        "limit": "5",
    }


def test_search_translates_results(nominatim_config: NominatimConfig) -> None:
    handler, requests = recording_handler(lambda request: json_response([RESULT]))

    [place] = _search(nominatim_config, handler)

    [request] = requests
    assert request.url.host == "nominatim.test"
    assert request.url.params["q"] == "Le Chat Noir Nantes FR"
    assert request.headers["User-Agent"] == "venuerecon-tests"
    assert place.identity == OsmIdentity(OsmElementKind.NODE, 77)
    assert place.latitude == 47.2184
    assert place.category == "amenity"
    assert place.address["road"] == "Rue de la Paix"
    assert place.namedetails == {"name": "Le Chat Noir"}


def test_short_osm_type_and_missing_id(nominatim_config: NominatimConfig) -> None:
    results = [{**RESULT, "osm_type": "W"}, {**RESULT, "osm_id": None}]
    handler, _ = recording_handler(lambda request: json_response(results))

    first, second = _search(nominatim_config, handler)

    assert first.identity == OsmIdentity(OsmElementKind.WAY, 77)
    assert second.identity is None


def test_identical_queries_hit_the_cache(
    nominatim_config: NominatimConfig, tmp_path: Path
) -> None:
    path = tmp_path / "nominatim_cache.jsonl"
    handler, requests = recording_handler(lambda request: json_response([RESULT]))

    _search(nominatim_config, handler, LookupCache(path, fresh=True))
    cached = _search(nominatim_config, handler, LookupCache(path))
    other = _search(
        nominatim_config, handler, LookupCache(path), PlaceQuery(q="Cork Nantes FR")
    )

    assert len(requests) == 2
    assert cached[0].identity == OsmIdentity(OsmElementKind.NODE, 77)
    assert len(other) == 1


def test_unexpected_payload_is_invalid(nominatim_config: NominatimConfig) -> None:
    handler, _ = recording_handler(lambda request: json_response({"error": "bad request"}))

    with pytest.raises(InvalidResponseError):
        _search(nominatim_config, handler)
