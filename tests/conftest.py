from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002

from venuerecon.adapters.http_resilience import ResilienceConfig, RetryPolicy
from venuerecon.adapters.sqlalchemy import SqlAlchemyVenueStore, VenueDatabase
from venuerecon.adapters.sqlalchemy.migrations import upgrade_head
from venuerecon.config.geocoder import GeocoderConfig
from venuerecon.config.nominatim import NominatimConfig
from venuerecon.config.overpass import OverpassConfig

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator

# No backoff sleeps in tests; two retries as in production.
FAST_RETRY = RetryPolicy(total=2, backoff_factor=0.0)


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def venue_database(sqlite_engine: Engine) -> VenueDatabase:
    return VenueDatabase(sqlite_engine)


@pytest.fixture
def venue_store(venue_database: VenueDatabase) -> SqlAlchemyVenueStore:
    return venue_database.store()


@pytest.fixture
def geocoder_config() -> GeocoderConfig:
    return GeocoderConfig(
        resilience=ResilienceConfig(
            name="ban", base_url="https://ban.test", retry=FAST_RETRY, max_concurrency=4
        ),
    )


@pytest.fixture
def overpass_config() -> OverpassConfig:
    return OverpassConfig(
        endpoint="https://overpass.test/api/interpreter",
        resilience=ResilienceConfig(name="overpass", retry=FAST_RETRY, max_concurrency=2),
    )


@pytest.fixture
def nominatim_config() -> NominatimConfig:
    return NominatimConfig(
        endpoint="https://nominatim.test/search",
        resilience=ResilienceConfig(
            name="nominatim",
            retry=FAST_RETRY,
            max_concurrency=1,
            default_headers={"User-Agent": "venuerecon-tests"},
        ),
        result_limit=5,
    )
