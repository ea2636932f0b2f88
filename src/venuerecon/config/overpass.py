"""Overpass API configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_int, env_str
from .http_resilience import ResilienceConfig, RetryPolicy

OVERPASS_URL = "https://overpass-api.de/api/interpreter"
OVERPASS_TIMEOUT_SECONDS = 30.0
DEFAULT_OVERPASS_CONCURRENCY = 1
DEFAULT_ADMIN_LEVEL = 8
CACHE_FILENAME = "overpass_cache.jsonl"


@dataclass(frozen=True, slots=True)
class OverpassConfig:
    endpoint: str
    resilience: ResilienceConfig
    cache_filename: str = CACHE_FILENAME


def build_overpass_resilience(
    *, concurrency: int = DEFAULT_OVERPASS_CONCURRENCY
) -> ResilienceConfig:
    return ResilienceConfig(
        name="overpass",
        timeout_seconds=OVERPASS_TIMEOUT_SECONDS,
        retry=RetryPolicy(total=2, backoff_factor=0.5),
        max_concurrency=concurrency,
    )


def get_overpass_config(*, concurrency: int | None = None) -> OverpassConfig:
    effective_concurrency = concurrency or env_int(
        "OVERPASS_CONCURRENCY", DEFAULT_OVERPASS_CONCURRENCY
    )
    return OverpassConfig(
        endpoint=env_str("OVERPASS_URL", OVERPASS_URL),
        resilience=build_overpass_resilience(concurrency=effective_concurrency),
    )
