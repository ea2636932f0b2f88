"""Nominatim configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_int, env_str
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

NOMINATIM_ENDPOINT = "https://nominatim.openstreetmap.org/search"
NOMINATIM_TIMEOUT_SECONDS = 15.0
DEFAULT_USER_AGENT = "venuerecon/0.1 (venue reconciliation)"
DEFAULT_RESULT_LIMIT = 10
CACHE_FILENAME = "nominatim_cache.jsonl"


@dataclass(frozen=True, slots=True)
class NominatimConfig:
    endpoint: str
    resilience: ResilienceConfig
    result_limit: int = DEFAULT_RESULT_LIMIT
    cache_filename: str = CACHE_FILENAME


def get_nominatim_config(
    *,
    concurrency: int | None = None,
    delay_seconds: float = 1.0,
) -> NominatimConfig:
    user_agent = env_str("NOMINATIM_USER_AGENT", DEFAULT_USER_AGENT)
    effective_concurrency = concurrency or env_int("NOMINATIM_CONCURRENCY", 1)
    resilience = ResilienceConfig(
        name="nominatim",
        timeout_seconds=NOMINATIM_TIMEOUT_SECONDS,
        retry=RetryPolicy(total=2, backoff_factor=0.5),
        # Public instances allow one request per second.
        ratelimit=RateLimit(max_calls=1, per_seconds=delay_seconds) if delay_seconds > 0 else None,
        max_concurrency=effective_concurrency,
        default_headers={"User-Agent": user_agent},
    )
    return NominatimConfig(
        endpoint=env_str("NOMINATIM_ENDPOINT", NOMINATIM_ENDPOINT),
        resilience=resilience,
    )
