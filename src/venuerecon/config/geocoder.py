"""BAN geocoder configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_float, env_int, env_str
from .http_resilience import ResilienceConfig, RetryPolicy

BAN_BASE_URL = "https://api-adresse.data.gouv.fr"
BAN_TIMEOUT_SECONDS = 5.0
DEFAULT_GEOCODE_CONCURRENCY = 5
DEFAULT_MIN_SCORE = 0.8
CACHE_FILENAME = "ban_cache.jsonl"


@dataclass(frozen=True, slots=True)
class GeocoderConfig:
    """Holds BAN geocoder settings."""

    resilience: ResilienceConfig
    min_score: float = DEFAULT_MIN_SCORE
    cache_filename: str = CACHE_FILENAME


def build_geocoder_resilience(
    *, base_url: str = BAN_BASE_URL, concurrency: int = DEFAULT_GEOCODE_CONCURRENCY
) -> ResilienceConfig:
    return ResilienceConfig(
        name="ban",
        base_url=base_url,
        timeout_seconds=BAN_TIMEOUT_SECONDS,
        retry=RetryPolicy(total=2, backoff_factor=0.2),
        max_concurrency=concurrency,
    )


def get_geocoder_config(
    *,
    concurrency: int | None = None,
    min_score: float | None = None,
) -> GeocoderConfig:
    effective_concurrency = concurrency or env_int(
        "GEOCODE_CONCURRENCY", DEFAULT_GEOCODE_CONCURRENCY
    )
    return GeocoderConfig(
        resilience=build_geocoder_resilience(
            base_url=env_str("BAN_BASE_URL", BAN_BASE_URL),
            concurrency=effective_concurrency,
        ),
        min_score=min_score if min_score is not None else env_float(
            "GEOCODE_SCORE_MIN", DEFAULT_MIN_SCORE
        ),
    )
