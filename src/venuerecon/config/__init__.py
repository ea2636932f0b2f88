"""Application configuration helpers."""

from __future__ import annotations

from venuerecon.common.logging import configure_logging

from .env import env_float, env_int, env_str
from .errors import ConfigurationError
from .geocoder import GeocoderConfig, get_geocoder_config
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .nominatim import NominatimConfig, get_nominatim_config
from .overpass import OverpassConfig, get_overpass_config
from .reconcile import BatchMatchConfig, ReconcileConfig, SimilarityThresholds
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "BatchMatchConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "GeocoderConfig",
    "NominatimConfig",
    "OverpassConfig",
    "RateLimit",
    "ReconcileConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "SimilarityThresholds",
    "StorageConfig",
    "configure_logging",
    "env_float",
    "env_int",
    "env_str",
    "get_database_config",
    "get_geocoder_config",
    "get_nominatim_config",
    "get_overpass_config",
    "get_storage_config",
]
