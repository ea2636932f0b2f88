"""Application orchestration entry points.

Each job reads its input, runs the fetch stage on one event loop, applies the
synchronous reconciliation or matching step and always writes its audit files
into ``out_dir``.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import Callable
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, Any

from venuerecon.adapters.ban import BanGeocoder
from venuerecon.adapters.http_resilience import ResilientClient
from venuerecon.adapters.lookup_cache import LookupCache
from venuerecon.adapters.nominatim import NominatimClient
from venuerecon.adapters.overpass import OverpassClient
from venuerecon.adapters.reports import (
    payload_from_record,
    payload_to_record,
    read_input_rows,
    read_missing_venues,
    read_name_lists,
    read_records,
    write_area_candidates,
    write_geocode_flags,
    write_json,
    write_jsonl,
    write_lines,
    write_osm_flags,
    write_reconcile_outputs,
)
from venuerecon.adapters.sql_export import build_update_sql, build_upsert_sql, prepare_inserts
from venuerecon.adapters.sqlalchemy import VenueDatabase
from venuerecon.config import (
    get_geocoder_config,
    get_nominatim_config,
    get_overpass_config,
)
from venuerecon.config.overpass import DEFAULT_ADMIN_LEVEL
from venuerecon.domain.geocoding import GeocodeBatch, geocode_records
from venuerecon.domain.homogenization import HomogenizeReport, homogenize
from venuerecon.domain.name_matching import NameMatchReport, match_names
from venuerecon.domain.osm_ingest import OsmFetchReport, build_osm_payload, fetch_osm_venues
from venuerecon.domain.reconciliation import ReconcileReport, reconcile_geocoded, reconcile_osm
from venuerecon.domain.resolution import (
    DEFAULT_ADDRESS_THRESHOLD,
    DEFAULT_NAME_THRESHOLD,
    ResolutionReport,
    resolve_missing,
)

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from venuerecon.config import (
        BatchMatchConfig,
        GeocoderConfig,
        NominatimConfig,
        OverpassConfig,
        ReconcileConfig,
        ResilienceConfig,
    )
    from venuerecon.domain.model import VenueRecord

ClientFactory = Callable[["ResilienceConfig"], ResilientClient]

log = getLogger(__name__)

DEFAULT_COUNTRY = "FR"


@dataclass(slots=True)
class GeocodeUpsertResult:
    batch: GeocodeBatch
    reconcile: ReconcileReport


@dataclass(slots=True)
class OsmUpsertResult:
    fetch: OsmFetchReport
    reconcile: ReconcileReport | None


def _utcnow() -> datetime:
    return datetime.now(UTC)


@contextmanager
def _database(database: VenueDatabase | None) -> Iterator[VenueDatabase]:
    if database is not None:
        yield database
        return
    with VenueDatabase.open() as opened:
        yield opened


def _store_summary(row: VenueRecord) -> dict[str, Any]:
    return {"id": row.id, "name": row.name, "address": row.address, "city": row.city}


# Geocoding -----------------------------------------------------------------


async def _geocode_rows(
    input_path: Path,
    *,
    config: GeocoderConfig,
    cache: LookupCache,
    client_factory: ClientFactory | None,
) -> GeocodeBatch:
    rows = read_input_rows(input_path)
    async with (
        cache,
        BanGeocoder(config=config, cache=cache, client_factory=client_factory) as geocoder,
    ):
        return await geocode_records(rows, geocoder, min_score=config.min_score)


def _run_geocode(
    input_path: Path,
    *,
    out_dir: Path,
    resume: bool,
    config: GeocoderConfig | None,
    client_factory: ClientFactory | None,
) -> tuple[GeocodeBatch, GeocoderConfig]:
    cfg = config or get_geocoder_config()
    out_dir.mkdir(parents=True, exist_ok=True)
    cache = LookupCache(out_dir / cfg.cache_filename, fresh=not resume)
    batch = asyncio.run(
        _geocode_rows(input_path, config=cfg, cache=cache, client_factory=client_factory)
    )
    write_geocode_flags(out_dir / "ambiguous.csv", batch.flagged)
    return batch, cfg


def _geocode_summary(
    mode: str, input_path: Path, batch: GeocodeBatch, reconcile: ReconcileReport | None
) -> dict[str, Any]:
    stats = batch.stats
    summary: dict[str, Any] = {
        "mode": mode,
        "input": str(input_path),
        "total": stats.total,
        "ok": stats.ok,
        "ambiguous": stats.ambiguous,
        "errors": stats.errors,
        "api_calls": stats.api_calls,
        "from_cache": stats.from_cache,
    }
    if reconcile is not None:
        counters = reconcile.counters
        summary.update(
            inserted=counters.inserted,
            updated=counters.updated,
            conflicts=counters.conflicts,
            duplicates=counters.duplicates,
            upsert_errors=counters.errors,
            dry_run=reconcile.dry_run,
        )
    summary["timestamp"] = _utcnow()
    return summary


def geocode_file(
    input_path: Path,
    *,
    out_dir: Path,
    resume: bool = False,
    config: GeocoderConfig | None = None,
    client_factory: ClientFactory | None = None,
) -> GeocodeBatch:
    """Geocode an input CSV without touching the store."""

    log.info("Starting geocode: input=%s, out=%s, resume=%s", input_path, out_dir, resume)
    batch, _ = _run_geocode(
        input_path, out_dir=out_dir, resume=resume, config=config, client_factory=client_factory
    )
    write_json(out_dir / "report.json", _geocode_summary("geocode", input_path, batch, None))
    return batch


def geocode_and_upsert(
    input_path: Path,
    *,
    out_dir: Path,
    dry_run: bool = False,
    resume: bool = False,
    database: VenueDatabase | None = None,
    geocoder_config: GeocoderConfig | None = None,
    reconcile_config: ReconcileConfig | None = None,
    client_factory: ClientFactory | None = None,
) -> GeocodeUpsertResult:
    """Geocode an input CSV, then reconcile the usable rows with the store."""

    log.info(
        "Starting geocode upsert: input=%s, out=%s, dry_run=%s", input_path, out_dir, dry_run
    )
    batch, _ = _run_geocode(
        input_path,
        out_dir=out_dir,
        resume=resume,
        config=geocoder_config,
        client_factory=client_factory,
    )
    with _database(database) as db:
        report = reconcile_geocoded(
            batch.results, db.store(), dry_run=dry_run, config=reconcile_config
        )
    write_reconcile_outputs(out_dir, report)
    write_json(out_dir / "report.json", _geocode_summary("run", input_path, batch, report))
    return GeocodeUpsertResult(batch=batch, reconcile=report)


# OSM amenities --------------------------------------------------------------


async def _fetch_city(
    city: str,
    *,
    country: str | None,
    admin_level: int,
    config: OverpassConfig,
    cache: LookupCache,
    client_factory: ClientFactory | None,
) -> OsmFetchReport:
    async with (
        cache,
        OverpassClient(
            config=config, default_city=city, cache=cache, client_factory=client_factory
        ) as client,
    ):
        return await fetch_osm_venues(
            client, client, city, country=country, admin_level=admin_level
        )


def _write_fetch_outputs(out_dir: Path, report: OsmFetchReport, synced_at: datetime) -> None:
    area = report.area
    if len(area.candidates) > 1:
        write_area_candidates(out_dir / "ambiguous_areas.csv", area)
    summary: dict[str, Any] = {
        "city": report.city,
        "status": "ok" if report.area_found else "area_not_found",
        "area_id": area.area_id,
        "relation_id": area.selected.relation_id if area.selected else None,
        "area_name": area.selected.name if area.selected else None,
        "area_ambiguous": area.ambiguous,
        "scope_override": area.override.boundary_name if area.override else None,
        "total": report.stats.total,
        "kept": report.stats.kept,
        "ambiguous": report.stats.ambiguous,
        "duplicates": report.stats.duplicates,
        "api_calls": report.stats.api_calls,
        "from_cache": report.stats.from_cache,
        "timestamp": synced_at,
    }
    write_json(out_dir / "report.json", summary)
    if not report.area_found:
        return
    write_osm_flags(out_dir / "ambiguous.csv", report.flagged)
    write_jsonl(
        out_dir / "venues.db.jsonl",
        (
            payload_to_record(build_osm_payload(candidate, synced_at=synced_at))
            for candidate in report.venues
        ),
    )


def fetch_osm(
    city: str,
    *,
    out_dir: Path,
    country: str | None = DEFAULT_COUNTRY,
    admin_level: int = DEFAULT_ADMIN_LEVEL,
    resume: bool = False,
    config: OverpassConfig | None = None,
    client_factory: ClientFactory | None = None,
) -> OsmFetchReport:
    """Collect a city's amenity venues and export them in store shape."""

    cfg = config or get_overpass_config()
    out_dir.mkdir(parents=True, exist_ok=True)
    cache = LookupCache(out_dir / cfg.cache_filename, fresh=not resume)
    log.info("Starting OSM fetch: city=%s, country=%s, level=%s", city, country, admin_level)
    report = asyncio.run(
        _fetch_city(
            city,
            country=country,
            admin_level=admin_level,
            config=cfg,
            cache=cache,
            client_factory=client_factory,
        )
    )
    _write_fetch_outputs(out_dir, report, _utcnow())
    return report


def fetch_and_upsert_osm(
    city: str,
    *,
    out_dir: Path,
    country: str | None = DEFAULT_COUNTRY,
    admin_level: int = DEFAULT_ADMIN_LEVEL,
    dry_run: bool = False,
    resume: bool = False,
    database: VenueDatabase | None = None,
    overpass_config: OverpassConfig | None = None,
    reconcile_config: ReconcileConfig | None = None,
    client_factory: ClientFactory | None = None,
) -> OsmUpsertResult:
    fetch = fetch_osm(
        city,
        out_dir=out_dir,
        country=country,
        admin_level=admin_level,
        resume=resume,
        config=overpass_config,
        client_factory=client_factory,
    )
    if not fetch.area_found:
        log.error("No administrative area found for %s; nothing to upsert", city)
        return OsmUpsertResult(fetch=fetch, reconcile=None)

    with _database(database) as db:
        report = reconcile_osm(fetch.venues, db.store(), dry_run=dry_run, config=reconcile_config)
    write_reconcile_outputs(out_dir, report)
    return OsmUpsertResult(fetch=fetch, reconcile=report)


# Offline batch jobs ---------------------------------------------------------


def homogenize_export(
    export_path: Path,
    *,
    out_dir: Path,
    city: str | None = None,
    database: VenueDatabase | None = None,
    config: BatchMatchConfig | None = None,
) -> HomogenizeReport:
    """Match an amenity export against store rows lacking an OSM identity."""

    started = time.perf_counter()
    candidates = [payload_from_record(record) for record in read_records(export_path)]
    with _database(database) as db:
        rows = db.store().find_missing_external_identity(city)
    report = homogenize(rows, candidates, config=config, synced_at=_utcnow())

    out_dir.mkdir(parents=True, exist_ok=True)
    write_json(
        out_dir / "matched.json",
        [
            {
                **_store_summary(match.store_row),
                "normalized_name": match.normalized_name,
                "distance_m": match.distance_m,
                "patch": match.patch.to_dict(),
            }
            for match in report.matched
        ],
    )
    write_json(
        out_dir / "ambiguous.json",
        [
            {
                "normalized_name": bucket.normalized_name,
                "reason": bucket.reason,
                "distance_m": bucket.distance_m,
                "store_rows": [_store_summary(row) for row in bucket.store_rows],
                "candidates": [candidate.to_dict() for candidate in bucket.candidates],
            }
            for bucket in report.ambiguous
        ],
    )
    write_json(
        out_dir / "solo_candidates.json",
        [candidate.to_dict() for candidate in report.solo_candidates],
    )
    write_json(out_dir / "solo_store.json", [_store_summary(row) for row in report.solo_store])
    write_lines(
        out_dir / "homogenize_updates.sql",
        (build_update_sql(match.store_row.id, match.patch) for match in report.patches),
    )
    write_json(
        out_dir / "report.json",
        {
            "city": city,
            "store_total": report.store_total,
            "candidate_total": report.candidate_total,
            "matched": len(report.matched),
            "patches": len(report.patches),
            "ambiguous": len(report.ambiguous),
            "solo_candidates": len(report.solo_candidates),
            "solo_store": len(report.solo_store),
            "duration_ms": round((time.perf_counter() - started) * 1000),
        },
    )
    return report


def match_name_lists(
    input_path: Path,
    *,
    out_dir: Path,
    config: BatchMatchConfig | None = None,
) -> NameMatchReport:
    source, store = read_name_lists(input_path)
    report = match_names(source, store, config)
    report.matches.sort(key=lambda pair: pair.source_name.casefold())
    report.ambiguous.sort(key=lambda entry: entry.source_name.casefold())
    report.solo_source.sort(key=str.casefold)
    report.solo_store.sort(key=str.casefold)

    out_dir.mkdir(parents=True, exist_ok=True)
    write_json(out_dir / "probable_matches.json", report.matches)
    write_json(out_dir / "ambiguous.json", report.ambiguous)
    write_json(out_dir / "solo_source.json", report.solo_source)
    write_json(out_dir / "solo_store.json", report.solo_store)
    write_json(
        out_dir / "report.json",
        {
            "source_total": len(source),
            "store_total": len(store),
            "matched": len(report.matches),
            "ambiguous": len(report.ambiguous),
            "solo_source": len(report.solo_source),
            "solo_store": len(report.solo_store),
        },
    )
    log.info(
        "Name matching: matched=%d, ambiguous=%d, solo_source=%d, solo_store=%d",
        len(report.matches),
        len(report.ambiguous),
        len(report.solo_source),
        len(report.solo_store),
    )
    return report


async def _resolve(
    input_path: Path,
    *,
    country: str,
    name_threshold: int,
    address_threshold: int,
    config: NominatimConfig,
    cache: LookupCache,
    client_factory: ClientFactory | None,
    synced_at: datetime,
) -> ResolutionReport:
    venues = read_missing_venues(input_path)
    async with (
        cache,
        NominatimClient(config=config, cache=cache, client_factory=client_factory) as client,
    ):
        return await resolve_missing(
            venues,
            client,
            country=country,
            name_threshold=name_threshold,
            address_threshold=address_threshold,
            synced_at=synced_at,
        )


def resolve_missing_venues(
    input_path: Path,
    *,
    out_dir: Path,
    country: str = DEFAULT_COUNTRY,
    name_threshold: int = DEFAULT_NAME_THRESHOLD,
    address_threshold: int = DEFAULT_ADDRESS_THRESHOLD,
    resume: bool = False,
    config: NominatimConfig | None = None,
    client_factory: ClientFactory | None = None,
) -> ResolutionReport:
    """Look up venues missing from the amenity export through the alternate geocoder."""

    started = time.perf_counter()
    cfg = config or get_nominatim_config()
    out_dir.mkdir(parents=True, exist_ok=True)
    cache = LookupCache(out_dir / cfg.cache_filename, fresh=not resume)
    report = asyncio.run(
        _resolve(
            input_path,
            country=country,
            name_threshold=name_threshold,
            address_threshold=address_threshold,
            config=cfg,
            cache=cache,
            client_factory=client_factory,
            synced_at=_utcnow(),
        )
    )

    def resolved_entries(kind: str) -> list[dict[str, Any]]:
        entries = report.found_by_name if kind == "name" else report.found_by_address
        return [
            {
                "input": entry.venue,
                "place": entry.place,
                "venue": entry.payload.to_dict(),
                "score": entry.score,
                "expected_name": entry.venue.name,
                "found_name": entry.found_name,
            }
            for entry in entries
        ]

    write_json(out_dir / "resolved.found_by_name.json", resolved_entries("name"))
    write_json(out_dir / "resolved.found_by_address.json", resolved_entries("address"))
    write_json(out_dir / "resolved.not_found.json", report.not_found)
    write_jsonl(
        out_dir / "venues.db.jsonl", [payload_to_record(entry.payload) for entry in report.resolved]
    )
    write_lines(
        out_dir / "inject.sql",
        (build_upsert_sql(uuid.uuid4(), entry.payload) for entry in report.resolved),
    )
    write_json(
        out_dir / "report.json",
        {
            "total": report.total,
            "found_by_name": len(report.found_by_name),
            "found_by_address": len(report.found_by_address),
            "not_found": len(report.not_found),
            "duration_ms": round((time.perf_counter() - started) * 1000),
        },
    )
    return report


def prepare_insert_file(export_path: Path, *, out_dir: Path) -> int:
    """Turn a store-shaped export into ``insert_new_venues.sql``; return the statement count."""

    records = read_records(export_path)
    statements = prepare_inserts(records)
    out_dir.mkdir(parents=True, exist_ok=True)
    write_lines(out_dir / "insert_new_venues.sql", statements)
    write_json(out_dir / "report.json", {"total": len(records), "prepared": len(statements)})
    log.info("Prepared %d insert statements from %d records", len(statements), len(records))
    return len(statements)
