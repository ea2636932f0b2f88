from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from venuerecon.app import (
    DEFAULT_COUNTRY,
    fetch_and_upsert_osm,
    fetch_osm,
    geocode_and_upsert,
    geocode_file,
    homogenize_export,
    match_name_lists,
    prepare_insert_file,
    resolve_missing_venues,
)
from venuerecon.config import configure_logging, get_storage_config
from venuerecon.config.overpass import DEFAULT_ADMIN_LEVEL
from venuerecon.domain.resolution import DEFAULT_ADDRESS_THRESHOLD, DEFAULT_NAME_THRESHOLD

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _add_out(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--out",
        type=Path,
        help="Directory for audit files and caches (defaults to <data dir>/out/<command>)",
    )


def _add_resume(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--continue",
        dest="resume",
        action="store_true",
        help="Reuse the lookup cache of a previous run instead of starting fresh",
    )


def _add_city(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--city", type=str, required=True, help="City to collect venues for")
    parser.add_argument(
        "--country",
        type=str,
        default=DEFAULT_COUNTRY,
        help="ISO 3166-1 country code scoping the boundary search (default: %(default)s)",
    )
    parser.add_argument(
        "--admin-level",
        type=int,
        default=DEFAULT_ADMIN_LEVEL,
        help="Administrative level of the city boundary (default: %(default)s)",
    )


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile venue data with external sources")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("geocode", "Geocode an input CSV without writing to the store"),
        ("run", "Geocode an input CSV and upsert the results"),
    ):
        command = subparsers.add_parser(name, help=help_text)
        command.add_argument("--input", type=Path, required=True, help="Input CSV file")
        _add_out(command)
        _add_resume(command)
        if name == "run":
            command.add_argument(
                "--dry-run", action="store_true", help="Decide every action without writing"
            )

    osm_fetch = subparsers.add_parser("osm-fetch", help="Collect a city's amenity venues")
    _add_city(osm_fetch)
    _add_out(osm_fetch)
    _add_resume(osm_fetch)

    osm_upsert = subparsers.add_parser(
        "osm-upsert", help="Collect a city's amenity venues and upsert them"
    )
    _add_city(osm_upsert)
    _add_out(osm_upsert)
    _add_resume(osm_upsert)
    osm_upsert.add_argument(
        "--dry-run", action="store_true", help="Decide every action without writing"
    )

    homogenize = subparsers.add_parser(
        "homogenize", help="Match an amenity export against store rows lacking an OSM identity"
    )
    homogenize.add_argument(
        "--input", type=Path, required=True, help="Store-shaped JSON or JSONL export"
    )
    homogenize.add_argument("--city", type=str, help="Restrict store rows to one city")
    _add_out(homogenize)

    names = subparsers.add_parser("match-names", help="Pair two lists of venue names")
    names.add_argument(
        "--input",
        type=Path,
        required=True,
        help="JSON object with 'source' and 'store' name arrays",
    )
    _add_out(names)

    resolve = subparsers.add_parser(
        "resolve-missing", help="Look up unmatched venues through the alternate geocoder"
    )
    resolve.add_argument("--input", type=Path, required=True, help="JSON list of venues")
    resolve.add_argument(
        "--country",
        type=str,
        default=DEFAULT_COUNTRY,
        help="Country code added to searches (default: %(default)s)",
    )
    resolve.add_argument(
        "--name-threshold",
        type=int,
        default=DEFAULT_NAME_THRESHOLD,
        help="Minimum score for a free-text match (default: %(default)s)",
    )
    resolve.add_argument(
        "--address-threshold",
        type=int,
        default=DEFAULT_ADDRESS_THRESHOLD,
        help="Minimum score for a structured address match (default: %(default)s)",
    )
    _add_out(resolve)
    _add_resume(resolve)

    inserts = subparsers.add_parser(
        "prepare-inserts", help="Render a store-shaped export as INSERT statements"
    )
    inserts.add_argument(
        "--input", type=Path, required=True, help="Store-shaped JSON or JSONL export"
    )
    _add_out(inserts)

    return parser.parse_args(list(argv))


def _validate(args: argparse.Namespace) -> None:
    input_path: Path | None = getattr(args, "input", None)
    if input_path is not None and not input_path.is_file():
        raise ValueError(f"Input file not found: {input_path}")
    if getattr(args, "city", None) is not None and not args.city.strip():
        raise ValueError("City must not be blank")
    if getattr(args, "admin_level", 1) < 1:
        raise ValueError("Admin level must be positive")
    for name in ("name_threshold", "address_threshold"):
        if getattr(args, name, 0) < 0:
            raise ValueError(f"{name.replace('_', ' ').capitalize()} must be non-negative")


def _out_dir(args: argparse.Namespace) -> Path:
    if args.out is not None:
        return args.out
    return get_storage_config().output_dir() / args.command


def _dispatch(args: argparse.Namespace) -> None:
    out_dir = _out_dir(args)
    command = args.command
    if command == "geocode":
        batch = geocode_file(args.input, out_dir=out_dir, resume=args.resume)
        log.info("Geocode finished: ok=%d, flagged=%d", len(batch.ok), len(batch.flagged))
    elif command == "run":
        result = geocode_and_upsert(
            args.input, out_dir=out_dir, dry_run=args.dry_run, resume=args.resume
        )
        counters = result.reconcile.counters
        log.info(
            "Run finished: inserted=%d, updated=%d, conflicts=%d, duplicates=%d",
            counters.inserted,
            counters.updated,
            counters.conflicts,
            counters.duplicates,
        )
    elif command == "osm-fetch":
        report = fetch_osm(
            args.city,
            out_dir=out_dir,
            country=args.country,
            admin_level=args.admin_level,
            resume=args.resume,
        )
        if not report.area_found:
            raise RuntimeError(f"No administrative area found for {args.city}")
    elif command == "osm-upsert":
        result = fetch_and_upsert_osm(
            args.city,
            out_dir=out_dir,
            country=args.country,
            admin_level=args.admin_level,
            dry_run=args.dry_run,
            resume=args.resume,
        )
        if result.reconcile is None:
            raise RuntimeError(f"No administrative area found for {args.city}")
    elif command == "homogenize":
        homogenize_export(args.input, out_dir=out_dir, city=args.city)
    elif command == "match-names":
        match_name_lists(args.input, out_dir=out_dir)
    elif command == "resolve-missing":
        resolve_missing_venues(
            args.input,
            out_dir=out_dir,
            country=args.country,
            name_threshold=args.name_threshold,
            address_threshold=args.address_threshold,
            resume=args.resume,
        )
    elif command == "prepare-inserts":
        prepare_insert_file(args.input, out_dir=out_dir)
    else:
        raise ValueError(f"Unsupported command: {command}")
    log.info("Outputs written to %s", out_dir)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args: argparse.Namespace
    try:
        parsed_args = _parse_args(args_list)
        configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)
        _validate(parsed_args)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        _dispatch(parsed_args)
    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
