"""Input file readers and the CSV / JSON audit outputs written by every job."""

from __future__ import annotations

import csv
import json
import re
import unicodedata
from datetime import datetime
from logging import getLogger
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, TypeAdapter

from venuerecon.domain.geocoding import RawInputRow
from venuerecon.domain.model import OsmElementKind, VenuePayload
from venuerecon.domain.resolution import MissingVenue

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence
    from pathlib import Path

    from venuerecon.domain.area import AreaResolution
    from venuerecon.domain.geocoding import GeocodeResult
    from venuerecon.domain.ports import OsmIngestEntry
    from venuerecon.domain.reconciliation import ReconcileReport

log = getLogger(__name__)

INPUT_ALIASES: dict[str, tuple[str, ...]] = {
    "name": ("nom", "name", "etablissement"),
    "address": ("adresse", "address", "voie", "rue"),
    "city": ("ville", "commune", "city"),
    "postcode": ("postcode", "cp", "code_postal", "code postal", "zip"),
}

GEOCODE_FLAG_COLUMNS = (
    "name",
    "address_input",
    "city_input",
    "postcode_input",
    "status",
    "reason",
    "score",
    "label",
    "latitude",
    "longitude",
)
LEDGER_COLUMNS = ("action", "name", "address", "city", "latitude", "longitude", "reason")
CONFLICT_COLUMNS = (
    "name",
    "existing_address",
    "existing_city",
    "new_address",
    "new_city",
    "reason",
)
DUPLICATE_COLUMNS = ("name", "duplicate_name", "address", "city", "duplicate_id", "reason")
AREA_COLUMNS = ("name", "relation_id", "admin_level", "population")
OSM_FLAG_COLUMNS = ("osm_type", "osm_id", "name", "reason", "details")

_ZERO_WIDTH = re.compile("[\u200b-\u200d\ufeff]")
_JSON = TypeAdapter(Any)


class InputFileError(ValueError):
    """The input file cannot be read or does not have the expected shape."""


def normalize_key(key: str) -> str:
    """Header key without BOM, accents, case or repeated whitespace."""

    decomposed = unicodedata.normalize("NFKD", key.replace("\ufeff", ""))
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    return " ".join(stripped.split()).lower()


def hard_trim(value: str | None) -> str:
    if value is None:
        return ""
    return _ZERO_WIDTH.sub("", value).replace("\u00a0", " ").strip()


def _pick(values: Mapping[str, str], aliases: Sequence[str]) -> str:
    for alias in aliases:
        if values.get(alias):
            return values[alias]
    # Loose headers such as "Nom de l'etablissement" or "Code postal (CP)".
    for key, value in values.items():
        if value and any(alias in key for alias in aliases):
            return value
    return ""


def alias_row(raw: Mapping[str | None, Any]) -> RawInputRow:
    values = {
        normalize_key(key): hard_trim(value if isinstance(value, str) else None)
        for key, value in raw.items()
        if key is not None
    }
    return RawInputRow.from_mapping(
        {field: _pick(values, aliases) for field, aliases in INPUT_ALIASES.items()}
    )


def _delimiter(header: str) -> str:
    return ";" if header.count(";") > header.count(",") else ","


def read_input_rows(path: Path) -> list[RawInputRow]:
    """Read an operator CSV (comma or semicolon separated) into aliased rows."""

    try:
        with path.open(encoding="utf-8-sig", newline="") as handle:
            header = handle.readline()
            handle.seek(0)
            reader = csv.DictReader(handle, delimiter=_delimiter(header))
            rows = [alias_row(raw) for raw in reader]
    except (OSError, UnicodeDecodeError, csv.Error) as exc:
        raise InputFileError(f"Cannot read input file {path}: {exc}") from exc
    log.info("Read %d rows from %s", len(rows), path)
    return rows


def read_json(path: Path) -> object:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise InputFileError(f"Cannot read JSON file {path}: {exc}") from exc


def read_records(path: Path) -> list[dict[str, Any]]:
    """Read a JSON array or a JSON-lines file of objects."""

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise InputFileError(f"Cannot read records file {path}: {exc}") from exc

    try:
        if text.lstrip().startswith("["):
            parsed = json.loads(text)
        else:
            parsed = [json.loads(line) for line in text.splitlines() if line.strip()]
    except json.JSONDecodeError as exc:
        raise InputFileError(f"Invalid JSON in {path}: {exc}") from exc

    if not all(isinstance(item, dict) for item in parsed):
        raise InputFileError(f"{path} must contain JSON objects only")
    return parsed


class VenueExportRow(BaseModel):
    """Store-shaped export line, as written by the fetch and resolve jobs."""

    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    address: str | None = None
    city: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    is_bar: bool | None = None
    image_url: str | None = None
    tags: tuple[str, ...] | None = None
    osm_type: OsmElementKind | None = None
    osm_id: int | None = None
    osm_url: str | None = None
    osm_tags_raw: dict[str, Any] | None = None
    address_details: dict[str, Any] | None = None
    contact: dict[str, Any] | None = None
    osm_venue_type: str | None = None
    opening_hours: str | None = None
    capacity: int | None = None
    live_music: bool | None = None
    website: str | None = None
    phone: str | None = None
    facebook: str | None = None
    instagram: str | None = None
    source: str | None = None
    osm_last_sync_at: datetime | None = None


def payload_from_record(record: Mapping[str, Any]) -> VenuePayload:
    row = VenueExportRow.model_validate(record)
    return VenuePayload(**row.model_dump(exclude_none=True))


def payload_to_record(payload: VenuePayload) -> dict[str, Any]:
    return to_jsonable(payload.to_dict())


def missing_venue_from_record(record: Mapping[str, Any]) -> MissingVenue:
    def text(*keys: str) -> str | None:
        for key in keys:
            value = record.get(key)
            if value is not None and str(value).strip():
                return str(value).strip()
        return None

    name = text("name", "nom")
    city = text("city", "ville")
    if not name or not city:
        raise InputFileError(f"Venue entry needs a name and a city: {dict(record)}")
    return MissingVenue(
        name=name,
        city=city,
        address=text("address", "adresse"),
        postcode=text("postcode", "code_postal", "cp"),
    )


def read_missing_venues(path: Path) -> list[MissingVenue]:
    """Accept a JSON array of venues or an object with a ``venues`` array."""

    parsed = read_json(path)
    if isinstance(parsed, dict) and isinstance(parsed.get("venues"), list):
        parsed = parsed["venues"]
    if not isinstance(parsed, list):
        raise InputFileError(f'{path} must be a JSON array or an object with key "venues"')
    return [missing_venue_from_record(item) for item in parsed if isinstance(item, dict)]


def read_name_lists(path: Path) -> tuple[list[str], list[str]]:
    """Return ``(source_names, store_names)`` from a two-array JSON object."""

    parsed = read_json(path)
    if isinstance(parsed, dict):
        source = parsed.get("source", parsed.get("nom_osm"))
        store = parsed.get("store", parsed.get("nom_bdd"))
        if isinstance(source, list) and isinstance(store, list):
            return [str(name) for name in source], [str(name) for name in store]
    raise InputFileError(f"{path} must contain 'source' and 'store' arrays")


def to_jsonable(value: object) -> Any:
    return _JSON.dump_python(value, mode="json")


def write_json(path: Path, data: object) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    text = json.dumps(to_jsonable(data), indent=2, ensure_ascii=False)
    path.write_text(text + "\n", encoding="utf-8")


def write_jsonl(path: Path, records: Iterable[object]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        for record in records:
            handle.write(json.dumps(to_jsonable(record), ensure_ascii=False) + "\n")


def write_lines(path: Path, lines: Iterable[str]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        for line in lines:
            handle.write(line + "\n")


def write_csv(path: Path, columns: Sequence[str], rows: Iterable[Mapping[str, Any]]) -> int:
    """Write ``rows`` under a fixed header; missing values become empty cells."""

    path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=list(columns), extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            writer.writerow({key: "" if value is None else value for key, value in row.items()})
            count += 1
    return count


def geocode_flag_row(result: GeocodeResult) -> dict[str, Any]:
    candidate = result.candidate
    return {
        "name": result.row.name,
        "address_input": result.row.address,
        "city_input": result.row.city,
        "postcode_input": result.row.postcode,
        "status": result.status.value,
        "reason": result.detail or (result.reason.value if result.reason else None),
        "score": candidate.score if candidate else None,
        "label": candidate.label if candidate else None,
        "latitude": candidate.latitude if candidate else None,
        "longitude": candidate.longitude if candidate else None,
    }


def write_geocode_flags(path: Path, results: Iterable[GeocodeResult]) -> int:
    return write_csv(path, GEOCODE_FLAG_COLUMNS, (geocode_flag_row(result) for result in results))


def write_reconcile_outputs(out_dir: Path, report: ReconcileReport) -> None:
    """``upserts.csv`` ledger plus the conflict and duplicate audits."""

    write_csv(
        out_dir / "upserts.csv",
        LEDGER_COLUMNS,
        (
            {
                "action": decision.action.value,
                "name": decision.name,
                "address": decision.address,
                "city": decision.city,
                "latitude": decision.latitude,
                "longitude": decision.longitude,
                "reason": decision.ledger_reason,
            }
            for decision in report.decisions
        ),
    )
    write_csv(
        out_dir / "conflicts.csv",
        CONFLICT_COLUMNS,
        (
            {
                "name": conflict.name,
                "existing_address": conflict.existing_address,
                "existing_city": conflict.existing_city,
                "new_address": conflict.new_address,
                "new_city": conflict.new_city,
                "reason": conflict.reason.value,
            }
            for conflict in report.conflicts
        ),
    )
    write_csv(
        out_dir / "duplicates.csv",
        DUPLICATE_COLUMNS,
        (
            {
                "name": duplicate.name,
                "duplicate_name": duplicate.duplicate_name,
                "address": duplicate.address,
                "city": duplicate.city,
                "duplicate_id": str(duplicate.duplicate_id),
                "reason": duplicate.reason.value,
            }
            for duplicate in report.duplicates
        ),
    )


def write_area_candidates(path: Path, area: AreaResolution) -> int:
    return write_csv(
        path,
        AREA_COLUMNS,
        (
            {
                "name": candidate.name,
                "relation_id": candidate.relation_id,
                "admin_level": candidate.admin_level,
                "population": candidate.population,
            }
            for candidate in area.candidates
        ),
    )


def write_osm_flags(path: Path, entries: Iterable[OsmIngestEntry]) -> int:
    return write_csv(
        path,
        OSM_FLAG_COLUMNS,
        (
            {
                "osm_type": entry.identity.kind.value,
                "osm_id": entry.identity.id,
                "name": entry.name,
                "reason": entry.issue.value if entry.issue else None,
                "details": entry.details,
            }
            for entry in entries
        ),
    )
