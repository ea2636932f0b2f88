from __future__ import annotations

import csv
import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest

from venuerecon.adapters.reports import (
    InputFileError,
    alias_row,
    hard_trim,
    normalize_key,
    payload_from_record,
    payload_to_record,
    read_input_rows,
    read_missing_venues,
    read_name_lists,
    read_records,
    write_csv,
    write_json,
)
from venuerecon.domain.geocoding import RawInputRow
from venuerecon.domain.model import OsmElementKind, VenuePayload
from venuerecon.domain.resolution import MissingVenue

if TYPE_CHECKING:
    from pathlib import Path


def test_normalize_key_and_hard_trim() -> None:
    assert normalize_key("\ufeffCode  Postal") == "code postal"
    assert normalize_key("Établissement") == "etablissement"
    assert hard_trim("\u200bLe Chat\u00a0Noir\ufeff ") == "Le Chat Noir"
    assert hard_trim(None) == ""


def test_alias_row_accepts_french_and_loose_headers() -> None:
    row = alias_row(
        {
            "Nom de l'établissement": "Pannonica",
            "Adresse": " 9 rue Basse Porte ",
            "Commune": "Nantes",
            "Code postal (CP)": "44000",
            None: ["overflow"],
        }
    )

    assert row == RawInputRow(
        name="Pannonica", address="9 rue Basse Porte", city="Nantes", postcode="44000"
    )


@pytest.mark.parametrize("delimiter", [",", ";"])
def test_read_input_rows_detects_delimiter(tmp_path: Path, delimiter: str) -> None:
    path = tmp_path / "venues.csv"
    lines = [
        delimiter.join(["nom", "adresse", "ville", "cp"]),
        delimiter.join(["Pannonica", "9 rue Basse Porte", "Nantes", "44000"]),
    ]
    path.write_text("\ufeff" + "\n".join(lines) + "\n", encoding="utf-8")

    [row] = read_input_rows(path)

    assert row.name == "Pannonica"
    assert row.postcode == "44000"


def test_read_input_rows_missing_file(tmp_path: Path) -> None:
    with pytest.raises(InputFileError):
        read_input_rows(tmp_path / "missing.csv")


def test_read_records_accepts_array_and_jsonl(tmp_path: Path) -> None:
    array = tmp_path / "venues.json"
    array.write_text('[{"name": "Cork"}]', encoding="utf-8")
    lines = tmp_path / "venues.jsonl"
    lines.write_text('{"name": "Cork"}\n\n{"name": "Zinc"}\n', encoding="utf-8")
    scalars = tmp_path / "scalars.json"
    scalars.write_text("[1, 2]", encoding="utf-8")

    assert read_records(array) == [{"name": "Cork"}]
    assert [record["name"] for record in read_records(lines)] == ["Cork", "Zinc"]
    with pytest.raises(InputFileError):
        read_records(scalars)


def test_payload_records_round_trip_through_json() -> None:
    payload = VenuePayload(
        name="Cork",
        tags=("bar",),
        osm_type=OsmElementKind.NODE,
        osm_id=5,
        osm_last_sync_at=datetime(2025, 3, 1, tzinfo=UTC),
    )

    record = payload_to_record(payload)

    assert record["osm_type"] == "node"
    assert record["tags"] == ["bar"]
    assert payload_from_record(json.loads(json.dumps(record))) == payload


def test_payload_from_record_ignores_unknown_keys() -> None:
    payload = payload_from_record({"name": "Cork", "id": "x", "created_at": "now"})

    assert payload == VenuePayload(name="Cork")


def test_read_missing_venues_accepts_wrapped_lists(tmp_path: Path) -> None:
    path = tmp_path / "missing.json"
    path.write_text(
        json.dumps({"venues": [{"nom": "Cork", "ville": "Nantes", "cp": 44000}]}),
        encoding="utf-8",
    )

    assert read_missing_venues(path) == [MissingVenue(name="Cork", city="Nantes", postcode="44000")]


def test_read_missing_venues_requires_name_and_city(tmp_path: Path) -> None:
    path = tmp_path / "missing.json"
    path.write_text('[{"name": "Cork"}]', encoding="utf-8")

    with pytest.raises(InputFileError):
        read_missing_venues(path)


def test_read_name_lists_accepts_both_key_styles(tmp_path: Path) -> None:
    path = tmp_path / "names.json"
    path.write_text('{"nom_osm": ["Cork"], "nom_bdd": ["Le Cork"]}', encoding="utf-8")

    assert read_name_lists(path) == (["Cork"], ["Le Cork"])

    path.write_text('{"source": ["Cork"]}', encoding="utf-8")
    with pytest.raises(InputFileError):
        read_name_lists(path)


def test_write_csv_blanks_missing_values(tmp_path: Path) -> None:
    path = tmp_path / "out" / "rows.csv"

    count = write_csv(path, ("name", "score"), [{"name": "Cork", "score": None}, {"name": "Zinc"}])

    with path.open(encoding="utf-8", newline="") as handle:
        rows = list(csv.DictReader(handle))
    assert count == 2
    assert rows == [{"name": "Cork", "score": ""}, {"name": "Zinc", "score": ""}]


def test_write_json_serializes_domain_values(tmp_path: Path) -> None:
    path = tmp_path / "report.json"

    write_json(path, {"kind": OsmElementKind.WAY, "at": datetime(2025, 3, 1, tzinfo=UTC)})

    assert json.loads(path.read_text(encoding="utf-8")) == {
        "kind": "way",
        "at": "2025-03-01T00:00:00Z",
    }
