from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from tests.support.venues import sequential_ids
from venuerecon.adapters.sql_export import (
    build_update_sql,
    build_upsert_sql,
    clean_record,
    prepare_inserts,
    strip_empty,
)
from venuerecon.domain.model import OsmElementKind, OsmIdentity, VenuePayload

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from venuerecon.adapters.sqlalchemy import VenueDatabase


def test_strip_empty_drops_nested_empty_values() -> None:
    assert strip_empty(
        {
            "name": "Cork",
            "tags": [],
            "latitude": float("nan"),
            "contact": {"website": None, "phone": None},
            "address_details": {"city": "Nantes", "extra": {}},
            "is_bar": False,
        }
    ) == {"name": "Cork", "address_details": {"city": "Nantes"}, "is_bar": False}


def test_clean_record_keeps_typed_store_columns_only() -> None:
    payload = clean_record(
        {
            "name": "Cork",
            "id": "ignored",
            "unknown": 1,
            "tags": ["bar"],
            "osm_type": "way",
            "osm_last_sync_at": "2025-03-01T00:00:00Z",
            "website": None,
        }
    )

    assert payload == VenuePayload(
        name="Cork",
        tags=("bar",),
        osm_type=OsmElementKind.WAY,
        osm_last_sync_at=datetime(2025, 3, 1, tzinfo=UTC),
    )


def test_prepare_inserts_renders_one_statement_per_record() -> None:
    statements = prepare_inserts(
        [
            {"name": "Cork", "city": "Nantes", "is_bar": True},
            {"unknown": "only"},
            {"city": "Nantes"},
            {"name": "Zinc", "latitude": "not a number"},
            {"name": "L'Olympic", "latitude": 47.2},
        ],
        schema=None,
        id_factory=sequential_ids(),
    )

    assert len(statements) == 2
    cork, olympic = statements
    assert cork.startswith("INSERT INTO venues (id, name, city, is_bar) VALUES (")
    assert "'00000000-0000-0000-0000-000000000001'" in cork
    assert cork.endswith("'Cork', 'Nantes', true);")
    assert olympic.startswith("INSERT INTO venues (id, name, latitude) VALUES (")
    assert olympic.endswith("'L''Olympic', 47.2);")


def test_prepare_inserts_renders_tags_and_json_columns_as_stored() -> None:
    [statement] = prepare_inserts(
        [
            {
                "name": "Zinc",
                "tags": ["bar"],
                "contact": {"website": "https://zinc.example"},
                "osm_type": "way",
                "osm_id": 7,
            }
        ],
        id_factory=sequential_ids(),
    )

    assert statement.startswith("INSERT INTO public.venues (")
    assert "ARRAY" not in statement
    assert "::jsonb" not in statement
    assert """'["bar"]'""" in statement
    assert """'{"website":"https://zinc.example"}'""" in statement
    assert "'way', 7" in statement


def test_prepared_inserts_replay_against_the_migrated_store(
    sqlite_engine: Engine, venue_database: VenueDatabase
) -> None:
    statements = prepare_inserts(
        [
            {
                "name": "Zinc",
                "city": "Nantes",
                "is_bar": True,
                "tags": ["bar", "rock'n'roll"],
                "contact": {"website": "https://zinc.example"},
                "osm_tags_raw": {"amenity": "bar", "name": "Zinc"},
                "osm_type": "way",
                "osm_id": 7,
            }
        ],
        schema=None,
        id_factory=sequential_ids(),
    )

    with sqlite_engine.begin() as connection:
        for statement in statements:
            connection.exec_driver_sql(statement)

    row = venue_database.store().find_by_external_identity(OsmIdentity(OsmElementKind.WAY, 7))
    assert row is not None
    assert row.name == "Zinc"
    assert row.is_bar is True
    assert row.tags == ("bar", "rock'n'roll")
    assert row.contact == {"website": "https://zinc.example"}
    assert row.osm_tags_raw == {"amenity": "bar", "name": "Zinc"}


def test_build_upsert_sql_conflicts_on_osm_identity() -> None:
    payload = VenuePayload(name="Cork", osm_type=OsmElementKind.NODE, osm_id=5)

    sql = build_upsert_sql(UUID(int=1), payload)

    assert sql.startswith("INSERT INTO public.venues (id, name, osm_type, osm_id) VALUES (")
    assert "ON CONFLICT (osm_type, osm_id) DO UPDATE SET name = excluded.name" in sql
    assert "excluded.osm_id" not in sql
    assert sql.endswith(";")


def test_build_upsert_sql_without_identity_is_a_plain_insert() -> None:
    sql = build_upsert_sql(UUID(int=1), VenuePayload(name="Cork"))

    assert sql.startswith("INSERT INTO public.venues (id, name) VALUES (")
    assert "ON CONFLICT" not in sql


def test_build_update_sql_touches_updated_at() -> None:
    patch = VenuePayload(website="https://cork.example", osm_id=11)

    sql = build_update_sql(UUID(int=1), patch)

    assert sql.startswith("UPDATE public.venues SET ")
    assert "osm_id=11" in sql
    assert "website='https://cork.example'" in sql
    assert "updated_at=now()" in sql
    assert sql.endswith("venues.id = '00000000-0000-0000-0000-000000000001';")
