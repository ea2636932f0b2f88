from __future__ import annotations

from venuerecon.adapters.overpass import (
    OverpassElement,
    amenity_query,
    boundary_query,
    to_area_candidate,
    to_ingest_entry,
)
from venuerecon.adapters.overpass.translator import (
    element_name,
    parse_capacity,
    parse_live_music,
    parse_population,
)
from venuerecon.domain.model import IngestIssue, OsmElementKind


def _element(**values: object) -> OverpassElement:
    return OverpassElement.model_validate({"type": "node", "id": 1, **values})


def test_element_name_falls_back_to_operator_and_brand() -> None:
    assert element_name({"name": " Cork ", "brand": "X"}) == "Cork"
    assert element_name({"name": " ", "operator": "Op"}) == "Op"
    assert element_name({"brand": "Brand"}) == "Brand"
    assert element_name({}) is None


def test_tag_parsers() -> None:
    assert parse_population("1 234 567") == 1_234_567
    assert parse_population("unknown") is None
    assert parse_capacity("about 300 people") == 300
    assert parse_capacity("0") is None
    assert parse_live_music(" YES ") is True
    assert parse_live_music("no") is False
    assert parse_live_music("sometimes") is None


def test_node_becomes_candidate() -> None:
    element = _element(
        lat=47.218412345678,
        lon=-1.5536,
        tags={
            "amenity": "bar",
            "name": "Le Chat Noir",
            "addr:housenumber": "12",
            "addr:street": "Rue de la Paix",
            "addr:postcode": "44000",
            "website": "https://chatnoir.fr/",
            "capacity": "150",
            "live_music": "yes",
        },
    )

    entry = to_ingest_entry(element, default_city="Nantes")

    candidate = entry.candidate
    assert entry.issue is None
    assert candidate is not None
    assert candidate.latitude == 47.21841235
    assert candidate.city == "Nantes"
    assert candidate.address_line == "12 Rue de la Paix, 44000 Nantes"
    assert candidate.venue_type == "bar"
    assert candidate.contact.website == "https://chatnoir.fr"
    assert candidate.capacity == 150
    assert candidate.live_music is True
    assert candidate.tags["derived_type"] == "bar"
    assert candidate.tags["normalized_name"] == "le chat noir"


def test_way_uses_center_and_own_city() -> None:
    element = OverpassElement.model_validate(
        {
            "type": "way",
            "id": 9,
            "center": {"lat": 47.2, "lon": -1.5},
            "tags": {"name": "Warehouse", "addr:city": "Rezé"},
        }
    )

    candidate = to_ingest_entry(element, default_city="Nantes").candidate

    assert candidate is not None
    assert candidate.identity.kind is OsmElementKind.WAY
    assert (candidate.latitude, candidate.longitude) == (47.2, -1.5)
    assert candidate.city == "Rezé"
    assert candidate.venue_type == "unknown"


def test_unusable_elements_are_flagged() -> None:
    unnamed = to_ingest_entry(_element(lat=1.0, lon=2.0, tags={"amenity": "bar"}), default_city="")
    unplaced = to_ingest_entry(
        OverpassElement.model_validate({"type": "way", "id": 3, "tags": {"name": "Cork"}}),
        default_city="",
    )

    assert unnamed.issue is IngestIssue.MISSING_NAME
    assert unnamed.candidate is None
    assert unplaced.issue is IngestIssue.MISSING_COORDINATES
    assert unplaced.name == "Cork"


def test_to_area_candidate_reads_relation_tags() -> None:
    relation = OverpassElement.model_validate(
        {
            "type": "relation",
            "id": 59874,
            "tags": {"name": "Nantes", "admin_level": "8", "population": "320 732"},
        }
    )

    area = to_area_candidate(relation)

    assert area is not None
    assert (area.relation_id, area.admin_level, area.population) == (59874, 8, 320_732)
    assert to_area_candidate(_element(tags={"name": "Nantes"})) is None


def test_queries_quote_values() -> None:
    boundary = boundary_query('Saint "X"', admin_level=8, country="fr")
    amenity = amenity_query(3600059874, "bar")

    assert '["name"="Saint \\"X\\""](area.country);' in boundary
    assert 'area["ISO3166-1"="FR"]' in boundary
    assert "area(3600059874)->.searchArea;" in amenity
    assert amenity.count('["amenity"="bar"](area.searchArea);') == 3
    assert "area.country" not in boundary_query("Nantes", admin_level=8)
