"""Overpass QL query builders."""

from __future__ import annotations

QUERY_TIMEOUT_SECONDS = 25


def _quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def boundary_query(city: str, *, admin_level: int, country: str | None = None) -> str:
    """Administrative relations named ``city``, optionally inside an ISO country."""

    country_clause = ""
    area_filter = ""
    if country:
        country_clause = (
            f'area["ISO3166-1"="{_quote(country.upper())}"]'
            '["boundary"="administrative"]["admin_level"="2"]->.country;\n'
        )
        area_filter = "(area.country)"
    return (
        f"[out:json][timeout:{QUERY_TIMEOUT_SECONDS}];\n"
        f"{country_clause}"
        f'relation["boundary"="administrative"]["admin_level"="{admin_level}"]'
        f'["name"="{_quote(city)}"]{area_filter};\n'
        "out tags;\n"
    )


def amenity_query(area_id: int, amenity: str) -> str:
    """Nodes, ways and relations tagged ``amenity`` inside the area, with centers."""

    selector = f'["amenity"="{_quote(amenity)}"](area.searchArea);'
    return (
        f"[out:json][timeout:{QUERY_TIMEOUT_SECONDS}];\n"
        f"area({area_id})->.searchArea;\n"
        "(\n"
        f"  node{selector}\n"
        f"  way{selector}\n"
        f"  relation{selector}\n"
        ");\n"
        "out center tags;\n"
    )
