from __future__ import annotations

import asyncio

import pytest

from venuerecon.domain.errors import NetworkError, RecordValidationError
from venuerecon.domain.geocoding import RawInputRow, geocode_records, validate_input
from venuerecon.domain.model import GeocodeCandidate, GeocodeReason, GeocodeStatus, InputRecord
from venuerecon.domain.ports import GeocodeLookup


class FakeGeocoder:
    def __init__(self, answers: dict[str, GeocodeLookup | Exception]) -> None:
        self.answers = answers
        self.calls: list[InputRecord] = []

    async def geocode(self, record: InputRecord) -> GeocodeLookup:
        self.calls.append(record)
        answer = self.answers.get(record.name, GeocodeLookup(candidate=None))
        if isinstance(answer, Exception):
            raise answer
        return answer


def _candidate(score: float) -> GeocodeCandidate:
    return GeocodeCandidate(
        label="12 Rue de la Paix 44000 Nantes",
        score=score,
        latitude=47.2184,
        longitude=-1.5536,
        city="Nantes",
        postcode="44000",
    )


def _row(name: str, *, address: str = "12 rue de la Paix", city: str = "Nantes") -> RawInputRow:
    return RawInputRow(name=name, address=address, city=city)


def test_raw_input_row_strips_values() -> None:
    row = RawInputRow.from_mapping({"name": "  Pannonica ", "city": "Nantes", "postcode": None})

    assert row == RawInputRow(name="Pannonica", city="Nantes")


def test_validate_input_lists_missing_fields() -> None:
    with pytest.raises(RecordValidationError) as excinfo:
        validate_input(RawInputRow(name="Pannonica"))

    assert excinfo.value.missing_fields == ("address", "city")


def test_geocode_records_classifies_rows_in_input_order() -> None:
    geocoder = FakeGeocoder(
        {
            "Good": GeocodeLookup(candidate=_candidate(0.93)),
            "Weak": GeocodeLookup(candidate=_candidate(0.41)),
            "Cached": GeocodeLookup(candidate=_candidate(0.88), from_cache=True),
            "Broken": NetworkError("ban: timeout", source="ban"),
        }
    )
    rows = [
        _row("Good"),
        _row("Weak"),
        _row("Nowhere"),
        _row("Cached"),
        _row("Broken"),
        _row("Incomplete", address=""),
    ]

    batch = asyncio.run(geocode_records(rows, geocoder, min_score=0.8))

    assert [result.row.name for result in batch.results] == [row.name for row in rows]
    assert [result.status for result in batch.results] == [
        GeocodeStatus.OK,
        GeocodeStatus.AMBIGUOUS,
        GeocodeStatus.AMBIGUOUS,
        GeocodeStatus.OK,
        GeocodeStatus.ERROR,
        GeocodeStatus.ERROR,
    ]
    assert [result.reason for result in batch.results] == [
        None,
        GeocodeReason.LOW_SCORE,
        GeocodeReason.NO_RESULT,
        None,
        GeocodeReason.EXCEPTION,
        GeocodeReason.MISSING_FIELDS,
    ]
    assert batch.results[4].detail == "ban: timeout"


def test_geocode_records_counts_calls_and_cache_hits() -> None:
    geocoder = FakeGeocoder(
        {
            "Good": GeocodeLookup(candidate=_candidate(0.93)),
            "Cached": GeocodeLookup(candidate=_candidate(0.88), from_cache=True),
        }
    )
    rows = [_row("Good"), _row("Cached"), _row("Nowhere"), _row("Incomplete", city="")]

    batch = asyncio.run(geocode_records(rows, geocoder))

    stats = batch.stats
    assert (stats.total, stats.ok, stats.ambiguous, stats.errors) == (4, 2, 1, 1)
    assert (stats.api_calls, stats.from_cache) == (2, 1)
    assert len(batch.ok) == 2
    assert len(batch.flagged) == 2


def test_rows_missing_fields_never_reach_the_geocoder() -> None:
    geocoder = FakeGeocoder({})

    asyncio.run(geocode_records([_row("", address="", city="")], geocoder))

    assert geocoder.calls == []
