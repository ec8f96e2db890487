"""Tests for keyword rule tables."""

import pytest

from reality_radar.models.enums import Condition, EnergyCertificate, Heating
from reality_radar.parsing import rules
from reality_radar.parsing.text import fold


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Novostavba v tichej lokalite", Condition.NEW_BUILD),
        ("Byt vhodný na rekonštrukciu", Condition.ORIGINAL),
        ("Byt potrebuje rekonštrukciu, dobrá lokalita", Condition.ORIGINAL),
        ("Byt po kompletnej rekonštrukcii", Condition.RENOVATED),
        ("Cena rekonštrukcie je zahrnutá", Condition.RENOVATED),
        ("Kompletne zrekonštruovaný byt", Condition.RENOVATED),
        ("Pôvodný stav, zachovalý", Condition.ORIGINAL),
        ("Pekný byt", Condition.UNKNOWN),
    ],
)
def test_classify_condition_first_rule_wins(text: str, expected: Condition) -> None:
    assert rules.classify_condition(fold(text)) == expected


def test_classify_energy_certificate() -> None:
    assert rules.classify_energy_certificate(fold("Energetický certifikát: B")) == (
        EnergyCertificate.B
    )
    assert rules.classify_energy_certificate(fold("nízkoenergetický dom")) == (
        EnergyCertificate.A
    )
    assert rules.classify_energy_certificate(fold("bez certifikátu")) == (
        EnergyCertificate.NONE
    )


def test_classify_heating() -> None:
    assert rules.classify_heating(fold("podlahové kúrenie v celom byte")) == Heating.FLOOR
    assert rules.classify_heating(fold("ústredné kúrenie")) == Heating.CENTRAL
    assert rules.classify_heating(fold("vlastný plynový kotol")) == Heating.GAS
    assert rules.classify_heating(fold("slnečný byt")) is None


def test_detect_amenities_honours_negation_and_garage() -> None:
    amenities = rules.detect_amenities(fold("Bez výťahu, garáž a pivnica"))

    assert not amenities.elevator
    assert amenities.garage and amenities.parking and amenities.cellar
    assert not amenities.balcony


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("garsónka na predaj", 1),
        ("2 izbový byt", 2),
        ("4-izbový byt", 4),
        ("rodinný dom", None),
    ],
)
def test_extract_rooms(text: str, expected: int | None) -> None:
    assert rules.extract_rooms(fold(text)) == expected


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("byt na 3/8 poschodí", (3, 8)),
        ("prízemie, 4 poschodový dom", (0, 4)),
        ("5. poschodie", (5, None)),
        ("byt", (None, None)),
    ],
)
def test_extract_floor(text: str, expected: tuple[int | None, int | None]) -> None:
    assert rules.extract_floor(fold(text)) == expected


def test_extract_year_built_rejects_implausible_years() -> None:
    assert rules.extract_year_built(fold("rok výstavby: 1978")) == 1978
    assert rules.extract_year_built(fold("rok výstavby: 1850")) is None
