"""Ordered keyword rule tables over folded (ASCII lowercase) listing text.

Each table is a tuple of ``(pattern, value)`` pairs; the first matching pair
wins, so table order is the priority order.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Final, TypeVar

from reality_radar.models.enums import Condition, EnergyCertificate, Heating

V = TypeVar("V")


def _rule(pattern: str, value: V) -> tuple[re.Pattern[str], V]:
    return re.compile(pattern), value


CONDITION_RULES: Final = (
    _rule(
        r"\b(novostavb\w*|nova stavba|novy byt|kolaudac\w*|developer\w*|new build)",
        Condition.NEW_BUILD,
    ),
    _rule(
        # "potrebuje / vhodny na rekonstrukciu" asks for renovation: not renovated.
        r"\b((?<!\bpotrebuje )(?<!\bna )rekonstrukci\w*|zrekonstruovan\w*|zrenovovan\w*|renovovan\w*"
        r"|modernizovan\w*|renovated)",
        Condition.RENOVATED,
    ),
    _rule(
        r"\b(povodn\w*|v povodnom stave|ciastocna uprava"
        r"|potrebuje rekonstrukci\w*|na rekonstrukci\w*)",
        Condition.ORIGINAL,
    ),
)

_CERTIFICATE_PREFIX = (
    r"(?:energetick\w*\s*(?:certifikat|trieda|kategori\w*)?[\s:]*"
    r"|trieda\s*|kategoria\s*)"
)

ENERGY_RULES: Final = (
    _rule(r"\bnizkoenergetick\w*", EnergyCertificate.A),
    *(
        _rule(rf"\b{_CERTIFICATE_PREFIX}{letter.lower()}\b", EnergyCertificate(letter))
        for letter in "ABCDEFG"
    ),
)

HEATING_RULES: Final = (
    _rule(r"\bpodlahov\w* (?:kurenie|vykurovan\w*)", Heating.FLOOR),
    _rule(
        r"\b(ustredn\w* kurenie|ustrednym|centraln\w* vykurovan\w*|czt|dialkov\w*)",
        Heating.CENTRAL,
    ),
    _rule(r"\b(plynov\w* (?:kurenie|kotol)|kombi\s*kotol)", Heating.GAS),
    _rule(
        r"\b(elektrick\w* (?:kurenie|vykurovanie)|elektrokotol|tepeln\w* cerpadl\w*)",
        Heating.ELECTRIC,
    ),
    _rule(r"\b(tuhe palivo|krb\w*|kachl\w*)", Heating.SOLID),
)

_NO_ELEVATOR_RE = re.compile(r"\b(bez vytahu|nema vytah)")
_ELEVATOR_RE = re.compile(r"\b(vytah\w*|lift|elevator)")
_BALCONY_RE = re.compile(r"\b(balkon\w*|lodzi\w*|loggi\w*|teras\w*)")
_PARKING_RE = re.compile(r"\b(parkovan\w*|parkovaci\w*|statie|parking)")
_GARAGE_RE = re.compile(r"\b(garaz\w*|garage)")
_CELLAR_RE = re.compile(r"\b(pivnic\w*|sklep\w*|cellar)")

_STUDIO_RE = re.compile(r"\b(garsonk\w*|1\s*\+\s*kk|studio)\b")
_ROOMS_RE = re.compile(r"\b(\d)\s*[-+]?\s*(?:izbov\w*|izb\b\.?|izby|izba|room)")
_GROUND_FLOOR_RE = re.compile(r"\b(prizemi\w*|ground floor)")
_FLOOR_OF_TOTAL_RE = re.compile(r"\b(\d{1,2})\s*/\s*(\d{1,2})\s*(?:poschodi|podlazi|np\b)")
_FLOOR_RE = re.compile(r"\b(\d{1,2})\s*\.?\s*(?:poschodi\w*|podlazi\w*|np\b|floor)")
_FLOOR_ALT_RE = re.compile(r"\bposchodie[\s:]*(\d{1,2})\b")
_TOTAL_FLOORS_RE = re.compile(r"\b(\d{1,2})\s*[-\s]*(?:poschodov\w*|podlazn\w*)")
_YEAR_RE = re.compile(
    r"\b(?:rok vystavby|postaven\w*|skolaudovan\w*|z roku|vystavba)[\s:]*(\d{4})\b"
)
_YEAR_ALT_RE = re.compile(r"\b(19\d{2}|20\d{2})\s*(?:rok|vystavba|postaven\w*)")


def first_match(rules: Sequence[tuple[re.Pattern[str], V]], text: str) -> V | None:
    for pattern, value in rules:
        if pattern.search(text):
            return value
    return None


@dataclass(slots=True)
class Amenities:
    elevator: bool = False
    balcony: bool = False
    parking: bool = False
    garage: bool = False
    cellar: bool = False


def classify_condition(text: str) -> Condition:
    return first_match(CONDITION_RULES, text) or Condition.UNKNOWN


def classify_energy_certificate(text: str) -> EnergyCertificate:
    return first_match(ENERGY_RULES, text) or EnergyCertificate.NONE


def classify_heating(text: str) -> Heating | None:
    return first_match(HEATING_RULES, text)


def detect_amenities(text: str) -> Amenities:
    garage = bool(_GARAGE_RE.search(text))
    return Amenities(
        elevator=bool(_ELEVATOR_RE.search(text)) and not _NO_ELEVATOR_RE.search(text),
        balcony=bool(_BALCONY_RE.search(text)),
        parking=garage or bool(_PARKING_RE.search(text)),
        garage=garage,
        cellar=bool(_CELLAR_RE.search(text)),
    )


def extract_rooms(text: str) -> int | None:
    if _STUDIO_RE.search(text):
        return 1
    match = _ROOMS_RE.search(text)
    if match:
        rooms = int(match.group(1))
        return rooms if rooms > 0 else None
    return None


def extract_floor(text: str) -> tuple[int | None, int | None]:
    """Return ``(floor, total_floors)``; ground floor is 0."""

    match = _FLOOR_OF_TOTAL_RE.search(text)
    if match:
        return int(match.group(1)), int(match.group(2))

    total_match = _TOTAL_FLOORS_RE.search(text)
    total = int(total_match.group(1)) if total_match else None

    if _GROUND_FLOOR_RE.search(text):
        return 0, total
    match = _FLOOR_RE.search(text) or _FLOOR_ALT_RE.search(text)
    if match:
        return int(match.group(1)), total
    return None, total


def extract_year_built(text: str) -> int | None:
    current_year = datetime.now(UTC).year
    for pattern in (_YEAR_RE, _YEAR_ALT_RE):
        match = pattern.search(text)
        if match:
            year = int(match.group(1))
            if 1900 <= year <= current_year:
                return year
    return None
