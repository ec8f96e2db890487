"""String enums shared by models, parsing, and services."""

from enum import StrEnum


class ListingType(StrEnum):
    SALE = "SALE"
    RENT = "RENT"


class PropertyStatus(StrEnum):
    ACTIVE = "ACTIVE"
    REMOVED = "REMOVED"


class LinkStatus(StrEnum):
    ACTIVE = "ACTIVE"
    REMOVED = "REMOVED"


class EventType(StrEnum):
    LISTED = "LISTED"
    PRICE_DROP = "PRICE_DROP"
    PRICE_INCREASE = "PRICE_INCREASE"
    RELISTED = "RELISTED"
    REMOVED = "REMOVED"


class Condition(StrEnum):
    NEW_BUILD = "NEW_BUILD"
    RENOVATED = "RENOVATED"
    ORIGINAL = "ORIGINAL"
    UNKNOWN = "UNKNOWN"


class EnergyCertificate(StrEnum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"
    F = "F"
    G = "G"
    NONE = "NONE"


class Heating(StrEnum):
    FLOOR = "FLOOR"
    CENTRAL = "CENTRAL"
    GAS = "GAS"
    ELECTRIC = "ELECTRIC"
    SOLID = "SOLID"


class GapConfidence(StrEnum):
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class RunStatus(StrEnum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"
    NO_DATA = "no_data"
    STRUCTURE_CHANGE = "structure_change"
