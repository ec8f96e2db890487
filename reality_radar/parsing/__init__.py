"""Normalization of raw listing text and fingerprinting."""

from reality_radar.parsing.fingerprint import Fingerprint, build_fingerprint
from reality_radar.parsing.normalizer import (
    PRICE_ON_REQUEST,
    NormalizationResult,
    StructuredListing,
    normalize,
    normalize_batch,
)

__all__ = [
    "PRICE_ON_REQUEST",
    "Fingerprint",
    "NormalizationResult",
    "StructuredListing",
    "build_fingerprint",
    "normalize",
    "normalize_batch",
]
