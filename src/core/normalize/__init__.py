# src/core/normalize/__init__.py
from __future__ import annotations

from .address import (
    UNKNOWN_ADDRESS,
    US_STATE_CODES,
    format_postal_address,
    normalize_state,
    normalize_zip,
    parse_address_line,
)
from .url_extract import (
    SQFT_BY_BEDROOMS,
    detect_platform,
    estimate_square_footage,
    extract_from_url,
)

__all__ = [
    "UNKNOWN_ADDRESS",
    "US_STATE_CODES",
    "SQFT_BY_BEDROOMS",
    "format_postal_address",
    "normalize_state",
    "normalize_zip",
    "parse_address_line",
    "detect_platform",
    "estimate_square_footage",
    "extract_from_url",
]
