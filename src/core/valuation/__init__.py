# src/core/valuation/__init__.py

from .arv import (
    AVM_MULTIPLIERS,
    PURCHASE_PRICE_MULTIPLIERS,
    RENOVATION_PREMIUMS,
    calculate_arv,
    extract_comparables,
    format_arv_details,
    select_comparables,
    weighted_price_per_sqft,
)

__all__ = [
    "calculate_arv",
    "select_comparables",
    "weighted_price_per_sqft",
    "extract_comparables",
    "format_arv_details",
    "RENOVATION_PREMIUMS",
    "AVM_MULTIPLIERS",
    "PURCHASE_PRICE_MULTIPLIERS",
]
