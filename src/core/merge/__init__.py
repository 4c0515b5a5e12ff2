# src/core/merge/__init__.py
from .completeness import REQUIRED_CHECKLIST, count_sources, score_completeness
from .errors import InvalidListingUrlError, ReconcileError, ScrapeFailedError
from .estimates import derive_metrics, estimate_insurance, estimate_property_taxes, estimate_rent
from .merger import FieldLedger, PropertyDataMerger, validate_listing_url
from .providers import ListingScraper, ValuationProvider, fetch_valuation, run_scraper

__all__ = [
    "PropertyDataMerger",
    "FieldLedger",
    "validate_listing_url",
    "ListingScraper",
    "ValuationProvider",
    "fetch_valuation",
    "run_scraper",
    "REQUIRED_CHECKLIST",
    "count_sources",
    "score_completeness",
    "derive_metrics",
    "estimate_rent",
    "estimate_property_taxes",
    "estimate_insurance",
    "ReconcileError",
    "InvalidListingUrlError",
    "ScrapeFailedError",
]
