# src/core/merge/completeness.py
"""Completeness scoring over a fixed checklist of required attributes."""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Mapping
from typing import Any

from src.schemas.models import DataCompleteness, FieldSource, SourceCounts

# (label reported in missing_fields, predicate over the field values)
REQUIRED_CHECKLIST: tuple[tuple[str, Callable[[Mapping[str, Any]], bool]], ...] = (
    ("address", lambda v: v.get("address") is not None),
    ("price", lambda v: v.get("price") is not None or v.get("avm_value") is not None),
    ("bedrooms", lambda v: v.get("bedrooms") is not None),
    ("bathrooms", lambda v: v.get("bathrooms") is not None),
    ("square_footage", lambda v: v.get("square_footage") is not None),
    ("property_type", lambda v: v.get("property_type") is not None),
    ("year_built", lambda v: v.get("year_built") is not None),
    ("rent_estimate", lambda v: v.get("rent_estimate") is not None or v.get("monthly_rent") is not None),
)


def count_sources(field_sources: Mapping[str, FieldSource]) -> SourceCounts:
    counts = Counter(fs.source for fs in field_sources.values())
    return SourceCounts(
        scraped=counts.get("scraped", 0),
        rentcast=counts.get("rentcast", 0),
        estimated=counts.get("estimated", 0),
    )


def score_completeness(values: Mapping[str, Any], field_sources: Mapping[str, FieldSource]) -> DataCompleteness:
    missing = [label for label, present in REQUIRED_CHECKLIST if not present(values)]
    filled = len(REQUIRED_CHECKLIST) - len(missing)
    return DataCompleteness(
        score=round(100 * filled / len(REQUIRED_CHECKLIST)),
        missing_fields=missing,
        sources=count_sources(field_sources),
    )


__all__ = ["REQUIRED_CHECKLIST", "count_sources", "score_completeness"]
