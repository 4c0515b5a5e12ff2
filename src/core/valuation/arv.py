# src/core/valuation/arv.py
"""
After-Repair-Value (ARV) calculator.

Three tiers are tried in order; the first viable one wins:

  1) comparables  : subject sqft > 0 and >= 2 valid comps
                    -> similarity-weighted $/sqft x sqft x (1 + renovation premium)
  2) multiplier   : AVM > 0
                    -> AVM x strategy/renovation multiplier
  3) multiplier   : purchase price > 0
                    -> price x strategy multiplier x (1 + renovation premium)

With none viable the result is `method="manual"`, `arv=0`: the caller must
supply an estimate. The function is pure and never raises for missing data.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import Any

from src.schemas.models import ARVDetails, ARVResult, ComparableSale, RenovationLevel, Strategy

MAX_COMPARABLES = 5
MIN_COMPARABLES = 2
HIGH_CONFIDENCE_COMPARABLES = 4

RENOVATION_PREMIUMS: dict[str, float] = {
    "cosmetic": 0.08,
    "moderate": 0.15,
    "extensive": 0.22,
    "gut": 0.30,
}

# AVM tier: BRRRR is more conservative than Flip at every level.
AVM_MULTIPLIERS: dict[str, dict[str, float]] = {
    "brrrr": {"cosmetic": 1.08, "moderate": 1.12, "extensive": 1.18, "gut": 1.25},
    "flip": {"cosmetic": 1.12, "moderate": 1.18, "extensive": 1.25, "gut": 1.32},
}

PURCHASE_PRICE_MULTIPLIERS: dict[str, float] = {"brrrr": 1.15, "flip": 1.20}

_DEFAULT_LEVEL = "moderate"


def _round_half_up(x: float) -> float:
    return float(math.floor(x + 0.5))


def _premium(level: str) -> float:
    return RENOVATION_PREMIUMS.get(level, RENOVATION_PREMIUMS[_DEFAULT_LEVEL])


def _avm_multiplier(strategy: str, level: str) -> float:
    table = AVM_MULTIPLIERS["brrrr" if strategy == "brrrr" else "flip"]
    return table.get(level, table[_DEFAULT_LEVEL])


def _confidence_for(count: int) -> str:
    if count >= HIGH_CONFIDENCE_COMPARABLES:
        return "high"
    if count >= MIN_COMPARABLES:
        return "medium"
    return "low"


def select_comparables(comparables: Sequence[ComparableSale] | None) -> list[ComparableSale]:
    """Valid comps ranked by similarity (stable for ties), capped at five."""
    valid = [c for c in (comparables or []) if c.is_valid()]
    ranked = sorted(valid, key=lambda c: c.similarity or 0.0, reverse=True)
    return ranked[:MAX_COMPARABLES]


def weighted_price_per_sqft(comps: Sequence[ComparableSale]) -> float:
    total_weight = 0.0
    weighted = 0.0
    for c in comps:
        weight = c.similarity or 0.0
        weighted += (c.price or 0.0) / (c.square_footage or 1.0) * weight
        total_weight += weight
    return weighted / total_weight if total_weight > 0 else 0.0


def _from_comparables(sqft: float, comps: list[ComparableSale], premium: float) -> ARVResult | None:
    avg_ppsf = weighted_price_per_sqft(comps)
    if avg_ppsf <= 0:
        return None
    base = avg_ppsf * sqft
    arv = _round_half_up(base * (1 + premium))
    return ARVResult(
        arv=arv,
        method="comparables",
        confidence=_confidence_for(len(comps)),
        details=ARVDetails(
            price_per_sqft=avg_ppsf,
            comparables_used=len(comps),
            adjustment_applied=premium,
            renovation_premium=arv - base,
        ),
    )


def calculate_arv(
    *,
    subject_sqft: float | None,
    purchase_price: float | None,
    comparables: Sequence[ComparableSale] | None = None,
    avm_value: float | None = None,
    renovation_level: RenovationLevel | str = "moderate",
    strategy: Strategy | str = "flip",
) -> ARVResult:
    """
    Best-available ARV for a subject property.

    Unknown renovation levels fall back to the moderate premium/multiplier;
    any strategy other than "brrrr" is treated as a flip.
    """
    sqft = subject_sqft or 0.0
    price = purchase_price or 0.0
    avm = avm_value or 0.0
    premium = _premium(renovation_level)

    # 1) Comparables
    if sqft > 0:
        comps = select_comparables(comparables)
        if len(comps) >= MIN_COMPARABLES:
            result = _from_comparables(sqft, comps, premium)
            if result is not None:
                return result

    # 2) AVM multiplier
    if avm > 0:
        multiplier = _avm_multiplier(strategy, renovation_level)
        arv = _round_half_up(avm * multiplier)
        return ARVResult(
            arv=arv,
            method="multiplier",
            confidence="low",
            details=ARVDetails(
                price_per_sqft=arv / sqft if sqft > 0 else 0.0,
                comparables_used=0,
                adjustment_applied=multiplier - 1,
                renovation_premium=arv - avm,
            ),
        )

    # 3) Purchase-price multiplier
    if price > 0:
        multiplier = PURCHASE_PRICE_MULTIPLIERS["brrrr" if strategy == "brrrr" else "flip"]
        arv = _round_half_up(price * multiplier * (1 + premium))
        return ARVResult(
            arv=arv,
            method="multiplier",
            confidence="low",
            details=ARVDetails(
                price_per_sqft=arv / sqft if sqft > 0 else 0.0,
                comparables_used=0,
                adjustment_applied=multiplier * (1 + premium) - 1,
                renovation_premium=arv - price,
            ),
        )

    return ARVResult(arv=0.0, method="manual", confidence="low", details=ARVDetails())


def extract_comparables(payload: Any) -> list[ComparableSale]:
    """
    Pull comparables out of a provider payload.

    Accepts a list of comps, an object/dict with a nested `comparables` list,
    or a SaleComparables model. Anything else yields an empty list.
    """
    if payload is None:
        return []
    nested = getattr(payload, "comparables", None)
    if nested is None and isinstance(payload, dict):
        nested = payload.get("comparables")
    items = payload if isinstance(payload, list) else nested
    if isinstance(items, dict):
        items = items.get("comparables")
    if not isinstance(items, list):
        return []
    out: list[ComparableSale] = []
    for item in items:
        if isinstance(item, ComparableSale):
            out.append(item)
        elif isinstance(item, dict):
            out.append(ComparableSale.model_validate(item))
    return out


def format_arv_details(result: ARVResult) -> str:
    d = result.details
    if result.method == "comparables":
        return (
            f"Based on {d.comparables_used} comparable sales at ${d.price_per_sqft:,.0f}/sqft, "
            f"plus {d.adjustment_applied * 100:.0f}% renovation premium"
        )
    if result.method == "multiplier":
        return f"Estimated using market data with {d.adjustment_applied * 100:.0f}% renovation adjustment"
    return "Manual estimate required"


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
