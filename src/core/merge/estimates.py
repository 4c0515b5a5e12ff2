# src/core/merge/estimates.py
"""
Rules of thumb used to fill gaps that neither the scraper nor the valuation
provider covered, and the derived investment metrics shown next to a record.

All functions are pure and return None when their inputs are unusable.
"""

from __future__ import annotations

RENT_TO_PRICE = 0.007  # monthly rent ~ 0.7% of value
MAX_PLAUSIBLE_RENT = 20_000.0
RENT_BY_BEDROOMS: dict[int, float] = {1: 2000.0, 2: 2800.0, 3: 3500.0, 4: 4500.0, 5: 5500.0}
DEFAULT_RENT = 3500.0

PROPERTY_TAX_RATE = 0.012  # annual, of value
INSURANCE_RATE = 0.0035  # annual, of value

EXPENSE_RATIO = 0.40
DOWN_PAYMENT = 0.25
MORTGAGE_RATE = 0.07
MORTGAGE_YEARS = 30


def _positive(x: float | None) -> float | None:
    return x if x is not None and x > 0 else None


def is_commercial(property_type: str | None) -> bool:
    return bool(property_type) and "commercial" in property_type.lower()


def estimate_rent(
    value: float | None,
    bedrooms: float | None = None,
    property_type: str | None = None,
) -> float | None:
    """
    Monthly rent at 0.7% of value. Residential results above $20k/month are
    implausible and are replaced by the bedroom-count table.
    """
    value = _positive(value)
    if value is None:
        return None
    rent = round(value * RENT_TO_PRICE)
    if rent > MAX_PLAUSIBLE_RENT and not is_commercial(property_type):
        return RENT_BY_BEDROOMS.get(int(bedrooms or 0), DEFAULT_RENT)
    return float(rent)


def estimate_property_taxes(value: float | None) -> float | None:
    value = _positive(value)
    return float(round(value * PROPERTY_TAX_RATE)) if value is not None else None


def estimate_insurance(value: float | None) -> float | None:
    value = _positive(value)
    return float(round(value * INSURANCE_RATE)) if value is not None else None


def monthly_payment(principal: float, annual_rate: float, years: int) -> float:
    """Constant P&I payment of a fully-amortizing fixed-rate loan."""
    if principal <= 0:
        return 0.0
    r = annual_rate / 12.0
    n = years * 12
    if r == 0:
        return principal / n
    return principal * r * (1 + r) ** n / ((1 + r) ** n - 1)


def derive_metrics(
    *,
    price: float | None,
    monthly_rent: float | None,
    square_footage: float | None,
) -> dict[str, float | None]:
    """
    price_per_sqft, noi, cap_rate, gross_yield, cash_on_cash_return.

    Percentages are rounded to two decimals, money to whole units. Metrics
    whose inputs are missing are None.
    """
    price = _positive(price)
    rent = _positive(monthly_rent)
    sqft = _positive(square_footage)
    out: dict[str, float | None] = {
        "price_per_sqft": round(price / sqft, 2) if price and sqft else None,
        "noi": None,
        "cap_rate": None,
        "gross_yield": None,
        "cash_on_cash_return": None,
    }
    if not (price and rent):
        return out

    annual_rent = rent * 12
    noi = annual_rent * (1 - EXPENSE_RATIO)
    down = price * DOWN_PAYMENT
    debt_service = monthly_payment(price - down, MORTGAGE_RATE, MORTGAGE_YEARS) * 12
    out.update(
        noi=float(round(noi)),
        cap_rate=round(noi / price * 100, 2),
        gross_yield=round(annual_rent / price * 100, 2),
        cash_on_cash_return=round((noi - debt_service) / down * 100, 2),
    )
    return out


__all__ = [
    "estimate_rent",
    "estimate_property_taxes",
    "estimate_insurance",
    "monthly_payment",
    "derive_metrics",
    "is_commercial",
    "RENT_BY_BEDROOMS",
]
