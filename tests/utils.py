# tests/utils.py
"""
Single source of truth for test data, factories, and canonical payloads.
Update values here to cascade across the test suite.
"""

from __future__ import annotations

import asyncio
from typing import Any

from src.schemas.models import (
    ComparableSale,
    FieldSource,
    MarketData,
    MergedPropertyRecord,
    PropertyDetails,
    RawListingFields,
    RentalEstimate,
    SaleComparables,
    ScrapeResult,
)

# -----------------------------
# Global defaults (edit once)
# -----------------------------

ZILLOW_URL = "https://www.zillow.com/homedetails/123-main-st-springfield-il-62704/12345_zpid/"
REALTOR_URL = "https://www.realtor.com/realestateandhomes-detail/456-Oak-Ave_Portland_OR_97205_M12345-67890"
REDFIN_URL = "https://www.redfin.com/TX/Austin/789-Pine-Rd-78701/home/55512345"
LOOPNET_URL = "https://www.loopnet.com/Listing/30123456/500-commerce-blvd-dallas-tx-75201/"

DEFAULT_ADDRESS = "123 Main St"
DEFAULT_CITY = "Springfield"
DEFAULT_STATE = "IL"
DEFAULT_ZIP = "62704"
DEFAULT_PRICE = 250_000.0


# -----------------------------
# Time
# -----------------------------


class FakeClock:
    """Manually advanced epoch-seconds clock for cache tests."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


# -----------------------------
# Comparables
# -----------------------------


def make_comparable(
    *,
    price: float = 300_000.0,
    square_footage: float = 1500.0,
    similarity: float = 0.9,
    **extra: Any,
) -> ComparableSale:
    return ComparableSale(price=price, square_footage=square_footage, similarity=similarity, **extra)


def make_comparables_at(price_per_sqft: float, n: int, *, sqft: float = 1000.0) -> list[ComparableSale]:
    """n valid comps all priced at exactly `price_per_sqft`."""
    return [
        make_comparable(price=price_per_sqft * sqft, square_footage=sqft, similarity=0.9 - i * 0.05, id=f"c{i}")
        for i in range(n)
    ]


# -----------------------------
# Listing payloads
# -----------------------------


def make_raw_listing(**overrides: Any) -> RawListingFields:
    base: dict[str, Any] = {
        "address": DEFAULT_ADDRESS,
        "city": DEFAULT_CITY,
        "state": DEFAULT_STATE,
        "zip_code": DEFAULT_ZIP,
        "bedrooms": 3,
        "bathrooms": 2,
        "square_footage": 1500,
        "year_built": 1978,
        "property_type": "Single Family",
        "price": DEFAULT_PRICE,
        "images": ["https://img.example.com/1.jpg"],
    }
    base.update(overrides)
    return RawListingFields.model_validate(base)


def make_property_details(**overrides: Any) -> PropertyDetails:
    base: dict[str, Any] = {
        "addressLine1": DEFAULT_ADDRESS,
        "city": DEFAULT_CITY,
        "state": DEFAULT_STATE,
        "zipCode": DEFAULT_ZIP,
        "bedrooms": 4,
        "bathrooms": 2.5,
        "squareFootage": 1650,
        "yearBuilt": 1980,
        "propertyType": "Single Family",
    }
    base.update(overrides)
    return PropertyDetails.model_validate(base)


# -----------------------------
# Fake collaborators
# -----------------------------


class FakeScraper:
    """Sync scraper returning a canned result, or raising `error`."""

    def __init__(self, data: RawListingFields | None = None, *, error: Exception | None = None, success: bool = True):
        self.data = data
        self.error = error
        self.success = success
        self.calls: list[str] = []

    def scrape(self, url: str) -> ScrapeResult:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return ScrapeResult(success=self.success, data=self.data, error=None if self.success else "blocked")


class SlowScraper:
    """Async scraper that never finishes within a short timeout."""

    def __init__(self, delay_s: float = 5.0) -> None:
        self.delay_s = delay_s

    async def scrape(self, url: str) -> ScrapeResult:
        await asyncio.sleep(self.delay_s)
        return ScrapeResult(success=True, data=make_raw_listing())


class FakeValuation:
    """
    Valuation provider with canned sections. A section set to an Exception
    instance raises it; `calls` records (method, argument) in call order.
    """

    def __init__(
        self,
        *,
        property: PropertyDetails | Exception | None = None,
        rental: RentalEstimate | Exception | None = None,
        comparables: SaleComparables | Exception | None = None,
        market: MarketData | Exception | None = None,
    ) -> None:
        self._sections = {
            "property": property,
            "rental": rental,
            "comparables": comparables,
            "market": market,
        }
        self.calls: list[tuple[str, str]] = []

    def _answer(self, name: str, arg: str) -> Any:
        self.calls.append((name, arg))
        value = self._sections[name]
        if isinstance(value, Exception):
            raise value
        return value

    def get_property(self, address: str) -> Any:
        return self._answer("property", address)

    def get_rental(self, address: str) -> Any:
        return self._answer("rental", address)

    def get_comparables(self, address: str) -> Any:
        return self._answer("comparables", address)

    def get_market(self, zip_code: str) -> Any:
        return self._answer("market", zip_code)


# -----------------------------
# Records
# -----------------------------


def make_record(address: str = DEFAULT_ADDRESS, **fields: Any) -> MergedPropertyRecord:
    """Minimal valid record: every given field is tagged as scraped/high."""
    values = {"address": address, **fields}
    sources = {name: FieldSource(source="scraped", confidence="high") for name in values}
    return MergedPropertyRecord(**values, field_sources=sources)


# -----------------------------
# HTTP stubs (requests.Session-like)
# -----------------------------


class StubResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class StubSession:
    """Replays queued responses (or raises queued exceptions) for successive GETs."""

    def __init__(self, *responses: StubResponse | Exception) -> None:
        self._queue = list(responses)
        self.requests: list[dict[str, Any]] = []

    def get(self, url: str, *, params: Any = None, headers: Any = None, timeout: Any = None) -> StubResponse:
        self.requests.append({"url": url, "params": params, "headers": headers, "timeout": timeout})
        if not self._queue:
            raise AssertionError(f"unexpected request to {url}")
        item = self._queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


__all__ = [
    "ZILLOW_URL",
    "REALTOR_URL",
    "REDFIN_URL",
    "LOOPNET_URL",
    "FakeClock",
    "make_comparable",
    "make_comparables_at",
    "make_raw_listing",
    "make_property_details",
    "make_record",
    "FakeScraper",
    "SlowScraper",
    "FakeValuation",
    "StubResponse",
    "StubSession",
]
