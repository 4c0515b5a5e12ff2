# tests/integration/test_reconcile_flow.py
"""
End-to-end reconciliation: fake scraper + fake valuation provider -> merged
record, metadata, and cache behavior.
"""

from __future__ import annotations

import asyncio

import pytest

from src.core.merge import InvalidListingUrlError
from src.core.normalize import UNKNOWN_ADDRESS
from src.core.rentcast import ValuationHttpError
from src.schemas.models import ReconcileOptions, RentalEstimate, SaleComparables
from tests.utils import (
    ZILLOW_URL,
    FakeScraper,
    FakeValuation,
    SlowScraper,
    make_comparables_at,
    make_property_details,
    make_raw_listing,
)

pytestmark = pytest.mark.integration


def _run(merger, url=ZILLOW_URL, **options):
    return asyncio.run(merger.reconcile(url, ReconcileOptions(**options) if options else None))


def test_second_call_is_served_from_cache(merger_factory, scraper_ok, empty_valuation) -> None:
    merger = merger_factory(scraper=scraper_ok, valuation=empty_valuation)
    first = _run(merger)
    second = _run(merger)

    assert first.metadata.cached is False
    assert second.metadata.cached is True
    assert second.record.model_dump_json() == first.record.model_dump_json()
    assert len(scraper_ok.calls) == 1


def test_force_refresh_bypasses_the_cache(merger_factory, scraper_ok, empty_valuation) -> None:
    merger = merger_factory(scraper=scraper_ok, valuation=empty_valuation)
    _run(merger)
    again = _run(merger, force_refresh=True)
    assert again.metadata.cached is False
    assert len(scraper_ok.calls) == 2


def test_scraped_value_beats_provider_value(merger_factory, scraper_ok) -> None:
    valuation = FakeValuation(property=make_property_details(bedrooms=4, squareFootage=1650))
    rec = _run(merger_factory(scraper=scraper_ok, valuation=valuation)).record

    assert rec.bedrooms == 3
    assert rec.field_sources["bedrooms"].source == "scraped"
    assert rec.square_footage == 1500
    assert rec.field_sources["square_footage"].source == "scraped"


def test_provider_fills_gaps_the_scraper_left(merger_factory) -> None:
    scraper = FakeScraper(make_raw_listing(year_built=None, bathrooms=None))
    valuation = FakeValuation(property=make_property_details(), rental=RentalEstimate(rent_estimate=2100))
    rec = _run(merger_factory(scraper=scraper, valuation=valuation)).record

    assert rec.year_built == 1980
    assert rec.field_sources["year_built"].source == "rentcast"
    assert rec.field_sources["year_built"].confidence == "high"
    assert rec.rent_estimate == 2100
    assert rec.field_sources["rent_estimate"].confidence == "medium"


def test_every_populated_field_has_exactly_one_source(merger_factory, scraper_ok) -> None:
    valuation = FakeValuation(property=make_property_details(), rental=RentalEstimate(rent_estimate=2100))
    rec = _run(merger_factory(scraper=scraper_ok, valuation=valuation)).record
    assert set(rec.field_sources) == set(rec.populated_fields())
    assert rec.completeness.sources.scraped > 0
    assert rec.completeness.sources.rentcast > 0


def test_scraper_error_falls_back_to_url_heuristics(merger_factory, empty_valuation) -> None:
    scraper = FakeScraper(error=RuntimeError("captcha wall"))
    res = _run(merger_factory(scraper=scraper, valuation=empty_valuation))

    assert res.metadata.has_scraped_data is False
    assert res.metadata.scrape_error == "captcha wall"
    rec = res.record
    assert rec.address == "123 Main St"
    assert rec.zip_code == "62704"
    assert rec.field_sources["address"].source == "estimated"
    assert rec.field_sources["bedrooms"].confidence == "low"
    assert rec.price is None
    assert rec.completeness.sources.scraped == 0


def test_slow_scraper_is_abandoned(merger_factory, empty_valuation) -> None:
    res = _run(merger_factory(scraper=SlowScraper(delay_s=5), valuation=empty_valuation), scrape_timeout_s=0.05)
    assert res.metadata.scrape_error == "Scraper timed out after 0.05s"
    assert res.record.field_sources["address"].source == "estimated"


def test_failed_section_is_reported_and_left_out(merger_factory, scraper_ok) -> None:
    valuation = FakeValuation(property=make_property_details(), rental=ValuationHttpError(503, "unavailable"))
    res = _run(merger_factory(scraper=scraper_ok, valuation=valuation), include_estimates=False)

    assert res.metadata.valuation_errors == ["rental: unavailable"]
    assert res.record.rent_estimate is None
    assert "rent_estimate" not in res.record.field_sources
    assert res.record.year_built == 1978  # other sections still applied


def test_rental_raises_completeness(merger_factory) -> None:
    without = _run(
        merger_factory(scraper=FakeScraper(make_raw_listing()), valuation=FakeValuation()),
        include_estimates=False,
    ).record
    with_rent = _run(
        merger_factory(
            scraper=FakeScraper(make_raw_listing()),
            valuation=FakeValuation(rental=RentalEstimate(rent_estimate=1900)),
        ),
        include_estimates=False,
    ).record

    assert "rent_estimate" in without.completeness.missing_fields
    assert with_rent.completeness.score > without.completeness.score
    assert with_rent.completeness.score == 100


@pytest.mark.parametrize("url", ["", "   ", "ftp://example.com/x", "not a url"])
def test_invalid_urls_are_rejected(merger_factory, url: str) -> None:
    with pytest.raises(InvalidListingUrlError):
        _run(merger_factory(), url=url)


def test_same_inputs_give_the_same_record(merger_factory) -> None:
    def build():
        valuation = FakeValuation(
            property=make_property_details(),
            comparables=SaleComparables(value=310_000, comparables=make_comparables_at(200.0, 5)),
        )
        return _run(merger_factory(scraper=FakeScraper(make_raw_listing()), valuation=valuation)).record

    assert build().model_dump_json() == build().model_dump_json()


def test_unresolvable_address_skips_the_provider(merger_factory) -> None:
    valuation = FakeValuation(rental=RentalEstimate(rent_estimate=1500))
    res = _run(merger_factory(valuation=valuation), url="https://example.com/listing/77")

    assert res.metadata.address == UNKNOWN_ADDRESS
    assert res.metadata.valuation_errors == ["skipped: no resolvable address"]
    assert valuation.calls == []
    assert res.record.rent_estimate is None  # no price to estimate from


def test_provider_outranks_url_heuristics(merger_factory) -> None:
    valuation = FakeValuation(property=make_property_details(bedrooms=4))
    rec = _run(merger_factory(valuation=valuation)).record
    assert rec.bedrooms == 4
    assert rec.field_sources["bedrooms"].source == "rentcast"
    assert ("property", "123 Main St, Springfield, IL, 62704") in valuation.calls


def test_single_line_address_is_split(merger_factory) -> None:
    scraper = FakeScraper(
        make_raw_listing(address="123 Main St, Springfield, IL 62704", city=None, state=None, zip_code=None)
    )
    rec = _run(merger_factory(scraper=scraper, valuation=FakeValuation())).record
    assert rec.address == "123 Main St"
    assert (rec.city, rec.state, rec.zip_code) == ("Springfield", "IL", "62704")
    assert rec.field_sources["city"].source == "scraped"


def test_arv_and_comparables_are_attached(merger_factory, scraper_ok) -> None:
    valuation = FakeValuation(comparables=SaleComparables(value=310_000, comparables=make_comparables_at(200.0, 5)))
    rec = _run(merger_factory(scraper=scraper_ok, valuation=valuation)).record

    assert rec.avm_value == 310_000
    assert rec.comparables_count == 5
    assert rec.comparables_avg_price == pytest.approx(200_000)
    assert rec.arv is not None
    assert rec.arv.method == "comparables"
    assert rec.arv.arv == 345_000  # 200/sqft * 1500 sqft * 1.15


def test_market_is_fetched_late_when_zip_comes_from_provider(merger_factory) -> None:
    scraper = FakeScraper(make_raw_listing(zip_code=None))
    valuation = FakeValuation(property=make_property_details(), market={"zipCode": "62704"})
    rec = _run(merger_factory(scraper=scraper, valuation=valuation)).record

    assert rec.zip_code == "62704"
    assert rec.field_sources["zip_code"].source == "rentcast"
    assert rec.market is not None and rec.market.zip_code == "62704"
    assert ("market", "62704") in valuation.calls


def test_estimates_fill_remaining_gaps(merger_factory, scraper_ok) -> None:
    rec = _run(merger_factory(scraper=scraper_ok, valuation=FakeValuation())).record
    assert rec.rent_estimate == pytest.approx(1750)  # 0.7% of 250k
    assert rec.property_taxes == pytest.approx(3000)
    assert rec.insurance == pytest.approx(875)
    for name in ("rent_estimate", "property_taxes", "insurance"):
        assert rec.field_sources[name].source == "estimated"
        assert rec.field_sources[name].confidence == "low"


def test_unexpected_provider_error_does_not_fail_reconcile(merger_factory, scraper_ok) -> None:
    valuation = FakeValuation(rental=KeyError("rentEstimate"), market=AttributeError("no saleData"))
    res = _run(merger_factory(scraper=scraper_ok, valuation=valuation), include_estimates=False)

    assert res.metadata.valuation_errors == ["rental: 'rentEstimate'", "market: no saleData"]
    assert res.record.rent_estimate is None
    assert res.record.bedrooms == 3


def test_out_of_range_comparable_does_not_discard_the_section(merger_factory, scraper_ok) -> None:
    payload = {
        "price": 320_000,
        "comparables": [
            {"price": 300_000, "squareFootage": 1500, "correlation": 0.9},
            {"price": 300_000, "squareFootage": 1500, "correlation": 0.85},
            {"price": 300_000, "squareFootage": 1500, "correlation": 0.8},
            {"price": 330_000, "squareFootage": 1500, "correlation": 1.02, "distance": -0.1},
        ],
    }
    rec = _run(merger_factory(scraper=scraper_ok, valuation=FakeValuation(comparables=payload))).record

    assert rec.avm_value == 320_000
    assert rec.comparables_count == 4
    assert rec.arv is not None
    assert rec.arv.method == "comparables"
    assert rec.arv.confidence == "high"
