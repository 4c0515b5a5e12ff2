# src/core/merge/merger.py
"""
PropertyDataMerger: listing URL -> MergedPropertyRecord with per-field provenance.

Flow
----
  cache hit?  -> return it (unless force_refresh)
  scraper     -> fields tagged "scraped"      (failure: fall back, record scrape_error)
  heuristic   -> fields tagged "estimated"    (only when the scraper produced nothing)
  valuation   -> fields tagged "rentcast"     (sections fetched concurrently)
  estimates   -> remaining gaps, "estimated"  (only with include_estimates)
  score, store in cache, return record + metadata

Priority is decided per field, never per record: scraped > rentcast > estimated.
A lower tier never replaces a higher one; an equal tier never replaces the
first value it offered.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlsplit

from src.core.cache import PropertyCache
from src.core.normalize import (
    UNKNOWN_ADDRESS,
    detect_platform,
    estimate_square_footage,
    extract_from_url,
    format_postal_address,
    parse_address_line,
)
from src.core.valuation import calculate_arv
from src.schemas.models import (
    TRACKED_FIELDS,
    Confidence,
    DerivedMetrics,
    FieldSource,
    MergedPropertyRecord,
    RawListingFields,
    ReconcileMetadata,
    ReconcileOptions,
    ReconcileResult,
    SourceTier,
    ValuationBundle,
)

from .completeness import count_sources, score_completeness
from .errors import InvalidListingUrlError
from .estimates import derive_metrics, estimate_insurance, estimate_property_taxes, estimate_rent
from .providers import ListingScraper, ValuationProvider, fetch_market, fetch_valuation, run_scraper

logger = logging.getLogger(__name__)

_TIER_RANK: dict[str, int] = {"estimated": 1, "rentcast": 2, "scraped": 3}

# RawListingFields attribute -> record attribute
_SCRAPED_FIELDS: tuple[tuple[str, str], ...] = (
    ("address", "address"),
    ("city", "city"),
    ("state", "state"),
    ("zip_code", "zip_code"),
    ("latitude", "latitude"),
    ("longitude", "longitude"),
    ("property_type", "property_type"),
    ("bedrooms", "bedrooms"),
    ("bathrooms", "bathrooms"),
    ("square_footage", "square_footage"),
    ("lot_size", "lot_size"),
    ("year_built", "year_built"),
    ("price", "price"),
    ("asking_price", "price"),
    ("monthly_rent", "monthly_rent"),
    ("hoa_fees", "hoa_fees"),
    ("property_taxes", "property_taxes"),
    ("tax_assessed_value", "tax_assessed_value"),
    ("days_on_market", "days_on_market"),
    ("listing_status", "listing_status"),
    ("description", "description"),
    ("images", "images"),
)


class FieldLedger:
    """Record values plus their provenance, enforcing the tier order per field."""

    def __init__(self) -> None:
        self.values: dict[str, Any] = {}
        self.sources: dict[str, FieldSource] = {}

    def offer(self, name: str, value: Any, source: SourceTier, confidence: Confidence) -> bool:
        if value is None or (isinstance(value, (list, str)) and not value):
            return False
        current = self.sources.get(name)
        if current is not None and _TIER_RANK[current.source] >= _TIER_RANK[source]:
            return False
        self.values[name] = value
        self.sources[name] = FieldSource(source=source, confidence=confidence)
        return True

    def offer_many(self, pairs: Mapping[str, Any], source: SourceTier, confidence: Confidence) -> int:
        return sum(self.offer(name, value, source, confidence) for name, value in pairs.items())

    def replace(self, name: str, value: Any) -> None:
        """Swap a value in place, keeping its provenance."""
        if name in self.sources and value is not None:
            self.values[name] = value

    def get(self, name: str) -> Any:
        return self.values.get(name)

    def has(self, name: str) -> bool:
        return name in self.sources

    def source_of(self, name: str) -> FieldSource | None:
        return self.sources.get(name)

    def ordered(self) -> tuple[dict[str, Any], dict[str, FieldSource]]:
        names = [n for n in TRACKED_FIELDS if n in self.sources]
        return {n: self.values[n] for n in names}, {n: self.sources[n] for n in names}


def validate_listing_url(url: str | None) -> str:
    text = (url or "").strip()
    if not text:
        raise InvalidListingUrlError("Listing URL is empty")
    try:
        parts = urlsplit(text)
    except ValueError as e:
        raise InvalidListingUrlError(f"Unparseable listing URL: {text!r}") from e
    if parts.scheme.lower() not in {"http", "https"} or not parts.hostname:
        raise InvalidListingUrlError(f"Listing URL must be an absolute http(s) URL: {text!r}")
    return text


class PropertyDataMerger:
    def __init__(
        self,
        cache: PropertyCache,
        *,
        scraper: ListingScraper | None = None,
        valuation: ValuationProvider | None = None,
        default_options: ReconcileOptions | None = None,
    ) -> None:
        self.cache = cache
        self.scraper = scraper
        self.valuation = valuation
        self.default_options = default_options or ReconcileOptions()

    async def reconcile(self, url: str, options: ReconcileOptions | None = None) -> ReconcileResult:
        """
        Produce the merged record for a listing URL.

        Raises InvalidListingUrlError for empty/non-http input. Scraper and
        valuation failures never raise: they are reported in the metadata.
        """
        url = validate_listing_url(url)
        opts = options or self.default_options
        platform = detect_platform(url)

        if not opts.force_refresh:
            cached = self.cache.get_scraped_data(url)
            if cached is not None:
                logger.info("[Merge] Cache hit for %s", url)
                return ReconcileResult(
                    record=cached,
                    metadata=self._metadata(cached, url=url, platform=platform, cached=True),
                )

        ledger = FieldLedger()

        # 1) Scraper, else heuristic
        scraped, scrape_error = await self._apply_scraper(ledger, url, opts)
        if not scraped:
            self._apply_heuristic(ledger, url)
        self._split_address(ledger)

        # 2) Valuation provider
        postal = self._postal(ledger)
        bundle = ValuationBundle()
        valuation_errors: list[str] = []
        if opts.include_valuation_api and self.valuation is not None:
            if postal == UNKNOWN_ADDRESS:
                valuation_errors.append("skipped: no resolvable address")
            else:
                bundle = await self._fetch_valuation(ledger, postal)
                valuation_errors.extend(bundle.errors)
                self._apply_valuation(ledger, bundle)
                postal = self._postal(ledger)

        # 3) Estimates
        if opts.include_estimates:
            self._apply_estimates(ledger)

        record = self._build_record(ledger, bundle, opts)
        self.cache.set_scraped_data(url, record)

        logger.info(
            "[Merge] %s reconciled: completeness=%d%% sources=%s",
            url,
            record.completeness.score,
            record.completeness.sources.model_dump(),
        )
        metadata = self._metadata(
            record,
            url=url,
            platform=platform,
            cached=False,
            has_scraped_data=scraped,
            scrape_error=scrape_error,
            valuation_errors=valuation_errors,
            address=postal,
        )
        return ReconcileResult(record=record, metadata=metadata)

    # ---------- source tiers ----------

    async def _apply_scraper(self, ledger: FieldLedger, url: str, opts: ReconcileOptions) -> tuple[bool, str | None]:
        if self.scraper is None:
            logger.debug("[Merge] No scraper configured; using URL heuristics for %s", url)
            return False, None
        try:
            result = await run_scraper(self.scraper, url, opts.scrape_timeout_s)
        except asyncio.TimeoutError:
            error = f"Scraper timed out after {opts.scrape_timeout_s:g}s"
            logger.warning("[Merge] %s for %s; falling back to URL heuristics", error, url)
            return False, error
        except Exception as exc:  # noqa: BLE001
            logger.warning("[Merge] Scraper failed for %s: %s; falling back to URL heuristics", url, exc)
            return False, str(exc) or type(exc).__name__

        applied = self._offer_raw(ledger, result.data or RawListingFields(), "scraped", "high")
        if not applied:
            logger.warning("[Merge] Scraper returned no usable fields for %s", url)
            return False, "Scraper returned no usable fields"
        return True, None

    def _apply_heuristic(self, ledger: FieldLedger, url: str) -> None:
        extraction = extract_from_url(url)
        defaulted = set(extraction.defaulted_fields)
        for attr, name in _SCRAPED_FIELDS:
            value = getattr(extraction.data, attr)
            ledger.offer(name, value, "estimated", "low" if attr in defaulted else "medium")

    @staticmethod
    def _offer_raw(ledger: FieldLedger, data: RawListingFields, source: SourceTier, confidence: Confidence) -> int:
        return sum(ledger.offer(name, getattr(data, attr), source, confidence) for attr, name in _SCRAPED_FIELDS)

    @staticmethod
    def _split_address(ledger: FieldLedger) -> None:
        """Split a single-line address into street/city/state/zip, keeping its provenance."""
        address = ledger.get("address")
        if not address or (ledger.has("city") and ledger.has("state") and ledger.has("zip_code")):
            return
        parsed = parse_address_line(address)
        if parsed is None:
            return
        source = ledger.source_of("address")
        assert source is not None
        split = ledger.offer_many(
            {"city": parsed.city, "state": parsed.state, "zip_code": parsed.zip_code},
            source.source,
            "medium",
        )
        if split and parsed.address_line:
            ledger.replace("address", parsed.address_line)

    @staticmethod
    def _postal(ledger: FieldLedger) -> str:
        return format_postal_address(
            ledger.get("address"), ledger.get("city"), ledger.get("state"), ledger.get("zip_code")
        )

    async def _fetch_valuation(self, ledger: FieldLedger, postal: str) -> ValuationBundle:
        assert self.valuation is not None
        zip_code = ledger.get("zip_code")
        bundle = await fetch_valuation(self.valuation, postal, zip_code)
        late_zip = bundle.property.zip_code if bundle.property else None
        if not zip_code and late_zip:
            market, error = await fetch_market(self.valuation, late_zip)
            errors = [*bundle.errors, error] if error else bundle.errors
            bundle = bundle.model_copy(update={"market": market, "errors": errors})
        return bundle

    @staticmethod
    def _apply_valuation(ledger: FieldLedger, bundle: ValuationBundle) -> None:
        if bundle.property is not None:
            p = bundle.property
            ledger.offer_many(
                {
                    "address": p.address_line1,
                    "city": p.city,
                    "state": p.state,
                    "zip_code": p.zip_code,
                    "latitude": p.latitude,
                    "longitude": p.longitude,
                    "property_type": p.property_type,
                    "bedrooms": p.bedrooms,
                    "bathrooms": p.bathrooms,
                    "square_footage": p.square_footage,
                    "lot_size": p.lot_size,
                    "year_built": p.year_built,
                },
                "rentcast",
                "high",
            )
        if bundle.rental is not None:
            r = bundle.rental
            ledger.offer_many(
                {
                    "rent_estimate": r.rent_estimate,
                    "rent_range_low": r.rent_range_low,
                    "rent_range_high": r.rent_range_high,
                },
                "rentcast",
                "medium",
            )
        if bundle.comparables is not None:
            ledger.offer("avm_value", bundle.comparables.value, "rentcast", "medium")
        if bundle.listing is not None:
            li = bundle.listing
            ledger.offer_many(
                {
                    "price": li.price,
                    "listing_price": li.price,
                    "days_on_market": li.days_on_market,
                    "listing_status": li.status,
                    "images": list(li.images),
                },
                "rentcast",
                "high",
            )

    @staticmethod
    def _apply_estimates(ledger: FieldLedger) -> None:
        value = ledger.get("price") or ledger.get("avm_value")
        if not ledger.has("square_footage"):
            ledger.offer("square_footage", estimate_square_footage(ledger.get("bedrooms")), "estimated", "low")
        if not (ledger.has("rent_estimate") or ledger.has("monthly_rent")):
            rent = estimate_rent(value, ledger.get("bedrooms"), ledger.get("property_type"))
            ledger.offer("rent_estimate", rent, "estimated", "low")
        ledger.offer("property_taxes", estimate_property_taxes(value), "estimated", "low")
        ledger.offer("insurance", estimate_insurance(value), "estimated", "low")

    # ---------- assembly ----------

    @staticmethod
    def _build_record(ledger: FieldLedger, bundle: ValuationBundle, opts: ReconcileOptions) -> MergedPropertyRecord:
        values, sources = ledger.ordered()
        comps = list(bundle.comparables.comparables) if bundle.comparables else []
        prices = [c.price for c in comps if c.price]

        metrics = DerivedMetrics(
            **derive_metrics(
                price=values.get("price") or values.get("avm_value"),
                monthly_rent=values.get("monthly_rent") or values.get("rent_estimate"),
                square_footage=values.get("square_footage"),
            )
        )
        arv = None
        if opts.include_arv:
            arv = calculate_arv(
                subject_sqft=values.get("square_footage"),
                purchase_price=values.get("price"),
                comparables=comps,
                avm_value=values.get("avm_value"),
                renovation_level=opts.renovation_level,
                strategy=opts.strategy,
            )

        return MergedPropertyRecord(
            **values,
            field_sources=sources,
            completeness=score_completeness(values, sources),
            comparables=comps,
            comparables_count=len(comps),
            comparables_avg_price=round(sum(prices) / len(prices), 2) if prices else None,
            market=bundle.market,
            metrics=metrics,
            arv=arv,
        )

    @staticmethod
    def _metadata(
        record: MergedPropertyRecord,
        *,
        url: str,
        platform: str,
        cached: bool,
        has_scraped_data: bool | None = None,
        scrape_error: str | None = None,
        valuation_errors: list[str] | None = None,
        address: str | None = None,
    ) -> ReconcileMetadata:
        counts = count_sources(record.field_sources)
        return ReconcileMetadata(
            platform=platform,
            url=url,
            address=address
            or format_postal_address(record.address, record.city, record.state, record.zip_code),
            reconciled_at=datetime.now(timezone.utc),
            cached=cached,
            field_sources=counts,
            has_scraped_data=counts.scraped > 0 if has_scraped_data is None else has_scraped_data,
            scrape_error=scrape_error,
            valuation_errors=valuation_errors or [],
            completeness=record.completeness,
        )


__all__ = ["PropertyDataMerger", "FieldLedger", "validate_listing_url"]
