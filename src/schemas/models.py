# src/schemas/models.py

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

# =========================
# Shared literals
# =========================

SourceTier = Literal["scraped", "rentcast", "estimated"]
Confidence = Literal["high", "medium", "low"]
RenovationLevel = Literal["cosmetic", "moderate", "extensive", "gut"]
Strategy = Literal["flip", "brrrr"]
ARVMethod = Literal["comparables", "multiplier", "manual"]
Platform = Literal["zillow", "loopnet", "realtor", "redfin", "unknown"]

# Attributes of MergedPropertyRecord governed by the provenance map.
TRACKED_FIELDS: tuple[str, ...] = (
    "address",
    "city",
    "state",
    "zip_code",
    "latitude",
    "longitude",
    "property_type",
    "bedrooms",
    "bathrooms",
    "square_footage",
    "lot_size",
    "year_built",
    "price",
    "listing_price",
    "avm_value",
    "rent_estimate",
    "monthly_rent",
    "rent_range_low",
    "rent_range_high",
    "hoa_fees",
    "property_taxes",
    "tax_assessed_value",
    "insurance",
    "days_on_market",
    "listing_status",
    "description",
    "images",
)


def _alias(*names: str) -> AliasChoices:
    return AliasChoices(*names)


# =========================
# Comparables & ARV
# =========================


class ComparableSale(BaseModel):
    """A recently sold property used as a reference point for the subject."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str | None = None
    address: str | None = Field(None, validation_alias=_alias("address", "formattedAddress"))
    price: float | None = Field(None, description="Sale (or list) price of the comparable.")
    square_footage: float | None = Field(None, validation_alias=_alias("square_footage", "squareFootage"))
    similarity: float | None = Field(
        None, validation_alias=_alias("similarity", "correlation"), description="Provider similarity score, nominally in [0,1]."
    )
    bedrooms: float | None = None
    bathrooms: float | None = None
    distance: float | None = Field(None, description="Distance from the subject in miles.")
    property_type: str | None = Field(None, validation_alias=_alias("property_type", "propertyType"))
    sold_date: str | None = Field(None, validation_alias=_alias("sold_date", "soldDate", "removedDate"))

    def is_valid(self) -> bool:
        """Eligible for the comparables tier: priced above $50k, known size, similarity above 0.5."""
        return (
            self.price is not None
            and self.price > 50_000
            and self.square_footage is not None
            and self.square_footage > 0
            and self.similarity is not None
            and self.similarity > 0.5
        )


class ARVDetails(BaseModel):
    """Explainability payload attached to every ARV estimate."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    price_per_sqft: float = Field(0.0, description="Weighted comp $/sqft, or arv/sqft for multiplier tiers.")
    comparables_used: int = Field(0, ge=0, description="Number of comparables that fed the estimate.")
    adjustment_applied: float = Field(0.0, description="Premium fraction or multiplier uplift actually used.")
    renovation_premium: float = Field(0.0, description="Dollar amount added above the tier's base value.")


class ARVResult(BaseModel):
    """Best-available after-repair value and the tier that produced it."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    arv: float = Field(..., ge=0, description="After-repair value (rounded to whole currency units).")
    method: ARVMethod
    confidence: Confidence
    details: ARVDetails = Field(default_factory=ARVDetails)


# =========================
# Source payloads
# =========================


class RawListingFields(BaseModel):
    """
    Raw per-field listing data returned by a listing scraper.

    Accepts the provider spellings seen in the wild (camelCase keys, Zillow's
    `homeType`/`livingArea`/`rentZestimate`, LoopNet's `buildingSize`).
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = Field(None, validation_alias=_alias("zip_code", "zipCode", "zip"))
    latitude: float | None = None
    longitude: float | None = None
    property_type: str | None = Field(None, validation_alias=_alias("property_type", "propertyType", "homeType"))
    bedrooms: float | None = Field(None, ge=0)
    bathrooms: float | None = Field(None, ge=0)
    square_footage: float | None = Field(
        None, ge=0, validation_alias=_alias("square_footage", "squareFootage", "livingArea", "buildingSize")
    )
    lot_size: float | None = Field(None, ge=0, validation_alias=_alias("lot_size", "lotSize"))
    year_built: int | None = Field(None, validation_alias=_alias("year_built", "yearBuilt"))
    price: float | None = Field(None, ge=0)
    asking_price: float | None = Field(None, ge=0, validation_alias=_alias("asking_price", "askingPrice"))
    monthly_rent: float | None = Field(
        None, ge=0, validation_alias=_alias("monthly_rent", "monthlyRent", "rentZestimate", "rentEstimate")
    )
    hoa_fees: float | None = Field(None, ge=0, validation_alias=_alias("hoa_fees", "hoaFee", "monthlyHoaFee"))
    property_taxes: float | None = Field(None, ge=0, validation_alias=_alias("property_taxes", "propertyTaxes"))
    tax_assessed_value: float | None = Field(None, ge=0, validation_alias=_alias("tax_assessed_value", "taxAssessedValue"))
    days_on_market: int | None = Field(None, ge=0, validation_alias=_alias("days_on_market", "daysOnMarket", "daysOnZillow"))
    listing_status: str | None = Field(None, validation_alias=_alias("listing_status", "listingStatus", "homeStatus"))
    description: str | None = None
    images: list[str] = Field(default_factory=list)

    @field_validator("zip_code", mode="before")
    @classmethod
    def _zip_as_text(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v


class HeuristicExtraction(BaseModel):
    """Coarse listing facts derived from a URL string alone."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    platform: Platform = "unknown"
    data: RawListingFields = Field(default_factory=RawListingFields)
    defaulted_fields: list[str] = Field(
        default_factory=list, description="Fields filled by fixed defaults rather than parsed from the URL."
    )


class AddressResult(BaseModel):
    """Best-effort structured US postal address."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    address_line: str | None = Field(None, description="Street line, e.g. '123 Main St'.")
    city: str | None = None
    state: str | None = Field(None, description="Two-letter state code.")
    zip_code: str | None = Field(None, description="Five-digit ZIP (ZIP+4 suffix dropped).")


class ScrapeResult(BaseModel):
    """Outcome of a listing-scraper call."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    success: bool
    data: RawListingFields | None = None
    error: str | None = None


class PropertyDetails(BaseModel):
    """Public-record property facts from the valuation provider."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    address_line1: str | None = Field(None, validation_alias=_alias("address_line1", "addressLine1"))
    city: str | None = None
    state: str | None = None
    zip_code: str | None = Field(None, validation_alias=_alias("zip_code", "zipCode"))
    latitude: float | None = None
    longitude: float | None = None
    property_type: str | None = Field(None, validation_alias=_alias("property_type", "propertyType"))
    bedrooms: float | None = None
    bathrooms: float | None = None
    square_footage: float | None = Field(None, validation_alias=_alias("square_footage", "squareFootage"))
    lot_size: float | None = Field(None, validation_alias=_alias("lot_size", "lotSize"))
    year_built: int | None = Field(None, validation_alias=_alias("year_built", "yearBuilt"))


class RentalEstimate(BaseModel):
    """Long-term rent AVM."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    rent_estimate: float | None = Field(None, validation_alias=_alias("rent_estimate", "rentEstimate", "rent"))
    rent_range_low: float | None = Field(None, validation_alias=_alias("rent_range_low", "rentRangeLow"))
    rent_range_high: float | None = Field(None, validation_alias=_alias("rent_range_high", "rentRangeHigh"))


class SaleComparables(BaseModel):
    """Value AVM plus the comparable sales it was derived from."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    value: float | None = Field(None, validation_alias=_alias("value", "price"))
    value_range_low: float | None = Field(None, validation_alias=_alias("value_range_low", "valueRangeLow", "priceRangeLow"))
    value_range_high: float | None = Field(None, validation_alias=_alias("value_range_high", "valueRangeHigh", "priceRangeHigh"))
    comparables: list[ComparableSale] = Field(default_factory=list)


class ListingDetails(BaseModel):
    """Active for-sale listing known to the valuation provider."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    price: float | None = Field(None, validation_alias=_alias("price", "listPrice"))
    days_on_market: int | None = Field(None, validation_alias=_alias("days_on_market", "daysOnMarket"))
    status: str | None = None
    images: list[str] = Field(default_factory=list)

    @field_validator("images", mode="before")
    @classmethod
    def _image_urls(cls, v: Any) -> Any:
        if not isinstance(v, list):
            return v
        urls: list[str] = []
        for item in v:
            url = item.get("url") if isinstance(item, dict) else item
            if isinstance(url, str) and url:
                urls.append(url)
        return urls[:10]


class MarketSaleStats(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    average_price: float | None = Field(None, validation_alias=_alias("average_price", "averagePrice"))
    median_price: float | None = Field(None, validation_alias=_alias("median_price", "medianPrice"))
    average_price_per_square_foot: float | None = Field(
        None, validation_alias=_alias("average_price_per_square_foot", "averagePricePerSquareFoot")
    )
    average_days_on_market: float | None = Field(None, validation_alias=_alias("average_days_on_market", "averageDaysOnMarket"))
    total_listings: int | None = Field(None, validation_alias=_alias("total_listings", "totalListings"))


class MarketRentalStats(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    average_rent: float | None = Field(None, validation_alias=_alias("average_rent", "averageRent"))
    median_rent: float | None = Field(None, validation_alias=_alias("median_rent", "medianRent"))
    average_rent_per_square_foot: float | None = Field(
        None, validation_alias=_alias("average_rent_per_square_foot", "averageRentPerSquareFoot")
    )
    total_listings: int | None = Field(None, validation_alias=_alias("total_listings", "totalListings"))


class MarketData(BaseModel):
    """Zip-level market aggregates."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    zip_code: str | None = Field(None, validation_alias=_alias("zip_code", "zipCode"))
    sale_data: MarketSaleStats | None = Field(None, validation_alias=_alias("sale_data", "saleData"))
    rental_data: MarketRentalStats | None = Field(None, validation_alias=_alias("rental_data", "rentalData"))


class ValuationBundle(BaseModel):
    """Everything gathered from the valuation provider for one address."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    property: PropertyDetails | None = None
    rental: RentalEstimate | None = None
    comparables: SaleComparables | None = None
    listing: ListingDetails | None = None
    market: MarketData | None = None
    errors: list[str] = Field(default_factory=list)


# =========================
# Merged record
# =========================


class FieldSource(BaseModel):
    """Provenance of one populated attribute."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    source: SourceTier
    confidence: Confidence


class SourceCounts(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    scraped: int = Field(0, ge=0)
    rentcast: int = Field(0, ge=0)
    estimated: int = Field(0, ge=0)


class DataCompleteness(BaseModel):
    """Checklist coverage of a merged record."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    score: int = Field(0, ge=0, le=100, description="Percentage of the required checklist that is populated.")
    missing_fields: list[str] = Field(default_factory=list)
    sources: SourceCounts = Field(default_factory=SourceCounts)


class DerivedMetrics(BaseModel):
    """Investment ratios computed from the merged facts (not provenance-tracked)."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    price_per_sqft: float | None = None
    cap_rate: float | None = Field(None, description="Percent, at a 40% expense ratio.")
    noi: float | None = Field(None, description="Annual net operating income.")
    gross_yield: float | None = Field(None, description="Percent of price collected as annual rent.")
    cash_on_cash_return: float | None = Field(None, description="Percent, 25% down at 7% over 30 years.")


class MergedPropertyRecord(BaseModel):
    """
    One coherent property record reconciled from scraped, provider and estimated data.

    Every tracked attribute that holds a value has exactly one entry in
    `field_sources`; attributes without a value have none.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    # Identity
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    latitude: float | None = None
    longitude: float | None = None

    # Listing facts
    property_type: str | None = None
    bedrooms: float | None = Field(None, ge=0)
    bathrooms: float | None = Field(None, ge=0)
    square_footage: float | None = Field(None, ge=0)
    lot_size: float | None = Field(None, ge=0)
    year_built: int | None = None

    # Money facts
    price: float | None = Field(None, ge=0, description="Listing/asking price.")
    listing_price: float | None = Field(None, ge=0)
    avm_value: float | None = Field(None, ge=0, description="Provider-estimated value.")
    rent_estimate: float | None = Field(None, ge=0)
    monthly_rent: float | None = Field(None, ge=0)
    rent_range_low: float | None = Field(None, ge=0)
    rent_range_high: float | None = Field(None, ge=0)
    hoa_fees: float | None = Field(None, ge=0)
    property_taxes: float | None = Field(None, ge=0)
    tax_assessed_value: float | None = Field(None, ge=0)
    insurance: float | None = Field(None, ge=0)

    # Market context
    days_on_market: int | None = Field(None, ge=0)
    listing_status: str | None = None
    description: str | None = None

    # Media
    images: list[str] = Field(default_factory=list)

    # Provenance & quality
    field_sources: dict[str, FieldSource] = Field(default_factory=dict)
    completeness: DataCompleteness = Field(default_factory=DataCompleteness)

    # Valuation sections
    comparables: list[ComparableSale] = Field(default_factory=list)
    comparables_count: int = Field(0, ge=0)
    comparables_avg_price: float | None = None
    market: MarketData | None = None
    metrics: DerivedMetrics = Field(default_factory=DerivedMetrics)
    arv: ARVResult | None = None

    @model_validator(mode="after")
    def _provenance_is_exclusive(self) -> MergedPropertyRecord:
        unknown = set(self.field_sources) - set(TRACKED_FIELDS)
        if unknown:
            raise ValueError(f"field_sources has entries for untracked fields: {sorted(unknown)}")
        for name in TRACKED_FIELDS:
            value = getattr(self, name)
            populated = bool(value) if name == "images" else value is not None
            if populated != (name in self.field_sources):
                state = "populated without a source" if populated else "sourced but empty"
                raise ValueError(f"{name} is {state}")
        return self

    def populated_fields(self) -> list[str]:
        return [name for name in TRACKED_FIELDS if name in self.field_sources]

    def summary(self) -> str:
        bits: list[str] = []
        line = ", ".join(p for p in (self.address, self.city, self.state, self.zip_code) if p)
        if line:
            bits.append(line)
        if self.price is not None:
            bits.append(f"price={self.price:,.0f}")
        if self.bedrooms is not None:
            bits.append(f"{self.bedrooms:g} bd")
        if self.bathrooms is not None:
            bits.append(f"{self.bathrooms:g} ba")
        if self.square_footage is not None:
            bits.append(f"{self.square_footage:,.0f} sqft")
        if self.arv is not None and self.arv.arv:
            bits.append(f"arv={self.arv.arv:,.0f} ({self.arv.method}/{self.arv.confidence})")
        bits.append(f"completeness={self.completeness.score}%")
        return " | ".join(bits)


# =========================
# Reconciliation contracts
# =========================


class ReconcileOptions(BaseModel):
    """Per-call switches for `PropertyDataMerger.reconcile`."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    include_valuation_api: bool = Field(True, description="Query the valuation provider for rent/comps/market data.")
    include_estimates: bool = Field(True, description="Fill remaining gaps with documented rules of thumb.")
    force_refresh: bool = Field(False, description="Bypass the cache read (the result is still stored).")
    include_arv: bool = Field(True, description="Attach an ARV estimate to the record.")
    renovation_level: RenovationLevel = "moderate"
    strategy: Strategy = "flip"
    scrape_timeout_s: float | None = Field(None, gt=0, description="Abandon the scraper after this many seconds.")


class ReconcileMetadata(BaseModel):
    """Observability envelope returned next to the record."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    platform: Platform = "unknown"
    url: str
    address: str
    reconciled_at: datetime
    cached: bool = False
    field_sources: SourceCounts = Field(default_factory=SourceCounts)
    has_scraped_data: bool = False
    scrape_error: str | None = None
    valuation_errors: list[str] = Field(default_factory=list)
    completeness: DataCompleteness = Field(default_factory=DataCompleteness)


class ReconcileResult(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    record: MergedPropertyRecord
    metadata: ReconcileMetadata


# =========================
# Policies (configuration)
# =========================


class CachePolicy(BaseModel):
    """Sizing and expiry for the in-memory property cache."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    max_size: int = Field(100, ge=1, description="Maximum entries per map before the oldest is evicted.")
    default_ttl_s: float = Field(3600.0, gt=0, description="Time-to-live applied when a write gives none.")
    sweep_interval_s: float = Field(300.0, gt=0, description="Interval of the background expiry sweep.")


class ValuationPolicy(BaseModel):
    """Connection settings for the valuation provider (RentCast)."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    api_key: str | None = Field(None, description="Provider key; sent as X-Api-Key. None disables the client.")
    base_url: str = Field("https://api.rentcast.io/v1", description="REST base URL without trailing slash.")
    timeout_s: float = Field(15.0, gt=0, description="HTTP timeout in seconds.")
    retry_attempts: int = Field(2, ge=1, description="Attempts per request when rate limited by the provider.")
    retry_backoff_s: float = Field(2.0, ge=0, description="Linear back-off step between rate-limited attempts.")
    max_requests_per_minute: int = Field(30, ge=1, description="Process-local request budget.")
    user_agent: str = Field("PropRec/0.1 (+property-reconciler)")

    @field_validator("base_url")
    @classmethod
    def _strip_slash(cls, v: str) -> str:
        return v.rstrip("/")


# =========================
# Cache statistics & snapshot
# =========================


class CacheStats(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    hits: int = Field(0, ge=0)
    misses: int = Field(0, ge=0)
    size: int = Field(0, ge=0)
    oldest_entry: datetime | None = Field(
        None, validation_alias=_alias("oldest_entry", "oldestEntry", "oldestEntryTimestamp")
    )
    hit_rate: float = Field(0.0, ge=0, le=100, validation_alias=_alias("hit_rate", "hitRate"))


class SnapshotEntry(BaseModel):
    """Serialized form of one cache entry."""

    model_config = ConfigDict(extra="ignore")

    data: Any
    timestamp: datetime
    ttl: int = Field(..., ge=0, description="Time-to-live in milliseconds.")
    hits: int = Field(0, ge=0)
    url: str


class CacheSnapshot(BaseModel):
    model_config = ConfigDict(extra="ignore")

    scraped_data: list[tuple[str, SnapshotEntry]] = Field(
        default_factory=list,
        validation_alias=_alias("scraped_data", "scrapedData"),
        serialization_alias="scrapedData",
    )
    analysis: list[tuple[str, SnapshotEntry]] = Field(default_factory=list)
    stats: CacheStats = Field(default_factory=CacheStats)
    timestamp: datetime
