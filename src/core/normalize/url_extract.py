# src/core/normalize/url_extract.py
"""
Heuristic listing extractor: coarse facts derived from a listing URL alone.

Used when no scraper is configured or the scraper failed. Each platform has
its own pure slug parser returning a partial RawListingFields; tokens that
cannot be located leave the field as None. Parsers never raise.

Price is never derived from a URL: numbers embedded in slugs are unreliable.
"""

from __future__ import annotations

import re
from urllib.parse import unquote, urlsplit

from src.schemas.models import HeuristicExtraction, Platform, RawListingFields

from .address import US_STATE_CODES

STREET_TYPES: frozenset[str] = frozenset(
    {"st", "ave", "rd", "dr", "ln", "way", "ct", "pl", "blvd", "pkwy", "terrace", "circle"}
)
_DIRECTIONALS = frozenset({"n", "s", "e", "w", "ne", "nw", "se", "sw"})
_ZIP_RE = re.compile(r"^\d{5}$")

DEFAULT_BEDROOMS = 3
DEFAULT_BATHROOMS = 2
DEFAULT_PROPERTY_TYPE = "Single Family"
DEFAULT_YEAR_BUILT = 1990
SQFT_BY_BEDROOMS: dict[int, int] = {1: 800, 2: 1200, 3: 1800, 4: 2400, 5: 3000}

_PLATFORM_HOSTS: tuple[tuple[str, Platform], ...] = (
    ("zillow.com", "zillow"),
    ("loopnet.com", "loopnet"),
    ("realtor.com", "realtor"),
    ("redfin.com", "redfin"),
)


def detect_platform(url: str) -> Platform:
    try:
        host = (urlsplit(url).hostname or "").lower()
    except ValueError:
        return "unknown"
    for needle, platform in _PLATFORM_HOSTS:
        if needle in host:
            return platform
    return "unknown"


def estimate_square_footage(bedrooms: float | None) -> float:
    """Sqft from the bedroom table; unknown counts fall back to the 3-bed size."""
    if bedrooms is None:
        return float(SQFT_BY_BEDROOMS[DEFAULT_BEDROOMS])
    return float(SQFT_BY_BEDROOMS.get(int(bedrooms), SQFT_BY_BEDROOMS[DEFAULT_BEDROOMS]))


# ----------------------------
# Token helpers
# ----------------------------


def _segments(url: str) -> list[str]:
    try:
        path = urlsplit(url).path
    except ValueError:
        return []
    return [unquote(s) for s in path.split("/") if s]


def _title(words: list[str]) -> str:
    return " ".join(w[:1].upper() + w[1:].lower() for w in words if w)


def _is_state(token: str) -> bool:
    return token.upper() in US_STATE_CODES


def _locate_state_zip(parts: list[str]) -> tuple[int | None, int | None]:
    """Index of the state code and ZIP tokens in a hyphenated slug."""
    zip_idx = next((i for i, p in enumerate(parts) if _ZIP_RE.match(p)), None)
    limit = zip_idx if zip_idx is not None else len(parts)
    if zip_idx is not None and zip_idx > 0 and _is_state(parts[zip_idx - 1]):
        return zip_idx - 1, zip_idx
    # street-type tokens such as "ct" collide with state codes; prefer the last one
    state_idx = None
    for i in range(1, limit):
        if _is_state(parts[i]):
            state_idx = i
    return state_idx, zip_idx


def _street_end(parts: list[str]) -> int | None:
    """Exclusive end of the street line: last street-type token plus trailing directionals."""
    for i in range(len(parts) - 1, 0, -1):
        if parts[i].lower() in STREET_TYPES:
            end = i + 1
            while end < len(parts) and parts[end].lower() in _DIRECTIONALS:
                end += 1
            return end
    return None


def _split_street_city(parts: list[str], city: str | None) -> tuple[str | None, str | None]:
    if not parts:
        return None, city
    end = _street_end(parts)
    if end is not None and end < len(parts) and not city:
        return _title(parts[:end]), _title(parts[end:])
    return _title(parts), city


# ----------------------------
# Platform parsers
# ----------------------------


def parse_zillow_url(url: str) -> RawListingFields:
    """/homedetails/123-main-st-springfield-il-62704/12345_zpid/"""
    segs = _segments(url)
    try:
        slug = segs[segs.index("homedetails") + 1]
    except (ValueError, IndexError):
        return RawListingFields()

    parts = [p for p in slug.split("-") if p]
    state_idx, zip_idx = _locate_state_zip(parts)
    if state_idx is None:
        return RawListingFields()

    fields: dict[str, str | None] = {"state": parts[state_idx].upper()}
    if zip_idx is not None and zip_idx > state_idx:
        fields["zip_code"] = parts[zip_idx]
        between = parts[state_idx + 1 : zip_idx]
        city = _title(between) if between else None
        address, city = _split_street_city(parts[:state_idx], city)
    else:
        city_parts = parts[max(0, state_idx - 2) : state_idx]
        city = _title(city_parts) or None
        head = parts[: max(0, state_idx - 2)]
        address = _title(head) if head else None
    fields["address"] = address
    fields["city"] = city
    return RawListingFields(**fields)


def parse_realtor_url(url: str) -> RawListingFields:
    """/realestateandhomes-detail/123-Main-St_Springfield_IL_62704_M12345-67890"""
    segs = _segments(url)
    try:
        slug = segs[segs.index("realestateandhomes-detail") + 1]
    except (ValueError, IndexError):
        return RawListingFields()
    parts = slug.split("_")
    if len(parts) < 4 or not _is_state(parts[2]):
        return RawListingFields()
    return RawListingFields(
        address=parts[0].replace("-", " ") or None,
        city=parts[1].replace("-", " ") or None,
        state=parts[2].upper(),
        zip_code=parts[3] if _ZIP_RE.match(parts[3]) else None,
    )


def parse_redfin_url(url: str) -> RawListingFields:
    """/IL/Springfield/123-Main-St-62704/home/12345678"""
    segs = _segments(url)
    try:
        home = segs.index("home")
    except ValueError:
        return RawListingFields()
    if home < 3 or not _is_state(segs[home - 3]):
        return RawListingFields()

    tokens = [t for t in segs[home - 1].split("-") if t]
    zip_code = tokens.pop() if tokens and _ZIP_RE.match(tokens[-1]) else None
    return RawListingFields(
        address=" ".join(tokens) or None,
        city=segs[home - 2].replace("-", " ") or None,
        state=segs[home - 3].upper(),
        zip_code=zip_code,
    )


def parse_loopnet_url(url: str) -> RawListingFields:
    """/Listing/<id>/<slug>/ (the id may also trail the slug)."""
    segs = _segments(url)
    lowered = [s.lower() for s in segs]
    try:
        start = lowered.index("listing") + 1
    except ValueError:
        return RawListingFields()

    slug = "-".join(s for s in segs[start:] if not s.isdigit())
    parts = [p for p in slug.split("-") if p]
    state_idx = next((i for i, p in enumerate(parts) if i > 0 and _is_state(p)), None)
    if state_idx is None:
        return RawListingFields(property_type="Commercial")

    zip_code = None
    if state_idx + 1 < len(parts) and _ZIP_RE.match(parts[state_idx + 1]):
        zip_code = parts[state_idx + 1]
    head = parts[:state_idx]
    end = _street_end(head)
    if end is not None and end < len(head):
        address, city = _title(head[:end]), _title(head[end:])
    else:
        address, city = (_title(head[:-1]) or None), _title(head[-1:])
    return RawListingFields(
        address=address,
        city=city,
        state=parts[state_idx].upper(),
        zip_code=zip_code,
        property_type="Commercial",
    )


_PARSERS = {
    "zillow": parse_zillow_url,
    "realtor": parse_realtor_url,
    "redfin": parse_redfin_url,
    "loopnet": parse_loopnet_url,
}


def extract_from_url(url: str) -> HeuristicExtraction:
    """
    Platform detection + slug parsing + fixed defaults.

    `defaulted_fields` lists the attributes filled from defaults rather than
    parsed from the URL, so callers can grade their confidence separately.
    """
    platform = detect_platform(url)
    parser = _PARSERS.get(platform)
    parsed = parser(url) if parser else RawListingFields()

    updates: dict[str, object] = {}
    if parsed.bedrooms is None:
        updates["bedrooms"] = float(DEFAULT_BEDROOMS)
    if parsed.bathrooms is None:
        updates["bathrooms"] = float(DEFAULT_BATHROOMS)
    if parsed.property_type is None:
        updates["property_type"] = DEFAULT_PROPERTY_TYPE
    if parsed.year_built is None:
        updates["year_built"] = DEFAULT_YEAR_BUILT
    if parsed.square_footage is None:
        beds = parsed.bedrooms if parsed.bedrooms is not None else DEFAULT_BEDROOMS
        updates["square_footage"] = estimate_square_footage(beds)

    return HeuristicExtraction(
        platform=platform,
        data=parsed.model_copy(update=updates),
        defaulted_fields=sorted(updates),
    )


__all__ = [
    "STREET_TYPES",
    "SQFT_BY_BEDROOMS",
    "detect_platform",
    "estimate_square_footage",
    "parse_zillow_url",
    "parse_realtor_url",
    "parse_redfin_url",
    "parse_loopnet_url",
    "extract_from_url",
]
