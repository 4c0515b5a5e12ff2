# src/core/normalize/address.py

from __future__ import annotations

import re

import usaddress

from src.schemas.models import AddressResult

# Sentinel used when no address component could be resolved.
UNKNOWN_ADDRESS = "Property Address Unknown"

_US_ZIP_RE = re.compile(r"\b(\d{5})(?:-\d{4})?\b")

# ----------------------------
# US state patterns
# ----------------------------
US_STATE_CODES: frozenset[str] = frozenset(
    (
        "AL|AK|AZ|AR|CA|CO|CT|DE|FL|GA|HI|ID|IL|IN|IA|KS|KY|LA|ME|MD|MA|MI|MN|MS|MO|"
        "MT|NE|NV|NH|NJ|NM|NY|NC|ND|OH|OK|OR|PA|RI|SC|SD|TN|TX|UT|VT|VA|WA|WV|WI|WY|"
        "DC|PR|GU|VI|AS|MP"
    ).split("|")
)

_STATE_NAME_TO_CODE = {
    "ALABAMA": "AL",
    "ALASKA": "AK",
    "ARIZONA": "AZ",
    "ARKANSAS": "AR",
    "CALIFORNIA": "CA",
    "COLORADO": "CO",
    "CONNECTICUT": "CT",
    "DELAWARE": "DE",
    "FLORIDA": "FL",
    "GEORGIA": "GA",
    "HAWAII": "HI",
    "IDAHO": "ID",
    "ILLINOIS": "IL",
    "INDIANA": "IN",
    "IOWA": "IA",
    "KANSAS": "KS",
    "KENTUCKY": "KY",
    "LOUISIANA": "LA",
    "MAINE": "ME",
    "MARYLAND": "MD",
    "MASSACHUSETTS": "MA",
    "MICHIGAN": "MI",
    "MINNESOTA": "MN",
    "MISSISSIPPI": "MS",
    "MISSOURI": "MO",
    "MONTANA": "MT",
    "NEBRASKA": "NE",
    "NEVADA": "NV",
    "NEW HAMPSHIRE": "NH",
    "NEW JERSEY": "NJ",
    "NEW MEXICO": "NM",
    "NEW YORK": "NY",
    "NORTH CAROLINA": "NC",
    "NORTH DAKOTA": "ND",
    "OHIO": "OH",
    "OKLAHOMA": "OK",
    "OREGON": "OR",
    "PENNSYLVANIA": "PA",
    "RHODE ISLAND": "RI",
    "SOUTH CAROLINA": "SC",
    "SOUTH DAKOTA": "SD",
    "TENNESSEE": "TN",
    "TEXAS": "TX",
    "UTAH": "UT",
    "VERMONT": "VT",
    "VIRGINIA": "VA",
    "WASHINGTON": "WA",
    "WEST VIRGINIA": "WV",
    "WISCONSIN": "WI",
    "WYOMING": "WY",
    "DISTRICT OF COLUMBIA": "DC",
    "PUERTO RICO": "PR",
}

# The set of labels that constitute the street line (house number + street name + unit)
_STREET_LABELS = {
    "AddressNumber",
    "AddressNumberPrefix",
    "AddressNumberSuffix",
    "StreetNamePreDirectional",
    "StreetNamePreModifier",
    "StreetNamePreType",
    "StreetName",
    "StreetNamePostType",
    "StreetNamePostDirectional",
    "OccupancyType",
    "OccupancyIdentifier",
    "SubaddressType",
    "SubaddressIdentifier",
}


def _clean_space(s: str) -> str:
    return re.sub(r"\s+", " ", s).strip(" ,;|\n\t")


def normalize_state(value: str | None) -> str | None:
    """Two-letter code for a state code or full state name; None if unrecognized."""
    if not value:
        return None
    cand = _clean_space(value).strip(".").upper()
    if cand in US_STATE_CODES:
        return cand
    return _STATE_NAME_TO_CODE.get(cand)


def normalize_zip(value: str | None) -> str | None:
    if not value:
        return None
    m = _US_ZIP_RE.search(str(value))
    return m.group(1) if m else None


def parse_address_line(text: str | None) -> AddressResult | None:
    """
    Split a single-line US address ("123 Main St, Springfield, IL 62704") into
    street / city / state / ZIP with usaddress. Returns None when nothing
    address-like is recognized.
    """
    if not text:
        return None
    blob = _clean_space(text.replace("\n", " "))
    if not blob:
        return None

    try:
        # parse() tolerates repeated labels where tag() would raise
        tokens = usaddress.parse(blob)
    except Exception:  # noqa: BLE001
        return None

    street: list[str] = []
    city: list[str] = []
    state: str | None = None
    zip_code: str | None = None
    for token, label in tokens:
        token = token.strip(" ,")
        if not token:
            continue
        if label in _STREET_LABELS and not city and state is None:
            street.append(token)
        elif label == "PlaceName" and state is None:
            city.append(token)
        elif label in {"StateName", "StateAbbreviation"} and state is None:
            state = normalize_state(token)
        elif label == "ZipCode" and zip_code is None:
            zip_code = normalize_zip(token)

    street_line = _clean_space(" ".join(street)) if street else None
    if street_line and not (re.search(r"\d", street_line) and re.search(r"[A-Za-z]", street_line)):
        street_line = None

    result = AddressResult(
        address_line=street_line,
        city=_clean_space(" ".join(city)) or None,
        state=state,
        zip_code=zip_code,
    )
    if not (result.address_line or result.city or result.state or result.zip_code):
        return None
    return result


def format_postal_address(
    address: str | None,
    city: str | None = None,
    state: str | None = None,
    zip_code: str | None = None,
) -> str:
    """Join the present components with ", "; the sentinel when none are present."""
    parts = [_clean_space(p) for p in (address, city, state, zip_code) if p and _clean_space(p)]
    return ", ".join(parts) if parts else UNKNOWN_ADDRESS


__all__ = [
    "UNKNOWN_ADDRESS",
    "US_STATE_CODES",
    "normalize_state",
    "normalize_zip",
    "parse_address_line",
    "format_postal_address",
]
