# src/core/merge/providers.py
"""
Collaborator contracts consumed by the merger, plus the helpers that call them.

ListingScraper
--------------
    scrape(url) -> ScrapeResult | dict        (sync or async)

ValuationProvider
-----------------
    get_rental(address)     -> RentalEstimate | dict | None
    get_comparables(address)-> SaleComparables | list | dict | None
    get_market(zip_code)    -> MarketData | dict | None
    # Optional (duck-typed):
    # get_property(address) -> PropertyDetails | dict | None
    # get_listing(address)  -> ListingDetails | dict | None

Each method may be a plain function or a coroutine function. Plain functions
run in a worker thread so a slow provider never blocks the event loop.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any, Protocol

from pydantic import BaseModel

from src.core.valuation import extract_comparables
from src.schemas.models import (
    ListingDetails,
    MarketData,
    PropertyDetails,
    RentalEstimate,
    SaleComparables,
    ScrapeResult,
    ValuationBundle,
)

from .errors import ScrapeFailedError

logger = logging.getLogger(__name__)


class ListingScraper(Protocol):
    def scrape(self, url: str) -> Any: ...


class ValuationProvider(Protocol):
    def get_rental(self, address: str) -> Any: ...

    def get_comparables(self, address: str) -> Any: ...

    def get_market(self, zip_code: str) -> Any: ...

    # NOTE: Providers may optionally implement these.
    # def get_property(self, address: str) -> Any: ...
    # def get_listing(self, address: str) -> Any: ...


async def invoke(fn: Callable[..., Any], *args: Any) -> Any:
    """Await `fn(*args)` whether it is sync or async."""
    if inspect.iscoroutinefunction(fn):
        return await fn(*args)
    result = await asyncio.to_thread(fn, *args)
    if inspect.isawaitable(result):
        return await result
    return result


def _coerce(model: type[BaseModel], payload: Any) -> Any:
    if payload is None or isinstance(payload, model):
        return payload
    if isinstance(payload, BaseModel):
        payload = payload.model_dump()
    if isinstance(payload, dict):
        return model.model_validate(payload)
    raise TypeError(f"{model.__name__}: unsupported payload {type(payload).__name__}")


def _coerce_comparables(payload: Any) -> SaleComparables | None:
    if payload is None:
        return None
    if isinstance(payload, list):
        return SaleComparables(comparables=extract_comparables(payload))
    return _coerce(SaleComparables, payload)


async def run_scraper(scraper: ListingScraper, url: str, timeout_s: float | None = None) -> ScrapeResult:
    """
    Call the scraper and validate its result.

    Raises ScrapeFailedError for an unsuccessful or empty scrape; timeouts and
    collaborator exceptions propagate for the caller to record.
    """
    call = invoke(scraper.scrape, url)
    raw = await (asyncio.wait_for(call, timeout_s) if timeout_s else call)
    result = raw if isinstance(raw, ScrapeResult) else ScrapeResult.model_validate(raw)
    if not result.success or result.data is None:
        raise ScrapeFailedError(result.error or "scraper returned no data")
    return result


_SECTIONS: dict[str, Callable[[Any], Any]] = {
    "property": lambda p: _coerce(PropertyDetails, p),
    "rental": lambda p: _coerce(RentalEstimate, p),
    "comparables": _coerce_comparables,
    "listing": lambda p: _coerce(ListingDetails, p),
    "market": lambda p: _coerce(MarketData, p),
}


async def _section(name: str, fn: Callable[..., Any] | None, arg: str) -> tuple[str, Any, str | None]:
    if fn is None:
        return name, None, None
    try:
        payload = await invoke(fn, arg)
        return name, _SECTIONS[name](payload), None
    except asyncio.CancelledError:
        raise
    except Exception as exc:  # noqa: BLE001
        logger.warning("[Valuation] %s lookup failed: %s", name, exc)
        return name, None, f"{name}: {exc}"


async def fetch_valuation(
    provider: ValuationProvider,
    address: str,
    zip_code: str | None = None,
) -> ValuationBundle:
    """
    Fan out to every section the provider supports, concurrently, and join.
    A failing section is recorded in `errors` and left empty.
    """
    calls = [
        _section("property", getattr(provider, "get_property", None), address),
        _section("rental", getattr(provider, "get_rental", None), address),
        _section("comparables", getattr(provider, "get_comparables", None), address),
        _section("listing", getattr(provider, "get_listing", None), address),
    ]
    if zip_code:
        calls.append(_section("market", getattr(provider, "get_market", None), zip_code))

    sections: dict[str, Any] = {}
    errors: list[str] = []
    for name, value, error in await asyncio.gather(*calls):
        sections[name] = value
        if error:
            errors.append(error)
    return ValuationBundle(**sections, errors=errors)


async def fetch_market(provider: ValuationProvider, zip_code: str) -> tuple[MarketData | None, str | None]:
    _, value, error = await _section("market", getattr(provider, "get_market", None), zip_code)
    return value, error


__all__ = [
    "ListingScraper",
    "ValuationProvider",
    "invoke",
    "run_scraper",
    "fetch_valuation",
    "fetch_market",
]
