# src/tools/property_reconcile.py

from __future__ import annotations

import asyncio
from typing import Any

from src.core.cache import PropertyCache
from src.core.merge import ListingScraper, PropertyDataMerger, ValuationProvider
from src.core.rentcast import RentCastClient
from src.inputs.settings import AppSettings
from src.schemas.models import ReconcileOptions, ReconcileResult


def _options_from_dict(d: dict[str, Any] | ReconcileOptions | None, fallback: ReconcileOptions) -> ReconcileOptions:
    """
    Normalize incoming options that may be:
      - a ReconcileOptions instance,
      - a plain dict of option fields (merged over the fallback),
      - or None (use the fallback).
    """
    if isinstance(d, ReconcileOptions):
        return d
    if not d:
        return fallback
    return ReconcileOptions.model_validate({**fallback.model_dump(), **d})


def build_merger(
    settings: AppSettings | None = None,
    *,
    cache: PropertyCache | None = None,
    scraper: ListingScraper | None = None,
    valuation: ValuationProvider | None = None,
) -> PropertyDataMerger:
    """
    Wire a merger from settings. A RentCast client is created only when no
    provider is passed and an API key is configured. A cache created here has
    its background sweeper running; a passed-in cache is left as is.
    """
    cfg = settings or AppSettings()
    if valuation is None and cfg.valuation.api_key:
        valuation = RentCastClient(cfg.valuation)
    if cache is None:
        cache = PropertyCache(cfg.cache)
        cache.start_sweeper()
    return PropertyDataMerger(
        cache,
        scraper=scraper,
        valuation=valuation,
        default_options=cfg.reconcile,
    )


def reconcile_property(
    url: str,
    *,
    options: dict[str, Any] | ReconcileOptions | None = None,
    settings: AppSettings | None = None,
    merger: PropertyDataMerger | None = None,
) -> ReconcileResult:
    """
    Synchronous, agent/CLI-callable reconciliation entrypoint.

    Must not be called from inside a running event loop; async callers use
    `PropertyDataMerger.reconcile` directly.
    """
    m = merger or build_merger(settings)
    opts = _options_from_dict(options, m.default_options)
    return asyncio.run(m.reconcile(url, opts))


__all__ = ["build_merger", "reconcile_property"]
