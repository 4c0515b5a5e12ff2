# src/core/merge/errors.py
"""
Typed errors for property reconciliation.

Only InvalidListingUrlError escapes `PropertyDataMerger.reconcile`; every
upstream failure is recovered by falling back one source tier.
"""

from __future__ import annotations


class ReconcileError(RuntimeError):
    """Base class for reconciliation failures."""


class InvalidListingUrlError(ReconcileError, ValueError):
    """Input was empty or not an absolute http(s) URL."""


class ScrapeFailedError(ReconcileError):
    """The listing scraper returned no usable data (success=False or no fields)."""


__all__ = ["ReconcileError", "InvalidListingUrlError", "ScrapeFailedError"]
