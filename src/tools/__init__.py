# src/tools/__init__.py
"""
Property reconciler: tools package

Exports only modules that live under `src/tools`:
  - build_merger        (from .property_reconcile)
  - reconcile_property  (from .property_reconcile)

Core components (cache, merger, valuation) should be imported directly from
their own packages, not re-exported here.
"""

from __future__ import annotations

from .property_reconcile import build_merger, reconcile_property

__all__ = ["build_merger", "reconcile_property"]
