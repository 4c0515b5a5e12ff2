# tests/__init__.py
"""
Expose common test utilities so tests can import directly:
    from tests import make_comparable, make_raw_listing, FakeClock
"""

from .utils import FakeClock, make_comparable, make_raw_listing

__all__ = ["FakeClock", "make_comparable", "make_raw_listing"]
