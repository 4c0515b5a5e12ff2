# tests/conftest.py
from __future__ import annotations

import logging

import pytest

from src.core.cache import PropertyCache
from src.core.merge import PropertyDataMerger
from src.schemas.models import CachePolicy
from tests.utils import FakeClock, FakeScraper, FakeValuation, make_raw_listing


# -------- Environment isolation --------
@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    for name in (
        "PROPREC_CACHE_MAX_SIZE",
        "PROPREC_CACHE_TTL_S",
        "PROPREC_SWEEP_INTERVAL_S",
        "PROPREC_LOG_LEVEL",
        "PROPREC_LOG_FILE",
        "RENTCAST_API_KEY",
        "RENTCAST_API_URL",
    ):
        monkeypatch.delenv(name, raising=False)
    yield


# -------- Cache fixtures --------
@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache_factory(clock):
    """
    Factory for PropertyCache instances on the shared fake clock.

    Usage:
        cache = cache_factory(max_size=3, default_ttl_s=1.0)
    """
    created: list[PropertyCache] = []

    def _factory(**policy):
        c = PropertyCache(CachePolicy(**policy), clock=clock)
        created.append(c)
        return c

    yield _factory
    for c in created:
        c.stop_sweeper()


# -------- Merger fixtures --------
@pytest.fixture
def merger_factory(cache_factory):
    """
    Factory for a merger over a fresh cache.

    Usage:
        merger = merger_factory(scraper=FakeScraper(make_raw_listing()), valuation=FakeValuation(...))
    """

    def _factory(*, scraper=None, valuation=None, cache=None):
        return PropertyDataMerger(cache or cache_factory(), scraper=scraper, valuation=valuation)

    return _factory


@pytest.fixture
def scraper_ok():
    return FakeScraper(make_raw_listing())


@pytest.fixture
def empty_valuation():
    return FakeValuation()


@pytest.fixture
def caplog_info(caplog):
    caplog.set_level(logging.INFO, logger="src")
    return caplog


# -------- Pytest markers --------
def pytest_configure(config):
    config.addinivalue_line("markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')")
    config.addinivalue_line("markers", "integration: marks integration tests")
