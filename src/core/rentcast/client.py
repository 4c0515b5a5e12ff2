# src/core/rentcast/client.py
"""
RentCast REST client: property records, rent/value AVMs with comparables,
sale listings, and ZIP-level market statistics.

Every getter returns a typed model or None when the provider has no data
(404 / empty list). Failures surface as ValuationApiError subclasses.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from collections.abc import Callable
from typing import Any

import requests

from src.core.log import register_secret
from src.schemas.models import (
    ListingDetails,
    MarketData,
    PropertyDetails,
    RentalEstimate,
    SaleComparables,
    ValuationPolicy,
)

from .errors import (
    ApiKeyMissingError,
    InvalidPayloadError,
    RateLimitExceededError,
    ValuationHttpError,
    ValuationNetworkError,
    valuation_error_guard,
)

logger = logging.getLogger(__name__)

_WINDOW_S = 60.0


class RequestBudget:
    """Sliding one-minute request budget, shared by every call on one client."""

    def __init__(self, per_minute: int, clock: Callable[[], float] = time.monotonic) -> None:
        self.per_minute = per_minute
        self._clock = clock
        self._sent: deque[float] = deque()
        self._lock = threading.Lock()

    def acquire(self) -> None:
        with self._lock:
            now = self._clock()
            while self._sent and now - self._sent[0] >= _WINDOW_S:
                self._sent.popleft()
            if len(self._sent) >= self.per_minute:
                raise RateLimitExceededError(
                    f"Local budget of {self.per_minute} requests/minute exhausted; try again shortly."
                )
            self._sent.append(now)

    def remaining(self) -> int:
        with self._lock:
            now = self._clock()
            live = sum(1 for t in self._sent if now - t < _WINDOW_S)
            return max(0, self.per_minute - live)


class RentCastClient:
    def __init__(
        self,
        policy: ValuationPolicy | None = None,
        *,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.policy = policy or ValuationPolicy()
        self._session = session or requests.Session()
        self._sleep = sleep
        self.budget = RequestBudget(self.policy.max_requests_per_minute, clock)
        register_secret(self.policy.api_key)

    @property
    def configured(self) -> bool:
        return bool(self.policy.api_key)

    # ---------- public API ----------

    def get_property(self, address: str) -> PropertyDetails | None:
        data = self._first(self._get("/properties", {"address": address}))
        return self._parse(PropertyDetails, data)

    def get_rental(self, address: str) -> RentalEstimate | None:
        return self._parse(RentalEstimate, self._get("/avm/rent/long-term", {"address": address}))

    def get_comparables(self, address: str) -> SaleComparables | None:
        return self._parse(SaleComparables, self._get("/avm/value", {"address": address}))

    def get_listing(self, address: str) -> ListingDetails | None:
        data = self._first(self._get("/listings/sale", {"address": address}))
        return self._parse(ListingDetails, data)

    def get_market(self, zip_code: str) -> MarketData | None:
        return self._parse(MarketData, self._get("/markets", {"zipCode": zip_code}))

    # ---------- internals ----------

    def _headers(self) -> dict[str, str]:
        return {
            "X-Api-Key": self.policy.api_key or "",
            "Accept": "application/json",
            "User-Agent": self.policy.user_agent,
        }

    def _get(self, path: str, params: dict[str, str]) -> Any:
        if not self.configured:
            raise ApiKeyMissingError("RENTCAST_API_KEY is not configured")

        url = f"{self.policy.base_url}{path}"
        attempts = self.policy.retry_attempts
        with valuation_error_guard():
            for attempt in range(1, attempts + 1):
                self.budget.acquire()
                try:
                    resp = self._session.get(url, params=params, headers=self._headers(), timeout=self.policy.timeout_s)
                except requests.RequestException as e:
                    raise ValuationNetworkError(f"{path}: {e}") from e

                status = resp.status_code
                if status == 404:
                    logger.debug("[RentCast] %s: no data for %s", path, params)
                    return None
                if status == 429:
                    if attempt < attempts:
                        delay = self.policy.retry_backoff_s * attempt
                        logger.warning("[RentCast] Rate limited on %s, retrying in %.1fs", path, delay)
                        self._sleep(delay)
                        continue
                    raise RateLimitExceededError(f"{path}: rate limited after {attempts} attempts")
                if status >= 400:
                    raise ValuationHttpError(status, f"{path}: HTTP {status} {(resp.text or '')[:200]}")
                return resp.json()
        return None  # pragma: no cover

    @staticmethod
    def _first(payload: Any) -> Any:
        if isinstance(payload, list):
            return payload[0] if payload else None
        return payload

    @staticmethod
    def _parse(model: type[Any], payload: Any) -> Any:
        if payload is None:
            return None
        if not isinstance(payload, dict):
            raise InvalidPayloadError(f"Expected an object for {model.__name__}, got {type(payload).__name__}")
        with valuation_error_guard():
            return model.model_validate(payload)


__all__ = ["RentCastClient", "RequestBudget"]
