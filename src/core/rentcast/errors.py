# src/core/rentcast/errors.py
"""
Typed errors + utilities for the RentCast valuation client.

Exports
-------
- ValuationApiError, ApiKeyMissingError, RateLimitExceededError,
  ValuationNetworkError, ValuationHttpError, InvalidPayloadError
- VALUATION_ERRORS
- classify_valuation_error(exc)
- valuation_error_guard()
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager

import requests
from pydantic import ValidationError

# =========================
# Exception types
# =========================


class ValuationApiError(RuntimeError):
    """Base class for valuation-provider failures."""


class ApiKeyMissingError(ValuationApiError):
    """No API key is configured, so no request can be sent."""


class RateLimitExceededError(ValuationApiError):
    """The local request budget is spent, or the provider kept answering 429."""


class ValuationNetworkError(ValuationApiError):
    """Transport failure (DNS, connect, timeout) while talking to the provider."""


class ValuationHttpError(ValuationApiError):
    """Provider answered with a non-retryable HTTP error status."""

    def __init__(self, status_code: int, message: str = "") -> None:
        self.status_code = status_code
        super().__init__(message or f"HTTP {status_code}")


class InvalidPayloadError(ValuationApiError):
    """Response body was not JSON or did not match the expected shape."""


# Selector tuple for grouped exception handling
VALUATION_ERRORS = (
    ApiKeyMissingError,
    RateLimitExceededError,
    ValuationNetworkError,
    ValuationHttpError,
    InvalidPayloadError,
)

# =========================
# Classification helpers
# =========================


def classify_valuation_error(exc: Exception) -> ValuationApiError:
    """
    Map arbitrary exceptions raised inside the client to a typed ValuationApiError.

      - ValuationApiError subclasses → passed through
      - requests.* errors            → ValuationNetworkError
      - JSON / pydantic / ValueError → InvalidPayloadError
      - Fallback                     → ValuationApiError
    """
    if isinstance(exc, ValuationApiError):
        return exc

    msg = f"{type(exc).__name__}: {exc}"
    if isinstance(exc, requests.RequestException):
        return ValuationNetworkError(msg)
    # JSONDecodeError and ValidationError are both ValueError subclasses
    if isinstance(exc, (json.JSONDecodeError, ValidationError, ValueError, TypeError)):
        return InvalidPayloadError(msg)
    return ValuationApiError(msg)


@contextmanager
def valuation_error_guard() -> Iterator[None]:
    """Context manager to normalize unexpected exceptions from client internals."""
    try:
        yield
    except VALUATION_ERRORS:
        raise
    except Exception as exc:  # noqa: BLE001
        raise classify_valuation_error(exc) from exc


__all__ = [
    "ValuationApiError",
    "ApiKeyMissingError",
    "RateLimitExceededError",
    "ValuationNetworkError",
    "ValuationHttpError",
    "InvalidPayloadError",
    "VALUATION_ERRORS",
    "classify_valuation_error",
    "valuation_error_guard",
]
