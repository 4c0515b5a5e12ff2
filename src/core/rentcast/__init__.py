# src/core/rentcast/__init__.py
from .client import RentCastClient, RequestBudget
from .errors import (
    VALUATION_ERRORS,
    ApiKeyMissingError,
    InvalidPayloadError,
    RateLimitExceededError,
    ValuationApiError,
    ValuationHttpError,
    ValuationNetworkError,
    classify_valuation_error,
    valuation_error_guard,
)

__all__ = [
    "RentCastClient",
    "RequestBudget",
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
