from .keys import normalize_cache_key
from .property_cache import AnalysisPayload, PropertyCache
from .ttl_map import MISSING, CacheEntry, TTLMap

__all__ = [
    "normalize_cache_key",
    "PropertyCache",
    "AnalysisPayload",
    "CacheEntry",
    "TTLMap",
    "MISSING",
]
