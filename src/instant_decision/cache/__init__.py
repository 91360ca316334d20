"""Decision cache package."""

from .keys import canonicalize, context_fingerprint
from .models import CacheEntry, CacheStats
from .store import CACHE_SCHEMA_VERSION, Clock, DecisionCache

__all__ = [
    "CACHE_SCHEMA_VERSION",
    "CacheEntry",
    "CacheStats",
    "Clock",
    "DecisionCache",
    "canonicalize",
    "context_fingerprint",
]
