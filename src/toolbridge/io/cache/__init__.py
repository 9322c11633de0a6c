"""TTL response cache for backend reads."""

from .cache import DEFAULT_TTL, CacheEntry, ResponseCache, cached_call, make_key

__all__ = ["DEFAULT_TTL", "CacheEntry", "ResponseCache", "cached_call", "make_key"]
