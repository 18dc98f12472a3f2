"""Upstream response caching."""

from .response_cache import CacheEntry, ResponseCache, make_fingerprint

__all__ = ["CacheEntry", "ResponseCache", "make_fingerprint"]
