"""
AI Cache Module

Content-addressed, TTL-based cache for expensive AI responses.
"""

from .store import CacheStore, build_cache_key
from .backends import InMemoryCacheBackend, JsonFileCacheBackend

__all__ = ['CacheStore', 'build_cache_key', 'InMemoryCacheBackend', 'JsonFileCacheBackend']
