"""In-process caching shared by backend clients."""

from .cache_service import CacheService

__all__ = ["CacheService"]
