"""Shared in-process cache for backend clients."""

import logging
from typing import Any, Optional

from cachetools import TTLCache

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 24 * 60 * 60
DEFAULT_MAX_SIZE = 1024

_MISSING = object()


class CacheService:
    """TTL key-value cache that can be switched off entirely.

    A disabled cache ignores writes and always misses.
    """

    def __init__(
        self,
        enabled: bool = True,
        ttl: int = DEFAULT_TTL_SECONDS,
        max_size: int = DEFAULT_MAX_SIZE,
    ):
        self._enabled = enabled
        self.ttl = ttl
        self._cache: Optional[TTLCache] = TTLCache(maxsize=max_size, ttl=ttl) if enabled else None
        logger.debug(f"Cache initialised (enabled={enabled}, ttl={ttl}s, max_size={max_size})")

    @classmethod
    def from_settings(cls, settings) -> "CacheService":
        return cls(
            enabled=settings.cache_enabled,
            ttl=settings.cache_ttl,
            max_size=settings.cache_max_size,
        )

    def get(self, key: str, default: Any = None) -> Any:
        if self._cache is None:
            return default
        return self._cache.get(key, default)

    def set(self, key: str, value: Any) -> bool:
        if self._cache is None:
            return False
        self._cache[key] = value
        return True

    def delete(self, key: str) -> int:
        if self._cache is None:
            return 0
        return 0 if self._cache.pop(key, _MISSING) is _MISSING else 1

    def is_enabled(self) -> bool:
        return self._enabled

    def flush_all(self) -> None:
        if self._cache is not None:
            self._cache.clear()
