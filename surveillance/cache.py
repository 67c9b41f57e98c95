"""
Fail-open TTL cache for normalized surveillance data.

The cache is a performance optimization only: a broken or unavailable store
degrades to "always miss" and "never write", it never raises into the caller.
"""

import asyncio
import re
import time
from collections.abc import Callable
from typing import Any, Protocol

import structlog
from diskcache import Cache
from pydantic import ValidationError

from surveillance.config import CacheConfig
from surveillance.domain.models import CacheEntry, SurveillanceDataPoint

logger = structlog.get_logger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[/\\.\s]")


def sanitize_key(key: str, max_length: int = 128) -> str:
    """Make a cache key safe to use as a storage identifier."""
    return _UNSAFE_KEY_CHARS.sub("_", key)[:max_length]


class CacheStore(Protocol):
    """Blocking key/value store underneath the surveillance cache."""

    def get(self, key: str) -> dict[str, Any] | None:
        ...

    def set(self, key: str, value: dict[str, Any], expire: float) -> None:
        ...


class InMemoryStore:
    """Process-local store. Expiry is left to SurveillanceCache."""

    def __init__(self) -> None:
        self._data: dict[str, dict[str, Any]] = {}

    def get(self, key: str) -> dict[str, Any] | None:
        return self._data.get(key)

    def set(self, key: str, value: dict[str, Any], expire: float) -> None:
        self._data[key] = value


class DiskCacheStore:
    """Persistent store backed by diskcache."""

    def __init__(self, directory: str) -> None:
        self._cache = Cache(directory)

    def get(self, key: str) -> dict[str, Any] | None:
        return self._cache.get(key)

    def set(self, key: str, value: dict[str, Any], expire: float) -> None:
        self._cache.set(key, value, expire=expire)

    def close(self) -> None:
        self._cache.close()


def build_store(config: CacheConfig) -> CacheStore:
    if config.backend == "memory":
        return InMemoryStore()
    return DiskCacheStore(config.directory)


class SurveillanceCache:
    """Per-entry TTL cache of data point lists, keyed by source and region."""

    def __init__(
        self,
        store: CacheStore | None = None,
        max_key_length: int = 128,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store: CacheStore = store if store is not None else InMemoryStore()
        self.max_key_length = max_key_length
        self.clock = clock
        self.logger = logger.bind(component="surveillance_cache")

    async def get(self, key: str) -> list[SurveillanceDataPoint] | None:
        """Cached data if present and not expired, otherwise None."""
        safe_key = sanitize_key(key, self.max_key_length)
        try:
            raw = await asyncio.to_thread(self.store.get, safe_key)
            if raw is None:
                return None
            entry = CacheEntry.model_validate(raw)
        except ValidationError as e:
            self.logger.warning("cache_entry_invalid", key=safe_key, error=str(e))
            return None
        except Exception as e:
            self.logger.warning("cache_get_failed", key=safe_key, error=str(e))
            return None

        if entry.is_expired(self.clock()):
            return None
        return entry.data_points

    async def set(self, key: str, data: list[SurveillanceDataPoint], ttl_seconds: float) -> None:
        """Store data with a TTL. Failures are logged and swallowed."""
        safe_key = sanitize_key(key, self.max_key_length)
        now = self.clock()
        entry = CacheEntry(
            key=safe_key, data_points=data, cached_at=now, expires_at=now + ttl_seconds
        )
        try:
            await asyncio.to_thread(
                self.store.set, safe_key, entry.model_dump(mode="json"), ttl_seconds
            )
        except Exception as e:
            self.logger.warning("cache_set_failed", key=safe_key, error=str(e))
