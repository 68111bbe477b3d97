"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Veriflow, a product of Garudex Labs

Cache Manager for the SDK runtime.

Time-boxed key/value store consulted before idempotent read requests.
Entries carry their own expiry so a default TTL and per-entry overrides
coexist; expired entries are indistinguishable from absent ones and are
removed when the cache is next read.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from typing import Any, Hashable, Mapping, Optional
from urllib.parse import urlencode

from cachetools import TLRUCache

from veriflow.core.clock import Clock, SystemClock
from veriflow.logging_config import get_logger
from veriflow.monitoring.metrics import MetricsRegistry

logger = get_logger(__name__)


@dataclass
class CacheEntry:
    """
    A cached response.

    Attributes:
        key: Cache key
        value: Cached value (opaque to the cache)
        expires_at: Monotonic time after which the entry is absent
        path: Resource path the entry was read from, used for invalidation
    """
    key: str
    value: Any
    expires_at: float
    path: Optional[str] = None


@dataclass
class CacheStats:
    """
    Statistics about the response cache.

    Attributes:
        hits: Number of cache hits
        misses: Number of cache misses
        evictions: Number of entries removed by invalidation or clear
        size: Current number of entries (expired ones included until swept)
    """
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    size: int = 0

    @property
    def hit_rate(self) -> float:
        """Return the cache hit rate as a percentage."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return (self.hits / total) * 100.0


def _entry_expiry(key: Hashable, entry: CacheEntry, now: float) -> float:
    return entry.expires_at


def normalize_path(path: str) -> str:
    """Strip query string and trailing slash so equivalent paths compare equal."""
    path = path.split("?", 1)[0]
    if len(path) > 1:
        path = path.rstrip("/")
    return path or "/"


def make_key(method: str, path: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """
    Deterministic cache key for a REST request.

    Query parameters are sorted and ``None`` values dropped, so
    ``{"b": 1, "a": 2}`` and ``{"a": 2, "b": 1}`` map to the same key.
    """
    key = f"{method.upper()} {normalize_path(path)}"
    if params:
        items = sorted((str(k), str(v)) for k, v in params.items() if v is not None)
        if items:
            key = f"{key}?{urlencode(items)}"
    return key


def make_graphql_key(
    query: str,
    variables: Optional[Mapping[str, Any]] = None,
    operation_name: Optional[str] = None,
) -> str:
    """
    Cache key for a GraphQL query: normalized query text, canonical variables
    and the selected operation.

    Whitespace runs in the query collapse to one space, so reformatting a
    query does not defeat the cache.
    """
    normalized = " ".join(query.split())
    canonical_vars = json.dumps(variables or {}, sort_keys=True, separators=(",", ":"), default=str)
    digest = hashlib.sha256(
        f"{operation_name or ''}\n{normalized}\n{canonical_vars}".encode()
    ).hexdigest()
    return f"graphql:{digest}"


class CacheManager:
    """
    In-memory response cache with per-entry TTLs.

    Args:
        default_ttl: Default time-to-live in seconds
        max_entries: Maximum number of entries (least recently used evicted first)
        clock: Time source (monotonic clock is used)
        metrics: Optional metrics registry
    """

    def __init__(
        self,
        default_ttl: float = 60.0,
        max_entries: int = 1024,
        clock: Optional[Clock] = None,
        metrics: Optional[MetricsRegistry] = None,
    ) -> None:
        if default_ttl <= 0:
            raise ValueError(f"default_ttl must be positive, got {default_ttl}")
        self._default_ttl = default_ttl
        self._clock = clock or SystemClock()
        self._metrics = metrics
        self._cache: TLRUCache = TLRUCache(
            maxsize=max_entries,
            ttu=_entry_expiry,
            timer=self._clock.monotonic,
        )
        self._stats = CacheStats()
        logger.info(f"CacheManager initialized: max_entries={max_entries}, ttl={default_ttl}s")

    @property
    def default_ttl(self) -> float:
        return self._default_ttl

    def get(self, key: str) -> Optional[Any]:
        """
        Look up a value.

        Returns:
            The cached value, or None if absent or expired
        """
        self._cache.expire()
        entry: Optional[CacheEntry] = self._cache.get(key)
        if entry is None:
            self._stats.misses += 1
            if self._metrics is not None:
                self._metrics.record_cache_miss()
            return None
        self._stats.hits += 1
        if self._metrics is not None:
            self._metrics.record_cache_hit()
        return entry.value

    def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[float] = None,
        path: Optional[str] = None,
    ) -> None:
        """
        Store a value.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time-to-live in seconds (defaults to the manager's TTL);
                a non-positive TTL stores nothing
            path: Resource path for path-based invalidation
        """
        ttl = self._default_ttl if ttl is None else ttl
        if ttl <= 0:
            self._cache.pop(key, None)
            return
        entry = CacheEntry(
            key=key,
            value=value,
            expires_at=self._clock.monotonic() + ttl,
            path=normalize_path(path) if path is not None else None,
        )
        self._cache[key] = entry

    def delete(self, key: str) -> bool:
        """Remove one key. Returns True if it was present."""
        removed = self._cache.pop(key, None) is not None
        if removed:
            self._count_evictions(1)
        return removed

    def invalidate_path(self, path: str) -> int:
        """
        Remove entries read from ``path`` or from its parent collection.

        A write to ``/verifications/123`` removes cached reads of
        ``/verifications/123`` (any query string) and of ``/verifications``.

        Returns:
            Number of entries removed
        """
        target = normalize_path(path)
        related = {target}
        parent = target.rsplit("/", 1)[0]
        if parent:
            related.add(parent)

        self._cache.expire()
        stale = []
        for key in list(self._cache.keys()):
            entry = self._cache.get(key)
            if entry is not None and entry.path in related:
                stale.append(key)
        for key in stale:
            self._cache.pop(key, None)

        if stale:
            self._count_evictions(len(stale))
            logger.debug(f"Invalidated {len(stale)} cache entries for {target}")
        return len(stale)

    def clear(self) -> None:
        """Clear all cached entries."""
        count = len(self._cache)
        self._cache.clear()
        self._count_evictions(count)

    def get_stats(self) -> CacheStats:
        """Return current cache statistics."""
        return CacheStats(
            hits=self._stats.hits,
            misses=self._stats.misses,
            evictions=self._stats.evictions,
            size=len(self._cache),
        )

    def __len__(self) -> int:
        self._cache.expire()
        return len(self._cache)

    def __contains__(self, key: str) -> bool:
        return key in self._cache

    def _count_evictions(self, count: int) -> None:
        self._stats.evictions += count
        if self._metrics is not None:
            self._metrics.record_cache_eviction(count)
