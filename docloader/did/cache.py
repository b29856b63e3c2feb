"""DID document cache with LRU eviction and TTL expiration.

Owned by a single CachedDidResolver. Keys are base DIDs (no fragment);
only documents produced by a successful driver resolution are stored.
Override documents never enter the cache.
"""

import asyncio
import copy
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from docloader.core import config

log = logging.getLogger(__name__)


@dataclass
class CachedDidDocument:
    """Cached DID document with retrieval metadata.

    Attributes:
        document: The resolved DID document.
        did: The base DID (cache key).
        method: DID method that produced the document.
        cached_at: Unix timestamp when the entry was cached.
        expires_at: Unix timestamp when this entry expires.
        last_access: Unix timestamp of last access (for LRU).
    """

    document: Dict[str, Any]
    did: str
    method: str
    cached_at: float = field(default_factory=time.time)
    expires_at: float = 0.0
    last_access: float = field(default_factory=time.time)


@dataclass
class DidCacheConfig:
    """Configuration for the DID document cache.

    Attributes:
        ttl_seconds: Time-to-live for cache entries.
        max_entries: Maximum entries before LRU eviction.
    """

    ttl_seconds: float = 5.0
    max_entries: int = 100

    @classmethod
    def from_config(cls) -> "DidCacheConfig":
        return cls(
            ttl_seconds=config.DID_CACHE_TTL_SECONDS,
            max_entries=config.DID_CACHE_MAX_ENTRIES,
        )


@dataclass
class DidCacheMetrics:
    """Metrics for cache operations.

    Attributes:
        hits: Number of cache hits.
        misses: Number of cache misses.
        evictions: Number of LRU evictions.
        expirations: Number of TTL expirations.
    """

    hits: int = 0
    misses: int = 0
    evictions: int = 0
    expirations: int = 0

    def hit_rate(self) -> float:
        """Calculate cache hit rate.

        Returns:
            Hit rate as float (0.0 to 1.0), or 0.0 if no requests.
        """
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "expirations": self.expirations,
            "hit_rate": round(self.hit_rate(), 4),
        }

    def reset(self) -> None:
        """Reset all metrics to zero."""
        self.hits = 0
        self.misses = 0
        self.evictions = 0
        self.expirations = 0


class DidDocumentCache:
    """LRU + TTL cache of resolved DID documents.

    Concurrent readers are safe; state changes are serialized by an
    asyncio.Lock. Entries are copied in and out so a caller mutating a
    returned document cannot alter the cache.
    """

    def __init__(
        self,
        config: Optional[DidCacheConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the cache.

        Args:
            config: Optional configuration. Uses configured values if not provided.
            clock: Time source (seconds); injectable for tests.
        """
        self._config = config or DidCacheConfig.from_config()
        self._clock = clock
        self._entries: Dict[str, CachedDidDocument] = {}
        self._access_order: List[str] = []  # LRU tracking
        self._lock = asyncio.Lock()
        self._metrics = DidCacheMetrics()

    @property
    def config(self) -> DidCacheConfig:
        return self._config

    @property
    def metrics(self) -> DidCacheMetrics:
        return self._metrics

    def _drop(self, did: str) -> None:
        del self._entries[did]
        if did in self._access_order:
            self._access_order.remove(did)

    def _touch(self, did: str, now: float) -> None:
        self._entries[did].last_access = now
        if did in self._access_order:
            self._access_order.remove(did)
        self._access_order.append(did)

    async def get_entry(self, did: str) -> Optional[CachedDidDocument]:
        """Retrieve a cache entry by base DID.

        Returns:
            A copy of the entry if found and not expired, None otherwise.
        """
        async with self._lock:
            entry = self._entries.get(did)

            if entry is None:
                self._metrics.misses += 1
                return None

            now = self._clock()
            if now >= entry.expires_at:
                self._drop(did)
                self._metrics.expirations += 1
                self._metrics.misses += 1
                log.debug(f"DID document for {did[:32]}... expired in cache")
                return None

            self._touch(did, now)
            self._metrics.hits += 1
            return copy.deepcopy(entry)

    async def get(self, did: str) -> Optional[Dict[str, Any]]:
        """Retrieve a cached DID document by base DID."""
        entry = await self.get_entry(did)
        return entry.document if entry is not None else None

    async def put(self, did: str, document: Dict[str, Any], method: str) -> None:
        """Store a resolved DID document.

        Args:
            did: The base DID (cache key).
            document: The resolved DID document.
            method: DID method that produced it.
        """
        async with self._lock:
            now = self._clock()

            if did in self._entries:
                self._drop(did)

            # Evict if at capacity
            while len(self._entries) >= self._config.max_entries:
                if not self._access_order:
                    break
                lru_did = self._access_order.pop(0)
                if lru_did in self._entries:
                    del self._entries[lru_did]
                    self._metrics.evictions += 1
                    log.debug(f"Evicted LRU DID document {lru_did[:32]}...")

            self._entries[did] = CachedDidDocument(
                document=copy.deepcopy(document),
                did=did,
                method=method,
                cached_at=now,
                expires_at=now + self._config.ttl_seconds,
                last_access=now,
            )
            self._access_order.append(did)
            log.debug(f"Cached DID document for {did[:32]}... ({method})")

    async def invalidate(self, did: str) -> bool:
        """Remove a DID document from the cache.

        Returns:
            True if the DID was in cache, False otherwise.
        """
        async with self._lock:
            if did in self._entries:
                self._drop(did)
                return True
            return False

    async def clear(self) -> int:
        """Clear all entries from the cache.

        Returns:
            Number of entries cleared.
        """
        async with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._access_order.clear()
            log.debug(f"Cleared {count} entries from DID cache")
            return count

    async def size(self) -> int:
        async with self._lock:
            return len(self._entries)
