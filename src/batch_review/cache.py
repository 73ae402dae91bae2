"""Content-addressed, memory-bounded cache for analysis results.

Result entries are keyed by ``(target, sha256(content))`` and transformation
entries by ``(kind, sha256(canonical_json(source)))``. Both namespaces share
one memory budget and one least-recently-used eviction order. Validity is an
exact fingerprint match: a changed fingerprint is a full miss.
"""

import asyncio
import dataclasses
import hashlib
import json
import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from .core import CacheConfig

T = TypeVar("T")
TOutput = TypeVar("TOutput")

RESULT_NAMESPACE = "result"
TRANSFORMATION_NAMESPACE = "transformation"

# Rough per-entry bookkeeping cost (hash, timestamps, counters) in bytes
ENTRY_OVERHEAD = 64 + 100
TRANSFORMATION_OVERHEAD = 200

_MISSING = object()

CacheKey = tuple[str, str, str]


def fingerprint(content: str | bytes) -> str:
    """SHA-256 hex digest of ``content``."""
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()


def _type_name(value: Any) -> str:
    return f"{type(value).__module__}.{type(value).__qualname__}"


def _json_default(value: Any) -> Any:
    # Non-JSON values are tagged with their type so they never collide with
    # plain lists or strings of the same content
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {"__type__": _type_name(value), "fields": dataclasses.asdict(value)}
    if isinstance(value, (set, frozenset)):
        return {"__type__": _type_name(value), "items": sorted(value, key=repr)}
    return {"__type__": _type_name(value), "repr": repr(value)}


def canonical_json(value: Any) -> str:
    """Deterministic JSON serialization used for hashing and size estimates.

    Sets, dataclasses and other non-JSON values are tagged with their type.
    Tuples serialize as lists, as the json module does.
    """
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json")
    return json.dumps(value, sort_keys=True, default=_json_default, separators=(",", ":"))


def estimate_size(value: Any) -> int:
    """Approximate memory footprint of ``value`` in bytes."""
    return len(canonical_json(value).encode("utf-8"))


@dataclass
class CacheEntry(Generic[T]):
    """A cached value and its bookkeeping."""

    key: CacheKey
    value: T
    size: int
    inserted_at: float
    last_accessed_at: float
    access_count: int = 0


@dataclass
class CacheMetrics:
    """Cumulative cache counters for the lifetime of a cache instance."""

    hits: int = 0
    misses: int = 0
    total_requests: int = 0
    transformation_hits: int = 0
    transformation_misses: int = 0
    total_entries: int = 0
    memory_usage_bytes: int = 0
    max_memory_bytes: int = 0
    eviction_count: int = 0
    expired_entries: int = 0

    @property
    def hit_rate(self) -> float:
        return self.hits / self.total_requests if self.total_requests else 0.0


class ResultCache(Generic[TOutput]):
    """
    In-memory cache of analysis results and transformation outputs.

    The cache is an explicit object owned by its caller. It is safe to share
    between threads for the synchronous operations, and ``get_or_compute``
    runs at most one computation per key at a time among coroutines.
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        logger: logging.Logger | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the cache.

        Args:
            config: Budget, entry limit and expiry (default: CacheConfig())
            logger: Logger for cache diagnostics (default: module logger)
            clock: Time source in seconds, used for expiry and access times
        """
        self.config = config or CacheConfig()
        self.config.validate()
        self.logger = logger or logging.getLogger(__name__)
        self._clock = clock

        self._entries: OrderedDict[CacheKey, CacheEntry[Any]] = OrderedDict()
        self._fingerprints: dict[str, str] = {}  # target -> fingerprint of its entry
        self._memory_usage = 0
        self._metrics = CacheMetrics(max_memory_bytes=self.config.max_memory_bytes)
        self._lock = threading.RLock()
        self._inflight: dict[CacheKey, list[Any]] = {}  # key -> [asyncio.Lock, users]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # -- result entries ---------------------------------------------------

    def get(self, target: str, content: str, default: Any = None) -> TOutput | Any:
        """Cached result for ``target`` with exactly this ``content``, else ``default``."""
        key: CacheKey = (RESULT_NAMESPACE, target, fingerprint(content))
        with self._lock:
            self._metrics.total_requests += 1
            entry = self._lookup(key)
            if entry is None:
                self._metrics.misses += 1
                self.logger.debug(f"Cache miss for {target}")
                return default
            self._metrics.hits += 1
            self.logger.debug(f"Cache hit for {target}")
            return entry.value

    def set(self, target: str, content: str, value: TOutput) -> None:
        """Store the result for ``target`` at this ``content``, evicting as needed."""
        digest = fingerprint(content)
        key: CacheKey = (RESULT_NAMESPACE, target, digest)
        size = estimate_size(value) + len(target.encode("utf-8")) + ENTRY_OVERHEAD

        with self._lock:
            previous = self._fingerprints.get(target)
            if previous is not None and previous != digest:
                self._remove((RESULT_NAMESPACE, target, previous))
            self._insert(key, value, size)
            self._fingerprints[target] = digest
        self.logger.debug(f"Cached analysis result for {target} ({size} bytes)")

    def has_changed(self, target: str, content: str) -> bool:
        """True if ``content`` differs from the cached fingerprint, or nothing is cached."""
        digest = fingerprint(content)
        with self._lock:
            stored = self._fingerprints.get(target)
            if stored is None:
                return True
            if self._lookup((RESULT_NAMESPACE, target, stored), touch=False) is None:
                return True
            return stored != digest

    async def get_or_compute(
        self,
        target: str,
        content: str,
        compute: Callable[[], Awaitable[TOutput]],
    ) -> tuple[TOutput, bool]:
        """
        Return the cached result or compute and store it.

        Concurrent callers for the same key wait for the first computation
        instead of starting their own.

        Returns:
            Tuple of (value, from_cache)
        """
        key: CacheKey = (RESULT_NAMESPACE, target, fingerprint(content))
        slot = self._inflight.get(key)
        if slot is None:
            slot = self._inflight[key] = [asyncio.Lock(), 0]
        slot[1] += 1

        try:
            async with slot[0]:
                value = self.get(target, content, default=_MISSING)
                if value is not _MISSING:
                    return value, True
                value = await compute()
                self.set(target, content, value)
                return value, False
        finally:
            slot[1] -= 1
            if slot[1] == 0:
                self._inflight.pop(key, None)

    # -- transformation entries -------------------------------------------

    def get_transformation(self, source: Any, kind: str, default: Any = None) -> Any:
        """Cached output of transformation ``kind`` applied to ``source``, else ``default``."""
        key: CacheKey = (TRANSFORMATION_NAMESPACE, kind, fingerprint(canonical_json(source)))
        with self._lock:
            entry = self._lookup(key)
            if entry is None:
                self._metrics.transformation_misses += 1
                return default
            self._metrics.transformation_hits += 1
            return entry.value

    def cache_transformation(self, source: Any, kind: str, value: Any) -> None:
        """Store the output of transformation ``kind`` applied to ``source``."""
        key: CacheKey = (TRANSFORMATION_NAMESPACE, kind, fingerprint(canonical_json(source)))
        size = estimate_size(value) + TRANSFORMATION_OVERHEAD
        with self._lock:
            self._insert(key, value, size)
        self.logger.debug(f"Cached transformation result for {kind} ({size} bytes)")

    # -- maintenance -------------------------------------------------------

    def metrics(self) -> CacheMetrics:
        """Snapshot of the cumulative metrics."""
        with self._lock:
            return dataclasses.replace(
                self._metrics,
                total_entries=len(self._entries),
                memory_usage_bytes=self._memory_usage,
            )

    def stats(self) -> dict[str, Any]:
        """Summary of the current contents."""
        with self._lock:
            inserted = [entry.inserted_at for entry in self._entries.values()]
            return {
                "size": len(self._entries),
                "max_size": self.config.max_entries,
                "memory_usage_bytes": self._memory_usage,
                "hit_rate": self._metrics.hit_rate,
                "oldest_entry": min(inserted) if inserted else None,
                "newest_entry": max(inserted) if inserted else None,
            }

    def clear_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        if self.config.ttl_seconds is None:
            return 0
        with self._lock:
            expired = [key for key, entry in self._entries.items() if self._is_expired(entry)]
            for key in expired:
                self._remove(key)
            self._metrics.expired_entries += len(expired)
        if expired:
            self.logger.debug(f"Cleared {len(expired)} expired cache entries")
        return len(expired)

    def clear(self) -> None:
        """Remove every entry. Metrics keep accumulating."""
        with self._lock:
            self._entries.clear()
            self._fingerprints.clear()
            self._memory_usage = 0
        self.logger.debug("Cache cleared")

    # -- internals (callers hold self._lock) -------------------------------

    def _is_expired(self, entry: CacheEntry[Any]) -> bool:
        ttl = self.config.ttl_seconds
        return ttl is not None and (self._clock() - entry.inserted_at) >= ttl

    def _lookup(self, key: CacheKey, touch: bool = True) -> CacheEntry[Any] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._is_expired(entry):
            self._remove(key)
            self._metrics.expired_entries += 1
            self.logger.debug(f"Cache entry expired for {key[1]}")
            return None
        if touch:
            entry.access_count += 1
            entry.last_accessed_at = self._clock()
            self._entries.move_to_end(key)
        return entry

    def _insert(self, key: CacheKey, value: Any, size: int) -> None:
        if key in self._entries:
            self._remove(key)

        evicted = self._make_room(size)
        if evicted:
            self.logger.debug(f"Evicted {evicted} cache entries to make room for {size} bytes")
        if size > self.config.max_memory_bytes:
            self.logger.warning(
                f"⚠️  Cache entry of {size} bytes exceeds the whole budget of "
                f"{self.config.max_memory_bytes} bytes; storing it alone"
            )

        now = self._clock()
        self._entries[key] = CacheEntry(
            key=key, value=value, size=size, inserted_at=now, last_accessed_at=now
        )
        self._memory_usage += size

    def _make_room(self, size: int) -> int:
        """Evict least recently accessed entries until ``size`` more bytes fit."""
        evicted = 0
        while self._entries and (
            self._memory_usage + size > self.config.max_memory_bytes
            or len(self._entries) >= self.config.max_entries
        ):
            key = next(iter(self._entries))
            self._remove(key)
            self._metrics.eviction_count += 1
            evicted += 1
        return evicted

    def _remove(self, key: CacheKey) -> None:
        entry = self._entries.pop(key, None)
        if entry is None:
            return
        self._memory_usage -= entry.size
        namespace, target, digest = key
        if namespace == RESULT_NAMESPACE and self._fingerprints.get(target) == digest:
            del self._fingerprints[target]
