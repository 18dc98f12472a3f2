"""
In-memory response cache for upstream Artifact Hub payloads.

Entries expire after a fixed TTL (checked lazily on read and eagerly by a
periodic sweep) and the table is bounded: inserting into a full cache evicts
the entry with the oldest creation timestamp.
"""

from __future__ import annotations

import asyncio
import hashlib
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, AsyncIterator, Callable, Dict, Optional, Set, Tuple

from shared.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


FINGERPRINT_LENGTH = 16


def make_fingerprint(operation: str, *args: str) -> str:
    """Cache key for an operation and its ordered arguments."""
    key_string = ":".join([operation, *args])
    return hashlib.sha256(key_string.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


@dataclass
class CacheEntry:
    key: str
    value: Any
    timestamp: float


class ReadWriteLock:
    """asyncio lock allowing many concurrent readers or one writer.

    New readers queue behind a waiting writer, so a steady stream of reads
    cannot hold off inserts and sweeps indefinitely.
    """

    def __init__(self):
        self._condition = asyncio.Condition()
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        async with self._condition:
            await self._condition.wait_for(lambda: not self._writer and self._writers_waiting == 0)
            self._readers += 1
        try:
            yield
        finally:
            async with self._condition:
                self._readers -= 1
                if self._readers == 0:
                    self._condition.notify_all()

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        async with self._condition:
            self._writers_waiting += 1
            try:
                await self._condition.wait_for(lambda: not self._writer and self._readers == 0)
            finally:
                self._writers_waiting -= 1
                # Readers parked behind a cancelled writer must re-check.
                if not self._writers_waiting:
                    self._condition.notify_all()
            self._writer = True
        try:
            yield
        finally:
            async with self._condition:
                self._writer = False
                self._condition.notify_all()


class ResponseCache:
    """TTL and size bounded cache with a background expiry sweep.

    Values are stored by reference; callers must treat them as read-only.
    """

    def __init__(
        self,
        ttl_seconds: float,
        max_size: int,
        *,
        metrics: Optional["MetricsCollector"] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_size <= 0:
            raise ValueError("max_size must be positive")

        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self.metrics = metrics
        self.logger = get_logger("proxy.cache")

        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = ReadWriteLock()
        self._sweep_task: Optional[asyncio.Task] = None
        self._pending_deletes: Set[asyncio.Task] = set()
        self._running = False

    @property
    def sweep_interval(self) -> float:
        return self.ttl_seconds / 2

    async def start(self) -> None:
        """Start the periodic expiry sweep."""
        if self._running:
            return
        self._running = True
        self._sweep_task = asyncio.create_task(self._sweep_loop())
        self.logger.info(
            "Response cache started",
            ttl_seconds=self.ttl_seconds,
            max_size=self.max_size,
            sweep_interval=self.sweep_interval,
        )

    async def stop(self) -> None:
        """Stop the sweep and wait for scheduled deletions to finish."""
        if self._running:
            self._running = False
            if self._sweep_task:
                self._sweep_task.cancel()
                try:
                    await self._sweep_task
                except asyncio.CancelledError:
                    pass
                self._sweep_task = None

        if self._pending_deletes:
            await asyncio.gather(*self._pending_deletes, return_exceptions=True)

        self.logger.info("Response cache stopped")

    @property
    def running(self) -> bool:
        return self._running

    async def get(self, key: str) -> Tuple[Optional[Any], bool]:
        """Return ``(value, True)`` on a fresh hit, ``(None, False)`` otherwise."""
        async with self._lock.read():
            entry = self._entries.get(key)
            if entry is None:
                return None, False

            if self._is_expired(entry, self._clock()):
                self._schedule_stale_delete(key)
                return None, False

            return entry.value, True

    async def set(self, key: str, value: Any) -> None:
        """Insert or overwrite ``key``; evicts the oldest entry when full."""
        async with self._lock.write():
            if len(self._entries) >= self.max_size:
                self._evict_oldest()

            self._entries[key] = CacheEntry(key=key, value=value, timestamp=self._clock())

    async def delete(self, key: str) -> None:
        async with self._lock.write():
            self._entries.pop(key, None)

    async def size(self) -> int:
        async with self._lock.read():
            return len(self._entries)

    async def sweep(self) -> int:
        """Remove every expired entry in one pass; returns the count removed."""
        async with self._lock.write():
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if self._is_expired(entry, now)]
            for key in expired:
                del self._entries[key]
            remaining = len(self._entries)

        if expired:
            self.logger.debug(
                "Cache cleanup completed",
                expired_entries=len(expired),
                cache_size=remaining,
                max_size=self.max_size,
            )
        return len(expired)

    async def stats(self) -> Dict[str, Any]:
        return {
            "enabled": True,
            "size": await self.size(),
            "max_size": self.max_size,
            "ttl_seconds": self.ttl_seconds,
            "sweeping": self._running,
        }

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.timestamp > self.ttl_seconds

    def _evict_oldest(self) -> None:
        # Caller holds the write lock. min() keeps the first of equal timestamps.
        if not self._entries:
            return
        oldest = min(self._entries.values(), key=lambda entry: entry.timestamp)
        del self._entries[oldest.key]
        self.logger.debug("Cache entry evicted (LRU)", cache_key=oldest.key)
        if self.metrics:
            self.metrics.increment_counter("cache_evictions_total")

    def _schedule_stale_delete(self, key: str) -> None:
        task = asyncio.create_task(self._delete_if_expired(key))
        self._pending_deletes.add(task)
        task.add_done_callback(self._pending_deletes.discard)

    async def _delete_if_expired(self, key: str) -> None:
        # A concurrent set may have refreshed the key since the stale read.
        async with self._lock.write():
            entry = self._entries.get(key)
            if entry is not None and self._is_expired(entry, self._clock()):
                del self._entries[key]

    async def _sweep_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self.sweep_interval)
            try:
                await self.sweep()
            except Exception as exc:  # pragma: no cover - keep sweeping
                self.logger.error("Cache sweep failed", error=str(exc))
