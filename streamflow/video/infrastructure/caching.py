"""
Metadata Cache Implementations.

In-memory TTL cache for resolved video metadata with periodic sweep eviction.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from ..domain.interfaces import MetadataCache
from ..domain.models import CacheEntry, VideoMetadata


class InMemoryMetadataCache(MetadataCache):
    """In-memory TTL cache shared by all requests"""

    def __init__(
        self,
        ttl_seconds: float = 300,
        sweep_interval_seconds: float = 60,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.ttl = timedelta(seconds=ttl_seconds)
        self.sweep_interval_seconds = sweep_interval_seconds
        self.logger = logging.getLogger(__name__)
        self._clock = clock

        # Cache storage: {normalized_url: CacheEntry}
        self._cache: Dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()
        self._sweep_task: Optional[asyncio.Task] = None
        self._hits = 0
        self._misses = 0

    async def get(self, key: str) -> Optional[VideoMetadata]:
        """Get cached metadata; expired entries count as a miss and are removed"""
        async with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self._misses += 1
                return None

            if entry.is_expired(self._clock()):
                del self._cache[key]
                self._misses += 1
                self.logger.debug(f"Cache entry expired for {key}")
                return None

            self._hits += 1
            self.logger.debug(f"Cache hit for {key}")
            return entry.metadata

    async def put(self, key: str, metadata: VideoMetadata) -> None:
        """Cache resolved metadata"""
        if not metadata.is_playable:
            raise ValueError("Refusing to cache metadata without candidate streams")

        async with self._lock:
            self._cache[key] = CacheEntry.for_metadata(metadata, self.ttl)

        self.logger.debug(f"Cached metadata for {key} ({len(metadata.candidate_streams)} candidates)")

    async def invalidate(self, key: str) -> bool:
        async with self._lock:
            removed = self._cache.pop(key, None) is not None

        if removed:
            self.logger.info(f"Invalidated cache entry for {key}")
        return removed

    async def clear(self) -> int:
        async with self._lock:
            removed = len(self._cache)
            self._cache.clear()

        self.logger.info(f"Cleared {removed} cache entries")
        return removed

    async def sweep(self) -> int:
        """Remove every expired entry regardless of access"""
        async with self._lock:
            now = self._clock()
            expired_keys = [key for key, entry in self._cache.items() if entry.is_expired(now)]
            for key in expired_keys:
                del self._cache[key]

        if expired_keys:
            self.logger.info(f"Cache sweep removed {len(expired_keys)} expired entries")

        return len(expired_keys)

    async def stats(self) -> dict:
        """Get cache statistics"""
        async with self._lock:
            return {
                "entries": len(self._cache),
                "hits": self._hits,
                "misses": self._misses,
                "ttl_seconds": self.ttl.total_seconds(),
                "sweep_interval_seconds": self.sweep_interval_seconds,
                "sweeper_running": self.is_sweeping(),
            }

    def start(self) -> None:
        """Start the background sweep on the running event loop"""
        if self.is_sweeping():
            return
        self._sweep_task = asyncio.create_task(self._sweep_loop())
        self.logger.info(f"Cache sweeper started (every {self.sweep_interval_seconds}s)")

    async def stop(self) -> None:
        if self._sweep_task is None:
            return

        self._sweep_task.cancel()
        try:
            await self._sweep_task
        except asyncio.CancelledError:
            pass
        self._sweep_task = None
        self.logger.info("Cache sweeper stopped")

    def is_sweeping(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval_seconds)
            try:
                await self.sweep()
            except Exception as e:
                self.logger.error(f"Error during cache sweep: {e}")


class NoOpMetadataCache(MetadataCache):
    """Cache that never stores anything; every lookup re-resolves"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    async def get(self, key: str) -> Optional[VideoMetadata]:
        """Always return None (no cache)"""
        return None

    async def put(self, key: str, metadata: VideoMetadata) -> None:
        pass

    async def invalidate(self, key: str) -> bool:
        return False

    async def clear(self) -> int:
        return 0

    async def sweep(self) -> int:
        return 0

    async def stats(self) -> dict:
        return {"entries": 0, "enabled": False}
