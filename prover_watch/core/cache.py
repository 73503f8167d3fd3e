"""
Scan Result Cache
=================

Short-lived memo of participation scans, keyed by (prover, window).

Entries expire a fixed TTL after they were stored; reading an entry does not
extend its life. Only successful scans are ever stored.
"""

import logging
import time
from typing import Callable, Dict, Optional, Tuple

from ..config import config
from ..models import ScanResult

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, int]


class ScanCache:
    """
    In-memory TTL cache of ScanResult.

    Owned by a single ParticipationScanner. Get/put run on the event loop
    thread, so no locking is needed.
    """

    def __init__(self, ttl_sec: float = None, clock: Callable[[], float] = time.monotonic):
        """
        Initialize the cache.

        Args:
            ttl_sec: Seconds an entry stays valid after insertion
            clock: Monotonic time source (injectable for tests)
        """
        self.ttl = ttl_sec if ttl_sec is not None else config.cache_ttl_sec
        self._clock = clock
        self._entries: Dict[CacheKey, Tuple[float, ScanResult]] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: CacheKey) -> Optional[ScanResult]:
        """Return the cached result, or None if absent or expired."""
        entry = self._entries.get(key)
        if entry is not None:
            expires_at, value = entry
            if self._clock() < expires_at:
                self.hits += 1
                return value
            del self._entries[key]

        self.misses += 1
        return None

    def put(self, key: CacheKey, value: ScanResult):
        """Store a result for ttl seconds from now, dropping any expired entries first."""
        self.purge_expired()
        self._entries[key] = (self._clock() + self.ttl, value)

    def purge_expired(self) -> int:
        """
        Drop expired entries.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        expired = [k for k, (expires_at, _) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Purged {len(expired)} expired scan results")
        return len(expired)

    def clear(self):
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> Dict[str, float]:
        """Cache counters for health reporting."""
        self.purge_expired()
        return {
            "keys": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "ttlSec": self.ttl,
        }
