"""
Stats cache capability.

The aggregation engine receives a StatsCache instead of reaching for a global
cache. Every entry or clearance write calls invalidate(student_id) before it
returns, so the TTL is only a safety net. A periodic task rotates the key
generation to expire everything at once.
"""
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Optional

from django.conf import settings
from django.core.cache import caches

logger = logging.getLogger(__name__)


class StatsCache(ABC):
    """
    Versioned per-student cache.

    A reader takes version(student_id) before computing and hands it back to
    set(); a value computed before an invalidate() is never stored under the
    new version.
    """

    @abstractmethod
    def get(self, student_id) -> Optional[Any]:
        ...

    @abstractmethod
    def version(self, student_id) -> Any:
        ...

    @abstractmethod
    def set(self, student_id, value, version) -> None:
        """Store `value` only if the student's version is still `version`."""

    @abstractmethod
    def invalidate(self, student_id) -> None:
        """Drop the cached value and move the student to a new version."""


def _fresh_counter() -> int:
    # Never reuses a value handed out before an eviction
    return time.time_ns()


class DjangoStatsCache(StatsCache):
    """StatsCache on a Django cache backend (LocMem in development, Redis in production)."""

    KEY_PREFIX = 'logbook_stats'
    VERSION_PREFIX = 'logbook_stats_version'
    GENERATION_KEY = 'logbook_stats_generation'

    def __init__(self, alias: str = 'default', timeout: Optional[int] = None):
        self.cache = caches[alias]
        if timeout is None:
            timeout = getattr(settings, 'LOGBOOK_STATS_CACHE_TIMEOUT', 30)
        self.timeout = timeout

    def _counter(self, key) -> int:
        value = self.cache.get(key)
        if value is None:
            self.cache.add(key, _fresh_counter(), None)
            value = self.cache.get(key)
        return value

    def _bump(self, key) -> int:
        self._counter(key)
        try:
            return self.cache.incr(key)
        except ValueError:
            # Evicted between the read and the increment
            value = _fresh_counter()
            self.cache.set(key, value, None)
            return value

    def _version_key(self, student_id) -> str:
        return f"{self.VERSION_PREFIX}_{student_id}"

    def _key(self, student_id, version) -> str:
        return f"{self.KEY_PREFIX}_{self._counter(self.GENERATION_KEY)}_{student_id}_{version}"

    def version(self, student_id):
        return self._counter(self._version_key(student_id))

    def get(self, student_id):
        return self.cache.get(self._key(student_id, self.version(student_id)))

    def set(self, student_id, value, version):
        if version != self.version(student_id):
            logger.debug(f"Skipped caching stale stats of student {student_id}")
            return
        # Keyed by version, so a racing invalidate() leaves this value unreachable
        self.cache.set(self._key(student_id, version), value, self.timeout)

    def invalidate(self, student_id):
        self.cache.delete(self._key(student_id, self.version(student_id)))
        self._bump(self._version_key(student_id))

    def rotate(self) -> int:
        """Expire every cached stats entry by moving to a new key generation."""
        generation = self._bump(self.GENERATION_KEY)
        logger.info(f"Rotated logbook stats cache to generation {generation}")
        return generation
