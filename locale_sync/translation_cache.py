"""
In-memory translation cache.

Entries expire ``ttl`` after they were written and the cache never holds
more than ``max_size`` entries; when full, the oldest inserted entry is
evicted. A background task started with ``start()`` physically removes
expired entries every ``ttl``.
"""
import asyncio
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from locale_sync.models import CacheOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    value: str
    locale: str
    last_updated: float
    context: Optional[Dict[str, Any]] = None


def make_cache_key(text: str, context: str) -> str:
    return f"{text}:{context}"


class TranslationCache:
    def __init__(self, options: Optional[CacheOptions] = None, clock: Callable[[], float] = time.time):
        self.options = options or CacheOptions()
        self._clock = clock
        self._entries: 'OrderedDict[Tuple[str, str], CacheEntry]' = OrderedDict()
        self._sweep_task: Optional[asyncio.Task] = None

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, item: Tuple[str, str]) -> bool:
        return item in self._entries

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.last_updated >= self.options.ttl_seconds

    def get(self, text: str, context: str, locale: str) -> Optional[str]:
        """Return a fresh cached translation, or None. Expired entries are misses even before a sweep."""
        entry = self._entries.get((locale, make_cache_key(text, context)))
        if entry is None or self._is_expired(entry, self._clock()):
            return None
        return entry.value

    def put(self, text: str, context: str, value: str, locale: str) -> None:
        key = (locale, make_cache_key(text, context))
        if key not in self._entries and len(self._entries) >= self.options.max_size:
            evicted_key, _ = self._entries.popitem(last=False)
            logger.debug("Cache full, evicted oldest entry for locale '%s'", evicted_key[0])
        # Re-inserting an existing key must not refresh its eviction position.
        self._entries[key] = CacheEntry(
            value=value,
            locale=locale,
            last_updated=self._clock(),
            context={'context': context} if context else None,
        )

    def discard(self, text: str, context: str, locale: str) -> None:
        self._entries.pop((locale, make_cache_key(text, context)), None)

    def sweep(self) -> int:
        """Remove every expired entry. Returns the number of entries removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if self._is_expired(entry, now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Cache sweep removed %d expired entries", len(expired))
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self.options.ttl_seconds)
            self.sweep()

    def start(self) -> None:
        """Start the periodic sweep on the running event loop. Idempotent."""
        if self._sweep_task is None or self._sweep_task.done():
            self._sweep_task = asyncio.get_running_loop().create_task(self._sweep_forever())

    async def stop(self) -> None:
        """Cancel the periodic sweep and wait for it to finish."""
        task, self._sweep_task = self._sweep_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    @property
    def running(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    async def __aenter__(self) -> 'TranslationCache':
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
