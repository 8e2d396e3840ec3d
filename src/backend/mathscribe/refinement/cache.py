"""
Result cache for the refinement engine.

Entries are keyed on (task, input, model, temperature), expire after a
fixed TTL and are evicted least-recently-used once the store is full.
Stale entries are only removed when a lookup touches them. The clock is
injectable so expiry can be tested without sleeping.
"""
from __future__ import annotations

import hashlib
import json
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Optional

from mathscribe.refinement.base import RefinementResult

logger = logging.getLogger(__name__)

CACHE_TTL_SECONDS = 3600.0
DEFAULT_MAX_ENTRIES = 512


@dataclass(frozen=True)
class CacheEntry:
    result: RefinementResult
    timestamp: float
    task_key: str


def make_cache_key(task: str, input_text: str, model: str, temperature: float) -> str:
    """Deterministic key; any differing component yields a different key."""
    payload = json.dumps([task, input_text, model, float(temperature)], ensure_ascii=False)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class RefinementCache:
    """
    Bounded in-memory TTL cache of refinement results.

    Usage:
        cache = RefinementCache(max_entries=256)
        key = make_cache_key(task, text, "gpt-4o", 0.2)
        entry = cache.get(key, task)
    """

    def __init__(
        self,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str, task: str) -> Optional[CacheEntry]:
        """Return a fresh entry stored for the same task, evicting it if stale."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        if self._clock() - entry.timestamp >= self.ttl_seconds:
            del self._entries[key]
            logger.debug(f"Evicted stale cache entry {key[:12]}")
            return None

        if entry.task_key != task:
            return None

        self._entries.move_to_end(key)
        return entry

    def put(self, key: str, result: RefinementResult, task: str) -> None:
        self._entries[key] = CacheEntry(result=result, timestamp=self._clock(), task_key=task)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Cache full, evicted least recently used entry {evicted[:12]}")

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> dict[str, Any]:
        return {"size": len(self._entries), "keys": list(self._entries.keys())}
