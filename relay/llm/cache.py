"""
Response Cache — TTL memoization of normalized LLM responses.

Identical non-streaming requests inside the TTL window (30 minutes by
default) are answered from memory without touching the network. The cache
is a plain object built at startup and handed to the router, so every test
gets its own instance.

Fingerprints cover (provider, model, max_tokens, temperature, prompt) with
defaults filled in first: a request naming no provider shares entries with
other "auto" requests but never with requests pinned to a provider.

Staleness is checked when an entry is read; sweep() drops stale entries
in bulk. Once max_entries is reached the least recently used entry goes.

Usage:
    from relay.llm.cache import ResponseCache

    cache = ResponseCache(ttl_seconds=1800)
    key = ResponseCache.make_key(None, None, None, 0.7, "Top 3 offices?")
    response = cache.get(key)
    if response is None:
        response = ...
        cache.put(key, response)
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from collections import OrderedDict
from dataclasses import asdict, dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 30 * 60
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_ENTRIES = 1000

Clock = Callable[[], float]


@dataclass
class CacheStats:
    """Running counters. `expired` and `evicted` are tracked apart."""

    hits: int = 0
    misses: int = 0
    stores: int = 0
    expired: int = 0
    evicted: int = 0

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0


@dataclass
class _Slot:
    response: Any
    stored_at: float
    provider: str = ""
    model: str = ""
    reads: int = 0


class ResponseCache:
    """
    Fingerprint → response store with TTL and LRU bounds.

    get/put never await, so concurrent asyncio tasks cannot interleave
    inside them. Two tasks that miss the same key both dispatch and the
    later put wins.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Clock = time.monotonic,
    ):
        self._ttl = ttl_seconds
        self._capacity = max_entries
        self._clock = clock
        self._slots: OrderedDict[str, _Slot] = OrderedDict()
        self.stats = CacheStats()

    def __len__(self) -> int:
        return len(self._slots)

    def __contains__(self, key: object) -> bool:
        slot = self._slots.get(key)  # type: ignore[arg-type]
        return slot is not None and not self._is_stale(slot)

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    @property
    def max_entries(self) -> int:
        return self._capacity

    @staticmethod
    def make_key(
        provider_name: Optional[str],
        model: Optional[str],
        max_tokens: Optional[int],
        temperature: Optional[float],
        prompt: str,
    ) -> str:
        """
        Fingerprint a request.

        Unset fields become "auto", "default", 0 and 0.7 before hashing, so
        leaving a field out and passing its default give the same key. A
        temperature of 0 is kept as 0, and 1 hashes the same as 1.0.
        """
        fields = {
            "provider": provider_name or "auto",
            "model": model or "default",
            "max_tokens": max_tokens or 0,
            "temperature": float(
                DEFAULT_TEMPERATURE if temperature is None else temperature
            ),
            "prompt": prompt,
        }
        canonical = json.dumps(fields, sort_keys=True, ensure_ascii=False)
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    def _is_stale(self, slot: _Slot) -> bool:
        return self._clock() - slot.stored_at >= self._ttl

    def get(self, key: str) -> Optional[Any]:
        """Return the stored response if it is younger than the TTL, else None."""
        slot = self._slots.get(key)
        if slot is not None and self._is_stale(slot):
            del self._slots[key]
            self.stats.expired += 1
            slot = None

        if slot is None:
            self.stats.misses += 1
            return None

        self._slots.move_to_end(key)
        slot.reads += 1
        self.stats.hits += 1
        logger.debug(
            "cache_hit",
            extra={"provider": slot.provider, "model": slot.model, "reads": slot.reads},
        )
        return slot.response

    def put(
        self,
        key: str,
        response: Any,
        *,
        provider: str = "",
        model: str = "",
    ) -> None:
        """Store a response under `key`, replacing and re-timing any old one."""
        self._slots.pop(key, None)
        while self._slots and len(self._slots) >= self._capacity:
            oldest, _ = self._slots.popitem(last=False)
            self.stats.evicted += 1
            logger.debug("cache_eviction", extra={"fingerprint": oldest[:12]})

        self._slots[key] = _Slot(
            response=response,
            stored_at=self._clock(),
            provider=provider,
            model=model,
        )
        self.stats.stores += 1

    def invalidate(self, key: str) -> bool:
        return self._slots.pop(key, None) is not None

    def clear(self) -> int:
        """Drop every entry and return how many there were."""
        dropped = len(self._slots)
        self._slots.clear()
        logger.info("cache_cleared", extra={"entries": dropped})
        return dropped

    def sweep(self) -> int:
        """Drop all stale entries now rather than on their next read."""
        stale = [key for key, slot in self._slots.items() if self._is_stale(slot)]
        for key in stale:
            del self._slots[key]
        self.stats.expired += len(stale)
        return len(stale)

    def snapshot(self) -> dict[str, Any]:
        """Counters plus sizing, suitable for logging or a status page."""
        report = asdict(self.stats)
        report.update(
            entries=len(self._slots),
            max_entries=self._capacity,
            ttl_seconds=self._ttl,
            hit_rate=round(self.stats.hit_rate, 3),
        )
        return report

    def describe(self) -> list[dict[str, Any]]:
        """Per-entry age and origin, oldest first."""
        now = self._clock()
        return [
            {
                "fingerprint": key[:12],
                "provider": slot.provider,
                "model": slot.model,
                "age_seconds": round(now - slot.stored_at, 1),
                "reads": slot.reads,
                "stale": now - slot.stored_at >= self._ttl,
            }
            for key, slot in self._slots.items()
        ]
