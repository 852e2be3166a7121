"""
Time-to-live caches for daemon resources

TTLCache is the per-session client cache; GatewayCache is the same contract
shared by every client of one gateway process. Both are plain objects built
once by their owner and passed to consumers.
"""

import itertools
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass, replace
from typing import Any, Callable, Hashable, Iterable, Optional


def _key_name(key) -> str:
    return getattr(key, "value", str(key))


@dataclass
class CacheEntry:
    """Cached value plus the clock reading at which it was fetched"""
    value: Any = None
    fetched_at: float = 0.0
    present: bool = False
    stale: bool = False  # Invalidated: value kept for display, never served by get()
    seq: int = 0  # Request sequence number that produced (or invalidated) this entry

    def is_fresh(self, now: float, ttl: float) -> bool:
        # Absent or invalidated entries are stale regardless of timestamp
        if not self.present or self.stale:
            return False
        return now - self.fetched_at < ttl

    def age(self, now: float) -> Optional[float]:
        if not self.present:
            return None
        return now - self.fetched_at


class TTLCache:
    """
    Keyed cache with caller-supplied TTL and fetcher.

    get() serves the stored value while it is younger than ttl, otherwise it
    calls fetcher(), stores the result whole and returns it. A failing
    fetcher propagates its exception and leaves the previous entry in place.

    Options (both off by default, giving last-write-wins with no coalescing):
        coalesce: concurrent misses on one key share a single in-flight fetch
        ordered:  a response is only stored if its request was issued after
                  the one that produced (or invalidated) the current entry
    """

    def __init__(self, name: str = "client", clock: Callable[[], float] = time.monotonic,
                 coalesce: bool = False, ordered: bool = False):
        self.name = name
        self._clock = clock
        self._coalesce = coalesce
        self._ordered = ordered
        self._entries: dict[Hashable, CacheEntry] = {}
        self._inflight: dict[Hashable, Future] = {}
        self._seq = itertools.count(1)
        self._lock = threading.Lock()

        self.hits = 0
        self.misses = 0
        self.errors = 0
        self.discarded = 0

    def now(self) -> float:
        return self._clock()

    def get(self, key: Hashable, ttl: float, fetcher: Callable[[], Any]) -> Any:
        owner = True
        pending: Optional[Future] = None
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.is_fresh(self._clock(), ttl):
                self.hits += 1
                return entry.value

            if self._coalesce:
                pending = self._inflight.get(key)
                if pending is not None:
                    owner = False
                else:
                    pending = Future()
                    self._inflight[key] = pending

            self.misses += 1
            seq = next(self._seq)

        if not owner:
            return pending.result()

        try:
            value = fetcher()
        except Exception as e:
            with self._lock:
                self.errors += 1
                if pending is not None:
                    self._inflight.pop(key, None)
            if pending is not None:
                pending.set_exception(e)
            print(f"[CACHE] {self.name}: fetch for {_key_name(key)} failed, keeping previous entry: {e}")
            raise

        self._store(key, value, seq)
        if pending is not None:
            with self._lock:
                self._inflight.pop(key, None)
            pending.set_result(value)
        return value

    def _store(self, key: Hashable, value: Any, seq: int):
        with self._lock:
            current = self._entries.get(key)
            if self._ordered and current is not None and seq < current.seq:
                self.discarded += 1
                print(f"[CACHE] {self.name}: discarding out-of-order response for {_key_name(key)} "
                      f"(request #{seq} < #{current.seq})")
                return
            # Replace the whole entry, never patch it
            self._entries[key] = CacheEntry(value=value, fetched_at=self._clock(), present=True, seq=seq)

    def invalidate(self, key: Hashable):
        """Force the next get() for key to call its fetcher.

        The last value stays readable through peek() until a fetch replaces it.
        """
        with self._lock:
            current = self._entries.get(key) or CacheEntry()
            floor = next(self._seq) if self._ordered else current.seq
            self._entries[key] = replace(current, stale=True, seq=floor)

    def invalidate_many(self, keys: Iterable[Hashable]) -> frozenset:
        keys = frozenset(keys)
        for key in keys:
            self.invalidate(key)
        return keys

    def clear(self):
        with self._lock:
            keys = list(self._entries.keys())
        self.invalidate_many(keys)

    def peek(self, key: Hashable, default: Any = None) -> Any:
        """Last stored value regardless of age or invalidation, without fetching"""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or not entry.present:
                return default
            return entry.value

    def entry(self, key: Hashable) -> CacheEntry:
        with self._lock:
            return self._entries.get(key) or CacheEntry()

    def age(self, key: Hashable) -> Optional[float]:
        return self.entry(key).age(self._clock())

    def is_fresh(self, key: Hashable, ttl: float) -> bool:
        return self.entry(key).is_fresh(self._clock(), ttl)

    def stats(self) -> dict:
        with self._lock:
            entries = {
                _key_name(k): e.age(self._clock())
                for k, e in self._entries.items()
            }
            return {
                "name": self.name,
                "hits": self.hits,
                "misses": self.misses,
                "errors": self.errors,
                "discarded": self.discarded,
                "entry_ages": entries,
            }


class GatewayCache(TTLCache):
    """Server-side cache with one TTL shared by every connected client"""

    def __init__(self, ttl_seconds: float = 30.0, clock: Callable[[], float] = time.monotonic,
                 coalesce: bool = False, ordered: bool = False):
        super().__init__(name="gateway", clock=clock, coalesce=coalesce, ordered=ordered)
        self.ttl_seconds = ttl_seconds

    def fetch(self, key: Hashable, fetcher: Callable[[], Any]) -> Any:
        return self.get(key, self.ttl_seconds, fetcher)
