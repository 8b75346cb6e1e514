"""Concurrent memoization of chunk merges."""

import logging
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import Future
from typing import NamedTuple

from .types import Token, TokenBytes

log = logging.getLogger(__name__)


class CacheInfo(NamedTuple):
    """Cache statistics; hit and miss counts are approximate under concurrent use."""

    hits: int
    misses: int
    entries: int
    max_entries: int | None


class _Shard:
    __slots__ = ("lock", "entries", "pending", "limit")

    def __init__(self, limit: int | None = None) -> None:
        self.lock = threading.Lock()
        self.limit = limit
        self.entries: dict[TokenBytes, tuple[Token, ...]] = {}
        # keys whose merge is running; waiters block on the future
        self.pending: dict[TokenBytes, Future[tuple[Token, ...]]] = {}


class MergeCache:
    """
    Sharded ``chunk bytes -> token ids`` cache.

    Keys are spread over independently locked shards so unrelated chunks
    never contend on one lock. Hits read the shard dict without locking.
    On a miss the first caller installs a future and computes the value;
    other callers asking for the same key wait for that future, so every
    distinct key is computed at most once while it stays cached.

    With ``max_entries`` set, the bound is split across the shards (there
    are never more shards than entries) so the whole cache holds at most
    ``max_entries``; a full shard evicts its oldest insertion first.
    """

    def __init__(self, shards: int = 16, max_entries: int | None = None) -> None:
        if shards < 1:
            raise ValueError(f"shards must be at least 1, got {shards}")
        if max_entries is not None and max_entries < 1:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        self._max_entries = max_entries
        if max_entries is None:
            self._shards = tuple(_Shard() for _ in range(shards))
        else:
            shards = min(shards, max_entries)
            base, extra = divmod(max_entries, shards)
            # shard limits sum to exactly max_entries
            self._shards = tuple(
                _Shard(base + (1 if idx < extra else 0)) for idx in range(shards)
            )
        self._hits = 0
        self._misses = 0

    def _shard(self, key: TokenBytes) -> _Shard:
        return self._shards[hash(key) % len(self._shards)]

    def get_or_compute(
        self,
        key: TokenBytes,
        compute: Callable[[TokenBytes], Iterable[Token]],
    ) -> tuple[Token, ...]:
        """
        Return the cached ids for ``key``, computing them with ``compute`` on a miss.

        If ``compute`` raises, nothing is cached and the error reaches the
        computing caller and every caller waiting on the same key.
        """
        shard = self._shard(key)

        value = shard.entries.get(key)
        if value is not None:
            self._hits += 1
            return value

        with shard.lock:
            value = shard.entries.get(key)
            if value is not None:
                self._hits += 1
                return value
            future = shard.pending.get(key)
            owner = future is None
            if future is None:
                future = Future()
                shard.pending[key] = future
                self._misses += 1

        if not owner:
            return future.result()

        try:
            value = tuple(compute(key))
        except BaseException as e:
            with shard.lock:
                del shard.pending[key]
            future.set_exception(e)
            raise

        with shard.lock:
            shard.entries[key] = value
            del shard.pending[key]
            if shard.limit is not None and len(shard.entries) > shard.limit:
                # dicts keep insertion order: first key is the oldest
                del shard.entries[next(iter(shard.entries))]
        future.set_result(value)
        return value

    def get(self, key: TokenBytes) -> tuple[Token, ...] | None:
        """Return the cached ids for ``key`` without computing them."""
        return self._shard(key).entries.get(key)

    def clear(self) -> None:
        """Drop all cached entries; in-flight computations still complete."""
        for shard in self._shards:
            with shard.lock:
                shard.entries.clear()
        self._hits = 0
        self._misses = 0
        log.debug("merge cache cleared")

    def info(self) -> CacheInfo:
        return CacheInfo(self._hits, self._misses, len(self), self._max_entries)

    def __len__(self) -> int:
        return sum(len(shard.entries) for shard in self._shards)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, bytes):
            return False
        return key in self._shard(key).entries

    def __repr__(self) -> str:
        hits, misses, entries, max_entries = self.info()
        return (
            f"{self.__class__.__name__}(shards={len(self._shards)}, entries={entries}, "
            f"max_entries={max_entries}, hits={hits}, misses={misses})"
        )
