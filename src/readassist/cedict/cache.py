"""Bounded least-recently-used caches around entry store lookups."""

from __future__ import annotations

from collections import OrderedDict
import logging
import threading
from typing import Generic, TypeVar

from readassist.cedict.repository import EntryStore
from readassist.models import DictionaryEntry

logger = logging.getLogger(__name__)

DEFAULT_CACHE_SIZE = 5000

V = TypeVar("V")


class LruCache(Generic[V]):
    """Thread-safe LRU map keyed by exact token text.

    Keys are never normalized. Values are stored as given, so an empty tuple
    is a real cached answer and only a missing key counts as a miss.
    """

    def __init__(self, max_size: int = DEFAULT_CACHE_SIZE) -> None:
        if max_size < 1:
            raise ValueError(f"Cache size must be positive, got {max_size}.")
        self.max_size = max_size
        self._data: OrderedDict[str, V] = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str, default: V | None = None) -> V | None:
        """Return the cached value and mark it most recently used."""

        with self._lock:
            try:
                value = self._data.pop(key)
            except KeyError:
                self.misses += 1
                return default
            self._data[key] = value
            self.hits += 1
            return value

    def set(self, key: str, value: V) -> None:
        """Store ``value``, evicting the least recently used key when full."""

        with self._lock:
            self._data.pop(key, None)
            self._data[key] = value
            while len(self._data) > self.max_size:
                self._data.popitem(last=False)

    __setitem__ = set

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
            self.hits = 0
            self.misses = 0

    def keys(self) -> list[str]:
        """Return keys from least to most recently used."""

        with self._lock:
            return list(self._data)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class LookupCache:
    """Memoizing front for an :class:`EntryStore`.

    Holds two independent LRU maps: ``token -> entries`` and
    ``token -> decomposition``. One instance is shared by every request in a
    process; construct a fresh one (or call :meth:`clear`) to isolate tests.
    """

    def __init__(self, store: EntryStore, max_size: int = DEFAULT_CACHE_SIZE) -> None:
        self.store = store
        self.entries: LruCache[tuple[DictionaryEntry, ...]] = LruCache(max_size)
        self.decompositions: LruCache[tuple[str, ...]] = LruCache(max_size)

    def lookup(self, token: str) -> tuple[DictionaryEntry, ...]:
        """Return entries for ``token``, querying the store on a miss.

        Args:
            token: Exact surface form.

        Returns:
            Matching entries; an empty tuple when the token is absent.
        """

        cached = self.entries.get(token)
        if cached is not None:
            return cached

        entries = tuple(self.store.lookup(token))
        logger.debug("Entry cache miss for %r: %d entries", token, len(entries))
        self.entries.set(token, entries)
        return entries

    def contains(self, token: str) -> bool:
        """Return whether ``token`` has at least one dictionary entry."""

        return bool(self.lookup(token))

    def clear(self) -> None:
        """Reset both maps."""

        self.entries.clear()
        self.decompositions.clear()
