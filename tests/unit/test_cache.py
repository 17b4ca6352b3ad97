"""Unit tests for LRU lookup caching."""

from __future__ import annotations

import pytest

from readassist.cedict.cache import LookupCache, LruCache
from readassist.cedict.repository import StaticEntryStore


class CountingStore:
    """Entry store that records every lookup it serves."""

    def __init__(self) -> None:
        self.inner = StaticEntryStore.from_lines(["你 你 [ni3] /you/", "好 好 [hao3] /good/"])
        self.calls: list[str] = []

    def lookup(self, token: str):
        self.calls.append(token)
        return self.inner.lookup(token)


def test_lru_evicts_least_recently_used() -> None:
    lru: LruCache[int] = LruCache(max_size=2)
    lru.set("a", 1)
    lru.set("b", 2)
    assert lru.get("a") == 1

    lru.set("c", 3)

    assert "b" not in lru
    assert lru.keys() == ["a", "c"]
    assert len(lru) == 2


def test_lru_counts_hits_and_misses_and_rejects_bad_size() -> None:
    lru: LruCache[str] = LruCache(max_size=1)
    lru["k"] = "v"

    assert lru.get("k") == "v"
    assert lru.get("missing", "fallback") == "fallback"
    assert (lru.hits, lru.misses) == (1, 1)

    with pytest.raises(ValueError):
        LruCache(max_size=0)


def test_lookup_cache_serves_repeats_without_store_access() -> None:
    store = CountingStore()
    cache = LookupCache(store, max_size=8)

    first = cache.lookup("你")
    second = cache.lookup("你")

    assert first == second
    assert store.calls == ["你"]


def test_lookup_cache_caches_empty_results() -> None:
    store = CountingStore()
    cache = LookupCache(store, max_size=8)

    assert cache.lookup("吗") == ()
    assert cache.contains("吗") is False
    assert store.calls == ["吗"]


def test_lookup_cache_keys_are_not_normalized() -> None:
    store = CountingStore()
    cache = LookupCache(store, max_size=8)

    cache.lookup("你")
    cache.lookup(" 你")

    assert store.calls == ["你", " 你"]


def test_clear_resets_both_maps() -> None:
    cache = LookupCache(CountingStore(), max_size=8)
    cache.lookup("你")
    cache.decompositions.set("你好", ("你", "好"))

    cache.clear()

    assert len(cache.entries) == 0
    assert len(cache.decompositions) == 0
