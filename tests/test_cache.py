from __future__ import annotations

import threading
from types import SimpleNamespace

import pytest

from libor_core.models.cache import KeyedLRUCache, LazyValue, ProcessScopedCache


def _counting_factory(counter, value):
    def _factory():
        counter.append(1)
        return value
    return _factory


def test_process_scoped_cache_is_idempotent():
    cache = ProcessScopedCache("test")
    process = SimpleNamespace(process_id=1)
    calls = []

    first = cache.get_or_compute(process, "k", _counting_factory(calls, object()))
    second = cache.get_or_compute(process, "k", _counting_factory(calls, object()))

    assert first is second
    assert len(calls) == 1
    assert cache.peek(process, "k") is first


def test_process_scoped_cache_invalidates_on_new_process():
    cache = ProcessScopedCache("test")
    p1 = SimpleNamespace(process_id=1)
    p2 = SimpleNamespace(process_id=2)

    v1 = cache.get_or_compute(p1, "k", lambda: "one")
    assert cache.peek(p2, "k") is None

    v2 = cache.get_or_compute(p2, "k", lambda: "two")
    assert (v1, v2) == ("one", "two")
    assert cache.snapshot() == {"k": "two"}
    # Back to the first process: recomputed, not served from the old entries.
    assert cache.get_or_compute(p1, "k", lambda: "one again") == "one again"


def test_process_scoped_cache_computes_once_under_contention():
    cache = ProcessScopedCache("test")
    process = SimpleNamespace(process_id=7)
    calls = []
    barrier = threading.Barrier(8)
    results = []

    def _worker():
        barrier.wait()
        results.append(cache.get_or_compute(process, "k", _counting_factory(calls, "value")))

    threads = [threading.Thread(target=_worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results == ["value"] * 8
    assert len(calls) == 1


def test_lazy_value_initializes_once():
    lazy = LazyValue("test")
    calls = []
    assert not lazy.is_initialized
    assert lazy.get(_counting_factory(calls, 42)) == 42
    assert lazy.get(_counting_factory(calls, 43)) == 42
    assert lazy.is_initialized
    assert len(calls) == 1


def test_keyed_lru_cache_hits_misses_and_eviction():
    cache = KeyedLRUCache(maxsize=2)
    cache.get_or_compute("a", lambda: 1)
    cache.get_or_compute("b", lambda: 2)
    assert cache.get_or_compute("a", lambda: -1) == 1
    assert (cache.hits, cache.misses) == (1, 2)

    # "b" is least recently used and goes first.
    cache.get_or_compute("c", lambda: 3)
    assert len(cache) == 2
    assert cache.get_or_compute("b", lambda: 20) == 20


def test_keyed_lru_cache_invalidation_key_clears_entries():
    cache = KeyedLRUCache(maxsize=4)
    cache.get_or_compute("a", lambda: 1, invalidation_key="curves-v1")
    assert cache.get_or_compute("a", lambda: 2, invalidation_key="curves-v1") == 1
    assert cache.get_or_compute("a", lambda: 3, invalidation_key="curves-v2") == 3


def test_keyed_lru_cache_rejects_non_positive_size():
    with pytest.raises(ValueError):
        KeyedLRUCache(maxsize=0)
