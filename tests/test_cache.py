# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Tests for the completion cache."""

import threading

import pytest

from arduino_copilot.completion.cache import CompletionCache
from arduino_copilot.completion.protocol import CompletionResponse


def response(text):
    return CompletionResponse(completion=text)


class TestCompletionCache:
    """Tests for LRU eviction and lazy expiry."""

    def test_get_miss_then_hit(self, clock):
        cache = CompletionCache(clock=clock)

        assert cache.get("k") is None
        cache.put("k", response("a"))
        assert cache.get("k").completion == "a"
        assert cache.stats()["hits"] == 1
        assert cache.stats()["misses"] == 1

    def test_put_overwrites(self, clock):
        cache = CompletionCache(clock=clock)
        cache.put("k", response("a"))
        cache.put("k", response("b"))

        assert cache.get("k").completion == "b"
        assert len(cache) == 1

    def test_evicts_least_recently_accessed(self, clock):
        cache = CompletionCache(capacity=2, clock=clock)
        cache.put("a", response("1"))
        cache.put("b", response("2"))
        cache.get("a")
        cache.put("c", response("3"))

        assert cache.get("b") is None
        assert cache.get("a") is not None
        assert cache.get("c") is not None
        assert cache.stats()["evictions"] == 1

    def test_capacity_bound(self, clock):
        cache = CompletionCache(capacity=3, clock=clock)
        for i in range(10):
            cache.put(str(i), response(str(i)))

        assert len(cache) == 3
        assert cache.get("9") is not None

    def test_entry_expires_after_ttl(self, clock):
        cache = CompletionCache(ttl_seconds=300, clock=clock)
        cache.put("k", response("a"))

        clock.advance(299)
        assert cache.get("k") is not None

        clock.advance(1)
        assert cache.get("k") is None
        assert len(cache) == 0
        assert cache.stats()["expirations"] == 1

    def test_hit_does_not_extend_ttl(self, clock):
        cache = CompletionCache(ttl_seconds=10, clock=clock)
        cache.put("k", response("a"))

        clock.advance(8)
        cache.get("k")
        clock.advance(3)

        assert cache.get("k") is None

    def test_clear(self, clock):
        cache = CompletionCache(clock=clock)
        cache.put("a", response("1"))
        cache.put("b", response("2"))
        cache.clear()

        assert len(cache) == 0
        assert cache.get("a") is None

    @pytest.mark.parametrize("kwargs", [{"capacity": 0}, {"ttl_seconds": 0}])
    def test_rejects_invalid_bounds(self, kwargs):
        with pytest.raises(ValueError):
            CompletionCache(**kwargs)

    def test_concurrent_access_keeps_capacity(self):
        cache = CompletionCache(capacity=50)

        def worker(offset):
            for i in range(200):
                key = f"{offset}-{i % 80}"
                cache.put(key, response(key))
                cache.get(key)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(cache) == 50
