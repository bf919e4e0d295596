from datetime import timedelta

import pytest

from storefront.services.cache import ResponseCache


@pytest.fixture
def cache(clock):
    return ResponseCache(max_size=3, default_ttl=timedelta(seconds=60), clock=clock)


def test_get_missing_key(cache):
    assert cache.get("GET /Home") is None
    assert cache.get_stats().misses == 1


def test_put_and_get(cache, clock):
    cache.put("GET /Home", {"sections": [1, 2]})
    clock.advance(10)

    result = cache.get("GET /Home")
    assert result.data == {"sections": [1, 2]}
    assert result.age == 10
    assert cache.get_stats().hits == 1


def test_entry_expires_at_ttl(cache, clock):
    cache.put("GET /Home", "payload", ttl=timedelta(seconds=300))

    clock.advance(299.5)
    assert cache.get("GET /Home").data == "payload"

    clock.advance(0.5)
    assert cache.get("GET /Home") is None
    # Expired entries are removed on lookup
    assert "GET /Home" not in cache
    assert cache.get_stats().expirations == 1


def test_default_ttl_is_used(cache, clock):
    cache.put("GET /Home", "payload")
    clock.advance(60)
    assert cache.get("GET /Home") is None


def test_fifo_eviction_evicts_first_inserted(cache):
    for key in ("a", "b", "c"):
        cache.put(key, key.upper())

    cache.put("d", "D")

    assert cache.keys() == ["b", "c", "d"]
    assert cache.get_stats().evictions == 1


def test_reads_do_not_protect_from_eviction(cache):
    for key in ("a", "b", "c"):
        cache.put(key, key.upper())

    # Not LRU: reading "a" does not move it to the back
    assert cache.get("a").data == "A"
    cache.put("d", "D")

    assert "a" not in cache
    assert cache.keys() == ["b", "c", "d"]


def test_overwrite_does_not_evict(cache):
    for key in ("a", "b", "c"):
        cache.put(key, key.upper())

    cache.put("a", "A2")

    assert len(cache) == 3
    assert cache.get("a").data == "A2"
    assert cache.keys() == ["b", "c", "a"]
    assert cache.get_stats().evictions == 0


def test_delete_and_clear(cache):
    cache.put("a", 1)
    cache.put("b", 2)

    assert cache.delete("a") is True
    assert cache.delete("a") is False
    assert cache.clear() == 1
    assert len(cache) == 0


def test_cleanup_expired(clock):
    cache = ResponseCache(max_size=10, clock=clock)
    cache.put("short", 1, ttl=timedelta(seconds=5))
    cache.put("long", 2, ttl=timedelta(seconds=500))

    clock.advance(10)

    assert cache.cleanup_expired() == 1
    assert cache.keys() == ["long"]


def test_stats_to_dict(cache):
    cache.put("a", 1)
    cache.get("a")
    cache.get("b")

    stats = cache.get_stats().to_dict()
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["size"] == 1
    assert stats["max_size"] == 3
    assert stats["hit_rate"] == "50.00%"


def test_max_size_must_be_positive():
    with pytest.raises(ValueError):
        ResponseCache(max_size=0)
