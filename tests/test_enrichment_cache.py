"""Tests for the enrichment TTL cache."""

from levelboard.services.directory.cache import EnrichmentCache


def test_get_returns_value_inside_ttl(clock):
    cache = EnrichmentCache(ttl=60, clock=clock)
    cache.set(("u1", "g1"), "Alice")

    clock.advance(59)
    assert cache.get(("u1", "g1")) == "Alice"


def test_entry_expires_at_ttl_and_is_dropped(clock):
    cache = EnrichmentCache(ttl=60, clock=clock)
    cache.set("u1", "Alice")

    clock.advance(60)
    assert cache.get("u1") is None
    assert cache.size == 0


def test_read_does_not_refresh_timestamp(clock):
    cache = EnrichmentCache(ttl=60, clock=clock)
    cache.set("u1", "Alice")

    clock.advance(40)
    assert cache.get("u1") == "Alice"
    clock.advance(30)
    assert cache.get("u1") is None


def test_keys_are_scoped_by_guild(clock):
    cache = EnrichmentCache(ttl=60, clock=clock)
    cache.set(("u1", "g1"), "Alice")

    assert ("u1", "g1") in cache
    assert ("u1", "g2") not in cache


def test_clear_reports_removed_count(clock):
    cache = EnrichmentCache(ttl=60, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)

    assert cache.clear() == 2
    assert cache.get("a") is None


def test_cleanup_expired_only_removes_stale_entries(clock):
    cache = EnrichmentCache(ttl=60, clock=clock)
    cache.set("old", 1)
    clock.advance(45)
    cache.set("new", 2)
    clock.advance(20)

    assert cache.cleanup_expired() == 1
    assert cache.get("new") == 2
    assert cache.size == 1
