# tests/test_summary_cache.py
from __future__ import annotations

from eventdesk.core.cache import SummaryCache, guest_key, portfolio_key


def test_get_counts_hits_and_misses():
    cache = SummaryCache(max_entries=10, ttl_seconds=60)
    assert cache.get(guest_key("G001")) is None

    cache.set(guest_key("G001"), "summary")
    assert cache.get(guest_key("G001")) == "summary"

    stats = cache.stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["entries"] == 1


def test_invalidate_guest_drops_guest_and_every_portfolio():
    cache = SummaryCache(max_entries=10, ttl_seconds=60)
    cache.set(guest_key("G001"), "g1")
    cache.set(guest_key("G002"), "g2")
    cache.set(portfolio_key("list", "regular"), "list")
    cache.set(portfolio_key("stats"), "stats")

    removed = cache.invalidate_guest("G001")

    assert removed == 3
    assert cache.get(guest_key("G001")) is None
    assert cache.get(portfolio_key("list", "regular")) is None
    assert cache.get(portfolio_key("stats")) is None
    # other guests are untouched
    assert cache.get(guest_key("G002")) == "g2"
    assert cache.stats()["invalidations"] == 1


def test_expired_entry_is_stale_not_fresh():
    cache = SummaryCache(max_entries=10, ttl_seconds=-1)
    cache.set(guest_key("G001"), "old")

    assert cache.get(guest_key("G001")) is None
    assert cache.get_stale(guest_key("G001")) == "old"


def test_invalidated_entry_is_not_served_stale():
    cache = SummaryCache(max_entries=10, ttl_seconds=-1)
    cache.set(guest_key("G001"), "old")
    cache.invalidate_guest("G001")
    assert cache.get_stale(guest_key("G001")) is None


def test_lru_eviction_keeps_recently_used():
    cache = SummaryCache(max_entries=2, ttl_seconds=60)
    cache.set(guest_key("A"), 1)
    cache.set(guest_key("B"), 2)
    cache.get(guest_key("A"))
    cache.set(guest_key("C"), 3)

    assert cache.get(guest_key("A")) == 1
    assert cache.get(guest_key("B")) is None
    assert cache.get(guest_key("C")) == 3


def test_portfolio_key_ignores_role_order_and_search_case():
    assert portfolio_key("list", "vip", ["B", "A", "A"], " Nguyen ") == portfolio_key("list", "vip", ["A", "B"], "nguyen")
    assert portfolio_key("list") != portfolio_key("stats")


def test_write_after_invalidation_is_dropped():
    cache = SummaryCache(max_entries=10, ttl_seconds=60)
    generation = cache.generation(guest_key("G001"))

    # a mutation commits while the read is still loading
    cache.invalidate_guest("G001")

    assert cache.set_if_current(guest_key("G001"), "pre-mutation", generation) is False
    assert cache.get(guest_key("G001")) is None
    assert cache.get_stale(guest_key("G001")) is None
    assert cache.stats()["dropped_writes"] == 1


def test_any_invalidation_outdates_portfolio_reads():
    cache = SummaryCache(max_entries=10, ttl_seconds=60)
    key = portfolio_key("stats")
    generation = cache.generation(key)

    cache.invalidate_guest("G002")

    assert cache.set_if_current(key, "old totals", generation) is False
    assert cache.get(key) is None


def test_other_guest_invalidation_keeps_guest_write():
    cache = SummaryCache(max_entries=10, ttl_seconds=60)
    generation = cache.generation(guest_key("G001"))

    cache.invalidate_guest("G002")

    assert cache.set_if_current(guest_key("G001"), "g1", generation) is True
    assert cache.get(guest_key("G001")) == "g1"


def test_read_started_after_invalidation_is_stored():
    cache = SummaryCache(max_entries=10, ttl_seconds=60)
    cache.invalidate_guest("G001")

    generation = cache.generation(guest_key("G001"))
    assert cache.set_if_current(guest_key("G001"), "fresh", generation) is True
    assert cache.get(guest_key("G001")) == "fresh"
