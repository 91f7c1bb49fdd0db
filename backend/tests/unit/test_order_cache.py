"""
Unit Tests for the shared order cache
"""
import threading

import pytest

from app.exceptions import TransportFailure
from app.services.order_cache import (
    DASHBOARD_STATS,
    ORDER_LISTS,
    OrderCache,
    order_detail_key,
    order_list_key,
)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class CountingLoader:
    def __init__(self, *values):
        self.values = list(values)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        value = self.values[min(self.calls, len(self.values)) - 1]
        if isinstance(value, Exception):
            raise value
        return value


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return OrderCache(ttl_seconds=60, clock=clock)


class TestFetch:

    def test_loads_once_while_fresh(self, cache):
        loader = CountingLoader("a")
        assert cache.fetch(("k",), loader) == "a"
        assert cache.fetch(("k",), loader) == "a"
        assert loader.calls == 1

    def test_expired_entry_reloads(self, cache, clock):
        loader = CountingLoader("a", "b")
        cache.fetch(("k",), loader)
        clock.now += 61
        assert cache.peek(("k",)) is None
        assert cache.fetch(("k",), loader) == "b"

    def test_failed_load_caches_nothing(self, cache):
        loader = CountingLoader(TransportFailure("boom"))
        with pytest.raises(TransportFailure):
            cache.fetch(("k",), loader)
        assert cache.keys() == []


class TestInvalidate:

    def test_prefix_marks_every_list_page(self, cache):
        cache.fetch(order_list_key(1, 20, None), lambda: "p1")
        cache.fetch(order_list_key(2, 20, None), lambda: "p2")
        cache.fetch(order_detail_key("o1"), lambda: "d1")

        affected = cache.invalidate(ORDER_LISTS)

        assert sorted(affected) == sorted([order_list_key(1, 20, None), order_list_key(2, 20, None)])
        assert cache.is_stale(order_list_key(1, 20, None))
        assert not cache.is_stale(order_detail_key("o1"))

    def test_stale_entry_is_never_served(self, cache):
        loader = CountingLoader("old", "new")
        cache.fetch(DASHBOARD_STATS, loader)
        cache.invalidate(DASHBOARD_STATS)

        assert cache.peek(DASHBOARD_STATS) is None
        assert cache.fetch(DASHBOARD_STATS, loader) == "new"

    def test_detail_prefix_does_not_match_other_orders(self, cache):
        cache.fetch(order_detail_key("o1"), lambda: "d1")
        cache.fetch(order_detail_key("o10"), lambda: "d10")
        assert cache.invalidate(order_detail_key("o1")) == [order_detail_key("o1")]

    def test_load_in_progress_is_stored_stale(self, cache):
        started = threading.Event()
        release = threading.Event()

        def slow_loader():
            started.set()
            release.wait(timeout=5)
            return "pre-transition"

        worker = threading.Thread(target=cache.fetch, args=(order_detail_key("o1"), slow_loader))
        worker.start()
        started.wait(timeout=5)

        cache.invalidate(order_detail_key("o1"))
        release.set()
        worker.join(timeout=5)

        assert cache.is_stale(order_detail_key("o1"))
        assert cache.peek(order_detail_key("o1")) is None

    def test_entries_not_read_within_ttl_are_dropped(self, cache, clock):
        cache.fetch(order_list_key(1, 20, None), lambda: "p1")
        clock.now += 61
        cache.fetch(order_list_key(2, 20, None), lambda: "p2")

        affected = cache.invalidate(ORDER_LISTS)

        assert len(affected) == 2
        assert cache.keys() == [order_list_key(2, 20, None)]
        assert cache.is_stale(order_list_key(2, 20, None))

    def test_keep_limits_entries_left_for_refetch(self, cache):
        for size in (10, 20, 50):
            cache.fetch(order_list_key(1, size, None), lambda: size)
        cache.fetch(order_list_key(1, 10, None), lambda: "unused")  # most recent read

        cache.invalidate(ORDER_LISTS, keep=1)

        assert cache.keys() == [order_list_key(1, 10, None)]
        assert cache.is_stale(order_list_key(1, 10, None))

    def test_keep_zero_drops_everything(self, cache):
        cache.fetch(order_list_key(1, 20, None), lambda: "p1")
        cache.invalidate(ORDER_LISTS, keep=0)
        assert cache.keys() == []
        assert cache.refetch_stale() == []


class TestCapacity:

    def test_least_recently_read_evicted(self, clock):
        cache = OrderCache(ttl_seconds=60, clock=clock, max_entries=2)
        cache.fetch(("a",), lambda: "a")
        cache.fetch(("b",), lambda: "b")
        cache.fetch(("a",), lambda: "unused")

        cache.fetch(("c",), lambda: "c")

        assert sorted(cache.keys()) == [("a",), ("c",)]

    def test_many_list_pages_stay_bounded(self, clock):
        cache = OrderCache(ttl_seconds=60, clock=clock, max_entries=5)
        for size in range(1, 31):
            cache.fetch(order_list_key(1, size, None), lambda: size)
        assert len(cache.keys()) == 5
        assert order_list_key(1, 30, None) in cache.keys()


class TestRefetchStale:

    def test_reloads_with_recorded_loader(self, cache):
        loader = CountingLoader("v1", "v2")
        cache.fetch(order_detail_key("o1"), loader)
        cache.invalidate(order_detail_key("o1"))

        refreshed = cache.refetch_stale()

        assert refreshed == [order_detail_key("o1")]
        assert cache.peek(order_detail_key("o1")) == "v2"

    def test_failed_reload_stays_stale(self, cache):
        loader = CountingLoader("v1", TransportFailure("down"), "v3")
        cache.fetch(order_detail_key("o1"), loader)
        cache.invalidate(order_detail_key("o1"))

        assert cache.refetch_stale() == []
        assert cache.is_stale(order_detail_key("o1"))
        assert cache.fetch(order_detail_key("o1"), loader) == "v3"

    def test_fresh_entries_untouched(self, cache):
        loader = CountingLoader("v1", "v2")
        cache.fetch(("k",), loader)
        assert cache.refetch_stale() == []
        assert loader.calls == 1
