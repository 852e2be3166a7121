"""
Tests for the auto-refresh scheduler and lazy tab loading
"""

import threading

import pytest

from src.control.scheduler import RefreshScheduler
from src.control.tab_loader import TabLoader, ViewState
from src.core.cache import TTLCache
from src.core.models import ResourceKey
from conftest import FakeClock


class TestRefreshScheduler:

    def test_failed_tick_is_absorbed(self):
        """A raising tick is counted and the next one still runs"""
        outcomes = [RuntimeError("gateway down"), None]

        def tick():
            outcome = outcomes.pop(0)
            if outcome:
                raise outcome

        sched = RefreshScheduler(tick, interval_seconds=60)
        sched.run_once()
        sched.run_once()
        assert sched.ticks == 2
        assert sched.failures == 1
        assert sched.last_error == "gateway down"
        assert sched.last_tick is not None

    def test_start_twice_does_not_stack(self):
        sched = RefreshScheduler(lambda: None, interval_seconds=60)
        try:
            assert sched.start() is True
            assert sched.start() is False, "Second start must not create another timer"
            assert sched.running
            assert sum(1 for t in threading.enumerate() if t.name == sched.name) == 1
        finally:
            sched.stop()

    def test_stop_is_idempotent(self):
        sched = RefreshScheduler(lambda: None, interval_seconds=60)
        assert sched.stop() is False
        sched.start()
        assert sched.stop() is True
        assert not sched.running
        assert sched.stop() is False

    def test_ticks_keep_coming_after_failures(self):
        """Failing ticks do not stop or slow the schedule"""
        done = threading.Event()
        count = []

        def tick():
            count.append(1)
            if len(count) >= 3:
                done.set()
            raise RuntimeError("always failing")

        sched = RefreshScheduler(tick, interval_seconds=0.01)
        sched.start()
        try:
            assert done.wait(5), "Scheduler stopped ticking after a failure"
        finally:
            sched.stop()
        assert sched.failures >= 3

    def test_restart_after_stop(self):
        sched = RefreshScheduler(lambda: None, interval_seconds=60)
        sched.start()
        sched.stop()
        assert sched.start() is True
        sched.stop()


class CountingLoader:
    """load() backed by a real TTLCache with counting fetchers"""

    def __init__(self, ttl=120.0):
        self.clock = FakeClock()
        self.cache = TTLCache(clock=self.clock)
        self.ttl = ttl
        self.fetches = []

    def fetcher(self, key):
        def fetch():
            self.fetches.append(key)
            return f"{key.value}-data"
        return fetch

    def __call__(self, keys):
        return {key: self.cache.get(key, self.ttl, self.fetcher(key)) for key in keys}


VIEWS = {
    "overview": [ResourceKey.PORTFOLIO, ResourceKey.TRADING_STATUS],
    "history": [ResourceKey.TRADE_HISTORY],
    "about": [],
}


class TestTabLoader:

    def test_first_activation_loads(self):
        loader = CountingLoader()
        tabs = TabLoader(VIEWS, loader)
        assert tabs.state("history") == ViewState.NOT_LOADED

        data = tabs.activate("history")
        assert data == {ResourceKey.TRADE_HISTORY: "trade-history-data"}
        assert tabs.state("history") == ViewState.LOADED
        assert loader.fetches == [ResourceKey.TRADE_HISTORY]

    def test_reactivation_goes_through_cache(self):
        """A second visit within the TTL makes no new fetch"""
        loader = CountingLoader()
        tabs = TabLoader(VIEWS, loader)
        tabs.activate("history")
        tabs.activate("history")
        assert loader.fetches == [ResourceKey.TRADE_HISTORY]

        loader.clock.advance(121)
        tabs.activate("history")
        assert loader.fetches == [ResourceKey.TRADE_HISTORY] * 2, "Stale entry is re-fetched on activation"

    def test_other_views_stay_unloaded(self):
        tabs = TabLoader(VIEWS, CountingLoader())
        tabs.activate("history")
        assert not tabs.is_loaded("overview")

    def test_mark_loaded(self):
        loader = CountingLoader()
        tabs = TabLoader(VIEWS, loader)
        tabs.mark_loaded("overview")
        assert tabs.is_loaded("overview")
        assert loader.fetches == []

    def test_view_without_resources(self):
        tabs = TabLoader(VIEWS, CountingLoader())
        assert tabs.activate("about") == {}
        assert tabs.is_loaded("about")

    def test_unknown_view(self):
        tabs = TabLoader(VIEWS, CountingLoader())
        with pytest.raises(KeyError):
            tabs.activate("nope")

    def test_failed_load_still_marks_loaded(self):
        def load(keys):
            raise RuntimeError("down")

        tabs = TabLoader(VIEWS, load)
        with pytest.raises(RuntimeError):
            tabs.activate("history")
        assert tabs.is_loaded("history")
