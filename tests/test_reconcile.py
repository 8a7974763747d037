"""Tests for merging cached and fresh bars."""

from datetime import date, datetime

from barcache.models.date_range import DateRange
from barcache.reconcile import Reconciler, reconcile

from conftest import make_bar


class TestReconcile:
    def test_fresh_wins(self, daily_bars):
        fresh = make_bar(daily_bars[2].datetime, close=123.0)
        merged = reconcile(daily_bars, [fresh])
        assert len(merged) == 5
        assert merged[2].close == 123.0

    def test_sorted_and_deduplicated(self, daily_bars):
        merged = reconcile(list(reversed(daily_bars)), daily_bars[:2])
        assert [b.datetime for b in merged] == [b.datetime for b in daily_bars]

    def test_idempotent(self, daily_bars):
        fresh = [make_bar(daily_bars[0].datetime, close=1.0)]
        once = reconcile(daily_bars, fresh)
        assert reconcile(once, fresh) == once
        assert reconcile(once, []) == once

    def test_tickers_and_intervals_kept_apart(self):
        ts = datetime(2024, 1, 2)
        bars = [make_bar(ts), make_bar(ts, ticker="MSFT"), make_bar(ts, interval="1w")]
        assert len(reconcile(bars, [])) == 3

    def test_empty(self):
        assert reconcile([], []) == []


class TestReconciler:
    def test_persist_writes_fresh(self, memory_store, daily_bars):
        assert Reconciler(memory_store).persist(daily_bars) == 5
        assert len(memory_store) == 5

    def test_persist_nothing(self, memory_store):
        assert Reconciler(memory_store).persist([]) == 0
        assert len(memory_store) == 0

    def test_persist_then_reread_matches_merge(self, memory_store, daily_bars):
        reconciler = Reconciler(memory_store)
        reconciler.persist(daily_bars)
        fresh = [make_bar(daily_bars[1].datetime, close=101.0)]
        merged = reconciler.merge(daily_bars, fresh)
        reconciler.persist(fresh)
        reconciler.persist(fresh)
        stored = memory_store.query("AAPL", "1d", DateRange(date(2024, 1, 1), date(2024, 1, 5)))
        assert stored == merged
        assert stored[1].close == 101.0

    def test_merge(self, memory_store, daily_bars):
        fresh = [make_bar(daily_bars[0].datetime, close=7.0)]
        merged = Reconciler(memory_store).merge(daily_bars, fresh)
        assert merged[0].close == 7.0
        assert len(merged) == 5
