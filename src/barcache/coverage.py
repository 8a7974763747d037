"""Coverage analysis: which parts of a request are missing from the cache."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Callable, Iterable

from barcache.calendar import is_trading_day
from barcache.errors import CoverageComputationError
from barcache.models.coverage import CacheCoverage
from barcache.models.date_range import DateRange
from barcache.models.request import BarRequest
from barcache.store import BarStore

logger = logging.getLogger(__name__)


def find_missing_ranges(
    cached_dates: Iterable[date],
    date_range: DateRange,
    is_countable: Callable[[date], bool] | None = None,
) -> list[DateRange]:
    """Walk ``date_range`` day by day and return maximal missing runs.

    Args:
        cached_dates: Days already present in the cache.
        date_range: Inclusive range to scan.
        is_countable: Optional day filter. Days it rejects are never
            reported missing and do not break a run; every emitted range
            starts and ends on a countable day.

    Returns:
        Chronological, non-overlapping, non-adjacent missing ranges.
    """
    cached = set(cached_dates)
    countable = is_countable or (lambda _d: True)

    ranges: list[DateRange] = []
    run_start: date | None = None
    run_end: date | None = None

    for day in date_range.days():
        if not countable(day):
            continue
        if day in cached:
            if run_start is not None:
                ranges.append(DateRange(run_start, run_end))  # type: ignore[arg-type]
                run_start = run_end = None
            continue
        if run_start is None:
            run_start = day
        run_end = day

    if run_start is not None:
        ranges.append(DateRange(run_start, run_end))  # type: ignore[arg-type]

    _check_runs(ranges, date_range)
    return ranges


def _check_runs(ranges: list[DateRange], bounds: DateRange) -> None:
    for prev, cur in zip(ranges, ranges[1:]):
        if cur.start <= prev.end + timedelta(days=1):
            raise CoverageComputationError(
                f"Missing ranges {prev} and {cur} overlap or touch"
            )
    for r in ranges:
        if r.start not in bounds or r.end not in bounds:
            raise CoverageComputationError(f"Missing range {r} escapes {bounds}")


class CoverageAnalyzer:
    """Computes :class:`CacheCoverage` for a request against a store.

    Intraday intervals are analysed at day level: a day is covered when the
    store holds at least one bar for it at that interval.
    """

    def __init__(self, store: BarStore, trading_days_only: bool = False) -> None:
        self.store = store
        self.trading_days_only = trading_days_only

    def analyze(self, request: BarRequest, interval: str | None = None) -> CacheCoverage:
        interval = interval or request.interval
        date_range = request.date_range
        day_filter = is_trading_day if self.trading_days_only else None

        missing: dict[str, tuple[DateRange, ...]] = {}
        for ticker in request.tickers:
            cached = self.store.cached_dates(ticker, interval, date_range)
            ranges = find_missing_ranges(cached, date_range, day_filter)
            if ranges:
                missing[ticker] = tuple(ranges)
                logger.debug(
                    "%s %s: %d cached day(s), missing %s",
                    ticker, interval, len(cached), ", ".join(str(r) for r in ranges),
                )
            else:
                logger.debug("%s %s: fully cached for %s", ticker, interval, date_range)

        return CacheCoverage(missing=missing)
