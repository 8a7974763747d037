"""BarEngine: central orchestrator for cache coverage, fetching and reconciliation."""

from __future__ import annotations

import logging
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

from barcache.config import BarCacheConfig, ProviderType
from barcache.coverage import CoverageAnalyzer
from barcache.errors import RemoteError
from barcache.granularity import Granularity
from barcache.models.bar import Bar
from barcache.models.coverage import CacheCoverage
from barcache.models.date_range import DateRange
from barcache.models.request import BarRequest, CachePolicy
from barcache.providers import create_provider
from barcache.providers.base import BaseBarProvider
from barcache.quality import validate_bars
from barcache.reconcile import Reconciler, reconcile
from barcache.resample import resample
from barcache.store import BarStore, create_store
from barcache.transforms import Record, apply_transforms

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchPlan:
    """What a run would do, computed without calling the provider.

    Attributes:
        provider: Provider name.
        fetch_interval: Interval fetched and cached (the provider's native
            interval for the request).
        resample_to: Requested interval label when resampling is needed.
        coverage: Missing ranges per ticker under the request's policy.
        estimated_calls: Provider's estimate of remote calls.
    """

    provider: str
    fetch_interval: str
    resample_to: str | None
    coverage: CacheCoverage
    estimated_calls: int


class BarEngine:
    """Central orchestrator: coverage -> provider -> reconcile -> transforms.

    Usage::

        from barcache import create_engine_from_env
        from barcache.request import build_request

        engine = create_engine_from_env()
        request = build_request(["AAPL"], "2024-01-01:2024-01-05", "1d")
        records = engine.run(request)
    """

    def __init__(
        self,
        config: BarCacheConfig,
        provider: BaseBarProvider | None = None,
        store: BarStore | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config

        if provider is None:
            kwargs: dict[str, Any] = {}
            if config.provider is ProviderType.ALPHAVANTAGE:
                kwargs["api_key"] = config.alphavantage_api_key
                kwargs["min_call_interval"] = config.min_call_interval
                kwargs["sleep"] = sleep
            provider = create_provider(config.provider, **kwargs)
        self.provider = provider

        self.store = store if store is not None else create_store(
            config.cache_backend, config.cache_path,
        )
        self.analyzer = CoverageAnalyzer(self.store, config.trading_days_only)
        self.reconciler = Reconciler(self.store)

        self._sleep = sleep
        self._clock = clock
        self._last_call: float | None = None

    # ----------------------------------------------------------------- bars

    def get_bars(self, request: BarRequest) -> list[Bar]:
        """Return the reconciled (and, if needed, resampled) bar series.

        Provider and store errors propagate; nothing is retried and no
        partial result is returned.
        """
        native = self.provider.native_granularity(request.granularity)
        policy = request.cache_policy

        if policy is CachePolicy.USE:
            bars = self._get_bars_with_cache(request, native)
        else:
            logger.info('Cache policy is "%s". Fetching all data from provider.', policy.value)
            fetched = self._fetch(self._full_ranges(request), native)
            if policy is CachePolicy.REFRESH:
                self.reconciler.persist(fetched)
            bars = reconcile([], fetched)

        if native != request.granularity:
            bars = self._resample(bars, request.granularity, native)
        return bars

    def run(self, request: BarRequest) -> list[Record]:
        """Fetch bars and apply the transform pipeline."""
        bars = self.get_bars(request)
        records = apply_transforms(bars, request)
        logger.info("Produced %d record(s) for %s", len(records), ", ".join(request.tickers))
        return records

    def plan(self, request: BarRequest) -> FetchPlan:
        """Describe the provider calls a run would make."""
        native = self.provider.native_granularity(request.granularity)
        if request.cache_policy is CachePolicy.USE:
            coverage = self.analyzer.analyze(request, native.label)
        else:
            coverage = CacheCoverage(missing=self._full_ranges(request))
        return FetchPlan(
            provider=self.provider.name,
            fetch_interval=native.label,
            resample_to=request.interval if native != request.granularity else None,
            coverage=coverage,
            estimated_calls=self.provider.estimate_calls(coverage.missing, native),
        )

    # --------------------------------------------------------------- cache

    def clear_cache(self, ticker: str) -> None:
        self.store.clear(ticker)

    def clear_all_cache(self) -> None:
        self.store.clear_all()

    # ------------------------------------------------------------ internal

    def _get_bars_with_cache(self, request: BarRequest, native: Granularity) -> list[Bar]:
        logger.info('Cache policy is "use". Checking cache for existing data.')
        coverage = self.analyzer.analyze(request, native.label)

        cached: list[Bar] = []
        for ticker in request.tickers:
            cached.extend(self.store.query(ticker, native.label, request.date_range))

        if coverage.is_complete:
            logger.info("All requested data was found in the cache.")
            return reconcile(cached, [])

        logger.info(
            "Found %d missing range(s) for %s. Fetching from provider.",
            coverage.range_count, ", ".join(coverage.missing_tickers),
        )
        fetched = self._fetch(coverage.missing, native)
        self.reconciler.persist(fetched)
        return self.reconciler.merge(cached, fetched)

    @staticmethod
    def _full_ranges(request: BarRequest) -> dict[str, tuple[DateRange, ...]]:
        return {ticker: (request.date_range,) for ticker in request.tickers}

    def _fetch(
        self,
        ranges_by_ticker: Mapping[str, Sequence[DateRange]],
        granularity: Granularity,
    ) -> list[Bar]:
        """Fetch tickers one at a time, spacing calls by the rate limit."""
        fetched: list[Bar] = []
        for ticker, ranges in ranges_by_ticker.items():
            if not ranges:
                continue
            self._throttle()
            logger.info("Fetching %s %s for %d range(s)", ticker, granularity.label, len(ranges))
            try:
                bars = self.provider.fetch(ticker, granularity, list(ranges))
            finally:
                self._last_call = self._clock()
            fetched.extend(bars)

        if self.config.validate:
            result = validate_bars(fetched)
            if not result.passed:
                msgs = "; ".join(c.message for c in result.failed_checks)
                raise RemoteError(f"Validation failed: {msgs}")
        return fetched

    def _throttle(self) -> None:
        interval = self.config.min_call_interval
        if self._last_call is None or interval <= 0:
            return
        wait = interval - (self._clock() - self._last_call)
        if wait > 0:
            logger.debug("Waiting %.1fs before next provider call", wait)
            self._sleep(wait)

    @staticmethod
    def _resample(bars: list[Bar], target: Granularity, native: Granularity) -> list[Bar]:
        by_ticker: dict[str, list[Bar]] = defaultdict(list)
        for bar in bars:
            by_ticker[bar.ticker].append(bar)
        out: list[Bar] = []
        for ticker_bars in by_ticker.values():
            out.extend(resample(ticker_bars, target, native))
        logger.debug(
            "Resampled %d %s bar(s) into %d %s bar(s)",
            len(bars), native.label, len(out), target.label,
        )
        return reconcile(out, [])
