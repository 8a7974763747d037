"""Abstract base class for bar providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Mapping, Sequence

from barcache.errors import Unsupported
from barcache.granularity import Granularity, GranularityUnit
from barcache.models.bar import Bar
from barcache.models.date_range import DateRange


class BaseBarProvider(ABC):
    """Abstract base for all bar providers.

    The engine only relies on ``fetch``; the other methods describe what a
    provider can serve so the engine knows when to resample and how many
    calls a run will cost.
    """

    name: str = "base"

    @abstractmethod
    def fetch(
        self,
        ticker: str,
        granularity: Granularity,
        ranges: Sequence[DateRange],
    ) -> list[Bar]:
        """Fetch bars for ``ticker`` covering ``ranges``.

        Args:
            ticker: Upper-case symbol.
            granularity: Interval to fetch; must be one of
                ``supported_granularities()``.
            ranges: Inclusive date ranges to cover, ascending.

        Returns:
            Bars labelled with ``granularity.label``, ordered by datetime.

        Raises:
            RateLimited, Unsupported, RemoteError.
        """
        ...

    def supported_granularities(self) -> tuple[Granularity, ...]:
        """Intervals this provider can serve natively, finest first."""
        return ()

    def native_granularity(self, requested: Granularity) -> Granularity:
        """Pick the interval to fetch for ``requested``.

        Day, week and month requests are fetched as daily bars when the
        provider has them. Coverage is tracked per calendar day, and period
        bars carry a single timestamp per period. Otherwise returns
        ``requested`` when it is served natively, or the coarsest supported
        interval that can be resampled into it.

        Raises:
            Unsupported: If no supported interval fits.
        """
        supported = self.supported_granularities()
        if not requested.is_intraday:
            daily = next(
                (g for g in supported if g.unit is GranularityUnit.DAY and g.count == 1),
                None,
            )
            if daily is not None and daily.minutes <= requested.minutes:
                return daily

        if requested in supported:
            return requested

        candidates = [g for g in supported if g.minutes <= requested.minutes]
        if requested.is_intraday:
            candidates = [
                g for g in candidates
                if g.is_intraday and requested.minutes % g.minutes == 0
            ]
        else:
            # Weeks straddle month boundaries, so only days or finer feed a month
            candidates = [
                g for g in candidates
                if g.unit is not GranularityUnit.WEEK or requested.unit is GranularityUnit.WEEK
            ]
        if not candidates:
            raise Unsupported(requested.label, self.name)
        return max(candidates, key=lambda g: g.minutes)

    def estimate_calls(
        self,
        ranges_by_ticker: Mapping[str, Sequence[DateRange]],
        granularity: Granularity,
    ) -> int:
        """Estimated number of remote calls to cover ``ranges_by_ticker``."""
        return sum(1 for ranges in ranges_by_ticker.values() if ranges)
