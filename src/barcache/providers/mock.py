"""Mock provider for testing and CI, no API keys required."""

from __future__ import annotations

from datetime import datetime, time, timedelta
from typing import Sequence

from barcache.granularity import Granularity, GranularityUnit, parse_granularity
from barcache.models.bar import Bar
from barcache.models.date_range import DateRange
from barcache.providers.base import BaseBarProvider

DEFAULT_GRANULARITIES = ("1min", "5min", "15min", "30min", "60min", "1d", "1w", "1mo")


class MockProvider(BaseBarProvider):
    """In-memory provider that returns configurable static data.

    Use ``set_bars`` to pre-load data for a ticker, or leave it unset for
    synthetic bars. Synthetic daily bars exist for every calendar day;
    intraday bars cover 09:30-16:00 every day. Every call is recorded in
    ``calls``.
    """

    name = "mock"

    def __init__(self, granularities: Sequence[str] = DEFAULT_GRANULARITIES) -> None:
        self._granularities = tuple(parse_granularity(g) for g in granularities)
        self._bars: dict[str, list[Bar]] = {}
        self.calls: list[tuple[str, str, tuple[DateRange, ...]]] = []

    def set_bars(self, ticker: str, bars: list[Bar]) -> None:
        self._bars[ticker.upper()] = bars

    def supported_granularities(self) -> tuple[Granularity, ...]:
        return self._granularities

    def fetch(
        self,
        ticker: str,
        granularity: Granularity,
        ranges: Sequence[DateRange],
    ) -> list[Bar]:
        key = ticker.upper()
        self.calls.append((key, granularity.label, tuple(ranges)))

        if key in self._bars:
            return sorted(
                (
                    b for b in self._bars[key]
                    if b.interval == granularity.label
                    and any(b.datetime.date() in r for r in ranges)
                ),
                key=lambda b: b.datetime,
            )

        bars: list[Bar] = []
        for r in ranges:
            bars.extend(self._generate_bars(key, r, granularity))
        return bars

    # --- Synthetic data generation ---

    def _generate_bars(self, ticker: str, date_range: DateRange, granularity: Granularity) -> list[Bar]:
        bars: list[Bar] = []
        base_price = 150.0
        for day in date_range.days():
            if granularity.unit is GranularityUnit.WEEK and day.weekday() != 0:
                continue
            if granularity.unit is GranularityUnit.MONTH and day.day != 1:
                continue

            if granularity.is_intraday:
                session_open = datetime.combine(day, time(9, 30))
                per_day = 390 // granularity.minutes
                stamps = [session_open + timedelta(minutes=i * granularity.minutes) for i in range(per_day)]
            else:
                stamps = [datetime.combine(day, time())]

            for i, ts in enumerate(stamps):
                o = base_price + (day.toordinal() % 7) * 0.5 + (i % 5) * 0.10
                bars.append(Bar(
                    ticker=ticker,
                    interval=granularity.label,
                    datetime=ts,
                    open=round(o, 2),
                    high=round(o + 0.25, 2),
                    low=round(o - 0.15, 2),
                    close=round(o + 0.05, 2),
                    volume=10000 + i * 100,
                    adj_close=round(o + 0.05, 2),
                    split_coefficient=1.0,
                    dividend_amount=0.0,
                ))
        return bars
