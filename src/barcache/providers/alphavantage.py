"""Alpha Vantage bar provider (REST API via ``requests``).

Daily, weekly and monthly bars come from the ``*_ADJUSTED`` endpoints and
carry adjusted close, dividend and (daily only) split coefficient.
Intraday bars come from ``TIME_SERIES_INTRADAY``, one call per month.
"""

from __future__ import annotations

import logging
import os
import time
from datetime import date, datetime
from typing import Any, Callable, Mapping, Sequence

import requests

from barcache.errors import RateLimited, RemoteError, Unsupported
from barcache.granularity import Granularity, GranularityUnit, parse_granularity
from barcache.models.bar import Bar
from barcache.models.date_range import DateRange
from barcache.providers.base import BaseBarProvider

logger = logging.getLogger(__name__)

BASE_URL = "https://www.alphavantage.co/query"

_INTRADAY = {1: "1min", 5: "5min", 15: "15min", 30: "30min", 60: "60min"}

_CALENDAR_FUNCTIONS = {
    GranularityUnit.DAY: "TIME_SERIES_DAILY_ADJUSTED",
    GranularityUnit.WEEK: "TIME_SERIES_WEEKLY_ADJUSTED",
    GranularityUnit.MONTH: "TIME_SERIES_MONTHLY_ADJUSTED",
}

_SUPPORTED = tuple(
    parse_granularity(t) for t in ("1min", "5min", "15min", "30min", "60min", "1d", "1w", "1mo")
)


def _months(ranges: Sequence[DateRange]) -> list[str]:
    """Distinct ``YYYY-MM`` months touched by ``ranges``, ascending."""
    months: set[str] = set()
    for r in ranges:
        year, month = r.start.year, r.start.month
        while (year, month) <= (r.end.year, r.end.month):
            months.add(f"{year:04d}-{month:02d}")
            year, month = (year + 1, 1) if month == 12 else (year, month + 1)
    return sorted(months)


class AlphaVantageProvider(BaseBarProvider):
    """Fetch bars from the Alpha Vantage API."""

    name = "alphavantage"

    def __init__(
        self,
        api_key: str | None = None,
        session: requests.Session | None = None,
        min_call_interval: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.api_key = api_key or os.getenv("ALPHAVANTAGE_API_KEY")
        if not self.api_key:
            raise RemoteError(
                "Alpha Vantage API key required. Set ALPHAVANTAGE_API_KEY or pass api_key."
            )
        self.session = session or requests.Session()
        self.min_call_interval = min_call_interval
        self._sleep = sleep

    def supported_granularities(self) -> tuple[Granularity, ...]:
        return _SUPPORTED

    def estimate_calls(
        self,
        ranges_by_ticker: Mapping[str, Sequence[DateRange]],
        granularity: Granularity,
    ) -> int:
        if granularity.is_intraday:
            return sum(len(_months(ranges)) for ranges in ranges_by_ticker.values())
        # Daily and coarser: one full-history call per ticker
        return super().estimate_calls(ranges_by_ticker, granularity)

    def fetch(
        self,
        ticker: str,
        granularity: Granularity,
        ranges: Sequence[DateRange],
    ) -> list[Bar]:
        if not ranges:
            return []

        if granularity.is_intraday:
            if granularity.minutes not in _INTRADAY:
                raise Unsupported(granularity.label, self.name)
            payloads = []
            for i, month in enumerate(_months(ranges)):
                if i and self.min_call_interval:
                    self._sleep(self.min_call_interval)
                payloads.append(self._request({
                    "function": "TIME_SERIES_INTRADAY",
                    "symbol": ticker,
                    "interval": _INTRADAY[granularity.minutes],
                    "month": month,
                    "outputsize": "full",
                    "adjusted": "true",
                }, ticker))
        else:
            if granularity.count != 1 or granularity.unit not in _CALENDAR_FUNCTIONS:
                raise Unsupported(granularity.label, self.name)
            payloads = [self._request({
                "function": _CALENDAR_FUNCTIONS[granularity.unit],
                "symbol": ticker,
                "outputsize": "full",
            }, ticker)]

        bars: dict[datetime, Bar] = {}
        for payload in payloads:
            for bar in self._parse(payload, ticker, granularity.label):
                if any(bar.datetime.date() in r for r in ranges):
                    bars[bar.datetime] = bar
        logger.info("Fetched %d %s bar(s) for %s", len(bars), granularity.label, ticker)
        return [bars[k] for k in sorted(bars)]

    # ------------------------------------------------------------ internal

    def _request(self, params: dict[str, Any], ticker: str) -> dict[str, Any]:
        logger.info("Requesting %s for %s from Alpha Vantage", params["function"], ticker)
        try:
            resp = self.session.get(BASE_URL, params={**params, "apikey": self.api_key, "datatype": "json"})
        except requests.RequestException as exc:
            raise RemoteError(f"Alpha Vantage request failed for {ticker}: {exc}") from exc

        if resp.status_code == 429:
            raise RateLimited("Alpha Vantage rate limited")
        if resp.status_code >= 400:
            raise RemoteError(f"Alpha Vantage HTTP {resp.status_code} for {ticker}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise RemoteError(f"Alpha Vantage returned invalid JSON for {ticker}") from exc

        if "Error Message" in data:
            raise RemoteError(f"Alpha Vantage API Error for {ticker}: {data['Error Message']}")
        for key in ("Note", "Information"):
            if key in data and not self._series_key(data):
                message = str(data[key])
                if "rate limit" in message.lower() or "call frequency" in message.lower():
                    raise RateLimited(f"Alpha Vantage: {message}")
                raise RemoteError(f"Alpha Vantage: {message}")
        return data

    @staticmethod
    def _series_key(data: Mapping[str, Any]) -> str | None:
        return next((k for k in data if "Time Series" in k), None)

    def _parse(self, data: Mapping[str, Any], ticker: str, interval: str) -> list[Bar]:
        series_key = self._series_key(data)
        if series_key is None:
            logger.warning("No time series data in Alpha Vantage response for %s", ticker)
            return []

        bars: list[Bar] = []
        for stamp, entry in data[series_key].items():
            # Keys look like "1. open", "5. adjusted close"
            values = {k.split(". ", 1)[-1]: v for k, v in entry.items()}
            if " " in stamp:
                dt = datetime.fromisoformat(stamp)
            else:
                dt = datetime.combine(date.fromisoformat(stamp), datetime.min.time())
            bars.append(Bar(
                ticker=ticker,
                interval=interval,
                datetime=dt,
                open=float(values["open"]),
                high=float(values["high"]),
                low=float(values["low"]),
                close=float(values["close"]),
                volume=int(float(values["volume"])),
                adj_close=self._opt(values.get("adjusted close")),
                split_coefficient=self._opt(values.get("split coefficient")),
                dividend_amount=self._opt(values.get("dividend amount")),
            ))
        return bars

    @staticmethod
    def _opt(value: str | None) -> float | None:
        return float(value) if value not in (None, "") else None
