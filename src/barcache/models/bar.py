"""Bar (OHLCV) data model."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

BarKey = tuple[str, str, datetime]


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with .5 always rounding up."""
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class Bar:
    """Single price bar (OHLCV + optional adjustment data).

    Identity is the composite ``(ticker, interval, datetime)``; two bars with
    the same key describe the same observation.

    Attributes:
        ticker: Instrument symbol (upper case).
        interval: Canonical interval label, e.g. ``"1d"`` or ``"5min"``.
        datetime: Bar timestamp (start of period).
        open: Opening price.
        high: High price.
        low: Low price.
        close: Closing price.
        volume: Traded volume.
        adj_close: Provider-supplied adjusted close.
        split_coefficient: Split factor relating this bar to current shares.
        dividend_amount: Cash dividend paid on this bar.
    """

    ticker: str
    interval: str
    datetime: datetime
    open: float
    high: float
    low: float
    close: float
    volume: int
    adj_close: float | None = None
    split_coefficient: float | None = None
    dividend_amount: float | None = None

    @property
    def key(self) -> BarKey:
        return (self.ticker, self.interval, self.datetime)

    def rescaled(self, ratio: float) -> Bar:
        """Return a copy with prices multiplied and volume divided by ``ratio``."""
        if ratio == 1:
            return self
        return replace(
            self,
            open=self.open * ratio,
            high=self.high * ratio,
            low=self.low * ratio,
            close=self.close * ratio,
            volume=round_half_up(self.volume / ratio),
        )

    def to_record(self) -> dict[str, Any]:
        """Flat dict view consumed by transforms and output writers."""
        return {
            "ticker": self.ticker,
            "datetime": self.datetime,
            "interval": self.interval,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
            "adj_close": self.adj_close,
            "split_coefficient": self.split_coefficient,
            "dividend_amount": self.dividend_amount,
        }
