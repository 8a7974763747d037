"""Cache coverage result."""

from __future__ import annotations

from dataclasses import dataclass, field

from barcache.models.date_range import DateRange


@dataclass(frozen=True)
class CacheCoverage:
    """Missing date ranges per ticker.

    A ticker absent from ``missing`` is fully covered by the cache. Ranges
    for one ticker are sorted, non-overlapping and non-adjacent.
    """

    missing: dict[str, tuple[DateRange, ...]] = field(default_factory=dict)

    @property
    def missing_tickers(self) -> list[str]:
        return [t for t, ranges in self.missing.items() if ranges]

    @property
    def is_complete(self) -> bool:
        return not self.missing_tickers

    @property
    def range_count(self) -> int:
        return sum(len(ranges) for ranges in self.missing.values())

    def ranges_for(self, ticker: str) -> tuple[DateRange, ...]:
        return self.missing.get(ticker, ())
