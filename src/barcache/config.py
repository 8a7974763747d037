"""Bar cache configuration."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ProviderType(Enum):
    """Supported data provider backends."""

    ALPHAVANTAGE = "alphavantage"
    MOCK = "mock"


@dataclass(frozen=True)
class BarCacheConfig:
    """Configuration for :class:`~barcache.engine.BarEngine`.

    Attributes:
        provider: Data provider backend.
        cache_backend: Store type: "sqlite", "parquet", "memory", or "none".
        cache_path: SQLite file or Parquet directory. None uses the
            backend's default under ``~/.barcache``.
        rate_limit_per_minute: Provider calls allowed per minute; 0 disables
            the delay between calls.
        validate: Whether to run quality checks on fetched bars.
        trading_days_only: Ignore weekends and NYSE holidays when looking
            for coverage gaps.
        alphavantage_api_key: Alpha Vantage API key.
    """

    provider: ProviderType = ProviderType.ALPHAVANTAGE
    cache_backend: str = "sqlite"
    cache_path: str | None = None
    rate_limit_per_minute: float = 5
    validate: bool = True
    trading_days_only: bool = False

    alphavantage_api_key: str | None = None

    @property
    def min_call_interval(self) -> float:
        """Seconds to wait between provider calls, with a 10% margin."""
        if self.rate_limit_per_minute <= 0:
            return 0.0
        return 60.0 / self.rate_limit_per_minute * 1.1
