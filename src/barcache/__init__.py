"""barcache: historical price bars with a local reconciling cache.

Fetches bars from a rate-limited provider, stores them locally, and only
asks the provider for what the cache is missing on later requests.

Quick start::

    from barcache import build_request, create_engine_from_env
    engine = create_engine_from_env()
    request = build_request(["AAPL"], "2024-01-01:2024-01-05", "1d")
    records = engine.run(request)
"""

from __future__ import annotations

import os

from barcache.config import BarCacheConfig, ProviderType
from barcache.coverage import CoverageAnalyzer, find_missing_ranges
from barcache.engine import BarEngine, FetchPlan
from barcache.errors import (
    BarCacheError,
    BarCacheErrorCode,
    CoverageComputationError,
    ProviderError,
    RateLimited,
    RemoteError,
    ResamplingError,
    StoreError,
    Unsupported,
    ValidationError,
)
from barcache.granularity import Granularity, GranularityUnit, interval_label, parse_granularity
from barcache.models import Bar, BarRequest, CacheCoverage, CachePolicy, DateRange, Field
from barcache.reconcile import Reconciler, reconcile
from barcache.request import build_request
from barcache.resample import resample
from barcache.transforms import apply_transforms

__version__ = "0.1.0"

__all__ = [
    # Engine
    "BarEngine",
    "FetchPlan",
    "create_engine_from_env",
    "build_request",
    # Core
    "CoverageAnalyzer",
    "find_missing_ranges",
    "Reconciler",
    "reconcile",
    "resample",
    "apply_transforms",
    # Config
    "BarCacheConfig",
    "ProviderType",
    # Errors
    "BarCacheError",
    "BarCacheErrorCode",
    "ValidationError",
    "CoverageComputationError",
    "ResamplingError",
    "StoreError",
    "ProviderError",
    "RateLimited",
    "Unsupported",
    "RemoteError",
    # Models
    "Bar",
    "BarRequest",
    "CacheCoverage",
    "CachePolicy",
    "DateRange",
    "Field",
    "Granularity",
    "GranularityUnit",
    "interval_label",
    "parse_granularity",
]


def config_from_env() -> BarCacheConfig:
    """Build a :class:`BarCacheConfig` from environment variables.

    Environment variables:
        BARCACHE_PROVIDER: Provider name (default: "alphavantage").
        BARCACHE_CACHE: Store backend: "sqlite", "parquet", "memory", "none"
            (default: "sqlite").
        BARCACHE_CACHE_PATH: SQLite file or Parquet directory.
        BARCACHE_RATE_LIMIT: Provider calls per minute (default: 5).
        BARCACHE_TRADING_DAYS_ONLY: "1"/"true" to skip weekends and holidays
            in coverage analysis.
        ALPHAVANTAGE_API_KEY: Alpha Vantage API key.
    """
    try:
        provider = ProviderType(os.getenv("BARCACHE_PROVIDER", "alphavantage").strip().lower())
    except ValueError as exc:
        raise ValidationError(f"Unsupported data provider: {exc}") from None

    try:
        rate_limit = float(os.getenv("BARCACHE_RATE_LIMIT", "5"))
    except ValueError:
        raise ValidationError("BARCACHE_RATE_LIMIT must be a number") from None

    return BarCacheConfig(
        provider=provider,
        cache_backend=os.getenv("BARCACHE_CACHE", "sqlite"),
        cache_path=os.getenv("BARCACHE_CACHE_PATH") or None,
        rate_limit_per_minute=rate_limit,
        trading_days_only=os.getenv("BARCACHE_TRADING_DAYS_ONLY", "").lower() in ("1", "true", "yes"),
        alphavantage_api_key=os.getenv("ALPHAVANTAGE_API_KEY"),
    )


def create_engine_from_env() -> BarEngine:
    """Zero-config factory: reads provider, cache and API key from env vars."""
    return BarEngine(config_from_env())
