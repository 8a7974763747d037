"""Shared fixtures for barcache tests."""

from __future__ import annotations

import sys
from datetime import date, datetime, timedelta
from pathlib import Path

import pytest

# Ensure src/ is on the path for editable-style imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from barcache.config import BarCacheConfig, ProviderType
from barcache.engine import BarEngine
from barcache.models.bar import Bar
from barcache.providers.mock import MockProvider
from barcache.store import MemoryStore


def make_bar(
    ts: datetime,
    ticker: str = "AAPL",
    interval: str = "1d",
    close: float = 150.0,
    **kwargs,
) -> Bar:
    defaults = dict(
        ticker=ticker, interval=interval, datetime=ts,
        open=150.0, high=151.0, low=149.0, close=close, volume=10000,
        adj_close=close, split_coefficient=1.0, dividend_amount=0.0,
    )
    defaults.update(kwargs)
    return Bar(**defaults)


@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider()


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def engine(mock_provider, memory_store) -> BarEngine:
    config = BarCacheConfig(provider=ProviderType.MOCK, cache_backend="memory", rate_limit_per_minute=0)
    return BarEngine(config, provider=mock_provider, store=memory_store)


@pytest.fixture
def daily_bars() -> list[Bar]:
    """5 consecutive daily AAPL bars, 2024-01-01..2024-01-05."""
    return [
        make_bar(datetime.combine(date(2024, 1, 1) + timedelta(days=i), datetime.min.time()),
                 close=100.0 + i, high=110.0, low=90.0, open=100.0)
        for i in range(5)
    ]


@pytest.fixture
def minute_bars() -> list[Bar]:
    """10 contiguous 1-min bars starting 09:30."""
    base = datetime(2024, 1, 16, 9, 30)
    bars = []
    for i in range(10):
        bars.append(make_bar(
            base + timedelta(minutes=i),
            interval="1min",
            open=150.0 + i * 0.1,
            high=150.5 + i * 0.1,
            low=149.5 + i * 0.1,
            close=150.2 + i * 0.1,
            volume=1000 + i * 10,
        ))
    return bars
