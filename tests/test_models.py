"""Tests for data models."""

from datetime import date, datetime

import pytest

from barcache.errors import ValidationError
from barcache.models import Bar, BarRequest, CacheCoverage, CachePolicy, DateRange, Field, parse_fields
from barcache.granularity import parse_granularity


class TestBar:
    def test_creation_and_key(self):
        bar = Bar(
            ticker="AAPL", interval="1d", datetime=datetime(2024, 1, 2),
            open=150.0, high=152.0, low=149.0, close=151.0, volume=1_000_000,
        )
        assert bar.key == ("AAPL", "1d", datetime(2024, 1, 2))
        assert bar.adj_close is None

    def test_frozen(self):
        bar = Bar("AAPL", "1d", datetime(2024, 1, 2), 1.0, 1.0, 1.0, 1.0, 1)
        with pytest.raises(AttributeError):
            bar.close = 2.0  # type: ignore[misc]

    def test_rescaled(self):
        bar = Bar("AAPL", "1d", datetime(2024, 1, 2), 100.0, 110.0, 90.0, 105.0, 1000)
        half = bar.rescaled(0.5)
        assert (half.open, half.high, half.low, half.close) == (50.0, 55.0, 45.0, 52.5)
        assert half.volume == 2000
        assert bar.rescaled(1) is bar

    def test_rescaled_volume_rounds_half_up(self):
        bar = Bar("AAPL", "1d", datetime(2024, 1, 2), 100.0, 110.0, 90.0, 105.0, 5)
        assert bar.rescaled(2.0).volume == 3
        assert bar.rescaled(10.0).volume == 1

    def test_to_record(self):
        bar = Bar("AAPL", "1d", datetime(2024, 1, 2), 1.0, 2.0, 0.5, 1.5, 10, dividend_amount=0.2)
        rec = bar.to_record()
        assert rec["ticker"] == "AAPL"
        assert rec["dividend_amount"] == 0.2
        assert rec["split_coefficient"] is None


class TestDateRange:
    def test_inclusive(self):
        r = DateRange(date(2024, 1, 1), date(2024, 1, 5))
        assert len(r) == 5
        assert date(2024, 1, 5) in r
        assert date(2024, 1, 6) not in r
        assert list(r.days())[0] == date(2024, 1, 1)

    def test_single_day(self):
        r = DateRange(date(2024, 1, 1), date(2024, 1, 1))
        assert len(r) == 1

    def test_inverted_rejected(self):
        with pytest.raises(ValidationError):
            DateRange(date(2024, 1, 5), date(2024, 1, 1))

    def test_str(self):
        assert str(DateRange(date(2024, 1, 1), date(2024, 1, 2))) == "2024-01-01..2024-01-02"


class TestCacheCoverage:
    def test_complete(self):
        assert CacheCoverage().is_complete
        assert CacheCoverage({"AAPL": ()}).is_complete

    def test_missing(self):
        r = DateRange(date(2024, 1, 1), date(2024, 1, 2))
        cov = CacheCoverage({"AAPL": (r,), "MSFT": ()})
        assert not cov.is_complete
        assert cov.missing_tickers == ["AAPL"]
        assert cov.range_count == 1
        assert cov.ranges_for("MSFT") == ()


class TestFields:
    def test_default_selector(self):
        tags = parse_fields("ohlcvad")
        assert Field.OPEN in tags and Field.DIVIDEND in tags
        assert Field.RETURNS not in tags

    def test_unknown_letter(self):
        with pytest.raises(ValidationError):
            parse_fields("ohlcx")

    def test_empty(self):
        with pytest.raises(ValidationError):
            parse_fields("")


class TestBarRequest:
    def _request(self, fields="ohlcvad", **kwargs) -> BarRequest:
        defaults = dict(
            tickers=("AAPL",),
            start=date(2024, 1, 1),
            end=date(2024, 1, 5),
            granularity=parse_granularity("1d"),
            fields=parse_fields(fields),
        )
        defaults.update(kwargs)
        return BarRequest(**defaults)

    def test_defaults(self):
        req = self._request()
        assert req.cache_policy is CachePolicy.USE
        assert not req.unadjusted
        assert req.interval == "1d"
        assert req.date_range == DateRange(date(2024, 1, 1), date(2024, 1, 5))

    def test_no_tickers(self):
        with pytest.raises(ValidationError):
            self._request(tickers=())

    def test_inverted_dates(self):
        with pytest.raises(ValidationError):
            self._request(start=date(2024, 2, 1))

    def test_return_fields(self):
        assert self._request("ohlcvad").return_fields == ()
        assert self._request("cr").return_fields == (Field.CLOSE,)
        assert len(self._request("r").return_fields) == 4

    def test_with_tickers_is_a_copy(self):
        req = self._request()
        narrowed = req.with_tickers(["MSFT"])
        assert narrowed.tickers == ("MSFT",)
        assert req.tickers == ("AAPL",)
