"""Tests for the output transform pipeline."""

from datetime import datetime, timedelta

import pytest

from barcache.request import build_request
from barcache.transforms import adjust_prices, apply_transforms, calculate_returns, project_columns

from conftest import make_bar


def _request(fields: str, unadjusted: bool = False):
    return build_request(["AAPL"], "2024-01-01:2024-01-05", "1d", fields, unadjusted=unadjusted)


def _bars(closes, **kwargs):
    base = datetime(2024, 1, 1)
    return [
        make_bar(base + timedelta(days=i), close=c, open=c, high=c, low=c, **kwargs)
        for i, c in enumerate(closes)
    ]


class TestAdjustPrices:
    def test_split_ratio_applied(self):
        bar = make_bar(datetime(2024, 1, 2), close=100.0, adj_close=50.0, split_coefficient=0.5,
                       open=100.0, high=100.0, low=100.0, volume=1000)
        (rec,) = apply_transforms([bar], _request("ca"))
        assert rec["close"] == 50.0
        assert rec["adj_close"] == 50.0

    def test_volume_scaled(self):
        bar = make_bar(datetime(2024, 1, 2), close=100.0, adj_close=50.0, split_coefficient=0.5, volume=1000)
        (rec,) = adjust_prices([bar.to_record()], _request("cva"))
        assert rec["volume"] == 2000

    def test_volume_rounds_half_up(self):
        bar = make_bar(datetime(2024, 1, 2), close=100.0, adj_close=200.0, split_coefficient=2.0, volume=5)
        (rec,) = adjust_prices([bar.to_record()], _request("cva"))
        assert rec["volume"] == 3

    def test_unadjusted_flag(self):
        bar = make_bar(datetime(2024, 1, 2), close=100.0, adj_close=50.0, split_coefficient=0.5)
        (rec,) = apply_transforms([bar], _request("ca", unadjusted=True))
        assert rec["close"] == 100.0

    def test_skipped_without_adjustment_fields(self):
        bar = make_bar(datetime(2024, 1, 2), close=100.0, adj_close=50.0, split_coefficient=0.5)
        (rec,) = apply_transforms([bar], _request("ohlc"))
        assert rec["close"] == 100.0

    def test_missing_adjustment_data_passes_through(self):
        bar = make_bar(datetime(2024, 1, 2), close=100.0, adj_close=None, split_coefficient=None)
        (rec,) = adjust_prices([bar.to_record()], _request("ca"))
        assert rec["close"] == 100.0


class TestReturns:
    def test_close_returns(self):
        records = calculate_returns([b.to_record() for b in _bars([10.0, 11.0, 9.0])], _request("cr"))
        assert "close_return" not in records[0]
        assert records[1]["close_return"] == pytest.approx(0.1)
        assert records[2]["close_return"] == pytest.approx(9.0 / 11.0 - 1)

    def test_open_return_uses_previous_close(self):
        bars = _bars([10.0, 12.0])
        bars[1] = make_bar(bars[1].datetime, open=11.0, close=12.0)
        records = calculate_returns([b.to_record() for b in bars], _request("or"))
        assert records[1]["open_return"] == pytest.approx(0.1)
        assert "close_return" not in records[1]

    def test_previous_close_per_ticker(self):
        aapl = _bars([10.0, 11.0])
        msft = [make_bar(b.datetime, ticker="MSFT", close=100.0) for b in aapl]
        records = [b.to_record() for b in sorted(aapl + msft, key=lambda b: b.datetime)]
        out = calculate_returns(records, _request("cr"))
        by_ticker = {}
        for rec in out:
            by_ticker.setdefault(rec["ticker"], []).append(rec)
        assert by_ticker["AAPL"][1]["close_return"] == pytest.approx(0.1)
        assert by_ticker["MSFT"][1]["close_return"] == pytest.approx(0.0)

    def test_no_returns_requested(self):
        records = [b.to_record() for b in _bars([10.0, 11.0])]
        assert calculate_returns(records, _request("c")) == records


class TestProjection:
    def test_returns_only(self):
        out = apply_transforms(_bars([10.0, 11.0, 9.0]), _request("r"))
        assert out[1]["close_return"] == pytest.approx(0.1)
        assert out[2]["close_return"] == pytest.approx(-0.181818, rel=1e-4)
        for rec in out:
            for col in ("open", "high", "low", "close", "volume"):
                assert col not in rec
        assert set(out[1]) == {
            "ticker", "datetime", "interval",
            "open_return", "high_return", "low_return", "close_return",
        }

    def test_selected_columns(self):
        out = project_columns([b.to_record() for b in _bars([10.0])], _request("cv"))
        assert set(out[0]) == {"ticker", "datetime", "interval", "close", "volume"}

    def test_default_fields(self):
        (rec,) = apply_transforms(_bars([10.0]), _request("ohlcvad"))
        assert set(rec) == {
            "ticker", "datetime", "interval", "open", "high", "low", "close",
            "volume", "adj_close", "dividend_amount",
        }


class TestPipelineOrder:
    def test_returns_see_adjusted_prices(self):
        bars = [
            make_bar(datetime(2024, 1, 2), close=100.0, adj_close=50.0, split_coefficient=0.5),
            make_bar(datetime(2024, 1, 3), close=60.0, adj_close=60.0, split_coefficient=1.0),
        ]
        request = _request("cr")
        out = apply_transforms(bars, request)
        assert out[1]["close_return"] == pytest.approx(0.2)

        # Reversing the first two steps gives a different answer
        records = [b.to_record() for b in bars]
        reversed_order = adjust_prices(calculate_returns(records, request), request)
        assert reversed_order[1]["close_return"] == pytest.approx(-0.4)
