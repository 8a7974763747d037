"""Tests for interval resampling."""

from datetime import date, datetime, timedelta

import pytest

from barcache.errors import ResamplingError
from barcache.granularity import parse_granularity
from barcache.resample import align_splits, resample

from conftest import make_bar

ONE_MIN = parse_granularity("1min")


class TestIntraday:
    def test_five_minute_groups(self, minute_bars):
        out = resample(minute_bars, parse_granularity("5min"), ONE_MIN)
        assert len(out) == 2
        first = out[0]
        assert first.interval == "5min"
        assert first.datetime == datetime(2024, 1, 16, 9, 30)
        assert first.open == minute_bars[0].open
        assert first.close == minute_bars[4].close
        assert first.high == max(b.high for b in minute_bars[:5])
        assert first.low == min(b.low for b in minute_bars[:5])
        assert out[1].datetime == datetime(2024, 1, 16, 9, 35)

    def test_volume_conserved(self, minute_bars):
        out = resample(minute_bars, parse_granularity("5min"), ONE_MIN)
        assert sum(b.volume for b in out) == sum(b.volume for b in minute_bars)

    def test_trailing_partial_group_kept(self, minute_bars):
        out = resample(minute_bars, parse_granularity("15min"), ONE_MIN)
        assert len(out) == 1
        assert out[0].close == minute_bars[-1].close
        assert out[0].volume == sum(b.volume for b in minute_bars)

    def test_groups_do_not_span_days(self):
        bars = [
            make_bar(datetime(2024, 1, 16, 15, 30), interval="1min"),
            make_bar(datetime(2024, 1, 16, 15, 31), interval="1min"),
            make_bar(datetime(2024, 1, 17, 9, 30), interval="1min"),
        ]
        out = resample(bars, parse_granularity("1h"), ONE_MIN)
        assert [b.datetime.date() for b in out] == [date(2024, 1, 16), date(2024, 1, 17)]
        assert out[0].interval == "1hr"

    def test_native_from_interval_label(self, minute_bars):
        out = resample(minute_bars, 5)
        assert len(out) == 2

    def test_single_bar(self):
        bar = make_bar(datetime(2024, 1, 16, 9, 30), interval="1min", volume=700)
        (out,) = resample([bar], 5)
        assert out.interval == "5min"
        assert out.datetime == bar.datetime
        assert out.volume == 700

    def test_unaligned_session_start(self):
        hour = parse_granularity("1h")
        base = datetime(2024, 1, 16, 9, 30)
        bars = [make_bar(base + timedelta(hours=i), interval="1hr", volume=100) for i in range(7)]
        out = resample(bars, parse_granularity("2h"), hour)

        assert [b.datetime.strftime("%H:%M") for b in out] == ["09:30", "10:30", "12:30", "14:30"]
        assert [b.volume for b in out] == [100, 200, 200, 200]
        # Every output bar stays inside one 120-minute window
        groups = [bars[:1], bars[1:3], bars[3:5], bars[5:7]]
        for group in groups:
            span = group[-1].datetime + timedelta(minutes=60) - group[0].datetime
            assert span <= timedelta(minutes=120)

    def test_intraday_to_daily(self, minute_bars):
        out = resample(minute_bars, parse_granularity("1d"), ONE_MIN)
        assert len(out) == 1
        assert out[0].interval == "1d"


class TestCalendar:
    def test_daily_to_weekly(self, daily_bars):
        (week,) = resample(daily_bars, parse_granularity("1w"), parse_granularity("1d"))
        assert week.datetime == datetime(2024, 1, 1)
        assert week.open == 100.0
        assert week.close == 104.0
        assert week.high == 110.0
        assert week.low == 90.0
        assert week.volume == 50000

    def test_daily_to_monthly(self):
        start = datetime(2024, 1, 30)
        bars = [make_bar(start + timedelta(days=i)) for i in range(4)]
        out = resample(bars, parse_granularity("1mo"), parse_granularity("1d"))
        assert [b.datetime for b in out] == [datetime(2024, 1, 30), datetime(2024, 2, 1)]
        assert [b.interval for b in out] == ["1mo", "1mo"]

    def test_dividends_summed(self, daily_bars):
        bars = [make_bar(b.datetime, dividend_amount=0.25 if i in (1, 3) else 0.0)
                for i, b in enumerate(daily_bars)]
        (week,) = resample(bars, parse_granularity("1w"), parse_granularity("1d"))
        assert week.dividend_amount == pytest.approx(0.5)


class TestSplits:
    def test_align_to_last_bar(self):
        before = make_bar(datetime(2024, 1, 2), open=200.0, high=210.0, low=190.0,
                          close=200.0, volume=100, split_coefficient=1.0)
        after = make_bar(datetime(2024, 1, 3), open=100.0, high=105.0, low=95.0,
                         close=100.0, volume=200, split_coefficient=0.5)
        aligned = align_splits([before, after])
        assert aligned[0].high == 105.0
        assert aligned[0].volume == 200
        assert aligned[1] is after

    def test_split_inside_group(self):
        before = make_bar(datetime(2024, 1, 2), open=200.0, high=210.0, low=190.0,
                          close=200.0, volume=100, split_coefficient=1.0)
        after = make_bar(datetime(2024, 1, 3), open=100.0, high=102.0, low=98.0,
                         close=101.0, volume=200, split_coefficient=0.5)
        (week,) = resample([before, after], parse_granularity("1w"), parse_granularity("1d"))
        assert week.open == 100.0
        assert week.high == 105.0
        assert week.low == 95.0
        assert week.close == 101.0
        assert week.volume == 400


class TestErrors:
    def test_finer_target_rejected(self, daily_bars):
        with pytest.raises(ResamplingError):
            resample(daily_bars, parse_granularity("5min"), parse_granularity("1d"))

    def test_same_interval_passthrough(self, daily_bars):
        assert resample(daily_bars, parse_granularity("1d"), parse_granularity("1d")) == daily_bars

    def test_empty(self):
        assert resample([], parse_granularity("1d")) == []
