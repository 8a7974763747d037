"""Tests for the NYSE trading calendar."""

from datetime import date

from barcache.calendar import is_trading_day, nyse_holidays, trading_days


class TestHolidays:
    def test_2024(self):
        holidays = nyse_holidays(2024)
        for d in (
            date(2024, 1, 1),    # New Year's Day
            date(2024, 1, 15),   # MLK, 3rd Monday of Jan
            date(2024, 2, 19),   # Presidents' Day
            date(2024, 3, 29),   # Good Friday
            date(2024, 5, 27),   # Memorial Day
            date(2024, 6, 19),   # Juneteenth
            date(2024, 7, 4),
            date(2024, 9, 2),    # Labor Day
            date(2024, 11, 28),  # Thanksgiving
            date(2024, 12, 25),
        ):
            assert d in holidays, d
        assert len(holidays) == 10

    def test_observed_shift(self):
        # July 4th 2026 is a Saturday, observed Friday July 3rd
        assert date(2026, 7, 3) in nyse_holidays(2026)
        # Christmas 2022 is a Sunday, observed Monday the 26th
        assert date(2022, 12, 26) in nyse_holidays(2022)

    def test_new_year_on_saturday_not_observed(self):
        # Jan 1 2022 was a Saturday; Dec 31 2021 was a trading day
        assert date(2021, 12, 31) not in nyse_holidays(2021)
        assert is_trading_day(date(2021, 12, 31))

    def test_juneteenth_before_2022(self):
        assert date(2021, 6, 18) not in nyse_holidays(2021)


class TestTradingDays:
    def test_weekend(self):
        assert not is_trading_day(date(2024, 1, 6))
        assert not is_trading_day(date(2024, 1, 7))

    def test_regular_day(self):
        assert is_trading_day(date(2024, 1, 16))

    def test_range(self):
        days = trading_days(date(2024, 1, 1), date(2024, 1, 7))
        assert days == [date(2024, 1, d) for d in (2, 3, 4, 5)]
