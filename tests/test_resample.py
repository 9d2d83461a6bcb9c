"""Tests for calendar-aligned candle resampling."""

from datetime import date

import pytest

from divbacktest.calendar import get_trading_dates
from divbacktest.models.timeframe import ResamplePeriod, Timeframe
from divbacktest.resample import period_end, period_start, resample

from conftest import make_candle


def _daily(start: date, end: date) -> list:
    """Deterministic daily series on trading days, alternating direction."""
    candles = []
    for i, day in enumerate(get_trading_dates(start, end)):
        o = 50.0 + (i % 7)
        c = o - 1.0 if i % 2 else o + 0.75
        candles.append(make_candle(day, o, c, volume=1000 + i))
    return candles


class TestPeriodBounds:
    @pytest.mark.parametrize("period, day, start, end", [
        (ResamplePeriod.WEEK, date(2024, 1, 4), date(2024, 1, 1), date(2024, 1, 7)),
        (ResamplePeriod.WEEK, date(2024, 12, 31), date(2024, 12, 30), date(2025, 1, 5)),
        (ResamplePeriod.MONTH, date(2024, 2, 10), date(2024, 2, 1), date(2024, 2, 29)),
        (ResamplePeriod.QUARTER, date(2024, 5, 17), date(2024, 4, 1), date(2024, 6, 30)),
        (ResamplePeriod.QUARTER, date(2024, 12, 2), date(2024, 10, 1), date(2024, 12, 31)),
        (ResamplePeriod.HALF_YEAR, date(2024, 6, 30), date(2024, 1, 1), date(2024, 6, 30)),
        (ResamplePeriod.HALF_YEAR, date(2024, 7, 1), date(2024, 7, 1), date(2024, 12, 31)),
        (ResamplePeriod.YEAR, date(2024, 8, 8), date(2024, 1, 1), date(2024, 12, 31)),
    ])
    def test_bounds(self, period, day, start, end):
        assert period_start(day, period) == start
        assert period_end(day, period) == end


class TestResample:
    def test_empty(self):
        assert resample([], ResamplePeriod.MONTH) == []

    def test_weekly_aggregation(self, sample_candles):
        # 2024-01-02..05 fall in one ISO week
        [week] = resample(sample_candles, ResamplePeriod.WEEK)
        assert week.open == 10.0
        assert week.close == 11.5
        assert week.high == max(c.high for c in sample_candles)
        assert week.low == min(c.low for c in sample_candles)
        assert week.volume == 4000
        assert week.date == date(2024, 1, 5)
        assert week.timeframe is Timeframe.WEEKLY

    def test_unsorted_input_is_sorted(self, sample_candles):
        shuffled = [sample_candles[2], sample_candles[0], sample_candles[3], sample_candles[1]]
        assert resample(shuffled, ResamplePeriod.WEEK) == resample(sample_candles, ResamplePeriod.WEEK)

    def test_no_empty_buckets(self):
        candles = [
            make_candle(date(2024, 1, 10), 10.0, 11.0),
            make_candle(date(2024, 4, 10), 11.0, 10.0),
        ]
        out = resample(candles, ResamplePeriod.MONTH)
        assert [c.date for c in out] == [date(2024, 1, 10), date(2024, 4, 10)]

    @pytest.mark.parametrize("period", list(ResamplePeriod))
    def test_volume_conserved(self, period):
        daily = _daily(date(2023, 1, 1), date(2024, 12, 31))
        out = resample(daily, period)
        assert sum(c.volume for c in out) == sum(c.volume for c in daily)

    @pytest.mark.parametrize("period", list(ResamplePeriod))
    def test_high_low_envelope(self, period):
        for c in resample(_daily(date(2024, 1, 1), date(2024, 12, 31)), period):
            assert c.high >= max(c.open, c.close)
            assert c.low <= min(c.open, c.close)

    def test_month_matches_resampling_that_month_alone(self):
        daily = _daily(date(2024, 1, 1), date(2024, 6, 30))
        by_month = resample(daily, ResamplePeriod.MONTH)
        march_only = [c for c in daily if c.date.month == 3]
        [march] = resample(march_only, ResamplePeriod.MONTH)
        assert march in by_month

    def test_ascending_output(self):
        out = resample(_daily(date(2022, 1, 1), date(2024, 12, 31)), ResamplePeriod.QUARTER)
        assert len(out) == 12
        assert all(a.date < b.date for a, b in zip(out, out[1:]))

    @pytest.mark.parametrize("first_day, count", [(date(2023, 4, 3), 4), (date(2023, 11, 1), 3)])
    def test_half_years_follow_calendar(self, first_day, count):
        daily = _daily(first_day, date(2024, 12, 31))
        out = resample(daily, ResamplePeriod.HALF_YEAR)
        assert len(out) == count
        for bar in out:
            start = period_start(bar.date, ResamplePeriod.HALF_YEAR)
            members = [c for c in daily if period_start(c.date, ResamplePeriod.HALF_YEAR) == start]
            assert bar.open == members[0].open
            assert bar.close == members[-1].close
            assert bar.date == members[-1].date
            assert bar.volume == sum(c.volume for c in members)
            assert bar.timeframe is Timeframe.SEMI_ANNUAL

    def test_week_spanning_year_end(self):
        candles = [
            make_candle(date(2024, 12, 30), 10.0, 9.0),
            make_candle(date(2025, 1, 2), 9.0, 8.0),
        ]
        [week] = resample(candles, ResamplePeriod.WEEK)
        assert week.open == 10.0
        assert week.close == 8.0
        assert week.date == date(2025, 1, 2)

    def test_does_not_mutate_input(self, sample_candles):
        before = list(sample_candles)
        resample(sample_candles, ResamplePeriod.MONTH)
        assert sample_candles == before

