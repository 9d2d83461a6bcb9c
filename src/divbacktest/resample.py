"""Resample daily candles into calendar-aligned coarser periods.

Buckets follow pandas calendar rules: ISO weeks ending Sunday, calendar
months, quarters, Jan 1 / Jul 1 half-years and calendar years. A bucket
becomes one candle: first open, last close, max high, min low, summed
volume, dated on its latest member. Empty buckets are never emitted.
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import Iterable

import pandas as pd

from divbacktest.models.candle import Candle
from divbacktest.models.timeframe import TIMEFRAME_FOR_PERIOD, ResamplePeriod

# First month of each bucket, indexed by ``month - 1``.
_QUARTER_START = [1, 1, 1, 4, 4, 4, 7, 7, 7, 10, 10, 10]
_HALF_START = [1] * 6 + [7] * 6
_SPAN_MONTHS = {
    ResamplePeriod.MONTH: 1,
    ResamplePeriod.QUARTER: 3,
    ResamplePeriod.HALF_YEAR: 6,
    ResamplePeriod.YEAR: 12,
}

# Half-years are built from quarters: an anchored "2QS" rule starts its
# first bin on whichever quarter the data starts in.
_RULES = {
    ResamplePeriod.WEEK: "W-SUN",
    ResamplePeriod.MONTH: "MS",
    ResamplePeriod.QUARTER: "QS",
    ResamplePeriod.HALF_YEAR: "QS",
    ResamplePeriod.YEAR: "YS",
}

_AGG = {
    "ticker": "last",
    "date": "last",
    "open": "first",
    "high": "max",
    "low": "min",
    "close": "last",
    "volume": "sum",
}


def period_start(day: date, period: ResamplePeriod) -> date:
    """Return the first calendar day of the period containing ``day``."""
    if period is ResamplePeriod.WEEK:
        return day - timedelta(days=day.weekday())
    if period is ResamplePeriod.MONTH:
        return day.replace(day=1)
    if period is ResamplePeriod.QUARTER:
        return date(day.year, _QUARTER_START[day.month - 1], 1)
    if period is ResamplePeriod.HALF_YEAR:
        return date(day.year, _HALF_START[day.month - 1], 1)
    return date(day.year, 1, 1)


def period_end(day: date, period: ResamplePeriod) -> date:
    """Return the last calendar day of the period containing ``day``."""
    start = period_start(day, period)
    if period is ResamplePeriod.WEEK:
        return start + timedelta(days=6)
    last_month = start.month + _SPAN_MONTHS[period] - 1
    return date(start.year, last_month, calendar.monthrange(start.year, last_month)[1])


def resample(candles: Iterable[Candle], period: ResamplePeriod) -> list[Candle]:
    """Aggregate daily candles into one candle per non-empty period.

    Args:
        candles: Daily candles of one ticker, in any order.
        period: Calendar bucket rule.

    Returns:
        Resampled candles in ascending period order.
    """
    frame = _candles_to_frame(list(candles))
    if frame.empty:
        return []

    bars = frame.resample(_RULES[period]).agg(_AGG).dropna(subset=["open"])
    if period is ResamplePeriod.HALF_YEAR:
        half = bars.index.year * 2 + (bars.index.month > 6)
        bars = bars.groupby(half).agg(_AGG)

    timeframe = TIMEFRAME_FOR_PERIOD[period]
    return [
        Candle(
            ticker=row.ticker,
            date=row.date.date(),
            open=float(row.open),
            high=float(row.high),
            low=float(row.low),
            close=float(row.close),
            volume=int(row.volume),
            timeframe=timeframe,
        )
        for row in bars.itertuples(index=False)
    ]


def _candles_to_frame(candles: list[Candle]) -> pd.DataFrame:
    records = [
        {
            "ticker": c.ticker,
            "open": c.open,
            "high": c.high,
            "low": c.low,
            "close": c.close,
            "volume": c.volume,
        }
        for c in candles
    ]
    index = pd.DatetimeIndex(pd.to_datetime([c.date for c in candles]))
    frame = pd.DataFrame(records, index=index).sort_index(kind="stable")
    frame["date"] = frame.index
    return frame
