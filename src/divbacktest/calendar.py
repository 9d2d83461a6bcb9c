"""NYSE trading-day calendar.

Used to estimate how many daily candles a window should hold and to lay out
synthetic candles. No external dependencies; holiday rules are hardcoded.
"""

from __future__ import annotations

from datetime import date, timedelta
from functools import lru_cache


def _observed(d: date) -> date:
    """Saturday holidays are observed Friday, Sunday holidays Monday."""
    if d.weekday() == 5:
        return d - timedelta(days=1)
    if d.weekday() == 6:
        return d + timedelta(days=1)
    return d


def _nth_weekday(year: int, month: int, weekday: int, n: int) -> date:
    """nth (1-indexed) occurrence of ``weekday`` in a month."""
    first = date(year, month, 1)
    return first + timedelta(days=(weekday - first.weekday()) % 7, weeks=n - 1)


def _last_weekday(year: int, month: int, weekday: int) -> date:
    nxt = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    last = nxt - timedelta(days=1)
    return last - timedelta(days=(last.weekday() - weekday) % 7)


def _easter(year: int) -> date:
    """Gregorian Easter Sunday (anonymous algorithm)."""
    a = year % 19
    b, c = divmod(year, 100)
    d, e = divmod(b, 4)
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i, k = divmod(c, 4)
    l = (32 + 2 * e + 2 * i - h - k) % 7  # noqa: E741
    m = (a + 11 * h + 22 * l) // 451
    month, day = divmod(h + l - 7 * m + 114, 31)
    return date(year, month, day + 1)


@lru_cache(maxsize=64)
def nyse_holidays(year: int) -> frozenset[date]:
    """Full-day NYSE closures for ``year``."""
    holidays = {
        _nth_weekday(year, 1, 0, 3),           # Martin Luther King Jr. Day
        _nth_weekday(year, 2, 0, 3),           # Presidents' Day
        _easter(year) - timedelta(days=2),     # Good Friday
        _last_weekday(year, 5, 0),             # Memorial Day
        _observed(date(year, 7, 4)),
        _nth_weekday(year, 9, 0, 1),           # Labor Day
        _nth_weekday(year, 11, 3, 4),          # Thanksgiving
        _observed(date(year, 12, 25)),
    }
    # New Year's Day falling on Saturday is not observed on the prior Friday.
    new_year = date(year, 1, 1)
    if new_year.weekday() != 5:
        holidays.add(_observed(new_year))
    if year >= 2022:
        holidays.add(_observed(date(year, 6, 19)))
    return frozenset(holidays)


def is_holiday(d: date) -> bool:
    """Check if a date is an NYSE holiday."""
    return d in nyse_holidays(d.year)


def is_trading_day(d: date) -> bool:
    """Weekday that is not an NYSE holiday."""
    return d.weekday() < 5 and not is_holiday(d)


def get_trading_dates(start: date, end: date) -> list[date]:
    """Return all trading dates in the range [start, end]."""
    dates: list[date] = []
    current = start
    while current <= end:
        if is_trading_day(current):
            dates.append(current)
        current += timedelta(days=1)
    return dates
