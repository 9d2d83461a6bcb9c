"""Data quality validation for candles and dividend events."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable

from divbacktest.calendar import get_trading_dates
from divbacktest.models.candle import Candle
from divbacktest.models.dividend import DividendEvent


@dataclass
class ValidationCheck:
    """Single validation check result."""

    name: str
    passed: bool
    message: str = ""


@dataclass
class ValidationResult:
    """Aggregate validation result."""

    checks: list[ValidationCheck] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(c.passed for c in self.checks)

    @property
    def failed_checks(self) -> list[ValidationCheck]:
        return [c for c in self.checks if not c.passed]


def validate_candles(candles: list[Candle]) -> ValidationResult:
    """Run all quality checks on a daily candle series.

    Checks:
        1. Not empty
        2. No NaN/Inf prices
        3. Positive prices
        4. Volume sanity (non-negative)
        5. Date ordering (strictly increasing, unique)
        6. OHLC consistency (high >= low, high >= open/close, low <= open/close)
    """
    result = ValidationResult()

    # 1. Not empty
    if not candles:
        result.checks.append(ValidationCheck("not_empty", False, "No candles provided"))
        return result
    result.checks.append(ValidationCheck("not_empty", True, f"{len(candles)} candles"))

    # 2. No NaN/Inf
    nan_count = 0
    for c in candles:
        for val in (c.open, c.high, c.low, c.close):
            if math.isnan(val) or math.isinf(val):
                nan_count += 1
    if nan_count:
        result.checks.append(ValidationCheck("no_nulls", False, f"{nan_count} NaN/Inf values"))
    else:
        result.checks.append(ValidationCheck("no_nulls", True))

    # 3. Positive prices
    non_positive = sum(1 for c in candles if min(c.open, c.high, c.low, c.close) <= 0)
    if non_positive:
        result.checks.append(
            ValidationCheck("positive_prices", False, f"{non_positive} candles with price <= 0")
        )
    else:
        result.checks.append(ValidationCheck("positive_prices", True))

    # 4. Volume sanity
    neg_vol = sum(1 for c in candles if c.volume < 0)
    if neg_vol:
        result.checks.append(
            ValidationCheck("volume_sanity", False, f"{neg_vol} candles with negative volume")
        )
    else:
        result.checks.append(ValidationCheck("volume_sanity", True))

    # 5. Date ordering
    out_of_order = sum(
        1 for prev, cur in zip(candles, candles[1:]) if cur.date <= prev.date
    )
    if out_of_order:
        result.checks.append(
            ValidationCheck("date_order", False, f"{out_of_order} out of order or duplicated")
        )
    else:
        result.checks.append(ValidationCheck("date_order", True))

    # 6. OHLC consistency
    inconsistent = 0
    for c in candles:
        if c.high < c.low:
            inconsistent += 1
        elif c.high < c.open or c.high < c.close:
            inconsistent += 1
        elif c.low > c.open or c.low > c.close:
            inconsistent += 1
    if inconsistent:
        result.checks.append(
            ValidationCheck("ohlc_consistency", False, f"{inconsistent} candles with H<L or H<O/C")
        )
    else:
        result.checks.append(ValidationCheck("ohlc_consistency", True))

    return result


def clean_dividends(events: Iterable[DividendEvent]) -> list[DividendEvent]:
    """Drop non-positive amounts, keep one event per (ticker, ex_date), sort by ex_date."""
    unique: dict[tuple[str, date], DividendEvent] = {}
    for e in events:
        if not e.is_valid:
            continue
        unique.setdefault((e.ticker, e.ex_date), e)
    return sorted(unique.values(), key=lambda e: e.ex_date)


def coverage_ratio(candles: list[Candle], start: date, end: date) -> float:
    """Share of NYSE trading days in ``[start, end]`` that have a candle.

    A window with no trading days counts as fully covered.
    """
    expected = get_trading_dates(start, end)
    if not expected:
        return 1.0
    have = {c.date for c in candles if start <= c.date <= end}
    return min(len(have) / len(expected), 1.0)
