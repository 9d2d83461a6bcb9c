"""Candle timeframes and calendar resampling periods."""

from __future__ import annotations

from enum import Enum

from divbacktest.errors import InvalidRequest


class ResamplePeriod(Enum):
    """Calendar-aligned bucket rule used by the resampler."""

    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    HALF_YEAR = "half-year"
    YEAR = "year"


class Timeframe(Enum):
    """Candle granularity a backtest runs on."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMI_ANNUAL = "semi-annual"
    ANNUAL = "annual"

    @property
    def period(self) -> ResamplePeriod | None:
        """Resampling rule for this timeframe (None for daily candles)."""
        return _PERIODS.get(self)

    @property
    def code(self) -> str:
        """Short code used by charting front-ends ("1D", "1W", ...)."""
        return _CODES[self]

    @classmethod
    def parse(cls, value: Timeframe | str | None) -> Timeframe:
        """Parse a timeframe name or legacy code ("1D", "1W", "1M", ...).

        ``None`` means daily. Unknown values raise ``InvalidRequest``.
        """
        if value is None:
            return cls.DAILY
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        by_code = {code.upper(): tf for tf, code in _CODES.items()}
        if text.upper() in by_code:
            return by_code[text.upper()]
        try:
            return cls(text.lower())
        except ValueError:
            raise InvalidRequest(
                f"Invalid timeframe: {value!r}",
                context={"valid": [tf.value for tf in cls]},
            ) from None


_PERIODS: dict[Timeframe, ResamplePeriod] = {
    Timeframe.WEEKLY: ResamplePeriod.WEEK,
    Timeframe.MONTHLY: ResamplePeriod.MONTH,
    Timeframe.QUARTERLY: ResamplePeriod.QUARTER,
    Timeframe.SEMI_ANNUAL: ResamplePeriod.HALF_YEAR,
    Timeframe.ANNUAL: ResamplePeriod.YEAR,
}

_CODES: dict[Timeframe, str] = {
    Timeframe.DAILY: "1D",
    Timeframe.WEEKLY: "1W",
    Timeframe.MONTHLY: "1M",
    Timeframe.QUARTERLY: "3M",
    Timeframe.SEMI_ANNUAL: "6M",
    Timeframe.ANNUAL: "1Y",
}

TIMEFRAME_FOR_PERIOD: dict[ResamplePeriod, Timeframe] = {p: tf for tf, p in _PERIODS.items()}
