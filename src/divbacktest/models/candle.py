"""Candle (OHLCV) data model."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from divbacktest.models.timeframe import Timeframe


@dataclass(frozen=True)
class Candle:
    """Single price candle for one calendar period.

    Attributes:
        ticker: Ticker symbol.
        date: Trade date of the candle. For resampled candles this is the
            date of the latest daily candle in the period.
        open: Opening price.
        high: High price.
        low: Low price.
        close: Closing price.
        volume: Traded volume (non-negative).
        timeframe: Granularity the candle represents.
    """

    ticker: str
    date: date
    open: float
    high: float
    low: float
    close: float
    volume: int
    timeframe: Timeframe = Timeframe.DAILY

    @property
    def is_red(self) -> bool:
        """Bearish period: close strictly below open."""
        return self.open > self.close
