"""Mock provider for testing and offline demos. No API keys required.

Data is synthetic. It is only used when ``ProviderType.MOCK`` is configured
explicitly and never stands in for a failing real provider.
"""

from __future__ import annotations

from datetime import date

from divbacktest.calendar import get_trading_dates
from divbacktest.models.candle import Candle
from divbacktest.models.dividend import DividendEvent
from divbacktest.providers.base import BaseDataProvider


class MockProvider(BaseDataProvider):
    """In-memory provider that returns configurable static data.

    Use ``set_candles`` and ``set_dividends`` to pre-load data, or leave
    defaults for auto-generated synthetic candles and no dividends.
    """

    name = "mock"

    def __init__(self, base_price: float = 100.0) -> None:
        self.base_price = base_price
        self._candles: dict[str, list[Candle]] = {}
        self._dividends: dict[str, list[DividendEvent]] = {}

    # --- Pre-load helpers ---

    def set_candles(self, ticker: str, candles: list[Candle]) -> None:
        self._candles[ticker.upper()] = sorted(candles, key=lambda c: c.date)

    def set_dividends(self, ticker: str, events: list[DividendEvent]) -> None:
        self._dividends[ticker.upper()] = list(events)

    # --- Provider implementation ---

    def get_daily_candles(self, ticker: str, start: date, end: date) -> list[Candle]:
        key = ticker.upper()
        if key in self._candles:
            return [c for c in self._candles[key] if start <= c.date <= end]
        return self._generate_candles(key, start, end)

    def get_dividends(self, ticker: str, start: date, end: date) -> list[DividendEvent]:
        key = ticker.upper()
        return [e for e in self._dividends.get(key, []) if start <= e.ex_date <= end]

    def capabilities(self) -> set[str]:
        return {"candles", "dividends"}

    # --- Synthetic data generation ---

    def _generate_candles(self, ticker: str, start: date, end: date) -> list[Candle]:
        """One candle per NYSE trading day; every third day closes red.

        Prices depend only on the calendar date, so overlapping windows agree.
        """
        candles: list[Candle] = []
        for day in get_trading_dates(start, end):
            n = day.toordinal()
            o = self.base_price + (n % 20) * 0.5
            c = o - 0.30 if n % 3 == 0 else o + 0.20
            candles.append(Candle(
                ticker=ticker,
                date=day,
                open=round(o, 2),
                high=round(max(o, c) + 0.50, 2),
                low=round(min(o, c) - 0.50, 2),
                close=round(c, 2),
                volume=100_000 + (n % 50) * 1_000,
            ))
        return candles
