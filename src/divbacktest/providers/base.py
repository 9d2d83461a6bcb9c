"""Abstract base class for candle and dividend providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date

from divbacktest.models.candle import Candle
from divbacktest.models.dividend import DividendEvent


class BaseDataProvider(ABC):
    """Abstract base for all data providers.

    Subclasses must implement ``get_daily_candles``. ``get_dividends``
    defaults to ``NotImplementedError``; providers advertise what they
    support via ``capabilities()``.

    Providers return an empty list when the source has no data for the
    window. Transport failures raise ``BacktestError`` with ``retryable=True``
    so the caller can move on to the next provider.
    """

    name: str = "base"

    @abstractmethod
    def get_daily_candles(self, ticker: str, start: date, end: date) -> list[Candle]:
        """Fetch daily OHLCV candles.

        Args:
            ticker: User-facing ticker symbol (``SHOP.TO``, ``AAPL``, ...).
            start: Start date (inclusive).
            end: End date (inclusive).

        Returns:
            Daily candles ordered by date ascending.
        """
        ...

    def get_dividends(self, ticker: str, start: date, end: date) -> list[DividendEvent]:
        """Fetch dividend events with ex-date in ``[start, end]``."""
        raise NotImplementedError

    def capabilities(self) -> set[str]:
        """Return the set of supported features: ``candles``, ``dividends``."""
        return {"candles"}
