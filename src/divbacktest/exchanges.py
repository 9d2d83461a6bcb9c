"""Ticker suffix to exchange mapping for non-US listings.

``SHOP.TO`` trades on TSX, ``RELIANCE.IN`` on NSE and ``BSE:RELIANCE.IN`` on
BSE. Anything else is treated as a US listing with no explicit exchange.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ExchangeSymbol:
    """Provider-facing symbol plus the exchange it is listed on."""

    symbol: str
    exchange: str | None
    label: str

    @property
    def is_us(self) -> bool:
        return self.exchange is None


US_LABEL = "US Market (Default)"
TSX_LABEL = "TSX (Toronto Stock Exchange)"
NSE_LABEL = "NSE (National Stock Exchange of India)"
BSE_LABEL = "BSE (Bombay Stock Exchange)"

BSE_PREFIX = "BSE:"


def to_exchange_symbol(ticker: str) -> ExchangeSymbol:
    """Split a user-facing ticker into provider symbol and exchange."""
    t = ticker.strip().upper()
    if t.endswith(".TO"):
        return ExchangeSymbol(t[:-3], "TSX", TSX_LABEL)
    if t.endswith(".IN"):
        base = t[:-3]
        if base.startswith(BSE_PREFIX):
            return ExchangeSymbol(base[len(BSE_PREFIX):], "BSE", BSE_LABEL)
        return ExchangeSymbol(base, "NSE", NSE_LABEL)
    return ExchangeSymbol(t, None, US_LABEL)
