"""Dividend event data model."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class DividendEvent:
    """Dividend distribution event.

    Attributes:
        ticker: Ticker symbol.
        ex_date: Ex-dividend date.
        amount: Dividend amount per share.
        pay_date: Payment date.
        record_date: Record date.
        declaration_date: Declaration date.
        dividend_type: Type (regular, special).
        currency: Currency code.
    """

    ticker: str
    ex_date: date
    amount: float
    pay_date: date | None = None
    record_date: date | None = None
    declaration_date: date | None = None
    dividend_type: str = "regular"
    currency: str = "USD"

    @property
    def is_valid(self) -> bool:
        return self.amount > 0
