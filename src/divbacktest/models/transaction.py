"""Transaction data model."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum


class TransactionType(Enum):
    BUY = "BUY"
    SELL = "SELL"


@dataclass(frozen=True)
class Transaction:
    """Simulated fill owned by one backtest session.

    Attributes:
        session_id: Identifier of the backtest run.
        ticker: Ticker symbol.
        transaction_date: Date used for ownership accounting.
        type: BUY or SELL.
        quantity: Number of shares (positive).
        price: Fill price per share.
        total_cost: ``quantity * price``.
        candle_date: Date of the candle that produced the signal.
    """

    session_id: str
    ticker: str
    transaction_date: date
    type: TransactionType
    quantity: int
    price: float
    total_cost: float
    candle_date: date | None = None

    @property
    def signed_quantity(self) -> int:
        """Share delta: positive for BUY, negative for SELL."""
        if self.type is TransactionType.SELL:
            return -self.quantity
        return self.quantity


@dataclass(frozen=True)
class SimulationResult:
    """Output of a strategy simulation run."""

    transactions: tuple[Transaction, ...]
    total_shares: int
    total_investment: float
    average_cost: float
    last_price: float
    red_candle_periods: int
    total_periods: int

    @property
    def red_candle_rate(self) -> float:
        """Share of periods that produced a buy signal, in percent."""
        if not self.total_periods:
            return 0.0
        return self.red_candle_periods / self.total_periods * 100
