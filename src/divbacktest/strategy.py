"""Red-candle accumulation strategy.

Buys a fixed number of shares at the close of every period whose close is
strictly below its open. No sells, no sizing, no slippage.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Sequence

from loguru import logger

from divbacktest.models.candle import Candle
from divbacktest.models.timeframe import Timeframe
from divbacktest.models.transaction import SimulationResult, Transaction, TransactionType
from divbacktest.resample import period_end, period_start


def trade_date(candle: Candle, timeframe: Timeframe) -> date:
    """Date a signal on ``candle`` is booked on for ownership accounting.

    Daily candles trade on their own date, weekly candles on the Friday of
    their ISO week and coarser candles on the last calendar day of their
    period.
    """
    period = timeframe.period
    if period is None:
        return candle.date
    if timeframe is Timeframe.WEEKLY:
        return period_start(candle.date, period) + timedelta(days=4)
    return period_end(candle.date, period)


def simulate(
    candles: Sequence[Candle],
    quantity_per_trade: int,
    *,
    timeframe: Timeframe = Timeframe.DAILY,
    session_id: str = "",
) -> SimulationResult:
    """Replay the red-candle rule over ``candles`` in ascending date order.

    Args:
        candles: Candles of one ticker, sorted by date.
        quantity_per_trade: Shares bought per signal (positive).
        timeframe: Granularity of ``candles``; decides the trade date.
        session_id: Backtest run the transactions belong to.
    """
    if quantity_per_trade <= 0:
        raise ValueError("quantity_per_trade must be positive")

    transactions: list[Transaction] = []
    total_shares = 0
    total_investment = 0.0

    for candle in candles:
        if not candle.is_red:
            continue
        cost = quantity_per_trade * candle.close
        transactions.append(Transaction(
            session_id=session_id,
            ticker=candle.ticker,
            transaction_date=trade_date(candle, timeframe),
            type=TransactionType.BUY,
            quantity=quantity_per_trade,
            price=candle.close,
            total_cost=cost,
            candle_date=candle.date,
        ))
        total_shares += quantity_per_trade
        total_investment += cost

    average_cost = total_investment / total_shares if total_shares else 0.0
    last_price = candles[-1].close if candles else 0.0

    logger.debug(
        "simulated {} {} candles: {} buys, {} shares, invested {:.2f}",
        len(candles), timeframe.value, len(transactions), total_shares, total_investment,
    )
    return SimulationResult(
        transactions=tuple(transactions),
        total_shares=total_shares,
        total_investment=total_investment,
        average_cost=average_cost,
        last_price=last_price,
        red_candle_periods=len(transactions),
        total_periods=len(candles),
    )
