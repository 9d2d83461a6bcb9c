"""Backtest result model."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from divbacktest.models.frequency import FrequencyAnalysis
from divbacktest.models.income import (
    DividendIncome,
    DividendIncomeRecord,
    YearlyDividendHistory,
)
from divbacktest.models.request import BacktestRequest
from divbacktest.models.transaction import Transaction

_DAYS_PER_MONTH = 365.25 / 12


@dataclass(frozen=True)
class BacktestResult:
    """Immutable report of one backtest run.

    Attributes:
        request: The validated request the run was made for.
        session_id: Identifier shared by every transaction of the run.
        total_shares: Shares held at the end of the run.
        total_investment: Cash spent on buys.
        total_value_today: ``total_shares * last_price``.
        average_cost: ``total_investment / total_shares`` (0 without shares).
        last_price: Close of the final candle.
        pnl: ``total_value_today - total_investment``.
        pnl_with_dividends: ``pnl`` plus dividend income.
        total_dividend_income: Income attributed over the report window.
        last_dividend_yield: Annualised latest dividend over last price, %.
        ttm_dividend_yield: Trailing-twelve-month dividends over last price, %.
        yield_on_cost: Annualised latest dividend over average cost, %.
        has_dividends: Whether any dividend was found in the look-back window.
        dividend_reason: Why dividends were (not) found.
        frequency_analysis: Inferred dividend cadence.
        dividend_income: Per-event attribution details.
        dividend_history: Per-year, per-period breakdown.
        transactions: Every simulated transaction.
        red_candle_periods: Number of buy signals.
        total_candle_periods: Number of candles replayed.
        processed_at: When the run completed.
    """

    request: BacktestRequest
    session_id: str
    total_shares: int
    total_investment: float
    total_value_today: float
    average_cost: float
    last_price: float
    pnl: float
    pnl_with_dividends: float
    total_dividend_income: float
    last_dividend_yield: float
    ttm_dividend_yield: float
    yield_on_cost: float
    has_dividends: bool
    dividend_reason: str
    frequency_analysis: FrequencyAnalysis
    dividend_income: DividendIncome
    dividend_history: tuple[YearlyDividendHistory, ...]
    transactions: tuple[Transaction, ...]
    red_candle_periods: int
    total_candle_periods: int
    processed_at: datetime

    # ---------------------------------------------------------- ratios

    @property
    def pnl_percent(self) -> float:
        return _percent(self.pnl, self.total_investment)

    @property
    def pnl_with_dividends_percent(self) -> float:
        return _percent(self.pnl_with_dividends, self.total_investment)

    @property
    def total_dividend_percent(self) -> float:
        return _percent(self.total_dividend_income, self.total_investment)

    @property
    def red_candle_success_rate(self) -> float:
        return _percent(self.red_candle_periods, self.total_candle_periods)

    @property
    def duration_days(self) -> int:
        return (self.request.end_date - self.request.start_date).days + 1

    @property
    def duration_months(self) -> float:
        return (self.request.end_date - self.request.start_date).days / _DAYS_PER_MONTH

    # ---------------------------------------------------------- report

    def to_dict(self) -> dict[str, Any]:
        """Render the camelCase report served to front-ends."""
        fa = self.frequency_analysis
        return {
            "pnL": _money(self.pnl),
            "pnLPercent": _money(self.pnl_percent),
            "pnLWithDividend": _money(self.pnl_with_dividends),
            "pnLWithDividendPercent": _money(self.pnl_with_dividends_percent),
            "totalDividend": _money(self.total_dividend_income),
            "totalDivPercent": _money(self.total_dividend_percent),
            "lastDividendYield": _money(self.last_dividend_yield),
            "ttmDividendYield": _money(self.ttm_dividend_yield),
            "yieldOnCost": _money(self.yield_on_cost),
            "hasDividends": self.has_dividends,
            "dividendReason": self.dividend_reason,
            "dividendFrequency": fa.frequency.value,
            "dividendFrequencyConfidence": fa.confidence.value,
            "dividendFrequencyReason": fa.reason,
            "totalShares": self.total_shares,
            "totalInvestment": _money(self.total_investment),
            "totalValueToday": _money(self.total_value_today),
            "averageCost": _money(self.average_cost),
            "redCandlePeriods": self.red_candle_periods,
            "totalCandlePeriods": self.total_candle_periods,
            "redCandleSuccessRate": _money(self.red_candle_success_rate),
            "analysisPeriod": {
                "startDate": self.request.start_date.isoformat(),
                "endDate": self.request.end_date.isoformat(),
                "durationDays": self.duration_days,
                "durationMonths": round(self.duration_months, 1),
                "timeframe": self.request.timeframe.value,
                "actualDividendPeriods": self.dividend_income.total_dividend_periods,
                "dividendPeriodsWithIncome": self.dividend_income.periods_with_income,
            },
            "requestData": {
                "ticker": self.request.ticker,
                "timeframe": self.request.timeframe.value,
                "quantity": self.request.quantity,
                "startDate": self.request.start_date.isoformat(),
                "endDate": self.request.end_date.isoformat(),
                "sessionId": self.session_id,
                "processedAt": self.processed_at.isoformat(),
            },
            "yearlyDividends": [
                {
                    "year": h.year,
                    "totalDividend": h.total_amount,
                    "periodStart": h.period_start.isoformat(),
                    "periodEnd": h.period_end.isoformat(),
                    "periodsInYear": h.periods_in_year,
                    "periodsWithIncome": h.periods_with_income,
                }
                for h in self.dividend_history
            ],
            "dividendHistory": [_history_to_dict(h) for h in self.dividend_history],
            "dividendDetails": [
                _record_to_dict(r) for r in self.dividend_income.dividend_details
            ],
            "transactions": [_transaction_to_dict(t) for t in self.transactions],
        }


def _percent(numerator: float, denominator: float) -> float:
    if not denominator:
        return 0.0
    return numerator / denominator * 100


def _money(value: float) -> float:
    return round(float(value), 2)


def _history_to_dict(h: YearlyDividendHistory) -> dict[str, Any]:
    return {
        "year": h.year,
        "frequency": h.frequency.value,
        "totalAmount": h.total_amount,
        "payments": [
            {
                "period": p.period,
                "label": p.label,
                "amount": p.amount,
                "status": p.status.value,
                **({"exDate": p.ex_date.isoformat()} if p.ex_date else {}),
            }
            for p in h.payments
        ],
    }


def _record_to_dict(r: DividendIncomeRecord) -> dict[str, Any]:
    return {
        "exDate": r.ex_date.isoformat(),
        "payDate": r.pay_date.isoformat() if r.pay_date else None,
        "amountPerShare": r.amount_per_share,
        "sharesOwned": r.shares_owned,
        "totalIncome": _money(r.total_income),
        "year": r.year,
        "period": r.period,
        "status": r.status.value,
    }


def _transaction_to_dict(t: Transaction) -> dict[str, Any]:
    return {
        "sessionId": t.session_id,
        "ticker": t.ticker,
        "transactionDate": t.transaction_date.isoformat(),
        "type": t.type.value,
        "quantity": t.quantity,
        "price": t.price,
        "totalCost": _money(t.total_cost),
    }
