"""Backtest data models."""

from divbacktest.models.candle import Candle
from divbacktest.models.dividend import DividendEvent
from divbacktest.models.frequency import Confidence, DividendFrequency, FrequencyAnalysis
from divbacktest.models.income import (
    DividendIncome,
    DividendIncomeRecord,
    IncomeStatus,
    PeriodPayment,
    YearlyDividendHistory,
)
from divbacktest.models.request import BacktestRequest
from divbacktest.models.result import BacktestResult
from divbacktest.models.timeframe import ResamplePeriod, Timeframe
from divbacktest.models.transaction import SimulationResult, Transaction, TransactionType

__all__ = [
    "Candle",
    "DividendEvent",
    "Timeframe",
    "ResamplePeriod",
    "Transaction",
    "TransactionType",
    "SimulationResult",
    "DividendFrequency",
    "Confidence",
    "FrequencyAnalysis",
    "IncomeStatus",
    "DividendIncomeRecord",
    "DividendIncome",
    "PeriodPayment",
    "YearlyDividendHistory",
    "BacktestRequest",
    "BacktestResult",
]
