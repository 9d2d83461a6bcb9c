"""divbacktest: red-candle backtests with dividend income attribution.

Fetches daily candles and dividend events (Twelve Data, Polygon), resamples
candles to weekly/monthly/quarterly/semi-annual/annual periods, buys on
every red candle, infers the dividend cadence and attributes dividend income
by ownership on each ex-date.

Quick start::

    from divbacktest import create_backtester_from_env
    bt = create_backtester_from_env()
    result = bt.run_backtest("KO", "monthly", 10, date(2022, 1, 1), date(2023, 12, 31))
"""

from __future__ import annotations

from divbacktest.backtester import Backtester, fetch_window, trim_to_window
from divbacktest.config import BacktestConfig, ProviderType
from divbacktest.errors import (
    BacktestError,
    BacktestErrorCode,
    BacktestTimeout,
    ConfigError,
    InvalidRequest,
    NoDataAvailable,
    ProviderFailure,
)
from divbacktest.exchanges import ExchangeSymbol, to_exchange_symbol
from divbacktest.frequency import analyze_frequency
from divbacktest.income import attribute_income, build_dividend_history
from divbacktest.log import setup_logging
from divbacktest.models import (
    BacktestRequest,
    BacktestResult,
    Candle,
    Confidence,
    DividendEvent,
    DividendFrequency,
    DividendIncome,
    DividendIncomeRecord,
    FrequencyAnalysis,
    IncomeStatus,
    ResamplePeriod,
    SimulationResult,
    Timeframe,
    Transaction,
    TransactionType,
    YearlyDividendHistory,
)
from divbacktest.resample import resample
from divbacktest.strategy import simulate

__version__ = "0.1.0"

__all__ = [
    # Orchestrator
    "Backtester",
    "create_backtester_from_env",
    "fetch_window",
    "trim_to_window",
    # Core
    "resample",
    "analyze_frequency",
    "simulate",
    "attribute_income",
    "build_dividend_history",
    # Config
    "BacktestConfig",
    "ProviderType",
    "setup_logging",
    # Errors
    "BacktestError",
    "BacktestErrorCode",
    "ConfigError",
    "InvalidRequest",
    "NoDataAvailable",
    "ProviderFailure",
    "BacktestTimeout",
    # Exchanges
    "ExchangeSymbol",
    "to_exchange_symbol",
    # Models
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
    "YearlyDividendHistory",
    "BacktestRequest",
    "BacktestResult",
]


def create_backtester_from_env() -> Backtester:
    """Zero-config factory: reads providers, cache and API keys from env vars.

    See ``BacktestConfig.from_env`` for the variables read.
    """
    config = BacktestConfig.from_env()
    setup_logging(config.log_level)
    return Backtester(config)
