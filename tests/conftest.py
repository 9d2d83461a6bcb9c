"""Shared fixtures for divbacktest tests."""

from __future__ import annotations

import sys
from datetime import date, timedelta
from pathlib import Path

import pytest

# Ensure src/ is on the path for editable-style imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from divbacktest.config import BacktestConfig, ProviderType
from divbacktest.models.candle import Candle
from divbacktest.models.dividend import DividendEvent
from divbacktest.providers.mock import MockProvider


def make_candle(
    day: date,
    open_: float,
    close: float,
    *,
    ticker: str = "TEST",
    volume: int = 1000,
) -> Candle:
    """Candle whose high/low hug the body by 0.5."""
    return Candle(
        ticker=ticker,
        date=day,
        open=open_,
        high=max(open_, close) + 0.5,
        low=min(open_, close) - 0.5,
        close=close,
        volume=volume,
    )


def make_dividend(ex_date: date, amount: float = 0.25, ticker: str = "TEST") -> DividendEvent:
    return DividendEvent(
        ticker=ticker,
        ex_date=ex_date,
        amount=amount,
        pay_date=ex_date + timedelta(days=14),
    )


@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider()


@pytest.fixture
def mock_config() -> BacktestConfig:
    return BacktestConfig(providers=[ProviderType.MOCK], cache_backend="none")


@pytest.fixture
def sample_candles() -> list[Candle]:
    """Daily candles for 2024-01-02..2024-01-05: red, green, red, green."""
    return [
        make_candle(date(2024, 1, 2), 10.0, 9.0),
        make_candle(date(2024, 1, 3), 9.0, 11.0),
        make_candle(date(2024, 1, 4), 12.0, 11.0),
        make_candle(date(2024, 1, 5), 11.0, 11.5),
    ]


@pytest.fixture
def monthly_dividends() -> list[DividendEvent]:
    """$0.25 on the 15th of every month of 2024."""
    return [make_dividend(date(2024, m, 15)) for m in range(1, 13)]
