"""Tests for loguru sink setup and warning records."""

from datetime import date

from loguru import logger

from divbacktest import create_backtester_from_env
from divbacktest.backtester import Backtester
from divbacktest.config import BacktestConfig, ProviderType
from divbacktest.log import setup_logging

from test_backtester import DividendFailingProvider


def test_setup_logging_returns_removable_sink():
    sink_id = setup_logging("debug")
    assert isinstance(sink_id, int)
    logger.remove(sink_id)


def test_dividend_failure_logged(caplog, sample_candles):
    provider = DividendFailingProvider()
    provider.set_candles("TEST", sample_candles)
    bt = Backtester(
        BacktestConfig(providers=[ProviderType.MOCK], cache_backend="none"),
        providers=[provider],
        clock=lambda: date(2024, 6, 1),
    )
    handler_id = logger.add(caplog.handler, level="WARNING")
    try:
        bt.run_backtest("TEST", "daily", 5, date(2024, 1, 2), date(2024, 1, 5))
    finally:
        logger.remove(handler_id)
    assert any("dividend fetch failed" in rec.message for rec in caplog.records)


def test_create_backtester_from_env(monkeypatch):
    monkeypatch.setattr("divbacktest.config.load_dotenv", lambda: None)
    monkeypatch.setenv("DIVBACKTEST_PROVIDERS", "mock")
    monkeypatch.setenv("DIVBACKTEST_CACHE", "none")
    monkeypatch.setenv("LOG_LEVEL", "warning")
    bt = create_backtester_from_env()
    assert [p.name for p in bt.providers] == ["mock"]
    logger.remove()
