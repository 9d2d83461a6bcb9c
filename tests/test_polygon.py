"""Tests for the Polygon provider's REST path against a mocked session."""

from datetime import date
from unittest.mock import MagicMock

import pytest

from divbacktest.errors import BacktestError, BacktestErrorCode
from divbacktest.providers.polygon import PolygonProvider, _dividend_type

# 2024-01-02 05:00 UTC, the Eastern-midnight stamp of that session
JAN_2_MS = 1704171600000


def _response(payload, status=200):
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = payload
    return resp


@pytest.fixture
def provider():
    p = PolygonProvider(api_key="test-key", use_sdk=False)
    p.session = MagicMock()
    return p


class TestPolygonRest:
    def test_missing_key(self, monkeypatch):
        monkeypatch.delenv("POLYGON_API_KEY", raising=False)
        with pytest.raises(BacktestError) as exc_info:
            PolygonProvider(use_sdk=False)
        assert exc_info.value.code == BacktestErrorCode.AUTH_FAILED

    def test_candles(self, provider):
        provider.session.get.return_value = _response({"results": [
            {"t": JAN_2_MS, "o": 10, "h": 11, "l": 9, "c": 9.5, "v": 1500.0},
        ]})
        [candle] = provider.get_daily_candles("ko", date(2024, 1, 2), date(2024, 1, 2))
        assert candle.date == date(2024, 1, 2)
        assert candle.ticker == "KO"
        assert candle.volume == 1500
        url = provider.session.get.call_args.args[0]
        assert url.endswith("/v2/aggs/ticker/KO/range/1/day/2024-01-02/2024-01-02")

    def test_dividends(self, provider):
        provider.session.get.return_value = _response({"results": [
            {"ex_dividend_date": "2024-03-14", "cash_amount": 0.485, "pay_date": "2024-04-01", "dividend_type": "CD"},
            {"ex_dividend_date": "2024-06-14", "cash_amount": 1.0, "dividend_type": "SC"},
            {"cash_amount": 0.5},
        ]})
        events = provider.get_dividends("KO", date(2024, 1, 1), date(2024, 12, 31))
        assert [e.ex_date for e in events] == [date(2024, 3, 14), date(2024, 6, 14)]
        assert events[0].pay_date == date(2024, 4, 1)
        assert events[1].dividend_type == "special"
        params = provider.session.get.call_args.kwargs["params"]
        assert params["ex_dividend_date.gte"] == "2024-01-01"

    def test_rate_limited(self, provider):
        provider.session.get.return_value = _response({}, status=429)
        with pytest.raises(BacktestError) as exc_info:
            provider.get_daily_candles("KO", date(2024, 1, 2), date(2024, 1, 2))
        assert exc_info.value.code == BacktestErrorCode.RATE_LIMITED
        assert exc_info.value.retryable

    def test_unexpected_error_wrapped_retryable(self, provider):
        provider.session.get.side_effect = ConnectionError("reset")
        with pytest.raises(BacktestError) as exc_info:
            provider.get_dividends("KO", date(2024, 1, 1), date(2024, 12, 31))
        assert exc_info.value.retryable


class TestDividendType:
    @pytest.mark.parametrize("code, expected", [
        ("CD", "regular"), ("SC", "special"), ("LT", "capital_gain"), (None, "regular"),
    ])
    def test_mapping(self, code, expected):
        assert _dividend_type(code) == expected
