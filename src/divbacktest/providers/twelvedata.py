"""Twelve Data provider for daily candles and dividends.

Uses the REST API directly through ``requests``. Non-US listings are routed
with an explicit ``exchange`` parameter (see ``divbacktest.exchanges``).
"""

from __future__ import annotations

import os
from datetime import date
from typing import Any

import certifi
import requests
from loguru import logger

from divbacktest.errors import BacktestError, BacktestErrorCode
from divbacktest.exchanges import to_exchange_symbol
from divbacktest.models.candle import Candle
from divbacktest.models.dividend import DividendEvent
from divbacktest.providers.base import BaseDataProvider

BASE_URL = "https://api.twelvedata.com"
MAX_OUTPUT_SIZE = 5000

# Error codes Twelve Data reports for an unknown symbol or an empty window.
_NO_DATA_CODES = {400, 404}


class TwelveDataProvider(BaseDataProvider):
    """Fetch daily candles and dividends from Twelve Data.

    Capabilities: candles, dividends.
    """

    name = "twelvedata"

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float = 10.0,
        session: requests.Session | None = None,
        base_url: str = BASE_URL,
    ) -> None:
        self.api_key = api_key or os.getenv("TWELVEDATA_API_KEY")
        if not self.api_key:
            raise BacktestError(
                "Twelve Data API key required. Set TWELVEDATA_API_KEY env var or pass api_key.",
                code=BacktestErrorCode.AUTH_FAILED,
            )
        self.timeout = timeout
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.verify = certifi.where()

    def capabilities(self) -> set[str]:
        return {"candles", "dividends"}

    # ------------------------------------------------------------- candles

    def get_daily_candles(self, ticker: str, start: date, end: date) -> list[Candle]:
        data = self._get("/time_series", ticker, start, end, {
            "interval": "1day",
            "outputsize": MAX_OUTPUT_SIZE,
            "order": "ASC",
        })
        if data is None:
            return []

        candles: list[Candle] = []
        for v in data.get("values") or []:
            try:
                candles.append(Candle(
                    ticker=ticker.upper(),
                    date=date.fromisoformat(str(v["datetime"])[:10]),
                    open=float(v["open"]),
                    high=float(v["high"]),
                    low=float(v["low"]),
                    close=float(v["close"]),
                    volume=_parse_volume(v.get("volume")),
                ))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("skipping malformed Twelve Data candle {}: {}", v, exc)
        candles.sort(key=lambda c: c.date)
        return [c for c in candles if start <= c.date <= end]

    # ----------------------------------------------------------- dividends

    def get_dividends(self, ticker: str, start: date, end: date) -> list[DividendEvent]:
        data = self._get("/dividends", ticker, start, end, {})
        if data is None:
            return []

        events: list[DividendEvent] = []
        for d in data.get("dividends") or []:
            ex_date = _parse_date(d.get("ex_date"))
            if ex_date is None or not start <= ex_date <= end:
                continue
            try:
                amount = float(d.get("amount", 0))
            except (TypeError, ValueError):
                continue
            events.append(DividendEvent(
                ticker=ticker.upper(),
                ex_date=ex_date,
                amount=amount,
                pay_date=_parse_date(d.get("payment_date")),
                record_date=_parse_date(d.get("record_date")),
                declaration_date=_parse_date(d.get("declaration_date")),
            ))
        return events

    # ----------------------------------------------------------- internals

    def _get(
        self,
        path: str,
        ticker: str,
        start: date,
        end: date,
        extra: dict[str, Any],
    ) -> dict[str, Any] | None:
        """GET ``path`` for ``ticker``; None when the source has no data."""
        listing = to_exchange_symbol(ticker)
        params: dict[str, Any] = {
            "symbol": listing.symbol,
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "apikey": self.api_key,
            **extra,
        }
        if listing.exchange:
            params["exchange"] = listing.exchange

        log = logger.bind(provider=self.name, ticker=ticker, endpoint=path)
        log.debug("requesting {} {} to {} ({})", listing.symbol, start, end, listing.label)
        try:
            resp = self.session.get(f"{self.base_url}{path}", params=params, timeout=self.timeout)
        except requests.Timeout as exc:
            raise BacktestError(
                f"Twelve Data request timed out after {self.timeout}s",
                code=BacktestErrorCode.TIMEOUT,
                retryable=True,
                context={"ticker": ticker, "endpoint": path},
            ) from exc
        except requests.RequestException as exc:
            raise BacktestError(
                f"Twelve Data request failed: {exc}",
                code=BacktestErrorCode.PROVIDER_ERROR,
                retryable=True,
                context={"ticker": ticker, "endpoint": path},
            ) from exc

        self._check_status(resp.status_code, ticker, path)
        try:
            data = resp.json()
        except ValueError as exc:
            raise BacktestError(
                "Twelve Data returned a non-JSON body",
                code=BacktestErrorCode.PROVIDER_ERROR,
                retryable=True,
                context={"ticker": ticker, "endpoint": path},
            ) from exc

        if not isinstance(data, dict):
            raise BacktestError(
                f"Twelve Data returned {type(data).__name__}, expected an object",
                code=BacktestErrorCode.PROVIDER_ERROR,
                retryable=True,
                context={"ticker": ticker, "endpoint": path},
            )
        if data.get("status") == "error":
            code = _error_code(data.get("code"))
            if code in _NO_DATA_CODES:
                log.info("no data from Twelve Data: {}", data.get("message", ""))
                return None
            self._check_status(code, ticker, path)
            raise BacktestError(
                f"Twelve Data error: {data.get('message', 'unknown error')}",
                code=BacktestErrorCode.PROVIDER_ERROR,
                retryable=True,
                context={"ticker": ticker, "endpoint": path},
            )
        return data

    @staticmethod
    def _check_status(status: int, ticker: str, path: str) -> None:
        context = {"ticker": ticker, "endpoint": path}
        if status == 429:
            raise BacktestError(
                "Twelve Data rate limited",
                code=BacktestErrorCode.RATE_LIMITED,
                retryable=True,
                context=context,
            )
        if status in (401, 403):
            raise BacktestError(
                "Twelve Data authentication failed",
                code=BacktestErrorCode.AUTH_FAILED,
                context=context,
            )
        if status >= 500:
            raise BacktestError(
                f"Twelve Data server error {status}",
                code=BacktestErrorCode.PROVIDER_ERROR,
                retryable=True,
                context=context,
            )


def _error_code(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _parse_volume(value: Any) -> int:
    try:
        return max(int(float(value)), 0)
    except (TypeError, ValueError):
        return 0


def _parse_date(value: Any) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None
