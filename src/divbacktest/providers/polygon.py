"""Polygon.io data provider.

Supports both the official ``polygon-api-client`` SDK and a direct
REST fallback using ``requests``.

Install the optional dependency:
    pip install divbacktest[polygon]
"""

from __future__ import annotations

import os
import time
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

import certifi
import requests

from divbacktest.errors import BacktestError, BacktestErrorCode
from divbacktest.models.candle import Candle
from divbacktest.models.dividend import DividendEvent
from divbacktest.providers.base import BaseDataProvider

# Fix broken CURL_CA_BUNDLE env var
_curl_ca = os.environ.get("CURL_CA_BUNDLE", "")
if _curl_ca and not Path(_curl_ca).exists():
    del os.environ["CURL_CA_BUNDLE"]

try:
    from polygon import RESTClient
    _SDK_AVAILABLE = True
except ImportError:
    _SDK_AVAILABLE = False


class PolygonProvider(BaseDataProvider):
    """Fetch daily candles and dividends from Polygon.io.

    Capabilities: candles, dividends. US listings only.
    """

    name = "polygon"
    base_url = "https://api.polygon.io"

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float = 10.0,
        use_sdk: bool | None = None,
    ) -> None:
        self.api_key = api_key or os.getenv("POLYGON_API_KEY")
        if not self.api_key:
            raise BacktestError(
                "Polygon API key required. Set POLYGON_API_KEY env var or pass api_key.",
                code=BacktestErrorCode.AUTH_FAILED,
            )
        self.timeout = timeout

        if use_sdk is None:
            use_sdk = _SDK_AVAILABLE
        elif use_sdk and not _SDK_AVAILABLE:
            raise BacktestError(
                "polygon-api-client is not installed: pip install divbacktest[polygon]",
                code=BacktestErrorCode.PROVIDER_ERROR,
            )
        if use_sdk:
            self.client: Any = RESTClient(self.api_key, connect_timeout=timeout, read_timeout=timeout)
        else:
            self.client = None
            self.session = requests.Session()
            self.session.verify = certifi.where()

    def capabilities(self) -> set[str]:
        return {"candles", "dividends"}

    # -------------------------------------------------------------- candles

    def get_daily_candles(self, ticker: str, start: date, end: date) -> list[Candle]:
        try:
            if self.client is not None:
                return self._candles_sdk(ticker, start, end)
            return self._candles_rest(ticker, start, end)
        except BacktestError:
            raise
        except Exception as exc:
            raise BacktestError(
                f"Polygon get_daily_candles failed: {exc}",
                code=BacktestErrorCode.PROVIDER_ERROR,
                retryable=True,
                context={"ticker": ticker},
            ) from exc

    def _candles_sdk(self, ticker: str, start: date, end: date) -> list[Candle]:
        aggs = self.client.get_aggs(
            ticker=ticker.upper(),
            multiplier=1,
            timespan="day",
            from_=start.isoformat(),
            to=end.isoformat(),
            adjusted=True,
            sort="asc",
            limit=50000,
        )
        return [
            self._make_candle(ticker, a.timestamp, a.open, a.high, a.low, a.close, a.volume)
            for a in aggs
        ]

    def _candles_rest(self, ticker: str, start: date, end: date) -> list[Candle]:
        candles: list[Candle] = []
        url = f"{self.base_url}/v2/aggs/ticker/{ticker.upper()}/range/1/day/{start}/{end}"
        params: dict[str, Any] = {
            "apiKey": self.api_key,
            "adjusted": "true",
            "sort": "asc",
            "limit": 50000,
        }
        for page in self._paginate(url, params):
            for r in page.get("results", []):
                candles.append(self._make_candle(
                    ticker, r["t"], r["o"], r["h"], r["l"], r["c"], r.get("v", 0),
                ))
        return candles

    @staticmethod
    def _make_candle(
        ticker: str, ts_ms: int, o: Any, h: Any, l: Any, c: Any, v: Any,  # noqa: E741
    ) -> Candle:
        # Daily aggregates are stamped at US/Eastern midnight, which is the
        # same calendar day in UTC.
        return Candle(
            ticker=ticker.upper(),
            date=datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc).date(),
            open=float(o),
            high=float(h),
            low=float(l),
            close=float(c),
            volume=int(v or 0),
        )

    # ------------------------------------------------------------ dividends

    def get_dividends(self, ticker: str, start: date, end: date) -> list[DividendEvent]:
        try:
            if self.client is not None:
                return self._dividends_sdk(ticker, start, end)
            return self._dividends_rest(ticker, start, end)
        except BacktestError:
            raise
        except Exception as exc:
            raise BacktestError(
                f"Polygon get_dividends failed: {exc}",
                code=BacktestErrorCode.PROVIDER_ERROR,
                retryable=True,
                context={"ticker": ticker},
            ) from exc

    def _dividends_sdk(self, ticker: str, start: date, end: date) -> list[DividendEvent]:
        divs = self.client.list_dividends(
            ticker=ticker.upper(),
            ex_dividend_date_gte=start.isoformat(),
            ex_dividend_date_lte=end.isoformat(),
            order="asc",
            sort="ex_dividend_date",
            limit=1000,
        )
        events: list[DividendEvent] = []
        for d in divs:
            if not getattr(d, "ex_dividend_date", None):
                continue
            events.append(DividendEvent(
                ticker=ticker.upper(),
                ex_date=date.fromisoformat(d.ex_dividend_date),
                amount=float(getattr(d, "cash_amount", 0) or 0),
                record_date=_iso(getattr(d, "record_date", None)),
                pay_date=_iso(getattr(d, "pay_date", None)),
                declaration_date=_iso(getattr(d, "declaration_date", None)),
                dividend_type=_dividend_type(getattr(d, "dividend_type", None)),
                currency=getattr(d, "currency", None) or "USD",
            ))
        return events

    def _dividends_rest(self, ticker: str, start: date, end: date) -> list[DividendEvent]:
        events: list[DividendEvent] = []
        url = f"{self.base_url}/v3/reference/dividends"
        params: dict[str, Any] = {
            "apiKey": self.api_key,
            "ticker": ticker.upper(),
            "ex_dividend_date.gte": start.isoformat(),
            "ex_dividend_date.lte": end.isoformat(),
            "order": "asc",
            "sort": "ex_dividend_date",
            "limit": 1000,
        }
        for page in self._paginate(url, params):
            for r in page.get("results", []):
                if not r.get("ex_dividend_date"):
                    continue
                events.append(DividendEvent(
                    ticker=ticker.upper(),
                    ex_date=date.fromisoformat(r["ex_dividend_date"]),
                    amount=float(r.get("cash_amount", 0) or 0),
                    record_date=_iso(r.get("record_date")),
                    pay_date=_iso(r.get("pay_date")),
                    declaration_date=_iso(r.get("declaration_date")),
                    dividend_type=_dividend_type(r.get("dividend_type")),
                    currency=r.get("currency") or "USD",
                ))
        return events

    # ------------------------------------------------------------ internals

    def _paginate(self, url: str, params: dict[str, Any]):
        next_url: str | None = url
        while next_url:
            resp = self.session.get(next_url, params=params, timeout=self.timeout)
            self._check_response(resp)
            data = resp.json()
            yield data

            next_url = data.get("next_url")
            if next_url:
                params = {"apiKey": self.api_key}
                time.sleep(0.25)

    def _check_response(self, resp: Any) -> None:
        if resp.status_code == 429:
            raise BacktestError(
                "Polygon rate limited",
                code=BacktestErrorCode.RATE_LIMITED,
                retryable=True,
            )
        if resp.status_code in (401, 403):
            raise BacktestError(
                "Polygon authentication failed",
                code=BacktestErrorCode.AUTH_FAILED,
            )
        if resp.status_code == 404:
            raise BacktestError(
                "Ticker not found on Polygon",
                code=BacktestErrorCode.NOT_FOUND,
            )
        resp.raise_for_status()


def _iso(value: Any) -> date | None:
    return date.fromisoformat(value) if value else None


def _dividend_type(code: str | None) -> str:
    # CD = regular cash, SC = special cash, LT/ST = capital gains
    if code == "SC":
        return "special"
    if code in ("LT", "ST"):
        return "capital_gain"
    return "regular"
