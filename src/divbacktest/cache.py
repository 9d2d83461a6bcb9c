"""Cache backends for candles and dividends: Parquet (disk) and Memory (TTL)."""

from __future__ import annotations

import shutil
import threading
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from datetime import date, datetime
from pathlib import Path
from typing import Any

import pandas as pd
from loguru import logger

from divbacktest.models.candle import Candle
from divbacktest.models.dividend import DividendEvent

CANDLES = "candles"
DIVIDENDS = "dividends"


class CacheBackend(ABC):
    """Abstract cache interface.

    Entries are keyed by ticker, kind (``candles`` or ``dividends``) and the
    exact fetch window.
    """

    @abstractmethod
    def get_candles(self, ticker: str, start: date, end: date) -> list[Candle] | None:
        """Return cached daily candles, or None on miss."""
        ...

    @abstractmethod
    def store_candles(
        self, ticker: str, candles: list[Candle], start: date, end: date,
    ) -> None:
        ...

    @abstractmethod
    def get_dividends(
        self, ticker: str, start: date, end: date,
    ) -> list[DividendEvent] | None:
        """Return cached dividend events, or None on miss."""
        ...

    @abstractmethod
    def store_dividends(
        self, ticker: str, events: list[DividendEvent], start: date, end: date,
    ) -> None:
        ...

    @abstractmethod
    def has_data(self, ticker: str, kind: str, start: date, end: date) -> bool:
        ...

    @abstractmethod
    def clear(self, ticker: str) -> None:
        ...

    @abstractmethod
    def clear_all(self) -> None:
        ...


class NoCache(CacheBackend):
    """No-op cache, always misses."""

    def get_candles(self, ticker, start, end):  # type: ignore[override]
        return None

    def store_candles(self, ticker, candles, start, end):  # type: ignore[override]
        pass

    def get_dividends(self, ticker, start, end):  # type: ignore[override]
        return None

    def store_dividends(self, ticker, events, start, end):  # type: ignore[override]
        pass

    def has_data(self, ticker, kind, start, end):  # type: ignore[override]
        return False

    def clear(self, ticker):  # type: ignore[override]
        pass

    def clear_all(self):
        pass


class ParquetCache(CacheBackend):
    """Disk-based cache using Parquet files with Snappy compression.

    Storage layout: ``{base_path}/{TICKER}/{kind}_{start}_{end}.parquet``
    """

    def __init__(self, base_path: Path | str) -> None:
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _file_path(self, ticker: str, kind: str, start: date, end: date) -> Path:
        # "BSE:RELIANCE.IN" must stay a single directory name
        ticker_dir = self.base_path / ticker.upper().replace(":", "_")
        ticker_dir.mkdir(exist_ok=True)
        return ticker_dir / f"{kind}_{start}_{end}.parquet"

    def get_candles(self, ticker: str, start: date, end: date) -> list[Candle] | None:
        df = self._read(ticker, CANDLES, start, end)
        if df is None:
            return None
        return self._df_to_candles(ticker.upper(), df)

    def store_candles(
        self, ticker: str, candles: list[Candle], start: date, end: date,
    ) -> None:
        if not candles:
            return
        fp = self._file_path(ticker, CANDLES, start, end)
        self._candles_to_df(candles).to_parquet(fp, compression="snappy")

    def get_dividends(
        self, ticker: str, start: date, end: date,
    ) -> list[DividendEvent] | None:
        df = self._read(ticker, DIVIDENDS, start, end)
        if df is None:
            return None
        return self._df_to_dividends(ticker.upper(), df)

    def store_dividends(
        self, ticker: str, events: list[DividendEvent], start: date, end: date,
    ) -> None:
        if not events:
            return
        fp = self._file_path(ticker, DIVIDENDS, start, end)
        self._dividends_to_df(events).to_parquet(fp, compression="snappy")

    def has_data(self, ticker: str, kind: str, start: date, end: date) -> bool:
        return self._file_path(ticker, kind, start, end).exists()

    def clear(self, ticker: str) -> None:
        ticker_dir = self.base_path / ticker.upper().replace(":", "_")
        if ticker_dir.exists():
            shutil.rmtree(ticker_dir)

    def clear_all(self) -> None:
        for d in self.base_path.iterdir():
            if d.is_dir():
                shutil.rmtree(d)

    # ---- helpers ----

    def _read(self, ticker: str, kind: str, start: date, end: date) -> pd.DataFrame | None:
        fp = self._file_path(ticker, kind, start, end)
        if not fp.exists():
            return None
        try:
            return pd.read_parquet(fp)
        except Exception as exc:
            logger.warning("unreadable cache file {}: {}", fp, exc)
            return None

    @staticmethod
    def _candles_to_df(candles: list[Candle]) -> pd.DataFrame:
        records = [
            {
                "date": c.date.isoformat(),
                "open": c.open,
                "high": c.high,
                "low": c.low,
                "close": c.close,
                "volume": c.volume,
            }
            for c in candles
        ]
        return pd.DataFrame(records)

    @staticmethod
    def _df_to_candles(ticker: str, df: pd.DataFrame) -> list[Candle]:
        candles: list[Candle] = []
        for _, row in df.iterrows():
            candles.append(Candle(
                ticker=ticker,
                date=_parse_date(row["date"]),
                open=float(row["open"]),
                high=float(row["high"]),
                low=float(row["low"]),
                close=float(row["close"]),
                volume=int(row["volume"]),
            ))
        return candles

    @staticmethod
    def _dividends_to_df(events: list[DividendEvent]) -> pd.DataFrame:
        records = [
            {
                "ex_date": e.ex_date.isoformat(),
                "amount": e.amount,
                "pay_date": e.pay_date.isoformat() if e.pay_date else None,
                "record_date": e.record_date.isoformat() if e.record_date else None,
                "declaration_date": (
                    e.declaration_date.isoformat() if e.declaration_date else None
                ),
                "dividend_type": e.dividend_type,
                "currency": e.currency,
            }
            for e in events
        ]
        return pd.DataFrame(records)

    @staticmethod
    def _df_to_dividends(ticker: str, df: pd.DataFrame) -> list[DividendEvent]:
        events: list[DividendEvent] = []
        for _, row in df.iterrows():
            events.append(DividendEvent(
                ticker=ticker,
                ex_date=_parse_date(row["ex_date"]),
                amount=float(row["amount"]),
                pay_date=_parse_date(row["pay_date"]) if pd.notna(row.get("pay_date")) else None,
                record_date=(
                    _parse_date(row["record_date"]) if pd.notna(row.get("record_date")) else None
                ),
                declaration_date=(
                    _parse_date(row["declaration_date"])
                    if pd.notna(row.get("declaration_date")) else None
                ),
                dividend_type=str(row.get("dividend_type") or "regular"),
                currency=str(row.get("currency") or "USD"),
            ))
        return events


class MemoryCache(CacheBackend):
    """In-memory TTL cache for candles and dividends.

    Uses LRU eviction when ``max_entries`` is exceeded. Safe to share between
    the fetch threads of one run.
    """

    def __init__(self, ttl_seconds: int = 3600, max_entries: int = 1000) -> None:
        self.ttl = ttl_seconds
        self.max_entries = max_entries
        self._store: OrderedDict[str, tuple[float, Any]] = OrderedDict()
        self._lock = threading.RLock()

    def _key(self, ticker: str, kind: str, start: date, end: date) -> str:
        return f"{ticker.upper()}|{kind}|{start}|{end}"

    def _evict_expired(self) -> None:
        now = time.monotonic()
        expired = [k for k, (ts, _) in self._store.items() if now - ts > self.ttl]
        for k in expired:
            del self._store[k]

    def _evict_lru(self) -> None:
        while len(self._store) > self.max_entries:
            self._store.popitem(last=False)

    def _get(self, key: str) -> Any:
        with self._lock:
            self._evict_expired()
            entry = self._store.get(key)
            if entry is None:
                return None
            ts, value = entry
            if time.monotonic() - ts > self.ttl:
                del self._store[key]
                return None
            self._store.move_to_end(key)  # refresh LRU position
            return list(value)

    def _put(self, key: str, value: list[Any]) -> None:
        with self._lock:
            self._store[key] = (time.monotonic(), tuple(value))
            self._store.move_to_end(key)
            self._evict_lru()

    def get_candles(self, ticker: str, start: date, end: date) -> list[Candle] | None:
        return self._get(self._key(ticker, CANDLES, start, end))

    def store_candles(
        self, ticker: str, candles: list[Candle], start: date, end: date,
    ) -> None:
        self._put(self._key(ticker, CANDLES, start, end), candles)

    def get_dividends(
        self, ticker: str, start: date, end: date,
    ) -> list[DividendEvent] | None:
        return self._get(self._key(ticker, DIVIDENDS, start, end))

    def store_dividends(
        self, ticker: str, events: list[DividendEvent], start: date, end: date,
    ) -> None:
        self._put(self._key(ticker, DIVIDENDS, start, end), events)

    def has_data(self, ticker: str, kind: str, start: date, end: date) -> bool:
        with self._lock:
            self._evict_expired()
            return self._key(ticker, kind, start, end) in self._store

    def clear(self, ticker: str) -> None:
        prefix = f"{ticker.upper()}|"
        with self._lock:
            for k in [k for k in self._store if k.startswith(prefix)]:
                del self._store[k]

    def clear_all(self) -> None:
        with self._lock:
            self._store.clear()


def create_cache(backend: str, cache_dir: str = "data/cache", ttl_seconds: int = 3600) -> CacheBackend:
    """Build the cache backend named by ``backend`` ("parquet", "memory", "none")."""
    if backend == "parquet":
        return ParquetCache(cache_dir)
    if backend == "memory":
        return MemoryCache(ttl_seconds=ttl_seconds)
    return NoCache()


def _parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])
