"""Backtest request model and input validation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Mapping

from divbacktest.errors import InvalidRequest
from divbacktest.models.timeframe import Timeframe

DEFAULT_QUANTITY = 10


@dataclass(frozen=True)
class BacktestRequest:
    """Validated parameters of one backtest run.

    Attributes:
        ticker: Ticker symbol (upper-cased).
        timeframe: Candle granularity the strategy trades on.
        quantity: Shares bought per red candle.
        start_date: First day of the report window (inclusive).
        end_date: Last day of the report window (inclusive).
    """

    ticker: str
    timeframe: Timeframe
    quantity: int
    start_date: date
    end_date: date

    def __post_init__(self) -> None:
        if not self.ticker or not self.ticker.strip():
            raise InvalidRequest("ticker is required")
        if self.quantity <= 0:
            raise InvalidRequest(
                "quantity must be positive", context={"quantity": self.quantity},
            )
        if self.start_date > self.end_date:
            raise InvalidRequest(
                "start_date must not be after end_date",
                context={"start": self.start_date, "end": self.end_date},
            )

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[str, Any],
        default_quantity: int = DEFAULT_QUANTITY,
    ) -> BacktestRequest:
        """Build a request from loosely-typed input (JSON body, CLI args).

        Accepts ``startDate``/``start_date`` style keys. A missing, invalid or
        non-positive quantity falls back to ``default_quantity``.
        """
        ticker = data.get("ticker")
        if not isinstance(ticker, str) or not ticker.strip():
            raise InvalidRequest("ticker is required", context={"received": dict(data)})

        start = _first(data, "start_date", "startDate")
        end = _first(data, "end_date", "endDate")
        if start is None or end is None:
            raise InvalidRequest(
                "start_date and end_date are required",
                context={"ticker": ticker},
            )

        return cls(
            ticker=ticker.strip().upper(),
            timeframe=Timeframe.parse(data.get("timeframe")),
            quantity=parse_quantity(data.get("quantity"), default_quantity),
            start_date=parse_date(start, "start_date"),
            end_date=parse_date(end, "end_date"),
        )


def parse_quantity(value: Any, default: int = DEFAULT_QUANTITY) -> int:
    """Coerce a share quantity; never returns zero or a negative number."""
    if isinstance(value, bool):
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


def parse_date(value: Any, field_name: str) -> date:
    """Parse a ``date``, ``datetime`` or ISO ``YYYY-MM-DD`` string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        raise InvalidRequest(
            f"{field_name} is not a valid date", context={field_name: value},
        ) from None


def _first(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if data.get(key) not in (None, ""):
            return data[key]
    return None
