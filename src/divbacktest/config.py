"""Backtest configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from dotenv import load_dotenv

from divbacktest.errors import ConfigError


class ProviderType(Enum):
    """Supported data provider backends."""

    TWELVEDATA = "twelvedata"
    POLYGON = "polygon"
    MOCK = "mock"


CACHE_BACKENDS = ("parquet", "memory", "none")


@dataclass
class BacktestConfig:
    """Configuration for Backtester.

    Attributes:
        providers: Provider backends ordered by priority.
        cache_backend: Cache type, one of "parquet", "memory" or "none".
        cache_dir: Directory for parquet cache files.
        cache_ttl_seconds: TTL for in-memory cache entries.
        validate: Whether to run quality checks on fetched candles.
        twelvedata_api_key: Twelve Data API key.
        polygon_api_key: Polygon.io API key.
        fetch_timeout_seconds: Bound on each candle or dividend fetch.
        deadline_seconds: Bound on one whole backtest run.
        dividend_lookback_years: Extra history fetched for frequency analysis.
        default_quantity: Shares per signal when a request omits it.
        min_coverage_ratio: Share of expected trading days a cached series
            must hold to be served without refetching.
        log_level: Level for ``divbacktest.log.setup_logging``.
    """

    providers: list[ProviderType] = field(
        default_factory=lambda: [ProviderType.TWELVEDATA]
    )
    cache_backend: str = "parquet"
    cache_dir: str = "data/cache"
    cache_ttl_seconds: int = 3600
    validate: bool = True

    twelvedata_api_key: str | None = None
    polygon_api_key: str | None = None

    fetch_timeout_seconds: float = 10.0
    deadline_seconds: float = 60.0
    dividend_lookback_years: int = 2
    default_quantity: int = 10
    min_coverage_ratio: float = 0.8
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.cache_backend not in CACHE_BACKENDS:
            raise ConfigError(
                f"Unknown cache backend: {self.cache_backend!r}",
                context={"valid": list(CACHE_BACKENDS)},
            )
        if self.fetch_timeout_seconds <= 0 or self.deadline_seconds <= 0:
            raise ConfigError("timeouts must be positive")
        if self.default_quantity <= 0:
            raise ConfigError("default_quantity must be positive")

    @classmethod
    def from_env(cls) -> BacktestConfig:
        """Build a config from environment variables (and ``.env`` if present).

        Environment variables:
            DIVBACKTEST_PROVIDERS: Comma-separated provider list (default: "twelvedata").
            DIVBACKTEST_CACHE: Cache backend (default: "parquet").
            DIVBACKTEST_CACHE_DIR: Cache directory (default: "data/cache").
            DIVBACKTEST_CACHE_TTL: Memory cache TTL in seconds (default: 3600).
            DIVBACKTEST_VALIDATE: "0"/"false" disables candle quality checks.
            DIVBACKTEST_FETCH_TIMEOUT: Per-fetch timeout in seconds (default: 10).
            DIVBACKTEST_DEADLINE: Per-run deadline in seconds (default: 60).
            DIVBACKTEST_DEFAULT_QUANTITY: Shares per signal (default: 10).
            TWELVEDATA_API_KEY: Twelve Data API key.
            POLYGON_API_KEY: Polygon.io API key.
            LOG_LEVEL: Log level (default: "INFO").
        """
        load_dotenv()
        return cls(
            providers=parse_providers(os.getenv("DIVBACKTEST_PROVIDERS", "twelvedata")),
            cache_backend=os.getenv("DIVBACKTEST_CACHE", "parquet").strip().lower(),
            cache_dir=os.getenv("DIVBACKTEST_CACHE_DIR", "data/cache").strip(),
            cache_ttl_seconds=_env_number("DIVBACKTEST_CACHE_TTL", "3600", int),
            validate=_parse_bool(os.getenv("DIVBACKTEST_VALIDATE"), True),
            twelvedata_api_key=os.getenv("TWELVEDATA_API_KEY") or None,
            polygon_api_key=os.getenv("POLYGON_API_KEY") or None,
            fetch_timeout_seconds=_env_number("DIVBACKTEST_FETCH_TIMEOUT", "10", float),
            deadline_seconds=_env_number("DIVBACKTEST_DEADLINE", "60", float),
            default_quantity=_env_number("DIVBACKTEST_DEFAULT_QUANTITY", "10", int),
            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        )


def parse_providers(value: str) -> list[ProviderType]:
    """Parse a comma-separated provider list, keeping order."""
    names = [name.strip().lower() for name in value.split(",") if name.strip()]
    try:
        providers = [ProviderType(name) for name in names]
    except ValueError:
        raise ConfigError(
            f"Unknown provider in {value!r}",
            context={"valid": [p.value for p in ProviderType]},
        ) from None
    if not providers:
        raise ConfigError("at least one provider is required")
    return providers


def _env_number(name: str, default: str, kind: type) -> Any:
    raw = os.getenv(name, default).strip()
    try:
        return kind(raw)
    except ValueError:
        raise ConfigError(
            f"{name} must be a number, got {raw!r}", context={"variable": name},
        ) from None


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() not in ("0", "false", "no", "off")
