"""Backtest error types."""

from __future__ import annotations

from enum import Enum
from typing import Any


class BacktestErrorCode(Enum):
    """Error classification codes."""

    INVALID_REQUEST = "invalid_request"
    INVALID_CONFIG = "invalid_config"
    NO_DATA = "no_data"
    PROVIDER_ERROR = "provider_error"
    RATE_LIMITED = "rate_limited"
    AUTH_FAILED = "auth_failed"
    NOT_FOUND = "not_found"
    TIMEOUT = "timeout"
    VALIDATION_FAILED = "validation_failed"


class BacktestError(Exception):
    """Backtest exception with error code, retryable flag and context.

    Attributes:
        message: Human-readable error description.
        code: Structured error code for programmatic handling.
        retryable: Whether the caller may move on to another provider.
        context: Diagnostic details (ticker, window, stage).
    """

    def __init__(
        self,
        message: str,
        code: BacktestErrorCode = BacktestErrorCode.PROVIDER_ERROR,
        retryable: bool = False,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.retryable = retryable
        self.context = dict(context or {})

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} ({details})"


class InvalidRequest(BacktestError):
    """Missing ticker/dates or an unknown timeframe."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message, BacktestErrorCode.INVALID_REQUEST, False, context)


class ConfigError(BacktestError):
    """Unknown provider or cache backend, or a malformed setting."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message, BacktestErrorCode.INVALID_CONFIG, False, context)


class NoDataAvailable(BacktestError):
    """No candles for the requested ticker and window."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message, BacktestErrorCode.NO_DATA, False, context)


class ProviderFailure(BacktestError):
    """Every configured provider failed for one fetch."""

    def __init__(
        self,
        message: str,
        code: BacktestErrorCode = BacktestErrorCode.PROVIDER_ERROR,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, False, context)


class BacktestTimeout(BacktestError):
    """The overall backtest deadline was exceeded."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message, BacktestErrorCode.TIMEOUT, False, context)
