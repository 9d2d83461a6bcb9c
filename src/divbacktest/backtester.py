"""Backtester: central orchestrator with cache + provider fallback.

One run fetches daily candles (over a widened window) and dividend events
(over an extended look-back) concurrently, resamples the candles to the
requested timeframe, replays the red-candle strategy, infers the dividend
cadence and attributes dividend income by ownership on each ex-date.
"""

from __future__ import annotations

import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from datetime import date, datetime, timezone
from typing import Any, Callable, Iterable, Sequence
from uuid import uuid4

from dateutil.relativedelta import relativedelta
from loguru import logger

from divbacktest.cache import CacheBackend, create_cache
from divbacktest.config import BacktestConfig, ProviderType
from divbacktest.errors import (
    BacktestError,
    BacktestErrorCode,
    BacktestTimeout,
    NoDataAvailable,
    ProviderFailure,
)
from divbacktest.frequency import analyze_frequency
from divbacktest.income import attribute_income, build_dividend_history
from divbacktest.models.candle import Candle
from divbacktest.models.dividend import DividendEvent
from divbacktest.models.request import BacktestRequest, parse_date
from divbacktest.models.result import BacktestResult
from divbacktest.models.timeframe import Timeframe
from divbacktest.providers import create_provider
from divbacktest.providers.base import BaseDataProvider
from divbacktest.quality import clean_dividends, coverage_ratio, validate_candles
from divbacktest.resample import period_start, resample
from divbacktest.strategy import simulate

# (before, after) widening of the candle fetch window per timeframe
FETCH_PADDING: dict[Timeframe, tuple[relativedelta, relativedelta]] = {
    Timeframe.DAILY: (relativedelta(), relativedelta()),
    Timeframe.WEEKLY: (relativedelta(weeks=2), relativedelta(weeks=1)),
    Timeframe.MONTHLY: (relativedelta(months=2), relativedelta(months=1)),
    Timeframe.QUARTERLY: (relativedelta(months=6), relativedelta(months=3)),
    Timeframe.SEMI_ANNUAL: (relativedelta(months=12), relativedelta(months=6)),
    Timeframe.ANNUAL: (relativedelta(years=2), relativedelta(years=1)),
}

DEFAULT_HISTORY_YEARS = 5

# Cadence is inferred from the most recent years only
FREQUENCY_WINDOW_YEARS = 2

REASON_FOUND = "Found {} dividend payments"
REASON_NONE = "No dividend payments found"
REASON_FAILED = "Failed to fetch dividend data"


def fetch_window(start: date, end: date, timeframe: Timeframe) -> tuple[date, date]:
    """Widen ``[start, end]`` so the first and last buckets are complete."""
    before, after = FETCH_PADDING[timeframe]
    return start - before, end + after


def trim_to_window(
    candles: Iterable[Candle], start: date, end: date, timeframe: Timeframe,
) -> list[Candle]:
    """Keep candles whose period overlaps ``[start, end]``.

    Daily candles must fall inside the window. A resampled candle is kept
    when its bucket starts on or before ``end`` and its last trading day is
    on or after ``start``.
    """
    period = timeframe.period
    if period is None:
        return [c for c in candles if start <= c.date <= end]
    return [c for c in candles if period_start(c.date, period) <= end and c.date >= start]


class Backtester:
    """Central orchestrator: cache -> provider -> validate -> fallback -> simulate.

    Usage::

        from divbacktest import create_backtester_from_env
        bt = create_backtester_from_env()
        result = bt.run_backtest("KO", "monthly", 10, date(2022, 1, 1), date(2023, 12, 31))
        report = result.to_dict()
    """

    def __init__(
        self,
        config: BacktestConfig,
        providers: Sequence[BaseDataProvider] | None = None,
        cache: CacheBackend | None = None,
        clock: Callable[[], date] | None = None,
    ) -> None:
        self.config = config
        self.clock = clock or date.today

        # Build provider chain
        self.providers: list[BaseDataProvider]
        if providers is not None:
            self.providers = list(providers)
        else:
            self.providers = []
            for pt in config.providers:
                kwargs: dict[str, Any] = {}
                if pt is ProviderType.TWELVEDATA:
                    kwargs["api_key"] = config.twelvedata_api_key
                    kwargs["timeout"] = config.fetch_timeout_seconds
                elif pt is ProviderType.POLYGON:
                    kwargs["api_key"] = config.polygon_api_key
                    kwargs["timeout"] = config.fetch_timeout_seconds
                self.providers.append(create_provider(pt, **kwargs))

        # Build cache
        self.cache: CacheBackend = cache if cache is not None else create_cache(
            config.cache_backend, config.cache_dir, config.cache_ttl_seconds,
        )

    # -------------------------------------------------------------- candles

    def get_daily_candles(self, ticker: str, start: date, end: date) -> list[Candle]:
        """Get daily candles: cache -> provider chain -> validate -> store.

        A cached series covering less than ``config.min_coverage_ratio`` of
        the expected trading days is refetched. Retryable errors fall through
        to the next provider; non-retryable errors are raised immediately.
        Returns an empty list when every provider answered without data.
        """
        # 1. Cache hit?
        cached = self.cache.get_candles(ticker, start, end)
        if cached is not None:
            ratio = coverage_ratio(cached, start, min(end, self.clock()))
            if ratio >= self.config.min_coverage_ratio:
                return cached
            logger.info(
                "cached candles for {} cover {:.0%} of {} to {}, refetching",
                ticker, ratio, start, end,
            )

        # 2. Try providers
        last_error: BacktestError | None = None
        for provider in self.providers:
            if "candles" not in provider.capabilities():
                continue
            try:
                candles = provider.get_daily_candles(ticker, start, end)
                if not candles:
                    logger.info("{} returned no candles for {}", provider.name, ticker)
                    continue

                # 3. Quality gate
                if self.config.validate:
                    result = validate_candles(candles)
                    if not result.passed:
                        msgs = "; ".join(c.message for c in result.failed_checks)
                        raise BacktestError(
                            f"Validation failed: {msgs}",
                            code=BacktestErrorCode.VALIDATION_FAILED,
                            retryable=True,
                        )

                # 4. Store in cache
                self.cache.store_candles(ticker, candles, start, end)
                return candles

            except BacktestError as e:
                if not e.retryable:
                    raise
                logger.bind(ticker=ticker, stage="fetch_candles").warning(
                    "{} failed: {}", provider.name, e,
                )
                last_error = e
                continue
            except Exception as exc:
                last_error = _unexpected_failure(provider, exc, ticker, "fetch_candles")
                continue

        if cached:
            logger.warning(
                "no fresh candles for {}, using {} cached candles", ticker, len(cached),
            )
            return cached
        if last_error is None:
            return []
        raise ProviderFailure(
            f"All providers failed: {last_error.message}",
            code=last_error.code,
            context={"ticker": ticker, "start": start, "end": end, "stage": "fetch_candles"},
        ) from last_error

    # ------------------------------------------------------------ dividends

    def get_dividends(self, ticker: str, start: date, end: date) -> list[DividendEvent]:
        """Get dividend events with ex-date in ``[start, end]``, cleaned and sorted."""
        cached = self.cache.get_dividends(ticker, start, end)
        if cached is not None:
            return cached

        last_error: BacktestError | None = None
        for provider in self.providers:
            if "dividends" not in provider.capabilities():
                continue
            try:
                events = clean_dividends(provider.get_dividends(ticker, start, end))
            except NotImplementedError:
                continue
            except BacktestError as e:
                if not e.retryable:
                    raise
                logger.bind(ticker=ticker, stage="fetch_dividends").warning(
                    "{} failed: {}", provider.name, e,
                )
                last_error = e
                continue
            except Exception as exc:
                last_error = _unexpected_failure(provider, exc, ticker, "fetch_dividends")
                continue
            self.cache.store_dividends(ticker, events, start, end)
            return events

        if last_error is not None:
            raise ProviderFailure(
                f"All providers failed: {last_error.message}",
                code=last_error.code,
                context={"ticker": ticker, "start": start, "end": end, "stage": "fetch_dividends"},
            ) from last_error
        return []

    # ------------------------------------------------------------- backtest

    def run_backtest(
        self,
        ticker: str,
        timeframe: Timeframe | str | None = None,
        quantity: Any = None,
        start_date: date | str | None = None,
        end_date: date | str | None = None,
        session_id: str | None = None,
    ) -> BacktestResult:
        """Validate loose arguments and run one backtest.

        ``end_date`` defaults to today and ``start_date`` to five years
        before it; ``quantity`` falls back to ``config.default_quantity``.
        """
        end = parse_date(end_date, "end_date") if end_date is not None else self.clock()
        start = start_date
        if start is None:
            start = end - relativedelta(years=DEFAULT_HISTORY_YEARS)
        request = BacktestRequest.from_mapping(
            {
                "ticker": ticker,
                "timeframe": timeframe,
                "quantity": quantity,
                "start_date": start,
                "end_date": end,
            },
            default_quantity=self.config.default_quantity,
        )
        return self.run(request, session_id=session_id)

    def run(self, request: BacktestRequest, session_id: str | None = None) -> BacktestResult:
        """Run one backtest for a validated request.

        Raises:
            NoDataAvailable: No candles for the ticker and window.
            BacktestTimeout: The run exceeded ``config.deadline_seconds``.
            BacktestError: A non-retryable provider error (e.g. bad API key).
        """
        session_id = session_id or str(uuid4())
        now = self.clock()
        ticker = request.ticker
        start, end = request.start_date, request.end_date
        log = logger.bind(ticker=ticker, session_id=session_id)
        log.info(
            "starting {} backtest for {} from {} to {}, {} shares per signal",
            request.timeframe.value, ticker, start, end, request.quantity,
        )

        candle_start, candle_end = fetch_window(start, end, request.timeframe)
        dividend_start = start - relativedelta(years=self.config.dividend_lookback_years)
        daily, events, dividends_failed = self._fetch(
            ticker, (candle_start, candle_end), (dividend_start, end),
        )

        context = {"ticker": ticker, "start": start, "end": end, "stage": "candles"}
        if not daily:
            raise NoDataAvailable("No data available for the symbol in the given period", context)

        # Resample days up to ``end``, then re-trim to the requested window
        period = request.timeframe.period
        daily = [c for c in daily if c.date <= end]
        candles = daily if period is None else resample(daily, period)
        candles = trim_to_window(candles, start, end, request.timeframe)
        if not candles:
            raise NoDataAvailable("No candles inside the requested window", context)

        sim = simulate(
            candles, request.quantity, timeframe=request.timeframe, session_id=session_id,
        )

        analysis_end = min(end, now)
        analysis = analyze_frequency(
            events,
            start=analysis_end - relativedelta(years=FREQUENCY_WINDOW_YEARS),
            end=analysis_end,
        )
        report_events = [e for e in events if start <= e.ex_date <= end]
        income = attribute_income(
            sim.transactions, report_events, start, end,
            now=now, frequency=analysis.frequency,
        )
        history = build_dividend_history(income, analysis.frequency, start, end)

        # Metrics; every division guarded to 0
        total_value = sim.total_shares * sim.last_price
        pnl = total_value - sim.total_investment
        per_year = analysis.frequency.payments_per_year
        latest = report_events[-1] if report_events else None
        annual_dividend = latest.amount * per_year if latest else 0.0
        ttm_cutoff = end - relativedelta(months=12)
        ttm_sum = sum(e.amount for e in events if ttm_cutoff < e.ex_date <= end)

        if dividends_failed:
            reason = REASON_FAILED
        elif events:
            reason = REASON_FOUND.format(len(events))
        else:
            reason = REASON_NONE

        result = BacktestResult(
            request=request,
            session_id=session_id,
            total_shares=sim.total_shares,
            total_investment=sim.total_investment,
            total_value_today=total_value,
            average_cost=sim.average_cost,
            last_price=sim.last_price,
            pnl=pnl,
            pnl_with_dividends=pnl + income.total_dividend_income,
            total_dividend_income=income.total_dividend_income,
            last_dividend_yield=_ratio_percent(annual_dividend, sim.last_price),
            ttm_dividend_yield=_ratio_percent(ttm_sum, sim.last_price),
            yield_on_cost=_ratio_percent(annual_dividend, sim.average_cost),
            has_dividends=bool(events),
            dividend_reason=reason,
            frequency_analysis=analysis,
            dividend_income=income,
            dividend_history=history,
            transactions=sim.transactions,
            red_candle_periods=sim.red_candle_periods,
            total_candle_periods=sim.total_periods,
            processed_at=datetime.now(timezone.utc),
        )
        log.info(
            "backtest done: {} buys, pnl {:.2f}, dividends {:.2f} ({} {})",
            len(sim.transactions), pnl, income.total_dividend_income,
            analysis.frequency.value, analysis.confidence.value,
        )
        return result

    # --------------------------------------------------------------- cache

    def clear_cache(self, ticker: str) -> None:
        self.cache.clear(ticker)

    def clear_all_cache(self) -> None:
        self.cache.clear_all()

    # ------------------------------------------------------------ internal

    def _fetch(
        self,
        ticker: str,
        candle_window: tuple[date, date],
        dividend_window: tuple[date, date],
    ) -> tuple[list[Candle], list[DividendEvent], bool]:
        """Fetch candles and dividends concurrently under the run deadline."""
        deadline = time.monotonic() + self.config.deadline_seconds
        pool = ThreadPoolExecutor(max_workers=2, thread_name_prefix="divbacktest-fetch")
        try:
            candle_future = pool.submit(self.get_daily_candles, ticker, *candle_window)
            dividend_future = pool.submit(self.get_dividends, ticker, *dividend_window)
            fetch_deadline = time.monotonic() + self.config.fetch_timeout_seconds

            try:
                daily = self._await(candle_future, fetch_deadline, deadline, "fetch_candles", ticker)
            except ProviderFailure as exc:
                raise NoDataAvailable(
                    "No data available for the symbol in the given period",
                    {**exc.context, "cause": exc.code.value},
                ) from exc

            dividends_failed = False
            try:
                events = self._await(
                    dividend_future, fetch_deadline, deadline, "fetch_dividends", ticker,
                )
            except BacktestTimeout:
                raise
            except BacktestError as exc:
                logger.bind(ticker=ticker, stage="fetch_dividends").warning(
                    "dividend fetch failed, assuming no dividends: {}", exc,
                )
                events, dividends_failed = [], True
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        return daily, events, dividends_failed

    @staticmethod
    def _await(
        future: Future,
        fetch_deadline: float,
        run_deadline: float,
        stage: str,
        ticker: str,
    ) -> Any:
        remaining = min(fetch_deadline, run_deadline) - time.monotonic()
        try:
            return future.result(timeout=max(remaining, 0.0))
        except FutureTimeout:
            future.cancel()
            context = {"ticker": ticker, "stage": stage}
            if run_deadline <= fetch_deadline or time.monotonic() >= run_deadline:
                raise BacktestTimeout("Backtest deadline exceeded", context) from None
            raise ProviderFailure(
                "Fetch timed out", code=BacktestErrorCode.TIMEOUT, context=context,
            ) from None


def _unexpected_failure(
    provider: BaseDataProvider, exc: Exception, ticker: str, stage: str,
) -> BacktestError:
    """Wrap a non-BacktestError raised by a provider as a retryable failure."""
    logger.bind(ticker=ticker, stage=stage).opt(exception=exc).warning(
        "{} raised {}: {}", provider.name, type(exc).__name__, exc,
    )
    error = BacktestError(
        f"{provider.name} failed: {exc}",
        code=BacktestErrorCode.PROVIDER_ERROR,
        retryable=True,
        context={"ticker": ticker, "provider": provider.name, "stage": stage},
    )
    error.__cause__ = exc
    return error


def _ratio_percent(numerator: float, denominator: float) -> float:
    if not denominator:
        return 0.0
    return numerator / denominator * 100
