"""Dividend income attribution by share ownership on each ex-date."""

from __future__ import annotations

import calendar
from datetime import date
from typing import Iterable, Sequence

from loguru import logger

from divbacktest.models.dividend import DividendEvent
from divbacktest.models.frequency import DividendFrequency
from divbacktest.models.income import (
    DividendIncome,
    DividendIncomeRecord,
    IncomeStatus,
    PeriodPayment,
    YearlyDividendHistory,
)
from divbacktest.models.transaction import Transaction

MONTH_LABELS = tuple(calendar.month_abbr[m] for m in range(1, 13))
QUARTER_LABELS = ("Q1", "Q2", "Q3", "Q4")
HALF_LABELS = ("H1", "H2")

# Status reported for a period that holds several events.
_STATUS_RANK = {
    IncomeStatus.PAID: 3,
    IncomeStatus.UPCOMING: 2,
    IncomeStatus.NOT_ELIGIBLE: 1,
    IncomeStatus.PENDING: 0,
}


def shares_owned_on(transactions: Iterable[Transaction], day: date) -> int:
    """Net shares held as of ``day``, counting transactions dated on or before it."""
    return sum(t.signed_quantity for t in transactions if t.transaction_date <= day)


def period_number(day: date, frequency: DividendFrequency | None = None) -> int:
    """Number of the period ``day`` falls in: month, half, year (1) or quarter."""
    if frequency is DividendFrequency.MONTHLY:
        return day.month
    if frequency is DividendFrequency.SEMI_ANNUAL:
        return 1 if day.month <= 6 else 2
    if frequency is DividendFrequency.ANNUAL:
        return 1
    return (day.month - 1) // 3 + 1


def attribute_income(
    transactions: Iterable[Transaction],
    events: Iterable[DividendEvent],
    period_start: date,
    period_end: date,
    *,
    now: date,
    frequency: DividendFrequency | None = None,
) -> DividendIncome:
    """Compute dividend income received over ``[period_start, period_end]``.

    Args:
        transactions: Transactions of one backtest run, in any order.
        events: Dividend events; invalid amounts and events outside the
            window are ignored.
        period_start: First ex-date counted (inclusive).
        period_end: Last ex-date counted (inclusive).
        now: Reference day separating paid from upcoming dividends.
        frequency: Cadence used to number each record's period.
    """
    ordered_tx = sorted(transactions, key=lambda t: t.transaction_date)
    window = sorted(
        (e for e in events if e.amount > 0 and period_start <= e.ex_date <= period_end),
        key=lambda e: e.ex_date,
    )

    details: list[DividendIncomeRecord] = []
    held = 0
    tx_index = 0
    for event in window:
        while tx_index < len(ordered_tx) and ordered_tx[tx_index].transaction_date <= event.ex_date:
            held += ordered_tx[tx_index].signed_quantity
            tx_index += 1

        shares = max(held, 0)
        income = shares * event.amount
        if shares == 0:
            status = IncomeStatus.NOT_ELIGIBLE
        elif event.ex_date <= now:
            status = IncomeStatus.PAID
        else:
            status = IncomeStatus.UPCOMING

        details.append(DividendIncomeRecord(
            ex_date=event.ex_date,
            pay_date=event.pay_date,
            amount_per_share=event.amount,
            shares_owned=shares,
            total_income=income,
            status=status,
            year=event.ex_date.year,
            period=period_number(event.ex_date, frequency),
        ))

    total = sum(r.total_income for r in details)
    logger.debug(
        "attributed {:.2f} dividend income over {} events ({} to {})",
        total, len(details), period_start, period_end,
    )
    return DividendIncome(
        total_dividend_income=total,
        dividend_details=tuple(details),
        total_dividend_periods=len(details),
        periods_with_income=sum(1 for r in details if r.total_income > 0),
    )


def build_dividend_history(
    income: DividendIncome,
    frequency: DividendFrequency,
    period_start: date,
    period_end: date,
) -> tuple[YearlyDividendHistory, ...]:
    """Break attributed income down per calendar year and labelled period.

    Every year overlapping the window gets an entry. Periods without a
    dividend event are reported as pending with a zero amount; missing
    payments are never estimated.
    """
    history: list[YearlyDividendHistory] = []
    for year in range(period_start.year, period_end.year + 1):
        records = [r for r in income.dividend_details if r.ex_date.year == year]
        payments = _year_payments(records, frequency)
        history.append(YearlyDividendHistory(
            year=year,
            frequency=frequency,
            total_amount=round(sum(r.total_income for r in records), 2),
            payments=payments,
            period_start=max(period_start, date(year, 1, 1)),
            period_end=min(period_end, date(year, 12, 31)),
        ))
    return tuple(history)


def _year_payments(
    records: Sequence[DividendIncomeRecord],
    frequency: DividendFrequency,
) -> tuple[PeriodPayment, ...]:
    if frequency is DividendFrequency.IRREGULAR:
        return tuple(
            PeriodPayment(
                period=i,
                label=MONTH_LABELS[r.ex_date.month - 1],
                amount=round(r.total_income, 2),
                status=r.status,
                ex_date=r.ex_date,
            )
            for i, r in enumerate(records, start=1)
        )

    if frequency is DividendFrequency.MONTHLY:
        labels = MONTH_LABELS
    elif frequency is DividendFrequency.SEMI_ANNUAL:
        labels = HALF_LABELS
    elif frequency is DividendFrequency.ANNUAL:
        labels = ("Annual",)
    else:
        labels = QUARTER_LABELS

    payments: list[PeriodPayment] = []
    for number, label in enumerate(labels, start=1):
        members = [r for r in records if period_number(r.ex_date, frequency) == number]
        if members:
            status = max((r.status for r in members), key=_STATUS_RANK.__getitem__)
        else:
            status = IncomeStatus.PENDING
        payments.append(PeriodPayment(
            period=number,
            label=label,
            amount=round(sum(r.total_income for r in members), 2),
            status=status,
        ))
    return tuple(payments)
