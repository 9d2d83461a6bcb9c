"""Dividend income attribution models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum

from divbacktest.models.frequency import DividendFrequency


class IncomeStatus(Enum):
    PAID = "paid"
    UPCOMING = "upcoming"
    PENDING = "pending"
    NOT_ELIGIBLE = "not_eligible"


@dataclass(frozen=True)
class DividendIncomeRecord:
    """Income received from one dividend event.

    Attributes:
        ex_date: Ex-dividend date.
        pay_date: Payment date, when known.
        amount_per_share: Dividend per share.
        shares_owned: Shares held as of the ex-date.
        total_income: ``shares_owned * amount_per_share``.
        status: paid / upcoming / not_eligible.
        year: Calendar year of the ex-date.
        period: Period number within the year (month, quarter or half).
    """

    ex_date: date
    pay_date: date | None
    amount_per_share: float
    shares_owned: int
    total_income: float
    status: IncomeStatus
    year: int
    period: int


@dataclass(frozen=True)
class DividendIncome:
    """Aggregate dividend income over a report window."""

    total_dividend_income: float
    dividend_details: tuple[DividendIncomeRecord, ...]
    total_dividend_periods: int
    periods_with_income: int


@dataclass(frozen=True)
class PeriodPayment:
    """One labelled period (month, quarter, ...) of a yearly history."""

    period: int
    label: str
    amount: float
    status: IncomeStatus
    ex_date: date | None = None


@dataclass(frozen=True)
class YearlyDividendHistory:
    """Dividend income for one calendar year, broken down by period."""

    year: int
    frequency: DividendFrequency
    total_amount: float
    payments: tuple[PeriodPayment, ...]
    period_start: date
    period_end: date

    @property
    def periods_in_year(self) -> int:
        return len(self.payments)

    @property
    def periods_with_income(self) -> int:
        return sum(1 for p in self.payments if p.amount > 0)
