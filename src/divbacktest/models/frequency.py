"""Dividend frequency analysis model."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class DividendFrequency(Enum):
    """Inferred dividend payment cadence."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMI_ANNUAL = "semi-annual"
    ANNUAL = "annual"
    IRREGULAR = "irregular"

    @property
    def payments_per_year(self) -> int:
        # Irregular payers are annualised as if quarterly.
        return _PAYMENTS_PER_YEAR[self]


_PAYMENTS_PER_YEAR: dict[DividendFrequency, int] = {
    DividendFrequency.MONTHLY: 12,
    DividendFrequency.QUARTERLY: 4,
    DividendFrequency.SEMI_ANNUAL: 2,
    DividendFrequency.ANNUAL: 1,
    DividendFrequency.IRREGULAR: 4,
}


class Confidence(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class FrequencyAnalysis:
    """Result of dividend cadence inference.

    Attributes:
        frequency: Inferred cadence.
        confidence: How regular the supporting intervals were.
        reason: Human-readable explanation.
        sample_size: Number of events the decision was based on.
        average_interval_days: Mean gap between the events considered.
        days_analyzed: Look-back window of the matching cascade rule.
        coefficient_of_variation: Gap dispersion, when irregularity was checked.
    """

    frequency: DividendFrequency
    confidence: Confidence
    reason: str
    sample_size: int
    average_interval_days: float | None = None
    days_analyzed: int | None = None
    coefficient_of_variation: float | None = None
