"""Dividend cadence inference from ex-dividend dates.

The analyzer walks an ordered rule cascade anchored on the most recent
ex-date: at least 2 payments in the last 35 days is monthly, 2 in 100 days
quarterly, 2 in 200 days semi-annual, 1 in 365 days annual. Confidence comes
from how many successive gaps fall inside the expected interval window of
the matched cadence. A low-confidence match gives way to an irregular
classification when gap dispersion is high.
"""

from __future__ import annotations

from datetime import date, timedelta
from statistics import fmean, pstdev
from typing import Iterable

from loguru import logger

from divbacktest.models.dividend import DividendEvent
from divbacktest.models.frequency import Confidence, DividendFrequency, FrequencyAnalysis

# (days back from the latest ex-date, minimum payments, cadence), first match wins
CASCADE: tuple[tuple[int, int, DividendFrequency], ...] = (
    (35, 2, DividendFrequency.MONTHLY),
    (100, 2, DividendFrequency.QUARTERLY),
    (200, 2, DividendFrequency.SEMI_ANNUAL),
    (365, 1, DividendFrequency.ANNUAL),
)

# Inclusive [min, max] gap in days considered regular for each cadence.
EXPECTED_INTERVALS: dict[DividendFrequency, tuple[int, int]] = {
    DividendFrequency.MONTHLY: (25, 40),
    DividendFrequency.QUARTERLY: (75, 105),
    DividendFrequency.SEMI_ANNUAL: (165, 205),
    DividendFrequency.ANNUAL: (340, 385),
}

HIGH_CONFIDENCE_RATIO = 0.8
MEDIUM_CONFIDENCE_RATIO = 0.6
IRREGULAR_CV_THRESHOLD = 0.5
DEFAULT_FREQUENCY = DividendFrequency.QUARTERLY


def analyze_frequency(
    events: Iterable[DividendEvent],
    *,
    start: date | None = None,
    end: date | None = None,
) -> FrequencyAnalysis:
    """Infer the dividend cadence of one ticker.

    Args:
        events: Dividend events; invalid amounts and duplicate ex-dates are
            ignored.
        start: Earliest ex-date to consider (inclusive).
        end: Latest ex-date to consider (inclusive). Pass the analysis
            "now" here to keep announced-but-future events out.

    Returns:
        The inferred cadence. With no usable events the result is the
        quarterly default with low confidence and ``sample_size == 0``.
    """
    ex_dates = _ex_dates_desc(events, start, end)

    match = _match_cascade(ex_dates)
    if match is not None and match.confidence is not Confidence.LOW:
        return match

    irregular = _check_irregular(ex_dates)
    if irregular is not None:
        logger.debug(
            "irregular dividend pattern: cv={:.2f} over {} events",
            irregular.coefficient_of_variation, irregular.sample_size,
        )
        return irregular

    if match is not None:
        return match

    return FrequencyAnalysis(
        frequency=DEFAULT_FREQUENCY,
        confidence=Confidence.LOW,
        reason="No dividend data, defaulting to quarterly",
        sample_size=len(ex_dates),
    )


def interval_confidence(gaps: list[int], frequency: DividendFrequency) -> Confidence:
    """Grade how regular ``gaps`` are for ``frequency``.

    Fewer than two gaps is always low confidence.
    """
    if len(gaps) < 2:
        return Confidence.LOW
    lo, hi = EXPECTED_INTERVALS[frequency]
    ratio = sum(1 for g in gaps if lo <= g <= hi) / len(gaps)
    if ratio >= HIGH_CONFIDENCE_RATIO:
        return Confidence.HIGH
    if ratio >= MEDIUM_CONFIDENCE_RATIO:
        return Confidence.MEDIUM
    return Confidence.LOW


def coefficient_of_variation(gaps: list[int]) -> float:
    """Population standard deviation of ``gaps`` over their mean."""
    avg = fmean(gaps)
    if avg == 0:
        return 0.0
    return pstdev(gaps) / avg


# ------------------------------------------------------------------ internal


def _ex_dates_desc(
    events: Iterable[DividendEvent],
    start: date | None,
    end: date | None,
) -> list[date]:
    dates = {
        e.ex_date
        for e in events
        if e.amount > 0
        and (start is None or e.ex_date >= start)
        and (end is None or e.ex_date <= end)
    }
    return sorted(dates, reverse=True)


def _gaps(ex_dates_desc: list[date]) -> list[int]:
    return [(a - b).days for a, b in zip(ex_dates_desc, ex_dates_desc[1:])]


def _match_cascade(ex_dates: list[date]) -> FrequencyAnalysis | None:
    if not ex_dates:
        return None

    last = ex_dates[0]
    history_gaps = _gaps(ex_dates)
    for days_back, min_count, frequency in CASCADE:
        cutoff = last - timedelta(days=days_back)
        matched = [d for d in ex_dates if d >= cutoff]
        if len(matched) < min_count:
            continue

        gaps = _gaps(matched)
        if len(gaps) < 2:
            # Too few gaps inside the window; grade the whole history instead.
            gaps = history_gaps
        confidence = interval_confidence(gaps, frequency)
        logger.debug(
            "{} rule matched: {} payments in last {} days, confidence {}",
            frequency.value, len(matched), days_back, confidence.value,
        )
        return FrequencyAnalysis(
            frequency=frequency,
            confidence=confidence,
            reason=f"Found {len(matched)} payments in last {days_back} days",
            sample_size=len(matched),
            average_interval_days=round(fmean(gaps), 1) if gaps else None,
            days_analyzed=days_back,
        )
    return None


def _check_irregular(ex_dates: list[date]) -> FrequencyAnalysis | None:
    if len(ex_dates) < 3:
        return None

    gaps = _gaps(ex_dates)
    cv = coefficient_of_variation(gaps)
    if cv <= IRREGULAR_CV_THRESHOLD:
        return None
    return FrequencyAnalysis(
        frequency=DividendFrequency.IRREGULAR,
        confidence=Confidence.MEDIUM,
        reason="Irregular payment pattern detected",
        sample_size=len(ex_dates),
        average_interval_days=round(fmean(gaps), 1),
        coefficient_of_variation=round(cv, 2),
    )
