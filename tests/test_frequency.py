"""Tests for dividend cadence inference."""

import random
from datetime import date, timedelta

import pytest

from divbacktest.frequency import (
    analyze_frequency,
    coefficient_of_variation,
    interval_confidence,
)
from divbacktest.models.frequency import Confidence, DividendFrequency

from conftest import make_dividend


def _spaced(last: date, gaps_back: list[int]) -> list:
    """Events ending at ``last``, each earlier one ``gap`` days before the previous."""
    dates = [last]
    for gap in gaps_back:
        dates.append(dates[-1] - timedelta(days=gap))
    return [make_dividend(d) for d in reversed(dates)]


class TestCascade:
    def test_monthly_two_years_high(self):
        events = _spaced(date(2024, 12, 15), [30] * 23)
        result = analyze_frequency(events)
        assert result.frequency is DividendFrequency.MONTHLY
        assert result.confidence is Confidence.HIGH
        assert result.days_analyzed == 35

    def test_quarterly_high(self):
        events = _spaced(date(2024, 11, 15), [91] * 11)
        result = analyze_frequency(events)
        assert result.frequency is DividendFrequency.QUARTERLY
        assert result.confidence is Confidence.HIGH
        assert result.reason == "Found 2 payments in last 100 days"

    def test_semi_annual(self):
        events = _spaced(date(2024, 9, 1), [182] * 5)
        result = analyze_frequency(events)
        assert result.frequency is DividendFrequency.SEMI_ANNUAL
        assert result.confidence is Confidence.HIGH

    def test_annual(self):
        events = _spaced(date(2024, 5, 1), [366, 365, 366])
        result = analyze_frequency(events)
        assert result.frequency is DividendFrequency.ANNUAL
        assert result.confidence is Confidence.HIGH
        assert result.sample_size == 1

    def test_single_event_low_confidence(self):
        result = analyze_frequency([make_dividend(date(2024, 3, 1))])
        assert result.frequency is DividendFrequency.ANNUAL
        assert result.confidence is Confidence.LOW

    def test_rules_anchor_on_latest_event(self):
        # Quarterly history whose newest two payments are 30 days apart
        events = _spaced(date(2024, 12, 1), [30] + [91] * 6)
        result = analyze_frequency(events)
        assert result.frequency is DividendFrequency.MONTHLY
        # only one of seven gaps is monthly-sized; dispersion stays under the bar
        assert result.confidence is Confidence.LOW


class TestIrregular:
    def test_erratic_gaps_irregular(self):
        events = _spaced(date(2024, 12, 1), [12, 380, 20, 300, 15, 350, 10])
        result = analyze_frequency(events)
        assert result.frequency is DividendFrequency.IRREGULAR
        assert result.confidence is Confidence.MEDIUM
        assert result.coefficient_of_variation is not None
        assert result.coefficient_of_variation > 0.5
        assert result.sample_size == 8

    def test_random_gaps_irregular(self):
        rng = random.Random(20240601)
        checked = 0
        for _ in range(25):
            gaps = [round(rng.uniform(10, 400)) for _ in range(11)]
            if coefficient_of_variation(gaps) <= 0.5:
                continue
            result = analyze_frequency(_spaced(date(2024, 12, 1), gaps))
            assert result.frequency is DividendFrequency.IRREGULAR, gaps
            assert result.sample_size == 12
            checked += 1
        assert checked > 0

    def test_needs_three_events(self):
        events = _spaced(date(2024, 12, 1), [12])
        result = analyze_frequency(events)
        assert result.frequency is not DividendFrequency.IRREGULAR

    def test_confident_match_wins_over_dispersion(self):
        events = _spaced(date(2024, 12, 15), [30] * 11)
        assert analyze_frequency(events).frequency is DividendFrequency.MONTHLY


class TestFallback:
    def test_no_events_defaults_quarterly(self):
        result = analyze_frequency([])
        assert result.frequency is DividendFrequency.QUARTERLY
        assert result.confidence is Confidence.LOW
        assert result.sample_size == 0

    def test_invalid_amounts_ignored(self):
        events = [make_dividend(date(2024, 1, 15), amount=0.0), make_dividend(date(2024, 2, 15), amount=-1.0)]
        assert analyze_frequency(events).sample_size == 0

    def test_duplicate_ex_dates_collapse(self):
        events = [make_dividend(date(2024, 1, 15)), make_dividend(date(2024, 1, 15))]
        result = analyze_frequency(events)
        assert result.sample_size == 1


class TestWindow:
    def test_future_events_excluded_by_end(self):
        events = _spaced(date(2024, 12, 15), [91] * 8)
        result = analyze_frequency(events, end=date(2024, 10, 1))
        # the newest in-window event is 2024-09-15; 2024-06-16 is 91 days earlier
        assert result.frequency is DividendFrequency.QUARTERLY

    def test_start_bound(self):
        events = _spaced(date(2024, 12, 15), [91] * 8)
        result = analyze_frequency(events, start=date(2025, 1, 1))
        assert result.sample_size == 0

    def test_deterministic(self):
        events = _spaced(date(2024, 12, 1), [12, 380, 20, 300, 15, 350, 10])
        assert analyze_frequency(events) == analyze_frequency(list(reversed(events)))


class TestHelpers:
    def test_interval_confidence_grades(self):
        assert interval_confidence([30, 30, 30, 30, 30], DividendFrequency.MONTHLY) is Confidence.HIGH
        assert interval_confidence([30, 30, 30, 60, 60], DividendFrequency.MONTHLY) is Confidence.MEDIUM
        assert interval_confidence([30, 60, 60], DividendFrequency.MONTHLY) is Confidence.LOW
        assert interval_confidence([30], DividendFrequency.MONTHLY) is Confidence.LOW

    def test_coefficient_of_variation(self):
        assert coefficient_of_variation([30, 30, 30]) == 0.0
        assert coefficient_of_variation([10, 30]) == pytest.approx(0.5)
