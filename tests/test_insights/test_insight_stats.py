"""Tests for award_forecaster.insights.stats."""

from __future__ import annotations

import pytest

from award_forecaster.features.monthly_agg import build_monthly_history
from award_forecaster.insights.stats import (
    build_country_stats,
    build_macro_alignment,
    build_timeline_stats,
    compute_median,
    quarter_over_quarter,
)
from award_forecaster.models.insight import CountryAggregate
from award_forecaster.models.macro import MacroBudgetEntry
from award_forecaster.models.payload import AggregateInput, NoticeInput
from award_forecaster.models.series import MetricMode


def _count_history(counts: list[int]):
    months = [f"2024-{m:02d}" for m in range(1, len(counts) + 1)]
    return build_monthly_history(
        [AggregateInput(month=m, notice_count=c) for m, c in zip(months, counts)]
    )


# ── Median ────────────────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "values, expected",
    [([], 0.0), ([5], 5.0), ([3, 1, 2], 2.0), ([4, 1, 3, 2], 2.5)],
)
def test_compute_median(values, expected):
    assert compute_median(values) == expected


# ── Spike ─────────────────────────────────────────────────────────────────────


class TestSpike:
    def test_last_bucket_spike_over_median(self):
        stats = build_timeline_stats(_count_history([2, 2, 2, 2, 20]), MetricMode.COUNT)
        assert stats.median == 2
        assert stats.spike is not None
        assert stats.spike.key == "2024-05"
        assert stats.spike.label == "May 2024"
        # (20 - 2) / 2
        assert stats.spike.delta_pct == pytest.approx(900.0)

    def test_no_spike_when_median_is_zero(self):
        stats = build_timeline_stats(_count_history([0, 0, 0, 5]), MetricMode.COUNT)
        assert stats.median == 0
        assert stats.spike is None

    def test_no_spike_for_flat_series(self):
        stats = build_timeline_stats(_count_history([4, 4, 4]), MetricMode.COUNT)
        assert stats.spike is None

    def test_earliest_month_wins_a_tie(self):
        stats = build_timeline_stats(_count_history([1, 9, 1, 9, 1]), MetricMode.COUNT)
        assert stats.spike.key == "2024-02"


# ── Quarter change ────────────────────────────────────────────────────────────


class TestQuarterChange:
    def test_needs_two_full_windows(self):
        assert quarter_over_quarter([1, 2, 3, 4, 5]) is None

    def test_contraction(self):
        change = quarter_over_quarter([10, 10, 10, 5, 5, 5])
        assert change.delta_pct == pytest.approx(-50.0)
        assert change.is_contraction

    def test_growth_is_not_contraction(self):
        change = quarter_over_quarter([1, 1, 1, 2, 2, 2])
        assert change.delta_pct == pytest.approx(100.0)
        assert not change.is_contraction

    def test_uses_only_last_six(self):
        change = quarter_over_quarter([100, 100, 4, 4, 4, 2, 2, 2])
        assert change.baseline_mean == pytest.approx(4.0)
        assert change.recent_mean == pytest.approx(2.0)

    def test_zero_baseline_gives_none(self):
        assert quarter_over_quarter([0, 0, 0, 3, 3, 3]) is None


# ── Country stats ─────────────────────────────────────────────────────────────


class TestCountryStats:
    def test_top_country_share(self, country_notices):
        stats = build_country_stats(country_notices)
        assert stats.top.country == "DEU"
        assert stats.top.value == 150_000
        assert stats.top.count == 2
        assert stats.top.share == pytest.approx(93.75)
        assert stats.total_value == 160_000
        assert [c.country for c in stats.ranked] == ["DEU", "ITA"]

    def test_surprising_country_under_threshold(self, country_notices):
        stats = build_country_stats(country_notices)
        assert stats.surprising.country == "ITA"
        assert stats.surprising.share == pytest.approx(6.25)

    def test_missing_country_is_unknown(self):
        stats = build_country_stats(
            [
                NoticeInput(award_date="2024-01-01", contract_value=10),
                NoticeInput(award_date="2024-01-02", contract_value=5, country="  "),
            ]
        )
        assert stats.top.country == "Unknown"
        assert stats.top.count == 2

    def test_zero_share_is_never_surprising(self):
        stats = build_country_stats(
            [
                NoticeInput(award_date="2024-01-01", contract_value=100, country="POL"),
                NoticeInput(award_date="2024-01-01", contract_value=None, country="HUN"),
            ]
        )
        hun = next(c for c in stats.ranked if c.country == "HUN")
        assert hun.share == 0
        assert stats.surprising is None

    def test_no_notices(self):
        stats = build_country_stats(None)
        assert stats.top is None
        assert stats.surprising is None
        assert stats.ranked == []

    def test_threshold_is_exclusive(self):
        notices = [
            NoticeInput(award_date="2024-01-01", contract_value=85, country="DEU"),
            NoticeInput(award_date="2024-01-01", contract_value=15, country="ITA"),
        ]
        assert build_country_stats(notices).surprising is None
        assert build_country_stats(notices, surprising_threshold=15.01).surprising.country == "ITA"


# ── Macro alignment ───────────────────────────────────────────────────────────


class TestMacroAlignment:
    _BUDGETS = [
        MacroBudgetEntry(country_code="DEU", country_name="Germany", year=2023, total_value_eur=600_000),
        MacroBudgetEntry(country_code="ITA", country_name="Italy", year=2023, total_value_eur=0),
    ]

    def test_match_by_code(self):
        top = CountryAggregate(country="DEU", value=150_000, count=2, share=93.75)
        signal = build_macro_alignment(top, self._BUDGETS)
        assert signal.country_name == "Germany"
        assert signal.year == 2023
        assert signal.coverage == pytest.approx(0.25)

    def test_match_by_name(self):
        top = CountryAggregate(country="Germany", value=60_000, count=1, share=100)
        assert build_macro_alignment(top, self._BUDGETS).coverage == pytest.approx(0.1)

    def test_zero_allocation_gives_zero_coverage(self):
        top = CountryAggregate(country="ITA", value=10, count=1, share=100)
        assert build_macro_alignment(top, self._BUDGETS).coverage == 0.0

    def test_no_match(self):
        top = CountryAggregate(country="FRA", value=10, count=1, share=100)
        assert build_macro_alignment(top, self._BUDGETS) is None

    def test_no_top_country(self):
        assert build_macro_alignment(None, self._BUDGETS) is None
