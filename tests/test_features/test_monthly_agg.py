"""Tests for award_forecaster.features.monthly_agg."""

from __future__ import annotations

import itertools
from datetime import datetime, timezone

from award_forecaster.features.monthly_agg import (
    MonthBucket,
    build_monthly_history,
    determine_metric,
)
from award_forecaster.models.payload import AggregateInput, NoticeInput
from award_forecaster.models.series import MetricMode


def _snapshot(history: list[MonthBucket]) -> list[tuple]:
    return [(b.key, b.label, b.date, b.total_value, b.notice_count) for b in history]


# ── Folding ───────────────────────────────────────────────────────────────────


class TestBuildMonthlyHistory:
    def test_empty_inputs_give_empty_history(self):
        assert build_monthly_history() == []
        assert build_monthly_history([], []) == []

    def test_aggregates_become_one_bucket_per_month(self, sample_aggregates):
        history = build_monthly_history(sample_aggregates)
        assert [b.key for b in history] == ["2024-05", "2024-06", "2024-07", "2024-08", "2024-09"]
        assert history[0].label == "May 2024"
        assert history[0].total_value == 750_000
        assert history[0].notice_count == 6
        assert history[0].date == datetime(2024, 5, 1, tzinfo=timezone.utc)

    def test_notices_count_one_each_and_sum_positive_values(self):
        notices = [
            NoticeInput(award_date="2024-03-02", contract_value=1_000),
            NoticeInput(award_date="2024-03-28T16:00:00Z", contract_value=-50),
            NoticeInput(award_date="2024-03-15", contract_value=None),
        ]
        [bucket] = build_monthly_history(notices=notices)
        assert bucket.key == "2024-03"
        assert bucket.notice_count == 3
        assert bucket.total_value == 1_000

    def test_aggregates_and_notices_share_a_bucket(self):
        history = build_monthly_history(
            [AggregateInput(month="2024-03", total_value=500, notice_count=2)],
            [NoticeInput(award_date="2024-03-10", contract_value=250)],
        )
        assert len(history) == 1
        assert history[0].total_value == 750
        assert history[0].notice_count == 3

    def test_negative_aggregate_numbers_are_floored_at_zero(self):
        [bucket] = build_monthly_history(
            [AggregateInput(month="2024-01", total_value=-10, notice_count=-3)]
        )
        assert bucket.total_value == 0
        assert bucket.notice_count == 0

    def test_unparseable_dates_are_skipped(self):
        history = build_monthly_history(
            [
                AggregateInput(month="not-a-month", total_value=5),
                AggregateInput(month="2024-13", total_value=5),
                AggregateInput(month="2024-02", total_value=7),
            ],
            [
                NoticeInput(award_date="garbage", contract_value=1),
                NoticeInput(award_date=None, contract_value=1),
            ],
        )
        assert [b.key for b in history] == ["2024-02"]
        assert history[0].total_value == 7

    def test_out_of_range_calendar_dates_are_skipped(self):
        history = build_monthly_history(
            [
                AggregateInput(month="0000-05", total_value=5),
                AggregateInput(month="2024-03", total_value=9),
            ],
            [NoticeInput(award_date="0001-01-01T00:00:00+05:00", contract_value=1)],
        )
        assert [b.key for b in history] == ["2024-03"]
        assert history[0].total_value == 9

    def test_ted_offset_dates_land_in_their_utc_month(self):
        [bucket] = build_monthly_history(
            notices=[NoticeInput(award_date="2024-05-12+02:00", contract_value=10)]
        )
        assert bucket.key == "2024-05"

    def test_offset_crossing_month_boundary_uses_utc(self):
        [bucket] = build_monthly_history(
            notices=[NoticeInput(award_date="2024-06-01T00:30:00+02:00")]
        )
        assert bucket.key == "2024-05"


# ── Ordering properties ───────────────────────────────────────────────────────


class TestOrdering:
    def test_sorted_strictly_ascending_without_duplicates(self):
        rows = [
            AggregateInput(month=m, total_value=1)
            for m in ["2024-03", "2023-12", "2024-01", "2024-03", "2023-11"]
        ]
        history = build_monthly_history(rows)
        dates = [b.date for b in history]
        assert dates == sorted(dates)
        assert len({b.key for b in history}) == len(history)
        assert all(a < b for a, b in zip(dates, dates[1:]))

    def test_any_permutation_gives_identical_buckets(self):
        aggregates = [
            AggregateInput(month="2024-02", total_value=100, notice_count=1),
            AggregateInput(month="2024-01", total_value=50, notice_count=2),
        ]
        notices = [
            NoticeInput(award_date="2024-01-20", contract_value=5),
            NoticeInput(award_date="2024-03-05", contract_value=7),
        ]
        expected = _snapshot(build_monthly_history(aggregates, notices))
        for agg_perm in itertools.permutations(aggregates):
            for notice_perm in itertools.permutations(notices):
                assert _snapshot(build_monthly_history(agg_perm, notice_perm)) == expected


# ── Metric mode ───────────────────────────────────────────────────────────────


class TestDetermineMetric:
    def test_value_when_any_bucket_has_positive_value(self, sample_aggregates):
        history = build_monthly_history(sample_aggregates)
        assert determine_metric(history) == MetricMode.VALUE

    def test_count_when_all_values_are_zero(self):
        history = build_monthly_history(
            [AggregateInput(month="2024-01", notice_count=4), AggregateInput(month="2024-02", notice_count=2)]
        )
        assert determine_metric(history) == MetricMode.COUNT

    def test_requested_mode_wins(self, sample_aggregates):
        history = build_monthly_history(sample_aggregates)
        assert determine_metric(history, MetricMode.COUNT) == MetricMode.COUNT

    def test_empty_history_is_count(self):
        assert determine_metric([]) == MetricMode.COUNT

    def test_bucket_metric_selects_field(self):
        bucket = MonthBucket.for_date(datetime(2024, 7, 19, tzinfo=timezone.utc))
        bucket.total_value = 12.5
        bucket.notice_count = 3
        assert bucket.metric(MetricMode.VALUE) == 12.5
        assert bucket.metric(MetricMode.COUNT) == 3.0
