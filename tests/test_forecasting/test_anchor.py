"""Tests for award_forecaster.forecasting.anchor and the display series helpers."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from award_forecaster.forecasting.anchor import collect_gap_dates, resolve_anchor
from award_forecaster.forecasting.series import (
    future_points,
    gap_points,
    history_points,
    mirror_last_actual,
)
from award_forecaster.features.monthly_agg import build_monthly_history
from award_forecaster.models.payload import AggregateInput
from award_forecaster.models.series import MetricMode


def _utc(year: int, month: int, day: int = 1) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


# ── resolve_anchor ────────────────────────────────────────────────────────────


class TestResolveAnchor:
    def test_gap_months_between_history_and_current_month(self):
        res = resolve_anchor(_utc(2024, 6), _utc(2024, 9, 14))
        assert res.anchor_base == _utc(2024, 9)
        assert res.gap_dates == [_utc(2024, 7), _utc(2024, 8)]
        assert res.staleness_months == 3
        assert res.is_stale is False

    def test_current_data_anchors_on_next_month(self):
        res = resolve_anchor(_utc(2024, 9), _utc(2024, 10, 15))
        assert res.anchor_base == _utc(2024, 10)
        assert res.gap_dates == []
        assert res.staleness_months == 1

    def test_same_month_anchors_on_next_month(self):
        res = resolve_anchor(_utc(2024, 10), _utc(2024, 10, 20))
        assert res.anchor_base == _utc(2024, 11)
        assert res.gap_dates == []
        assert res.staleness_months == 0

    def test_history_in_the_future_never_anchors_before_it(self):
        res = resolve_anchor(_utc(2025, 2), _utc(2024, 10, 20))
        assert res.anchor_base == _utc(2025, 3)
        assert res.gap_dates == []

    def test_without_lock_anchor_follows_history(self):
        res = resolve_anchor(_utc(2024, 6), _utc(2024, 9, 14), lock_to_current_month=False)
        assert res.anchor_base == _utc(2024, 7)
        assert res.gap_dates == []

    def test_without_fill_no_gap_dates(self):
        res = resolve_anchor(_utc(2024, 6), _utc(2024, 9, 14), fill_missing_months=False)
        assert res.anchor_base == _utc(2024, 9)
        assert res.gap_dates == []

    @pytest.mark.parametrize("months_old, stale", [(5, False), (6, True), (14, True)])
    def test_staleness_threshold(self, months_old, stale):
        now = _utc(2024, 12, 3)
        last = _utc(2024 if months_old < 12 else 2023, (12 - months_old - 1) % 12 + 1)
        res = resolve_anchor(last, now)
        assert res.staleness_months == months_old
        assert res.is_stale is stale

    def test_year_boundary_gaps(self):
        assert collect_gap_dates(_utc(2023, 11), _utc(2024, 2)) == [_utc(2023, 12), _utc(2024, 1)]

    def test_no_gaps_when_anchor_not_after_last(self):
        assert collect_gap_dates(_utc(2024, 5), _utc(2024, 5)) == []
        assert collect_gap_dates(_utc(2024, 5), _utc(2024, 6)) == []


# ── Series points ─────────────────────────────────────────────────────────────


class TestSeriesPoints:
    def test_gap_points_are_zero_and_flagged(self):
        points = gap_points([_utc(2024, 7), _utc(2024, 8)])
        assert [p.key for p in points] == ["2024-07", "2024-08"]
        assert all(p.actual == 0 and p.is_gap and not p.is_future for p in points)

    def test_history_points_round_values_half_up(self):
        history = build_monthly_history([AggregateInput(month="2024-01", total_value=10.5)])
        [point] = history_points(history, MetricMode.VALUE)
        assert point.actual == 11
        assert point.forecast is None

    def test_history_points_count_mode(self):
        history = build_monthly_history([AggregateInput(month="2024-01", total_value=10, notice_count=4)])
        [point] = history_points(history, MetricMode.COUNT)
        assert point.actual == 4

    def test_future_points_have_no_actual(self):
        points = future_points([_utc(2024, 10), _utc(2024, 11)], [5, 0])
        assert [p.month for p in points] == ["Oct 2024", "Nov 2024"]
        assert all(p.actual is None and p.is_future for p in points)
        assert [p.forecast for p in points] == [5, 0]

    def test_mirror_only_touches_last_point(self):
        points = gap_points([_utc(2024, 7), _utc(2024, 8)])
        mirrored = mirror_last_actual(points)
        assert mirrored[0].forecast is None
        assert mirrored[-1].forecast == mirrored[-1].actual == 0
        assert points[-1].forecast is None

    def test_mirror_empty(self):
        assert mirror_last_actual([]) == []
