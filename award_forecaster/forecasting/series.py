"""
Display series assembly.

These helpers turn buckets, gap months and projected values into
``SeriesPoint`` lists. ``mirror_last_actual()`` is a pure display step: it
copies the last historical/gap point's ``actual`` into its ``forecast`` so the
projected line visually starts from the last known value. It runs after the
history is assembled and has no influence on model fitting.
"""

from __future__ import annotations

from datetime import datetime

from award_forecaster.features.monthly_agg import MonthBucket
from award_forecaster.models.series import MetricMode, SeriesPoint
from award_forecaster.reporting.formatters import round_half_up
from award_forecaster.utils.time_utils import format_label, format_month_key


def history_points(history: list[MonthBucket], mode: MetricMode) -> list[SeriesPoint]:
    """One historical point per bucket; value mode rounds to whole euros."""
    return [
        SeriesPoint(
            key=bucket.key,
            month=bucket.label,
            actual=(
                round_half_up(bucket.total_value)
                if mode == MetricMode.VALUE
                else bucket.notice_count
            ),
        )
        for bucket in history
    ]


def gap_points(gap_dates: list[datetime]) -> list[SeriesPoint]:
    """Zero-activity points for months with no reported data."""
    return [
        SeriesPoint(key=format_month_key(d), month=format_label(d), actual=0, is_gap=True)
        for d in gap_dates
    ]


def future_points(dates: list[datetime], predictions: list[int]) -> list[SeriesPoint]:
    """Projected points; ``predictions`` are already clamped and rounded."""
    return [
        SeriesPoint(
            key=format_month_key(d),
            month=format_label(d),
            actual=None,
            forecast=value,
            is_future=True,
        )
        for d, value in zip(dates, predictions)
    ]


def mirror_last_actual(points: list[SeriesPoint]) -> list[SeriesPoint]:
    """Return ``points`` with the last point's ``forecast`` set to its ``actual``."""
    if not points:
        return []
    last = points[-1]
    return [*points[:-1], last.model_copy(update={"forecast": last.actual})]
