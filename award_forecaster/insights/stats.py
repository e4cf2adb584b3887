"""
Descriptive statistics behind the insight highlights.

Timeline statistics
-------------------
Spike
    Median of the metric across all buckets; every bucket's percentage
    deviation from it. The bucket with the largest positive deviation is the
    spike (ties go to the earliest month). No spike when the median is 0 or
    nothing sits above it.

    counts [2, 2, 2, 2, 20] → median 2 → last bucket, (20 - 2) / 2 = +900%

Quarter change
    Mean of the last ``window`` buckets vs the mean of the ``window`` buckets
    before them. Both windows must be full and the baseline mean positive.

Country statistics
------------------
Notice-level only (aggregate rows carry no country). Missing country →
``"Unknown"``. Shares are percentages of the total positive value; ranking is
by value descending. The "surprising" country is the highest-ranked one whose
share lies strictly between 0 and ``threshold`` (15%).

Macro alignment
---------------
The top country is matched against prior-year budget entries by code or by
name. ``coverage = observed value / reference allocation`` (0 when the
allocation is 0).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from award_forecaster.features.monthly_agg import MonthBucket
from award_forecaster.models.insight import CountryAggregate
from award_forecaster.models.macro import MacroBudgetEntry
from award_forecaster.models.payload import NoticeInput
from award_forecaster.models.series import MetricMode

UNKNOWN_COUNTRY = "Unknown"


@dataclass(frozen=True)
class SpikeSignal:
    label: str
    key: str
    value: float
    delta_pct: float


@dataclass(frozen=True)
class QuarterChange:
    recent_mean: float
    baseline_mean: float
    delta_pct: float

    @property
    def is_contraction(self) -> bool:
        return self.delta_pct < 0


@dataclass(frozen=True)
class TimelineStats:
    median: float
    spike: Optional[SpikeSignal]
    quarter_change: Optional[QuarterChange]


@dataclass(frozen=True)
class CountryStats:
    ranked: list[CountryAggregate]
    total_value: float
    top: Optional[CountryAggregate]
    surprising: Optional[CountryAggregate]


@dataclass(frozen=True)
class MacroSignal:
    """Alignment of the top country with its prior-year budget reference."""

    country_code: str
    country_name: str
    year: int
    observed_value: float
    allocation: float
    notice_count: int
    coverage: float
    sample_notice_id: Optional[str] = None


def compute_median(values: Sequence[float]) -> float:
    """Median of ``values``; 0 for an empty sequence."""
    if not values:
        return 0.0
    ordered = sorted(values)
    middle = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[middle - 1] + ordered[middle]) / 2
    return float(ordered[middle])


def find_spike(history: list[MonthBucket], values: Sequence[float], median: float) -> Optional[SpikeSignal]:
    if median == 0:
        return None
    spike: Optional[SpikeSignal] = None
    for bucket, value in zip(history, values):
        delta = (value - median) / median * 100
        if delta > 0 and (spike is None or delta > spike.delta_pct):
            spike = SpikeSignal(label=bucket.label, key=bucket.key, value=value, delta_pct=delta)
    return spike


def quarter_over_quarter(values: Sequence[float], window: int = 3) -> Optional[QuarterChange]:
    """Compare the last ``window`` values with the ``window`` before them."""
    if len(values) < 2 * window:
        return None
    recent = values[-window:]
    baseline = values[-2 * window:-window]
    recent_mean = sum(recent) / window
    baseline_mean = sum(baseline) / window
    if baseline_mean <= 0:
        return None
    return QuarterChange(
        recent_mean=recent_mean,
        baseline_mean=baseline_mean,
        delta_pct=(recent_mean - baseline_mean) / baseline_mean * 100,
    )


def build_timeline_stats(
    history: list[MonthBucket],
    mode: MetricMode,
    window: int = 3,
) -> TimelineStats:
    values = [bucket.metric(mode) for bucket in history]
    median = compute_median(values)
    return TimelineStats(
        median=median,
        spike=find_spike(history, values, median),
        quarter_change=quarter_over_quarter(values, window),
    )


def build_country_stats(
    notices: Optional[Iterable[NoticeInput]],
    surprising_threshold: float = 15.0,
) -> CountryStats:
    """Aggregate notices per country and rank them by value.

    Args:
        notices:              Notice-level records (may be ``None``).
        surprising_threshold: Upper share bound (percent, exclusive) for the
                              surprising country.
    """
    totals: dict[str, list[float]] = {}
    for notice in notices or ():
        country = notice.country or UNKNOWN_COUNTRY
        entry = totals.setdefault(country, [0.0, 0])
        value = notice.contract_value
        if value is not None and value > 0:
            entry[0] += value
        entry[1] += 1

    total_value = sum(entry[0] for entry in totals.values())
    ranked = sorted(
        (
            CountryAggregate(
                country=country,
                value=value,
                count=int(count),
                share=(value / total_value * 100) if total_value > 0 else 0.0,
            )
            for country, (value, count) in totals.items()
        ),
        key=lambda c: c.value,
        reverse=True,
    )

    surprising = next(
        (c for c in ranked if 0 < c.share < surprising_threshold),
        None,
    )
    return CountryStats(
        ranked=ranked,
        total_value=total_value,
        top=ranked[0] if ranked else None,
        surprising=surprising,
    )


def build_macro_alignment(
    top: Optional[CountryAggregate],
    budgets: Iterable[MacroBudgetEntry],
) -> Optional[MacroSignal]:
    """Match ``top`` against ``budgets`` by country code or country name."""
    if top is None:
        return None
    match = next(
        (
            entry
            for entry in budgets
            if entry.country_code == top.country or entry.country_name == top.country
        ),
        None,
    )
    if match is None:
        return None
    allocation = match.total_value_eur
    return MacroSignal(
        country_code=match.country_code,
        country_name=match.country_name,
        year=match.year,
        observed_value=top.value,
        allocation=allocation,
        notice_count=match.notice_count,
        coverage=top.value / allocation if allocation > 0 else 0.0,
        sample_notice_id=match.sample_notice_id,
    )
