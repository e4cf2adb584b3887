"""
Monthly aggregation of procurement award records.

Purpose
-------
This module folds heterogeneous award inputs into one canonical series with
exactly one ``MonthBucket`` per calendar month (UTC). The series feeds both
the forecast engine and the insight engine.

Folding rules
-------------
1.  **Aggregate rows** contribute ``max(0, total_value)`` and
    ``max(0, notice_count)`` to the bucket of their ``month``.
2.  **Notice rows** contribute 1 to ``notice_count`` and their
    ``contract_value`` to ``total_value`` when it is a positive number.
3.  **Same month, many rows** — contributions accumulate additively; both
    input kinds may land in the same bucket in the same call.
4.  **Unparseable dates** — the record is skipped. Malformed upstream dates are
    expected and are never an error; only the skip count is logged.

Ordering
--------
Buckets are accumulated in a dict keyed by the ``"YYYY-MM"`` string and then
sorted explicitly by their parsed ``date``. Insertion order is never relied
upon, so the result is identical for any permutation of the input rows.

No forward or backward fill happens here; months without records simply have
no bucket. Gap filling is the anchor resolver's job.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from award_forecaster.models.payload import AggregateInput, NoticeInput
from award_forecaster.models.series import MetricMode
from award_forecaster.utils.time_utils import (
    format_label,
    format_month_key,
    parse_date_input,
    parse_month_input,
    start_of_month_utc,
)

logger = logging.getLogger(__name__)


@dataclass
class MonthBucket:
    """One calendar month of aggregated award activity.

    Attributes:
        key:          Canonical ``"YYYY-MM"`` month key (UTC).
        label:        Display label, e.g. ``"May 2024"``.
        date:         First instant of the month, UTC.
        total_value:  Accumulated contract value (never negative).
        notice_count: Accumulated number of notices (never negative).
    """

    key: str
    label: str
    date: datetime
    total_value: float = 0.0
    notice_count: int = 0

    @classmethod
    def for_date(cls, value: datetime) -> "MonthBucket":
        """Create an empty bucket for the month containing ``value``."""
        start = start_of_month_utc(value)
        return cls(key=format_month_key(start), label=format_label(start), date=start)

    def metric(self, mode: MetricMode) -> float:
        """Return the bucket's value for ``mode``."""
        return self.total_value if mode == MetricMode.VALUE else float(self.notice_count)


def build_monthly_history(
    aggregates: Optional[Iterable[AggregateInput]] = None,
    notices: Optional[Iterable[NoticeInput]] = None,
) -> list[MonthBucket]:
    """Fold aggregate and notice rows into an ascending list of month buckets.

    Args:
        aggregates: Pre-aggregated monthly rows (may be ``None`` or empty).
        notices:    Individual award notices (may be ``None`` or empty).

    Returns:
        One bucket per distinct month, sorted strictly ascending by ``date``.
    """
    buckets: dict[str, MonthBucket] = {}
    skipped = 0

    for aggregate in aggregates or ():
        month_start = parse_month_input(aggregate.month)
        if month_start is None:
            skipped += 1
            continue
        bucket = _bucket_for(buckets, month_start)
        bucket.total_value += max(0.0, aggregate.total_value or 0.0)
        bucket.notice_count += int(max(0.0, aggregate.notice_count or 0.0))

    for notice in notices or ():
        awarded_at = parse_date_input(notice.award_date)
        if awarded_at is None:
            skipped += 1
            continue
        bucket = _bucket_for(buckets, awarded_at)
        value = notice.contract_value
        if value is not None and value > 0:
            bucket.total_value += value
        bucket.notice_count += 1

    if skipped:
        logger.debug("Skipped %d record(s) with unparseable dates.", skipped)

    return sorted(buckets.values(), key=lambda b: b.date)


def _bucket_for(buckets: dict[str, MonthBucket], value: datetime) -> MonthBucket:
    key = format_month_key(value)
    bucket = buckets.get(key)
    if bucket is None:
        bucket = MonthBucket.for_date(value)
        buckets[key] = bucket
    return bucket


def determine_metric(
    history: list[MonthBucket],
    requested: Optional[MetricMode] = None,
) -> MetricMode:
    """Return ``requested`` if given, otherwise infer the metric mode.

    ``value`` is inferred iff at least one bucket has a positive total value;
    a series of pure notice counts falls back to ``count``.
    """
    if requested is not None:
        return MetricMode(requested)
    if any(b.total_value > 0 for b in history):
        return MetricMode.VALUE
    return MetricMode.COUNT
