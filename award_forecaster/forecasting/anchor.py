"""
Anchor month and gap resolution for discontinuous monthly series.

Procurement datasets usually lag the present: awards are published weeks or
months after they happen, so the last bucket is often well before "now".
This module decides where the historical series ends, where the projection
starts, and which months in between are synthesized as zero activity.

Rules
-----
``anchor_base``
    With ``lock_to_current_month`` (default) and a current month strictly after
    the last historical month, the projection starts at the current month.
    Otherwise it starts at the month right after the last historical month.
    The anchor therefore never precedes available history and never projects
    months that are already in the past relative to "now".

``gap_dates``
    With ``fill_missing_months`` (default) and an anchor after the last
    historical month, every month strictly between the two (both ends
    excluded). Otherwise empty.

``staleness_months``
    Calendar-month difference between "now" and the last historical month.
    ``is_stale`` once it reaches ``stale_threshold_months`` (6).

Example::

    last = 2024-06, now = 2024-09-14, lock + fill
    → anchor_base = 2024-09, gap_dates = [2024-07, 2024-08], staleness = 3
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from award_forecaster.utils.time_utils import add_months, months_between, start_of_month_utc

STALE_THRESHOLD_MONTHS = 6


@dataclass(frozen=True)
class AnchorResolution:
    """Outcome of ``resolve_anchor()``.

    Attributes:
        last_recorded:          Month start of the last historical bucket.
        current_month:          Month start of "now".
        anchor_base:            Month start of the first projected month.
        gap_dates:              Zero-activity months between history and anchor.
        staleness_months:       Months between ``current_month`` and ``last_recorded``.
        stale_threshold_months: Threshold used for ``is_stale``.
        is_stale:               ``staleness_months >= stale_threshold_months``.
    """

    last_recorded: datetime
    current_month: datetime
    anchor_base: datetime
    gap_dates: list[datetime] = field(default_factory=list)
    staleness_months: int = 0
    stale_threshold_months: int = STALE_THRESHOLD_MONTHS
    is_stale: bool = False


def resolve_anchor(
    last_recorded: datetime,
    now: datetime,
    lock_to_current_month: bool = True,
    fill_missing_months: bool = True,
    stale_threshold_months: int = STALE_THRESHOLD_MONTHS,
) -> AnchorResolution:
    """Resolve the projection anchor, gap months and staleness.

    Args:
        last_recorded:          Date of the last historical bucket.
        now:                    Reference "current" instant (truncated to its month).
        lock_to_current_month:  Start projecting at the current month when it
                                is after the last historical month.
        fill_missing_months:    Synthesize the months between history and anchor.
        stale_threshold_months: Staleness threshold in months.

    Returns:
        ``AnchorResolution``.
    """
    last_month = start_of_month_utc(last_recorded)
    current_month = start_of_month_utc(now)

    if lock_to_current_month and current_month > last_month:
        anchor_base = current_month
    else:
        anchor_base = add_months(last_month, 1)

    gap_dates = (
        collect_gap_dates(last_month, anchor_base)
        if fill_missing_months and anchor_base > last_month
        else []
    )

    staleness = months_between(current_month, last_month)
    return AnchorResolution(
        last_recorded=last_month,
        current_month=current_month,
        anchor_base=anchor_base,
        gap_dates=gap_dates,
        staleness_months=staleness,
        stale_threshold_months=stale_threshold_months,
        is_stale=staleness >= stale_threshold_months,
    )


def collect_gap_dates(last_recorded: datetime, anchor: datetime) -> list[datetime]:
    """Return every month start strictly between ``last_recorded`` and ``anchor``."""
    gaps: list[datetime] = []
    if anchor <= last_recorded:
        return gaps
    cursor = add_months(last_recorded, 1)
    while cursor < anchor:
        gaps.append(cursor)
        cursor = add_months(cursor, 1)
    return gaps
