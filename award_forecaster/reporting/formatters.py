"""
Narrative and terminal formatters.

Two kinds of output live here:

1.  **Metric and sentence templates** shared by the forecast and insight
    engines: ``format_metric_value()`` renders a number either as a notice
    count or as a euro amount with K/M/B suffixes, and the ``*_sentence``
    helpers build the short English summaries that may later be translated.

2.  **ASCII reports** for the CLI (``format_forecast_report()``,
    ``format_insight_report()``), suitable for ``typer.echo()``.

Euro amounts::

    999.4          -> "€999"
    1_000          -> "€1.0K"
    615_000        -> "€615.0K"
    1_030_000      -> "€1.0M"
    2_500_000_000  -> "€2.5B"

Below 1,000 the amount is a rounded integer with en-GB thousands separators
(only visible for notice counts, which are never suffixed).
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Optional

from award_forecaster.models.series import MetricMode

if TYPE_CHECKING:
    from award_forecaster.models.forecast import ForecastResponse
    from award_forecaster.models.insight import InsightResponse

CURRENCY_SYMBOL = "€"

_SUFFIXES = (
    (1_000_000_000, "B"),
    (1_000_000, "M"),
    (1_000, "K"),
)


# ── Numbers ───────────────────────────────────────────────────────────────────


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    if value >= 0:
        return int(math.floor(value + 0.5))
    return -int(math.floor(-value + 0.5))


def format_grouped(value: float) -> str:
    """Rounded integer with comma thousands separators (``12,345``)."""
    return f"{round_half_up(value):,}"


def format_metric_value(value: float, mode: MetricMode | str) -> str:
    """Render ``value`` in metric-appropriate units.

    Args:
        value: Raw metric value.
        mode:  ``count`` → ``"N notices"``; ``value`` → euro amount.
    """
    if MetricMode(mode) == MetricMode.COUNT:
        return f"{format_grouped(value)} notices"
    for threshold, suffix in _SUFFIXES:
        if value >= threshold:
            return f"{CURRENCY_SYMBOL}{value / threshold:.1f}{suffix}"
    return f"{CURRENCY_SYMBOL}{format_grouped(value)}"


def format_percent(value: float) -> str:
    """One-decimal percentage without sign handling (``"12.5%"``)."""
    return f"{value:.1f}%"


def plural(count: int, word: str) -> str:
    return word if count == 1 else f"{word}s"


# ── Forecast sentences ────────────────────────────────────────────────────────


def trend_phrase(trend_pct: Optional[float]) -> str:
    """``"grow by 4.2%"`` / ``"decline by 3.0%"`` / ``"stabilize"``."""
    if trend_pct is None:
        return "stabilize"
    if trend_pct >= 0:
        return f"grow by {trend_pct:.1f}%"
    return f"decline by {abs(trend_pct):.1f}%"


def forecast_summary_sentence(
    mode: MetricMode,
    trend_pct: Optional[float],
    upcoming_average: float,
    last_observed_label: Optional[str] = None,
    staleness_months: int = 0,
    is_stale: bool = False,
    gap_months: int = 0,
) -> str:
    """Build the templated forecast summary.

    The base sentence is always present; a staleness note is appended when
    the data is stale and a gap note when months were zero-filled.
    """
    subject = "monthly spend" if mode == MetricMode.VALUE else "notice volume"
    summary = (
        f"AI model expects {subject} to {trend_phrase(trend_pct)}, averaging "
        f"{format_metric_value(upcoming_average, mode)} over the next quarter."
    )
    if is_stale and last_observed_label:
        summary += (
            f" Latest award month is {last_observed_label} "
            f"({staleness_months} months old)."
        )
    if gap_months:
        summary += (
            f" Filled {gap_months} missing {plural(gap_months, 'month')} "
            "to reach the present."
        )
    return summary


NO_DATA_FORECAST_SUMMARY = "No awarded notices available for the selected filters."
INSUFFICIENT_DATA_SUMMARY = (
    "At least three months of historical data with values are required for AI forecasting."
)
FORECAST_ERROR_SUMMARY = "Forecast generation failed; the historical series is shown unchanged."


# ── Insight sentences ─────────────────────────────────────────────────────────

NO_DATA_INSIGHT_SUMMARY = "No awarded notices available for insights."


def spike_sentence(label: Optional[str], delta_pct: Optional[float]) -> str:
    if label is None or delta_pct is None:
        return "No significant monthly spikes detected."
    return f"Peak detected in {label} ({delta_pct:.1f}% above typical month)."


def top_country_sentence(
    country: Optional[str],
    value: float,
    share: float,
    mode: MetricMode,
) -> str:
    if country is None:
        return "Country distribution is evenly spread."
    return (
        f"{country} leads with {format_metric_value(value, mode)} "
        f"({share:.1f}% of total)."
    )


def macro_sentence(country_name: Optional[str], coverage: float, year: Optional[int]) -> str:
    if country_name is None:
        return "No external budget signals matched the current dataset."
    return (
        f"{country_name} has utilised {coverage * 100:.1f}% of its "
        f"{year} budget assumption."
    )


def format_allocation_millions(allocation: float) -> str:
    """Whole millions (``"€120M"``), used on the external-signal card."""
    return f"{CURRENCY_SYMBOL}{allocation / 1_000_000:.0f}M"


# ── CLI reports ───────────────────────────────────────────────────────────────


def format_staleness_banner(is_stale: bool, staleness_months: int, last_label: str) -> str:
    """One-line data freshness indicator.

    ::

      [CURRENT] Last award month Sep 2024 (1 month ago)
      [STALE]   Last award month Jan 2024 (9 months ago) -- forecast anchored to today
    """
    age = f"{staleness_months} {plural(staleness_months, 'month')} ago"
    if is_stale:
        return f"  [STALE]   Last award month {last_label} ({age}) -- forecast anchored to today"
    return f"  [CURRENT] Last award month {last_label} ({age})"


def format_forecast_report(response: "ForecastResponse") -> str:
    """Render a ``ForecastResponse`` as an ASCII table.

    ::

        Month       Actual    Forecast  Flag
        -------------------------------------
        May 2024    750,000          -
        ...
        Oct 2024          -    812,345  future
    """
    meta = response.meta
    lines: list[str] = []
    lines.append("")
    lines.append("=== Award Forecast ===")
    lines.append(f"  Status:   {response.status}")
    lines.append(f"  Metric:   {response.metric_mode.value}")
    lines.append(f"  Horizon:  {meta.horizon} {plural(meta.horizon, 'month')}")
    if meta.last_observed_label:
        lines.append(
            format_staleness_banner(meta.is_stale, meta.staleness_months, meta.last_observed_label)
        )
    if meta.anchor_month:
        lines.append(
            f"  Window:   {meta.forecast_start_label} -> {meta.forecast_end_label}"
            f"  (trained on {meta.training_samples} months)"
        )
    if meta.gap_range is not None:
        lines.append(
            f"  Gap fill: {meta.gap_range.start} .. {meta.gap_range.end}"
            f" ({meta.gap_months} {plural(meta.gap_months, 'month')})"
        )
    lines.append("")
    lines.append(f"  {response.summary}")

    if not response.series:
        return "\n".join(lines)

    lines.append("")
    header = f"    {'Month':<10}  {'Actual':>14}  {'Forecast':>14}  {'Flag':<6}"
    lines.append(header)
    lines.append("    " + "-" * (len(header) - 4))
    for point in response.series:
        actual = format_grouped(point.actual) if point.actual is not None else "-"
        forecast = format_grouped(point.forecast) if point.forecast is not None else "-"
        flag = "future" if point.is_future else ("gap" if point.is_gap else "")
        lines.append(f"    {point.month:<10}  {actual:>14}  {forecast:>14}  {flag:<6}")
    return "\n".join(lines)


def format_insight_report(response: "InsightResponse") -> str:
    """Render an ``InsightResponse`` as cards followed by highlights."""
    meta = response.meta
    lines: list[str] = []
    lines.append("")
    lines.append("=== Award Insights ===")
    lines.append(f"  Status:   {response.status}")
    lines.append(f"  Metric:   {meta.metric_mode.value}")
    if meta.timeframe_months:
        lines.append(
            f"  Coverage: {meta.timeframe_months} {plural(meta.timeframe_months, 'month')}, "
            f"{format_grouped(meta.total_notices)} notices"
        )
    lines.append("")
    lines.append(f"  {response.summary}")

    if response.cards:
        lines.append("")
        for card in response.cards:
            marker = "!" if card.tone == "warning" else " "
            helper = f"  ({card.helper})" if card.helper else ""
            lines.append(f"  {marker} {card.label:<18} {card.value}{helper}")

    if response.highlights:
        lines.append("")
        lines.append("  Highlights:")
        for item in response.highlights:
            lines.append(f"    [{item.sentiment:<8}] {item.title}: {item.detail}")
    return "\n".join(lines)
