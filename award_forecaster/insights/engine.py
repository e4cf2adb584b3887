"""
Insight engine — descriptive highlights over the monthly award series.

Output
------
summary     Three sentences: spike, top country, macro alignment. Each one
            falls back to a "no signal" sentence.
highlights  Up to three badges, in this order: monthly spike (positive),
            momentum loss (negative, only for a negative quarter change),
            surprising country (neutral).
cards       Always four: last award month, top country, largest spike,
            external signal.

The macro reference is the previous calendar year. A failing macro provider
is logged and treated as "no signal"; the insight run still succeeds.

Translation happens last, on the finished English text: the summary through
``translate``, card labels/helpers and highlight titles/details through
``batch_translate`` (each pair concurrently), all with per-item fallback.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Optional, Union

from award_forecaster.config import AppConfig
from award_forecaster.features.monthly_agg import build_monthly_history, determine_metric
from award_forecaster.ingestion.macro_client import MacroBudgetProvider
from award_forecaster.insights.stats import (
    CountryStats,
    MacroSignal,
    TimelineStats,
    build_country_stats,
    build_macro_alignment,
    build_timeline_stats,
)
from award_forecaster.models.insight import (
    InsightCard,
    InsightHighlight,
    InsightMeta,
    InsightResponse,
)
from award_forecaster.models.macro import MacroBudgetEntry
from award_forecaster.models.payload import InsightRequest
from award_forecaster.models.series import MetricMode
from award_forecaster.reporting.formatters import (
    NO_DATA_INSIGHT_SUMMARY,
    format_allocation_millions,
    format_metric_value,
    format_percent,
    macro_sentence,
    spike_sentence,
    top_country_sentence,
)
from award_forecaster.translation.base import (
    Translator,
    batch_translate_or_original,
    should_translate,
    translate_or_original,
)
from award_forecaster.utils.time_utils import months_between, utcnow

logger = logging.getLogger(__name__)


async def generate_insights(
    request: Union[InsightRequest, dict[str, Any]],
    *,
    now: Optional[datetime] = None,
    config: Optional[AppConfig] = None,
    macro_provider: Optional[MacroBudgetProvider] = None,
    translator: Optional[Translator] = None,
) -> InsightResponse:
    """Compute highlights and summary cards for one payload.

    Args:
        request:        ``InsightRequest`` or its JSON-shaped dict.
        now:            Reference "current" instant; defaults to ``utcnow()``.
        config:         Application config; defaults to ``AppConfig()``.
        macro_provider: Prior-year budget source. ``None`` skips macro alignment.
        translator:     Optional translation collaborator.
    """
    if not isinstance(request, InsightRequest):
        request = InsightRequest.model_validate(request)
    cfg = config or AppConfig()
    now = now or utcnow()

    history = build_monthly_history(request.aggregates, request.notices)
    if not history:
        logger.info("Insights no-data: payload produced no monthly buckets.")
        return InsightResponse(
            status="no-data",
            summary=await translate_or_original(
                translator, NO_DATA_INSIGHT_SUMMARY, request.target_language,
                cfg.forecast.default_language,
            ),
            meta=InsightMeta(metric_mode=request.metric or MetricMode.COUNT),
        )

    mode = determine_metric(history, request.metric)
    last = history[-1]
    staleness = months_between(now, last.date)

    timeline = build_timeline_stats(history, mode, cfg.insights.quarter_window)
    countries = build_country_stats(request.notices, cfg.insights.surprising_share_threshold)
    budgets = await fetch_budgets_or_empty(macro_provider, now.year - 1)
    macro = build_macro_alignment(countries.top, budgets)

    summary = " ".join(
        [
            spike_sentence(
                timeline.spike.label if timeline.spike else None,
                timeline.spike.delta_pct if timeline.spike else None,
            ),
            top_country_sentence(
                countries.top.country if countries.top else None,
                countries.top.value if countries.top else 0.0,
                countries.top.share if countries.top else 0.0,
                mode,
            ),
            macro_sentence(
                macro.country_name if macro else None,
                macro.coverage if macro else 0.0,
                macro.year if macro else None,
            ),
        ]
    )
    highlights = build_highlights(timeline, countries)
    cards = build_cards(
        last_label=last.label,
        staleness_months=staleness,
        stale_warning_months=cfg.insights.stale_warning_months,
        timeline=timeline,
        countries=countries,
        macro=macro,
        mode=mode,
    )

    logger.info(
        "Insights ready | metric=%s months=%d countries=%d highlights=%d macro=%s",
        mode.value, len(history), len(countries.ranked), len(highlights),
        macro.country_code if macro else "none",
    )

    summary, highlights, cards = await translate_insights(
        translator,
        request.target_language,
        cfg.forecast.default_language,
        summary,
        highlights,
        cards,
    )
    return InsightResponse(
        status="ready",
        summary=summary,
        highlights=highlights,
        cards=cards,
        meta=InsightMeta(
            metric_mode=mode,
            last_observed_month=last.key,
            last_observed_label=last.label,
            staleness_months=staleness,
            timeframe_months=len(history),
            total_notices=sum(b.notice_count for b in history),
        ),
    )


async def fetch_budgets_or_empty(
    provider: Optional[MacroBudgetProvider],
    year: int,
) -> list[MacroBudgetEntry]:
    """Fetch the macro reference for ``year``; any failure → empty list."""
    if provider is None:
        return []
    try:
        return list(await provider.fetch_macro_budget(year))
    except Exception as exc:
        logger.warning("Macro budget fetch for %d failed; skipping alignment: %s", year, exc)
        return []


def build_highlights(timeline: TimelineStats, countries: CountryStats) -> list[InsightHighlight]:
    highlights: list[InsightHighlight] = []
    if timeline.spike is not None:
        highlights.append(
            InsightHighlight(
                title="Monthly spike",
                detail=(
                    f"Strong jump in {timeline.spike.label} "
                    f"({format_percent(timeline.spike.delta_pct)} above baseline)."
                ),
                sentiment="positive",
            )
        )
    change = timeline.quarter_change
    if change is not None and change.is_contraction:
        highlights.append(
            InsightHighlight(
                title="Momentum loss",
                detail=f"{format_percent(change.delta_pct)} drop comparing last quarter vs previous quarter.",
                sentiment="negative",
            )
        )
    if countries.surprising is not None:
        highlights.append(
            InsightHighlight(
                title="Surprising country",
                detail=(
                    f"{countries.surprising.country} contributed "
                    f"{format_percent(countries.surprising.share)} despite typically smaller allocation."
                ),
                sentiment="neutral",
            )
        )
    return highlights


def build_cards(
    *,
    last_label: str,
    staleness_months: int,
    stale_warning_months: int,
    timeline: TimelineStats,
    countries: CountryStats,
    macro: Optional[MacroSignal],
    mode: MetricMode,
) -> list[InsightCard]:
    """The four fixed summary cards, in display order."""
    top = countries.top
    spike = timeline.spike
    return [
        InsightCard(
            label="Last award month",
            value=last_label,
            helper=f"{staleness_months} month gap" if staleness_months else "Fresh dataset",
            tone="warning" if staleness_months >= stale_warning_months else "default",
        ),
        InsightCard(
            label="Top country",
            value=top.country if top else "N/A",
            helper=(
                f"{format_metric_value(top.value, mode)} · {format_percent(top.share)} share"
                if top
                else None
            ),
        ),
        InsightCard(
            label="Largest spike",
            value=spike.label if spike else "No spike",
            helper=f"+{format_percent(spike.delta_pct)} vs median" if spike else None,
        ),
        InsightCard(
            label="External signal",
            value=f"{macro.country_name} budget" if macro else "No match",
            helper=(
                f"{format_percent(macro.coverage * 100)} utilised of "
                f"{format_allocation_millions(macro.allocation)} plan"
                if macro
                else None
            ),
        ),
    ]


async def translate_insights(
    translator: Optional[Translator],
    target_language: Optional[str],
    source_language: str,
    summary: str,
    highlights: list[InsightHighlight],
    cards: list[InsightCard],
) -> tuple[str, list[InsightHighlight], list[InsightCard]]:
    """Translate every user-facing string, falling back per item."""
    if translator is None or not should_translate(target_language, source_language):
        return summary, highlights, cards

    labels, helpers = await asyncio.gather(
        batch_translate_or_original(
            translator, [c.label for c in cards], target_language, source_language
        ),
        batch_translate_or_original(
            translator, [c.helper or "" for c in cards], target_language, source_language
        ),
    )
    translated_summary = await translate_or_original(
        translator, summary, target_language, source_language
    )
    titles, details = await asyncio.gather(
        batch_translate_or_original(
            translator, [h.title for h in highlights], target_language, source_language
        ),
        batch_translate_or_original(
            translator, [h.detail for h in highlights], target_language, source_language
        ),
    )

    translated_cards = [
        card.model_copy(
            update={"label": label, "helper": (helper or card.helper) if card.helper else None}
        )
        for card, label, helper in zip(cards, labels, helpers)
    ]
    translated_highlights = [
        highlight.model_copy(update={"title": title, "detail": detail})
        for highlight, title, detail in zip(highlights, titles, details)
    ]
    return translated_summary, translated_highlights, translated_cards
