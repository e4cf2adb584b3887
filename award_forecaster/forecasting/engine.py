"""
Forecast engine — monthly award volume/value projection.

Flow
----
1.  Bucket the payload into a canonical monthly history.
2.  Pick the metric mode (explicit or inferred) and the training set:
    every month for ``count``; only months with a positive total for
    ``value`` (unreported months would drag the fit toward zero but are still
    shown in the display series).
3.  Resolve the anchor month and zero-filled gap months.
4.  With fewer than ``min_observations`` training months, stop with
    ``insufficient-data`` and return history + gaps only.
5.  Normalise time (timestamp / max timestamp) and metric (value / max value),
    both denominators floored at 1, fit the regressor, and project
    ``horizon`` months from the anchor. Predictions are denormalised, clamped
    at zero and rounded to whole units.
6.  Compose history + gaps (last point mirrored into ``forecast``) + future
    points, and a templated summary comparing the first three projected months
    to the last known actual.

Statuses
--------
``no-data``            empty history; terminal, no model run.
``insufficient-data``  too few training months; terminal.
``ready``              model trained and projected.
``error``              month arithmetic left the calendar range or
                       fit/predict raised; logged, returned with the
                       historical series and no projection. Not retried.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any, Callable, Optional, Union

from award_forecaster.config import AppConfig, ModelConfig
from award_forecaster.features.monthly_agg import (
    MonthBucket,
    build_monthly_history,
    determine_metric,
)
from award_forecaster.forecasting.anchor import AnchorResolution, resolve_anchor
from award_forecaster.forecasting.series import (
    future_points,
    gap_points,
    history_points,
    mirror_last_actual,
)
from award_forecaster.ml.regressor import Regressor, make_regressor
from award_forecaster.models.forecast import ForecastMeta, ForecastResponse, GapRange
from award_forecaster.models.payload import ForecastRequest
from award_forecaster.models.series import MetricMode, SeriesPoint
from award_forecaster.reporting.formatters import (
    FORECAST_ERROR_SUMMARY,
    INSUFFICIENT_DATA_SUMMARY,
    NO_DATA_FORECAST_SUMMARY,
    forecast_summary_sentence,
    round_half_up,
)
from award_forecaster.translation.base import Translator, translate_or_original
from award_forecaster.utils.time_utils import (
    add_months,
    format_label,
    format_month_key,
    utcnow,
)

logger = logging.getLogger(__name__)

RegressorFactory = Callable[[ModelConfig], Regressor]


def clamp_horizon(requested: Optional[int], default: int, maximum: int) -> int:
    """Clamp a requested horizon to ``[1, maximum]``; ``None`` → ``default``."""
    value = default if requested is None else int(requested)
    return min(max(value, 1), maximum)


async def build_forecast(
    request: Union[ForecastRequest, dict[str, Any]],
    *,
    now: Optional[datetime] = None,
    config: Optional[AppConfig] = None,
    regressor_factory: Optional[RegressorFactory] = None,
    translator: Optional[Translator] = None,
) -> ForecastResponse:
    """Build a monthly forecast for one payload.

    Args:
        request:           ``ForecastRequest`` or its JSON-shaped dict.
        now:               Reference "current" instant; defaults to ``utcnow()``.
        config:            Application config; defaults to ``AppConfig()``.
        regressor_factory: Builds a fresh ``Regressor`` from ``config.model``.
        translator:        Optional translation collaborator for the summary.

    Returns:
        A well-formed ``ForecastResponse`` for every status.
    """
    if not isinstance(request, ForecastRequest):
        request = ForecastRequest.model_validate(request)
    cfg = config or AppConfig()
    fc = cfg.forecast
    now = now or utcnow()
    factory = regressor_factory or make_regressor

    horizon = clamp_horizon(request.horizon, fc.default_horizon, fc.max_horizon)
    history = build_monthly_history(request.aggregates, request.notices)

    if not history:
        logger.info("Forecast no-data: payload produced no monthly buckets.")
        return ForecastResponse(
            status="no-data",
            metric_mode=request.metric or MetricMode.COUNT,
            summary=await _translated(NO_DATA_FORECAST_SUMMARY, request, cfg, translator),
            series=[],
            meta=ForecastMeta(
                horizon=horizon,
                generated_at=utcnow().isoformat(),
                stale_threshold=fc.stale_threshold_months,
            ),
        )

    mode = determine_metric(history, request.metric)
    training = (
        [b for b in history if b.total_value > 0] if mode == MetricMode.VALUE else history
    )

    try:
        anchor = resolve_anchor(
            history[-1].date,
            now,
            lock_to_current_month=_pick(request.lock_to_current_month, fc.lock_to_current_month),
            fill_missing_months=_pick(request.fill_missing_months, fc.fill_missing_months),
            stale_threshold_months=fc.stale_threshold_months,
        )
    except (ValueError, OverflowError) as exc:
        logger.exception("Forecast anchor resolution failed: %s", exc)
        return ForecastResponse(
            status="error",
            metric_mode=mode,
            summary=await _translated(FORECAST_ERROR_SUMMARY, request, cfg, translator),
            series=mirror_last_actual(history_points(history, mode)),
            meta=ForecastMeta(
                horizon=horizon,
                generated_at=utcnow().isoformat(),
                training_samples=len(training),
                last_observed_month=history[-1].key,
                last_observed_label=history[-1].label,
                stale_threshold=fc.stale_threshold_months,
            ),
        )
    points = mirror_last_actual(history_points(history, mode) + gap_points(anchor.gap_dates))

    if len(training) < fc.min_observations:
        logger.info(
            "Forecast insufficient-data: %d training month(s), need %d.",
            len(training), fc.min_observations,
        )
        return ForecastResponse(
            status="insufficient-data",
            metric_mode=mode,
            summary=await _translated(INSUFFICIENT_DATA_SUMMARY, request, cfg, translator),
            series=points,
            meta=_build_meta(horizon, len(training), anchor, []),
        )

    try:
        forecast_dates = [add_months(anchor.anchor_base, i) for i in range(horizon)]
        predictions = fit_and_project(
            training, mode, forecast_dates, factory(cfg.model)
        )
    except Exception as exc:
        logger.exception("Forecast model failed: %s", exc)
        return ForecastResponse(
            status="error",
            metric_mode=mode,
            summary=await _translated(FORECAST_ERROR_SUMMARY, request, cfg, translator),
            series=points,
            meta=_build_meta(horizon, len(training), anchor, []),
        )

    projected = future_points(forecast_dates, predictions)

    window = projected[: fc.summary_window]
    upcoming_average = sum(p.forecast or 0 for p in window) / (len(window) or 1)
    last_actual = points[-1].actual or 0
    trend = ((upcoming_average - last_actual) / last_actual) * 100 if last_actual > 0 else None

    summary = forecast_summary_sentence(
        mode,
        trend,
        upcoming_average,
        last_observed_label=format_label(anchor.last_recorded),
        staleness_months=anchor.staleness_months,
        is_stale=anchor.is_stale,
        gap_months=len(anchor.gap_dates),
    )

    logger.info(
        "Forecast ready | metric=%s training=%d horizon=%d anchor=%s gaps=%d",
        mode.value, len(training), horizon,
        format_month_key(anchor.anchor_base), len(anchor.gap_dates),
        extra={"status": "ready", "metric_mode": mode.value, "training_samples": len(training)},
    )
    return ForecastResponse(
        status="ready",
        metric_mode=mode,
        summary=await _translated(summary, request, cfg, translator),
        series=[*points, *projected],
        meta=_build_meta(horizon, len(training), anchor, projected),
    )


def fit_and_project(
    training: list[MonthBucket],
    mode: MetricMode,
    forecast_dates: list[datetime],
    regressor: Regressor,
) -> list[int]:
    """Fit ``regressor`` on normalised training data and project ``forecast_dates``.

    Returns:
        One non-negative integer prediction per date.

    Raises:
        FloatingPointError: A prediction came back non-finite.
    """
    xs = [b.date.timestamp() for b in training]
    ys = [max(b.metric(mode), 0.0) for b in training]
    x_scale = max(max(xs), 1.0)
    y_scale = max(max(ys), 1.0)

    regressor.fit([x / x_scale for x in xs], [y / y_scale for y in ys])

    predictions: list[int] = []
    for d in forecast_dates:
        raw = regressor.predict(d.timestamp() / x_scale)
        if not math.isfinite(raw):
            raise FloatingPointError(f"Non-finite prediction for {format_month_key(d)}.")
        predictions.append(round_half_up(max(0.0, raw * y_scale)))
    return predictions


def _pick(requested: Optional[bool], default: bool) -> bool:
    return default if requested is None else requested


async def _translated(
    text: str,
    request: ForecastRequest,
    config: AppConfig,
    translator: Optional[Translator],
) -> str:
    return await translate_or_original(
        translator, text, request.target_language, config.forecast.default_language
    )


def _build_meta(
    horizon: int,
    training_samples: int,
    anchor: AnchorResolution,
    projected: list[SeriesPoint],
) -> ForecastMeta:
    gaps = anchor.gap_dates
    return ForecastMeta(
        horizon=horizon,
        generated_at=utcnow().isoformat(),
        training_samples=training_samples,
        anchor_month=format_month_key(anchor.anchor_base) if projected else None,
        forecast_start_label=format_label(anchor.anchor_base) if projected else None,
        forecast_end_label=projected[-1].month if projected else None,
        last_observed_month=format_month_key(anchor.last_recorded),
        last_observed_label=format_label(anchor.last_recorded),
        staleness_months=anchor.staleness_months,
        stale_threshold=anchor.stale_threshold_months,
        is_stale=anchor.is_stale,
        gap_months=len(gaps),
        gap_range=(
            GapRange(start=format_month_key(gaps[0]), end=format_month_key(gaps[-1]))
            if gaps
            else None
        ),
    )
