"""
Forecast output models.

``build_forecast()`` returns a ``ForecastResponse`` for every call, the
terminal ``no-data`` / ``insufficient-data`` / ``error`` outcomes included,
so callers never receive a partial result. All models are frozen
and serialise with camelCase keys (``model_dump(by_alias=True)``).
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

from award_forecaster.models.series import MetricMode, SeriesPoint

ForecastStatus = Literal["ready", "insufficient-data", "no-data", "error"]


class _OutputModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class GapRange(_OutputModel):
    """First and last gap-filled month keys (inclusive)."""

    start: str
    end: str


class ForecastMeta(_OutputModel):
    """Summary record of one forecast invocation.

    Attributes:
        horizon:              Clamped number of projected months.
        generated_at:         ISO-8601 UTC timestamp of the invocation.
        training_samples:     Observations the model was (or would be) fit on.
        anchor_month:         Key of the first projected month, or ``None``.
        forecast_start_label: Label of the first projected month, or ``None``.
        forecast_end_label:   Label of the last projected month, or ``None``.
        last_observed_month:  Key of the last historical bucket.
        last_observed_label:  Label of the last historical bucket.
        staleness_months:     Months between "now" and the last bucket.
        stale_threshold:      Staleness at which ``is_stale`` flips.
        is_stale:             ``staleness_months >= stale_threshold``.
        gap_months:           Number of zero-filled months.
        gap_range:            First/last gap month, or ``None``.
    """

    horizon: int
    generated_at: str
    training_samples: int = 0
    anchor_month: Optional[str] = None
    forecast_start_label: Optional[str] = None
    forecast_end_label: Optional[str] = None
    last_observed_month: Optional[str] = None
    last_observed_label: Optional[str] = None
    staleness_months: int = 0
    stale_threshold: int = 6
    is_stale: bool = False
    gap_months: int = 0
    gap_range: Optional[GapRange] = None

    @model_validator(mode="after")
    def validate_gap_consistency(self) -> "ForecastMeta":
        if (self.gap_months > 0) != (self.gap_range is not None):
            raise ValueError("gap_range must be set exactly when gap_months > 0.")
        return self


class ForecastResponse(_OutputModel):
    """Complete forecast result.

    Attributes:
        status:      Terminal status of the run.
        metric_mode: Metric the series is expressed in.
        summary:     Templated (optionally translated) one-paragraph summary.
        series:      History + gap + future points in chronological order.
        meta:        Invocation summary.
    """

    status: ForecastStatus
    metric_mode: MetricMode
    summary: str
    series: list[SeriesPoint] = []
    meta: ForecastMeta

    @property
    def future_points(self) -> list[SeriesPoint]:
        return [p for p in self.series if p.is_future]
