"""
Request payload models for the forecast and insight engines.

Both engines accept the same two input shapes, either or both of which may be
present:

  - ``aggregates`` — already-aggregated monthly rows (``month`` as
    ``"YYYY-MM"`` or any parseable date string).
  - ``notices`` — individual award notices (``awardDate`` plus optional
    ``contractValue`` and ``country``).

Field names follow the upstream JSON (camelCase); the snake_case attribute
names are accepted as well so Python callers can construct payloads directly.

Fields are lenient: a number that is not finite, or a date that is neither a
string nor an integer, becomes ``None`` instead of failing validation, so one
malformed record never rejects the whole batch. Date strings are kept as-is
and parsed by the bucketer, which skips records it cannot read.
"""

from __future__ import annotations

import math
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from award_forecaster.models.series import MetricMode


def _lenient_number(value: Any) -> Optional[float]:
    """Coerce ``value`` to a finite float, or ``None``."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _lenient_date_text(value: Any) -> Optional[str]:
    """Keep date strings; integers become their digits, anything else ``None``."""
    if isinstance(value, str):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return None


class _PayloadModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class AggregateInput(_PayloadModel):
    """One pre-aggregated month of award activity.

    Attributes:
        month:        ``"YYYY-MM"`` or any parseable date string.
        label:        Optional display label (ignored; labels are derived).
        total_value:  Summed contract value for the month.
        notice_count: Number of notices in the month.
    """

    month: Optional[str] = None
    label: Optional[str] = None
    total_value: Optional[float] = None
    notice_count: Optional[float] = None

    @field_validator("total_value", "notice_count", mode="before")
    @classmethod
    def coerce_number(cls, v: Any) -> Optional[float]:
        return _lenient_number(v)

    @field_validator("month", "label", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> Optional[str]:
        return _lenient_date_text(v)


class NoticeInput(_PayloadModel):
    """One awarded procurement notice.

    Attributes:
        award_date:     Award (or publication) date string.
        contract_value: Awarded value in EUR; non-positive values count as 0.
        country:        ISO country code of the buyer, or ``None``.
        contract_duration_months, volume:
                        Extracted upstream by the notice normaliser; carried
                        through but not used by the forecast or insights.
    """

    award_date: Optional[str] = None
    contract_value: Optional[float] = None
    country: Optional[str] = None
    contract_duration_months: Optional[float] = None
    volume: Optional[float] = None

    @field_validator("contract_value", "contract_duration_months", "volume", mode="before")
    @classmethod
    def coerce_number(cls, v: Any) -> Optional[float]:
        return _lenient_number(v)

    @field_validator("award_date", mode="before")
    @classmethod
    def coerce_award_date(cls, v: Any) -> Optional[str]:
        return _lenient_date_text(v)

    @field_validator("country", mode="before")
    @classmethod
    def blank_country_is_none(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        text = str(v).strip()
        return text or None


class InsightRequest(_PayloadModel):
    """Payload for ``generate_insights()``."""

    aggregates: list[AggregateInput] = Field(default_factory=list)
    notices: list[NoticeInput] = Field(default_factory=list)
    metric: Optional[MetricMode] = None
    target_language: Optional[str] = None

    @property
    def has_data(self) -> bool:
        """True when at least one input list is non-empty."""
        return bool(self.aggregates or self.notices)


class ForecastRequest(InsightRequest):
    """Payload for ``build_forecast()``.

    ``horizon`` is deliberately unbounded here; the engine clamps it to the
    configured ``[1, max_horizon]`` range.
    """

    horizon: Optional[int] = None
    fill_missing_months: Optional[bool] = None
    lock_to_current_month: Optional[bool] = None
