"""
Insight output models.

``InsightResponse`` always carries a ``status`` (``ready`` or ``no-data``).
A ready response has at most three highlights and exactly four summary cards
(last award month, top country, largest spike, external signal).
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from award_forecaster.models.series import MetricMode

InsightStatus = Literal["ready", "no-data"]
Sentiment = Literal["positive", "negative", "neutral"]
CardTone = Literal["default", "warning"]


class _OutputModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class CountryAggregate(_OutputModel):
    """Value and notice count attributed to one country.

    Attributes:
        country: Country code as supplied on the notices (``"Unknown"`` if absent).
        value:   Summed positive contract value.
        count:   Number of notices.
        share:   Percentage of the total value across all countries (0–100).
    """

    country: str
    value: float
    count: int
    share: float


class InsightHighlight(_OutputModel):
    """A short badge-style finding."""

    title: str
    detail: str
    sentiment: Sentiment


class InsightCard(_OutputModel):
    """One of the four fixed summary cards."""

    label: str
    value: str
    helper: Optional[str] = None
    tone: Optional[CardTone] = None


class InsightMeta(_OutputModel):
    """Summary record of one insight invocation."""

    metric_mode: MetricMode
    last_observed_month: str = ""
    last_observed_label: str = ""
    staleness_months: int = 0
    timeframe_months: int = 0
    total_notices: int = 0


class InsightResponse(_OutputModel):
    """Complete insight result."""

    status: InsightStatus
    summary: str
    highlights: list[InsightHighlight] = []
    cards: list[InsightCard] = []
    meta: InsightMeta

    @field_validator("highlights")
    @classmethod
    def validate_highlight_count(cls, v: list[InsightHighlight]) -> list[InsightHighlight]:
        if len(v) > 3:
            raise ValueError(f"At most 3 highlights are allowed, got {len(v)}.")
        return v
