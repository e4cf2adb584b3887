"""
Series-level value objects shared by the forecast and insight outputs.

``MetricMode`` decides whether a pipeline run works on monetary value or on
notice counts. ``SeriesPoint`` is the display unit of the forecast series:

  historical point  actual=<n>,  forecast=None,  is_future=False
  gap point         actual=0,    forecast=None,  is_future=False, is_gap=True
  future point      actual=None, forecast=<n>,   is_future=True

The last historical or gap point also carries ``forecast == actual`` so a
chart can draw the projected line from the last known value.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class MetricMode(str, Enum):
    """Metric the pipeline operates on."""

    VALUE = "value"
    COUNT = "count"


class SeriesPoint(BaseModel):
    """One month in the forecast display series.

    Attributes:
        key:       ``"YYYY-MM"`` month key.
        month:     Display label, e.g. ``"May 2024"``.
        actual:    Observed (or gap-filled) metric; ``None`` for future points.
        forecast:  Projected metric; ``None`` for history except the last point.
        is_future: True for projected months.
        is_gap:    True for synthesized zero-activity months.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    key: str
    month: str
    actual: Optional[int] = None
    forecast: Optional[int] = None
    is_future: bool = False
    is_gap: bool = False
