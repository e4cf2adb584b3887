"""Built-in five-month sample payload used by ``award-forecaster sample-forecast``."""

from __future__ import annotations

from award_forecaster.models.payload import AggregateInput, ForecastRequest

SAMPLE_AGGREGATES: list[tuple[str, float, int]] = [
    ("2024-05",   750_000.0, 6),
    ("2024-06",   615_000.0, 5),
    ("2024-07",   980_000.0, 7),
    ("2024-08",   820_000.0, 4),
    ("2024-09", 1_030_000.0, 8),
]


def sample_forecast_request(horizon: int = 6) -> ForecastRequest:
    return ForecastRequest(
        aggregates=[
            AggregateInput(month=month, total_value=value, notice_count=count)
            for month, value, count in SAMPLE_AGGREGATES
        ],
        horizon=horizon,
    )
