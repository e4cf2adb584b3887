"""
Shared pytest fixtures for the Award Forecaster test suite.

Provides:
  - ``now_oct_2024``: fixed reference instant inside October 2024.
  - Sample payload factories (the five-month May–Sep 2024 aggregates and a
    small DEU/ITA notice set).
  - Collaborator doubles: a recording translator, a failing translator and
    static/failing macro-budget providers.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Sequence

import pytest

from award_forecaster.config import AppConfig, ModelConfig
from award_forecaster.models.macro import MacroBudgetEntry
from award_forecaster.models.payload import AggregateInput, ForecastRequest, NoticeInput


# ── Reference instants ────────────────────────────────────────────────────────

@pytest.fixture
def now_oct_2024() -> datetime:
    return datetime(2024, 10, 15, 9, 30, tzinfo=timezone.utc)


# ── Payload factories ─────────────────────────────────────────────────────────

SAMPLE_ROWS = [
    ("2024-05", 750_000, 6),
    ("2024-06", 615_000, 5),
    ("2024-07", 980_000, 7),
    ("2024-08", 820_000, 4),
    ("2024-09", 1_030_000, 8),
]


@pytest.fixture
def sample_aggregates() -> list[AggregateInput]:
    """Five consecutive months, May–Sep 2024, with values and counts."""
    return [
        AggregateInput(month=month, total_value=value, notice_count=count)
        for month, value, count in SAMPLE_ROWS
    ]


@pytest.fixture
def sample_forecast_request(sample_aggregates) -> ForecastRequest:
    return ForecastRequest(aggregates=sample_aggregates, horizon=6)


@pytest.fixture
def country_notices() -> list[NoticeInput]:
    """DEU 150k over two notices, ITA 10k; DEU share 93.75%."""
    return [
        NoticeInput(award_date="2024-09-03", contract_value=100_000, country="DEU"),
        NoticeInput(award_date="2024-09-17", contract_value=50_000, country="DEU"),
        NoticeInput(award_date="2024-09-20", contract_value=10_000, country="ITA"),
    ]


@pytest.fixture
def linear_config() -> AppConfig:
    """Config with the closed-form regressor for exact, fast expectations."""
    return AppConfig(model=ModelConfig(kind="linear"))


# ── Collaborator doubles ──────────────────────────────────────────────────────

class RecordingTranslator:
    """Prefixes text with ``[lang]`` and records every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, object, str]] = []

    async def translate(self, text: str, target_language: str) -> str:
        self.calls.append(("translate", text, target_language))
        return f"[{target_language}] {text}"

    async def batch_translate(self, texts: Sequence[str], target_language: str) -> list[str]:
        self.calls.append(("batch_translate", list(texts), target_language))
        return [f"[{target_language}] {t}" for t in texts]


class FailingTranslator:
    async def translate(self, text: str, target_language: str) -> str:
        raise RuntimeError("translation backend unavailable")

    async def batch_translate(self, texts: Sequence[str], target_language: str) -> list[str]:
        raise RuntimeError("translation backend unavailable")


class StaticMacroProvider:
    """Returns fixed entries and records the requested years."""

    def __init__(self, entries: list[MacroBudgetEntry]) -> None:
        self.entries = entries
        self.years: list[int] = []

    async def fetch_macro_budget(self, year: int) -> list[MacroBudgetEntry]:
        self.years.append(year)
        return list(self.entries)


class FailingMacroProvider:
    async def fetch_macro_budget(self, year: int) -> list[MacroBudgetEntry]:
        raise ConnectionError("TED unreachable")


@pytest.fixture
def recording_translator() -> RecordingTranslator:
    return RecordingTranslator()


@pytest.fixture
def failing_translator() -> FailingTranslator:
    return FailingTranslator()


@pytest.fixture
def germany_budget() -> StaticMacroProvider:
    return StaticMacroProvider(
        [
            MacroBudgetEntry(
                country_code="DEU",
                country_name="Germany",
                year=2023,
                total_value_eur=1_500_000.0,
                notice_count=42,
                sample_notice_id="123456-2023",
            ),
            MacroBudgetEntry(
                country_code="ITA",
                country_name="Italy",
                year=2023,
                total_value_eur=900_000.0,
                notice_count=17,
            ),
        ]
    )


@pytest.fixture
def failing_macro_provider() -> FailingMacroProvider:
    return FailingMacroProvider()
