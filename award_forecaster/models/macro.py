"""
Prior-year country budget reference used for macro alignment.

One ``MacroBudgetEntry`` summarises a country's awarded procurement value
for a calendar year, as aggregated from TED contract-award notices.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


class MacroBudgetEntry(BaseModel):
    """Yearly awarded value for one country.

    Attributes:
        country_code:     Upper-case ISO code as published by TED (``"DEU"``).
        country_name:     Human-readable country name (``"Germany"``).
        year:             Calendar year the totals cover.
        total_value_eur:  Sum of positive award values in EUR.
        notice_count:     Number of notices counted.
        sample_notice_id: First notice identifier seen, for provenance.
        last_award_date:  Publication date of the last notice seen.
    """

    model_config = ConfigDict(frozen=True)

    country_code: str
    country_name: str
    year: int
    total_value_eur: float = 0.0
    notice_count: int = 0
    sample_notice_id: Optional[str] = None
    last_award_date: Optional[str] = None

    @field_validator("total_value_eur")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("total_value_eur must be non-negative.")
        return v
