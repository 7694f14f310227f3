"""Deal record models as supplied by the upstream data store."""

import re
from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, Field, field_validator

from .scoring import ComponentScores, Outcome, Tier

_SUFFIXES = {
    "thousand": 1_000,
    "k": 1_000,
    "million": 1_000_000,
    "mm": 1_000_000,
    "m": 1_000_000,
    "billion": 1_000_000_000,
    "b": 1_000_000_000,
}
# Longer suffixes must precede their prefixes in the alternation
_AMOUNT_PATTERN = re.compile(r"(-?\d+(?:\.\d+)?)\s*(million|mm|m|thousand|k|billion|b)?\b")


def parse_amount(value: Any) -> Optional[float]:
    """Parse a currency amount such as 1200000, "$1,200,000", "1.2M" or "$5 million"."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)

    text = str(value).strip().lower().replace(",", "").replace("$", "")
    if not text:
        return None
    negative = text.startswith("(") and text.endswith(")")
    match = _AMOUNT_PATTERN.search(text.strip("()"))
    if not match:
        return None

    amount = float(match.group(1)) * _SUFFIXES.get(match.group(2) or "", 1)
    return -amount if negative else amount


class FinancialPeriod(BaseModel):
    """One reported value for a financial line item."""

    year: Optional[str] = None
    value: Optional[float] = None

    @field_validator("value", mode="before")
    @classmethod
    def _parse_value(cls, value: Any) -> Optional[float]:
        return parse_amount(value)

    @field_validator("year", mode="before")
    @classmethod
    def _coerce_year(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)


class DealFinancials(BaseModel):
    """Extracted financials. The first period is the most relevant one."""

    revenue: list[FinancialPeriod] = Field(default_factory=list)
    ebitda: list[FinancialPeriod] = Field(default_factory=list)

    @field_validator("revenue", "ebitda", mode="before")
    @classmethod
    def _wrap_scalar(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, (int, float, str)):
            return [{"value": value}]
        return value

    @property
    def latest_revenue(self) -> Optional[float]:
        return self.revenue[0].value if self.revenue else None

    @property
    def latest_ebitda(self) -> Optional[float]:
        return self.ebitda[0].value if self.ebitda else None


class DealConfidence(BaseModel):
    """Confidence assessment attached by the extraction service."""

    level: Optional[Tier] = None
    signals: list[str] = Field(default_factory=list)


class DealRecord(BaseModel):
    """A target business as stored upstream. The engine writes back score fields only."""

    id: str = Field(description="Deal identifier")
    workspace_id: Optional[str] = Field(default=None, description="Owning workspace (scoring scope)")
    company_name: Optional[str] = None
    asking_price: Optional[float] = None
    naics_code: Optional[str] = None

    financials: DealFinancials = Field(default_factory=DealFinancials)
    confidence: DealConfidence = Field(default_factory=DealConfidence)
    red_flags: Optional[str] = Field(default=None, description="Free-text red flags from analysis")
    final_tier: Optional[Tier] = Field(default=None, description="Upstream tier hint")
    sba_eligible: Optional[bool] = None
    outcome: Optional[Outcome] = None

    # Written back by the scoring engine
    score: Optional[float] = None
    score_components: Optional[ComponentScores] = None
    scored_at: Optional[datetime] = None

    @field_validator("asking_price", mode="before")
    @classmethod
    def _parse_price(cls, value: Any) -> Optional[float]:
        return parse_amount(value)

    @field_validator("red_flags", mode="before")
    @classmethod
    def _join_red_flags(cls, value: Any) -> Optional[str]:
        if isinstance(value, (list, tuple)):
            return "\n".join(str(v) for v in value)
        return value
