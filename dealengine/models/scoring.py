"""Deal scoring models: component scores, weight sets and score results."""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

Tier = Literal["A", "B", "C"]
Outcome = Literal["closed", "passed", "lost"]

GLOBAL_SCOPE = "global"

# Fixed factor order shared by components and weights
FACTORS: tuple[str, ...] = (
    "financial_quality",
    "revenue_stability",
    "customer_concentration",
    "owner_dependence",
    "industry_fit",
    "geography_fit",
    "sba_eligibility",
    "reasonable_valuation",
)


class ComponentScores(BaseModel):
    """Per-factor deal quality scores in [0, 1].

    ``None`` means the factor could not be measured for this deal, which is
    different from a measured score of zero.
    """

    financial_quality: Optional[float] = Field(default=None, ge=0.0, le=1.0, description="EBITDA margin quality")
    revenue_stability: Optional[float] = Field(default=None, ge=0.0, le=1.0, description="Revenue stability proxy")
    customer_concentration: Optional[float] = Field(
        default=None, ge=0.0, le=1.0, description="Inverted customer concentration risk"
    )
    owner_dependence: Optional[float] = Field(default=None, ge=0.0, le=1.0, description="Inverted owner dependence risk")
    industry_fit: Optional[float] = Field(default=None, ge=0.0, le=1.0, description="Fit with target industries")
    geography_fit: Optional[float] = Field(default=None, ge=0.0, le=1.0, description="Fit with target geography")
    sba_eligibility: Optional[float] = Field(default=None, ge=0.0, le=1.0, description="1.0 if SBA eligible")
    reasonable_valuation: Optional[float] = Field(default=None, ge=0.0, le=1.0, description="Valuation reasonableness")

    def get(self, factor: str) -> float:
        """Return the factor value, treating unknown as 0."""
        value = getattr(self, factor)
        return value if value is not None else 0.0

    def filled(self) -> "ComponentScores":
        """Return a complete vector with unknown factors set to 0."""
        return ComponentScores(**{factor: self.get(factor) for factor in FACTORS})

    def known(self) -> dict[str, float]:
        """Return only the measured factors."""
        return self.model_dump(exclude_none=True)

    @property
    def completeness(self) -> float:
        """Fraction of factors with a non-zero score."""
        return sum(1 for factor in FACTORS if self.get(factor) > 0) / len(FACTORS)


class FactorWeights(BaseModel):
    """Non-negative weight for each scoring factor."""

    financial_quality: float = Field(ge=0.0)
    revenue_stability: float = Field(ge=0.0)
    customer_concentration: float = Field(ge=0.0)
    owner_dependence: float = Field(ge=0.0)
    industry_fit: float = Field(ge=0.0)
    geography_fit: float = Field(ge=0.0)
    sba_eligibility: float = Field(ge=0.0)
    reasonable_valuation: float = Field(ge=0.0)

    def get(self, factor: str) -> float:
        return getattr(self, factor)

    @property
    def total(self) -> float:
        return sum(self.get(factor) for factor in FACTORS)

    def normalized(self) -> "FactorWeights":
        """Return weights rescaled to sum to 1."""
        total = self.total
        if total <= 0:
            raise ValueError("Cannot normalize weights that sum to zero")
        return FactorWeights(**{factor: self.get(factor) / total for factor in FACTORS})


class WeightSet(BaseModel):
    """A versioned set of factor weights for one scope."""

    id: Optional[int] = None
    scope: str = Field(default=GLOBAL_SCOPE, description="'global' or a workspace id")
    version: int = Field(default=0, description="Monotonic version within the scope")
    weights: FactorWeights
    created_at: datetime = Field(default_factory=datetime.utcnow)
    is_active: bool = True

    # Provenance
    training_sample_size: int = 0
    performance_metrics: dict[str, int] = Field(
        default_factory=dict,
        description="Outcome counts used for training (closed_count, passed_count, lost_count)",
    )


class ScoreResult(BaseModel):
    """Result of scoring one deal. Never mutated after construction."""

    model_config = ConfigDict(frozen=True)

    tier: Tier
    score: float = Field(ge=0.0, le=100.0, description="Weighted score 0-100")
    confidence: float = Field(ge=0.0, le=1.0, description="Share of factors with data")
    breakdown: dict[str, float] = Field(description="Factor -> percentage of the weighted score")
    components: ComponentScores


class OutcomeLabeledDeal(BaseModel):
    """Historical deal components paired with its realized outcome."""

    components: ComponentScores
    outcome: Outcome


# Initial weights; recalibration blends away from these
DEFAULT_WEIGHT_SET = WeightSet(
    scope=GLOBAL_SCOPE,
    version=0,
    weights=FactorWeights(
        financial_quality=0.25,
        revenue_stability=0.20,
        customer_concentration=0.15,
        owner_dependence=0.10,
        industry_fit=0.10,
        geography_fit=0.05,
        sba_eligibility=0.10,
        reasonable_valuation=0.05,
    ),
    created_at=datetime(2025, 1, 1),
    is_active=True,
)
