"""SBA 7(a) loan structure and scenario models."""

from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

Viability = Literal["viable", "marginal", "unviable"]


class LoanInputs(BaseModel):
    """Financing assumptions for an acquisition."""

    # Purchase details
    purchase_price: float = Field(ge=0.0)
    working_capital: float = Field(default=0.0, ge=0.0)
    closing_costs: float = Field(default=0.0, ge=0.0, description="Typically 3-5% of purchase price")
    packaging_fee: float = Field(default=0.0, ge=0.0, description="Lender packaging fee")
    equity_injection: float = Field(default=0.0, ge=0.0, description="Buyer cash put into the deal")

    # Seller financing
    seller_note_amount: float = Field(default=0.0, ge=0.0)
    seller_note_rate: float = Field(default=0.0, ge=0.0, description="Annual rate in percent")
    seller_note_term_years: float = Field(default=0.0, ge=0.0)
    seller_note_standby_months: int = Field(default=24, ge=0, description="Months of deferred payments")

    earnout_amount: float = Field(default=0.0, ge=0.0)

    # SBA loan terms
    interest_rate: float = Field(ge=0.0, description="Annual rate in percent")
    loan_term_years: float = Field(ge=0.0)

    # Business financials
    ebitda: float
    revenue: float = 0.0

    # Industry classification (fee waiver detection)
    naics_code: Optional[str] = None


class FeeNotice(BaseModel):
    """Informational finding that does not affect eligibility."""

    model_config = ConfigDict(frozen=True)

    type: Literal["bonus", "info"] = "info"
    message: str


class LoanOutputs(BaseModel):
    """Computed loan structure. Ratios are None where the denominator is zero."""

    model_config = ConfigDict(frozen=True)

    # Project costs
    total_project_cost: float

    # SBA loan details
    sba_loan_base: float
    sba_loan_amount: float = Field(description="Loan base plus financed guarantee fee")
    sba_guarantee_fee_amount: float
    fee_waiver_savings: float = 0.0
    sba_max_loan_amount: float

    # Equity
    equity_injection_required: float
    equity_injection_percent: float

    # Debt service
    sba_monthly_payment: float
    seller_note_monthly_payment: float
    total_monthly_debt_service: float
    annual_debt_service: float

    # Key metrics
    dscr: Optional[float] = Field(description="EBITDA / annual debt service")
    cash_on_cash: Optional[float] = Field(description="Year-one cash flow / equity, percent")
    year_one_cash_flow: float
    payback_period_years: Optional[float]

    # Eligibility
    sba_eligible: bool
    sba_eligibility_issues: list[str] = Field(default_factory=list)
    sba_eligibility_warnings: list[str] = Field(default_factory=list)
    notices: list[FeeNotice] = Field(default_factory=list)


class ScenarioAssumptions(BaseModel):
    """Perturbations applied to the baseline."""

    revenue_change_percent: float = 0.0
    ebitda_margin_change: float = Field(default=0.0, description="Margin delta in percentage points")
    interest_rate_change: float = Field(default=0.0, description="Rate delta in percentage points")
    top_customer_loss: bool = False
    top_customer_revenue_percent: Optional[float] = None


class Scenario(BaseModel):
    """A stress-tested variant of the baseline loan structure."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    assumptions: ScenarioAssumptions
    adjusted_ebitda: float
    adjusted_revenue: float
    outputs: LoanOutputs
    viability: Viability
    risk_factors: list[str] = Field(default_factory=list)


class BreakevenResult(BaseModel):
    """EBITDA needed to hold the target DSCR and the current cushion."""

    model_config = ConfigDict(frozen=True)

    target_dscr: float
    ebitda_required: float
    margin_of_safety: float = Field(description="Percent cushion of actual over required EBITDA")


class ScenarioSet(BaseModel):
    """The four standard scenarios plus breakeven analysis."""

    model_config = ConfigDict(frozen=True)

    base_case: Scenario
    upside: Scenario
    downside: Scenario
    worst_case: Scenario
    breakeven: BreakevenResult

    @property
    def scenarios(self) -> list[Scenario]:
        return [self.base_case, self.upside, self.downside, self.worst_case]


class DealStructure(BaseModel):
    """Quick down-payment based structure for a deal."""

    purchase_price: float
    down_payment_pct: float
    interest_rate: float
    loan_term_years: int
    ebitda: float
    loan_amount: float
    equity_required: float
    monthly_payment: float
    annual_debt_service: float
    debt_service_coverage_ratio: float
    cash_on_cash_return: float
    payback_period_years: Optional[float]


AdjustmentDirection = Literal["buyer_credit", "buyer_debit", "neutral"]


class WorkingCapitalInputs(BaseModel):
    """Balance sheet items and revenue for a working capital peg."""

    # Current balance sheet items
    accounts_receivable: float = 0.0
    inventory: float = 0.0
    prepaid_expenses: float = 0.0
    accounts_payable: float = 0.0
    accrued_expenses: float = 0.0

    annual_revenue: float = Field(ge=0.0)
    industry: str
    industry_wc_percent: Optional[float] = Field(
        default=None, ge=0.0, description="Override benchmark, as a fraction of revenue"
    )


class WorkingCapitalOutputs(BaseModel):
    """Current versus normalized working capital and the expected true-up."""

    model_config = ConfigDict(frozen=True)

    current_working_capital: float
    current_wc_percent_of_revenue: float
    normalized_working_capital: float
    target_wc_percent_of_revenue: float

    estimated_wc_adjustment: float = Field(description="Positive: buyer owes seller at close")
    adjustment_direction: AdjustmentDirection

    warnings: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
