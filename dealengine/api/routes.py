"""API routes for deal scoring and loan modeling."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from dealengine.config import settings
from dealengine.finance import (
    LoanStructureCalculator,
    ScenarioEngine,
    calculate_deal_structure,
    calculate_working_capital,
)
from dealengine.models import (
    GLOBAL_SCOPE,
    ComponentScores,
    DealRecord,
    DealStructure,
    LoanInputs,
    LoanOutputs,
    ScenarioSet,
    ScoreResult,
    WeightSet,
    WorkingCapitalInputs,
    WorkingCapitalOutputs,
)
from dealengine.score import RecalibrationJob, ScoringService
from dealengine.store import DealNotFoundError, ScoringStore, SqlScoringStore

logger = logging.getLogger(__name__)

router = APIRouter()

_store: Optional[ScoringStore] = None


def get_store() -> ScoringStore:
    """Shared store for request handlers."""
    global _store
    if _store is None:
        _store = SqlScoringStore()
    return _store


class ScoreRequest(BaseModel):
    """Request body for scoring precomputed components."""
    components: ComponentScores
    scope: Optional[str] = None


class LoanRequest(BaseModel):
    """Loan calculation request. Omitted fields use typical SBA 7(a) defaults."""
    purchase_price: Optional[float] = None
    working_capital: Optional[float] = None
    closing_costs: Optional[float] = None
    packaging_fee: Optional[float] = None
    equity_injection: Optional[float] = None
    seller_note_amount: Optional[float] = None
    seller_note_rate: Optional[float] = None
    seller_note_term_years: Optional[float] = None
    seller_note_standby_months: Optional[int] = None
    earnout_amount: Optional[float] = None
    interest_rate: Optional[float] = None
    loan_term_years: Optional[float] = None
    ebitda: Optional[float] = None
    revenue: Optional[float] = None
    naics_code: Optional[str] = None
    all_investors_us_persons: bool = True


class LoanResponse(BaseModel):
    """Loan calculation response."""
    inputs: LoanInputs
    outputs: LoanOutputs
    all_investors_us_persons: bool


class ScenarioRequest(LoanRequest):
    """Scenario request: loan fields plus revenue stress assumptions."""
    base_revenue: Optional[float] = None
    top_customer_percent: float = Field(default=0.0, ge=0.0, le=100.0)


class DealStructureRequest(BaseModel):
    """Request body for a quick deal structure."""
    purchase_price: float
    ebitda: float
    down_payment_pct: float = 10.0
    interest_rate: float = 7.5
    loan_term_years: int = 10


class WorkingCapitalRequest(BaseModel):
    """Working capital request. Omitted balance sheet items count as zero."""
    accounts_receivable: Optional[float] = None
    inventory: Optional[float] = None
    prepaid_expenses: Optional[float] = None
    accounts_payable: Optional[float] = None
    accrued_expenses: Optional[float] = None
    annual_revenue: Optional[float] = None
    industry: Optional[str] = None
    industry_wc_percent: Optional[float] = None


class WorkingCapitalResponse(BaseModel):
    """Working capital response."""
    inputs: WorkingCapitalInputs
    outputs: WorkingCapitalOutputs


class RetrainResponse(BaseModel):
    """Response for a recalibration run."""
    success: bool
    status: str
    message: str
    workspace_id: str
    weights: WeightSet
    sample_size: int
    outcome_counts: dict[str, int]


class ModelInfoResponse(BaseModel):
    """Active weights and training statistics."""
    workspace_weights: Optional[WeightSet]
    global_weights: Optional[WeightSet]
    statistics: dict


@router.post("/score", response_model=ScoreResult)
def score_components(request: ScoreRequest, store: ScoringStore = Depends(get_store)):
    """Score precomputed components with the active weights."""
    return ScoringService(store).score_components(request.components, request.scope)


@router.put("/deals/{deal_id}", response_model=DealRecord)
def save_deal(deal_id: str, deal: DealRecord, store: ScoringStore = Depends(get_store)):
    """Store or replace a deal record."""
    if deal.id != deal_id:
        raise HTTPException(status_code=400, detail="Deal id in path and body must match")
    return store.save_deal(deal)


@router.post("/deals/{deal_id}/score", response_model=ScoreResult)
def score_deal(deal_id: str, store: ScoringStore = Depends(get_store)):
    """Score a stored deal and write tier and score back."""
    try:
        return ScoringService(store).score_deal_by_id(deal_id)
    except DealNotFoundError:
        raise HTTPException(status_code=404, detail="Deal not found")


@router.post("/deals/{deal_id}/scenarios", response_model=ScenarioSet)
def deal_scenarios(
    deal_id: str,
    top_customer_percent: Optional[float] = None,
    store: ScoringStore = Depends(get_store),
):
    """Build scenarios for a stored deal from typical financing assumptions."""
    deal = store.get_deal(deal_id)
    if deal is None:
        raise HTTPException(status_code=404, detail="Deal not found")

    result = ScenarioEngine().scenarios_for_deal(deal, top_customer_percent)
    if result is None:
        raise HTTPException(status_code=400, detail="Revenue and EBITDA are required for scenario analysis")
    return result


@router.post("/calculate-sba", response_model=LoanResponse)
async def calculate_sba(request: LoanRequest):
    """Calculate an SBA 7(a) loan structure."""
    inputs = _build_loan_inputs(request)
    outputs = LoanStructureCalculator().calculate(inputs, request.all_investors_us_persons)
    return LoanResponse(
        inputs=inputs,
        outputs=outputs,
        all_investors_us_persons=request.all_investors_us_persons,
    )


@router.post("/scenarios", response_model=ScenarioSet)
async def scenarios(request: ScenarioRequest):
    """Stress-test a loan structure under standard scenarios."""
    inputs = _build_loan_inputs(request)
    base_revenue = request.base_revenue if request.base_revenue is not None else inputs.revenue
    if base_revenue <= 0:
        raise HTTPException(status_code=400, detail="Revenue is required for scenario analysis")

    return ScenarioEngine().build_scenarios(
        inputs,
        base_revenue,
        request.top_customer_percent,
        request.all_investors_us_persons,
    )


@router.post("/calculate-deal-structure", response_model=DealStructure)
async def deal_structure(request: DealStructureRequest):
    """Quick structure from a down payment percentage."""
    try:
        return calculate_deal_structure(
            purchase_price=request.purchase_price,
            ebitda=request.ebitda,
            down_payment_pct=request.down_payment_pct,
            interest_rate=request.interest_rate,
            loan_term_years=request.loan_term_years,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/calculate-working-capital", response_model=WorkingCapitalResponse)
async def working_capital(request: WorkingCapitalRequest):
    """Estimate the working capital peg and true-up at close."""
    if request.annual_revenue is None or request.annual_revenue < 0:
        raise HTTPException(status_code=400, detail="annual_revenue must be a non-negative number")
    if not request.industry:
        raise HTTPException(status_code=400, detail="industry is required")
    if request.industry_wc_percent is not None and request.industry_wc_percent < 0:
        raise HTTPException(status_code=400, detail="industry_wc_percent must be non-negative")

    inputs = WorkingCapitalInputs(
        accounts_receivable=request.accounts_receivable or 0.0,
        inventory=request.inventory or 0.0,
        prepaid_expenses=request.prepaid_expenses or 0.0,
        accounts_payable=request.accounts_payable or 0.0,
        accrued_expenses=request.accrued_expenses or 0.0,
        annual_revenue=request.annual_revenue,
        industry=request.industry,
        industry_wc_percent=request.industry_wc_percent,
    )
    return WorkingCapitalResponse(inputs=inputs, outputs=calculate_working_capital(inputs))


@router.post("/retrain-scoring-model", response_model=RetrainResponse)
def retrain_scoring_model(
    workspace_id: Optional[str] = None,
    store: ScoringStore = Depends(get_store),
):
    """Recalibrate scoring weights from deal outcomes.

    Declared sync so the blocking job runs in the threadpool, off the event loop.
    """
    logger.info(f"Retrain requested for scope '{workspace_id or GLOBAL_SCOPE}'")
    run = RecalibrationJob(store).run(scope=workspace_id)
    if run.status == "conflict":
        raise HTTPException(status_code=409, detail=run.message)

    return RetrainResponse(
        success=run.status in ("completed", "skipped"),
        status=run.status,
        message=run.message,
        workspace_id=run.scope,
        weights=run.weight_set,
        sample_size=run.sample_size,
        outcome_counts=run.outcome_counts,
    )


@router.get("/retrain-scoring-model", response_model=ModelInfoResponse)
def model_info(
    workspace_id: Optional[str] = None,
    store: ScoringStore = Depends(get_store),
):
    """Current weights and training statistics."""
    workspace_weights = None
    if workspace_id and workspace_id != GLOBAL_SCOPE:
        active = store.list_active_weight_sets(workspace_id)
        workspace_weights = active[0] if active else None

    global_active = store.list_active_weight_sets(GLOBAL_SCOPE)
    stats = store.outcome_statistics(workspace_id)

    return ModelInfoResponse(
        workspace_weights=workspace_weights,
        global_weights=global_active[0] if global_active else None,
        statistics={
            "total_deals_with_outcome": stats["total"],
            "closed_deals": stats["closed"],
            "passed_deals": stats["passed"],
            "lost_deals": stats["lost"],
            "training_ready": stats["total"] >= settings.min_training_samples,
        },
    )


def _build_loan_inputs(request: LoanRequest) -> LoanInputs:
    """Validate a loan request and fill defaults."""
    if not request.purchase_price or request.purchase_price <= 0:
        raise HTTPException(status_code=400, detail="purchase_price must be a positive number")
    if not request.ebitda or request.ebitda <= 0:
        raise HTTPException(status_code=400, detail="ebitda must be a positive number")

    def pick(value, default):
        return default if value is None else value

    return LoanInputs(
        purchase_price=request.purchase_price,
        working_capital=pick(request.working_capital, 0.0),
        closing_costs=pick(request.closing_costs, request.purchase_price * settings.default_closing_cost_pct / 100),
        packaging_fee=pick(request.packaging_fee, settings.default_packaging_fee),
        equity_injection=pick(request.equity_injection, 0.0),
        seller_note_amount=pick(request.seller_note_amount, 0.0),
        seller_note_rate=pick(request.seller_note_rate, settings.default_seller_note_rate),
        seller_note_term_years=pick(request.seller_note_term_years, settings.default_seller_note_term_years),
        seller_note_standby_months=pick(
            request.seller_note_standby_months, settings.default_seller_note_standby_months
        ),
        earnout_amount=pick(request.earnout_amount, 0.0),
        interest_rate=pick(request.interest_rate, settings.default_interest_rate),
        loan_term_years=pick(request.loan_term_years, settings.default_loan_term_years),
        ebitda=request.ebitda,
        revenue=pick(request.revenue, 0.0),
        naics_code=request.naics_code,
    )
