"""Stress-test a baseline loan structure under standard scenarios."""

import logging
from datetime import date
from typing import Optional

from dealengine.config import settings
from dealengine.models import (
    BreakevenResult,
    DealRecord,
    LoanInputs,
    LoanOutputs,
    Scenario,
    ScenarioAssumptions,
    ScenarioSet,
)
from .defaults import loan_inputs_for_deal
from .sba import MIN_DSCR, PREFERRED_DSCR, LoanStructureCalculator

logger = logging.getLogger(__name__)

TARGET_DSCR = 1.25

UPSIDE_REVENUE_FACTOR = 1.20
DOWNSIDE_REVENUE_FACTOR = 0.80
MARGIN_SHIFT = 0.05  # 5 percentage points


def classify_viability(dscr: Optional[float]) -> str:
    """Classify a scenario by its debt service coverage."""
    if dscr is None or dscr >= PREFERRED_DSCR:
        return "viable"
    if dscr >= MIN_DSCR:
        return "marginal"
    return "unviable"


def dscr_risk_factors(dscr: Optional[float]) -> list[str]:
    if dscr is None:
        return []
    if dscr < MIN_DSCR:
        return ["DSCR falls below SBA minimum (1.15x)"]
    if dscr < PREFERRED_DSCR:
        return ["DSCR below preferred threshold (1.25x)"]
    return []


class ScenarioEngine:
    """Build base, upside, downside and worst-case scenarios plus breakeven."""

    def __init__(self, calculator: Optional[LoanStructureCalculator] = None):
        self.calculator = calculator or LoanStructureCalculator()

    def build_scenarios(
        self,
        base_inputs: LoanInputs,
        base_revenue: Optional[float] = None,
        top_customer_percent: float = 0.0,
        all_investors_us_persons: bool = True,
        as_of: Optional[date] = None,
    ) -> ScenarioSet:
        """Run the baseline and three perturbed scenarios through the loan calculator.

        Upside >= Base >= Downside on EBITDA holds only for positive revenue. With
        revenue <= 0 the margin is taken as 0, so every perturbed case has zero
        EBITDA while the base case keeps the stated EBITDA.
        """
        as_of = as_of or date.today()
        revenue = base_revenue if base_revenue is not None else base_inputs.revenue
        top_customer_percent = min(100.0, max(0.0, top_customer_percent))
        base_margin = base_inputs.ebitda / revenue if revenue > 0 else 0.0

        def run(name, description, assumptions, adjusted_revenue, adjusted_ebitda, extra_risks=()):
            inputs = base_inputs.model_copy(update={
                "revenue": adjusted_revenue,
                "ebitda": adjusted_ebitda,
                "interest_rate": max(0.0, base_inputs.interest_rate + assumptions.interest_rate_change),
            })
            outputs = self.calculator.calculate(inputs, all_investors_us_persons, as_of)
            return Scenario(
                name=name,
                description=description,
                assumptions=assumptions,
                adjusted_ebitda=adjusted_ebitda,
                adjusted_revenue=adjusted_revenue,
                outputs=outputs,
                viability=classify_viability(outputs.dscr),
                risk_factors=list(extra_risks) + dscr_risk_factors(outputs.dscr),
            )

        base_case = run(
            "Base Case",
            "As presented",
            ScenarioAssumptions(),
            revenue,
            base_inputs.ebitda,
        )

        upside_revenue = revenue * UPSIDE_REVENUE_FACTOR
        upside = run(
            "Upside Case",
            "+20% revenue growth, +5pt margin expansion",
            ScenarioAssumptions(revenue_change_percent=20, ebitda_margin_change=5),
            upside_revenue,
            upside_revenue * max(base_margin + MARGIN_SHIFT, 0.0),
        )

        downside_revenue = revenue * DOWNSIDE_REVENUE_FACTOR
        downside = run(
            "Downside Case",
            "-20% revenue decline, margins hold",
            ScenarioAssumptions(revenue_change_percent=-20),
            downside_revenue,
            downside_revenue * max(base_margin, 0.0),
        )

        worst_revenue = revenue * (1 - top_customer_percent / 100)
        worst_risks = ["Operating margin compression"]
        if top_customer_percent > 0:
            worst_risks.insert(0, "Loss of largest customer")
        worst_case = run(
            "Worst Case",
            f"Top customer ({top_customer_percent:g}%) lost + 5pt margin compression",
            ScenarioAssumptions(
                revenue_change_percent=-top_customer_percent,
                ebitda_margin_change=-5,
                top_customer_loss=True,
                top_customer_revenue_percent=top_customer_percent,
            ),
            worst_revenue,
            worst_revenue * max(base_margin - MARGIN_SHIFT, 0.0),
            worst_risks,
        )

        breakeven = self.breakeven(base_case.outputs, base_inputs.ebitda)
        logger.debug(
            f"Scenarios built: base DSCR {base_case.outputs.dscr}, worst DSCR {worst_case.outputs.dscr}, "
            f"margin of safety {breakeven.margin_of_safety:.1f}%"
        )

        return ScenarioSet(
            base_case=base_case,
            upside=upside,
            downside=downside,
            worst_case=worst_case,
            breakeven=breakeven,
        )

    def scenarios_for_deal(
        self,
        deal: DealRecord,
        top_customer_percent: Optional[float] = None,
        as_of: Optional[date] = None,
    ) -> Optional[ScenarioSet]:
        """Scenarios from typical financing assumptions, or None without revenue and EBITDA."""
        inputs = loan_inputs_for_deal(deal)
        if inputs is None:
            return None

        if top_customer_percent is None:
            top_customer_percent = settings.default_top_customer_pct
        return self.build_scenarios(inputs, inputs.revenue, top_customer_percent, as_of=as_of)

    @staticmethod
    def breakeven(base_outputs: LoanOutputs, actual_ebitda: float) -> BreakevenResult:
        """EBITDA needed to hold the target DSCR and how far actual EBITDA sits above it."""
        ebitda_required = base_outputs.annual_debt_service * TARGET_DSCR
        margin_of_safety = (
            (actual_ebitda - ebitda_required) / actual_ebitda * 100
            if actual_ebitda > 0
            else 0.0
        )
        return BreakevenResult(
            target_dscr=TARGET_DSCR,
            ebitda_required=ebitda_required,
            margin_of_safety=margin_of_safety,
        )


def build_scenarios(
    base_inputs: LoanInputs,
    base_revenue: Optional[float] = None,
    top_customer_percent: float = 0.0,
    all_investors_us_persons: bool = True,
    as_of: Optional[date] = None,
) -> ScenarioSet:
    """Convenience wrapper around ScenarioEngine."""
    return ScenarioEngine().build_scenarios(
        base_inputs,
        base_revenue,
        top_customer_percent,
        all_investors_us_persons,
        as_of,
    )


def scenarios_for_deal(
    deal: DealRecord,
    top_customer_percent: Optional[float] = None,
    as_of: Optional[date] = None,
) -> Optional[ScenarioSet]:
    """Convenience wrapper around ScenarioEngine.scenarios_for_deal."""
    return ScenarioEngine().scenarios_for_deal(deal, top_customer_percent, as_of)
