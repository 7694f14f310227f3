"""Acquisition loan modeling: SBA 7(a) structure, scenarios and quick structures."""

from .sba import (
    LoanStructureCalculator,
    calculate_guarantee_fee,
    calculate_sba_loan,
    monthly_payment,
)
from .scenarios import ScenarioEngine, build_scenarios, classify_viability, scenarios_for_deal
from .structure import calculate_deal_structure
from .defaults import loan_inputs_for_deal
from .working_capital import benchmark_for_industry, calculate_working_capital

__all__ = [
    "LoanStructureCalculator",
    "calculate_guarantee_fee",
    "calculate_sba_loan",
    "monthly_payment",
    "ScenarioEngine",
    "build_scenarios",
    "classify_viability",
    "scenarios_for_deal",
    "calculate_deal_structure",
    "loan_inputs_for_deal",
    "benchmark_for_industry",
    "calculate_working_capital",
]
