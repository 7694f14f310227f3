"""Data models for the deal scoring engine."""

from .scoring import (
    DEFAULT_WEIGHT_SET,
    FACTORS,
    GLOBAL_SCOPE,
    ComponentScores,
    FactorWeights,
    OutcomeLabeledDeal,
    ScoreResult,
    WeightSet,
)
from .deal import (
    DealConfidence,
    DealFinancials,
    DealRecord,
    FinancialPeriod,
    parse_amount,
)
from .loan import (
    BreakevenResult,
    DealStructure,
    FeeNotice,
    LoanInputs,
    LoanOutputs,
    Scenario,
    ScenarioAssumptions,
    ScenarioSet,
    WorkingCapitalInputs,
    WorkingCapitalOutputs,
)

__all__ = [
    "DEFAULT_WEIGHT_SET",
    "FACTORS",
    "GLOBAL_SCOPE",
    "ComponentScores",
    "FactorWeights",
    "OutcomeLabeledDeal",
    "ScoreResult",
    "WeightSet",
    "DealConfidence",
    "DealFinancials",
    "DealRecord",
    "FinancialPeriod",
    "parse_amount",
    "BreakevenResult",
    "DealStructure",
    "FeeNotice",
    "LoanInputs",
    "LoanOutputs",
    "Scenario",
    "ScenarioAssumptions",
    "ScenarioSet",
    "WorkingCapitalInputs",
    "WorkingCapitalOutputs",
]
