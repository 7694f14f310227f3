"""CLI entry point for the deal scoring engine."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from dealengine.models import DealRecord, LoanInputs, LoanOutputs, ScenarioSet, ScoreResult
from dealengine.finance import LoanStructureCalculator, ScenarioEngine
from dealengine.score import RecalibrationJob, ScoringService
from dealengine.store import SqlScoringStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def load_json(path: Path) -> dict:
    """Load a JSON object from file."""
    with open(path, "r") as f:
        return json.load(f)


def run_score(deal_path: Path) -> ScoreResult:
    """Store and score a deal from a JSON file."""
    deal = DealRecord(**load_json(deal_path))
    store = SqlScoringStore()
    store.save_deal(deal)

    result = ScoringService(store).score_deal(deal)
    print_score(deal, result)
    return result


def run_sba(inputs_path: Path, all_investors_us_persons: bool = True) -> LoanOutputs:
    """Calculate an SBA loan structure from a JSON file of loan inputs."""
    inputs = LoanInputs(**load_json(inputs_path))
    outputs = LoanStructureCalculator().calculate(inputs, all_investors_us_persons)
    print_loan(outputs)
    return outputs


def run_scenarios(
    inputs_path: Path,
    revenue: Optional[float] = None,
    top_customer_percent: float = 0.0,
) -> ScenarioSet:
    """Stress-test a loan structure from a JSON file of loan inputs."""
    inputs = LoanInputs(**load_json(inputs_path))
    result = ScenarioEngine().build_scenarios(inputs, revenue, top_customer_percent)
    print_scenarios(result)
    return result


def run_retrain(workspace: Optional[str] = None, timeout: Optional[float] = None):
    """Recalibrate weights for a scope from stored deal outcomes."""
    store = SqlScoringStore()
    run = RecalibrationJob(store, timeout=timeout).run(scope=workspace)

    print("\n" + "=" * 60)
    print("SCORING MODEL RECALIBRATION")
    print("=" * 60)
    print(f"\nScope: {run.scope}")
    print(f"Status: {run.status}")
    print(f"Message: {run.message}")
    print(f"Training samples: {run.sample_size}")
    for key, value in run.outcome_counts.items():
        print(f"   {key}: {value}")
    print_weights(run.weight_set.weights.model_dump(), f"Active weights (v{run.weight_set.version})")
    print("\n" + "=" * 60)
    return run


def print_score(deal: DealRecord, result: ScoreResult):
    """Print a deal score to console."""
    print("\n" + "=" * 60)
    print(f"DEAL SCORE - {deal.company_name or deal.id}")
    print("=" * 60)
    print(f"\nTier: {result.tier}")
    print(f"Score: {result.score:.1f} | Confidence: {result.confidence:.2f}")
    print_weights(result.breakdown, "Contribution by factor (%)")
    print("\n" + "=" * 60)


def print_weights(values: dict[str, float], title: str):
    print("\n" + "-" * 60)
    print(title)
    print("-" * 60)
    for factor, value in values.items():
        print(f"   {factor:<24} {value:8.3f}")


def print_loan(outputs: LoanOutputs):
    """Print an SBA loan structure to console."""
    print("\n" + "=" * 60)
    print("SBA 7(a) LOAN STRUCTURE")
    print("=" * 60)
    print(f"\nTotal project cost: ${outputs.total_project_cost:,.0f}")
    print(f"SBA loan: ${outputs.sba_loan_amount:,.0f} (fee ${outputs.sba_guarantee_fee_amount:,.0f})")
    print(f"Equity injection: ${outputs.equity_injection_required:,.0f} ({outputs.equity_injection_percent:.1f}%)")
    print(f"Monthly debt service: ${outputs.total_monthly_debt_service:,.0f}")
    print(f"Annual debt service: ${outputs.annual_debt_service:,.0f}")
    print(f"DSCR: {format_ratio(outputs.dscr)}")
    print(f"Year-one cash flow: ${outputs.year_one_cash_flow:,.0f}")
    print(f"SBA eligible: {'Yes' if outputs.sba_eligible else 'No'}")

    for issue in outputs.sba_eligibility_issues:
        print(f"   ISSUE: {issue}")
    for warning in outputs.sba_eligibility_warnings:
        print(f"   WARNING: {warning}")
    for notice in outputs.notices:
        print(f"   NOTE: {notice.message}")

    print("\n" + "=" * 60)


def print_scenarios(result: ScenarioSet):
    """Print scenario analysis to console."""
    print("\n" + "=" * 60)
    print("SCENARIO ANALYSIS")
    print("=" * 60)

    for scenario in result.scenarios:
        print(f"\n{scenario.name} [{scenario.viability}]")
        print(f"   {scenario.description}")
        print(f"   Revenue: ${scenario.adjusted_revenue:,.0f} | EBITDA: ${scenario.adjusted_ebitda:,.0f}")
        print(f"   DSCR: {format_ratio(scenario.outputs.dscr)}")
        for risk in scenario.risk_factors:
            print(f"   Risk: {risk}")

    print("\n" + "-" * 60)
    print(f"Breakeven EBITDA (DSCR {result.breakeven.target_dscr}x): ${result.breakeven.ebitda_required:,.0f}")
    print(f"Margin of safety: {result.breakeven.margin_of_safety:.1f}%")
    print("\n" + "=" * 60)


def format_ratio(value: Optional[float]) -> str:
    return f"{value:.2f}x" if value is not None else "n/a"


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Deal scoring and SBA loan feasibility engine"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    score_parser = subparsers.add_parser("score", help="Score a deal from a JSON file")
    score_parser.add_argument("--deal", "-d", type=Path, required=True, help="Path to deal JSON file")

    sba_parser = subparsers.add_parser("sba", help="Calculate an SBA 7(a) loan structure")
    sba_parser.add_argument("--inputs", "-i", type=Path, required=True, help="Path to loan inputs JSON file")
    sba_parser.add_argument(
        "--non-us-investors",
        action="store_true",
        help="Investor group includes non-U.S. persons",
    )

    scenario_parser = subparsers.add_parser("scenarios", help="Run scenario analysis on a loan structure")
    scenario_parser.add_argument("--inputs", "-i", type=Path, required=True, help="Path to loan inputs JSON file")
    scenario_parser.add_argument("--revenue", "-r", type=float, help="Base revenue (default: from inputs)")
    scenario_parser.add_argument(
        "--top-customer-pct",
        type=float,
        default=0.0,
        help="Revenue share of the largest customer, percent (default: 0)",
    )

    retrain_parser = subparsers.add_parser("retrain", help="Recalibrate scoring weights from deal outcomes")
    retrain_parser.add_argument("--workspace", "-w", help="Workspace scope (default: global)")
    retrain_parser.add_argument("--timeout", "-t", type=float, help="Timeout in seconds")

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    for path in (getattr(args, "deal", None), getattr(args, "inputs", None)):
        if path is not None and not path.exists():
            logger.error(f"File not found: {path}")
            sys.exit(1)

    try:
        if args.command == "score":
            run_score(args.deal)
        elif args.command == "sba":
            run_sba(args.inputs, all_investors_us_persons=not args.non_us_investors)
        elif args.command == "scenarios":
            run_scenarios(args.inputs, args.revenue, args.top_customer_pct)
        elif args.command == "retrain":
            run = run_retrain(args.workspace, args.timeout)
            if run.status in ("cancelled", "conflict"):
                sys.exit(1)
    except (ValueError, ValidationError) as e:
        logger.error(f"Invalid input: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Command failed: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
