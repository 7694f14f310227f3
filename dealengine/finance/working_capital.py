"""Working capital peg: current versus industry-normalized working capital.

The normalized figure is the amount a buyer typically funds at close and is
the usual source for ``LoanInputs.working_capital``.
"""

import logging

from dealengine.models import WorkingCapitalInputs, WorkingCapitalOutputs

logger = logging.getLogger(__name__)

# Working capital as a fraction of revenue
INDUSTRY_WC_BENCHMARKS = {
    "manufacturing": 0.20,
    "distribution": 0.15,
    "professional_services": 0.10,
    "healthcare": 0.12,
    "construction": 0.18,
    "retail": 0.10,
    "technology": 0.08,
}
DEFAULT_WC_BENCHMARK = 0.15

NEUTRAL_BAND = 5_000.0
LARGE_ADJUSTMENT_PCT = 0.05
LOW_WC_PERCENT = 5.0
HIGH_RECEIVABLES_PCT = 0.25
HIGH_INVENTORY_PCT = 0.30


def benchmark_for_industry(industry: str) -> float:
    """Target working capital fraction for an industry, with a default fallback."""
    key = industry.strip().lower().replace(" ", "_")
    return INDUSTRY_WC_BENCHMARKS.get(key, DEFAULT_WC_BENCHMARK)


def calculate_working_capital(inputs: WorkingCapitalInputs) -> WorkingCapitalOutputs:
    """Compare current working capital with the industry norm and estimate the true-up."""
    revenue = inputs.annual_revenue
    current = (
        inputs.accounts_receivable
        + inputs.inventory
        + inputs.prepaid_expenses
        - inputs.accounts_payable
        - inputs.accrued_expenses
    )
    current_percent = current / revenue * 100 if revenue > 0 else 0.0

    target = (
        inputs.industry_wc_percent
        if inputs.industry_wc_percent is not None
        else benchmark_for_industry(inputs.industry)
    )
    normalized = revenue * target

    # Positive: buyer owes seller; negative: seller owes buyer
    adjustment = normalized - current
    if adjustment > NEUTRAL_BAND:
        direction = "buyer_debit"
    elif adjustment < -NEUTRAL_BAND:
        direction = "buyer_credit"
    else:
        direction = "neutral"

    warnings = []
    if abs(adjustment) > revenue * LARGE_ADJUSTMENT_PCT:
        warnings.append(
            f"Estimated WC adjustment of ${abs(adjustment):,.0f} is >5% of revenue. "
            f"Negotiate this carefully in LOI."
        )
    if revenue > 0:
        if current_percent < LOW_WC_PERCENT:
            warnings.append(
                "Current working capital is unusually low. Verify AR/AP aging and inventory valuation."
            )
        if inputs.accounts_receivable > revenue * HIGH_RECEIVABLES_PCT:
            warnings.append(
                "Accounts receivable >90 days of revenue. Check AR aging report for collectibility."
            )
        if inputs.inventory > revenue * HIGH_INVENTORY_PCT:
            warnings.append(
                "Inventory levels appear high relative to revenue. "
                "Verify inventory turnover and obsolescence risk."
            )

    recommendations = [
        f'Include WC adjustment mechanism in LOI: "Normalized Working Capital = '
        f'${normalized:,.0f}, subject to true-up at close"',
        "Request detailed AR aging, AP aging, and inventory breakdown during due diligence",
    ]
    if adjustment != 0:
        owes = "buyer will owe seller" if adjustment > 0 else "seller will owe buyer"
        recommendations.append(f"Estimated adjustment: ${abs(adjustment):,.0f} ({owes} at close)")

    logger.debug(
        f"Working capital for {inputs.industry}: current {current:,.0f}, "
        f"normalized {normalized:,.0f}, {direction}"
    )

    return WorkingCapitalOutputs(
        current_working_capital=current,
        current_wc_percent_of_revenue=current_percent,
        normalized_working_capital=normalized,
        target_wc_percent_of_revenue=target * 100,
        estimated_wc_adjustment=adjustment,
        adjustment_direction=direction,
        warnings=warnings,
        recommendations=recommendations,
    )
