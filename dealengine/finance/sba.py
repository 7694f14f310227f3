"""SBA 7(a) acquisition loan structure calculator.

Pure and deterministic for a given ``as_of`` date: no I/O and no
exceptions for degenerate inputs. Ratios whose denominator is zero are
reported as None rather than infinity or NaN.
"""

import logging
from datetime import date
from typing import Optional

from dealengine.config import settings
from dealengine.models import FeeNotice, LoanInputs, LoanOutputs

logger = logging.getLogger(__name__)

SBA_MAX_LOAN = 5_000_000.0

# Guarantee fee schedule
FEE_FREE_LIMIT = 150_000.0
FEE_TIER_LIMIT = 700_000.0
FEE_TIER_RATE = 0.02
FEE_EXCESS_RATE = 0.035

# Manufacturing waiver (NAICS 31-33)
MANUFACTURING_NAICS_PREFIXES = ("31", "32", "33")
MANUFACTURING_WAIVER_LIMIT = 950_000.0

# Eligibility thresholds
MIN_EQUITY_PCT = 10.0
PREFERRED_EQUITY_PCT = 15.0
PREFERRED_EQUITY_PRICE = 1_000_000.0
MIN_DSCR = 1.15
PREFERRED_DSCR = 1.25
MIN_STANDBY_MONTHS = 24


def calculate_guarantee_fee(loan_base: float) -> float:
    """SBA guarantee fee for a loan base under the tiered schedule."""
    if loan_base <= FEE_FREE_LIMIT:
        return 0.0
    if loan_base <= FEE_TIER_LIMIT:
        return loan_base * FEE_TIER_RATE
    return FEE_TIER_LIMIT * FEE_TIER_RATE + (loan_base - FEE_TIER_LIMIT) * FEE_EXCESS_RATE


def is_manufacturer(naics_code: Optional[str]) -> bool:
    if not naics_code:
        return False
    return naics_code.strip().startswith(MANUFACTURING_NAICS_PREFIXES)


def is_waiver_active(as_of: date, expiry: Optional[date] = None) -> bool:
    return as_of <= (expiry or settings.manufacturing_waiver_expiry)


def monthly_payment(principal: float, annual_rate: float, years: float) -> float:
    """Fixed-rate monthly payment; rate in percent."""
    if principal <= 0 or years <= 0:
        return 0.0

    monthly_rate = annual_rate / 100 / 12
    num_payments = years * 12

    if monthly_rate == 0:
        return principal / num_payments

    growth = (1 + monthly_rate) ** num_payments
    return principal * (monthly_rate * growth) / (growth - 1)


class LoanStructureCalculator:
    """Compute SBA 7(a) loan structure, debt service and eligibility."""

    def __init__(self, waiver_expiry: Optional[date] = None):
        self.waiver_expiry = waiver_expiry or settings.manufacturing_waiver_expiry

    def calculate(
        self,
        inputs: LoanInputs,
        all_investors_us_persons: bool = True,
        as_of: Optional[date] = None,
    ) -> LoanOutputs:
        """Calculate the loan structure for a set of financing assumptions."""
        as_of = as_of or date.today()

        total_project_cost = (
            inputs.purchase_price
            + inputs.working_capital
            + inputs.closing_costs
            + inputs.packaging_fee
        )

        loan_base = max(
            0.0,
            total_project_cost - inputs.seller_note_amount - inputs.earnout_amount - inputs.equity_injection,
        )

        notices: list[FeeNotice] = []
        fee_waiver_savings = 0.0
        if (
            is_manufacturer(inputs.naics_code)
            and loan_base <= MANUFACTURING_WAIVER_LIMIT
            and is_waiver_active(as_of, self.waiver_expiry)
        ):
            guarantee_fee = 0.0
            fee_waiver_savings = calculate_guarantee_fee(loan_base)
            notices.append(FeeNotice(
                type="bonus",
                message=(
                    f"Manufacturing fee waiver active: $0 SBA guarantee fee "
                    f"(saves ${fee_waiver_savings:,.0f})"
                ),
            ))
        else:
            guarantee_fee = calculate_guarantee_fee(loan_base)

        # Fee is financed into the loan; equity is measured against the base
        sba_loan_amount = loan_base + guarantee_fee
        equity_required = total_project_cost - loan_base - inputs.seller_note_amount - inputs.earnout_amount
        equity_percent = (equity_required / total_project_cost) * 100 if total_project_cost > 0 else 0.0

        sba_payment = monthly_payment(sba_loan_amount, inputs.interest_rate, inputs.loan_term_years)
        seller_payment = (
            monthly_payment(inputs.seller_note_amount, inputs.seller_note_rate, inputs.seller_note_term_years)
            if inputs.seller_note_amount > 0
            else 0.0
        )
        total_monthly = sba_payment + seller_payment
        annual_debt_service = total_monthly * 12

        year_one_cash_flow = inputs.ebitda - annual_debt_service
        dscr = inputs.ebitda / annual_debt_service if annual_debt_service > 0 else None
        cash_on_cash = (year_one_cash_flow / equity_required) * 100 if equity_required > 0 else None
        if year_one_cash_flow <= 0:
            payback = None
        elif equity_required > 0:
            payback = equity_required / year_one_cash_flow
        else:
            payback = 0.0

        issues, warnings = self._check_eligibility(
            inputs,
            loan_base=loan_base,
            equity_percent=equity_percent,
            dscr=dscr,
            all_investors_us_persons=all_investors_us_persons,
        )

        return LoanOutputs(
            total_project_cost=total_project_cost,
            sba_loan_base=loan_base,
            sba_loan_amount=sba_loan_amount,
            sba_guarantee_fee_amount=guarantee_fee,
            fee_waiver_savings=fee_waiver_savings,
            sba_max_loan_amount=SBA_MAX_LOAN,
            equity_injection_required=equity_required,
            equity_injection_percent=equity_percent,
            sba_monthly_payment=sba_payment,
            seller_note_monthly_payment=seller_payment,
            total_monthly_debt_service=total_monthly,
            annual_debt_service=annual_debt_service,
            dscr=dscr,
            cash_on_cash=cash_on_cash,
            year_one_cash_flow=year_one_cash_flow,
            payback_period_years=payback,
            sba_eligible=not issues,
            sba_eligibility_issues=issues,
            sba_eligibility_warnings=warnings,
            notices=notices,
        )

    def _check_eligibility(
        self,
        inputs: LoanInputs,
        loan_base: float,
        equity_percent: float,
        dscr: Optional[float],
        all_investors_us_persons: bool,
    ) -> tuple[list[str], list[str]]:
        """Return (hard stops, soft warnings)."""
        issues = []
        warnings = []

        if not all_investors_us_persons:
            warnings.append(
                "SBA 7(a) requires 100% U.S. ownership. Your current investor structure "
                "may not qualify. Consider conventional financing."
            )

        # Hard stops
        if loan_base > SBA_MAX_LOAN:
            issues.append("SBA 7(a) max loan is $5M. Consider SBA 504 or conventional financing.")

        if equity_percent < MIN_EQUITY_PCT:
            issues.append("SBA requires minimum 10% equity injection.")

        if dscr is not None and dscr < MIN_DSCR:
            issues.append("DSCR below 1.15x - unlikely to qualify for SBA loan.")

        # Warnings
        if dscr is not None and dscr < PREFERRED_DSCR:
            warnings.append("DSCR below 1.25x - tight debt service coverage. Lenders prefer 1.25x+")

        if equity_percent < PREFERRED_EQUITY_PCT and inputs.purchase_price > PREFERRED_EQUITY_PRICE:
            warnings.append("For deals >$1M, lenders often prefer 15%+ equity injection.")

        if inputs.seller_note_amount > 0 and inputs.seller_note_standby_months < MIN_STANDBY_MONTHS:
            warnings.append("SBA typically requires 2-year standby period for seller notes.")

        return issues, warnings


def calculate_sba_loan(
    inputs: LoanInputs,
    all_investors_us_persons: bool = True,
    as_of: Optional[date] = None,
) -> LoanOutputs:
    """Convenience wrapper around LoanStructureCalculator."""
    return LoanStructureCalculator().calculate(inputs, all_investors_us_persons, as_of)
