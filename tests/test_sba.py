"""Tests for the SBA 7(a) loan structure calculator."""

from datetime import date

import pytest

from dealengine.finance import (
    LoanStructureCalculator,
    calculate_guarantee_fee,
    calculate_sba_loan,
    monthly_payment,
)
from dealengine.models import LoanInputs

BEFORE_EXPIRY = date(2026, 1, 1)
AFTER_EXPIRY = date(2026, 10, 1)


def make_inputs(**kwargs) -> LoanInputs:
    """3M purchase with 20% equity at 9% over 10 years."""
    defaults = {
        "purchase_price": 3_000_000,
        "equity_injection": 600_000,
        "interest_rate": 9.0,
        "loan_term_years": 10,
        "ebitda": 600_000,
    }
    defaults.update(kwargs)
    return LoanInputs(**defaults)


class TestGuaranteeFee:
    """Tests for the tiered guarantee fee schedule."""

    def test_fee_free_tier(self):
        assert calculate_guarantee_fee(100_000) == 0.0
        assert calculate_guarantee_fee(150_000) == 0.0

    def test_middle_tier(self):
        assert calculate_guarantee_fee(500_000) == pytest.approx(10_000)
        assert calculate_guarantee_fee(700_000) == pytest.approx(14_000)

    def test_upper_tier(self):
        assert calculate_guarantee_fee(1_000_000) == pytest.approx(24_500)
        assert calculate_guarantee_fee(2_400_000) == pytest.approx(73_500)


class TestMonthlyPayment:
    """Tests for amortization."""

    def test_standard_amortization(self):
        payment = monthly_payment(2_400_000, 9.0, 10)
        assert 30_400 <= payment <= 30_420
        assert 364_800 <= payment * 12 <= 365_000

    def test_zero_rate_is_linear(self):
        assert monthly_payment(120_000, 0.0, 10) == pytest.approx(1_000)

    def test_zero_principal_or_term(self):
        assert monthly_payment(0, 9.0, 10) == 0.0
        assert monthly_payment(100_000, 9.0, 0) == 0.0


class TestManufacturingWaiver:
    """Tests for the manufacturing guarantee fee waiver."""

    def make_manufacturer(self, **kwargs) -> LoanInputs:
        return make_inputs(
            purchase_price=kwargs.pop("purchase_price", 1_000_000),
            equity_injection=kwargs.pop("equity_injection", 100_000),
            ebitda=300_000,
            naics_code=kwargs.pop("naics_code", "321100"),
            **kwargs,
        )

    def test_waiver_applies(self):
        outputs = LoanStructureCalculator().calculate(self.make_manufacturer(), as_of=BEFORE_EXPIRY)
        assert outputs.sba_loan_base == pytest.approx(900_000)
        assert outputs.sba_guarantee_fee_amount == 0.0
        assert outputs.fee_waiver_savings == pytest.approx(21_000)
        assert outputs.sba_loan_amount == pytest.approx(900_000)
        assert outputs.notices[0].type == "bonus"

    def test_waiver_expired(self):
        outputs = LoanStructureCalculator().calculate(self.make_manufacturer(), as_of=AFTER_EXPIRY)
        assert outputs.sba_guarantee_fee_amount == pytest.approx(21_000)
        assert outputs.fee_waiver_savings == 0.0
        assert outputs.notices == []

    def test_waiver_expiry_injected(self):
        calculator = LoanStructureCalculator(waiver_expiry=date(2030, 1, 1))
        outputs = calculator.calculate(self.make_manufacturer(), as_of=AFTER_EXPIRY)
        assert outputs.sba_guarantee_fee_amount == 0.0

    def test_non_manufacturer(self):
        outputs = LoanStructureCalculator().calculate(
            self.make_manufacturer(naics_code="541110"), as_of=BEFORE_EXPIRY
        )
        assert outputs.sba_guarantee_fee_amount == pytest.approx(21_000)

    def test_base_above_waiver_limit(self):
        outputs = LoanStructureCalculator().calculate(
            self.make_manufacturer(equity_injection=0), as_of=BEFORE_EXPIRY
        )
        assert outputs.sba_loan_base == pytest.approx(1_000_000)
        assert outputs.sba_guarantee_fee_amount == pytest.approx(24_500)


class TestLoanStructure:
    """Tests for loan structure and ratios."""

    def test_reference_deal(self):
        outputs = LoanStructureCalculator().calculate(make_inputs())

        assert outputs.total_project_cost == pytest.approx(3_000_000)
        assert outputs.sba_loan_base == pytest.approx(2_400_000)
        assert outputs.sba_guarantee_fee_amount == pytest.approx(73_500)
        assert outputs.sba_loan_amount == pytest.approx(2_473_500)
        assert outputs.equity_injection_percent == pytest.approx(20.0)
        assert outputs.dscr == pytest.approx(1.58, abs=0.02)
        assert outputs.sba_eligible
        assert outputs.sba_eligibility_issues == []
        assert outputs.sba_eligibility_warnings == []

    def test_ratios(self):
        outputs = LoanStructureCalculator().calculate(make_inputs())
        cash_flow = 600_000 - outputs.annual_debt_service

        assert outputs.annual_debt_service == pytest.approx(outputs.total_monthly_debt_service * 12)
        assert outputs.year_one_cash_flow == pytest.approx(cash_flow)
        assert outputs.cash_on_cash == pytest.approx(cash_flow / 600_000 * 100)
        assert outputs.payback_period_years == pytest.approx(600_000 / cash_flow)

    def test_project_cost_components(self):
        inputs = make_inputs(
            purchase_price=2_000_000,
            working_capital=150_000,
            closing_costs=60_000,
            packaging_fee=3_500,
            equity_injection=400_000,
            seller_note_amount=300_000,
            seller_note_rate=6.0,
            seller_note_term_years=5,
            earnout_amount=100_000,
        )
        outputs = LoanStructureCalculator().calculate(inputs)

        assert outputs.total_project_cost == pytest.approx(2_213_500)
        assert outputs.sba_loan_base == pytest.approx(1_413_500)
        # Equity is measured against the base, not the fee-inclusive loan
        assert outputs.equity_injection_required == pytest.approx(400_000)
        assert outputs.sba_loan_amount == pytest.approx(
            outputs.sba_loan_base + outputs.sba_guarantee_fee_amount
        )

    def test_seller_note_in_debt_service(self):
        outputs = LoanStructureCalculator().calculate(make_inputs(
            equity_injection=300_000,
            seller_note_amount=300_000,
            seller_note_rate=6.0,
            seller_note_term_years=5,
        ))
        assert outputs.seller_note_monthly_payment == pytest.approx(monthly_payment(300_000, 6.0, 5))
        assert outputs.total_monthly_debt_service == pytest.approx(
            outputs.sba_monthly_payment + outputs.seller_note_monthly_payment
        )

    def test_low_dscr_is_hard_stop_with_outputs(self):
        reference = LoanStructureCalculator().calculate(make_inputs())
        ebitda = reference.annual_debt_service * 1.10
        outputs = LoanStructureCalculator().calculate(make_inputs(ebitda=ebitda))

        assert outputs.dscr == pytest.approx(1.10)
        assert not outputs.sba_eligible
        assert any("DSCR below 1.15x" in issue for issue in outputs.sba_eligibility_issues)
        assert any("1.25x" in warning for warning in outputs.sba_eligibility_warnings)
        # Everything is still computed
        assert outputs.annual_debt_service == pytest.approx(reference.annual_debt_service)
        assert outputs.cash_on_cash is not None
        assert outputs.payback_period_years is not None

    def test_zero_inputs_never_raise(self):
        inputs = LoanInputs(purchase_price=0, interest_rate=0, loan_term_years=0, ebitda=0)
        outputs = LoanStructureCalculator().calculate(inputs)

        assert outputs.dscr is None
        assert outputs.cash_on_cash is None
        assert outputs.payback_period_years is None
        assert outputs.equity_injection_percent == 0.0

    def test_no_equity_positive_cash_flow(self):
        outputs = LoanStructureCalculator().calculate(make_inputs(
            purchase_price=100_000,
            equity_injection=0,
            interest_rate=10.0,
            ebitda=100_000,
        ))
        assert outputs.cash_on_cash is None
        assert outputs.payback_period_years == 0.0

    def test_negative_cash_flow(self):
        outputs = LoanStructureCalculator().calculate(make_inputs(ebitda=100_000))
        assert outputs.year_one_cash_flow < 0
        assert outputs.payback_period_years is None
        assert outputs.cash_on_cash < 0

    def test_wrapper(self):
        assert calculate_sba_loan(make_inputs()) == LoanStructureCalculator().calculate(make_inputs())


class TestEligibility:
    """Tests for hard stops and soft warnings."""

    def test_loan_cap(self):
        outputs = LoanStructureCalculator().calculate(make_inputs(
            purchase_price=7_000_000,
            equity_injection=1_000_000,
            ebitda=2_000_000,
        ))
        assert not outputs.sba_eligible
        assert any("$5M" in issue for issue in outputs.sba_eligibility_issues)

    def test_minimum_equity(self):
        outputs = LoanStructureCalculator().calculate(make_inputs(equity_injection=150_000))
        assert not outputs.sba_eligible
        assert any("10% equity" in issue for issue in outputs.sba_eligibility_issues)

    def test_preferred_equity_on_large_deal(self):
        outputs = LoanStructureCalculator().calculate(make_inputs(
            purchase_price=2_000_000,
            equity_injection=240_000,
            ebitda=800_000,
        ))
        assert outputs.sba_eligible
        assert any("15%+" in warning for warning in outputs.sba_eligibility_warnings)

    def test_non_us_investors_warning(self):
        outputs = LoanStructureCalculator().calculate(make_inputs(), all_investors_us_persons=False)
        assert outputs.sba_eligible
        assert any("U.S. ownership" in warning for warning in outputs.sba_eligibility_warnings)

    def test_short_standby(self):
        outputs = LoanStructureCalculator().calculate(make_inputs(
            equity_injection=300_000,
            seller_note_amount=300_000,
            seller_note_rate=6.0,
            seller_note_term_years=5,
            seller_note_standby_months=12,
        ))
        assert any("standby" in warning for warning in outputs.sba_eligibility_warnings)

    def test_standby_ignored_without_seller_note(self):
        outputs = LoanStructureCalculator().calculate(make_inputs(seller_note_standby_months=0))
        assert not any("standby" in warning for warning in outputs.sba_eligibility_warnings)
