"""Tests for the working capital peg calculator."""

import pytest

from dealengine.finance import benchmark_for_industry, calculate_working_capital
from dealengine.models import WorkingCapitalInputs


def make_inputs(**kwargs) -> WorkingCapitalInputs:
    """Manufacturer with 2M revenue and 320K of current working capital."""
    defaults = {
        "accounts_receivable": 300_000,
        "inventory": 200_000,
        "prepaid_expenses": 20_000,
        "accounts_payable": 150_000,
        "accrued_expenses": 50_000,
        "annual_revenue": 2_000_000,
        "industry": "manufacturing",
    }
    defaults.update(kwargs)
    return WorkingCapitalInputs(**defaults)


class TestBenchmarks:

    def test_known_industries(self):
        assert benchmark_for_industry("manufacturing") == 0.20
        assert benchmark_for_industry("Technology") == 0.08
        assert benchmark_for_industry("Professional Services") == 0.10

    def test_unknown_industry_default(self):
        assert benchmark_for_industry("aerospace") == 0.15


class TestWorkingCapital:
    """Tests for the working capital calculation."""

    def test_current_and_normalized(self):
        outputs = calculate_working_capital(make_inputs())

        assert outputs.current_working_capital == pytest.approx(320_000)
        assert outputs.current_wc_percent_of_revenue == pytest.approx(16.0)
        assert outputs.normalized_working_capital == pytest.approx(400_000)
        assert outputs.target_wc_percent_of_revenue == pytest.approx(20.0)
        assert outputs.estimated_wc_adjustment == pytest.approx(80_000)

    def test_buyer_debit(self):
        outputs = calculate_working_capital(make_inputs())
        assert outputs.adjustment_direction == "buyer_debit"
        assert outputs.warnings == []
        assert outputs.recommendations[-1] == "Estimated adjustment: $80,000 (buyer will owe seller at close)"

    def test_buyer_credit_with_warnings(self):
        outputs = calculate_working_capital(make_inputs(accounts_receivable=600_000, accounts_payable=100_000))

        assert outputs.estimated_wc_adjustment == pytest.approx(-270_000)
        assert outputs.adjustment_direction == "buyer_credit"
        assert any(">5% of revenue" in w for w in outputs.warnings)
        assert any("Accounts receivable" in w for w in outputs.warnings)
        assert "seller will owe buyer" in outputs.recommendations[-1]

    def test_neutral_band(self):
        outputs = calculate_working_capital(make_inputs(accounts_receivable=378_000))
        assert outputs.estimated_wc_adjustment == pytest.approx(2_000)
        assert outputs.adjustment_direction == "neutral"

        outputs = calculate_working_capital(make_inputs(accounts_receivable=385_000))
        assert outputs.adjustment_direction == "neutral"

    def test_low_working_capital(self):
        outputs = calculate_working_capital(make_inputs(
            accounts_receivable=50_000,
            inventory=0,
            prepaid_expenses=0,
            accounts_payable=0,
            accrued_expenses=0,
            industry="retail",
        ))
        assert any("unusually low" in w for w in outputs.warnings)

    def test_high_inventory(self):
        outputs = calculate_working_capital(make_inputs(inventory=700_000, industry_wc_percent=0.50))
        assert any("Inventory levels" in w for w in outputs.warnings)

    def test_benchmark_override(self):
        outputs = calculate_working_capital(make_inputs(industry_wc_percent=0.16))
        assert outputs.normalized_working_capital == pytest.approx(320_000)
        assert outputs.estimated_wc_adjustment == pytest.approx(0.0)
        assert outputs.adjustment_direction == "neutral"
        assert len(outputs.recommendations) == 2

    def test_zero_revenue(self):
        outputs = calculate_working_capital(WorkingCapitalInputs(annual_revenue=0, industry="retail"))
        assert outputs.current_wc_percent_of_revenue == 0.0
        assert outputs.normalized_working_capital == 0.0
        assert outputs.adjustment_direction == "neutral"
        assert outputs.warnings == []

    def test_normalized_value_in_recommendation(self):
        outputs = calculate_working_capital(make_inputs())
        assert "$400,000" in outputs.recommendations[0]
