"""Quick down-payment based deal structure."""

from dealengine.models import DealStructure
from .sba import monthly_payment


def calculate_deal_structure(
    purchase_price: float,
    ebitda: float,
    down_payment_pct: float = 10.0,
    interest_rate: float = 7.5,
    loan_term_years: int = 10,
) -> DealStructure:
    """Compute loan, debt service and return metrics for a simple financed purchase.

    Raises:
        ValueError: if an input is out of range
    """
    if not purchase_price or purchase_price <= 0:
        raise ValueError("purchase_price must be a positive number")
    if down_payment_pct < 0 or down_payment_pct >= 100:
        raise ValueError("down_payment_pct must be between 0 and 100")
    if interest_rate < 0 or interest_rate > 50:
        raise ValueError("interest_rate must be between 0 and 50")
    if loan_term_years <= 0 or loan_term_years > 30:
        raise ValueError("loan_term_years must be between 1 and 30")
    if not ebitda or ebitda <= 0:
        raise ValueError("ebitda must be a positive number")

    equity_required = purchase_price * down_payment_pct / 100
    loan_amount = purchase_price - equity_required
    payment = monthly_payment(loan_amount, interest_rate, loan_term_years)
    annual_debt_service = payment * 12

    dscr = ebitda / annual_debt_service if annual_debt_service > 0 else 0.0
    cash_flow = ebitda - annual_debt_service
    cash_on_cash = (cash_flow / equity_required) * 100 if equity_required > 0 else 0.0
    payback = round(equity_required / cash_flow, 2) if cash_flow > 0 else None

    return DealStructure(
        purchase_price=purchase_price,
        down_payment_pct=down_payment_pct,
        interest_rate=interest_rate,
        loan_term_years=loan_term_years,
        ebitda=ebitda,
        loan_amount=round(loan_amount, 2),
        equity_required=round(equity_required, 2),
        monthly_payment=round(payment, 2),
        annual_debt_service=round(annual_debt_service, 2),
        debt_service_coverage_ratio=round(dscr, 2),
        cash_on_cash_return=round(cash_on_cash, 2),
        payback_period_years=payback,
    )
