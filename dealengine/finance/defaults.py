"""Default financing assumptions derived from a deal record."""

import logging
from typing import Optional

from dealengine.config import settings
from dealengine.models import DealRecord, LoanInputs

logger = logging.getLogger(__name__)


def loan_inputs_for_deal(deal: DealRecord) -> Optional[LoanInputs]:
    """Build typical SBA 7(a) inputs for a deal, or None without revenue and EBITDA."""
    revenue = deal.financials.latest_revenue
    ebitda = deal.financials.latest_ebitda

    if not revenue or revenue <= 0 or not ebitda or ebitda <= 0:
        logger.info(f"Deal {deal.id} lacks revenue or EBITDA for loan modeling")
        return None

    purchase_price = (
        deal.asking_price
        if deal.asking_price and deal.asking_price > 0
        else ebitda * settings.default_ebitda_multiple
    )

    return LoanInputs(
        purchase_price=purchase_price,
        working_capital=revenue * settings.default_working_capital_pct / 100,
        closing_costs=purchase_price * settings.default_closing_cost_pct / 100,
        packaging_fee=settings.default_packaging_fee,
        equity_injection=purchase_price * settings.default_equity_injection_pct / 100,
        seller_note_rate=settings.default_seller_note_rate,
        seller_note_term_years=settings.default_seller_note_term_years,
        seller_note_standby_months=settings.default_seller_note_standby_months,
        interest_rate=settings.default_interest_rate,
        loan_term_years=settings.default_loan_term_years,
        ebitda=ebitda,
        revenue=revenue,
        naics_code=deal.naics_code,
    )
