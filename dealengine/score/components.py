"""Component extraction: map a deal record to per-factor scores."""

import logging
from dataclasses import dataclass
from typing import Optional

from dealengine.models import ComponentScores, DealRecord

logger = logging.getLogger(__name__)


@dataclass
class RedFlagRisks:
    """Risks detected in red-flag text."""

    customer_concentration: bool
    owner_dependence: bool


class RedFlagRiskDetector:
    """Detect concentration and key-person risk from free-text red flags.

    This is a keyword proxy: no red-flag text reads as "no risk found".
    """

    CUSTOMER_CONCENTRATION_KEYWORDS = ("customer concentration",)
    OWNER_DEPENDENCE_KEYWORDS = ("owner", "founder")

    def detect(self, red_flags: Optional[str]) -> RedFlagRisks:
        text = (red_flags or "").lower()
        return RedFlagRisks(
            customer_concentration=any(k in text for k in self.CUSTOMER_CONCENTRATION_KEYWORDS),
            owner_dependence=any(k in text for k in self.OWNER_DEPENDENCE_KEYWORDS),
        )


class ComponentExtractor:
    """Extract normalized factor scores from a deal record."""

    # 30% EBITDA margin earns a perfect financial quality score
    TARGET_MARGIN = 0.30

    CONFIDENCE_SCORES = {"A": 0.9, "B": 0.6, "C": 0.3}
    VALUATION_SCORES = {"A": 0.9, "B": 0.6}
    VALUATION_FALLBACK = 0.3

    CONCENTRATION_RISK_SCORE = 0.3
    OWNER_RISK_SCORE = 0.4
    NO_RISK_SCORE = 0.8

    # Placeholder until searcher preferences are matched
    DEFAULT_FIT_SCORE = 0.7

    def __init__(self, risk_detector: Optional[RedFlagRiskDetector] = None):
        self.risk_detector = risk_detector or RedFlagRiskDetector()

    def extract(self, deal: DealRecord) -> ComponentScores:
        """Extract component scores. Factors without data are left as None."""
        risks = self.risk_detector.detect(deal.red_flags)

        components = ComponentScores(
            financial_quality=self._score_financial_quality(deal),
            revenue_stability=self._score_revenue_stability(deal),
            customer_concentration=(
                self.CONCENTRATION_RISK_SCORE if risks.customer_concentration else self.NO_RISK_SCORE
            ),
            owner_dependence=self.OWNER_RISK_SCORE if risks.owner_dependence else self.NO_RISK_SCORE,
            industry_fit=self.DEFAULT_FIT_SCORE,
            geography_fit=self.DEFAULT_FIT_SCORE,
            sba_eligibility=self._score_sba_eligibility(deal),
            reasonable_valuation=self.VALUATION_SCORES.get(deal.final_tier, self.VALUATION_FALLBACK),
        )

        logger.debug(f"Extracted components for deal {deal.id}: {components.known()}")
        return components

    def _score_financial_quality(self, deal: DealRecord) -> Optional[float]:
        """Score EBITDA margin relative to the target margin."""
        revenue = deal.financials.latest_revenue
        ebitda = deal.financials.latest_ebitda

        if revenue is None or ebitda is None or revenue <= 0:
            return None

        margin = ebitda / revenue
        return min(1.0, max(0.0, margin / self.TARGET_MARGIN))

    def _score_revenue_stability(self, deal: DealRecord) -> Optional[float]:
        """Use the extraction confidence level as a stability proxy."""
        if not deal.confidence.level:
            return None
        return self.CONFIDENCE_SCORES[deal.confidence.level]

    def _score_sba_eligibility(self, deal: DealRecord) -> Optional[float]:
        if deal.sba_eligible is None:
            return None
        return 1.0 if deal.sba_eligible else 0.0
