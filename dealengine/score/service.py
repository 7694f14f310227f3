"""Score deals with the active weights and write the result back."""

import logging
from typing import Optional

from dealengine.models import GLOBAL_SCOPE, ComponentScores, DealRecord, ScoreResult
from dealengine.store import DealNotFoundError, ScoringStore
from .components import ComponentExtractor
from .scorer import WeightedScorer

logger = logging.getLogger(__name__)


class ScoringService:
    """Extract, score and persist deal scores."""

    def __init__(
        self,
        store: ScoringStore,
        extractor: Optional[ComponentExtractor] = None,
        scorer: Optional[WeightedScorer] = None,
    ):
        self.store = store
        self.extractor = extractor or ComponentExtractor()
        self.scorer = scorer or WeightedScorer()

    def score_components(self, components: ComponentScores, scope: Optional[str] = None) -> ScoreResult:
        """Score precomputed components with the active weights for a scope."""
        weights = self.store.fetch_active_weight_set(scope or GLOBAL_SCOPE)
        return self.scorer.score(components, weights)

    def score_deal(self, deal: DealRecord) -> ScoreResult:
        """Score a deal and persist tier, score and measured components."""
        components = self.extractor.extract(deal)
        result = self.score_components(components, deal.workspace_id)

        self.store.persist_score_result(deal.id, result.tier, result.score, components)
        logger.info(
            f"Scored deal {deal.id}: tier {result.tier}, score {result.score:.1f}, "
            f"confidence {result.confidence:.2f}"
        )
        return result

    def score_deal_by_id(self, deal_id: str) -> ScoreResult:
        deal = self.store.get_deal(deal_id)
        if deal is None:
            raise DealNotFoundError(f"Deal not found: {deal_id}")
        return self.score_deal(deal)
