"""Weighted scoring of deal components into a score and tier."""

import logging

from dealengine.models import FACTORS, ComponentScores, ScoreResult, WeightSet

logger = logging.getLogger(__name__)

# Tier thresholds shared with every other A/B/C producer in the system
TIER_A_THRESHOLD = 70.0
TIER_B_THRESHOLD = 40.0


def tier_for_score(score: float) -> str:
    """Map a 0-100 score to an A/B/C tier."""
    if score >= TIER_A_THRESHOLD:
        return "A"
    if score >= TIER_B_THRESHOLD:
        return "B"
    return "C"


class WeightedScorer:
    """Combine component scores with a weight set."""

    def score(self, components: ComponentScores, weights: WeightSet) -> ScoreResult:
        """Score components against weights.

        Unknown components count as zero. Dividing by the total weight keeps
        the score on a 0-100 scale even if the weights are not normalized.
        """
        full = components.filled()

        weighted_scores: dict[str, float] = {}
        weighted_sum = 0.0
        total_weight = 0.0

        for factor in FACTORS:
            weight = weights.weights.get(factor)
            weighted = full.get(factor) * weight
            weighted_scores[factor] = weighted
            weighted_sum += weighted
            total_weight += weight

        score = (weighted_sum / total_weight) * 100 if total_weight > 0 else 0.0
        # Guard float drift past the bounds
        score = min(100.0, max(0.0, score))

        return ScoreResult(
            tier=tier_for_score(score),
            score=score,
            confidence=round(full.completeness, 2),
            breakdown=self._calculate_breakdown(weighted_scores, weighted_sum),
            components=full,
        )

    def _calculate_breakdown(
        self,
        weighted_scores: dict[str, float],
        weighted_sum: float,
    ) -> dict[str, float]:
        """Express each factor's contribution as a percentage of the weighted sum."""
        if weighted_sum <= 0:
            return {factor: 0.0 for factor in weighted_scores}
        return {
            factor: (weighted / weighted_sum) * 100
            for factor, weighted in weighted_scores.items()
        }
