"""Deal scoring engine and weight recalibration."""

from .components import ComponentExtractor, RedFlagRiskDetector
from .scorer import WeightedScorer, tier_for_score
from .learner import RecalibrationCancelled, RecalibrationJob, RecalibrationRun, WeightLearner
from .service import ScoringService

__all__ = [
    "ComponentExtractor",
    "RedFlagRiskDetector",
    "WeightedScorer",
    "tier_for_score",
    "RecalibrationCancelled",
    "RecalibrationJob",
    "RecalibrationRun",
    "WeightLearner",
    "ScoringService",
]
