"""Recalibrate scoring weights from realized deal outcomes.

Runs as an out-of-band batch job. The learner compares the average
component scores of closed deals with those of passed or lost deals and
nudges each factor's baseline weight toward the factors that separate
them. Positive correlation is rewarded more strongly (0.5) than negative
correlation is penalized (0.3), and the result is always renormalized to
sum to 1.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from dealengine.config import settings
from dealengine.models import (
    DEFAULT_WEIGHT_SET,
    FACTORS,
    GLOBAL_SCOPE,
    FactorWeights,
    OutcomeLabeledDeal,
    WeightSet,
)
from dealengine.store import ScoringStore, WeightSetConflictError

logger = logging.getLogger(__name__)

POSITIVE_ADJUSTMENT = 0.5
NEGATIVE_ADJUSTMENT = 0.3


class RecalibrationCancelled(Exception):
    """Raised when a recalibration run is cancelled or times out."""


class Deadline:
    """Cancellation token combining an optional event and a timeout."""

    def __init__(
        self,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.expires_at = time.monotonic() + timeout if timeout is not None else None
        self.cancel_event = cancel_event

    def check(self):
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise RecalibrationCancelled("Recalibration cancelled")
        if self.expires_at is not None and time.monotonic() > self.expires_at:
            raise RecalibrationCancelled("Recalibration timed out")


class WeightLearner:
    """Learn factor weights from outcome-labelled deals."""

    def __init__(
        self,
        baseline: WeightSet = DEFAULT_WEIGHT_SET,
        min_samples: Optional[int] = None,
    ):
        self.baseline = baseline
        self.min_samples = min_samples if min_samples is not None else settings.min_training_samples

    def training_data_issue(self, deals: list[OutcomeLabeledDeal]) -> Optional[str]:
        """Return why the deals cannot be used for training, or None."""
        if len(deals) < self.min_samples:
            return (
                f"Not enough outcome data to retrain model "
                f"({len(deals)} deals, need {self.min_samples}+)"
            )

        counts = self.outcome_counts(deals)
        if counts["closed_count"] == 0 or counts["passed_count"] + counts["lost_count"] == 0:
            return "Not enough outcome diversity to retrain model"

        return None

    def recalibrate(
        self,
        deals: list[OutcomeLabeledDeal],
        current: Optional[WeightSet] = None,
        scope: str = GLOBAL_SCOPE,
        deadline: Optional[Deadline] = None,
    ) -> WeightSet:
        """Compute a new weight set, or return ``current`` unchanged if data is insufficient."""
        issue = self.training_data_issue(deals)
        if issue:
            logger.info(f"Skipping recalibration for scope '{scope}': {issue}")
            return current or self.baseline

        closed = [d for d in deals if d.outcome == "closed"]
        negative = [d for d in deals if d.outcome in ("passed", "lost")]

        avg_closed = self._average_components(closed, deadline)
        avg_negative = self._average_components(negative, deadline)

        new_weights = {}
        for factor in FACTORS:
            diff = avg_closed[factor] - avg_negative[factor]
            base_weight = self.baseline.weights.get(factor)
            if diff > 0:
                new_weights[factor] = base_weight * (1 + diff * POSITIVE_ADJUSTMENT)
            else:
                new_weights[factor] = base_weight * (1 + diff * NEGATIVE_ADJUSTMENT)

        weights = FactorWeights(**new_weights).normalized()

        logger.info(
            f"Recalibrated weights for scope '{scope}' from {len(deals)} deals "
            f"({len(closed)} closed, {len(negative)} passed/lost)"
        )

        return WeightSet(
            scope=scope,
            version=(current.version + 1) if current and current.scope == scope else 1,
            weights=weights,
            created_at=datetime.utcnow(),
            is_active=True,
            training_sample_size=len(deals),
            performance_metrics=self.outcome_counts(deals),
        )

    @staticmethod
    def outcome_counts(deals: list[OutcomeLabeledDeal]) -> dict[str, int]:
        return {
            "closed_count": sum(1 for d in deals if d.outcome == "closed"),
            "passed_count": sum(1 for d in deals if d.outcome == "passed"),
            "lost_count": sum(1 for d in deals if d.outcome == "lost"),
        }

    @staticmethod
    def _average_components(
        deals: list[OutcomeLabeledDeal],
        deadline: Optional[Deadline] = None,
    ) -> dict[str, float]:
        """Mean of each factor across deals, unknown factors counted as 0."""
        totals = {factor: 0.0 for factor in FACTORS}
        for deal in deals:
            if deadline:
                deadline.check()
            for factor in FACTORS:
                totals[factor] += deal.components.get(factor)

        if not deals:
            return totals
        return {factor: total / len(deals) for factor, total in totals.items()}


@dataclass
class RecalibrationRun:
    """Outcome of one recalibration job run."""

    scope: str
    status: str  # completed, skipped, cancelled, conflict
    weight_set: WeightSet
    sample_size: int = 0
    outcome_counts: dict[str, int] = field(default_factory=dict)
    message: str = ""


class RecalibrationJob:
    """Fetch training data, learn new weights and activate them atomically."""

    def __init__(
        self,
        store: ScoringStore,
        learner: Optional[WeightLearner] = None,
        timeout: Optional[float] = None,
    ):
        self.store = store
        self.learner = learner or WeightLearner(baseline=store.default_weights)
        self.timeout = timeout if timeout is not None else settings.recalibration_timeout_seconds

    def run(
        self,
        scope: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> RecalibrationRun:
        """Run one recalibration. Nothing is written unless a new weight set is produced."""
        scope = scope or GLOBAL_SCOPE
        deadline = Deadline(self.timeout, cancel_event)
        current = self.store.fetch_active_weight_set(scope)

        try:
            deadline.check()
            deals = self.store.fetch_outcome_labeled_deals(scope)
            counts = self.learner.outcome_counts(deals)

            issue = self.learner.training_data_issue(deals)
            if issue:
                logger.info(f"Recalibration skipped for scope '{scope}': {issue}")
                return RecalibrationRun(
                    scope=scope,
                    status="skipped",
                    weight_set=current,
                    sample_size=len(deals),
                    outcome_counts=counts,
                    message=issue,
                )

            new_weight_set = self.learner.recalibrate(deals, current=current, scope=scope, deadline=deadline)
            deadline.check()
        except RecalibrationCancelled as e:
            logger.warning(f"Recalibration for scope '{scope}' stopped: {e}; active weights unchanged")
            return RecalibrationRun(scope=scope, status="cancelled", weight_set=current, message=str(e))

        try:
            stored = self.store.persist_weight_set(new_weight_set, activate=True)
        except WeightSetConflictError as e:
            logger.error(f"Recalibration for scope '{scope}' lost a concurrent write: {e}")
            return RecalibrationRun(
                scope=scope,
                status="conflict",
                weight_set=self.store.fetch_active_weight_set(scope),
                sample_size=len(deals),
                outcome_counts=counts,
                message=str(e),
            )

        return RecalibrationRun(
            scope=scope,
            status="completed",
            weight_set=stored,
            sample_size=len(deals),
            outcome_counts=counts,
            message="Model retrained successfully",
        )
