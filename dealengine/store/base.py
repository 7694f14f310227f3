"""Abstract persistence interface for the scoring engine."""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from dealengine.models import (
    DEFAULT_WEIGHT_SET,
    GLOBAL_SCOPE,
    ComponentScores,
    DealRecord,
    OutcomeLabeledDeal,
    WeightSet,
)

logger = logging.getLogger(__name__)


class DealNotFoundError(LookupError):
    """Raised when a deal id is not present in the store."""


class WeightSetConflictError(RuntimeError):
    """Raised when another writer activated a weight set for the same scope concurrently."""


class ScoringStore(ABC):
    """Read/write access to deals and weight sets owned by the data store."""

    name: str = "base"

    def __init__(self, default_weights: WeightSet = DEFAULT_WEIGHT_SET):
        self.default_weights = default_weights

    @abstractmethod
    def list_active_weight_sets(self, scope: str) -> list[WeightSet]:
        """Return active weight sets for exactly this scope, newest first."""
        pass

    @abstractmethod
    def fetch_outcome_labeled_deals(self, scope: Optional[str] = None) -> list[OutcomeLabeledDeal]:
        """
        Return scored deals that have a realized outcome.

        Args:
            scope: Workspace id to restrict to; None or 'global' returns all deals

        Returns:
            List of component/outcome pairs
        """
        pass

    @abstractmethod
    def persist_weight_set(self, weight_set: WeightSet, activate: bool = True) -> WeightSet:
        """
        Store a new weight set version.

        When ``activate`` is set, the insert and the deactivation of every other
        active set in the scope happen atomically.

        Raises:
            WeightSetConflictError: if a concurrent writer activated another set
        """
        pass

    @abstractmethod
    def deactivate_other_weight_sets(self, scope: str, exclude_id: int) -> int:
        """Deactivate active weight sets in scope except ``exclude_id``. Returns count."""
        pass

    @abstractmethod
    def get_deal(self, deal_id: str) -> Optional[DealRecord]:
        pass

    @abstractmethod
    def save_deal(self, deal: DealRecord) -> DealRecord:
        pass

    @abstractmethod
    def persist_score_result(
        self,
        deal_id: str,
        tier: str,
        score: float,
        components: ComponentScores,
    ) -> None:
        """
        Write the score back onto the deal.

        Raises:
            DealNotFoundError: if the deal does not exist
        """
        pass

    def fetch_active_weight_set(self, scope: Optional[str] = None) -> WeightSet:
        """Get active weights for a scope, falling back to global, then defaults."""
        scopes = [GLOBAL_SCOPE]
        if scope and scope != GLOBAL_SCOPE:
            scopes.insert(0, scope)

        for candidate_scope in scopes:
            active = self.list_active_weight_sets(candidate_scope)
            if not active:
                continue
            if len(active) > 1:
                logger.warning(
                    f"Consistency warning: {len(active)} active weight sets for scope "
                    f"'{candidate_scope}', using id={active[0].id} (newest)"
                )
            return active[0]

        return self.default_weights

    def outcome_statistics(self, scope: Optional[str] = None) -> dict[str, int]:
        """Count labelled deals by outcome."""
        deals = self.fetch_outcome_labeled_deals(scope)
        stats = {"total": len(deals), "closed": 0, "passed": 0, "lost": 0}
        for deal in deals:
            stats[deal.outcome] += 1
        return stats

    @staticmethod
    def _sort_newest_first(weight_sets: list[WeightSet]) -> list[WeightSet]:
        return sorted(weight_sets, key=lambda w: (w.created_at, w.id or 0), reverse=True)
