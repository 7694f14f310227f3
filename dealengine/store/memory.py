"""In-memory store for tests and local runs."""

import threading
from datetime import datetime
from typing import Optional

from dealengine.models import (
    GLOBAL_SCOPE,
    ComponentScores,
    DealRecord,
    OutcomeLabeledDeal,
    WeightSet,
)
from .base import DealNotFoundError, ScoringStore


class InMemoryScoringStore(ScoringStore):
    """Store that keeps deals and weight sets in process memory."""

    name = "memory"

    def __init__(self, deals: Optional[list[DealRecord]] = None, **kwargs):
        super().__init__(**kwargs)
        self._lock = threading.Lock()
        self._deals: dict[str, DealRecord] = {}
        self._weight_sets: dict[int, WeightSet] = {}
        self._next_id = 1
        for deal in deals or []:
            self.save_deal(deal)

    def list_active_weight_sets(self, scope: str) -> list[WeightSet]:
        with self._lock:
            active = [
                w.model_copy(deep=True)
                for w in self._weight_sets.values()
                if w.scope == scope and w.is_active
            ]
        return self._sort_newest_first(active)

    def all_weight_sets(self) -> list[WeightSet]:
        with self._lock:
            return [w.model_copy(deep=True) for w in self._weight_sets.values()]

    def fetch_outcome_labeled_deals(self, scope: Optional[str] = None) -> list[OutcomeLabeledDeal]:
        with self._lock:
            deals = list(self._deals.values())

        labeled = []
        for deal in deals:
            if deal.outcome is None or deal.score_components is None:
                continue
            if scope and scope != GLOBAL_SCOPE and deal.workspace_id != scope:
                continue
            labeled.append(OutcomeLabeledDeal(components=deal.score_components, outcome=deal.outcome))
        return labeled

    def persist_weight_set(self, weight_set: WeightSet, activate: bool = True) -> WeightSet:
        with self._lock:
            versions = [w.version for w in self._weight_sets.values() if w.scope == weight_set.scope]
            stored = weight_set.model_copy(
                update={
                    "id": self._next_id,
                    "version": max(versions, default=0) + 1,
                    "is_active": activate,
                },
                deep=True,
            )
            self._next_id += 1
            self._weight_sets[stored.id] = stored
            if activate:
                self._deactivate_others(stored.scope, stored.id)
            return stored.model_copy(deep=True)

    def deactivate_other_weight_sets(self, scope: str, exclude_id: int) -> int:
        with self._lock:
            return self._deactivate_others(scope, exclude_id)

    def _deactivate_others(self, scope: str, exclude_id: int) -> int:
        count = 0
        for weight_set in self._weight_sets.values():
            if weight_set.scope == scope and weight_set.is_active and weight_set.id != exclude_id:
                weight_set.is_active = False
                count += 1
        return count

    def add_weight_set(self, weight_set: WeightSet) -> WeightSet:
        """Insert a weight set as-is, without touching other rows (fixtures only)."""
        with self._lock:
            stored = weight_set.model_copy(update={"id": self._next_id}, deep=True)
            self._next_id += 1
            self._weight_sets[stored.id] = stored
            return stored.model_copy(deep=True)

    def get_deal(self, deal_id: str) -> Optional[DealRecord]:
        with self._lock:
            deal = self._deals.get(deal_id)
            return deal.model_copy(deep=True) if deal else None

    def save_deal(self, deal: DealRecord) -> DealRecord:
        with self._lock:
            self._deals[deal.id] = deal.model_copy(deep=True)
        return deal

    def persist_score_result(
        self,
        deal_id: str,
        tier: str,
        score: float,
        components: ComponentScores,
    ) -> None:
        with self._lock:
            deal = self._deals.get(deal_id)
            if deal is None:
                raise DealNotFoundError(f"Deal not found: {deal_id}")
            self._deals[deal_id] = deal.model_copy(
                update={
                    "final_tier": tier,
                    "score": score,
                    "score_components": components.model_copy(),
                    "scored_at": datetime.utcnow(),
                }
            )
