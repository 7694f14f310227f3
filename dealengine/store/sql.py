"""SQLAlchemy-backed store."""

import json
import logging
import threading
from datetime import datetime
from typing import Optional

from pydantic import ValidationError
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from dealengine.models import (
    GLOBAL_SCOPE,
    ComponentScores,
    DealRecord,
    FactorWeights,
    OutcomeLabeledDeal,
    WeightSet,
)
from dealengine.models.database import DBDeal, DBWeightSet, init_db
from .base import DealNotFoundError, ScoringStore, WeightSetConflictError

logger = logging.getLogger(__name__)


class SqlScoringStore(ScoringStore):
    """Store deals and weight sets in a relational database."""

    name = "sql"

    def __init__(self, session_factory: Optional[sessionmaker] = None, **kwargs):
        super().__init__(**kwargs)
        self._session_factory = session_factory or init_db()
        # Single writer per process; the partial unique index covers other processes
        self._write_lock = threading.Lock()

    def list_active_weight_sets(self, scope: str) -> list[WeightSet]:
        session = self._session_factory()
        rows = (
            session.query(DBWeightSet)
            .filter(DBWeightSet.scope == scope, DBWeightSet.is_active.is_(True))
            .order_by(DBWeightSet.created_at.desc(), DBWeightSet.id.desc())
            .all()
        )
        weight_sets = [self._to_weight_set(row) for row in rows]
        session.close()
        return weight_sets

    def list_weight_sets(self, scope: str) -> list[WeightSet]:
        """All versions for a scope, newest first."""
        session = self._session_factory()
        rows = (
            session.query(DBWeightSet)
            .filter(DBWeightSet.scope == scope)
            .order_by(DBWeightSet.version.desc())
            .all()
        )
        weight_sets = [self._to_weight_set(row) for row in rows]
        session.close()
        return weight_sets

    def fetch_outcome_labeled_deals(self, scope: Optional[str] = None) -> list[OutcomeLabeledDeal]:
        session = self._session_factory()
        query = session.query(DBDeal.id, DBDeal.score_components, DBDeal.outcome).filter(
            DBDeal.outcome.isnot(None),
            DBDeal.score_components.isnot(None),
        )
        if scope and scope != GLOBAL_SCOPE:
            query = query.filter(DBDeal.workspace_id == scope)
        rows = query.all()
        session.close()

        labeled = []
        for deal_id, components, outcome in rows:
            try:
                labeled.append(OutcomeLabeledDeal(
                    components=ComponentScores(**json.loads(components)),
                    outcome=outcome,
                ))
            except (ValueError, ValidationError) as e:
                logger.warning(f"Skipping deal {deal_id} with unreadable training data: {e}")
        return labeled

    def persist_weight_set(self, weight_set: WeightSet, activate: bool = True) -> WeightSet:
        with self._write_lock:
            session = self._session_factory()
            try:
                latest_version = (
                    session.query(func.max(DBWeightSet.version))
                    .filter(DBWeightSet.scope == weight_set.scope)
                    .scalar()
                ) or 0

                # Inserted inactive, then flipped, so the unique index sees one active row
                row = DBWeightSet(
                    scope=weight_set.scope,
                    version=latest_version + 1,
                    weights=json.dumps(weight_set.weights.model_dump()),
                    is_active=False,
                    created_at=weight_set.created_at,
                    training_sample_size=weight_set.training_sample_size,
                    performance_metrics=json.dumps(weight_set.performance_metrics),
                )
                session.add(row)
                session.flush()

                if activate:
                    deactivated = self._deactivate_others(session, row.scope, row.id)
                    row.is_active = True
                    session.flush()
                    logger.info(
                        f"Activated weight set v{row.version} for scope '{row.scope}' "
                        f"(deactivated {deactivated})"
                    )

                session.commit()
                stored = self._to_weight_set(row)
            except IntegrityError as e:
                session.rollback()
                raise WeightSetConflictError(
                    f"Another active weight set was written for scope '{weight_set.scope}'"
                ) from e
            finally:
                session.close()
        return stored

    def deactivate_other_weight_sets(self, scope: str, exclude_id: int) -> int:
        with self._write_lock:
            session = self._session_factory()
            try:
                count = self._deactivate_others(session, scope, exclude_id)
                session.commit()
            finally:
                session.close()
        return count

    @staticmethod
    def _deactivate_others(session: Session, scope: str, exclude_id: int) -> int:
        return (
            session.query(DBWeightSet)
            .filter(
                DBWeightSet.scope == scope,
                DBWeightSet.is_active.is_(True),
                DBWeightSet.id != exclude_id,
            )
            .update({DBWeightSet.is_active: False}, synchronize_session=False)
        )

    def get_deal(self, deal_id: str) -> Optional[DealRecord]:
        session = self._session_factory()
        row = session.query(DBDeal).filter_by(id=deal_id).first()
        deal = self._to_deal(row) if row else None
        session.close()
        return deal

    def save_deal(self, deal: DealRecord) -> DealRecord:
        session = self._session_factory()
        row = session.query(DBDeal).filter_by(id=deal.id).first()
        if not row:
            row = DBDeal(id=deal.id)
            session.add(row)

        row.workspace_id = deal.workspace_id
        row.company_name = deal.company_name
        row.record = deal.model_dump_json()
        row.outcome = deal.outcome
        row.final_tier = deal.final_tier
        row.score = deal.score
        row.scored_at = deal.scored_at
        if deal.score_components is not None:
            row.set_score_components(deal.score_components.known())
        else:
            row.score_components = None

        session.commit()
        session.close()
        return deal

    def persist_score_result(
        self,
        deal_id: str,
        tier: str,
        score: float,
        components: ComponentScores,
    ) -> None:
        session = self._session_factory()
        row = session.query(DBDeal).filter_by(id=deal_id).first()
        if not row:
            session.close()
            raise DealNotFoundError(f"Deal not found: {deal_id}")

        row.final_tier = tier
        row.score = score
        row.set_score_components(components.known())
        row.scored_at = datetime.utcnow()
        session.commit()
        session.close()

    @staticmethod
    def _to_weight_set(row: DBWeightSet) -> WeightSet:
        return WeightSet(
            id=row.id,
            scope=row.scope,
            version=row.version,
            weights=FactorWeights(**row.get_weights()),
            created_at=row.created_at,
            is_active=row.is_active,
            training_sample_size=row.training_sample_size or 0,
            performance_metrics=row.get_performance_metrics(),
        )

    @staticmethod
    def _to_deal(row: DBDeal) -> DealRecord:
        deal = DealRecord.model_validate_json(row.record)
        components = row.get_score_components()
        return deal.model_copy(update={
            "outcome": row.outcome,
            "final_tier": row.final_tier,
            "score": row.score,
            "score_components": ComponentScores(**components) if components is not None else None,
            "scored_at": row.scored_at,
        })
