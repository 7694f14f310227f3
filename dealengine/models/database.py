"""SQLAlchemy database models and setup."""

import json
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    Boolean,
    DateTime,
    Text,
    Index,
    create_engine,
    text,
)
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from dealengine.config import settings

Base = declarative_base()


class DBDeal(Base):
    """Stored deal record."""

    __tablename__ = "deals"

    id = Column(String(64), primary_key=True)
    workspace_id = Column(String(64), index=True)
    company_name = Column(String(500))
    record = Column(Text, nullable=False)  # JSON DealRecord

    # Outcome label used for weight recalibration
    outcome = Column(String(20))  # closed, passed, lost

    # Written back by scoring
    final_tier = Column(String(1))
    score = Column(Float)
    score_components = Column(Text)  # JSON dict of measured factors
    scored_at = Column(DateTime)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("idx_deal_outcome", "outcome"),
        Index("idx_deal_workspace_outcome", "workspace_id", "outcome"),
    )

    def get_score_components(self) -> Optional[dict]:
        return json.loads(self.score_components) if self.score_components else None

    def set_score_components(self, components: dict):
        self.score_components = json.dumps(components)


class DBWeightSet(Base):
    """A versioned scoring weight set.

    The partial unique index allows at most one active row per scope, so a
    second concurrent activation fails instead of leaving two active sets.
    """

    __tablename__ = "scoring_weights"

    id = Column(Integer, primary_key=True, autoincrement=True)
    scope = Column(String(64), nullable=False, default="global")
    version = Column(Integer, nullable=False, default=1)
    weights = Column(Text, nullable=False)  # JSON dict factor -> weight
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    # Provenance
    training_sample_size = Column(Integer, default=0)
    performance_metrics = Column(Text)  # JSON dict of outcome counts

    __table_args__ = (
        Index("idx_weights_scope_created", "scope", "created_at"),
        Index(
            "uq_weights_active_scope",
            "scope",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )

    def get_weights(self) -> dict[str, float]:
        return json.loads(self.weights)

    def get_performance_metrics(self) -> dict[str, int]:
        return json.loads(self.performance_metrics) if self.performance_metrics else {}


# Database initialization
def init_db(db_url: Optional[str] = None) -> sessionmaker:
    """Initialize database and return session maker."""
    url = db_url or settings.database_url
    engine = create_engine(url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)


def get_session() -> Session:
    """Get a new database session."""
    SessionLocal = init_db()
    return SessionLocal()
