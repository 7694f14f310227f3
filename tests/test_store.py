"""Tests for the scoring stores."""

import logging
from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from dealengine.models import (
    DEFAULT_WEIGHT_SET,
    FACTORS,
    ComponentScores,
    DealRecord,
    FactorWeights,
    WeightSet,
)
from dealengine.models.database import DBWeightSet, init_db
from dealengine.store import DealNotFoundError, InMemoryScoringStore, SqlScoringStore


def make_weight_set(scope: str = "global", lead: str = "financial_quality", **kwargs) -> WeightSet:
    """Create a weight set that puts all weight on one factor."""
    weights = {factor: 0.0 for factor in FACTORS}
    weights[lead] = 1.0
    return WeightSet(scope=scope, weights=FactorWeights(**weights), **kwargs)


def make_deal(deal_id: str = "deal-1", **kwargs) -> DealRecord:
    defaults = {
        "workspace_id": "ws-1",
        "company_name": "Acme Widgets",
        "asking_price": "$1,500,000",
        "financials": {"revenue": [{"year": 2024, "value": "2.1M"}], "ebitda": [{"year": 2024, "value": 420000}]},
        "red_flags": "Owner handles all sales",
    }
    defaults.update(kwargs)
    return DealRecord(id=deal_id, **defaults)


@pytest.fixture
def session_factory(tmp_path):
    return init_db(f"sqlite:///{tmp_path / 'test.db'}")


@pytest.fixture
def sql_store(session_factory):
    return SqlScoringStore(session_factory)


class TestActiveWeightLookup:
    """Tests for scope fallback and consistency handling."""

    def test_defaults_when_empty(self, sql_store):
        assert sql_store.fetch_active_weight_set("ws-1") == DEFAULT_WEIGHT_SET
        assert sql_store.fetch_active_weight_set() == DEFAULT_WEIGHT_SET

    def test_falls_back_to_global(self, sql_store):
        stored = sql_store.persist_weight_set(make_weight_set("global", "revenue_stability"))
        assert sql_store.fetch_active_weight_set("ws-1").id == stored.id

    def test_workspace_preferred(self, sql_store):
        sql_store.persist_weight_set(make_weight_set("global"))
        workspace = sql_store.persist_weight_set(make_weight_set("ws-1", "industry_fit"))

        active = sql_store.fetch_active_weight_set("ws-1")
        assert active.id == workspace.id
        assert active.weights.industry_fit == 1.0

    def test_two_active_picks_newest(self, caplog):
        store = InMemoryScoringStore()
        now = datetime.utcnow()
        store.add_weight_set(make_weight_set("ws-1", "financial_quality", created_at=now - timedelta(days=1)))
        newest = store.add_weight_set(make_weight_set("ws-1", "owner_dependence", created_at=now))

        with caplog.at_level(logging.WARNING):
            active = store.fetch_active_weight_set("ws-1")

        assert active.id == newest.id
        assert "Consistency warning" in caplog.text


class TestSqlWeightSets:
    """Tests for versioned weight persistence."""

    def test_persist_assigns_versions(self, sql_store):
        first = sql_store.persist_weight_set(make_weight_set("ws-1"))
        second = sql_store.persist_weight_set(make_weight_set("ws-1"))
        other = sql_store.persist_weight_set(make_weight_set("ws-2"))

        assert (first.version, second.version, other.version) == (1, 2, 1)
        assert [w.version for w in sql_store.list_weight_sets("ws-1")] == [2, 1]

    def test_activation_leaves_one_active(self, sql_store):
        sql_store.persist_weight_set(make_weight_set("ws-1"))
        sql_store.persist_weight_set(make_weight_set("ws-1"))
        latest = sql_store.persist_weight_set(make_weight_set("ws-1"))

        active = sql_store.list_active_weight_sets("ws-1")
        assert [w.id for w in active] == [latest.id]

    def test_persist_inactive(self, sql_store):
        active = sql_store.persist_weight_set(make_weight_set("ws-1"))
        draft = sql_store.persist_weight_set(make_weight_set("ws-1"), activate=False)

        assert not draft.is_active
        assert sql_store.fetch_active_weight_set("ws-1").id == active.id

    def test_provenance_round_trip(self, sql_store):
        stored = sql_store.persist_weight_set(make_weight_set(
            "ws-1",
            training_sample_size=64,
            performance_metrics={"closed_count": 30, "passed_count": 20, "lost_count": 14},
        ))
        loaded = sql_store.list_active_weight_sets("ws-1")[0]
        assert loaded.id == stored.id
        assert loaded.training_sample_size == 64
        assert loaded.performance_metrics["lost_count"] == 14

    def test_deactivate_other_weight_sets(self, sql_store):
        first = sql_store.persist_weight_set(make_weight_set("ws-1"))
        second = sql_store.persist_weight_set(make_weight_set("ws-1"), activate=False)

        assert sql_store.deactivate_other_weight_sets("ws-1", second.id) == 1
        assert sql_store.list_active_weight_sets("ws-1") == []
        assert sql_store.deactivate_other_weight_sets("ws-1", first.id) == 0

    def test_unique_active_index(self, sql_store, session_factory):
        sql_store.persist_weight_set(make_weight_set("ws-1"))

        session = session_factory()
        session.add(DBWeightSet(scope="ws-1", version=99, weights="{}", is_active=True))
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()
        session.close()


class TestSqlDeals:
    """Tests for deal persistence."""

    def test_save_and_get(self, sql_store):
        sql_store.save_deal(make_deal())
        deal = sql_store.get_deal("deal-1")

        assert deal.company_name == "Acme Widgets"
        assert deal.asking_price == 1_500_000
        assert deal.financials.latest_revenue == pytest.approx(2_100_000)
        assert sql_store.get_deal("missing") is None

    def test_save_replaces(self, sql_store):
        sql_store.save_deal(make_deal(company_name="Old Name"))
        sql_store.save_deal(make_deal(company_name="New Name"))
        assert sql_store.get_deal("deal-1").company_name == "New Name"

    def test_persist_score_result(self, sql_store):
        sql_store.save_deal(make_deal())
        components = ComponentScores(financial_quality=0.67, owner_dependence=0.4)
        sql_store.persist_score_result("deal-1", "B", 55.5, components)

        deal = sql_store.get_deal("deal-1")
        assert deal.final_tier == "B"
        assert deal.score == 55.5
        assert deal.scored_at is not None
        assert deal.score_components.owner_dependence == 0.4
        assert deal.score_components.sba_eligibility is None

    def test_persist_score_unknown_deal(self, sql_store):
        with pytest.raises(DealNotFoundError):
            sql_store.persist_score_result("missing", "A", 80.0, ComponentScores())

    def test_outcome_labeled_deals(self, sql_store):
        scored = ComponentScores(financial_quality=0.8)
        sql_store.save_deal(make_deal("d1", outcome="closed", score_components=scored))
        sql_store.save_deal(make_deal("d2", outcome="lost", score_components=scored))
        sql_store.save_deal(make_deal("d3", outcome="passed", score_components=scored, workspace_id="ws-2"))
        sql_store.save_deal(make_deal("d4", score_components=scored))
        sql_store.save_deal(make_deal("d5", outcome="closed"))

        assert len(sql_store.fetch_outcome_labeled_deals()) == 3
        assert len(sql_store.fetch_outcome_labeled_deals("global")) == 3

        workspace = sql_store.fetch_outcome_labeled_deals("ws-1")
        assert sorted(d.outcome for d in workspace) == ["closed", "lost"]
        assert workspace[0].components.financial_quality == 0.8

        assert sql_store.outcome_statistics() == {"total": 3, "closed": 1, "passed": 1, "lost": 1}


class TestInMemoryStore:
    """Tests for the in-memory store."""

    def test_persist_score_unknown_deal(self):
        with pytest.raises(DealNotFoundError):
            InMemoryScoringStore().persist_score_result("missing", "C", 10.0, ComponentScores())

    def test_returned_deals_are_copies(self):
        store = InMemoryScoringStore(deals=[make_deal()])
        deal = store.get_deal("deal-1")
        deal.company_name = "Changed"
        assert store.get_deal("deal-1").company_name == "Acme Widgets"
