"""Persistence collaborators for deals and scoring weights."""

from .base import DealNotFoundError, ScoringStore, WeightSetConflictError
from .memory import InMemoryScoringStore
from .sql import SqlScoringStore

__all__ = [
    "DealNotFoundError",
    "ScoringStore",
    "WeightSetConflictError",
    "InMemoryScoringStore",
    "SqlScoringStore",
]
