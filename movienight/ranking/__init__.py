"""Live standings: sorting, reconciliation and per-session voting state."""

from .reconciler import RankingReconciler
from .registry import MultiSessionRankingRegistry
from .session import VotingSession
from .sorting import leading_ids, sort_candidates

__all__ = [
    "MultiSessionRankingRegistry",
    "RankingReconciler",
    "VotingSession",
    "leading_ids",
    "sort_candidates",
]
