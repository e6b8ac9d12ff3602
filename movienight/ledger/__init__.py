"""Vote ledgers: the authoritative store for tallies and vote budgets."""

from .base import (
    CandidateBlocked,
    CandidateNotFound,
    NetworkFailure,
    NothingToRetract,
    PermissionDenied,
    QuotaExceeded,
    RequestRejected,
    VoteLedger,
    VoteLedgerError,
    VotingClosed,
)

__all__ = [
    "CandidateBlocked",
    "CandidateNotFound",
    "NetworkFailure",
    "NothingToRetract",
    "PermissionDenied",
    "QuotaExceeded",
    "RequestRejected",
    "VoteLedger",
    "VoteLedgerError",
    "VotingClosed",
]
