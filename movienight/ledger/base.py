"""Abstract contract for the authoritative vote store."""

from abc import ABC, abstractmethod

from movienight.models import SessionSnapshot


class VoteLedgerError(Exception):
    """Base class for errors raised by a vote ledger."""
    pass


class QuotaExceeded(VoteLedgerError):
    """The caller has used all of their votes for this session."""
    pass


class NothingToRetract(VoteLedgerError):
    """The caller has no votes on this candidate to take back."""
    pass


class VotingClosed(VoteLedgerError):
    """The session is locked, archived or cancelled."""
    pass


class CandidateBlocked(VoteLedgerError):
    """The candidate has been vetoed and can no longer receive votes."""
    pass


class CandidateNotFound(VoteLedgerError):
    """The session or candidate does not exist."""
    pass


class PermissionDenied(VoteLedgerError):
    """The caller lacks the capability required for this operation."""
    pass


class RequestRejected(VoteLedgerError):
    """The store refused the request for a reason not listed above."""
    pass


class NetworkFailure(VoteLedgerError):
    """Transport-level failure talking to the ledger.

    Never retried automatically; callers recover with a refresh.
    """
    pass


class VoteLedger(ABC):
    """Abstract base class for the store that owns vote tallies.

    All mutations apply immediately. Presentation concerns such as the
    reorder grace period live entirely on the consuming side.
    """

    @abstractmethod
    async def get_snapshot(self, session_id: int, caller_id: int) -> SessionSnapshot:
        """Return the session's candidates and the caller's vote budget.

        Args:
            session_id: The voting session to read
            caller_id: Member whose own allocation is reported

        Returns:
            SessionSnapshot with tallies, remaining votes and winner

        Raises:
            CandidateNotFound: If the session does not exist
        """
        pass

    @abstractmethod
    async def cast_vote(self, session_id: int, candidate_id: int, caller_id: int) -> None:
        """Add one of the caller's votes to a candidate.

        Casting a vote also marks the caller as attending the session.

        Raises:
            QuotaExceeded: If the caller has no remaining votes
            CandidateBlocked: If the candidate has been vetoed
            VotingClosed: If the session no longer accepts votes
        """
        pass

    @abstractmethod
    async def retract_vote(self, session_id: int, candidate_id: int, caller_id: int) -> None:
        """Take back one of the caller's votes from a candidate.

        Raises:
            NothingToRetract: If the caller has no votes on the candidate
            VotingClosed: If the session no longer accepts votes
        """
        pass

    @abstractmethod
    async def decide_winner(
        self, session_id: int, candidate_id: int | None, caller_id: int
    ) -> None:
        """Pin a winner (or clear it with ``None``).

        Raises:
            PermissionDenied: If the caller cannot manage the session
            CandidateBlocked: If the chosen candidate has been vetoed
        """
        pass
