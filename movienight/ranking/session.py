"""Live standings and vote budget for one voting session."""

import asyncio
from collections.abc import Awaitable, Callable

from movienight.ledger.base import (
    CandidateBlocked,
    CandidateNotFound,
    NothingToRetract,
    QuotaExceeded,
    VoteLedger,
    VoteLedgerError,
    VotingClosed,
)
from movienight.log import get_logger
from movienight.models import Candidate, ReconcileResult, SessionSnapshot
from movienight.ranking.reconciler import DEFAULT_GRACE_PERIOD, RankingReconciler
from movienight.ranking.sorting import leading_ids

log = get_logger(__name__)

# notify(message, level) where level is "info", "success", "warning" or "error"
Notifier = Callable[[str, str], None]


def log_notifier(message: str, level: str = "info") -> None:
    """Default notifier: user-facing messages go to the log."""
    if level == "error":
        log.error(message)
    elif level == "warning":
        log.warning(message)
    else:
        log.info(message)


class VotingSession:
    """One member's live view of a voting session.

    Votes are applied optimistically to the displayed standings before the
    ledger call is made. The ledger call then runs as a tracked background
    task: on success the session refreshes, on failure it notifies, drops any
    pending reorder and refreshes to get back in line with the store.

    Args:
        session_id: The session to follow
        ledger: Authoritative store
        caller_id: The member acting through this session
        grace_period: Seconds a reorder is held back
        notify: Callback for user-facing messages
        on_commit: Called when a held back reorder is applied
    """

    def __init__(
        self,
        session_id: int,
        ledger: VoteLedger,
        caller_id: int,
        grace_period: float = DEFAULT_GRACE_PERIOD,
        notify: Notifier = log_notifier,
        on_commit: Callable[[list[Candidate]], None] | None = None,
    ):
        self.session_id = session_id
        self.caller_id = caller_id
        self._ledger = ledger
        self._notify = notify
        self.reconciler = RankingReconciler(
            grace_period=grace_period,
            on_commit=on_commit,
            name=f"session {session_id}",
        )
        self.user_remaining_votes = 0
        self.max_votes_per_user = 0
        self.can_vote = True
        self._tasks: set[asyncio.Task] = set()

    # ------------------------------------------------------------
    # State exposed to the UI
    # ------------------------------------------------------------

    @property
    def sorted_candidates(self) -> list[Candidate]:
        return self.reconciler.displayed

    @property
    def winner_id(self) -> int | None:
        return self.reconciler.winner_id

    @property
    def pending(self) -> bool:
        return self.reconciler.pending

    def seconds_remaining(self) -> float:
        return self.reconciler.seconds_remaining()

    @property
    def leading_ids(self) -> set[int]:
        return leading_ids(self.reconciler.displayed, self.winner_id)

    def can_increment(self, candidate_id: int) -> bool:
        """Whether the vote control for a candidate should be enabled."""
        candidate = self.reconciler.get(candidate_id)
        return (
            self.can_vote
            and self.user_remaining_votes > 0
            and candidate is not None
            and not candidate.is_blocked
        )

    def can_decrement(self, candidate_id: int) -> bool:
        candidate = self.reconciler.get(candidate_id)
        return self.can_vote and candidate is not None and candidate.user_vote_count > 0

    # ------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------

    def initialize(self, snapshot: SessionSnapshot) -> list[Candidate]:
        """Adopt a snapshot outright, without a grace period."""
        self._adopt_budget(snapshot)
        return self.reconciler.load(snapshot.candidates, snapshot.winner_id)

    async def refresh(self) -> ReconcileResult:
        """Pull the authoritative snapshot and reconcile it.

        Raises:
            VoteLedgerError: If the snapshot cannot be fetched
        """
        snapshot = await self._ledger.get_snapshot(self.session_id, self.caller_id)
        self._adopt_budget(snapshot)
        return self.reconciler.reconcile(snapshot.candidates, snapshot.winner_id)

    def _adopt_budget(self, snapshot: SessionSnapshot) -> None:
        self.user_remaining_votes = snapshot.user_remaining_votes
        self.max_votes_per_user = snapshot.max_votes_per_user
        self.can_vote = snapshot.can_vote

    # ------------------------------------------------------------
    # Votes
    # ------------------------------------------------------------

    def vote(self, candidate_id: int) -> asyncio.Task:
        """Spend one vote on a candidate.

        Returns:
            The background task sending the vote to the ledger

        Raises:
            VotingClosed, QuotaExceeded, CandidateBlocked, CandidateNotFound:
                Checked locally before anything changes or is sent
        """
        candidate = self._require_candidate(candidate_id)
        if not self.can_vote:
            raise VotingClosed("Voting is closed for this movie night")
        if self.user_remaining_votes <= 0:
            raise QuotaExceeded("You have used all your votes for this movie night")
        if candidate.is_blocked:
            raise CandidateBlocked("This movie has been blocked")

        self.reconciler.apply_optimistic_vote(candidate_id, +1)
        self.user_remaining_votes -= 1
        if self.user_remaining_votes == 0:
            self._notify("All your votes are cast", "success")

        return self._spawn(
            self._ledger.cast_vote(self.session_id, candidate_id, self.caller_id),
            action="Vote",
        )

    def unvote(self, candidate_id: int) -> asyncio.Task:
        """Take back one vote from a candidate.

        Raises:
            VotingClosed, NothingToRetract, CandidateNotFound:
                Checked locally before anything changes or is sent
        """
        candidate = self._require_candidate(candidate_id)
        if not self.can_vote:
            raise VotingClosed("Voting is closed for this movie night")
        if candidate.user_vote_count <= 0:
            raise NothingToRetract("No votes to remove")

        self.reconciler.apply_optimistic_vote(candidate_id, -1)
        self.user_remaining_votes = min(self.max_votes_per_user, self.user_remaining_votes + 1)

        return self._spawn(
            self._ledger.retract_vote(self.session_id, candidate_id, self.caller_id),
            action="Unvote",
        )

    def cancel_pending_reorder(self) -> None:
        self.reconciler.cancel_pending_reorder()

    # ------------------------------------------------------------
    # Winner
    # ------------------------------------------------------------

    def set_winner(self, winner_id: int | None) -> list[Candidate]:
        return self.reconciler.set_winner(winner_id)

    async def decide(self, candidate_id: int | None) -> list[Candidate]:
        """Decide (or undecide with None) the winner, then pin it locally.

        Raises:
            PermissionDenied: If the caller cannot manage the session
        """
        await self._ledger.decide_winner(self.session_id, candidate_id, self.caller_id)
        return self.set_winner(candidate_id)

    # ------------------------------------------------------------
    # Background ledger calls
    # ------------------------------------------------------------

    async def drain(self) -> None:
        """Wait until every in-flight ledger call (and its follow-up) is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _spawn(self, call: Awaitable[None], action: str) -> asyncio.Task:
        task = asyncio.create_task(self._send(call, action))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _send(self, call: Awaitable[None], action: str) -> bool:
        try:
            await call
        except VoteLedgerError as e:
            log.warning(f"[{self.session_id}] {action} failed: {e}")
            self._notify(str(e) or f"{action} failed", "error")
            self.cancel_pending_reorder()
            await self._corrective_refresh()
            return False

        try:
            await self.refresh()
        except VoteLedgerError as e:
            log.warning(f"[{self.session_id}] Refresh after {action.lower()} failed: {e}")
        return True

    async def _corrective_refresh(self) -> None:
        try:
            await self.refresh()
        except VoteLedgerError as e:
            log.error(f"[{self.session_id}] Corrective refresh failed: {e}")
            self._notify("Could not reload the standings", "error")

    def _require_candidate(self, candidate_id: int) -> Candidate:
        candidate = self.reconciler.get(candidate_id)
        if candidate is None:
            raise CandidateNotFound(f"Nomination {candidate_id} not found")
        return candidate
