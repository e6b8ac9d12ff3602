"""Independent live standings for several sessions at once."""

import asyncio
from collections.abc import Callable
from functools import partial
from typing import Any, Self

from movienight.config import Settings
from movienight.ledger.base import VoteLedger, VoteLedgerError
from movienight.log import get_logger
from movienight.models import Candidate, ReconcileResult, SessionSnapshot
from movienight.ranking.reconciler import DEFAULT_GRACE_PERIOD
from movienight.ranking.session import Notifier, VotingSession, log_notifier

log = get_logger(__name__)


class MultiSessionRankingRegistry:
    """Keyed collection of VotingSession instances, one per session id.

    Each session keeps its own reconciler, grace-period timer and vote
    budget; nothing is shared between keys. Sessions are created on first
    use.

    Args:
        ledger: Store shared by all sessions
        caller_id: The member acting through this registry
        grace_period: Seconds a reorder is held back, per session
        notify: Callback for user-facing messages
        on_commit: Called with ``(session_id, candidates)`` when a session's
            held back order is applied
    """

    def __init__(
        self,
        ledger: VoteLedger,
        caller_id: int,
        grace_period: float = DEFAULT_GRACE_PERIOD,
        notify: Notifier = log_notifier,
        on_commit: Callable[[int, list[Candidate]], None] | None = None,
    ):
        self._ledger = ledger
        self.caller_id = caller_id
        self.grace_period = grace_period
        self._notify = notify
        self._on_commit = on_commit
        self._sessions: dict[int, VotingSession] = {}

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        ledger: VoteLedger,
        caller_id: int,
        notify: Notifier = log_notifier,
        on_commit: Callable[[int, list[Candidate]], None] | None = None,
    ) -> Self:
        return cls(
            ledger,
            caller_id,
            grace_period=settings.grace_period_seconds,
            notify=notify,
            on_commit=on_commit,
        )

    def __contains__(self, session_id: int) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def session(self, session_id: int) -> VotingSession:
        """Return the session for a key, creating it if needed."""
        if session_id not in self._sessions:
            on_commit = None
            if self._on_commit is not None:
                on_commit = partial(self._on_commit, session_id)
            self._sessions[session_id] = VotingSession(
                session_id,
                self._ledger,
                self.caller_id,
                grace_period=self.grace_period,
                notify=self._notify,
                on_commit=on_commit,
            )
        return self._sessions[session_id]

    def session_ids(self) -> list[int]:
        return list(self._sessions)

    def initialize(self, session_id: int, snapshot: SessionSnapshot) -> list[Candidate]:
        return self.session(session_id).initialize(snapshot)

    async def refresh(self, session_id: int) -> ReconcileResult | None:
        """Refresh one session; failures are logged and reported as None."""
        try:
            return await self.session(session_id).refresh()
        except VoteLedgerError as e:
            log.warning(f"[{session_id}] Failed to refresh vote data: {e}")
            return None

    async def refresh_all(self) -> dict[int, ReconcileResult | None]:
        ids = self.session_ids()
        results = await asyncio.gather(*(self.refresh(i) for i in ids))
        return dict(zip(ids, results))

    def vote(self, session_id: int, candidate_id: int) -> asyncio.Task:
        return self.session(session_id).vote(candidate_id)

    def unvote(self, session_id: int, candidate_id: int) -> asyncio.Task:
        return self.session(session_id).unvote(candidate_id)

    def cancel_pending_reorder(self, session_id: int) -> None:
        if session_id in self._sessions:
            self._sessions[session_id].cancel_pending_reorder()

    def cancel_all_pending_reorders(self) -> None:
        for s in self._sessions.values():
            s.cancel_pending_reorder()

    def get_sorted(self, session_id: int) -> list[Candidate]:
        s = self._sessions.get(session_id)
        return s.sorted_candidates if s else []

    def get_data(self, session_id: int) -> dict[str, Any]:
        s = self._sessions.get(session_id)
        if s is None:
            return {"user_remaining_votes": 0, "max_votes_per_user": 0, "pending": False}
        return {
            "user_remaining_votes": s.user_remaining_votes,
            "max_votes_per_user": s.max_votes_per_user,
            "pending": s.pending,
        }

    async def drain(self) -> None:
        await asyncio.gather(*(s.drain() for s in self._sessions.values()))
