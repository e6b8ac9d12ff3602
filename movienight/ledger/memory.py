"""In-process vote ledger that enforces the full voting contract."""

from dataclasses import dataclass, field, replace

from movienight.ledger.base import (
    CandidateBlocked,
    CandidateNotFound,
    NothingToRetract,
    PermissionDenied,
    QuotaExceeded,
    VoteLedger,
    VotingClosed,
)
from movienight.log import get_logger
from movienight.models import Candidate, SessionSnapshot

log = get_logger(__name__)

ATTENDING = "attending"
ABSENT = "absent"


@dataclass
class _SessionRecord:
    max_votes_per_user: int
    managers: set[int]
    # candidate_id -> nomination metadata (tallies are derived from votes)
    candidates: dict[int, Candidate] = field(default_factory=dict)
    # (candidate_id, user_id) -> vote count
    votes: dict[tuple[int, int], int] = field(default_factory=dict)
    # candidate_id -> users who blocked it
    blocks: dict[int, set[int]] = field(default_factory=dict)
    attendance: dict[int, str] = field(default_factory=dict)
    winner_id: int | None = None
    locked: bool = False

    def user_total(self, user_id: int) -> int:
        return sum(n for (_, uid), n in self.votes.items() if uid == user_id)

    def counts_toward_tally(self, user_id: int) -> bool:
        """Absent members never count; once anyone has said they are
        attending, only attending members count."""
        status = self.attendance.get(user_id)
        if status == ABSENT:
            return False
        attending = [u for u, s in self.attendance.items() if s == ATTENDING]
        return not attending or status == ATTENDING


class InMemoryVoteLedger(VoteLedger):
    """Vote ledger backed by plain dictionaries.

    Implements every rule of the store side of the contract: per-member vote
    budgets, blocks, winner decisions restricted to managers, implicit
    attendance on voting and locking of finished sessions.
    """

    def __init__(self):
        self._sessions: dict[int, _SessionRecord] = {}

    # ------------------------------------------------------------
    # Session administration
    # ------------------------------------------------------------

    def open_session(
        self, session_id: int, max_votes_per_user: int = 3, managers: tuple[int, ...] = ()
    ) -> None:
        if max_votes_per_user < 1:
            raise ValueError("max_votes_per_user must be positive")
        if session_id in self._sessions:
            raise ValueError(f"Session {session_id} already exists")
        self._sessions[session_id] = _SessionRecord(
            max_votes_per_user=max_votes_per_user,
            managers=set(managers),
        )
        log.debug(f"[{session_id}] Opened session (max_votes={max_votes_per_user})")

    def nominate(self, session_id: int, candidate: Candidate) -> Candidate:
        """Add a nomination. Tallies on the passed candidate are ignored.

        Raises:
            ValueError: If the same title is already nominated
        """
        record = self._get_open_session(session_id)
        if candidate.id in record.candidates:
            raise ValueError(f"Candidate {candidate.id} already exists")
        for existing in record.candidates.values():
            if self._is_duplicate(existing, candidate):
                raise ValueError(f"{candidate.title!r} is already nominated")
        stored = replace(candidate, vote_count=0, user_vote_count=0, is_blocked=False)
        record.candidates[candidate.id] = stored
        return stored

    @staticmethod
    def _is_duplicate(a: Candidate, b: Candidate) -> bool:
        if a.rating_key and a.rating_key == b.rating_key:
            return True
        if a.tmdb_id and a.tmdb_id == b.tmdb_id:
            return True
        return bool(a.year and a.year == b.year and a.title.lower() == b.title.lower())

    def block(self, session_id: int, candidate_id: int, caller_id: int) -> None:
        """Veto a nomination. Every vote on it is returned to its voter."""
        record = self._get_open_session(session_id)
        self._get_candidate(record, candidate_id)
        record.blocks.setdefault(candidate_id, set()).add(caller_id)
        for key in [k for k in record.votes if k[0] == candidate_id]:
            del record.votes[key]
        log.debug(f"[{session_id}] User {caller_id} blocked {candidate_id}")

    def set_attendance(self, session_id: int, user_id: int, status: str) -> None:
        if status not in (ATTENDING, ABSENT):
            raise ValueError(f"Unknown attendance status: {status}")
        record = self._get_session(session_id)
        record.attendance[user_id] = status

    def lock(self, session_id: int) -> None:
        """Close the session to further voting (archived or cancelled)."""
        self._get_session(session_id).locked = True

    # ------------------------------------------------------------
    # VoteLedger contract
    # ------------------------------------------------------------

    async def get_snapshot(self, session_id: int, caller_id: int) -> SessionSnapshot:
        record = self._get_session(session_id)
        candidates = []
        for candidate_id, candidate in record.candidates.items():
            tally = sum(
                n for (cid, uid), n in record.votes.items()
                if cid == candidate_id and record.counts_toward_tally(uid)
            )
            candidates.append(replace(
                candidate,
                vote_count=tally,
                user_vote_count=record.votes.get((candidate_id, caller_id), 0),
                is_blocked=bool(record.blocks.get(candidate_id)),
            ))
        return SessionSnapshot(
            candidates=candidates,
            user_remaining_votes=record.max_votes_per_user - record.user_total(caller_id),
            max_votes_per_user=record.max_votes_per_user,
            winner_id=record.winner_id,
            can_vote=not record.locked,
        )

    async def cast_vote(self, session_id: int, candidate_id: int, caller_id: int) -> None:
        record = self._get_open_session(session_id)
        self._get_candidate(record, candidate_id)
        if record.user_total(caller_id) >= record.max_votes_per_user:
            raise QuotaExceeded("You have used all your votes for this movie night")
        if record.blocks.get(candidate_id):
            raise CandidateBlocked("This movie has been blocked")

        key = (candidate_id, caller_id)
        record.votes[key] = record.votes.get(key, 0) + 1
        record.attendance[caller_id] = ATTENDING
        log.debug(f"[{session_id}] User {caller_id} voted for {candidate_id}")

    async def retract_vote(self, session_id: int, candidate_id: int, caller_id: int) -> None:
        record = self._get_open_session(session_id)
        self._get_candidate(record, candidate_id)
        key = (candidate_id, caller_id)
        current = record.votes.get(key, 0)
        if current <= 0:
            raise NothingToRetract("No votes to remove")
        if current == 1:
            del record.votes[key]
        else:
            record.votes[key] = current - 1
        log.debug(f"[{session_id}] User {caller_id} removed a vote from {candidate_id}")

    async def decide_winner(
        self, session_id: int, candidate_id: int | None, caller_id: int
    ) -> None:
        record = self._get_open_session(session_id)
        if caller_id not in record.managers:
            raise PermissionDenied("Only a session manager can decide the winner")
        if candidate_id is not None:
            self._get_candidate(record, candidate_id)
            if record.blocks.get(candidate_id):
                raise CandidateBlocked("Cannot pick a blocked movie as winner")
        record.winner_id = candidate_id
        log.info(f"[{session_id}] Winner set to {candidate_id}")

    # ------------------------------------------------------------

    def _get_session(self, session_id: int) -> _SessionRecord:
        record = self._sessions.get(session_id)
        if record is None:
            raise CandidateNotFound(f"Movie night {session_id} not found")
        return record

    def _get_open_session(self, session_id: int) -> _SessionRecord:
        record = self._get_session(session_id)
        if record.locked:
            raise VotingClosed("This movie night is locked")
        return record

    @staticmethod
    def _get_candidate(record: _SessionRecord, candidate_id: int) -> Candidate:
        candidate = record.candidates.get(candidate_id)
        if candidate is None:
            raise CandidateNotFound(f"Nomination {candidate_id} not found")
        return candidate
