"""Tests for the in-memory vote ledger."""

import pytest

from movienight.ledger.base import (
    CandidateBlocked,
    CandidateNotFound,
    NothingToRetract,
    PermissionDenied,
    QuotaExceeded,
    VotingClosed,
)
from movienight.ledger.memory import ABSENT, InMemoryVoteLedger
from movienight.models import Candidate

ALICE = 1
BOB = 2
HOST = 9


@pytest.fixture
def ledger():
    ledger = InMemoryVoteLedger()
    ledger.open_session(10, max_votes_per_user=2, managers=(HOST,))
    ledger.nominate(10, Candidate(id=1, title="Heat", year=1995, tmdb_id=949))
    ledger.nominate(10, Candidate(id=2, title="Ran", year=1985, rating_key="abc"))
    return ledger


async def tally(ledger, caller=ALICE):
    snapshot = await ledger.get_snapshot(10, caller)
    return {c.id: c.vote_count for c in snapshot.candidates}


class TestSnapshot:
    @pytest.mark.asyncio
    async def test_empty_session(self, ledger):
        snapshot = await ledger.get_snapshot(10, ALICE)
        assert [c.id for c in snapshot.candidates] == [1, 2]
        assert snapshot.user_remaining_votes == 2
        assert snapshot.max_votes_per_user == 2
        assert snapshot.winner_id is None
        assert snapshot.can_vote is True

    @pytest.mark.asyncio
    async def test_unknown_session(self, ledger):
        with pytest.raises(CandidateNotFound):
            await ledger.get_snapshot(11, ALICE)

    @pytest.mark.asyncio
    async def test_user_counts_are_per_caller(self, ledger):
        await ledger.cast_vote(10, 1, ALICE)
        await ledger.cast_vote(10, 1, BOB)
        await ledger.cast_vote(10, 1, BOB)

        alice = await ledger.get_snapshot(10, ALICE)
        bob = await ledger.get_snapshot(10, BOB)
        assert alice.get_candidate(1).vote_count == 3
        assert alice.get_candidate(1).user_vote_count == 1
        assert alice.user_remaining_votes == 1
        assert bob.get_candidate(1).user_vote_count == 2
        assert bob.user_remaining_votes == 0


class TestCastVote:
    @pytest.mark.asyncio
    async def test_increments_by_one(self, ledger):
        await ledger.cast_vote(10, 2, ALICE)
        assert await tally(ledger) == {1: 0, 2: 1}

    @pytest.mark.asyncio
    async def test_quota(self, ledger):
        await ledger.cast_vote(10, 1, ALICE)
        await ledger.cast_vote(10, 2, ALICE)
        with pytest.raises(QuotaExceeded):
            await ledger.cast_vote(10, 1, ALICE)
        assert await tally(ledger) == {1: 1, 2: 1}

    @pytest.mark.asyncio
    async def test_blocked(self, ledger):
        ledger.block(10, 1, BOB)
        with pytest.raises(CandidateBlocked):
            await ledger.cast_vote(10, 1, ALICE)
        snapshot = await ledger.get_snapshot(10, ALICE)
        assert snapshot.get_candidate(1).is_blocked

    @pytest.mark.asyncio
    async def test_block_returns_votes_to_voters(self, ledger):
        await ledger.cast_vote(10, 1, ALICE)
        await ledger.cast_vote(10, 1, ALICE)
        await ledger.cast_vote(10, 1, BOB)
        assert (await ledger.get_snapshot(10, ALICE)).user_remaining_votes == 0

        ledger.block(10, 1, BOB)
        alice = await ledger.get_snapshot(10, ALICE)
        assert alice.get_candidate(1).vote_count == 0
        assert alice.get_candidate(1).user_vote_count == 0
        assert alice.user_remaining_votes == 2
        assert (await ledger.get_snapshot(10, BOB)).user_remaining_votes == 2

        await ledger.cast_vote(10, 2, ALICE)
        assert await tally(ledger) == {1: 0, 2: 1}

    @pytest.mark.asyncio
    async def test_locked(self, ledger):
        ledger.lock(10)
        with pytest.raises(VotingClosed):
            await ledger.cast_vote(10, 1, ALICE)
        snapshot = await ledger.get_snapshot(10, ALICE)
        assert snapshot.can_vote is False

    @pytest.mark.asyncio
    async def test_unknown_candidate(self, ledger):
        with pytest.raises(CandidateNotFound):
            await ledger.cast_vote(10, 99, ALICE)

    @pytest.mark.asyncio
    async def test_voting_marks_attending(self, ledger):
        """Absent members' votes drop out of the tally until they vote again."""
        await ledger.cast_vote(10, 1, ALICE)
        await ledger.cast_vote(10, 1, BOB)
        ledger.set_attendance(10, BOB, ABSENT)
        assert await tally(ledger) == {1: 1, 2: 0}

        await ledger.cast_vote(10, 2, BOB)
        assert await tally(ledger) == {1: 2, 2: 1}

    @pytest.mark.asyncio
    async def test_absent_member_still_sees_own_votes(self, ledger):
        await ledger.cast_vote(10, 1, ALICE)
        ledger.set_attendance(10, ALICE, ABSENT)
        snapshot = await ledger.get_snapshot(10, ALICE)
        assert snapshot.get_candidate(1).vote_count == 0
        assert snapshot.get_candidate(1).user_vote_count == 1
        assert snapshot.user_remaining_votes == 1

    def test_unknown_attendance_status(self, ledger):
        with pytest.raises(ValueError):
            ledger.set_attendance(10, ALICE, "maybe")


class TestRetractVote:
    @pytest.mark.asyncio
    async def test_decrements_by_one(self, ledger):
        await ledger.cast_vote(10, 1, ALICE)
        await ledger.cast_vote(10, 1, ALICE)
        await ledger.retract_vote(10, 1, ALICE)
        snapshot = await ledger.get_snapshot(10, ALICE)
        assert snapshot.get_candidate(1).vote_count == 1
        assert snapshot.get_candidate(1).user_vote_count == 1
        assert snapshot.user_remaining_votes == 1

    @pytest.mark.asyncio
    async def test_nothing_to_retract(self, ledger):
        await ledger.cast_vote(10, 1, BOB)
        with pytest.raises(NothingToRetract):
            await ledger.retract_vote(10, 1, ALICE)
        assert await tally(ledger) == {1: 1, 2: 0}

    @pytest.mark.asyncio
    async def test_retract_down_to_zero(self, ledger):
        await ledger.cast_vote(10, 2, ALICE)
        await ledger.retract_vote(10, 2, ALICE)
        with pytest.raises(NothingToRetract):
            await ledger.retract_vote(10, 2, ALICE)


class TestDecideWinner:
    @pytest.mark.asyncio
    async def test_manager_decides_and_undecides(self, ledger):
        await ledger.decide_winner(10, 2, HOST)
        assert (await ledger.get_snapshot(10, ALICE)).winner_id == 2
        await ledger.decide_winner(10, None, HOST)
        assert (await ledger.get_snapshot(10, ALICE)).winner_id is None

    @pytest.mark.asyncio
    async def test_member_cannot_decide(self, ledger):
        with pytest.raises(PermissionDenied):
            await ledger.decide_winner(10, 2, ALICE)

    @pytest.mark.asyncio
    async def test_blocked_candidate_cannot_win(self, ledger):
        ledger.block(10, 2, BOB)
        with pytest.raises(CandidateBlocked, match="blocked movie"):
            await ledger.decide_winner(10, 2, HOST)
        assert (await ledger.get_snapshot(10, ALICE)).winner_id is None

    @pytest.mark.asyncio
    async def test_unknown_winner(self, ledger):
        with pytest.raises(CandidateNotFound):
            await ledger.decide_winner(10, 42, HOST)


class TestNominate:
    def test_duplicate_tmdb_id(self, ledger):
        with pytest.raises(ValueError, match="already nominated"):
            ledger.nominate(10, Candidate(id=3, title="Heat (1995)", tmdb_id=949))

    def test_duplicate_rating_key(self, ledger):
        with pytest.raises(ValueError, match="already nominated"):
            ledger.nominate(10, Candidate(id=3, title="Ran", rating_key="abc"))

    def test_duplicate_title_and_year(self, ledger):
        with pytest.raises(ValueError, match="already nominated"):
            ledger.nominate(10, Candidate(id=3, title="heat", year=1995))

    def test_same_title_other_year(self, ledger):
        stored = ledger.nominate(10, Candidate(id=3, title="Heat", year=1986, vote_count=7))
        assert stored.vote_count == 0

    def test_duplicate_session(self, ledger):
        with pytest.raises(ValueError):
            ledger.open_session(10)
