"""Shared fixtures for ranking tests."""

import pytest
import pytest_asyncio

from movienight.ledger.memory import InMemoryVoteLedger
from movienight.models import Candidate

# Short enough to keep the suite fast, long enough that assertions made right
# after a reconcile always run before the timer fires.
GRACE = 0.05

ME = 100
OTHER = 200
MANAGER = 300


class RecordingNotifier:
    def __init__(self):
        self.messages: list[tuple[str, str]] = []

    def __call__(self, message: str, level: str = "info") -> None:
        self.messages.append((message, level))

    def levels(self) -> list[str]:
        return [level for _, level in self.messages]


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def ledger():
    """Session 1 with three nominations and a budget of 3 votes.

              A(1)  B(2)  C(3)
    OTHER      2     1     0

    Standings: A=2, B=1, C=0 -> A, B, C
    """
    ledger = InMemoryVoteLedger()
    ledger.open_session(1, max_votes_per_user=3, managers=(MANAGER,))
    ledger.nominate(1, Candidate(id=1, title="Alien", year=1979))
    ledger.nominate(1, Candidate(id=2, title="Brazil", year=1985))
    ledger.nominate(1, Candidate(id=3, title="Cube", year=1997))
    return ledger


@pytest_asyncio.fixture
async def seeded_ledger(ledger):
    await ledger.cast_vote(1, 1, OTHER)
    await ledger.cast_vote(1, 1, OTHER)
    await ledger.cast_vote(1, 2, OTHER)
    return ledger
